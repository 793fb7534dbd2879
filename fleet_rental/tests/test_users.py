"""
Profile reads and self-service edits.
"""

import pytest


@pytest.mark.asyncio
async def test_profile_shortcut_returns_caller(client, owner):
    response = await client.get("/v1/users/profile", headers=owner["headers"])
    assert response.status_code == 200
    assert response.json()["id"] == owner["id"]
    assert response.json()["business_name"] == "Acme Rentals"


@pytest.mark.asyncio
async def test_profiles_are_private_except_to_admins(client, admin, customer, owner):
    assert (await client.get(f"/v1/users/{customer['id']}", headers=customer["headers"])).status_code == 200
    assert (await client.get(f"/v1/users/{customer['id']}", headers=owner["headers"])).status_code == 403
    assert (await client.get(f"/v1/users/{customer['id']}", headers=admin["headers"])).status_code == 200
    assert (await client.get("/v1/users/99999", headers=admin["headers"])).status_code == 404


@pytest.mark.asyncio
async def test_only_the_account_holder_edits_a_profile(client, admin, customer):
    response = await client.put(f"/v1/users/{customer['id']}", json={"name": "Hijacked"}, headers=admin["headers"])
    assert response.status_code == 403

    response = await client.put(
        f"/v1/users/{customer['id']}", json={"name": "Casey", "phone": "9000000001"}, headers=customer["headers"]
    )
    assert response.status_code == 200, response.text
    assert response.json()["name"] == "Casey"
    assert response.json()["phone"] == "9000000001"


@pytest.mark.asyncio
async def test_role_specific_fields(client, customer, driver, owner):
    ignored = await client.put(
        f"/v1/users/{customer['id']}",
        json={"license_number": "DL-NEW", "business_name": "Side Hustle"},
        headers=customer["headers"],
    )
    assert ignored.json()["license_number"] is None
    assert ignored.json()["business_name"] is None

    renewed = await client.put(f"/v1/users/{driver['id']}", json={"license_number": "DL-RENEWED"}, headers=driver["headers"])
    assert renewed.json()["license_number"] == "DL-RENEWED"

    rebranded = await client.put(f"/v1/users/{owner['id']}", json={"business_name": "Acme Fleet"}, headers=owner["headers"])
    assert rebranded.json()["business_name"] == "Acme Fleet"


@pytest.mark.asyncio
async def test_license_number_stays_unique(client, driver, make_user):
    other = await make_user("driver")
    taken = (await client.get("/v1/users/profile", headers=other["headers"])).json()["license_number"]

    response = await client.put(f"/v1/users/{driver['id']}", json={"license_number": taken}, headers=driver["headers"])
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_invalid_phone_is_rejected(client, customer):
    response = await client.put(f"/v1/users/{customer['id']}", json={"phone": "12ab"}, headers=customer["headers"])
    assert response.status_code == 422
