"""
Vehicle registry: owner CRUD, availability control and deletion cascade.
"""

import pytest
from sqlalchemy import select

from fleet_rental.app.models.booking import Booking
from fleet_rental.app.models.trip import Trip
from fleet_rental.app.services.fleet_registry import FleetRegistry


@pytest.mark.asyncio
async def test_create_vehicle(client, owner, vehicle):
    assert vehicle["owner_id"] == owner["id"]
    assert vehicle["availability"] == "available"
    assert vehicle["registration_number"] == "KA-01-AB-0001"
    assert vehicle["features"] == []


@pytest.mark.asyncio
async def test_duplicate_registration_conflicts(client, owner, vehicle):
    response = await client.post(
        "/v1/vehicles",
        json={
            "make": "Honda", "model": "City", "year": 2021,
            "registration_number": vehicle["registration_number"].lower(),
            "vehicle_type": "sedan", "fuel_type": "petrol", "passenger_capacity": 5, "price_per_day": 80,
        },
        headers=owner["headers"],
    )
    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_CONFLICT_001"


@pytest.mark.asyncio
async def test_customers_cannot_create_vehicles(client, customer):
    response = await client.post(
        "/v1/vehicles",
        json={
            "make": "Honda", "model": "City", "year": 2021, "registration_number": "X-1",
            "vehicle_type": "sedan", "fuel_type": "petrol", "passenger_capacity": 5, "price_per_day": 80,
        },
        headers=customer["headers"],
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_browse_with_filters(client, make_vehicle):
    await make_vehicle(vehicle_type="suv", city="Mumbai", price_per_day=250.0)
    await make_vehicle(price_per_day=90.0)

    everything = await client.get("/v1/vehicles")
    assert everything.status_code == 200
    assert everything.json()["total"] == 2

    suvs = await client.get("/v1/vehicles", params={"vehicle_type": "suv"})
    assert [v["city"] for v in suvs.json()["vehicles"]] == ["Mumbai"]

    cheap = await client.get("/v1/vehicles", params={"max_price": 100})
    assert cheap.json()["total"] == 1

    by_city = await client.get("/v1/vehicles", params={"city": "mumbai"})
    assert by_city.json()["total"] == 1


@pytest.mark.asyncio
async def test_my_vehicles(client, owner, other_owner, make_vehicle):
    await make_vehicle()
    await make_vehicle(owner_user=other_owner)

    response = await client.get("/v1/vehicles/my", headers=owner["headers"])
    assert response.json()["total"] == 1
    assert response.json()["vehicles"][0]["owner_id"] == owner["id"]


@pytest.mark.asyncio
async def test_owner_updates_vehicle(client, owner, vehicle):
    response = await client.patch(
        f"/v1/vehicles/{vehicle['id']}", json={"color": "Red", "price_per_day": 120.0}, headers=owner["headers"]
    )
    assert response.status_code == 200
    assert response.json()["color"] == "Red"
    assert response.json()["price_per_day"] == 120.0

    fetched = await client.get(f"/v1/vehicles/{vehicle['id']}")
    assert fetched.json()["price_per_day"] == 120.0


@pytest.mark.asyncio
async def test_other_owner_cannot_modify(client, other_owner, vehicle):
    update = await client.patch(
        f"/v1/vehicles/{vehicle['id']}", json={"color": "Red"}, headers=other_owner["headers"]
    )
    assert update.status_code == 403

    delete = await client.delete(f"/v1/vehicles/{vehicle['id']}", headers=other_owner["headers"])
    assert delete.status_code == 403


@pytest.mark.asyncio
async def test_admin_can_modify_any_vehicle(client, admin, vehicle):
    response = await client.patch(
        f"/v1/vehicles/{vehicle['id']}/availability", json={"availability": "maintenance"}, headers=admin["headers"]
    )
    assert response.status_code == 200
    assert response.json()["availability"] == "maintenance"


@pytest.mark.asyncio
async def test_booked_cannot_be_set_directly(client, owner, vehicle):
    response = await client.patch(
        f"/v1/vehicles/{vehicle['id']}/availability", json={"availability": "booked"}, headers=owner["headers"]
    )
    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_INVALID_ARGUMENT"


@pytest.mark.asyncio
async def test_vehicle_in_maintenance_cannot_be_booked(client, owner, vehicle, book):
    await client.patch(
        f"/v1/vehicles/{vehicle['id']}/availability", json={"availability": "maintenance"}, headers=owner["headers"]
    )

    response = await book(vehicle["id"])
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_delete_cancels_open_bookings(client, owner, customer, vehicle, book, db_session):
    booking_id = (await book(vehicle["id"])).json()["id"]

    response = await client.delete(f"/v1/vehicles/{vehicle['id']}", headers=owner["headers"])
    assert response.status_code == 200
    assert response.json()["vehicle_id"] == vehicle["id"]

    assert (await client.get(f"/v1/vehicles/{vehicle['id']}")).status_code == 404
    assert (await client.get("/v1/vehicles")).json()["total"] == 0

    booking = (await db_session.execute(select(Booking).where(Booking.id == booking_id))).scalar_one()
    assert booking.status.value == "cancelled"
    assert booking.cancellation_reason == "vehicle deleted"
    assert booking.cancelled_by_id == owner["id"]

    trip = (await db_session.execute(select(Trip).where(Trip.booking_id == booking_id))).scalar_one()
    assert trip.status.value == "cancelled"


@pytest.mark.asyncio
async def test_admin_lists_deleted_vehicles(client, admin, owner, vehicle):
    await client.delete(f"/v1/vehicles/{vehicle['id']}", headers=owner["headers"])

    visible = await client.get("/v1/admin/vehicles", headers=admin["headers"])
    assert visible.json()["total"] == 0

    everything = await client.get("/v1/admin/vehicles", params={"include_deleted": True}, headers=admin["headers"])
    assert everything.json()["total"] == 1
    assert everything.json()["vehicles"][0]["availability"] == "unavailable"


@pytest.mark.asyncio
async def test_is_available_follows_booking(client, vehicle, book, db_session):
    assert await FleetRegistry.is_available(db_session, vehicle["id"]) is True

    await book(vehicle["id"])
    db_session.expire_all()

    assert await FleetRegistry.is_available(db_session, vehicle["id"]) is False
    assert await FleetRegistry.is_available(db_session, 9999) is False
