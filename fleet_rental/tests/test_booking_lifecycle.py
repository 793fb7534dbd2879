"""
Booking lifecycle tests: overlap exclusion, date validation, pricing
snapshot, vehicle availability, trip coupling, cancellation and access.
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from fleet_rental.app.models.booking import Booking
from fleet_rental.app.models.trip import Trip
from fleet_rental.tests.helpers import break_notification_writes, future


async def _availability(client, vehicle_id):
    response = await client.get(f"/v1/vehicles/{vehicle_id}")
    assert response.status_code == 200
    return response.json()["availability"]


async def _release(client, owner, vehicle_id):
    """Owner flips the vehicle back to available while its booking stays open."""
    response = await client.patch(
        f"/v1/vehicles/{vehicle_id}/availability",
        json={"availability": "available"},
        headers=owner["headers"],
    )
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_create_booking_prices_and_books_vehicle(client, customer, vehicle, book, db_session):
    start = future(days=2)
    response = await book(vehicle["id"], start=start, end=start + timedelta(days=3))

    assert response.status_code == 201, response.text
    booking = response.json()
    assert booking["status"] == "pending"
    assert booking["customer_id"] == customer["id"]
    assert booking["duration_days"] == 3
    assert booking["base_price"] == 300.0
    assert booking["taxes"] == 54.0
    assert booking["discount"] == 0
    assert booking["total_price"] == 354.0
    assert booking["pickup_location"]["address"] == "1 MG Road"

    assert await _availability(client, vehicle["id"]) == "booked"

    trips = (await db_session.execute(select(Trip).where(Trip.booking_id == booking["id"]))).scalars().all()
    assert len(trips) == 1
    assert trips[0].status.value == "scheduled"
    assert trips[0].vehicle_id == vehicle["id"]
    assert trips[0].customer_id == customer["id"]
    assert trips[0].driver_id is None
    assert trips[0].revenue == 0


@pytest.mark.asyncio
async def test_partial_day_rounds_up(client, vehicle, book):
    start = future(days=2)
    response = await book(vehicle["id"], start=start, end=start + timedelta(days=1, hours=2))

    assert response.status_code == 201
    assert response.json()["duration_days"] == 2
    assert response.json()["total_price"] == 236.0


@pytest.mark.asyncio
async def test_hourly_booking_uses_hourly_rate(client, make_vehicle, book):
    vehicle = await make_vehicle(price_per_hour=15.0)
    start = future(days=2)
    response = await book(vehicle["id"], start=start, end=start + timedelta(hours=4, minutes=30), booking_type="hourly")

    assert response.status_code == 201
    data = response.json()
    assert data["duration_hours"] == 5
    assert data["base_price"] == 75.0
    assert data["total_price"] == 88.5


@pytest.mark.asyncio
async def test_price_snapshot_survives_rate_change(client, owner, customer, vehicle, book):
    response = await book(vehicle["id"])
    booking_id = response.json()["id"]

    update = await client.patch(
        f"/v1/vehicles/{vehicle['id']}", json={"price_per_day": 500.0}, headers=owner["headers"]
    )
    assert update.status_code == 200

    confirm = await client.patch(
        f"/v1/bookings/{booking_id}/status", json={"status": "confirmed"}, headers=owner["headers"]
    )
    assert confirm.status_code == 200

    fetched = await client.get(f"/v1/bookings/{booking_id}", headers=customer["headers"])
    assert fetched.json()["total_price"] == 354.0
    assert fetched.json()["base_price"] == 300.0


@pytest.mark.asyncio
async def test_end_before_or_equal_start_is_rejected(client, vehicle, book, db_session):
    start = future(days=2)

    same = await book(vehicle["id"], start=start, end=start)
    assert same.status_code == 400
    assert same.json()["error_code"] == "ERR_INVALID_ARGUMENT"

    reversed_ = await book(vehicle["id"], start=start, end=start - timedelta(hours=1))
    assert reversed_.status_code == 400

    assert (await db_session.execute(select(Booking))).scalars().all() == []
    assert await _availability(client, vehicle["id"]) == "available"


@pytest.mark.asyncio
async def test_start_in_the_past_is_rejected(client, vehicle, book):
    start = datetime.now(timezone.utc) - timedelta(days=1)
    response = await book(vehicle["id"], start=start, end=start + timedelta(days=3))

    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_INVALID_ARGUMENT"


@pytest.mark.asyncio
async def test_unknown_vehicle_is_not_found(client, book):
    response = await book(9999)
    assert response.status_code == 404
    assert response.json()["error_code"] == "ERR_NOT_FOUND_001"


@pytest.mark.asyncio
async def test_booked_vehicle_is_not_available(client, vehicle, book, other_customer):
    assert (await book(vehicle["id"])).status_code == 201

    response = await book(vehicle["id"], start=future(days=30), user=other_customer)
    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_CONFLICT_001"
    assert response.json()["details"]["availability"] == "booked"


@pytest.mark.asyncio
async def test_overlapping_active_booking_conflicts(client, owner, vehicle, book, other_customer):
    start = future(days=2)
    end = start + timedelta(days=3)
    assert (await book(vehicle["id"], start=start, end=end)).status_code == 201
    await _release(client, owner, vehicle["id"])

    overlapping = await book(vehicle["id"], start=start + timedelta(days=1), end=end + timedelta(days=2), user=other_customer)
    assert overlapping.status_code == 409
    assert "conflicting_booking_id" in overlapping.json()["details"]

    # Boundaries are inclusive: starting exactly when the other booking ends still conflicts
    touching = await book(vehicle["id"], start=end, end=end + timedelta(days=1), user=other_customer)
    assert touching.status_code == 409

    disjoint = await book(vehicle["id"], start=end + timedelta(hours=1), end=end + timedelta(days=2), user=other_customer)
    assert disjoint.status_code == 201


@pytest.mark.asyncio
async def test_cancelled_booking_does_not_block_interval(client, customer, vehicle, book, other_customer):
    start = future(days=2)
    first = await book(vehicle["id"], start=start)
    await client.post(f"/v1/bookings/{first.json()['id']}/cancel", json={"reason": "plans changed"}, headers=customer["headers"])

    second = await book(vehicle["id"], start=start, user=other_customer)
    assert second.status_code == 201


@pytest.mark.asyncio
async def test_only_customers_create_bookings(client, owner, driver, vehicle, book):
    response = await book(vehicle["id"], user=owner)
    assert response.status_code == 403
    assert response.json()["error_code"] == "ERR_PERM_001"

    response = await book(vehicle["id"], user=driver)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_cancel_releases_vehicle_and_trip(client, customer, vehicle, book, db_session):
    booking_id = (await book(vehicle["id"])).json()["id"]

    response = await client.post(
        f"/v1/bookings/{booking_id}/cancel", json={"reason": "plans changed"}, headers=customer["headers"]
    )
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "cancelled"
    assert data["cancellation_reason"] == "plans changed"
    assert data["cancelled_by_id"] == customer["id"]
    assert data["cancelled_at"] is not None

    assert await _availability(client, vehicle["id"]) == "available"
    trip = (await db_session.execute(select(Trip).where(Trip.booking_id == booking_id))).scalar_one()
    assert trip.status.value == "cancelled"


@pytest.mark.asyncio
async def test_cancel_without_body(client, customer, vehicle, book):
    booking_id = (await book(vehicle["id"])).json()["id"]

    response = await client.post(f"/v1/bookings/{booking_id}/cancel", headers=customer["headers"])
    assert response.status_code == 200
    assert response.json()["cancellation_reason"] is None


@pytest.mark.asyncio
async def test_cancelling_twice_is_invalid_state_without_side_effects(client, customer, owner, vehicle, book, other_customer):
    booking_id = (await book(vehicle["id"])).json()["id"]
    await client.post(f"/v1/bookings/{booking_id}/cancel", headers=customer["headers"])

    # Someone else books the freed vehicle; a repeat cancel must not free it again
    assert (await book(vehicle["id"], start=future(days=20), user=other_customer)).status_code == 201

    response = await client.post(f"/v1/bookings/{booking_id}/cancel", headers=customer["headers"])
    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_INVALID_STATE"
    assert response.json()["details"]["current_status"] == "cancelled"
    assert await _availability(client, vehicle["id"]) == "booked"


@pytest.mark.asyncio
async def test_completed_booking_cannot_be_cancelled(client, customer, owner, vehicle, book):
    booking_id = (await book(vehicle["id"])).json()["id"]
    for status in ("confirmed", "in_progress", "completed"):
        response = await client.patch(
            f"/v1/bookings/{booking_id}/status", json={"status": status}, headers=owner["headers"]
        )
        assert response.status_code == 200, response.text

    assert await _availability(client, vehicle["id"]) == "available"

    response = await client.post(f"/v1/bookings/{booking_id}/cancel", headers=customer["headers"])
    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_INVALID_STATE"


@pytest.mark.asyncio
async def test_status_transitions_are_strict(client, owner, vehicle, book):
    booking_id = (await book(vehicle["id"])).json()["id"]

    skip = await client.patch(
        f"/v1/bookings/{booking_id}/status", json={"status": "completed"}, headers=owner["headers"]
    )
    assert skip.status_code == 409
    assert skip.json()["error_code"] == "ERR_INVALID_STATE"

    confirm = await client.patch(
        f"/v1/bookings/{booking_id}/status", json={"status": "confirmed"}, headers=owner["headers"]
    )
    assert confirm.status_code == 200
    assert confirm.json()["confirmed_at"] is not None

    back = await client.patch(
        f"/v1/bookings/{booking_id}/status", json={"status": "pending"}, headers=owner["headers"]
    )
    assert back.status_code == 409


@pytest.mark.asyncio
async def test_status_cancel_runs_cancel_flow(client, owner, vehicle, book):
    booking_id = (await book(vehicle["id"])).json()["id"]

    response = await client.patch(
        f"/v1/bookings/{booking_id}/status",
        json={"status": "cancelled", "cancellation_reason": "maintenance"},
        headers=owner["headers"],
    )
    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"
    assert response.json()["cancelled_by_id"] == owner["id"]
    assert await _availability(client, vehicle["id"]) == "available"


@pytest.mark.asyncio
async def test_strangers_are_denied(client, vehicle, book, other_customer, other_owner):
    booking_id = (await book(vehicle["id"])).json()["id"]

    for user in (other_customer, other_owner):
        read = await client.get(f"/v1/bookings/{booking_id}", headers=user["headers"])
        assert read.status_code == 403
        assert read.json()["error_code"] == "ERR_PERM_001"

        update = await client.patch(
            f"/v1/bookings/{booking_id}/status", json={"status": "confirmed"}, headers=user["headers"]
        )
        assert update.status_code == 403

        cancel = await client.post(f"/v1/bookings/{booking_id}/cancel", headers=user["headers"])
        assert cancel.status_code == 403

    assert await _availability(client, vehicle["id"]) == "booked"


@pytest.mark.asyncio
async def test_owner_and_admin_can_read(client, owner, admin, vehicle, book):
    booking_id = (await book(vehicle["id"])).json()["id"]

    assert (await client.get(f"/v1/bookings/{booking_id}", headers=owner["headers"])).status_code == 200
    assert (await client.get(f"/v1/bookings/{booking_id}", headers=admin["headers"])).status_code == 200


@pytest.mark.asyncio
async def test_listing_is_scoped_by_role(client, customer, other_customer, owner, other_owner, admin, make_vehicle, book):
    mine = await make_vehicle()
    theirs = await make_vehicle(owner_user=other_owner)
    await book(mine["id"])
    await book(theirs["id"], user=other_customer)

    async def listed(user, params=None):
        response = await client.get("/v1/bookings", headers=user["headers"], params=params or {})
        assert response.status_code == 200
        return response.json()

    assert (await listed(customer))["total"] == 1
    assert (await listed(customer))["bookings"][0]["vehicle_id"] == mine["id"]
    assert (await listed(owner))["total"] == 1
    assert (await listed(other_owner))["bookings"][0]["vehicle_id"] == theirs["id"]
    assert (await listed(admin))["total"] == 2
    assert (await listed(admin, {"status": "cancelled"}))["total"] == 0

    page = await listed(admin, {"page": 2, "page_size": 1})
    assert page["page"] == 2
    assert len(page["bookings"]) == 1


@pytest.mark.asyncio
async def test_admin_delete_cancels_open_booking(client, admin, customer, vehicle, book, db_session):
    booking_id = (await book(vehicle["id"])).json()["id"]

    response = await client.delete(f"/v1/admin/bookings/{booking_id}", headers=admin["headers"])
    assert response.status_code == 200

    assert (await client.get(f"/v1/bookings/{booking_id}", headers=customer["headers"])).status_code == 404
    assert await _availability(client, vehicle["id"]) == "available"

    booking = (await db_session.execute(select(Booking).where(Booking.id == booking_id))).scalar_one()
    assert booking.is_deleted is True
    assert booking.status.value == "cancelled"
    trip = (await db_session.execute(select(Trip).where(Trip.booking_id == booking_id))).scalar_one()
    assert trip.status.value == "cancelled"


@pytest.mark.asyncio
async def test_booking_creates_confirmation_notification(client, customer, vehicle, book):
    booking_id = (await book(vehicle["id"])).json()["id"]

    response = await client.get("/v1/notifications", headers=customer["headers"])
    assert response.status_code == 200
    notifications = response.json()
    assert len(notifications) == 1
    assert notifications[0]["type"] == "BOOKING_CONFIRMATION"
    assert notifications[0]["metadata_payload"]["booking_id"] == booking_id


@pytest.mark.asyncio
async def test_example_scenario(client, make_user, owner, make_vehicle):
    customer_a = await make_user("customer")
    customer_b = await make_user("customer")
    vehicle = await make_vehicle(price_per_day=100.0)

    year = datetime.now(timezone.utc).year + 1
    a_request = {
        "vehicle_id": vehicle["id"],
        "start_date": datetime(year, 6, 1, tzinfo=timezone.utc).isoformat(),
        "end_date": datetime(year, 6, 4, tzinfo=timezone.utc).isoformat(),
        "pickup_location": {"address": "Airport"},
    }
    b_request = {
        "vehicle_id": vehicle["id"],
        "start_date": datetime(year, 6, 3, tzinfo=timezone.utc).isoformat(),
        "end_date": datetime(year, 6, 5, tzinfo=timezone.utc).isoformat(),
        "pickup_location": {"address": "Station"},
    }

    a_booking = await client.post("/v1/bookings", json=a_request, headers=customer_a["headers"])
    assert a_booking.status_code == 201
    assert a_booking.json()["total_price"] == 354.0
    assert await _availability(client, vehicle["id"]) == "booked"

    rejected = await client.post("/v1/bookings", json=b_request, headers=customer_b["headers"])
    assert rejected.status_code == 409

    cancel = await client.post(f"/v1/bookings/{a_booking.json()['id']}/cancel", headers=customer_a["headers"])
    assert cancel.status_code == 200
    assert await _availability(client, vehicle["id"]) == "available"

    accepted = await client.post("/v1/bookings", json=b_request, headers=customer_b["headers"])
    assert accepted.status_code == 201


@pytest.mark.asyncio
async def test_failed_notification_keeps_booking_and_cancellation(client, customer, vehicle, book, monkeypatch):
    break_notification_writes(monkeypatch)

    created = await book(vehicle["id"])
    assert created.status_code == 201, created.text
    booking = created.json()
    assert booking["status"] == "pending"
    assert await _availability(client, vehicle["id"]) == "booked"

    cancelled = await client.post(
        f"/v1/bookings/{booking['id']}/cancel", json={"reason": "Plans changed"}, headers=customer["headers"]
    )
    assert cancelled.status_code == 200, cancelled.text
    assert cancelled.json()["status"] == "cancelled"
    assert cancelled.json()["cancellation_reason"] == "Plans changed"
    assert await _availability(client, vehicle["id"]) == "available"

    inbox = await client.get("/v1/notifications", headers=customer["headers"])
    assert inbox.json() == []


@pytest.mark.asyncio
async def test_completed_booking_then_stale_trip_keeps_new_booking(
    client, customer, other_customer, owner, vehicle, book
):
    first_id = (await book(vehicle["id"])).json()["id"]
    trips = (await client.get("/v1/trips", headers=customer["headers"])).json()["trips"]
    stale_trip_id = trips[0]["id"]

    started = await client.patch(
        f"/v1/trips/{stale_trip_id}/status", json={"status": "in_progress"}, headers=owner["headers"]
    )
    assert started.status_code == 200
    for status in ("confirmed", "in_progress", "completed"):
        response = await client.patch(
            f"/v1/bookings/{first_id}/status", json={"status": status}, headers=owner["headers"]
        )
        assert response.status_code == 200, response.text
    assert await _availability(client, vehicle["id"]) == "available"

    second = await book(vehicle["id"], user=other_customer)
    assert second.status_code == 201, second.text
    assert await _availability(client, vehicle["id"]) == "booked"

    completed = await client.patch(
        f"/v1/trips/{stale_trip_id}/status", json={"status": "completed"}, headers=owner["headers"]
    )
    assert completed.status_code == 200, completed.text
    assert completed.json()["revenue"] == 354.0

    assert await _availability(client, vehicle["id"]) == "booked"
    new_booking = await client.get(f"/v1/bookings/{second.json()['id']}", headers=other_customer["headers"])
    assert new_booking.json()["status"] == "pending"


@pytest.mark.asyncio
async def test_booking_history_includes_vehicle(client, customer, other_customer, owner, vehicle, make_vehicle, book):
    other = await make_vehicle(make="Honda", model="City")
    first_id = (await book(vehicle["id"])).json()["id"]
    second_id = (await book(other["id"])).json()["id"]
    third = await make_vehicle()
    await book(third["id"], user=other_customer)

    response = await client.get("/v1/bookings/my/history", headers=customer["headers"])
    assert response.status_code == 200, response.text
    data = response.json()
    assert data["total"] == 2
    assert [b["id"] for b in data["bookings"]] == [second_id, first_id]
    assert data["bookings"][0]["vehicle"]["make"] == "Honda"
    assert data["bookings"][1]["vehicle"]["registration_number"] == vehicle["registration_number"]

    assert (await client.get("/v1/bookings/my/history", headers=owner["headers"])).status_code == 403
