"""
Tests for booking endpoints: availability, reserve, cancel, release, schedule.
"""

from datetime import timedelta

import pytest
from httpx import AsyncClient

from app.api.routes import bookings as bookings_routes
from app.repositories import BookingLedger
from conftest import TODAY, at, headers_for

TOMORROW = TODAY + timedelta(days=1)


async def _book(client: AsyncClient, user, seat, day=TOMORROW, **extra):
    return await client.post(
        "/api/v1/bookings/",
        json={"seat_id": seat.id, "date": day.isoformat(), **extra},
        headers=headers_for(user),
    )


@pytest.mark.asyncio
async def test_availability_requires_identity(client: AsyncClient, office):
    response = await client.get(f"/api/v1/bookings/available/{TOMORROW.isoformat()}")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_availability_lists_every_seat(client: AsyncClient, office):
    response = await client.get(
        f"/api/v1/bookings/available/{TOMORROW.isoformat()}", headers=headers_for(office.carol)
    )
    assert response.status_code == 200
    data = response.json()
    assert data["date"] == TOMORROW.isoformat()
    assert data["is_working_day"] is True
    assert len(data["seats"]) == 5
    assert all(seat["is_available"] for seat in data["seats"])
    assert data["floating_info"]["base_floating"] == 2
    assert data["user_has_booking"] is False
    assert data["current_booking"] is None


@pytest.mark.asyncio
async def test_book_own_designated_seat(client: AsyncClient, office):
    response = await _book(client, office.alice, office.d001)
    assert response.status_code == 201
    data = response.json()
    assert data["seat_id"] == office.d001.id
    assert data["booking_type"] == "designated"
    assert data["status"] == "active"
    assert data["start_time"] == "09:00"
    assert data["end_time"] == "18:00"


@pytest.mark.asyncio
async def test_book_floating_seat_with_times(client: AsyncClient, office):
    response = await _book(client, office.carol, office.f001, start_time="10:00", end_time="14:30")
    assert response.status_code == 201
    data = response.json()
    assert data["booking_type"] == "floating"
    assert data["start_time"] == "10:00"
    assert data["end_time"] == "14:30"


@pytest.mark.asyncio
async def test_book_taken_seat_conflicts(client: AsyncClient, office):
    assert (await _book(client, office.carol, office.f001)).status_code == 201

    response = await _book(client, office.bob, office.f001)
    assert response.status_code == 409
    assert response.json()["error"] == "SeatAlreadyBooked"


@pytest.mark.asyncio
async def test_second_booking_same_day_rejected(client: AsyncClient, office):
    assert (await _book(client, office.carol, office.f001)).status_code == 201

    response = await _book(client, office.carol, office.f002)
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "DuplicateUserBooking"
    assert body["context"]["date"] == TOMORROW.isoformat()


@pytest.mark.asyncio
async def test_book_beyond_horizon_rejected(client: AsyncClient, office):
    response = await _book(client, office.carol, office.f001, day=TODAY + timedelta(days=16))
    assert response.status_code == 403
    assert response.json()["error"] == "OutsideBookingHorizon"


@pytest.mark.asyncio
async def test_book_inverted_times_rejected(client: AsyncClient, office):
    response = await _book(client, office.carol, office.f001, start_time="17:00", end_time="09:00")
    assert response.status_code == 400
    assert response.json()["error"] == "InvalidTimeRange"


@pytest.mark.asyncio
async def test_book_malformed_time_is_validation_error(client: AsyncClient, office):
    response = await _book(client, office.carol, office.f001, start_time="9am")
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_book_unknown_seat(client: AsyncClient, office):
    response = await client.post(
        "/api/v1/bookings/",
        json={"seat_id": 9999, "date": TOMORROW.isoformat()},
        headers=headers_for(office.carol),
    )
    assert response.status_code == 404
    assert response.json()["error"] == "SeatNotFound"


@pytest.mark.asyncio
async def test_cancel_designated_booking_releases_seat(client: AsyncClient, office):
    booking_id = (await _book(client, office.alice, office.d001)).json()["id"]

    response = await client.delete(f"/api/v1/bookings/{booking_id}", headers=headers_for(office.alice))
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "cancelled"
    assert data["seat_released"] is True

    # The freed seat is now bookable by a colleague
    assert (await _book(client, office.carol, office.d001)).status_code == 201

    again = await client.delete(f"/api/v1/bookings/{booking_id}", headers=headers_for(office.alice))
    assert again.status_code == 409
    assert again.json()["error"] == "AlreadyCancelled"


@pytest.mark.asyncio
async def test_cancel_someone_elses_booking_forbidden(client: AsyncClient, office):
    booking_id = (await _book(client, office.carol, office.f001)).json()["id"]

    response = await client.delete(f"/api/v1/bookings/{booking_id}", headers=headers_for(office.bob))
    assert response.status_code == 403

    response = await client.delete(f"/api/v1/bookings/{booking_id}", headers=headers_for(office.admin))
    assert response.status_code == 200
    assert response.json()["seat_released"] is False


@pytest.mark.asyncio
async def test_cancel_missing_booking(client: AsyncClient, office):
    response = await client.delete("/api/v1/bookings/424242", headers=headers_for(office.alice))
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_release_is_idempotent(client: AsyncClient, office):
    payload = {"date": TOMORROW.isoformat()}

    first = await client.post("/api/v1/bookings/release", json=payload, headers=headers_for(office.alice))
    assert first.status_code == 200
    assert first.json()["already_released"] is False
    assert first.json()["seat"]["release_state"] == "released"
    assert first.json()["seat"]["release_date"] == TOMORROW.isoformat()

    second = await client.post("/api/v1/bookings/release", json=payload, headers=headers_for(office.alice))
    assert second.status_code == 200
    assert second.json()["already_released"] is True

    availability = await client.get(
        f"/api/v1/bookings/available/{TOMORROW.isoformat()}", headers=headers_for(office.alice)
    )
    assert availability.json()["has_released_own_seat"] is True
    assert availability.json()["floating_info"]["released"] == 1


@pytest.mark.asyncio
async def test_release_cancels_own_booking(client: AsyncClient, office):
    booking_id = (await _book(client, office.alice, office.d001)).json()["id"]

    response = await client.post(
        "/api/v1/bookings/release", json={"date": TOMORROW.isoformat()}, headers=headers_for(office.alice)
    )
    assert response.status_code == 200
    assert response.json()["cancelled_booking_id"] == booking_id


@pytest.mark.asyncio
async def test_release_without_designated_seat(client: AsyncClient, office):
    response = await client.post(
        "/api/v1/bookings/release", json={"date": TOMORROW.isoformat()}, headers=headers_for(office.carol)
    )
    assert response.status_code == 400
    assert response.json()["error"] == "NoDesignatedSeat"


@pytest.mark.asyncio
async def test_list_my_bookings(client: AsyncClient, office):
    later = TODAY + timedelta(days=3)
    await _book(client, office.carol, office.f001)
    await _book(client, office.carol, office.f002, day=later)

    response = await client.get("/api/v1/bookings/", headers=headers_for(office.carol))
    assert response.status_code == 200
    assert [b["date"] for b in response.json()] == [later.isoformat(), TOMORROW.isoformat()]

    response = await client.get(
        "/api/v1/bookings/", params={"date": TOMORROW.isoformat()}, headers=headers_for(office.carol)
    )
    assert [b["seat_id"] for b in response.json()] == [office.f001.id]


@pytest.mark.asyncio
async def test_schedule_reports_rotation_and_allocations(client: AsyncClient, office):
    await _book(client, office.alice, office.d001)

    response = await client.get(
        "/api/v1/bookings/schedule",
        params={"start": TODAY.isoformat(), "end": (TODAY + timedelta(days=4)).isoformat()},
        headers=headers_for(office.alice),
    )
    assert response.status_code == 200
    days = response.json()
    assert len(days) == 5

    monday, tuesday, thursday = days[0], days[1], days[3]
    assert monday["day_name"] == "Monday"
    assert monday["week_number"] == 1
    assert monday["batch_in_office"] == 1
    assert monday["is_working_day"] is True
    # Day 22 starts the fourth seven-day block of the month: cycle week 2
    assert thursday["week_number"] == 2
    assert thursday["batch_in_office"] == 2
    assert thursday["is_working_day"] is False

    assert tuesday["total_bookings"] == 1
    assert tuesday["my_booking"]["seat_id"] == office.d001.id
    assert tuesday["allocations"][0]["seat_number"] == "D001"
    assert tuesday["allocations"][0]["batch"] == 1


@pytest.mark.asyncio
async def test_schedule_rejects_inverted_range(client: AsyncClient, office):
    response = await client.get(
        "/api/v1/bookings/schedule",
        params={"start": TOMORROW.isoformat(), "end": TODAY.isoformat()},
        headers=headers_for(office.alice),
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_floating_window_follows_clock(client: AsyncClient, office, clock):
    url = f"/api/v1/bookings/available/{TOMORROW.isoformat()}"

    before = (await client.get(url, headers=headers_for(office.carol))).json()
    assert before["can_book_floating"] is False
    assert before["floating_window_message"] == "Floating seats can be booked after 15:00 on Oct 19"

    clock.set(at(TODAY, 15))
    after = (await client.get(url, headers=headers_for(office.carol))).json()
    assert after["can_book_floating"] is True
    assert after["floating_window_message"] is None


@pytest.mark.asyncio
async def test_stats_cache_dropped_only_after_commit(client: AsyncClient, office, session_factory, monkeypatch):
    seen = []

    async def record_visible_bookings(target=None):
        # A separate session sees only committed rows
        async with session_factory() as session:
            active = await BookingLedger(session).list_active_on_date(TOMORROW)
            seen.append(len(active))
            await session.rollback()

    monkeypatch.setattr(bookings_routes, "invalidate_stats_cache", record_visible_bookings)

    booking_id = (await _book(client, office.carol, office.f001)).json()["id"]
    await client.delete(f"/api/v1/bookings/{booking_id}", headers=headers_for(office.carol))

    assert seen == [1, 0]
