"""
Tests for seat inventory, per-date occupancy, stats and housekeeping endpoints.
"""

from datetime import timedelta

import pytest
from httpx import AsyncClient

from conftest import TODAY, at, headers_for

TOMORROW = TODAY + timedelta(days=1)


@pytest.mark.asyncio
async def test_list_seats(client: AsyncClient, office):
    response = await client.get("/api/v1/seats/", headers=headers_for(office.carol))
    assert response.status_code == 200
    seats = response.json()
    assert [s["seat_number"] for s in seats] == ["D001", "D002", "D021", "F001", "F002"]
    assert seats[0]["owner_user_id"] == office.alice.id
    assert seats[3]["kind"] == "floating"


@pytest.mark.asyncio
async def test_daily_stats_counts_both_kinds_of_release(client: AsyncClient, office):
    # Alice releases outright; Bob books his own seat and cancels
    await client.post(
        "/api/v1/bookings/release", json={"date": TOMORROW.isoformat()}, headers=headers_for(office.alice)
    )
    booking = await client.post(
        "/api/v1/bookings/",
        json={"seat_id": office.d021.id, "date": TOMORROW.isoformat()},
        headers=headers_for(office.bob),
    )
    await client.delete(f"/api/v1/bookings/{booking.json()['id']}", headers=headers_for(office.bob))
    await client.post(
        "/api/v1/bookings/",
        json={"seat_id": office.f001.id, "date": TOMORROW.isoformat()},
        headers=headers_for(office.carol),
    )

    response = await client.get(
        "/api/v1/seats/stats", params={"date": TOMORROW.isoformat()}, headers=headers_for(office.carol)
    )
    assert response.status_code == 200
    stats = response.json()
    assert stats["total_seats"] == 5
    assert stats["base_floating"] == 2
    assert stats["designated_total"] == 3
    assert stats["released_seats"] == 2
    assert stats["total_floating"] == 4
    assert stats["booked"] == 1
    assert stats["available"] == 4
    assert stats["cached"] is False


@pytest.mark.asyncio
async def test_daily_stats_defaults_to_today(client: AsyncClient, office):
    response = await client.get("/api/v1/seats/stats", headers=headers_for(office.carol))
    assert response.status_code == 200
    assert response.json()["date"] == TODAY.isoformat()


@pytest.mark.asyncio
async def test_seats_by_date_shows_occupants(client: AsyncClient, office):
    booking = await client.post(
        "/api/v1/bookings/",
        json={"seat_id": office.f002.id, "date": TOMORROW.isoformat()},
        headers=headers_for(office.carol),
    )

    response = await client.get(f"/api/v1/seats/date/{TOMORROW.isoformat()}", headers=headers_for(office.bob))
    assert response.status_code == 200
    by_number = {s["seat_number"]: s for s in response.json()}
    assert by_number["F002"]["is_booked"] is True
    assert by_number["F002"]["booked_by_user_id"] == office.carol.id
    assert by_number["F002"]["booking_id"] == booking.json()["id"]
    assert by_number["F001"]["is_booked"] is False


@pytest.mark.asyncio
async def test_housekeeping_requires_admin(client: AsyncClient, office):
    response = await client.post("/api/v1/seats/housekeeping", headers=headers_for(office.alice))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_housekeeping_completes_past_bookings(client: AsyncClient, office, clock):
    await client.post(
        "/api/v1/bookings/",
        json={"seat_id": office.f001.id, "date": TOMORROW.isoformat()},
        headers=headers_for(office.carol),
    )
    await client.post(
        "/api/v1/bookings/release", json={"date": TOMORROW.isoformat()}, headers=headers_for(office.alice)
    )

    clock.set(at(TODAY + timedelta(days=2), 8))
    response = await client.post("/api/v1/seats/housekeeping", headers=headers_for(office.admin))
    assert response.status_code == 200
    assert response.json() == {"completed_bookings": 1, "cleared_releases": 1}

    mine = await client.get("/api/v1/bookings/", headers=headers_for(office.carol))
    assert mine.json()[0]["status"] == "completed"


@pytest.mark.asyncio
async def test_health_and_metrics(client: AsyncClient):
    health = await client.get("/health")
    assert health.status_code == 200
    assert health.json()["status"] == "healthy"

    metrics = await client.get("/metrics")
    assert metrics.status_code == 200
    assert "seat_reservation_attempts_total" in metrics.text
