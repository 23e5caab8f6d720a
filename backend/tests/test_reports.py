"""
Tests for the admin booking report.
"""

from datetime import datetime, timezone, timedelta

import pytest
from httpx import AsyncClient

from app.core.exceptions import InvalidArgument
from app.services.booking_service import reserve
from app.services.report_service import compute_report


@pytest.mark.asyncio
async def test_empty_report(database):
    report = await compute_report(database)
    assert report.total_bookings == 0
    assert report.total_revenue == 0.0
    assert report.revenue_by_movie == {}


@pytest.mark.asyncio
async def test_report_aggregates_by_movie(database, showtime_factory, test_user, other_user):
    first = await showtime_factory(movie_name="First", seats=("A1", "A2"))
    second = await showtime_factory(movie_name="Second", seats=("B1",))

    await reserve(database, first.id, test_user.id, ["A1", "A2"], 24.0)
    await reserve(database, second.id, other_user.id, ["B1"], 9.5)

    report = await compute_report(database)
    assert report.total_bookings == 2
    assert report.total_seats_booked == 3
    assert report.total_revenue == pytest.approx(33.5)
    assert report.revenue_by_movie == {"First": 24.0, "Second": 9.5}


@pytest.mark.asyncio
async def test_report_window(database, test_user, test_showtime):
    await reserve(database, test_showtime.id, test_user.id, ["A1"], 10.0)
    now = datetime.now(timezone.utc)

    report = await compute_report(database, now - timedelta(hours=1), now + timedelta(hours=1))
    assert report.total_bookings == 1

    report = await compute_report(database, now - timedelta(days=3), now - timedelta(days=2))
    assert report.total_bookings == 0


@pytest.mark.asyncio
async def test_report_window_validation(database):
    now = datetime.now(timezone.utc)
    with pytest.raises(InvalidArgument):
        await compute_report(database, start=now)
    with pytest.raises(InvalidArgument):
        await compute_report(database, now, now - timedelta(days=1))


@pytest.mark.asyncio
async def test_reports_endpoint(client: AsyncClient, admin_headers, auth_headers, test_showtime):
    await client.post(
        "/api/v1/bookings",
        json={"showtime_id": test_showtime.id, "seat_numbers": ["A1", "A2"], "total_price": 20},
        headers=auth_headers,
    )

    response = await client.get("/api/v1/admin/reports", headers=admin_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["total_bookings"] == 1
    assert data["total_seats_booked"] == 2
    assert data["revenue_by_movie"] == {"Test Movie": 20.0}

    response = await client.get(
        "/api/v1/admin/reports?start_date=2020-01-01T00:00:00Z", headers=admin_headers
    )
    assert response.status_code == 400


@pytest.mark.asyncio
@pytest.mark.parametrize("query", [
    "end_date=2030-01-01T00:00:00Z",
    "start_date=2030-01-02T00:00:00Z&end_date=2030-01-01T00:00:00Z",
])
async def test_reports_endpoint_rejects_incomplete_window(client: AsyncClient, admin_headers, query):
    response = await client.get(f"/api/v1/admin/reports?{query}", headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "invalid-argument"
