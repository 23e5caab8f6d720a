"""
Tests for the movie/showtime catalog endpoints.
"""

import pytest
from datetime import datetime, timezone, timedelta
from httpx import AsyncClient

from app.services.booking_service import reserve


def _showtime_payload(days: int = 30, seats=("A1", "A2"), capacity: int = 2, price: float = 12.5):
    start = datetime.now(timezone.utc) + timedelta(days=days)
    return {
        "start_time": start.isoformat(),
        "end_time": (start + timedelta(hours=2)).isoformat(),
        "capacity": capacity,
        "price": price,
        "seats": [{"seat_number": s, "row": s[0]} for s in seats],
    }


def _movie_payload(name: str = "Python: The Movie", showtimes=None):
    return {
        "name": name,
        "description": "A thriller about indentation",
        "image_url": "https://example.com/poster.png",
        "showtimes": showtimes if showtimes is not None else [_showtime_payload()],
    }


@pytest.mark.asyncio
async def test_admin_creates_movie_with_seats(client: AsyncClient, admin_headers, auth_headers):
    response = await client.post("/api/v1/movies", json=_movie_payload(), headers=admin_headers)
    assert response.status_code == 201
    data = response.json()
    assert data["name"] == "Python: The Movie"
    assert len(data["showtimes"]) == 1

    showtime_id = data["showtimes"][0]["id"]
    seats = await client.get(f"/api/v1/showtimes/{showtime_id}/seats", headers=auth_headers)
    assert seats.status_code == 200
    assert [s["seat_number"] for s in seats.json()["available_seats"]] == ["A1", "A2"]


@pytest.mark.asyncio
async def test_create_movie_requires_admin(client: AsyncClient, auth_headers):
    response = await client.post("/api/v1/movies", json=_movie_payload(), headers=auth_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_create_movie_unauthenticated(client: AsyncClient):
    response = await client.post("/api/v1/movies", json=_movie_payload())
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_create_movie_duplicate_name(client: AsyncClient, admin_headers):
    await client.post("/api/v1/movies", json=_movie_payload(), headers=admin_headers)
    response = await client.post("/api/v1/movies", json=_movie_payload(), headers=admin_headers)
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_create_movie_rejects_duplicate_seat_numbers(client: AsyncClient, admin_headers):
    payload = _movie_payload(showtimes=[_showtime_payload(seats=("A1", "A1"))])
    response = await client.post("/api/v1/movies", json=payload, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "duplicate-seat-numbers"


@pytest.mark.asyncio
async def test_create_movie_rejects_seats_over_capacity(client: AsyncClient, admin_headers):
    payload = _movie_payload(showtimes=[_showtime_payload(seats=("A1", "A2", "A3"), capacity=2)])
    response = await client.post("/api/v1/movies", json=payload, headers=admin_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_create_movie_rejects_inverted_showtime(client: AsyncClient, admin_headers):
    showtime = _showtime_payload()
    showtime["start_time"], showtime["end_time"] = showtime["end_time"], showtime["start_time"]
    response = await client.post("/api/v1/movies", json=_movie_payload(showtimes=[showtime]), headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "invalid-showtime-window"


@pytest.mark.asyncio
async def test_list_and_get_movies(client: AsyncClient, admin_headers):
    created = await client.post("/api/v1/movies", json=_movie_payload(), headers=admin_headers)
    movie_id = created.json()["id"]

    response = await client.get("/api/v1/movies?page=1&page_size=5")
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["page_size"] == 5
    assert data["cached"] is False

    response = await client.get(f"/api/v1/movies/{movie_id}")
    assert response.status_code == 200
    assert response.json()["id"] == movie_id


@pytest.mark.asyncio
async def test_get_movie_not_found(client: AsyncClient):
    response = await client.get("/api/v1/movies/99999")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_update_movie(client: AsyncClient, admin_headers):
    created = await client.post("/api/v1/movies", json=_movie_payload(), headers=admin_headers)
    movie_id = created.json()["id"]

    response = await client.put(
        f"/api/v1/movies/{movie_id}",
        json={"description": "Now with type hints"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["description"] == "Now with type hints"
    assert response.json()["name"] == "Python: The Movie"


@pytest.mark.asyncio
async def test_showtimes_filtered_by_date(client: AsyncClient, admin_headers):
    payload = _movie_payload(showtimes=[_showtime_payload(days=10), _showtime_payload(days=20)])
    created = await client.post("/api/v1/movies", json=payload, headers=admin_headers)
    movie_id = created.json()["id"]

    all_showtimes = await client.get("/api/v1/showtimes")
    assert len(all_showtimes.json()) == 2

    day = (datetime.now(timezone.utc) + timedelta(days=10)).date().isoformat()
    response = await client.get(f"/api/v1/showtimes?date={day}")
    assert response.status_code == 200
    assert len(response.json()) == 1

    response = await client.get(f"/api/v1/movies/{movie_id}/showtimes")
    assert len(response.json()) == 2


@pytest.mark.asyncio
async def test_delete_movie_removes_showtimes(client: AsyncClient, admin_headers, auth_headers):
    created = await client.post("/api/v1/movies", json=_movie_payload(), headers=admin_headers)
    movie = created.json()

    response = await client.delete(f"/api/v1/movies/{movie['id']}", headers=admin_headers)
    assert response.status_code == 204

    showtime_id = movie["showtimes"][0]["id"]
    seats = await client.get(f"/api/v1/showtimes/{showtime_id}/seats", headers=auth_headers)
    assert seats.status_code == 404


@pytest.mark.asyncio
async def test_delete_movie_with_bookings_refused(client: AsyncClient, database, admin_headers, test_user):
    created = await client.post("/api/v1/movies", json=_movie_payload(), headers=admin_headers)
    movie = created.json()
    await reserve(database, movie["showtimes"][0]["id"], test_user.id, ["A1"], 12.5)

    response = await client.delete(f"/api/v1/movies/{movie['id']}", headers=admin_headers)
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_replace_seat_map(client: AsyncClient, admin_headers, auth_headers, test_showtime):
    response = await client.put(
        f"/api/v1/showtimes/{test_showtime.id}/seats",
        json={"seats": [{"seat_number": "B1", "row": "B"}, {"seat_number": "B2", "row": "B"}]},
        headers=admin_headers,
    )
    assert response.status_code == 200

    seats = await client.get(f"/api/v1/showtimes/{test_showtime.id}/seats", headers=auth_headers)
    assert [s["seat_number"] for s in seats.json()["available_seats"]] == ["B1", "B2"]


@pytest.mark.asyncio
async def test_replace_seat_map_refused_while_booked(
    client: AsyncClient, database, admin_headers, test_user, test_showtime
):
    await reserve(database, test_showtime.id, test_user.id, ["A1"], 10.0)

    response = await client.put(
        f"/api/v1/showtimes/{test_showtime.id}/seats",
        json={"seats": [{"seat_number": "B1", "row": "B"}]},
        headers=admin_headers,
    )
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "showtime-has-bookings"


@pytest.mark.asyncio
async def test_update_movie_adds_showtime(client: AsyncClient, admin_headers, auth_headers):
    created = await client.post("/api/v1/movies", json=_movie_payload(), headers=admin_headers)
    movie_id = created.json()["id"]

    response = await client.put(
        f"/api/v1/movies/{movie_id}",
        json={"showtimes": [_showtime_payload(days=40, seats=("C1", "C2", "C3"), capacity=3)]},
        headers=admin_headers,
    )
    assert response.status_code == 200
    showtimes = response.json()["showtimes"]
    assert len(showtimes) == 2

    added = next(s for s in showtimes if s["capacity"] == 3)
    seats = await client.get(f"/api/v1/showtimes/{added['id']}/seats", headers=auth_headers)
    assert [s["seat_number"] for s in seats.json()["available_seats"]] == ["C1", "C2", "C3"]


@pytest.mark.asyncio
async def test_update_movie_edits_showtime_and_regenerates_seats(
    client: AsyncClient, admin_headers, auth_headers
):
    created = await client.post("/api/v1/movies", json=_movie_payload(), headers=admin_headers)
    movie = created.json()
    showtime_id = movie["showtimes"][0]["id"]

    edit = _showtime_payload(days=45, seats=("D1", "D2", "D3", "D4"), capacity=4, price=15.0)
    edit["id"] = showtime_id
    response = await client.put(f"/api/v1/movies/{movie['id']}", json={"showtimes": [edit]}, headers=admin_headers)
    assert response.status_code == 200
    showtime = response.json()["showtimes"][0]
    assert showtime["id"] == showtime_id
    assert showtime["capacity"] == 4
    assert showtime["price"] == 15.0

    seats = await client.get(f"/api/v1/showtimes/{showtime_id}/seats", headers=auth_headers)
    assert [s["seat_number"] for s in seats.json()["available_seats"]] == ["D1", "D2", "D3", "D4"]


@pytest.mark.asyncio
async def test_update_showtime_without_seats_keeps_seat_map(client: AsyncClient, admin_headers, auth_headers):
    created = await client.post("/api/v1/movies", json=_movie_payload(), headers=admin_headers)
    movie = created.json()
    showtime_id = movie["showtimes"][0]["id"]

    edit = _showtime_payload(days=50, capacity=5, price=9.0)
    edit["id"] = showtime_id
    del edit["seats"]
    response = await client.put(f"/api/v1/movies/{movie['id']}", json={"showtimes": [edit]}, headers=admin_headers)
    assert response.status_code == 200

    seats = await client.get(f"/api/v1/showtimes/{showtime_id}/seats", headers=auth_headers)
    assert [s["seat_number"] for s in seats.json()["available_seats"]] == ["A1", "A2"]

    edit["capacity"] = 1
    response = await client.put(f"/api/v1/movies/{movie['id']}", json={"showtimes": [edit]}, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "seats-exceed-capacity"


@pytest.mark.asyncio
async def test_update_showtime_seats_refused_while_booked(
    client: AsyncClient, database, admin_headers, auth_headers, test_user
):
    created = await client.post("/api/v1/movies", json=_movie_payload(), headers=admin_headers)
    movie = created.json()
    showtime_id = movie["showtimes"][0]["id"]
    await reserve(database, showtime_id, test_user.id, ["A1"], 12.5)

    edit = _showtime_payload(seats=("E1", "E2"))
    edit["id"] = showtime_id
    response = await client.put(f"/api/v1/movies/{movie['id']}", json={"showtimes": [edit]}, headers=admin_headers)
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "showtime-has-bookings"

    seats = await client.get(f"/api/v1/showtimes/{showtime_id}/seats", headers=auth_headers)
    assert [s["seat_number"] for s in seats.json()["available_seats"]] == ["A2"]


@pytest.mark.asyncio
async def test_update_movie_rejects_bad_showtime(client: AsyncClient, admin_headers):
    created = await client.post("/api/v1/movies", json=_movie_payload(), headers=admin_headers)
    movie_id = created.json()["id"]

    inverted = _showtime_payload()
    inverted["start_time"], inverted["end_time"] = inverted["end_time"], inverted["start_time"]
    response = await client.put(f"/api/v1/movies/{movie_id}", json={"showtimes": [inverted]}, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "invalid-showtime-window"

    foreign = _showtime_payload()
    foreign["id"] = 99999
    response = await client.put(f"/api/v1/movies/{movie_id}", json={"showtimes": [foreign]}, headers=admin_headers)
    assert response.status_code == 404
