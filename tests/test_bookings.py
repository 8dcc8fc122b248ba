"""
Tests for booking endpoints.
"""

import pytest
from httpx import AsyncClient


async def book(client: AsyncClient, headers: dict, trip_id: int, seats: list[int]):
    return await client.post(
        "/api/v1/bookings/",
        json={"trip_id": trip_id, "seat_numbers": seats},
        headers=headers,
    )


@pytest.mark.asyncio
async def test_book_seats(client: AsyncClient, auth_headers, test_trip):
    """Successful booking decrements available seats."""
    response = await book(client, auth_headers, test_trip.id, [1, 2])

    assert response.status_code == 201
    data = response.json()
    assert data["trip_id"] == test_trip.id
    assert data["booking_status"] == "confirmed"
    assert data["payment_status"] == "pending"
    assert data["seats"] == [
        {"seat_number": 1, "status": "booked"},
        {"seat_number": 2, "status": "booked"},
    ]

    seat_map = await client.get(f"/api/v1/trips/{test_trip.id}/seats")
    assert seat_map.json()["available_seats"] == 8
    assert seat_map.json()["unavailable_seats"] == [1, 2]


@pytest.mark.asyncio
async def test_book_seats_unauthenticated(client: AsyncClient, test_trip):
    response = await client.post(
        "/api/v1/bookings/",
        json={"trip_id": test_trip.id, "seat_numbers": [1]},
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_book_seats_bad_token(client: AsyncClient, test_trip):
    response = await book(client, {"Authorization": "Bearer not-a-jwt"}, test_trip.id, [1])
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_book_taken_seat(client: AsyncClient, auth_headers, other_auth_headers, test_trip):
    assert (await book(client, auth_headers, test_trip.id, [3])).status_code == 201

    response = await book(client, other_auth_headers, test_trip.id, [3, 4])

    assert response.status_code == 409
    assert response.json()["kind"] == "conflict"


@pytest.mark.asyncio
@pytest.mark.parametrize("seats", [[], [0], [2, 2]])
async def test_book_invalid_seat_numbers(client: AsyncClient, auth_headers, test_trip, seats):
    response = await book(client, auth_headers, test_trip.id, seats)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_book_seat_beyond_capacity(client: AsyncClient, auth_headers, test_trip):
    response = await book(client, auth_headers, test_trip.id, [42])
    assert response.status_code == 422
    assert response.json()["kind"] == "invalid"


@pytest.mark.asyncio
async def test_book_nonexistent_trip(client: AsyncClient, auth_headers):
    response = await book(client, auth_headers, 99999, [1])
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_book_cancelled_trip(client: AsyncClient, auth_headers, cancelled_trip):
    response = await book(client, auth_headers, cancelled_trip.id, [1])
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_cancel_booking(client: AsyncClient, auth_headers, test_trip):
    """Cancellation restores seats to the trip."""
    booking_id = (await book(client, auth_headers, test_trip.id, [1, 2, 3])).json()["id"]

    response = await client.delete(f"/api/v1/bookings/{booking_id}", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["booking_status"] == "cancelled"
    assert data["payment_status"] == "failed"
    assert {seat["status"] for seat in data["seats"]} == {"cancelled"}

    seat_map = await client.get(f"/api/v1/trips/{test_trip.id}/seats")
    assert seat_map.json()["available_seats"] == 10
    assert seat_map.json()["unavailable_seats"] == []


@pytest.mark.asyncio
async def test_cancel_already_cancelled(client: AsyncClient, auth_headers, test_trip):
    """Double-cancelling returns 400."""
    booking_id = (await book(client, auth_headers, test_trip.id, [1])).json()["id"]
    await client.delete(f"/api/v1/bookings/{booking_id}", headers=auth_headers)

    response = await client.delete(f"/api/v1/bookings/{booking_id}", headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["kind"] == "nothing_to_cancel"


@pytest.mark.asyncio
async def test_cancel_other_users_booking(client: AsyncClient, auth_headers, other_auth_headers, test_trip):
    booking_id = (await book(client, auth_headers, test_trip.id, [1])).json()["id"]

    response = await client.delete(f"/api/v1/bookings/{booking_id}", headers=other_auth_headers)
    missing = await client.delete("/api/v1/bookings/99999", headers=other_auth_headers)

    assert response.status_code == missing.status_code == 404
    assert response.json() == missing.json()

    inventory = await client.get(f"/api/v1/trips/{test_trip.id}/inventory")
    assert inventory.json()["available_seats"] == 9


@pytest.mark.asyncio
async def test_cancel_some_seats(client: AsyncClient, auth_headers, test_trip):
    booking_id = (await book(client, auth_headers, test_trip.id, [1, 2, 3])).json()["id"]

    response = await client.put(
        f"/api/v1/bookings/{booking_id}/cancel-seats",
        json={"seat_numbers": [2, 8]},
        headers=auth_headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert data["booking_status"] == "partially_cancelled"
    assert data["payment_status"] == "partially_refunded"
    assert [s["status"] for s in data["seats"]] == ["booked", "cancelled", "booked"]

    inventory = (await client.get(f"/api/v1/trips/{test_trip.id}/inventory")).json()
    assert inventory["available_seats"] == 8
    assert inventory["consistent"] is True


@pytest.mark.asyncio
async def test_cancel_seats_nothing_eligible(client: AsyncClient, auth_headers, test_trip):
    booking_id = (await book(client, auth_headers, test_trip.id, [1])).json()["id"]

    response = await client.put(
        f"/api/v1/bookings/{booking_id}/cancel-seats",
        json={"seat_numbers": [5]},
        headers=auth_headers,
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_cancel_seats_of_other_users_booking(
    client: AsyncClient, auth_headers, other_auth_headers, test_trip
):
    booking_id = (await book(client, auth_headers, test_trip.id, [1])).json()["id"]

    response = await client.put(
        f"/api/v1/bookings/{booking_id}/cancel-seats",
        json={"seat_numbers": [1]},
        headers=other_auth_headers,
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_list_bookings(client: AsyncClient, auth_headers, test_trip):
    kept = (await book(client, auth_headers, test_trip.id, [1])).json()["id"]
    dropped = (await book(client, auth_headers, test_trip.id, [2])).json()["id"]
    await client.delete(f"/api/v1/bookings/{dropped}", headers=auth_headers)

    history = await client.get("/api/v1/bookings/", headers=auth_headers)
    current = await client.get("/api/v1/bookings/current", headers=auth_headers)

    assert history.status_code == 200
    assert {b["id"] for b in history.json()} == {kept, dropped}
    assert [b["id"] for b in current.json()] == [kept]


@pytest.mark.asyncio
async def test_booking_detail(client: AsyncClient, auth_headers, other_auth_headers, test_trip):
    booking_id = (await book(client, auth_headers, test_trip.id, [6])).json()["id"]

    own = await client.get(f"/api/v1/bookings/{booking_id}", headers=auth_headers)
    foreign = await client.get(f"/api/v1/bookings/{booking_id}", headers=other_auth_headers)

    assert own.status_code == 200
    assert own.json()["seats"] == [{"seat_number": 6, "status": "booked"}]
    assert foreign.status_code == 404
