"""
Locust Load Test Suite

Users and the trip must already exist (seeded by the operator tooling).
Tokens are minted locally with the service's signing key.

  export LOAD_USER_IDS=1,2,3,4,5 LOAD_TRIP_ID=1

Run scenarios:
  locust -f locustfile.py --tags seat-race   # Many riders, same seats
  locust -f locustfile.py --tags seat-map    # Seat map read throughput
  locust -f locustfile.py --tags edge        # Bad input
  locust -f locustfile.py                    # All tests
"""

import os
import random

from locust import HttpUser, task, between, tag, events

from bus_booking.core.security import create_access_token

USER_IDS = [int(u) for u in os.environ.get("LOAD_USER_IDS", "1").split(",") if u]
TRIP_ID = int(os.environ.get("LOAD_TRIP_ID", "1"))
CONTESTED_SEATS = [1, 2, 3]


def auth_headers() -> dict:
    token = create_access_token(data={"sub": str(random.choice(USER_IDS))})
    return {"Authorization": f"Bearer {token}"}


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print(f"Seat race on trip {TRIP_ID} for seats {CONTESTED_SEATS} with {len(USER_IDS)} users")
    print("=" * 60)


class SeatRaceUser(HttpUser):
    """
    TEST 1: Every user tries to book the same seats on one trip.

    Run: locust -f locustfile.py --tags seat-race -u 100 -r 50 --run-time 30s

    After test, verify:
      GET /api/v1/trips/{TRIP_ID}/inventory  -> "consistent": true
      SELECT seat_number, COUNT(*) FROM booking_seats
      WHERE trip_id = X AND status = 'booked' GROUP BY seat_number;
    Every count should be 1.
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.headers = auth_headers()

    @tag("seat-race")
    @task(5)
    def book_contested_seats(self):
        with self.client.post("/api/v1/bookings/",
            json={"trip_id": TRIP_ID, "seat_numbers": CONTESTED_SEATS},
            headers=self.headers,
            catch_response=True
        ) as resp:
            if resp.status_code == 201:
                resp.success()
            elif resp.status_code in (409, 503):
                resp.success()  # Expected: seats taken or lost the race
            else:
                resp.failure(f"Unexpected: {resp.status_code}")

    @tag("seat-race")
    @task(1)
    def release_my_seats(self):
        """Cancel whatever this user holds so the race keeps going."""
        resp = self.client.get("/api/v1/bookings/current", headers=self.headers,
            name="/api/v1/bookings/current")
        if resp.status_code != 200:
            return
        for booking in resp.json():
            if booking["trip_id"] == TRIP_ID:
                self.client.delete(f"/api/v1/bookings/{booking['id']}",
                    headers=self.headers, name="/api/v1/bookings/{id}")


class SeatMapUser(HttpUser):
    """
    TEST 2: Seat map throughput, with and without Redis.
    """
    wait_time = between(0.1, 0.5)

    @tag("seat-map", "read")
    @task(10)
    def seat_map(self):
        self.client.get(f"/api/v1/trips/{TRIP_ID}/seats",
            name="/api/v1/trips/{id}/seats")

    @tag("seat-map")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Bad input handling. System should return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def on_start(self):
        self.headers = auth_headers()

    @tag("edge")
    @task
    def invalid_trip_id(self):
        with self.client.post("/api/v1/bookings/",
            json={"trip_id": 999999, "seat_numbers": [1]},
            headers=self.headers,
            catch_response=True
        ) as resp:
            if resp.status_code == 404:
                resp.success()
            else:
                resp.failure(f"Expected 404, got {resp.status_code}")

    @tag("edge")
    @task
    def duplicate_seats(self):
        with self.client.post("/api/v1/bookings/",
            json={"trip_id": TRIP_ID, "seat_numbers": [4, 4]},
            headers=self.headers,
            catch_response=True
        ) as resp:
            if resp.status_code == 422:
                resp.success()
            else:
                resp.failure(f"Expected 422, got {resp.status_code}")

    @tag("edge")
    @task
    def cancel_foreign_booking(self):
        with self.client.delete("/api/v1/bookings/999999",
            headers=self.headers,
            catch_response=True,
            name="/api/v1/bookings/{id}"
        ) as resp:
            if resp.status_code == 404:
                resp.success()
            else:
                resp.failure(f"Expected 404, got {resp.status_code}")
