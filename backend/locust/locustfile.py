"""
Locust Load Test Suite

Creating movies needs an ADMIN account. Promote one first, then export:
  LOCUST_ADMIN_EMAIL / LOCUST_ADMIN_PASSWORD

Run scenarios:
  locust -f locustfile.py --tags contention   # Many users, same seats
  locust -f locustfile.py --tags throughput   # Catalog cache
  locust -f locustfile.py --tags edge         # Bad input
  locust -f locustfile.py                     # All tests
"""

import os
import random
import string
from datetime import datetime, timezone, timedelta

from locust import HttpUser, task, between, tag, events

ADMIN_EMAIL = os.environ.get("LOCUST_ADMIN_EMAIL", "admin@example.com")
ADMIN_PASSWORD = os.environ.get("LOCUST_ADMIN_PASSWORD", "adminpassword")
PASSWORD = "loadtest123"
HOT_SEATS = [f"A{i}" for i in range(1, 11)]

# Shared state
MOVIE_IDS = []
CONTENTION_SHOWTIME_ID = None


def random_email():
    return f"load_{random.randint(100000, 999999)}@test.com"


def random_username():
    return "u_" + "".join(random.choices(string.ascii_lowercase, k=8))


def register_and_login(client):
    email = random_email()
    client.post("/api/v1/auth/register", json={
        "email": email,
        "username": random_username(),
        "password": PASSWORD,
    })
    resp = client.post("/api/v1/auth/login", json={"email": email, "password": PASSWORD})
    if resp.status_code == 200:
        return {"Authorization": f"Bearer {resp.json()['access_token']}"}
    return {}


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print("SETUP: contention showtime is created by the first user to start")
    print("=" * 60)


class ContentionUser(HttpUser):
    """
    TEST 1: Contention - every user fights for the same 10 seats

    Run: locust -f locustfile.py --tags contention -u 100 -r 50 --run-time 30s

    After the run, verify no seat was sold twice:
      SELECT seat_id, COUNT(*) FROM booking_seats GROUP BY seat_id HAVING COUNT(*) > 1;
    Should return no rows.
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.headers = register_and_login(self.client)

        if CONTENTION_SHOWTIME_ID:
            return
        resp = self.client.post("/api/v1/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
        if resp.status_code != 200:
            return
        admin_headers = {"Authorization": f"Bearer {resp.json()['access_token']}"}
        start = datetime.now(timezone.utc) + timedelta(days=30)
        resp = self.client.post("/api/v1/movies",
            json={
                "name": f"Contention {random.randint(1, 10**9)}",
                "description": "10 seats only",
                "image_url": "https://example.com/poster.png",
                "showtimes": [{
                    "start_time": start.isoformat(),
                    "end_time": (start + timedelta(hours=2)).isoformat(),
                    "capacity": len(HOT_SEATS),
                    "price": 10.0,
                    "seats": [{"seat_number": s, "row": "A"} for s in HOT_SEATS],
                }],
            },
            headers=admin_headers,
        )
        if resp.status_code == 201:
            globals()["CONTENTION_SHOWTIME_ID"] = resp.json()["showtimes"][0]["id"]
            print(f"\nCreated showtime {CONTENTION_SHOWTIME_ID} with {len(HOT_SEATS)} seats\n")

    @tag("contention")
    @task
    def book_hot_seats(self):
        """Request two random seats out of the shared ten."""
        if not CONTENTION_SHOWTIME_ID or not self.headers:
            return

        seats = random.sample(HOT_SEATS, 2)
        with self.client.post("/api/v1/bookings",
            json={"showtime_id": CONTENTION_SHOWTIME_ID, "seat_numbers": seats, "total_price": 20.0},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            if resp.status_code in (201, 409):
                resp.success()  # 409: seat already taken
            else:
                resp.failure(f"Unexpected: {resp.status_code}")

    @tag("contention")
    @task(3)
    def check_availability(self):
        if not CONTENTION_SHOWTIME_ID or not self.headers:
            return
        self.client.get(f"/api/v1/showtimes/{CONTENTION_SHOWTIME_ID}/seats",
            headers=self.headers,
            name="/api/v1/showtimes/{id}/seats")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - Cache effectiveness

    Run twice, with and without Redis, and compare p95 latency and req/s:
      locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def list_movies_cached(self):
        page = random.randint(1, 5)
        resp = self.client.get(f"/api/v1/movies?page={page}&page_size=20",
            name="/api/v1/movies [cached]")
        if resp.status_code == 200:
            for movie in resp.json().get("movies", []):
                if movie["id"] not in MOVIE_IDS:
                    MOVIE_IDS.append(movie["id"])

    @tag("throughput", "read")
    @task(3)
    def get_movie_detail(self):
        if MOVIE_IDS:
            self.client.get(f"/api/v1/movies/{random.choice(MOVIE_IDS)}",
                name="/api/v1/movies/{id}")

    @tag("throughput", "read")
    @task(2)
    def showtimes_today(self):
        today = datetime.now(timezone.utc).date().isoformat()
        self.client.get(f"/api/v1/showtimes?date={today}", name="/api/v1/showtimes?date")

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    Every request must get a 4xx, never a 5xx.
    """
    wait_time = between(0.5, 1.5)

    def on_start(self):
        self.headers = register_and_login(self.client)

    def _expect(self, payload, allowed, headers=None, **kwargs):
        with self.client.post("/api/v1/bookings",
            json=payload,
            headers=self.headers if headers is None else headers,
            catch_response=True,
            **kwargs,
        ) as resp:
            if resp.status_code in allowed:
                resp.success()
            else:
                resp.failure(f"Expected {allowed}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_showtime(self):
        self._expect({"showtime_id": 999999, "seat_numbers": ["A1"], "total_price": 10}, (404,))

    @tag("edge")
    @task
    def empty_seat_list(self):
        self._expect({"showtime_id": 1, "seat_numbers": [], "total_price": 10}, (400,))

    @tag("edge")
    @task
    def duplicate_seats(self):
        self._expect({"showtime_id": 1, "seat_numbers": ["A1", "A1"], "total_price": 10}, (400, 404))

    @tag("edge")
    @task
    def negative_price(self):
        self._expect({"showtime_id": 1, "seat_numbers": ["A1"], "total_price": -1}, (422,))

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post("/api/v1/bookings",
            data="not json at all",
            headers=self.headers,
            catch_response=True,
        ) as resp:
            if resp.status_code in (400, 422):
                resp.success()
            else:
                resp.failure(f"Expected 400/422, got {resp.status_code}")

    @tag("edge")
    @task
    def missing_auth(self):
        self._expect({"showtime_id": 1, "seat_numbers": ["A1"], "total_price": 10}, (401,), headers={})


class RealisticUser(HttpUser):
    """
    TEST 4: Realistic mixed workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s

    Mostly browsing, some bookings, occasional cancellations.
    """
    wait_time = between(1, 3)

    def on_start(self):
        self.headers = register_and_login(self.client)
        self.booking_ids = []

    @task(50)
    def browse_movies(self):
        resp = self.client.get("/api/v1/movies?page=1&page_size=20")
        if resp.status_code == 200:
            for movie in resp.json().get("movies", []):
                if movie["id"] not in MOVIE_IDS:
                    MOVIE_IDS.append(movie["id"])

    @task(10)
    def book_random_seat(self):
        if not MOVIE_IDS or not self.headers:
            return
        resp = self.client.get(f"/api/v1/movies/{random.choice(MOVIE_IDS)}/showtimes",
            name="/api/v1/movies/{id}/showtimes")
        if resp.status_code != 200 or not resp.json():
            return
        showtime = random.choice(resp.json())
        resp = self.client.get(f"/api/v1/showtimes/{showtime['id']}/seats",
            headers=self.headers, name="/api/v1/showtimes/{id}/seats")
        if resp.status_code != 200 or not resp.json()["available_seats"]:
            return
        seat = random.choice(resp.json()["available_seats"])
        with self.client.post("/api/v1/bookings",
            json={"showtime_id": showtime["id"], "seat_numbers": [seat["seat_number"]],
                  "total_price": showtime["price"]},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            if resp.status_code == 201:
                self.booking_ids.append(resp.json()["booking_id"])
                resp.success()
            elif resp.status_code == 409:
                resp.success()  # availability was stale
            else:
                resp.failure(f"Unexpected: {resp.status_code}")

    @task(5)
    def my_bookings(self):
        if self.headers:
            self.client.get("/api/v1/bookings", headers=self.headers)

    @task(2)
    def cancel_booking(self):
        if self.booking_ids:
            booking_id = self.booking_ids.pop()
            self.client.delete(f"/api/v1/bookings/{booking_id}",
                headers=self.headers, name="/api/v1/bookings/{id}")
