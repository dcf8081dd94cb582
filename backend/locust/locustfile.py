"""
Locust Load Test Suite

Assumes an already seeded database: employees with ids 1..USER_COUNT and
floating seats. Identity is passed as X-User-Id, as the upstream gateway would.

Run scenarios:
  locust -f locustfile.py --tags contention   # Many users, one seat, one day
  locust -f locustfile.py --tags throughput   # Availability + cached stats reads
  locust -f locustfile.py --tags edge         # Bad input
  locust -f locustfile.py                     # All tests
"""

import os
import random
from datetime import date, timedelta

from locust import HttpUser, task, between, tag

USER_COUNT = int(os.getenv("LOAD_USER_COUNT", "200"))
CONTENDED_SEAT_ID = int(os.getenv("LOAD_SEAT_ID", "41"))
TARGET_DATE = (date.today() + timedelta(days=1)).isoformat()


def user_headers() -> dict:
    return {"X-User-Id": str(random.randint(1, USER_COUNT))}


class ContentionUser(HttpUser):
    """
    TEST 1: Contention - every simulated employee tries to take the same seat
    for the same day.

    Run: locust -f locustfile.py --tags contention -u 200 -r 100 --run-time 30s

    After test, verify (must be <= 1):
      SELECT COUNT(*) FROM bookings
      WHERE seat_id = 41 AND date = '<TARGET_DATE>' AND status = 'active';
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.headers = user_headers()

    @tag("contention")
    @task
    def book_contended_seat(self):
        with self.client.post("/api/v1/bookings/",
            json={"seat_id": CONTENDED_SEAT_ID, "date": TARGET_DATE},
            headers=self.headers,
            catch_response=True,
            name="/api/v1/bookings/ [contended]",
        ) as resp:
            if resp.status_code == 201:
                resp.success()
            elif resp.status_code in (400, 409):
                resp.success()  # Expected: seat taken or already booked today
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - availability (uncached) vs daily stats (cached)

    Run: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
    """
    wait_time = between(0.1, 0.5)

    def on_start(self):
        self.headers = user_headers()

    @tag("throughput", "read")
    @task(5)
    def availability(self):
        offset = random.randint(0, 14)
        day = (date.today() + timedelta(days=offset)).isoformat()
        self.client.get(f"/api/v1/bookings/available/{day}", headers=self.headers,
            name="/api/v1/bookings/available/{date}")

    @tag("throughput", "read")
    @task(10)
    def daily_stats(self):
        self.client.get("/api/v1/seats/stats", headers=self.headers,
            name="/api/v1/seats/stats [cached]")

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def on_start(self):
        self.headers = user_headers()

    @tag("edge")
    @task
    def beyond_horizon(self):
        far = (date.today() + timedelta(days=30)).isoformat()
        with self.client.post("/api/v1/bookings/",
            json={"seat_id": CONTENDED_SEAT_ID, "date": far},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            if resp.status_code == 403:
                resp.success()
            else:
                resp.failure(f"Expected 403, got {resp.status_code}")

    @tag("edge")
    @task
    def inverted_times(self):
        with self.client.post("/api/v1/bookings/",
            json={"seat_id": CONTENDED_SEAT_ID, "date": TARGET_DATE,
                  "start_time": "18:00", "end_time": "09:00"},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            if resp.status_code == 400:
                resp.success()
            else:
                resp.failure(f"Expected 400, got {resp.status_code}")

    @tag("edge")
    @task
    def missing_identity(self):
        with self.client.get(f"/api/v1/bookings/available/{TARGET_DATE}",
            catch_response=True,
        ) as resp:
            if resp.status_code == 401:
                resp.success()
            else:
                resp.failure(f"Expected 401, got {resp.status_code}")
