"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Members race for a small class
  locust -f locustfile.py --tags throughput   # Cached session listings
  locust -f locustfile.py --tags edge         # Bad input
  locust -f locustfile.py                     # All tests

The concurrency scenario needs an admin to create the contested session:
  ADMIN_EMAIL / ADMIN_PASSWORD (defaults match the app's default admin,
  start the API with CREATE_DEFAULT_ADMIN=true).
"""

import os
import random
import string
from datetime import date, timedelta

from locust import HttpUser, task, between, tag, events

ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@gymbooking.com")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "Admin123!")
CONTESTED_CAPACITY = 10

# Shared state
SESSION_IDS = []
CONTESTED_SESSION_ID = None


def random_email():
    return f"load_{random.randint(100000, 999999)}@example.com"


def random_username():
    return "u_" + "".join(random.choices(string.ascii_lowercase, k=8))


def register_and_login(client, membership_type="standard"):
    """Returns bearer headers, or {} when signup/login failed."""
    email = random_email()
    client.post("/api/v1/auth/register", json={
        "email": email,
        "username": random_username(),
        "password": "loadtest123",
        "name": "Load Tester",
        "membership_type": membership_type,
    })
    resp = client.post("/api/v1/auth/login", json={"email": email, "password": "loadtest123"})
    if resp.status_code != 200:
        return {}
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print(f"SETUP: contested session with {CONTESTED_CAPACITY} spots is created by the first ConcurrencyUser")
    print("=" * 60)


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - 100 members -> 10 spots

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After the run, verify:
      SELECT current_bookings, max_capacity FROM sessions WHERE id = X;
      SELECT COUNT(*) FROM reservations WHERE session_id = X AND status = 'confirmed';
    Both counts should be equal and <= 10.
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.headers = register_and_login(self.client, random.choice(["standard", "premium", "elite"]))
        if CONTESTED_SESSION_ID:
            return

        resp = self.client.post("/api/v1/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
        if resp.status_code != 200:
            print("\nAdmin login failed; start the API with CREATE_DEFAULT_ADMIN=true\n")
            return
        admin_headers = {"Authorization": f"Bearer {resp.json()['access_token']}"}
        resp = self.client.post("/api/v1/sessions/", json={
            "name": "Concurrency Spin Class",
            "type": "group",
            "date": (date.today() + timedelta(days=7)).isoformat(),
            "time": "6:00 PM",
            "max_capacity": CONTESTED_CAPACITY,
            "price": 15,
        }, headers=admin_headers)
        if resp.status_code == 201:
            globals()["CONTESTED_SESSION_ID"] = resp.json()["id"]
            print(f"\nCreated session {CONTESTED_SESSION_ID} with {CONTESTED_CAPACITY} spots\n")

    @tag("concurrency")
    @task
    def reserve_contested_spot(self):
        """Everyone fights for the same spots; each member tries once."""
        if not CONTESTED_SESSION_ID or not self.headers:
            return

        with self.client.post(f"/api/v1/sessions/{CONTESTED_SESSION_ID}/reserve",
            headers=self.headers,
            name="/api/v1/sessions/{id}/reserve [contested]",
            catch_response=True
        ) as resp:
            if resp.status_code in (201, 409):
                resp.success()  # 409: full or already reserved
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - Cache effectiveness

    Run twice:
      1. With Redis: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
      2. Without Redis: REDIS_ENABLED=false, run again

    Compare avg response time, requests/sec, P95/P99 latency.
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def list_sessions_cached(self):
        page = random.randint(1, 5)
        resp = self.client.get(f"/api/v1/sessions/?page={page}&page_size=20",
            name="/api/v1/sessions/ [cached]")
        if resp.status_code == 200:
            for session in resp.json().get("sessions", []):
                if session["id"] not in SESSION_IDS:
                    SESSION_IDS.append(session["id"])

    @tag("throughput", "read")
    @task(3)
    def get_session_detail(self):
        """Never cached: live counters."""
        if SESSION_IDS:
            self.client.get(f"/api/v1/sessions/{random.choice(SESSION_IDS)}",
                name="/api/v1/sessions/{id}")

    @tag("throughput", "read")
    @task(2)
    def upcoming(self):
        self.client.get("/api/v1/sessions/upcoming?limit=10")

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    The API should answer with proper error codes, never 500.
    """
    wait_time = between(0.5, 1.5)

    def on_start(self):
        self.headers = register_and_login(self.client)

    def _expect(self, resp, *codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def reserve_missing_session(self):
        with self.client.post("/api/v1/sessions/999999/reserve",
            headers=self.headers, name="/api/v1/sessions/{id}/reserve [missing]", catch_response=True
        ) as resp:
            self._expect(resp, 404)

    @tag("edge")
    @task
    def reserve_non_numeric_session(self):
        with self.client.post("/api/v1/sessions/abc/reserve",
            headers=self.headers, name="/api/v1/sessions/{id}/reserve [bad id]", catch_response=True
        ) as resp:
            self._expect(resp, 422)

    @tag("edge")
    @task
    def cancel_missing_reservation(self):
        with self.client.put("/api/v1/reservations/999999/cancel",
            headers=self.headers, name="/api/v1/reservations/{id}/cancel [missing]", catch_response=True
        ) as resp:
            self._expect(resp, 404)

    @tag("edge")
    @task
    def cancel_reason_too_long(self):
        with self.client.put("/api/v1/reservations/1/cancel",
            json={"reason": "x" * 500},
            headers=self.headers, name="/api/v1/reservations/{id}/cancel [long reason]", catch_response=True
        ) as resp:
            self._expect(resp, 422)

    @tag("edge")
    @task
    def member_marks_attendance(self):
        with self.client.put("/api/v1/reservations/1/attend",
            headers=self.headers, name="/api/v1/reservations/{id}/attend [member]", catch_response=True
        ) as resp:
            self._expect(resp, 403)

    @tag("edge")
    @task
    def missing_auth(self):
        with self.client.post("/api/v1/sessions/1/reserve",
            name="/api/v1/sessions/{id}/reserve [no auth]", catch_response=True
        ) as resp:
            self._expect(resp, 401)


class RealisticUser(HttpUser):
    """
    TEST 4: Realistic mixed workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s

    Mostly browsing, some reservations, occasional cancellations.
    """
    wait_time = between(1, 3)

    def on_start(self):
        self.headers = register_and_login(self.client, random.choice(["standard", "premium", "elite"]))
        self.reservation_ids = []

    @task(50)
    def browse_sessions(self):
        resp = self.client.get("/api/v1/sessions/?page=1&page_size=20")
        if resp.status_code == 200:
            for session in resp.json().get("sessions", []):
                if session["id"] not in SESSION_IDS:
                    SESSION_IDS.append(session["id"])

    @task(20)
    def view_session(self):
        if SESSION_IDS:
            self.client.get(f"/api/v1/sessions/{random.choice(SESSION_IDS)}", name="/api/v1/sessions/{id}")

    @task(10)
    def reserve(self):
        if not SESSION_IDS or not self.headers:
            return
        with self.client.post(f"/api/v1/sessions/{random.choice(SESSION_IDS)}/reserve",
            headers=self.headers, name="/api/v1/sessions/{id}/reserve", catch_response=True
        ) as resp:
            if resp.status_code == 201:
                self.reservation_ids.append(resp.json()["reservation"]["id"])
                resp.success()
            elif resp.status_code in (400, 409):
                resp.success()  # full, inactive or already reserved

    @task(5)
    def my_reservations(self):
        if self.headers:
            self.client.get("/api/v1/reservations/me", headers=self.headers)

    @task(3)
    def cancel(self):
        if not self.reservation_ids:
            return
        reservation_id = self.reservation_ids.pop()
        with self.client.put(f"/api/v1/reservations/{reservation_id}/cancel",
            json={"reason": "Schedule change"},
            headers=self.headers, name="/api/v1/reservations/{id}/cancel", catch_response=True
        ) as resp:
            if resp.status_code in (200, 400):
                resp.success()  # 400: inside the cancellation window
