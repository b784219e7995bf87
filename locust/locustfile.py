"""
Locust Load Test Suite

The API has no admin surface for venue data, so seed a pond, a time slot,
an event and an owner account first and pass their ids in:

  POND_ID=1 TIME_SLOT_ID=1 EVENT_ID=1 OWNER_ID=1 SEAT_QR_CODES=qr1,qr2 \\
    locust -f locustfile.py

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Test overbooking
  locust -f locustfile.py --tags scan         # Test duplicate check-ins
  locust -f locustfile.py --tags throughput   # Test leaderboard cache
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests
"""

import os
import random
from datetime import date, timedelta

from locust import HttpUser, between, events, tag, task

POND_ID = int(os.getenv("POND_ID", "1"))
TIME_SLOT_ID = int(os.getenv("TIME_SLOT_ID", "1"))
EVENT_ID = int(os.getenv("EVENT_ID", "1"))
OWNER_ID = int(os.getenv("OWNER_ID", "1"))
SEAT_QR_CODES = [qr for qr in os.getenv("SEAT_QR_CODES", "").split(",") if qr]

# One future day per run, so every user contends for the same pond session
CONTENTION_DATE = (date.today() + timedelta(days=random.randint(30, 300))).isoformat()


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print(f"SETUP: pond {POND_ID} slot {TIME_SLOT_ID} on {CONTENTION_DATE}")
    print(f"       event {EVENT_ID}, {len(SEAT_QR_CODES)} seat QR codes for scan tests")
    print("=" * 60)


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - many anglers, one pond session

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT reserved_seats, capacity FROM pond_slot_inventory
      WHERE pond_id = X AND date = 'CONTENTION_DATE';
    reserved_seats should be <= capacity
    """
    wait_time = between(0, 0.1)

    @tag("concurrency")
    @task
    def book_last_seats(self):
        with self.client.post(
            "/api/bookings",
            json={
                "type": "POND",
                "bookedByUserId": OWNER_ID,
                "pondId": POND_ID,
                "timeSlotId": TIME_SLOT_ID,
                "date": CONTENTION_DATE,
                "seatCount": random.randint(1, 3),
            },
            name="/api/bookings [contention]",
            catch_response=True,
        ) as resp:
            if resp.status_code == 201:
                resp.success()
            elif resp.status_code == 409:
                resp.success()  # Expected: sold out or retries exhausted
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ScanStormUser(HttpUser):
    """
    TEST 2: Scan storm - the same badges scanned at several gates

    Run: locust -f locustfile.py --tags scan -u 50 -r 25 --run-time 30s

    After test, verify:
      SELECT booking_seat_id, COUNT(*) FROM check_in_records
      GROUP BY booking_seat_id HAVING COUNT(*) > 1;
    Should return no rows
    """
    wait_time = between(0, 0.2)

    @tag("scan")
    @task
    def scan_badge(self):
        if not SEAT_QR_CODES:
            return

        with self.client.post(
            "/api/checkins/scan",
            json={"qrCode": random.choice(SEAT_QR_CODES), "stationId": f"GATE-{random.randint(1, 4)}"},
            name="/api/checkins/scan",
            catch_response=True,
        ) as resp:
            if resp.status_code == 200:
                resp.success()
            elif resp.status_code in (400, 409):
                resp.success()  # Wrong day or unassigned seat
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 3: Throughput - Leaderboard cache effectiveness

    Run twice:
      1. LEADERBOARD_CACHE_BACKEND=redis: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
      2. LEADERBOARD_CACHE_BACKEND=none, run again

    Compare:
      - Avg response time
      - Requests/sec
      - P95/P99 latency
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def event_leaderboard(self):
        self.client.get(f"/api/leaderboard/event?eventId={EVENT_ID}", name="/api/leaderboard/event [cached]")

    @tag("throughput", "read")
    @task(2)
    def overall_leaderboard(self):
        self.client.get("/api/leaderboard/overall")

    @tag("throughput", "read")
    @task(2)
    def occupied_pegs(self):
        self.client.get(
            "/api/bookings/occupied",
            params={"pondId": POND_ID, "timeSlotId": TIME_SLOT_ID, "date": CONTENTION_DATE},
            name="/api/bookings/occupied",
        )

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 4: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def _expect(self, resp, allowed):
        if resp.status_code in allowed:
            resp.success()
        else:
            resp.failure(f"Expected {allowed}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_pond(self):
        with self.client.post(
            "/api/bookings",
            json={
                "type": "POND",
                "bookedByUserId": OWNER_ID,
                "pondId": 999999,
                "timeSlotId": TIME_SLOT_ID,
                "date": CONTENTION_DATE,
                "seatCount": 1,
            },
            catch_response=True,
        ) as resp:
            self._expect(resp, (404,))

    @tag("edge")
    @task
    def zero_seats(self):
        with self.client.post(
            "/api/bookings",
            json={"type": "EVENT", "bookedByUserId": OWNER_ID, "eventId": EVENT_ID, "date": CONTENTION_DATE, "seatCount": 0},
            catch_response=True,
        ) as resp:
            self._expect(resp, (422,))

    @tag("edge")
    @task
    def unknown_qr(self):
        with self.client.post(
            "/api/checkins/scan", json={"qrCode": "NOT_A_SEAT"}, catch_response=True
        ) as resp:
            self._expect(resp, (404,))

    @tag("edge")
    @task
    def negative_weight(self):
        with self.client.post(
            "/api/weighing/record", json={"rodQrCode": "ROD-NOPE", "weight": -1}, catch_response=True
        ) as resp:
            self._expect(resp, (422,))

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post(
            "/api/bookings",
            data="not json at all",
            headers={"Content-Type": "application/json"},
            catch_response=True,
        ) as resp:
            self._expect(resp, (400, 422))
