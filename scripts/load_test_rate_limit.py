#!/usr/bin/env python3
"""Load test script: demonstrates rate limiting on the auth routes.

RUN:  python scripts/load_test_rate_limit.py [BASE_URL]

Sends TOTAL_REQUESTS login attempts in rapid succession and prints how
many were answered (401, since the credentials are wrong) versus
throttled (429).

Prerequisites:
  - The API must be running: uvicorn saas_billing.main:create_app --factory --port 8080

This is a smoke check, not a load testing tool; use locust, k6 or wrk
for real load tests.
"""

from __future__ import annotations

import sys
import time

import httpx

BASE_URL = "http://localhost:8080"
TOTAL_REQUESTS = 30


def main() -> None:
    base_url = sys.argv[1] if len(sys.argv) > 1 else BASE_URL
    print("Rate Limit Load Test")
    print("=" * 50)
    print(f"Target: {base_url}/api/v1/auth/login")
    print(f"Total requests: {TOTAL_REQUESTS}")
    print()

    results: dict[int, int] = {}
    retry_after: str | None = None
    start = time.monotonic()

    with httpx.Client(base_url=base_url, timeout=10) as client:
        for i in range(TOTAL_REQUESTS):
            resp = client.post(
                "/api/v1/auth/login",
                json={"email": "load-test@example.com", "password": "not-the-password"},
            )
            results[resp.status_code] = results.get(resp.status_code, 0) + 1
            if resp.status_code == 429 and retry_after is None:
                retry_after = resp.headers.get("Retry-After")

            if (i + 1) % 10 == 0:
                print(f"  Sent {i + 1}/{TOTAL_REQUESTS} requests...")

    elapsed = time.monotonic() - start

    print()
    print(f"Results after {TOTAL_REQUESTS} requests ({elapsed:.2f}s):")
    print("-" * 40)

    answered = results.get(401, 0)
    throttled = results.get(429, 0)
    other = sum(v for k, v in results.items() if k not in (401, 429))

    print(f"  Answered (401): {answered:>4}")
    print(f"  Throttled(429): {throttled:>4}")
    if other:
        print(f"  Other:          {other:>4}")
    print()

    if throttled > 0:
        print(f"Rate limiting is working (first Retry-After: {retry_after}s).")
    else:
        print("WARNING: No requests were throttled.  Is AUTH_RATE_LIMIT set high?")


if __name__ == "__main__":
    main()
