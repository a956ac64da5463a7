#!/usr/bin/env python3
"""Smoke test for a running Sleep Log instance.

Works against any target: Docker Compose, K8s port-forward, deployed environment.
Uses httpx (project dependency) for HTTP calls.

Usage:
    python scripts/smoke_test.py                                   # default localhost:8000
    python scripts/smoke_test.py --base-url http://10.0.0.5:8000   # custom target
    python scripts/smoke_test.py --wait 120 --verbose              # longer wait, verbose
"""

from __future__ import annotations

import argparse
import sys
import time
import uuid

import httpx

# ── Payloads ─────────────────────────────────────────────────────

HEADER = (
    "date,Total Sleep Duration,Deep Sleep Duration,REM Sleep Duration,"
    "Light Sleep Duration,Average Resting Heart Rate,Temperature Deviation (°C),"
    "Bedtime Start,Bedtime End"
)

VALID_CSV = "\n".join(
    [
        HEADER,
        "2024-03-14,28800,5400,7200,14400,52,0.1,"
        "2024-03-13T23:00:00-05:00,2024-03-14T07:00:00-05:00",
        "2024-03-15,27000,5400,6300,13500,55,-0.2,"
        "2024-03-14T23:30:00-05:00,2024-03-15T07:00:00-05:00",
    ]
)

PARTIAL_CSV = "\n".join(
    [
        HEADER,
        "2024-03-16,28800,5400,7200,14400,52,0.1,,",
        "2024-03-17,28800,5400,7200,14400,29,0.1,,",  # heart rate below range
    ]
)


# ── Test infrastructure ─────────────────────────────────────────


class CheckResult:
    def __init__(self, name: str, passed: bool, detail: str = ""):
        self.name = name
        self.passed = passed
        self.detail = detail


class SmokeRunner:
    def __init__(self, base_url: str, verbose: bool = False):
        self.client = httpx.Client(base_url=base_url, timeout=30.0)
        self.verbose = verbose
        self.results: list[CheckResult] = []
        self.user_id = f"smoke-{uuid.uuid4().hex[:12]}"
        self.base = f"/api/v1/users/{self.user_id}/sleep"
        self.all_responses: list[httpx.Response] = []

    def _record(self, name: str, passed: bool, detail: str = "") -> CheckResult:
        result = CheckResult(name, passed, detail)
        self.results.append(result)
        status = "PASS" if passed else "FAIL"
        line = f" [{status}] {name}"
        if detail and (not passed or self.verbose):
            line += f"  ({detail})"
        print(line)
        return result

    def _check(
        self,
        name: str,
        resp: httpx.Response,
        expected_status: int,
        checks: dict[str, object] | None = None,
    ) -> CheckResult:
        self.all_responses.append(resp)
        if resp.status_code != expected_status:
            return self._record(
                name,
                False,
                f"expected {expected_status}, got {resp.status_code}: {resp.text[:300]}",
            )
        if checks:
            body = resp.json()
            for path, expected in checks.items():
                value = body
                try:
                    for key in path.split("."):
                        value = value[key]
                except (KeyError, TypeError):
                    return self._record(name, False, f"{path}: missing")
                if value != expected:
                    return self._record(
                        name, False, f"{path}: expected {expected!r}, got {value!r}"
                    )
        return self._record(name, True)

    def _upload(self, csv_text: str) -> httpx.Response:
        return self.client.post(
            f"{self.base}/upload",
            content=csv_text.encode(),
            headers={"Content-Type": "text/csv"},
        )

    # ── Individual checks ────────────────────────────────────────

    def check_health(self) -> None:
        self._check("Health check", self.client.get("/health"), 200, {"status": "ok"})

    def check_upload(self) -> None:
        resp = self._upload(VALID_CSV)
        self._check("Upload valid CSV", resp, 200, {"data.succeeded": 2, "data.failed": 0})

    def check_reupload_idempotent(self) -> None:
        self._upload(VALID_CSV)
        resp = self.client.get(f"{self.base}/count")
        self._check("Re-upload does not duplicate", resp, 200, {"data.record_count": 2})

    def check_partial_failure(self) -> None:
        resp = self._upload(PARTIAL_CSV)
        self._check(
            "Bad row isolated",
            resp,
            200,
            {"data.succeeded": 1, "data.failed": 1},
        )

    def check_malformed(self) -> None:
        resp = self._upload("")
        self._check("Empty upload rejected", resp, 400, {"title": "Malformed Input"})

    def check_list_newest_first(self) -> None:
        resp = self.client.get(self.base, params={"limit": 2})
        self.all_responses.append(resp)
        dates = [r["date"] for r in resp.json().get("data", [])] if resp.is_success else []
        self._record(
            "List newest first",
            dates == ["2024-03-16", "2024-03-15"],
            f"dates={dates}",
        )

    def check_delete(self) -> None:
        resp = self.client.delete(f"{self.base}/2024-03-14")
        self._check("Delete by key", resp, 204)
        resp = self.client.delete(f"{self.base}/2024-03-14")
        self._check("Delete missing key", resp, 404)

    def check_metrics(self) -> None:
        resp = self.client.get("/metrics/")
        self.all_responses.append(resp)
        self._record(
            "Metrics expose ingestion counters",
            resp.status_code == 200 and "ingestion_rows_total" in resp.text,
        )

    def check_request_id_header(self) -> None:
        missing = [r.url.path for r in self.all_responses if "x-request-id" not in r.headers]
        self._record(
            "X-Request-ID present on all responses", not missing, f"missing on: {missing[:3]}"
        )

    def run_all(self) -> int:
        self.check_health()
        self.check_upload()
        self.check_reupload_idempotent()
        self.check_partial_failure()
        self.check_malformed()
        self.check_list_newest_first()
        self.check_delete()
        self.check_metrics()
        self.check_request_id_header()

        passed = sum(1 for r in self.results if r.passed)
        failed = len(self.results) - passed
        print(f"\n{passed}/{len(self.results)} passed")
        return failed


# ── Entry point ──────────────────────────────────────────────────


def wait_for_health(client: httpx.Client, timeout: int) -> None:
    """Poll /health until it returns 200 or timeout expires."""
    start = time.monotonic()
    print("Waiting for /health...", end=" ", flush=True)
    while time.monotonic() - start < timeout:
        try:
            resp = client.get("/health")
            if resp.status_code == 200:
                print(f"OK ({time.monotonic() - start:.1f}s)")
                return
        except (httpx.ConnectError, httpx.ReadError, httpx.RemoteProtocolError):
            pass
        time.sleep(2)
    print(f"TIMEOUT ({time.monotonic() - start:.0f}s)")
    print("ERROR: app did not become healthy in time")
    sys.exit(1)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Smoke test for Sleep Log API")
    parser.add_argument("--base-url", default="http://localhost:8000")
    parser.add_argument("--wait", type=int, default=60, help="Max seconds to wait for /health")
    parser.add_argument("--verbose", action="store_true", help="Print details on success too")
    return parser.parse_args()


def main() -> None:
    args = parse_args()

    print("Sleep Log Smoke Test")
    print(f"Target: {args.base_url}")
    print()

    with httpx.Client(base_url=args.base_url, timeout=30.0) as client:
        wait_for_health(client, timeout=args.wait)

    print()
    runner = SmokeRunner(args.base_url, verbose=args.verbose)
    failed = runner.run_all()
    sys.exit(failed)


if __name__ == "__main__":
    main()
