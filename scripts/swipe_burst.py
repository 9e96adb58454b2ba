"""Swipe burst: hammer a running SwipeFeed server with concurrent swipes.

For each synthetic user the script loads the feed, then fires a burst of
concurrent swipe requests at the current profile, repeating until the
server denies.  It then checks that the ledger holds exactly ``limit``
entries, i.e. no burst ever slipped past the quota.

Usage: python -m scripts.swipe_burst [--users 20] [--burst 5] [--base-url http://localhost:8000]
"""
import argparse
import asyncio
import random
import statistics
import sys
import time
import uuid
from typing import Any

import httpx


DEFAULT_BASE_URL = "http://localhost:8000"
DEFAULT_USERS = 20
DEFAULT_BURST = 5
MAX_ROUNDS = 200


async def load_feed(client: httpx.AsyncClient, base_url: str, user_id: str) -> dict[str, Any] | None:
    """Trigger the initial load for a user."""
    try:
        resp = await client.post(f"{base_url}/api/v1/feed/{user_id}/load")
        if resp.status_code == 200:
            return resp.json()
        print(f"  [WARN] Load {user_id[:8]}: status {resp.status_code}")
        return None
    except httpx.HTTPError as e:
        print(f"  [ERROR] Load {user_id[:8]}: {e}")
        return None


async def swipe_once(
    client: httpx.AsyncClient,
    base_url: str,
    user_id: str,
    profile_id: str,
) -> tuple[int, dict[str, Any]]:
    """Send one swipe and return (status_code, body)."""
    resp = await client.post(
        f"{base_url}/api/v1/feed/{user_id}/swipe",
        json={"profile_id": profile_id, "direction": random.choice(["left", "right"])},
    )
    return resp.status_code, resp.json()


async def run_user(
    client: httpx.AsyncClient,
    base_url: str,
    burst: int,
    timings: list[float],
) -> dict[str, Any]:
    """Swipe one user to the quota and report what the ledger holds."""
    user_id = f"burst-{uuid.uuid4().hex[:12]}"
    state = await load_feed(client, base_url, user_id)
    if state is None:
        return {"user_id": user_id, "ok": False, "reason": "load_failed"}

    limit = state["limit"]
    denied = False
    for _ in range(MAX_ROUNDS):
        current = state.get("current_profile")
        if current is None:
            resp = await client.get(f"{base_url}/api/v1/feed/{user_id}")
            state = resp.json()
            if state["status"] == "exhausted":
                break
            await asyncio.sleep(0.1)
            continue

        t0 = time.monotonic()
        results = await asyncio.gather(
            *(swipe_once(client, base_url, user_id, current["id"]) for _ in range(burst))
        )
        timings.append(time.monotonic() - t0)

        for code, body in results:
            if code == 200:
                state = body["state"]
                if body["decision"] == "deny":
                    denied = True
        if denied:
            break

    history = (await client.get(f"{base_url}/api/v1/feed/{user_id}/history")).json()
    return {
        "user_id": user_id,
        "ok": denied and len(history) == limit,
        "recorded": len(history),
        "limit": limit,
    }


async def run_burst_test(base_url: str, users: int, burst: int) -> dict[str, Any]:
    print(f"\n{'='*60}")
    print(f"SwipeFeed Burst Test — {users} users x burst {burst}")
    print(f"Target: {base_url}")
    print(f"{'='*60}\n")

    timings: list[float] = []
    async with httpx.AsyncClient(timeout=30.0) as client:
        outcomes = await asyncio.gather(
            *(run_user(client, base_url, burst, timings) for _ in range(users))
        )

    passed = [o for o in outcomes if o["ok"]]
    failed = [o for o in outcomes if not o["ok"]]

    print(f"Users within quota: {len(passed)}/{users}")
    if timings:
        print("\nburst latency:")
        print(f"  mean:   {statistics.mean(timings):.3f}s")
        print(f"  median: {statistics.median(timings):.3f}s")
        print(f"  max:    {max(timings):.3f}s")
    for o in failed[:10]:
        print(f"  - {o}")
    print(f"\n{'='*60}\n")
    return {"total": users, "passed": len(passed), "failed": failed}


def main():
    parser = argparse.ArgumentParser(description="SwipeFeed swipe burst test")
    parser.add_argument("--users", type=int, default=DEFAULT_USERS, help="Number of synthetic users")
    parser.add_argument("--burst", type=int, default=DEFAULT_BURST, help="Concurrent swipes per round")
    parser.add_argument("--base-url", type=str, default=DEFAULT_BASE_URL, help="API base URL")
    args = parser.parse_args()

    results = asyncio.run(run_burst_test(args.base_url, args.users, args.burst))

    if results["failed"]:
        print(f"FAIL: {len(results['failed'])} users exceeded or missed the quota")
        sys.exit(1)
    print("PASS: every ledger stopped exactly at the limit")


if __name__ == "__main__":
    main()
