"""Fire concurrent overlapping booking requests at one item.

Exactly one request should come back 201; every other one should be 409.
"""

import argparse
import asyncio
from collections import Counter
from datetime import date, timedelta

import httpx


async def send_one(client: httpx.AsyncClient, base_url: str, item_id: str, user_idx: int, start: date, end: date):
    """Send one booking request and return its status code."""

    try:
        resp = await client.post(
            f"{base_url}/bookings",
            json={"item_id": item_id, "start_date": start.isoformat(), "end_date": end.isoformat()},
            headers={"x-user-id": f"renter-{user_idx}"},
        )
        return resp.status_code
    except httpx.HTTPError:
        return 599


async def run(total: int, concurrency: int, base_url: str, item_id: str, start: date, days: int):
    """Run the race and print the status code histogram."""

    sem = asyncio.Semaphore(concurrency)
    end = start + timedelta(days=days - 1)

    async with httpx.AsyncClient(timeout=10.0) as client:
        async def worker(i: int):
            async with sem:
                # Shift each request by at most one day so every pair overlaps.
                offset = timedelta(days=i % 2)
                return await send_one(client, base_url, item_id, i, start + offset, end + offset)

        codes = await asyncio.gather(*(worker(i) for i in range(total)))

    histogram = Counter(codes)
    print(f"total={total}")
    for code, count in sorted(histogram.items()):
        print(f"status_{code}={count}")
    if histogram.get(201, 0) != 1:
        print("WARNING: expected exactly one successful booking")


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--total", type=int, default=50)
    parser.add_argument("--concurrency", type=int, default=50)
    parser.add_argument("--base-url", default="http://localhost:8000")
    parser.add_argument("--item-id", required=True)
    parser.add_argument("--start", type=date.fromisoformat, default=date.today() + timedelta(days=30))
    parser.add_argument("--days", type=int, default=3)
    args = parser.parse_args()
    asyncio.run(run(args.total, args.concurrency, args.base_url, args.item_id, args.start, args.days))
