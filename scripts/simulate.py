"""
Concurrency Simulation Script

Fires concurrent order traffic (create, re-order, edit, complete) at a
running server and checks that every listed order came back whole.
Run from project root: python scripts/simulate.py

Author: Khalil_Bannouri
Version: 1.0.0
"""

import asyncio
import sys
import random
import time
import argparse
from datetime import datetime
from typing import Any

import httpx

# Configuration
API_BASE_URL = "http://localhost:4000"
TOTAL_ORDERS = 50

# Sample data for random orders
FIRST_NAMES = ["Ali", "Ayşe", "Mehmet", "Zeynep", "Can", "Elif", "Emre", "Deniz", "John", "Sarah"]
LAST_NAMES = ["Veli", "Yılmaz", "Kaya", "Demir", "Şahin", "Çelik", "Smith", "Brown"]
PRODUCTS = ["Tea", "Turkish Coffee", "Water", "Orange Juice", "Toast", "Simit", "Club Sandwich", "Soup"]
NOTES = ["", "No sugar", "Extra napkins", "Knock twice", "Allergic to nuts"]


def generate_random_guest() -> str:
    return f"{random.choice(FIRST_NAMES)} {random.choice(LAST_NAMES)}"


def generate_random_items() -> list[dict]:
    """Generate random order items (distinct products)."""
    products = random.sample(PRODUCTS, random.randint(1, 4))
    return [{"product": p, "quantity": random.randint(1, 3)} for p in products]


def generate_order_payload() -> dict[str, Any]:
    return {
        "userName": generate_random_guest(),
        "room": str(random.randint(100, 450)),
        "note": random.choice(NOTES),
        "items": generate_random_items(),
    }


async def _timed(coro) -> tuple[httpx.Response, float]:
    start = time.time()
    response = await coro
    return response, round(time.time() - start, 3)


async def run_order_flow(client: httpx.AsyncClient, order_num: int) -> dict[str, Any]:
    """
    One guest's flow: create, then randomly re-order, edit or complete.
    """
    payload = generate_order_payload()
    try:
        response, elapsed = await _timed(client.post(f"{API_BASE_URL}/orders", json=payload, timeout=30.0))
        if response.status_code != 201:
            return {"order_num": order_num, "success": False, "error": response.text[:100], "time": elapsed}

        order_id = response.json()["id"]
        action = random.choice(["none", "duplicate", "edit", "complete"])

        if action == "duplicate":
            response, extra = await _timed(client.post(f"{API_BASE_URL}/orders/{order_id}/duplicate", timeout=30.0))
            ok = response.status_code == 201
        elif action == "edit":
            body = {"room": payload["room"], "note": "edited", "items": generate_random_items()}
            response, extra = await _timed(client.put(f"{API_BASE_URL}/orders/{order_id}", json=body, timeout=30.0))
            ok = response.status_code == 200
        elif action == "complete":
            response, extra = await _timed(client.post(f"{API_BASE_URL}/orders/{order_id}/complete", timeout=30.0))
            ok = response.status_code == 200
        else:
            extra, ok = 0.0, True

        return {
            "order_num": order_num,
            "success": ok,
            "order_id": order_id,
            "action": action,
            "error": None if ok else response.text[:100],
            "time": round(elapsed + extra, 3),
        }
    except Exception as e:
        return {"order_num": order_num, "success": False, "error": str(e)[:100], "time": 0.0}


async def check_listings(client: httpx.AsyncClient) -> bool:
    """Every listed order must have items; active queue oldest first."""
    active = (await client.get(f"{API_BASE_URL}/orders/admin/active")).json()
    history = (await client.get(f"{API_BASE_URL}/orders/admin/history")).json()

    empty = [o["id"] for o in active + history if not o["items"]]
    created = [o["createdAt"] for o in active]
    ordered = created == sorted(created)

    print(f"   Active: {len(active)}   History: {len(history)}")
    print(f"   {'✅' if not empty else '❌'} Orders without items: {empty or 'none'}")
    print(f"   {'✅' if ordered else '❌'} Active queue sorted oldest first")
    return not empty and ordered


async def run_simulation(num_orders: int = TOTAL_ORDERS) -> dict[str, Any]:
    """Run the concurrent simulation."""
    print("=" * 70)
    print("CONCURRENCY SIMULATION")
    print("=" * 70)
    print(f"Total Orders: {num_orders}")
    print(f"Target: {API_BASE_URL}")
    print(f"Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    start_time = time.time()

    async with httpx.AsyncClient() as client:
        response = await client.get(f"{API_BASE_URL}/health")
        if response.status_code != 200:
            print(f"❌ Health check failed: {response.text}")
            return {"total": num_orders, "successful": 0, "failed": num_orders}
        print(f"✅ Health: database {response.json().get('database')}")

        tasks = [run_order_flow(client, i + 1) for i in range(num_orders)]
        results = await asyncio.gather(*tasks)

        total_time = round(time.time() - start_time, 2)

        successful = [r for r in results if r["success"]]
        failed = [r for r in results if not r["success"]]

        print("\n" + "=" * 70)
        print("SIMULATION RESULTS")
        print("=" * 70)
        print(f"\n✅ Successful flows: {len(successful)}/{num_orders}")
        print(f"❌ Failed flows: {len(failed)}/{num_orders}")
        print(f"Total Time: {total_time}s")

        if successful:
            avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
            print(f"\nAverage flow time: {avg_time}s")
            for action in ["none", "duplicate", "edit", "complete"]:
                count = len([r for r in successful if r.get("action") == action])
                print(f"   {action:<10} {count}")

        if failed:
            print("\nFailed flow details (first 5):")
            for f in failed[:5]:
                print(f"   Flow #{f['order_num']}: {f.get('error', 'Unknown error')}")

        print("\nListing checks:")
        listings_ok = await check_listings(client)

    print("=" * 70)

    return {
        "total": num_orders,
        "successful": len(successful),
        "failed": len(failed),
        "listings_ok": listings_ok,
        "total_time": total_time,
        "results": results,
    }


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Concurrency Simulation Script")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of order flows")
    parser.add_argument("--url", default=API_BASE_URL, help="Server base URL")
    args = parser.parse_args()

    API_BASE_URL = args.url.rstrip("/")
    summary = asyncio.run(run_simulation(args.orders))
    sys.exit(0 if summary["failed"] == 0 and summary.get("listings_ok") else 1)
