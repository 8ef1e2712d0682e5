"""
Service Simulation Script

Drives a running storefront through a dinner service: sign in (or stay a
guest), browse, ring up orders and export the sales log.
Run from project root: python scripts/simulate.py

Author: Khalil Bannouri
Version: 4.0.0
"""

import argparse
import asyncio
import random
import sys
import time
from datetime import datetime
from typing import Any, Optional

import httpx

# Configuration
API_BASE_URL = "http://localhost:8001"
TOTAL_ORDERS = 10

FIRST_NAMES = ["Asha", "Rohan", "Meera", "Kabir", "Priya", "Arjun", "Isha", "Dev", "Nisha", "Vikram"]
PAYMENT_METHODS = ["Cash", "Card", "UPI"]


def generate_random_customer() -> dict[str, str]:
    return {
        "customer_name": random.choice(FIRST_NAMES),
        "customer_contact": f"+91 9{random.randint(100000000, 999999999)}",
        "payment_method": random.choice(PAYMENT_METHODS),
    }


# =============================================================================
# SINGLE FLOWS
# =============================================================================

async def sign_in(
    client: httpx.AsyncClient,
    email: str,
    password: str,
    full_name: str,
) -> bool:
    """Sign in, creating the account first if it does not exist yet."""
    response = await client.post(
        f"{API_BASE_URL}/api/auth/login",
        json={"email": email, "password": password},
    )
    if response.status_code == 200:
        return True

    response = await client.post(
        f"{API_BASE_URL}/api/auth/signup",
        json={"email": email, "password": password, "full_name": full_name},
    )
    if response.status_code != 200:
        print(f"   ❌ Sign-up failed: {response.text[:100]}")
        return False
    if response.json().get("confirmation_pending"):
        print("   📧 Check your email for the confirmation link, then run again")
        return False
    return True


async def ring_up_order(
    client: httpx.AsyncClient,
    menu: list[dict[str, Any]],
    order_num: int,
) -> dict[str, Any]:
    """Add a few random lines to the cart and check out."""
    start_time = time.time()

    try:
        for item in random.sample(menu, k=min(len(menu), random.randint(1, 3))):
            size = "Half" if item.get("half_price") is not None and random.random() < 0.5 else "Full"
            response = await client.post(
                f"{API_BASE_URL}/api/cart/lines",
                json={"item_id": item["key"], "size": size, "delta": random.randint(1, 3)},
            )
            response.raise_for_status()

        response = await client.post(
            f"{API_BASE_URL}/api/checkout",
            json=generate_random_customer(),
            timeout=30.0,
        )
        elapsed = round(time.time() - start_time, 3)

        if response.status_code == 200:
            order = response.json()["order"]
            return {
                "order_num": order_num,
                "success": True,
                "invoice": order["id"],
                "total": order["total"],
                "time": elapsed,
            }
        return {
            "order_num": order_num,
            "success": False,
            "error": response.text[:100],
            "time": elapsed,
        }
    except httpx.HTTPError as e:
        return {
            "order_num": order_num,
            "success": False,
            "error": str(e)[:100],
            "time": round(time.time() - start_time, 3),
        }


# =============================================================================
# MAIN SIMULATION RUNNER
# =============================================================================

async def run_simulation(
    num_orders: int = TOTAL_ORDERS,
    email: Optional[str] = None,
    password: str = "",
    full_name: str = "",
) -> dict[str, Any]:
    """
    Run one service.

    Orders are rung up one after another: the cart is a single shared
    ledger on the server.
    """
    print("=" * 70)
    print("🍽️  DINNER SERVICE SIMULATION")
    print("=" * 70)
    print(f"📋 Total Orders: {num_orders}")
    print(f"🎯 Target: {API_BASE_URL}")
    print(f"👤 Identity: {email or 'guest'}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    results = []
    start_time = time.time()

    async with httpx.AsyncClient() as client:
        response = await client.get(f"{API_BASE_URL}/health")
        if response.status_code != 200:
            print(f"\n❌ Health check failed: {response.text}")
            return {"total": num_orders, "successful": 0, "failed": num_orders}
        print(f"\n✅ Backend: {response.json().get('backend')}")

        if email and not await sign_in(client, email, password, full_name):
            return {"total": num_orders, "successful": 0, "failed": num_orders}

        menu = (await client.get(f"{API_BASE_URL}/api/menu")).json()
        print(f"📖 Menu: {len(menu)} dish(es)")
        if not menu:
            print("\n❌ Nothing on the menu to order")
            return {"total": num_orders, "successful": 0, "failed": num_orders}

        print("\n🚀 Ringing up orders...\n")
        for i in range(num_orders):
            result = await ring_up_order(client, menu, i + 1)
            status = "✅" if result["success"] else "❌"
            print(f"   {status} Order #{result['order_num']}: {result.get('invoice', result.get('error'))}")
            results.append(result)

        export = (await client.post(f"{API_BASE_URL}/api/orders/export")).json()
        notices = (await client.get(f"{API_BASE_URL}/api/notifications")).json()

    total_time = round(time.time() - start_time, 2)
    successful = [r for r in results if r["success"]]
    failed = [r for r in results if not r["success"]]

    print("\n" + "=" * 70)
    print("📊 SERVICE RESULTS")
    print("=" * 70)
    print(f"\n✅ Successful Orders: {len(successful)}/{num_orders}")
    print(f"❌ Failed Orders: {len(failed)}/{num_orders}")
    print(f"⏱️  Total Time: {total_time}s")

    if successful:
        avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
        total_revenue = sum(r["total"] for r in successful)
        print(f"\n📈 Average Checkout: {avg_time}s")
        print(f"   💰 Total Revenue: ₹{total_revenue:.2f}")

    warnings = [n for n in notices if n["level"] in ("warning", "error")]
    if warnings:
        print(f"\n⚠️  Notices raised during service ({len(warnings)}):")
        for notice in warnings[:5]:
            print(f"   [{notice['kind']}] {notice['message']}")

    print(f"\n📄 Export: {export.get('message')} → {export.get('path')}")
    print("\n🔍 Next: python scripts/verify.py")
    print("=" * 70)

    return {
        "total": num_orders,
        "successful": len(successful),
        "failed": len(failed),
        "total_time": total_time,
        "results": results,
    }


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Dinner Service Simulation")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders")
    parser.add_argument("--email", help="Sign in as this account (guest if omitted)")
    parser.add_argument("--password", default="", help="Account password")
    parser.add_argument("--name", default="", help="Full name used when the account is created")
    args = parser.parse_args()

    summary = asyncio.run(run_simulation(
        num_orders=args.orders,
        email=args.email,
        password=args.password,
        full_name=args.name,
    ))
    sys.exit(0 if summary["failed"] == 0 else 1)
