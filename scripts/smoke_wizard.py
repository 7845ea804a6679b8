#!/usr/bin/env python3
"""Walk one booking through a running wizard API (ENV=dev uses the mock backend)."""

import sys
from typing import Any

import httpx


BASE_URL = "http://127.0.0.1:8001"
THEATER = "EROS (COUPLES) (FMT-Hall-1)"


def call(method: str, path: str, payload: dict[str, Any] | None = None) -> dict[str, Any]:
    response = httpx.request(method, f"{BASE_URL}{path}", json=payload, timeout=30.0)
    if response.status_code >= 400:
        print(f"❌ {method} {path} -> {response.status_code}")
        print(f"Response: {response.text}")
        sys.exit(1)
    return response.json() if response.content else {}


def open_wizard() -> str:
    print("=" * 60)
    print("Opening wizard")
    print("=" * 60)
    view = call(
        "POST",
        "/v1/wizards",
        {"theater_name": THEATER, "date": "2030-01-10", "time_slot": "6:00 PM - 9:00 PM"},
    )
    print(f"✅ Wizard {view['id']}")
    print(f"Steps: {' -> '.join(view['steps'])}")
    print(f"Total: ₹{view['price']['final_total']}")
    return view["id"]


def fill_draft(wizard_id: str) -> None:
    base = f"/v1/wizards/{wizard_id}"
    call("PATCH", f"{base}/customer", {"name": "Asha", "phone": "9876543210", "email": "asha@example.com"})
    call("PUT", f"{base}/decoration", {"enabled": False})

    move = call("POST", f"{base}/steps/continue", {})["move"]
    if move.get("confirmation"):
        print(f"⚠️  {move['confirmation']}")
        move = call("POST", f"{base}/steps/continue", {"confirmed": True})["move"]

    call("PUT", f"{base}/occasion", {"name": "Movie Night"})
    while not move["final"]:
        if move["step"] == "Food":
            toggled = call("POST", f"{base}/services/Food/items/Popcorn/toggle")
            print(f"✅ {toggled['notice']['message']}")
        if move["step"] == "Terms & Conditions":
            call("PUT", f"{base}/terms", {"agreed": True})
        move = call("POST", f"{base}/steps/continue", {})["move"]
        print(f"  -> {move['step']}")


def checkout(wizard_id: str) -> None:
    print("\n" + "=" * 60)
    print("Checking out")
    print("=" * 60)
    view = call("POST", f"/v1/wizards/{wizard_id}/checkout")
    payment = view["payment"]
    print(f"Phase: {payment['phase']}")
    if payment.get("outcome"):
        print(f"✅ {payment['outcome']['message']} ({payment['outcome']['booking_id']})")
    elif payment.get("pending"):
        print(f"⏳ Waiting on gateway reference {payment['pending']['reference']}")


def main():
    print("\n🚀 Testing Booking Wizard API\n")

    try:
        httpx.get(f"{BASE_URL}/health", timeout=5.0)
        print("✅ Server is running\n")
    except httpx.HTTPError:
        print("❌ Server is not running!")
        print("   Please start it with: uvicorn theater_booking.main:app --reload --port 8001")
        sys.exit(1)

    wizard_id = open_wizard()
    fill_draft(wizard_id)
    checkout(wizard_id)
    call("DELETE", f"/v1/wizards/{wizard_id}")

    print("\n" + "=" * 60)
    print("✅ Smoke run complete!")
    print("=" * 60 + "\n")


if __name__ == "__main__":
    main()
