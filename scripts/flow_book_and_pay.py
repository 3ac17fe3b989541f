#!/usr/bin/env python3
"""
End-to-end booking and payment flow against a running server.

This script only orchestrates API calls; every rule lives in the backend.

Usage:
    python scripts/create_admin.py            # copy the printed token
    python scripts/flow_book_and_pay.py --admin-token <TOKEN>

Flow:
    1. Onboard a farmer and a driver
    2. Driver adds a service, admin verifies the driver, driver goes online
    3. Farmer finds the driver and books
    4. Driver accepts, starts and completes the job
    5. Driver sends a payment reminder, then confirms cash
    6. Farmer reviews the driver
"""

import argparse
import json
import sys
from uuid import uuid4

import httpx

from krushilink.core.security import create_access_token

BASE_URL = "http://localhost:8000"


def dev_token(phone: str) -> str:
    """Token shaped like the identity provider's, for a fresh account."""
    return create_access_token({"sub": str(uuid4()), "phone": phone})


def api_request(token: str, method: str, endpoint: str, data: dict | None = None, params: dict | None = None) -> dict:
    """Make authenticated API request."""
    response = httpx.request(
        method,
        f"{BASE_URL}/api/v1{endpoint}",
        headers={"Authorization": f"Bearer {token}"},
        json=data if method != "GET" else None,
        params=params,
        timeout=10.0,
        follow_redirects=True,
    )
    return {"status": response.status_code, "data": response.json() if response.text else {}}


def print_step(step: int, title: str):
    """Print step header."""
    print(f"\n{'='*60}")
    print(f"STEP {step}: {title}")
    print("="*60)


def check(result: dict, fields: list[str] | None = None) -> dict:
    """Print result and stop the flow on an error response."""
    if result["status"] >= 400:
        print(f"ERROR ({result['status']}): {json.dumps(result['data'], indent=2)}")
        sys.exit(1)

    data = result["data"]
    if fields and isinstance(data, dict):
        data = {k: data.get(k) for k in fields}
    print(json.dumps(data, indent=2, default=str))
    return result["data"]


def main():
    parser = argparse.ArgumentParser(description="Complete booking and payment flow")
    parser.add_argument("--admin-token", required=True, help="Token printed by create_admin.py")
    parser.add_argument("--acreage", default="2.5", help="Acres to book")
    parser.add_argument("--latitude", type=float, default=18.5204)
    parser.add_argument("--longitude", type=float, default=73.8567)
    args = parser.parse_args()

    booking_fields = ["id", "status", "version", "total_price", "payment_status", "reminder_count"]

    print_step(1, "Onboard farmer and driver")
    farmer = dev_token("+919800000001")
    driver = dev_token("+919800000002")
    check(api_request(farmer, "POST", "/users/me/role", {"role": "farmer"}), ["id", "role"])
    check(api_request(farmer, "PUT", "/users/me/farmer-profile", {
        "name": "Ramesh Patil",
        "farm_size": "5",
        "farm_latitude": args.latitude,
        "farm_longitude": args.longitude,
        "preferred_payment_method": "later",
    }), ["id", "is_profile_complete"])
    driver_profile = check(api_request(driver, "POST", "/users/me/role", {"role": "driver"}), ["id", "role"])
    check(api_request(driver, "PUT", "/users/me/driver-profile", {
        "name": "Suresh Jadhav",
        "tractor_type": "Mahindra 575 DI",
        "latitude": args.latitude + 0.02,
        "longitude": args.longitude + 0.02,
    }), ["id", "is_profile_complete"])

    print_step(2, "Driver adds a service, admin verifies, driver goes online")
    equipment = check(api_request(driver, "POST", "/equipment/", {
        "name": "Ploughing",
        "price_per_acre": "800",
    }), ["id", "name", "price_per_acre"])
    check(api_request(args.admin_token, "POST", f"/admin/drivers/{driver_profile['id']}/verify"), ["id", "is_verified"])
    check(api_request(driver, "POST", "/users/me/availability", {"is_active": True}), ["id", "is_active"])

    print_step(3, "Farmer finds the driver and books")
    nearby = check(api_request(farmer, "GET", "/drivers/nearby", params={
        "latitude": args.latitude, "longitude": args.longitude, "service": "plough",
    }))
    if not nearby:
        print("ERROR: driver not found nearby")
        sys.exit(1)
    booking = check(api_request(farmer, "POST", "/bookings/", {
        "driver_id": driver_profile["id"],
        "equipment_id": equipment["id"],
        "latitude": args.latitude,
        "longitude": args.longitude,
        "address": "Survey No. 12, Hadapsar",
        "acreage": args.acreage,
        "payment_method": "later",
    }), booking_fields)
    booking_id = booking["id"]

    print_step(4, "Driver accepts, starts and completes")
    for action in ("accept", "start", "complete"):
        check(api_request(driver, "POST", f"/bookings/{booking_id}/{action}"), booking_fields)

    print_step(5, "Payment reminder, then cash collected")
    check(api_request(driver, "POST", f"/bookings/{booking_id}/payment-reminders"), booking_fields)
    check(api_request(driver, "POST", "/payments/cash/confirm", {"booking_id": booking_id}),
          booking_fields + ["payment_reference"])

    print_step(6, "Farmer reviews the driver")
    check(api_request(farmer, "POST", f"/bookings/{booking_id}/review", {
        "rating": 5, "comment": "Neat furrows, on time.",
    }))
    inbox = check(api_request(farmer, "GET", "/notifications/"), ["total", "unread_count"])

    print("\n" + "="*60)
    print("FULL FLOW COMPLETE")
    print("="*60)
    print(f"Booking:            {booking_id}")
    print(f"Farmer notices:     {inbox['total']}")


if __name__ == "__main__":
    main()
