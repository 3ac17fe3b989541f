"""
API tests for onboarding, discovery, notifications and admin moderation.
"""
from uuid import uuid4

import pytest

from krushilink.core.security import create_access_token
from krushilink.models.notification import Notification

API = "/api/v1"


@pytest.mark.integration
@pytest.mark.asyncio
async def test_first_request_provisions_user(client):
    token = create_access_token({"sub": str(uuid4()), "phone": "+919812345678"})
    headers = {"Authorization": f"Bearer {token}"}

    response = await client.get(f"{API}/users/me", headers=headers)
    assert response.status_code == 200, response.text
    assert response.json()["role"] is None
    assert response.json()["phone"] == "+919812345678"

    response = await client.get(f"{API}/bookings/", headers=headers)
    assert response.status_code == 403

    response = await client.post(f"{API}/users/me/role", json={"role": "driver"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["role"] == "driver"
    assert response.json()["is_active"] is False

    response = await client.post(f"{API}/users/me/role", json={"role": "farmer"}, headers=headers)
    assert response.status_code == 422


@pytest.mark.integration
@pytest.mark.asyncio
async def test_unverified_driver_cannot_go_online(client, headers_for, make_user):
    driver = await make_user("driver", is_verified=False, is_active=False)

    response = await client.post(
        f"{API}/users/me/availability", json={"is_active": True}, headers=headers_for(driver)
    )

    assert response.status_code == 422


@pytest.mark.integration
@pytest.mark.asyncio
async def test_nearby_drivers(client, headers_for, farmer, driver, equipment, make_user):
    await make_user("driver", is_active=False)
    await make_user("driver", latitude=19.07, longitude=72.87)

    response = await client.get(
        f"{API}/drivers/nearby",
        params={"latitude": 18.52, "longitude": 73.85, "service": "plough"},
        headers=headers_for(farmer),
    )

    assert response.status_code == 200, response.text
    (match,) = response.json()
    assert match["driver"]["id"] == str(driver.id)
    assert match["distance_km"] == 0
    assert [e["name"] for e in match["equipment"]] == ["Ploughing"]


@pytest.mark.integration
@pytest.mark.asyncio
async def test_notification_inbox(client, db, headers_for, farmer):
    db.add_all(
        [
            Notification(user_id=farmer.id, title="Payment Due", body="b", category="payment"),
            Notification(user_id=farmer.id, title="Booking Accepted", body="b", category="booking_update"),
        ]
    )
    await db.commit()
    headers = headers_for(farmer)

    response = await client.get(f"{API}/notifications/", params={"category": "payment"}, headers=headers)
    data = response.json()
    assert data["total"] == 1
    assert data["unread_count"] == 2

    notification_id = data["notifications"][0]["id"]
    response = await client.patch(f"{API}/notifications/{notification_id}/read", headers=headers)
    assert response.status_code == 204

    response = await client.get(f"{API}/notifications/", params={"unread_only": True}, headers=headers)
    assert response.json()["total"] == 1

    response = await client.post(f"{API}/notifications/read-all", headers=headers)
    assert response.status_code == 204

    response = await client.get(f"{API}/notifications/", headers=headers)
    assert response.json()["unread_count"] == 0


@pytest.mark.integration
@pytest.mark.asyncio
async def test_admin_only(client, headers_for, farmer):
    response = await client.get(f"{API}/admin/dashboard", headers=headers_for(farmer))

    assert response.status_code == 403


@pytest.mark.integration
@pytest.mark.asyncio
async def test_admin_verifies_driver(client, headers_for, admin, make_user):
    pending = await make_user("driver", is_verified=False, is_active=False)
    admin_headers = headers_for(admin)

    response = await client.get(f"{API}/admin/drivers", params={"status": "pending"}, headers=admin_headers)
    assert [d["id"] for d in response.json()] == [str(pending.id)]

    response = await client.post(f"{API}/admin/drivers/{pending.id}/verify", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["is_verified"] is True

    response = await client.post(f"{API}/admin/drivers/{pending.id}/verify", headers=admin_headers)
    assert response.status_code == 422

    response = await client.get(f"{API}/notifications/", headers=headers_for(pending))
    assert response.json()["notifications"][0]["title"] == "Account Verified"

    response = await client.get(
        f"{API}/admin/audit-logs",
        params={"resource_id": str(pending.id)},
        headers=admin_headers,
    )
    assert [log["action"] for log in response.json()] == ["driver_verify"]


@pytest.mark.integration
@pytest.mark.asyncio
async def test_deactivated_driver_is_locked_out(client, headers_for, admin, driver):
    response = await client.post(f"{API}/admin/drivers/{driver.id}/deactivate", headers=headers_for(admin))
    assert response.status_code == 200
    assert response.json()["is_suspended"] is True
    assert response.json()["is_active"] is False

    response = await client.get(f"{API}/users/me", headers=headers_for(driver))
    assert response.status_code == 401

    response = await client.post(f"{API}/admin/drivers/{driver.id}/activate", headers=headers_for(admin))
    assert response.status_code == 200
    assert response.json()["is_suspended"] is False


@pytest.mark.integration
@pytest.mark.asyncio
async def test_admin_dashboard_counts(client, headers_for, admin, make_booking):
    await make_booking(status="accepted")
    await make_booking(status="completed")
    await make_booking(status="completed", payment_status="paid")

    response = await client.get(f"{API}/admin/dashboard", headers=headers_for(admin))

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["total_drivers"] == 1
    assert data["total_farmers"] == 1
    assert data["active_bookings"] == 1
    assert data["unpaid_completed_bookings"] == 1
    assert len(data["recent_bookings"]) == 3


@pytest.mark.integration
@pytest.mark.asyncio
async def test_admin_sends_reminder(client, headers_for, admin, make_booking):
    booking = await make_booking(status="completed")

    response = await client.post(
        f"{API}/admin/bookings/{booking.id}/payment-reminders", headers=headers_for(admin)
    )

    assert response.status_code == 200, response.text
    assert response.json()["reminder_count"] == 1
