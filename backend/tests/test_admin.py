"""
Tests for admin reporting, payment updates, benefit resets and health/metrics.
"""

from datetime import datetime, timezone

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_admin_lists_reservations(
    client: AsyncClient, auth_headers, admin_headers, headers_for, premium_member, group_session, private_session
):
    await client.post(f"/api/v1/sessions/{group_session.id}/reserve", headers=auth_headers)
    await client.post(f"/api/v1/sessions/{group_session.id}/reserve", headers=headers_for(premium_member))
    await client.post(f"/api/v1/sessions/{private_session.id}/reserve", headers=auth_headers)

    response = await client.get("/api/v1/reservations/admin/all", headers=admin_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 3
    assert data["total_pages"] == 1

    response = await client.get(
        "/api/v1/reservations/admin/all",
        params={"session_id": group_session.id, "is_paid": "true"},
        headers=admin_headers,
    )
    data = response.json()
    assert data["total"] == 1
    assert data["reservations"][0]["user_id"] == premium_member.id

    response = await client.get(
        "/api/v1/reservations/admin/all",
        params={"booking_date": datetime.now(timezone.utc).date().isoformat(), "page_size": 2},
        headers=admin_headers,
    )
    data = response.json()
    assert data["total"] == 3
    assert data["total_pages"] == 2
    assert len(data["reservations"]) == 2


@pytest.mark.asyncio
async def test_admin_endpoints_forbidden_for_members(client: AsyncClient, auth_headers):
    for path in ("/api/v1/reservations/admin/all", "/api/v1/reservations/admin/stats", "/api/v1/reservations/admin/revenue"):
        response = await client.get(path, headers=auth_headers)
        assert response.status_code == 403


@pytest.mark.asyncio
async def test_reservation_stats(
    client: AsyncClient, auth_headers, admin_headers, trainer_headers, headers_for, premium_member, make_session
):
    first = await make_session(name="A")
    second = await make_session(name="B")
    kept = await client.post(f"/api/v1/sessions/{first.id}/reserve", headers=auth_headers)
    dropped = await client.post(f"/api/v1/sessions/{second.id}/reserve", headers=auth_headers)
    missed = await client.post(f"/api/v1/sessions/{first.id}/reserve", headers=headers_for(premium_member))

    await client.put(f"/api/v1/reservations/{kept.json()['reservation']['id']}/attend", headers=trainer_headers)
    await client.put(f"/api/v1/reservations/{missed.json()['reservation']['id']}/no-show", headers=trainer_headers)
    await client.put(f"/api/v1/reservations/{dropped.json()['reservation']['id']}/cancel", headers=auth_headers)

    response = await client.get("/api/v1/reservations/admin/stats", headers=admin_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["total_reservations"] == 3
    assert data["confirmed_reservations"] == 2
    assert data["cancelled_reservations"] == 1
    assert data["paid_reservations"] == 1
    assert data["attended_reservations"] == 1
    assert data["attendance_rate"] == 50


@pytest.mark.asyncio
async def test_payment_update_and_revenue(client: AsyncClient, auth_headers, admin_headers, group_session):
    booked = await client.post(f"/api/v1/sessions/{group_session.id}/reserve", headers=auth_headers)
    reservation_id = booked.json()["reservation"]["id"]

    response = await client.put(
        f"/api/v1/reservations/{reservation_id}/payment",
        json={"is_paid": True},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["is_paid"] is True
    assert response.json()["payment_amount"] == 20.0

    response = await client.get("/api/v1/reservations/admin/revenue", headers=admin_headers)
    assert response.json() == {"total_revenue": 20.0, "total_paid_reservations": 1, "avg_payment": 20.0}


@pytest.mark.asyncio
async def test_revenue_applies_each_bound(client: AsyncClient, auth_headers, admin_headers, group_session):
    booked = await client.post(f"/api/v1/sessions/{group_session.id}/reserve", headers=auth_headers)
    await client.put(
        f"/api/v1/reservations/{booked.json()['reservation']['id']}/payment",
        json={"is_paid": True},
        headers=admin_headers,
    )
    url = "/api/v1/reservations/admin/revenue"

    response = await client.get(url, params={"end_date": "2000-01-01T00:00:00Z"}, headers=admin_headers)
    assert response.json()["total_paid_reservations"] == 0

    response = await client.get(url, params={"start_date": "2999-01-01T00:00:00Z"}, headers=admin_headers)
    assert response.json()["total_paid_reservations"] == 0

    response = await client.get(url, params={"start_date": "2000-01-01T00:00:00Z"}, headers=admin_headers)
    assert response.json()["total_revenue"] == 20.0


@pytest.mark.asyncio
async def test_payment_update_requires_admin(client: AsyncClient, auth_headers, group_session):
    booked = await client.post(f"/api/v1/sessions/{group_session.id}/reserve", headers=auth_headers)
    reservation_id = booked.json()["reservation"]["id"]
    response = await client.put(
        f"/api/v1/reservations/{reservation_id}/payment",
        json={"is_paid": True},
        headers=auth_headers,
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_reset_member_benefits(
    client: AsyncClient, db_session, admin_headers, headers_for, elite_member, private_session
):
    await client.post(f"/api/v1/sessions/{private_session.id}/reserve", headers=headers_for(elite_member))
    await db_session.refresh(elite_member)
    assert elite_member.personal_training_sessions_remaining == 3

    response = await client.put(f"/api/v1/members/{elite_member.id}/benefits/reset", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["personal_training_sessions_remaining"] == 4
    assert response.json()["guest_passes_remaining"] == 999


@pytest.mark.asyncio
async def test_reset_unknown_member(client: AsyncClient, admin_headers):
    response = await client.put("/api/v1/members/8080/benefits/reset", headers=admin_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_health_and_metrics(client: AsyncClient):
    health = await client.get("/health")
    assert health.status_code == 200
    assert health.json()["cache"] == {"status": "disabled"}
    assert "X-Request-ID" in health.headers

    metrics = await client.get("/metrics")
    assert metrics.status_code == 200
    assert "reservation_attempts_total" in metrics.text
