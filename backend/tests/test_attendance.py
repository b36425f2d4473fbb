"""
Tests for staff attendance marking and check-out.
"""

import pytest
from httpx import AsyncClient


async def _reserve(client: AsyncClient, session_id: int, headers: dict) -> int:
    response = await client.post(f"/api/v1/sessions/{session_id}/reserve", headers=headers)
    assert response.status_code == 201
    return response.json()["reservation"]["id"]


@pytest.mark.asyncio
async def test_trainer_marks_attended(client: AsyncClient, auth_headers, trainer_headers, group_session):
    reservation_id = await _reserve(client, group_session.id, auth_headers)

    response = await client.put(f"/api/v1/reservations/{reservation_id}/attend", headers=trainer_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["attendance"] == "attended"
    assert data["lifecycle_state"] == "attended"
    assert data["status"] == "confirmed"
    assert data["check_in_time"] is not None

    # Counters are untouched by attendance
    detail = await client.get(f"/api/v1/sessions/{group_session.id}")
    assert detail.json()["session"]["current_bookings"] == 1


@pytest.mark.asyncio
async def test_admin_marks_no_show(client: AsyncClient, auth_headers, admin_headers, group_session):
    reservation_id = await _reserve(client, group_session.id, auth_headers)

    response = await client.put(f"/api/v1/reservations/{reservation_id}/no-show", headers=admin_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["lifecycle_state"] == "no-show"
    assert data["check_in_time"] is None


@pytest.mark.asyncio
async def test_member_cannot_mark_attendance(client: AsyncClient, auth_headers, group_session):
    reservation_id = await _reserve(client, group_session.id, auth_headers)
    response = await client.put(f"/api/v1/reservations/{reservation_id}/attend", headers=auth_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_attendance_is_terminal(client: AsyncClient, auth_headers, trainer_headers, group_session):
    reservation_id = await _reserve(client, group_session.id, auth_headers)
    await client.put(f"/api/v1/reservations/{reservation_id}/no-show", headers=trainer_headers)

    again = await client.put(f"/api/v1/reservations/{reservation_id}/attend", headers=trainer_headers)
    assert again.status_code == 400
    assert again.json()["details"]["state"] == "no-show"

    cancel = await client.put(f"/api/v1/reservations/{reservation_id}/cancel", headers=auth_headers)
    assert cancel.status_code == 400
    assert cancel.json()["error"] == "RESERVATION_NOT_CONFIRMED"


@pytest.mark.asyncio
async def test_cannot_mark_cancelled_reservation(client: AsyncClient, auth_headers, trainer_headers, group_session):
    reservation_id = await _reserve(client, group_session.id, auth_headers)
    await client.put(f"/api/v1/reservations/{reservation_id}/cancel", headers=auth_headers)

    response = await client.put(f"/api/v1/reservations/{reservation_id}/attend", headers=trainer_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_check_out_after_check_in(client: AsyncClient, auth_headers, trainer_headers, group_session):
    reservation_id = await _reserve(client, group_session.id, auth_headers)

    early = await client.put(f"/api/v1/reservations/{reservation_id}/check-out", headers=trainer_headers)
    assert early.status_code == 400
    assert early.json()["error"] == "NOT_CHECKED_IN"

    await client.put(f"/api/v1/reservations/{reservation_id}/attend", headers=trainer_headers)
    response = await client.put(f"/api/v1/reservations/{reservation_id}/check-out", headers=trainer_headers)
    assert response.status_code == 200
    assert response.json()["check_out_time"] is not None

    twice = await client.put(f"/api/v1/reservations/{reservation_id}/check-out", headers=trainer_headers)
    assert twice.status_code == 400
    assert twice.json()["error"] == "ALREADY_CHECKED_OUT"
