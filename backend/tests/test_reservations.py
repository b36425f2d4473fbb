"""
Tests for the booking engine: capacity, uniqueness and tier pricing.
"""

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.exc import InvalidRequestError

from gym_booking.core.exceptions import ConflictError, InvalidStateError, NotFoundError
from gym_booking.models.reservation import Reservation
from gym_booking.services.booking_service import reserve_session


@pytest.mark.asyncio
async def test_reserve_session(client: AsyncClient, auth_headers, group_session):
    """Successful reservation takes one spot."""
    response = await client.post(f"/api/v1/sessions/{group_session.id}/reserve", headers=auth_headers)
    assert response.status_code == 201
    data = response.json()
    assert data["reservation"]["session_id"] == group_session.id
    assert data["reservation"]["status"] == "confirmed"
    assert data["reservation"]["lifecycle_state"] == "confirmed"
    assert data["session"]["current_bookings"] == 1
    assert data["user"] == {"personal_training_sessions_remaining": 0}

    session_response = await client.get(f"/api/v1/sessions/{group_session.id}")
    assert session_response.json()["session"]["available_slots"] == 9
    assert session_response.json()["confirmed_reservations"] == 1


@pytest.mark.asyncio
async def test_reserve_unauthenticated(client: AsyncClient, group_session):
    response = await client.post(f"/api/v1/sessions/{group_session.id}/reserve")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_standard_member_pays_for_group_class(client: AsyncClient, auth_headers, group_session):
    response = await client.post(f"/api/v1/sessions/{group_session.id}/reserve", headers=auth_headers)
    reservation = response.json()["reservation"]
    assert reservation["is_paid"] is False
    assert reservation["payment_amount"] == 20.0


@pytest.mark.asyncio
async def test_premium_member_group_class_included(
    client: AsyncClient, db_session, headers_for, premium_member, group_session
):
    response = await client.post(
        f"/api/v1/sessions/{group_session.id}/reserve", headers=headers_for(premium_member)
    )
    assert response.status_code == 201
    reservation = response.json()["reservation"]
    assert reservation["is_paid"] is True
    assert reservation["payment_amount"] == 0
    assert reservation["benefit_consumed"] is False

    await db_session.refresh(premium_member)
    assert premium_member.guest_passes_remaining == 2
    assert premium_member.personal_training_sessions_remaining == 0


@pytest.mark.asyncio
async def test_elite_private_session_spends_training_session(
    client: AsyncClient, db_session, headers_for, make_user, make_session
):
    member = await make_user("lastone", membership_type="elite", personal_training_sessions_remaining=1)
    first = await make_session(name="PT Monday", type="private-coach", max_capacity=1, price=60.0)
    second = await make_session(name="PT Tuesday", type="private-session", max_capacity=1, price=45.0)
    headers = headers_for(member)

    response = await client.post(f"/api/v1/sessions/{first.id}/reserve", headers=headers)
    assert response.status_code == 201
    data = response.json()
    assert data["reservation"]["is_paid"] is True
    assert data["reservation"]["payment_amount"] == 0
    assert data["reservation"]["benefit_consumed"] is True
    assert data["user"]["personal_training_sessions_remaining"] == 0

    response = await client.post(f"/api/v1/sessions/{second.id}/reserve", headers=headers)
    assert response.status_code == 201
    data = response.json()
    assert data["reservation"]["is_paid"] is False
    assert data["reservation"]["payment_amount"] == 45.0
    assert data["reservation"]["benefit_consumed"] is False
    assert data["user"]["personal_training_sessions_remaining"] == 0


@pytest.mark.asyncio
async def test_premium_private_session_charged(client: AsyncClient, headers_for, premium_member, private_session):
    response = await client.post(
        f"/api/v1/sessions/{private_session.id}/reserve", headers=headers_for(premium_member)
    )
    reservation = response.json()["reservation"]
    assert reservation["is_paid"] is False
    assert reservation["payment_amount"] == 60.0


@pytest.mark.asyncio
async def test_reserve_full_session(client: AsyncClient, auth_headers, full_session):
    """Full session returns 409 and leaves the counter alone."""
    response = await client.post(f"/api/v1/sessions/{full_session.id}/reserve", headers=auth_headers)
    assert response.status_code == 409
    assert response.json()["error"] == "SESSION_FULL"

    detail = await client.get(f"/api/v1/sessions/{full_session.id}")
    assert detail.json()["session"]["current_bookings"] == 5


@pytest.mark.asyncio
async def test_duplicate_reservation(client: AsyncClient, db_session, auth_headers, group_session):
    """Same member reserving the same session twice returns 409 and no second row."""
    first = await client.post(f"/api/v1/sessions/{group_session.id}/reserve", headers=auth_headers)
    assert first.status_code == 201

    second = await client.post(f"/api/v1/sessions/{group_session.id}/reserve", headers=auth_headers)
    assert second.status_code == 409
    assert second.json()["error"] == "DUPLICATE_RESERVATION"

    count = await db_session.scalar(
        select(func.count(Reservation.id)).where(Reservation.session_id == group_session.id)
    )
    assert count == 1
    await db_session.refresh(group_session)
    assert group_session.current_bookings == 1


@pytest.mark.asyncio
async def test_reserve_after_cancel_is_rejected(client: AsyncClient, auth_headers, group_session):
    """A (member, session) pair gets one reservation, ever."""
    first = await client.post(f"/api/v1/sessions/{group_session.id}/reserve", headers=auth_headers)
    reservation_id = first.json()["reservation"]["id"]
    cancel = await client.put(f"/api/v1/reservations/{reservation_id}/cancel", headers=auth_headers)
    assert cancel.status_code == 200

    again = await client.post(f"/api/v1/sessions/{group_session.id}/reserve", headers=auth_headers)
    assert again.status_code == 409


@pytest.mark.asyncio
async def test_reserve_inactive_session(client: AsyncClient, auth_headers, make_session):
    session = await make_session(is_active=False)
    response = await client.post(f"/api/v1/sessions/{session.id}/reserve", headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "SESSION_INACTIVE"


@pytest.mark.asyncio
async def test_reserve_missing_session(client: AsyncClient, auth_headers):
    response = await client.post("/api/v1/sessions/424242/reserve", headers=auth_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_engine_errors(db_session, test_user, make_session):
    """Service-level failures raise domain errors without touching counters."""
    inactive = await make_session(is_active=False)
    full = await make_session(max_capacity=1, current_bookings=1)
    inactive_id, full_id, user_id = inactive.id, full.id, test_user.id

    with pytest.raises(NotFoundError):
        await reserve_session(db_session, user_id, 999)
    with pytest.raises(InvalidStateError):
        await reserve_session(db_session, user_id, inactive_id)
    with pytest.raises(ConflictError) as exc_info:
        await reserve_session(db_session, user_id, full_id)
    assert exc_info.value.error_code == "SESSION_FULL"


@pytest.mark.asyncio
async def test_my_reservations(client: AsyncClient, auth_headers, make_session):
    first = await make_session(name="A")
    second = await make_session(name="B")
    await client.post(f"/api/v1/sessions/{first.id}/reserve", headers=auth_headers)
    booked = await client.post(f"/api/v1/sessions/{second.id}/reserve", headers=auth_headers)
    await client.put(
        f"/api/v1/reservations/{booked.json()['reservation']['id']}/cancel", headers=auth_headers
    )

    response = await client.get("/api/v1/reservations/me", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["total"] == 2

    response = await client.get("/api/v1/reservations/me", params={"status": "cancelled"}, headers=auth_headers)
    data = response.json()
    assert data["total"] == 1
    assert data["reservations"][0]["session_id"] == second.id


@pytest.mark.asyncio
async def test_get_reservation_owner_or_admin(
    client: AsyncClient, auth_headers, admin_headers, headers_for, premium_member, group_session
):
    booked = await client.post(f"/api/v1/sessions/{group_session.id}/reserve", headers=auth_headers)
    reservation_id = booked.json()["reservation"]["id"]

    assert (await client.get(f"/api/v1/reservations/{reservation_id}", headers=auth_headers)).status_code == 200
    assert (await client.get(f"/api/v1/reservations/{reservation_id}", headers=admin_headers)).status_code == 200

    other = await client.get(f"/api/v1/reservations/{reservation_id}", headers=headers_for(premium_member))
    assert other.status_code == 403


@pytest.mark.asyncio
async def test_relationships_never_lazy_load(db_session, test_user, group_session):
    """Related rows are read through explicit queries, never attribute access."""
    result = await reserve_session(db_session, test_user.id, group_session.id)
    reservation = await db_session.get(Reservation, result.reservation.id)

    with pytest.raises(InvalidRequestError):
        reservation.session
    with pytest.raises(InvalidRequestError):
        reservation.user
