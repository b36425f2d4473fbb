"""
Authentication service: member registration, login and the default admin.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException, status

from gym_booking.models.user import User
from gym_booking.schemas.user import UserCreate, UserLogin
from gym_booking.core.config import get_settings
from gym_booking.core.security import hash_password, verify_password, create_access_token
from gym_booking.core.logging import get_logger
from gym_booking.services.pricing import initial_benefits

logger = get_logger(__name__)


async def register_user(db: AsyncSession, user_data: UserCreate) -> User:
    """
    Register a new member. Benefit counters start at the tier's allowance.
    Raises 409 if email or username already exists.
    """
    result = await db.execute(select(User).where(User.email == user_data.email))
    if result.scalar_one_or_none():
        logger.warning("registration_failed", reason="email_exists", email=user_data.email)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already registered",
        )

    result = await db.execute(select(User).where(User.username == user_data.username))
    if result.scalar_one_or_none():
        logger.warning("registration_failed", reason="username_exists", username=user_data.username)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Username already taken",
        )

    user = User(
        email=user_data.email,
        username=user_data.username,
        name=user_data.name,
        phone=user_data.phone,
        hashed_password=hash_password(user_data.password),
        membership_type=user_data.membership_type,
        membership_status="pending",
        role="member",
        **initial_benefits(user_data.membership_type),
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    logger.info(
        "user_registered",
        user_id=user.id,
        email=user.email,
        membership_type=user.membership_type,
    )
    return user


async def authenticate_user(db: AsyncSession, login_data: UserLogin) -> str:
    """
    Authenticate user and return JWT access token.
    Raises 401 if credentials are invalid.
    """
    result = await db.execute(select(User).where(User.email == login_data.email))
    user = result.scalar_one_or_none()

    if not user or not verify_password(login_data.password, user.hashed_password):
        logger.warning("login_failed", email=login_data.email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is deactivated",
        )

    token = create_access_token(data={"sub": str(user.id), "role": user.role})
    logger.info("user_logged_in", user_id=user.id)
    return token


async def ensure_default_admin(db: AsyncSession) -> None:
    """Create the first admin from settings unless an admin already exists."""
    settings = get_settings()
    existing = await db.execute(select(User.id).where(User.role == "admin").limit(1))
    if existing.scalar_one_or_none() is not None:
        logger.info("default_admin_exists")
        return

    admin = User(
        email=settings.ADMIN_EMAIL,
        username="admin",
        name="System Admin",
        hashed_password=hash_password(settings.ADMIN_PASSWORD),
        membership_type="elite",
        membership_status="active",
        role="admin",
        **initial_benefits("elite"),
    )
    db.add(admin)
    await db.commit()
    logger.warning("default_admin_created", email=settings.ADMIN_EMAIL, message="Change the password after first login")
