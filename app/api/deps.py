from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ForbiddenException, UnauthorizedException
from app.core.messages import messages
from app.core.security import decode_access_token
from app.database import get_db
from app.models import User
from app.services.booking_service import BookingService
from app.services.lifecycle_service import BookingLifecycleService
from app.services.payment_service import PaymentService

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Resolve the caller from the `Authorization: Bearer <token>` header.
    Tokens are issued by the auth subsystem; `sub` is the user id.
    """
    if credentials is None or not credentials.credentials:
        raise UnauthorizedException("Access token is required")

    payload = decode_access_token(credentials.credentials)
    if not payload:
        raise UnauthorizedException("Invalid token")

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise UnauthorizedException("Invalid token")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise UnauthorizedException("User not found")

    return user


async def get_current_staff(user: User = Depends(get_current_user)) -> User:
    """Admin or staff role, for back-office endpoints."""
    if not user.is_staff:
        raise ForbiddenException(messages.STAFF_ONLY)
    return user


def get_booking_service(request: Request) -> BookingService:
    return request.app.state.booking_service


def get_lifecycle_service(request: Request) -> BookingLifecycleService:
    return request.app.state.lifecycle_service


def get_payment_service(request: Request) -> PaymentService:
    return request.app.state.payment_service
