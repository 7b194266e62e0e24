import logging
from contextlib import asynccontextmanager
from decimal import Decimal, ROUND_HALF_UP
from typing import AsyncIterator, List, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.config import settings
from app.core.exceptions import (
    ConflictException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from app.core.messages import messages
from app.database import Database
from app.models import (
    Booking,
    BookingPaymentMethod,
    BookingStatus,
    Payment,
    PaymentMethod,
    PaymentStatus,
    PaymentType,
    Room,
    User,
)
from app.schemas.booking import BookingCreate
from app.services.availability_service import AvailabilityService
from app.utils.identifiers import generate_booking_number
from app.utils.validators import validate_stay_dates

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def booking_load_options():
    """Eager loads every relationship BookingOut serializes."""
    return (
        selectinload(Booking.room).selectinload(Room.room_type),
        selectinload(Booking.payments),
    )


def compute_deposit(total_price: Decimal, percentage: int) -> Decimal:
    return (total_price * Decimal(percentage) / Decimal(100)).quantize(
        CENTS, rounding=ROUND_HALF_UP
    )


class BookingService:
    """Booking creation (the "factory") and the read side of bookings."""

    def __init__(
        self,
        database: Database,
        deposit_percentage: Optional[int] = None,
        lock_rooms: Optional[bool] = None,
    ):
        self.database = database
        self.deposit_percentage = (
            settings.deposit_percentage if deposit_percentage is None else deposit_percentage
        )
        self.lock_rooms = (
            settings.booking_room_lock_enabled if lock_rooms is None else lock_rooms
        )

    @asynccontextmanager
    async def _room_guard(self, room_id: int) -> AsyncIterator[None]:
        if not self.lock_rooms:
            yield
            return
        async with self.database.room_locks.hold(room_id):
            yield

    async def _ensure_room_exists(self, room_id: int) -> None:
        # Room locks are only ever taken for real rooms
        async with self.database.session() as session:
            found = (
                await session.execute(select(Room.id).where(Room.id == room_id))
            ).scalar_one_or_none()
        if found is None:
            raise NotFoundException(messages.ROOM_NOT_FOUND)

    async def _load_booking(self, db: AsyncSession, booking_id: int) -> Optional[Booking]:
        stmt = (
            select(Booking)
            .options(*booking_load_options())
            .where(Booking.id == booking_id)
            .execution_options(populate_existing=True)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    def _validate_request(self, data: BookingCreate) -> Tuple[BookingPaymentMethod, int]:
        if (
            not data.room_id
            or data.check_in_date is None
            or data.check_out_date is None
            or data.total_price is None
        ):
            raise ValidationException(messages.MISSING_BOOKING_FIELDS)

        is_valid, error = validate_stay_dates(data.check_in_date, data.check_out_date)
        if not is_valid:
            raise ValidationException(error)

        if data.total_price <= 0:
            raise ValidationException(messages.INVALID_TOTAL_PRICE)

        try:
            payment_method = BookingPaymentMethod(data.payment_method or "cash")
        except ValueError:
            raise ValidationException(messages.INVALID_PAYMENT_METHOD)

        guest_count = 1 if data.guest_count is None else data.guest_count
        if guest_count < 1:
            raise ValidationException(messages.INVALID_GUEST_COUNT)

        return payment_method, guest_count

    async def create_booking(self, user: User, data: BookingCreate) -> Booking:
        """
        Create a pending booking, plus a pending deposit payment when the
        booking is paid in cash.

        Room lookup, overlap check, booking insert and deposit insert run in
        one transaction; any failure leaves neither row behind.
        """
        payment_method, guest_count = self._validate_request(data)
        requires_deposit = payment_method == BookingPaymentMethod.CASH
        total_price = Decimal(data.total_price)

        await self._ensure_room_exists(data.room_id)
        async with self._room_guard(data.room_id):
            async with self.database.session() as session:
                async with session.begin():
                    room_result = await session.execute(
                        select(Room)
                        .options(selectinload(Room.room_type))
                        .where(Room.id == data.room_id)
                        .with_for_update()
                    )
                    room = room_result.scalar_one_or_none()
                    if not room:
                        raise NotFoundException(messages.ROOM_NOT_FOUND)

                    if await AvailabilityService.is_overlapping(
                        session, room.id, data.check_in_date, data.check_out_date
                    ):
                        logger.warning(
                            f"Cannot create booking: dates {data.check_in_date} - {data.check_out_date} "
                            f"not available for room {room.room_number}"
                        )
                        raise ConflictException(messages.ROOM_ALREADY_BOOKED)

                    nights = (data.check_out_date - data.check_in_date).days
                    expected = room.room_type.base_price * nights
                    if expected and total_price != expected:
                        # Client-computed price is trusted; surface the drift
                        logger.warning(
                            f"Client total_price {total_price} differs from "
                            f"{nights} nights x {room.room_type.base_price} = {expected} "
                            f"(room {room.room_number})"
                        )

                    booking = Booking(
                        booking_number=generate_booking_number(),
                        user_id=user.id,
                        room_id=room.id,
                        check_in_date=data.check_in_date,
                        check_out_date=data.check_out_date,
                        num_guests=guest_count,
                        total_price=total_price,
                        special_requests=data.notes or None,
                        status=BookingStatus.PENDING,
                        payment_method=payment_method,
                        requires_deposit=requires_deposit,
                        deposit_paid=False,
                    )
                    session.add(booking)
                    await session.flush()

                    if requires_deposit:
                        # Deposit is always settled online, whatever the booking method
                        session.add(
                            Payment(
                                booking_id=booking.id,
                                amount=compute_deposit(total_price, self.deposit_percentage),
                                payment_method=PaymentMethod.BANK_TRANSFER,
                                payment_type=PaymentType.DEPOSIT,
                                deposit_percentage=self.deposit_percentage,
                                payment_status=PaymentStatus.PENDING,
                                notes=messages.deposit_note(
                                    self.deposit_percentage, booking.booking_number
                                ),
                            )
                        )
                        await session.flush()

                logger.info(
                    f"Booking {booking.booking_number} created: room {room.room_number}, "
                    f"{booking.check_in_date} - {booking.check_out_date}, "
                    f"deposit={'yes' if requires_deposit else 'no'}"
                )
                return await self._load_booking(session, booking.id)

    async def list_user_bookings(self, user: User) -> List[Booking]:
        async with self.database.session() as session:
            stmt = (
                select(Booking)
                .options(*booking_load_options())
                .where(Booking.user_id == user.id)
                .order_by(Booking.created_at.desc(), Booking.id.desc())
            )
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def get_booking(self, booking_id: int, user: User) -> Booking:
        """Owner or staff only."""
        async with self.database.session() as session:
            booking = await self._load_booking(session, booking_id)
        if not booking:
            raise NotFoundException(messages.BOOKING_NOT_FOUND)
        if booking.user_id != user.id and not user.is_staff:
            raise ForbiddenException(messages.FORBIDDEN)
        return booking

    async def get_booking_by_number(self, booking_number: str) -> Booking:
        async with self.database.session() as session:
            stmt = (
                select(Booking)
                .options(selectinload(Booking.room).selectinload(Room.room_type))
                .where(Booking.booking_number == booking_number)
            )
            result = await session.execute(stmt)
            booking = result.scalar_one_or_none()
        if not booking:
            raise NotFoundException(messages.BOOKING_NOT_FOUND)
        return booking

    async def list_bookings(
        self,
        status: Optional[BookingStatus] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Booking], int]:
        """Back-office listing, newest first. Returns (page items, total count)."""
        filters = []
        if status:
            filters.append(Booking.status == status)
        if search:
            filters.append(Booking.booking_number.ilike(f"%{search.strip()}%"))

        async with self.database.session() as session:
            count_stmt = select(func.count(Booking.id)).where(*filters)
            total = (await session.execute(count_stmt)).scalar_one()

            stmt = (
                select(Booking)
                .options(*booking_load_options())
                .where(*filters)
                .order_by(Booking.created_at.desc(), Booking.id.desc())
                .offset((page - 1) * limit)
                .limit(limit)
            )
            result = await session.execute(stmt)
            return list(result.scalars().all()), total
