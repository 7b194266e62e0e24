import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.config import settings
from app.core.exceptions import (
    ForbiddenException,
    IllegalTransitionException,
    NotFoundException,
    ValidationException,
)
from app.core.messages import messages
from app.database import Database
from app.models import (
    Booking,
    BookingStatus,
    CheckInCheckOut,
    PaymentStatus,
    PaymentType,
    User,
)
from app.schemas.booking import CheckInRequest, CheckOutRequest
from app.services.booking_service import booking_load_options

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


@dataclass
class CancellationQuote:
    fee_percentage: int
    forfeited_amount: Decimal
    refundable_amount: Decimal
    policy: str


@dataclass
class Settlement:
    room_fee: Decimal
    service_fee: Decimal
    additional_charges: Decimal
    discount: Decimal
    deposit_paid: Decimal
    total: Decimal
    remaining_due: Decimal


@dataclass
class TransitionResult:
    booking: Booking
    warnings: List[str] = field(default_factory=list)
    record: Optional[CheckInCheckOut] = None
    settlement: Optional[Settlement] = None
    cancellation: Optional[CancellationQuote] = None


class BookingLifecycleService:
    """
    Status machine of a booking:

        pending -> confirmed -> checked_in -> checked_out
        pending / confirmed -> cancelled

    checked_out and cancelled are terminal. pending -> checked_in is let
    through with a warning (the front desk decides, we only flag it).
    """

    ALLOWED_TRANSITIONS = {
        BookingStatus.PENDING: {
            BookingStatus.CONFIRMED,
            BookingStatus.CHECKED_IN,
            BookingStatus.CANCELLED,
        },
        BookingStatus.CONFIRMED: {
            BookingStatus.CHECKED_IN,
            BookingStatus.CANCELLED,
        },
        BookingStatus.CHECKED_IN: {
            BookingStatus.CHECKED_OUT,
        },
    }

    def __init__(self, database: Database, cancellation_fee_percentage: Optional[int] = None):
        self.database = database
        self.cancellation_fee_percentage = (
            settings.cancellation_fee_percentage
            if cancellation_fee_percentage is None
            else cancellation_fee_percentage
        )

    @classmethod
    def can_transition(cls, current: BookingStatus, target: BookingStatus) -> bool:
        return target in cls.ALLOWED_TRANSITIONS.get(current, set())

    @staticmethod
    def quote_cancellation(total_price: Decimal, fee_percentage: int) -> CancellationQuote:
        forfeited = (Decimal(total_price) * Decimal(fee_percentage) / Decimal(100)).quantize(
            CENTS, rounding=ROUND_HALF_UP
        )
        return CancellationQuote(
            fee_percentage=fee_percentage,
            forfeited_amount=forfeited,
            refundable_amount=Decimal(total_price) - forfeited,
            policy=messages.cancellation_policy(fee_percentage),
        )

    @staticmethod
    def compute_settlement(
        room_fee: Decimal,
        service_fee: Decimal = Decimal("0"),
        additional_charges: Decimal = Decimal("0"),
        discount: Decimal = Decimal("0"),
        deposit_paid: Decimal = Decimal("0"),
    ) -> Settlement:
        total = room_fee + service_fee + additional_charges - discount
        return Settlement(
            room_fee=room_fee,
            service_fee=service_fee,
            additional_charges=additional_charges,
            discount=discount,
            deposit_paid=deposit_paid,
            total=total,
            remaining_due=total - deposit_paid,
        )

    @staticmethod
    def _require_staff(actor: User) -> None:
        if not actor.is_staff:
            raise ForbiddenException(messages.STAFF_ONLY)

    async def _load_for_update(self, db: AsyncSession, booking_id: int) -> Booking:
        stmt = (
            select(Booking)
            .options(*booking_load_options(), selectinload(Booking.checkin_checkout))
            .where(Booking.id == booking_id)
            .with_for_update()
        )
        result = await db.execute(stmt)
        booking = result.scalar_one_or_none()
        if not booking:
            raise NotFoundException(messages.BOOKING_NOT_FOUND)
        return booking

    def _apply_status(self, booking: Booking, target: BookingStatus) -> None:
        if not self.can_transition(booking.status, target):
            logger.warning(
                "Invalid booking transition %s -> %s (booking=%s)",
                booking.status.value, target.value, booking.booking_number,
            )
            raise IllegalTransitionException(
                messages.illegal_transition(booking.status.value, target.value)
            )
        old_status = booking.status
        booking.status = target
        booking.updated_at = datetime.now(timezone.utc)
        logger.info(
            f"Booking {booking.booking_number}: {old_status.value} -> {target.value}"
        )

    @staticmethod
    def _record_for(booking: Booking) -> CheckInCheckOut:
        record = booking.checkin_checkout
        if record is None:
            record = CheckInCheckOut(booking_id=booking.id, additional_charges=Decimal("0"))
            booking.checkin_checkout = record
        return record

    async def confirm(self, booking_id: int, actor: User) -> TransitionResult:
        self._require_staff(actor)
        async with self.database.session() as session:
            async with session.begin():
                booking = await self._load_for_update(session, booking_id)
                self._apply_status(booking, BookingStatus.CONFIRMED)
            return TransitionResult(booking=booking)

    async def check_in(
        self, booking_id: int, actor: User, data: Optional[CheckInRequest] = None
    ) -> TransitionResult:
        self._require_staff(actor)
        data = data or CheckInRequest()
        warnings: List[str] = []

        async with self.database.session() as session:
            async with session.begin():
                booking = await self._load_for_update(session, booking_id)
                if booking.status == BookingStatus.PENDING:
                    warnings.append(messages.checkin_not_confirmed(booking.status.value))
                    logger.warning(
                        f"Booking {booking.booking_number} checked in while still pending"
                    )
                self._apply_status(booking, BookingStatus.CHECKED_IN)

                record = self._record_for(booking)
                record.checkin_time = datetime.now(timezone.utc)
                record.checkin_by = actor.id
                record.room_condition_checkin = data.room_condition
                if data.notes:
                    record.notes = data.notes
                await session.flush()
            return TransitionResult(booking=booking, warnings=warnings, record=record)

    async def check_out(
        self, booking_id: int, actor: User, data: Optional[CheckOutRequest] = None
    ) -> TransitionResult:
        """
        Moves checked_in -> checked_out and returns the settlement breakdown.
        Only the status and the check-out record are persisted.
        """
        self._require_staff(actor)
        data = data or CheckOutRequest()

        async with self.database.session() as session:
            async with session.begin():
                booking = await self._load_for_update(session, booking_id)
                # Rolled back with the transaction if the settlement is rejected
                self._apply_status(booking, BookingStatus.CHECKED_OUT)

                deposit_paid = sum(
                    (
                        p.amount
                        for p in booking.payments
                        if p.payment_type == PaymentType.DEPOSIT
                        and p.payment_status == PaymentStatus.COMPLETED
                    ),
                    Decimal("0"),
                )
                settlement = self.compute_settlement(
                    room_fee=booking.total_price,
                    service_fee=data.service_fee,
                    additional_charges=data.additional_charges,
                    discount=data.discount,
                    deposit_paid=deposit_paid,
                )
                if settlement.remaining_due < 0:
                    raise ValidationException("Discount and deposit exceed the amount due")

                record = self._record_for(booking)
                record.checkout_time = datetime.now(timezone.utc)
                record.checkout_by = actor.id
                record.room_condition_checkout = data.room_condition
                record.additional_charges = data.additional_charges
                if data.notes:
                    record.notes = data.notes
                await session.flush()
            return TransitionResult(booking=booking, record=record, settlement=settlement)

    async def cancel(self, booking_id: int, actor: User) -> TransitionResult:
        """
        Owner (or staff) cancels a pending/confirmed booking.

        The retained-fee quote is returned for display; no refund payment is
        written and the room status is left alone.
        """
        async with self.database.session() as session:
            async with session.begin():
                booking = await self._load_for_update(session, booking_id)

                if booking.user_id != actor.id and not actor.is_staff:
                    raise ForbiddenException(messages.FORBIDDEN)
                if booking.status == BookingStatus.CANCELLED:
                    raise IllegalTransitionException(messages.BOOKING_ALREADY_CANCELLED)

                self._apply_status(booking, BookingStatus.CANCELLED)

            quote = self.quote_cancellation(
                booking.total_price, self.cancellation_fee_percentage
            )
            return TransitionResult(booking=booking, cancellation=quote)
