import logging
from datetime import datetime, time, timedelta, timezone
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import select, func
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
    Payment,
    PaymentStatus,
    PaymentType,
    User,
)
from app.schemas.payment import BankInfo, PaymentFilters
from app.services.receipt_storage import ReceiptStorage, UploadedReceipt
from app.utils.identifiers import generate_transaction_id, vietqr_url

logger = logging.getLogger(__name__)


class PaymentService:
    """
    Payment ledger: deposit/settlement rows and their reconciliation.

    Reconciliation here is a customer claim (receipt upload or a plain
    notification). Nothing in this service verifies money actually arrived.
    """

    def __init__(self, database: Database, receipt_storage: Optional[ReceiptStorage] = None):
        self.database = database
        self.receipt_storage = receipt_storage or ReceiptStorage()

    @staticmethod
    def _ensure_owner(booking: Booking, user: User) -> None:
        if booking.user_id != user.id and not user.is_staff:
            raise ForbiddenException(messages.FORBIDDEN)

    async def _get_payment(self, db: AsyncSession, payment_id: Optional[int], for_update: bool = False) -> Payment:
        if not payment_id:
            raise ValidationException(messages.PAYMENT_ID_REQUIRED)
        stmt = (
            select(Payment)
            .options(selectinload(Payment.booking))
            .where(Payment.id == payment_id)
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await db.execute(stmt)
        payment = result.scalar_one_or_none()
        if not payment:
            raise NotFoundException(messages.PAYMENT_NOT_FOUND)
        return payment

    @staticmethod
    def _mark_completed(
        payment: Payment,
        booking: Booking,
        transaction_id: Optional[str] = None,
        notes: Optional[str] = None,
        receipt_path: Optional[str] = None,
    ) -> None:
        if payment.payment_status == PaymentStatus.COMPLETED:
            raise IllegalTransitionException(messages.PAYMENT_ALREADY_COMPLETED)
        if payment.payment_status != PaymentStatus.PENDING:
            raise IllegalTransitionException(
                messages.payment_not_pending(payment.payment_status.value)
            )
        if booking.status == BookingStatus.CANCELLED:
            raise IllegalTransitionException(messages.PAYMENT_ON_CANCELLED_BOOKING)

        now = datetime.now(timezone.utc)
        payment.payment_status = PaymentStatus.COMPLETED
        payment.payment_date = now
        payment.updated_at = now
        if transaction_id:
            payment.transaction_id = transaction_id
        if notes:
            payment.notes = notes
        if receipt_path:
            payment.receipt_path = receipt_path

        # Deposit state lives on the booking; booking status is not touched
        if payment.payment_type == PaymentType.DEPOSIT:
            booking.deposit_paid = True
            booking.updated_at = now

        logger.info(
            f"Payment #{payment.id} ({payment.payment_type.value}, {payment.amount}) "
            f"for booking {booking.booking_number} marked completed"
        )

    async def list_booking_payments(self, booking_id: int, user: User) -> List[Payment]:
        async with self.database.session() as session:
            stmt = (
                select(Booking)
                .options(selectinload(Booking.payments))
                .where(Booking.id == booking_id)
            )
            booking = (await session.execute(stmt)).scalar_one_or_none()
        if not booking:
            raise NotFoundException(messages.BOOKING_NOT_FOUND)
        self._ensure_owner(booking, user)
        return list(booking.payments)

    async def get_bank_transfer_info(self, payment_id: int, user: User) -> Tuple[Payment, BankInfo]:
        async with self.database.session() as session:
            payment = await self._get_payment(session, payment_id)
        self._ensure_owner(payment.booking, user)

        booking_number = payment.booking.booking_number
        bank_info = BankInfo(
            bank_name=settings.bank_name,
            bank_code=settings.bank_code,
            account_number=settings.bank_account_number,
            account_name=settings.bank_account_name,
            amount=payment.amount,
            content=booking_number,
            qr_url=vietqr_url(
                settings.bank_code,
                settings.bank_account_number,
                settings.bank_account_name,
                booking_number,
                payment.amount,
            ),
        )
        return payment, bank_info

    async def confirm_deposit(
        self, user: User, payment_id: Optional[int], transaction_id: Optional[str] = None
    ) -> Payment:
        """Receipt-less confirmation of a specific payment by id."""
        async with self.database.session() as session:
            async with session.begin():
                payment = await self._get_payment(session, payment_id, for_update=True)
                self._ensure_owner(payment.booking, user)
                self._mark_completed(payment, payment.booking, transaction_id=transaction_id)
            return payment

    async def confirm_bank_transfer(
        self,
        user: User,
        booking_id: Optional[int],
        transaction_id: Optional[str] = None,
        receipt: Optional[UploadedReceipt] = None,
    ) -> Payment:
        """
        Customer claims a bank transfer for a booking, optionally with a
        receipt image. Applies to the pending deposit if there is one,
        otherwise to the most recent pending payment.
        """
        if not booking_id:
            raise ValidationException("Booking ID is required")
        if receipt is not None:
            self.receipt_storage.validate(receipt)

        receipt_path: Optional[str] = None
        async with self.database.session() as session:
            try:
                async with session.begin():
                    stmt = (
                        select(Booking)
                        .options(selectinload(Booking.payments))
                        .where(Booking.id == booking_id)
                        .with_for_update()
                    )
                    booking = (await session.execute(stmt)).scalar_one_or_none()
                    if not booking:
                        raise NotFoundException(messages.BOOKING_NOT_FOUND)
                    self._ensure_owner(booking, user)

                    pending = [
                        p for p in booking.payments if p.payment_status == PaymentStatus.PENDING
                    ]
                    if not pending:
                        if any(p.payment_status == PaymentStatus.COMPLETED for p in booking.payments):
                            raise IllegalTransitionException(messages.PAYMENT_ALREADY_COMPLETED)
                        raise NotFoundException(messages.NO_PENDING_PAYMENT)
                    deposits = [p for p in pending if p.payment_type == PaymentType.DEPOSIT]
                    payment = deposits[0] if deposits else pending[-1]

                    if receipt is not None:
                        receipt_path = await self.receipt_storage.save(
                            booking.booking_number, receipt
                        )
                    self._mark_completed(
                        payment,
                        booking,
                        transaction_id=transaction_id
                        or generate_transaction_id(booking.booking_number),
                        receipt_path=receipt_path,
                    )
            except Exception:
                if receipt_path:
                    await self.receipt_storage.discard(receipt_path)
                raise
            return payment

    async def notify_payment(
        self, user: User, payment_id: Optional[int], notes: Optional[str] = None
    ) -> Payment:
        """Lightweight "I have paid" acknowledgment, no receipt."""
        async with self.database.session() as session:
            async with session.begin():
                payment = await self._get_payment(session, payment_id, for_update=True)
                self._ensure_owner(payment.booking, user)
                self._mark_completed(
                    payment, payment.booking, notes=notes or "Customer notified payment completion"
                )
            return payment

    @staticmethod
    def _filter_clauses(filters: PaymentFilters) -> list:
        clauses = []
        if filters.search:
            clauses.append(Booking.booking_number.ilike(f"%{filters.search.strip()}%"))
        if filters.method:
            clauses.append(Payment.payment_method == filters.method)
        if filters.status:
            clauses.append(Payment.payment_status == filters.status)

        paid_at = func.coalesce(Payment.payment_date, Payment.created_at)
        if filters.date_from:
            clauses.append(paid_at >= datetime.combine(filters.date_from, time.min))
        if filters.date_to:
            # inclusive end date
            clauses.append(
                paid_at < datetime.combine(filters.date_to + timedelta(days=1), time.min)
            )
        return clauses

    async def list_payments(self, filters: PaymentFilters) -> Tuple[List[Payment], int, Decimal]:
        """Returns (page of payments, total matching, completed revenue matching)."""
        clauses = self._filter_clauses(filters)

        async with self.database.session() as session:
            base = select(Payment.id).join(Payment.booking).where(*clauses)
            total = (
                await session.execute(select(func.count()).select_from(base.subquery()))
            ).scalar_one()

            revenue_stmt = (
                select(func.coalesce(func.sum(Payment.amount), 0))
                .join(Payment.booking)
                .where(*clauses, Payment.payment_status == PaymentStatus.COMPLETED)
            )
            revenue = (await session.execute(revenue_stmt)).scalar_one()

            stmt = (
                select(Payment)
                .join(Payment.booking)
                .options(selectinload(Payment.booking))
                .where(*clauses)
                .order_by(Payment.created_at.desc(), Payment.id.desc())
                .offset((filters.page - 1) * filters.limit)
                .limit(filters.limit)
            )
            payments = list((await session.execute(stmt)).scalars().all())

        return payments, total, Decimal(str(revenue or 0))

    async def total_revenue(self) -> Decimal:
        """Sum of completed payments; the reporting dashboard reads this."""
        _, _, revenue = await self.list_payments(PaymentFilters(limit=1))
        return revenue
