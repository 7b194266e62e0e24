"""
Payment ledger: reconciliation paths, bank info and the admin list
"""
import re
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path

import pytest
from sqlalchemy import update

from app.core.exceptions import (
    ForbiddenException,
    IllegalTransitionException,
    NotFoundException,
    ValidationException,
)
from app.models import BookingStatus, Payment, PaymentMethod, PaymentStatus
from app.schemas.booking import BookingCreate
from app.schemas.payment import PaymentFilters
from app.services.booking_service import BookingService
from app.services.lifecycle_service import BookingLifecycleService
from app.services.payment_service import PaymentService
from app.services.receipt_storage import UploadedReceipt

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


async def cash_booking(database, user, room_id=5, check_in=date(2025, 4, 1)):
    return await BookingService(database).create_booking(
        user,
        BookingCreate(
            room_id=room_id,
            check_in_date=check_in,
            check_out_date=check_in + timedelta(days=2),
            guest_count=2,
            total_price=Decimal("2000000"),
            payment_method="cash",
        ),
    )


class TestConfirmDeposit:
    @pytest.mark.asyncio
    async def test_marks_deposit_and_booking(self, database, users):
        booking = await cash_booking(database, users["guest"])
        service = PaymentService(database)

        payment = await service.confirm_deposit(
            users["guest"], booking.payments[0].id, "TXN-123"
        )

        assert payment.payment_status == PaymentStatus.COMPLETED
        assert payment.payment_date is not None
        assert payment.transaction_id == "TXN-123"

        refreshed = await BookingService(database).get_booking(booking.id, users["guest"])
        assert refreshed.deposit_paid is True
        # deposit does not move the booking status
        assert refreshed.status == BookingStatus.PENDING

    @pytest.mark.asyncio
    async def test_already_completed(self, database, users):
        booking = await cash_booking(database, users["guest"])
        service = PaymentService(database)
        await service.confirm_deposit(users["guest"], booking.payments[0].id)

        with pytest.raises(IllegalTransitionException) as exc_info:
            await service.confirm_deposit(users["guest"], booking.payments[0].id)
        assert exc_info.value.message == "Payment already completed"
        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_missing_payment_id(self, database, users):
        with pytest.raises(ValidationException):
            await PaymentService(database).confirm_deposit(users["guest"], None)

    @pytest.mark.asyncio
    async def test_unknown_payment(self, database, users):
        with pytest.raises(NotFoundException):
            await PaymentService(database).confirm_deposit(users["guest"], 999)

    @pytest.mark.asyncio
    async def test_other_customer_forbidden(self, database, users):
        booking = await cash_booking(database, users["guest"])
        with pytest.raises(ForbiddenException):
            await PaymentService(database).confirm_deposit(
                users["other"], booking.payments[0].id
            )


class TestConfirmBankTransfer:
    @pytest.mark.asyncio
    async def test_with_receipt(self, database, users, receipt_storage):
        booking = await cash_booking(database, users["guest"])
        service = PaymentService(database, receipt_storage)

        payment = await service.confirm_bank_transfer(
            users["guest"],
            booking.id,
            receipt=UploadedReceipt("receipt.png", "image/png", PNG_BYTES),
        )

        assert payment.payment_status == PaymentStatus.COMPLETED
        assert re.fullmatch(rf"TXN-{booking.booking_number}-\d{{13}}", payment.transaction_id)
        assert Path(payment.receipt_path).read_bytes() == PNG_BYTES

    @pytest.mark.asyncio
    async def test_rejects_unsupported_receipt(self, database, users, receipt_storage):
        booking = await cash_booking(database, users["guest"])
        service = PaymentService(database, receipt_storage)

        with pytest.raises(ValidationException):
            await service.confirm_bank_transfer(
                users["guest"],
                booking.id,
                receipt=UploadedReceipt("receipt.txt", "text/plain", b"hello"),
            )

        payments = await service.list_booking_payments(booking.id, users["guest"])
        assert payments[0].payment_status == PaymentStatus.PENDING

    @pytest.mark.asyncio
    async def test_no_pending_payment(self, database, users, receipt_storage):
        booking = await BookingService(database).create_booking(
            users["guest"],
            BookingCreate(
                room_id=5,
                check_in_date=date(2025, 3, 1),
                check_out_date=date(2025, 3, 3),
                total_price=Decimal("1000000"),
                payment_method="bank_transfer",
            ),
        )
        with pytest.raises(NotFoundException):
            await PaymentService(database, receipt_storage).confirm_bank_transfer(
                users["guest"], booking.id, transaction_id="TXN-1"
            )

    @pytest.mark.asyncio
    async def test_second_claim_rejected(self, database, users, receipt_storage):
        booking = await cash_booking(database, users["guest"])
        service = PaymentService(database, receipt_storage)
        await service.confirm_bank_transfer(users["guest"], booking.id, transaction_id="TXN-1")

        with pytest.raises(IllegalTransitionException):
            await service.confirm_bank_transfer(users["guest"], booking.id, transaction_id="TXN-2")


class TestNotify:
    @pytest.mark.asyncio
    async def test_notify_completes_with_note(self, database, users):
        booking = await cash_booking(database, users["guest"])
        service = PaymentService(database)

        payment = await service.notify_payment(
            users["guest"], booking.payments[0].id, "Paid from ACB app"
        )

        assert payment.payment_status == PaymentStatus.COMPLETED
        assert payment.notes == "Paid from ACB app"
        refreshed = await BookingService(database).get_booking(booking.id, users["guest"])
        assert refreshed.deposit_paid is True

    @pytest.mark.asyncio
    async def test_notify_twice(self, database, users):
        booking = await cash_booking(database, users["guest"])
        service = PaymentService(database)
        await service.notify_payment(users["guest"], booking.payments[0].id)

        with pytest.raises(IllegalTransitionException):
            await service.notify_payment(users["guest"], booking.payments[0].id)


class TestOnlyPendingPaymentsComplete:
    @pytest.mark.asyncio
    async def test_refunded_payment_rejected(self, database, users):
        booking = await cash_booking(database, users["guest"])
        payment_id = booking.payments[0].id
        async with database.session() as session:
            async with session.begin():
                await session.execute(
                    update(Payment)
                    .where(Payment.id == payment_id)
                    .values(payment_status=PaymentStatus.REFUNDED)
                )

        with pytest.raises(IllegalTransitionException) as exc_info:
            await PaymentService(database).confirm_deposit(users["guest"], payment_id)
        assert exc_info.value.message == "Payment is 'refunded' and can no longer be confirmed"

        payments = await PaymentService(database).list_booking_payments(booking.id, users["guest"])
        assert payments[0].payment_status == PaymentStatus.REFUNDED

    @pytest.mark.asyncio
    async def test_deposit_on_cancelled_booking_rejected(self, database, users):
        booking = await cash_booking(database, users["guest"])
        await BookingLifecycleService(database).cancel(booking.id, users["guest"])
        service = PaymentService(database)

        with pytest.raises(IllegalTransitionException):
            await service.notify_payment(users["guest"], booking.payments[0].id)
        with pytest.raises(IllegalTransitionException):
            await service.confirm_deposit(users["guest"], booking.payments[0].id)

        refreshed = await BookingService(database).get_booking(booking.id, users["guest"])
        assert refreshed.deposit_paid is False
        assert refreshed.payments[0].payment_status == PaymentStatus.PENDING


class TestBankInfo:
    @pytest.mark.asyncio
    async def test_bank_info_uses_booking_number(self, database, users):
        booking = await cash_booking(database, users["guest"])
        payment, bank_info = await PaymentService(database).get_bank_transfer_info(
            booking.payments[0].id, users["guest"]
        )

        assert payment.id == booking.payments[0].id
        assert bank_info.content == booking.booking_number
        assert bank_info.amount == Decimal("400000")
        assert bank_info.qr_url.startswith("https://img.vietqr.io/image/")
        assert f"addInfo={booking.booking_number}" in bank_info.qr_url
        assert "amount=400000&" in bank_info.qr_url

    @pytest.mark.asyncio
    async def test_bank_info_forbidden_for_others(self, database, users):
        booking = await cash_booking(database, users["guest"])
        with pytest.raises(ForbiddenException):
            await PaymentService(database).get_bank_transfer_info(
                booking.payments[0].id, users["other"]
            )


class TestListPayments:
    @pytest.mark.asyncio
    async def test_summary_counts_completed_only(self, database, users):
        service = PaymentService(database)
        first = await cash_booking(database, users["guest"], room_id=1)
        await cash_booking(database, users["guest"], room_id=2)
        await service.confirm_deposit(users["guest"], first.payments[0].id)

        payments, total, revenue = await service.list_payments(PaymentFilters())
        assert total == 2
        assert len(payments) == 2
        assert revenue == Decimal("400000")
        assert await service.total_revenue() == Decimal("400000")

    @pytest.mark.asyncio
    async def test_filters(self, database, users):
        service = PaymentService(database)
        first = await cash_booking(database, users["guest"], room_id=1)
        await cash_booking(database, users["guest"], room_id=2)
        await service.confirm_deposit(users["guest"], first.payments[0].id)

        _, total, revenue = await service.list_payments(
            PaymentFilters(status=PaymentStatus.PENDING)
        )
        assert total == 1
        assert revenue == Decimal("0")

        payments, total, _ = await service.list_payments(
            PaymentFilters(search=first.booking_number)
        )
        assert total == 1
        assert payments[0].booking.booking_number == first.booking_number

        _, total, _ = await service.list_payments(PaymentFilters(method=PaymentMethod.CASH))
        assert total == 0

        today = datetime.now(timezone.utc).date()
        _, total, _ = await service.list_payments(
            PaymentFilters(date_from=today, date_to=today)
        )
        assert total == 2
        _, total, _ = await service.list_payments(
            PaymentFilters(date_to=today - timedelta(days=1))
        )
        assert total == 0

    @pytest.mark.asyncio
    async def test_pagination(self, database, users):
        service = PaymentService(database)
        for room_id in (1, 2, 3):
            await cash_booking(database, users["guest"], room_id=room_id)

        payments, total, _ = await service.list_payments(PaymentFilters(page=2, limit=2))
        assert total == 3
        assert len(payments) == 1
