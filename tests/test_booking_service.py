"""
Booking creation: overlap rejection, deposit derivation, atomicity
"""
import asyncio
import re
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from app.core.exceptions import (
    ConflictException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from app.models import (
    Booking,
    BookingStatus,
    Payment,
    PaymentMethod,
    PaymentStatus,
    PaymentType,
)
from app.schemas.booking import BookingCreate
from app.services import booking_service as booking_service_module
from app.services.booking_service import BookingService, compute_deposit


def make_request(**overrides) -> BookingCreate:
    data = {
        "room_id": 5,
        "check_in_date": date(2025, 3, 1),
        "check_out_date": date(2025, 3, 3),
        "guest_count": 2,
        "total_price": Decimal("1000000"),
        "payment_method": "bank_transfer",
    }
    data.update(overrides)
    return BookingCreate(**data)


async def count_rows(database, model) -> int:
    async with database.session() as session:
        return (await session.execute(select(func.count()).select_from(model))).scalar_one()


class TestDepositDerivation:
    def test_twenty_percent(self):
        assert compute_deposit(Decimal("2000000"), 20) == Decimal("400000.00")

    def test_rounds_half_up_to_cents(self):
        assert compute_deposit(Decimal("10.03"), 20) == Decimal("2.01")
        assert compute_deposit(Decimal("0.025"), 100) == Decimal("0.03")


class TestCreateBooking:
    @pytest.mark.asyncio
    async def test_bank_transfer_booking_has_no_deposit(self, database, users):
        service = BookingService(database)
        booking = await service.create_booking(users["guest"], make_request())

        assert booking.status == BookingStatus.PENDING
        assert booking.requires_deposit is False
        assert booking.deposit_paid is False
        assert booking.payments == []
        assert await count_rows(database, Payment) == 0

    @pytest.mark.asyncio
    async def test_overlapping_booking_rejected(self, database, users):
        service = BookingService(database)
        await service.create_booking(users["guest"], make_request())

        with pytest.raises(ConflictException) as exc_info:
            await service.create_booking(
                users["other"],
                make_request(
                    check_in_date=date(2025, 3, 2), check_out_date=date(2025, 3, 4)
                ),
            )
        assert exc_info.value.message == "Room already booked for the selected dates"
        assert exc_info.value.status_code == 409
        assert await count_rows(database, Booking) == 1

    @pytest.mark.asyncio
    async def test_cash_booking_creates_pending_deposit(self, database, users):
        service = BookingService(database)
        booking = await service.create_booking(
            users["guest"],
            make_request(
                check_in_date=date(2025, 4, 1),
                check_out_date=date(2025, 4, 3),
                total_price=Decimal("2000000"),
                payment_method="cash",
            ),
        )

        assert booking.requires_deposit is True
        assert len(booking.payments) == 1
        deposit = booking.payments[0]
        assert deposit.payment_type == PaymentType.DEPOSIT
        assert deposit.payment_method == PaymentMethod.BANK_TRANSFER
        assert deposit.payment_status == PaymentStatus.PENDING
        assert deposit.amount == Decimal("400000")
        assert deposit.deposit_percentage == 20

    @pytest.mark.asyncio
    async def test_payment_method_defaults_to_cash(self, database, users):
        service = BookingService(database)
        booking = await service.create_booking(users["guest"], make_request(payment_method=None))

        assert booking.requires_deposit is True
        assert len(booking.payments) == 1

    @pytest.mark.asyncio
    async def test_adjacent_stay_allowed(self, database, users):
        service = BookingService(database)
        await service.create_booking(users["guest"], make_request())

        booking = await service.create_booking(
            users["other"],
            make_request(check_in_date=date(2025, 3, 3), check_out_date=date(2025, 3, 5)),
        )
        assert booking.check_in_date == date(2025, 3, 3)

    @pytest.mark.asyncio
    async def test_cancelled_booking_frees_range(self, database, users):
        service = BookingService(database)
        first = await service.create_booking(users["guest"], make_request())

        async with database.session() as session:
            async with session.begin():
                row = await session.get(Booking, first.id)
                row.status = BookingStatus.CANCELLED

        second = await service.create_booking(users["other"], make_request())
        assert second.id != first.id

    @pytest.mark.asyncio
    async def test_missing_fields(self, database, users):
        service = BookingService(database)
        with pytest.raises(ValidationException) as exc_info:
            await service.create_booking(users["guest"], make_request(room_id=None))
        assert exc_info.value.message == "Missing required booking fields"

    @pytest.mark.asyncio
    async def test_checkout_before_checkin(self, database, users):
        service = BookingService(database)
        with pytest.raises(ValidationException):
            await service.create_booking(
                users["guest"],
                make_request(check_in_date=date(2025, 3, 3), check_out_date=date(2025, 3, 3)),
            )

    @pytest.mark.asyncio
    async def test_invalid_payment_method(self, database, users):
        service = BookingService(database)
        with pytest.raises(ValidationException):
            await service.create_booking(users["guest"], make_request(payment_method="bitcoin"))

    @pytest.mark.asyncio
    async def test_non_positive_price(self, database, users):
        service = BookingService(database)
        with pytest.raises(ValidationException):
            await service.create_booking(users["guest"], make_request(total_price=Decimal("0")))

    @pytest.mark.asyncio
    async def test_unknown_room(self, database, users):
        service = BookingService(database)
        with pytest.raises(NotFoundException):
            await service.create_booking(users["guest"], make_request(room_id=999))
        assert await count_rows(database, Booking) == 0

    @pytest.mark.asyncio
    async def test_booking_number_format(self, database, users):
        service = BookingService(database)
        booking = await service.create_booking(users["guest"], make_request())
        assert re.fullmatch(r"BK-\d{13}-\d{4}", booking.booking_number)

    @pytest.mark.asyncio
    async def test_deposit_failure_rolls_back_booking(self, database, users, monkeypatch):
        def broken_deposit(total_price, percentage):
            raise RuntimeError("deposit insert failed")

        monkeypatch.setattr(booking_service_module, "compute_deposit", broken_deposit)
        service = BookingService(database)

        with pytest.raises(RuntimeError):
            await service.create_booking(users["guest"], make_request(payment_method="cash"))

        assert await count_rows(database, Booking) == 0
        assert await count_rows(database, Payment) == 0

    @pytest.mark.asyncio
    async def test_concurrent_requests_single_winner(self, database, users):
        service = BookingService(database)
        results = await asyncio.gather(
            service.create_booking(users["guest"], make_request()),
            service.create_booking(users["other"], make_request()),
            return_exceptions=True,
        )

        created = [r for r in results if isinstance(r, Booking)]
        conflicts = [r for r in results if isinstance(r, ConflictException)]
        assert len(created) == 1
        assert len(conflicts) == 1
        assert await count_rows(database, Booking) == 1
        assert len(database.room_locks) == 0


class TestRoomLocks:
    @pytest.mark.asyncio
    async def test_unknown_rooms_leave_no_locks(self, database, users):
        service = BookingService(database)
        for room_id in range(10000, 10050):
            with pytest.raises(NotFoundException):
                await service.create_booking(users["guest"], make_request(room_id=room_id))

        assert len(database.room_locks) == 0

    @pytest.mark.asyncio
    async def test_locks_released_after_success_and_conflict(self, database, users):
        service = BookingService(database)
        await service.create_booking(users["guest"], make_request())
        with pytest.raises(ConflictException):
            await service.create_booking(users["other"], make_request())

        assert len(database.room_locks) == 0

    @pytest.mark.asyncio
    async def test_lock_kept_while_waited_on(self, database):
        registry = database.room_locks
        entered = asyncio.Event()
        release = asyncio.Event()

        async def holder():
            async with registry.hold(5):
                entered.set()
                await release.wait()

        async def waiter():
            async with registry.hold(5):
                pass

        first = asyncio.create_task(holder())
        await entered.wait()
        second = asyncio.create_task(waiter())
        await asyncio.sleep(0)
        assert len(registry) == 1

        release.set()
        await asyncio.gather(first, second)
        assert len(registry) == 0


class TestReadSide:
    @pytest.mark.asyncio
    async def test_owner_and_staff_can_read(self, database, users):
        service = BookingService(database)
        booking = await service.create_booking(users["guest"], make_request())

        assert (await service.get_booking(booking.id, users["guest"])).id == booking.id
        assert (await service.get_booking(booking.id, users["staff"])).id == booking.id

    @pytest.mark.asyncio
    async def test_other_customer_forbidden(self, database, users):
        service = BookingService(database)
        booking = await service.create_booking(users["guest"], make_request())

        with pytest.raises(ForbiddenException):
            await service.get_booking(booking.id, users["other"])

    @pytest.mark.asyncio
    async def test_list_user_bookings_only_own(self, database, users):
        service = BookingService(database)
        await service.create_booking(users["guest"], make_request())
        await service.create_booking(users["other"], make_request(room_id=4))

        mine = await service.list_user_bookings(users["guest"])
        assert [b.user_id for b in mine] == [users["guest"].id]

    @pytest.mark.asyncio
    async def test_lookup_by_number(self, database, users):
        service = BookingService(database)
        booking = await service.create_booking(users["guest"], make_request())

        found = await service.get_booking_by_number(booking.booking_number)
        assert found.id == booking.id
        with pytest.raises(NotFoundException):
            await service.get_booking_by_number("BK-0-0000")

    @pytest.mark.asyncio
    async def test_admin_list_filters_and_paginates(self, database, users):
        service = BookingService(database)
        for room_id in (1, 2, 3):
            await service.create_booking(users["guest"], make_request(room_id=room_id))

        items, total = await service.list_bookings(page=1, limit=2)
        assert total == 3
        assert len(items) == 2

        items, total = await service.list_bookings(status=BookingStatus.CONFIRMED)
        assert total == 0 and items == []

        number = (await service.list_user_bookings(users["guest"]))[0].booking_number
        items, total = await service.list_bookings(search=number)
        assert total == 1
        assert items[0].booking_number == number
