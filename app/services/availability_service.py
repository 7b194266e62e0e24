import logging
from datetime import date
from typing import List, Optional

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models import Booking, BookingStatus, Room, RoomType

logger = logging.getLogger(__name__)


def overlap_condition(check_in: date, check_out: date):
    """
    Half-open [check_in, check_out) overlap against non-cancelled bookings.
    A stay ending on day D does not conflict with one starting on day D.
    """
    return and_(
        Booking.status != BookingStatus.CANCELLED,
        Booking.check_in_date < check_out,
        Booking.check_out_date > check_in,
    )


class AvailabilityService:
    """Date-range availability computed from bookings, never from Room.status."""

    @staticmethod
    async def is_overlapping(
        db: AsyncSession,
        room_id: int,
        check_in: date,
        check_out: date,
        exclude_booking_id: Optional[int] = None,
    ) -> bool:
        """True if a non-cancelled booking on the room intersects the range."""
        query = select(Booking.id).where(
            Booking.room_id == room_id,
            overlap_condition(check_in, check_out),
        )
        if exclude_booking_id:
            query = query.where(Booking.id != exclude_booking_id)

        # Only fetch first conflict, no need to load all
        result = await db.execute(query.limit(1))
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def get_available_rooms(
        db: AsyncSession,
        check_in: date,
        check_out: date,
        room_type_id: Optional[int] = None,
        guests: Optional[int] = None,
    ) -> List[Room]:
        """Rooms without an overlapping booking, optionally by type and capacity."""
        busy_rooms_query = select(Booking.room_id).where(
            overlap_condition(check_in, check_out)
        )

        query = (
            select(Room)
            .join(Room.room_type)
            .options(selectinload(Room.room_type))
            .where(Room.id.not_in(busy_rooms_query))
            .order_by(Room.room_number)
        )
        if room_type_id:
            query = query.where(Room.room_type_id == room_type_id)
        if guests:
            query = query.where(RoomType.capacity >= guests)

        result = await db.execute(query)
        return list(result.scalars().all())
