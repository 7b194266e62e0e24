from typing import Optional, Union

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictException, NotFoundException, ValidationException
from app.core.messages import messages
from app.database import get_db
from app.models import Room
from app.schemas.room import (
    AvailableRoomsData,
    AvailableRoomsResponse,
    RoomAvailabilityResponse,
    RoomOut,
)
from app.services.availability_service import AvailabilityService
from app.utils.validators import parse_date, validate_stay_dates

router = APIRouter(prefix="/rooms", tags=["rooms"])


@router.get(
    "/available",
    response_model=Union[RoomAvailabilityResponse, AvailableRoomsResponse],
)
async def room_availability(
    room_id: Optional[int] = Query(default=None, alias="roomId"),
    date_from: Optional[str] = Query(default=None, alias="from"),
    date_to: Optional[str] = Query(default=None, alias="to"),
    room_type_id: Optional[int] = Query(default=None, alias="roomTypeId"),
    guests: Optional[int] = Query(default=None, ge=1),
    db: AsyncSession = Depends(get_db),
):
    """
    With `roomId`: is this room free for [from, to)? 409 when it is not.
    Without it: every room free for the range.
    """
    check_in = parse_date(date_from)
    check_out = parse_date(date_to)
    if check_in is None or check_out is None:
        raise ValidationException("Both 'from' and 'to' dates are required (YYYY-MM-DD)")
    is_valid, error = validate_stay_dates(check_in, check_out)
    if not is_valid:
        raise ValidationException(error)

    if room_id is None:
        rooms = await AvailabilityService.get_available_rooms(
            db, check_in, check_out, room_type_id=room_type_id, guests=guests
        )
        return AvailableRoomsResponse(
            data=AvailableRoomsData(rooms=[RoomOut.model_validate(r) for r in rooms])
        )

    room = await db.get(Room, room_id)
    if not room:
        raise NotFoundException(messages.ROOM_NOT_FOUND)

    if await AvailabilityService.is_overlapping(db, room_id, check_in, check_out):
        raise ConflictException(messages.ROOM_ALREADY_BOOKED)

    return RoomAvailabilityResponse(available=True, message=messages.ROOM_AVAILABLE)
