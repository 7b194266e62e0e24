from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from app.models import RoomStatus


class RoomTypeOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    base_price: Decimal
    capacity: int

    model_config = ConfigDict(from_attributes=True)


class RoomOut(BaseModel):
    id: int
    room_number: str
    floor: int
    status: RoomStatus
    room_type_id: int
    room_type: Optional[RoomTypeOut] = None

    model_config = ConfigDict(from_attributes=True)


class RoomAvailabilityResponse(BaseModel):
    success: bool = True
    available: bool
    message: str


class AvailableRoomsData(BaseModel):
    rooms: List[RoomOut]


class AvailableRoomsResponse(BaseModel):
    success: bool = True
    data: AvailableRoomsData
