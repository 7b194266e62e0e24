from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from app.models import BookingPaymentMethod, BookingStatus
from app.schemas.common import Pagination
from app.schemas.payment import PaymentOut
from app.schemas.room import RoomOut
from app.utils.validators import parse_date


class BookingCreate(BaseModel):
    """
    POST /api/bookings body.

    Required fields are checked by BookingService (so a missing field is a
    domain validation error, not a schema error). The web client sends
    `guest_count` / `notes`; older screens send `num_guests` /
    `special_requests`. Both spellings are accepted here and nowhere else.
    """

    room_id: Optional[int] = None
    check_in_date: Optional[date] = None
    check_out_date: Optional[date] = None
    guest_count: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("guest_count", "num_guests")
    )
    total_price: Optional[Decimal] = None
    notes: Optional[str] = Field(
        default=None,
        max_length=500,
        validation_alias=AliasChoices("notes", "special_requests"),
    )
    payment_method: Optional[str] = None

    @field_validator("check_in_date", "check_out_date", mode="before")
    @classmethod
    def accept_iso_datetimes(cls, v):
        if v is None or v == "":
            return None
        parsed = parse_date(v)
        if parsed is None:
            raise ValueError("Invalid date, expected YYYY-MM-DD")
        return parsed


class CheckInRequest(BaseModel):
    room_condition: Optional[str] = Field(default=None, max_length=2000)
    notes: Optional[str] = Field(default=None, max_length=2000)


class CheckOutRequest(BaseModel):
    room_condition: Optional[str] = Field(default=None, max_length=2000)
    additional_charges: Decimal = Field(default=Decimal("0"), ge=0)
    service_fee: Decimal = Field(default=Decimal("0"), ge=0)
    discount: Decimal = Field(default=Decimal("0"), ge=0)
    notes: Optional[str] = Field(default=None, max_length=2000)


class BookingOut(BaseModel):
    id: int
    booking_number: str
    user_id: int
    room_id: int
    check_in_date: date
    check_out_date: date
    num_guests: int
    nights: int
    total_price: Decimal
    special_requests: Optional[str] = None
    status: BookingStatus
    payment_method: BookingPaymentMethod
    requires_deposit: bool
    deposit_paid: bool
    created_at: datetime
    updated_at: datetime

    room: Optional[RoomOut] = None
    payments: List[PaymentOut] = []

    model_config = ConfigDict(from_attributes=True)


class BookingSummaryOut(BaseModel):
    """Public lookup by booking number: no payments, no owner."""

    booking_number: str
    room_id: int
    check_in_date: date
    check_out_date: date
    num_guests: int
    total_price: Decimal
    status: BookingStatus
    requires_deposit: bool
    deposit_paid: bool
    room: Optional[RoomOut] = None

    model_config = ConfigDict(from_attributes=True)


class CheckInCheckOutOut(BaseModel):
    checkin_time: Optional[datetime] = None
    checkout_time: Optional[datetime] = None
    checkin_by: Optional[int] = None
    checkout_by: Optional[int] = None
    room_condition_checkin: Optional[str] = None
    room_condition_checkout: Optional[str] = None
    additional_charges: Decimal
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class CancellationOut(BaseModel):
    fee_percentage: int
    forfeited_amount: Decimal
    refundable_amount: Decimal
    policy: str


class SettlementOut(BaseModel):
    room_fee: Decimal
    service_fee: Decimal
    additional_charges: Decimal
    discount: Decimal
    deposit_paid: Decimal
    total: Decimal
    remaining_due: Decimal


# Response envelopes

class BookingData(BaseModel):
    booking: BookingOut


class BookingResponse(BaseModel):
    success: bool = True
    data: BookingData
    message: Optional[str] = None


class BookingListData(BaseModel):
    bookings: List[BookingOut]
    pagination: Optional[Pagination] = None


class BookingListResponse(BaseModel):
    success: bool = True
    data: BookingListData


class BookingLookupData(BaseModel):
    booking: BookingSummaryOut


class BookingLookupResponse(BaseModel):
    status: str = "success"
    data: BookingLookupData


class CancelData(BaseModel):
    booking: BookingOut
    cancellation: CancellationOut


class CancelResponse(BaseModel):
    success: bool = True
    data: CancelData
    message: Optional[str] = None


class TransitionData(BaseModel):
    booking: BookingOut
    checkin_checkout: Optional[CheckInCheckOutOut] = None
    settlement: Optional[SettlementOut] = None
    warnings: List[str] = []


class TransitionResponse(BaseModel):
    success: bool = True
    data: TransitionData
