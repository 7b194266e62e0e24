from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, Request, status

from app.api.deps import (
    get_booking_service,
    get_current_staff,
    get_current_user,
    get_lifecycle_service,
)
from app.core.messages import messages
from app.core.rate_limiter import booking_rate, limiter
from app.models import BookingStatus, User
from app.schemas.booking import (
    BookingCreate,
    BookingData,
    BookingListData,
    BookingListResponse,
    BookingLookupData,
    BookingLookupResponse,
    BookingOut,
    BookingResponse,
    BookingSummaryOut,
    CancellationOut,
    CancelData,
    CancelResponse,
    CheckInCheckOutOut,
    CheckInRequest,
    CheckOutRequest,
    SettlementOut,
    TransitionData,
    TransitionResponse,
)
from app.schemas.common import Pagination
from app.services.booking_service import BookingService
from app.services.lifecycle_service import BookingLifecycleService, TransitionResult

router = APIRouter(prefix="/bookings", tags=["bookings"])


def _transition_response(result: TransitionResult) -> TransitionResponse:
    return TransitionResponse(
        data=TransitionData(
            booking=BookingOut.model_validate(result.booking),
            checkin_checkout=(
                CheckInCheckOutOut.model_validate(result.record) if result.record else None
            ),
            settlement=(
                SettlementOut(**vars(result.settlement)) if result.settlement else None
            ),
            warnings=result.warnings,
        )
    )


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(booking_rate)
async def create_booking(
    request: Request,
    data: BookingCreate,
    user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    booking = await service.create_booking(user, data)
    message = (
        messages.deposit_required(service.deposit_percentage)
        if booking.requires_deposit
        else messages.BOOKING_CREATED
    )
    return BookingResponse(
        data=BookingData(booking=BookingOut.model_validate(booking)),
        message=message,
    )


@router.get("", response_model=BookingListResponse)
async def list_bookings(
    status_filter: Optional[BookingStatus] = Query(default=None, alias="status"),
    search: Optional[str] = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    staff: User = Depends(get_current_staff),
    service: BookingService = Depends(get_booking_service),
):
    """Back-office list of all bookings."""
    bookings, total = await service.list_bookings(
        status=status_filter, search=search, page=page, limit=limit
    )
    return BookingListResponse(
        data=BookingListData(
            bookings=[BookingOut.model_validate(b) for b in bookings],
            pagination=Pagination.build(page, limit, total),
        )
    )


@router.get("/me", response_model=BookingListResponse)
async def my_bookings(
    user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    bookings = await service.list_user_bookings(user)
    return BookingListResponse(
        data=BookingListData(bookings=[BookingOut.model_validate(b) for b in bookings])
    )


@router.get("/check/{booking_number}", response_model=BookingLookupResponse)
async def check_booking(
    booking_number: str,
    service: BookingService = Depends(get_booking_service),
):
    """Lookup by the human-facing booking code. No auth, summary fields only."""
    booking = await service.get_booking_by_number(booking_number)
    return BookingLookupResponse(
        data=BookingLookupData(booking=BookingSummaryOut.model_validate(booking))
    )


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: int,
    user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    booking = await service.get_booking(booking_id, user)
    return BookingResponse(data=BookingData(booking=BookingOut.model_validate(booking)))


@router.patch("/{booking_id}/cancel", response_model=CancelResponse)
async def cancel_booking(
    booking_id: int,
    user: User = Depends(get_current_user),
    lifecycle: BookingLifecycleService = Depends(get_lifecycle_service),
):
    result = await lifecycle.cancel(booking_id, user)
    return CancelResponse(
        data=CancelData(
            booking=BookingOut.model_validate(result.booking),
            cancellation=CancellationOut(**vars(result.cancellation)),
        ),
        message=messages.BOOKING_CANCELLED,
    )


@router.patch("/{booking_id}/confirm", response_model=TransitionResponse)
async def confirm_booking(
    booking_id: int,
    staff: User = Depends(get_current_staff),
    lifecycle: BookingLifecycleService = Depends(get_lifecycle_service),
):
    result = await lifecycle.confirm(booking_id, staff)
    return _transition_response(result)


@router.patch("/{booking_id}/check-in", response_model=TransitionResponse)
async def check_in_booking(
    booking_id: int,
    data: Optional[CheckInRequest] = Body(default=None),
    staff: User = Depends(get_current_staff),
    lifecycle: BookingLifecycleService = Depends(get_lifecycle_service),
):
    result = await lifecycle.check_in(booking_id, staff, data)
    return _transition_response(result)


@router.patch("/{booking_id}/check-out", response_model=TransitionResponse)
async def check_out_booking(
    booking_id: int,
    data: Optional[CheckOutRequest] = Body(default=None),
    staff: User = Depends(get_current_staff),
    lifecycle: BookingLifecycleService = Depends(get_lifecycle_service),
):
    result = await lifecycle.check_out(booking_id, staff, data)
    return _transition_response(result)
