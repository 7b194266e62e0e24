from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile

from app.api.deps import get_current_staff, get_current_user, get_payment_service
from app.core.messages import messages
from app.core.rate_limiter import limiter, payment_rate
from app.models import Payment, PaymentMethod, PaymentStatus, User
from app.schemas.common import Pagination
from app.schemas.payment import (
    BankInfoData,
    BankInfoResponse,
    BookingPaymentsResponse,
    ConfirmDepositRequest,
    NotifyPaymentRequest,
    PaymentFilters,
    PaymentListData,
    PaymentListResponse,
    PaymentOut,
    PaymentsData,
    PaymentSummary,
    PaymentWithBookingOut,
)
from app.services.payment_service import PaymentService
from app.services.receipt_storage import UploadedReceipt

router = APIRouter(prefix="/payments", tags=["payments"])


def _with_booking_number(payment: Payment) -> PaymentWithBookingOut:
    out = PaymentWithBookingOut.model_validate(payment)
    out.booking_number = payment.booking.booking_number if payment.booking else None
    return out


def _single_payment(payment: Payment, message: str) -> dict:
    return {
        "success": True,
        "data": {"payment": PaymentOut.model_validate(payment).model_dump(mode="json")},
        "message": message,
    }


@router.get("", response_model=PaymentListResponse)
async def list_payments(
    search: Optional[str] = None,
    method: Optional[PaymentMethod] = None,
    status: Optional[PaymentStatus] = None,
    date_from: Optional[date] = Query(default=None, alias="from"),
    date_to: Optional[date] = Query(default=None, alias="to"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    staff: User = Depends(get_current_staff),
    service: PaymentService = Depends(get_payment_service),
):
    """Back-office payment list with the revenue of the filtered set."""
    filters = PaymentFilters(
        search=search,
        method=method,
        status=status,
        date_from=date_from,
        date_to=date_to,
        page=page,
        limit=limit,
    )
    payments, total, revenue = await service.list_payments(filters)
    return PaymentListResponse(
        data=PaymentListData(
            payments=[_with_booking_number(p) for p in payments],
            summary=PaymentSummary(totalRevenue=revenue),
            pagination=Pagination.build(page, limit, total),
        )
    )


@router.get("/booking/{booking_id}", response_model=BookingPaymentsResponse)
async def booking_payments(
    booking_id: int,
    user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    payments = await service.list_booking_payments(booking_id, user)
    return BookingPaymentsResponse(
        data=PaymentsData(payments=[PaymentOut.model_validate(p) for p in payments])
    )


@router.get("/{payment_id}/bank-info", response_model=BankInfoResponse)
async def bank_transfer_info(
    payment_id: int,
    user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    payment, bank_info = await service.get_bank_transfer_info(payment_id, user)
    return BankInfoResponse(
        data=BankInfoData(payment=PaymentOut.model_validate(payment), bank_info=bank_info)
    )


@router.post("/confirm")
@limiter.limit(payment_rate)
async def confirm_bank_transfer(
    request: Request,
    booking_id: Optional[int] = Form(default=None),
    transaction_id: Optional[str] = Form(default=None),
    receipt: Optional[UploadFile] = File(default=None),
    user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    """Customer claims a bank transfer, optionally attaching the receipt."""
    uploaded = None
    if receipt is not None and receipt.filename:
        # One byte past the cap is enough for validation to reject oversize files
        content = await receipt.read(service.receipt_storage.max_bytes + 1)
        await receipt.close()
        uploaded = UploadedReceipt(
            filename=receipt.filename,
            content_type=receipt.content_type,
            content=content,
        )
    payment = await service.confirm_bank_transfer(
        user, booking_id, transaction_id=transaction_id, receipt=uploaded
    )
    return _single_payment(payment, messages.PAYMENT_CONFIRMED)


@router.post("/confirm-deposit")
@limiter.limit(payment_rate)
async def confirm_deposit(
    request: Request,
    data: ConfirmDepositRequest,
    user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    payment = await service.confirm_deposit(user, data.payment_id, data.transaction_id)
    return _single_payment(payment, messages.DEPOSIT_CONFIRMED)


@router.post("/notify")
@limiter.limit(payment_rate)
async def notify_payment(
    request: Request,
    data: NotifyPaymentRequest,
    user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    payment = await service.notify_payment(user, data.payment_id, data.notes)
    return _single_payment(payment, messages.PAYMENT_NOTIFIED)
