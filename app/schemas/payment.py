from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models import PaymentMethod, PaymentStatus, PaymentType
from app.schemas.common import Pagination


class PaymentOut(BaseModel):
    id: int
    booking_id: int
    amount: Decimal
    payment_method: PaymentMethod
    payment_type: PaymentType
    deposit_percentage: Optional[int] = None
    related_payment_id: Optional[int] = None
    payment_status: PaymentStatus
    transaction_id: Optional[str] = None
    payment_date: Optional[datetime] = None
    receipt_path: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PaymentWithBookingOut(PaymentOut):
    booking_number: Optional[str] = None


class ConfirmDepositRequest(BaseModel):
    payment_id: Optional[int] = None
    transaction_id: Optional[str] = Field(default=None, max_length=100)


class NotifyPaymentRequest(BaseModel):
    payment_id: Optional[int] = None
    notes: Optional[str] = Field(default=None, max_length=2000)


class PaymentFilters(BaseModel):
    """Query of the admin payment list. `from`/`to` are reserved words, hence aliases."""

    search: Optional[str] = None
    method: Optional[PaymentMethod] = None
    status: Optional[PaymentStatus] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)


class BankInfo(BaseModel):
    bank_name: str
    bank_code: str
    account_number: str
    account_name: str
    amount: Decimal
    content: str
    qr_url: str


# Response envelopes

class PaymentsData(BaseModel):
    payments: List[PaymentOut]


class BookingPaymentsResponse(BaseModel):
    success: bool = True
    data: PaymentsData


class BankInfoData(BaseModel):
    payment: PaymentOut
    bank_info: BankInfo


class BankInfoResponse(BaseModel):
    success: bool = True
    data: BankInfoData


class PaymentSummary(BaseModel):
    totalRevenue: Decimal


class PaymentListData(BaseModel):
    payments: List[PaymentWithBookingOut]
    summary: PaymentSummary
    pagination: Pagination


class PaymentListResponse(BaseModel):
    status: str = "success"
    data: PaymentListData
