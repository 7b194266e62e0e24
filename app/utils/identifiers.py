"""
Human-readable identifiers shown to guests and bank-transfer helpers.
"""
import random
import time
from decimal import Decimal
from urllib.parse import quote

VIETQR_BASE_URL = "https://img.vietqr.io/image"


def _epoch_millis() -> int:
    return int(time.time() * 1000)


def generate_booking_number() -> str:
    """
    BK-<unixMillis>-<4 digits>. Not globally unique: two bookings in the same
    millisecond have a 1 in 9000 chance to collide; the unique index on
    bookings.booking_number turns that into a failed insert.
    """
    return f"BK-{_epoch_millis()}-{random.randint(1000, 9999)}"


def generate_transaction_id(booking_number: str) -> str:
    return f"TXN-{booking_number}-{_epoch_millis()}"


def vietqr_url(
    bank_code: str,
    account_number: str,
    account_name: str,
    content: str,
    amount: Decimal,
) -> str:
    """QR image for a bank transfer with the booking number as transfer content."""
    amount_str = format(amount.normalize(), "f") if isinstance(amount, Decimal) else str(amount)
    return (
        f"{VIETQR_BASE_URL}/{bank_code}-{account_number}-compact2.jpg?"
        f"amount={amount_str}&"
        f"addInfo={quote(content, safe='')}&"
        f"accountName={quote(account_name, safe='')}"
    )
