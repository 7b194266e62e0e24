import os
from dotenv import load_dotenv
from pydantic import BaseModel

# Load variables from .env
load_dotenv()


class Settings(BaseModel):
    project_name: str = "Hotel Booking API"
    database_url: str = "sqlite+aiosqlite:///./hotel_booking.db"
    database_echo: bool = False

    # Auth (tokens are issued by the auth subsystem, we only verify them)
    jwt_secret_key: str = "change-me"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 1440

    # Booking policy
    deposit_percentage: int = 20
    cancellation_fee_percentage: int = 20
    booking_room_lock_enabled: bool = True

    # Receipts
    receipt_upload_dir: str = "./uploads/receipts"
    receipt_max_bytes: int = 5 * 1024 * 1024

    # Bank transfer instructions shown to customers
    bank_name: str = "Vietcombank"
    bank_code: str = "VCB"
    bank_account_number: str = "0123456789"
    bank_account_name: str = "KHACH SAN ABC"

    client_url: str = "http://localhost:5173"

    # Rate limiting settings
    rate_limit_enabled: bool = True  # Killswitch for quick disable
    rate_limit_booking: str = "10/minute"
    rate_limit_payment: str = "20/minute"

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "console"  # Options: "console", "json"
    log_slow_request_threshold_ms: int = 500  # Log timing only if duration > threshold


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() == "true"


settings = Settings(
    database_url=os.environ.get(
        "DATABASE_URL", "sqlite+aiosqlite:///./hotel_booking.db"
    ),
    database_echo=_env_bool("DATABASE_ECHO", "false"),
    jwt_secret_key=os.environ.get("JWT_SECRET_KEY", "change-me"),
    jwt_algorithm=os.environ.get("JWT_ALGORITHM", "HS256"),
    access_token_expire_minutes=int(
        os.environ.get("ACCESS_TOKEN_EXPIRE_MINUTES", "1440")
    ),
    deposit_percentage=int(os.environ.get("DEPOSIT_PERCENTAGE", "20")),
    cancellation_fee_percentage=int(
        os.environ.get("CANCELLATION_FEE_PERCENTAGE", "20")
    ),
    booking_room_lock_enabled=_env_bool("BOOKING_ROOM_LOCK_ENABLED", "true"),
    receipt_upload_dir=os.environ.get("RECEIPT_UPLOAD_DIR", "./uploads/receipts"),
    receipt_max_bytes=int(os.environ.get("RECEIPT_MAX_BYTES", str(5 * 1024 * 1024))),
    bank_name=os.environ.get("BANK_NAME", "Vietcombank"),
    bank_code=os.environ.get("BANK_CODE", "VCB"),
    bank_account_number=os.environ.get("BANK_ACCOUNT_NUMBER", "0123456789"),
    bank_account_name=os.environ.get("BANK_ACCOUNT_NAME", "KHACH SAN ABC"),
    client_url=os.environ.get("CLIENT_URL", "http://localhost:5173"),
    rate_limit_enabled=_env_bool("RATE_LIMIT_ENABLED", "true"),
    rate_limit_booking=os.environ.get("RATE_LIMIT_BOOKING", "10/minute"),
    rate_limit_payment=os.environ.get("RATE_LIMIT_PAYMENT", "20/minute"),
    log_level=os.environ.get("LOG_LEVEL", "INFO"),
    log_format=os.environ.get("LOG_FORMAT", "console"),
    log_slow_request_threshold_ms=int(
        os.environ.get("LOG_SLOW_REQUEST_THRESHOLD_MS", "500")
    ),
)
