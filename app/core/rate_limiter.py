"""
Rate limiter configuration module.

Separated to avoid circular imports between main.py and the API routers.
Import `limiter` from here to use the @limiter.limit() decorator; endpoints
decorated with it must accept a `request: Request` argument.
"""
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.core.config import settings

# - key_func: Uses client IP for rate limiting
# - enabled: Killswitch via RATE_LIMIT_ENABLED env var
limiter = Limiter(
    key_func=get_remote_address,
    enabled=settings.rate_limit_enabled,
)


def booking_rate() -> str:
    """Limit for booking creation, read lazily so tests can override settings."""
    return settings.rate_limit_booking


def payment_rate() -> str:
    """Limit for customer payment claims (confirm / notify)."""
    return settings.rate_limit_payment
