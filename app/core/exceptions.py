"""
Domain exceptions for the booking core.

Services raise these; app.main turns them into JSON error responses in a
single exception handler, so routers never build error bodies themselves.
"""
from typing import Any, Dict, Optional

from fastapi import status


class DomainException(Exception):
    """Base class for all booking/payment domain errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "success": False,
            "status": "error",
            "message": self.message,
            "code": self.code,
        }
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationException(DomainException):
    """Request is malformed or violates a field rule. Nothing is written."""

    status_code = status.HTTP_400_BAD_REQUEST


class UnauthorizedException(DomainException):
    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenException(DomainException):
    """Caller is authenticated but may not touch this booking/payment."""

    status_code = status.HTTP_403_FORBIDDEN


class NotFoundException(DomainException):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """Room is already booked for an overlapping date range."""

    status_code = status.HTTP_409_CONFLICT


class IllegalTransitionException(DomainException):
    """Booking or payment is not in a state that allows the requested action."""

    status_code = status.HTTP_400_BAD_REQUEST
