class Messages:
    """
    Centralized store for user-facing messages.
    The web client shows these verbatim.
    """

    MISSING_BOOKING_FIELDS = "Missing required booking fields"
    INVALID_PAYMENT_METHOD = "Payment method must be 'cash' or 'bank_transfer'"
    INVALID_TOTAL_PRICE = "Total price must be a positive number"
    INVALID_GUEST_COUNT = "Guest count must be at least 1"
    ROOM_NOT_FOUND = "Room not found"
    ROOM_ALREADY_BOOKED = "Room already booked for the selected dates"
    ROOM_AVAILABLE = "Room is available for the selected dates"
    BOOKING_NOT_FOUND = "Booking not found"
    BOOKING_ALREADY_CANCELLED = "Booking already cancelled"
    PAYMENT_NOT_FOUND = "Payment not found"
    PAYMENT_ID_REQUIRED = "Payment ID is required"
    PAYMENT_ALREADY_COMPLETED = "Payment already completed"
    NO_PENDING_PAYMENT = "No pending payment found for this booking"
    PAYMENT_ON_CANCELLED_BOOKING = "Cannot confirm a payment for a cancelled booking"
    FORBIDDEN = "Forbidden"
    STAFF_ONLY = "You do not have permission to access this resource"
    BOOKING_CANCELLED = "Booking cancelled"
    BOOKING_CREATED = "Booking created successfully"
    DEPOSIT_CONFIRMED = "Deposit payment confirmed successfully"
    PAYMENT_CONFIRMED = "Payment confirmation received. Please wait for admin verification."
    PAYMENT_NOTIFIED = "Payment notification sent. Please wait for admin verification."

    def deposit_required(self, percentage: int) -> str:
        return f"Booking created. Please pay {percentage}% deposit to confirm."

    def deposit_note(self, percentage: int, booking_number: str) -> str:
        return f"Deposit payment ({percentage}%) for booking {booking_number}"

    def payment_not_pending(self, current: str) -> str:
        return f"Payment is '{current}' and can no longer be confirmed"

    def illegal_transition(self, current: str, target: str) -> str:
        return f"Cannot change booking status from '{current}' to '{target}'"

    def checkin_not_confirmed(self, current: str) -> str:
        return f"Booking is '{current}', not confirmed; checked in anyway"

    def cancellation_policy(self, fee_percentage: int) -> str:
        return (
            f"{fee_percentage}% of the booking total is retained, "
            f"{100 - fee_percentage}% is refundable"
        )


messages = Messages()
