# File: src/parkline/domain/exceptions.py
"""
Domain exceptions for the parking engine

Every error raised by the core derives from ParkingError and carries a
stable ``code`` so the application layer can map it to a result DTO
without inspecting message text.
"""

from typing import Optional


class ParkingError(Exception):
    """Base exception for all parking domain errors"""

    code = "PARKING_ERROR"

    def __init__(self, message: str, external_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.external_id = external_id


class InvalidConfiguration(ParkingError):
    """Raised when slot counts passed to initialize are invalid"""

    code = "INVALID_CONFIGURATION"


class InvalidRate(ParkingError):
    """Raised when an hourly rate is negative or not a number"""

    code = "INVALID_RATE"


class AlreadyParked(ParkingError):
    """Raised when a vehicle that already occupies a slot tries to enter"""

    code = "ALREADY_PARKED"

    def __init__(self, external_id: str, slot_index: int):
        super().__init__(
            f"Vehicle '{external_id}' already parked in slot {slot_index + 1}",
            external_id=external_id
        )
        self.slot_index = slot_index


class AlreadyWaiting(ParkingError):
    """Raised when a vehicle already on the waitlist tries to enter again"""

    code = "ALREADY_WAITING"

    def __init__(self, external_id: str):
        super().__init__(
            f"Vehicle '{external_id}' is already on the waitlist",
            external_id=external_id
        )


class NoFreeSlot(ParkingError):
    """
    Raised by SlotPool when no slot of a category is free.
    The engine always recovers from it by waitlisting the request.
    """

    code = "NO_FREE_SLOT"


class NotFound(ParkingError):
    """Raised when an external id is not bound (or not waiting)"""

    code = "NOT_FOUND"

    def __init__(self, external_id: str, message: Optional[str] = None):
        super().__init__(message or f"Vehicle '{external_id}' not found", external_id=external_id)
