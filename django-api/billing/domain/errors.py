"""Domain error codes for the billing module."""

from dataclasses import dataclass
from enum import Enum


class ErrorCode(Enum):
    """Domain error codes."""

    NOT_FOUND = "NOT_FOUND"
    INVALID_STATE = "INVALID_STATE"
    CONFLICT = "CONFLICT"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    INACTIVE = "INACTIVE"


@dataclass(eq=False)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class StationNotFoundError(DomainError):
    """Raised when a station does not exist."""

    def __init__(self, station_id: str) -> None:
        super().__init__(code=ErrorCode.NOT_FOUND, message="Station not found")
        self.station_id = station_id


class SessionNotFoundError(DomainError):
    """Raised when a session does not exist."""

    def __init__(self, session_id: str) -> None:
        super().__init__(code=ErrorCode.NOT_FOUND, message="Session not found")
        self.session_id = session_id


class ProductNotFoundError(DomainError):
    """Raised when a product does not exist."""

    def __init__(self, product_id: str) -> None:
        super().__init__(code=ErrorCode.NOT_FOUND, message="Product not found")
        self.product_id = product_id


class LineItemNotFoundError(DomainError):
    """Raised when a line item is not part of the session."""

    def __init__(self, item_id: str) -> None:
        super().__init__(code=ErrorCode.NOT_FOUND, message="Item not found")
        self.item_id = item_id


class BillNotFoundError(DomainError):
    """Raised when a bill does not exist."""

    def __init__(self, bill_id: str) -> None:
        super().__init__(code=ErrorCode.NOT_FOUND, message="Bill not found")
        self.bill_id = bill_id


class SessionNotOpenError(DomainError):
    """Raised when a mutation targets a session that is closed or void."""

    def __init__(self, session_id: str) -> None:
        super().__init__(code=ErrorCode.INVALID_STATE, message="Session is not open")
        self.session_id = session_id


class SessionAlreadyClosedError(DomainError):
    """Raised when checkout runs against a session that is no longer open."""

    def __init__(self, session_id: str) -> None:
        super().__init__(code=ErrorCode.INVALID_STATE, message="Session already closed")
        self.session_id = session_id


class StationOccupiedError(DomainError):
    """Raised when a station already has an open session."""

    def __init__(self, station_id: str) -> None:
        super().__init__(
            code=ErrorCode.CONFLICT,
            message="This station already has an open session",
        )
        self.station_id = station_id


class InvalidQuantityError(DomainError):
    """Raised when an added quantity is not positive."""

    def __init__(self, quantity: int) -> None:
        super().__init__(
            code=ErrorCode.VALIDATION_FAILED,
            message="Quantity must be greater than zero",
        )
        self.quantity = quantity


class InvalidRateError(DomainError):
    """Raised when an hourly rate is negative."""

    def __init__(self, rate: int) -> None:
        super().__init__(
            code=ErrorCode.VALIDATION_FAILED,
            message="Rate per hour cannot be negative",
        )
        self.rate = rate


class InvalidTimeRangeError(DomainError):
    """Raised when a time of day is not in HH:MM format."""

    def __init__(self, value: str) -> None:
        super().__init__(
            code=ErrorCode.VALIDATION_FAILED,
            message="Invalid time of day, expected HH:MM",
        )
        self.value = value


class InvalidIdError(DomainError):
    """Raised when an identifier is not a valid UUID."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.VALIDATION_FAILED,
            message="Invalid ID format",
        )


class StationInactiveError(DomainError):
    """Raised when checking in on a disabled station."""

    def __init__(self, station_id: str) -> None:
        super().__init__(code=ErrorCode.INACTIVE, message="Station is inactive")
        self.station_id = station_id


class ProductInactiveError(DomainError):
    """Raised when adding a disabled product to a session."""

    def __init__(self, product_id: str) -> None:
        super().__init__(code=ErrorCode.INACTIVE, message="Product is inactive")
        self.product_id = product_id
