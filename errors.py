"""
Typed failures raised by the reservation core.

Each concrete error belongs to exactly one family; the HTTP layer maps the
family to a status code and never looks at the concrete class.
"""


class ReservationError(Exception):
    """Base class for every failure reported back to a caller."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ReservationError):
    pass


class InvalidRange(ValidationError):
    def __init__(self, message: str = "invalid time range"):
        super().__init__(message)


class InvalidRepeats(ValidationError):
    def __init__(self, message: str = "repeats is less than 1"):
        super().__init__(message)


class TooManyRepeats(ValidationError):
    def __init__(self, message: str = "too many repeats"):
        super().__init__(message)


class TimeRangeTooWide(ValidationError):
    def __init__(self, message: str = "time range is too wide"):
        super().__init__(message)


class ConflictError(ReservationError):
    pass


class SlotConflict(ConflictError):
    def __init__(self, message: str = "time slot overlaps an existing reservation"):
        super().__init__(message)


class NotFoundError(ReservationError):
    pass


class RoomNotFound(NotFoundError):
    def __init__(self, message: str = "room not found"):
        super().__init__(message)


class CategoryNotFound(NotFoundError):
    def __init__(self, message: str = "category not found"):
        super().__init__(message)


class ForbiddenError(ReservationError):
    pass


class UnauthenticatedError(ReservationError):
    def __init__(self, message: str = "failed to verify token"):
        super().__init__(message)


class StorageError(ReservationError):
    pass
