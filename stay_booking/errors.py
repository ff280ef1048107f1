from __future__ import annotations

from typing import Iterable


class BookingError(Exception):
    """Base class for every typed outcome the booking engine returns to callers."""


class ValidationError(BookingError, ValueError):
    pass


class NotFoundError(BookingError, LookupError):
    pass


class ConflictError(BookingError):
    def __init__(self, message: str, conflicting_ids: Iterable[str] = ()) -> None:
        super().__init__(message)
        self.conflicting_ids: tuple[str, ...] = tuple(sorted(conflicting_ids))


class AuthorizationError(BookingError, PermissionError):
    pass


class InvalidStateError(BookingError):
    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"Invalid reservation transition: {current} -> {target}")
        self.current = current
        self.target = target


class ReservationStorageError(BookingError, RuntimeError):
    pass
