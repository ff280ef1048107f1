from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any

from .errors import ValidationError


class ReservationStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


BLOCKING_STATUSES = frozenset({ReservationStatus.PENDING, ReservationStatus.CONFIRMED})
TERMINAL_STATUSES = frozenset({ReservationStatus.CANCELLED, ReservationStatus.COMPLETED})


@dataclass(frozen=True, order=True)
class StayInterval:
    check_in: date
    check_out: date

    def __post_init__(self) -> None:
        if self.check_in >= self.check_out:
            raise ValidationError("Check-in date must be earlier than check-out date.")

    @property
    def nights(self) -> int:
        return (self.check_out - self.check_in).days

    def overlaps(self, other: "StayInterval") -> bool:
        return has_date_overlap(self.check_in, self.check_out, other.check_in, other.check_out)

    def to_dict(self) -> dict[str, str]:
        return {"check_in": self.check_in.isoformat(), "check_out": self.check_out.isoformat()}


@dataclass(frozen=True)
class ReservationRecord:
    reservation_id: str
    resource_id: str
    requester_id: str
    interval: StayInterval
    party_size: int
    total_price: int
    status: ReservationStatus
    created_at: datetime
    updated_at: datetime

    @property
    def check_in(self) -> date:
        return self.interval.check_in

    @property
    def check_out(self) -> date:
        return self.interval.check_out

    @property
    def is_blocking(self) -> bool:
        return self.status in BLOCKING_STATUSES

    def to_dict(self) -> dict[str, Any]:
        return {
            "reservation_id": self.reservation_id,
            "resource_id": self.resource_id,
            "requester_id": self.requester_id,
            "check_in": self.check_in.isoformat(),
            "check_out": self.check_out.isoformat(),
            "party_size": self.party_size,
            "total_price": self.total_price,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(timespec="seconds"),
            "updated_at": self.updated_at.isoformat(timespec="seconds"),
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "ReservationRecord":
        return ReservationRecord(
            reservation_id=str(data["reservation_id"]),
            resource_id=str(data["resource_id"]),
            requester_id=str(data["requester_id"]),
            interval=make_interval(str(data["check_in"]), str(data["check_out"])),
            party_size=int(data["party_size"]),
            total_price=int(data["total_price"]),
            status=ReservationStatus(str(data["status"])),
            created_at=datetime.fromisoformat(str(data["created_at"])),
            updated_at=datetime.fromisoformat(str(data["updated_at"])),
        )


def has_date_overlap(new_start: date, new_end: date, exist_start: date, exist_end: date) -> bool:
    """Return True when two stays share at least one night.

    Stays are half-open ranges: [check_in, check_out)
    so a check-out on the same day as the next check-in (same-day turnover)
    does not overlap.
    """
    return new_start < exist_end and exist_start < new_end


def parse_stay_date(value: date | str, field_name: str = "date") -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        # longer strings must be full ISO datetimes
        if len(text) > 10:
            return datetime.fromisoformat(text).date()
        return date.fromisoformat(text)
    except ValueError as error:
        raise ValidationError(f"{field_name} must be an ISO date (YYYY-MM-DD).") from error


def make_interval(check_in: date | str, check_out: date | str) -> StayInterval:
    return StayInterval(parse_stay_date(check_in, "check_in"), parse_stay_date(check_out, "check_out"))
