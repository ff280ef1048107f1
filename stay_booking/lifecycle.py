from __future__ import annotations

from datetime import date
from enum import Enum

from .booking import TERMINAL_STATUSES, ReservationRecord, ReservationStatus
from .errors import AuthorizationError, InvalidStateError


class ActorRole(str, Enum):
    REQUESTER = "requester"
    OWNER = "owner"
    SYSTEM = "system"


_ALLOWED_TRANSITIONS: dict[tuple[ReservationStatus, ReservationStatus], frozenset[ActorRole]] = {
    # manual approval
    (ReservationStatus.PENDING, ReservationStatus.CONFIRMED): frozenset({ActorRole.OWNER}),
    (ReservationStatus.PENDING, ReservationStatus.CANCELLED): frozenset({ActorRole.REQUESTER, ActorRole.OWNER}),
    (ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED): frozenset({ActorRole.REQUESTER, ActorRole.OWNER}),
    # time-based sweep
    (ReservationStatus.CONFIRMED, ReservationStatus.COMPLETED): frozenset({ActorRole.SYSTEM}),
}


def allowed_targets(current: ReservationStatus) -> set[ReservationStatus]:
    return {target for source, target in _ALLOWED_TRANSITIONS if source == current}


def validate_transition(
    record: ReservationRecord,
    target: ReservationStatus,
    role: ActorRole,
    today: date | None = None,
) -> None:
    """Check that ``role`` may move ``record`` to ``target``.

    Raises InvalidStateError for transitions out of a terminal state, for
    transitions not in the table, and for completing a stay that has not
    ended yet. Raises AuthorizationError when the transition exists but the
    role may not trigger it.
    """
    current = record.status
    if current in TERMINAL_STATUSES:
        raise InvalidStateError(current.value, target.value)

    roles = _ALLOWED_TRANSITIONS.get((current, target))
    if roles is None:
        raise InvalidStateError(current.value, target.value)
    if role not in roles:
        raise AuthorizationError(f"{role.value} may not move a reservation from {current.value} to {target.value}")

    if target is ReservationStatus.COMPLETED:
        effective_today = today or date.today()
        if record.check_out > effective_today:
            raise InvalidStateError(current.value, target.value)
