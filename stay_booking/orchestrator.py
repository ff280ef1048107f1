from __future__ import annotations

from contextlib import contextmanager
from datetime import date, datetime
from typing import Callable, Iterator
import logging
import threading

from .availability import AvailabilityChecker, AvailabilityReport
from .booking import ReservationRecord, ReservationStatus, make_interval
from .catalog import ResourceCatalog
from .config import BookingSettings
from .errors import AuthorizationError, ConflictError, InvalidStateError, NotFoundError, ValidationError
from .lifecycle import ActorRole, validate_transition
from .pricing import price_stay
from .yaml_store import ReservationYamlRepository

logger = logging.getLogger(__name__)

LISTING_ROLES = {ActorRole.REQUESTER, ActorRole.OWNER}


class ResourceLockRegistry:
    """One mutual-exclusion scope per resource id.

    Writes to the same resource are serialized; writes to different resources
    never wait on each other. Acquisition is bounded: a caller that cannot get
    the scope in time gets a ConflictError instead of queuing.
    """

    def __init__(self, timeout_seconds: float) -> None:
        self.timeout_seconds = timeout_seconds
        self._locks: dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, resource_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(resource_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[resource_id] = lock
            return lock

    @contextmanager
    def hold(self, resource_id: str) -> Iterator[None]:
        lock = self._lock_for(resource_id)
        if not lock.acquire(timeout=self.timeout_seconds):
            logger.warning("Write scope for resource %s not acquired within %.2fs", resource_id, self.timeout_seconds)
            raise ConflictError(f"Resource {resource_id} is busy; retry later or choose other dates.")
        try:
            yield
        finally:
            lock.release()


class BookingOrchestrator:
    """Sole writer of reservations: create, cancel, confirm and complete."""

    def __init__(
        self,
        repository: ReservationYamlRepository,
        catalog: ResourceCatalog,
        settings: BookingSettings | None = None,
        now_provider: Callable[[], datetime] | None = None,
    ) -> None:
        self.repository = repository
        self.catalog = catalog
        self.settings = settings or BookingSettings()
        self.checker = AvailabilityChecker(repository, catalog)
        self.locks = ResourceLockRegistry(self.settings.lock_timeout_seconds)
        self.clock: Callable[[], datetime] = now_provider or datetime.now

    def create_reservation(
        self,
        resource_id: str,
        requester_id: str,
        check_in: date | str,
        check_out: date | str,
        party_size: int,
    ) -> ReservationRecord:
        resource = self.catalog.get_resource(resource_id)
        if not str(requester_id or "").strip():
            raise ValidationError("requester_id must not be empty")
        if isinstance(party_size, bool) or not isinstance(party_size, int) or party_size < 1:
            raise ValidationError("party_size must be a positive integer")
        if party_size > resource.capacity:
            raise ValidationError(f"Maximum {resource.capacity} guests allowed")

        interval = make_interval(check_in, check_out)
        total_price = price_stay(resource, interval)

        with self.locks.hold(resource_id):
            conflicts = self.checker.check_conflicts(resource_id, interval)
            if conflicts:
                conflicting_ids = [record.reservation_id for record in conflicts]
                logger.info("Rejected stay %s on %s: overlaps %s", interval.to_dict(), resource_id, conflicting_ids)
                raise ConflictError("Resource is not available for the selected dates.", conflicting_ids)

            created = self.repository.add_reservation(
                resource_id=resource_id,
                requester_id=requester_id,
                interval=interval,
                party_size=party_size,
                total_price=total_price,
                status=self.settings.initial_status,
                now=self.clock(),
            )

        logger.info("Created reservation %s on %s (%s)", created.reservation_id, resource_id, created.status.value)
        return created

    def cancel_reservation(self, reservation_id: str, actor_id: str) -> ReservationRecord:
        record = self.get_reservation(reservation_id)
        role = self._role_for(record, actor_id)
        return self._apply(reservation_id, record.resource_id, ReservationStatus.CANCELLED, role)

    def confirm_reservation(self, reservation_id: str, actor_id: str) -> ReservationRecord:
        """Owner approval of a pending reservation under the manual approval policy."""
        record = self.get_reservation(reservation_id)
        role = self._role_for(record, actor_id)
        return self._apply(reservation_id, record.resource_id, ReservationStatus.CONFIRMED, role)

    def complete_reservation(self, reservation_id: str) -> ReservationRecord:
        record = self.get_reservation(reservation_id)
        return self._apply(reservation_id, record.resource_id, ReservationStatus.COMPLETED, ActorRole.SYSTEM)

    def complete_elapsed_reservations(self, today: date | None = None) -> list[ReservationRecord]:
        """Sweep entry point: complete every confirmed stay whose check-out is on or before ``today``."""
        now = self.clock()
        effective_today = today or now.date()
        completed: list[ReservationRecord] = []
        for record in self.repository.confirmed_ended_by(effective_today):
            try:
                completed.append(
                    self._apply(
                        record.reservation_id,
                        record.resource_id,
                        ReservationStatus.COMPLETED,
                        ActorRole.SYSTEM,
                        today=effective_today,
                    )
                )
            except (ConflictError, InvalidStateError) as error:
                # cancelled meanwhile, or the resource is busy; the next sweep retries
                logger.warning("Sweep skipped reservation %s: %s", record.reservation_id, error)
        logger.info("Sweep completed %d reservation(s) ending on or before %s", len(completed), effective_today)
        return completed

    def _apply(
        self,
        reservation_id: str,
        resource_id: str,
        target: ReservationStatus,
        role: ActorRole,
        today: date | None = None,
    ) -> ReservationRecord:
        with self.locks.hold(resource_id):
            current = self.get_reservation(reservation_id)
            now = self.clock()
            validate_transition(current, target, role, today=today or now.date())
            updated = self.repository.update_status(reservation_id, target, now=now)

        logger.info("Reservation %s moved %s -> %s by %s", reservation_id, current.status.value, target.value, role.value)
        return updated

    def _role_for(self, record: ReservationRecord, actor_id: str) -> ActorRole:
        owner_id: str | None
        try:
            owner_id = self.catalog.get_resource(record.resource_id).owner_id
        except NotFoundError:
            owner_id = None

        if owner_id is not None and actor_id == owner_id:
            return ActorRole.OWNER
        if actor_id == record.requester_id:
            return ActorRole.REQUESTER
        raise AuthorizationError("Not authorized to change this reservation")

    def get_reservation(self, reservation_id: str) -> ReservationRecord:
        record = self.repository.get_reservation(reservation_id)
        if record is None:
            raise NotFoundError(f"Reservation not found: {reservation_id}")
        return record

    def get_availability(self, resource_id: str, range_start: date | str, range_end: date | str) -> AvailabilityReport:
        return self.checker.get_availability(resource_id, range_start, range_end)

    def list_reservations_for(self, actor_id: str, role: ActorRole | str) -> list[ReservationRecord]:
        try:
            listing_role = ActorRole(role)
        except ValueError as error:
            raise ValidationError("role must be one of: requester, owner") from error
        if listing_role not in LISTING_ROLES:
            raise ValidationError("role must be one of: requester, owner")

        if listing_role is ActorRole.REQUESTER:
            records = self.repository.reservations_for_requester(actor_id)
        else:
            records = self.repository.reservations_for_resources(self.catalog.resource_ids_owned_by(actor_id))
        return sorted(records, key=lambda record: (record.created_at, record.reservation_id), reverse=True)

    def is_review_eligible(self, actor_id: str, resource_id: str) -> bool:
        """A stay counts toward reviews only once the sweep has marked it completed."""
        return any(
            record.status is ReservationStatus.COMPLETED
            for record in self.repository.reservations_for_requester(actor_id)
            if record.resource_id == resource_id
        )
