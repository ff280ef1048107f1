from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from pathlib import Path
from typing import Any, Iterable
import logging
import threading
from uuid import uuid4

from .booking import (
    BLOCKING_STATUSES,
    ReservationRecord,
    ReservationStatus,
    StayInterval,
)
from .errors import ConflictError, NotFoundError, ReservationStorageError
from .interval_index import BlockingIntervalIndex
from .yaml_io import YamlListFile

logger = logging.getLogger(__name__)


class ReservationYamlRepository:
    """Durable reservation storage.

    Blocking reservations (pending, confirmed) live in
    ``active_reservations.yaml``; cancelled and completed ones are moved to
    ``closed_reservations.yaml`` and kept for history. Every change is also
    appended to ``reservation_events.yaml``; a failed append is logged and
    does not undo the change.

    The files are the source of truth at start-up. After that, reads are
    served from an in-memory map plus a per-resource interval index, and every
    write reaches disk before memory is updated, so a failed write leaves the
    repository as it was.
    """

    def __init__(self, base_dir: str | Path = "data") -> None:
        self.base_dir = Path(base_dir)
        self.log = YamlListFile(self.base_dir / "reservation_events.yaml")
        self.active = YamlListFile(self.base_dir / "active_reservations.yaml", event_sink=self._log_event)
        self.closed = YamlListFile(self.base_dir / "closed_reservations.yaml", event_sink=self._log_event)
        self.active_file = self.active.path
        self.closed_file = self.closed.path
        self.log_file = self.log.path

        self._lock = threading.RLock()
        self._records: dict[str, ReservationRecord] = {}
        self._by_resource: dict[str, list[str]] = {}
        self._index = BlockingIntervalIndex()
        self.reload()

    def _log_event(self, event_type: str, payload: dict[str, Any], event_time: datetime | None = None) -> None:
        # reservation files are already written when this runs
        try:
            self.log.append_event(event_type, payload, event_time)
        except ReservationStorageError:
            logger.exception("Could not append %s to %s", event_type, self.log.path)

    def reload(self) -> None:
        with self._lock:
            self._records.clear()
            self._by_resource.clear()
            self._index.clear()

            # a row present in both files means a status change failed half-way; the active row wins
            closed = self._load_rows(self.closed)
            active = self._load_rows(self.active)
            merged: dict[str, ReservationRecord] = {record.reservation_id: record for record in closed}
            merged.update({record.reservation_id: record for record in active})

            for record in sorted(merged.values(), key=lambda item: (item.created_at, item.reservation_id)):
                if record.is_blocking:
                    try:
                        self._index.add(record.resource_id, record.interval, record.reservation_id)
                    except ConflictError as error:
                        raise ReservationStorageError(
                            f"Stored reservation {record.reservation_id} overlaps {', '.join(error.conflicting_ids)}"
                        ) from error
                self._remember(record)

    def _load_rows(self, source: YamlListFile) -> list[ReservationRecord]:
        records: list[ReservationRecord] = []
        for index, row in enumerate(source.read_rows()):
            try:
                records.append(ReservationRecord.from_dict(row))
            except (KeyError, TypeError, ValueError) as error:
                self._log_event(
                    "YAML_ROW_SKIPPED",
                    {
                        "file": str(source.path.name),
                        "index": index,
                        "reason": str(error),
                    },
                )
        return records

    def _remember(self, record: ReservationRecord) -> None:
        if record.reservation_id not in self._records:
            self._by_resource.setdefault(record.resource_id, []).append(record.reservation_id)
        self._records[record.reservation_id] = record

    def _rows_for(self, records: Iterable[ReservationRecord]) -> list[dict[str, Any]]:
        ordered = sorted(records, key=lambda item: (item.resource_id, item.check_in, item.reservation_id))
        return [record.to_dict() for record in ordered]

    def add_reservation(
        self,
        resource_id: str,
        requester_id: str,
        interval: StayInterval,
        party_size: int,
        total_price: int,
        status: ReservationStatus = ReservationStatus.CONFIRMED,
        now: datetime | None = None,
    ) -> ReservationRecord:
        """Persist a new reservation and index it when its status blocks.

        The index refuses a blocking stay that overlaps another one, so this
        raises ConflictError even for callers that skipped the availability
        check.
        """
        effective_now = now or datetime.now()
        record = ReservationRecord(
            reservation_id=str(uuid4()),
            resource_id=resource_id,
            requester_id=requester_id,
            interval=interval,
            party_size=party_size,
            total_price=total_price,
            status=status,
            created_at=effective_now,
            updated_at=effective_now,
        )

        with self._lock:
            if record.is_blocking:
                conflicts = self._index.find_overlapping(resource_id, interval)
                if conflicts:
                    raise ConflictError("Reservation overlaps with an existing blocking reservation.", conflicts)
                rows = self._rows_for([*self._active_records(), record])
                self.active.write_rows(rows)
                self._index.add(resource_id, interval, record.reservation_id)
            else:
                rows = self._rows_for([*self._closed_records(), record])
                self.closed.write_rows(rows)
            self._remember(record)

        self._log_event(
            "RESERVATION_CREATED",
            {
                "reservation_id": record.reservation_id,
                "resource_id": resource_id,
                "requester_id": requester_id,
                "check_in": record.check_in.isoformat(),
                "check_out": record.check_out.isoformat(),
                "party_size": party_size,
                "total_price": total_price,
                "status": status.value,
            },
            effective_now,
        )
        return record

    def update_status(
        self,
        reservation_id: str,
        status: ReservationStatus,
        now: datetime | None = None,
    ) -> ReservationRecord:
        effective_now = now or datetime.now()

        with self._lock:
            current = self._records.get(reservation_id)
            if current is None:
                raise NotFoundError(f"Reservation not found: {reservation_id}")

            updated = replace(current, status=status, updated_at=effective_now)
            if current.is_blocking and not updated.is_blocking:
                self.closed.write_rows(self._rows_for([*self._closed_records(), updated]))
                remaining = [record for record in self._active_records() if record.reservation_id != reservation_id]
                self.active.write_rows(self._rows_for(remaining))
                self._index.discard(current.resource_id, reservation_id)
            elif current.is_blocking:
                others = [record for record in self._active_records() if record.reservation_id != reservation_id]
                self.active.write_rows(self._rows_for([*others, updated]))
            else:
                others = [record for record in self._closed_records() if record.reservation_id != reservation_id]
                self.closed.write_rows(self._rows_for([*others, updated]))
            self._remember(updated)

        self._log_event(
            "RESERVATION_STATUS_CHANGED",
            {
                "reservation_id": reservation_id,
                "resource_id": current.resource_id,
                "from": current.status.value,
                "to": status.value,
            },
            effective_now,
        )
        return updated

    def _active_records(self) -> list[ReservationRecord]:
        return [record for record in self._records.values() if record.status in BLOCKING_STATUSES]

    def _closed_records(self) -> list[ReservationRecord]:
        return [record for record in self._records.values() if record.status not in BLOCKING_STATUSES]

    def get_reservation(self, reservation_id: str) -> ReservationRecord | None:
        with self._lock:
            return self._records.get(reservation_id)

    def get_active_reservations(self) -> list[ReservationRecord]:
        with self._lock:
            return sorted(self._active_records(), key=lambda item: (item.resource_id, item.check_in))

    def get_closed_reservations(self) -> list[ReservationRecord]:
        with self._lock:
            return sorted(self._closed_records(), key=lambda item: (item.resource_id, item.check_in))

    def find_blocking_overlaps(self, resource_id: str, interval: StayInterval) -> list[ReservationRecord]:
        with self._lock:
            ids = self._index.find_overlapping(resource_id, interval)
            return [self._records[reservation_id] for reservation_id in ids]

    def reservations_for_requester(self, requester_id: str) -> list[ReservationRecord]:
        with self._lock:
            return [record for record in self._records.values() if record.requester_id == requester_id]

    def reservations_for_resources(self, resource_ids: Iterable[str]) -> list[ReservationRecord]:
        with self._lock:
            return [
                self._records[reservation_id]
                for resource_id in set(resource_ids)
                for reservation_id in self._by_resource.get(resource_id, [])
            ]

    def confirmed_ended_by(self, today: date) -> list[ReservationRecord]:
        with self._lock:
            ended = [
                record
                for record in self._records.values()
                if record.status is ReservationStatus.CONFIRMED and record.check_out <= today
            ]
        return sorted(ended, key=lambda item: (item.check_out, item.reservation_id))
