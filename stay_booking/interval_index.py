from __future__ import annotations

from bisect import bisect_left, bisect_right
from datetime import date

from .booking import StayInterval, has_date_overlap
from .errors import ConflictError


class _ResourceTimeline:
    """Blocking stays of one resource, kept sorted by check-in.

    Blocking stays never overlap, so ordering by check-in also orders them by
    check-out. That lets a lookup binary-search the check-out column for the
    first stay ending after the requested check-in and walk forward only over
    actual conflicts.
    """

    def __init__(self) -> None:
        self._starts: list[date] = []
        self._ends: list[date] = []
        self._ids: list[str] = []
        self._intervals: dict[str, StayInterval] = {}

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, reservation_id: object) -> bool:
        return reservation_id in self._intervals

    def overlapping(self, interval: StayInterval) -> list[str]:
        found: list[str] = []
        index = bisect_right(self._ends, interval.check_in)
        while index < len(self._ids) and self._starts[index] < interval.check_out:
            if has_date_overlap(interval.check_in, interval.check_out, self._starts[index], self._ends[index]):
                found.append(self._ids[index])
            index += 1
        return found

    def insert(self, interval: StayInterval, reservation_id: str) -> None:
        conflicts = self.overlapping(interval)
        if conflicts:
            raise ConflictError("Reservation overlaps with an existing blocking reservation.", conflicts)

        position = bisect_left(self._starts, interval.check_in)
        self._starts.insert(position, interval.check_in)
        self._ends.insert(position, interval.check_out)
        self._ids.insert(position, reservation_id)
        self._intervals[reservation_id] = interval

    def remove(self, reservation_id: str) -> bool:
        interval = self._intervals.pop(reservation_id, None)
        if interval is None:
            return False

        position = bisect_left(self._starts, interval.check_in)
        # check-ins are unique among disjoint stays
        del self._starts[position]
        del self._ends[position]
        del self._ids[position]
        return True

    def entries(self) -> list[tuple[StayInterval, str]]:
        return [(self._intervals[reservation_id], reservation_id) for reservation_id in self._ids]


class BlockingIntervalIndex:
    """Per-resource index of blocking reservations keyed on (resource_id, check_in, check_out)."""

    def __init__(self) -> None:
        self._timelines: dict[str, _ResourceTimeline] = {}

    def find_overlapping(self, resource_id: str, interval: StayInterval) -> list[str]:
        timeline = self._timelines.get(resource_id)
        if timeline is None:
            return []
        return timeline.overlapping(interval)

    def add(self, resource_id: str, interval: StayInterval, reservation_id: str) -> None:
        """Index a blocking reservation, refusing it when it would overlap another."""
        timeline = self._timelines.setdefault(resource_id, _ResourceTimeline())
        timeline.insert(interval, reservation_id)

    def discard(self, resource_id: str, reservation_id: str) -> bool:
        timeline = self._timelines.get(resource_id)
        if timeline is None:
            return False

        removed = timeline.remove(reservation_id)
        if not len(timeline):
            del self._timelines[resource_id]
        return removed

    def contains(self, resource_id: str, reservation_id: str) -> bool:
        timeline = self._timelines.get(resource_id)
        return timeline is not None and reservation_id in timeline

    def entries(self, resource_id: str) -> list[tuple[StayInterval, str]]:
        timeline = self._timelines.get(resource_id)
        return timeline.entries() if timeline is not None else []

    def clear(self) -> None:
        self._timelines.clear()
