from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any

import holidays as pyholidays

from .booking import ReservationRecord, StayInterval, make_interval
from .catalog import ResourceCatalog
from .yaml_store import ReservationYamlRepository

_HOLIDAY_CACHE: dict[tuple[str, int], dict[date, str]] = {}


@dataclass(frozen=True)
class AvailabilityReport:
    resource_id: str
    range_start: date
    range_end: date
    available: bool
    blocked_intervals: tuple[StayInterval, ...]
    holidays: tuple[tuple[date, str], ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "resource_id": self.resource_id,
            "range_start": self.range_start.isoformat(),
            "range_end": self.range_end.isoformat(),
            "available": self.available,
            "blocked_intervals": [interval.to_dict() for interval in self.blocked_intervals],
            "holidays": [{"date": day.isoformat(), "name": name} for day, name in self.holidays],
        }


class AvailabilityChecker:
    """Read-side view over blocking reservations.

    Never takes a resource's write scope: a report may trail an in-flight
    booking, which is fine because the write path re-checks under the scope.
    """

    def __init__(self, repository: ReservationYamlRepository, catalog: ResourceCatalog) -> None:
        self.repository = repository
        self.catalog = catalog

    def check_conflicts(self, resource_id: str, interval: StayInterval) -> set[ReservationRecord]:
        return set(self.repository.find_blocking_overlaps(resource_id, interval))

    def get_availability(self, resource_id: str, range_start: date | str, range_end: date | str) -> AvailabilityReport:
        resource = self.catalog.get_resource(resource_id)
        window = make_interval(range_start, range_end)

        conflicts = sorted(self.check_conflicts(resource_id, window), key=lambda record: record.interval)
        holidays_in_range: tuple[tuple[date, str], ...] = ()
        if resource.country:
            holidays_in_range = tuple(public_holidays_between(resource.country, window))

        return AvailabilityReport(
            resource_id=resource_id,
            range_start=window.check_in,
            range_end=window.check_out,
            available=not conflicts,
            blocked_intervals=tuple(record.interval for record in conflicts),
            holidays=holidays_in_range,
        )


def public_holidays_between(country: str, window: StayInterval) -> list[tuple[date, str]]:
    found: list[tuple[date, str]] = []
    for year in range(window.check_in.year, window.check_out.year + 1):
        for day, name in _holidays_for(country, year).items():
            if window.check_in <= day < window.check_out:
                found.append((day, name))
    return sorted(found)


def _holidays_for(country: str, year: int) -> dict[date, str]:
    key = (country, year)
    if key not in _HOLIDAY_CACHE:
        holiday_map = pyholidays.country_holidays(country, years=[year])
        _HOLIDAY_CACHE[key] = dict(holiday_map.items())
    return _HOLIDAY_CACHE[key]
