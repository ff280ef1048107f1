from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Protocol
import logging
import threading

import holidays as pyholidays

from .errors import NotFoundError, ReservationStorageError, ValidationError
from .yaml_io import YamlListFile

logger = logging.getLogger(__name__)

DEFAULT_MIN_STAY = 1
DEFAULT_MAX_STAY = 365


@dataclass(frozen=True)
class Resource:
    resource_id: str
    owner_id: str
    capacity: int
    nightly_rate: int
    min_stay: int = DEFAULT_MIN_STAY
    max_stay: int = DEFAULT_MAX_STAY
    title: str | None = None
    country: str | None = None

    def __post_init__(self) -> None:
        if not self.resource_id.strip():
            raise ValidationError("resource_id must not be empty")
        if not self.owner_id.strip():
            raise ValidationError("owner_id must not be empty")
        if isinstance(self.capacity, bool) or not isinstance(self.capacity, int) or self.capacity < 1:
            raise ValidationError("capacity must be a positive integer")
        if isinstance(self.nightly_rate, bool) or not isinstance(self.nightly_rate, int) or self.nightly_rate < 0:
            raise ValidationError("nightly_rate must be a non-negative integer amount in minor units")
        if self.min_stay < 1:
            raise ValidationError("min_stay must be at least 1 night")
        if self.max_stay < self.min_stay:
            raise ValidationError("max_stay must not be shorter than min_stay")
        if self.country is not None:
            _validate_country(self.country)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "resource_id": self.resource_id,
            "owner_id": self.owner_id,
            "capacity": self.capacity,
            "nightly_rate": self.nightly_rate,
            "min_stay": self.min_stay,
            "max_stay": self.max_stay,
        }
        if self.title is not None:
            payload["title"] = self.title
        if self.country is not None:
            payload["country"] = self.country
        return payload

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "Resource":
        try:
            return Resource(
                resource_id=str(data["resource_id"]),
                owner_id=str(data["owner_id"]),
                capacity=int(data["capacity"]),
                nightly_rate=int(data["nightly_rate"]),
                min_stay=int(data.get("min_stay", DEFAULT_MIN_STAY)),
                max_stay=int(data.get("max_stay", DEFAULT_MAX_STAY)),
                title=(str(data["title"]) if data.get("title") is not None else None),
                country=(str(data["country"]) if data.get("country") is not None else None),
            )
        except ValidationError:
            raise
        except (KeyError, TypeError, ValueError) as error:
            raise ValidationError(f"Malformed resource definition: {error}") from error


class ResourceCatalog(Protocol):
    def get_resource(self, resource_id: str) -> Resource: ...

    def resource_ids_owned_by(self, owner_id: str) -> list[str]: ...


class InMemoryResourceCatalog:
    def __init__(self, resources: Iterable[Resource] = ()) -> None:
        self._resources: dict[str, Resource] = {}
        self._lock = threading.Lock()
        for resource in resources:
            self.register_resource(resource)

    def register_resource(self, resource: Resource) -> Resource:
        with self._lock:
            self._resources[resource.resource_id] = resource
        return resource

    def get_resource(self, resource_id: str) -> Resource:
        resource = self._resources.get(resource_id)
        if resource is None:
            raise NotFoundError(f"Resource not found: {resource_id}")
        return resource

    def resource_ids_owned_by(self, owner_id: str) -> list[str]:
        return sorted(resource.resource_id for resource in self._resources.values() if resource.owner_id == owner_id)

    def list_resources(self) -> list[Resource]:
        return sorted(self._resources.values(), key=lambda resource: resource.resource_id)


class YamlResourceCatalog(InMemoryResourceCatalog):
    """Catalog persisted as ``resources.yaml`` next to the reservation files."""

    def __init__(self, base_dir: str | Path = "data") -> None:
        super().__init__()
        self.base_dir = Path(base_dir)
        self.resource_file = YamlListFile(self.base_dir / "resources.yaml", event_sink=self._log_event)
        self.log_file = YamlListFile(self.base_dir / "reservation_events.yaml")
        for index, row in enumerate(self.resource_file.read_rows()):
            try:
                resource = Resource.from_dict(row)
            except ValidationError as error:
                self._log_event(
                    "YAML_ROW_SKIPPED",
                    {
                        "file": str(self.resource_file.path.name),
                        "index": index,
                        "reason": str(error),
                    },
                )
                continue
            self._resources[resource.resource_id] = resource

    def _log_event(self, event_type: str, payload: dict[str, Any], event_time: datetime | None = None) -> None:
        try:
            self.log_file.append_event(event_type, payload, event_time)
        except ReservationStorageError:
            logger.exception("Could not append %s to %s", event_type, self.log_file.path)

    def register_resource(self, resource: Resource, now: datetime | None = None) -> Resource:
        with self._lock:
            rows = [item.to_dict() for item in self._resources.values() if item.resource_id != resource.resource_id]
            rows.append(resource.to_dict())
            rows.sort(key=lambda row: row["resource_id"])
            self.resource_file.write_rows(rows)
            self._resources[resource.resource_id] = resource

        self._log_event(
            "RESOURCE_REGISTERED",
            {
                "resource_id": resource.resource_id,
                "owner_id": resource.owner_id,
                "capacity": resource.capacity,
                "nightly_rate": resource.nightly_rate,
            },
            now,
        )
        return resource

    def update_rate(self, resource_id: str, nightly_rate: int, now: datetime | None = None) -> Resource:
        current = self.get_resource(resource_id)
        return self.register_resource(replace(current, nightly_rate=nightly_rate), now=now)


def _validate_country(country: str) -> None:
    try:
        pyholidays.country_holidays(country)
    except NotImplementedError as error:
        raise ValidationError(f"Unsupported holiday country code: {country}") from error
