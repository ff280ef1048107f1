from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Any, Mapping
import os

import yaml

from .booking import ReservationStatus
from .errors import ValidationError

ENV_PREFIX = "STAY_BOOKING_"
DEFAULT_LOCK_TIMEOUT_SECONDS = 2.0


class ApprovalPolicy(str, Enum):
    INSTANT = "instant"
    MANUAL = "manual"


@dataclass(frozen=True)
class BookingSettings:
    approval_policy: ApprovalPolicy = ApprovalPolicy.INSTANT
    lock_timeout_seconds: float = DEFAULT_LOCK_TIMEOUT_SECONDS
    data_dir: str = "data"

    def __post_init__(self) -> None:
        object.__setattr__(self, "approval_policy", _parse_policy(self.approval_policy))
        if self.lock_timeout_seconds <= 0:
            raise ValidationError("lock_timeout_seconds must be greater than zero")

    @property
    def initial_status(self) -> ReservationStatus:
        if self.approval_policy is ApprovalPolicy.MANUAL:
            return ReservationStatus.PENDING
        return ReservationStatus.CONFIRMED

    @staticmethod
    def from_mapping(data: Mapping[str, Any]) -> "BookingSettings":
        settings = BookingSettings()
        overrides: dict[str, Any] = {}
        if data.get("approval_policy") is not None:
            overrides["approval_policy"] = _parse_policy(data["approval_policy"])
        if data.get("lock_timeout_seconds") is not None:
            overrides["lock_timeout_seconds"] = _parse_timeout(data["lock_timeout_seconds"])
        if data.get("data_dir") is not None:
            overrides["data_dir"] = str(data["data_dir"])
        return replace(settings, **overrides)


def load_settings(path: str | Path | None = None, environ: Mapping[str, str] | None = None) -> BookingSettings:
    """Build settings from an optional YAML file, then apply ``STAY_BOOKING_*`` environment overrides."""
    data: dict[str, Any] = {}
    if path is not None:
        config_path = Path(path)
        if config_path.exists():
            try:
                payload = yaml.safe_load(config_path.read_text(encoding="utf-8"))
            except yaml.YAMLError as error:
                raise ValidationError(f"Settings file is not valid YAML: {config_path}") from error
            if payload is not None and not isinstance(payload, dict):
                raise ValidationError("Settings file must contain a mapping at the top level")
            data.update(payload or {})

    env = os.environ if environ is None else environ
    for key in ("approval_policy", "lock_timeout_seconds", "data_dir"):
        value = env.get(ENV_PREFIX + key.upper())
        if value:
            data[key] = value
    # shorter alias
    if env.get(ENV_PREFIX + "LOCK_TIMEOUT"):
        data["lock_timeout_seconds"] = env[ENV_PREFIX + "LOCK_TIMEOUT"]

    return BookingSettings.from_mapping(data)


def _parse_policy(value: Any) -> ApprovalPolicy:
    if isinstance(value, ApprovalPolicy):
        return value
    try:
        return ApprovalPolicy(str(value).strip().lower())
    except ValueError as error:
        raise ValidationError(f"approval_policy must be one of: instant, manual (got {value!r})") from error


def _parse_timeout(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as error:
        raise ValidationError(f"lock_timeout_seconds must be a number (got {value!r})") from error
