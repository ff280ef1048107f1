from .availability import AvailabilityChecker, AvailabilityReport
from .booking import (
    BLOCKING_STATUSES,
    ReservationRecord,
    ReservationStatus,
    StayInterval,
    has_date_overlap,
    make_interval,
)
from .catalog import InMemoryResourceCatalog, Resource, ResourceCatalog, YamlResourceCatalog
from .config import ApprovalPolicy, BookingSettings, load_settings
from .errors import (
    AuthorizationError,
    BookingError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ReservationStorageError,
    ValidationError,
)
from .interval_index import BlockingIntervalIndex
from .lifecycle import ActorRole, validate_transition
from .orchestrator import BookingOrchestrator, ResourceLockRegistry
from .pricing import PriceQuote, nights_between, price_stay, quote_stay
from .yaml_store import ReservationYamlRepository

__all__ = [
    "AvailabilityChecker",
    "AvailabilityReport",
    "BLOCKING_STATUSES",
    "ReservationRecord",
    "ReservationStatus",
    "StayInterval",
    "has_date_overlap",
    "make_interval",
    "InMemoryResourceCatalog",
    "Resource",
    "ResourceCatalog",
    "YamlResourceCatalog",
    "ApprovalPolicy",
    "BookingSettings",
    "load_settings",
    "AuthorizationError",
    "BookingError",
    "ConflictError",
    "InvalidStateError",
    "NotFoundError",
    "ReservationStorageError",
    "ValidationError",
    "BlockingIntervalIndex",
    "ActorRole",
    "validate_transition",
    "BookingOrchestrator",
    "ResourceLockRegistry",
    "PriceQuote",
    "nights_between",
    "price_stay",
    "quote_stay",
    "ReservationYamlRepository",
]
