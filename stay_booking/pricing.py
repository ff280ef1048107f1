from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from .booking import StayInterval
from .catalog import Resource
from .errors import ValidationError


@dataclass(frozen=True)
class PriceQuote:
    nights: int
    nightly_rate: int
    total_price: int

    def to_dict(self) -> dict[str, int]:
        return {"nights": self.nights, "nightly_rate": self.nightly_rate, "total_price": self.total_price}


def nights_between(check_in: date, check_out: date) -> int:
    """Return the number of nights in [check_in, check_out), rejecting empty or inverted stays."""
    nights = (check_out - check_in).days
    if nights <= 0:
        raise ValidationError("A stay must last at least one night.")
    return nights


def quote_stay(resource: Resource, interval: StayInterval) -> PriceQuote:
    nights = nights_between(interval.check_in, interval.check_out)
    if nights < resource.min_stay:
        raise ValidationError(f"Minimum stay is {resource.min_stay} nights.")
    if nights > resource.max_stay:
        raise ValidationError(f"Maximum stay is {resource.max_stay} nights.")

    return PriceQuote(nights=nights, nightly_rate=resource.nightly_rate, total_price=nights * resource.nightly_rate)


def price_stay(resource: Resource, interval: StayInterval) -> int:
    return quote_stay(resource, interval).total_price
