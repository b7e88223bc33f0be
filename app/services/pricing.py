"""
Price, duration and loyalty aggregation for a requested list of services.

Everything here is pure: the catalog lookup and the pricing day are passed in,
so the same catalog snapshot and day always produce the same quote.
"""
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from app.core.exceptions import NotFoundError, ValidationError


@dataclass(frozen=True)
class SeasonalRule:
    season: str
    price_multiplier: float
    start_date: date
    end_date: date

    @classmethod
    def from_dict(cls, data: dict) -> "SeasonalRule":
        return cls(
            season=data.get("season"),
            price_multiplier=float(data.get("price_multiplier", 1.0)),
            start_date=_as_date(data["start_date"]),
            end_date=_as_date(data["end_date"]),
        )

    def applies_on(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


@dataclass(frozen=True)
class PricedLine:
    service_id: int
    quantity: int
    unit_price: float
    duration: int
    loyalty_points: int
    addons: Tuple[int, ...] = ()

    @property
    def line_total(self) -> float:
        return round(self.unit_price * self.quantity, 2)

    @property
    def line_duration(self) -> int:
        return self.duration * self.quantity

    @property
    def line_loyalty(self) -> int:
        return self.loyalty_points * self.quantity


@dataclass(frozen=True)
class PriceQuote:
    lines: Tuple[PricedLine, ...]
    total_amount: float
    total_duration: int
    total_loyalty_points: int


def _as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def current_multiplier(rules: Optional[Iterable[dict]], on: date) -> float:
    """Multiplier of the first seasonal rule covering ``on``, in stored order"""
    for raw in rules or ():
        rule = SeasonalRule.from_dict(raw)
        if rule.applies_on(on):
            return rule.price_multiplier
    return 1.0


def effective_price(service, on: date) -> float:
    return round(service.price * current_multiplier(service.seasonal_pricing, on), 2)


def aggregate(lines: Sequence, get_service: Callable[[int], object], on: date) -> PriceQuote:
    """Resolve each requested line against the catalog and total it up.

    ``lines`` items expose ``service_id``, ``quantity`` and optionally ``addons``.
    Raises NotFoundError for unknown or inactive services.
    """
    if not lines:
        raise ValidationError("At least one service is required")

    priced: List[PricedLine] = []
    for line in lines:
        if line.quantity < 1:
            raise ValidationError("Quantity must be at least 1")

        service = get_service(line.service_id)
        if service is None or not service.is_active:
            raise NotFoundError(f"Service not found or inactive: {line.service_id}")

        priced.append(PricedLine(
            service_id=service.id,
            quantity=line.quantity,
            unit_price=effective_price(service, on),
            duration=service.duration,
            loyalty_points=service.loyalty_points_earned or 0,
            addons=tuple(getattr(line, "addons", None) or ()),
        ))

    return PriceQuote(
        lines=tuple(priced),
        total_amount=round(sum(p.line_total for p in priced), 2),
        total_duration=sum(p.line_duration for p in priced),
        total_loyalty_points=sum(p.line_loyalty for p in priced),
    )


def calculate_total(items: Iterable, discount_amount: float = 0.0) -> float:
    """Sum of frozen unit price x quantity minus discount; addons are never priced"""
    subtotal = sum(item.price * item.quantity for item in items)
    return round(subtotal - (discount_amount or 0.0), 2)


def to_minor_units(amount: float) -> int:
    return int(round(amount * 100))
