"""Domain models for rental quote pricing."""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import ClassVar, Mapping

from .money import ZERO, quantize_money, to_decimal


class QuoteStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class CalculationType(str, Enum):
    MOTOHOURS = "motohours"
    KILOMETERS = "kilometers"


class RiderKind(str, Enum):
    FUEL = "fuel"
    MAINTENANCE = "maintenance"
    INSTALLATION = "installation"
    DISASSEMBLY = "disassembly"
    TRAVEL_SERVICE = "travel_service"
    SERVICE_ITEMS = "service_items"
    ADDITIONAL_EQUIPMENT = "additional_equipment"
    ACCESSORIES = "accessories"


class CrewRole(str, Enum):
    INSTALLATION = "installation"
    DISASSEMBLY = "disassembly"
    TRAVEL_SERVICE = "travel_service"


def _coerce(obj, *names: str) -> None:
    """Convert the given optional attributes of a frozen dataclass to Decimal."""
    for name in names:
        value = getattr(obj, name)
        if value is not None:
            object.__setattr__(obj, name, to_decimal(value))


@dataclass(frozen=True)
class PricingTier:
    period_start: int
    period_end: int | None
    price_per_day: Decimal
    discount_percent: Decimal = ZERO

    def __post_init__(self):
        _coerce(self, "price_per_day", "discount_percent")

    @property
    def is_base(self) -> bool:
        return self.period_start == 1

    def covers(self, rental_days: int) -> bool:
        if rental_days < self.period_start:
            return False
        return self.period_end is None or rental_days <= self.period_end


@dataclass(frozen=True)
class Addon:
    """An entry of an equipment's additional-equipment or accessories catalog."""

    id: int
    name: str
    price_per_day: Decimal

    def __post_init__(self):
        _coerce(self, "price_per_day")


@dataclass(frozen=True)
class Equipment:
    id: int
    name: str
    quantity: int = 1
    available_quantity: int | None = None
    category_id: int | None = None
    attributes: Mapping[str, object] = field(default_factory=dict)
    tiers: tuple[PricingTier, ...] = ()
    additional_equipment: Mapping[int, Addon] = field(default_factory=dict)
    accessories: Mapping[int, Addon] = field(default_factory=dict)

    def __post_init__(self):
        if self.available_quantity is None:
            object.__setattr__(self, "available_quantity", self.quantity)
        if self.quantity < 0 or self.available_quantity < 0:
            raise ValueError("Equipment quantities cannot be negative")
        if self.available_quantity > self.quantity:
            raise ValueError(
                f"Equipment {self.id}: available_quantity ({self.available_quantity}) "
                f"exceeds quantity ({self.quantity})"
            )
        object.__setattr__(self, "tiers", tuple(self.tiers))


# Cost riders. Each variant carries only the parameters its formula needs;
# ``None`` marks a parameter that was not supplied.


@dataclass(frozen=True)
class Fuel:
    kind: ClassVar[RiderKind] = RiderKind.FUEL

    price_per_liter: Decimal | None
    calculation_type: CalculationType = CalculationType.MOTOHOURS
    consumption_l_per_h: Decimal | None = None
    hours_per_day: Decimal | None = None
    consumption_per_100km: Decimal | None = None
    km_per_day: Decimal | None = None

    def __post_init__(self):
        object.__setattr__(self, "calculation_type", CalculationType(self.calculation_type))
        _coerce(
            self,
            "price_per_liter",
            "consumption_l_per_h",
            "hours_per_day",
            "consumption_per_100km",
            "km_per_day",
        )


DEFAULT_FILTER_COSTS = (
    Decimal("49.00"),
    Decimal("118.00"),
    Decimal("45.00"),
    Decimal("105.00"),
    Decimal("54.00"),
    Decimal("150.00"),
)


@dataclass(frozen=True)
class Maintenance:
    """Exploitation cost pro-rated over the service interval.

    In motohours mode usage is ``expected_hours`` when given, otherwise
    ``hours_per_day * rental_days``; in kilometers mode it is
    ``km_per_day * rental_days``.
    """

    kind: ClassVar[RiderKind] = RiderKind.MAINTENANCE

    calculation_type: CalculationType = CalculationType.MOTOHOURS
    interval_hours: Decimal | None = Decimal("500")
    interval_km: Decimal | None = None
    hours_per_day: Decimal | None = None
    expected_hours: Decimal | None = None
    km_per_day: Decimal | None = None
    filter_costs: tuple[Decimal, ...] = DEFAULT_FILTER_COSTS
    oil_cost: Decimal = Decimal("162.44")
    service_work_hours: Decimal = Decimal("2")
    service_work_rate_per_hour: Decimal = Decimal("100.00")
    service_travel_distance_km: Decimal = Decimal("31")
    service_travel_rate_per_km: Decimal = Decimal("1.15")

    def __post_init__(self):
        object.__setattr__(self, "calculation_type", CalculationType(self.calculation_type))
        object.__setattr__(
            self, "filter_costs", tuple(to_decimal(cost) for cost in self.filter_costs)
        )
        _coerce(
            self,
            "interval_hours",
            "interval_km",
            "hours_per_day",
            "expected_hours",
            "km_per_day",
            "oil_cost",
            "service_work_hours",
            "service_work_rate_per_hour",
            "service_travel_distance_km",
            "service_travel_rate_per_km",
        )


@dataclass(frozen=True)
class CrewTravel:
    """Installation, disassembly or travel-service charge.

    All three share ``distance * rate + technicians * service rate``; only
    travel-service is repeated ``number_of_trips`` times.
    """

    role: CrewRole
    distance_km: Decimal | None
    travel_rate_per_km: Decimal | None = Decimal("1.15")
    technician_count: int | None = 1
    service_rate_per_technician: Decimal | None = Decimal("150")
    number_of_trips: int = 1

    def __post_init__(self):
        object.__setattr__(self, "role", CrewRole(self.role))
        _coerce(self, "distance_km", "travel_rate_per_km", "service_rate_per_technician")

    @property
    def kind(self) -> RiderKind:
        return RiderKind(self.role.value)


def installation(distance_km, **params) -> CrewTravel:
    return CrewTravel(CrewRole.INSTALLATION, distance_km, **params)


def disassembly(distance_km, **params) -> CrewTravel:
    return CrewTravel(CrewRole.DISASSEMBLY, distance_km, **params)


def travel_service(distance_km, **params) -> CrewTravel:
    return CrewTravel(CrewRole.TRAVEL_SERVICE, distance_km, **params)


@dataclass(frozen=True)
class ServiceItemEntry:
    cost: Decimal | None
    included: bool = True
    slot: int | None = None
    name: str | None = None

    def __post_init__(self):
        _coerce(self, "cost")


@dataclass(frozen=True)
class ServiceItems:
    kind: ClassVar[RiderKind] = RiderKind.SERVICE_ITEMS

    entries: tuple[ServiceItemEntry, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "entries", tuple(self.entries))


@dataclass(frozen=True)
class AdditionalEquipment:
    """Selected entries of the equipment's additional-equipment catalog."""

    kind: ClassVar[RiderKind] = RiderKind.ADDITIONAL_EQUIPMENT
    catalog_attr: ClassVar[str] = "additional_equipment"

    selected_ids: tuple[int, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "selected_ids", tuple(self.selected_ids))


@dataclass(frozen=True)
class Accessories:
    kind: ClassVar[RiderKind] = RiderKind.ACCESSORIES
    catalog_attr: ClassVar[str] = "accessories"

    selected_ids: tuple[int, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "selected_ids", tuple(self.selected_ids))


CostRider = Fuel | Maintenance | CrewTravel | ServiceItems | AdditionalEquipment | Accessories


@dataclass(frozen=True)
class RiderCost:
    kind: RiderKind
    cost: Decimal
    rider: CostRider


@dataclass(frozen=True)
class RateResolution:
    price_per_day: Decimal
    discount_percent: Decimal
    base_price_per_day: Decimal
    tier: PricingTier


@dataclass(frozen=True)
class QuoteLineItem:
    equipment_id: int
    equipment_name: str
    quantity: int
    rental_days: int
    price_per_day: Decimal
    discount_percent: Decimal
    base_price_per_day: Decimal
    base_cost: Decimal
    rider_costs: tuple[RiderCost, ...]
    total_price: Decimal
    notes: str = ""

    @property
    def riders(self) -> tuple[CostRider, ...]:
        return tuple(entry.rider for entry in self.rider_costs)

    @property
    def riders_cost(self) -> Decimal:
        return sum((entry.cost for entry in self.rider_costs), ZERO)

    def breakdown(self) -> dict[str, object]:
        """Per-line cost breakdown for print/export collaborators."""
        return {
            "equipment_id": self.equipment_id,
            "equipment_name": self.equipment_name,
            "quantity": self.quantity,
            "rental_days": self.rental_days,
            "price_per_day": quantize_money(self.price_per_day),
            "discount_percent": self.discount_percent,
            "base_cost": quantize_money(self.base_cost),
            "riders": {entry.kind.value: quantize_money(entry.cost) for entry in self.rider_costs},
            "total_price": quantize_money(self.total_price),
        }


@dataclass(frozen=True)
class QuoteTotals:
    total_net: Decimal
    total_gross: Decimal
    vat_rate: Decimal


@dataclass(frozen=True)
class SequenceKey:
    prefix: str
    month: int
    year: int

    def __post_init__(self):
        if not 1 <= self.month <= 12:
            raise ValueError(f"Invalid month: {self.month}")

    @classmethod
    def for_date(cls, prefix: str, when: dt.date) -> "SequenceKey":
        return cls(prefix=prefix, month=when.month, year=when.year)

    @property
    def period_suffix(self) -> str:
        return f"{self.month:02d}.{self.year}"

    def __str__(self) -> str:
        return f"{self.prefix or '<primary>'}@{self.period_suffix}"


@dataclass(frozen=True)
class Quote:
    client_ref: object
    lines: tuple[QuoteLineItem, ...]
    vat_rate: Decimal
    total_net: Decimal
    total_gross: Decimal
    quote_number: str
    domain: str
    status: QuoteStatus = QuoteStatus.DRAFT
    notes: str = ""
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None
