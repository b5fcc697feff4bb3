"""Quote line aggregation."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Sequence

from .domain_models import (
    CostRider,
    CrewRole,
    CrewTravel,
    Equipment,
    PricingTier,
    QuoteLineItem,
    RiderCost,
)
from .money import ZERO, apply_percent_discount, to_decimal
from .riders import LineContext, price_riders
from .tiers import resolve_rate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LineBase:
    """Rental part of a line before riders are added."""

    equipment_id: int
    equipment_name: str
    quantity: int
    rental_days: int
    price_per_day: Decimal
    discount_percent: Decimal
    base_price_per_day: Decimal

    def __post_init__(self):
        if self.quantity < 1:
            raise ValueError(f"quantity must be >= 1, got {self.quantity}")
        if self.rental_days < 1:
            raise ValueError(f"rental_days must be >= 1, got {self.rental_days}")

    @property
    def rental_cost(self) -> Decimal:
        # Only the rental rate is discounted, never the riders.
        return (
            apply_percent_discount(self.base_price_per_day, self.discount_percent)
            * self.quantity
            * self.rental_days
        )


def aggregate_line(
    base: LineBase, rider_costs: Sequence[RiderCost], notes: str = ""
) -> QuoteLineItem:
    """Combine the discounted rental cost with the rider contributions."""
    base_cost = base.rental_cost
    riders_total = sum((entry.cost for entry in rider_costs), ZERO)
    return QuoteLineItem(
        equipment_id=base.equipment_id,
        equipment_name=base.equipment_name,
        quantity=base.quantity,
        rental_days=base.rental_days,
        price_per_day=base.price_per_day,
        discount_percent=base.discount_percent,
        base_price_per_day=base.base_price_per_day,
        base_cost=base_cost,
        rider_costs=tuple(rider_costs),
        total_price=base_cost + riders_total,
        notes=notes,
    )


def price_line(
    equipment: Equipment,
    quantity: int,
    rental_days: int,
    riders: Iterable[CostRider] = (),
    *,
    tiers: Iterable[PricingTier] | None = None,
    notes: str = "",
) -> QuoteLineItem:
    """Resolve the rate for ``equipment`` and price one quote line."""
    resolution = resolve_rate(
        equipment.tiers if tiers is None else tiers, rental_days, equipment_id=equipment.id
    )
    base = LineBase(
        equipment_id=equipment.id,
        equipment_name=equipment.name,
        quantity=quantity,
        rental_days=rental_days,
        price_per_day=resolution.price_per_day,
        discount_percent=resolution.discount_percent,
        base_price_per_day=resolution.base_price_per_day,
    )
    context = LineContext(quantity=quantity, rental_days=rental_days, equipment=equipment)
    line = aggregate_line(base, price_riders(riders, context), notes=notes)
    logger.debug(
        "Priced equipment %s x%s for %s day(s): %s",
        equipment.id,
        quantity,
        rental_days,
        line.total_price,
    )
    return line


def transport_line(vehicle: Equipment, distance_km, cost_per_km, notes: str = "") -> QuoteLineItem:
    """Price a transport job: ``distance * cost_per_km`` and nothing else.

    Expressed as a line with no rental charge and a single travel-service
    rider without technicians.
    """
    rider = CrewTravel(
        CrewRole.TRAVEL_SERVICE,
        distance_km=to_decimal(distance_km),
        travel_rate_per_km=to_decimal(cost_per_km),
        technician_count=0,
        service_rate_per_technician=ZERO,
    )
    base = LineBase(
        equipment_id=vehicle.id,
        equipment_name=vehicle.name,
        quantity=1,
        rental_days=1,
        price_per_day=ZERO,
        discount_percent=ZERO,
        base_price_per_day=ZERO,
    )
    context = LineContext(quantity=1, rental_days=1, equipment=vehicle)
    return aggregate_line(base, price_riders([rider], context), notes=notes)


def reprice_line(
    line: QuoteLineItem,
    equipment: Equipment,
    *,
    quantity: int | None = None,
    rental_days: int | None = None,
    riders: Iterable[CostRider] | None = None,
) -> QuoteLineItem:
    """Rebuild a line after an edit, re-resolving the tier from scratch."""
    return price_line(
        equipment,
        line.quantity if quantity is None else quantity,
        line.rental_days if rental_days is None else rental_days,
        line.riders if riders is None else riders,
        notes=line.notes,
    )


__all__ = ["LineBase", "aggregate_line", "price_line", "transport_line", "reprice_line"]
