"""Tiered rental-period pricing: rate resolution and editor-time reconciliation."""
from __future__ import annotations

import dataclasses
import logging
from decimal import Decimal
from typing import Iterable, Sequence

from .domain_models import PricingTier, RateResolution
from .errors import InconsistentTierConfiguration, NoPricingAvailable
from .money import HUNDRED, ZERO, quantize_money, to_decimal

logger = logging.getLogger(__name__)


class TierTable:
    """Ordered, non-overlapping day-count bands of one equipment."""

    def __init__(self, tiers: Iterable[PricingTier], equipment_id: int | None = None):
        self.equipment_id = equipment_id
        self.tiers: tuple[PricingTier, ...] = tuple(
            sorted(tiers, key=lambda tier: tier.period_start)
        )
        self._validate()

    def _fail(self, message: str) -> None:
        raise InconsistentTierConfiguration(message, equipment_id=self.equipment_id)

    def _validate(self) -> None:
        if not self.tiers:
            # An empty table is not malformed, it just prices nothing.
            return

        for tier in self.tiers:
            if tier.period_start < 1:
                self._fail(f"Tier period_start must be >= 1, got {tier.period_start}")
            if tier.period_end is not None and tier.period_end < tier.period_start:
                self._fail(
                    f"Tier {tier.period_start}-{tier.period_end} ends before it starts"
                )
            if tier.price_per_day < 0:
                self._fail(f"Tier starting at day {tier.period_start} has a negative price")
            if not ZERO <= tier.discount_percent <= HUNDRED:
                self._fail(
                    f"Tier starting at day {tier.period_start} has discount "
                    f"{tier.discount_percent} outside 0-100"
                )

        base = self.tiers[0]
        if not base.is_base:
            self._fail("Missing base tier (period_start = 1)")
        if base.discount_percent != ZERO:
            self._fail(f"Base tier must carry a 0% discount, got {base.discount_percent}%")

        for previous, current in zip(self.tiers, self.tiers[1:]):
            if previous.period_end is None or previous.period_end >= current.period_start:
                self._fail(
                    f"Tiers starting at day {previous.period_start} and "
                    f"{current.period_start} overlap"
                )

    @property
    def base_tier(self) -> PricingTier:
        if not self.tiers:
            raise NoPricingAvailable(1, equipment_id=self.equipment_id)
        return self.tiers[0]

    def find(self, rental_days: int) -> PricingTier | None:
        for tier in self.tiers:
            if tier.covers(rental_days):
                return tier
        return None

    def gaps(self) -> list[tuple[int, int | None]]:
        """Return the day ranges no tier covers (``None`` end = unbounded)."""
        result: list[tuple[int, int | None]] = []
        expected = 1
        for tier in self.tiers:
            if tier.period_start > expected:
                result.append((expected, tier.period_start - 1))
            if tier.period_end is None:
                return result
            expected = tier.period_end + 1
        result.append((expected, None))
        return result

    def resolve(self, rental_days: int) -> RateResolution:
        if rental_days < 1:
            raise ValueError(f"rental_days must be >= 1, got {rental_days}")

        tier = self.find(rental_days)
        if tier is None:
            raise NoPricingAvailable(rental_days, equipment_id=self.equipment_id)

        return RateResolution(
            price_per_day=tier.price_per_day,
            discount_percent=tier.discount_percent,
            base_price_per_day=self.base_tier.price_per_day,
            tier=tier,
        )


def resolve_rate(
    tiers: Iterable[PricingTier], rental_days: int, equipment_id: int | None = None
) -> RateResolution:
    """Resolve the per-day price and discount for a rental period.

    Stored tier values are trusted as-is; price/discount reconciliation
    belongs to the tier editor (see ``reconcile_tier_edit``).
    """
    return TierTable(tiers, equipment_id=equipment_id).resolve(rental_days)


def discount_from_price(base_price, price) -> Decimal:
    """Discount implied by ``price`` relative to the base tier price."""
    base_price = to_decimal(base_price)
    price = to_decimal(price)
    if base_price <= 0:
        return ZERO
    return max(ZERO, (base_price - price) / base_price * HUNDRED)


def price_from_discount(base_price, discount_percent) -> Decimal:
    base_price = to_decimal(base_price)
    discount_percent = to_decimal(discount_percent)
    return base_price * (1 - discount_percent / HUNDRED)


def reconcile_tier_edit(
    tiers: Sequence[PricingTier],
    index: int,
    *,
    price_per_day=None,
    discount_percent=None,
) -> list[PricingTier]:
    """Apply an editor change to one tier and recompute its dependent value.

    Exactly one of ``price_per_day`` and ``discount_percent`` is given. When
    the base tier's price changes, only the base tier is touched and its
    discount stays pinned at zero; sibling tiers are not reconciled.
    """
    if (price_per_day is None) == (discount_percent is None):
        raise ValueError("Pass exactly one of price_per_day or discount_percent")

    ordered = sorted(tiers, key=lambda tier: tier.period_start)
    if not ordered or not ordered[0].is_base:
        raise InconsistentTierConfiguration("Missing base tier (period_start = 1)")

    target = ordered[index]
    base_price = ordered[0].price_per_day

    if target.is_base:
        if discount_percent is not None:
            raise InconsistentTierConfiguration("The base tier discount is fixed at 0%")
        updated = dataclasses.replace(
            target, price_per_day=quantize_money(price_per_day), discount_percent=ZERO
        )
    elif price_per_day is not None:
        new_price = quantize_money(price_per_day)
        updated = dataclasses.replace(
            target,
            price_per_day=new_price,
            discount_percent=quantize_money(discount_from_price(base_price, new_price)),
        )
    else:
        new_discount = to_decimal(discount_percent)
        if not ZERO <= new_discount <= HUNDRED:
            raise InconsistentTierConfiguration(
                f"Discount {new_discount} is outside 0-100"
            )
        updated = dataclasses.replace(
            target,
            price_per_day=quantize_money(price_from_discount(base_price, new_discount)),
            discount_percent=quantize_money(new_discount),
        )

    logger.debug(
        "Tier %s-%s edited: price %s -> %s, discount %s -> %s",
        target.period_start,
        target.period_end,
        target.price_per_day,
        updated.price_per_day,
        target.discount_percent,
        updated.discount_percent,
    )
    ordered[index] = updated
    return ordered


__all__ = [
    "TierTable",
    "resolve_rate",
    "discount_from_price",
    "price_from_discount",
    "reconcile_tier_edit",
]
