from decimal import Decimal

from django.test import SimpleTestCase

from quoting.domain_models import PricingTier
from quoting.errors import InconsistentTierConfiguration, NoPricingAvailable
from quoting.tiers import (
    TierTable,
    discount_from_price,
    price_from_discount,
    reconcile_tier_edit,
    resolve_rate,
)

from .factories import make_tiers


class ResolveRateTests(SimpleTestCase):
    def test_resolves_matching_tier(self):
        resolution = resolve_rate(make_tiers(), 5)

        self.assertEqual(resolution.price_per_day, Decimal("85.71"))
        self.assertEqual(resolution.discount_percent, Decimal("14.29"))
        self.assertEqual(resolution.base_price_per_day, Decimal("100"))

    def test_tier_bounds_are_inclusive(self):
        tiers = make_tiers()

        self.assertEqual(resolve_rate(tiers, 2).price_per_day, Decimal("100"))
        self.assertEqual(resolve_rate(tiers, 3).price_per_day, Decimal("85.71"))
        self.assertEqual(resolve_rate(tiers, 7).price_per_day, Decimal("85.71"))
        self.assertEqual(resolve_rate(tiers, 8).price_per_day, Decimal("70"))

    def test_unbounded_tier_covers_every_longer_period(self):
        tiers = make_tiers()
        for days in range(1, 400):
            with self.subTest(days=days):
                self.assertIsNotNone(resolve_rate(tiers, days))

    def test_unsorted_input_is_ordered(self):
        resolution = resolve_rate(list(reversed(make_tiers())), 1)
        self.assertEqual(resolution.price_per_day, Decimal("100"))

    def test_gap_raises_no_pricing(self):
        tiers = [
            PricingTier(1, 2, Decimal("100")),
            PricingTier(5, None, Decimal("80"), Decimal("20")),
        ]

        self.assertEqual(TierTable(tiers).gaps(), [(3, 4)])
        for days in (3, 4):
            with self.assertRaises(NoPricingAvailable) as ctx:
                resolve_rate(tiers, days, equipment_id=12)
            self.assertEqual(ctx.exception.rental_days, days)
            self.assertEqual(ctx.exception.equipment_id, 12)

    def test_bounded_table_fails_past_last_tier(self):
        tiers = [PricingTier(1, 3, Decimal("100"))]

        self.assertEqual(TierTable(tiers).gaps(), [(4, None)])
        with self.assertRaises(NoPricingAvailable):
            resolve_rate(tiers, 4)

    def test_no_tiers_raises_no_pricing(self):
        with self.assertRaises(NoPricingAvailable):
            resolve_rate([], 1)

    def test_rental_days_must_be_positive(self):
        with self.assertRaises(ValueError):
            resolve_rate(make_tiers(), 0)

    def test_missing_base_tier_is_inconsistent(self):
        with self.assertRaises(InconsistentTierConfiguration):
            resolve_rate([PricingTier(2, None, Decimal("90"))], 3)

    def test_discounted_base_tier_is_inconsistent(self):
        with self.assertRaises(InconsistentTierConfiguration):
            resolve_rate([PricingTier(1, None, Decimal("90"), Decimal("5"))], 3)

    def test_overlapping_tiers_are_inconsistent(self):
        tiers = [
            PricingTier(1, 5, Decimal("100")),
            PricingTier(4, None, Decimal("90"), Decimal("10")),
        ]
        with self.assertRaises(InconsistentTierConfiguration):
            TierTable(tiers)

    def test_resolver_trusts_stored_values(self):
        # Price and discount disagree; nothing is recomputed at read time.
        tiers = [
            PricingTier(1, 2, Decimal("100")),
            PricingTier(3, None, Decimal("60"), Decimal("10")),
        ]
        resolution = resolve_rate(tiers, 3)

        self.assertEqual(resolution.price_per_day, Decimal("60"))
        self.assertEqual(resolution.discount_percent, Decimal("10"))


class TierEditingTests(SimpleTestCase):
    def test_discount_from_price(self):
        self.assertEqual(discount_from_price(100, "85.71"), Decimal("14.29"))
        self.assertEqual(discount_from_price(100, 120), Decimal("0"))

    def test_price_from_discount(self):
        self.assertEqual(price_from_discount(100, "14.29"), Decimal("85.71"))

    def test_price_discount_round_trip(self):
        base = Decimal("137.50")
        for discount in ("0", "5", "12.5", "14.29", "33.33", "50", "100"):
            with self.subTest(discount=discount):
                tiers = [PricingTier(1, 2, base), PricingTier(3, None, base)]
                by_discount = reconcile_tier_edit(tiers, 1, discount_percent=discount)
                by_price = reconcile_tier_edit(
                    by_discount, 1, price_per_day=by_discount[1].price_per_day
                )
                self.assertAlmostEqual(
                    float(by_price[1].discount_percent), float(discount), delta=0.01
                )

    def test_editing_price_recomputes_discount(self):
        tiers = reconcile_tier_edit(make_tiers(), 2, price_per_day="75")

        self.assertEqual(tiers[2].price_per_day, Decimal("75.00"))
        self.assertEqual(tiers[2].discount_percent, Decimal("25.00"))
        self.assertEqual(tiers[1], make_tiers()[1])

    def test_editing_discount_recomputes_price(self):
        tiers = reconcile_tier_edit(make_tiers(), 1, discount_percent="20")

        self.assertEqual(tiers[1].price_per_day, Decimal("80.00"))
        self.assertEqual(tiers[1].discount_percent, Decimal("20.00"))

    def test_base_tier_stays_pinned(self):
        tiers = reconcile_tier_edit(make_tiers(), 0, price_per_day="120")

        self.assertEqual(tiers[0].price_per_day, Decimal("120.00"))
        self.assertEqual(tiers[0].discount_percent, Decimal("0"))
        # Siblings are not reconciled automatically.
        self.assertEqual(tiers[1].price_per_day, Decimal("85.71"))

        with self.assertRaises(InconsistentTierConfiguration):
            reconcile_tier_edit(make_tiers(), 0, discount_percent="5")

    def test_requires_exactly_one_value(self):
        with self.assertRaises(ValueError):
            reconcile_tier_edit(make_tiers(), 1)
        with self.assertRaises(ValueError):
            reconcile_tier_edit(make_tiers(), 1, price_per_day=1, discount_percent=1)
