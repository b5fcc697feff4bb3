import dataclasses
from decimal import ROUND_HALF_UP, Decimal

from django.test import SimpleTestCase, override_settings

from quoting.domain_models import Fuel, QuoteStatus
from quoting.line_items import price_line
from quoting.totals import (
    add_line,
    build_quote,
    compute_totals,
    remove_line,
    replace_line,
    with_status,
    with_vat_rate,
)

from .factories import make_generator


class ComputeTotalsTests(SimpleTestCase):
    def setUp(self):
        equipment = make_generator()
        fuel = Fuel(price_per_liter=6, consumption_l_per_h=2, hours_per_day=8)
        self.fuel_line = price_line(equipment, quantity=2, rental_days=5, riders=[fuel])
        self.short_line = price_line(equipment, quantity=5, rental_days=1)

    def test_net_and_gross(self):
        totals = compute_totals([self.fuel_line, self.short_line], vat_rate=23)

        self.assertEqual(totals.total_net, Decimal("1837.10"))
        self.assertEqual(totals.total_gross, Decimal("2259.63"))

    def test_default_vat_rate(self):
        totals = compute_totals([self.short_line])

        self.assertEqual(totals.vat_rate, Decimal("23"))
        self.assertEqual(totals.total_gross, Decimal("615.00"))

    @override_settings(QUOTING_DEFAULT_VAT_RATE=Decimal("8"))
    def test_default_vat_rate_from_settings(self):
        totals = compute_totals([self.short_line])

        self.assertEqual(totals.total_gross, Decimal("540.00"))

    def test_rounding_happens_once(self):
        # Three lines of 0.005 each: rounding per line would give 0.03.
        lines = [
            dataclasses.replace(self.short_line, total_price=Decimal("0.005")) for _ in range(3)
        ]
        totals = compute_totals(lines, vat_rate=0)

        self.assertEqual(totals.total_net, Decimal("0.02"))

    def test_gross_is_derived_from_rounded_net(self):
        line = dataclasses.replace(self.short_line, total_price=Decimal("1000.0049"))

        totals = compute_totals([line], vat_rate=23)

        self.assertEqual(totals.total_net, Decimal("1000.00"))
        self.assertEqual(totals.total_gross, Decimal("1230.00"))

    def test_empty_quote(self):
        totals = compute_totals([], vat_rate=23)

        self.assertEqual(totals.total_net, Decimal("0.00"))
        self.assertEqual(totals.total_gross, Decimal("0.00"))

    def test_negative_vat_is_rejected(self):
        with self.assertRaises(ValueError):
            compute_totals([self.short_line], vat_rate=-1)


class QuoteEditTests(SimpleTestCase):
    def setUp(self):
        self.equipment = make_generator()
        self.quote = build_quote(
            client_ref=42,
            lines=[
                price_line(self.equipment, quantity=2, rental_days=5),
                price_line(self.equipment, quantity=1, rental_days=1),
            ],
            quote_number="01/08.2025",
            domain="equipment",
            vat_rate=23,
        )

    def assertVatConsistent(self, quote):
        expected = (quote.total_net * (1 + quote.vat_rate / 100)).quantize(
            Decimal("0.01"), rounding=ROUND_HALF_UP
        )
        self.assertEqual(quote.total_gross, expected)
        self.assertEqual(
            quote.total_net,
            sum(line.total_price for line in quote.lines).quantize(Decimal("0.01")),
        )

    def test_new_quote_is_consistent(self):
        self.assertEqual(self.quote.total_net, Decimal("957.10"))
        self.assertEqual(self.quote.status, QuoteStatus.DRAFT)
        self.assertVatConsistent(self.quote)

    def test_replace_line_recomputes(self):
        edited = replace_line(self.quote, 1, price_line(self.equipment, quantity=1, rental_days=10))

        self.assertEqual(edited.total_net, Decimal("1557.10"))
        self.assertVatConsistent(edited)
        # The original quote is untouched.
        self.assertEqual(self.quote.total_net, Decimal("957.10"))

    def test_add_and_remove_lines(self):
        added = add_line(self.quote, price_line(self.equipment, quantity=1, rental_days=2))
        self.assertEqual(added.total_net, Decimal("1157.10"))
        self.assertVatConsistent(added)

        removed = remove_line(added, 0)
        self.assertEqual(removed.total_net, Decimal("300.00"))
        self.assertVatConsistent(removed)

    def test_vat_change_recomputes_gross(self):
        changed = with_vat_rate(self.quote, 8)

        self.assertEqual(changed.total_gross, Decimal("1033.67"))
        self.assertVatConsistent(changed)

    def test_status_has_no_transition_guards(self):
        accepted = with_status(self.quote, "accepted")
        reopened = with_status(accepted, QuoteStatus.DRAFT)

        self.assertEqual(accepted.status, QuoteStatus.ACCEPTED)
        self.assertEqual(reopened.status, QuoteStatus.DRAFT)
        with self.assertRaises(ValueError):
            with_status(self.quote, "archived")
