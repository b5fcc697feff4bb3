from decimal import Decimal

from django.test import SimpleTestCase

from quoting.domain_models import (
    Accessories,
    AdditionalEquipment,
    Equipment,
    Fuel,
    Maintenance,
    RiderKind,
    ServiceItemEntry,
    ServiceItems,
    installation,
    travel_service,
)
from quoting.errors import NoPricingAvailable
from quoting.line_items import LineBase, aggregate_line, price_line, reprice_line, transport_line
from quoting.money import quantize_money

from .factories import make_generator


class PriceLineTests(SimpleTestCase):
    def setUp(self):
        self.equipment = make_generator()

    def test_rate_without_riders(self):
        line = price_line(self.equipment, quantity=2, rental_days=5)

        self.assertEqual(line.price_per_day, Decimal("85.71"))
        self.assertEqual(line.discount_percent, Decimal("14.29"))
        self.assertEqual(quantize_money(line.total_price), Decimal("857.10"))
        self.assertEqual(line.rider_costs, ())

    def test_fuel_rider_is_added(self):
        fuel = Fuel(price_per_liter=6, consumption_l_per_h=2, hours_per_day=8)

        line = price_line(self.equipment, quantity=2, rental_days=5, riders=[fuel])

        self.assertEqual(line.rider_costs[0].cost, Decimal("480"))
        self.assertEqual(quantize_money(line.total_price), Decimal("1337.10"))

    def test_riders_compose_additively(self):
        riders = [
            Fuel(price_per_liter=6, consumption_l_per_h=2, hours_per_day=8),
            Maintenance(hours_per_day=8),
            installation(40, technician_count=2),
            travel_service(15, number_of_trips=2),
            ServiceItems(entries=(ServiceItemEntry(cost=120),)),
            AdditionalEquipment(selected_ids=[1]),
            Accessories(selected_ids=[10]),
        ]
        bare = price_line(self.equipment, quantity=2, rental_days=5)
        full = price_line(self.equipment, quantity=2, rental_days=5, riders=riders)

        individual = [
            price_line(self.equipment, quantity=2, rental_days=5, riders=[rider]).riders_cost
            for rider in riders
        ]
        self.assertEqual(full.total_price, bare.total_price + sum(individual))
        self.assertEqual(full.riders_cost, sum(individual))

    def test_riders_are_not_discounted(self):
        # Day 10 falls in the 30% tier; the installation charge stays whole.
        rider = installation(40, technician_count=2)
        line = price_line(self.equipment, quantity=1, rental_days=10, riders=[rider])

        self.assertEqual(line.base_cost, Decimal("700"))
        self.assertEqual(line.total_price, Decimal("1046.00"))

    def test_breakdown_lists_each_rider(self):
        riders = [
            Fuel(price_per_liter=6, consumption_l_per_h=2, hours_per_day=8),
            AdditionalEquipment(selected_ids=[1, 2]),
        ]
        line = price_line(self.equipment, quantity=2, rental_days=5, riders=riders)

        breakdown = line.breakdown()
        self.assertEqual(
            breakdown["riders"],
            {"fuel": Decimal("480.00"), "additional_equipment": Decimal("70.00")},
        )
        self.assertEqual(breakdown["base_cost"], Decimal("857.10"))
        self.assertEqual(breakdown["total_price"], Decimal("1407.10"))

    def test_unpriced_equipment_is_rejected(self):
        equipment = Equipment(id=3, name="Bez cennika")

        with self.assertRaises(NoPricingAvailable):
            price_line(equipment, quantity=1, rental_days=1)

    def test_quantity_must_be_positive(self):
        with self.assertRaises(ValueError):
            price_line(self.equipment, quantity=0, rental_days=5)

    def test_reprice_resolves_new_tier(self):
        line = price_line(self.equipment, quantity=2, rental_days=5)

        longer = reprice_line(line, self.equipment, rental_days=8)

        self.assertEqual(longer.price_per_day, Decimal("70"))
        self.assertEqual(longer.total_price, Decimal("1120"))


class AggregateLineTests(SimpleTestCase):
    def test_discount_applies_to_base_price(self):
        base = LineBase(
            equipment_id=1,
            equipment_name="Nagrzewnica",
            quantity=3,
            rental_days=4,
            price_per_day=Decimal("90"),
            discount_percent=Decimal("10"),
            base_price_per_day=Decimal("100"),
        )

        line = aggregate_line(base, ())

        self.assertEqual(line.total_price, Decimal("1080"))


class TransportLineTests(SimpleTestCase):
    def test_distance_times_rate(self):
        vehicle = Equipment(id=2, name="Ciężarówka SOLO")

        line = transport_line(vehicle, distance_km="120.5", cost_per_km="4.20")

        self.assertEqual(line.base_cost, Decimal("0"))
        self.assertEqual(line.rider_costs[0].kind, RiderKind.TRAVEL_SERVICE)
        self.assertEqual(quantize_money(line.total_price), Decimal("506.10"))


class EquipmentModelTests(SimpleTestCase):
    def test_available_quantity_defaults_to_quantity(self):
        self.assertEqual(Equipment(id=1, name="x", quantity=4).available_quantity, 4)

    def test_available_cannot_exceed_owned(self):
        with self.assertRaises(ValueError):
            Equipment(id=1, name="x", quantity=2, available_quantity=3)
