"""Cost rider computations.

Every rider is priced by a pure function of its own parameters plus the
line's quantity and rental period. Riders never see each other, so the
line total is additive in its riders.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from functools import singledispatch
from typing import Any, Iterable, Mapping

from . import conf
from .domain_models import (
    Accessories,
    AdditionalEquipment,
    CalculationType,
    CostRider,
    CrewRole,
    CrewTravel,
    Equipment,
    Fuel,
    Maintenance,
    RiderCost,
    ServiceItemEntry,
    ServiceItems,
)
from .errors import InvalidRiderParameters
from .money import HUNDRED, ZERO, to_decimal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LineContext:
    """Line-level inputs a rider may depend on."""

    quantity: int
    rental_days: int
    equipment: Equipment | None = None


def _require(rider: str, field: str, value):
    if value is None:
        raise InvalidRiderParameters(rider, field)
    if value < 0:
        raise InvalidRiderParameters(rider, field, f"{rider}: '{field}' cannot be negative")
    return value


@singledispatch
def compute_rider_cost(rider: Any, context: LineContext) -> Decimal:
    """Return the cost contribution of one enabled rider (always >= 0)."""
    raise TypeError(f"Unsupported cost rider: {type(rider).__name__}")


@compute_rider_cost.register
def _fuel_cost(rider: Fuel, context: LineContext) -> Decimal:
    price_per_liter = _require("fuel", "price_per_liter", rider.price_per_liter)

    if rider.calculation_type is CalculationType.KILOMETERS:
        km_per_day = _require("fuel", "km_per_day", rider.km_per_day)
        consumption = _require("fuel", "consumption_per_100km", rider.consumption_per_100km)
        distance = km_per_day * context.rental_days
        return distance / HUNDRED * consumption * price_per_liter

    consumption = _require("fuel", "consumption_l_per_h", rider.consumption_l_per_h)
    hours_per_day = _require("fuel", "hours_per_day", rider.hours_per_day)
    return consumption * hours_per_day * context.rental_days * price_per_liter


def maintenance_service_cost(rider: Maintenance) -> Decimal:
    """Cost of a single service visit: parts, oil, labour and travel."""
    parts = sum(rider.filter_costs, ZERO)
    labour = rider.service_work_hours * rider.service_work_rate_per_hour
    travel = rider.service_travel_distance_km * rider.service_travel_rate_per_km
    return parts + rider.oil_cost + labour + travel


@compute_rider_cost.register
def _maintenance_cost(rider: Maintenance, context: LineContext) -> Decimal:
    for name in (
        "oil_cost",
        "service_work_hours",
        "service_work_rate_per_hour",
        "service_travel_distance_km",
        "service_travel_rate_per_km",
    ):
        _require("maintenance", name, getattr(rider, name))
    for cost in rider.filter_costs:
        _require("maintenance", "filter_costs", cost)

    if rider.calculation_type is CalculationType.KILOMETERS:
        interval = _require("maintenance", "interval_km", rider.interval_km)
        usage = _require("maintenance", "km_per_day", rider.km_per_day) * context.rental_days
    else:
        interval = _require("maintenance", "interval_hours", rider.interval_hours)
        if rider.expected_hours is not None:
            usage = _require("maintenance", "expected_hours", rider.expected_hours)
        else:
            hours_per_day = _require("maintenance", "hours_per_day", rider.hours_per_day)
            usage = hours_per_day * context.rental_days

    if interval == 0:
        raise InvalidRiderParameters(
            "maintenance", "interval", "maintenance: service interval must be positive"
        )

    return maintenance_service_cost(rider) * usage / interval


@compute_rider_cost.register
def _crew_travel_cost(rider: CrewTravel, context: LineContext) -> Decimal:
    name = rider.role.value
    distance = _require(name, "distance_km", rider.distance_km)
    travel_rate = _require(name, "travel_rate_per_km", rider.travel_rate_per_km)
    technicians = _require(name, "technician_count", rider.technician_count)
    service_rate = _require(name, "service_rate_per_technician", rider.service_rate_per_technician)

    cost = distance * travel_rate + technicians * service_rate

    if rider.role is CrewRole.TRAVEL_SERVICE:
        trips = _require(name, "number_of_trips", rider.number_of_trips)
        return cost * trips
    if rider.number_of_trips != 1:
        raise InvalidRiderParameters(
            name, "number_of_trips", f"{name}: only travel-service can repeat trips"
        )
    return cost


@compute_rider_cost.register
def _service_items_cost(rider: ServiceItems, context: LineContext) -> Decimal:
    slots = conf.service_item_slots()
    if len(rider.entries) > slots:
        raise InvalidRiderParameters(
            "service_items",
            "entries",
            f"service_items: at most {slots} entries are supported, got {len(rider.entries)}",
        )

    total = ZERO
    for position, entry in enumerate(rider.entries, start=1):
        if not entry.included:
            continue
        total += _require("service_items", f"entry[{entry.slot or position}].cost", entry.cost)
    return total


def _addon_cost(rider: AdditionalEquipment | Accessories, context: LineContext) -> Decimal:
    name = rider.kind.value
    if not rider.selected_ids:
        return ZERO
    if context.equipment is None:
        raise InvalidRiderParameters(name, "equipment", f"{name}: the line has no equipment catalog")

    catalog = getattr(context.equipment, rider.catalog_attr)
    total = ZERO
    for addon_id in rider.selected_ids:
        addon = catalog.get(addon_id)
        if addon is None:
            raise InvalidRiderParameters(
                name,
                "selected_ids",
                f"{name}: id {addon_id} is not in the catalog of equipment {context.equipment.id}",
            )
        total += addon.price_per_day * context.quantity
    return total


compute_rider_cost.register(AdditionalEquipment, _addon_cost)
compute_rider_cost.register(Accessories, _addon_cost)


def price_riders(riders: Iterable[CostRider], context: LineContext) -> tuple[RiderCost, ...]:
    """Compute the breakdown entry of each rider, in the order given."""
    breakdown = []
    for rider in riders:
        cost = compute_rider_cost(rider, context)
        logger.debug("Rider %s costs %s", rider.kind.value, cost)
        breakdown.append(RiderCost(kind=rider.kind, cost=cost, rider=rider))
    return tuple(breakdown)


# Flat records as stored by the quote forms: one boolean flag per rider
# followed by loosely typed optional fields.


def _field(record: Mapping[str, Any], key: str):
    value = record.get(key)
    if value is None or value == "":
        return None
    return value


def _number(record: Mapping[str, Any], rider: str, key: str, required: bool = True):
    value = _field(record, key)
    if value is None:
        if required:
            raise InvalidRiderParameters(rider, key)
        return None
    try:
        return to_decimal(value)
    except ValueError as exc:
        raise InvalidRiderParameters(rider, key, f"{rider}: '{key}' must be a number") from exc


def _integer(record: Mapping[str, Any], rider: str, key: str, default: int) -> int:
    value = _field(record, key)
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise InvalidRiderParameters(rider, key, f"{rider}: '{key}' must be a whole number") from exc


def _ids(record: Mapping[str, Any], rider: str, key: str) -> tuple[int, ...]:
    try:
        return tuple(int(value) for value in record.get(key) or ())
    except (TypeError, ValueError) as exc:
        raise InvalidRiderParameters(rider, key, f"{rider}: '{key}' must list catalog ids") from exc


def _crew_from_record(record, role: CrewRole, prefix: str, distance_key: str) -> CrewTravel:
    name = role.value

    def key(suffix: str) -> str:
        return f"{prefix}{suffix[0].upper()}{suffix[1:]}" if prefix else suffix

    travel_rate = _number(record, name, key("travelRatePerKm"), required=False)
    service_rate = _number(record, name, key("serviceRatePerTechnician"), required=False)
    params: dict[str, Any] = {
        "technician_count": _integer(record, name, key("numberOfTechnicians"), 1),
    }
    if travel_rate is not None:
        params["travel_rate_per_km"] = travel_rate
    if service_rate is not None:
        params["service_rate_per_technician"] = service_rate
    if role is CrewRole.TRAVEL_SERVICE:
        params["number_of_trips"] = _integer(record, name, "travelServiceNumberOfTrips", 1)

    return CrewTravel(role, _number(record, name, distance_key), **params)


def riders_from_record(
    record: Mapping[str, Any],
    service_item_names: Mapping[int, str] | None = None,
) -> list[CostRider]:
    """Build rider variants from a flat quote-item record.

    A rider whose ``include*`` flag is set but whose required fields are
    missing raises ``InvalidRiderParameters`` instead of pricing as zero.
    """
    riders: list[CostRider] = []
    try:
        calculation_type = CalculationType(record.get("calculationType") or "motohours")
    except ValueError as exc:
        raise InvalidRiderParameters(
            "fuel", "calculationType", f"Unknown calculation type: {record.get('calculationType')!r}"
        ) from exc

    if record.get("includeFuelCost"):
        if calculation_type is CalculationType.KILOMETERS:
            riders.append(
                Fuel(
                    price_per_liter=_number(record, "fuel", "fuelPricePerLiter"),
                    calculation_type=calculation_type,
                    consumption_per_100km=_number(record, "fuel", "fuelConsumptionPer100km"),
                    km_per_day=_number(record, "fuel", "kilometersPerDay"),
                )
            )
        else:
            riders.append(
                Fuel(
                    price_per_liter=_number(record, "fuel", "fuelPricePerLiter"),
                    consumption_l_per_h=_number(record, "fuel", "fuelConsumptionLH"),
                    hours_per_day=_number(record, "fuel", "hoursPerDay"),
                )
            )

    if record.get("includeMaintenanceCost"):
        params: dict[str, Any] = {"calculation_type": calculation_type}
        if calculation_type is CalculationType.KILOMETERS:
            params["interval_km"] = _number(record, "maintenance", "maintenanceIntervalKm")
            params["km_per_day"] = _number(record, "maintenance", "kilometersPerDay")
        else:
            interval = _number(record, "maintenance", "maintenanceIntervalHours", required=False)
            if interval is not None:
                params["interval_hours"] = interval
            params["expected_hours"] = _number(
                record, "maintenance", "expectedMaintenanceHours", required=False
            )
            if params["expected_hours"] is None:
                params["hours_per_day"] = _number(record, "maintenance", "hoursPerDay")
        riders.append(Maintenance(**params))

    if record.get("includeInstallationCost"):
        riders.append(
            _crew_from_record(record, CrewRole.INSTALLATION, "", "installationDistanceKm")
        )
    if record.get("includeDisassemblyCost"):
        riders.append(
            _crew_from_record(record, CrewRole.DISASSEMBLY, "disassembly", "disassemblyDistanceKm")
        )
    if record.get("includeTravelServiceCost"):
        riders.append(
            _crew_from_record(
                record, CrewRole.TRAVEL_SERVICE, "travelService", "travelServiceDistanceKm"
            )
        )

    if record.get("includeServiceItems"):
        names = service_item_names or {}
        entries = []
        for slot in range(1, conf.service_item_slots() + 1):
            cost = _number(record, "service_items", f"serviceItem{slot}Cost", required=False)
            if cost is None:
                continue
            entries.append(
                ServiceItemEntry(cost=cost, included=cost > 0, slot=slot, name=names.get(slot))
            )
        riders.append(ServiceItems(entries=tuple(entries)))

    additional_ids = _ids(record, "additional_equipment", "selectedAdditional")
    if additional_ids:
        riders.append(AdditionalEquipment(selected_ids=additional_ids))
    accessory_ids = _ids(record, "accessories", "selectedAccessories")
    if accessory_ids:
        riders.append(Accessories(selected_ids=accessory_ids))

    return riders


__all__ = [
    "LineContext",
    "compute_rider_cost",
    "maintenance_service_cost",
    "price_riders",
    "riders_from_record",
]
