"""Utilities for loading pricing tiers from CSV files."""
from __future__ import annotations

import csv
import io
import os
from collections import defaultdict
from decimal import Decimal

from .domain_models import PricingTier
from .errors import InconsistentTierConfiguration, TierCsvError
from .money import ZERO, quantize_money, to_decimal
from .tiers import TierTable, discount_from_price

REQUIRED_COLUMNS = {"equipment_id", "period_start", "period_end", "price_per_day"}


def _text_stream(source) -> io.StringIO:
    """Wrap a path, an upload or an open file as a text stream.

    Django uploads are read chunk by chunk; byte content is decoded as UTF-8
    with an optional BOM, as spreadsheet exports often carry one.
    """
    if isinstance(source, (str, os.PathLike)):
        with open(source, encoding="utf-8-sig", newline="") as handle:
            return io.StringIO(handle.read())

    if hasattr(source, "chunks"):
        parts = list(source.chunks())
    elif hasattr(source, "read"):
        parts = [source.read()]
    else:
        parts = list(source)

    if parts and isinstance(parts[0], bytes):
        return io.StringIO(b"".join(parts).decode("utf-8-sig"))
    return io.StringIO("".join(parts))


def _parse_int(value: str | None, field: str, line_number: int) -> int:
    try:
        return int((value or "").strip())
    except ValueError as exc:
        raise TierCsvError(f"Row {line_number}: {field} must be an integer") from exc


def _parse_decimal(value: str | None, field: str, line_number: int) -> Decimal:
    try:
        return to_decimal((value or "").strip())
    except ValueError as exc:
        raise TierCsvError(f"Row {line_number}: {field} must be a number") from exc


def _with_discounts(
    rows: list[tuple[int, int | None, Decimal, Decimal | None]]
) -> list[PricingTier]:
    """Fill missing discounts from each price relative to the base tier price."""
    base_price = next((price for start, _end, price, _discount in rows if start == 1), None)
    tiers = []
    for start, end, price, discount in rows:
        if discount is None:
            discount = (
                quantize_money(discount_from_price(base_price, price))
                if base_price is not None
                else ZERO
            )
        tiers.append(
            PricingTier(
                period_start=start,
                period_end=end,
                price_per_day=price,
                discount_percent=discount,
            )
        )
    return tiers


def load_tiers_from_csv(file_obj) -> dict[int, list[PricingTier]]:
    """Parse pricing tiers grouped by equipment id.

    The CSV file must include headers: ``equipment_id``, ``period_start``,
    ``period_end`` (empty for an open-ended tier) and ``price_per_day``.
    ``discount_percent`` is optional; when it is blank the discount is the
    one the row's price implies against the base tier. Every equipment's
    tiers are validated as a table before they are returned.
    """

    reader = csv.DictReader(_text_stream(file_obj))

    if reader.fieldnames is None or not REQUIRED_COLUMNS.issubset(
        {name.strip() for name in reader.fieldnames}
    ):
        raise TierCsvError(
            "CSV is missing required columns: equipment_id, period_start, period_end, price_per_day"
        )

    rows_by_equipment: dict[int, list] = defaultdict(list)
    for line_number, row in enumerate(reader, start=2):
        row = {(key or "").strip(): value for key, value in row.items()}
        equipment_id = _parse_int(row.get("equipment_id"), "equipment_id", line_number)
        period_start = _parse_int(row.get("period_start"), "period_start", line_number)

        period_end_raw = (row.get("period_end") or "").strip()
        period_end = (
            _parse_int(period_end_raw, "period_end", line_number) if period_end_raw else None
        )

        discount_raw = (row.get("discount_percent") or "").strip()
        rows_by_equipment[equipment_id].append(
            (
                period_start,
                period_end,
                _parse_decimal(row.get("price_per_day"), "price_per_day", line_number),
                (
                    _parse_decimal(discount_raw, "discount_percent", line_number)
                    if discount_raw
                    else None
                ),
            )
        )

    if not rows_by_equipment:
        raise TierCsvError("CSV contains no tier rows")

    result: dict[int, list[PricingTier]] = {}
    for equipment_id, rows in rows_by_equipment.items():
        try:
            table = TierTable(_with_discounts(rows), equipment_id=equipment_id)
        except InconsistentTierConfiguration as exc:
            raise TierCsvError(f"Equipment {equipment_id}: {exc}") from exc
        result[equipment_id] = list(table.tiers)

    return result


__all__ = ["TierCsvError", "load_tiers_from_csv"]
