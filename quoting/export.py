"""Tabular cost breakdowns for print and spreadsheet export."""
from __future__ import annotations

import pandas as pd

from .domain_models import Quote
from .money import quantize_money

BREAKDOWN_COLUMNS = [
    "quote_number",
    "line",
    "equipment_id",
    "equipment_name",
    "component",
    "quantity",
    "rental_days",
    "price_per_day",
    "discount_percent",
    "amount",
]


def breakdown_rows(quote: Quote) -> list[dict[str, object]]:
    """One row for each line's rental charge and one per applied rider."""
    rows: list[dict[str, object]] = []
    for position, line in enumerate(quote.lines, start=1):
        common = {
            "quote_number": quote.quote_number,
            "line": position,
            "equipment_id": line.equipment_id,
            "equipment_name": line.equipment_name,
            "quantity": line.quantity,
            "rental_days": line.rental_days,
        }
        rows.append(
            {
                **common,
                "component": "rental",
                "price_per_day": float(quantize_money(line.price_per_day)),
                "discount_percent": float(line.discount_percent),
                "amount": float(quantize_money(line.base_cost)),
            }
        )
        for entry in line.rider_costs:
            rows.append(
                {
                    **common,
                    "component": entry.kind.value,
                    "price_per_day": None,
                    "discount_percent": None,
                    "amount": float(quantize_money(entry.cost)),
                }
            )
    return rows


def breakdown_frame(quote: Quote) -> pd.DataFrame:
    return pd.DataFrame(breakdown_rows(quote), columns=BREAKDOWN_COLUMNS)


def line_summary_frame(quote: Quote) -> pd.DataFrame:
    """Amounts pivoted to one row per line and one column per component."""
    frame = breakdown_frame(quote)
    if frame.empty:
        return pd.DataFrame(columns=["line", "equipment_name", "total"])

    summary = frame.pivot_table(
        index=["line", "equipment_name"],
        columns="component",
        values="amount",
        aggfunc="sum",
        fill_value=0.0,
    )
    summary.columns.name = None
    summary["total"] = summary.sum(axis=1).round(2)
    return summary.reset_index()


def export_breakdown_csv(quote: Quote, path_or_buf=None):
    """Write the breakdown as CSV; returns the text when no target is given."""
    return breakdown_frame(quote).to_csv(path_or_buf, index=False)


__all__ = ["breakdown_rows", "breakdown_frame", "line_summary_frame", "export_breakdown_csv"]
