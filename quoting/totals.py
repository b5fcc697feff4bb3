"""Quote totals and quote assembly."""
from __future__ import annotations

import dataclasses
import datetime as dt
import logging
from typing import Iterable

from django.utils import timezone

from . import conf
from .domain_models import Quote, QuoteLineItem, QuoteStatus, QuoteTotals
from .money import HUNDRED, ZERO, quantize_money, to_decimal

logger = logging.getLogger(__name__)


def compute_totals(lines: Iterable[QuoteLineItem], vat_rate=None) -> QuoteTotals:
    """Sum line totals into net and gross.

    Line totals are summed at full precision and the net is rounded once.
    Gross is derived from that rounded net so the stored pair always agrees.
    """
    vat_rate = conf.default_vat_rate() if vat_rate is None else to_decimal(vat_rate)
    if vat_rate < 0:
        raise ValueError(f"VAT rate cannot be negative, got {vat_rate}")

    total_net = quantize_money(sum((line.total_price for line in lines), ZERO))
    return QuoteTotals(
        total_net=total_net,
        total_gross=quantize_money(total_net * (1 + vat_rate / HUNDRED)),
        vat_rate=vat_rate,
    )


def build_quote(
    *,
    client_ref,
    lines: Iterable[QuoteLineItem],
    quote_number: str,
    domain: str,
    vat_rate=None,
    status: QuoteStatus = QuoteStatus.DRAFT,
    notes: str = "",
    now: dt.datetime | None = None,
) -> Quote:
    lines = tuple(lines)
    totals = compute_totals(lines, vat_rate)
    now = now or timezone.now()
    return Quote(
        client_ref=client_ref,
        lines=lines,
        vat_rate=totals.vat_rate,
        total_net=totals.total_net,
        total_gross=totals.total_gross,
        quote_number=quote_number,
        domain=domain,
        status=QuoteStatus(status),
        notes=notes,
        created_at=now,
        updated_at=now,
    )


def _with_lines(quote: Quote, lines: tuple[QuoteLineItem, ...], now: dt.datetime | None) -> Quote:
    # Totals are always recomputed from every line, never patched.
    totals = compute_totals(lines, quote.vat_rate)
    return dataclasses.replace(
        quote,
        lines=lines,
        total_net=totals.total_net,
        total_gross=totals.total_gross,
        updated_at=now or timezone.now(),
    )


def replace_line(quote: Quote, index: int, line: QuoteLineItem, now=None) -> Quote:
    lines = list(quote.lines)
    lines[index] = line
    return _with_lines(quote, tuple(lines), now)


def add_line(quote: Quote, line: QuoteLineItem, now=None) -> Quote:
    return _with_lines(quote, quote.lines + (line,), now)


def remove_line(quote: Quote, index: int, now=None) -> Quote:
    lines = list(quote.lines)
    del lines[index]
    return _with_lines(quote, tuple(lines), now)


def with_vat_rate(quote: Quote, vat_rate, now=None) -> Quote:
    return _with_lines(dataclasses.replace(quote, vat_rate=to_decimal(vat_rate)), quote.lines, now)


def with_status(quote: Quote, status, now=None) -> Quote:
    """Change the quote status. Any status may follow any other."""
    status = QuoteStatus(status)
    logger.info("Quote %s: %s -> %s", quote.quote_number, quote.status.value, status.value)
    return dataclasses.replace(quote, status=status, updated_at=now or timezone.now())


__all__ = [
    "compute_totals",
    "build_quote",
    "replace_line",
    "add_line",
    "remove_line",
    "with_vat_rate",
    "with_status",
]
