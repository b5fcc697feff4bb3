"""Quote engine: one instance per equipment domain."""
from __future__ import annotations

import dataclasses
import datetime as dt
import logging
from typing import Any, Iterable, Mapping

from django.utils import timezone

from .domain_models import CostRider, Equipment, Quote, QuoteLineItem, QuoteStatus
from .domains import DomainDescriptor
from .errors import InvalidRiderParameters
from .line_items import price_line, reprice_line, transport_line
from .numbering import InMemorySequenceAllocator, SequenceAllocator
from .riders import riders_from_record
from .totals import build_quote, replace_line, with_status

logger = logging.getLogger(__name__)


class QuoteEngine:
    """Prices lines, assembles quotes and allocates their numbers.

    Pricing is pure and may run on many threads at once. Only
    ``allocate_number`` touches shared state, and it runs after pricing so a
    rejected line never consumes a number.
    """

    def __init__(
        self,
        domain: DomainDescriptor,
        allocator: SequenceAllocator | None = None,
        clock=timezone.now,
    ):
        self.domain = domain
        self.allocator = allocator or InMemorySequenceAllocator(domain.number_format)
        self._clock = clock

    def _check_riders(self, riders: Iterable[CostRider]) -> list[CostRider]:
        riders = list(riders)
        for rider in riders:
            if not self.domain.supports(rider.kind):
                raise InvalidRiderParameters(
                    rider.kind.value,
                    "kind",
                    f"{rider.kind.value} is not available for {self.domain.name} quotes",
                )
        return riders

    def price_line(
        self,
        equipment: Equipment,
        quantity: int,
        rental_days: int,
        riders: Iterable[CostRider] = (),
        notes: str = "",
    ) -> QuoteLineItem:
        return price_line(
            equipment, quantity, rental_days, self._check_riders(riders), notes=notes
        )

    def price_line_from_record(
        self,
        equipment: Equipment,
        record: Mapping[str, Any],
        service_item_names: Mapping[int, str] | None = None,
    ) -> QuoteLineItem:
        """Price a line submitted as a flat quote-item record."""
        riders = riders_from_record(record, service_item_names=service_item_names)
        return self.price_line(
            equipment,
            int(record.get("quantity") or 1),
            int(record.get("rentalPeriodDays") or 1),
            riders,
            notes=record.get("notes") or "",
        )

    def price_transport(self, vehicle: Equipment, distance_km, cost_per_km, notes: str = ""):
        return transport_line(vehicle, distance_km, cost_per_km, notes=notes)

    def allocate_number(self, when: dt.date | None = None) -> str:
        when = when or self._clock().date()
        return self.allocator.allocate(self.domain.sequence_key(when))

    def create_quote(
        self,
        client_ref,
        lines: Iterable[QuoteLineItem],
        *,
        vat_rate=None,
        notes: str = "",
        now: dt.datetime | None = None,
    ) -> Quote:
        lines = tuple(lines)
        now = now or self._clock()
        # Totals are validated before the number is drawn.
        quote = build_quote(
            client_ref=client_ref,
            lines=lines,
            quote_number="",
            domain=self.domain.name,
            vat_rate=self.domain.vat_rate() if vat_rate is None else vat_rate,
            notes=notes,
            now=now,
        )
        quote = dataclasses.replace(quote, quote_number=self.allocate_number(now.date()))
        logger.info(
            "Created %s quote %s: %s line(s), net %s, gross %s",
            self.domain.name,
            quote.quote_number,
            len(quote.lines),
            quote.total_net,
            quote.total_gross,
        )
        return quote

    def edit_line(
        self,
        quote: Quote,
        index: int,
        equipment: Equipment,
        *,
        quantity: int | None = None,
        rental_days: int | None = None,
        riders: Iterable[CostRider] | None = None,
    ) -> Quote:
        """Re-price one line and recompute the quote totals from scratch."""
        if riders is not None:
            riders = self._check_riders(riders)
        line = reprice_line(
            quote.lines[index],
            equipment,
            quantity=quantity,
            rental_days=rental_days,
            riders=riders,
        )
        return replace_line(quote, index, line, now=self._clock())

    def copy_quote(self, quote: Quote, client_ref=None, now: dt.datetime | None = None) -> Quote:
        """Duplicate a quote under a fresh number, back in draft."""
        now = now or self._clock()
        copy = dataclasses.replace(
            quote,
            client_ref=quote.client_ref if client_ref is None else client_ref,
            quote_number=self.allocate_number(now.date()),
            status=QuoteStatus.DRAFT,
            created_at=now,
            updated_at=now,
        )
        logger.info("Copied quote %s to %s", quote.quote_number, copy.quote_number)
        return copy

    def set_status(self, quote: Quote, status) -> Quote:
        return with_status(quote, status, now=self._clock())


__all__ = ["QuoteEngine"]
