"""Per-domain configuration of the quoting engine."""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from decimal import Decimal

from . import conf
from .domain_models import RiderKind, SequenceKey
from .numbering import (
    CLIENT_FORMAT,
    ELECTRICAL_FORMAT,
    GENERAL_FORMAT,
    PRIMARY_FORMAT,
    PUBLIC_FORMAT,
    TRANSPORT_FORMAT,
    NumberFormat,
)

ALL_RIDERS = frozenset(RiderKind)


@dataclass(frozen=True)
class DomainDescriptor:
    name: str
    number_format: NumberFormat
    rider_kinds: frozenset[RiderKind] = ALL_RIDERS
    default_vat_rate: Decimal | None = None

    @property
    def prefix(self) -> str:
        return self.number_format.prefix

    def vat_rate(self) -> Decimal:
        if self.default_vat_rate is not None:
            return self.default_vat_rate
        return conf.default_vat_rate()

    def sequence_key(self, when: dt.date) -> SequenceKey:
        return SequenceKey.for_date(self.prefix, when)

    def supports(self, kind: RiderKind) -> bool:
        return kind in self.rider_kinds


EQUIPMENT = DomainDescriptor("equipment", PRIMARY_FORMAT)
ELECTRICAL = DomainDescriptor("electrical", ELECTRICAL_FORMAT)
GENERAL = DomainDescriptor(
    "general",
    GENERAL_FORMAT,
    rider_kinds=frozenset({RiderKind.ADDITIONAL_EQUIPMENT, RiderKind.ACCESSORIES}),
)
PUBLIC = DomainDescriptor(
    "public",
    PUBLIC_FORMAT,
    rider_kinds=ALL_RIDERS - {RiderKind.SERVICE_ITEMS},
)
TRANSPORT = DomainDescriptor(
    "transport",
    TRANSPORT_FORMAT,
    rider_kinds=frozenset({RiderKind.TRAVEL_SERVICE}),
)
# Client-submitted documents are numbered but never priced.
CLIENT = DomainDescriptor("client", CLIENT_FORMAT, rider_kinds=frozenset())

DOMAINS = {
    domain.name: domain for domain in (EQUIPMENT, ELECTRICAL, GENERAL, PUBLIC, TRANSPORT, CLIENT)
}


def get_domain(name: str) -> DomainDescriptor:
    try:
        return DOMAINS[name]
    except KeyError as exc:
        raise ValueError(f"Unknown quoting domain: {name!r}") from exc


__all__ = [
    "DomainDescriptor",
    "EQUIPMENT",
    "ELECTRICAL",
    "GENERAL",
    "PUBLIC",
    "TRANSPORT",
    "CLIENT",
    "DOMAINS",
    "get_domain",
]
