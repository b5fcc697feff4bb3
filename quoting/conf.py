"""Settings lookup with defaults for the quoting app."""
from __future__ import annotations

from decimal import Decimal

from django.conf import settings

DEFAULTS = {
    "QUOTING_DEFAULT_VAT_RATE": Decimal("23"),
    "QUOTING_MAX_ALLOCATION_ATTEMPTS": 10,
    "QUOTING_SERVICE_ITEM_SLOTS": 4,
    # "raise" or "timestamp"
    "QUOTING_ALLOCATION_FALLBACK": "raise",
}


def get_setting(name: str):
    """Return a quoting setting, falling back to the app default."""
    return getattr(settings, name, DEFAULTS[name])


def default_vat_rate() -> Decimal:
    return Decimal(str(get_setting("QUOTING_DEFAULT_VAT_RATE")))


def max_allocation_attempts() -> int:
    return int(get_setting("QUOTING_MAX_ALLOCATION_ATTEMPTS"))


def service_item_slots() -> int:
    return int(get_setting("QUOTING_SERVICE_ITEM_SLOTS"))


def allocation_fallback() -> str:
    return str(get_setting("QUOTING_ALLOCATION_FALLBACK"))
