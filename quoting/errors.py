"""Error taxonomy for the quoting engine."""
from __future__ import annotations


class QuotingError(Exception):
    """Base class for recoverable quoting failures."""


class NoPricingAvailable(QuotingError):
    """Raised when no pricing tier covers the requested rental period."""

    def __init__(self, rental_days: int, equipment_id: int | None = None):
        self.rental_days = rental_days
        self.equipment_id = equipment_id
        target = f"equipment {equipment_id}" if equipment_id is not None else "equipment"
        super().__init__(f"No pricing tier covers {rental_days} day(s) for {target}")


class InconsistentTierConfiguration(QuotingError):
    """Raised when a tier table is malformed (missing base tier, overlaps, ...)."""

    def __init__(self, message: str, equipment_id: int | None = None):
        self.equipment_id = equipment_id
        super().__init__(message)


class InvalidRiderParameters(QuotingError):
    """Raised when an enabled rider is missing or has an invalid parameter."""

    def __init__(self, rider: str, field: str, message: str | None = None):
        self.rider = rider
        self.field = field
        super().__init__(message or f"{rider}: '{field}' is required")


class NumberAllocationExhausted(QuotingError):
    """Raised when no free document number was found within the retry budget."""

    def __init__(self, key, attempts: int):
        self.key = key
        self.attempts = attempts
        super().__init__(f"Could not allocate a number for {key} after {attempts} attempt(s)")


class TierCsvError(QuotingError):
    """Raised when a pricing tier CSV file cannot be parsed."""


__all__ = [
    "QuotingError",
    "NoPricingAvailable",
    "InconsistentTierConfiguration",
    "InvalidRiderParameters",
    "NumberAllocationExhausted",
    "TierCsvError",
]
