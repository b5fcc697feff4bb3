"""Sequential document numbers scoped by (domain prefix, month/year).

Allocation goes through a ``SequenceAllocator``. Both implementations here
serialise allocation per sequence key; ``ScanAndClaimAllocator`` also
survives other processes writing to the same store, because the final
word belongs to the store's conditional insert.
"""
from __future__ import annotations

import logging
import re
import threading
import time
import weakref
from dataclasses import dataclass, field
from typing import Callable, Iterable, Protocol

from . import conf
from .domain_models import SequenceKey
from .errors import NumberAllocationExhausted

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NumberFormat:
    """How one document domain renders and parses its numbers."""

    prefix: str
    template: str
    pattern: str
    uses_stamp: bool = False
    _regex: re.Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "_regex", re.compile(self.pattern))

    def render(self, sequence: int, key: SequenceKey, stamp: str = "") -> str:
        return self.template.format(sequence=sequence, period=key.period_suffix, stamp=stamp)

    def extract(self, number: str | None) -> int:
        """Leading sequence of ``number``; 0 for numbers in any other shape."""
        if not number:
            return 0
        match = self._regex.match(number)
        return int(match.group(1)) if match else 0

    def key_for(self, month: int, year: int) -> SequenceKey:
        return SequenceKey(prefix=self.prefix, month=month, year=year)


PRIMARY_FORMAT = NumberFormat("", "{sequence:02d}/{period}", r"^(\d+)/")
GENERAL_FORMAT = NumberFormat("GEN", "GEN/{sequence:03d}/{period}", r"^GEN/(\d+)/")
ELECTRICAL_FORMAT = NumberFormat("EL", "EL/{sequence:03d}/{period}", r"^EL/(\d+)/")
PUBLIC_FORMAT = NumberFormat("PUB", "PUB/{sequence:03d}/{period}", r"^PUB/(\d+)/")
TRANSPORT_FORMAT = NumberFormat("T", "T{sequence:02d}/{period}", r"^T(\d+)/")
# Externally submitted documents: the last four timestamp digits follow the sequence.
CLIENT_FORMAT = NumberFormat(
    "CLIENT", "CLIENT-{sequence:02d}{stamp}/{period}", r"^CLIENT-(\d+)\d{4}/", uses_stamp=True
)


def timestamp_stamp(now: float | None = None) -> str:
    """Last four digits of the millisecond timestamp."""
    millis = int((time.time() if now is None else now) * 1000)
    return f"{millis % 10000:04d}"


def highest_sequence(number_format: NumberFormat, key: SequenceKey, existing: Iterable[str]) -> int:
    suffix = f"/{key.period_suffix}"
    return max(
        (number_format.extract(number) for number in existing if number and number.endswith(suffix)),
        default=0,
    )


def next_number(
    number_format: NumberFormat,
    key: SequenceKey,
    existing_numbers: Iterable[str],
    stamp: str | None = None,
) -> str:
    """Return the number after the highest one issued for ``key``.

    Numbers from other periods are ignored; numbers that do not parse count
    as 0, so malformed or legacy values never block allocation.
    """
    sequence = highest_sequence(number_format, key, existing_numbers) + 1
    if number_format.uses_stamp and stamp is None:
        stamp = timestamp_stamp()
    return number_format.render(sequence, key, stamp or "")


def client_number(key: SequenceKey, existing_numbers: Iterable[str], now: float | None = None) -> str:
    return next_number(CLIENT_FORMAT, key, existing_numbers, stamp=timestamp_stamp(now))


class SequenceAllocator(Protocol):
    def allocate(self, key: SequenceKey) -> str:
        ...


class DocumentNumberStore(Protocol):
    """Persistence boundary used by ``ScanAndClaimAllocator``."""

    def numbers_for_period(self, key: SequenceKey) -> list[str]:
        ...

    def claim(self, number: str) -> bool:
        """Record ``number`` if it is free; return False if it is taken."""
        ...


class _KeyLocks:
    """One lock per sequence key, dropped once no caller holds a reference."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: weakref.WeakValueDictionary[SequenceKey, threading.Lock] = (
            weakref.WeakValueDictionary()
        )

    def __call__(self, key: SequenceKey) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    def __len__(self) -> int:
        return len(self._locks)


def _check_key(number_format: NumberFormat, key: SequenceKey) -> None:
    if key.prefix != number_format.prefix:
        raise ValueError(
            f"Sequence key prefix {key.prefix!r} does not match format prefix {number_format.prefix!r}"
        )


class InMemorySequenceAllocator:
    """Mutex-guarded counter per sequence key.

    Counters are seeded lazily from ``existing_numbers`` the first time a key
    is used, so a process can continue a sequence it did not start.
    """

    def __init__(
        self,
        number_format: NumberFormat,
        existing_numbers: Iterable[str] = (),
        clock: Callable[[], float] = time.time,
    ):
        self.number_format = number_format
        self._existing = list(existing_numbers)
        self._counters: dict[SequenceKey, int] = {}
        self._locks = _KeyLocks()
        self._clock = clock

    def allocate(self, key: SequenceKey) -> str:
        _check_key(self.number_format, key)
        with self._locks(key):
            if key not in self._counters:
                self._counters[key] = highest_sequence(self.number_format, key, self._existing)
            self._counters[key] += 1
            sequence = self._counters[key]
        stamp = timestamp_stamp(self._clock()) if self.number_format.uses_stamp else ""
        return self.number_format.render(sequence, key, stamp)


class ScanAndClaimAllocator:
    """Scan the store, propose max + 1, claim it with a conditional insert.

    Retries are bounded by ``max_attempts``. When they run out the allocator
    either raises ``NumberAllocationExhausted`` (``fallback="raise"``) or
    claims one timestamp-disambiguated number (``fallback="timestamp"``).
    """

    def __init__(
        self,
        number_format: NumberFormat,
        store: DocumentNumberStore,
        max_attempts: int | None = None,
        fallback: str | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.number_format = number_format
        self.store = store
        self.max_attempts = conf.max_allocation_attempts() if max_attempts is None else max_attempts
        self.fallback = conf.allocation_fallback() if fallback is None else fallback
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.fallback not in ("raise", "timestamp"):
            raise ValueError(f"Unknown allocation fallback: {self.fallback!r}")
        self._locks = _KeyLocks()
        self._clock = clock

    def _stamp(self) -> str:
        return timestamp_stamp(self._clock())

    def allocate(self, key: SequenceKey) -> str:
        _check_key(self.number_format, key)
        with self._locks(key):
            candidate = None
            for attempt in range(1, self.max_attempts + 1):
                existing = self.store.numbers_for_period(key)
                stamp = self._stamp() if self.number_format.uses_stamp else None
                candidate = next_number(self.number_format, key, existing, stamp=stamp)
                if self.store.claim(candidate):
                    if attempt > 1:
                        logger.info("Allocated %s for %s on attempt %s", candidate, key, attempt)
                    return candidate
                logger.warning(
                    "Number %s for %s was taken concurrently (attempt %s/%s)",
                    candidate,
                    key,
                    attempt,
                    self.max_attempts,
                )

            if self.fallback == "timestamp":
                disambiguated = self._disambiguate(key, existing)
                if self.store.claim(disambiguated):
                    logger.warning("Falling back to %s for %s", disambiguated, key)
                    return disambiguated

            logger.error("Number allocation exhausted for %s (last candidate %s)", key, candidate)
            raise NumberAllocationExhausted(key, self.max_attempts)

    def _disambiguate(self, key: SequenceKey, existing: list[str]) -> str:
        # The "-NNNN" fragment keeps the number out of later max-scans.
        stamp = self._stamp()
        sequence = highest_sequence(self.number_format, key, existing) + 1
        number = self.number_format.render(
            sequence, key, stamp if self.number_format.uses_stamp else ""
        )
        head, _, period = number.rpartition("/")
        return f"{head}-{stamp}/{period}"


__all__ = [
    "NumberFormat",
    "PRIMARY_FORMAT",
    "GENERAL_FORMAT",
    "ELECTRICAL_FORMAT",
    "PUBLIC_FORMAT",
    "TRANSPORT_FORMAT",
    "CLIENT_FORMAT",
    "timestamp_stamp",
    "highest_sequence",
    "next_number",
    "client_number",
    "SequenceAllocator",
    "DocumentNumberStore",
    "InMemorySequenceAllocator",
    "ScanAndClaimAllocator",
]
