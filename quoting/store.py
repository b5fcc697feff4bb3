"""Simple in-memory storage for issued document numbers."""
from __future__ import annotations

import threading
from typing import Iterable

from .domain_models import SequenceKey


class InMemoryDocumentStore:
    """Issued numbers with an atomic conditional insert.

    Stands in for a table with a unique constraint on the number column.
    """

    def __init__(self, numbers: Iterable[str] = ()):
        self._lock = threading.Lock()
        self._numbers: set[str] = set(numbers)

    def numbers_for_period(self, key: SequenceKey) -> list[str]:
        suffix = f"/{key.period_suffix}"
        with self._lock:
            return sorted(number for number in self._numbers if number.endswith(suffix))

    def claim(self, number: str) -> bool:
        with self._lock:
            if number in self._numbers:
                return False
            self._numbers.add(number)
            return True

    def release(self, number: str) -> None:
        """Forget a number, e.g. when the quote holding it is deleted."""
        with self._lock:
            self._numbers.discard(number)

    def __contains__(self, number: str) -> bool:
        with self._lock:
            return number in self._numbers

    def __len__(self) -> int:
        with self._lock:
            return len(self._numbers)

    def all_numbers(self) -> list[str]:
        with self._lock:
            return sorted(self._numbers)


__all__ = ["InMemoryDocumentStore"]
