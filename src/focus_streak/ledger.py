"""Per-day accumulator of seconds spent on each domain."""

from __future__ import annotations

from datetime import date
from types import MappingProxyType
from typing import Mapping, Optional

from .classifier import DomainClassifier


class Ledger:
    """Domain to seconds totals for a single calendar day.

    Values only grow within a day. The engine serializes access; the ledger
    itself holds no lock.
    """

    def __init__(
        self,
        day: Optional[date] = None,
        entries: Optional[Mapping[str, int]] = None,
    ) -> None:
        self.date = day
        self._entries: dict[str, int] = dict(entries or {})

    def increment(self, domain: Optional[str], seconds: int) -> bool:
        if not domain or seconds <= 0:
            return False
        self._entries[domain] = self._entries.get(domain, 0) + int(seconds)
        return True

    def get(self, domain: str) -> int:
        return self._entries.get(domain, 0)

    def snapshot(self) -> Mapping[str, int]:
        """Return a read-only copy of the current totals."""
        return MappingProxyType(dict(self._entries))

    def reset(self, today: date) -> None:
        self._entries.clear()
        self.date = today

    def clear(self) -> None:
        self._entries.clear()

    def total_seconds(self) -> int:
        return sum(self._entries.values())

    def productive_seconds(self, classifier: DomainClassifier) -> int:
        return productive_seconds(self._entries, classifier)

    def sorted_entries(self) -> list[tuple[str, int]]:
        return sorted(self._entries.items(), key=lambda item: item[1], reverse=True)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"Ledger(date={self.date!r}, entries={self._entries!r})"


def productive_seconds(entries: Mapping[str, int], classifier: DomainClassifier) -> int:
    return sum(
        seconds for domain, seconds in entries.items() if classifier.is_productive(domain)
    )
