"""Classify domains as productive or distracting."""

from __future__ import annotations

from typing import Iterable, Optional

from .config import DEFAULT_PRODUCTIVE_SITES
from .models import Productivity


class DomainClassifier:
    """Substring matcher over a fixed set of productive site rules.

    A domain is productive when it contains any rule, so ``sub.coursera.org``
    matches ``coursera.org``. The match is deliberately coarse: an unrelated
    domain that happens to embed a rule (``github.com.example.net``) is a
    known false positive.
    """

    __slots__ = ("_rules",)

    def __init__(self, rules: Iterable[str] = DEFAULT_PRODUCTIVE_SITES) -> None:
        self._rules: tuple[str, ...] = tuple(rule for rule in rules if rule)

    @property
    def rules(self) -> tuple[str, ...]:
        return self._rules

    def classify(self, domain: Optional[str]) -> Productivity:
        if domain and any(rule in domain for rule in self._rules):
            return Productivity.PRODUCTIVE
        return Productivity.DISTRACTING

    def is_productive(self, domain: Optional[str]) -> bool:
        return self.classify(domain) is Productivity.PRODUCTIVE


_DEFAULT = DomainClassifier()


def classify(domain: Optional[str]) -> Productivity:
    """Classify ``domain`` against the default productive site list."""
    return _DEFAULT.classify(domain)
