"""Durable-store and audit-sink interfaces, plus an in-memory store.

A store persists one rule set.  ``load_rule_set`` raises NotFound when
nothing has been saved yet and CorruptData when what was saved can't be
turned back into a RuleSet; any other read failure is StoreReadError.
``save_rule_set`` raises StoreWriteError.
"""

from __future__ import annotations
import threading
from typing import Protocol

from .errors import NotFound
from .types import RuleSet


class RuleStore(Protocol):
    def load_rule_set(self) -> RuleSet: ...
    def save_rule_set(self, rules: RuleSet) -> None: ...


class AuditSink(Protocol):
    def record(self, original: str, filtered: str, kinds: list[str]) -> None: ...


class MemoryStore:
    """Process-local store.  Keeps audit records in a list."""

    def __init__(self, rules: RuleSet | None = None) -> None:
        self._rules = rules
        self._lock = threading.Lock()
        self.saves = 0
        self.records: list[tuple[str, str, list[str]]] = []

    def load_rule_set(self) -> RuleSet:
        with self._lock:
            if self._rules is None:
                raise NotFound("no rule set saved")
            return self._rules

    def save_rule_set(self, rules: RuleSet) -> None:
        with self._lock:
            self._rules = rules
            self.saves += 1

    def record(self, original: str, filtered: str, kinds: list[str]) -> None:
        with self._lock:
            self.records.append((original, filtered, list(kinds)))
