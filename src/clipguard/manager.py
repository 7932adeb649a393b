"""ConfigManager — the live, in-memory source of truth for the rule set.

    manager = ConfigManager(SqliteStore(db_path=path))
    manager.on_change(lambda rules: print("new interval", rules.monitoring_interval_ms))

    rules = manager.get()                      # never touches the disk
    manager.update(replace(rules, detect_ipv4=False))

``update`` persists before it publishes: if the write fails the old rule
set stays current and nobody is notified.  Listeners run synchronously,
in registration order, on the thread that called ``update``/``reload``.
"""

from __future__ import annotations
import logging
import threading
from typing import Callable

from .config import DEFAULT_RULE_SET
from .errors import CorruptData, NotFound, PersistenceError, StoreError
from .patterns import PatternCache
from .store import RuleStore
from .types import RuleSet

logger = logging.getLogger(__name__)

Listener = Callable[[RuleSet], None]


class ConfigManager:
    """Holds the current RuleSet and publishes replacements."""

    def __init__(self, store: RuleStore, *, pattern_cache: PatternCache | None = None) -> None:
        self._store = store
        self._pattern_cache = pattern_cache
        self._listeners: list[Listener] = []
        # Guards the snapshot pointer and the listener list
        self._lock = threading.Lock()
        # Serializes persist -> swap -> notify so replacements are totally ordered
        self._write_lock = threading.RLock()
        self._rules = self.load()

    def load(self) -> RuleSet:
        """Read the stored rule set, seeding the store with defaults if it
        has none (or only garbage)."""
        try:
            return self._store.load_rule_set()
        except (NotFound, CorruptData) as exc:
            logger.warning("No usable stored config (%s), writing defaults", exc)
            self._save(DEFAULT_RULE_SET)
            return DEFAULT_RULE_SET
        except StoreError as exc:
            raise PersistenceError(f"failed to load config: {exc}") from exc

    def get(self) -> RuleSet:
        with self._lock:
            return self._rules

    def update(self, rules: RuleSet) -> None:
        """Persist *rules*, make them current, then notify listeners.

        Raises PersistenceError if the store rejects the write.
        """
        with self._write_lock:
            self._save(rules)
            self._publish(rules)

    def modify(self, change: Callable[[RuleSet], RuleSet]) -> RuleSet:
        """Read-modify-write: ``update(change(get()))`` with no other
        update or reload in between.  Returns the new rule set."""
        with self._write_lock:
            rules = change(self.get())
            self.update(rules)
        return rules

    def reload(self) -> RuleSet:
        """Re-read the store and publish whatever it holds.

        Raises PersistenceError if the store can't be read.
        """
        with self._write_lock:
            rules = self.load()
            if self._pattern_cache is not None:
                self._pattern_cache.clear()
            self._publish(rules)
        return rules

    def on_change(self, listener: Listener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        with self._lock:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

    def _save(self, rules: RuleSet) -> None:
        try:
            self._store.save_rule_set(rules)
        except StoreError as exc:
            raise PersistenceError(f"failed to save config: {exc}") from exc

    def _publish(self, rules: RuleSet) -> None:
        with self._lock:
            self._rules = rules
            listeners = list(self._listeners)
        logger.debug("Config replaced, notifying %d listener(s)", len(listeners))
        for listener in listeners:
            listener(rules)
