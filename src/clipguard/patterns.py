"""Built-in detection patterns, the compiled-pattern cache, and override
resolution.

Every category has a built-in regex compiled once at import.  A rule set
may override it with its own regex; overrides are compiled lazily through
a PatternCache and, if they don't compile, we quietly fall back to the
built-in so a typo in the admin console never switches detection off.
"""

from __future__ import annotations
import logging
import re
import threading
from dataclasses import dataclass
from operator import attrgetter
from typing import Callable

from .errors import InvalidPattern
from .types import RuleSet

logger = logging.getLogger(__name__)


# Email
EMAIL_PATTERN = r"[a-zA-Z0-9._%+\-]+@[a-zA-Z0-9.\-]+\.[a-zA-Z]{2,}"

# Phone: optional country code, optional parens around the area code
PHONE_PATTERN = r"(?:\+\d{1,3}[\s\-]?)?\(?\d{3}\)?[\s.\-]?\d{3}[\s.\-]?\d{4}"

# Credit card: four groups of four digits, optional dash/space separators
CREDIT_CARD_PATTERN = r"\b(?:\d{4}[\- ]?){3}\d{4}\b"

# SSN (US)
SSN_PATTERN = r"\b\d{3}-\d{2}-\d{4}\b"

# IPv4
IPV4_PATTERN = (
    r"\b(?:(?:25[0-5]|2[0-4]\d|[01]?\d\d?)\.){3}"
    r"(?:25[0-5]|2[0-4]\d|[01]?\d\d?)\b"
)


@dataclass(frozen=True, slots=True)
class Category:
    """A built-in sensitive-data category and how to read its settings."""
    name: str
    default: re.Pattern
    enabled: Callable[[RuleSet], bool]
    override: Callable[[RuleSet], str]
    replacement: Callable[[RuleSet], str]


def _category(name: str, pattern: str, field: str, plural: str) -> Category:
    return Category(
        name=name,
        default=re.compile(pattern),
        enabled=attrgetter(f"detect_{plural}"),
        override=attrgetter(f"custom_{field}_pattern"),
        replacement=attrgetter(f"{field}_replacement"),
    )


# Processing order matters: each category sees the previous one's output.
CATEGORIES: tuple[Category, ...] = (
    _category("email", EMAIL_PATTERN, "email", "emails"),
    _category("phone", PHONE_PATTERN, "phone", "phones"),
    _category("credit_card", CREDIT_CARD_PATTERN, "credit_card", "credit_cards"),
    _category("ssn", SSN_PATTERN, "ssn", "ssns"),
    _category("ipv4", IPV4_PATTERN, "ipv4", "ipv4"),
)


def get_category(name: str) -> Category:
    for cat in CATEGORIES:
        if cat.name == name:
            return cat
    raise KeyError(name)


class PatternCache:
    """Compiled override patterns keyed by (category, pattern text).

    Reads take no lock.  Two threads missing on the same key may both
    compile it; whichever inserts first is the instance everybody keeps.
    """

    __slots__ = ("_patterns", "_lock")

    def __init__(self) -> None:
        self._patterns: dict[tuple[str, str], re.Pattern] = {}
        self._lock = threading.Lock()

    def get(self, key: str, pattern: str) -> re.Pattern:
        """Return the compiled pattern, compiling and caching on a miss.

        Raises InvalidPattern if *pattern* is not a valid regex.
        """
        cache_key = (key, pattern)
        compiled = self._patterns.get(cache_key)
        if compiled is not None:
            return compiled

        try:
            compiled = re.compile(pattern)
        except re.error as exc:
            raise InvalidPattern(pattern, str(exc)) from exc

        with self._lock:
            return self._patterns.setdefault(cache_key, compiled)

    def clear(self) -> None:
        with self._lock:
            self._patterns = {}

    def __len__(self) -> int:
        return len(self._patterns)

    def __contains__(self, cache_key: object) -> bool:
        return cache_key in self._patterns


class PatternSource:
    """Picks the matcher for a category: the rule set's override if it
    compiles, otherwise the built-in default."""

    def __init__(self, cache: PatternCache | None = None) -> None:
        self.cache = cache if cache is not None else PatternCache()
        self.fallback_count = 0
        self._warned: set[tuple[str, str]] = set()
        self._lock = threading.Lock()

    def resolve(self, category: Category, rules: RuleSet) -> re.Pattern:
        override = category.override(rules)
        if not override:
            return category.default
        try:
            return self.cache.get(category.name, override)
        except InvalidPattern as exc:
            self._note_fallback(category.name, exc)
            return category.default

    def _note_fallback(self, name: str, exc: InvalidPattern) -> None:
        with self._lock:
            self.fallback_count += 1
            key = (name, exc.pattern)
            if key in self._warned:
                return
            self._warned.add(key)
        logger.warning(
            "Custom %s pattern is invalid, using built-in default: %s", name, exc.reason
        )
