"""Redactor — the main API.

Usage:
    from clipguard import Redactor, RuleSet

    redactor = Redactor()        # reusable, thread-safe
    result = redactor.redact("Email me at john@acme.com", RuleSet())
    print(result.text)           # "Email me at security@example.com"
    print(result.summary)        # (ReplacementRecord(kind='email', ...),)

Categories run one after another in CATEGORIES order, each over the
previous one's output.  Exact-match rules run last, in list order.
"""

from __future__ import annotations
import re

from .patterns import CATEGORIES, Category, PatternCache, PatternSource
from .types import ExactMatchRule, RedactionResult, ReplacementRecord, RuleSet


class Redactor:
    """Deterministic rule-set driven redactor.

    Owns its PatternSource (and therefore its PatternCache); pass a cache
    in to share one between redactors or with a ConfigManager.
    """

    def __init__(
        self,
        cache: PatternCache | None = None,
        *,
        categories: tuple[Category, ...] = CATEGORIES,
    ) -> None:
        self.source = PatternSource(cache)
        self.categories = categories

    @property
    def cache(self) -> PatternCache:
        return self.source.cache

    def redact(self, text: str, rules: RuleSet) -> RedactionResult:
        """Redact *text* according to *rules*.

        Returns the filtered text, whether anything changed, and one
        ReplacementRecord per replaced occurrence.
        """
        if not text:
            return RedactionResult(text=text, changed=False)

        records: list[ReplacementRecord] = []
        result = text

        for category in self.categories:
            if not category.enabled(rules):
                continue
            pattern = self.source.resolve(category, rules)
            result = _replace_matches(
                result, pattern, category.replacement(rules), category.name, records
            )

        for rule in rules.string_match_patterns:
            result = _replace_exact(result, rule, records)

        return RedactionResult(
            text=result,
            changed=result != text,
            summary=tuple(records),
        )


def _replace_matches(
    text: str,
    pattern: re.Pattern,
    replacement: str,
    kind: str,
    records: list[ReplacementRecord],
) -> str:
    """Replace every non-overlapping match, left to right.

    The replacement is inserted literally; backslashes and group
    references in it are not expanded.
    """
    parts: list[str] = []
    pos = 0
    for m in pattern.finditer(text):
        records.append(ReplacementRecord(kind=kind, original=m.group(0), replacement=replacement))
        parts.append(text[pos:m.start()])
        parts.append(replacement)
        pos = m.end()
    if not parts:
        return text
    parts.append(text[pos:])
    return "".join(parts)


def _replace_exact(text: str, rule: ExactMatchRule, records: list[ReplacementRecord]) -> str:
    # An empty literal would "match" between every character
    if not rule.enabled or not rule.pattern or rule.pattern not in text:
        return text
    records.append(ReplacementRecord(kind=rule.name, original=rule.pattern, replacement=rule.replacement))
    return text.replace(rule.pattern, rule.replacement)
