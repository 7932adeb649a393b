"""Core types."""

from __future__ import annotations
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ExactMatchRule:
    """A literal-substring rule, independent of the built-in categories."""
    name: str
    pattern: str           # exact text, not a regex
    enabled: bool = True
    replacement: str = ""


@dataclass(frozen=True, slots=True)
class RuleSet:
    """Snapshot of detection policy.  Never mutated; use dataclasses.replace."""
    detect_emails: bool = True
    detect_phones: bool = True
    detect_credit_cards: bool = True
    detect_ssns: bool = True
    detect_ipv4: bool = True

    string_match_patterns: tuple[ExactMatchRule, ...] = ()

    # Empty string means "use the built-in pattern"
    custom_email_pattern: str = ""
    custom_phone_pattern: str = ""
    custom_credit_card_pattern: str = ""
    custom_ssn_pattern: str = ""
    custom_ipv4_pattern: str = ""

    email_replacement: str = "security@example.com"
    phone_replacement: str = "+1-555-123-4567"
    credit_card_replacement: str = "XXXX-XXXX-XXXX-XXXX"
    ssn_replacement: str = "XXX-XX-XXXX"
    ipv4_replacement: str = "0.0.0.0"

    monitoring_interval_ms: int = 500
    notify_on_filter: bool = True


@dataclass(frozen=True, slots=True)
class ReplacementRecord:
    """One replaced occurrence."""
    kind: str          # category name ("email", ...) or exact rule name
    original: str
    replacement: str


@dataclass(frozen=True, slots=True)
class RedactionResult:
    """Result of redacting one piece of text."""
    text: str
    changed: bool
    summary: tuple[ReplacementRecord, ...] = ()

    @property
    def kinds(self) -> list[str]:
        """Category/rule name of every record, in discovery order."""
        return [r.kind for r in self.summary]
