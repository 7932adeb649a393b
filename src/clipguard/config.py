"""Rule-set loading, validation and serialization.

A rule set travels as a flat dict whose keys are the RuleSet field
names (this is also what the HTTP API and the SQLite store use).  It can
be loaded from a YAML file too, either flat or nested under a
``clipguard`` key.

Example YAML:

    clipguard:
      detect_emails: true
      detect_ipv4: false
      custom_phone_pattern: '\\d{3}-\\d{4}'
      email_replacement: '[EMAIL]'
      monitoring_interval_ms: 250
      string_match_patterns:
        - name: project-codename
          pattern: BLUEBIRD
          enabled: true
          replacement: '[CODENAME]'
"""

from __future__ import annotations
import json
from dataclasses import fields
from pathlib import Path
from typing import Any

from .errors import ConfigError
from .patterns import CATEGORIES
from .types import ExactMatchRule, RuleSet

DEFAULT_RULE_SET = RuleSet()

_BOOL_FIELDS = {f.name for f in fields(RuleSet) if f.type == "bool"}
_STR_FIELDS = {f.name for f in fields(RuleSet) if f.type == "str"}


def rule_set_from_dict(data: dict[str, Any], *, strict: bool = False) -> RuleSet:
    """Build a RuleSet from a dict.  Missing keys take their defaults.

    With ``strict=True`` every present field must already have the right
    type (and the interval must be positive), otherwise ConfigError is
    raised.  Without it, values are coerced the way a hand-written YAML
    file would expect.  Unknown keys are ignored.
    """
    if not isinstance(data, dict):
        raise ConfigError(f"rule set must be a mapping, got {type(data).__name__}")
    if "clipguard" in data and isinstance(data["clipguard"], dict):
        data = data["clipguard"]

    values: dict[str, Any] = {}
    for name in _BOOL_FIELDS:
        if name in data:
            values[name] = _bool(name, data[name], strict)
    for name in _STR_FIELDS:
        if name in data:
            values[name] = _str(name, data[name], strict)

    if "monitoring_interval_ms" in data:
        values["monitoring_interval_ms"] = _interval(data["monitoring_interval_ms"], strict)

    if "string_match_patterns" in data:
        raw = data["string_match_patterns"]
        if raw is None and not strict:
            raw = []
        if not isinstance(raw, (list, tuple)):
            raise ConfigError("string_match_patterns must be a list")
        values["string_match_patterns"] = tuple(
            _exact_rule(i, item, strict) for i, item in enumerate(raw)
        )

    return RuleSet(**values)


def rule_set_to_dict(rules: RuleSet) -> dict[str, Any]:
    """Plain, JSON-ready dict for *rules*."""
    out: dict[str, Any] = {}
    for f in fields(RuleSet):
        value = getattr(rules, f.name)
        if f.name == "string_match_patterns":
            value = [
                {
                    "name": r.name,
                    "pattern": r.pattern,
                    "enabled": r.enabled,
                    "replacement": r.replacement,
                }
                for r in value
            ]
        out[f.name] = value
    return out


def dumps(rules: RuleSet) -> str:
    return json.dumps(rule_set_to_dict(rules), indent=2, ensure_ascii=False)


def loads(raw: str, *, strict: bool = True) -> RuleSet:
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"rule set is not valid JSON: {exc}") from exc
    return rule_set_from_dict(data, strict=strict)


def load_from_yaml(path: str | Path) -> RuleSet:
    """Load a rule set from a YAML file."""
    import yaml

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as exc:
        raise ConfigError(f"cannot read {path}: {exc.strerror or exc}") from exc
    except (yaml.YAMLError, UnicodeDecodeError) as exc:
        raise ConfigError(f"{path}: {exc}") from exc
    return rule_set_from_dict(data or {})


def describe(rules: RuleSet) -> str:
    """Human-readable summary, one category per line."""
    lines = ["Current Configuration:", "---------------------"]
    for cat in CATEGORIES:
        line = f"Detect {cat.name}: {cat.enabled(rules)}"
        if cat.enabled(rules):
            line += f" (Replacement: {cat.replacement(rules)})"
            if cat.override(rules):
                line += f"\n  Custom {cat.name} pattern: {cat.override(rules)}"
        lines.append(line)
    for r in rules.string_match_patterns:
        state = "on" if r.enabled else "off"
        lines.append(f"String match [{state}] {r.name}: {r.pattern!r} -> {r.replacement!r}")
    lines.append(f"Monitoring Interval: {rules.monitoring_interval_ms} ms")
    lines.append(f"Notify on Filter: {rules.notify_on_filter}")
    return "\n".join(lines)


# ----------------------------------------------------------------------
# Field coercion
# ----------------------------------------------------------------------

def _bool(name: str, value: Any, strict: bool) -> bool:
    if isinstance(value, bool):
        return value
    if strict:
        raise ConfigError(f"{name} must be a boolean")
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _str(name: str, value: Any, strict: bool) -> str:
    if isinstance(value, str):
        return value
    if strict:
        raise ConfigError(f"{name} must be a string")
    return "" if value is None else str(value)


def _interval(value: Any, strict: bool) -> int:
    if isinstance(value, bool):
        raise ConfigError("monitoring_interval_ms must be an integer")
    if not isinstance(value, int):
        if strict:
            raise ConfigError("monitoring_interval_ms must be an integer")
        if isinstance(value, float) and not value.is_integer():
            raise ConfigError("monitoring_interval_ms must be a whole number")
        try:
            value = int(value)
        except (TypeError, ValueError) as exc:
            raise ConfigError("monitoring_interval_ms must be an integer") from exc
    if value <= 0:
        raise ConfigError("monitoring_interval_ms must be positive")
    return value


def _exact_rule(index: int, item: Any, strict: bool) -> ExactMatchRule:
    if not isinstance(item, dict):
        raise ConfigError(f"string_match_patterns[{index}] must be a mapping")
    where = f"string_match_patterns[{index}]"
    for key in ("name", "pattern"):
        if key not in item:
            raise ConfigError(f"{where} is missing {key!r}")
    return ExactMatchRule(
        name=_str(f"{where}.name", item["name"], strict),
        pattern=_str(f"{where}.pattern", item["pattern"], strict),
        enabled=_bool(f"{where}.enabled", item.get("enabled", True), strict),
        replacement=_str(f"{where}.replacement", item.get("replacement", ""), strict),
    )
