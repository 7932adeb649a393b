"""clipguard — keep emails, card numbers and other secrets out of the clipboard."""

from .redactor import Redactor
from .patterns import CATEGORIES, Category, PatternCache, PatternSource
from .manager import ConfigManager
from .monitor import ClipboardSource, Monitor
from .store import MemoryStore
from .store_sqlite import SqliteStore
from .config import DEFAULT_RULE_SET, load_from_yaml, rule_set_from_dict, rule_set_to_dict
from .types import ExactMatchRule, RedactionResult, ReplacementRecord, RuleSet
from .errors import (
    ClipGuardError, ConfigError, InvalidPattern, PersistenceError,
    ReadError, WriteError,
)

__all__ = [
    "Redactor",
    "CATEGORIES", "Category", "PatternCache", "PatternSource",
    "ConfigManager",
    "ClipboardSource", "Monitor",
    "MemoryStore", "SqliteStore",
    "DEFAULT_RULE_SET", "load_from_yaml", "rule_set_from_dict", "rule_set_to_dict",
    "ExactMatchRule", "RedactionResult", "ReplacementRecord", "RuleSet",
    "ClipGuardError", "ConfigError", "InvalidPattern", "PersistenceError",
    "ReadError", "WriteError",
]
__version__ = "0.1.0"
