"""Tests for the SQLite rule store and filter log."""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import sqlite3

import pytest

from clipguard import ConfigManager, ExactMatchRule, RuleSet, SqliteStore, DEFAULT_RULE_SET
from clipguard.errors import CorruptData, NotFound


@pytest.fixture
def store(tmp_path):
    s = SqliteStore(db_path=tmp_path / "sub" / "clipguard.db")
    yield s
    s.close()


def test_empty_store_not_found(store):
    with pytest.raises(NotFound):
        store.load_rule_set()


def test_save_and_load(store):
    rules = RuleSet(detect_ssns=False, string_match_patterns=(
        ExactMatchRule(name="n", pattern="secret", replacement="***"),
    ))
    store.save_rule_set(rules)
    assert store.load_rule_set() == rules
    store.save_rule_set(DEFAULT_RULE_SET)
    assert store.load_rule_set() == DEFAULT_RULE_SET


def test_survives_reopen(tmp_path):
    path = tmp_path / "c.db"
    s1 = SqliteStore(db_path=path)
    s1.save_rule_set(RuleSet(monitoring_interval_ms=1234))
    s1.close()
    s2 = SqliteStore(db_path=path)
    assert s2.load_rule_set().monitoring_interval_ms == 1234
    s2.close()


def test_corrupt_row(tmp_path):
    path = tmp_path / "c.db"
    SqliteStore(db_path=path).close()
    db = sqlite3.connect(str(path))
    db.execute("INSERT INTO config (id, data) VALUES (1, '{broken')")
    db.commit()
    db.close()

    store = SqliteStore(db_path=path)
    with pytest.raises(CorruptData):
        store.load_rule_set()
    # The manager replaces it with defaults
    manager = ConfigManager(store)
    assert manager.get() == DEFAULT_RULE_SET
    assert store.load_rule_set() == DEFAULT_RULE_SET
    store.close()


def test_logs(store):
    store.record("a@b.com", "[EMAIL]", ["email"])
    store.record("1.2.3.4 x@y.z", "[IP] [EMAIL]", ["email", "ipv4"])
    assert store.count_logs() == 2

    logs = store.list_logs(1, 10)
    assert [entry["original"] for entry in logs] == ["1.2.3.4 x@y.z", "a@b.com"]
    assert logs[0]["detections"] == ["email", "ipv4"]
    assert logs[0]["filtered"] == "[IP] [EMAIL]"

    assert len(store.list_logs(2, 1)) == 1
    assert store.list_logs(3, 1) == []

    store.clear_logs()
    assert store.count_logs() == 0
