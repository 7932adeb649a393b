"""Tests for the monitor loop and the clipboard adapter."""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import subprocess
import time
from dataclasses import replace

import pytest

from clipguard import ClipboardSource, ConfigManager, MemoryStore, Monitor, RuleSet
from clipguard.errors import AuditSinkError, ReadError, WriteError


class FakeClipboard:
    def __init__(self, content=""):
        self.content = content
        self.writes = []
        self.fail_read = False
        self.fail_write = False

    def read(self):
        if self.fail_read:
            raise ReadError("clipboard busy")
        return self.content

    def write(self, text):
        if self.fail_write:
            raise WriteError("clipboard locked")
        self.writes.append(text)
        self.content = text


class BrokenSink:
    def record(self, original, filtered, kinds):
        raise AuditSinkError("db gone")


RULES = RuleSet(email_replacement="[EMAIL]")


def make_monitor(clip, rules=RULES, sink=None):
    store = MemoryStore(rules)
    manager = ConfigManager(store)
    return Monitor(clip, manager, sink=sink if sink is not None else store), store, manager


# ── poll_once ────────────────────────────────────────────────────────

def test_redacts_and_writes_back():
    clip = FakeClipboard("mail a@b.com")
    monitor, store, _ = make_monitor(clip)
    result = monitor.poll_once()
    assert result.changed
    assert clip.writes == ["mail [EMAIL]"]
    assert store.records == [("mail a@b.com", "mail [EMAIL]", ["email"])]


def test_clean_text_not_written():
    clip = FakeClipboard("nothing to see")
    monitor, store, _ = make_monitor(clip)
    result = monitor.poll_once()
    assert result.changed is False
    assert clip.writes == []
    assert store.records == []


def test_unchanged_content_skipped():
    clip = FakeClipboard("mail a@b.com")
    monitor, store, _ = make_monitor(clip)
    monitor.poll_once()
    assert monitor.poll_once() is None
    assert clip.writes == ["mail [EMAIL]"]
    assert len(store.records) == 1


def test_empty_clipboard_skipped():
    monitor, _, _ = make_monitor(FakeClipboard(""))
    assert monitor.poll_once() is None


def test_read_error_is_logged_not_raised(caplog):
    clip = FakeClipboard("a@b.com")
    clip.fail_read = True
    monitor, _, _ = make_monitor(clip)
    assert monitor.poll_once() is None
    assert "Error reading clipboard" in caplog.text

    clip.fail_read = False
    assert monitor.poll_once().changed


def test_write_error_still_audited(caplog):
    clip = FakeClipboard("a@b.com")
    clip.fail_write = True
    monitor, store, _ = make_monitor(clip)
    result = monitor.poll_once()
    assert result.changed
    assert "Error writing to clipboard" in caplog.text
    assert len(store.records) == 1


def test_sink_failure_does_not_abort(caplog):
    clip = FakeClipboard("a@b.com")
    monitor, _, _ = make_monitor(clip, sink=BrokenSink())
    result = monitor.poll_once()
    assert result.text == "[EMAIL]"
    assert clip.writes == ["[EMAIL]"]
    assert "Failed to record filter log" in caplog.text


def test_notify_flag_controls_info_log(caplog):
    clip = FakeClipboard("a@b.com")
    monitor, _, _ = make_monitor(clip, rules=replace(RULES, notify_on_filter=False))
    with caplog.at_level("INFO", logger="clipguard.monitor"):
        monitor.poll_once()
    assert "Sensitive data detected" not in caplog.text

    clip.content = "c@d.com"
    monitor2, _, _ = make_monitor(clip)
    with caplog.at_level("INFO", logger="clipguard.monitor"):
        monitor2.poll_once()
    assert "Sensitive data detected" in caplog.text


def test_rule_change_applies_next_poll():
    clip = FakeClipboard("a@b.com")
    monitor, _, manager = make_monitor(clip, rules=replace(RULES, detect_emails=False))
    assert monitor.poll_once().changed is False

    manager.update(RULES)
    clip.content = "c@d.com"
    assert monitor.poll_once().text == "[EMAIL]"


# ── run / stop ───────────────────────────────────────────────────────

def test_background_thread_stops():
    clip = FakeClipboard("a@b.com")
    monitor, _, _ = make_monitor(clip, rules=replace(RULES, monitoring_interval_ms=10))
    thread = monitor.start()
    deadline = time.time() + 2
    while not clip.writes and time.time() < deadline:
        time.sleep(0.01)
    monitor.stop()
    thread.join(timeout=2)
    assert not thread.is_alive()
    assert clip.writes == ["[EMAIL]"]


class GlitchyClipboard(FakeClipboard):
    """Raises something other than ReadError on the first read."""

    def __init__(self, content):
        super().__init__(content)
        self.reads = 0

    def read(self):
        self.reads += 1
        if self.reads == 1:
            raise RuntimeError("pasteboard server crashed")
        return super().read()


def test_loop_survives_unexpected_errors(caplog):
    clip = GlitchyClipboard("a@b.com")
    monitor, _, _ = make_monitor(clip, rules=replace(RULES, monitoring_interval_ms=10))
    thread = monitor.start()
    deadline = time.time() + 2
    while not clip.writes and time.time() < deadline:
        time.sleep(0.01)
    try:
        assert thread.is_alive()
        assert clip.writes == ["[EMAIL]"]
        assert "Clipboard poll failed" in caplog.text
    finally:
        monitor.stop()
        thread.join(timeout=2)


# ── ClipboardSource ──────────────────────────────────────────────────

def test_clipboard_unsupported_platform():
    with pytest.raises(ReadError):
        ClipboardSource(system="Plan9").read()
    with pytest.raises(WriteError):
        ClipboardSource(system="Plan9").write("x")


def test_clipboard_falls_through_missing_tools(monkeypatch):
    calls = []

    def fake_run(cmd, **kwargs):
        calls.append(cmd[0])
        if cmd[0] == "xclip":
            raise FileNotFoundError
        return subprocess.CompletedProcess(cmd, 0, stdout="hello", stderr="")

    monkeypatch.setattr(subprocess, "run", fake_run)
    assert ClipboardSource(system="Linux").read() == "hello"
    assert calls == ["xclip", "xsel"]


def test_clipboard_nonzero_exit(monkeypatch):
    def fake_run(cmd, **kwargs):
        return subprocess.CompletedProcess(cmd, 1, stdout="", stderr="no display")

    monkeypatch.setattr(subprocess, "run", fake_run)
    with pytest.raises(ReadError, match="no display"):
        ClipboardSource(system="Darwin").read()


def test_clipboard_write_passes_stdin(monkeypatch):
    seen = {}

    def fake_run(cmd, **kwargs):
        seen.update(kwargs)
        return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")

    monkeypatch.setattr(subprocess, "run", fake_run)
    ClipboardSource(system="Darwin").write("filtered")
    assert seen["input"] == "filtered"


def test_clipboard_decodes_leniently(monkeypatch):
    seen = {}

    def fake_run(cmd, **kwargs):
        seen.update(kwargs)
        return subprocess.CompletedProcess(cmd, 0, stdout="\ufffd a@b.com", stderr="")

    monkeypatch.setattr(subprocess, "run", fake_run)
    assert ClipboardSource(system="Darwin").read() == "\ufffd a@b.com"
    assert seen["errors"] == "replace"


@pytest.mark.parametrize("exc", [
    UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte"),
    PermissionError(13, "Permission denied"),
    subprocess.SubprocessError("pipe broke"),
])
def test_clipboard_tool_failures_become_read_errors(monkeypatch, exc):
    def fake_run(cmd, **kwargs):
        raise exc

    monkeypatch.setattr(subprocess, "run", fake_run)
    with pytest.raises(ReadError, match="pbpaste failed"):
        ClipboardSource(system="Darwin").read()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
