"""Clipboard monitor — polls a text source and rewrites it when it holds
sensitive data.

Usage:
    manager = ConfigManager(store)
    monitor = Monitor(ClipboardSource(), manager, sink=store)
    thread = monitor.start()       # background daemon thread
    ...
    monitor.stop()

The rule set is re-read from the manager on every cycle, so changes
(including the polling interval) apply from the next poll on.
"""

from __future__ import annotations
import logging
import platform
import subprocess
import threading
from typing import Protocol

from .errors import ReadError, WriteError
from .manager import ConfigManager
from .redactor import Redactor
from .store import AuditSink
from .types import RedactionResult

logger = logging.getLogger(__name__)


class TextSource(Protocol):
    def read(self) -> str: ...
    def write(self, text: str) -> None: ...


# ----------------------------------------------------------------------
# System clipboard
# ----------------------------------------------------------------------

_READ_COMMANDS = {
    "Darwin": [["pbpaste"]],
    "Linux": [["xclip", "-selection", "clipboard", "-o"], ["xsel", "--clipboard", "--output"]],
    "Windows": [["powershell", "-NoProfile", "-Command", "Get-Clipboard -Raw"]],
}

_WRITE_COMMANDS = {
    "Darwin": [["pbcopy"]],
    "Linux": [["xclip", "-selection", "clipboard", "-i"], ["xsel", "--clipboard", "--input"]],
    "Windows": [["powershell", "-NoProfile", "-Command", "$input | Set-Clipboard"]],
}


class ClipboardSource:
    """System clipboard via the platform's command-line tools."""

    def __init__(self, *, timeout: float = 3.0, system: str | None = None) -> None:
        self.timeout = timeout
        self.system = system or platform.system()

    def read(self) -> str:
        return self._run(_READ_COMMANDS, None, ReadError)

    def write(self, text: str) -> None:
        self._run(_WRITE_COMMANDS, text, WriteError)

    def _run(self, table: dict[str, list[list[str]]], stdin: str | None, error: type[Exception]) -> str:
        commands = table.get(self.system)
        if not commands:
            raise error(f"clipboard not supported on {self.system}")
        last = "no clipboard tool found"
        for cmd in commands:
            try:
                result = subprocess.run(
                    cmd, input=stdin, capture_output=True, text=True,
                    errors="replace", timeout=self.timeout,
                )
            except FileNotFoundError:
                continue
            except subprocess.TimeoutExpired as exc:
                raise error(f"{cmd[0]} timed out") from exc
            except (OSError, subprocess.SubprocessError, UnicodeError) as exc:
                raise error(f"{cmd[0]} failed: {exc}") from exc
            if result.returncode == 0:
                return result.stdout
            last = f"{cmd[0]} exited with {result.returncode}: {result.stderr.strip()}"
        raise error(last)


# ----------------------------------------------------------------------
# Monitor loop
# ----------------------------------------------------------------------

class Monitor:
    """Polls *source* and redacts new content with the manager's rules."""

    def __init__(
        self,
        source: TextSource,
        manager: ConfigManager,
        redactor: Redactor | None = None,
        *,
        sink: AuditSink | None = None,
    ) -> None:
        self.source = source
        self.manager = manager
        self.redactor = redactor or Redactor()
        self.sink = sink
        self._last = ""
        self._stop = threading.Event()

    def poll_once(self) -> RedactionResult | None:
        """Run one cycle.  Returns the redaction result when new content
        was seen, None otherwise."""
        rules = self.manager.get()
        try:
            content = self.source.read()
        except ReadError as exc:
            logger.error("Error reading clipboard: %s", exc)
            return None

        if not content or content == self._last:
            return None
        self._last = content

        result = self.redactor.redact(content, rules)
        if not result.changed:
            return result

        if rules.notify_on_filter:
            logger.info(
                "Sensitive data detected and filtered: %d replacement(s) %s",
                len(result.summary), result.kinds,
            )

        try:
            self.source.write(result.text)
        except WriteError as exc:
            logger.error("Error writing to clipboard: %s", exc)
        else:
            # What we wrote back is what we'll read next time
            self._last = result.text

        self._record(content, result)
        return result

    def _record(self, original: str, result: RedactionResult) -> None:
        if self.sink is None:
            return
        try:
            self.sink.record(original, result.text, result.kinds)
        except Exception:
            logger.exception("Failed to record filter log")

    def run(self) -> None:
        """Poll until stop() is called."""
        logger.info("Starting clipboard monitoring...")
        while not self._stop.is_set():
            try:
                self.poll_once()
            except Exception:
                logger.exception("Clipboard poll failed, retrying next interval")
            interval = self.manager.get().monitoring_interval_ms / 1000.0
            self._stop.wait(interval)
        logger.info("Clipboard monitoring stopped")

    def start(self) -> threading.Thread:
        self._stop.clear()
        thread = threading.Thread(target=self.run, name="clipguard-monitor", daemon=True)
        thread.start()
        return thread

    def stop(self) -> None:
        self._stop.set()
