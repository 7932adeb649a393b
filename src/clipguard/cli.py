"""CLI interface for clipguard.

Usage:
    # Watch the clipboard and serve the admin API on localhost:8181
    clipguard monitor

    # Redact stdin with the stored rules (stdout: JSON)
    echo 'mail me at bob@x.com' | clipguard redact-text

    # Replace the stored rules with a YAML file
    clipguard import-config rules.yaml

    # Filter log
    clipguard logs --page 1 --page-size 20

All state lives in one SQLite file (``--db`` or ``CLIPGUARD_DB``).
"""

from __future__ import annotations
import argparse
import json
import logging
import os
import sys
from pathlib import Path

from .config import DEFAULT_RULE_SET, describe, load_from_yaml, rule_set_to_dict
from .errors import ClipGuardError
from .manager import ConfigManager
from .monitor import ClipboardSource, Monitor
from .patterns import PatternCache
from .redactor import Redactor
from .server import DEFAULT_PORT, create_server, serve
from .store_sqlite import SqliteStore


DEFAULT_DB = os.environ.get(
    "CLIPGUARD_DB",
    str(Path.home() / ".clipguard" / "clipguard.db"),
)


class _App:
    """Store, manager and redactor wired to one shared pattern cache."""

    def __init__(self, db_path: str) -> None:
        self.store = SqliteStore(db_path=db_path)
        self.cache = PatternCache()
        self.manager = ConfigManager(self.store, pattern_cache=self.cache)
        self.redactor = Redactor(self.cache)

    def close(self) -> None:
        self.store.close()


def cmd_redact_text(app: _App, args: argparse.Namespace) -> None:
    """Redact plain text on stdin."""
    text = sys.stdin.read()
    result = app.redactor.redact(text, app.manager.get())
    output = {
        "text": result.text,
        "changed": result.changed,
        "replacements": [
            {"type": r.kind, "original": r.original, "replacement": r.replacement}
            for r in result.summary
        ],
    }
    json.dump(output, sys.stdout, ensure_ascii=False)
    sys.stdout.write("\n")


def cmd_show_config(app: _App, args: argparse.Namespace) -> None:
    rules = app.manager.get()
    if args.json:
        json.dump(rule_set_to_dict(rules), sys.stdout, indent=2, ensure_ascii=False)
        sys.stdout.write("\n")
    else:
        print(describe(rules))


def cmd_import_config(app: _App, args: argparse.Namespace) -> None:
    """Replace the stored rule set with a YAML file."""
    app.manager.update(load_from_yaml(args.path))
    sys.stderr.write(f"Imported {args.path}\n")


def cmd_reset_config(app: _App, args: argparse.Namespace) -> None:
    app.manager.update(DEFAULT_RULE_SET)
    sys.stderr.write("Config reset to defaults\n")


def cmd_logs(app: _App, args: argparse.Namespace) -> None:
    logs = app.store.list_logs(args.page, args.page_size)
    json.dump(logs, sys.stdout, indent=2, ensure_ascii=False)
    sys.stdout.write("\n")


def cmd_clear_logs(app: _App, args: argparse.Namespace) -> None:
    app.store.clear_logs()
    sys.stderr.write("Cleared filter log\n")


def cmd_monitor(app: _App, args: argparse.Namespace) -> None:
    """Watch the clipboard; unless --no-serve, also run the admin API."""
    monitor = Monitor(ClipboardSource(), app.manager, app.redactor, sink=app.store)
    if args.no_serve:
        try:
            monitor.run()
        except KeyboardInterrupt:
            monitor.stop()
        return

    monitor.start()
    server = create_server(app.manager, app.redactor, logs=app.store, port=args.port)
    try:
        serve(server)
    finally:
        monitor.stop()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="clipguard",
        description="Keep sensitive data out of the clipboard",
    )
    parser.add_argument("--db", default=DEFAULT_DB, help="SQLite database path")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("redact-text", help="Redact plain text (stdin)")
    p = sub.add_parser("show-config", help="Print the current rule set")
    p.add_argument("--json", action="store_true", help="Print as JSON")
    p = sub.add_parser("import-config", help="Load rules from a YAML file")
    p.add_argument("path")
    sub.add_parser("reset-config", help="Restore the default rule set")
    p = sub.add_parser("logs", help="Show the filter log")
    p.add_argument("--page", type=int, default=1)
    p.add_argument("--page-size", type=int, default=20)
    sub.add_parser("clear-logs", help="Delete the filter log")
    p = sub.add_parser("monitor", help="Watch the clipboard")
    p.add_argument("--port", type=int, default=DEFAULT_PORT, help="Admin API port")
    p.add_argument("--no-serve", action="store_true", help="Don't start the admin API")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    cmds = {
        "redact-text": cmd_redact_text,
        "show-config": cmd_show_config,
        "import-config": cmd_import_config,
        "reset-config": cmd_reset_config,
        "logs": cmd_logs,
        "clear-logs": cmd_clear_logs,
        "monitor": cmd_monitor,
    }
    try:
        app = _App(args.db)
    except ClipGuardError as e:
        sys.stderr.write(f"error: {e}\n")
        sys.exit(1)
    try:
        cmds[args.command](app, args)
    except ClipGuardError as e:
        sys.stderr.write(f"error: {e}\n")
        sys.exit(1)
    finally:
        app.close()


if __name__ == "__main__":
    main()
