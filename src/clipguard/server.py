"""Admin HTTP API for clipguard.

Plain stdlib HTTP server on localhost; meant to sit next to the monitor
in the same process so config edits take effect on the next poll.

Endpoints:
    GET  /health              — Health check
    GET  /api/config          — Current rule set
    POST /api/config          — Replace the rule set (fields omitted keep their value)
    POST /api/config/reload   — Re-read the rule set from the database
    GET  /api/logs            — Filter log, ?page=1&pageSize=20
    POST /api/logs/clear      — Delete the filter log
    POST /redact-text         — Redact {"text": ...} with the current rules

All endpoints expect/return JSON.
"""

from __future__ import annotations
import json
import logging
import os
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any
from urllib.parse import parse_qs, urlparse

from .config import rule_set_from_dict, rule_set_to_dict
from .errors import ConfigError, PersistenceError
from .manager import ConfigManager
from .redactor import Redactor
from .store_sqlite import SqliteStore

logger = logging.getLogger(__name__)

DEFAULT_PORT = int(os.environ.get("CLIPGUARD_PORT", "8181"))


class AdminServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(
        self,
        address: tuple[str, int],
        manager: ConfigManager,
        redactor: Redactor,
        logs: SqliteStore | None = None,
    ) -> None:
        super().__init__(address, AdminHandler)
        self.manager = manager
        self.redactor = redactor
        self.logs = logs


class AdminHandler(BaseHTTPRequestHandler):
    """HTTP request handler for the admin API."""

    server: AdminServer

    def _read_json(self) -> Any:
        length = int(self.headers.get("Content-Length", 0))
        if length < 0:
            raise ValueError("negative Content-Length")
        body = self.rfile.read(length).decode("utf-8")
        return json.loads(body) if body else {}

    def _respond(self, status: int, data: Any) -> None:
        body = json.dumps(data, ensure_ascii=False).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format: str, *args: Any) -> None:
        logger.debug("%s - %s", self.address_string(), format % args)

    def do_GET(self) -> None:
        url = urlparse(self.path)
        if url.path == "/health":
            self._respond(200, {"status": "ok"})
        elif url.path == "/api/config":
            self._respond(200, rule_set_to_dict(self.server.manager.get()))
        elif url.path == "/api/logs" and self.server.logs is not None:
            self._respond(200, self._logs_page(parse_qs(url.query)))
        else:
            self._respond(404, {"error": "not found"})

    def do_POST(self) -> None:
        path = urlparse(self.path).path
        try:
            body = self._read_json()
            manager = self.server.manager

            if path == "/api/config":
                if not isinstance(body, dict):
                    raise ConfigError("request body must be a JSON object")
                rules = manager.modify(
                    lambda current: rule_set_from_dict({**rule_set_to_dict(current), **body}, strict=True)
                )
                logger.info("Config updated via admin API")
                self._respond(200, rule_set_to_dict(rules))

            elif path == "/api/config/reload":
                rules = manager.reload()
                self._respond(200, rule_set_to_dict(rules))

            elif path == "/api/logs/clear" and self.server.logs is not None:
                self.server.logs.clear_logs()
                self._respond(200, {"status": "success"})

            elif path == "/redact-text":
                text = body.get("text", "") if isinstance(body, dict) else ""
                if not isinstance(text, str):
                    raise ConfigError("text must be a string")
                result = self.server.redactor.redact(text, manager.get())
                self._respond(200, {
                    "text": result.text,
                    "changed": result.changed,
                    "replacements": [
                        {"type": r.kind, "original": r.original, "replacement": r.replacement}
                        for r in result.summary
                    ],
                })

            else:
                self._respond(404, {"error": "not found"})

        except ValueError as e:
            # JSONDecodeError, UnicodeDecodeError, ConfigError, bad Content-Length
            self._respond(400, {"error": str(e)})
        except PersistenceError as e:
            logger.error("Config persistence failed: %s", e)
            self._respond(500, {"error": str(e)})
        except Exception as e:
            logger.exception("Admin request %s failed", path)
            self._respond(500, {"error": str(e)})

    def _logs_page(self, query: dict[str, list[str]]) -> dict[str, Any]:
        page = _positive_int(query.get("page"), 1)
        page_size = _positive_int(query.get("pageSize"), 20)
        logs = self.server.logs
        total = logs.count_logs()
        return {
            "logs": logs.list_logs(page, page_size),
            "page": page,
            "pageSize": page_size,
            "totalCount": total,
            "totalPages": (total + page_size - 1) // page_size,
        }


def _positive_int(values: list[str] | None, default: int) -> int:
    if not values:
        return default
    try:
        n = int(values[0])
    except ValueError:
        return default
    return n if n > 0 else default


def create_server(
    manager: ConfigManager,
    redactor: Redactor,
    *,
    logs: SqliteStore | None = None,
    port: int = DEFAULT_PORT,
    host: str = "127.0.0.1",
) -> AdminServer:
    return AdminServer((host, port), manager, redactor, logs)


def serve(server: AdminServer) -> None:
    """Serve until interrupted."""
    host, port = server.server_address[:2]
    print(f"clipguard admin API listening on http://{host}:{port}")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        print("\nShutting down...")
    finally:
        server.server_close()
