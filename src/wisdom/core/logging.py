# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Structured logging for the wisdom MCP server.

Every tool call runs inside a ``correlation_context`` that carries a
correlation ID and the tool name, so all log lines a call produces can be
grouped. Output goes to stderr only: stdout carries the MCP stdio protocol.

Formats:
- JSON (default when stderr is not a terminal, as under an MCP host)
- Human-readable with optional colours (interactive runs)
"""

from __future__ import annotations

import json
import logging
import sys
import uuid
from collections.abc import Generator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .config import WisdomConfig

REDACTED = "[REDACTED]"
MAX_LOGGED_STRING = 500

# Third-party loggers that are noisy at INFO
_QUIET_LOGGERS = ("httpx", "httpcore", "asyncio", "mcp.server.lowlevel")


@dataclass(frozen=True)
class _CallScope:
    correlation_id: str
    tool: str | None = None


_scope: ContextVar[_CallScope | None] = ContextVar("wisdom_call_scope", default=None)


def get_correlation_id() -> str | None:
    scope = _scope.get()
    return scope.correlation_id if scope else None


def get_current_tool() -> str | None:
    scope = _scope.get()
    return scope.tool if scope else None


@contextmanager
def correlation_context(correlation_id: str | None = None, tool: str | None = None) -> Generator[str, None, None]:
    """Scope log lines to one tool call.

    Args:
        correlation_id: ID to use; a new UUID when omitted
        tool: Name of the tool being run, if any

    Yields:
        The correlation ID in effect.
    """
    scope = _CallScope(correlation_id or str(uuid.uuid4()), tool)
    token = _scope.set(scope)
    try:
        yield scope.correlation_id
    finally:
        _scope.reset(token)


class JSONFormatter(logging.Formatter):
    """One JSON object per line, with the call scope when there is one."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        scope = _scope.get()
        if scope is not None:
            entry["correlation_id"] = scope.correlation_id
            if scope.tool:
                entry["tool"] = scope.tool

        # Locations only for problems
        if record.levelno >= logging.WARNING:
            entry["source"] = {"file": record.pathname, "line": record.lineno, "function": record.funcName}
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        if hasattr(record, "extra_data"):
            entry["extra"] = record.extra_data

        return json.dumps(entry, default=str)


class StandardFormatter(logging.Formatter):
    """Terminal formatter: ``time logger LEVEL [cid] message``."""

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    DIM = "\033[90m"
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True):
        super().__init__(fmt="%(asctime)s %(name)s %(levelname)s %(message)s", datefmt="%H:%M:%S")
        self.use_colors = use_colors and sys.stderr.isatty()

    def _paint(self, text: str, color: str) -> str:
        return f"{color}{text}{self.RESET}" if self.use_colors else text

    def format(self, record: logging.LogRecord) -> str:
        # Work on a copy; other handlers must see the record unchanged
        record = logging.makeLogRecord(record.__dict__)

        correlation_id = get_correlation_id()
        if correlation_id:
            record.msg = f"{self._paint(f'[{correlation_id[:8]}]', self.DIM)} {record.msg}"
        record.levelname = self._paint(record.levelname, self.LEVEL_COLORS.get(record.levelname, ""))
        return super().format(record)


def _wants_json(config: WisdomConfig | None) -> bool:
    setting = (config.log_format if config else "").lower()
    if setting in ("json", "text"):
        return setting == "json"
    return not sys.stderr.isatty()


def configure_logging(
    config: WisdomConfig | None = None,
    level: str | int | None = None,
    json_format: bool | None = None,
) -> None:
    """Install a single stderr handler on the root logger.

    Args:
        config: Supplies ``log_level`` and ``log_format`` defaults
        level: Overrides the configured level
        json_format: Overrides the configured/auto-detected format
    """
    if level is None:
        level = config.log_level if config else "INFO"
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    if json_format is None:
        json_format = _wants_json(config)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if json_format else StandardFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    for existing in root.handlers[:]:
        root.removeHandler(existing)
    root.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


class ToolCallLogger:
    """Logs tool invocations and outcomes.

    Arguments are sanitized first: key material and credentials are
    redacted, and long fragment content is truncated.
    """

    SENSITIVE_PARAMS = frozenset({"private_key", "password", "secret", "token", "api_key", "credential"})

    def __init__(self, logger: logging.Logger | None = None):
        self.logger = logger or logging.getLogger("wisdom.tools")

    def log_call(self, tool_name: str, arguments: dict[str, Any], level: int = logging.DEBUG) -> None:
        self.logger.log(
            level,
            f"Tool call: {tool_name}",
            extra={"extra_data": {"tool": tool_name, "arguments": self._sanitize(arguments)}},
        )

    def log_result(
        self, tool_name: str, success: bool, duration_ms: float | None = None, level: int = logging.DEBUG
    ) -> None:
        outcome = "success" if success else "failure"
        timing = f" ({duration_ms:.1f}ms)" if duration_ms is not None else ""
        self.logger.log(
            level,
            f"Tool result: {tool_name} -> {outcome}{timing}",
            extra={"extra_data": {"tool": tool_name, "success": success, "duration_ms": duration_ms}},
        )

    def _is_sensitive(self, key: str) -> bool:
        key = key.lower()
        return any(word in key for word in self.SENSITIVE_PARAMS)

    def _sanitize(self, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: REDACTED if self._is_sensitive(k) else self._sanitize(v) for k, v in data.items()}
        if isinstance(data, list):
            return [self._sanitize(item) for item in data]
        if isinstance(data, str) and len(data) > MAX_LOGGED_STRING:
            return data[:MAX_LOGGED_STRING] + "..."
        return data


tool_logger = ToolCallLogger()
