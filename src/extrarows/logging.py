"""Logging configuration using loguru.

Provides:
- Structured JSON logging for hosts that collect logs
- Human-readable logging for development
- Action context tracking (action, spreadsheet_id)

The library only emits records; handlers are installed by ``setup_logging``,
which the CLI calls.
"""

import json
import sys
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

from loguru import logger

# Context variables for action-scoped data
action_ctx: ContextVar[str | None] = ContextVar("action", default=None)
spreadsheet_id_ctx: ContextVar[str | None] = ContextVar("spreadsheet_id", default=None)

# The library stays silent until a host opts in
logger.disable("extrarows")


def _serialize(record: dict) -> str:
    """Serialize a log record as a single JSON line."""
    log_entry = {
        "timestamp": datetime.now(UTC).isoformat(),
        "severity": record["level"].name,
        "message": record["message"],
        "logger": record["name"],
        "function": record["function"],
        "line": record["line"],
    }

    action = action_ctx.get()
    spreadsheet_id = spreadsheet_id_ctx.get()
    if action:
        log_entry["action"] = action
    if spreadsheet_id:
        log_entry["spreadsheet_id"] = spreadsheet_id

    if record.get("extra"):
        for key, value in record["extra"].items():
            if key not in log_entry and not key.startswith("_"):
                log_entry[key] = value

    exception = record["exception"]
    if exception:
        log_entry["exception"] = {
            "type": exception.type.__name__ if exception.type else None,
            "value": str(exception.value) if exception.value else None,
        }

    return json.dumps(log_entry, default=str)


def _json_sink(message: Any) -> None:
    """Sink that writes serialized JSON to stderr."""
    sys.stderr.write(_serialize(message.record) + "\n")
    sys.stderr.flush()


def _dev_formatter(record: dict) -> str:
    """Format log record for development (human-readable)."""
    context_parts = []
    action = action_ctx.get()
    spreadsheet_id = spreadsheet_id_ctx.get()
    if action:
        context_parts.append(f"action={action}")
    if spreadsheet_id:
        context_parts.append(f"sheet={spreadsheet_id}")

    context_str = " ".join(context_parts)
    # Substituted as a field so loguru never parses it as markup
    record["extra"]["_context"] = f"[{context_str}] " if context_str else ""

    return (
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
        "{extra[_context]}"
        "<level>{message}</level>\n"
        "{exception}"
    )


def setup_logging(json_logs: bool = False, log_level: str = "INFO") -> None:
    """Configure loguru for the plugin.

    Args:
        json_logs: If True, output one JSON object per line
        log_level: Minimum log level to output
    """
    logger.remove()
    logger.enable("extrarows")

    if json_logs:
        logger.add(
            _json_sink,
            format="{message}",  # Format is handled by the sink
            level=log_level,
            backtrace=False,
            diagnose=False,
        )
    else:
        logger.add(
            sys.stderr,
            format=_dev_formatter,
            level=log_level,
            colorize=True,
        )


def set_action_context(
    action: str | None = None, spreadsheet_id: str | None = None
) -> None:
    """Set context for the action being executed."""
    if action:
        action_ctx.set(action)
    if spreadsheet_id:
        spreadsheet_id_ctx.set(spreadsheet_id)


def clear_action_context() -> None:
    """Clear action context after the action completes."""
    action_ctx.set(None)
    spreadsheet_id_ctx.set(None)


__all__ = [
    "logger",
    "setup_logging",
    "set_action_context",
    "clear_action_context",
    "action_ctx",
    "spreadsheet_id_ctx",
]
