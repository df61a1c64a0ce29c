"""Structured logging configuration for MistMatch Admin.

Provides JSON-formatted logs for production and human-readable
logs for development.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from .config import get_settings

# Attributes every LogRecord carries; anything else came in through `extra`
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None)).keys()
) | {"message", "asctime", "taskName"}


class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as JSON."""
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                log_data[key] = value

        if record.funcName:
            log_data["function"] = record.funcName
        if record.lineno:
            log_data["line"] = record.lineno

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable log formatter for development."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


def setup_logging() -> None:
    """Configure logging based on settings."""
    settings = get_settings()

    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    if settings.log_format == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(TextFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = [handler]

    # Suppress noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    logger = get_logger(__name__)
    logger.debug(
        "Logging initialized",
        extra={
            "environment": settings.environment,
            "log_level": settings.log_level,
            "log_format": settings.log_format,
        },
    )


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the given name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)


class LoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that adds context to all log messages."""

    def process(
        self, msg: str, kwargs: dict[str, Any]
    ) -> tuple[str, dict[str, Any]]:
        """Process the logging message and add extra context."""
        extra = dict(self.extra)
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = extra
        return msg, kwargs


def get_context_logger(name: str, **context: Any) -> LoggerAdapter:
    """Get a logger with additional context.

    Args:
        name: Logger name
        **context: Context fields to add to all log messages

    Returns:
        Logger adapter with context

    Usage:
        logger = get_context_logger(__name__, screen="pending_review")
        logger.info("Queue refreshed")  # Includes screen
    """
    return LoggerAdapter(get_logger(name), context)


# =========================
# Convenience functions
# =========================


def log_queue_sync(
    trigger: str,
    snapshot_size: int,
    queue_size: int,
    total_pending: int,
    reviewing: bool,
) -> None:
    """Log the outcome of a pending-queue fetch.

    Args:
        trigger: What caused the fetch (initialize, refresh)
        snapshot_size: Entries in the backing snapshot after the fetch
        queue_size: Entries in the active queue after the merge
        total_pending: Reported total pending count
        reviewing: Whether the operator was reviewing during the merge
    """
    logger = get_logger("mistmatch.queue")
    logger.info(
        f"Pending queue {trigger}: {queue_size} queued of {snapshot_size} ({total_pending} pending)",
        extra={
            "trigger": trigger,
            "snapshot_size": snapshot_size,
            "queue_size": queue_size,
            "total_pending": total_pending,
            "reviewing": reviewing,
            "event": "queue_sync",
        },
    )


def log_fetch_error(query: str, error: str) -> None:
    """Log a failed record-store or blob-store query."""
    logger = get_logger("mistmatch.records")
    logger.error(
        f"Query {query} failed: {error}",
        extra={"query": query, "error": error, "event": "fetch_error"},
    )


def log_decision(user_id: str, decision: str, success: bool, error: str | None = None) -> None:
    """Log a verification decision.

    Args:
        user_id: The reviewed user
        decision: approve or reject
        success: Whether the write was confirmed
        error: Failure reason, if any
    """
    logger = get_logger("mistmatch.decisions")
    level = logging.INFO if success else logging.WARNING
    logger.log(
        level,
        f"Decision {decision} for {user_id}: {'applied' if success else 'failed'}",
        extra={
            "user_id": user_id,
            "decision": decision,
            "success": success,
            "error": error,
            "event": "verification_decision",
        },
    )


def log_gender_update(
    user_id: str, gender: str, success: bool, error: str | None = None, origin: str = "gender_review"
) -> None:
    """Log a gender correction.

    Args:
        user_id: The corrected user
        gender: New gender value
        success: Whether the write was confirmed
        error: Failure reason, if any
        origin: Which flow issued the write (gender_review, pending_review)
    """
    logger = get_logger("mistmatch.gender")
    level = logging.INFO if success else logging.ERROR
    logger.log(
        level,
        f"Gender update for {user_id} -> {gender}: {'saved' if success else 'failed'}",
        extra={
            "user_id": user_id,
            "gender": gender,
            "success": success,
            "error": error,
            "origin": origin,
            "event": "gender_update",
        },
    )
