"""Structured logging for cache events.

Every record is a single JSON object carrying at least ``message`` or
``event``, the logger name, a UTC timestamp and a redacted ``context``.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Mapping

from .errors import DepCacheError, record_error, sanitize_context


def _json_ready(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, Mapping):
        return {str(k): _json_ready(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_json_ready(v) for v in value]
    return str(value)


class StructuredLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that renders each record as a JSON string.

    ``msg`` may be a mapping (merged into the payload) or plain text. A
    ``context=`` keyword is merged over the context bound at creation.
    """

    def process(self, msg: Any, kwargs: Mapping[str, Any]):  # type: ignore[override]
        context = dict(self.extra or {})
        context.update(kwargs.pop("context", None) or {})
        payload = dict(msg) if isinstance(msg, Mapping) else {"message": str(msg)}
        redacted = sanitize_context(context)
        if redacted:
            payload.setdefault("context", {}).update(redacted)
        payload.setdefault("logger", self.logger.name)
        payload.setdefault(
            "timestamp",
            datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
        )
        kwargs.setdefault("extra", {})["structured"] = payload
        return json.dumps(payload, default=_json_ready), dict(kwargs)


def get_logger(name: str, **context: Any) -> StructuredLoggerAdapter:
    """Return a structured logger adapter bound to ``name``."""

    base_logger = logging.getLogger(name)
    base_logger.setLevel(logging.INFO)
    return StructuredLoggerAdapter(base_logger, sanitize_context(context))


def log_event(
    logger: logging.LoggerAdapter,
    event: str,
    *,
    level: int = logging.INFO,
    context: Mapping[str, Any] | None = None,
    **fields: Any,
) -> None:
    """Log ``event`` with ``fields`` as top-level payload keys."""

    logger.log(level, {"event": event, **fields}, context=dict(context or {}))


def log_exception(
    logger: logging.LoggerAdapter,
    error: DepCacheError,
    *,
    event: str,
    context: Mapping[str, Any] | None = None,
) -> None:
    """Log ``error`` at ERROR level and count it in the error metrics."""

    combined = dict(context or {})
    combined.update(error.context)
    record_error(error)
    log_event(logger, event, level=logging.ERROR, context=combined, error=error.to_dict())


def configure_cli_logging(verbose: bool = False) -> None:
    """Send cache events to stderr; INFO only when ``verbose``."""

    # Module loggers are pinned at INFO, so filter on the handler.
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(logging.INFO if verbose else logging.WARNING)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logging.basicConfig(level=logging.INFO, handlers=[handler])


__all__ = [
    "StructuredLoggerAdapter",
    "configure_cli_logging",
    "get_logger",
    "log_event",
    "log_exception",
]
