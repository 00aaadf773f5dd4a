"""Errors raised by depcache and the helpers that report them.

Each error carries an :class:`ErrorCode`, a message the CLI can print as is,
and a ``context`` mapping (paths, encodings, setting names) that is copied
into the structured log record when the error is logged.
"""

from __future__ import annotations

import os
from collections import Counter
from enum import Enum
from typing import Any, Mapping, Type


class ErrorCode(str, Enum):
    CACHE = "cache"
    CONFIG = "config"
    UNKNOWN = "unknown"


# Context keys containing one of these never have their value logged.
_REDACT_MARKERS = ("password", "secret", "token", "credential", "apikey", "api_key")
_REDACTED = "***REDACTED***"


def describe_exception(exc: BaseException, *, max_depth: int = 3) -> dict[str, Any]:
    """Describe ``exc`` and at most ``max_depth`` links of its cause chain.

    ``errno`` and ``filename`` are kept for ``OSError`` since nearly every
    cache failure comes from the file system.
    """

    payload: dict[str, Any] = {"type": type(exc).__name__, "message": str(exc)}
    if isinstance(exc, OSError):
        if exc.errno is not None:
            payload["errno"] = exc.errno
        if exc.filename is not None:
            payload["filename"] = os.fsdecode(exc.filename)
    if max_depth <= 0:
        return payload
    if exc.__cause__ is not None:
        payload["cause"] = describe_exception(exc.__cause__, max_depth=max_depth - 1)
    elif exc.__context__ is not None and not exc.__suppress_context__:
        payload["context"] = describe_exception(exc.__context__, max_depth=max_depth - 1)
    return payload


def _plain(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, os.PathLike):
        return os.fspath(value)
    if isinstance(value, Mapping):
        return sanitize_context(value)
    if isinstance(value, (list, tuple, set)):
        return [_plain(item) for item in value]
    return repr(value)


def sanitize_context(context: Mapping[str, Any] | None) -> dict[str, Any]:
    """Copy ``context`` into log-safe values, masking credential-like keys."""

    cleaned: dict[str, Any] = {}
    for key, value in (context or {}).items():
        name = str(key)
        if any(marker in name.lower() for marker in _REDACT_MARKERS):
            cleaned[name] = _REDACTED
        else:
            cleaned[name] = _plain(value)
    return cleaned


class DepCacheError(Exception):
    """Base class of every error depcache raises on purpose."""

    code = ErrorCode.UNKNOWN
    default_message = "depcache operation failed"

    def __init__(
        self,
        message: str | None = None,
        *,
        user_message: str | None = None,
        context: Mapping[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        message = message or self.default_message
        super().__init__(message)
        self.user_message = user_message or message
        self.context = dict(context or {})
        if cause is not None:
            self.__cause__ = cause

    def add_context(self, **context: Any) -> "DepCacheError":
        self.context.update((k, v) for k, v in context.items() if v is not None)
        return self

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "code": self.code.value,
            "message": self.user_message,
            "type": type(self).__name__,
        }
        if self.context:
            payload["context"] = sanitize_context(self.context)
        if self.__cause__ is not None:
            payload["cause"] = describe_exception(self.__cause__)
        return payload


class CacheError(DepCacheError):
    """Reading or writing the cache directory failed."""

    code = ErrorCode.CACHE
    default_message = "Cache operation failed"


class CacheDirectoryError(CacheError):
    """The cache directory could not be created or is not a directory."""

    default_message = "Cache directory unavailable"


class IndexCorruptError(CacheError):
    """The metadata file exists but cannot be read or parsed."""

    default_message = "Cache index is malformed"


class CacheWriteError(CacheError):
    """A content file or the metadata file could not be written."""

    default_message = "Cache write failed"


class ConfigurationError(DepCacheError):
    """Settings or environment overrides are invalid."""

    code = ErrorCode.CONFIG
    default_message = "Invalid depcache configuration"


def wrap_error(
    exc: BaseException,
    error_cls: Type[DepCacheError] = DepCacheError,
    *,
    message: str,
    context: Mapping[str, Any] | None = None,
) -> DepCacheError:
    """Turn ``exc`` into ``error_cls`` with ``exc`` as its cause.

    A :class:`DepCacheError` is returned as is, with ``context`` merged in.
    """

    if isinstance(exc, DepCacheError):
        return exc.add_context(**dict(context or {}))
    return error_cls(message, context=context, cause=exc)


_error_counts: Counter[str] = Counter()


def record_error(error: DepCacheError) -> None:
    _error_counts[error.code.value] += 1


def get_error_metrics() -> dict[str, int]:
    """Errors logged so far in this process, keyed by error code."""

    return dict(_error_counts)


def reset_error_metrics() -> None:
    _error_counts.clear()


__all__ = [
    "CacheDirectoryError",
    "CacheError",
    "CacheWriteError",
    "ConfigurationError",
    "DepCacheError",
    "ErrorCode",
    "IndexCorruptError",
    "describe_exception",
    "get_error_metrics",
    "record_error",
    "reset_error_metrics",
    "sanitize_context",
    "wrap_error",
]
