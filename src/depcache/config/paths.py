"""Helpers for expanding environment-driven paths."""

from __future__ import annotations

import os
import re
from pathlib import Path

from depcache.errors import ConfigurationError

_PERCENT_VAR_RE = re.compile(r"%([^%]+)%")
_DOLLAR_VAR_RE = re.compile(r"\$(\w+)|\$\{([^}]+)\}")


def _unresolved_env_vars(value: str) -> set[str]:
    if os.name == "nt":
        return {match.group(1) for match in _PERCENT_VAR_RE.finditer(value)}
    unresolved: set[str] = set()
    for match in _DOLLAR_VAR_RE.finditer(value):
        name = match.group(1) or match.group(2)
        if name:
            unresolved.add(name)
    return unresolved


def expand_env_path(raw: str | os.PathLike[str], *, field: str | None = None) -> Path:
    """Expand environment variables and ``~`` in ``raw``.

    Placeholders that survive expansion mean the variable is unset, which is
    reported as a :class:`ConfigurationError` rather than creating a literal
    ``$VAR`` directory.
    """

    if not isinstance(raw, (str, os.PathLike)):
        raise ConfigurationError(
            "Path must be a string.", context={"field": field, "value": raw}
        )
    expanded = os.path.expandvars(os.fspath(raw))
    unresolved = _unresolved_env_vars(expanded)
    if unresolved:
        label = f" in {field}" if field else ""
        names = ", ".join(sorted(unresolved))
        plural = "s" if len(unresolved) > 1 else ""
        raise ConfigurationError(
            f"Unresolved environment variable{plural}{label}: {names}",
            context={"field": field, "variables": sorted(unresolved)},
        )
    return Path(expanded).expanduser()
