"""Runtime configuration for depcache.

Values can be overridden via environment variables prefixed with
``DEPCACHE_``. For example, ``DEPCACHE_DIR=build/.cache``.
"""

from __future__ import annotations

import codecs
from pathlib import Path
from typing import Any, Literal

from pydantic import ValidationError as PydanticValidationError
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from depcache.errors import ConfigurationError

from .paths import expand_env_path


DEFAULT_CACHE_DIR = ".depcache"
DEFAULT_INDEX_FILENAME = "info.json"


class CacheSettings(BaseSettings):
    """Configuration for a :class:`~depcache.cache.BuildCache`."""

    model_config = SettingsConfigDict(env_prefix="DEPCACHE_")

    dir: str = DEFAULT_CACHE_DIR
    index_filename: str = DEFAULT_INDEX_FILENAME
    encoding: str = "utf-8"
    atomic_writes: bool = True
    on_corrupt_index: Literal["raise", "reset"] = "raise"

    @field_validator("index_filename")
    @classmethod
    def _bare_filename(cls, value: str) -> str:
        if not value or Path(value).name != value or value in {".", ".."}:
            raise ValueError("index_filename must be a bare file name")
        return value

    @field_validator("encoding")
    @classmethod
    def _known_encoding(cls, value: str) -> str:
        try:
            codecs.lookup(value)
        except LookupError as exc:
            raise ValueError(f"unknown encoding {value!r}") from exc
        return value

    @property
    def cache_dir(self) -> Path:
        """The configured cache directory with environment variables expanded."""

        return expand_env_path(self.dir, field="DEPCACHE_DIR")


def load_settings(**overrides: Any) -> CacheSettings:
    """Build :class:`CacheSettings`, raising :class:`ConfigurationError` on bad input."""

    cleaned = {key: value for key, value in overrides.items() if value is not None}
    if "dir" in cleaned:
        cleaned["dir"] = str(cleaned["dir"])
    try:
        return CacheSettings(**cleaned)
    except PydanticValidationError as exc:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in exc.errors()})
        raise ConfigurationError(
            "Invalid depcache configuration",
            context={"fields": fields},
            cause=exc,
        ) from exc


__all__ = ["CacheSettings", "DEFAULT_CACHE_DIR", "DEFAULT_INDEX_FILENAME", "load_settings"]
