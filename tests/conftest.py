import os
import sys
import time
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from depcache.errors import reset_error_metrics  # noqa: E402

HOUR = 3600


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch):
    for key in list(os.environ):
        if key.startswith("DEPCACHE_"):
            monkeypatch.delenv(key, raising=False)
    reset_error_metrics()
    yield
    reset_error_metrics()


@pytest.fixture
def make_file():
    """Create a file and pin its mtime ``age`` seconds in the past (negative: future)."""

    def _make(path: Path, text: str = "", *, age: float = HOUR) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text)
        stamp = time.time() - age
        os.utime(path, (stamp, stamp))
        return path

    return _make


@pytest.fixture
def cache_dir(tmp_path) -> Path:
    return tmp_path / "cache"


@pytest.fixture
def set_age():
    """Move an existing file's mtime ``age`` seconds into the past (negative: future)."""

    def _set(path: Path, age: float) -> Path:
        stamp = time.time() - age
        os.utime(path, (stamp, stamp))
        return path

    return _set
