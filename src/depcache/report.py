"""Tabular summary of a cache index for debugging stale or missing entries."""

from __future__ import annotations

import pandas as pd

from depcache.cache import BuildCache

REPORT_COLUMNS = [
    "source",
    "cache_name",
    "last_modified",
    "dependencies",
    "newest_dependency",
    "fresh",
    "persisted",
    "staged",
]


def build_report(cache: BuildCache) -> pd.DataFrame:
    """Return one row per cached source, ordered by source path.

    ``newest_dependency`` is the first entry of the stored dependency list,
    which :meth:`BuildCache.save` keeps ordered newest first.
    """

    store = cache.store
    rows = []
    for source, record in cache.records().items():
        name = cache.get_cache_name(source)
        rows.append(
            {
                "source": source,
                "cache_name": name,
                "last_modified": record.last_modified,
                "dependencies": len(record.dependencies),
                "newest_dependency": record.dependencies[0] if record.dependencies else None,
                "fresh": cache.is_fresh(source),
                "persisted": store.exists(name),
                "staged": record.staged,
            }
        )
    if not rows:
        return pd.DataFrame(columns=REPORT_COLUMNS)
    frame = pd.DataFrame(rows, columns=REPORT_COLUMNS)
    frame["last_modified"] = pd.to_datetime(frame["last_modified"], unit="ms", utc=True)
    return frame.sort_values("source").reset_index(drop=True)


def collisions(report: pd.DataFrame) -> pd.DataFrame:
    """Rows whose ``cache_name`` is shared with another source."""

    if report.empty:
        return report
    return report[report.duplicated(subset=["cache_name"], keep=False)]


__all__ = ["REPORT_COLUMNS", "build_report", "collisions"]
