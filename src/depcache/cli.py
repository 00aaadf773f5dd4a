"""Command line interface for inspecting and maintaining a depcache directory."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from depcache.cache import BuildCache
from depcache.config import DEFAULT_INDEX_FILENAME, load_settings
from depcache.errors import DepCacheError
from depcache.logging import configure_cli_logging
from depcache.report import build_report, collisions

EXIT_OK = 0
EXIT_MISS = 1
EXIT_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    """Create the CLI argument parser."""

    parser = argparse.ArgumentParser(
        prog="depcache",
        description="Inspect and maintain a dependency-aware build cache",
        allow_abbrev=False,
    )
    parser.add_argument(
        "--dir",
        type=Path,
        help="Cache directory (defaults to DEPCACHE_DIR or .depcache)",
    )
    parser.add_argument(
        "--index-filename",
        help=f"Metadata file inside the cache directory (default {DEFAULT_INDEX_FILENAME})",
    )
    parser.add_argument("--encoding", help="Text encoding of cached content")
    parser.add_argument(
        "--on-corrupt-index",
        choices=["raise", "reset"],
        help="What to do when the metadata file cannot be parsed",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log cache events to stderr",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    report = commands.add_parser("report", help="Print one row per cached source")
    report.add_argument(
        "--output-csv", type=Path, help="Optional path to write the full report as CSV"
    )
    report.add_argument(
        "--collisions",
        action="store_true",
        help="Only show sources whose cache file name is shared",
    )

    check = commands.add_parser("check", help="Print cached content if it is still fresh")
    check.add_argument("source", help="Source path as passed to set()")

    name = commands.add_parser("name", help="Print the cache file name for a source")
    name.add_argument("source", help="Source path")

    discard = commands.add_parser("discard", help="Drop sources from the cache")
    discard.add_argument("sources", nargs="+", help="Source paths to forget")

    commands.add_parser("purge", help="Delete content files no record refers to")
    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""

    return build_parser().parse_args(argv)


def _open_cache(args: argparse.Namespace) -> BuildCache:
    settings = load_settings(
        index_filename=args.index_filename,
        encoding=args.encoding,
        on_corrupt_index=args.on_corrupt_index,
    )
    return BuildCache(args.dir, settings=settings).load()


def _report(args: argparse.Namespace) -> int:
    cache = _open_cache(args)
    frame = build_report(cache)
    if args.collisions:
        frame = collisions(frame)
    if frame.empty:
        print("No cached sources.")
    else:
        print(frame.to_string(index=False))
    if args.output_csv:
        args.output_csv.parent.mkdir(parents=True, exist_ok=True)
        frame.to_csv(args.output_csv, index=False)
    return EXIT_OK


def _check(args: argparse.Namespace) -> int:
    content = _open_cache(args).check(args.source)
    if content is None:
        print(f"miss: {args.source}", file=sys.stderr)
        return EXIT_MISS
    sys.stdout.write(content)
    return EXIT_OK


def _name(args: argparse.Namespace) -> int:
    cache = BuildCache(args.dir, settings=load_settings())
    print(cache.get_cache_name(args.source))
    return EXIT_OK


def _discard(args: argparse.Namespace) -> int:
    cache = _open_cache(args)
    dropped = [source for source in args.sources if cache.discard(source)]
    cache.save()
    for source in dropped:
        print(f"discarded: {source}")
    return EXIT_OK


def _purge(args: argparse.Namespace) -> int:
    removed = _open_cache(args).purge_orphans()
    for name in removed:
        print(f"removed: {name}")
    print(f"{len(removed)} orphaned file(s) removed")
    return EXIT_OK


_COMMANDS = {
    "report": _report,
    "check": _check,
    "name": _name,
    "discard": _discard,
    "purge": _purge,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the CLI."""

    args = parse_args(argv)
    configure_cli_logging(args.verbose)
    try:
        return _COMMANDS[args.command](args)
    except DepCacheError as error:
        print(f"error: {error.user_message}", file=sys.stderr)
        return EXIT_ERROR


if __name__ == "__main__":
    raise SystemExit(main())
