"""Command line entry point: connect a configured profile and run SQL."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
import sys

from .config import AppConfig, load_config
from .connection import Connection
from .driver import Result, rows_to_text
from .errors import DatabaseError

LOG = logging.getLogger(__name__)


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="pgconn", description=__doc__)
    parser.add_argument("sql", nargs="?", help="SQL to execute; omit to print the current schema")
    parser.add_argument("--config", type=Path, default=None, help="Path to config.toml")
    parser.add_argument("--profile", default=None, help="Profile name (defaults to the active profile)")
    parser.add_argument("--log-level", default=None, help="Logging level, e.g. DEBUG")
    parser.add_argument("--limit", type=int, default=None, help="Maximum rows to print")
    return parser.parse_args(argv)


def configure_logging(config: AppConfig, override: str | None = None) -> None:
    level = (override or config.log_level).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(argv: list[str] | None = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    config = load_config(args.config)
    configure_logging(config, args.log_level)
    try:
        profile = config.profile(args.profile)
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        return 2
    try:
        with Connection(profile.parameters()) as connection:
            if not args.sql:
                print(connection.get_current_schema() or "")
                return 0
            result = connection.execute(args.sql)
    except DatabaseError as exc:
        LOG.debug("Command failed", exc_info=True)
        print(f"{profile.name}: {exc}", file=sys.stderr)
        return 1
    if isinstance(result, Result):
        for line in rows_to_text(result, limit=args.limit):
            print(line)
    else:
        print(result)
    return 0


__all__ = ["main", "parse_args"]
