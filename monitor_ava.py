"""CLI entrypoint for the AVA Watcher agent."""

from __future__ import annotations

import argparse
import functools
import logging
import sys

from avawatcher.config import Settings
from avawatcher.db import Database, resolve_sqlite_path
from avawatcher.errors import PersistError
from avawatcher.logformat import configure_logging
from avawatcher.notifications import build_notifier_from_env
from avawatcher.runner import AvaWatcherRunner

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="AVA apartment listing watcher")
    parser.add_argument("--verbose", action="store_true", help="enable debug logging")
    parser.add_argument(
        "--once",
        action="store_true",
        help="execute one monitoring cycle and exit",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="fetch and diff without notifying or persisting (implies --once)",
    )
    return parser


def build_runner(settings: Settings) -> AvaWatcherRunner:
    database = Database(path=resolve_sqlite_path(settings.database_url))
    return AvaWatcherRunner(
        database=database,
        target_url=settings.target_url,
        notifier=build_notifier_from_env(),
        unit_filter=functools.partial(
            _meets_qualifications,
            bedrooms=settings.bedrooms,
            allow_furnished=settings.allow_furnished,
        ),
        notify_changes=settings.notify_changes,
        export_dir=settings.export_dir,
    )


def _meets_qualifications(unit, bedrooms, allow_furnished) -> bool:
    return unit.meets_qualifications(bedrooms=bedrooms, allow_furnished=allow_furnished)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    settings = Settings.from_env()
    runner = build_runner(settings)

    try:
        runner.load()
    except PersistError:
        logger.exception("Refusing to start with unreadable state")
        return 1

    if args.once or args.dry_run:
        summary = runner.tick(dry_run=args.dry_run)
        return 0 if summary is not None else 1

    runner.run_forever(settings.tick_interval)
    return 0


if __name__ == "__main__":
    sys.exit(main())
