"""Core execution workflow for AVA Watcher."""

from __future__ import annotations

import datetime as dt
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional

from .dates import utc_now
from .db import Database
from .diff import reconcile_units
from .errors import PersistError, RenderError
from .models import (
    DiffResult,
    NewListing,
    NotificationEvent,
    RunSummary,
    Store,
    TickState,
    UnitChange,
    UnitChanged,
    UnitSnapshot,
    Unlisted,
)
from .notifications import Notifier, format_event
from .scraper import AVA_URL, fetch_units
from .textdiff import render_change

logger = logging.getLogger(__name__)

Fetcher = Callable[[str], List[UnitSnapshot]]
UnitFilter = Callable[[UnitSnapshot], bool]


def accept_all(unit: UnitSnapshot) -> bool:
    return True


@dataclass
class AvaWatcherRunner:
    """Coordinates fetch, reconcile, report and persistence steps.

    Owns the in-memory :class:`Store`; ticks never overlap, so the store has a
    single writer.
    """

    database: Database
    target_url: str = AVA_URL
    fetcher: Fetcher = field(default_factory=lambda: fetch_units)
    notifier: Optional[Notifier] = None
    unit_filter: UnitFilter = accept_all
    notify_changes: bool = False
    export_dir: Optional[Path] = None
    color: Optional[bool] = None
    clock: Callable[[], dt.datetime] = utc_now
    store: Store = field(default_factory=Store)
    state: TickState = TickState.IDLE

    def load(self) -> Store:
        """Load persisted state; corrupt state is fatal."""
        self.store = self.database.load_store()
        logger.info(
            "Tracking %d active units (%d unlisted on record)",
            len(self.store.active),
            len(self.store.unlisted_records()),
        )
        return self.store

    def tick(self, dry_run: bool = False) -> Optional[RunSummary]:
        """Execute a single monitoring cycle.

        Returns ``None`` when the fetch failed, in which case the store is left
        untouched, or when a later step raised; the error is logged and recorded
        as an ``error`` run.
        """
        executed_at = self.clock()
        stamp = executed_at.isoformat()
        logger.debug("Starting monitor cycle for %s", self.target_url)

        self.state = TickState.FETCHING
        try:
            fetched = self.fetcher(self.target_url)
        except Exception as exc:  # noqa: BLE001
            logger.error("Fetching %s failed: %s", self.target_url, exc, exc_info=True)
            self.state = TickState.IDLE
            self._record_run(stamp, "error", f"fetch_failed: {exc}")
            return None

        try:
            return self._process(fetched, executed_at, dry_run)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Monitor cycle for %s failed", self.target_url)
            self.state = TickState.IDLE
            self._record_run(stamp, "error", f"tick_failed: {exc}")
            return None

    def run_forever(self, interval: float, sleep: Callable[[float], None] = time.sleep) -> None:
        """Run ticks one after another, forever, ``interval`` seconds apart."""
        logger.info("Watching %s every %s seconds", self.target_url, interval)
        while True:
            self.tick()
            sleep(interval)

    def _process(
        self,
        fetched: List[UnitSnapshot],
        executed_at: dt.datetime,
        dry_run: bool,
    ) -> RunSummary:
        stamp = executed_at.isoformat()
        snapshots = [unit for unit in fetched if self._qualifies(unit)]
        logger.debug("%d of %d units match the search criteria", len(snapshots), len(fetched))

        self.state = TickState.RECONCILING
        store = self.store.copy() if dry_run else self.store
        diff = reconcile_units(store, snapshots, executed_at)

        self.state = TickState.REPORTING
        rendered = self._report(diff, notify=not dry_run)
        summary = RunSummary(executed_at=executed_at, diff=diff, rendered_diffs=rendered)

        if dry_run:
            self.state = TickState.IDLE
            self._record_run(stamp, "dry_run", _format_note(diff, prefix="dry-run "))
            return summary

        self.state = TickState.PERSISTING
        summary.persisted = self._persist(stamp, diff)
        self.state = TickState.IDLE
        self._record_run(stamp, "no_changes" if diff.is_empty else "success", _format_note(diff))
        return summary

    def _qualifies(self, unit: UnitSnapshot) -> bool:
        if self.unit_filter(unit):
            return True
        logger.debug(
            "Skipping apartment %s (%d bed %d bath, $%s)",
            unit.number,
            unit.bedroom,
            unit.bathroom,
            unit.price,
        )
        return False

    def _report(self, diff: DiffResult, notify: bool) -> Dict[str, str]:
        if diff.is_empty:
            logger.info("No changes (%d units tracked)", len(self.store.active))
            return {}

        logger.info(
            "Tick complete: %d new, %d unlisted, %d changed",
            len(diff.added),
            len(diff.removed),
            len(diff.changed),
        )

        for unit in diff.added:
            logger.info("New listing: %s", unit)
            if notify:
                self._notify(NewListing(unit=unit))

        for record in diff.removed:
            logger.info("%s", record)
            if notify:
                self._notify(Unlisted(unit=record))

        rendered: Dict[str, str] = {}
        for change in diff.changed:
            try:
                text = render_change(change, color=self.color)
            except RenderError as exc:
                logger.error("Could not render diff for unit %s: %s", change.unit_id, exc)
                text = str(exc)
            rendered[change.unit_id] = text
            logger.info("Listing changed: %s\n%s", change.new, text)
            if notify and self.notify_changes:
                plain = text if self.color is False else _plain_diff(change, text)
                self._notify(UnitChanged(change=change, diff=plain))
        return rendered

    def _notify(self, event: NotificationEvent) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier.send(format_event(event))
        except Exception:  # noqa: BLE001
            logger.exception("Failed to notify about unit %s", _event_unit_id(event))

    def _persist(self, stamp: str, diff: DiffResult) -> bool:
        try:
            self.database.save_store(self.store)
            self.database.record_events(stamp, diff)
        except PersistError as exc:
            logger.error("Failed to persist state: %s", exc)
            return False
        except Exception:  # noqa: BLE001
            logger.exception("Failed to persist state")
            return False

        if self.export_dir is not None:
            try:
                timestamp = stamp.replace(":", "-").replace(".", "-").replace("+", "_")
                export_path = self.export_dir / f"units_{timestamp}.xlsx"
                self.database.export_units_to_xlsx(export_path)
                logger.info("Exported unit inventory to %s", export_path)
            except Exception:  # noqa: BLE001
                logger.exception("Failed to export unit inventory snapshot")
        return True

    def _record_run(self, stamp: str, status: str, notes: str) -> None:
        try:
            self.database.add_run(executed_at=stamp, status=status, notes=notes)
        except Exception:  # noqa: BLE001
            logger.exception("Failed to record run history")


def _plain_diff(change: UnitChange, text: str) -> str:
    try:
        return render_change(change, color=False)
    except RenderError:
        return text


def _event_unit_id(event: NotificationEvent) -> str:
    if isinstance(event, UnitChanged):
        return event.change.unit_id
    return event.unit.unit_id


def _format_note(diff: DiffResult, prefix: str = "") -> str:
    """Render a concise run note summarizing the diff outcome."""
    return (
        f"{prefix}"
        f"units(+{len(diff.added)} / -{len(diff.removed)} / ~{len(diff.changed)})"
    )
