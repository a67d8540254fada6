"""AVA Watcher package initialization."""

from .db import Database
from .diff import reconcile_units
from .errors import AvaWatcherError, FetchError, NotifyError, PersistError, RenderError
from .models import (
    DiffResult,
    NewListing,
    RunSummary,
    Store,
    TickState,
    TrackedUnit,
    UnitChange,
    UnitChanged,
    UnitSnapshot,
    Unlisted,
)
from .runner import AvaWatcherRunner
from .scraper import fetch_units
from .textdiff import render_diff, render_diff_with_header

__all__ = [
    "AvaWatcherError",
    "AvaWatcherRunner",
    "Database",
    "DiffResult",
    "FetchError",
    "NewListing",
    "NotifyError",
    "PersistError",
    "RenderError",
    "RunSummary",
    "Store",
    "TickState",
    "TrackedUnit",
    "UnitChange",
    "UnitChanged",
    "UnitSnapshot",
    "Unlisted",
    "fetch_units",
    "reconcile_units",
    "render_diff",
    "render_diff_with_header",
]
