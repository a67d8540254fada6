"""SQLite-backed persistence helpers."""

from __future__ import annotations

import datetime as dt
import json
import logging
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from openpyxl import Workbook

from .errors import PersistError
from .models import DiffResult, Store, TrackedUnit, UnitSnapshot

logger = logging.getLogger(__name__)

SQLITE_PREFIX = "sqlite://"

EXPORT_HEADERS = [
    "unit_id",
    "number",
    "status",
    "bedroom",
    "bathroom",
    "price",
    "square_feet",
    "available_date",
    "floor_plan",
    "first_seen",
    "unlisted_at",
]


def resolve_sqlite_path(database_url: str) -> Path:
    """Translate a DATABASE_URL into a filesystem path."""
    if not database_url:
        raise ValueError("DATABASE_URL must not be empty")

    if database_url.startswith(SQLITE_PREFIX):
        raw_path = database_url[len(SQLITE_PREFIX) :]
        # Allow sqlite:///path/to/file and sqlite://path/to/file styles.
        if raw_path.startswith("/"):
            raw_path = raw_path[1:]
        path = Path(raw_path)
    else:
        path = Path(database_url)

    if not path.is_absolute():
        path = Path.cwd() / path

    return path.expanduser().resolve()


@dataclass(frozen=True)
class UnitEvent:
    unit_id: str
    event_type: str
    occurred_at: str
    details: str | None


@dataclass
class Database:
    """Thin wrapper around sqlite3 for storing tracked units and run history."""

    path: Path

    def connect(self) -> sqlite3.Connection:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        return sqlite3.connect(self.path)

    def initialize(self) -> None:
        with self.connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS runs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    executed_at TEXT NOT NULL,
                    status TEXT NOT NULL,
                    notes TEXT
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS units (
                    unit_id TEXT PRIMARY KEY,
                    position INTEGER NOT NULL,
                    payload TEXT NOT NULL,
                    first_seen TEXT NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS unlisted_units (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    unit_id TEXT NOT NULL,
                    payload TEXT NOT NULL,
                    first_seen TEXT NOT NULL,
                    unlisted_at TEXT NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS unit_events (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    unit_id TEXT NOT NULL,
                    event_type TEXT NOT NULL,
                    occurred_at TEXT NOT NULL,
                    details TEXT
                )
                """
            )
            conn.commit()

    def add_run(self, executed_at: str, status: str, notes: str | None) -> None:
        with self.connect() as conn:
            conn.execute(
                "INSERT INTO runs (executed_at, status, notes) VALUES (?, ?, ?)",
                (executed_at, status, notes),
            )
            conn.commit()

    def recent_runs(self, limit: int = 10) -> Iterable[Tuple[str, str, str | None]]:
        with self.connect() as conn:
            cursor = conn.execute(
                "SELECT executed_at, status, notes FROM runs ORDER BY id DESC LIMIT ?",
                (limit,),
            )
            yield from cursor.fetchall()

    def load_store(self) -> Store:
        """Load the active units and the unlisted archive.

        A missing database yields an empty store; an unreadable one raises
        :class:`PersistError`.
        """
        if not self.path.exists():
            logger.info("No state at %s; starting with an empty store", self.path)
            self.initialize()
            return Store()

        try:
            self.initialize()
            with self.connect() as conn:
                active_rows = conn.execute(
                    "SELECT unit_id, payload, first_seen FROM units ORDER BY position"
                ).fetchall()
                unlisted_rows = conn.execute(
                    """
                    SELECT unit_id, payload, first_seen, unlisted_at
                    FROM unlisted_units ORDER BY id
                    """
                ).fetchall()
        except sqlite3.DatabaseError as exc:
            raise PersistError(f"Could not read state from {self.path}: {exc}") from exc

        store = Store()
        try:
            for unit_id, payload, first_seen in active_rows:
                store.active[unit_id] = TrackedUnit(
                    current=_decode_payload(payload),
                    first_seen=_parse_timestamp(first_seen),
                )
            for unit_id, payload, first_seen, unlisted_at in unlisted_rows:
                store.archive(
                    TrackedUnit(
                        current=_decode_payload(payload),
                        first_seen=_parse_timestamp(first_seen),
                        unlisted_at=_parse_timestamp(unlisted_at),
                    )
                )
        except (KeyError, TypeError, ValueError) as exc:
            raise PersistError(f"Corrupt unit record in {self.path}: {exc!r}") from exc

        logger.debug(
            "Loaded %d active and %d unlisted units from %s",
            len(store.active),
            len(store.unlisted_records()),
            self.path,
        )
        return store

    def save_store(self, store: Store) -> None:
        """Overwrite the persisted store in a single transaction."""
        try:
            with self.connect() as conn:
                conn.execute("DELETE FROM units")
                conn.executemany(
                    """
                    INSERT INTO units (unit_id, position, payload, first_seen)
                    VALUES (?, ?, ?, ?)
                    """,
                    [
                        (unit_id, position, record.current.to_json(), record.first_seen.isoformat())
                        for position, (unit_id, record) in enumerate(store.active.items())
                    ],
                )
                conn.execute("DELETE FROM unlisted_units")
                conn.executemany(
                    """
                    INSERT INTO unlisted_units (unit_id, payload, first_seen, unlisted_at)
                    VALUES (?, ?, ?, ?)
                    """,
                    [
                        (
                            record.unit_id,
                            record.current.to_json(),
                            record.first_seen.isoformat(),
                            record.unlisted_at.isoformat(),
                        )
                        for record in store.unlisted_records()
                        if record.unlisted_at is not None
                    ],
                )
                conn.commit()
        except sqlite3.Error as exc:
            raise PersistError(f"Could not write state to {self.path}: {exc}") from exc

    def record_events(self, executed_at: str, diff: DiffResult) -> None:
        """Append one history row per added, unlisted and changed unit."""
        rows: List[Tuple[str, str, str, str]] = []
        for unit in diff.added:
            rows.append((unit.unit_id, "added", executed_at, unit.display()))
        for record in diff.removed:
            rows.append((record.unit_id, "unlisted", executed_at, record.display()))
        for change in diff.changed:
            rows.append(
                (
                    change.unit_id,
                    "changed",
                    executed_at,
                    f"{change.old.display()} -> {change.new.display()}",
                )
            )
        if not rows:
            return

        with self.connect() as conn:
            conn.executemany(
                """
                INSERT INTO unit_events (unit_id, event_type, occurred_at, details)
                VALUES (?, ?, ?, ?)
                """,
                rows,
            )
            conn.commit()

    def fetch_events(self, unit_id: Optional[str] = None) -> List[UnitEvent]:
        query = "SELECT unit_id, event_type, occurred_at, details FROM unit_events"
        params: tuple = ()
        if unit_id:
            query += " WHERE unit_id = ?"
            params = (unit_id,)
        query += " ORDER BY id"

        with self.connect() as conn:
            cursor = conn.execute(query, params)
            return [UnitEvent(*row) for row in cursor.fetchall()]

    def export_units_to_xlsx(self, path: Path) -> None:
        """Write every tracked unit, active first, to an Excel workbook."""
        store = self.load_store()
        workbook = Workbook()
        worksheet = workbook.active
        worksheet.title = "units"
        worksheet.append(EXPORT_HEADERS)

        records: List[TrackedUnit] = list(store.active.values()) + store.unlisted_records()
        for record in records:
            unit = record.current
            worksheet.append(
                [
                    unit.unit_id,
                    unit.number,
                    "active" if record.active else "unlisted",
                    unit.bedroom,
                    unit.bathroom,
                    unit.price,
                    unit.square_feet,
                    unit.available_date.date().isoformat(),
                    unit.floor_plan.name,
                    record.first_seen.isoformat(),
                    record.unlisted_at.isoformat() if record.unlisted_at else None,
                ]
            )

        path.parent.mkdir(parents=True, exist_ok=True)
        workbook.save(path)


def _decode_payload(payload: str) -> UnitSnapshot:
    data: Dict = json.loads(payload)
    return UnitSnapshot.from_api(data)


def _parse_timestamp(value: str) -> dt.datetime:
    parsed = dt.datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.timezone.utc)
    return parsed
