"""Reconcile freshly scraped units against tracked state."""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import replace
from typing import Dict, Iterable

from .models import DiffResult, Store, TrackedUnit, UnitChange, UnitSnapshot

logger = logging.getLogger(__name__)


def reconcile_units(
    store: Store,
    snapshots: Iterable[UnitSnapshot],
    now: dt.datetime,
) -> DiffResult:
    """Classify every unit as added, removed, changed or unchanged.

    ``store.active`` is replaced by the units present in ``snapshots``; units
    that were active and are no longer listed are stamped with ``now`` and
    moved into the unlisted archive. ``added`` and ``changed`` follow the order
    of ``snapshots``, ``removed`` follows the insertion order of the previous
    active map.
    """
    candidates_for_removal: Dict[str, TrackedUnit] = store.active
    store.active = {}
    diff = DiffResult()

    for snapshot in snapshots:
        unit_id = snapshot.unit_id
        if unit_id in store.active:
            logger.warning("Duplicate unit %s in snapshot; keeping the first", unit_id)
            continue

        previous = candidates_for_removal.pop(unit_id, None)
        if previous is None:
            diff.added.append(snapshot)
            store.active[unit_id] = TrackedUnit(current=snapshot, first_seen=now)
            continue

        if previous.current.differs_from(snapshot):
            diff.changed.append(UnitChange(old=previous.current, new=snapshot))
        store.active[unit_id] = TrackedUnit(
            current=snapshot,
            first_seen=previous.first_seen,
            unlisted_at=None,
        )

    for record in candidates_for_removal.values():
        unlisted = replace(record, unlisted_at=now)
        diff.removed.append(unlisted)
        store.archive(unlisted)

    logger.debug(
        "Reconciled %d active units: +%d / -%d / ~%d",
        len(store.active),
        len(diff.added),
        len(diff.removed),
        len(diff.changed),
    )
    return diff
