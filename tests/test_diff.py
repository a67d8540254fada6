import datetime as dt

import pytest

from avawatcher.diff import reconcile_units
from avawatcher.models import Store, TrackedUnit

from factories import T0, make_unit

T1 = T0 + dt.timedelta(hours=2)
T2 = T0 + dt.timedelta(days=1)


def store_with(*units, first_seen=T0) -> Store:
    return Store(active={unit.unit_id: TrackedUnit(unit, first_seen) for unit in units})


def test_scenario_price_change_then_unlisting():
    store = store_with(make_unit("A", price=4260.0))
    a_new = make_unit("A", price=4300.0)
    b = make_unit("B", number="512", price=3900.0)

    diff = reconcile_units(store, [a_new, b], T1)

    assert diff.added == [b]
    assert [(change.old.price, change.new.price) for change in diff.changed] == [(4260.0, 4300.0)]
    assert diff.removed == []
    assert store.active["A"].first_seen == T0
    assert store.active["A"].current == a_new
    assert store.active["B"].first_seen == T1

    diff = reconcile_units(store, [b], T2)

    assert [record.unit_id for record in diff.removed] == ["A"]
    assert diff.removed[0].unlisted_at == T2
    assert diff.added == []
    assert diff.changed == []
    assert list(store.active) == ["B"]


def test_unlisted_unit_moves_to_archive():
    store = store_with(make_unit("X"))

    diff = reconcile_units(store, [], T1)

    assert "X" not in store.active
    archived = store.latest_unlisted("X")
    assert archived is diff.removed[0]
    assert archived.first_seen == T0
    assert archived.unlisted_at == T1
    assert archived.tracked_duration() == T1 - T0


def test_reconciling_same_snapshot_twice_is_empty():
    store = store_with(make_unit("A"))
    snapshot = [make_unit("A", price=4100.0), make_unit("B"), make_unit("C")]

    first = reconcile_units(store, snapshot, T1)
    second = reconcile_units(store, snapshot, T2)

    assert not first.is_empty
    assert second.is_empty
    assert second.added == second.removed == second.changed == []


def test_single_field_change_produces_one_changed_entry():
    store = store_with(make_unit("A", price=4260.0))

    diff = reconcile_units(store, [make_unit("A", price=4300.0)], T1)

    assert len(diff.changed) == 1
    assert diff.added == []
    assert diff.removed == []


def test_extra_field_change_is_detected():
    store = store_with(make_unit("A"))

    diff = reconcile_units(store, [make_unit("A", specialsBadge="New!")], T1)

    assert [change.unit_id for change in diff.changed] == ["A"]


@pytest.mark.parametrize(
    "before, after",
    [
        (True, 1),
        (2, 2.0),
        ({"flag": False}, {"flag": 0}),
    ],
)
def test_extra_field_type_change_is_detected(before, after):
    store = store_with(make_unit("A", isFeatured=before))

    diff = reconcile_units(store, [make_unit("A", isFeatured=after)], T1)

    assert [change.unit_id for change in diff.changed] == ["A"]
    assert store.active["A"].current.extra == {"isFeatured": after}


def test_extra_field_order_is_not_a_change():
    store = store_with(make_unit("A", alpha=1, beta=2))

    diff = reconcile_units(store, [make_unit("A", beta=2, alpha=1)], T1)

    assert diff.is_empty


@pytest.mark.parametrize(
    "previous_ids, new_ids",
    [
        ([], ["A", "B"]),
        (["A", "B"], []),
        (["A", "B", "C"], ["B", "D", "A"]),
        (["A", "B", "C"], ["C", "B", "A"]),
        (["A"], ["A", "A", "B"]),
    ],
)
def test_every_identifier_lands_in_exactly_one_bucket(previous_ids, new_ids):
    store = store_with(*(make_unit(unit_id, price=4000.0) for unit_id in previous_ids))
    snapshot = [
        make_unit(unit_id, price=4000.0 if unit_id == "B" else 4500.0) for unit_id in new_ids
    ]

    diff = reconcile_units(store, snapshot, T1)

    added = {unit.unit_id for unit in diff.added}
    removed = {record.unit_id for record in diff.removed}
    changed = {change.unit_id for change in diff.changed}
    unchanged = set(store.active) - added - changed
    buckets = [added, removed, changed, unchanged]

    assert set().union(*buckets) == set(previous_ids) | set(new_ids)
    assert sum(len(bucket) for bucket in buckets) == len(set(previous_ids) | set(new_ids))
    assert set(store.active) == set(new_ids)
    assert removed == set(previous_ids) - set(new_ids)


def test_output_order_follows_inputs():
    store = store_with(make_unit("R2"), make_unit("K1"), make_unit("R1"), make_unit("K2"))
    snapshot = [
        make_unit("N2"),
        make_unit("K2", price=1.0),
        make_unit("N1"),
        make_unit("K1", price=2.0),
    ]

    diff = reconcile_units(store, snapshot, T1)

    assert [unit.unit_id for unit in diff.added] == ["N2", "N1"]
    assert [change.unit_id for change in diff.changed] == ["K2", "K1"]
    assert [record.unit_id for record in diff.removed] == ["R2", "R1"]
    assert list(store.active) == ["N2", "K2", "N1", "K1"]


def test_reappearing_unit_is_a_fresh_listing():
    store = store_with(make_unit("A"))
    reconcile_units(store, [], T1)

    diff = reconcile_units(store, [make_unit("A")], T2)

    assert [unit.unit_id for unit in diff.added] == ["A"]
    assert store.active["A"].first_seen == T2
    assert store.latest_unlisted("A").first_seen == T0


def test_all_units_in_one_tick_share_the_timestamp():
    store = store_with(make_unit("old"))

    diff = reconcile_units(store, [make_unit("n1"), make_unit("n2")], T1)

    assert {record.first_seen for record in store.active.values()} == {T1}
    assert diff.removed[0].unlisted_at == T1
