"""Tests for the item to person store."""

from __future__ import annotations

from assignments import AssignmentStore
from models import Assignment, ReceiptItem


def test_assign_overwrites_previous_owner() -> None:
    store = AssignmentStore().assign("A", "p1").assign("A", "p2")
    assert store["A"] == "p2"
    assert len(store) == 1


def test_assign_returns_new_store() -> None:
    empty = AssignmentStore()
    store = empty.assign("A", "p1")
    assert "A" not in empty
    assert store == {"A": "p1"}


def test_assign_to_nobody_clears_item() -> None:
    store = AssignmentStore({"A": "p1"}).assign("A", None)
    assert "A" not in store
    assert AssignmentStore({"A": "p1"}).assign("A", "") == {}


def test_unassign_all_for_person() -> None:
    store = AssignmentStore({"A": "p1", "B": "p2", "C": "p1"})
    assert store.unassign_all_for("p1") == {"B": "p2"}


def test_is_complete() -> None:
    items = [ReceiptItem(id="A", price=1), ReceiptItem(id="B", price=2)]
    store = AssignmentStore({"A": "p1"})
    assert not store.is_complete(items)
    assert store.assign("B", "p2").is_complete(items)
    assert AssignmentStore().is_complete([])


def test_round_trip_through_assignment_pairs() -> None:
    pairs = [
        Assignment(item_id="A", person_id="p1"),
        Assignment(item_id="A", person_id="p2"),
        Assignment(item_id="B", person_id="p1"),
    ]
    store = AssignmentStore.from_assignments(pairs)
    assert store == {"A": "p2", "B": "p1"}
    assert store.person_ids() == {"p1", "p2"}
    assert sorted(a.item_id for a in store.as_assignments()) == ["A", "B"]
