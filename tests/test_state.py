"""Tests for the session state reducer."""

from __future__ import annotations

import pytest

import currency
from models import AppStep, ExtractedReceiptData, ReceiptItem
from state import (
    AppState,
    AssignmentFinished,
    ItemAdded,
    ItemAssigned,
    ItemEdited,
    ItemRemoved,
    PersonAdded,
    PersonRemoved,
    ReceiptExtracted,
    ReceiptFieldEdited,
    ReceiptVerified,
    Reset,
    WentBack,
    reduce,
)


def _run(state: AppState, *actions) -> AppState:
    for action in actions:
        state = reduce(state, action)
    return state


@pytest.fixture
def assigning(receipt) -> AppState:
    return _run(
        AppState(),
        ReceiptExtracted(receipt=receipt),
        ReceiptVerified(),
        PersonAdded(name="Budi", person_id="p1"),
        PersonAdded(name="Sari", person_id="p2"),
    )


def test_extraction_explodes_items_and_moves_to_verify() -> None:
    raw = ExtractedReceiptData(items=(ReceiptItem(id="i", name="Sate", price=30000, quantity=2),))

    state = reduce(AppState(), ReceiptExtracted(receipt=raw, notes=("note",)))

    assert state.step == AppStep.VERIFY
    assert [i.id for i in state.receipt.items] == ["i-0", "i-1"]
    assert state.notes == ("note",)


def test_reducer_does_not_mutate_previous_state(assigning) -> None:
    after = reduce(assigning, ItemAssigned(item_id="A", person_id="p1"))
    assert "A" not in assigning.assignments
    assert after.assignments["A"] == "p1"


def test_field_edits(receipt) -> None:
    state = _run(
        AppState(),
        ReceiptExtracted(receipt=receipt),
        ReceiptFieldEdited(field="merchant_name", value="Bakso Pak Min"),
        ReceiptFieldEdited(field="tax", value=1500.0),
    )
    assert state.receipt.merchant_name == "Bakso Pak Min"
    assert state.receipt.tax == 1500.0

    with pytest.raises(ValueError):
        reduce(state, ReceiptFieldEdited(field="items", value="x"))


def test_item_edit_add_remove(assigning) -> None:
    state = _run(
        assigning,
        ItemAssigned(item_id="B", person_id="p2"),
        ItemEdited(item_id="A", name="Nasi Goreng Spesial", price=13000),
        ItemAdded(name="Kerupuk", price=2000, item_id="manual-1"),
        ItemRemoved(item_id="B"),
    )

    assert [i.id for i in state.receipt.items] == ["A", "manual-1"]
    assert state.receipt.items[0].name == "Nasi Goreng Spesial"
    assert state.receipt.items[0].price == 13000
    assert "B" not in state.assignments


def test_item_added_gets_fresh_ids() -> None:
    assert ItemAdded().item_id != ItemAdded().item_id


def test_blank_person_is_ignored(assigning) -> None:
    assert reduce(assigning, PersonAdded(name="   ")) == assigning


def test_removing_person_clears_their_items(assigning) -> None:
    state = _run(
        assigning,
        ItemAssigned(item_id="A", person_id="p1"),
        ItemAssigned(item_id="B", person_id="p2"),
        PersonRemoved(person_id="p1"),
    )
    assert [p.id for p in state.people] == ["p2"]
    assert dict(state.assignments) == {"B": "p2"}


def test_finish_requires_every_item_assigned(assigning) -> None:
    partial = _run(assigning, ItemAssigned(item_id="A", person_id="p1"), AssignmentFinished())
    assert partial.step == AppStep.ASSIGN

    done = _run(partial, ItemAssigned(item_id="B", person_id="p2"), AssignmentFinished())
    assert done.step == AppStep.RESULT
    assert done.allocation().total_calculated == pytest.approx(24000)


def test_going_back(assigning) -> None:
    done = _run(
        assigning,
        ItemAssigned(item_id="A", person_id="p1"),
        ItemAssigned(item_id="B", person_id="p2"),
        AssignmentFinished(),
    )

    to_assign = reduce(done, WentBack())
    assert to_assign.step == AppStep.ASSIGN
    assert to_assign.assignments == done.assignments

    to_verify = reduce(to_assign, WentBack())
    assert to_verify.step == AppStep.VERIFY

    assert reduce(to_verify, WentBack()) == AppState()


def test_reset(assigning) -> None:
    assert reduce(assigning, Reset()) == AppState()


def test_actions_without_receipt_are_ignored() -> None:
    state = AppState()
    assert reduce(state, PersonAdded(name="Budi")) is state
    assert state.allocation().person_results == []


def test_unknown_action_raises(receipt) -> None:
    state = reduce(AppState(), ReceiptExtracted(receipt=receipt))
    with pytest.raises(TypeError):
        reduce(state, object())


def test_renaming_split_unit_keeps_unrounded_price() -> None:
    kopi = ReceiptItem(id="k", name="Kopi", price=10000, quantity=3)
    state = reduce(AppState(), ReceiptExtracted(receipt=ExtractedReceiptData(items=(kopi,), subtotal=10000)))
    unit = state.receipt.items[0]
    shown = currency.input_text(unit.price)

    state = reduce(state, ItemEdited(item_id=unit.id, name="Kopi Susu", price=currency.edited_amount(shown, unit.price)))

    assert state.receipt.items[0].name == "Kopi Susu"
    assert state.receipt.items[0].price == 10000 / 3
    assert sum(i.price for i in state.receipt.items) == pytest.approx(10000, abs=1e-9)
