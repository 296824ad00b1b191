"""Tests for splitting multi-quantity lines into units."""

from __future__ import annotations

import pytest

from item_explosion import explode_item, explode_items
from models import ReceiptItem


def test_multi_quantity_line_becomes_unit_entries() -> None:
    item = ReceiptItem(id="item-0", name="Nasi Goreng", price=45000, quantity=3)

    units = explode_item(item)

    assert [u.id for u in units] == ["item-0-0", "item-0-1", "item-0-2"]
    assert [u.name for u in units] == [
        "Nasi Goreng (1/3)",
        "Nasi Goreng (2/3)",
        "Nasi Goreng (3/3)",
    ]
    assert all(u.price == 15000 for u in units)
    assert all(u.quantity == 1 for u in units)


def test_unit_prices_add_back_to_line_total() -> None:
    item = ReceiptItem(id="x", name="Kopi", price=10000, quantity=3)

    units = explode_item(item)

    assert sum(u.price for u in units) == pytest.approx(10000)


def test_single_quantity_item_passes_through() -> None:
    item = ReceiptItem(id="x", name="Es Teh", price=5000)
    assert explode_item(item) == [item]


def test_exploding_twice_changes_nothing() -> None:
    items = [
        ReceiptItem(id="a", name="Ayam", price=30000, quantity=2),
        ReceiptItem(id="b", name="Teh", price=4000),
    ]

    once = explode_items(items)

    assert explode_items(once) == once
    assert len(once) == 3


def test_order_is_preserved() -> None:
    items = [
        ReceiptItem(id="a", name="A", price=2, quantity=2),
        ReceiptItem(id="b", name="B", price=1),
    ]
    assert [i.id for i in explode_items(items)] == ["a-0", "a-1", "b"]


def test_zero_quantity_and_missing_price_are_single_free_units() -> None:
    item = ReceiptItem(id="z", name="Bonus", price=None, quantity=0)

    units = explode_item(item)

    assert len(units) == 1
    assert units[0].quantity == 1
    assert units[0].price == 0.0
