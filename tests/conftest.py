"""Shared fixtures for the split tests."""

from __future__ import annotations

import pytest

from models import ExtractedReceiptData, Person, ReceiptItem


@pytest.fixture
def receipt() -> ExtractedReceiptData:
    """Two items, 20.000 subtotal, with discount, tax and delivery."""
    return ExtractedReceiptData(
        merchant_name="Warung Sederhana",
        date="10 Desember 2025",
        items=(
            ReceiptItem(id="A", name="Nasi Goreng", price=12000),
            ReceiptItem(id="B", name="Es Teh", price=8000),
        ),
        subtotal=20000,
        total_discount=2000,
        delivery_fee=4000,
        service_fee=0,
        tax=2000,
    )


@pytest.fixture
def people() -> list[Person]:
    return [Person(id="p1", name="Budi"), Person(id="p2", name="Sari")]
