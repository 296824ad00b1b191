"""Data models for receipt splitting."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AppStep(str, Enum):
    """Screen the user is on."""
    UPLOAD = "upload"
    VERIFY = "verify"
    ASSIGN = "assign"
    RESULT = "result"


class ReceiptItem(BaseModel):
    """A single line from a receipt.

    ``price`` is the line total (unit price * quantity). After explosion every
    item has quantity 1 and price equal to the unit price.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    price: float = 0.0
    quantity: int = 1

    @field_validator("price", mode="before")
    @classmethod
    def _price_default(cls, value):
        return 0.0 if value is None else value

    @field_validator("quantity", mode="before")
    @classmethod
    def _quantity_default(cls, value):
        # Zero, negative or missing quantities count as a single unit
        if value is None:
            return 1
        try:
            return max(int(value), 1)
        except (TypeError, ValueError):
            return 1


class ExtractedReceiptData(BaseModel):
    """Receipt data as extracted and then corrected by the user.

    ``subtotal`` is not forced to match the item sum; allocation recomputes
    against the items when it can.
    """
    model_config = ConfigDict(frozen=True)

    merchant_name: str = "Unknown Merchant"
    date: str = ""
    items: tuple[ReceiptItem, ...] = ()
    subtotal: float = 0.0
    total_discount: float = 0.0  # Magnitude, always stored positive
    delivery_fee: float = 0.0
    service_fee: float = 0.0  # Platform, packaging and similar fees
    tax: float = 0.0  # Nominal amount, never a rate once verified

    @field_validator("subtotal", "total_discount", "delivery_fee", "service_fee", "tax", mode="before")
    @classmethod
    def _amount_default(cls, value):
        return 0.0 if value is None else value

    @property
    def item_total(self) -> float:
        return sum(item.price for item in self.items)

    @property
    def fee_total(self) -> float:
        return self.delivery_fee + self.service_fee


class Person(BaseModel):
    """Someone taking part in the split."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str


class Assignment(BaseModel):
    """One item given to one person."""
    model_config = ConfigDict(frozen=True)

    item_id: str
    person_id: str


class PersonResult(BaseModel):
    """What one person owes. Derived on every read, never stored."""
    person: Person
    items: list[ReceiptItem] = Field(default_factory=list)
    subtotal: float = 0.0
    discount: float = 0.0
    tax: float = 0.0
    fee: float = 0.0
    total: float = 0.0


class AllocationResult(BaseModel):
    """Output of the allocation engine."""
    person_results: list[PersonResult] = Field(default_factory=list)
    total_calculated: float = 0.0

    def for_person(self, person_id: str) -> Optional[PersonResult]:
        for result in self.person_results:
            if result.person.id == person_id:
                return result
        return None
