"""Per-person cost allocation.

Rules:
    - Item prices go to whoever the item is assigned to.
    - Discount and tax are shared in proportion to each person's share of the
      item subtotal.
    - Delivery and service fees are split evenly across active people, i.e.
      people holding at least one item.

Unassigned items still count in the subtotal used for the proportions, so
their share of discount and tax is not charged to anyone and their price is
not recovered. This matches how the split has always been computed; callers
that want full recovery must assign every item first.
"""

import logging
from typing import Mapping, Sequence

from models import AllocationResult, ExtractedReceiptData, Person, PersonResult

logger = logging.getLogger(__name__)


def effective_subtotal(receipt: ExtractedReceiptData) -> float:
    """Denominator for the proportional shares.

    Uses the item sum, then the stated subtotal, then 1 so that degenerate
    receipts never divide by zero.
    """
    return receipt.item_total or receipt.subtotal or 1


def allocate(
    receipt: ExtractedReceiptData,
    people: Sequence[Person],
    assignments: Mapping[str, str],
) -> AllocationResult:
    """Work out what each active person owes.

    Args:
        receipt: Verified receipt data.
        people: Participants, in display order.
        assignments: Item id to person id.

    Returns:
        AllocationResult with one row per active person, in ``people`` order.
    """
    subtotal = effective_subtotal(receipt)

    active_ids = set(assignments.values())
    active_count = len(active_ids)
    fee_per_person = receipt.fee_total / active_count if active_count else 0.0

    person_results = []
    for person in people:
        if person.id not in active_ids:
            continue

        items = [item for item in receipt.items if assignments.get(item.id) == person.id]
        person_subtotal = sum(item.price for item in items)
        share = person_subtotal / subtotal
        discount = share * receipt.total_discount
        tax = share * receipt.tax

        person_results.append(
            PersonResult(
                person=person,
                items=items,
                subtotal=person_subtotal,
                discount=discount,
                tax=tax,
                fee=fee_per_person,
                total=person_subtotal - discount + tax + fee_per_person,
            )
        )

    unassigned = [item for item in receipt.items if item.id not in assignments]
    if unassigned and person_results:
        logger.debug(f"{len(unassigned)} unassigned items left out of the split")

    return AllocationResult(
        person_results=person_results,
        total_calculated=sum(r.total for r in person_results),
    )
