"""Split multi-quantity receipt lines into single units."""

from typing import Iterable

from models import ReceiptItem


def explode_item(item: ReceiptItem) -> list[ReceiptItem]:
    """Expand one line into ``quantity`` unit-priced entries.

    Args:
        item: Line whose price is the total for all units.

    Returns:
        ``[item]`` unchanged when quantity is 1, otherwise one entry per unit
        with ids ``{id}-{k}`` and names ``"{name} (k/N)"``.
    """
    count = item.quantity if item.quantity and item.quantity > 0 else 1
    if count == 1:
        return [item]

    unit_price = (item.price or 0.0) / count
    return [
        item.model_copy(
            update={
                "id": f"{item.id}-{index}",
                "name": f"{item.name} ({index + 1}/{count})",
                "price": unit_price,
                "quantity": 1,
            }
        )
        for index in range(count)
    ]


def explode_items(items: Iterable[ReceiptItem]) -> list[ReceiptItem]:
    """Explode every line, keeping receipt order.

    Running this on already exploded items returns an equal list.
    """
    exploded = []
    for item in items:
        exploded.extend(explode_item(item))
    return exploded
