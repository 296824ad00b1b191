"""Fix amounts the model read at the wrong scale.

Receipts in rupiah write thousands with a dot, so "15.000" is sometimes read
as 15.0. Tax is sometimes returned as a rate (0.11 or 11) instead of an
amount. This stage runs on the raw extraction, before the user sees it, and
knows nothing about allocation.
"""

import logging

from pydantic import BaseModel

import config
from models import ExtractedReceiptData

logger = logging.getLogger(__name__)

SCALE = 1000

_CHARGE_FIELDS = ("total_discount", "delivery_fee", "service_fee")

_LABELS = {
    "total_discount": "Diskon",
    "delivery_fee": "Ongkir",
    "service_fee": "Biaya layanan",
}


class ScaleThresholds(BaseModel):
    """Tunable limits for the correction rules."""
    min_plausible_amount: float = 1000.0
    ratio_tolerance: float = 0.02
    max_tax_rate_percent: float = 25.0

    @classmethod
    def from_config(cls) -> "ScaleThresholds":
        return cls(
            min_plausible_amount=config.MIN_PLAUSIBLE_AMOUNT,
            ratio_tolerance=config.SCALE_RATIO_TOLERANCE,
            max_tax_rate_percent=config.MAX_TAX_RATE_PERCENT,
        )


def _close(value: float, target: float, tolerance: float) -> bool:
    if target == 0:
        return False
    return abs(value - target) / abs(target) <= tolerance


def _scale_items(receipt: ExtractedReceiptData) -> ExtractedReceiptData:
    items = tuple(item.model_copy(update={"price": item.price * SCALE}) for item in receipt.items)
    return receipt.model_copy(update={"items": items})


def _scale_totals(receipt: ExtractedReceiptData) -> ExtractedReceiptData:
    names = ("subtotal",) + _CHARGE_FIELDS
    # A tax below one is a rate, converted once the subtotal is right
    if not 0 < receipt.tax < 1:
        names += ("tax",)
    update = {name: getattr(receipt, name) * SCALE for name in names}
    return receipt.model_copy(update=update)


def _amounts(receipt: ExtractedReceiptData) -> list[float]:
    values = [item.price for item in receipt.items]
    values += [receipt.subtotal, receipt.tax]
    values += [getattr(receipt, name) for name in _CHARGE_FIELDS]
    return [v for v in values if v]


def correct_scale(
    receipt: ExtractedReceiptData,
    thresholds: ScaleThresholds = None,
) -> tuple[ExtractedReceiptData, list[str]]:
    """Apply the scale heuristics.

    Args:
        receipt: Receipt as parsed from the model reply.
        thresholds: Limits to use, defaults from config.

    Returns:
        Tuple of (corrected receipt, notes describing each correction).
    """
    thresholds = thresholds or ScaleThresholds.from_config()
    tolerance = thresholds.ratio_tolerance
    notes = []

    item_sum = receipt.item_total
    scaled = False

    if item_sum and _close(item_sum * SCALE, receipt.subtotal, tolerance):
        receipt = _scale_items(receipt)
        scaled = True
        notes.append("Harga menu dikali 1.000 agar sesuai subtotal.")
    elif item_sum and _close(receipt.subtotal * SCALE, item_sum, tolerance):
        receipt = _scale_totals(receipt)
        scaled = True
        notes.append("Subtotal, diskon, biaya dan pajak dikali 1.000 agar sesuai harga menu.")

    amounts = _amounts(receipt)
    if not scaled and amounts and all(abs(v) < thresholds.min_plausible_amount for v in amounts):
        receipt = _scale_totals(_scale_items(receipt))
        notes.append("Semua nominal terlalu kecil, dikali 1.000.")

    plausible_base = receipt.subtotal or receipt.item_total
    if plausible_base >= thresholds.min_plausible_amount:
        update = {}
        for name in _CHARGE_FIELDS:
            value = getattr(receipt, name)
            if value and abs(value) < 1:
                update[name] = value * SCALE
                notes.append(f"{_LABELS[name]} {value:g} dikali 1.000.")
        if update:
            receipt = receipt.model_copy(update=update)

        tax = receipt.tax
        if 0 < tax < 1:
            receipt = receipt.model_copy(update={"tax": tax * plausible_base})
            notes.append(f"Pajak {tax} dibaca sebagai tarif, diubah menjadi nominal.")
        elif 1 <= tax <= thresholds.max_tax_rate_percent:
            receipt = receipt.model_copy(update={"tax": plausible_base * tax / 100})
            notes.append(f"Pajak {tax:g} dibaca sebagai persen, diubah menjadi nominal.")

    for note in notes:
        logger.info(f"Scale correction: {note}")

    return receipt, notes
