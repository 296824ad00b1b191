"""Text summary and table rows for the result screen."""

from currency import format_rupiah
from models import AllocationResult, ExtractedReceiptData


def summary_text(receipt: ExtractedReceiptData, result: AllocationResult) -> str:
    """Plain-text summary for pasting into a chat.

    Args:
        receipt: Verified receipt.
        result: Allocation for that receipt.

    Returns:
        Multi-line summary with one line per person and the grand total.
    """
    lines = [
        f"*Split Bill: {receipt.merchant_name}*",
        f"*Date: {receipt.date}*",
        "",
    ]
    for person_result in result.person_results:
        lines.append(f"{person_result.person.name}: {format_rupiah(person_result.total)}")
    lines.append("")
    lines.append(f"Total: {format_rupiah(result.total_calculated)}")
    return "\n".join(lines)


def breakdown_rows(receipt: ExtractedReceiptData, result: AllocationResult) -> list[dict]:
    """Rows for the breakdown table, ending with a TOTAL row.

    The tax column only appears when the receipt has tax. The totals row
    shows the receipt's own figures next to the calculated grand total.
    """
    include_tax = receipt.tax > 0
    rows = []
    for r in result.person_results:
        row = {
            "Nama": r.person.name,
            "Menu": ", ".join(item.name for item in r.items),
            "Harga": format_rupiah(r.subtotal),
            "Disc": "-" + format_rupiah(r.discount),
        }
        if include_tax:
            row["Tax"] = "+" + format_rupiah(r.tax)
        row["Fee & Ongkir"] = format_rupiah(r.fee)
        row["Total"] = format_rupiah(r.total)
        rows.append(row)

    totals = {
        "Nama": "TOTAL",
        "Menu": "",
        "Harga": format_rupiah(receipt.subtotal),
        "Disc": "-" + format_rupiah(receipt.total_discount),
    }
    if include_tax:
        totals["Tax"] = "+" + format_rupiah(receipt.tax)
    totals["Fee & Ongkir"] = format_rupiah(receipt.fee_total)
    totals["Total"] = format_rupiah(result.total_calculated)
    rows.append(totals)
    return rows


def allocation_notes(receipt: ExtractedReceiptData) -> list[str]:
    """How the split was calculated, shown under the table."""
    notes = [
        "Harga Menu: Sesuai harga asli di struk.",
        "Diskon: Proporsional (HargaMenu / Subtotal) × TotalDiskon.",
        "Delivery & Fee: Dibagi rata TotalFee / JumlahOrang.",
    ]
    if receipt.tax > 0:
        notes.append("Pajak: Proporsional (HargaMenu / Subtotal) × TotalPajak.")
    return notes
