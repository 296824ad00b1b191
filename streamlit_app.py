"""Streamlit web interface for the bill splitter."""

import logging

import streamlit as st

import config
import currency
from extraction_client import ExtractionError, InvalidUploadError, ReceiptExtractionClient
from models import AppStep
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
from summary import allocation_notes, breakdown_rows, summary_text

config.configure_logging()
logger = logging.getLogger(__name__)

st.set_page_config(
    page_title="BillSplitter",
    page_icon="🧾",
    layout="centered",
    initial_sidebar_state="collapsed",
)

STEPS = [
    (AppStep.UPLOAD, "1. Upload"),
    (AppStep.VERIFY, "2. Cek"),
    (AppStep.ASSIGN, "3. Bagi"),
    (AppStep.RESULT, "4. Hasil"),
]

MONEY_FIELDS = [
    ("subtotal", "Subtotal"),
    ("total_discount", "Diskon (Total)"),
    ("delivery_fee", "Ongkir"),
    ("service_fee", "Biaya Layanan & Aplikasi"),
    ("tax", "Pajak"),
]

UNASSIGNED = "-- Pilih Orang --"


def get_state() -> AppState:
    if "app_state" not in st.session_state:
        st.session_state.app_state = AppState()
    return st.session_state.app_state


WIDGET_KEY_PREFIXES = ("field_", "name_", "price_", "delete_", "assign_", "remove_")


def clear_widget_state() -> None:
    """Forget widget values left over from a previous receipt."""
    for key in list(st.session_state.keys()):
        if str(key).startswith(WIDGET_KEY_PREFIXES):
            del st.session_state[key]


def dispatch(action) -> None:
    """Replace the session state with the reduced state."""
    new_state = reduce(get_state(), action)
    if isinstance(action, (ReceiptExtracted, Reset)) or new_state.step == AppStep.UPLOAD:
        clear_widget_state()
    st.session_state.app_state = new_state


def render_step_indicator(current: AppStep) -> None:
    order = [step for step, _ in STEPS]
    columns = st.columns(len(STEPS))
    for column, (step, label) in zip(columns, STEPS):
        if step == current:
            column.markdown(f"**:green[{label}]**")
        elif order.index(step) < order.index(current):
            column.markdown(f":green[{label}]")
        else:
            column.markdown(f":gray[{label}]")


def render_upload() -> None:
    st.markdown("### Upload Struk Makanan")
    st.caption("Upload screenshot atau foto struk (GoFood, Grab, Shopee).")

    api_key = config.ANTHROPIC_API_KEY or st.text_input(
        "API Key",
        type="password",
        placeholder="sk-ant-api03-...",
        help="API key Claude hanya dipakai untuk membaca struk dan tidak disimpan.",
    )

    uploaded_file = st.file_uploader(
        "Upload struk",
        type=["png", "jpg", "jpeg", "webp", "pdf"],
        label_visibility="collapsed",
    )

    if st.button("🔍 Analisa Struk", type="primary", disabled=not (api_key and uploaded_file), use_container_width=True):
        try:
            with st.spinner("Sedang menganalisa pesanan..."):
                client = ReceiptExtractionClient(api_key=api_key)
                receipt, notes = client.extract_with_notes(uploaded_file.getvalue(), uploaded_file.type)
        except (InvalidUploadError, ExtractionError) as e:
            st.error(f"❌ {e}")
            return
        except Exception as e:
            logger.exception(f"Unexpected extraction failure: {e}")
            st.error("❌ Gagal menganalisa struk. Pastikan gambar jelas dan coba lagi.")
            return

        dispatch(ReceiptExtracted(receipt=receipt, notes=tuple(notes)))
        st.rerun()


def _on_field_change(name: str) -> None:
    value = st.session_state[f"field_{name}"]
    if name not in ("merchant_name", "date"):
        value = currency.edited_amount(value, getattr(get_state().receipt, name))
        if value is None:
            return
    dispatch(ReceiptFieldEdited(field=name, value=value))


def _on_item_change(item_id: str) -> None:
    item = next(i for i in get_state().receipt.items if i.id == item_id)
    dispatch(
        ItemEdited(
            item_id=item_id,
            name=st.session_state[f"name_{item_id}"],
            price=currency.edited_amount(st.session_state[f"price_{item_id}"], item.price),
        )
    )


def render_verify(state: AppState) -> None:
    receipt = state.receipt
    st.markdown("### Cek Data Struk")
    st.caption("Pastikan harga dan menu sudah sesuai sebelum lanjut.")

    for note in state.notes:
        st.info(f"ℹ️ {note}")

    col1, col2 = st.columns(2)
    col1.text_input(
        "Nama Resto", value=receipt.merchant_name, key="field_merchant_name",
        on_change=_on_field_change, args=("merchant_name",),
    )
    col2.text_input(
        "Tanggal Order", value=receipt.date, key="field_date",
        on_change=_on_field_change, args=("date",),
    )

    st.markdown("#### Rincian Menu")
    for item in receipt.items:
        name_col, price_col, delete_col = st.columns([6, 3, 1])
        name_col.text_input(
            "Nama Item", value=item.name, key=f"name_{item.id}", label_visibility="collapsed",
            on_change=_on_item_change, args=(item.id,),
        )
        price_col.text_input(
            "Harga", value=currency.input_text(item.price), key=f"price_{item.id}", label_visibility="collapsed",
            on_change=_on_item_change, args=(item.id,),
        )
        delete_col.button(
            "🗑️", key=f"delete_{item.id}", help="Hapus Menu",
            on_click=dispatch, args=(ItemRemoved(item_id=item.id),),
        )

    st.button("➕ Tambah Menu", on_click=lambda: dispatch(ItemAdded()), use_container_width=True)

    item_total = receipt.item_total
    if abs(item_total - receipt.subtotal) > 0.5:
        st.warning(
            f"Jumlah harga menu ({currency.format_rupiah(item_total)}) berbeda dengan "
            f"subtotal struk ({currency.format_rupiah(receipt.subtotal)})."
        )

    st.markdown("#### Rincian Biaya Lain")
    columns = st.columns(2)
    for index, (name, label) in enumerate(MONEY_FIELDS):
        columns[index % 2].text_input(
            f"{label} (Rp)", value=currency.input_text(getattr(receipt, name)), key=f"field_{name}",
            on_change=_on_field_change, args=(name,),
        )

    back, forward = st.columns(2)
    back.button("Upload Ulang", on_click=dispatch, args=(WentBack(),), use_container_width=True)
    forward.button(
        "Lanjut ke Pembagian", type="primary", on_click=dispatch, args=(ReceiptVerified(),),
        disabled=not receipt.items, use_container_width=True,
    )


def _on_add_person() -> None:
    dispatch(PersonAdded(name=st.session_state.new_person_name))
    st.session_state.new_person_name = ""


def _on_assign(item_id: str, options: dict) -> None:
    choice = st.session_state[f"assign_{item_id}"]
    dispatch(ItemAssigned(item_id=item_id, person_id=options.get(choice)))


def render_assign(state: AppState) -> None:
    st.markdown("### Siapa pesan apa?")
    st.caption("Masukkan nama teman dan pilih menu mereka.")

    left, right = st.columns([1, 2])

    with left:
        st.markdown("#### Daftar Orang")
        st.text_input("Nama", placeholder="Nama (Misal: Budi)", key="new_person_name", on_change=_on_add_person)
        if not state.people:
            st.caption("Belum ada nama. Tambahkan nama pemesan di atas.")
        for person in state.people:
            name_col, remove_col = st.columns([4, 1])
            name_col.markdown(f"👤 {person.name}")
            remove_col.button(
                "✖", key=f"remove_{person.id}",
                on_click=dispatch, args=(PersonRemoved(person_id=person.id),),
            )

    with right:
        st.markdown("#### Daftar Menu")
        # Labels carry the id so two people with the same name stay distinct
        options = {f"{p.name} ({p.id[-4:]})": p.id for p in state.people}
        labels = [UNASSIGNED] + list(options)
        for item in state.receipt.items:
            owner = state.assignments.get(item.id)
            current = next((label for label, pid in options.items() if pid == owner), UNASSIGNED)
            st.selectbox(
                f"{item.name} · {currency.format_rupiah(item.price)}",
                labels,
                index=labels.index(current),
                key=f"assign_{item.id}",
                on_change=_on_assign,
                args=(item.id, options),
            )

    back, forward = st.columns(2)
    back.button("Kembali", on_click=dispatch, args=(WentBack(),), use_container_width=True)
    forward.button(
        "Hitung Total", type="primary", on_click=dispatch, args=(AssignmentFinished(),),
        disabled=not state.can_finish, use_container_width=True,
    )


def render_result(state: AppState) -> None:
    receipt = state.receipt
    result = state.allocation()

    st.markdown("### Hasil Pembagian")
    st.markdown(f"**{receipt.merchant_name} - {receipt.date}**")
    st.dataframe(breakdown_rows(receipt, result), hide_index=True, use_container_width=True)

    expected = receipt.subtotal - receipt.total_discount + receipt.tax + receipt.fee_total
    if abs(expected - result.total_calculated) > 1:
        st.warning(
            f"Total hasil hitung ({currency.format_rupiah(result.total_calculated)}) berbeda dengan "
            f"total struk ({currency.format_rupiah(expected)}). Cek kembali subtotal dan harga menu."
        )

    st.markdown("#### Metode Perhitungan")
    st.markdown("\n".join(f"- {note}" for note in allocation_notes(receipt)))

    text = summary_text(receipt, result)
    st.markdown("#### Ringkasan")
    st.code(text, language=None)
    st.download_button(
        "📥 Download Ringkasan",
        data=text,
        file_name=f"SplitBill-{receipt.merchant_name}-{receipt.date}.txt",
        mime="text/plain",
        use_container_width=True,
    )

    back, reset = st.columns(2)
    back.button("Kembali", on_click=dispatch, args=(WentBack(),), use_container_width=True)
    reset.button("Buat Baru", type="primary", on_click=dispatch, args=(Reset(),), use_container_width=True)


def main():
    """Main Streamlit app."""
    st.title("🧾 BillSplitter")
    state = get_state()
    render_step_indicator(state.step)
    st.divider()

    if state.step == AppStep.UPLOAD or state.receipt is None:
        render_upload()
    elif state.step == AppStep.VERIFY:
        render_verify(state)
    elif state.step == AppStep.ASSIGN:
        render_assign(state)
    else:
        render_result(state)


if __name__ == "__main__":
    main()
