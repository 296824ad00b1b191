"""Session state for the split flow.

The UI never mutates state directly. Each user action is a small frozen
object, and ``reduce(state, action)`` returns the next state.
"""

import logging
import uuid
from dataclasses import dataclass, field, replace
from typing import Optional, Union

from allocation import allocate
from assignments import AssignmentStore
from item_explosion import explode_items
from models import AllocationResult, AppStep, ExtractedReceiptData, Person, ReceiptItem

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = {
    "merchant_name",
    "date",
    "subtotal",
    "total_discount",
    "delivery_fee",
    "service_fee",
    "tax",
}

NEW_ITEM_NAME = "Menu Baru"


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}"


@dataclass(frozen=True)
class AppState:
    """Everything one session holds."""
    step: AppStep = AppStep.UPLOAD
    receipt: Optional[ExtractedReceiptData] = None
    people: tuple[Person, ...] = ()
    assignments: AssignmentStore = field(default_factory=AssignmentStore)
    notes: tuple[str, ...] = ()

    @property
    def can_finish(self) -> bool:
        return self.receipt is not None and self.assignments.is_complete(self.receipt.items)

    def allocation(self) -> AllocationResult:
        """Per-person breakdown, computed fresh from the current state."""
        if self.receipt is None:
            return AllocationResult()
        return allocate(self.receipt, self.people, self.assignments)


@dataclass(frozen=True)
class ReceiptExtracted:
    receipt: ExtractedReceiptData
    notes: tuple[str, ...] = ()


@dataclass(frozen=True)
class ReceiptFieldEdited:
    field: str
    value: Union[str, float]


@dataclass(frozen=True)
class ItemEdited:
    item_id: str
    name: Optional[str] = None
    price: Optional[float] = None


@dataclass(frozen=True)
class ItemAdded:
    name: str = NEW_ITEM_NAME
    price: float = 0.0
    item_id: str = field(default_factory=lambda: _new_id("manual"))


@dataclass(frozen=True)
class ItemRemoved:
    item_id: str


@dataclass(frozen=True)
class ReceiptVerified:
    pass


@dataclass(frozen=True)
class PersonAdded:
    name: str
    person_id: str = field(default_factory=lambda: _new_id("p"))


@dataclass(frozen=True)
class PersonRemoved:
    person_id: str


@dataclass(frozen=True)
class ItemAssigned:
    item_id: str
    person_id: Optional[str]


@dataclass(frozen=True)
class AssignmentFinished:
    pass


@dataclass(frozen=True)
class WentBack:
    pass


@dataclass(frozen=True)
class Reset:
    pass


Action = Union[
    ReceiptExtracted, ReceiptFieldEdited, ItemEdited, ItemAdded, ItemRemoved,
    ReceiptVerified, PersonAdded, PersonRemoved, ItemAssigned,
    AssignmentFinished, WentBack, Reset,
]


def _with_items(state: AppState, items) -> AppState:
    return replace(state, receipt=state.receipt.model_copy(update={"items": tuple(items)}))


def reduce(state: AppState, action: Action) -> AppState:
    """Return the state that follows ``action``.

    Actions that make no sense in the current state (editing before a receipt
    exists, finishing with unassigned items) leave the state unchanged.
    """
    if isinstance(action, Reset):
        return AppState()

    if isinstance(action, ReceiptExtracted):
        receipt = action.receipt.model_copy(update={"items": tuple(explode_items(action.receipt.items))})
        return AppState(step=AppStep.VERIFY, receipt=receipt, notes=tuple(action.notes))

    if isinstance(action, WentBack):
        if state.step == AppStep.VERIFY:
            return AppState()
        if state.step == AppStep.ASSIGN:
            return replace(state, step=AppStep.VERIFY)
        if state.step == AppStep.RESULT:
            return replace(state, step=AppStep.ASSIGN)
        return state

    if state.receipt is None:
        logger.warning(f"Ignoring {type(action).__name__} without a receipt")
        return state

    if isinstance(action, ReceiptFieldEdited):
        if action.field not in EDITABLE_FIELDS:
            raise ValueError(f"Field {action.field!r} cannot be edited")
        return replace(state, receipt=state.receipt.model_copy(update={action.field: action.value}))

    if isinstance(action, ItemEdited):
        items = []
        for item in state.receipt.items:
            if item.id == action.item_id:
                update = {}
                if action.name is not None:
                    update["name"] = action.name
                if action.price is not None:
                    update["price"] = action.price
                item = item.model_copy(update=update)
            items.append(item)
        return _with_items(state, items)

    if isinstance(action, ItemAdded):
        item = ReceiptItem(id=action.item_id, name=action.name, price=action.price, quantity=1)
        return _with_items(state, list(state.receipt.items) + [item])

    if isinstance(action, ItemRemoved):
        items = [item for item in state.receipt.items if item.id != action.item_id]
        state = _with_items(state, items)
        return replace(state, assignments=state.assignments.unassign(action.item_id))

    if isinstance(action, ReceiptVerified):
        return replace(state, step=AppStep.ASSIGN)

    if isinstance(action, PersonAdded):
        name = action.name.strip()
        if not name:
            return state
        return replace(state, people=state.people + (Person(id=action.person_id, name=name),))

    if isinstance(action, PersonRemoved):
        return replace(
            state,
            people=tuple(p for p in state.people if p.id != action.person_id),
            assignments=state.assignments.unassign_all_for(action.person_id),
        )

    if isinstance(action, ItemAssigned):
        return replace(state, assignments=state.assignments.assign(action.item_id, action.person_id))

    if isinstance(action, AssignmentFinished):
        if not state.can_finish:
            logger.warning("Cannot show results while items are unassigned")
            return state
        return replace(state, step=AppStep.RESULT)

    raise TypeError(f"Unknown action: {action!r}")
