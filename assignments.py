"""Item to person mapping."""

from collections.abc import Mapping
from typing import Iterable, Iterator, Optional

from models import Assignment, ReceiptItem


class AssignmentStore(Mapping):
    """Immutable map of item id to person id.

    Every change returns a new store so application state can be replaced
    step by step instead of mutated.
    """

    def __init__(self, mapping: Optional[Mapping[str, str]] = None):
        self._mapping = dict(mapping or {})

    def __getitem__(self, item_id: str) -> str:
        return self._mapping[item_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._mapping)

    def __len__(self) -> int:
        return len(self._mapping)

    def __eq__(self, other) -> bool:
        if isinstance(other, Mapping):
            return dict(self._mapping) == dict(other)
        return NotImplemented

    def __hash__(self):
        return hash(frozenset(self._mapping.items()))

    def __repr__(self) -> str:
        return f"AssignmentStore({self._mapping!r})"

    def assign(self, item_id: str, person_id: Optional[str]) -> "AssignmentStore":
        """Give ``item_id`` to ``person_id``, replacing any earlier owner.

        An empty or None person clears the item instead.
        """
        if not person_id:
            return self.unassign(item_id)
        mapping = dict(self._mapping)
        mapping[item_id] = person_id
        return AssignmentStore(mapping)

    def unassign(self, item_id: str) -> "AssignmentStore":
        if item_id not in self._mapping:
            return self
        mapping = dict(self._mapping)
        del mapping[item_id]
        return AssignmentStore(mapping)

    def unassign_all_for(self, person_id: str) -> "AssignmentStore":
        """Drop every item held by ``person_id``."""
        return AssignmentStore(
            {item_id: owner for item_id, owner in self._mapping.items() if owner != person_id}
        )

    def is_complete(self, items: Iterable[ReceiptItem]) -> bool:
        """True when every item in ``items`` has an owner."""
        return all(item.id in self._mapping for item in items)

    def person_ids(self) -> set[str]:
        return set(self._mapping.values())

    def as_assignments(self) -> list[Assignment]:
        return [Assignment(item_id=i, person_id=p) for i, p in self._mapping.items()]

    @classmethod
    def from_assignments(cls, assignments: Iterable[Assignment]) -> "AssignmentStore":
        """Build a store from pairs; later pairs win for the same item."""
        return cls({a.item_id: a.person_id for a in assignments})
