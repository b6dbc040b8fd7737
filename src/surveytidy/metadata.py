"""
Label store for survey designs.

Descriptive metadata keyed by column name:
    - variable_labels:   display label per column
    - value_labels:      mapping of value -> label per column
    - question_prefaces: question wording shown before the item
    - notes:             free-text notes
    - transformations:   human-readable record of how a column was computed

The verbs never interpret these values. They only keep the keys in sync
with the data: renamed columns move their entries, dropped columns lose them.

LabelStore is immutable by convention: every method returns a new store.
"""

from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Iterable, Mapping, Optional

SLOTS = ("variable_labels", "value_labels", "question_prefaces", "notes", "transformations")


@dataclass
class LabelStore:
    variable_labels: Dict[str, str] = field(default_factory=dict)
    value_labels: Dict[str, Dict[Any, str]] = field(default_factory=dict)
    question_prefaces: Dict[str, str] = field(default_factory=dict)
    notes: Dict[str, str] = field(default_factory=dict)
    transformations: Dict[str, str] = field(default_factory=dict)

    def keys(self) -> set:
        """Every column name that has at least one entry."""
        found = set()
        for slot in fields(self):
            found.update(getattr(self, slot.name).keys())
        return found

    def rename_keys(self, mapping: Mapping[str, str]) -> "LabelStore":
        """Move entries from old column names to new ones."""
        changes = {}
        for slot in SLOTS:
            current = getattr(self, slot)
            changes[slot] = {mapping.get(k, k): v for k, v in current.items()}
        return replace(self, **changes)

    def drop_keys(self, columns: Iterable[str]) -> "LabelStore":
        """Remove every entry for the given columns."""
        dropped = set(columns)
        changes = {}
        for slot in SLOTS:
            current = getattr(self, slot)
            changes[slot] = {k: v for k, v in current.items() if k not in dropped}
        return replace(self, **changes)

    def with_entry(self, slot: str, column: str, value: Optional[Any]) -> "LabelStore":
        """Set (or, with None, clear) one entry in one slot."""
        if slot not in SLOTS:
            raise ValueError(f"Unknown label slot: {slot}")
        updated = dict(getattr(self, slot))
        if value is None:
            updated.pop(column, None)
        else:
            updated[column] = value
        return replace(self, **{slot: updated})

    def get_var_label(self, column: str) -> Optional[str]:
        return self.variable_labels.get(column)
