"""
Headless view state for a catalog table.

Holds what a table UI would keep between user actions: which fields are
visible, which custom columns exist, column value filters, sort order, group
sorting and the set of deactivated rows. None of it is persisted; the overlay
store is the only durable state. The exporters read the view to decide which
records and fields to project.
"""

import logging
from dataclasses import dataclass
from functools import cmp_to_key
from typing import Dict, Iterable, List, Optional, Set, Tuple

from ..models import ID_KEY, LabelMap, WorkingRecord, all_slot_keys, is_slot_key
from ..utils import ValidationUtils


ASC = 'asc'
DESC = 'desc'


@dataclass
class SortConfig:
    """Active single-column sort."""
    field: str = ID_KEY
    direction: str = ASC


@dataclass
class GroupSortConfig:
    """Sorting by group-tag column values."""
    enabled: bool = False
    direction: str = ASC


def is_sortable_field(name: str) -> bool:
    return name == ID_KEY or is_slot_key(name)


def compare_values(a: Optional[str], b: Optional[str]) -> int:
    """
    Compare two cell values.

    Numbers compare numerically when both sides parse as numbers; everything
    else compares as case-insensitive text, falling back to exact text.
    """
    a = '' if a is None else str(a)
    b = '' if b is None else str(b)
    if a == b:
        return 0

    a_number = ValidationUtils.safe_float_conversion(a)
    b_number = ValidationUtils.safe_float_conversion(b)
    if a_number is not None and b_number is not None:
        return (a_number > b_number) - (a_number < b_number)

    a_key, b_key = a.casefold(), b.casefold()
    if a_key != b_key:
        return (a_key > b_key) - (a_key < b_key)
    return (a > b) - (a < b)


class CatalogView:
    """
    Visibility, filtering, sorting and deactivation state of one catalog table.

    Records are never modified here; methods take the current working records
    and return new lists.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self.visible_fields: Set[str] = set(all_slot_keys())
        self.custom_columns: List[Tuple[str, str]] = []
        self.column_filters: Dict[str, Set[str]] = {}
        self.deactivated_ids: Set[str] = set()
        self.sort_config = SortConfig()
        self.group_sort_config = GroupSortConfig()

    # Visibility and columns

    def is_visible(self, name: str) -> bool:
        return name in self.visible_fields

    def toggle_field(self, name: str) -> bool:
        """Flip visibility of a field; returns the new visibility."""
        if name in self.visible_fields:
            self.visible_fields.discard(name)
            return False
        self.visible_fields.add(name)
        return True

    def hide_fields(self, names: Iterable[str]) -> None:
        for name in names:
            self.visible_fields.discard(name)

    def add_column(self, name: str, label: str) -> None:
        """Register a custom column and make it visible; re-adding updates the label."""
        for index, (existing, _) in enumerate(self.custom_columns):
            if existing == name:
                self.custom_columns[index] = (name, label)
                break
        else:
            self.custom_columns.append((name, label))
        self.visible_fields.add(name)

    def relabel_column(self, name: str, label: str) -> None:
        """Change the label of a custom column without touching its visibility."""
        self.custom_columns = [(n, label if n == name else l) for n, l in self.custom_columns]

    def delete_column(self, name: str) -> None:
        self.custom_columns = [(n, l) for n, l in self.custom_columns if n != name]
        self.visible_fields.discard(name)
        self.column_filters.pop(name, None)

    def is_group_column(self, name: str) -> bool:
        return any(existing == name for existing, _ in self.custom_columns)

    def sync_columns(self, records: List[WorkingRecord]) -> None:
        """Register custom columns already present on records (e.g. restored from the overlay)."""
        for record in records:
            for custom_field in record.custom_fields:
                if not self.is_group_column(custom_field.name):
                    self.add_column(custom_field.name, custom_field.label)

    def visible_field_keys(self, label_map: LabelMap) -> List[str]:
        """Label map keys that are visible, in label map order."""
        return [key for key in label_map if key in self.visible_fields]

    def visible_custom_columns(self) -> List[Tuple[str, str]]:
        return [(name, label) for name, label in self.custom_columns if name in self.visible_fields]

    # Filters

    def set_filter(self, name: str, values: Iterable[str]) -> None:
        """Restrict a column to values; an empty collection removes the restriction."""
        selected = set(values)
        if selected:
            self.column_filters[name] = selected
        else:
            self.column_filters.pop(name, None)

    def clear_filters(self) -> None:
        self.column_filters.clear()

    def matches_filters(self, record: WorkingRecord) -> bool:
        for name, selected in self.column_filters.items():
            if not selected:
                continue
            if is_sortable_field(name):
                if record.values.get(name, '') not in selected:
                    return False
            else:
                custom_field = record.get_custom_field(name)
                if custom_field is None or custom_field.value not in selected:
                    return False
        return True

    @staticmethod
    def unique_values(records: List[WorkingRecord], name: str) -> List[str]:
        """Sorted distinct values of a column, for filter menus."""
        values: Set[str] = set()
        for record in records:
            if is_sortable_field(name):
                values.add(record.values.get(name, ''))
            else:
                custom_field = record.get_custom_field(name)
                if custom_field is not None:
                    values.add(custom_field.value)
        return sorted(values)

    # Sorting

    def sort_by(self, name: str) -> None:
        """Sort by a slot column, toggling direction when it is already the sort column."""
        if not is_sortable_field(name):
            self.logger.debug(f"Ignoring sort request on non-slot column '{name}'")
            return
        if self.sort_config.field == name and self.sort_config.direction == ASC:
            self.sort_config = SortConfig(name, DESC)
        else:
            self.sort_config = SortConfig(name, ASC)
        self.group_sort_config = GroupSortConfig()

    def sort_by_groups(self) -> None:
        """Enable group sorting, flipping its direction on repeated calls."""
        if self.group_sort_config.enabled:
            direction = DESC if self.group_sort_config.direction == ASC else ASC
        else:
            direction = ASC
        self.group_sort_config = GroupSortConfig(True, direction)
        self.sort_config = SortConfig()

    def _group_values(self, record: WorkingRecord) -> List[str]:
        return sorted(f.value for f in record.custom_fields if self.is_group_column(f.name))

    def _compare_groups(self, a: WorkingRecord, b: WorkingRecord) -> int:
        a_groups, b_groups = self._group_values(a), self._group_values(b)
        for index in range(max(len(a_groups), len(b_groups))):
            a_group = a_groups[index] if index < len(a_groups) else ''
            b_group = b_groups[index] if index < len(b_groups) else ''
            if a_group != b_group:
                # Ascending lists tagged records (non-empty groups) before untagged ones
                if self.group_sort_config.direction == ASC:
                    return compare_values(b_group, a_group)
                return compare_values(a_group, b_group)
        return 0

    def _compare_records(self, a: WorkingRecord, b: WorkingRecord) -> int:
        if self.group_sort_config.enabled:
            return self._compare_groups(a, b)

        name = self.sort_config.field
        result = compare_values(a.values.get(name), b.values.get(name))
        return result if self.sort_config.direction == ASC else -result

    def sort_records(self, records: List[WorkingRecord]) -> List[WorkingRecord]:
        return sorted(records, key=cmp_to_key(self._compare_records))

    # Deactivation

    def deactivate(self, record_ids: Iterable[str]) -> None:
        self.deactivated_ids.update(str(record_id) for record_id in record_ids)

    def activate(self, record_ids: Iterable[str]) -> None:
        for record_id in record_ids:
            self.deactivated_ids.discard(str(record_id))

    def is_deactivated(self, record_id: str) -> bool:
        return str(record_id) in self.deactivated_ids

    # Projection

    def visible_records(self, records: List[WorkingRecord]) -> List[WorkingRecord]:
        """Records as the table shows them: sorted, then filtered."""
        return [record for record in self.sort_records(records) if self.matches_filters(record)]

    def active_count(self, records: List[WorkingRecord]) -> int:
        """Number of visible records that are not deactivated."""
        return sum(1 for record in self.visible_records(records) if not self.is_deactivated(record.id))
