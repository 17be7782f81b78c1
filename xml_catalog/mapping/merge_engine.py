"""
Merge engine: combines normalized source records with the overlay store.

For each source record the overlay fields are split into slot overrides (name
is a slot key) and extra columns (any other name). Overrides replace the parsed
slot value; extra columns become the record's custom_fields in stored order.
The merge never mutates its inputs, so merging again without an intervening
overlay change yields equal output.
"""

import logging
from typing import Callable, List

from ..models import ID_KEY, CustomField, SourceRecord, WorkingRecord


FieldLookup = Callable[[str], List[CustomField]]


class MergeEngine:
    """Applies overlay fields onto source records to produce working records."""

    def __init__(self, field_lookup: FieldLookup):
        """
        Initialize the merge engine.

        Args:
            field_lookup: Returns the overlay fields of a record id (empty list when unknown)
        """
        self.field_lookup = field_lookup
        self.logger = logging.getLogger(__name__)

    def merge(self, records: List[SourceRecord]) -> List[WorkingRecord]:
        """
        Merge every source record with its overlay fields.

        Args:
            records: Source records of the current parse

        Returns:
            Working records in the same order as the input
        """
        working = [self.merge_record(record) for record in records]
        override_count = sum(1 for w, r in zip(working, records) if w.values != r)
        self.logger.debug(f"Merged {len(working)} record(s); {override_count} with slot overrides")
        return working

    def merge_record(self, record: SourceRecord) -> WorkingRecord:
        values = dict(record)
        extra_fields: List[CustomField] = []

        for custom_field in self.field_lookup(values.get(ID_KEY, '')):
            if custom_field.overrides_slot:
                values[custom_field.name] = custom_field.value
            else:
                extra_fields.append(CustomField(custom_field.name, custom_field.label, custom_field.value))

        return WorkingRecord(values=values, custom_fields=extra_fields)
