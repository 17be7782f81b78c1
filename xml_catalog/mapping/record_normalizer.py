"""
Record normalization: flattens record elements into positional slot records.

The field name list of a RecordSchema fixes the slot assignment for one parse:
the first field name becomes slot_1, the second slot_2, and so on. The same
order drives both the records and the label map, so a slot always means the
same source tag within a parse.
"""

import logging
from typing import Dict, List, Optional, Tuple

from ..interfaces import RecordNormalizerInterface
from ..models import ID_KEY, ID_LABEL, LabelMap, RecordSchema, SourceRecord, slot_key
from ..parsing.xml_parser import child_elements, element_text, field_name
from ..utils import StringUtils


class RecordNormalizer(RecordNormalizerInterface):
    """
    Converts located record elements into SourceRecords and a LabelMap.

    Every record carries "id" plus one key per discovered field. A field missing
    from a record normalizes to an empty string. Ids are 1-based ordinals over
    the record list in document order.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def normalize(self, schema: RecordSchema) -> Tuple[List[SourceRecord], LabelMap]:
        """
        Flatten schema.elements into source records.

        Args:
            schema: Inferred record schema

        Returns:
            Tuple of (source records, label map)
        """
        label_map = self.build_label_map(schema.field_names)
        records = [
            self._normalize_element(element, index, schema.field_names)
            for index, element in enumerate(schema.elements, start=1)
        ]
        self.logger.debug(f"Normalized {len(records)} record(s) into {len(label_map) - 1} slot(s)")
        return records, label_map

    @staticmethod
    def build_label_map(field_names: List[str]) -> LabelMap:
        """Map "id" and each slot key to its display label."""
        label_map: LabelMap = {ID_KEY: ID_LABEL}
        for position, name in enumerate(field_names, start=1):
            label_map[slot_key(position)] = name
        return label_map

    def _normalize_element(self, element, index: int, field_names: List[str]) -> SourceRecord:
        first_child_by_name: Dict[str, object] = {}
        for child in child_elements(element):
            first_child_by_name.setdefault(field_name(child), child)

        record: SourceRecord = {ID_KEY: str(index)}
        for position, name in enumerate(field_names, start=1):
            record[slot_key(position)] = self._field_value(first_child_by_name.get(name))
        return record

    @staticmethod
    def _field_value(child: Optional[object]) -> str:
        if child is None:
            return ''
        # Nested content is flattened; indentation between its children is noise
        if child_elements(child):
            return StringUtils.normalize_whitespace(element_text(child))
        return element_text(child)
