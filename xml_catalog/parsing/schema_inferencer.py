"""
Record schema inference for XML documents of unknown structure.

Given a parsed document, decides which element type represents "a record" and
which child element names make up the record's fields. The model is strictly
flat: a record's fields are its direct child elements, and nested content of a
field is flattened into that field's text.

Inference rules:
1. A document whose root has no child elements has no records.
2. If every direct child of the root is a leaf, the root itself is the single
   record and its children are the fields.
3. Otherwise every non-root element with at least one child element is a
   candidate; the tag occurring most often wins. Ties go to the tag whose first
   occurrence comes earliest in document order.
4. Field names are the distinct child tags across *all* records of the chosen
   type, in first-seen order, so later records can contribute fields the first
   record lacks.
"""

import logging
from collections import OrderedDict
from typing import List

from ..interfaces import SchemaInferencerInterface
from ..exceptions import SchemaError
from ..models import MAX_SLOTS, RecordSchema
from .xml_parser import child_elements, field_name, local_name


class SchemaInferencer(SchemaInferencerInterface):
    """Chooses the record element type and field set of a parsed document."""

    def __init__(self, max_fields: int = MAX_SLOTS):
        self.max_fields = min(max_fields, MAX_SLOTS)
        self.logger = logging.getLogger(__name__)

    def infer_schema(self, root) -> RecordSchema:
        """
        Infer the record schema of a parsed document.

        Args:
            root: Root element of the document

        Returns:
            RecordSchema with the record elements in document order

        Raises:
            SchemaError: "empty document" when there is no root or it has no child
                elements, "no records" when no record-shaped element exists
        """
        if root is None:
            raise SchemaError("empty document")

        top_level = child_elements(root)
        if not top_level:
            raise SchemaError("empty document")

        if all(not child_elements(child) for child in top_level):
            field_names = self._collect_field_names([root])
            self.logger.debug(f"Root <{local_name(root)}> holds only leaf children; treating it as a single record")
            return self._build_schema(local_name(root), field_names, [root], single_record=True)

        record_tag = self._most_frequent_record_tag(root)
        elements = [element for element in root.iter(record_tag) if element is not root]

        if not any(child_elements(element) for element in elements):
            raise SchemaError("no records")

        field_names = self._collect_field_names(elements)
        return self._build_schema(local_name(elements[0]), field_names, elements)

    def _most_frequent_record_tag(self, root) -> str:
        """
        Count candidate record tags across the whole document.

        Returns:
            The qualified tag of the most frequent candidate

        Raises:
            SchemaError: If no non-root element has child elements
        """
        # OrderedDict keeps first-occurrence order, which is the tie-break
        counts: "OrderedDict[str, int]" = OrderedDict()
        for element in root.iter():
            if element is root or not isinstance(element.tag, str):
                continue
            if child_elements(element):
                counts[element.tag] = counts.get(element.tag, 0) + 1

        if not counts:
            raise SchemaError("no records")

        record_tag = None
        best_count = 0
        for tag, count in counts.items():
            if count > best_count:
                record_tag, best_count = tag, count

        self.logger.debug(f"Candidate record tags: {dict(counts)}; chose {record_tag} ({best_count} occurrences)")
        return record_tag

    def _collect_field_names(self, elements) -> List[str]:
        """Union of child tag names over all records, in first-seen order."""
        seen: "OrderedDict[str, None]" = OrderedDict()
        for element in elements:
            for child in child_elements(element):
                seen.setdefault(field_name(child), None)
        return list(seen.keys())

    def _build_schema(self, record_tag: str, field_names: List[str], elements,
                      single_record: bool = False) -> RecordSchema:
        dropped = field_names[self.max_fields:]
        if dropped:
            self.logger.warning(
                f"Record <{record_tag}> has {len(field_names)} fields; "
                f"only the first {self.max_fields} are kept, dropping {dropped}"
            )
        kept = field_names[:self.max_fields]
        self.logger.info(f"Inferred {len(elements)} <{record_tag}> record(s) with {len(kept)} field(s)")
        return RecordSchema(
            record_tag=record_tag,
            field_names=kept,
            elements=list(elements),
            single_record=single_record,
            dropped_fields=dropped
        )
