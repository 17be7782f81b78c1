"""
XML projection of the working record set.

Builds a fresh document from the normalized model (never from the source tree):

    <?xml version='1.0' encoding='UTF-8'?>
    <CATALOG>
      <ANIMAL deactivated="true">
        <ID>1</ID>
        <NAME>Lion</NAME>
        <notes label="Notes">nocturnal</notes>
      </ANIMAL>
    </CATALOG>

Slot fields are written under their label (the original tag name); custom
columns are written under their internal name with a `label` attribute.
A name that is not a valid XML tag is written as <field name="...">, which the
parser reads back under the same name. When a source field or custom column is
already named "ID", the synthetic id element is written as <_ID> so both values survive.
"""

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Set, Tuple, Union

from lxml import etree

from ..interfaces import ExporterInterface
from ..exceptions import ExportError
from ..models import FALLBACK_FIELD_TAG, ID_KEY, ID_LABEL, LabelMap, WorkingRecord
from ..utils import StringUtils


DEFAULT_ROOT_TAG = "CATALOG"
DEFAULT_RECORD_TAG = "record"


class XMLExporter(ExporterInterface):
    """Serializes visible fields of records into a pretty-printed XML document."""

    def __init__(self, root_tag: str = DEFAULT_ROOT_TAG, record_tag: str = DEFAULT_RECORD_TAG):
        """
        Initialize the exporter.

        Args:
            root_tag: Tag of the container element
            record_tag: Record tag used when the caller does not supply the parsed one
        """
        if not StringUtils.is_valid_xml_name(root_tag):
            raise ExportError(f"Invalid export root tag: {root_tag!r}")
        self.root_tag = root_tag
        self.record_tag = record_tag
        self.logger = logging.getLogger(__name__)

    def build_tree(self, records: List[WorkingRecord], label_map: LabelMap,
                   visible_fields: Optional[Iterable[str]] = None,
                   deactivated_ids: Optional[Set[str]] = None,
                   record_tag: Optional[str] = None):
        """
        Build the export element tree.

        Args:
            records: Records to export, in output order
            label_map: Slot key to label mapping
            visible_fields: Slot keys and custom column names to include; None includes all
            deactivated_ids: Ids that get a deactivated="true" attribute
            record_tag: Tag for record elements; defaults to the exporter's record tag

        Returns:
            lxml root element
        """
        visible = set(visible_fields) if visible_fields is not None else None
        deactivated = deactivated_ids or set()
        tag = record_tag if StringUtils.is_valid_xml_name(record_tag) else self.record_tag

        tag_by_key = dict(label_map)
        tag_by_key[ID_KEY] = self._id_tag(label_map, records)

        root = etree.Element(self.root_tag)
        for record in records:
            record_element = etree.SubElement(root, tag)
            if record.id in deactivated:
                record_element.set('deactivated', 'true')

            for field_key in label_map:
                if visible is not None and field_key not in visible:
                    continue
                field_element = self._field_element(record_element, tag_by_key[field_key], record.id)
                self._set_text(field_element, record.values.get(field_key, ''), record.id)

            for custom_field in record.custom_fields:
                if visible is not None and custom_field.name not in visible:
                    continue
                field_element = self._field_element(record_element, custom_field.name, record.id)
                self._set_text(field_element, custom_field.value, record.id)
                self._set_attribute(field_element, 'label', custom_field.label, record.id)

        return root

    def serialize(self, records: List[WorkingRecord], label_map: LabelMap,
                  visible_fields: Optional[Iterable[str]] = None,
                  custom_columns: Optional[List[Tuple[str, str]]] = None,
                  deactivated_ids: Optional[Set[str]] = None,
                  record_tag: Optional[str] = None) -> str:
        """
        Serialize records to XML text with declaration header.

        custom_columns is accepted for interface symmetry with the CSV exporter;
        XML export takes custom fields from the records themselves.
        """
        root = self.build_tree(records, label_map, visible_fields, deactivated_ids, record_tag)
        xml_bytes = etree.tostring(root, pretty_print=True, xml_declaration=True, encoding='UTF-8')
        self.logger.info(f"Serialized {len(records)} record(s) to XML")
        return xml_bytes.decode('utf-8')

    def write(self, path: Union[str, Path], records: List[WorkingRecord], label_map: LabelMap,
              **options) -> str:
        """Serialize and write to a file; returns the serialized text."""
        text = self.serialize(records, label_map, **options)
        target = Path(path)
        try:
            target.write_text(text, encoding='utf-8')
        except OSError as e:
            raise ExportError(f"Failed to write XML export {target}: {e}", str(target))
        self.logger.info(f"Wrote XML export to {target}")
        return text

    @staticmethod
    def _id_tag(label_map: LabelMap, records: List[WorkingRecord]) -> str:
        """Tag for the synthetic id element, kept apart from any field already named like it."""
        taken = {label for key, label in label_map.items() if key != ID_KEY}
        taken.update(f.name for record in records for f in record.custom_fields)
        id_tag = label_map.get(ID_KEY) or ID_LABEL
        while id_tag in taken:
            id_tag = f"_{id_tag}"
        return id_tag

    @classmethod
    def _field_element(cls, parent, name: str, record_id: str):
        if StringUtils.is_valid_xml_name(name):
            try:
                return etree.SubElement(parent, name)
            except ValueError:
                # lxml is stricter than the name check for some non-ASCII characters
                pass
        element = etree.SubElement(parent, FALLBACK_FIELD_TAG)
        cls._set_attribute(element, 'name', name, record_id)
        return element

    @staticmethod
    def _set_attribute(element, attribute: str, value: str, record_id: str) -> None:
        try:
            element.set(attribute, value)
        except ValueError as e:
            raise ExportError(f"Record {record_id} has a {attribute} that cannot be written as XML: {e}")

    @staticmethod
    def _set_text(element, value: str, record_id: str) -> None:
        try:
            element.text = value if value else None
        except ValueError as e:
            raise ExportError(f"Record {record_id} has a value that cannot be written as XML: {e}")
