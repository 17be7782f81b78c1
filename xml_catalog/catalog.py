"""
Catalog session: the explicit application context tying the pipeline together.

    raw XML text -> XMLParser -> SchemaInferencer -> RecordNormalizer
                 -> (source records, label map)
                 -> OverlayStore.merge_with_source -> working records
                 -> CatalogView (visibility, filters, sort, deactivation)
                 -> XMLExporter / CSVExporter

The session owns the current parse and the view; the overlay store is injected
so several independent catalogs (or tests) can run in one process. Load entry
points are the error boundary: they return a LoadResult instead of raising, and
a failed load leaves the previous records, label map and original text intact.
"""

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Union

from .exceptions import CatalogError
from .export.csv_exporter import CSVExporter
from .export.xml_exporter import XMLExporter
from .loading.source_loader import FileSourceLoader, URLSourceLoader, is_url
from .mapping.record_normalizer import RecordNormalizer
from .models import ID_KEY, CustomField, LabelMap, LoadResult, ParseResult, SourceRecord, WorkingRecord
from .parsing.schema_inferencer import SchemaInferencer
from .parsing.xml_parser import XMLParser
from .storage.overlay_store import OverlayStore
from .utils import StringUtils
from .view.catalog_view import CatalogView


def parse_catalog(xml_text: str,
                  parser: Optional[XMLParser] = None,
                  inferencer: Optional[SchemaInferencer] = None,
                  normalizer: Optional[RecordNormalizer] = None) -> ParseResult:
    """
    Parse raw XML text into source records and a label map.

    Deterministic: identical input yields identical records, ids and slot assignment.

    Args:
        xml_text: Raw XML document
        parser: Optional parser instance
        inferencer: Optional schema inferencer instance
        normalizer: Optional record normalizer instance

    Returns:
        ParseResult with records in document order

    Raises:
        ParseError: If the XML is not well-formed
        SchemaError: If the document is empty or has no record-shaped elements
    """
    parser = parser or XMLParser()
    inferencer = inferencer or SchemaInferencer()
    normalizer = normalizer or RecordNormalizer()

    root = parser.parse_xml_stream(xml_text)
    schema = inferencer.infer_schema(root)
    records, label_map = normalizer.normalize(schema)
    return ParseResult(records=records, label_map=label_map, record_tag=schema.record_tag)


class CatalogSession:
    """
    Application state for one catalog: current parse, working records and view.

    Public operations used by a UI layer:
    - load / load_text / load_file / load_url: parse a new document (never raise)
    - add_custom_field / remove_custom_field: edit the overlay and re-merge
    - save_record: store the changed values of one edited record
    - create_group / rename_column / delete_column: bulk column operations
    - restore_original: wipe the overlay and re-parse the last loaded document
    - export_xml / export_csv: project the visible records
    """

    def __init__(self, store: OverlayStore,
                 view: Optional[CatalogView] = None,
                 parser: Optional[XMLParser] = None,
                 inferencer: Optional[SchemaInferencer] = None,
                 normalizer: Optional[RecordNormalizer] = None,
                 file_loader: Optional[FileSourceLoader] = None,
                 url_loader: Optional[URLSourceLoader] = None,
                 xml_exporter: Optional[XMLExporter] = None,
                 csv_exporter: Optional[CSVExporter] = None):
        """
        Initialize the session.

        Args:
            store: Overlay store shared by every parse of this session
            view: Table view state; a fresh view by default
            parser, inferencer, normalizer: Parsing pipeline components
            file_loader, url_loader: Source loaders
            xml_exporter, csv_exporter: Export serializers
        """
        self.logger = logging.getLogger(__name__)
        self.store = store
        self.view = view or CatalogView()
        self.parser = parser or XMLParser()
        self.inferencer = inferencer or SchemaInferencer()
        self.normalizer = normalizer or RecordNormalizer()
        self.file_loader = file_loader or FileSourceLoader()
        self.url_loader = url_loader or URLSourceLoader()
        self.xml_exporter = xml_exporter or XMLExporter()
        self.csv_exporter = csv_exporter or CSVExporter()

        self.parse_result: Optional[ParseResult] = None
        self.records: List[WorkingRecord] = []
        self.original_xml: Optional[str] = None
        self.last_error: Optional[str] = None

    @classmethod
    def from_config(cls, config_manager, store: Optional[OverlayStore] = None) -> 'CatalogSession':
        """
        Build a session wired from a ConfigManager.

        Args:
            config_manager: Source of storage, fetch and export settings
            store: Optional store to use instead of the configured file-backed one
        """
        return cls(
            store=store or config_manager.create_overlay_store(),
            url_loader=URLSourceLoader(timeout=config_manager.fetch_config.timeout_seconds),
            xml_exporter=XMLExporter(
                root_tag=config_manager.export_config.root_tag,
                record_tag=config_manager.export_config.record_tag
            ),
            csv_exporter=CSVExporter(escape_quotes=config_manager.export_config.csv_escape_quotes)
        )

    @property
    def label_map(self) -> LabelMap:
        return dict(self.parse_result.label_map) if self.parse_result else {}

    @property
    def source_records(self) -> List[SourceRecord]:
        return [dict(record) for record in self.parse_result.records] if self.parse_result else []

    @property
    def record_tag(self) -> Optional[str]:
        return self.parse_result.record_tag if self.parse_result else None

    # Loading

    def parse(self, xml_text: str) -> ParseResult:
        """Parse without touching session state; raises ParseError or SchemaError."""
        return parse_catalog(xml_text, self.parser, self.inferencer, self.normalizer)

    def load_text(self, xml_text: str, store_original: bool = True) -> LoadResult:
        """
        Parse XML text, merge it with the overlay and make it current.

        Args:
            xml_text: Raw XML document
            store_original: Remember the text as the document restore_original re-parses

        Returns:
            LoadResult; on failure the previous state is left unchanged
        """
        try:
            parse_result = self.parse(xml_text)
            records = self.store.merge_with_source(parse_result.records)
            self.store.touch_sync()
        except CatalogError as e:
            return self._failure(e)

        self.parse_result = parse_result
        self.records = records
        if store_original:
            self.original_xml = xml_text
        self.view.sync_columns(records)
        self.last_error = None

        self.logger.info(
            f"Loaded {len(records)} <{parse_result.record_tag}> record(s) "
            f"with {len(parse_result.label_map) - 1} field(s)"
        )
        return LoadResult(success=True, records=list(records), label_map=dict(parse_result.label_map))

    def load_file(self, path: Union[str, Path]) -> LoadResult:
        """Load a local .xml file."""
        try:
            xml_text = self.file_loader.load(path)
        except CatalogError as e:
            return self._failure(e)
        return self.load_text(xml_text)

    def load_url(self, url: str) -> LoadResult:
        """Fetch and load an XML document over HTTP(S)."""
        try:
            xml_text = self.url_loader.load(url)
        except CatalogError as e:
            return self._failure(e)
        return self.load_text(xml_text)

    def load(self, location: Union[str, Path]) -> LoadResult:
        """Load from a URL when location looks like one, otherwise from a file."""
        if isinstance(location, str) and is_url(location):
            return self.load_url(location)
        return self.load_file(location)

    def _failure(self, error: CatalogError) -> LoadResult:
        message = f"{type(error).__name__}: {error}"
        self.last_error = message
        self.logger.error(f"Load failed, keeping previous catalog state: {message}")
        return LoadResult(success=False, error=message, error_type=type(error).__name__)

    # Overlay edits

    def refresh(self) -> List[WorkingRecord]:
        """Re-merge the current source records with the overlay."""
        if self.parse_result is None:
            self.records = []
            return []
        self.records = self.store.merge_with_source(self.parse_result.records)
        self.view.sync_columns(self.records)
        return list(self.records)

    def add_custom_field(self, record_id: str, name: str, label: str, value: str) -> List[WorkingRecord]:
        """Store a field override or custom column value for a record and re-merge."""
        self.store.upsert_field(str(record_id), CustomField(name=name, label=label, value=value))
        return self.refresh()

    def remove_custom_field(self, record_id: str, name: str) -> List[WorkingRecord]:
        """Drop a stored field from a record and re-merge."""
        self.store.remove_field(str(record_id), name)
        return self.refresh()

    def save_record(self, edited: WorkingRecord) -> List[WorkingRecord]:
        """
        Store every edit made to one working record and re-merge.

        Slot values that differ from the current record become slot overrides
        with an empty label; custom fields that are new or changed are stored
        with their label. Unchanged values are not written.

        Args:
            edited: A working record with edited values

        Returns:
            Working records after the merge; unchanged when no current record has the id
        """
        # self.records may hold the very objects the caller edited
        merged = self.store.merge_with_source(self.parse_result.records) if self.parse_result else []
        current = next((record for record in merged if record.id == edited.id), None)
        if current is None:
            self.logger.warning(f"No current record with id {edited.id}; nothing saved")
            return list(self.records)

        changed = 0
        for field_key in self.label_map:
            if field_key == ID_KEY:
                continue
            new_value = edited.values.get(field_key) or ''
            if new_value != current.values.get(field_key, ''):
                self.store.upsert_field(edited.id, CustomField(name=field_key, label='', value=new_value))
                changed += 1

        for custom_field in edited.custom_fields:
            existing = current.get_custom_field(custom_field.name)
            if existing is None or existing.value != custom_field.value:
                self.store.upsert_field(edited.id, CustomField(custom_field.name, custom_field.label, custom_field.value))
                changed += 1

        self.logger.info(f"Saved {changed} changed field(s) on record {edited.id}")
        return self.refresh()

    def rename_column(self, name: str, label: str) -> List[WorkingRecord]:
        """
        Change the display label of a custom column.

        The new label is written to the view and to every stored value of the column.

        Raises:
            ValueError: If the label is empty or the column does not exist
        """
        if not StringUtils.safe_string_check(label):
            raise ValueError("Column label is required")
        if not self.view.is_group_column(name):
            raise ValueError(f"No custom column named '{name}'")

        self.view.relabel_column(name, label)
        for record_id in self.store.record_ids():
            for custom_field in self.store.get_fields(record_id):
                if custom_field.name == name:
                    self.store.upsert_field(record_id, CustomField(name, label, custom_field.value))

        self.logger.info(f"Renamed column '{name}' to '{label}'")
        return self.refresh()

    def create_group(self, record_ids: Iterable[str], group_name: str, group_label: str) -> List[WorkingRecord]:
        """
        Tag a selection of records with a group column.

        The column name is derived from group_name (lower case, whitespace runs
        replaced by "_"); each selected record gets the label as its value.

        Raises:
            ValueError: If the name or label is empty
        """
        column_name = StringUtils.to_column_name(group_name)
        if not column_name or not StringUtils.safe_string_check(group_label):
            raise ValueError("Group name and label are required")

        self.view.add_column(column_name, group_label)
        selected = [str(record_id) for record_id in record_ids]
        for record_id in selected:
            self.store.upsert_field(record_id, CustomField(name=column_name, label=group_label, value=group_label))

        self.logger.info(f"Created group '{column_name}' on {len(selected)} record(s)")
        return self.refresh()

    def delete_column(self, name: str) -> List[WorkingRecord]:
        """Remove a custom column from the view and its values from every current record."""
        self.view.delete_column(name)
        for record in self.source_records:
            self.store.remove_field(record[ID_KEY], name)
        self.logger.info(f"Deleted column '{name}'")
        return self.refresh()

    def restore_original(self) -> LoadResult:
        """Wipe the overlay and view state, then re-parse the last loaded document."""
        if self.original_xml is None:
            return LoadResult(success=False, error="No document has been loaded", error_type=None)

        try:
            self.store.clear()
        except CatalogError as e:
            return self._failure(e)

        self.view = CatalogView()
        self.logger.info("Restoring original document")
        return self.load_text(self.original_xml, store_original=False)

    # Export

    def visible_records(self) -> List[WorkingRecord]:
        return self.view.visible_records(self.records)

    def export_xml(self, path: Optional[Union[str, Path]] = None) -> str:
        """Serialize visible, filtered records as XML; also writes to path when given."""
        options = dict(
            visible_fields=self.view.visible_fields,
            deactivated_ids=self.view.deactivated_ids,
            record_tag=self.record_tag
        )
        records = self.visible_records()
        if path is not None:
            return self.xml_exporter.write(path, records, self.label_map, **options)
        return self.xml_exporter.serialize(records, self.label_map, **options)

    def export_csv(self, path: Optional[Union[str, Path]] = None) -> str:
        """Serialize visible, filtered records as CSV; also writes to path when given."""
        options = dict(
            visible_fields=self.view.visible_fields,
            custom_columns=self.view.visible_custom_columns()
        )
        records = self.visible_records()
        if path is not None:
            return self.csv_exporter.write(path, records, self.label_map, **options)
        return self.csv_exporter.serialize(records, self.label_map, **options)
