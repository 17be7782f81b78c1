"""
Core data models for the XML Catalog system.

This module defines the primary data structures shared by the parsing,
normalization, overlay storage, view and export components.

Records are kept as plain ordered dictionaries keyed by positional slot keys
("id", "slot_1" .. "slot_N"); everything layered on top of them (overrides,
custom columns) is described by the dataclasses below.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Dict, Any


# Upper bound on positional slots per record; fields beyond it are dropped at parse time.
MAX_SLOTS = 20

ID_KEY = "id"
ID_LABEL = "ID"
SLOT_PREFIX = "slot_"
STORE_VERSION = "1.0.0"

# Element used for a field whose name is not a valid XML tag; the name goes in its "name" attribute.
FALLBACK_FIELD_TAG = "field"

_SLOT_PATTERN = re.compile(r'slot_([1-9][0-9]*)')

# A source record: ordered mapping of "id" and slot keys to text values.
SourceRecord = Dict[str, str]

# Slot key (including "id") to human readable label.
LabelMap = Dict[str, str]


def slot_key(position: int) -> str:
    """Return the slot key for a 1-based field position."""
    if position < 1 or position > MAX_SLOTS:
        raise ValueError(f"Slot position must be between 1 and {MAX_SLOTS}, got {position}")
    return f"{SLOT_PREFIX}{position}"


def is_slot_key(name: str) -> bool:
    """Check whether a field name addresses one of the positional slots."""
    if not name:
        return False
    match = _SLOT_PATTERN.fullmatch(name)
    if not match:
        return False
    return 1 <= int(match.group(1)) <= MAX_SLOTS


def all_slot_keys() -> List[str]:
    """Every key a record can carry: "id" followed by slot_1 .. slot_MAX."""
    return [ID_KEY] + [slot_key(i) for i in range(1, MAX_SLOTS + 1)]


def utc_timestamp() -> str:
    """Current time as an ISO-8601 UTC string."""
    return datetime.now(timezone.utc).isoformat()


@dataclass
class CustomField:
    """
    A user supplied value attached to one record.

    Attributes:
        name: Slot key to override a parsed value, or any other identifier for a new column
        label: Display label for the column
        value: Text value
    """
    name: str
    label: str = ""
    value: str = ""

    def __post_init__(self):
        """Validate custom field configuration."""
        if not self.name:
            raise ValueError("name cannot be empty")
        if self.label is None:
            self.label = ""
        if self.value is None:
            self.value = ""

    @property
    def overrides_slot(self) -> bool:
        return is_slot_key(self.name)

    def to_dict(self) -> Dict[str, str]:
        return {'name': self.name, 'label': self.label, 'value': self.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CustomField':
        label = data.get('label')
        value = data.get('value')
        return cls(
            name=str(data.get('name', '')),
            label='' if label is None else str(label),
            value='' if value is None else str(value)
        )


@dataclass
class OverlayState:
    """
    Persisted shape of the overlay store.

    Attributes:
        version: Literal version tag of the persisted format
        last_sync: ISO-8601 timestamp of the last successful parse or reset
        fields_by_record_id: Ordered custom fields per record id, at most one per name
    """
    version: str = STORE_VERSION
    last_sync: str = field(default_factory=utc_timestamp)
    fields_by_record_id: Dict[str, List[CustomField]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'version': self.version,
            'lastSync': self.last_sync,
            'customFields': {
                record_id: [f.to_dict() for f in fields]
                for record_id, fields in self.fields_by_record_id.items()
            }
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'OverlayState':
        """
        Build state from its persisted JSON shape.

        Raises:
            ValueError: If the data does not have the persisted shape
        """
        if not isinstance(data, dict):
            raise ValueError("Overlay state must be a JSON object")
        raw_fields = data.get('customFields', {})
        if not isinstance(raw_fields, dict):
            raise ValueError("customFields must be a JSON object")

        fields_by_record_id: Dict[str, List[CustomField]] = {}
        for record_id, entries in raw_fields.items():
            if not isinstance(entries, list):
                raise ValueError(f"customFields[{record_id}] must be a list")
            bucket: List[CustomField] = []
            for entry in entries:
                if not isinstance(entry, dict):
                    raise ValueError(f"customFields[{record_id}] entries must be JSON objects")
                custom_field = CustomField.from_dict(entry)
                # Keep the one-entry-per-name invariant even for hand-edited blobs
                bucket = [f for f in bucket if f.name != custom_field.name]
                bucket.append(custom_field)
            fields_by_record_id[str(record_id)] = bucket

        return cls(
            version=str(data.get('version') or STORE_VERSION),
            last_sync=str(data.get('lastSync') or utc_timestamp()),
            fields_by_record_id=fields_by_record_id
        )


@dataclass
class WorkingRecord:
    """
    A source record with its overlay applied.

    Attributes:
        values: "id" and slot values, with slot overrides already applied
        custom_fields: Overlay fields that are not slot overrides, in stored order
    """
    values: Dict[str, str]
    custom_fields: List[CustomField] = field(default_factory=list)

    @property
    def id(self) -> str:
        return self.values.get(ID_KEY, "")

    def get_custom_field(self, name: str) -> Optional[CustomField]:
        for custom_field in self.custom_fields:
            if custom_field.name == name:
                return custom_field
        return None

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Value of a slot or custom column, or default when the record has neither."""
        if name == ID_KEY or is_slot_key(name):
            return self.values.get(name, default)
        custom_field = self.get_custom_field(name)
        return custom_field.value if custom_field is not None else default

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = dict(self.values)
        result['customFields'] = [f.to_dict() for f in self.custom_fields]
        return result


@dataclass
class RecordSchema:
    """
    Outcome of schema inference over one document.

    Attributes:
        record_tag: Tag of the element type chosen as "a record"
        field_names: Distinct child tags across all records, in first-seen order
        elements: The record elements in document order
        single_record: True when the document root itself is the only record
        dropped_fields: Field tags discovered beyond MAX_SLOTS
    """
    record_tag: str
    field_names: List[str]
    elements: List[Any] = field(default_factory=list)
    single_record: bool = False
    dropped_fields: List[str] = field(default_factory=list)

    def __post_init__(self):
        if not self.record_tag:
            raise ValueError("record_tag cannot be empty")
        if len(self.field_names) > MAX_SLOTS:
            raise ValueError(f"At most {MAX_SLOTS} fields are supported, got {len(self.field_names)}")


@dataclass
class ParseResult:
    """
    Normalized output of one parse.

    Attributes:
        records: Source records in document order
        label_map: Slot key to label, always containing "id"
        record_tag: Local name of the record element type
    """
    records: List[SourceRecord]
    label_map: LabelMap
    record_tag: str = "record"

    @property
    def field_keys(self) -> List[str]:
        return list(self.label_map.keys())


@dataclass
class LoadResult:
    """
    Outcome of a session load: either working records or a failure message.

    Attributes:
        success: Whether the load produced a new working record set
        records: Working records after merging with the overlay (empty on failure)
        label_map: Label map of the parse (empty on failure)
        error: Human readable failure message
        error_type: Name of the exception class that caused the failure
    """
    success: bool
    records: List[WorkingRecord] = field(default_factory=list)
    label_map: LabelMap = field(default_factory=dict)
    error: Optional[str] = None
    error_type: Optional[str] = None

    @property
    def record_count(self) -> int:
        return len(self.records)
