"""
Abstract interfaces and base classes for the XML Catalog system.

This module defines the contracts that all system components must implement
to ensure consistent behavior and enable dependency injection.
"""

from abc import ABC, abstractmethod
from typing import List, Dict, Any, Optional, Tuple

from .models import CustomField, LabelMap, RecordSchema, SourceRecord, WorkingRecord


class XMLParserInterface(ABC):
    """Abstract interface for XML parsing components."""

    @abstractmethod
    def parse_xml_stream(self, xml_content: str) -> Any:
        """
        Parse XML content into an element tree.

        Args:
            xml_content: Raw XML content as string

        Returns:
            Parsed XML element tree root

        Raises:
            ParseError: If XML is malformed or cannot be parsed
            SchemaError: If the content holds no root element at all
        """
        pass

    @abstractmethod
    def validate_xml_structure(self, xml_content: str) -> bool:
        """
        Validate XML well-formedness before processing.

        Args:
            xml_content: Raw XML content to validate

        Returns:
            True if XML is well-formed, False otherwise
        """
        pass


class SchemaInferencerInterface(ABC):
    """Abstract interface for record schema inference."""

    @abstractmethod
    def infer_schema(self, root: Any) -> RecordSchema:
        """
        Decide which element type is a record and which fields records have.

        Args:
            root: Root element of a parsed document

        Returns:
            RecordSchema describing the record elements and their field names

        Raises:
            SchemaError: If no usable record shape exists
        """
        pass


class RecordNormalizerInterface(ABC):
    """Abstract interface for record normalization."""

    @abstractmethod
    def normalize(self, schema: RecordSchema) -> Tuple[List[SourceRecord], LabelMap]:
        """
        Flatten record elements into positional slot records.

        Args:
            schema: Inferred record schema including the record elements

        Returns:
            Tuple of (source records, label map)
        """
        pass


class StorageBackend(ABC):
    """Abstract key/value text storage used to persist the overlay store."""

    @abstractmethod
    def read(self, key: str) -> Optional[str]:
        """Return the stored text for key, or None when nothing is stored."""
        pass

    @abstractmethod
    def write(self, key: str, text: str) -> None:
        """Durably replace the stored text for key."""
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove key; no-op when absent."""
        pass


class OverlayStoreInterface(ABC):
    """Abstract interface for the persisted custom field overlay."""

    @abstractmethod
    def upsert_field(self, record_id: str, custom_field: CustomField) -> None:
        """Insert or replace (by name) a custom field for a record."""
        pass

    @abstractmethod
    def remove_field(self, record_id: str, name: str) -> None:
        """Remove a custom field by name; no-op when absent."""
        pass

    @abstractmethod
    def get_fields(self, record_id: str) -> List[CustomField]:
        """Custom fields stored for a record, empty list for unknown ids."""
        pass

    @abstractmethod
    def merge_with_source(self, records: List[SourceRecord]) -> List[WorkingRecord]:
        """Apply the overlay to freshly parsed source records."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Reset to an empty store with a fresh timestamp."""
        pass

    @abstractmethod
    def touch_sync(self) -> None:
        """Update the last-sync timestamp only."""
        pass


class ExporterInterface(ABC):
    """Abstract interface for export serializers."""

    @abstractmethod
    def serialize(self, records: List[WorkingRecord], label_map: LabelMap,
                  visible_fields: Optional[List[str]] = None,
                  custom_columns: Optional[List[Tuple[str, str]]] = None,
                  deactivated_ids: Optional[set] = None) -> str:
        """
        Project working records into export text.

        Args:
            records: Records to export, already filtered and ordered by the view
            label_map: Slot key to label mapping of the current parse
            visible_fields: Field names to include; None means every field
            custom_columns: Ordered (name, label) pairs of custom columns
            deactivated_ids: Record ids flagged as deactivated by the view

        Returns:
            Serialized export text
        """
        pass


class SourceLoaderInterface(ABC):
    """Abstract interface for components that produce raw XML text."""

    @abstractmethod
    def load(self, location: str) -> str:
        """
        Load raw XML text from a location.

        Args:
            location: File path or URL

        Returns:
            XML text
        """
        pass


class ConfigurationManagerInterface(ABC):
    """Abstract interface for configuration management."""

    @abstractmethod
    def validate_configuration(self) -> bool:
        """Validate all configuration settings."""
        pass

    @abstractmethod
    def get_configuration_summary(self) -> Dict[str, Any]:
        """Return a nested summary of the active configuration."""
        pass
