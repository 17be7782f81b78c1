"""
XML Catalog System

Infers a flat record schema from XML documents of unknown structure, merges
user edits kept in a separate persistent overlay onto the parsed records, and
re-exports the result as XML or CSV without ever modifying the source document.
"""

__version__ = "1.0.0"

# Import core models and interfaces for easy access
from .models import (
    MAX_SLOTS,
    CustomField,
    OverlayState,
    WorkingRecord,
    RecordSchema,
    ParseResult,
    LoadResult
)

from .interfaces import (
    XMLParserInterface,
    SchemaInferencerInterface,
    RecordNormalizerInterface,
    StorageBackend,
    OverlayStoreInterface,
    ExporterInterface,
    SourceLoaderInterface,
    ConfigurationManagerInterface
)

from .exceptions import (
    CatalogError,
    ParseError,
    SchemaError,
    FetchError,
    SourceFileError,
    StorageError,
    ConfigurationError,
    ExportError
)

from .catalog import CatalogSession, parse_catalog
from .storage import OverlayStore, InMemoryStorageBackend, FileStorageBackend
from .view import CatalogView

__all__ = [
    # Core models
    "MAX_SLOTS",
    "CustomField",
    "OverlayState",
    "WorkingRecord",
    "RecordSchema",
    "ParseResult",
    "LoadResult",

    # Interfaces
    "XMLParserInterface",
    "SchemaInferencerInterface",
    "RecordNormalizerInterface",
    "StorageBackend",
    "OverlayStoreInterface",
    "ExporterInterface",
    "SourceLoaderInterface",
    "ConfigurationManagerInterface",

    # Exceptions
    "CatalogError",
    "ParseError",
    "SchemaError",
    "FetchError",
    "SourceFileError",
    "StorageError",
    "ConfigurationError",
    "ExportError",

    # Components
    "CatalogSession",
    "parse_catalog",
    "OverlayStore",
    "InMemoryStorageBackend",
    "FileStorageBackend",
    "CatalogView"
]
