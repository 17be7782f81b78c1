"""
Custom exceptions for the XML Catalog system.

This module defines specific exception types for the failure modes of loading,
parsing, inferring, storing and exporting catalog data. Every entry point of
the catalog session converts these into a single human-readable message.
"""


class CatalogError(Exception):
    """Base exception for all XML catalog related errors."""

    def __init__(self, message: str, source: str = None):
        """
        Initialize catalog error.

        Args:
            message: Error description
            source: Optional description of the input (path, URL) that caused the error
        """
        super().__init__(message)
        self.message = message
        self.source = source


class ParseError(CatalogError):
    """Exception raised when XML content is not well-formed."""

    def __init__(self, message: str, xml_content: str = None, source: str = None):
        """
        Initialize XML parsing error.

        Args:
            message: Error description
            xml_content: Optional XML content that failed to parse (truncated for logging)
            source: Optional description of the input
        """
        super().__init__(message, source)
        # Store truncated XML content for debugging (first 500 chars)
        self.xml_content = xml_content[:500] + "..." if xml_content and len(xml_content) > 500 else xml_content


class SchemaError(CatalogError):
    """Exception raised when well-formed XML has no usable record shape."""
    pass


class FetchError(CatalogError):
    """Exception raised when loading XML from a URL fails."""

    def __init__(self, message: str, url: str = None, status_code: int = None):
        """
        Initialize fetch error.

        Args:
            message: Error description
            url: URL that was requested
            status_code: HTTP status code if a response was received
        """
        super().__init__(message, url)
        self.url = url
        self.status_code = status_code


class SourceFileError(CatalogError):
    """Exception raised when a local XML file is unreadable or has the wrong extension."""

    def __init__(self, message: str, path: str = None):
        super().__init__(message, path)
        self.path = path


class StorageError(CatalogError):
    """Exception raised when the overlay store cannot be persisted."""
    pass


class ConfigurationError(CatalogError):
    """Exception raised when configuration is invalid or missing."""
    pass


class ExportError(CatalogError):
    """Exception raised when an export cannot be produced or written."""
    pass
