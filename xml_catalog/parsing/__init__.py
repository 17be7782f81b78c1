"""XML parsing and record schema inference components."""

from .xml_parser import XMLParser
from .schema_inferencer import SchemaInferencer

__all__ = ['XMLParser', 'SchemaInferencer']
