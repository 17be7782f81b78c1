"""Export serializers for working record sets."""

from .xml_exporter import XMLExporter
from .csv_exporter import CSVExporter

__all__ = ['XMLExporter', 'CSVExporter']
