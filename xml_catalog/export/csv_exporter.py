"""
CSV projection of the working record set.

Header row: labels of visible slot fields in label map order, followed by the
labels of visible custom columns. Every data value is quoted.

Quoting modes:
- escape_quotes=True (default): standard CSV, embedded quotes doubled, header quoted too
- escape_quotes=False: legacy output, values wrapped in quotes verbatim and the
  header left unquoted; a value containing a quote produces a malformed row
"""

import csv
import io
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Set, Tuple, Union

from ..interfaces import ExporterInterface
from ..exceptions import ExportError
from ..models import LabelMap, WorkingRecord


class CSVExporter(ExporterInterface):
    """Serializes visible fields and custom columns of records as CSV text."""

    def __init__(self, escape_quotes: bool = True):
        self.escape_quotes = escape_quotes
        self.logger = logging.getLogger(__name__)

    def build_rows(self, records: List[WorkingRecord], label_map: LabelMap,
                   visible_fields: Optional[Iterable[str]] = None,
                   custom_columns: Optional[List[Tuple[str, str]]] = None) -> List[List[str]]:
        """
        Build header and data rows.

        Args:
            records: Records to export, in output order
            label_map: Slot key to label mapping
            visible_fields: Slot keys and custom column names to include; None includes all
            custom_columns: Ordered (name, label) custom columns

        Returns:
            List of rows, header first
        """
        visible = set(visible_fields) if visible_fields is not None else None
        field_keys = [key for key in label_map if visible is None or key in visible]
        columns = [(name, label) for name, label in (custom_columns or [])
                   if visible is None or name in visible]

        rows = [[label_map[key] for key in field_keys] + [label for _, label in columns]]
        for record in records:
            row = [record.values.get(key, '') for key in field_keys]
            for name, _ in columns:
                custom_field = record.get_custom_field(name)
                row.append(custom_field.value if custom_field is not None else '')
            rows.append(row)
        return rows

    def serialize(self, records: List[WorkingRecord], label_map: LabelMap,
                  visible_fields: Optional[Iterable[str]] = None,
                  custom_columns: Optional[List[Tuple[str, str]]] = None,
                  deactivated_ids: Optional[Set[str]] = None) -> str:
        """
        Serialize records to CSV text.

        deactivated_ids is accepted for interface symmetry; CSV has no place for the flag.
        """
        rows = self.build_rows(records, label_map, visible_fields, custom_columns)
        if self.escape_quotes:
            buffer = io.StringIO()
            writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator='\n')
            writer.writerows(rows)
            text = buffer.getvalue().rstrip('\n')
        else:
            header, data = rows[0], rows[1:]
            lines = [','.join(header)]
            lines.extend(','.join(f'"{value}"' for value in row) for row in data)
            text = '\n'.join(lines)

        self.logger.info(f"Serialized {len(records)} record(s) to CSV ({len(rows[0])} column(s))")
        return text

    def write(self, path: Union[str, Path], records: List[WorkingRecord], label_map: LabelMap,
              **options) -> str:
        """Serialize and write to a file; returns the serialized text."""
        text = self.serialize(records, label_map, **options)
        target = Path(path)
        try:
            target.write_text(text, encoding='utf-8', newline='')
        except OSError as e:
            raise ExportError(f"Failed to write CSV export {target}: {e}", str(target))
        self.logger.info(f"Wrote CSV export to {target}")
        return text
