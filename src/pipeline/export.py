"""
Export Pipeline - Annotated CSV Output

Writes the input table back out with one extra ``emails`` column.

Format:
- header row = input headers + ``emails`` (an existing ``emails`` column is replaced)
- every cell double-quoted, inner quotes doubled, header row included (csv.QUOTE_ALL)
- UTF-8, ``\\n`` line endings
"""

import csv
from pathlib import Path
from typing import Iterable, List, Mapping, Union

from .batch import EMAILS_COLUMN


def output_fieldnames(input_headers: Iterable[str]) -> List[str]:
    headers = [h for h in input_headers if h != EMAILS_COLUMN]
    return headers + [EMAILS_COLUMN]


class AnnotatedCsvExporter:
    """Writes annotated records to ``output_dir``."""

    def __init__(self, output_dir: Union[str, Path] = "."):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def to_csv(
        self,
        records: List[Mapping[str, str]],
        input_headers: Iterable[str],
        filename: str,
    ) -> Path:
        """
        Write records to a fully quoted CSV file (header row included).

        Args:
            records: Input records, already carrying the ``emails`` value
            input_headers: Header row of the input table, in order
            filename: Output file name (relative to output_dir)

        Returns:
            Path to the written file
        """
        fieldnames = output_fieldnames(input_headers)
        path = self.output_dir / filename
        with open(path, 'w', newline='', encoding='utf-8') as f:
            writer = csv.writer(f, quoting=csv.QUOTE_ALL, lineterminator="\n")
            writer.writerow(fieldnames)
            for rec in records:
                writer.writerow([rec.get(h, "") or "" for h in fieldnames])
        return path
