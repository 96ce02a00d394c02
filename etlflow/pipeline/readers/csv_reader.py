"""
Delimited-text reader.
"""

import csv
from pathlib import Path
from typing import Any

from .base_reader import FileSourceReader


class CSVReader(FileSourceReader):
    """
    Reads CSV files with a header row into records.

    Options:
    - delimiter: Field delimiter (default ",")
    - encoding: File encoding (default "utf-8-sig")
    """

    format_name = "CSV"

    def read_file(self, path: Path, options: dict[str, Any]) -> list[dict[str, Any]]:
        delimiter = options.get("delimiter", ",")
        encoding = options.get("encoding", "utf-8-sig")

        with open(path, newline="", encoding=encoding) as f:
            reader = csv.DictReader(f, delimiter=delimiter)
            return [dict(row) for row in reader]
