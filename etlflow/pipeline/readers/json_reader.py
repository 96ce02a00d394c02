"""
Structured-document reader.
"""

import json
from pathlib import Path
from typing import Any

from .base_reader import FileSourceReader, normalize_records


class JSONReader(FileSourceReader):
    """Reads a JSON array of objects, or a single object, into records."""

    format_name = "JSON"

    def read_file(self, path: Path, options: dict[str, Any]) -> list[dict[str, Any]]:
        encoding = options.get("encoding", "utf-8")
        with open(path, encoding=encoding) as f:
            data = json.load(f)
        return normalize_records(data, f"JSON file {path}")
