"""
Spreadsheet reader using openpyxl.
"""

from pathlib import Path
from typing import Any
from zipfile import BadZipFile

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from etlflow.core.exceptions import ExtractError

from .base_reader import FileSourceReader


class ExcelReader(FileSourceReader):
    """
    Reads an XLSX worksheet into records.

    The first row holds the headers; empty cells are left out of the
    record so that optional mappings fall back to their default value.

    Options:
    - sheet: Sheet name (str) or 0-based index (int). Default: first sheet
    """

    format_name = "Excel"

    def read_file(self, path: Path, options: dict[str, Any]) -> list[dict[str, Any]]:
        try:
            workbook = openpyxl.load_workbook(path, read_only=True, data_only=True)
        except (InvalidFileException, BadZipFile) as e:
            raise ExtractError(f"Invalid Excel file {path}: {e}") from e

        try:
            worksheet = self._select_sheet(workbook, options.get("sheet", 0))
            rows = worksheet.iter_rows(values_only=True)

            header_row = next(rows, None)
            if header_row is None:
                return []
            headers = [str(cell) if cell is not None else "" for cell in header_row]

            records = []
            for row in rows:
                record = {
                    header: value
                    for header, value in zip(headers, row)
                    if header and value is not None
                }
                if record:
                    records.append(record)
            return records
        finally:
            workbook.close()

    @staticmethod
    def _select_sheet(workbook, sheet: str | int):
        if isinstance(sheet, str):
            if sheet not in workbook.sheetnames:
                raise ExtractError(f"Sheet '{sheet}' not found")
            return workbook[sheet]
        try:
            return workbook.worksheets[sheet]
        except IndexError:
            raise ExtractError(f"Sheet index {sheet} out of range")
