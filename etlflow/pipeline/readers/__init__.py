"""
Extract-stage readers.
"""

from .api_reader import APIReader
from .base_reader import FileSourceReader, SourceReader
from .csv_reader import CSVReader
from .excel_reader import ExcelReader
from .fixtures import FixtureGenerator
from .json_reader import JSONReader

__all__ = [
    "SourceReader",
    "FileSourceReader",
    "CSVReader",
    "JSONReader",
    "ExcelReader",
    "APIReader",
    "FixtureGenerator",
]
