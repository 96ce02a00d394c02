"""
Load stage writers, one per destination type.
"""

from .api_writer import APIWriter
from .base_writer import DestinationWriter
from .file_writer import FileWriter
from .table_writer import TableWriter

__all__ = [
    "DestinationWriter",
    "TableWriter",
    "FileWriter",
    "APIWriter",
]
