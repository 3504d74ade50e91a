"""
Parsers for the supported input shapes.

Each parser turns its input into a list of LogRecord objects:
- CSVParser: delimited text with a header row
- RowParser: rows already split into key/value mappings (JSON bodies)
"""

from .base_parser import BaseParser
from .csv_parser import CSVParser
from .row_parser import RowParser

__all__ = [
    "BaseParser",
    "CSVParser",
    "RowParser",
]
