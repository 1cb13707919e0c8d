"""
Core module for tidyframe.

This module provides the Table value type, column types and column selectors.
"""

from .types import NA, DType, Kind, INTEGER, FLOAT, STRING, BOOLEAN, is_missing
from .table import Table, Rows
from .selectors import (
    Selector,
    as_selector,
    cols,
    exclude,
    starts_with,
    ends_with,
    matches,
    between,
    everything,
)

__all__ = [
    "NA",
    "DType",
    "Kind",
    "INTEGER",
    "FLOAT",
    "STRING",
    "BOOLEAN",
    "is_missing",
    "Table",
    "Rows",
    "Selector",
    "as_selector",
    "cols",
    "exclude",
    "starts_with",
    "ends_with",
    "matches",
    "between",
    "everything",
]
