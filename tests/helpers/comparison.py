"""
Comparison utilities for end-to-end correctness tests.

Provides matrix-level comparison between a pandas DataFrame (the expected result)
and a tidyframe Table (the actual result). Both are flattened to a 2D list with a
header row; missing values become empty strings on both sides.
"""

import math
from typing import Any, List

import pandas as pd

from tidyframe import NA, Table


def dataframe_to_matrix(df: pd.DataFrame, include_header: bool = True) -> List[List[Any]]:
    """Convert a pandas DataFrame to a 2D list of values.

    Args:
        df: DataFrame to convert
        include_header: If True, the first row is the column headers

    Returns:
        2D list where each inner list is a row of cell values
    """
    rows: List[List[Any]] = []
    if include_header:
        rows.append([str(c) for c in df.columns])
    for row in df.itertuples(index=False):
        rows.append([_normalize_value(v) for v in row])
    return rows


def table_to_matrix(table: Table, include_header: bool = True) -> List[List[Any]]:
    """Convert a Table to the same 2D layout as ``dataframe_to_matrix``."""
    rows: List[List[Any]] = []
    if include_header:
        rows.append(list(table.column_names))
    for row in table.rows():
        rows.append([_normalize_value(row[name]) for name in table.column_names])
    return rows


def _normalize_value(v: Any) -> Any:
    """Map every missing form (NA, None, NaN, pd.NA) to the empty string."""
    if v is NA or v is None or v is pd.NA:
        return ""
    if isinstance(v, float) and math.isnan(v):
        return ""
    return v


def _values_equal(expected: Any, actual: Any, rtol: float = 1e-6) -> bool:
    """Compare two cell values with tolerance for floats.

    Args:
        expected: Value from the pandas DataFrame
        actual: Value from the tidyframe Table
        rtol: Relative tolerance for floating-point comparison

    Returns:
        True if values are considered equal
    """
    if expected == "" and actual == "":
        return True
    if isinstance(expected, str) or isinstance(actual, str):
        return str(expected) == str(actual)

    # Try numeric comparison
    try:
        e = float(expected)
        a = float(actual)
        if e == 0 and a == 0:
            return True
        return abs(e - a) <= rtol * max(abs(e), abs(a))
    except (ValueError, TypeError):
        pass

    return str(expected) == str(actual)


def assert_matrix_equal(
    expected: List[List[Any]],
    actual: List[List[Any]],
    rtol: float = 1e-6,
    check_shape: bool = True,
) -> None:
    """Assert that two 2D matrices are cell-by-cell equal (with float tolerance).

    Args:
        expected: The reference matrix (from pandas)
        actual: The matrix under test (from tidyframe)
        rtol: Relative tolerance for floating-point values
        check_shape: If True, also assert identical row/col counts

    Raises:
        AssertionError with a message pinpointing the first mismatch
    """
    if check_shape:
        assert len(expected) == len(actual), (
            f"Row count mismatch: expected {len(expected)}, got {len(actual)}"
        )
        for i, (e_row, a_row) in enumerate(zip(expected, actual)):
            assert len(e_row) == len(a_row), (
                f"Column count mismatch in row {i}: expected {len(e_row)}, got {len(a_row)}"
            )

    for i, (e_row, a_row) in enumerate(zip(expected, actual)):
        for j, (e_val, a_val) in enumerate(zip(e_row, a_row)):
            assert _values_equal(e_val, a_val, rtol), (
                f"Cell mismatch at ({i}, {j}): expected {e_val!r}, got {a_val!r}"
            )
