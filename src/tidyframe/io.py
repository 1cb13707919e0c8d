"""
Loading and pandas interop.

These are thin wrappers at the edge of the engine: the engine itself never
reads files or depends on pandas objects. ``read_csv`` is the loader
collaborator; ``from_pandas`` / ``to_pandas`` convert at the boundary.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, Mapping, Optional, Union

import pandas as pd

from tidyframe.core.table import Table
from tidyframe.core.types import NA, DType, Kind, infer_dtype
from tidyframe.exceptions import LoadError, SchemaViolation

logger = logging.getLogger(__name__)

# Kind -> (numpy dtype, pandas nullable extension dtype)
_PANDAS_DTYPES = {
    Kind.INTEGER: ("int64", "Int64"),
    Kind.FLOAT: ("float64", "Float64"),
    Kind.STRING: ("object", "string"),
    Kind.BOOLEAN: ("bool", "boolean"),
}


def _is_na(value: Any) -> bool:
    if value is None or value is NA or value is pd.NA or value is pd.NaT:
        return True
    return isinstance(value, float) and math.isnan(value)


def _kind_hint(dtype: Any) -> Optional[Kind]:
    """Column kind implied by a pandas dtype, None for object-like dtypes."""
    if pd.api.types.is_bool_dtype(dtype):
        return Kind.BOOLEAN
    if pd.api.types.is_integer_dtype(dtype):
        return Kind.INTEGER
    if pd.api.types.is_float_dtype(dtype):
        return Kind.FLOAT
    if pd.api.types.is_string_dtype(dtype) and not pd.api.types.is_object_dtype(dtype):
        return Kind.STRING
    return None


def from_pandas(
    df: pd.DataFrame,
    dtypes: Optional[Mapping[str, Union[DType, str]]] = None,
) -> Table:
    """Convert a pandas DataFrame to a Table.

    Column types come from ``dtypes`` when given, otherwise from the pandas
    dtype (numeric and boolean dtypes) or from the values (object columns).
    NaN, ``None`` and ``pd.NA`` become ``NA``, and a column is missing-capable
    exactly when it holds a missing value. The index is discarded.
    """
    dtypes = dict(dtypes or {})
    data: Dict[str, list] = {}
    declared: Dict[str, DType] = {}
    for label in df.columns:
        name = str(label)
        series = df[label]
        values = [NA if _is_na(v) else v for v in series.tolist()]
        data[name] = values
        if name in dtypes:
            declared[name] = DType.parse(dtypes[name])
            continue
        kind = _kind_hint(series.dtype)
        if kind is None:
            declared[name] = infer_dtype(values, name)
        else:
            declared[name] = DType(kind, any(v is NA for v in values))
    return Table.from_columns(data, declared)


def to_pandas(table: Table) -> pd.DataFrame:
    """Convert a Table to a pandas DataFrame.

    Missing-capable columns use pandas nullable dtypes (``Int64``,
    ``Float64``, ``string``, ``boolean``) with ``pd.NA``; other columns use
    numpy dtypes.
    """
    data = {}
    for name, dtype in table.columns():
        plain, nullable = _PANDAS_DTYPES[dtype.kind]
        values = table.column(name)
        if dtype.nullable:
            data[name] = pd.Series([pd.NA if v is NA else v for v in values], dtype=nullable)
        else:
            data[name] = pd.Series(list(values), dtype=plain)
    return pd.DataFrame(data, columns=list(table.column_names))


def read_csv(
    filepath_or_buffer: Any,
    dtypes: Optional[Mapping[str, Union[DType, str]]] = None,
    **kwargs: Any,
) -> Table:
    """Read a delimited text file into a Table.

    A thin wrapper around ``pandas.read_csv``; extra keyword arguments are
    passed through.

    Raises:
        LoadError: If the file cannot be read or parsed, or its columns do
            not fit the requested (or inferred) types.
    """
    source = str(filepath_or_buffer) if not hasattr(filepath_or_buffer, "read") else "<buffer>"
    try:
        df = pd.read_csv(filepath_or_buffer, **kwargs)
    except (OSError, UnicodeDecodeError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise LoadError(f"Could not read {source}: {e}") from e
    try:
        table = from_pandas(df, dtypes)
    except SchemaViolation as e:
        raise LoadError(f"Could not load {source}: {e}") from e
    logger.debug("loaded %s: %d rows x %d columns", source, *table.shape)
    return table
