"""
Reshape engine: wide-to-long (gather) and long-to-wide (spread).

``gather`` collapses several columns into a key column holding the former
column names and a value column holding their cells; every other column is an
identifier and is repeated on each output row. ``spread`` is its inverse.
Whenever gather meets no type conflict and produces no duplicate
(identifier, key) pairs,

    spread(gather(T, k, v, C), k, v)

reproduces ``T`` up to column order.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from tidyframe.config import get_option
from tidyframe.core.selectors import SelectorLike, resolve_nonempty
from tidyframe.core.table import Table
from tidyframe.core.types import NA, STRING, DType, Kind, check_value, common_supertype, infer_dtype
from tidyframe.engine.aggregations import Aggregation, settle_dtype
from tidyframe.exceptions import DuplicateKey, SchemaConflict, TypeConflict

logger = logging.getLogger(__name__)

SpreadAggregate = Union[Aggregation, str, Callable[[List[Any]], Any], None]


def gather(
    table: Table,
    key: str,
    value: str,
    columns: SelectorLike,
    *,
    na_rm: bool = False,
    coerce: Optional[bool] = None,
) -> Table:
    """Collapse ``columns`` into ``key``/``value`` pairs, lengthening the table.

    Output rows are emitted row-major: for each input row, one row per
    gathered column in selection order. The key column is a non-missing
    string column; the value column takes the common supertype of the
    gathered columns (integer and float widen to float).

    Args:
        table: Input table.
        key: Name of the new column holding former column names.
        value: Name of the new column holding former cell values.
        columns: Selector for the columns to collapse.
        na_rm: Drop output rows whose value is missing.
        coerce: If the gathered columns have no common type, convert every
            value to a string instead of raising. ``None`` defers to the
            ``gather_type_policy`` option.

    Raises:
        AmbiguousSelection: If ``columns`` matches nothing.
        SchemaConflict: If ``key``/``value`` clash with each other or with an
            identifier column.
        TypeConflict: If the gathered types disagree and coercion is off.
    """
    names = table.column_names
    gathered = resolve_nonempty(columns, names, "gather")
    gathered_set = set(gathered)
    ids = [n for n in names if n not in gathered_set]

    if key == value:
        raise SchemaConflict(f"gather key and value columns must differ, both are {key!r}")
    clashes = [n for n in (key, value) if n in ids]
    if clashes:
        raise SchemaConflict(f"gather output columns clash with identifier columns: {clashes}")

    dtypes = [table.dtype(c) for c in gathered]
    value_dtype = common_supertype(dtypes)
    convert: Optional[Callable[[Any], Any]] = None
    if value_dtype is None:
        if coerce is None:
            coerce = get_option("gather_type_policy") == "coerce"
        if not coerce:
            raise TypeConflict(
                "gather columns have incompatible types: "
                + ", ".join(f"{c} <{t}>" for c, t in zip(gathered, dtypes))
                + "; pass coerce=True to gather them as strings"
            )
        value_dtype = DType(Kind.STRING, any(d.nullable for d in dtypes))
        convert = str
    elif value_dtype.kind == Kind.FLOAT:
        convert = float

    id_sources = [table.column(n) for n in ids]
    value_sources = [table.column(c) for c in gathered]
    id_out: List[List[Any]] = [[] for _ in ids]
    key_out: List[str] = []
    value_out: List[Any] = []

    for i in range(table.row_count()):
        for name, source in zip(gathered, value_sources):
            cell = source[i]
            if cell is NA:
                if na_rm:
                    continue
            elif convert is not None:
                cell = convert(cell)
            for out, src in zip(id_out, id_sources):
                out.append(src[i])
            key_out.append(name)
            value_out.append(cell)

    schema = tuple((n, table.dtype(n)) for n in ids) + ((key, STRING), (value, value_dtype))
    result = Table._build(schema, id_out + [key_out, value_out])
    logger.debug(
        "gather: %d rows x %d columns -> %d rows (value type %s)",
        table.row_count(), len(gathered), result.row_count(), value_dtype,
    )
    return result


def _resolver(
    aggregate: SpreadAggregate, value: str, value_dtype: DType
) -> Tuple[Callable[[List[Any]], Any], Optional[DType]]:
    """Pick the duplicate-resolution function and its declared output type.

    A ``None`` output type means the type is inferred from the results.
    """
    if isinstance(aggregate, str):
        aggregate = Aggregation(aggregate, value)
    if isinstance(aggregate, Aggregation):
        return aggregate.apply, aggregate.output_dtype(value_dtype)
    if callable(aggregate):
        return aggregate, None
    raise TypeError(f"spread aggregate must be an Aggregation, name or callable, got {aggregate!r}")


def spread(
    table: Table,
    key: str,
    value: str,
    *,
    fill: Any = NA,
    aggregate: SpreadAggregate = None,
) -> Table:
    """Widen the table: distinct ``key`` values become columns holding ``value``.

    The remaining columns identify output rows, which appear in order of
    first occurrence of each identifier combination. New columns follow the
    identifiers in order of first appearance of each key value; key values
    are converted with ``str()`` and a missing key is labelled with the
    ``missing_key_label`` option.

    Undoing a ``gather`` has two limits, both from information gather does
    not keep. Every new column takes the value column's type, so a column
    that was not missing-capable before gathering comes back as one if any
    other gathered column was. A zero-row input has no key values, so no
    new columns are created.

    Args:
        table: Input table in long form.
        key: Column whose values become column names.
        value: Column whose values fill the new columns.
        fill: Value for identifier/key combinations absent from the input.
        aggregate: Resolves several values landing in one cell: an
            Aggregation, an aggregation name such as ``"sum"``, or a callable
            taking the list of values.

    Raises:
        DuplicateKey: If two rows share identifiers and key and no
            ``aggregate`` was given.
        SchemaConflict: If a new column name equals an identifier column,
            or two different key values map to the same column name (such
            as a missing key and the string ``"NA"``).
    """
    value_dtype = table.dtype(value)
    key_values = table.column(key)
    if key == value:
        raise SchemaConflict(f"spread key and value columns must differ, both are {key!r}")

    ids = [n for n in table.column_names if n not in (key, value)]
    id_sources = [table.column(n) for n in ids]
    value_source = table.column(value)
    missing_label = get_option("missing_key_label")

    group_of: Dict[Tuple[Any, ...], int] = {}
    groups: List[Tuple[Any, ...]] = []
    new_columns: Dict[str, Any] = {}
    cells: Dict[Tuple[int, str], List[Any]] = {}

    for i in range(table.row_count()):
        ident = tuple(src[i] for src in id_sources)
        group = group_of.get(ident)
        if group is None:
            group = group_of[ident] = len(groups)
            groups.append(ident)
        raw_key = key_values[i]
        label = missing_label if raw_key is NA else str(raw_key)
        owner = new_columns.setdefault(label, raw_key)
        if owner is not raw_key and (owner is NA or raw_key is NA or owner != raw_key):
            raise SchemaConflict(
                f"spread key values {owner!r} and {raw_key!r} both map to column {label!r}"
            )
        cells.setdefault((group, label), []).append(value_source[i])

    clashes = [c for c in new_columns if c in ids]
    if clashes:
        raise SchemaConflict(f"spread would create columns that already exist: {clashes}")

    if aggregate is None:
        for (group, label), values in cells.items():
            if len(values) > 1:
                ident = dict(zip(ids, groups[group]))
                raise DuplicateKey(
                    f"spread found {len(values)} values for {key}={label!r} at {ident}; "
                    f"supply an aggregate to combine them"
                )
        resolve, out_dtype = (lambda values: values[0]), value_dtype
    else:
        resolve, out_dtype = _resolver(aggregate, value, value_dtype)

    if fill is not NA and out_dtype is not None:
        fill = check_value(fill, out_dtype.as_nullable(), "fill")

    spread_values: List[List[Any]] = []
    for label in new_columns:
        spread_values.append([
            resolve(cells[(g, label)]) if (g, label) in cells else fill
            for g in range(len(groups))
        ])

    if out_dtype is None:
        dtypes = [infer_dtype(vals, label) for label, vals in zip(new_columns, spread_values)]
        out_dtype = common_supertype(dtypes) if dtypes else STRING
        if out_dtype is None:
            raise TypeConflict(f"spread aggregate produced values of different types: {dtypes}")
    spread_values = [[check_value(v, out_dtype.as_nullable(), label) for v in vals]
                     for label, vals in zip(new_columns, spread_values)]
    spread_schema = tuple(
        (label, settle_dtype(out_dtype, vals))
        for label, vals in zip(new_columns, spread_values)
    )

    id_columns = [[ident[j] for ident in groups] for j in range(len(ids))]
    schema = tuple((n, table.dtype(n)) for n in ids) + spread_schema
    result = Table._build(schema, id_columns + spread_values)
    logger.debug(
        "spread: %d rows -> %d rows x %d new columns",
        table.row_count(), result.row_count(), len(new_columns),
    )
    return result
