"""
Relational engine: projection, restriction, ordering, computed columns,
grouped aggregation and joins.

Every function takes one Table (two for ``union`` and ``join``) and returns a
new Table. Inputs are never modified.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from tidyframe.core.expressions import Expression, referenced_columns
from tidyframe.core.selectors import SelectorLike, resolve_nonempty
from tidyframe.core.table import Table
from tidyframe.core.types import NA, DType, Kind, check_value, common_supertype, infer_dtype, normalize_value
from tidyframe.engine.aggregations import Aggregation, settle_dtype
from tidyframe.exceptions import ColumnNotFoundError, SchemaConflict

logger = logging.getLogger(__name__)

RowFunction = Union[Expression, Callable[[Dict[str, Any]], Any]]


class JoinType(str, Enum):
    INNER = "inner"
    LEFT = "left"
    RIGHT = "right"
    FULL = "full"
    SEMI = "semi"
    ANTI = "anti"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


SortKey = Union[str, Tuple[str, str]]


# ----------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------


def _take(table: Table, indices: Sequence[int]) -> Table:
    """Rows of ``table`` at ``indices``, in that order."""
    columns = [table.column(name) for name in table.column_names]
    return Table._build(table.columns(), [[c[i] for i in indices] for c in columns])


def _row_function(fn: RowFunction, table: Table, what: str) -> Callable[[Dict[str, Any]], Any]:
    if isinstance(fn, Expression):
        missing = referenced_columns(fn) - set(table.column_names)
        if missing:
            raise ColumnNotFoundError(sorted(missing), table.column_names)
        return fn.evaluate
    if callable(fn):
        return fn
    raise TypeError(f"{what} expects an Expression or a callable, got {type(fn).__name__}")


def _is_true(value: Any) -> bool:
    return value is not NA and value is not None and bool(value)


def _convert_for(dtype: DType, values: Iterable[Any]) -> List[Any]:
    if dtype.kind == Kind.FLOAT:
        return [v if v is NA else float(v) for v in values]
    return list(values)


# ----------------------------------------------------------------------
# Projection
# ----------------------------------------------------------------------


def select(table: Table, columns: SelectorLike) -> Table:
    """Keep the selected columns, in selection order.

    Raises:
        AmbiguousSelection: If the selector matches no columns.
    """
    names = resolve_nonempty(columns, table.column_names, "select")
    schema = tuple((n, table.dtype(n)) for n in names)
    return Table._build(schema, [table.column(n) for n in names])


def rename(table: Table, mapping: Mapping[str, str]) -> Table:
    """Rename columns with an ``{old: new}`` mapping, keeping their positions."""
    unknown = [old for old in mapping if not table.has_column(old)]
    if unknown:
        raise ColumnNotFoundError(unknown, table.column_names)
    new_names = [mapping.get(n, n) for n in table.column_names]
    duplicates = sorted({n for n in new_names if new_names.count(n) > 1})
    if duplicates:
        raise SchemaConflict(f"rename produces duplicate column names: {duplicates}")
    schema = tuple((mapping.get(n, n), dtype) for n, dtype in table.columns())
    return Table._build(schema, [table.column(n) for n in table.column_names])


# ----------------------------------------------------------------------
# Restriction
# ----------------------------------------------------------------------


def filter(table: Table, predicate: RowFunction) -> Table:
    """Keep rows for which ``predicate`` is true, preserving their order.

    A missing (``NA``) or otherwise falsy predicate result excludes the row.
    Only Expression predicates guarantee that rows with missing inputs are
    excluded without raising. A callable sees ``NA`` itself:
    ``not row["x"] > 5`` keeps missing rows (``not NA`` is True) and
    ``row["s"].startswith("a")`` raises AttributeError.
    """
    test = _row_function(predicate, table, "filter")
    keep = [i for i, row in enumerate(table.rows()) if _is_true(test(row))]
    result = _take(table, keep)
    logger.debug("filter: %d -> %d rows", table.row_count(), result.row_count())
    return result


def distinct(table: Table, columns: Optional[SelectorLike] = None) -> Table:
    """First occurrence of each distinct row.

    With ``columns``, rows are compared on those columns only; all columns
    are kept.
    """
    names = (
        table.column_names if columns is None
        else resolve_nonempty(columns, table.column_names, "distinct")
    )
    sources = [table.column(n) for n in names]
    seen = set()
    keep = []
    for i in range(table.row_count()):
        k = tuple(src[i] for src in sources)
        if k not in seen:
            seen.add(k)
            keep.append(i)
    return _take(table, keep)


def limit(table: Table, n: int, end: str = "head") -> Table:
    """First (``end="head"``) or last (``end="tail"``) ``n`` rows."""
    if n < 0:
        raise ValueError("limit count must be non-negative")
    count = table.row_count()
    if end == "head":
        indices = range(min(n, count))
    elif end == "tail":
        indices = range(max(count - n, 0), count)
    else:
        raise ValueError(f"limit end must be 'head' or 'tail', got: {end}")
    return _take(table, list(indices))


# ----------------------------------------------------------------------
# Ordering
# ----------------------------------------------------------------------


def desc(name: str) -> Tuple[str, str]:
    """Sort key for descending order, e.g. ``arrange(t, desc("members"))``."""
    return (name, SortDirection.DESC.value)


def normalize_sort_keys(keys: Iterable[SortKey]) -> List[Tuple[str, str]]:
    result = []
    for key in keys:
        if isinstance(key, str):
            result.append((key, SortDirection.ASC.value))
            continue
        name, direction = key
        direction = SortDirection(direction).value
        result.append((name, direction))
    if not result:
        raise ValueError("arrange requires at least one sort key")
    return result


def arrange(table: Table, *keys: Union[SortKey, List[SortKey]]) -> Table:
    """Stable multi-key sort.

    Keys are column names (ascending), ``(name, "asc"|"desc")`` pairs or
    ``desc(name)``, compared in order. Rows tied on every key keep their
    original relative order. Missing values sort last in ascending order and
    first in descending order.
    """
    if len(keys) == 1 and isinstance(keys[0], list):
        keys = tuple(keys[0])
    specs = normalize_sort_keys(keys)
    order = list(range(table.row_count()))
    # Successive stable sorts, least significant key first.
    for name, direction in reversed(specs):
        values = table.column(name)
        order.sort(
            key=lambda i: (1, 0) if values[i] is NA else (0, values[i]),
            reverse=direction == SortDirection.DESC.value,
        )
    return _take(table, order)


# ----------------------------------------------------------------------
# Computed columns
# ----------------------------------------------------------------------


def mutate(
    table: Table,
    name: str,
    compute: RowFunction,
    *,
    dtype: Optional[Union[DType, str]] = None,
) -> Table:
    """Add column ``name`` (or replace it in place) with ``compute(row)``.

    ``compute`` sees one row at a time as a fresh dict; its type is inferred
    from the produced values unless ``dtype`` is given.
    """
    fn = _row_function(compute, table, "mutate")
    values = [normalize_value(fn(row)) for row in table.rows()]
    declared = DType.parse(dtype) if dtype is not None else infer_dtype(values, name)
    values = [check_value(v, declared, name) for v in values]

    schema = list(table.columns())
    columns = [table.column(n) for n in table.column_names]
    if table.has_column(name):
        position = table.column_names.index(name)
        schema[position] = (name, declared)
        columns[position] = values
    else:
        schema.append((name, declared))
        columns.append(values)
    return Table._build(tuple(schema), columns)


# ----------------------------------------------------------------------
# Combining tables
# ----------------------------------------------------------------------


def union(top: Table, bottom: Table) -> Table:
    """Stack ``bottom`` under ``top``; both must have the same column names."""
    if set(top.column_names) != set(bottom.column_names):
        raise SchemaConflict(
            f"union requires identical column names, got {list(top.column_names)} "
            f"and {list(bottom.column_names)}"
        )
    schema = []
    columns = []
    for name, dtype in top.columns():
        unified = common_supertype([dtype, bottom.dtype(name)])
        if unified is None:
            raise SchemaConflict(
                f"union column {name!r} has incompatible types {dtype} and {bottom.dtype(name)}"
            )
        schema.append((name, unified))
        columns.append(_convert_for(unified, top.column(name) + bottom.column(name)))
    return Table._build(tuple(schema), columns)


def _join_keys(left: Table, right: Table, by: Union[str, Sequence[str]]) -> List[str]:
    keys = [by] if isinstance(by, str) else list(by)
    if not keys:
        raise SchemaConflict("join requires at least one key column")
    for side, table in (("left", left), ("right", right)):
        absent = [k for k in keys if not table.has_column(k)]
        if absent:
            raise SchemaConflict(f"join keys missing from {side} table: {absent}")
    for k in keys:
        if common_supertype([left.dtype(k), right.dtype(k)]) is None:
            raise SchemaConflict(
                f"join key {k!r} has incompatible types {left.dtype(k)} and {right.dtype(k)}"
            )
    return keys


def _key_index(table: Table, keys: Sequence[str]) -> Dict[Tuple[Any, ...], List[int]]:
    sources = [table.column(k) for k in keys]
    index: Dict[Tuple[Any, ...], List[int]] = {}
    for i in range(table.row_count()):
        k = tuple(src[i] for src in sources)
        if any(v is NA for v in k):
            continue
        index.setdefault(k, []).append(i)
    return index


def _key_of(sources: Sequence[Sequence[Any]], i: int) -> Optional[Tuple[Any, ...]]:
    k = tuple(src[i] for src in sources)
    return None if any(v is NA for v in k) else k


def join(
    left: Table,
    right: Table,
    by: Union[str, Sequence[str]],
    how: str = "inner",
    *,
    suffixes: Optional[Tuple[str, str]] = None,
) -> Table:
    """Join two tables on equal values of the ``by`` columns.

    Modes: ``inner``, ``left``, ``right``, ``full``, ``semi``, ``anti``.
    Output rows follow the left table, each with its matches in right-table
    order; ``right``/``full`` then append unmatched right rows. Key columns
    appear once, followed by the right table's other columns. Missing key
    values never match.

    Args:
        suffixes: Explicit disambiguation for non-key columns present on
            both sides, appended to the left and right names respectively.

    Raises:
        SchemaConflict: If a key is missing from either side, key types are
            incompatible, or a non-key column name collides without
            ``suffixes``.
    """
    mode = JoinType(how).value
    keys = _join_keys(left, right, by)
    index = _key_index(right, keys)
    left_key_sources = [left.column(k) for k in keys]

    if mode in (JoinType.SEMI.value, JoinType.ANTI.value):
        want = mode == JoinType.SEMI.value
        keep = [
            i for i in range(left.row_count())
            if ((_key_of(left_key_sources, i) in index) == want)
        ]
        result = _take(left, keep)
        logger.debug("join(%s): %d -> %d rows", mode, left.row_count(), result.row_count())
        return result

    left_rest = [n for n in left.column_names if n not in keys]
    right_rest = [n for n in right.column_names if n not in keys]
    collisions = [n for n in right_rest if left.has_column(n)]
    left_names = {n: n for n in left_rest}
    right_names = {n: n for n in right_rest}
    if collisions:
        if suffixes is None:
            raise SchemaConflict(
                f"columns present on both sides of the join: {collisions}; "
                f"rename them first or pass suffixes"
            )
        for n in collisions:
            left_names[n] = n + suffixes[0]
            right_names[n] = n + suffixes[1]
        out = list(keys) + list(left_names.values()) + list(right_names.values())
        duplicates = sorted({n for n in out if out.count(n) > 1})
        if duplicates:
            raise SchemaConflict(f"join suffixes still leave duplicate columns: {duplicates}")

    pairs: List[Tuple[Optional[int], Optional[int]]] = []
    matched_right = set()
    keep_left = mode in (JoinType.LEFT.value, JoinType.FULL.value)
    keep_right = mode in (JoinType.RIGHT.value, JoinType.FULL.value)
    for i in range(left.row_count()):
        k = _key_of(left_key_sources, i)
        matches = index.get(k, []) if k is not None else []
        for j in matches:
            pairs.append((i, j))
            matched_right.add(j)
        if not matches and keep_left:
            pairs.append((i, None))
    if keep_right:
        pairs.extend((None, j) for j in range(right.row_count()) if j not in matched_right)

    schema: List[Tuple[str, DType]] = []
    columns: List[List[Any]] = []
    for name in left.column_names:
        lsrc = left.column(name)
        if name in keys:
            rsrc = right.column(name)
            ltype, rtype = left.dtype(name), right.dtype(name)
            kind = common_supertype([ltype, rtype]).kind
            nullable = {
                JoinType.INNER.value: ltype.nullable,
                JoinType.LEFT.value: ltype.nullable,
                JoinType.RIGHT.value: rtype.nullable,
            }.get(mode, ltype.nullable or rtype.nullable)
            dtype = DType(kind, nullable)
            values = [lsrc[i] if i is not None else rsrc[j] for i, j in pairs]
            schema.append((name, dtype))
            columns.append(_convert_for(dtype, values))
        else:
            dtype = left.dtype(name)
            if keep_right:
                dtype = dtype.as_nullable()
            schema.append((left_names[name], dtype))
            columns.append([lsrc[i] if i is not None else NA for i, _ in pairs])
    for name in right_rest:
        rsrc = right.column(name)
        dtype = right.dtype(name)
        if keep_left:
            dtype = dtype.as_nullable()
        schema.append((right_names[name], dtype))
        columns.append([rsrc[j] if j is not None else NA for _, j in pairs])

    result = Table._build(tuple(schema), columns)
    logger.debug(
        "join(%s) on %s: %d x %d -> %d rows",
        mode, keys, left.row_count(), right.row_count(), result.row_count(),
    )
    return result


# ----------------------------------------------------------------------
# Grouped aggregation
# ----------------------------------------------------------------------


def group_summarize(
    table: Table,
    keys: Optional[SelectorLike],
    aggregations: Mapping[str, Aggregation],
) -> Table:
    """One row per distinct combination of ``keys`` with one column per aggregation.

    Groups appear in order of first occurrence. With no keys the whole table
    is a single group, so the result always has exactly one row.

    Args:
        table: Input table.
        keys: Group key selector (``None`` or ``[]`` for a global summary).
        aggregations: Output column name -> Aggregation.

    Raises:
        AmbiguousSelection: If a key selector other than ``None`` or ``[]``
            matches no columns.
    """
    if keys is None or (isinstance(keys, (list, tuple)) and not keys):
        key_names: Tuple[str, ...] = ()
    else:
        key_names = resolve_nonempty(keys, table.column_names, "group_summarize")
    clashes = [name for name in aggregations if name in key_names]
    if clashes:
        raise SchemaConflict(f"aggregation names clash with group keys: {clashes}")
    for name, aggregation in aggregations.items():
        if not isinstance(aggregation, Aggregation):
            raise TypeError(f"aggregation {name!r} must be an Aggregation, got {aggregation!r}")
        if aggregation.column is not None and not table.has_column(aggregation.column):
            raise ColumnNotFoundError([aggregation.column], table.column_names)

    groups: Dict[Tuple[Any, ...], List[int]] = {}
    if key_names:
        sources = [table.column(k) for k in key_names]
        for i in range(table.row_count()):
            groups.setdefault(tuple(src[i] for src in sources), []).append(i)
    else:
        groups[()] = list(range(table.row_count()))

    schema: List[Tuple[str, DType]] = [(k, table.dtype(k)) for k in key_names]
    columns: List[List[Any]] = [
        [group[j] for group in groups] for j in range(len(key_names))
    ]
    for name, aggregation in aggregations.items():
        if aggregation.column is None:
            values = [aggregation.apply(members) for members in groups.values()]
            dtype = aggregation.output_dtype(None)
        else:
            source = table.column(aggregation.column)
            dtype = aggregation.output_dtype(table.dtype(aggregation.column))
            values = [
                aggregation.apply([source[i] for i in members])
                for members in groups.values()
            ]
        dtype = settle_dtype(dtype, values)
        schema.append((name, dtype))
        columns.append(_convert_for(dtype, values))

    result = Table._build(tuple(schema), columns)
    logger.debug(
        "group_summarize by %s: %d rows -> %d groups",
        list(key_names), table.row_count(), result.row_count(),
    )
    return result


def count(table: Table, keys: Optional[SelectorLike] = None, name: str = "n") -> Table:
    """Row count per group; shorthand for ``group_summarize`` with ``n()``."""
    return group_summarize(table, keys, {name: Aggregation("n")})
