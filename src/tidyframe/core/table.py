"""
The immutable Table value type.

A Table is an ordered schema of typed columns plus column-major storage of the
values. Every engine operation consumes Tables and returns new ones; there is no
way to modify a Table in place.

Example:
    >>> churches = Table(
    ...     [("name", "string"), ("members_1830", "integer")],
    ...     [{"name": "First Baptist", "members_1830": 120}],
    ... )
    >>> churches.row_count()
    1
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Tuple, Union

from tidyframe.core.types import NA, DType, check_value, infer_dtype
from tidyframe.exceptions import ColumnNotFoundError, SchemaViolation

SchemaLike = Union[Sequence[Tuple[str, Union[DType, str]]], Mapping]


def normalize_schema(schema: SchemaLike) -> Tuple[Tuple[str, DType], ...]:
    """Turn a mapping or sequence of (name, type) pairs into a checked schema."""
    items = schema.items() if isinstance(schema, Mapping) else schema
    result: List[Tuple[str, DType]] = []
    seen = set()
    for item in items:
        try:
            name, dtype = item
        except (TypeError, ValueError):
            raise SchemaViolation(
                f"Schema entries must be (name, type) pairs, got {item!r}"
            ) from None
        if not isinstance(name, str) or not name:
            raise SchemaViolation(f"Column names must be non-empty strings, got {name!r}")
        if name in seen:
            raise SchemaViolation(f"Duplicate column name: {name!r}")
        seen.add(name)
        try:
            result.append((name, DType.parse(dtype)))
        except (TypeError, ValueError) as e:
            raise SchemaViolation(f"Column {name!r}: {e}") from e
    return tuple(result)


class Rows(Sequence):
    """Lazy, restartable view over a Table's rows.

    Each iteration starts over and yields a fresh ``dict`` per row, so callers
    can freely modify what they receive without touching the Table.
    """

    __slots__ = ("_names", "_columns", "_count")

    def __init__(self, names: Tuple[str, ...], columns: Tuple[tuple, ...], count: int):
        self._names = names
        self._columns = columns
        self._count = count

    def __len__(self) -> int:
        return self._count

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        if not self._names:
            for _ in range(self._count):
                yield {}
            return
        names = self._names
        for values in zip(*self._columns):
            yield dict(zip(names, values))

    def __getitem__(self, index):
        if isinstance(index, slice):
            return [self[i] for i in range(*index.indices(self._count))]
        if index < 0:
            index += self._count
        if not 0 <= index < self._count:
            raise IndexError("row index out of range")
        return {name: column[index] for name, column in zip(self._names, self._columns)}

    def __repr__(self) -> str:
        return f"Rows(count={self._count})"


class Table:
    """Immutable, typed, column-oriented table.

    Args:
        schema: Ordered ``(name, type)`` pairs (or a name -> type mapping).
            Types are ``DType`` instances or strings such as ``"integer"``,
            ``"float?"``.
        rows: Iterable of rows, each either a mapping from column name to
            value or a sequence of values in schema order.

    Raises:
        SchemaViolation: If a row's width or keys disagree with the schema,
            or a value does not fit its column's declared type.
    """

    __slots__ = ("_schema", "_names", "_positions", "_columns", "_count")

    def __init__(self, schema: SchemaLike, rows: Iterable[Any] = ()):
        checked = normalize_schema(schema)
        names = tuple(name for name, _ in checked)
        name_set = set(names)
        buffers: List[List[Any]] = [[] for _ in checked]
        count = 0

        for index, row in enumerate(rows):
            if isinstance(row, Mapping):
                unknown = [k for k in row if k not in name_set]
                if unknown:
                    raise SchemaViolation(f"Row {index} has undeclared columns: {unknown}")
                absent = [n for n in names if n not in row]
                if absent:
                    raise SchemaViolation(f"Row {index} has no value for columns: {absent}")
                values = [row[n] for n in names]
            else:
                values = list(row)
                if len(values) != len(names):
                    raise SchemaViolation(
                        f"Row {index} has {len(values)} values, schema has {len(names)} columns"
                    )
            for buffer, (name, dtype), value in zip(buffers, checked, values):
                buffer.append(check_value(value, dtype, name))
            count += 1

        self._init(checked, tuple(tuple(b) for b in buffers), count)

    def _init(self, schema, columns, count):
        self._schema = schema
        self._names = tuple(name for name, _ in schema)
        self._positions = {name: i for i, name in enumerate(self._names)}
        self._columns = columns
        self._count = count

    @classmethod
    def _build(cls, schema: Tuple[Tuple[str, DType], ...], columns: Sequence[Sequence[Any]]) -> "Table":
        """Assemble a Table from values already known to fit ``schema``."""
        table = cls.__new__(cls)
        columns = tuple(tuple(c) for c in columns)
        count = len(columns[0]) if columns else 0
        table._init(tuple(schema), columns, count)
        return table

    # ------------------------------------------------------------------
    # Alternative constructors
    # ------------------------------------------------------------------

    @classmethod
    def from_columns(
        cls,
        data: Mapping[str, Sequence[Any]],
        dtypes: Optional[Mapping[str, Union[DType, str]]] = None,
    ) -> "Table":
        """Build a Table from a dict of equal-length value lists.

        Types are inferred from the values unless given in ``dtypes``.
        """
        dtypes = dict(dtypes or {})
        unknown = [name for name in dtypes if name not in data]
        if unknown:
            raise ColumnNotFoundError(unknown, list(data))
        lengths = {len(values) for values in data.values()}
        if len(lengths) > 1:
            raise SchemaViolation(f"Columns have different lengths: {sorted(lengths)}")
        count = lengths.pop() if lengths else 0

        schema = normalize_schema([
            (name, dtypes[name] if name in dtypes else infer_dtype(values, name))
            for name, values in data.items()
        ])
        columns = [
            tuple(check_value(v, dtype, name) for v in data[name])
            for name, dtype in schema
        ]
        table = cls.__new__(cls)
        table._init(schema, tuple(columns), count)
        return table

    @classmethod
    def from_records(
        cls,
        records: Iterable[Mapping[str, Any]],
        schema: Optional[SchemaLike] = None,
    ) -> "Table":
        """Build a Table from row dicts, inferring the schema if not given."""
        records = list(records)
        if schema is not None:
            return cls(schema, records)
        names: List[str] = []
        for record in records:
            for name in record:
                if name not in names:
                    names.append(name)
        data: Dict[str, List[Any]] = {name: [] for name in names}
        for index, record in enumerate(records):
            absent = [n for n in names if n not in record]
            if absent:
                raise SchemaViolation(f"Row {index} has no value for columns: {absent}")
            for name in names:
                data[name].append(record[name])
        return cls.from_columns(data)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def columns(self) -> Tuple[Tuple[str, DType], ...]:
        """Ordered ``(name, dtype)`` pairs."""
        return self._schema

    @property
    def column_names(self) -> Tuple[str, ...]:
        return self._names

    @property
    def shape(self) -> Tuple[int, int]:
        return (self._count, len(self._names))

    def has_column(self, name: str) -> bool:
        return name in self._positions

    def dtype(self, name: str) -> DType:
        return self._schema[self._position(name)][1]

    def column(self, name: str) -> Tuple[Any, ...]:
        """All values of one column, in row order."""
        return self._columns[self._position(name)]

    def __getitem__(self, name: str) -> Tuple[Any, ...]:
        return self.column(name)

    def rows(self) -> Rows:
        return Rows(self._names, self._columns, self._count)

    def row_count(self) -> int:
        return self._count

    def __len__(self) -> int:
        return self._count

    def _position(self, name: str) -> int:
        try:
            return self._positions[name]
        except KeyError:
            raise ColumnNotFoundError([name], self._names) from None

    # ------------------------------------------------------------------
    # Derivation
    # ------------------------------------------------------------------

    def with_columns(self, schema: SchemaLike, rows: Iterable[Any]) -> "Table":
        """Construct a new, validated Table. The receiver is never modified."""
        return Table(schema, rows)

    def to_records(self) -> List[Dict[str, Any]]:
        return list(self.rows())

    def to_dict(self) -> Dict[str, List[Any]]:
        """Column name -> list of values."""
        return {name: list(values) for name, values in zip(self._names, self._columns)}

    def head(self, n: int = 5) -> "Table":
        n = max(n, 0)
        return Table._build(self._schema, [c[:n] for c in self._columns]) if self._columns else self

    def pipe(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Apply ``func(self, *args, **kwargs)``; handy for chaining engine functions."""
        return func(self, *args, **kwargs)

    # ------------------------------------------------------------------
    # Comparison & display
    # ------------------------------------------------------------------

    def equals(self, other: "Table", check_column_order: bool = True) -> bool:
        """Same columns, same types, same values in the same row order."""
        if not isinstance(other, Table):
            return False
        if self._count != other._count:
            return False
        if check_column_order:
            return self._schema == other._schema and self._columns == other._columns
        if dict(self._schema) != dict(other._schema):
            return False
        return all(self.column(name) == other.column(name) for name in self._names)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Table):
            return NotImplemented
        return self.equals(other)

    def __hash__(self) -> int:
        return hash((self._schema, self._columns))

    def to_string(self, max_rows: int = 20) -> str:
        header = [f"{name} <{dtype}>" for name, dtype in self._schema]
        shown = self.rows()[:max_rows]
        body = [[_format_cell(row[name]) for name in self._names] for row in shown]
        widths = [
            max([len(h)] + [len(r[i]) for r in body]) for i, h in enumerate(header)
        ]
        lines = [
            "  ".join(h.ljust(w) for h, w in zip(header, widths)),
            "  ".join("-" * w for w in widths),
        ]
        lines.extend("  ".join(c.ljust(w) for c, w in zip(r, widths)) for r in body)
        if self._count > max_rows:
            lines.append(f"... {self._count - max_rows} more rows")
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        cols = ", ".join(f"{name}: {dtype}" for name, dtype in self._schema)
        return f"Table({self._count} rows; {cols})"


def _format_cell(value: Any) -> str:
    if value is NA:
        return "NA"
    return str(value)
