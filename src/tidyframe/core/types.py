"""
Column types and the missing-value marker.

Every column in a Table declares a DType: one of four kinds plus a flag saying
whether the column may hold the missing marker ``NA``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Optional

import numpy as np

from tidyframe.exceptions import SchemaViolation


class _MissingType:
    """The single missing-value marker.

    ``NA`` is falsy, and comparisons or arithmetic involving it produce ``NA``
    again, so a row predicate such as ``row["members"] > 100`` evaluates to a
    falsy value for a missing cell instead of raising. Use ``is_missing`` (or
    ``value is NA``) to test for it.
    """

    _instance: Optional["_MissingType"] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NA"

    def __bool__(self) -> bool:
        return False

    def __hash__(self) -> int:
        return hash("tidyframe.NA")

    def __reduce__(self):
        return (_MissingType, ())

    def _propagate(self, *args: Any) -> "_MissingType":
        return self

    __eq__ = __ne__ = __lt__ = __le__ = __gt__ = __ge__ = _propagate  # type: ignore[assignment]
    __add__ = __radd__ = __sub__ = __rsub__ = _propagate
    __mul__ = __rmul__ = __truediv__ = __rtruediv__ = _propagate
    __floordiv__ = __rfloordiv__ = __mod__ = __rmod__ = __pow__ = __rpow__ = _propagate
    __neg__ = __pos__ = __abs__ = _propagate


NA = _MissingType()


def is_missing(value: Any) -> bool:
    """True for ``NA``, ``None`` and float NaN."""
    if value is NA or value is None:
        return True
    return isinstance(value, float) and math.isnan(value)


class Kind(str, Enum):
    INTEGER = "integer"
    FLOAT = "float"
    STRING = "string"
    BOOLEAN = "boolean"


_KIND_ALIASES = {
    "int": Kind.INTEGER,
    "integer": Kind.INTEGER,
    "float": Kind.FLOAT,
    "double": Kind.FLOAT,
    "str": Kind.STRING,
    "string": Kind.STRING,
    "bool": Kind.BOOLEAN,
    "boolean": Kind.BOOLEAN,
}


@dataclass(frozen=True)
class DType:
    """A column's declared type.

    ``str(dtype)`` gives ``"integer"`` or ``"integer?"`` for the missing-capable
    variant; ``DType.parse`` accepts the same strings plus short aliases such
    as ``"int"`` or ``"str?"``.
    """

    kind: Kind
    nullable: bool = False

    def __str__(self) -> str:
        return self.kind.value + ("?" if self.nullable else "")

    def as_nullable(self) -> "DType":
        return self if self.nullable else DType(self.kind, True)

    @property
    def is_numeric(self) -> bool:
        return self.kind in (Kind.INTEGER, Kind.FLOAT)

    @classmethod
    def parse(cls, spec: "DType | str") -> "DType":
        if isinstance(spec, DType):
            return spec
        if not isinstance(spec, str):
            raise TypeError(f"Expected DType or str, got {type(spec).__name__}")
        text = spec.strip().lower()
        nullable = text.endswith("?")
        kind = _KIND_ALIASES.get(text.rstrip("?"))
        if kind is None:
            raise ValueError(f"Unknown column type: {spec!r}")
        return cls(kind, nullable)


INTEGER = DType(Kind.INTEGER)
FLOAT = DType(Kind.FLOAT)
STRING = DType(Kind.STRING)
BOOLEAN = DType(Kind.BOOLEAN)


def normalize_value(value: Any) -> Any:
    """Map numpy scalars to Python values and every missing form to ``NA``."""
    if value is NA or value is None:
        return NA
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and math.isnan(value):
        return NA
    return value


def kind_of(value: Any) -> Optional[Kind]:
    """Kind of a normalized, non-missing value, or None if unsupported."""
    # bool before int: bool is a subclass of int
    if isinstance(value, bool):
        return Kind.BOOLEAN
    if isinstance(value, int):
        return Kind.INTEGER
    if isinstance(value, float):
        return Kind.FLOAT
    if isinstance(value, str):
        return Kind.STRING
    return None


def check_value(value: Any, dtype: DType, column: str = "") -> Any:
    """Validate one value against a declared type and return its stored form."""
    value = normalize_value(value)
    if value is NA:
        if not dtype.nullable:
            raise SchemaViolation(
                f"Column {column!r} of type {dtype} cannot hold a missing value"
            )
        return NA
    kind = kind_of(value)
    if kind == dtype.kind:
        return value
    if kind == Kind.INTEGER and dtype.kind == Kind.FLOAT:
        return float(value)
    raise SchemaViolation(
        f"Column {column!r} of type {dtype} cannot hold {value!r} "
        f"({type(value).__name__})"
    )


def infer_dtype(values: Iterable[Any], column: str = "") -> DType:
    """Infer the narrowest DType able to hold all ``values``."""
    kinds = set()
    nullable = False
    for raw in values:
        value = normalize_value(raw)
        if value is NA:
            nullable = True
            continue
        kind = kind_of(value)
        if kind is None:
            raise SchemaViolation(
                f"Column {column!r}: unsupported value {value!r} "
                f"({type(value).__name__})"
            )
        kinds.add(kind)

    if not kinds:
        return DType(Kind.STRING, nullable)
    if len(kinds) == 1:
        return DType(kinds.pop(), nullable)
    if kinds == {Kind.INTEGER, Kind.FLOAT}:
        return DType(Kind.FLOAT, nullable)
    raise SchemaViolation(
        f"Column {column!r} mixes incompatible types: "
        f"{sorted(k.value for k in kinds)}"
    )


def common_supertype(dtypes: Iterable[DType]) -> Optional[DType]:
    """Smallest type every input widens to, or None if there is none."""
    dtypes = list(dtypes)
    if not dtypes:
        return None
    nullable = any(d.nullable for d in dtypes)
    kinds = {d.kind for d in dtypes}
    if len(kinds) == 1:
        return DType(kinds.pop(), nullable)
    if kinds == {Kind.INTEGER, Kind.FLOAT}:
        return DType(Kind.FLOAT, nullable)
    return None
