"""
Aggregation functions used by group_summarize and spread.

An Aggregation names a reduction (``"sum"``, ``"mean"``, ...), the column it
reads and whether missing values are skipped. It is a frozen value so it can be
stored in operation nodes and serialized. Build them through the factories in
``tidyframe.agg``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import numpy as np

from tidyframe.core.types import FLOAT, INTEGER, NA, DType, Kind, normalize_value
from tidyframe.exceptions import MissingValueError, TypeConflict

# Functions that refuse missing input unless na_rm is set
_STRICT = {"sum", "mean", "median", "min", "max"}
_NUMERIC = {"sum", "mean", "median"}


def _drop_missing(values: List[Any]) -> List[Any]:
    return [v for v in values if v is not NA]


def _n(values: List[Any]) -> int:
    return len(values)


def _count(values: List[Any]) -> int:
    return len(_drop_missing(values))


def _n_distinct(values: List[Any]) -> int:
    return len(dict.fromkeys(values))


def _sum(values: List[Any]) -> Any:
    return sum(values) if values else 0


def _mean(values: List[Any]) -> Any:
    return float(np.mean(values)) if values else NA


def _median(values: List[Any]) -> Any:
    return float(np.median(values)) if values else NA


def _min(values: List[Any]) -> Any:
    return min(values) if values else NA


def _max(values: List[Any]) -> Any:
    return max(values) if values else NA


def _first(values: List[Any]) -> Any:
    return values[0] if values else NA


def _last(values: List[Any]) -> Any:
    return values[-1] if values else NA


_AGG_FUNCS: Dict[str, Callable[[List[Any]], Any]] = {
    "n": _n,
    "count": _count,
    "n_distinct": _n_distinct,
    "sum": _sum,
    "mean": _mean,
    "median": _median,
    "min": _min,
    "max": _max,
    "first": _first,
    "last": _last,
}


@dataclass(frozen=True)
class Aggregation:
    """A named reduction over one column of a group.

    Attributes:
        func: One of ``n``, ``count``, ``n_distinct``, ``sum``, ``mean``,
            ``median``, ``min``, ``max``, ``first``, ``last``.
        column: Input column (``None`` only for ``n``, the group size).
        na_rm: Skip missing values. Without it, a missing value reaching
            sum/mean/median/min/max raises MissingValueError.
    """

    func: str
    column: Optional[str] = None
    na_rm: bool = False

    def __post_init__(self):
        if self.func not in _AGG_FUNCS:
            raise ValueError(
                f"Unknown aggregation function: {self.func!r} "
                f"(known: {sorted(_AGG_FUNCS)})"
            )
        if self.func != "n" and not self.column:
            raise ValueError(f"Aggregation {self.func!r} requires a column")

    def output_dtype(self, input_dtype: Optional[DType]) -> DType:
        """Declared type of the aggregated column, before missing results."""
        if self.func in ("n", "count", "n_distinct"):
            return INTEGER
        if self.func in _NUMERIC:
            self._check_numeric(input_dtype)
            if self.func == "sum":
                return FLOAT if input_dtype.kind == Kind.FLOAT else INTEGER
            return FLOAT
        return DType(input_dtype.kind, input_dtype.nullable)

    def apply(self, values: List[Any]) -> Any:
        """Reduce one group's values (already normalized column values)."""
        if self.func == "n":
            return len(values)
        if self.func in ("n_distinct", "first", "last") and not self.na_rm:
            return _AGG_FUNCS[self.func](values)
        if self.func in _STRICT and not self.na_rm:
            if any(v is NA for v in values):
                raise MissingValueError(
                    f"{self.func}({self.column}) met a missing value; "
                    f"pass na_rm=True to skip missing values"
                )
            return normalize_value(_AGG_FUNCS[self.func](values))
        return normalize_value(_AGG_FUNCS[self.func](_drop_missing(values)))

    def _check_numeric(self, input_dtype: Optional[DType]) -> None:
        if input_dtype is None or input_dtype.kind not in (Kind.INTEGER, Kind.FLOAT, Kind.BOOLEAN):
            raise TypeConflict(
                f"{self.func}({self.column}) requires a numeric or boolean column, "
                f"got {input_dtype}"
            )

    def __str__(self) -> str:
        args = self.column or ""
        if self.na_rm:
            args += ", na_rm=True"
        return f"{self.func}({args})"

    def to_dict(self) -> Dict[str, Any]:
        return {"func": self.func, "column": self.column, "na_rm": self.na_rm}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Aggregation":
        return cls(
            func=data["func"],
            column=data.get("column"),
            na_rm=data.get("na_rm", False),
        )


def settle_dtype(dtype: DType, values: List[Any]) -> DType:
    """Mark ``dtype`` missing-capable if any computed value is missing."""
    if not dtype.nullable and any(v is NA for v in values):
        return dtype.as_nullable()
    return dtype
