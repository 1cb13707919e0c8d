"""
Operation nodes for the table algebra.

Each operation is a node in the logical plan tree. Operations are dataclasses
that capture the intent of a transformation without executing it; the eager
executor (``tidyframe.algebra.eager``) runs them by calling the engine.

Constructor shortcuts
---------------------
Unary operations accept ``input=<op>`` as shorthand for ``inputs=[<op>]``.
Binary operations (Join, Union) accept ``left=`` / ``right=`` as shorthand for
``inputs=[left, right]``.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union as TypingUnion

from tidyframe.core.expressions import Expression
from tidyframe.core.selectors import Selector, as_selector
from tidyframe.core.table import Table
from tidyframe.core.types import NA, DType
from tidyframe.engine.aggregations import Aggregation
from tidyframe.engine.relational import JoinType, normalize_sort_keys
from tidyframe.exceptions import PlanValidationError, UnsupportedOperationError


def _resolve_inputs(
    inputs: List["Operation"],
    *,
    input: Optional["Operation"] = None,
    left: Optional["Operation"] = None,
    right: Optional["Operation"] = None,
) -> List["Operation"]:
    """Build the inputs list from explicit inputs or convenience aliases."""
    if inputs:
        return inputs
    if left is not None or right is not None:
        result: list[Operation] = []
        if left is not None:
            result.append(left)
        if right is not None:
            result.append(right)
        return result
    if input is not None:
        return [input]
    return []


def _expect_inputs(op: "Operation", count: int) -> None:
    if len(op.inputs) != count:
        noun = "input" if count == 1 else "inputs"
        raise PlanValidationError(
            f"{op.__class__.__name__} operation must have exactly {count} {noun}"
        )


def _row_function_to_dict(fn: Any, what: str) -> Dict[str, Any]:
    if isinstance(fn, Expression):
        return fn.to_dict()
    raise UnsupportedOperationError(
        f"{what} uses a Python callable ({getattr(fn, '__name__', fn)!r}); "
        "only Expression-based steps can be serialized"
    )


def _describe_fn(fn: Any) -> str:
    if isinstance(fn, Expression):
        return str(fn)
    return f"<{getattr(fn, '__name__', 'callable')}>"


@dataclass
class Operation:
    """Base class for all operations."""

    inputs: List["Operation"] = field(default_factory=list)

    def describe(self) -> str:
        return f"{self.__class__.__name__}()"

    def to_dict(self) -> Dict[str, Any]:
        raise NotImplementedError(
            f"to_dict not implemented for {self.__class__.__name__}"
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Operation":
        op_type = data.get("type")
        if not op_type:
            raise PlanValidationError("Operation dict must have 'type' field")

        op_class = _TYPE_MAP.get(op_type)
        if not op_class:
            raise PlanValidationError(f"Unknown operation type: {op_type}")

        inputs_data = data.get("inputs", [])
        if not inputs_data:
            single = data.get("input")
            if single is not None:
                inputs_data = [single] if isinstance(single, dict) else single
        if isinstance(inputs_data, dict):
            inputs_data = [inputs_data]
        inputs = [Operation.from_dict(inp) for inp in inputs_data]

        kwargs = {k: v for k, v in data.items() if k not in ("type", "inputs", "input")}
        kwargs["inputs"] = inputs
        return op_class._from_kwargs(kwargs)

    @classmethod
    def _from_kwargs(cls, kwargs: Dict[str, Any]) -> "Operation":
        return cls(**kwargs)


@dataclass
class Source(Operation):
    """Data source, always a leaf node.

    A Source without ``data`` is a placeholder bound to the pipeline's input
    table at execution time.
    """

    source_id: str = "<input>"
    schema: Optional[List[Tuple[str, str]]] = None
    data: Optional[Table] = field(default=None, repr=False)

    def __post_init__(self):
        if self.inputs:
            raise PlanValidationError("Source operation cannot have inputs")
        if self.data is not None and self.schema is None:
            self.schema = [(name, str(dtype)) for name, dtype in self.data.columns()]

    def describe(self) -> str:
        if self.schema:
            names = [name for name, _ in self.schema]
            return f"Source(source_id='{self.source_id}', schema={names})"
        return f"Source(source_id='{self.source_id}')"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "source",
            "source_id": self.source_id,
            "schema": [list(item) for item in self.schema] if self.schema else None,
            "inputs": [],
        }

    @classmethod
    def _from_kwargs(cls, kwargs):
        if kwargs.get("schema"):
            kwargs["schema"] = [tuple(item) for item in kwargs["schema"]]
        return cls(**kwargs)


@dataclass
class Select(Operation):
    """Column projection.

    Aliases: ``input`` → ``inputs[0]``.
    """

    columns: Any = None
    input: Optional[Operation] = field(default=None, repr=False)

    def __post_init__(self):
        self.inputs = _resolve_inputs(self.inputs, input=self.input)
        self.input = None
        _expect_inputs(self, 1)
        if self.columns is None or self.columns == []:
            raise PlanValidationError("Select operation must specify at least one column")
        self.columns = as_selector(self.columns)

    def describe(self) -> str:
        return f"Select(columns={self.columns!r})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "select",
            "columns": self.columns.to_dict(),
            "input": self.inputs[0].to_dict(),
        }

    @classmethod
    def _from_kwargs(cls, kwargs):
        kwargs["columns"] = Selector.from_dict(kwargs["columns"])
        return cls(**kwargs)


@dataclass
class Rename(Operation):
    """Column renaming with an ``{old: new}`` mapping."""

    mapping: Dict[str, str] = field(default_factory=dict)
    input: Optional[Operation] = field(default=None, repr=False)

    def __post_init__(self):
        self.inputs = _resolve_inputs(self.inputs, input=self.input)
        self.input = None
        _expect_inputs(self, 1)
        if not self.mapping:
            raise PlanValidationError("Rename operation must specify a mapping")
        self.mapping = dict(self.mapping)

    def describe(self) -> str:
        return f"Rename(mapping={self.mapping})"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "rename", "mapping": self.mapping, "input": self.inputs[0].to_dict()}


@dataclass
class Filter(Operation):
    """Row filtering by an Expression or a row callable."""

    predicate: Any = None
    input: Optional[Operation] = field(default=None, repr=False)

    def __post_init__(self):
        self.inputs = _resolve_inputs(self.inputs, input=self.input)
        self.input = None
        _expect_inputs(self, 1)
        if not isinstance(self.predicate, Expression) and not callable(self.predicate):
            raise PlanValidationError("Filter operation must specify an Expression or callable predicate")

    def describe(self) -> str:
        return f"Filter(predicate={_describe_fn(self.predicate)})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "filter",
            "predicate": _row_function_to_dict(self.predicate, "Filter"),
            "input": self.inputs[0].to_dict(),
        }

    @classmethod
    def _from_kwargs(cls, kwargs):
        kwargs["predicate"] = Expression.from_dict(kwargs["predicate"])
        return cls(**kwargs)


@dataclass
class Distinct(Operation):
    """Duplicate-row removal, optionally on a subset of columns."""

    columns: Any = None
    input: Optional[Operation] = field(default=None, repr=False)

    def __post_init__(self):
        self.inputs = _resolve_inputs(self.inputs, input=self.input)
        self.input = None
        _expect_inputs(self, 1)
        if self.columns is not None:
            self.columns = as_selector(self.columns)

    def describe(self) -> str:
        if self.columns is None:
            return "Distinct()"
        return f"Distinct(columns={self.columns!r})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "distinct",
            "columns": self.columns.to_dict() if self.columns is not None else None,
            "input": self.inputs[0].to_dict(),
        }

    @classmethod
    def _from_kwargs(cls, kwargs):
        if kwargs.get("columns") is not None:
            kwargs["columns"] = Selector.from_dict(kwargs["columns"])
        return cls(**kwargs)


@dataclass
class Limit(Operation):
    """Row truncation.

    Aliases: ``input`` → ``inputs[0]``, ``n`` → ``count``.
    """

    count: int = 0
    end: str = "head"
    input: Optional[Operation] = field(default=None, repr=False)
    n: Optional[int] = field(default=None, repr=False)

    def __post_init__(self):
        self.inputs = _resolve_inputs(self.inputs, input=self.input)
        self.input = None
        if self.n is not None and self.count == 0:
            self.count = self.n
        self.n = None
        _expect_inputs(self, 1)
        if self.count < 0:
            raise PlanValidationError("Limit count must be non-negative")
        if self.end not in ("head", "tail"):
            raise PlanValidationError(f"Limit end must be 'head' or 'tail', got: {self.end}")

    def describe(self) -> str:
        return f"Limit(count={self.count}, end='{self.end}')"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "limit",
            "count": self.count,
            "end": self.end,
            "input": self.inputs[0].to_dict(),
        }


@dataclass
class Sort(Operation):
    """Stable multi-key row reordering (``arrange``)."""

    keys: List[Tuple[str, str]] = field(default_factory=list)
    input: Optional[Operation] = field(default=None, repr=False)

    def __post_init__(self):
        self.inputs = _resolve_inputs(self.inputs, input=self.input)
        self.input = None
        _expect_inputs(self, 1)
        try:
            self.keys = normalize_sort_keys(self.keys)
        except ValueError as e:
            raise PlanValidationError(f"Sort operation: {e}") from e

    def describe(self) -> str:
        return f"Sort(keys={self.keys})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "sort",
            "keys": [list(key) for key in self.keys],
            "input": self.inputs[0].to_dict(),
        }

    @classmethod
    def _from_kwargs(cls, kwargs):
        kwargs["keys"] = [tuple(key) for key in kwargs.get("keys", [])]
        return cls(**kwargs)


@dataclass
class WithColumn(Operation):
    """Add or replace a column (``mutate``).

    Aliases: ``input`` → ``inputs[0]``, ``column_name`` → ``column``.
    """

    column: str = ""
    expression: Any = None
    dtype: Optional[TypingUnion[DType, str]] = None
    input: Optional[Operation] = field(default=None, repr=False)
    column_name: Optional[str] = field(default=None, repr=False)

    def __post_init__(self):
        self.inputs = _resolve_inputs(self.inputs, input=self.input)
        self.input = None
        if self.column_name is not None and not self.column:
            self.column = self.column_name
        self.column_name = None
        _expect_inputs(self, 1)
        if not self.column:
            raise PlanValidationError("WithColumn operation must specify a column name")
        if not isinstance(self.expression, Expression) and not callable(self.expression):
            raise PlanValidationError("WithColumn operation must specify an Expression or callable")
        if self.dtype is not None:
            self.dtype = DType.parse(self.dtype)

    def describe(self) -> str:
        return f"WithColumn(column='{self.column}', expression={_describe_fn(self.expression)})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "with_column",
            "column": self.column,
            "expression": _row_function_to_dict(self.expression, "WithColumn"),
            "dtype": str(self.dtype) if self.dtype is not None else None,
            "input": self.inputs[0].to_dict(),
        }

    @classmethod
    def _from_kwargs(cls, kwargs):
        kwargs["expression"] = Expression.from_dict(kwargs["expression"])
        return cls(**kwargs)


@dataclass
class Union(Operation):
    """Vertical concatenation of two relations.

    Aliases: ``left`` / ``right`` → ``inputs[0]`` / ``inputs[1]``.
    """

    left: Optional[Operation] = field(default=None, repr=False)
    right: Optional[Operation] = field(default=None, repr=False)

    def __post_init__(self):
        self.inputs = _resolve_inputs(self.inputs, left=self.left, right=self.right)
        self.left = None
        self.right = None
        _expect_inputs(self, 2)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "union", "inputs": [inp.to_dict() for inp in self.inputs]}


@dataclass
class Join(Operation):
    """Equi-join on identically named key columns.

    Aliases: ``left`` / ``right`` → ``inputs[0]`` / ``inputs[1]``,
    ``how`` → ``join_type``.
    """

    on: TypingUnion[str, List[str]] = ""
    join_type: str = "inner"
    suffixes: Optional[Tuple[str, str]] = None
    left: Optional[Operation] = field(default=None, repr=False)
    right: Optional[Operation] = field(default=None, repr=False)
    how: Optional[str] = field(default=None, repr=False)

    def __post_init__(self):
        self.inputs = _resolve_inputs(self.inputs, left=self.left, right=self.right)
        self.left = None
        self.right = None
        if self.how is not None and self.join_type == "inner":
            self.join_type = self.how
        self.how = None

        _expect_inputs(self, 2)
        if isinstance(self.on, str):
            self.on = [self.on] if self.on else []
        self.on = list(self.on)
        if not self.on:
            raise PlanValidationError("Join operation must specify join keys")
        valid_types = {t.value for t in JoinType}
        if self.join_type not in valid_types:
            raise PlanValidationError(
                f"Join type must be one of {sorted(valid_types)}, got: {self.join_type}"
            )
        if self.suffixes is not None:
            self.suffixes = tuple(self.suffixes)
            if len(self.suffixes) != 2:
                raise PlanValidationError("Join suffixes must be a pair of strings")

    def describe(self) -> str:
        return f"Join(on={self.on}, type='{self.join_type}')"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "join",
            "on": self.on,
            "join_type": self.join_type,
            "suffixes": list(self.suffixes) if self.suffixes else None,
            "inputs": [inp.to_dict() for inp in self.inputs],
        }


@dataclass
class GroupSummarize(Operation):
    """Partitioned aggregation. Empty ``keys`` summarize the whole table."""

    keys: List[str] = field(default_factory=list)
    aggregations: Dict[str, Aggregation] = field(default_factory=dict)
    input: Optional[Operation] = field(default=None, repr=False)

    def __post_init__(self):
        self.inputs = _resolve_inputs(self.inputs, input=self.input)
        self.input = None
        _expect_inputs(self, 1)
        if isinstance(self.keys, str):
            self.keys = [self.keys]
        self.keys = list(self.keys)
        if not self.aggregations:
            raise PlanValidationError("GroupSummarize operation must specify at least one aggregation")
        for name, aggregation in self.aggregations.items():
            if not isinstance(aggregation, Aggregation):
                raise PlanValidationError(
                    f"Aggregation {name!r} must be an Aggregation, got {aggregation!r}"
                )

    def describe(self) -> str:
        aggs = {name: str(a) for name, a in self.aggregations.items()}
        return f"GroupSummarize(keys={self.keys}, aggregations={aggs})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "group_summarize",
            "keys": self.keys,
            "aggregations": {name: a.to_dict() for name, a in self.aggregations.items()},
            "input": self.inputs[0].to_dict(),
        }

    @classmethod
    def _from_kwargs(cls, kwargs):
        kwargs["aggregations"] = {
            name: Aggregation.from_dict(a) for name, a in kwargs.get("aggregations", {}).items()
        }
        return cls(**kwargs)


@dataclass
class Gather(Operation):
    """Wide-to-long reshaping."""

    key: str = "key"
    value: str = "value"
    columns: Any = None
    na_rm: bool = False
    coerce: Optional[bool] = None
    input: Optional[Operation] = field(default=None, repr=False)

    def __post_init__(self):
        self.inputs = _resolve_inputs(self.inputs, input=self.input)
        self.input = None
        _expect_inputs(self, 1)
        if self.columns is None or self.columns == []:
            raise PlanValidationError("Gather operation must specify columns to gather")
        if not self.key or not self.value:
            raise PlanValidationError("Gather operation must name its key and value columns")
        self.columns = as_selector(self.columns)

    def describe(self) -> str:
        return f"Gather(key='{self.key}', value='{self.value}', columns={self.columns!r})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "gather",
            "key": self.key,
            "value": self.value,
            "columns": self.columns.to_dict(),
            "na_rm": self.na_rm,
            "coerce": self.coerce,
            "input": self.inputs[0].to_dict(),
        }

    @classmethod
    def _from_kwargs(cls, kwargs):
        kwargs["columns"] = Selector.from_dict(kwargs["columns"])
        return cls(**kwargs)


@dataclass
class Spread(Operation):
    """Long-to-wide reshaping."""

    key: str = "key"
    value: str = "value"
    fill: Any = NA
    aggregate: TypingUnion[Aggregation, str, Callable[[List[Any]], Any], None] = None
    input: Optional[Operation] = field(default=None, repr=False)

    def __post_init__(self):
        self.inputs = _resolve_inputs(self.inputs, input=self.input)
        self.input = None
        _expect_inputs(self, 1)
        if not self.key or not self.value:
            raise PlanValidationError("Spread operation must name its key and value columns")
        if self.fill is None:
            self.fill = NA

    def describe(self) -> str:
        desc = f"Spread(key='{self.key}', value='{self.value}'"
        if self.aggregate is not None:
            desc += f", aggregate={_describe_aggregate(self.aggregate)}"
        return desc + ")"

    def to_dict(self) -> Dict[str, Any]:
        aggregate = self.aggregate
        if isinstance(aggregate, Aggregation):
            aggregate = aggregate.to_dict()
        elif aggregate is not None and not isinstance(aggregate, str):
            raise UnsupportedOperationError(
                "Spread uses a Python callable aggregate; only Aggregation or "
                "named aggregates can be serialized"
            )
        return {
            "type": "spread",
            "key": self.key,
            "value": self.value,
            "fill": None if self.fill is NA else self.fill,
            "aggregate": aggregate,
            "input": self.inputs[0].to_dict(),
        }

    @classmethod
    def _from_kwargs(cls, kwargs):
        if isinstance(kwargs.get("aggregate"), Mapping):
            kwargs["aggregate"] = Aggregation.from_dict(kwargs["aggregate"])
        return cls(**kwargs)


def _describe_aggregate(aggregate: Any) -> str:
    if isinstance(aggregate, (Aggregation, str)):
        return str(aggregate)
    return _describe_fn(aggregate)


_TYPE_MAP = {
    "source": Source,
    "select": Select,
    "rename": Rename,
    "filter": Filter,
    "distinct": Distinct,
    "limit": Limit,
    "sort": Sort,
    "with_column": WithColumn,
    "union": Union,
    "join": Join,
    "group_summarize": GroupSummarize,
    "gather": Gather,
    "spread": Spread,
}
