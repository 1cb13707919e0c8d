"""
Expression nodes for row-level computations.

Expressions are used as filter predicates and computed-column definitions. They
form a small AST: Column references, Literal values, BinaryOp / UnaryOp for
arithmetic/comparison/logic, and FunctionCall for built-in functions. Unlike
plain Python callables, expressions can be validated against a schema before
any row is touched, and can be serialized.

Evaluation is per row and missing-aware: any comparison or arithmetic involving
``NA`` yields ``NA``, ``and``/``or`` follow three-valued logic, and division by
zero yields ``NA``.
"""

from __future__ import annotations

import operator
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Set

import numpy as np

from tidyframe.core.types import NA, normalize_value


def _wrap(other: Any) -> "Expression":
    """Promote a plain Python value to a Literal when needed."""
    if isinstance(other, Expression):
        return other
    return Literal(value=other)


@dataclass(eq=False)
class Expression:
    """Base class for all expression types.

    Supports Python operators so you can write ``col("members") > 100`` and get
    back a ``BinaryOp`` AST node.
    """

    # Arithmetic
    def __add__(self, other: Any) -> "BinaryOp":
        return BinaryOp(op="+", left=self, right=_wrap(other))

    def __radd__(self, other: Any) -> "BinaryOp":
        return BinaryOp(op="+", left=_wrap(other), right=self)

    def __sub__(self, other: Any) -> "BinaryOp":
        return BinaryOp(op="-", left=self, right=_wrap(other))

    def __rsub__(self, other: Any) -> "BinaryOp":
        return BinaryOp(op="-", left=_wrap(other), right=self)

    def __mul__(self, other: Any) -> "BinaryOp":
        return BinaryOp(op="*", left=self, right=_wrap(other))

    def __rmul__(self, other: Any) -> "BinaryOp":
        return BinaryOp(op="*", left=_wrap(other), right=self)

    def __truediv__(self, other: Any) -> "BinaryOp":
        return BinaryOp(op="/", left=self, right=_wrap(other))

    def __rtruediv__(self, other: Any) -> "BinaryOp":
        return BinaryOp(op="/", left=_wrap(other), right=self)

    def __mod__(self, other: Any) -> "BinaryOp":
        return BinaryOp(op="%", left=self, right=_wrap(other))

    def __neg__(self) -> "UnaryOp":
        return UnaryOp(op="neg", operand=self)

    # Comparison operators build BinaryOp nodes, not Python bools
    def __gt__(self, other: Any) -> "BinaryOp":
        return BinaryOp(op=">", left=self, right=_wrap(other))

    def __ge__(self, other: Any) -> "BinaryOp":
        return BinaryOp(op=">=", left=self, right=_wrap(other))

    def __lt__(self, other: Any) -> "BinaryOp":
        return BinaryOp(op="<", left=self, right=_wrap(other))

    def __le__(self, other: Any) -> "BinaryOp":
        return BinaryOp(op="<=", left=self, right=_wrap(other))

    def __eq__(self, other: Any) -> "BinaryOp":  # type: ignore[override]
        return BinaryOp(op="==", left=self, right=_wrap(other))

    def __ne__(self, other: Any) -> "BinaryOp":  # type: ignore[override]
        return BinaryOp(op="!=", left=self, right=_wrap(other))

    # Logical (bitwise operators used as logical, like dplyr and pandas)
    def __and__(self, other: Any) -> "BinaryOp":
        return BinaryOp(op="and", left=self, right=_wrap(other))

    def __or__(self, other: Any) -> "BinaryOp":
        return BinaryOp(op="or", left=self, right=_wrap(other))

    def __invert__(self) -> "UnaryOp":
        return UnaryOp(op="not", operand=self)

    __hash__ = object.__hash__

    def isin(self, values: Any) -> "BinaryOp":
        return BinaryOp(op="in", left=self, right=Literal(value=list(values)))

    def is_na(self) -> "FunctionCall":
        return FunctionCall(func="is_na", args=[self])

    def evaluate(self, row: Mapping[str, Any]) -> Any:
        return evaluate(self, row)

    # Serialization
    def to_dict(self) -> Dict[str, Any]:
        raise NotImplementedError(
            f"to_dict not implemented for {self.__class__.__name__}"
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Expression":
        type_name = data.get("type")
        type_map: dict[str, type] = {
            "column": Column,
            "literal": Literal,
            "binary_op": BinaryOp,
            "unary_op": UnaryOp,
            "function_call": FunctionCall,
        }
        target = type_map.get(type_name)
        if target is None:
            raise ValueError(f"Unknown expression type: {type_name}")
        return target._from_dict(data)  # type: ignore[attr-defined]


@dataclass(eq=False)
class Column(Expression):
    """Reference to a named column."""

    name: str = ""

    def __str__(self) -> str:
        return self.name

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "column", "name": self.name}

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "Column":
        return cls(name=data["name"])


@dataclass(eq=False)
class Literal(Expression):
    """A constant value. ``Literal(42)`` and ``Literal(value=42)`` both work."""

    value: Any = None

    def __str__(self) -> str:
        return repr(self.value)

    def to_dict(self) -> Dict[str, Any]:
        value = None if self.value is NA else self.value
        return {"type": "literal", "value": value}

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "Literal":
        return cls(value=data["value"])


@dataclass(eq=False)
class BinaryOp(Expression):
    """Binary operation (arithmetic, comparison, membership or logical)."""

    op: str = ""
    left: Expression = field(default_factory=Literal)
    right: Expression = field(default_factory=Literal)

    def __str__(self) -> str:
        return f"({self.left} {self.op} {self.right})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "binary_op",
            "op": self.op,
            "left": self.left.to_dict(),
            "right": self.right.to_dict(),
        }

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "BinaryOp":
        return cls(
            op=data["op"],
            left=Expression.from_dict(data["left"]),
            right=Expression.from_dict(data["right"]),
        )


@dataclass(eq=False)
class UnaryOp(Expression):
    """Unary operation (negation, logical NOT)."""

    op: str = ""
    operand: Expression = field(default_factory=Literal)

    def __str__(self) -> str:
        return f"({self.op} {self.operand})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "unary_op",
            "op": self.op,
            "operand": self.operand.to_dict(),
        }

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "UnaryOp":
        return cls(
            op=data["op"],
            operand=Expression.from_dict(data["operand"]),
        )


@dataclass(eq=False)
class FunctionCall(Expression):
    """Application of a named built-in function to argument expressions."""

    func: str = ""
    args: List[Expression] = field(default_factory=list)

    def __str__(self) -> str:
        args_str = ", ".join(str(a) for a in self.args)
        return f"{self.func}({args_str})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "function_call",
            "func": self.func,
            "args": [a.to_dict() for a in self.args],
        }

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "FunctionCall":
        return cls(
            func=data["func"],
            args=[Expression.from_dict(a) for a in data.get("args", [])],
        )


def col(name: str) -> Column:
    """Create a Column reference expression.

    Example:
        >>> c = col("members")
        >>> pred = c > 100          # BinaryOp(op='>', left=Column('members'), right=Literal(100))
    """
    return Column(name=name)


def lit(value: Any) -> Literal:
    return Literal(value=value)


def func(name: str, *args: Any) -> FunctionCall:
    """Call a built-in function, e.g. ``func("round", col("share"), 2)``."""
    if name not in _BUILTIN_FUNCS:
        raise ValueError(f"Unknown function: {name!r}")
    return FunctionCall(func=name, args=[_wrap(a) for a in args])


# ----------------------------------------------------------------------
# Evaluation
# ----------------------------------------------------------------------

_COMPARE_OPS: dict[str, Any] = {
    ">": operator.gt,
    "<": operator.lt,
    ">=": operator.ge,
    "<=": operator.le,
    "==": operator.eq,
    "!=": operator.ne,
}

_ARITH_OPS: dict[str, Any] = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": operator.truediv,
    "%": operator.mod,
}


def _numeric(fn):
    def apply(x, *rest):
        if x is NA or any(r is NA for r in rest):
            return NA
        with np.errstate(all="ignore"):
            return normalize_value(fn(x, *rest))
    return apply


def _coalesce(*values):
    for value in values:
        if value is not NA:
            return value
    return NA


def _string(fn):
    def apply(x):
        return NA if x is NA else fn(x)
    return apply


_BUILTIN_FUNCS: dict[str, Any] = {
    "abs": _numeric(np.abs),
    "round": _numeric(np.round),
    "sqrt": _numeric(np.sqrt),
    "log": _numeric(np.log),
    "exp": _numeric(np.exp),
    "floor": _numeric(np.floor),
    "ceil": _numeric(np.ceil),
    "lower": _string(str.lower),
    "upper": _string(str.upper),
    "str_len": _string(len),
    "is_na": lambda x: x is NA,
    "coalesce": _coalesce,
}


def _and(lval: Any, rval: Any) -> Any:
    if lval is False or rval is False:
        return False
    if lval is NA or rval is NA:
        return NA
    return bool(lval) and bool(rval)


def _or(lval: Any, rval: Any) -> Any:
    if lval is True or rval is True:
        return True
    if lval is NA or rval is NA:
        return NA
    return bool(lval) or bool(rval)


def evaluate(expr: Expression, row: Mapping[str, Any]) -> Any:
    """Evaluate an Expression AST against one row mapping."""
    match expr:
        case Column(name=name):
            return row[name]

        case Literal(value=value):
            return normalize_value(value)

        case BinaryOp(op="and", left=left, right=right):
            return _and(evaluate(left, row), evaluate(right, row))

        case BinaryOp(op="or", left=left, right=right):
            return _or(evaluate(left, row), evaluate(right, row))

        case BinaryOp(op=op, left=left, right=right):
            lval = evaluate(left, row)
            rval = evaluate(right, row)
            if op == "in":
                return NA if lval is NA else lval in rval
            if lval is NA or rval is NA:
                return NA
            if op in _COMPARE_OPS:
                return _COMPARE_OPS[op](lval, rval)
            if op in _ARITH_OPS:
                if op in ("/", "%") and rval == 0:
                    return NA
                return _ARITH_OPS[op](lval, rval)
            raise ValueError(f"Unknown binary operator: {op!r}")

        case UnaryOp(op="neg", operand=operand):
            value = evaluate(operand, row)
            return NA if value is NA else -value

        case UnaryOp(op="not", operand=operand):
            value = evaluate(operand, row)
            return NA if value is NA else not value

        case FunctionCall(func=name, args=args):
            if name not in _BUILTIN_FUNCS:
                raise ValueError(f"Unknown function: {name!r}")
            return _BUILTIN_FUNCS[name](*(evaluate(a, row) for a in args))

        case _:
            raise TypeError(f"Unknown expression type: {type(expr).__name__}")


def referenced_columns(expr: Expression) -> Set[str]:
    """Names of every column an expression reads."""
    match expr:
        case Column(name=name):
            return {name}
        case BinaryOp(left=left, right=right):
            return referenced_columns(left) | referenced_columns(right)
        case UnaryOp(operand=operand):
            return referenced_columns(operand)
        case FunctionCall(args=args):
            result: Set[str] = set()
            for arg in args:
                result |= referenced_columns(arg)
            return result
        case _:
            return set()
