"""
Column selectors.

A selector names a set of columns by name, by pattern, or by complement, and is
resolved against a concrete list of column names when an operation runs. Every
explicitly named column must exist; naming a column the table lacks raises
``ColumnNotFoundError`` instead of silently matching nothing.

Example:
    >>> starts_with("members_").resolve(["name", "members_1830", "members_1840"])
    ('members_1830', 'members_1840')
    >>> (-cols("name")).resolve(["name", "city", "members"])
    ('city', 'members')
"""

from __future__ import annotations

import re
from typing import Any, Dict, Iterable, Sequence, Tuple, Union

from tidyframe.exceptions import AmbiguousSelection, ColumnNotFoundError


class Selector:
    """Base class for all selectors."""

    def resolve(self, names: Sequence[str]) -> Tuple[str, ...]:
        raise NotImplementedError(
            f"resolve not implemented for {self.__class__.__name__}"
        )

    def __neg__(self) -> "Selector":
        return Complement(self)

    def __invert__(self) -> "Selector":
        return Complement(self)

    def __or__(self, other: Any) -> "Selector":
        return Combined((self, as_selector(other)))

    def to_dict(self) -> Dict[str, Any]:
        raise NotImplementedError(
            f"to_dict not implemented for {self.__class__.__name__}"
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Selector":
        kind = data.get("type")
        if kind == "names":
            return Names(tuple(data["names"]))
        if kind == "complement":
            return Complement(Selector.from_dict(data["selector"]))
        if kind == "pattern":
            return Pattern(data["how"], data["pattern"])
        if kind == "range":
            return Range(data["first"], data["last"])
        if kind == "everything":
            return Everything()
        if kind == "combined":
            return Combined(tuple(Selector.from_dict(s) for s in data["selectors"]))
        raise ValueError(f"Unknown selector type: {kind}")


class Names(Selector):
    """Explicit column names, resolved in the order given."""

    def __init__(self, names: Iterable[str]):
        self.names = tuple(dict.fromkeys(names))

    def resolve(self, names: Sequence[str]) -> Tuple[str, ...]:
        available = set(names)
        missing = [n for n in self.names if n not in available]
        if missing:
            raise ColumnNotFoundError(missing, names)
        return self.names

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "names", "names": list(self.names)}

    def __repr__(self) -> str:
        return f"cols({', '.join(repr(n) for n in self.names)})"


class Complement(Selector):
    """Every column the wrapped selector does not match, in table order."""

    def __init__(self, selector: Selector):
        self.selector = selector

    def resolve(self, names: Sequence[str]) -> Tuple[str, ...]:
        excluded = set(self.selector.resolve(names))
        return tuple(n for n in names if n not in excluded)

    def __neg__(self) -> Selector:
        return self.selector

    __invert__ = __neg__

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "complement", "selector": self.selector.to_dict()}

    def __repr__(self) -> str:
        return f"-{self.selector!r}"


class Pattern(Selector):
    """Columns whose name starts with, ends with, or matches a pattern."""

    _HOWS = ("starts_with", "ends_with", "matches")

    def __init__(self, how: str, pattern: str):
        if how not in self._HOWS:
            raise ValueError(f"Pattern kind must be one of {self._HOWS}, got: {how}")
        self.how = how
        self.pattern = pattern
        self._regex = re.compile(pattern) if how == "matches" else None

    def _test(self, name: str) -> bool:
        if self.how == "starts_with":
            return name.startswith(self.pattern)
        if self.how == "ends_with":
            return name.endswith(self.pattern)
        return self._regex.search(name) is not None

    def resolve(self, names: Sequence[str]) -> Tuple[str, ...]:
        return tuple(n for n in names if self._test(n))

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "pattern", "how": self.how, "pattern": self.pattern}

    def __repr__(self) -> str:
        return f"{self.how}({self.pattern!r})"


class Range(Selector):
    """Inclusive positional range of columns, like ``first:last``."""

    def __init__(self, first: str, last: str):
        self.first = first
        self.last = last

    def resolve(self, names: Sequence[str]) -> Tuple[str, ...]:
        names = list(names)
        missing = [n for n in (self.first, self.last) if n not in names]
        if missing:
            raise ColumnNotFoundError(missing, names)
        i, j = names.index(self.first), names.index(self.last)
        if i > j:
            i, j = j, i
        return tuple(names[i:j + 1])

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "range", "first": self.first, "last": self.last}

    def __repr__(self) -> str:
        return f"between({self.first!r}, {self.last!r})"


class Everything(Selector):
    def resolve(self, names: Sequence[str]) -> Tuple[str, ...]:
        return tuple(names)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "everything"}

    def __repr__(self) -> str:
        return "everything()"


class Combined(Selector):
    """Union of several selectors, in order of first match."""

    def __init__(self, selectors: Iterable[Selector]):
        self.selectors = tuple(selectors)

    def resolve(self, names: Sequence[str]) -> Tuple[str, ...]:
        result: Dict[str, None] = {}
        for selector in self.selectors:
            result.update(dict.fromkeys(selector.resolve(names)))
        return tuple(result)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "combined", "selectors": [s.to_dict() for s in self.selectors]}

    def __repr__(self) -> str:
        return " | ".join(repr(s) for s in self.selectors)


SelectorLike = Union[Selector, str, Sequence[str]]


def as_selector(value: SelectorLike) -> Selector:
    """Coerce a column name or list of names to a Selector."""
    if isinstance(value, Selector):
        return value
    if isinstance(value, str):
        return Names((value,))
    if isinstance(value, (list, tuple)):
        if not all(isinstance(v, str) for v in value):
            raise TypeError(f"Column lists must contain only strings, got {value!r}")
        return Names(value)
    raise TypeError(f"Expected a selector, column name or list of names, got {type(value).__name__}")


def resolve_nonempty(selector: SelectorLike, names: Sequence[str], what: str) -> Tuple[str, ...]:
    """Resolve ``selector`` and raise AmbiguousSelection if nothing matched."""
    resolved = as_selector(selector).resolve(names)
    if not resolved:
        raise AmbiguousSelection(f"{what}: selector {selector!r} matched no columns")
    return resolved


def cols(*names: str) -> Selector:
    return Names(names)


def exclude(*names: str) -> Selector:
    """All columns except ``names``."""
    return Complement(Names(names))


def starts_with(prefix: str) -> Selector:
    return Pattern("starts_with", prefix)


def ends_with(suffix: str) -> Selector:
    return Pattern("ends_with", suffix)


def matches(regex: str) -> Selector:
    return Pattern("matches", regex)


def between(first: str, last: str) -> Selector:
    return Range(first, last)


def everything() -> Selector:
    return Everything()
