"""
Aggregation factories.

Intended to be used as a namespace, since several names shadow builtins:

    >>> from tidyframe import agg
    >>> group_summarize(churches, "denomination", {
    ...     "churches": agg.n(),
    ...     "members": agg.sum("members", na_rm=True),
    ... })
"""

from tidyframe.engine.aggregations import Aggregation


def n() -> Aggregation:
    """Number of rows in the group."""
    return Aggregation("n")


def count(column: str) -> Aggregation:
    """Number of non-missing values of ``column``."""
    return Aggregation("count", column)


def n_distinct(column: str, na_rm: bool = False) -> Aggregation:
    return Aggregation("n_distinct", column, na_rm)


def sum(column: str, na_rm: bool = False) -> Aggregation:
    return Aggregation("sum", column, na_rm)


def mean(column: str, na_rm: bool = False) -> Aggregation:
    return Aggregation("mean", column, na_rm)


def median(column: str, na_rm: bool = False) -> Aggregation:
    return Aggregation("median", column, na_rm)


def min(column: str, na_rm: bool = False) -> Aggregation:
    return Aggregation("min", column, na_rm)


def max(column: str, na_rm: bool = False) -> Aggregation:
    return Aggregation("max", column, na_rm)


def first(column: str, na_rm: bool = False) -> Aggregation:
    return Aggregation("first", column, na_rm)


def last(column: str, na_rm: bool = False) -> Aggregation:
    return Aggregation("last", column, na_rm)
