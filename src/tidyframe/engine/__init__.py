"""
Table engine.

Pure functions over immutable Tables:
- reshape: gather (wide to long), spread (long to wide)
- relational: select, rename, filter, distinct, limit, arrange, mutate,
              union, join, group_summarize, count
- aggregations: the Aggregation value used by group_summarize and spread
"""

from .aggregations import Aggregation
from .reshape import gather, spread
from .relational import (
    JoinType,
    SortDirection,
    arrange,
    count,
    desc,
    distinct,
    filter,
    group_summarize,
    join,
    limit,
    mutate,
    rename,
    select,
    union,
)

__all__ = [
    "Aggregation",
    "gather",
    "spread",
    "JoinType",
    "SortDirection",
    "arrange",
    "count",
    "desc",
    "distinct",
    "filter",
    "group_summarize",
    "join",
    "limit",
    "mutate",
    "rename",
    "select",
    "union",
]
