"""Eager executor: evaluates an operation tree bottom-up with the table engine.

Every operation produces a concrete Table, so intermediate results can be
inspected, while the operation tree stays available for explanation and
serialization.
"""

from __future__ import annotations

from typing import Optional

from tidyframe.algebra.operations import (
    Distinct,
    Filter,
    Gather,
    GroupSummarize,
    Join,
    Limit,
    Operation,
    Rename,
    Select,
    Sort,
    Source,
    Spread,
    Union,
    WithColumn,
)
from tidyframe.core.table import Table
from tidyframe.engine import relational, reshape
from tidyframe.exceptions import PlanValidationError


def execute(op: Operation, source: Optional[Table] = None) -> Table:
    """Execute an operation tree, returning a Table.

    The first-input chain is walked iteratively from its leaf up to ``op``,
    so long pipelines do not grow the call stack. Right-hand inputs of Join
    and Union are executed on their own.

    Args:
        op: Root of the operation tree.
        source: Table bound to the placeholder Source (one without data) at
            the leaf of the first-input chain.

    Raises:
        PlanValidationError: If a Source without data is reached and no
            table is bound to it, e.g. the right side of a deserialized join.
    """
    chain = [op]
    while chain[-1].inputs:
        chain.append(chain[-1].inputs[0])
    leaf = chain.pop()
    if not isinstance(leaf, Source):
        raise TypeError(f"Unknown operation type: {type(leaf).__name__}")

    table = leaf.data if leaf.data is not None else source
    if table is None:
        raise PlanValidationError(
            f"Source {leaf.source_id!r} has no data for execution. "
            "Pass an input table when running the plan."
        )
    for step in reversed(chain):
        table = _apply(step, table)
    return table


def _apply(op: Operation, table: Table) -> Table:
    """Run one operation on the result of its first input."""
    match op:
        case Select(columns=columns):
            return relational.select(table, columns)

        case Rename(mapping=mapping):
            return relational.rename(table, mapping)

        case Filter(predicate=predicate):
            return relational.filter(table, predicate)

        case Distinct(columns=columns):
            return relational.distinct(table, columns)

        case Limit(count=n, end=end):
            return relational.limit(table, n, end)

        case Sort(keys=keys):
            return relational.arrange(table, *keys)

        case WithColumn(column=name, expression=expression, dtype=dtype):
            return relational.mutate(table, name, expression, dtype=dtype)

        # Right-hand inputs are never bound to the run's input table.
        case Union(inputs=[_, bottom]):
            return relational.union(table, execute(bottom))

        case Join(on=on, join_type=how, suffixes=suffixes, inputs=[_, right]):
            return relational.join(table, execute(right), on, how, suffixes=suffixes)

        case GroupSummarize(keys=keys, aggregations=aggregations):
            return relational.group_summarize(table, keys, aggregations)

        case Gather(key=key, value=value, columns=columns, na_rm=na_rm, coerce=coerce):
            return reshape.gather(table, key, value, columns, na_rm=na_rm, coerce=coerce)

        case Spread(key=key, value=value, fill=fill, aggregate=aggregate):
            return reshape.spread(table, key, value, fill=fill, aggregate=aggregate)

        case _:
            raise TypeError(f"Unknown operation type: {type(op).__name__}")
