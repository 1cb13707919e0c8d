"""
Pipeline composer.

A Pipeline is a chain of table operations recorded in a LogicalPlan whose leaf
is a placeholder Source. Running the pipeline binds the placeholder to an input
Table and executes each step in order, feeding each step's output to the next.

Execution is fail-fast: the first failing step aborts the chain and its
exception propagates unchanged. No partial result is ever returned.

Example:
    >>> membership = (
    ...     Pipeline()
    ...     .gather("year", "members", starts_with("members_"))
    ...     .mutate("year", lambda row: int(row["year"].split("_")[1]))
    ...     .filter(col("members") > 100)
    ...     .arrange("name", desc("year"))
    ... )
    >>> long = membership.run(churches)
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from tidyframe.algebra.eager import execute
from tidyframe.algebra.logical_plan import LogicalPlan
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
    Union as UnionOp,
    WithColumn,
)
from tidyframe.core.selectors import SelectorLike
from tidyframe.core.table import Table
from tidyframe.core.types import NA, DType
from tidyframe.engine.aggregations import Aggregation
from tidyframe.exceptions import TidyframeError

logger = logging.getLogger(__name__)

Step = Callable[[Table], Table]


class Pipeline:
    """Immutable chain of table operations.

    Every chaining method returns a new Pipeline, so a partially built
    pipeline can be reused as the prefix of several others.

    Args:
        plan: Existing plan to wrap (for internal use and deserialization).
        source_id: Label of the placeholder input, shown by ``explain()``.
    """

    def __init__(self, plan: Optional[LogicalPlan] = None, source_id: str = "<input>"):
        if plan is None:
            plan = LogicalPlan(Source(source_id=source_id))
        self._plan = plan

    @property
    def plan(self) -> LogicalPlan:
        return self._plan

    def _then(self, op_class: type, **kwargs: Any) -> "Pipeline":
        op = op_class(input=self._plan.root, **kwargs)
        return Pipeline(LogicalPlan(op))

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def select(self, columns: SelectorLike) -> "Pipeline":
        return self._then(Select, columns=columns)

    def rename(self, mapping: Optional[Mapping[str, str]] = None, **renames: str) -> "Pipeline":
        """Rename columns: ``rename({"old": "new"})`` or ``rename(old="new")``."""
        merged = dict(mapping or {})
        merged.update(renames)
        return self._then(Rename, mapping=merged)

    def filter(self, predicate: Any) -> "Pipeline":
        return self._then(Filter, predicate=predicate)

    def distinct(self, columns: Optional[SelectorLike] = None) -> "Pipeline":
        return self._then(Distinct, columns=columns)

    def limit(self, n: int, end: str = "head") -> "Pipeline":
        return self._then(Limit, count=n, end=end)

    def head(self, n: int = 5) -> "Pipeline":
        return self.limit(n, "head")

    def tail(self, n: int = 5) -> "Pipeline":
        return self.limit(n, "tail")

    def arrange(self, *keys: Union[str, Tuple[str, str]]) -> "Pipeline":
        return self._then(Sort, keys=list(keys))

    def mutate(
        self, name: str, compute: Any, *, dtype: Optional[Union[DType, str]] = None
    ) -> "Pipeline":
        return self._then(WithColumn, column=name, expression=compute, dtype=dtype)

    def union(self, other: Table) -> "Pipeline":
        """Append the rows of ``other`` below the current result."""
        return Pipeline(LogicalPlan(UnionOp(
            left=self._plan.root, right=Source(source_id="<union>", data=other)
        )))

    def join(
        self,
        right: Table,
        by: Union[str, Sequence[str]],
        how: str = "inner",
        *,
        suffixes: Optional[Tuple[str, str]] = None,
        right_id: str = "<right>",
    ) -> "Pipeline":
        """Join the current result (left) with ``right``."""
        return Pipeline(LogicalPlan(Join(
            left=self._plan.root,
            right=Source(source_id=right_id, data=right),
            on=by,
            join_type=how,
            suffixes=suffixes,
        )))

    def gather(
        self,
        key: str,
        value: str,
        columns: SelectorLike,
        *,
        na_rm: bool = False,
        coerce: Optional[bool] = None,
    ) -> "Pipeline":
        return self._then(Gather, key=key, value=value, columns=columns, na_rm=na_rm, coerce=coerce)

    def spread(self, key: str, value: str, *, fill: Any = NA, aggregate: Any = None) -> "Pipeline":
        return self._then(Spread, key=key, value=value, fill=fill, aggregate=aggregate)

    def group_summarize(
        self,
        keys: Union[str, Sequence[str], None],
        aggregations: Optional[Mapping[str, Aggregation]] = None,
        **named: Aggregation,
    ) -> "Pipeline":
        """Grouped aggregation; aggregations as a mapping and/or keyword arguments."""
        merged: Dict[str, Aggregation] = dict(aggregations or {})
        merged.update(named)
        return self._then(GroupSummarize, keys=list(_names(keys)), aggregations=merged)

    def count(self, keys: Union[str, Sequence[str], None] = None, name: str = "n") -> "Pipeline":
        return self.group_summarize(keys, {name: Aggregation("n")})

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def run(self, table: Table) -> Table:
        """Execute every step against ``table`` and return the final Table."""
        if not isinstance(table, Table):
            raise TypeError(f"Pipeline input must be a Table, got {type(table).__name__}")
        logger.debug("running pipeline of %d steps on %r", len(self), table)
        try:
            result = execute(self._plan.root, table)
        except TidyframeError as e:
            logger.debug("pipeline aborted: %s: %s", type(e).__name__, e)
            raise
        logger.debug("pipeline finished: %r", result)
        return result

    __call__ = run

    def steps(self) -> List[Operation]:
        """Operations after the input placeholder, in execution order."""
        return self._plan.steps()[1:]

    def explain(self) -> str:
        return self._plan.explain()

    def __len__(self) -> int:
        return len(self.steps())

    def __repr__(self) -> str:
        names = " -> ".join(op.__class__.__name__ for op in self.steps()) or "empty"
        return f"Pipeline({names})"


def _names(keys: Union[str, Sequence[str], None]) -> Sequence[str]:
    if keys is None:
        return []
    if isinstance(keys, str):
        return [keys]
    return keys


def pipe(table: Table, *steps: Step) -> Table:
    """Apply ``steps`` in order, each receiving the previous step's output.

    Steps are plain callables ``Table -> Table`` (``functools.partial`` of an
    engine function, a lambda, or a Pipeline). The first exception aborts the
    chain.

    Example:
        >>> pipe(churches,
        ...      partial(gather, key="year", value="members", columns=starts_with("members_")),
        ...      lambda t: filter(t, col("members") > 100))
    """
    result = table
    for index, step in enumerate(steps):
        try:
            result = step(result)
        except TidyframeError as e:
            logger.debug("pipe aborted at step %d (%r): %s", index, step, e)
            raise
        if not isinstance(result, Table):
            raise TypeError(
                f"pipe step {index} ({step!r}) returned {type(result).__name__}, expected Table"
            )
    return result
