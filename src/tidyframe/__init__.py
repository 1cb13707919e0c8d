"""
tidyframe - an in-memory tidy-data engine.

Tables are immutable, typed, column-oriented values. Reshaping (gather and
spread) and relational operations (select, filter, arrange, mutate,
group_summarize, join) are pure functions from Tables to Tables, and a
Pipeline chains them into a reusable, fail-fast transformation.

Usage:
    >>> import tidyframe as tf
    >>> churches = tf.read_csv("churches.csv")
    >>> long = tf.gather(churches, "year", "members", tf.starts_with("members_"))
    >>> summary = tf.group_summarize(long, "year", {"total": tf.agg.sum("members")})

Key components:
- Table: the immutable table value
- engine: gather/spread and the relational operations
- Pipeline / pipe: fail-fast composition of operations
- LogicalPlan: the serializable operation tree behind a Pipeline
"""

import logging

from . import agg
from .algebra import LogicalPlan
from .config import get_option, option_context, reset_options, set_option
from .core import (
    BOOLEAN,
    FLOAT,
    INTEGER,
    NA,
    STRING,
    DType,
    Kind,
    Rows,
    Selector,
    Table,
    between,
    cols,
    ends_with,
    everything,
    exclude,
    is_missing,
    matches,
    starts_with,
)
from .core.expressions import col, func, lit
from .engine import (
    Aggregation,
    JoinType,
    SortDirection,
    arrange,
    count,
    desc,
    distinct,
    filter,
    gather,
    group_summarize,
    join,
    limit,
    mutate,
    rename,
    select,
    spread,
    union,
)
from .exceptions import *
from .io import from_pandas, read_csv, to_pandas
from .pipeline import Pipeline, pipe

logging.getLogger(__name__).addHandler(logging.NullHandler())

# Version
__version__ = "0.1.0"

# ``filter`` is importable as ``tidyframe.filter`` but left out of __all__ so a
# star import does not shadow the builtin.
__all__ = [
    'Table',
    'Rows',
    'DType',
    'Kind',
    'NA',
    'INTEGER',
    'FLOAT',
    'STRING',
    'BOOLEAN',
    'is_missing',
    'Selector',
    'cols',
    'exclude',
    'starts_with',
    'ends_with',
    'matches',
    'between',
    'everything',
    'col',
    'lit',
    'func',
    'agg',
    'Aggregation',
    'JoinType',
    'SortDirection',
    'gather',
    'spread',
    'select',
    'rename',
    'distinct',
    'limit',
    'arrange',
    'desc',
    'mutate',
    'union',
    'join',
    'group_summarize',
    'count',
    'Pipeline',
    'pipe',
    'LogicalPlan',
    'read_csv',
    'from_pandas',
    'to_pandas',
    'get_option',
    'set_option',
    'reset_options',
    'option_context',
]
