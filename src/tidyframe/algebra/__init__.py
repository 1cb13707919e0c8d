"""
Table algebra module.

This module defines the intermediate representation for table operations. The
algebra provides a composable, serializable representation of transformations
that the eager executor runs against the engine.

Key components:
- LogicalPlan: Container for the operation tree
- Operation classes: Source, Select, Rename, Filter, Distinct, Limit, Sort,
                     WithColumn, Union, Join, GroupSummarize, Gather, Spread
- Expression AST: Column, Literal, BinaryOp, UnaryOp, FunctionCall
"""

from tidyframe.core.expressions import (
    Expression,
    Column,
    Literal,
    BinaryOp,
    UnaryOp,
    FunctionCall,
    col,
    lit,
    func,
)
from .logical_plan import LogicalPlan
from .operations import (
    Operation,
    Source,
    Select,
    Rename,
    Filter,
    Distinct,
    Limit,
    Sort,
    WithColumn,
    Union,
    Join,
    GroupSummarize,
    Gather,
    Spread,
)
from .eager import execute

__all__ = [
    "LogicalPlan",
    "Operation",
    "Source",
    "Select",
    "Rename",
    "Filter",
    "Distinct",
    "Limit",
    "Sort",
    "WithColumn",
    "Union",
    "Join",
    "GroupSummarize",
    "Gather",
    "Spread",
    "Expression",
    "Column",
    "Literal",
    "BinaryOp",
    "UnaryOp",
    "FunctionCall",
    "col",
    "lit",
    "func",
    "execute",
]
