"""
Logical plan representation for table operations.

The LogicalPlan class wraps the root operation of an algebra tree and provides
methods for introspection, serialization, and debugging.
"""

from typing import Any, Dict, List, Optional

from tidyframe.core.table import Table
from .operations import Operation


class LogicalPlan:
    """Logical plan for table operations.

    A LogicalPlan wraps the root operation of an algebra tree. The tree is built
    by composing operations, with each operation referencing its input
    operations.

    Attributes:
        root: The root operation of the plan (final result)

    Example:
        >>> source = Source(source_id="churches.csv")
        >>> filtered = Filter(predicate=col("members") > 100, inputs=[source])
        >>> plan = LogicalPlan(Select(columns=["name"], inputs=[filtered]))
        >>> print(plan.explain())
    """

    def __init__(self, root: Operation):
        if not isinstance(root, Operation):
            raise TypeError(f"Plan root must be an Operation, got {type(root)}")
        self._root = root

    @property
    def root(self) -> Operation:
        return self._root

    def execute(self, source: Optional[Table] = None) -> Table:
        """Run the plan eagerly, binding ``source`` to placeholder sources."""
        from .eager import execute
        return execute(self._root, source)

    def steps(self) -> List[Operation]:
        """Operations along the main (first-input) chain, leaf first."""
        chain = []
        op = self._root
        while True:
            chain.append(op)
            if not op.inputs:
                break
            op = op.inputs[0]
        chain.reverse()
        return chain

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the plan to a dictionary.

        Returns the root operation's dict directly so ``plan.to_dict()["type"]``
        gives the root operation type.
        """
        return self._root.to_dict()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LogicalPlan':
        """Deserialize a plan from a dictionary.

        Accepts either a wrapped ``{"root": ...}`` dict or the root operation
        dict directly (must have a ``"type"`` key).
        """
        if 'root' in data:
            root = Operation.from_dict(data['root'])
        elif 'type' in data:
            root = Operation.from_dict(data)
        else:
            raise ValueError("Plan dict must have 'root' or 'type' key")
        return cls(root)

    def explain(self) -> str:
        """Render the operation tree, root first, with its inputs indented below.

        Example output::

            Filter(predicate=(members > 100))
            └── Gather(key='year', value='members', columns=starts_with('members_'))
                └── Source(source_id='<input>')
        """
        lines: List[str] = []
        self._explain_operation(self._root, lines, prefix=None, is_last=True)
        return "\n".join(lines)

    def _explain_operation(self, op: Operation, lines: list, prefix: Optional[str], is_last: bool):
        if prefix is None:
            lines.append(op.describe())
            child_prefix = ""
        else:
            connector = "└── " if is_last else "├── "
            lines.append(prefix + connector + op.describe())
            child_prefix = prefix + ("    " if is_last else "│   ")

        for i, input_op in enumerate(op.inputs):
            self._explain_operation(input_op, lines, child_prefix, i == len(op.inputs) - 1)

    def copy(self) -> 'LogicalPlan':
        return LogicalPlan(self._root)

    def __repr__(self) -> str:
        return f"LogicalPlan(root={self._root.__class__.__name__})"

    def __str__(self) -> str:
        return self.explain()
