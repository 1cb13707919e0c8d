"""
Exception classes for tidyframe.

These exceptions are raised synchronously by the operation that detects the
problem. None of the engine operations have side effects, so every error is a
precise report of what was wrong with the inputs.
"""


class TidyframeError(Exception):
    """Base class for all tidyframe errors."""
    pass


class SchemaViolation(TidyframeError):
    """Raised when rows and the declared schema disagree.

    Examples:
        - A value whose type does not match its column's declared type
        - A missing value in a column that is not missing-capable
        - A row with more or fewer values than there are columns
        - Duplicate column names in a schema
    """
    pass


class ColumnNotFoundError(SchemaViolation):
    """Raised when an operation names a column the table does not have."""

    def __init__(self, missing, available=None):
        self.missing = list(missing)
        self.available = list(available) if available is not None else None
        message = f"non-existent columns: {self.missing}"
        if self.available is not None:
            message += f" (available: {self.available})"
        super().__init__(message)


class AmbiguousSelection(TidyframeError):
    """Raised when a column selector resolves to zero columns."""
    pass


class TypeConflict(TidyframeError):
    """Raised when values of incompatible types would share one column.

    The usual cause is gathering a string column together with a numeric
    column without asking for string coercion, or aggregating a column whose
    type the aggregation function does not support.
    """
    pass


class DuplicateKey(TidyframeError):
    """Raised when spread finds two values for the same output cell."""
    pass


class SchemaConflict(TidyframeError):
    """Raised when column names collide or join keys do not line up.

    Examples:
        - A join key missing from one side of the join
        - A non-key column present on both sides of a join
        - Gather key/value names clashing with identifier columns
        - Rename producing duplicate column names
    """
    pass


class MissingValueError(TidyframeError):
    """Raised when an aggregation meets a missing value without ``na_rm``."""
    pass


class LoadError(TidyframeError):
    """Raised when an external source cannot be loaded into a Table."""
    pass


class PlanValidationError(TidyframeError, ValueError):
    """Raised when a plan or operation node is malformed.

    Examples:
        - An operation constructed with the wrong number of inputs
        - A serialized plan with an unknown operation type or missing field
        - A pipeline executed with an unbound source
    """
    pass


class UnsupportedOperationError(TidyframeError):
    """Raised when a plan step cannot be represented in the requested form.

    Python callables used as predicates or computed columns execute fine but
    cannot be serialized; only Expression ASTs can.
    """
    pass
