"""
Plan serialization utilities.

Provides JSON serialization and deserialization for logical plans and
pipelines. The serialized format includes versioning for forward
compatibility. Table data bound to sources is never serialized, only schemas,
and only Expression-based steps can be represented.
"""

import json
from typing import Any, Dict, Union

from ..algebra.logical_plan import LogicalPlan
from ..algebra.operations import Operation
from ..exceptions import PlanValidationError
from ..pipeline import Pipeline


# Current serialization format version
SERIALIZATION_VERSION = "1.0"


def serialize(plan: Union[LogicalPlan, Pipeline]) -> Dict[str, Any]:
    """Serialize a logical plan (or a pipeline's plan) to a JSON-ready dict.

    Raises:
        TypeError: If plan is neither a LogicalPlan nor a Pipeline.
        UnsupportedOperationError: If a step uses a Python callable.

    Example:
        >>> data = serialize(Pipeline().select(["name"]))
        >>> data["version"]
        '1.0'
    """
    if isinstance(plan, Pipeline):
        plan = plan.plan
    if not isinstance(plan, LogicalPlan):
        raise TypeError(f"Expected LogicalPlan or Pipeline, got {type(plan)}")

    return {
        "version": SERIALIZATION_VERSION,
        "root": plan.root.to_dict()
    }


def deserialize(data: Dict[str, Any]) -> LogicalPlan:
    """Deserialize a logical plan from a dictionary.

    Raises:
        TypeError: If data is not a dictionary.
        PlanValidationError: If data is missing required fields, has an
            unsupported version, or describes an invalid operation.
    """
    if not isinstance(data, dict):
        raise TypeError(f"Expected dict, got {type(data)}")

    if "version" not in data:
        raise PlanValidationError("Serialized plan must have 'version' field")
    if "root" not in data:
        raise PlanValidationError("Serialized plan must have 'root' field")

    version = data["version"]
    if version != SERIALIZATION_VERSION:
        raise PlanValidationError(
            f"Unsupported serialization version: {version}. "
            f"Expected {SERIALIZATION_VERSION}"
        )

    try:
        root = Operation.from_dict(data["root"])
    except KeyError as e:
        raise PlanValidationError(f"Missing required field in operation: {e}") from e
    except (TypeError, ValueError) as e:
        if isinstance(e, PlanValidationError):
            raise
        raise PlanValidationError(f"Failed to deserialize root operation: {e}") from e

    return LogicalPlan(root)


def to_json(plan: Union[LogicalPlan, Pipeline], **kwargs) -> str:
    """Serialize a plan to a JSON string; ``kwargs`` go to ``json.dumps``."""
    return json.dumps(serialize(plan), **kwargs)


def from_json(json_str: str) -> LogicalPlan:
    """Deserialize a logical plan from a JSON string.

    Raises:
        PlanValidationError: If the JSON is malformed or the plan is invalid.
    """
    if not isinstance(json_str, str):
        raise TypeError(f"Expected str, got {type(json_str)}")

    try:
        data = json.loads(json_str)
    except json.JSONDecodeError as e:
        raise PlanValidationError(f"Invalid JSON: {e}") from e

    return deserialize(data)


def pipeline_from_json(json_str: str) -> Pipeline:
    """Rebuild a runnable Pipeline from ``to_json`` output."""
    return Pipeline(from_json(json_str))
