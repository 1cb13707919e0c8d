"""
Utility functions for tidyframe.

- serialization: JSON serialization/deserialization of plans and pipelines
"""

from .serialization import (
    serialize,
    deserialize,
    to_json,
    from_json,
    pipeline_from_json,
    SERIALIZATION_VERSION
)

__all__ = [
    'serialize',
    'deserialize',
    'to_json',
    'from_json',
    'pipeline_from_json',
    'SERIALIZATION_VERSION'
]
