"""
Engine options.

Options hold engine-wide defaults. Keyword arguments passed to an operation
always take precedence over the options set here.

Initial values can be overridden through environment variables:

    TIDYFRAME_GATHER_TYPE_POLICY  "error" (default) or "coerce"
    TIDYFRAME_MISSING_KEY_LABEL   column label spread uses for a missing key
"""

import os
from contextlib import contextmanager
from dataclasses import dataclass, fields, replace
from typing import Any, Iterator

GATHER_TYPE_POLICIES = ("error", "coerce")


@dataclass
class Options:
    gather_type_policy: str = "error"
    missing_key_label: str = "NA"

    def __post_init__(self):
        if self.gather_type_policy not in GATHER_TYPE_POLICIES:
            raise ValueError(
                f"gather_type_policy must be one of {GATHER_TYPE_POLICIES}, "
                f"got: {self.gather_type_policy!r}"
            )
        if not isinstance(self.missing_key_label, str) or not self.missing_key_label:
            raise ValueError("missing_key_label must be a non-empty string")


def _from_environment() -> Options:
    kwargs = {}
    policy = os.getenv("TIDYFRAME_GATHER_TYPE_POLICY")
    if policy:
        kwargs["gather_type_policy"] = policy.strip().lower()
    label = os.getenv("TIDYFRAME_MISSING_KEY_LABEL")
    if label:
        kwargs["missing_key_label"] = label
    return Options(**kwargs)


_options = _from_environment()
_NAMES = {f.name for f in fields(Options)}


def _check_name(name: str) -> None:
    if name not in _NAMES:
        raise KeyError(f"Unknown option: {name!r} (known: {sorted(_NAMES)})")


def get_option(name: str) -> Any:
    """Return the current value of an option."""
    _check_name(name)
    return getattr(_options, name)


def set_option(name: str, value: Any) -> None:
    """Set an option globally. The new value is validated immediately."""
    global _options
    _check_name(name)
    _options = replace(_options, **{name: value})


def reset_options() -> None:
    """Restore every option to its default (environment overrides included)."""
    global _options
    _options = _from_environment()


@contextmanager
def option_context(**overrides: Any) -> Iterator[Options]:
    """Temporarily override options within a ``with`` block.

    Example:
        >>> with option_context(gather_type_policy="coerce"):
        ...     long = gather(table, "field", "value", everything())
    """
    global _options
    for name in overrides:
        _check_name(name)
    saved = _options
    _options = replace(_options, **overrides)
    try:
        yield _options
    finally:
        _options = saved
