"""Guards for values read from the environment and from host responses."""

from __future__ import annotations

from typing import TypeVar

from prmetrics.exceptions import ValidationError

T = TypeVar("T")


def validate(value: T | None, name: str, method: str) -> T:
    """Return *value*, or raise a ValidationError naming the field and caller.

    ``None`` and the empty string are rejected. Zero and other falsy values are
    legitimate ids and counts, so they pass.
    """
    if value is None or value == "":
        raise ValidationError(name, method, value)
    return value
