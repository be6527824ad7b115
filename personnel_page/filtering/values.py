"""Coercion helpers shared by the validator, the compiler and custom field storage."""

import math
from typing import Any


def as_int(value: Any) -> int | None:
    """Return ``value`` as an integer, or None if it does not represent one."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def as_number(value: Any) -> int | float | None:
    """Return ``value`` as a finite number, or None if it is not numeric."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value if math.isfinite(value) else None
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
        return number if math.isfinite(number) else None
    return None


def as_text(value: Any) -> str:
    """Canonical text form of a scalar, as stored in ``custom_fields``.

    Integral floats lose their fraction so that ``5``, ``5.0`` and ``"5"``
    all compare equal as text.
    """
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
