"""
babysim/utils.py
~~~~~~~~~~~~~~~~
Small numeric and identifier helpers shared by every engine module.
"""

from __future__ import annotations

import math

# Products such as 10 * 1.1 land a hair above the integer in binary floating
# point; rounding first keeps ceil/floor on the intended side.
_ROUNDING_DIGITS = 9


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    """Clamp ``value`` into ``[low, high]``."""
    return max(low, min(high, value))


def ceil_int(value: float) -> int:
    return math.ceil(round(value, _ROUNDING_DIGITS))


def floor_int(value: float) -> int:
    return math.floor(round(value, _ROUNDING_DIGITS))


def truncate_int(value: float) -> int:
    """Round toward zero."""
    return math.trunc(round(value, _ROUNDING_DIGITS))


def reduce_with_floor(value: float, amount: float, floor: float) -> float:
    """
    Subtract ``amount`` but never push ``value`` below ``floor``.

    A value already at or under the floor is left where it is.
    """
    if value <= floor:
        return value
    return max(floor, value - amount)


def generate_child_id(family_prefix: str, family_child_counters: dict[str, int]) -> str:
    """Generate a unique child ID using the family prefix."""
    if family_prefix not in family_child_counters:
        family_child_counters[family_prefix] = 1
    else:
        family_child_counters[family_prefix] += 1
    return f"{family_prefix}_child_{family_child_counters[family_prefix]}"
