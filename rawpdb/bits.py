"""Bit manipulation helpers for block arithmetic."""

from __future__ import annotations


def is_power_of_two(value: int) -> bool:
    """Return whether a positive integer is a power of two."""
    if value <= 0:
        raise ValueError(f"expected a positive value, got {value}")
    return value & (value - 1) == 0


def round_up_to_multiple(value: int, multiple: int) -> int:
    """Round ``value`` up to the next multiple of a power of two."""
    if not is_power_of_two(multiple):
        raise ValueError(f"multiple must be a power of two, got {multiple}")
    return (value + multiple - 1) & ~(multiple - 1)


def find_first_set_bit(value: int) -> int:
    """Return the position of the lowest set bit (count of trailing zeros)."""
    if value <= 0:
        raise ValueError(f"expected a positive value, got {value}")
    return (value & -value).bit_length() - 1