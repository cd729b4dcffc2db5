from __future__ import annotations

from .usagemodel import UnitFormat

UNKNOWN_SIZE = "?"


def nice_size(size: int | None, unit_format: UnitFormat, hide_zero: bool = False) -> str:
    """
    Format a byte count for the report.

    The size is rounded half up into the unit, grouped with thousands
    separators and right aligned to the unit's width.

    Args:
        size: The size in bytes. None or a negative value means unknown.
        unit_format: The divisor, suffix and width to use.
        hide_zero: Return an empty string when the rounded value is zero.

    Returns:
        The padded size, "?" for unknown sizes, or "" when suppressed.
    """
    if size is None or size < 0:
        return UNKNOWN_SIZE.rjust(unit_format.width)

    divisor = unit_format.divisor
    rounded = (size + divisor // 2) // divisor

    if rounded == 0 and hide_zero:
        return ""

    return f"{rounded:,}{unit_format.suffix}".rjust(unit_format.width)
