"""Fixed-point integer arithmetic for token quantities.

All quantities, prices and reserves are int base units. No float, no Decimal.
A token's denomination is the number of fractional digits between the
human-readable decimal string and its base-unit integer.
"""

import re

from src.px_common.errors import InvalidFormatError

_DECIMAL_RE = re.compile(r"\d+(\.\d+)?")


def decimal_to_int(value: str, denomination: int) -> int:
    """Parse a decimal string into base units.

    Extra fractional digits are truncated, never rounded:
    decimal_to_int("1.239", 2) -> 123
    """
    if not _DECIMAL_RE.fullmatch(value):
        raise InvalidFormatError(value)
    int_part, _, dec_part = value.partition(".")
    return int(int_part + dec_part[:denomination].ljust(denomination, "0"))


def int_to_decimal(value: int, denomination: int) -> str:
    """Format base units as a decimal string: 1234500, 6 -> '1.2345'."""
    digits = str(value)
    if denomination == 0:
        return digits
    if len(digits) <= denomination:
        return f"0.{digits.rjust(denomination, '0')}"
    int_part = digits[:-denomination]
    dec_part = digits[-denomination:].rstrip("0")
    return f"{int_part}.{dec_part}" if dec_part else int_part


def round_to_tick(value: int, tick_size: int) -> int:
    """Round to the nearest tick, ties going up: (value + tick/2) // tick * tick."""
    return ((value + tick_size // 2) // tick_size) * tick_size


def to_bps(ratio: float) -> int:
    """Convert a ratio in [0, 1] to whole basis points, rounding half up."""
    return int(ratio * 10_000 + 0.5)
