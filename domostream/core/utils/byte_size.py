"""Helpers for parsing byte-sized configuration values."""

import re

_UNIT_MULTIPLIERS = {
    "": 1,
    "b": 1,
    "k": 1024,
    "kb": 1024,
    "kib": 1024,
    "m": 1024**2,
    "mb": 1024**2,
    "mib": 1024**2,
}

_BYTE_VALUE = re.compile(r"^(\d+(?:\.\d+)?)\s*([a-z]*)$")


def parse_bytes(value: int | str) -> int:
    """Parse a byte quantity from an integer or unit-suffixed string.

    Supported string units (case-insensitive):
        b, k, kb, kib, m, mb, mib

    Args:
        value: Raw byte value as an ``int`` or string with an optional unit
            suffix, e.g. ``"750kb"`` or ``"1.5m"``.

    Returns:
        The parsed value in bytes.

    Raises:
        ValueError: If the input cannot be parsed or contains an unknown unit.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid byte value: {value!r}")
    if isinstance(value, int):
        return value

    match = _BYTE_VALUE.match(str(value).strip().lower())
    if match is None:
        raise ValueError(f"Invalid byte value: {value!r}")

    number, unit = match.groups()
    if unit not in _UNIT_MULTIPLIERS:
        raise ValueError(f"Unknown byte unit in value: {value!r}")

    return int(float(number) * _UNIT_MULTIPLIERS[unit])
