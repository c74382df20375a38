"""IEC binary size parsing for file size distribution buckets.

Accepts plain byte counts ("0", "1024") and binary units with an optional
space ("1 MiB", "10GiB"). Units are case sensitive, as in the IEC standard.
"""

import re

IEC_MULTIPLIERS: dict[str, int] = {
    "B": 1,
    "KiB": 1024,
    "MiB": 1024**2,
    "GiB": 1024**3,
    "TiB": 1024**4,
    "PiB": 1024**5,
}

_IEC_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([KMGTP]iB|B)?\s*$")


def parse_iec_size(value: str) -> float:
    """Parse an IEC size string into bytes.

    Args:
        value: Size like "0", "512", "1 MiB" or "1.5 GiB"

    Returns:
        Size in bytes as float (histogram bucket bounds are floats)

    Raises:
        ValueError: If the value is not a valid IEC size
    """
    match = _IEC_PATTERN.match(value)
    if not match:
        raise ValueError(
            f"Invalid size '{value}'. Expected a number with optional unit "
            f"({', '.join(IEC_MULTIPLIERS)})"
        )

    number, unit = match.groups()
    return float(number) * IEC_MULTIPLIERS[unit or "B"]
