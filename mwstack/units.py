"""
mwstack: Duration and Size Helpers
====================================

What:  Converts human-readable configuration values into numbers and back.
Why:   Configuration sources carry values like "30s", "1m30s" or "2M"; the
       middleware needs a timedelta or a byte count.
How:   Small regex parsers, binary (1024-based) byte units.

Example Usage:
    >>> parse_duration("1m30s")
    datetime.timedelta(seconds=90)

    >>> size_to_bytes("2M")
    2097152

    >>> format_duration(0.0015)
    '1.5ms'
"""

import math
import re
from datetime import timedelta
from typing import Union

from mwstack.exceptions import InvalidDurationError, InvalidSizeError

DurationLike = Union[timedelta, int, float, str, None]

# ── Durations ─────────────────────────────────────────────────────────────

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,  # micro sign U+00B5
    "μs": 1e-6,  # greek mu U+03BC
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")
_NUMBER = re.compile(r"^[+-]?(\d+(?:\.\d*)?|\.\d+)$")


def parse_duration(value: DurationLike) -> timedelta:
    """
    Parse a duration into a timedelta.

    Accepted forms:
        - timedelta: returned as-is
        - int / float: seconds
        - "30" / "1.5": seconds
        - "300ms", "1m30s", "2h", "1.5s", "-5s": Go-style duration strings
        - None / "": zero

    Raises:
        InvalidDurationError: If the value cannot be parsed
    """
    if value is None:
        return timedelta(0)
    if isinstance(value, timedelta):
        return value
    if isinstance(value, bool):
        raise InvalidDurationError(value)
    if isinstance(value, (int, float)):
        if math.isnan(value) or math.isinf(value):
            raise InvalidDurationError(value)
        return timedelta(seconds=value)
    if not isinstance(value, str):
        raise InvalidDurationError(value)

    text = value.strip()
    if not text:
        return timedelta(0)

    if _NUMBER.match(text):
        return timedelta(seconds=float(text))

    sign = 1.0
    if text[0] in "+-":
        if text[0] == "-":
            sign = -1.0
        text = text[1:]

    # "0" is the only unit-less value Go accepts; handled by _NUMBER above
    pos = 0
    total = 0.0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            raise InvalidDurationError(value)
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()

    if pos == 0 or pos != len(text):
        raise InvalidDurationError(value)

    return timedelta(seconds=sign * total)


def _trim(value: float, digits: int) -> str:
    formatted = f"{value:.{digits}f}"
    if "." in formatted:
        formatted = formatted.rstrip("0").rstrip(".")
    return formatted


def format_duration(seconds: float) -> str:
    """
    Format elapsed seconds the way the access log prints latency.

    Examples:
        >>> format_duration(0.0000005)
        '500ns'
        >>> format_duration(0.0125)
        '12.5ms'
        >>> format_duration(90)
        '1m30s'
        >>> format_duration(0.9999999999)
        '1s'
    """
    # Round once, to whole nanoseconds, before choosing the unit
    ns = int(round(seconds * 1e9))
    if ns < 0:
        return "-" + format_duration(-seconds)
    if ns == 0:
        return "0s"
    if ns < 1000:
        return f"{ns}ns"
    if ns < 1000**2:
        return _trim(ns / 1e3, 3) + "µs"
    if ns < 1000**3:
        return _trim(ns / 1e6, 6) + "ms"

    whole, frac_ns = divmod(ns, 10**9)
    hours, rest = divmod(whole, 3600)
    minutes, secs = divmod(rest, 60)
    sec_text = _trim(secs + frac_ns / 1e9, 9) + "s"
    if not hours and not minutes:
        return sec_text
    out = f"{hours}h" if hours else ""
    return out + f"{minutes}m" + sec_text


# ── Sizes ─────────────────────────────────────────────────────────────────

BYTES_PER_KB = 1024
BYTES_PER_MB = 1024**2
BYTES_PER_GB = 1024**3
BYTES_PER_TB = 1024**4
BYTES_PER_PB = 1024**5
BYTES_PER_EB = 1024**6

_SIZE_UNITS = {
    "": 1,
    "B": 1,
    "K": BYTES_PER_KB,
    "M": BYTES_PER_MB,
    "G": BYTES_PER_GB,
    "T": BYTES_PER_TB,
    "P": BYTES_PER_PB,
    "E": BYTES_PER_EB,
}

_SIZE_PATTERN = re.compile(r"^(\d+(?:\.\d+)?)\s?([KMGTPE]B?|B?)$", re.IGNORECASE)


def size_to_bytes(text: str) -> int:
    """
    Parse a human-readable size into bytes.

    Units are binary and case-insensitive; the trailing "B" is optional.

    Examples:
        >>> size_to_bytes("2M")
        2097152
        >>> size_to_bytes("1.5KB")
        1536
        >>> size_to_bytes("100")
        100

    Raises:
        InvalidSizeError: If the string cannot be parsed
    """
    if not isinstance(text, str) or not text.strip():
        raise InvalidSizeError(text)

    match = _SIZE_PATTERN.match(text.strip())
    if not match:
        raise InvalidSizeError(text)

    unit = match.group(2).upper()[:1]
    return int(float(match.group(1)) * _SIZE_UNITS[unit])
