"""Formatting of timestamps and MS-DOS date/time words, and warnings."""

from __future__ import annotations

import sys
import time

__all__ = [
    "format_datetime",
    "format_dos_date",
    "format_dos_time",
    "magic_warning",
]

INVALID_DATETIME = "*Invalid datetime*"

_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

_U64 = 1 << 64


def _signed64(value: int) -> int:
    value %= _U64
    return value - _U64 if value >= 1 << 63 else value


def format_datetime(value: int, local: bool = False) -> str:
    """Format a Unix timestamp in asctime form, without the newline.

    The value is taken as a 64-bit quantity and read as signed.  Times
    that cannot be represented give ``*Invalid datetime*``.
    """
    seconds = _signed64(value)
    convert = time.localtime if local else time.gmtime
    try:
        return time.asctime(convert(seconds))
    except (OverflowError, OSError, ValueError):
        return INVALID_DATETIME


def format_dos_date(value: int) -> str:
    """Format a 16-bit MS-DOS date word as ``Www, Mmm DD YYYY``.

    The fields are used as they are, without normalisation: the weekday
    is never computed and so always reads Sunday, and a month field
    outside 1..12 shows as ``?``.
    """
    value &= 0xFFFF
    day = value & 0x1F
    month = ((value >> 5) & 0xF) - 1
    year = (value >> 9) + 1980
    month_name = _MONTHS[month] if 0 <= month < len(_MONTHS) else "?"
    return f"Sun, {month_name} {day:02d} {year}"


def format_dos_time(value: int) -> str:
    """Format a 16-bit MS-DOS time word as ``HH:MM:SS``."""
    value &= 0xFFFF
    seconds = (value & 0x1F) * 2
    minutes = (value >> 5) & 0x3F
    hours = value >> 11
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def magic_warning(message: str, filename: str | None = None, line: int = 0) -> None:
    """Write a warning about a magic file to standard error."""
    sys.stdout.flush()
    prefix = f"{filename}, {line}: " if filename else ""
    sys.stderr.write(f"{prefix}Warning: {message}\n")