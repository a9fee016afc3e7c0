"""Recognise JSON text (RFC 7159) the way the file classifier does.

The scanner is deliberately lenient in a few places: trailing commas in
arrays are accepted, text after the first value is ignored, and the
letters after the first one of ``true``/``false``/``null`` are skipped
rather than compared.  A document only counts as JSON when it contains
at least one object or array.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass

__all__ = ["JsonCounts", "scan_json", "is_json", "describe_json"]

_MAX_LEVEL = 20

_SPACE = frozenset(b" \n\r\t")
_DIGITS = frozenset(b"0123456789")
_HEX = _DIGITS | frozenset(b"abcdefABCDEF")
_SIMPLE_ESCAPES = frozenset(b'"\\/bfnrt')
_CONSTANTS = {ord("t"): "true", ord("f"): "false", ord("n"): "null"}

_QUOTE = ord('"')
_BACKSLASH = ord("\\")


@dataclass(frozen=True)
class JsonCounts:
    """How many values of each kind a JSON document holds.

    ``arrays`` counts arrays seen as values; ``array_ends`` counts arrays
    whose closing bracket was reached.  Object keys are not counted as
    strings.
    """

    objects: int = 0
    arrays: int = 0
    strings: int = 0
    constants: int = 0
    numbers: int = 0
    array_ends: int = 0


class _NotJson(Exception):
    """Raised inside the scanner as soon as the input stops being JSON."""


class _Scanner:
    def __init__(self, data: bytes) -> None:
        self.data = data
        self.end = len(data)
        self.pos = 0
        self.counts: Counter[str] = Counter()

    def _at_end(self) -> bool:
        return self.pos >= self.end

    def _skip_space(self) -> None:
        while self.pos < self.end and self.data[self.pos] in _SPACE:
            self.pos += 1

    def _digits(self) -> bool:
        start = self.pos
        while self.pos < self.end and self.data[self.pos] in _DIGITS:
            self.pos += 1
        return self.pos > start

    def value(self, level: int) -> None:
        self._skip_space()
        if self._at_end() or level > _MAX_LEVEL:
            raise _NotJson
        lead = self.data[self.pos]
        self.pos += 1
        if lead == _QUOTE:
            self._string()
            kind = "strings"
        elif lead == ord("["):
            self._array(level + 1)
            kind = "arrays"
        elif lead == ord("{"):
            self._object(level + 1)
            kind = "objects"
        elif lead in _CONSTANTS:
            self._constant(_CONSTANTS[lead])
            kind = "constants"
        else:
            self.pos -= 1
            self._number()
            kind = "numbers"
        self.counts[kind] += 1
        self._skip_space()

    def _string(self) -> None:
        while not self._at_end():
            char = self.data[self.pos]
            self.pos += 1
            if char == 0:
                raise _NotJson
            if char == _QUOTE:
                return
            if char != _BACKSLASH:
                continue
            if self._at_end():
                raise _NotJson
            escape = self.data[self.pos]
            self.pos += 1
            if escape in _SIMPLE_ESCAPES:
                continue
            if escape != ord("u"):
                raise _NotJson
            hex_digits = self.data[self.pos:self.pos + 4]
            if len(hex_digits) < 4 or any(h not in _HEX for h in hex_digits):
                raise _NotJson
            self.pos += 4
        raise _NotJson

    def _array(self, level: int) -> None:
        while not self._at_end():
            if self.data[self.pos] == ord("]"):
                break
            self.value(level + 1)
            if self._at_end():
                raise _NotJson
            char = self.data[self.pos]
            if char == ord(","):
                self.pos += 1
                continue
            if char == ord("]"):
                break
            raise _NotJson
        else:
            raise _NotJson
        self.counts["array_ends"] += 1
        self.pos += 1

    def _object(self, level: int) -> None:
        while not self._at_end():
            self._skip_space()
            if self._at_end():
                raise _NotJson
            char = self.data[self.pos]
            self.pos += 1
            if char == ord("}"):
                return
            if char != _QUOTE:
                raise _NotJson
            self._string()
            self._skip_space()
            if self._at_end() or self.data[self.pos] != ord(":"):
                raise _NotJson
            self.pos += 1
            self.value(level + 1)
            if self._at_end():
                raise _NotJson
            char = self.data[self.pos]
            self.pos += 1
            if char == ord(","):
                continue
            if char == ord("}"):
                return
            raise _NotJson
        raise _NotJson

    def _number(self) -> None:
        if self._at_end():
            raise _NotJson
        if self.data[self.pos] == ord("-"):
            self.pos += 1
        got = self._digits()
        if not self._at_end():
            if self.data[self.pos] == ord("."):
                self.pos += 1
            got = self._digits() or got
            if not self._at_end() and got and self.data[self.pos] in b"eE":
                self.pos += 1
                got = False
                if not self._at_end():
                    if self.data[self.pos] in b"+-":
                        self.pos += 1
                    got = self._digits()
        if not got:
            raise _NotJson

    def _constant(self, word: str) -> None:
        # Only the length is checked: the remaining letters are skipped.
        needed = len(word) - 1
        if self.end - self.pos < needed:
            raise _NotJson
        self.pos += needed


def _as_bytes(data: bytes | bytearray | memoryview | str) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


def scan_json(data: bytes | bytearray | memoryview | str) -> JsonCounts | None:
    """Scan *data* and return its value counts, or None if it is not JSON."""
    scanner = _Scanner(_as_bytes(data))
    try:
        scanner.value(0)
    except _NotJson:
        return None
    counts = JsonCounts(**scanner.counts)
    if not (counts.array_ends or counts.objects):
        return None
    return counts


def is_json(data: bytes | bytearray | memoryview | str) -> bool:
    """Return True if *data* looks like a JSON document."""
    return scan_json(data) is not None


def describe_json(data: bytes | bytearray | memoryview | str,
                  mime: bool = False) -> str | None:
    """Return the classification text for *data*, or None if it is not JSON."""
    if not is_json(data):
        return None
    return "application/json" if mime else "JSON text data"