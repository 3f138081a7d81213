"""Typed label keys, and the standard keys that mark the kinds of events."""

from __future__ import annotations

import math
import struct
from typing import Any, Optional

from gositools import label as _label
from gositools.label import Key, Label


def _go_print(value: Any) -> str:
    if value is None:
        return "<nil>"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _quote(text: str) -> str:
    """Quote ``text`` with double quotes and backslash escapes."""
    simple = {
        "\a": "\\a",
        "\b": "\\b",
        "\f": "\\f",
        "\n": "\\n",
        "\r": "\\r",
        "\t": "\\t",
        "\v": "\\v",
        "\\": "\\\\",
        '"': '\\"',
    }
    parts = ['"']
    for ch in text:
        if ch in simple:
            parts.append(simple[ch])
        elif ch.isprintable():
            parts.append(ch)
        else:
            code = ord(ch)
            if code < 0x80:
                parts.append(f"\\x{code:02x}")
            elif code < 0x10000:
                parts.append(f"\\u{code:04x}")
            else:
                parts.append(f"\\U{code:08x}")
    parts.append('"')
    return "".join(parts)


def _to_float32(value: float) -> float:
    try:
        packed = struct.pack("<f", value)
    except OverflowError:
        packed = struct.pack("<f", math.copysign(math.inf, value))
    return struct.unpack("<f", packed)[0]


def _format_float(value: float, bits: int) -> str:
    """Shortest exponent form that reads back to the same value at ``bits`` precision."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    max_digits = 9 if bits == 32 else 17
    for digits in range(1, max_digits + 1):
        text = f"{value:.{digits - 1}E}"
        parsed = float(text)
        if bits == 32:
            try:
                parsed = struct.unpack("<f", struct.pack("<f", parsed))[0]
            except OverflowError:
                continue
        if parsed == value:
            return text
    return f"{value:.{max_digits - 1}E}"


class Value(Key):
    """Key for values of any type."""

    def format(self, label: Label) -> str:
        return _go_print(self.from_label(label))

    def get(self, label_map: Any) -> Any:
        """Return the value for this key in ``label_map``, or None."""
        found = label_map.find(self)
        return self.from_label(found) if found.valid() else None

    def from_label(self, label: Label) -> Any:
        return label.unpack_value()

    def of(self, value: Any) -> Label:
        return _label.of_value(self, value)


class Tag(Key):
    """Key whose presence alone carries the information; it has no value."""

    def format(self, label: Label) -> str:
        return ""

    def new(self) -> Label:
        """Build a label with this key."""
        return _label.of_value(self, None)


class IntegerKey(Key):
    """Key for integers of a fixed width, packed into 64 bits."""

    bits = 64
    signed = True

    def format(self, label: Label) -> str:
        return str(self.from_label(label))

    def of(self, value: int) -> Label:
        return _label.of_64(self, int(value))

    def from_label(self, label: Label) -> int:
        mask = (1 << self.bits) - 1
        raw = label.unpack_64() & mask
        if self.signed and raw >= 1 << (self.bits - 1):
            raw -= 1 << self.bits
        return raw


class Int(IntegerKey):
    bits = 64
    signed = True


class Int8(IntegerKey):
    bits = 8
    signed = True


class Int16(IntegerKey):
    bits = 16
    signed = True


class Int32(IntegerKey):
    bits = 32
    signed = True


class Int64(IntegerKey):
    bits = 64
    signed = True


class UInt(IntegerKey):
    bits = 64
    signed = False


class UInt8(IntegerKey):
    bits = 8
    signed = False


class UInt16(IntegerKey):
    bits = 16
    signed = False


class UInt32(IntegerKey):
    bits = 32
    signed = False


class UInt64(IntegerKey):
    bits = 64
    signed = False


class FloatKey(Key):
    """Key for floating point values, packed as their IEEE bits."""

    bits = 64

    def format(self, label: Label) -> str:
        return _format_float(self.from_label(label), self.bits)

    def of(self, value: float) -> Label:
        if self.bits == 32:
            packed = struct.unpack("<I", struct.pack("<f", _to_float32(float(value))))[0]
        else:
            packed = struct.unpack("<Q", struct.pack("<d", float(value)))[0]
        return _label.of_64(self, packed)

    def from_label(self, label: Label) -> float:
        raw = label.unpack_64()
        if self.bits == 32:
            return struct.unpack("<f", struct.pack("<I", raw & 0xFFFFFFFF))[0]
        return struct.unpack("<d", struct.pack("<Q", raw))[0]


class Float32(FloatKey):
    bits = 32


class Float64(FloatKey):
    bits = 64


class String(Key):
    """Key for string values."""

    def format(self, label: Label) -> str:
        return _quote(self.from_label(label))

    def of(self, value: str) -> Label:
        return _label.of_string(self, value)

    def get(self, label_map: Any) -> str:
        """Return the string for this key in ``label_map``, or an empty string."""
        found = label_map.find(self)
        return self.from_label(found) if found.valid() else ""

    def from_label(self, label: Label) -> str:
        return label.unpack_string()


class Boolean(Key):
    """Key for boolean values."""

    def format(self, label: Label) -> str:
        return "true" if self.from_label(label) else "false"

    def of(self, value: bool) -> Label:
        return _label.of_64(self, 1 if value else 0)

    def from_label(self, label: Label) -> bool:
        return label.unpack_64() > 0


class Error(Key):
    """Key for exception values."""

    def format(self, label: Label) -> str:
        return str(self.from_label(label))

    def of(self, value: Optional[BaseException]) -> Label:
        return _label.of_value(self, value)

    def get(self, label_map: Any) -> Optional[BaseException]:
        """Return the exception for this key in ``label_map``, or None."""
        found = label_map.find(self)
        return self.from_label(found) if found.valid() else None

    def from_label(self, label: Label) -> Optional[BaseException]:
        value = label.unpack_value()
        return value if isinstance(value, BaseException) else None


MSG = String("message", "a readable message")
LABEL = Tag("label", "a label context marker")
START = String("start", "span start")
END = Tag("end", "a span end marker")
DETACH = Tag("detach", "a span detach marker")
ERR = Error("error", "an error that occurred")
METRIC = Tag("metric", "a metric event marker")