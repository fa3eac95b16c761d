"""Equality, hashing and typing of JSON values as JSON Schema defines them.

JSON values are represented by ``None``, ``bool``, ``int``, ``float``,
``decimal.Decimal``, ``str``, lists or tuples, and string-keyed mappings.
Dataclass instances are treated as objects whose properties are their
public fields.
"""

from __future__ import annotations

import dataclasses
import hashlib
import math
import struct
from collections.abc import Mapping
from decimal import Decimal
from fractions import Fraction
from typing import Any, Optional

__all__ = ["equal", "hash_value", "json_number", "json_type"]

# Decimals with exponents beyond this are not converted to exact fractions;
# doing so would need enormous integers.
_MAX_DECIMAL_EXPONENT = 4096


def _is_numeric(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def _is_struct(value: Any) -> bool:
    return dataclasses.is_dataclass(value) and not isinstance(value, type)


def _public_fields(value: Any) -> list[dataclasses.Field]:
    return [f for f in dataclasses.fields(value) if not f.name.startswith("_")]


def json_number(value: Any) -> Optional[Fraction]:
    """Return ``value`` as an exact fraction, or None if it is not a finite number."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return Fraction(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        return Fraction(value)
    if isinstance(value, Decimal):
        if not value.is_finite():
            return None
        exponent = value.as_tuple().exponent
        if isinstance(exponent, int) and abs(exponent) > _MAX_DECIMAL_EXPONENT:
            return None
        return Fraction(value)
    return None


def json_type(value: Any) -> Optional[str]:
    """Return the JSON Schema type name of ``value``, or None if it is not JSON."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return "integer"
        return "number"
    if isinstance(value, Decimal):
        if value.is_finite() and value == value.to_integral_value():
            return "integer"
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, Mapping) or _is_struct(value):
        return "object"
    return None


def _kind(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if _is_numeric(value):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, Mapping):
        return "map"
    if _is_struct(value):
        return "struct"
    return "unsupported:" + type(value).__name__


def equal(x: Any, y: Any) -> bool:
    """Report whether two JSON values are equal, comparing numbers mathematically."""
    if _is_numeric(x) and _is_numeric(y):
        rx, ry = json_number(x), json_number(y)
        if rx is not None and ry is not None:
            return rx == ry
        return x == y
    kx, ky = _kind(x), _kind(y)
    if kx != ky:
        return False
    if kx == "null":
        return True
    if kx in ("boolean", "string"):
        return x == y
    if kx == "array":
        return len(x) == len(y) and all(equal(a, b) for a, b in zip(x, y))
    if kx == "map":
        if len(x) != len(y):
            return False
        return all(k in y and equal(v, y[k]) for k, v in x.items())
    if kx == "struct":
        if type(x) is not type(y):
            return False
        return all(
            equal(getattr(x, f.name), getattr(y, f.name)) for f in _public_fields(x)
        )
    raise TypeError(f"unsupported kind: {type(x).__name__}")


def hash_value(value: Any) -> int:
    """Return a 64-bit hash of ``value``; values that are :func:`equal` hash alike."""
    h = hashlib.blake2b(digest_size=8)
    _write(h, value)
    return int.from_bytes(h.digest(), "big")


def _write_uint(h: Any, n: int) -> None:
    h.update(n.to_bytes(8, "big"))


def _write_bytes(h: Any, data: bytes) -> None:
    _write_uint(h, len(data))
    h.update(data)


def _int_bytes(n: int) -> bytes:
    return n.to_bytes((n.bit_length() + 7) // 8, "big")


def _write(h: Any, value: Any) -> None:
    r = json_number(value)
    if r is not None:
        # Equal numbers share a normalized fraction, so 1, 1.0 and Decimal("1.00") agree.
        h.update(b"n")
        sign = (r > 0) - (r < 0)
        _write_uint(h, sign + 1)
        _write_bytes(h, _int_bytes(abs(r.numerator)))
        _write_bytes(h, _int_bytes(r.denominator))
        return
    if value is None:
        h.update(b"\x00")
    elif isinstance(value, bool):
        h.update(b"b\x01" if value else b"b\x00")
    elif isinstance(value, (float, Decimal)):
        h.update(b"f")
        h.update(struct.pack(">d", float(value)))
    elif isinstance(value, complex):
        h.update(b"c")
        h.update(struct.pack(">dd", value.real, value.imag))
    elif isinstance(value, str):
        h.update(b"s")
        _write_bytes(h, value.encode("utf-8"))
    elif isinstance(value, (list, tuple)):
        h.update(b"a")
        _write_uint(h, len(value))
        for item in value:
            _write(h, item)
    elif isinstance(value, Mapping):
        if any(not isinstance(k, str) for k in value):
            raise TypeError("map with non-string key")
        h.update(b"m")
        _write_uint(h, len(value))
        for key in sorted(value):
            _write(h, key)
            _write(h, value[key])
    elif _is_struct(value):
        h.update(b"t")
        for f in _public_fields(value):
            _write(h, getattr(value, f.name))
    else:
        raise TypeError(f"unsupported kind: {type(value).__name__}")