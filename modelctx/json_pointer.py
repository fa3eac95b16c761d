"""JSON Pointers (RFC 6901) applied to schemas.

A pointer is either empty, referring to the root, or a sequence of
slash-prefixed segments such as ``/$defs/item/properties/x`` that select
successive schema keywords, array items and mapping keys.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from typing import Any

from .schema import _FIELDS_BY_JSON, Schema

__all__ = [
    "JSONPointerError",
    "escape_segment",
    "unescape_segment",
    "parse_json_pointer",
    "dereference_json_pointer",
]


class JSONPointerError(ValueError):
    """Raised for malformed pointers and pointers that do not lead to a schema."""


_UNESCAPE = re.compile("~[01]")
_INT_SEGMENT = re.compile(r"[+-]?[0-9]+")

# Absent container keywords behave like empty containers when navigated.
_EMPTY_BY_KIND = {
    "schema_map": dict,
    "str_list_map": dict,
    "bool_map": dict,
    "schema_list": list,
    "str_list": list,
    "any_list": list,
}


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def escape_segment(segment: str) -> str:
    """Escape ``~`` and ``/`` so that ``segment`` can appear in a pointer."""
    return segment.replace("~", "~0").replace("/", "~1")


def unescape_segment(segment: str) -> str:
    """Undo :func:`escape_segment`."""
    return _UNESCAPE.sub(lambda m: "~" if m.group() == "~0" else "/", segment)


def parse_json_pointer(pointer: str) -> list[str]:
    """Split ``pointer`` into its unescaped segments.

    Segments stay strings: whether one is an index depends on what it is
    applied to.
    """
    if pointer == "":
        return []
    if not pointer.startswith("/"):
        raise JSONPointerError(f"JSON Pointer {_quote(pointer)} does not begin with '/'")
    # Consecutive slashes are not coalesced, and a final slash yields an empty segment.
    segments = pointer[1:].split("/")
    if "~" in pointer:
        segments = [unescape_segment(s) for s in segments]
    return segments


def _index(value: list[Any], seg: str) -> Any:
    if seg == "-":
        raise JSONPointerError("the JSON Pointer array segment '-' is not supported")
    if len(seg) > 1 and seg[0] == "0":
        raise JSONPointerError(f"segment {_quote(seg)} has leading zeroes")
    if not _INT_SEGMENT.fullmatch(seg):
        raise JSONPointerError(f"invalid int: {_quote(seg)}")
    n = int(seg)
    if n < 0 or n >= len(value):
        raise JSONPointerError(f"index {n} is out of bounds for array of length {len(value)}")
    return value[n]


def _schema_field(schema: Schema, seg: str) -> Any:
    if seg == "type":
        # "type" holds either a single type or a list of them.
        if schema.type:
            return schema.type
        return schema.types if schema.types is not None else []
    info = _FIELDS_BY_JSON.get(seg)
    if info is None:
        raise JSONPointerError(f"no schema field {_quote(seg)}")
    value = getattr(schema, info.attr)
    if value is None and info.kind in _EMPTY_BY_KIND:
        return _EMPTY_BY_KIND[info.kind]()
    return value


def _step(value: Any, seg: str) -> Any:
    if value is None:
        raise JSONPointerError("navigated to nil reference")
    if isinstance(value, Schema):
        return _schema_field(value, seg)
    if isinstance(value, (list, tuple)):
        return _index(list(value), seg)
    if isinstance(value, Mapping):
        if seg not in value:
            raise JSONPointerError(f"no key {_quote(seg)} in map")
        return value[seg]
    raise JSONPointerError(
        f"value {value!r} ({type(value).__name__}) is not a schema, slice or map"
    )


def dereference_json_pointer(schema: Schema, pointer: str) -> Schema:
    """Return the schema that ``pointer`` refers to within ``schema``."""
    try:
        segments = parse_json_pointer(pointer)
        value: Any = schema
        for seg in segments:
            value = _step(value, seg)
        if not isinstance(value, Schema):
            raise JSONPointerError(
                f"does not refer to a schema, but to a {type(value).__name__}"
            )
        return value
    except JSONPointerError as exc:
        raise JSONPointerError(f"JSON Pointer {_quote(pointer)}: {exc}") from None