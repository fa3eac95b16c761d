"""The JSON Schema object of draft 2020-12 and its JSON encoding."""

from __future__ import annotations

import base64
import dataclasses
import json
import math
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, NamedTuple, Optional, Union

__all__ = ["SchemaError", "Schema", "UNSET", "false_schema"]

_INT32_MIN = -(2**31)
_INT32_MAX = 2**31 - 1
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


class SchemaError(ValueError):
    """Raised for malformed schemas and malformed schema JSON."""


class _Unset:
    """Marks a ``const`` or ``default`` keyword that is absent."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False

    def __copy__(self) -> _Unset:
        return self

    def __deepcopy__(self, memo: Any) -> _Unset:
        return self

    def __reduce__(self) -> str:
        return "UNSET"


UNSET = _Unset()


def _f(json_name: str, kind: str, default: Any = None) -> Any:
    return field(default=default, metadata={"json": json_name, "kind": kind})


def _computed(default: Any = None) -> Any:
    return field(default=default, init=False, repr=False, compare=False)


@dataclass(eq=False)
class Schema:
    """A JSON Schema object.

    Absent keywords are ``None`` (or ``""``/``False`` for strings and
    booleans); empty lists and mappings are present and take part in
    validation. ``const`` and ``default`` use :data:`UNSET` for absence,
    since ``None`` stands for JSON null. ``type`` and ``types`` are
    mutually exclusive.
    """

    type: str = ""
    types: Optional[list[str]] = None

    # core
    id: str = _f("$id", "str", "")
    schema: str = _f("$schema", "str", "")
    ref: str = _f("$ref", "str", "")
    comment: str = _f("$comment", "str", "")
    defs: Optional[dict[str, Schema]] = _f("$defs", "schema_map")
    definitions: Optional[dict[str, Schema]] = _f("definitions", "schema_map")
    anchor: str = _f("$anchor", "str", "")
    dynamic_anchor: str = _f("$dynamicAnchor", "str", "")
    dynamic_ref: str = _f("$dynamicRef", "str", "")
    vocabulary: Optional[dict[str, bool]] = _f("$vocabulary", "bool_map")

    # metadata
    title: str = _f("title", "str", "")
    description: str = _f("description", "str", "")
    default: Any = _f("default", "any", UNSET)
    deprecated: bool = _f("deprecated", "bool", False)
    read_only: bool = _f("readOnly", "bool", False)
    write_only: bool = _f("writeOnly", "bool", False)
    examples: Optional[list[Any]] = _f("examples", "any_list")

    # validation
    enum: Optional[list[Any]] = _f("enum", "any_list")
    const: Any = _f("const", "any", UNSET)
    multiple_of: Optional[float] = _f("multipleOf", "float")
    minimum: Optional[float] = _f("minimum", "float")
    maximum: Optional[float] = _f("maximum", "float")
    exclusive_minimum: Optional[float] = _f("exclusiveMinimum", "float")
    exclusive_maximum: Optional[float] = _f("exclusiveMaximum", "float")
    min_length: Optional[int] = _f("minLength", "int")
    max_length: Optional[int] = _f("maxLength", "int")
    pattern: str = _f("pattern", "str", "")

    # arrays
    prefix_items: Optional[list[Schema]] = _f("prefixItems", "schema_list")
    items: Optional[Schema] = _f("items", "schema")
    min_items: Optional[int] = _f("minItems", "int")
    max_items: Optional[int] = _f("maxItems", "int")
    additional_items: Optional[Schema] = _f("additionalItems", "schema")
    unique_items: bool = _f("uniqueItems", "bool", False)
    contains: Optional[Schema] = _f("contains", "schema")
    min_contains: Optional[int] = _f("minContains", "int")
    max_contains: Optional[int] = _f("maxContains", "int")
    unevaluated_items: Optional[Schema] = _f("unevaluatedItems", "schema")

    # objects
    min_properties: Optional[int] = _f("minProperties", "int")
    max_properties: Optional[int] = _f("maxProperties", "int")
    required: Optional[list[str]] = _f("required", "str_list")
    dependent_required: Optional[dict[str, list[str]]] = _f("dependentRequired", "str_list_map")
    properties: Optional[dict[str, Schema]] = _f("properties", "schema_map")
    pattern_properties: Optional[dict[str, Schema]] = _f("patternProperties", "schema_map")
    additional_properties: Optional[Schema] = _f("additionalProperties", "schema")
    property_names: Optional[Schema] = _f("propertyNames", "schema")
    unevaluated_properties: Optional[Schema] = _f("unevaluatedProperties", "schema")

    # logic
    all_of: Optional[list[Schema]] = _f("allOf", "schema_list")
    any_of: Optional[list[Schema]] = _f("anyOf", "schema_list")
    one_of: Optional[list[Schema]] = _f("oneOf", "schema_list")
    not_: Optional[Schema] = _f("not", "schema")

    # conditional
    if_: Optional[Schema] = _f("if", "schema")
    then: Optional[Schema] = _f("then", "schema")
    else_: Optional[Schema] = _f("else", "schema")
    dependent_schemas: Optional[dict[str, Schema]] = _f("dependentSchemas", "schema_map")

    # content and format: recorded, not validated
    content_encoding: str = _f("contentEncoding", "str", "")
    content_media_type: str = _f("contentMediaType", "str", "")
    content_schema: Optional[Schema] = _f("contentSchema", "schema")
    format: str = _f("format", "str", "")

    # keywords beyond the ones above
    extra: Optional[dict[str, Any]] = None

    # Computed during resolution.
    _base: Optional[Schema] = _computed()
    _uri: Optional[str] = _computed()
    _path: str = _computed("")
    _resolved_ref: Optional[Schema] = _computed()
    _resolved_dynamic_ref: Optional[Schema] = _computed()
    _dynamic_ref_anchor: str = _computed("")
    _anchors: Optional[dict[str, Any]] = _computed()
    _pattern: Any = _computed()
    _pattern_properties: Optional[dict[Any, Schema]] = _computed()
    _is_required: Optional[set[str]] = _computed()

    def __str__(self) -> str:
        if self._uri:
            return self._uri
        anchor = self.anchor or self.dynamic_anchor
        if anchor:
            base_uri = self._base._uri if self._base is not None and self._base._uri else ""
            return f'"{base_uri}", anchor {anchor}'
        if self._path:
            return self._path
        return "<anonymous schema>"

    def resolved_ref(self) -> Optional[Schema]:
        """Return the schema that ``$ref`` refers to, or None if unresolved or absent."""
        return self._resolved_ref

    def basic_checks(self) -> None:
        """Raise SchemaError if mutually exclusive keywords are both set."""
        if self.type != "" and self.types is not None:
            raise SchemaError("both type and types are set; at most one should be")
        if self.defs is not None and self.definitions is not None:
            raise SchemaError("both defs and definitions are set; at most one should be")

    # --- traversal -------------------------------------------------------

    def all(self) -> Iterator[Optional[Schema]]:
        """Yield this schema and every schema beneath it, in preorder."""
        yield self
        for child in self.children():
            if child is None:
                yield None
            else:
                yield from child.all()

    def children(self) -> Iterator[Optional[Schema]]:
        """Yield the immediate subschemas, ordered by keyword and then by key."""
        for _, _, child in self._child_entries():
            yield child

    def _child_entries(self) -> Iterator[tuple[str, Union[int, str, None], Optional[Schema]]]:
        """Yield (keyword, index-or-key-or-None, child) for every immediate child."""
        for info in _CHILD_FIELDS:
            value = getattr(self, info.attr)
            if info.kind == "schema":
                if value is not None:
                    yield info.json_name, None, value
            elif info.kind == "schema_list":
                for i, child in enumerate(value or ()):
                    yield info.json_name, i, child
            else:
                for key in sorted(value or {}):
                    yield info.json_name, key, value[key]

    def _field_value(self, json_name: str) -> Any:
        """Return the value of the keyword ``json_name``; KeyError if not a keyword."""
        if json_name == "type":
            return self.type if self.type else self.types
        info = _FIELDS_BY_JSON[json_name]
        return getattr(self, info.attr)

    # --- encoding --------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Return the schema as a JSON-ready dict, keywords in canonical order."""
        self.basic_checks()
        out: dict[str, Any] = {}
        if self.type:
            out["type"] = self.type
        elif self.types is not None:
            out["type"] = list(self.types)
        for info in _SCHEMA_FIELDS:
            value = getattr(self, info.attr)
            if _is_empty(info.kind, value):
                continue
            out[info.json_name] = _encode(info, value)
        if self.extra:
            for key in self.extra:
                if key in _JSON_NAMES:
                    raise SchemaError(f"map key {key!r} duplicates struct field")
            for key in sorted(self.extra):
                out[key] = _plain_out(self.extra[key])
        return out

    def to_json(self) -> str:
        """Return the schema as compact JSON text."""
        try:
            return json.dumps(self.to_dict(), separators=(",", ":"), ensure_ascii=False, allow_nan=False)
        except ValueError as exc:
            if isinstance(exc, SchemaError):
                raise
            raise SchemaError(str(exc)) from exc

    @classmethod
    def from_dict(cls, data: Any) -> Schema:
        """Build a schema from a decoded JSON value (a mapping or a boolean)."""
        if isinstance(data, bool):
            return cls() if data else cls(not_=cls())
        if not isinstance(data, Mapping):
            raise SchemaError(f"cannot unmarshal {_json_kind(data)} into a schema")
        s = cls()
        extra: dict[str, Any] = {}
        for key, raw in data.items():
            if key == "type":
                _decode_type(s, raw)
                continue
            info = _FIELDS_BY_JSON.get(key)
            if info is None:
                extra[key] = _plain_in(raw)
                continue
            setattr(s, info.attr, _decode(info, raw))
        if extra:
            s.extra = extra
        return s

    @classmethod
    def from_json(cls, text: Union[str, bytes, bytearray]) -> Schema:
        """Parse JSON text into a schema."""
        try:
            data = json.loads(text, parse_float=Decimal, parse_constant=_reject_constant)
        except ValueError as exc:
            raise SchemaError(f"invalid JSON: {exc}") from exc
        return cls.from_dict(data)


def false_schema() -> Schema:
    """Return a new schema that validates nothing."""
    return Schema(not_=Schema())


class _FieldInfo(NamedTuple):
    attr: str
    json_name: str
    kind: str


_SCHEMA_FIELDS: list[_FieldInfo] = [
    _FieldInfo(f.name, f.metadata["json"], f.metadata["kind"])
    for f in dataclasses.fields(Schema)
    if "json" in f.metadata
]
_FIELDS_BY_JSON: dict[str, _FieldInfo] = {info.json_name: info for info in _SCHEMA_FIELDS}
_JSON_NAMES: frozenset[str] = frozenset(_FIELDS_BY_JSON) | {"type"}
_CHILD_FIELDS: list[_FieldInfo] = sorted(
    (info for info in _SCHEMA_FIELDS if info.kind in ("schema", "schema_list", "schema_map")),
    key=lambda info: info.json_name,
)

_CONTAINER_KINDS = ("schema_list", "schema_map", "str_list", "str_list_map", "bool_map", "any_list")


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid number {name}")


def _json_kind(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, (int, float, Decimal)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, Mapping):
        return "object"
    return type(value).__name__


def _is_empty(kind: str, value: Any) -> bool:
    if kind == "any":
        return value is UNSET
    if kind == "str":
        return value == ""
    if kind == "bool":
        return not value
    if kind in _CONTAINER_KINDS:
        return value is None or len(value) == 0
    return value is None


def _encode_child(child: Optional[Schema]) -> Optional[dict[str, Any]]:
    return None if child is None else child.to_dict()


def _encode(info: _FieldInfo, value: Any) -> Any:
    kind = info.kind
    if kind == "schema":
        return value.to_dict()
    if kind == "schema_list":
        return [_encode_child(c) for c in value]
    if kind == "schema_map":
        return {k: _encode_child(value[k]) for k in sorted(value)}
    if kind == "str_list":
        return list(value)
    if kind == "str_list_map":
        return {k: (None if value[k] is None else list(value[k])) for k in sorted(value)}
    if kind == "bool_map":
        return {k: bool(value[k]) for k in sorted(value)}
    if kind == "any_list":
        return [_plain_out(v) for v in value]
    if kind == "any":
        return _plain_out(value)
    if kind == "float":
        return _number_out(float(value))
    if kind == "int":
        return int(value)
    return value


def _number_out(value: float) -> Union[int, float]:
    if not math.isfinite(value):
        raise SchemaError(f"unsupported value: {value}")
    if value.is_integer() and abs(value) < 1e21:
        return int(value)
    return value


def _plain_out(value: Any) -> Any:
    if value is None or isinstance(value, (bool, str)):
        return value
    if isinstance(value, int):
        return value
    if isinstance(value, (float, Decimal)):
        return _number_out(float(value))
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, Schema):
        return value.to_dict()
    if isinstance(value, Mapping):
        if any(not isinstance(k, str) for k in value):
            raise SchemaError("cannot encode a mapping with non-string keys")
        return {k: _plain_out(value[k]) for k in sorted(value)}
    if isinstance(value, (list, tuple)):
        return [_plain_out(v) for v in value]
    raise SchemaError(f"cannot encode value of type {type(value).__name__}")


def _plain_in(value: Any) -> Any:
    if isinstance(value, Decimal):
        f = float(value)
        if not math.isfinite(f):
            raise SchemaError(f"number {value} is out of range")
        return f
    if isinstance(value, Mapping):
        return {str(k): _plain_in(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain_in(v) for v in value]
    return value


def _decode_type(s: Schema, raw: Any) -> None:
    if isinstance(raw, str):
        s.type = raw
        return
    if isinstance(raw, (list, tuple)):
        if not all(isinstance(t, str) for t in raw):
            raise SchemaError(f'invalid value for "type": {json.dumps(_plain_out(raw))}')
        s.types = list(raw)
        return
    try:
        shown = json.dumps(_plain_out(raw))
    except (SchemaError, ValueError):
        shown = repr(raw)
    raise SchemaError(f'invalid value for "type": {shown}')


def _decode_schema(name: str, raw: Any) -> Optional[Schema]:
    if raw is None:
        return None
    if not isinstance(raw, (bool, Mapping)):
        raise SchemaError(f"{name}: cannot unmarshal {_json_kind(raw)} into a schema")
    return Schema.from_dict(raw)


def _decode_integer(name: str, raw: Any) -> int:
    if isinstance(raw, bool) or not isinstance(raw, (int, float, Decimal, str)):
        raise SchemaError(f"{name}: cannot be unmarshaled into an int")
    if isinstance(raw, str):
        if "." in raw:
            raise SchemaError(f"{name}: not a number")
        raise SchemaError(f"{name}: cannot be unmarshaled into an int")
    if isinstance(raw, Decimal):
        if not raw.is_finite():
            raise SchemaError(f"{name}: not a number")
        if "." not in str(raw):
            raise SchemaError(f"{name}: cannot be unmarshaled into an int")
        if raw != raw.to_integral_value():
            raise SchemaError(f"{name}: not an integer value")
        value = int(raw)
    elif isinstance(raw, float):
        if not math.isfinite(raw):
            raise SchemaError(f"{name}: not a number")
        if not raw.is_integer():
            raise SchemaError(f"{name}: not an integer value")
        value = int(raw)
    else:
        value = raw
        if not _INT64_MIN <= value <= _INT64_MAX:
            raise SchemaError(f"{name}: cannot be unmarshaled into an int")
    if not _INT32_MIN <= value <= _INT32_MAX:
        raise SchemaError(f"{name}: integer is out of range")
    return value


def _expect_list(name: str, raw: Any) -> list[Any]:
    if not isinstance(raw, (list, tuple)):
        raise SchemaError(f"{name}: cannot unmarshal {_json_kind(raw)} into an array")
    return list(raw)


def _expect_mapping(name: str, raw: Any) -> Mapping[str, Any]:
    if not isinstance(raw, Mapping):
        raise SchemaError(f"{name}: cannot unmarshal {_json_kind(raw)} into an object")
    return raw


def _expect_str(name: str, raw: Any) -> str:
    if not isinstance(raw, str):
        raise SchemaError(f"{name}: cannot unmarshal {_json_kind(raw)} into a string")
    return raw


def _decode(info: _FieldInfo, raw: Any) -> Any:
    name, kind = info.json_name, info.kind
    if kind == "any":
        return _plain_in(raw)
    if raw is None:
        return {"str": "", "bool": False}.get(kind)
    if kind == "str":
        return _expect_str(name, raw)
    if kind == "bool":
        if not isinstance(raw, bool):
            raise SchemaError(f"{name}: cannot unmarshal {_json_kind(raw)} into a bool")
        return raw
    if kind == "float":
        if isinstance(raw, bool) or not isinstance(raw, (int, float, Decimal)):
            raise SchemaError(f"{name}: cannot unmarshal {_json_kind(raw)} into a number")
        value = float(raw)
        if not math.isfinite(value):
            raise SchemaError(f"{name}: number {raw} is out of range")
        return value
    if kind == "int":
        return _decode_integer(name, raw)
    if kind == "schema":
        return _decode_schema(name, raw)
    if kind == "schema_list":
        return [_decode_schema(name, item) for item in _expect_list(name, raw)]
    if kind == "schema_map":
        return {k: _decode_schema(name, v) for k, v in _expect_mapping(name, raw).items()}
    if kind == "str_list":
        return [_expect_str(name, item) for item in _expect_list(name, raw)]
    if kind == "str_list_map":
        return {
            k: (None if v is None else [_expect_str(name, item) for item in _expect_list(name, v)])
            for k, v in _expect_mapping(name, raw).items()
        }
    if kind == "bool_map":
        result: dict[str, bool] = {}
        for k, v in _expect_mapping(name, raw).items():
            if not isinstance(v, bool):
                raise SchemaError(f"{name}: cannot unmarshal {_json_kind(v)} into a bool")
            result[k] = v
        return result
    if kind == "any_list":
        return [_plain_in(item) for item in _expect_list(name, raw)]
    raise SchemaError(f"{name}: unknown keyword kind {kind}")