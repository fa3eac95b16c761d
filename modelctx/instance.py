"""Access to the properties of JSON object instances.

An object instance is either a string-keyed mapping or a dataclass
instance. A dataclass field becomes a property under the name given by
its ``"json"`` metadata, or its own name; ``"-"`` omits it, as does a
leading underscore. Fields marked ``"omitempty"`` or ``"omitzero"`` are
optional, and when they hold a zero value they are treated as absent.
"""

from __future__ import annotations

import copy
import dataclasses
import functools
from collections.abc import Iterator, Mapping
from decimal import Decimal
from types import MappingProxyType
from typing import Any, Iterable, Optional

from .schema import UNSET, Schema

__all__ = [
    "MISSING",
    "is_struct",
    "struct_properties",
    "lookup_property",
    "iter_properties",
    "num_properties_bounds",
    "apply_property_defaults",
]


class _Missing:
    """Marks a property that an instance does not have."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


def is_struct(value: Any) -> bool:
    """Report whether ``value`` is a dataclass instance (not a dataclass type)."""
    return dataclasses.is_dataclass(value) and not isinstance(value, type)


@functools.lru_cache(maxsize=None)
def _struct_properties(cls: type) -> Mapping[str, dataclasses.Field]:
    props: dict[str, dataclasses.Field] = {}
    for f in dataclasses.fields(cls):
        if f.name.startswith("_"):
            continue
        name = f.metadata.get("json") or f.name
        if name == "-":
            continue
        props[name] = f
    return MappingProxyType(props)


def struct_properties(cls: type) -> Mapping[str, dataclasses.Field]:
    """Return a read-only map from property name to dataclass field for ``cls``."""
    if not (isinstance(cls, type) and dataclasses.is_dataclass(cls)):
        raise TypeError(f"{cls!r} is not a dataclass type")
    return _struct_properties(cls)


def _is_zero(value: Any) -> bool:
    """Report whether ``value`` is the zero value of its type.

    Lists and mappings are zero only when they are None: an empty container
    is still present.
    """
    if value is None:
        return True
    if isinstance(value, (bool, int, float, complex, Decimal)):
        return value == 0
    if isinstance(value, (str, bytes, bytearray)):
        return len(value) == 0
    if isinstance(value, tuple):
        return all(_is_zero(v) for v in value)
    if is_struct(value):
        return all(_is_zero(getattr(value, f.name)) for f in dataclasses.fields(value))
    return False


def _is_optional(f: dataclasses.Field) -> bool:
    return bool(f.metadata.get("omitempty") or f.metadata.get("omitzero"))


def lookup_property(instance: Any, name: str) -> Any:
    """Return the value of property ``name`` of ``instance``, or :data:`MISSING`."""
    if isinstance(instance, Mapping):
        return instance.get(name, MISSING) if name in instance else MISSING
    if is_struct(instance):
        f = struct_properties(type(instance)).get(name)
        if f is None:
            return MISSING
        return getattr(instance, f.name)
    raise TypeError(
        f"property({name!r}): bad value {instance!r} of type {type(instance).__name__}"
    )


def iter_properties(instance: Any) -> Iterator[tuple[str, Any]]:
    """Yield the (name, value) pairs of the properties of ``instance``.

    Zero-valued optional fields of a dataclass are left out.
    """
    if isinstance(instance, Mapping):
        yield from list(instance.items())
        return
    if is_struct(instance):
        for name, f in struct_properties(type(instance)).items():
            value = getattr(instance, f.name)
            if _is_zero(value) and _is_optional(f):
                continue
            yield name, value
        return
    raise TypeError(f"bad value {instance!r} of type {type(instance).__name__}")


def num_properties_bounds(
    instance: Any, required: Optional[Iterable[str]]
) -> tuple[int, int]:
    """Return lower and upper bounds on the number of properties of ``instance``.

    For a mapping both bounds are its size. For a dataclass the upper bound
    is the number of properties; since a zero value may mean a missing
    optional property, the lower bound counts only non-zero or required ones.
    """
    if isinstance(instance, Mapping):
        return len(instance), len(instance)
    if is_struct(instance):
        req = set(required or ())
        props = struct_properties(type(instance))
        low = sum(
            1
            for name, f in props.items()
            if not _is_zero(getattr(instance, f.name)) or name in req
        )
        return low, len(props)
    raise TypeError(f"properties: bad value {instance!r} of type {type(instance).__name__}")


def apply_property_defaults(schema: Schema, instance: Any) -> None:
    """Fill missing or zero optional properties of ``instance`` from ``schema``'s defaults.

    A mapping gains each absent property that has a default. A dataclass
    field that exists and holds a zero value is set to the default.
    Required properties are never touched. Other instances are left alone.
    """
    if isinstance(instance, Mapping):
        for key in instance:
            if not isinstance(key, str):
                raise TypeError(f"map key type {type(key).__name__} is not a string")
    elif not is_struct(instance):
        return
    if not schema.properties:
        return
    required = set(schema.required or ())
    for prop, subschema in schema.properties.items():
        if prop in required or subschema is None or subschema.default is UNSET:
            continue
        if isinstance(instance, Mapping):
            if prop not in instance:
                instance[prop] = copy.deepcopy(subschema.default)
        else:
            f = struct_properties(type(instance)).get(prop)
            if f is not None and _is_zero(getattr(instance, f.name)):
                setattr(instance, f.name, copy.deepcopy(subschema.default))