"""Validation of JSON instances against resolved schemas (draft 2020-12)."""

from __future__ import annotations

import json
import math
import re
from collections.abc import Mapping
from fractions import Fraction
from typing import Any, Optional

from .annotations import Annotations
from .instance import (
    MISSING,
    _is_zero,
    apply_property_defaults,
    is_struct,
    iter_properties,
    lookup_property,
    num_properties_bounds,
)
from .schema import UNSET, Schema
from .values import equal, hash_value, json_number, json_type

__all__ = ["DRAFT_2020_12", "ValidationError", "Resolved"]

DRAFT_2020_12 = "https://json-schema.org/draft/2020-12/schema"


class ValidationError(ValueError):
    """Raised when an instance does not validate, or cannot be validated."""


def _q(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def _q_list(items: list[str]) -> str:
    return "[" + " ".join(_q(s) for s in items) + "]"


def _show(value: Any) -> str:
    return repr(value)


def _show_number(n: Fraction) -> str:
    if n.denominator == 1:
        return str(n.numerator)
    return str(n)


def _float_of(n: Fraction) -> float:
    try:
        return float(n)
    except OverflowError:
        return math.inf if n > 0 else -math.inf


def _is_multiple(n: Fraction, divisor: float) -> bool:
    if divisor == 0:
        return False
    try:
        quotient = _float_of(n) / divisor
    except (OverflowError, ZeroDivisionError):
        return False
    if not math.isfinite(quotient):
        return False
    return math.modf(quotient)[0] == 0


def _check_version(root: Schema) -> None:
    if root.schema and root.schema != DRAFT_2020_12:
        raise ValidationError(
            f"cannot validate version {root.schema}, only {DRAFT_2020_12}"
        )


def _compiled_pattern(schema: Schema) -> Any:
    if schema._pattern is not None:
        return schema._pattern
    try:
        schema._pattern = re.compile(schema.pattern)
    except re.error as exc:
        raise ValidationError(f"pattern: {exc}") from None
    return schema._pattern


def _compiled_pattern_properties(schema: Schema) -> list[tuple[Any, Schema]]:
    if schema._pattern_properties is not None:
        return list(schema._pattern_properties.items())
    compiled: dict[Any, Schema] = {}
    for source, subschema in (schema.pattern_properties or {}).items():
        try:
            compiled[re.compile(source)] = subschema
        except re.error as exc:
            raise ValidationError(f"patternProperties[{_q(source)}]: {exc}") from None
    schema._pattern_properties = compiled
    return list(compiled.items())


def _required_set(schema: Schema) -> set[str]:
    if schema._is_required is not None:
        return schema._is_required
    return set(schema.required or ())


class _State:
    """The state of a single validation: the dynamic scope stack."""

    def __init__(self) -> None:
        self.stack: list[Schema] = []

    def validate(self, instance: Any, schema: Schema, caller_anns: Optional[Annotations]) -> None:
        self.stack.append(schema)
        try:
            self._validate(instance, schema, caller_anns)
        except ValidationError as exc:
            raise ValidationError(f"validating {schema}: {exc}") from None
        finally:
            self.stack.pop()

    def valid(self, instance: Any, schema: Schema, anns: Optional[Annotations]) -> bool:
        try:
            self.validate(instance, schema, anns)
        except ValidationError:
            return False
        return True

    def _validate(self, instance: Any, schema: Schema, caller_anns: Optional[Annotations]) -> None:
        if schema is None:
            raise ValidationError("nil schema")

        self._check_type(instance, schema)

        if schema.enum is not None:
            if not any(equal(e, instance) for e in schema.enum):
                raise ValidationError(
                    f"enum: {_show(instance)} does not equal any of: {_show(schema.enum)}"
                )

        if schema.const is not UNSET:
            if not equal(schema.const, instance):
                raise ValidationError(
                    f"const: {_show(instance)} does not equal {_show(schema.const)}"
                )

        self._check_number(instance, schema)
        self._check_string(instance, schema)

        anns = Annotations()
        self._check_refs(instance, schema, anns)
        self._check_logic(instance, schema, anns)

        if isinstance(instance, (list, tuple)):
            self._check_array(instance, schema, anns)
        if isinstance(instance, Mapping) or is_struct(instance):
            self._check_object(instance, schema, anns)

        if caller_anns is not None:
            caller_anns.merge(anns)

    def _check_type(self, instance: Any, schema: Schema) -> None:
        if not schema.type and schema.types is None:
            return
        got = json_type(instance)
        if got is None:
            raise ValidationError(
                f"type: {_show(instance)} of type {type(instance).__name__} "
                "is not a valid JSON value"
            )
        if schema.type:
            if not (got == schema.type or (got == "integer" and schema.type == "number")):
                raise ValidationError(
                    f"type: {_show(instance)} has type {_q(got)}, want {_q(schema.type)}"
                )
        else:
            types = schema.types or []
            if not (got in types or (got == "integer" and "number" in types)):
                raise ValidationError(
                    f"type: {_show(instance)} has type {_q(got)}, "
                    f"want one of {_q(', '.join(types))}"
                )

    def _check_number(self, instance: Any, schema: Schema) -> None:
        bounds = (
            schema.multiple_of,
            schema.minimum,
            schema.maximum,
            schema.exclusive_minimum,
            schema.exclusive_maximum,
        )
        if all(b is None for b in bounds):
            return
        n = json_number(instance)
        if n is None:
            return
        shown = _show_number(n)
        if schema.multiple_of is not None and not _is_multiple(n, schema.multiple_of):
            raise ValidationError(
                f"multipleOf: {shown} is not a multiple of {schema.multiple_of:f}"
            )
        if schema.minimum is not None and n < Fraction(schema.minimum):
            raise ValidationError(f"minimum: {shown} is less than {schema.minimum:f}")
        if schema.maximum is not None and n > Fraction(schema.maximum):
            raise ValidationError(f"maximum: {shown} is greater than {schema.maximum:f}")
        if schema.exclusive_minimum is not None and n <= Fraction(schema.exclusive_minimum):
            raise ValidationError(
                f"exclusiveMinimum: {shown} is less than or equal to "
                f"{schema.exclusive_minimum:f}"
            )
        if schema.exclusive_maximum is not None and n >= Fraction(schema.exclusive_maximum):
            raise ValidationError(
                f"exclusiveMaximum: {shown} is greater than or equal to "
                f"{schema.exclusive_maximum:f}"
            )

    def _check_string(self, instance: Any, schema: Schema) -> None:
        if not isinstance(instance, str):
            return
        if schema.min_length is None and schema.max_length is None and not schema.pattern:
            return
        n = len(instance)
        if schema.min_length is not None and n < schema.min_length:
            raise ValidationError(
                f"minLength: {_q(instance)} contains {n} Unicode code points, "
                f"fewer than {schema.min_length}"
            )
        if schema.max_length is not None and n > schema.max_length:
            raise ValidationError(
                f"maxLength: {_q(instance)} contains {n} Unicode code points, "
                f"more than {schema.max_length}"
            )
        if schema.pattern and not _compiled_pattern(schema).search(instance):
            raise ValidationError(
                f"pattern: {_q(instance)} does not match regular expression "
                f"{_q(schema.pattern)}"
            )

    def _check_refs(self, instance: Any, schema: Schema, anns: Annotations) -> None:
        if schema.ref:
            target = schema._resolved_ref
            if target is None:
                raise ValidationError(f"$ref {_q(schema.ref)} has not been resolved")
            self.validate(instance, target, anns)

        if schema.dynamic_ref:
            lexical = schema._resolved_dynamic_ref
            anchor = schema._dynamic_ref_anchor
            if (lexical is None) == (anchor == ""):
                raise ValidationError(
                    f"$dynamicRef {_q(schema.dynamic_ref)} has not been resolved properly"
                )
            if lexical is not None:
                self.validate(instance, lexical, anns)
                return
            # Use the outermost schema on the stack whose base has this dynamic anchor.
            dynamic_schema: Optional[Schema] = None
            for s in self.stack:
                base = s._base
                anchors = base._anchors if base is not None else None
                info = (anchors or {}).get(anchor)
                if info is None:
                    continue
                anchor_schema, dynamic = info
                if dynamic:
                    dynamic_schema = anchor_schema
                    break
            if dynamic_schema is None:
                raise ValidationError(f"missing dynamic anchor {_q(anchor)}")
            self.validate(instance, dynamic_schema, anns)

    def _check_logic(self, instance: Any, schema: Schema, anns: Annotations) -> None:
        # These come before arrays and objects: items and properties they evaluate
        # are exempt from unevaluatedItems and unevaluatedProperties.
        if schema.all_of is not None:
            for sub in schema.all_of:
                self.validate(instance, sub, anns)
        if schema.any_of is not None:
            # Every branch is visited, to collect annotations.
            results = [self.valid(instance, sub, anns) for sub in schema.any_of]
            if not any(results):
                raise ValidationError(
                    f"anyOf: did not validate against any of {_show_schemas(schema.any_of)}"
                )
        if schema.one_of is not None:
            ok_schema: Optional[Schema] = None
            for sub in schema.one_of:
                if self.valid(instance, sub, anns):
                    if ok_schema is not None:
                        raise ValidationError(
                            f"oneOf: validated against both {ok_schema} and {sub}"
                        )
                    ok_schema = sub
            if ok_schema is None:
                raise ValidationError(
                    f"oneOf: did not validate against any of {_show_schemas(schema.one_of)}"
                )
        if schema.not_ is not None:
            if self.valid(instance, schema.not_, None):
                raise ValidationError(f"not: validated against {schema.not_}")
        if schema.if_ is not None:
            branch = schema.then if self.valid(instance, schema.if_, anns) else schema.else_
            if branch is not None:
                self.validate(instance, branch, anns)

    def _check_array(self, instance: Any, schema: Schema, anns: Annotations) -> None:
        length = len(instance)
        prefix = schema.prefix_items or []
        for item, sub in zip(instance, prefix):
            self.validate(item, sub, None)
        anns.note_end_index(min(len(prefix), length))

        if schema.items is not None:
            for item in instance[len(prefix):]:
                self.validate(item, schema.items, None)
            anns.all_items = True

        n_contains = 0
        if schema.contains is not None:
            for i, item in enumerate(instance):
                if self.valid(item, schema.contains, None):
                    n_contains += 1
                    anns.note_index(i)
            if n_contains == 0 and (schema.min_contains is None or schema.min_contains > 0):
                raise ValidationError(
                    f"contains: {_show(instance)} does not have an item matching "
                    f"{schema.contains}"
                )
            if schema.min_contains is not None and n_contains < schema.min_contains:
                raise ValidationError(
                    f"minContains: contains validated {n_contains} items, "
                    f"less than {schema.min_contains}"
                )
            if schema.max_contains is not None and n_contains > schema.max_contains:
                raise ValidationError(
                    f"maxContains: contains validated {n_contains} items, "
                    f"greater than {schema.max_contains}"
                )

        if schema.min_items is not None and length < schema.min_items:
            raise ValidationError(
                f"minItems: array length {length} is less than {schema.min_items}"
            )
        if schema.max_items is not None and length > schema.max_items:
            raise ValidationError(
                f"maxItems: array length {length} is greater than {schema.max_items}"
            )

        if schema.unique_items and length > 1:
            buckets: dict[int, list[int]] = {}
            for i, item in enumerate(instance):
                h = hash_value(item)
                for j in buckets.get(h, ()):
                    if equal(item, instance[j]):
                        raise ValidationError(
                            f"uniqueItems: array items {i} and {j} are equal"
                        )
                buckets.setdefault(h, []).append(i)

        if schema.unevaluated_items is not None and not anns.all_items:
            for i in range(anns.end_index, length):
                if i not in anns.evaluated_indexes:
                    self.validate(instance[i], schema.unevaluated_items, None)
            anns.all_items = True

    def _check_object(self, instance: Any, schema: Schema, anns: Annotations) -> None:
        if isinstance(instance, Mapping):
            for key in instance:
                if not isinstance(key, str):
                    raise ValidationError(
                        f"map key type {type(key).__name__} is not a string"
                    )
        struct = is_struct(instance)
        required = _required_set(schema)

        # Properties evaluated by this schema alone, for additionalProperties.
        eval_props: set[str] = set()
        for prop, sub in (schema.properties or {}).items():
            val = lookup_property(instance, prop)
            if val is MISSING:
                continue
            # A zero optional struct field may mean "absent": treat it so.
            if struct and _is_zero(val) and prop not in required:
                continue
            self.validate(val, sub, None)
            eval_props.add(prop)

        if schema.pattern_properties:
            patterns = _compiled_pattern_properties(schema)
            for prop, val in iter_properties(instance):
                for regex, sub in patterns:
                    if regex.search(prop):
                        self.validate(val, sub, None)
                        eval_props.add(prop)

        if schema.additional_properties is not None:
            for prop, val in iter_properties(instance):
                if prop not in eval_props:
                    self.validate(val, schema.additional_properties, None)
                    eval_props.add(prop)
        anns.note_properties(eval_props)

        if schema.property_names is not None:
            for prop, _ in iter_properties(instance):
                self.validate(prop, schema.property_names, None)

        if schema.min_properties is not None or schema.max_properties is not None:
            low, high = num_properties_bounds(instance, required)
            if schema.min_properties is not None and high < schema.min_properties:
                raise ValidationError(
                    f"minProperties: object has {high} properties, "
                    f"less than {schema.min_properties}"
                )
            if schema.max_properties is not None and low > schema.max_properties:
                raise ValidationError(
                    f"maxProperties: object has {low} properties, "
                    f"greater than {schema.max_properties}"
                )

        def has(prop: str) -> bool:
            return lookup_property(instance, prop) is not MISSING

        def missing(props: list[str]) -> list[str]:
            return [p for p in props if not has(p)]

        if schema.required is not None:
            absent = missing(schema.required)
            if absent:
                raise ValidationError(f"required: missing properties: {_q_list(absent)}")

        if schema.dependent_required is not None:
            for dprop, reqs in schema.dependent_required.items():
                if has(dprop):
                    absent = missing(reqs or [])
                    if absent:
                        raise ValidationError(
                            f"dependentRequired[{_q(dprop)}]: missing properties "
                            f"{_q_list(absent)}"
                        )

        if schema.dependent_schemas is not None:
            for dprop, sub in schema.dependent_schemas.items():
                if has(dprop):
                    self.validate(instance, sub, anns)

        if schema.unevaluated_properties is not None and not anns.all_properties:
            for prop, val in iter_properties(instance):
                if prop not in anns.evaluated_properties:
                    self.validate(val, schema.unevaluated_properties, None)
            anns.all_properties = True


def _show_schemas(schemas: list[Schema]) -> str:
    return "[" + " ".join(str(s) for s in schemas) + "]"


class Resolved:
    """A schema whose references have been resolved, ready for validation."""

    def __init__(self, root: Schema, resolved_uris: Optional[dict[str, Schema]] = None) -> None:
        self._root = root
        self.resolved_uris: dict[str, Schema] = dict(resolved_uris or {})

    def schema(self) -> Schema:
        """Return the resolved root schema; it must not be modified."""
        return self._root

    def validate(self, instance: Any) -> None:
        """Raise ValidationError unless ``instance`` validates against the schema."""
        _check_version(self._root)
        _State().validate(instance, self._root, None)

    def validate_defaults(self) -> None:
        """Validate every ``default`` value against the schema that holds it."""
        _check_version(self._root)
        state = _State()
        for s in self._root.all():
            if s is None:
                raise ValidationError("nil schema")
            if s.dynamic_ref:
                raise ValidationError(
                    f"jsonschema: {s}: validateDefaults does not support dynamic refs"
                )
            if s.default is not UNSET:
                state.validate(s.default, s, None)

    def apply_defaults(self, instance: Any) -> None:
        """Fill absent or zero optional properties of ``instance`` from their defaults.

        Only the root schema's properties are considered, and only those that
        are not required. The instance is modified in place.
        """
        try:
            apply_property_defaults(self._root, instance)
        except TypeError as exc:
            raise ValidationError(
                f"applyDefaults: schema {self._root}, instance {_show(instance)}: {exc}"
            ) from None