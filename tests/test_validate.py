from dataclasses import dataclass, field
from typing import Optional

import pytest

from modelctx.schema import Schema, false_schema
from modelctx.validate import DRAFT_2020_12, Resolved, ValidationError


def rs(schema):
    return Resolved(schema, {})


def is_valid(schema, instance):
    try:
        rs(schema).validate(instance)
    except ValidationError:
        return False
    return True


def test_schema_returns_root():
    root = Schema(type="string")
    assert rs(root).schema() is root


@pytest.mark.parametrize(
    "schema, instance, want",
    [
        (Schema(type="number"), 3, True),
        (Schema(type="integer"), 3.0, True),
        (Schema(type="integer"), 3.5, False),
        (Schema(type="string"), 3, False),
        (Schema(types=["null", "string"]), None, True),
        (Schema(types=["null", "number"]), 2, True),
        (Schema(types=["null", "string"]), True, False),
        (Schema(enum=[1, "a"]), 1.0, True),
        (Schema(enum=[1, "a"]), "b", False),
        (Schema(enum=[]), 1, False),
        (Schema(const=None), None, True),
        (Schema(const=None), 0, False),
        (Schema(const=[1, 2]), [1.0, 2.0], True),
        (Schema(minimum=2.0), 2, True),
        (Schema(minimum=2.0), 1.5, False),
        (Schema(maximum=2.0), 3, False),
        (Schema(exclusive_minimum=2.0), 2, False),
        (Schema(exclusive_maximum=2.0), 1.9, True),
        (Schema(multiple_of=0.5), 1.5, True),
        (Schema(multiple_of=0.5), 1.3, False),
        (Schema(multiple_of=0.0), 1, False),
        (Schema(minimum=5.0), "not a number", True),
        (Schema(min_length=2), "日本", True),
        (Schema(max_length=1), "日本", False),
        (Schema(pattern="b"), "abc", True),
        (Schema(pattern="^b"), "abc", False),
        (Schema(min_length=10), 5, True),
    ],
)
def test_scalar_keywords(schema, instance, want):
    assert is_valid(schema, instance) is want


def test_type_error_message():
    with pytest.raises(ValidationError, match='has type "integer", want "string"'):
        rs(Schema(type="string")).validate(1)


@pytest.mark.parametrize(
    "schema, instance, want",
    [
        (Schema(prefix_items=[Schema(type="integer")]), [1, "x"], True),
        (Schema(prefix_items=[Schema(type="integer")]), ["x"], False),
        (Schema(prefix_items=[Schema(type="integer")], items=Schema(type="string")), [1, "a"], True),
        (Schema(prefix_items=[Schema(type="integer")], items=Schema(type="string")), [1, 2], False),
        (Schema(contains=Schema(type="string")), [1, "a"], True),
        (Schema(contains=Schema(type="string")), [1, 2], False),
        (Schema(contains=Schema(type="string"), min_contains=0), [1], True),
        (Schema(contains=Schema(type="string"), min_contains=2), ["a", 1], False),
        (Schema(contains=Schema(type="string"), max_contains=1), ["a", "b"], False),
        (Schema(min_items=2), [1], False),
        (Schema(max_items=1), [1, 2], False),
        (Schema(unique_items=True), [1, "1"], True),
        (Schema(unique_items=True), [1, 1.0], False),
        (Schema(unique_items=True), [{"a": 1}, {"a": 1.0}], False),
        (Schema(prefix_items=[Schema(type="integer")], unevaluated_items=false_schema()), [1], True),
        (Schema(prefix_items=[Schema(type="integer")], unevaluated_items=false_schema()), [1, 2], False),
        (Schema(all_of=[Schema(prefix_items=[Schema(), Schema()])], unevaluated_items=false_schema()), [1, 2], True),
        (Schema(all_of=[Schema(prefix_items=[Schema(), Schema()])], unevaluated_items=false_schema()), [1, 2, 3], False),
        (Schema(contains=Schema(type="string"), unevaluated_items=Schema(type="integer")), ["a", 1], True),
        (Schema(contains=Schema(type="string"), unevaluated_items=Schema(type="integer")), ["a", 1.5], False),
    ],
)
def test_array_keywords(schema, instance, want):
    assert is_valid(schema, instance) is want


def test_unique_items_message():
    with pytest.raises(ValidationError, match="array items 1 and 0 are equal"):
        rs(Schema(unique_items=True)).validate([2, 2.0])


@pytest.mark.parametrize(
    "schema, instance, want",
    [
        (Schema(properties={"a": Schema(type="integer")}), {"a": 1}, True),
        (Schema(properties={"a": Schema(type="integer")}), {"a": "x"}, False),
        (Schema(properties={"a": Schema(type="integer")}), {}, True),
        (Schema(pattern_properties={"^x": Schema(type="string")}), {"xa": "s", "y": 1}, True),
        (Schema(pattern_properties={"^x": Schema(type="string")}), {"xa": 1}, False),
        (
            Schema(properties={"a": Schema()}, pattern_properties={"^x": Schema()}, additional_properties=false_schema()),
            {"a": 1, "xb": 2},
            True,
        ),
        (
            Schema(properties={"a": Schema()}, additional_properties=false_schema()),
            {"a": 1, "b": 2},
            False,
        ),
        (Schema(property_names=Schema(max_length=2)), {"ab": 1}, True),
        (Schema(property_names=Schema(max_length=2)), {"abc": 1}, False),
        (Schema(min_properties=2), {"a": 1}, False),
        (Schema(max_properties=1), {"a": 1, "b": 2}, False),
        (Schema(required=["a"]), {"a": None}, True),
        (Schema(required=["a"]), {"b": 1}, False),
        (Schema(dependent_required={"a": ["b"]}), {"c": 1}, True),
        (Schema(dependent_required={"a": ["b"]}), {"a": 1}, False),
        (Schema(dependent_schemas={"a": Schema(required=["b"])}), {"a": 1, "b": 2}, True),
        (Schema(dependent_schemas={"a": Schema(required=["b"])}), {"a": 1}, False),
        (Schema(all_of=[Schema(properties={"a": Schema()})], unevaluated_properties=false_schema()), {"a": 1}, True),
        (Schema(all_of=[Schema(properties={"a": Schema()})], unevaluated_properties=false_schema()), {"a": 1, "b": 2}, False),
    ],
)
def test_object_keywords(schema, instance, want):
    assert is_valid(schema, instance) is want


def test_required_message_lists_missing():
    with pytest.raises(ValidationError, match=r'required: missing properties: \["a" "b"\]'):
        rs(Schema(required=["a", "b"])).validate({})


@pytest.mark.parametrize(
    "schema, instance, want",
    [
        (Schema(all_of=[Schema(minimum=1.0), Schema(maximum=3.0)]), 2, True),
        (Schema(all_of=[Schema(minimum=1.0), Schema(maximum=3.0)]), 4, False),
        (Schema(any_of=[Schema(type="string"), Schema(type="integer")]), 1, True),
        (Schema(any_of=[Schema(type="string"), Schema(type="integer")]), 1.5, False),
        (Schema(one_of=[Schema(type="number"), Schema(type="integer")]), 1, False),
        (Schema(one_of=[Schema(type="number"), Schema(type="integer")]), 1.5, True),
        (Schema(one_of=[Schema(type="string")]), 1, False),
        (Schema(not_=Schema(type="string")), 1, True),
        (Schema(not_=Schema(type="string")), "a", False),
        (Schema(if_=Schema(type="integer"), then=Schema(minimum=0.0), else_=Schema(type="string")), 1, True),
        (Schema(if_=Schema(type="integer"), then=Schema(minimum=0.0), else_=Schema(type="string")), -1, False),
        (Schema(if_=Schema(type="integer"), then=Schema(minimum=0.0), else_=Schema(type="string")), "s", True),
        (Schema(if_=Schema(type="integer"), then=Schema(minimum=0.0), else_=Schema(type="string")), 1.5, False),
        (false_schema(), None, False),
        (Schema(), {"anything": [1, 2]}, True),
    ],
)
def test_logic_keywords(schema, instance, want):
    assert is_valid(schema, instance) is want


def test_unsupported_version():
    with pytest.raises(ValidationError, match="cannot validate version"):
        rs(Schema(schema="http://example.com/other-draft")).validate(1)


def test_supported_version():
    root = Schema(schema=DRAFT_2020_12, type="integer")
    assert is_valid(root, 3) is True
    assert is_valid(root, "3") is False


def test_unresolved_ref_raises():
    with pytest.raises(ValidationError, match="not been resolved"):
        rs(Schema(ref="#/$defs/x")).validate(1)


def test_unresolved_dynamic_ref_raises():
    with pytest.raises(ValidationError, match="not been resolved"):
        rs(Schema(dynamic_ref="#x")).validate(1)


def test_non_json_value_rejected_by_type():
    with pytest.raises(ValidationError, match="not a valid JSON value"):
        rs(Schema(type="string")).validate(object())


def test_map_with_non_string_keys():
    with pytest.raises(ValidationError, match="is not a string"):
        rs(Schema(required=["a"])).validate({1: "x"})


def test_validate_defaults_success():
    s = Schema(
        properties={
            "a": Schema(type="integer", default=1),
            "b": Schema(type="string", default="s"),
        },
        default={"a": 1, "b": "two"},
    )
    rs(s).validate_defaults()
    assert s.properties["a"].default == 1


def test_validate_defaults_failure():
    s = Schema(
        properties={
            "a": Schema(type="integer", default=3),
            "b": Schema(type="string", default="s"),
        },
        default={"a": 1, "b": 2},
    )
    with pytest.raises(ValidationError, match='has type "integer", want "string"'):
        rs(s).validate_defaults()


def test_validate_defaults_rejects_dynamic_refs():
    s = Schema(properties={"a": Schema(dynamic_ref="#x")})
    with pytest.raises(ValidationError, match="does not support dynamic refs"):
        rs(s).validate_defaults()


def _defaults_schema():
    return Schema(
        properties={
            "A": Schema(default=1),
            "B": Schema(default=2),
            "C": Schema(default=3),
        },
        required=["C"],
    )


def test_apply_defaults_map():
    resolved = rs(_defaults_schema())
    resolved.validate_defaults()
    instance = {"B": 0}
    resolved.apply_defaults(instance)
    assert instance == {"A": 1, "B": 0}


@dataclass
class _S:
    A: int = 0
    B: int = 0
    C: int = 0


def test_apply_defaults_struct():
    instance = _S(B=1)
    rs(_defaults_schema()).apply_defaults(instance)
    assert instance == _S(A=1, B=1, C=0)


def test_apply_defaults_bad_map_keys():
    with pytest.raises(ValidationError, match="applyDefaults"):
        rs(_defaults_schema()).apply_defaults({1: 2})


@dataclass
class _Instance:
    I: int
    B: bool = field(metadata={"json": "b"})
    P: Optional[int] = None
    _u: int = 0


_STRUCT = _Instance(1, True, None, 0)


@pytest.mark.parametrize(
    "schema, want",
    [
        (Schema(min_properties=4), False),
        (Schema(min_properties=3), True),
        (Schema(max_properties=1), False),
        (Schema(max_properties=2), True),
        (Schema(required=["i"]), False),
        (Schema(required=["B"]), False),
        (Schema(property_names=Schema(min_length=2)), False),
        (Schema(properties={"b": Schema(type="boolean")}), True),
        (Schema(properties={"b": Schema(type="number")}), False),
        (Schema(required=["I"]), True),
        (Schema(required=["I", "P"]), True),
        (Schema(required=["I", "P"], properties={"P": Schema(type="number")}), False),
        (Schema(required=["I"], properties={"P": Schema(type="number")}), True),
        (Schema(required=["I"], additional_properties=false_schema()), False),
        (Schema(dependent_required={"b": ["u"]}), False),
        (Schema(dependent_schemas={"b": false_schema()}), False),
        (Schema(unevaluated_properties=false_schema()), False),
    ],
)
def test_struct_instance(schema, want):
    assert is_valid(schema, _STRUCT) is want


def test_struct_instance_is_object():
    assert is_valid(Schema(type="object"), _STRUCT) is True
    assert is_valid(Schema(type="array"), _STRUCT) is False