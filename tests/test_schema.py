import pytest

from modelctx.schema import UNSET, Schema, SchemaError, false_schema
from modelctx.values import equal


@pytest.mark.parametrize(
    "schema, getter, expected",
    [
        (Schema(type="null"), lambda s: s.type, "null"),
        (Schema(types=["null", "number"]), lambda s: s.types, ["null", "number"]),
        (Schema(type="string", min_length=20), lambda s: s.min_length, 20),
        (Schema(minimum=20.0), lambda s: s.minimum, 20.0),
        (Schema(items=Schema(type="integer")), lambda s: s.items.type, "integer"),
        (Schema(const=0), lambda s: s.const, 0),
        (Schema(const=None), lambda s: s.const, None),
        (Schema(const=[]), lambda s: s.const, []),
        (Schema(const={}), lambda s: s.const, {}),
        (Schema(default=1), lambda s: s.default, 1),
        (Schema(default=None), lambda s: s.default, None),
        (Schema(extra={"test": "value"}), lambda s: s.extra, {"test": "value"}),
    ],
)
def test_go_round_trip(schema, getter, expected):
    got = Schema.from_json(schema.to_json())
    assert got.to_dict() == schema.to_dict()
    value = getter(got)
    assert value is not UNSET
    assert equal(value, expected)


@pytest.mark.parametrize(
    "text, want",
    [
        ("true", "{}"),
        ("false", '{"not":{}}'),
        ('{"type":"", "enum":null}', "{}"),
        ('{"minimum":1}', '{"minimum":1}'),
        ('{"minimum":1.0}', '{"minimum":1}'),
        ('{"minLength":1.0}', '{"minLength":1}'),
        ('{"$vocabulary":{"b":true, "a":false}}', '{"$vocabulary":{"a":false,"b":true}}'),
        ('{"unk":0}', '{"unk":0}'),
        (
            '{"comment":"test","type":"example","unk":0}',
            '{"type":"example","comment":"test","unk":0}',
        ),
        ('{"extra":0}', '{"extra":0}'),
        ('{"Extra":0}', '{"Extra":0}'),
    ],
)
def test_json_round_trip(text, want):
    assert Schema.from_json(text).to_json() == want


@pytest.mark.parametrize(
    "text, pattern",
    [
        ("1", "cannot unmarshal number"),
        ('{"type":1}', 'invalid value for "type"'),
        ('{"minLength":1.5}', "not an integer value"),
        ('{"maxLength":1.5}', "not an integer value"),
        ('{"minItems":1.5}', "not an integer value"),
        ('{"maxItems":1.5}', "not an integer value"),
        ('{"minProperties":1.5}', "not an integer value"),
        ('{"maxProperties":1.5}', "not an integer value"),
        ('{"minContains":1.5}', "not an integer value"),
        ('{"maxContains":1.5}', "not an integer value"),
        ('{"maxContains":%d}' % (2**31), "out of range"),
        ('{"minLength":9e99}', "cannot be unmarshaled"),
        ('{"minLength":"1.5"}', "not a number"),
    ],
)
def test_unmarshal_errors(text, pattern):
    with pytest.raises(SchemaError, match=pattern):
        Schema.from_json(text)


def test_boolean_subschemas_become_objects():
    s = Schema.from_json('{"items": false, "contains": true}')
    assert s.items.not_.to_dict() == {}
    assert s.contains.to_dict() == {}
    assert s.to_json() == '{"items":{"not":{}},"contains":{}}'


def test_const_null_is_present():
    s = Schema.from_json('{"const": null}')
    assert s.const is None
    assert s.to_json() == '{"const":null}'
    assert Schema.from_json("{}").const is UNSET


def test_false_schema():
    assert false_schema().to_json() == '{"not":{}}'


def test_basic_checks_type_and_types():
    s = Schema(type="string", types=["null"])
    with pytest.raises(SchemaError, match="both type and types"):
        s.basic_checks()
    with pytest.raises(SchemaError, match="both type and types"):
        s.to_json()


def test_basic_checks_defs_and_definitions():
    s = Schema(defs={}, definitions={})
    with pytest.raises(SchemaError, match="defs and definitions"):
        s.basic_checks()


def test_extra_duplicate_keyword():
    s = Schema(title="t", extra={"title": "dup"})
    with pytest.raises(SchemaError, match="duplicate"):
        s.to_dict()


def test_all_visits_in_sorted_order():
    root = Schema(
        type="string",
        prefix_items=[Schema(type="int"), Schema(items=Schema(type="null"))],
        contains=Schema(properties={"~1": Schema(type="boolean"), "p": Schema()}),
    )
    want = [
        root,
        root.contains,
        root.contains.properties["p"],
        root.contains.properties["~1"],
        root.prefix_items[0],
        root.prefix_items[1],
        root.prefix_items[1].items,
    ]
    got = list(root.all())
    assert len(got) == len(want)
    assert all(g is w for g, w in zip(got, want))


def test_children_are_immediate_only():
    root = Schema(
        defs={"b": Schema(), "a": Schema()},
        not_=Schema(items=Schema()),
    )
    got = list(root.children())
    assert [c is x for c, x in zip(got, [root.defs["a"], root.defs["b"], root.not_])] == [
        True,
        True,
        True,
    ]
    assert len(got) == 3


def test_resolved_ref_before_resolution():
    assert Schema(ref="#/x").resolved_ref() is None


def test_str_of_anonymous_schema():
    assert str(Schema()) == "<anonymous schema>"


def test_marshal_order_and_nested():
    s = Schema(
        properties={"b": Schema(type="integer"), "a": Schema(type="string")},
        required=["a"],
        type="object",
        id="http://example.com/s",
    )
    assert s.to_json() == (
        '{"type":"object","$id":"http://example.com/s","required":["a"],'
        '"properties":{"a":{"type":"string"},"b":{"type":"integer"}}}'
    )


def test_from_dict_rejects_bad_keyword_types():
    with pytest.raises(SchemaError, match="title"):
        Schema.from_dict({"title": 1})
    with pytest.raises(SchemaError, match="required"):
        Schema.from_dict({"required": "a"})