# modelctx

A self-contained toolkit for JSON Schema draft 2020-12, with no dependencies
beyond the standard library.

## Modules

- `modelctx.schema`: the `Schema` dataclass. Read a schema with
  `Schema.from_json` or `Schema.from_dict` (the booleans `true` and `false`
  are accepted as schemas) and write it back with `to_json` or `to_dict`.
  Keywords it does not know are kept in `extra`. Absent `const` and
  `default` are marked by `UNSET`, since `None` stands for JSON null.
  `false_schema()` returns a schema that validates nothing. Malformed input
  raises `SchemaError`.
- `modelctx.resolve`: `resolve(schema, options=None)` checks a schema,
  assigns base URIs from `$id`, records `$anchor` and `$dynamicAnchor`,
  resolves every `$ref` and `$dynamicRef`, and returns a `Resolved`.
  `ResolveOptions` has `base_uri`, `loader` (a callable that takes a URI
  string and returns a `Schema`, used for references outside the root) and
  `validate_defaults`. `check`, `check_structure` and `resolve_uris` expose
  the individual steps.
- `modelctx.validate`: `Resolved.validate(instance)` raises
  `ValidationError` when the instance does not match.
  `Resolved.validate_defaults()` checks every `default` against the schema
  that holds it. `Resolved.apply_defaults(instance)` fills in defaults for
  the root schema's optional properties: a mapping gains missing keys, and a
  dataclass field holding a zero value is set.
- `modelctx.instance`: how object instances are read. Instances may be
  string-keyed mappings or dataclass instances; a dataclass field's property
  name comes from its `"json"` metadata or its own name, `"-"` or a leading
  underscore omits it, and `"omitempty"`/`"omitzero"` mark it optional.
- `modelctx.json_pointer`: `parse_json_pointer`, `escape_segment`,
  `unescape_segment` and `dereference_json_pointer` for RFC 6901 pointers
  into a schema; errors raise `JSONPointerError`.
- `modelctx.values`: `equal`, `json_type`, `json_number` and `hash_value`
  compare, classify and hash values the way JSON Schema does. For example,
  `1` equals `1.0`, and `json_type(2.0)` is `"integer"`.
- `modelctx.annotations`: `Annotations`, the record of evaluated items and
  properties used by `unevaluatedItems` and `unevaluatedProperties`.
- `modelctx.features`: `FeatureSet` holds items keyed by a unique ID.
  Iterating yields them sorted by ID, and `above(uid)` yields those whose ID
  sorts after `uid`.
- `modelctx.command`: `CommandTransport(args, env=None).connect()` starts a
  program and returns a `PipeConnection` that reads its stdout and writes
  its stdin. `close()` closes stdin, waits for the program to exit, then
  terminates and finally kills it.

## Installation

```
pip install .
```

## Example

```python
from modelctx.schema import Schema
from modelctx.resolve import resolve
from modelctx.validate import ValidationError

schema = Schema.from_json('{"type": "object", "properties": {"n": {"type": "integer"}}}')
resolved = resolve(schema)
resolved.validate({"n": 3})
try:
    resolved.validate({"n": "three"})
except ValidationError as err:
    print(err)
```

## What it does not do

- It does not build schemas from Python types; schemas are written by hand
  or read from JSON.
- `format` and the content keywords (`contentEncoding`, `contentMediaType`,
  `contentSchema`) are recorded but not validated.
- Patterns use Python's `re` module, which differs from ECMA 262 regular
  expressions in places.
- Only draft 2020-12 is validated; a schema whose `$schema` names another
  draft is rejected.

## Running the tests

```
pip install ".[test]"
pytest
```