"""Preparation of schemas for validation.

Resolution checks that a schema is well formed, assigns base URIs to it and
its subschemas, records anchors, and replaces every ``$ref`` and
``$dynamicRef`` with the schema it refers to, loading remote schemas when
needed.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import unquote

from .json_pointer import JSONPointerError, dereference_json_pointer, escape_segment
from .schema import _FIELDS_BY_JSON, Schema, SchemaError
from .validate import DRAFT_2020_12, Resolved

__all__ = ["ResolveOptions", "resolve", "check_structure", "check", "resolve_uris"]

Loader = Callable[[str], Schema]

_ID = _FIELDS_BY_JSON["$id"].attr
_ANCHOR = _FIELDS_BY_JSON["$anchor"].attr
_DYNAMIC_ANCHOR = _FIELDS_BY_JSON["$dynamicAnchor"].attr
_VOCABULARY = _FIELDS_BY_JSON["$vocabulary"].attr

# Schema-valued keywords, sorted by JSON name for a deterministic traversal.
_SORTED_FIELDS = sorted(_FIELDS_BY_JSON.items())


def _q(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


@dataclass
class ResolveOptions:
    """Options for :func:`resolve`.

    ``base_uri`` is the URI against which the root's ``$id`` is resolved;
    if not empty it should be absolute. ``loader`` loads schemas referred
    to by references outside the root; without one, such references fail.
    ``validate_defaults`` makes resolution validate every ``default`` value
    against the schema that holds it.
    """

    base_uri: str = ""
    loader: Optional[Loader] = None
    validate_defaults: bool = False


# --- URI references (RFC 3986, section 5) ---------------------------------

_URI_RE = re.compile(
    r"^(?:([A-Za-z][A-Za-z0-9+.\-]*):)?(?://([^/?#]*))?([^?#]*)(?:\?([^#]*))?(?:#(.*))?\Z",
    re.S,
)


def _split(uri: str) -> tuple[Optional[str], Optional[str], str, Optional[str], Optional[str]]:
    match = _URI_RE.match(uri)
    if match is None:
        raise SchemaError(f"invalid URI {_q(uri)}")
    scheme, authority, path, query, fragment = match.groups()
    return scheme, authority, path, query, fragment


def _compose(
    scheme: Optional[str],
    authority: Optional[str],
    path: str,
    query: Optional[str],
    fragment: Optional[str],
) -> str:
    parts = []
    if scheme is not None:
        parts.append(scheme + ":")
    if authority is not None:
        parts.append("//" + authority)
    parts.append(path)
    if query is not None:
        parts.append("?" + query)
    if fragment:
        parts.append("#" + fragment)
    return "".join(parts)


def _remove_dot_segments(path: str) -> str:
    if not path:
        return path
    absolute = path.startswith("/")
    segments = path.split("/")
    if absolute:
        segments = segments[1:]
    out: list[str] = []
    last = len(segments) - 1
    for i, seg in enumerate(segments):
        if seg == ".":
            if i == last:
                out.append("")
        elif seg == "..":
            if out:
                out.pop()
            if i == last:
                out.append("")
        else:
            out.append(seg)
    result = "/".join(out)
    return "/" + result if absolute else result


def _resolve_reference(base: str, ref: str) -> str:
    """Resolve ``ref`` against ``base`` as a URI reference."""
    b_scheme, b_auth, b_path, b_query, _ = _split(base)
    r_scheme, r_auth, r_path, r_query, r_frag = _split(ref)
    if r_scheme is not None:
        return _compose(r_scheme, r_auth, _remove_dot_segments(r_path), r_query, r_frag)
    if r_auth is not None:
        return _compose(b_scheme, r_auth, _remove_dot_segments(r_path), r_query, r_frag)
    if r_path == "":
        query = r_query if r_query is not None else b_query
        return _compose(b_scheme, b_auth, b_path, query, r_frag)
    if r_path.startswith("/"):
        path = _remove_dot_segments(r_path)
    elif b_auth is not None and b_path == "":
        path = _remove_dot_segments("/" + r_path)
    else:
        path = _remove_dot_segments(b_path[: b_path.rfind("/") + 1] + r_path)
    return _compose(b_scheme, b_auth, path, r_query, r_frag)


def _is_absolute(uri: str) -> bool:
    return _split(uri)[0] is not None


def _without_fragment(uri: str) -> str:
    return uri.partition("#")[0]


def _fragment(uri: str) -> str:
    return unquote(uri.partition("#")[2])


# --- checks ----------------------------------------------------------------


def check_structure(root: Schema) -> None:
    """Verify that ``root`` and its subschemas form a tree, assigning each a path.

    The root's path is ``"root"``; the others' are their JSON Pointers.
    """

    def visit(s: Any, path: str) -> None:
        p = path or "root"
        if s is None:
            raise SchemaError(f"jsonschema: schema at {p} is nil")
        seen_at = getattr(s, "_path", "")
        if seen_at:
            raise SchemaError(
                f"jsonschema: schemas at {root} do not form a tree; "
                f"{seen_at} appears more than once (also at {p})"
            )
        s._path = p
        for json_name, info in _SORTED_FIELDS:
            value = getattr(s, info.attr, None)
            if value is None:
                continue
            if info.kind == "schema_list":
                for i, child in enumerate(value):
                    visit(child, f"{path}/{json_name}/{i}")
            elif info.kind == "schema_map":
                for key in sorted(value):
                    visit(value[key], f"{path}/{json_name}/{escape_segment(key)}")
            elif isinstance(value, Schema):
                visit(value, f"{path}/{json_name}")

    visit(root, "")


def _check_local(s: Schema, report: Callable[[str], None]) -> None:
    def add(msg: str) -> None:
        report(f"jsonschema.Schema: {s}: {msg}")

    try:
        problem = s.basic_checks()
    except (SchemaError, ValueError) as exc:
        report(str(exc))
        return
    if problem:
        report(str(problem))
        return

    # $vocabulary is kept for round trips but only understood for the 2020-12 meta-schema.
    if getattr(s, _VOCABULARY) is not None and s.schema != DRAFT_2020_12:
        add("cannot validate a schema with $vocabulary")

    if s.pattern:
        try:
            s._pattern = re.compile(s.pattern)
        except re.error as exc:
            add(f"pattern: invalid regexp: {exc}")
    if s.pattern_properties:
        compiled = {}
        for source, subschema in s.pattern_properties.items():
            try:
                compiled[re.compile(source)] = subschema
            except re.error as exc:
                add(f"patternProperties[{_q(source)}]: invalid regexp: {exc}")
        s._pattern_properties = compiled
    if s.required:
        s._is_required = set(s.required)


def check(root: Schema) -> None:
    """Check ``root`` and its subschemas for validity, compiling their patterns.

    All local problems are gathered into one SchemaError.
    """
    check_structure(root)
    problems: list[str] = []
    for s in root.all():
        _check_local(s, problems.append)
    if problems:
        raise SchemaError("\n".join(problems))


def resolve_uris(root: Schema, base_uri: str) -> dict[str, Schema]:
    """Assign base URIs and anchors to the schemas of ``root``.

    Returns a map from each absolute identifier (and ``base_uri``) to its schema.
    """
    resolved: dict[str, Schema] = {}

    def visit(s: Schema, base: Schema) -> None:
        sid = getattr(s, _ID)
        if sid:
            if _fragment(sid):
                raise SchemaError(f"$id {sid} must not have a fragment")
            uri = _resolve_reference(base._uri or "", sid)
            if not _is_absolute(uri):
                raise SchemaError(
                    f"$id {sid} does not resolve to an absolute URI (base is {base._uri})"
                )
            s._uri = uri
            resolved[uri] = s
            base = s
        s._base = base
        # Anchors are scoped to the base; the first definition of a name wins.
        for anchor, dynamic in ((getattr(s, _ANCHOR), False), (getattr(s, _DYNAMIC_ANCHOR), True)):
            if anchor:
                anchors = getattr(base, "_anchors", None)
                if anchors is None:
                    anchors = {}
                    base._anchors = anchors
                anchors.setdefault(anchor, (s, dynamic))
        for child in s.children():
            visit(child, base)

    root._uri = base_uri
    # The original base remains a valid name for the root even if it has an $id.
    resolved[base_uri] = root
    visit(root, root)
    return resolved


# --- references --------------------------------------------------------------


def _no_loader(uri: str) -> Schema:
    raise SchemaError("cannot resolve remote schemas: no loader passed to resolve")


class _Resolver:
    def __init__(self, loader: Loader) -> None:
        self._loader = loader
        # Loaded, possibly partly resolved schemas: each URI is loaded once,
        # and reference cycles terminate.
        self._loaded: dict[str, Resolved] = {}

    def resolve(self, s: Schema, base_uri: str) -> Resolved:
        if _fragment(base_uri):
            raise SchemaError(f"base URI {base_uri} must not have a fragment")
        check(s)
        uris = resolve_uris(s, base_uri)
        rs = Resolved(s, uris)
        # Record before resolving references, so that cycles find it.
        self._loaded[base_uri] = rs
        self._loaded[s._uri or ""] = rs
        self._resolve_refs(rs)
        return rs

    def _resolve_refs(self, rs: Resolved) -> None:
        for s in rs.schema().all():
            if s.ref:
                target, _ = self._resolve_ref(rs, s, s.ref)
                s._resolved_ref = target
            if s.dynamic_ref:
                target, frag = self._resolve_ref(rs, s, s.dynamic_ref)
                if frag:
                    # Resolved against the dynamic scope at validation time.
                    s._dynamic_ref_anchor = frag
                else:
                    s._resolved_dynamic_ref = target

    def _resolve_ref(self, rs: Resolved, s: Schema, ref: str) -> tuple[Schema, str]:
        ref_uri = _resolve_reference(s._base._uri or "", ref)
        fragless = _without_fragment(ref_uri)
        referenced = rs.resolved_uris.get(fragless)
        if referenced is None:
            cached = self._loaded.get(fragless)
            if cached is not None:
                referenced = cached.schema()
            else:
                try:
                    loaded = self._loader(fragless)
                except Exception as exc:
                    raise SchemaError(f"loading {fragless}: {exc}") from exc
                if not isinstance(loaded, Schema):
                    raise SchemaError(f"loading {fragless}: loader did not return a schema")
                referenced = self.resolve(loaded, fragless).schema()

        frag = _fragment(ref_uri)
        # A fragment is either a JSON Pointer (empty or starting with "/") or an anchor.
        if frag and not frag.startswith("/"):
            info = (getattr(referenced, "_anchors", None) or {}).get(frag)
            if info is None:
                raise SchemaError(f"no anchor {_q(frag)} in {s}")
            target, dynamic = info
            return target, frag if dynamic else ""
        try:
            return dereference_json_pointer(referenced, frag), ""
        except JSONPointerError as exc:
            raise SchemaError(str(exc)) from exc


def resolve(schema: Schema, options: Optional[ResolveOptions] = None) -> Resolved:
    """Check ``schema``, resolve all its references and return it ready to validate."""
    if getattr(schema, "_path", ""):
        raise SchemaError(f"jsonschema: Resolve: {schema} already resolved")
    opts = options if options is not None else ResolveOptions()
    resolver = _Resolver(opts.loader if opts.loader is not None else _no_loader)
    resolved = resolver.resolve(schema, opts.base_uri or "")
    if opts.validate_defaults:
        resolved.validate_defaults()
    return resolved