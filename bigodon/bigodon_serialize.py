from __future__ import annotations

import json
from pathlib import Path as _FsPath
from typing import Any, Optional
import collections.abc

import yaml

from bigodon.bigodon_datatypes import (
    Template, Text, Comment, Mustache, Section, UnknownStatement,
    Literal, Path, HelperCall, Expression, Statement, TemplateSyntaxError
)


# --------------------------
# Helpers
# --------------------------

def _node_type(data: collections.abc.Mapping) -> Optional[str]:
    # 'kind' is accepted as an alias of 'type'
    t = data.get('type', data.get('kind'))
    return t if isinstance(t, str) else None


def _require_mapping(data: Any, what: str) -> collections.abc.Mapping:
    if not isinstance(data, collections.abc.Mapping):
        raise TemplateSyntaxError(f"{what} must be a mapping, not {type(data).__name__}")
    return data


def _expression_to_dict(expr: Expression) -> dict:
    match expr:
        case Literal():
            return {'type': 'LITERAL', 'value': expr.value}
        case Path():
            return {'type': 'PATH', 'segments': list(expr.segments)}
        case HelperCall():
            return {
                'type': 'HELPER_CALL',
                'name': expr.name,
                'arguments': [_expression_to_dict(a) for a in expr.arguments],
            }
    raise TypeError(f"Cannot serialize expression {expr!r}")


def _statement_to_dict(stmt: Statement) -> dict:
    match stmt:
        case Text():
            return {'type': 'TEXT', 'value': stmt.value}
        case Comment():
            return {'type': 'COMMENT', 'value': stmt.value}
        case Mustache():
            return {'type': 'MUSTACHE', 'expression': _expression_to_dict(stmt.expression)}
        case Section():
            return {
                'type': 'SECTION',
                'expression': _expression_to_dict(stmt.expression),
                'negated': stmt.negated,
                'body': [_statement_to_dict(s) for s in stmt.body],
                'elseBody': None if stmt.else_body is None else [_statement_to_dict(s) for s in stmt.else_body],
            }
        case UnknownStatement():
            out = dict(stmt.data)
            out['type'] = stmt.kind
            return out
    raise TypeError(f"Cannot serialize statement {stmt!r}")


def _expression_from_dict(data: Any) -> Expression:
    data = _require_mapping(data, "Expression")
    match _node_type(data):
        case 'LITERAL':
            return Literal(str(data.get('value', '')))
        case 'PATH':
            segments = data.get('segments')
            if not isinstance(segments, (list, tuple)) or not all(isinstance(s, str) for s in segments):
                raise TemplateSyntaxError("PATH segments must be a list of strings")
            return Path(segments)
        case 'HELPER_CALL':
            name = data.get('name')
            if not isinstance(name, str) or not name:
                raise TemplateSyntaxError("HELPER_CALL requires a name")
            return HelperCall(name, [_expression_from_dict(a) for a in data.get('arguments') or []])
        case other:
            raise TemplateSyntaxError(f"Unknown expression kind {other!r}")


def _statements_from_list(items: Any) -> list:
    if items is None:
        return []
    if not isinstance(items, (list, tuple)):
        raise TemplateSyntaxError("Statements must be a list")
    return [_statement_from_dict(s) for s in items]


def _statement_from_dict(data: Any) -> Statement:
    data = _require_mapping(data, "Statement")
    kind = _node_type(data)
    match kind:
        case 'TEXT':
            return Text(str(data.get('value', '')))
        case 'COMMENT':
            return Comment(str(data.get('value', '')))
        case 'MUSTACHE':
            return Mustache(_expression_from_dict(data.get('expression')))
        case 'SECTION':
            else_raw = data.get('elseBody')
            return Section(
                _expression_from_dict(data.get('expression')),
                bool(data.get('negated', False)),
                _statements_from_list(data.get('body')),
                None if else_raw is None else _statements_from_list(else_raw),
            )
        case _:
            rest = {k: v for k, v in data.items() if k not in ('type', 'kind')}
            return UnknownStatement(str(kind), rest)


# --------------------------
# Public API
# --------------------------

def to_dict(template: Template) -> dict:
    """Plain-dict form of a template, suitable for JSON or YAML."""
    return {
        'type': 'TEMPLATE',
        'version': template.version,
        'statements': [_statement_to_dict(s) for s in template.statements],
    }


def read_version(data: Any) -> Any:
    """Version of a serialized template, read without touching its statements."""
    return _require_mapping(data, "Template").get('version')


def from_dict(data: Any) -> Template:
    """
    Builds a Template from its plain-dict form.
    Unknown statement kinds are kept as UnknownStatement; unknown expression
    kinds raise TemplateSyntaxError. The version is copied as-is and is only
    checked when the template is run.
    """
    data = _require_mapping(data, "Template")
    if _node_type(data) not in (None, 'TEMPLATE'):
        raise TemplateSyntaxError(f"Not a template document: {_node_type(data)!r}")
    return Template(_statements_from_list(data.get('statements')), data.get('version'))


def detect_format(path: Optional[str] = None, data_hint: Optional[str] = None) -> Optional[str]:
    """
    Returns 'json' or 'yaml'. Uses the file extension first; falls back to
    simple data sniffing if provided.
    """
    if path:
        ext = _FsPath(path).suffix.lower()
        if ext == '.json':
            return 'json'
        if ext in ('.yaml', '.yml'):
            return 'yaml'
    if data_hint is not None:
        s = data_hint.lstrip()
        if s.startswith('{') or s.startswith('['):
            return 'json'
        return 'yaml'
    return None


def load_data(text: str, *, fmt: Optional[str] = None) -> Any:
    """Parses a JSON or YAML document into plain Python data (used for contexts)."""
    f = fmt or detect_format(data_hint=text)
    if f == 'json':
        try:
            return json.loads(text)
        except ValueError:
            # YAML is a superset of JSON
            return yaml.safe_load(text)
    if f == 'yaml':
        return yaml.safe_load(text)
    raise ValueError(f"Unsupported data format: {fmt!r}")


def serialize(template: Template, *, fmt: str = 'json', pretty: bool = True) -> str:
    f = (fmt or '').lower()
    built = to_dict(template)
    if f == 'json':
        return json.dumps(built, ensure_ascii=False, indent=2 if pretty else None)
    if f == 'yaml':
        return yaml.safe_dump(built, sort_keys=False, allow_unicode=True)
    raise ValueError(f"Unsupported serialization format: {fmt!r}")


def deserialize(text: str | bytes, *, fmt: Optional[str] = None) -> Template:
    if isinstance(text, (bytes, bytearray)):
        text = text.decode('utf-8')
    return from_dict(load_data(text, fmt=fmt))


__all__ = [
    "to_dict",
    "from_dict",
    "read_version",
    "serialize",
    "deserialize",
    "load_data",
    "detect_format",
]
