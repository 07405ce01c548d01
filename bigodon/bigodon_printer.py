"""
A printer that formats Bigodon syntax trees back into template source.
"""
import re

from bigodon.bigodon_datatypes import (
    Template, Text, Comment, Mustache, Section, UnknownStatement,
    Literal, Path, HelperCall
)
from bigodon.bigodon_transformer import TemplateTransformer

# Mirrors the leaf rules of the grammar
_SEGMENT = re.compile(r"[A-Za-z0-9_$@-]+")
_HELPER_NAME = re.compile(r"[A-Za-z_$][A-Za-z0-9_$-]*")


class Printer:
    """Formats trees into canonical template source.

    Any tree produced by the parser prints back to source that parses to an
    equal tree. Trees built by hand or loaded with `from_dict` may hold values
    that have no source form (text containing "{{", a literal containing a
    double quote, a comment containing "}}", ...); those raise ValueError
    instead of printing something that would read back differently.
    """

    def __init__(self):
        self._handlers = self._create_handlers()

    def pformat(self, obj) -> str:
        """Public entry point to format a template, statement or expression."""
        handler = self._handlers.get(type(obj))
        if handler is None:
            raise TypeError(f"Cannot format {type(obj).__name__}")
        return handler(obj)

    def _create_handlers(self):
        return {
            Template: self._pformat_template,
            Text: self._pformat_text,
            Comment: self._pformat_comment,
            Mustache: self._pformat_mustache,
            Section: self._pformat_section,
            UnknownStatement: lambda s: "",
            Literal: self._pformat_literal,
            Path: self._pformat_path,
            HelperCall: self._pformat_helper_call,
        }

    @staticmethod
    def _join(pieces) -> str:
        out = ""
        for piece in pieces:
            # "{" followed by a marker would read back as a different marker
            if out.endswith("{") and piece.startswith("{"):
                raise ValueError("Text ending in '{' cannot be followed by a marker")
            out += piece
        return out

    def _pformat_statements(self, statements) -> str:
        return self._join(self.pformat(s) for s in statements)

    def _pformat_template(self, obj: Template) -> str:
        return self._pformat_statements(obj.statements)

    def _pformat_text(self, obj: Text) -> str:
        if "{{" in obj.value:
            raise ValueError(f"Text {obj.value!r} contains '{{{{' and has no source form")
        return obj.value

    def _pformat_comment(self, obj: Comment) -> str:
        if "}}" in obj.value or obj.value.endswith("}"):
            raise ValueError(f"Comment {obj.value!r} cannot be written between '{{{{!' and '}}}}'")
        return "{{!" + obj.value + "}}"

    def _pformat_mustache(self, obj: Mustache) -> str:
        if obj.expression == Path(["else"]):
            raise ValueError("A path named 'else' reads back as an {{else}} marker")
        return "{{" + self.pformat(obj.expression) + "}}"

    def _pformat_section(self, obj: Section) -> str:
        sigil = "^" if obj.negated else "#"
        pieces = ["{{" + sigil + self.pformat(obj.expression) + "}}", self._pformat_statements(obj.body)]
        if obj.else_body is not None:
            pieces += ["{{else}}", self._pformat_statements(obj.else_body)]
        pieces.append("{{/" + TemplateTransformer.display_name(obj.expression) + "}}")
        return self._join(pieces)

    def _pformat_literal(self, obj: Literal) -> str:
        if '"' in obj.value:
            raise ValueError(f"Literal {obj.value!r} contains a double quote and has no source form")
        return '"' + obj.value + '"'

    def _pformat_path(self, obj: Path) -> str:
        if not obj.segments or not all(_SEGMENT.fullmatch(s) for s in obj.segments):
            raise ValueError(f"Path {list(obj.segments)!r} has no source form")
        return obj.text

    def _pformat_helper_call(self, obj: HelperCall, nested: bool = False) -> str:
        if not _HELPER_NAME.fullmatch(obj.name):
            raise ValueError(f"Helper name {obj.name!r} has no source form")
        if not obj.arguments:
            raise ValueError(f"Helper call '{obj.name}' without arguments reads back as a path")
        parts = [obj.name]
        for arg in obj.arguments:
            if isinstance(arg, HelperCall):
                parts.append(self._pformat_helper_call(arg, nested=True))
            else:
                parts.append(self.pformat(arg))
        text = " ".join(parts)
        return f"({text})" if nested else text
