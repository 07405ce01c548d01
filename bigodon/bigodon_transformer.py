"""
Transforms the raw parser AST into a Template using bigodon_datatypes.

The grammar yields a flat run of markers; this pass rebuilds section nesting
and enforces the structural rules the grammar cannot express (matching close
names, {{else}} placement).
"""

from typing import Any, List, Optional

from bigodon.bigodon_datatypes import (
    VERSION, Template, Text, Comment, Mustache, Section,
    Literal, Path, HelperCall, Expression, TemplateSyntaxError
)

_STATEMENT_TAGS = ('text', 'comment', 'else', 'open-section', 'open-negated', 'close-section', 'mustache')
_EXPRESSION_TAGS = ('helper-call', 'subexpression', 'path', 'string')


class _OpenSection:
    """Bookkeeping for a section whose close marker has not been seen yet."""
    def __init__(self, expression: Expression, negated: bool, node: dict):
        self.expression = expression
        self.negated = negated
        self.name = TemplateTransformer.display_name(expression)
        self.key = TemplateTransformer.close_key(expression)
        self.node = node
        self.body: List[Any] = []
        self.else_body: Optional[List[Any]] = None

    @property
    def target(self) -> List[Any]:
        return self.else_body if self.else_body is not None else self.body

    def build(self) -> Section:
        return Section(self.expression, self.negated, self.body, self.else_body)


def _children(node: Any) -> list:
    ch = node.get('children') if isinstance(node, dict) else None
    if ch is None:
        return []
    if isinstance(ch, dict):
        # Named-children dicts; order is not meaningful here
        return list(ch.values())
    return list(ch)


def _flatten(nodes: Any, wanted: tuple) -> list:
    """Collects nodes tagged with one of `wanted`, unwrapping untagged or promoted wrappers."""
    out = []
    if isinstance(nodes, list):
        for n in nodes:
            out.extend(_flatten(n, wanted))
        return out
    if not isinstance(nodes, dict):
        return out
    if nodes.get('tag') in wanted:
        out.append(nodes)
        return out
    for ch in _children(nodes):
        out.extend(_flatten(ch, wanted))
    return out


def _loc(node: dict):
    return node.get('line'), node.get('col')


class TemplateTransformer:
    def transform(self, node: Any) -> Template:
        if isinstance(node, dict) and node.get('tag') == 'template':
            raw_statements = _flatten(_children(node), _STATEMENT_TAGS)
        else:
            raw_statements = _flatten(node, _STATEMENT_TAGS)

        root: List[Any] = []
        stack: List[_OpenSection] = []

        for raw in raw_statements:
            target = stack[-1].target if stack else root
            match raw.get('tag'):
                case 'text':
                    target.append(Text(raw.get('text', '')))
                case 'comment':
                    text = raw.get('text', '')
                    target.append(Comment(text[3:-2]))
                case 'mustache':
                    target.append(Mustache(self._single_expression(raw)))
                case 'open-section' | 'open-negated':
                    expr = self._single_expression(raw)
                    stack.append(_OpenSection(expr, raw['tag'] == 'open-negated', raw))
                case 'else':
                    if not stack:
                        raise TemplateSyntaxError("{{else}} outside of a section", *_loc(raw))
                    current = stack[-1]
                    if current.else_body is not None:
                        raise TemplateSyntaxError(f"Duplicate {{{{else}}}} in section '{current.name}'", *_loc(raw))
                    current.else_body = []
                case 'close-section':
                    closer = self._single_expression(raw)
                    name = self.display_name(closer)
                    if not stack:
                        raise TemplateSyntaxError(f"Unexpected closing tag '{name}'", *_loc(raw))
                    current = stack.pop()
                    if current.key != self.close_key(closer):
                        raise TemplateSyntaxError(
                            f"Closing tag '{name}' does not match opening tag '{current.name}'", *_loc(raw)
                        )
                    (stack[-1].target if stack else root).append(current.build())

        if stack:
            raise TemplateSyntaxError(f"Unclosed section '{stack[-1].name}'", *_loc(stack[-1].node))

        return Template(root, VERSION)

    # --- Expression Transformers ---

    def _single_expression(self, node: dict) -> Expression:
        found = _flatten(_children(node), _EXPRESSION_TAGS)
        if len(found) != 1:
            raise TemplateSyntaxError("Malformed expression", *_loc(node))
        return self.transform_expression(found[0])

    def transform_expression(self, node: dict) -> Expression:
        match node.get('tag'):
            case 'string':
                text = node.get('text', '')
                if len(text) < 2 or text[0] != '"' or text[-1] != '"':
                    raise TemplateSyntaxError("Unterminated literal", *_loc(node))
                return Literal(text[1:-1])
            case 'path':
                return Path(node.get('text', '').split('.'))
            case 'subexpression':
                return self._single_expression(node)
            case 'helper-call':
                children = _children(node)
                name_nodes = _flatten(children, ('helper-name',))
                if not name_nodes:
                    raise TemplateSyntaxError("Helper call without a name", *_loc(node))
                args = [self.transform_expression(a) for a in _flatten(children, _EXPRESSION_TAGS)]
                return HelperCall(name_nodes[0].get('text', ''), args)
            case tag:
                raise TemplateSyntaxError(f"Unsupported expression '{tag}'", *_loc(node))

    @staticmethod
    def section_name(expr: Expression) -> str:
        match expr:
            case Path():
                return expr.text
            case HelperCall():
                return expr.name
            case Literal():
                return expr.value
        raise TemplateSyntaxError(f"Unsupported section expression {expr!r}")

    @staticmethod
    def close_key(expr: Expression) -> tuple:
        """A literal section is closed by the same literal; anything else by a bare name."""
        return isinstance(expr, Literal), TemplateTransformer.section_name(expr)

    @staticmethod
    def display_name(expr: Expression) -> str:
        if isinstance(expr, Literal):
            return f'"{expr.value}"'
        return TemplateTransformer.section_name(expr)
