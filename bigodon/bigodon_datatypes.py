"""
Defines the syntax tree node types and error types for Bigodon templates.

Nodes are plain immutable value objects: the parser builds them once and the
evaluator only reads them, so a compiled template can be shared across
concurrent runs.
"""

from typing import Any, Dict, Optional, Tuple

# Syntax tree format understood by this evaluator. Trees must match exactly.
VERSION = 1


# =================================================================
# Errors
# =================================================================

class BigodonError(Exception):
    """Base class for every error raised by the engine."""
    pass


class TemplateSyntaxError(BigodonError):
    """Malformed template source. Raised at compile time only."""
    def __init__(self, message: str, line: Optional[int] = None, col: Optional[int] = None):
        self.message = message
        self.line = line
        self.col = col
        if line is not None and col is not None:
            message = f"{message} (line {line}, col {col})"
        super().__init__(message)


class UnsupportedVersionError(BigodonError):
    def __init__(self, version: Any):
        super().__init__(f"Unsupported template version {version!r} (expected {VERSION})")
        self.version = version


class UnknownHelperError(BigodonError):
    def __init__(self, name: str):
        super().__init__(f"Unknown helper '{name}'")
        self.name = name


class HelperExecutionError(BigodonError):
    """A helper raised while being invoked. The original error is chained as __cause__."""
    def __init__(self, name: str, cause: BaseException):
        super().__init__(f"Helper '{name}' failed: {type(cause).__name__}: {cause}")
        self.name = name
        self.cause = cause


# =================================================================
# Base Classes
# =================================================================

class _Node:
    """Shared immutability and equality for tree nodes."""
    __slots__ = ()

    def __setattr__(self, key, value):
        raise AttributeError(f"{type(self).__name__} is immutable")

    def _fields(self) -> Tuple[Any, ...]:
        return tuple(getattr(self, name) for name in self.__slots__)

    def __eq__(self, other):
        return type(self) is type(other) and self._fields() == other._fields()

    def __hash__(self):
        return hash((type(self).__name__,) + self._fields())

    def __repr__(self) -> str:
        args = ", ".join(repr(v) for v in self._fields())
        return f"{type(self).__name__}({args})"

    def _init(self, **values):
        for key, value in values.items():
            object.__setattr__(self, key, value)


class Expression(_Node):
    """Abstract base class for expressions inside markers."""
    __slots__ = ()


class Statement(_Node):
    """Abstract base class for statement nodes."""
    __slots__ = ()


# =================================================================
# Expressions
# =================================================================

class Literal(Expression):
    """A quoted literal (`"George"`)."""
    __slots__ = ("value",)

    def __init__(self, value: str):
        self._init(value=value)


class Path(Expression):
    """A dotted identifier reference. `name.first` -> ('name', 'first')."""
    __slots__ = ("segments",)

    def __init__(self, segments):
        self._init(segments=tuple(segments))

    @property
    def text(self) -> str:
        return ".".join(self.segments)


class HelperCall(Expression):
    """Invocation of a registered helper with positional arguments."""
    __slots__ = ("name", "arguments")

    def __init__(self, name: str, arguments=()):
        self._init(name=name, arguments=tuple(arguments))


# =================================================================
# Statements
# =================================================================

class Text(Statement):
    __slots__ = ("value",)

    def __init__(self, value: str):
        self._init(value=value)


class Comment(Statement):
    __slots__ = ("value",)

    def __init__(self, value: str):
        self._init(value=value)


class Mustache(Statement):
    """`{{ expression }}`: appends the stringified value of the expression."""
    __slots__ = ("expression",)

    def __init__(self, expression: Expression):
        self._init(expression=expression)


class Section(Statement):
    """A `{{# }}` or `{{^ }}` block, with an optional `{{else}}` body.

    `else_body` is None when the section has no else marker, which is
    different from an empty else marker (`{{#a}}x{{else}}{{/a}}`).
    """
    __slots__ = ("expression", "negated", "body", "else_body")

    def __init__(self, expression: Expression, negated: bool = False, body=(), else_body=None):
        self._init(
            expression=expression,
            negated=bool(negated),
            body=tuple(body),
            else_body=tuple(else_body) if else_body is not None else None,
        )


class UnknownStatement(Statement):
    """A statement kind this evaluator does not know. Evaluates to nothing."""
    __slots__ = ("kind", "data")

    def __init__(self, kind: str, data: Optional[Dict[str, Any]] = None):
        self._init(kind=kind, data=dict(data or {}))

    def __hash__(self):
        return hash((type(self).__name__, self.kind))


class Template(_Node):
    """Root document: format version plus the ordered statements."""
    __slots__ = ("version", "statements")

    def __init__(self, statements=(), version: int = VERSION):
        self._init(version=version, statements=tuple(statements))

    def __repr__(self) -> str:
        return f"Template(version={self.version!r}, statements={list(self.statements)!r})"
