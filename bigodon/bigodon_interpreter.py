"""
The Bigodon evaluator, containing the Evaluator and PathResolver.
"""
import collections.abc
import inspect
import math
import os
import sys
from typing import Any, Callable, Dict, Iterable, Mapping, Optional

from bigodon.bigodon_datatypes import (
    VERSION, Template, Text, Comment, Mustache, Section,
    Literal, Path, HelperCall, Expression,
    UnsupportedVersionError, UnknownHelperError, HelperExecutionError
)

# Segment names that never resolve, whatever the context holds.
DEFAULT_UNSAFE_KEYS = frozenset({"constructor", "__proto__", "prototype"})


def is_addressable(value: Any) -> bool:
    """True when the value can be used as a lookup root (a mapping)."""
    return isinstance(value, collections.abc.Mapping)


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def is_truthy(value: Any) -> bool:
    """Section truthiness: False, None, "", 0, NaN and [] are falsy; everything else,
    including an empty mapping, is truthy."""
    if value is None or value is False:
        return False
    if isinstance(value, bool):
        return True
    if isinstance(value, (int, float)):
        return value != 0 and not (isinstance(value, float) and math.isnan(value))
    if isinstance(value, str):
        return value != ""
    if _is_sequence(value):
        return len(value) > 0
    return True


def to_text(value: Any) -> str:
    """Stringifies an interpolated value."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer() and abs(value) < 1e21:
            return str(int(value))
        return repr(value)
    if isinstance(value, (str, int)):
        return str(value)
    if isinstance(value, collections.abc.Mapping) or _is_sequence(value):
        # Objects and arrays have no textual form; they are only usable through sections.
        return ""
    return str(value)


def check_version(version: Any):
    """Raises unless `version` is exactly VERSION (booleans are not versions)."""
    if isinstance(version, bool) or not isinstance(version, int) or version != VERSION:
        raise UnsupportedVersionError(version)


class PathResolver:
    """Handles path traversal against a context value."""
    def __init__(self, unsafe_keys: Iterable[str] = DEFAULT_UNSAFE_KEYS):
        self.unsafe_keys = frozenset(unsafe_keys)

    def _step(self, container: Any, segment: str) -> Any:
        if isinstance(container, collections.abc.Mapping):
            try:
                return container[segment]
            except (KeyError, TypeError):
                return None
        if _is_sequence(container) and segment.isascii() and segment.isdigit():
            index = int(segment)
            return container[index] if index < len(container) else None
        return None

    def resolve(self, context: Any, segments: Iterable[str]) -> Any:
        """Walks the segments left to right. Returns None for anything unreachable."""
        current = context
        for segment in segments:
            if segment in self.unsafe_keys:
                return None
            if current is None:
                return None
            current = self._step(current, segment)
        return current


class Evaluator:
    """The Bigodon execution engine.

    Walks a Template sequentially in document order. The only suspension points
    are helper calls whose result is awaitable.
    """
    def __init__(self, helpers: Optional[Mapping[str, Callable]] = None,
                 unsafe_keys: Iterable[str] = DEFAULT_UNSAFE_KEYS):
        # Shared with the owning engine, not copied: later registrations are visible.
        self.helpers: Mapping[str, Callable] = helpers if helpers is not None else {}
        self.path_resolver = PathResolver(unsafe_keys)

    def _dbg(self, *parts):
        if os.environ.get("BIGODON_DEBUG"):
            try:
                print("[DBG]", *parts, file=sys.stderr)
            except Exception:
                pass

    async def run(self, template: Template, context: Any = None) -> str:
        """Public entry point. Rejects mismatched versions before producing any output."""
        check_version(template.version)
        self._dbg("run", len(template.statements), "statements")
        return await self._eval_statements(template.statements, context)

    async def _eval_statements(self, statements, context: Any) -> str:
        parts = []
        for statement in statements:
            parts.append(await self._eval_statement(statement, context))
        return "".join(parts)

    async def _eval_statement(self, statement: Any, context: Any) -> str:
        match statement:
            case Text():
                return statement.value
            case Comment():
                return ""
            case Mustache():
                return to_text(await self.eval_expression(statement.expression, context))
            case Section():
                return await self._eval_section(statement, context)
            case _:
                # Unknown statement kinds are skipped so newer trees still run.
                self._dbg("skip", type(statement).__name__, getattr(statement, "kind", None))
                return ""

    async def _eval_section(self, section: Section, context: Any) -> str:
        value = await self.eval_expression(section.expression, context)
        truthy = is_truthy(value)

        if section.negated:
            if not truthy:
                return await self._eval_statements(section.body, context)
        elif truthy:
            if _is_sequence(value):
                parts = []
                for item in value:
                    item_context = item if is_addressable(item) else context
                    parts.append(await self._eval_statements(section.body, item_context))
                return "".join(parts)
            body_context = value if is_addressable(value) else context
            return await self._eval_statements(section.body, body_context)

        if section.else_body is not None:
            return await self._eval_statements(section.else_body, context)
        return ""

    async def eval_expression(self, expression: Expression, context: Any) -> Any:
        match expression:
            case Literal():
                return expression.value
            case Path():
                return self.path_resolver.resolve(context, expression.segments)
            case HelperCall():
                args = [await self.eval_expression(arg, context) for arg in expression.arguments]
                return await self.call(expression.name, args, context)
        raise TypeError(f"Cannot evaluate expression {expression!r}")

    def _accepts_context(self, func: Callable) -> bool:
        try:
            params = inspect.signature(func).parameters
        except (TypeError, ValueError):
            return False
        param = params.get("context")
        return param is not None and param.kind is inspect.Parameter.KEYWORD_ONLY

    async def call(self, name: str, args: list, context: Any = None) -> Any:
        """Invokes a registered helper and waits for its result."""
        func = self.helpers.get(name)
        if func is None:
            raise UnknownHelperError(name)
        self._dbg("call", name, "argc", len(args))

        kwargs: Dict[str, Any] = {}
        if self._accepts_context(func):
            kwargs["context"] = context

        try:
            if inspect.iscoroutinefunction(func):
                return await func(*args, **kwargs)
            result = func(*args, **kwargs)
            if inspect.isawaitable(result):
                return await result
            return result
        except Exception as e:
            raise HelperExecutionError(name, e) from e
