"""
Engine instances and the public compile/run entry points.
"""
import collections.abc
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, Union

from bigodon.bigodon_datatypes import Template
from bigodon.bigodon_interpreter import Evaluator, DEFAULT_UNSAFE_KEYS, check_version
from bigodon.bigodon_parser import TemplateParser
from bigodon.bigodon_serialize import from_dict, read_version
from bigodon.bigodon_helpers import builtin_helpers

RenderFunction = Callable[..., Awaitable[str]]


class Bigodon:
    """A template engine with its own helper registry.

    Helpers registered on one instance are invisible to every other instance.
    Register helpers before rendering concurrently; registration is not
    synchronised with running evaluations.
    """

    def __init__(self, load_builtins: bool = False, unsafe_keys: Optional[Iterable[str]] = None):
        self.helpers: Dict[str, Callable] = {}
        if load_builtins:
            self.helpers.update(builtin_helpers())
        self.parser = TemplateParser()
        self.evaluator = Evaluator(
            self.helpers,
            DEFAULT_UNSAFE_KEYS if unsafe_keys is None else unsafe_keys,
        )

    def add_helper(self, name: str, fn: Callable) -> None:
        """Registers `fn` as helper `name`, replacing any existing helper of that name."""
        if not isinstance(name, str) or not name:
            raise ValueError("Helper name must be a non-empty string")
        if not callable(fn):
            raise TypeError(f"Helper '{name}' must be callable")
        self.helpers[name] = fn

    def parse(self, source: str) -> Template:
        return self.parser.parse(source)

    def compile(self, source: str) -> RenderFunction:
        """Parses once and returns `render(context=None)`, a coroutine function."""
        template = self.parse(source)

        async def render(context: Any = None) -> str:
            return await self.evaluator.run(template, context)

        render.template = template
        return render

    async def run(self, template: Union[Template, collections.abc.Mapping], context: Any = None) -> str:
        """Evaluates a parsed Template, or a template in plain-dict form (e.g. loaded from JSON)."""
        if isinstance(template, collections.abc.Mapping):
            # Reject by version before looking at the statements
            check_version(read_version(template))
            template = from_dict(template)
        elif not isinstance(template, Template):
            raise TypeError(f"Expected a Template or mapping, not {type(template).__name__}")
        return await self.evaluator.run(template, context)


_default_engine: Optional[Bigodon] = None


def _engine() -> Bigodon:
    global _default_engine
    if _default_engine is None:
        _default_engine = Bigodon()
    return _default_engine


def parse(source: str) -> Template:
    return _engine().parse(source)


def compile(source: str) -> RenderFunction:
    """Compiles with a helper-less engine. Use a Bigodon instance to register helpers."""
    return _engine().compile(source)


async def run(template: Union[Template, collections.abc.Mapping], context: Any = None) -> str:
    return await _engine().run(template, context)
