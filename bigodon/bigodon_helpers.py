"""
Optional built-in helpers. Nothing here is registered unless the engine is
created with load_builtins=True.
"""
import inspect
import json

from bigodon.bigodon_interpreter import is_truthy, to_text


class Builtins:
    """Python implementations of the built-in helpers.

    Every `_name` method is exposed as helper `name` (underscores become dashes).
    """

    # --- Strings ---
    def _upper(self, value): return to_text(value).upper()
    def _lower(self, value): return to_text(value).lower()
    def _trim(self, value): return to_text(value).strip()
    def _capitalize(self, value):
        s = to_text(value)
        return s[:1].upper() + s[1:]
    def _concat(self, *values): return "".join(to_text(v) for v in values)
    def _join(self, items, separator=","):
        if not isinstance(items, (list, tuple)):
            return ""
        return to_text(separator).join(to_text(i) for i in items)
    def _json(self, value): return json.dumps(value, ensure_ascii=False, default=str)

    # --- Logic ---
    def _eq(self, a, b): return a == b
    def _neq(self, a, b): return a != b
    def _not(self, value): return not is_truthy(value)
    def _and(self, *values): return all(is_truthy(v) for v in values)
    def _or(self, *values): return any(is_truthy(v) for v in values)
    def _default(self, value, fallback): return value if is_truthy(value) else fallback

    # --- Collections ---
    def _length(self, value):
        if isinstance(value, (str, list, tuple, dict)):
            return len(value)
        return 0
    def _first(self, items):
        return items[0] if isinstance(items, (list, tuple)) and items else None
    def _last(self, items):
        return items[-1] if isinstance(items, (list, tuple)) and items else None


def builtin_helpers() -> dict:
    """Name -> callable mapping for every built-in helper."""
    lib = Builtins()
    helpers = {}
    for name, member in inspect.getmembers(lib):
        if name.startswith('_') and not name.startswith('__') and callable(member):
            helpers[name[1:].replace('_', '-')] = member
    return helpers
