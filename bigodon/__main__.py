import asyncio
import sys
from pathlib import Path

import yaml

from bigodon.bigodon_datatypes import BigodonError
from bigodon.bigodon_runtime import Bigodon
from bigodon.bigodon_serialize import detect_format, load_data, serialize

USAGE = "usage: python -m bigodon [--ast] TEMPLATE [CONTEXT.json|CONTEXT.yaml]"


def _read(file_path: str) -> str:
    try:
        return Path(file_path).read_text(encoding="utf-8")
    except FileNotFoundError:
        print(f"Error: file not found: {file_path}", file=sys.stderr)
        raise SystemExit(1)


async def main(argv=None) -> int:
    """Render a template file, or print its syntax tree with --ast."""
    args = list(sys.argv[1:] if argv is None else argv)
    dump_ast = False
    if args and args[0] == "--ast":
        dump_ast = True
        args = args[1:]
    if not args or len(args) > 2 or args[0].startswith("-"):
        print(USAGE, file=sys.stderr)
        return 2

    engine = Bigodon(load_builtins=True)
    source = _read(args[0])
    try:
        template = engine.parse(source)
        if dump_ast:
            print(serialize(template, fmt="json"))
            return 0

        context = None
        if len(args) == 2:
            raw = _read(args[1])
            context = load_data(raw, fmt=detect_format(args[1], raw))

        sys.stdout.write(await engine.run(template, context))
    except (BigodonError, ValueError, yaml.YAMLError) as e:
        print(f"{type(e).__name__}: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    try:
        raise SystemExit(asyncio.run(main()))
    except KeyboardInterrupt:
        print("\nExiting.")
