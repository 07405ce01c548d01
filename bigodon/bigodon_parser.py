"""
Parses template source into a Template via the koine grammar.
"""
import os
import sys
from pathlib import Path
from typing import Optional

import yaml
from koine import Parser

from bigodon.bigodon_datatypes import Template, TemplateSyntaxError
from bigodon.bigodon_transformer import TemplateTransformer

GRAMMAR_PATH = Path(__file__).parent / "grammar" / "bigodon_grammar.yaml"


class TemplateParser:
    """Source text -> Template. Stateless apart from the shared grammar."""

    _parser: Optional[Parser] = None
    _transformer: Optional[TemplateTransformer] = None

    def __init__(self):
        cls = type(self)
        if cls._parser is None:
            with GRAMMAR_PATH.open(encoding="utf-8") as f:
                cls._parser = Parser(yaml.safe_load(f))
        if cls._transformer is None:
            cls._transformer = TemplateTransformer()
        self.parser = cls._parser
        self.transformer = cls._transformer

    def _dbg(self, *parts):
        if os.environ.get("BIGODON_DEBUG"):
            print("[DBG]", *parts, file=sys.stderr)

    def parse(self, source: str) -> Template:
        if not isinstance(source, str):
            raise TypeError(f"Template source must be a str, not {type(source).__name__}")
        if source == "":
            return Template([])

        try:
            parse_out = self.parser.parse(source)
        except Exception as e:
            raise TemplateSyntaxError(f"Parse failed: {e}") from e

        if isinstance(parse_out, dict) and 'status' in parse_out:
            if parse_out.get('status') != 'success':
                node = parse_out.get('error_node') or {}
                message = parse_out.get('error_message') or "Parse failed"
                raise TemplateSyntaxError(str(message), node.get('line'), node.get('col'))
            ast_node = parse_out.get('ast')
        else:
            ast_node = parse_out

        template = self.transformer.transform(ast_node)
        self._dbg("parse", len(source), "chars ->", len(template.statements), "statements")
        return template


def parse(source: str) -> Template:
    return TemplateParser().parse(source)
