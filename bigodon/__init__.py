from bigodon.bigodon_datatypes import (
    VERSION,
    BigodonError, TemplateSyntaxError, UnsupportedVersionError,
    UnknownHelperError, HelperExecutionError,
    Template, Text, Comment, Mustache, Section, UnknownStatement,
    Literal, Path, HelperCall,
)
from bigodon.bigodon_runtime import Bigodon, parse, compile, run

__version__ = "0.1.0"

__all__ = [
    "VERSION",
    "Bigodon",
    "parse",
    "compile",
    "run",
    "BigodonError",
    "TemplateSyntaxError",
    "UnsupportedVersionError",
    "UnknownHelperError",
    "HelperExecutionError",
    "Template",
    "Text",
    "Comment",
    "Mustache",
    "Section",
    "UnknownStatement",
    "Literal",
    "Path",
    "HelperCall",
]
