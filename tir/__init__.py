"""tir - textual front end for irflow.

Submodules
----------
grammar
    Parsimonious PEG grammar of the Jimple-like ``.tir`` language.
parser
    ``parse`` / ``parse_file``: source text → list of :class:`irflow.ir.IR`.
errors
    ``TirError`` and its syntax / semantic subclasses.
dump
    S-expression rendering of IR and analysis results (sexpdata).

Command line::

    python -m tir analyze prog.tir -a deadcode
"""

from __future__ import annotations

from tir.errors import SourceLoc, TirError, TirSemanticError, TirSyntaxError
from tir.parser import parse, parse_file, parse_method

__all__ = [
    "SourceLoc",
    "TirError",
    "TirSyntaxError",
    "TirSemanticError",
    "parse",
    "parse_file",
    "parse_method",
]
