"""
tir.errors
==========

Diagnostics raised by the textual IR front end.

::

    TirError (base)
    ├── TirSyntaxError     - text does not match the grammar
    └── TirSemanticError   - well-formed text with an invalid meaning
                             (undeclared variable, unknown label, ...)

Every error may carry a :class:`SourceLoc` and renders as
``file:line:col: message`` when it does.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True, slots=True)
class SourceLoc:
    """A position in a ``.tir`` source file (1-based line and column)."""

    file: str = "<string>"
    line: int = 0
    column: int = 0

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.column}"


class TirError(Exception):
    """Base class for front-end errors."""

    def __init__(self, message: str, loc: Optional[SourceLoc] = None) -> None:
        super().__init__(message)
        self.message = message
        self.loc = loc

    def __str__(self) -> str:
        if self.loc is not None:
            return f"{self.loc}: {self.message}"
        return self.message


class TirSyntaxError(TirError):
    """The input does not match the grammar."""


class TirSemanticError(TirError):
    """The input parses but is not a valid program."""
