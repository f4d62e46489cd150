"""
irflow.errors
=============

Exceptions raised by the analysis library.

Analyses themselves are total over valid input: unsupported operators
degrade to ``NAC`` and a division by a constant zero yields ``UNDEF``.  The
exceptions below are reserved for violations of the host contract, i.e.
bugs in the caller rather than properties of the analysed program.
"""

from __future__ import annotations


class AnalysisException(RuntimeError):
    """A consumer asked for something the analysis never produced.

    Typical causes: reading the IN/OUT fact of a node that is not part of
    the solved graph, asking a non-constant ``Value`` for its constant, or
    fetching a result an IR was never given.
    """


class ConfigException(ValueError):
    """Malformed analysis configuration (unknown ID, bad option, cycle)."""
