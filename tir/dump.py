"""
tir.dump
========

S-expression renderings of IR and analysis results, for machine-readable
CLI output (``--format sexp``).

Shapes::

    (method "f" (params (p int)) (stmts (0 3 "x = 1;") ...))
    (deadcode "f" (2 5 "a = 2;") ...)
    (constprop "f" (stmt 0 (in (p NAC)) (out (p NAC) (x 1))) ...)
    (livevar "f" (stmt 0 (in p) (out x)) ...)

Each element is a plain Python structure of lists, ints, strings and
:class:`sexpdata.Symbol` so callers can post-process it before
:func:`to_text` serialises it.
"""

from __future__ import annotations

from typing import Any, Iterable, List

import sexpdata
from sexpdata import Symbol

from irflow.facts import DataflowResult, MapFact, SetFact
from irflow.ir import IR, Stmt

Sexp = Any


def _value_sexp(value: Any) -> Sexp:
    if value.is_constant():
        return value.get_constant()
    return Symbol(str(value))


def fact_to_sexp(fact: Any) -> List[Sexp]:
    """Entries of a map or set fact, in insertion order."""
    if isinstance(fact, MapFact):
        return [[Symbol(var.name), _value_sexp(value)] for var, value in fact.items()]
    if isinstance(fact, SetFact):
        return [Symbol(var.name) for var in fact]
    return [str(fact)]


def stmt_to_sexp(stmt: Stmt) -> Sexp:
    return [stmt.index, stmt.line_number, str(stmt)]


def ir_to_sexp(ir: IR) -> Sexp:
    params = [[Symbol(p.name), Symbol(str(p.type))] for p in ir.get_params()]
    return [
        Symbol("method"),
        ir.get_method_name(),
        [Symbol("params"), *params],
        [Symbol("stmts"), *(stmt_to_sexp(s) for s in ir.get_stmts())],
    ]


def dead_code_to_sexp(ir: IR, dead: Iterable[Stmt]) -> Sexp:
    return [Symbol("deadcode"), ir.get_method_name(), *(stmt_to_sexp(s) for s in dead)]


def facts_to_sexp(analysis_id: str, ir: IR, result: DataflowResult) -> Sexp:
    rows: List[Sexp] = []
    for stmt in ir.get_stmts():
        rows.append([
            Symbol("stmt"),
            stmt.index,
            [Symbol("in"), *fact_to_sexp(result.get_in_fact(stmt))],
            [Symbol("out"), *fact_to_sexp(result.get_out_fact(stmt))],
        ])
    return [Symbol(analysis_id), ir.get_method_name(), *rows]


def to_text(sexp: Sexp) -> str:
    return sexpdata.dumps(sexp)
