# tests/conftest.py
"""
Shared helpers and fixtures for the irflow test-suite.

Helpers are plain functions so test modules can import them directly::

    from tests.conftest import analyze_source, var_of, stmt_at
"""

from __future__ import annotations

from typing import Sequence

import pytest

from irflow.analysis_manager import AnalysisManager
from irflow.config import parse_analysis_spec
from irflow.ir import IR, PrimitiveType, Stmt, Var
from tir.parser import parse_method


# ── Sample programs ─────────────────────────────────────────────

DEAD_BRANCH_SRC = """\
method int pick() {
    int a;
    if (1 > 0) goto then;
    a = 2;
    goto join;
  then:
    a = 1;
  join:
    return a;
}
"""

LOOP_SRC = """\
method int sum(int n) {
    int i, s;
    i = 0;
    s = 0;
  head:
    if (i >= n) goto done;
    s = s + i;
    i = i + 1;
    goto head;
  done:
    return s;
}
"""

SWITCH_SRC = """\
method int choose() {{
    int x, r;
    x = {value};
    switch (x) {{
        case 1: goto one;
        case 2: goto two;
        default: goto other;
    }}
  one:
    r = 10;
    return r;
  two:
    r = 20;
    return r;
  other:
    r = 30;
    return r;
}}
"""


# ── Helpers ─────────────────────────────────────────────────────

def int_var(name: str) -> Var:
    return Var(name, PrimitiveType.INT)


def var_of(ir: IR, name: str) -> Var:
    for var in ir.get_vars():
        if var.name == name:
            return var
    raise KeyError(name)


def stmt_at(ir: IR, index: int) -> Stmt:
    return ir.get_stmt(index)


def analyze_source(source: str, *specs: str) -> IR:
    """Parse a single-method program and run the given analyses on it."""
    ir = parse_method(source)
    AnalysisManager([parse_analysis_spec(s) for s in specs]).analyze(ir)
    return ir


def dead_indices(ir: IR) -> Sequence[int]:
    return [s.index for s in ir.get_result("deadcode")]


# ── Fixtures ────────────────────────────────────────────────────

@pytest.fixture
def tir_file(tmp_path):
    """Factory writing TIR source into a temporary file."""
    def _write(source: str, name: str = "prog.tir"):
        path = tmp_path / name
        path.write_text(source, encoding="utf-8")
        return path
    return _write
