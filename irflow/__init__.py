"""
irflow - Intraprocedural Dataflow Analysis over a Three-Address IR
==================================================================

Constant propagation, live variables and dead code detection on a small
Jimple-like intermediate representation, driven by a generic worklist
solver.

Core modules
------------
lattice
    The UNDEF / CONSTANT(k) / NAC value lattice and its meet.
facts
    Map and set facts plus the per-node IN/OUT result table.
ir
    Types, expressions, statements and the per-method ``IR`` container.
ctrlflow_graph
    Statement-level CFGs with kinded edges.
dataflow_engine
    The analysis interface and the forward/backward fixed-point solver.
constprop, liveness, deadcode
    The analyses themselves.
analysis_manager
    Dependency-ordered execution of analyses over methods.

Quick start
-----------
>>> from tir.parser import parse
>>> from irflow import AnalysisManager, parse_analysis_spec
>>> ir = parse("method void f() { int a; a = 1; return; }")[0]
>>> AnalysisManager([parse_analysis_spec("deadcode")]).analyze(ir)
IR(void f(), 2 stmts)
>>> [str(s) for s in ir.get_result("deadcode")]
['a = 1;']
"""

from __future__ import annotations

import logging
from typing import List

__version__ = "0.1.0"

_log = logging.getLogger(__name__)
_log.addHandler(logging.NullHandler())

from irflow.errors import AnalysisException, ConfigException  # noqa: E402
from irflow.lattice import NAC, UNDEF, Value, meet_value  # noqa: E402
from irflow.facts import CPFact, DataflowResult, MapFact, SetFact  # noqa: E402
from irflow.config import AnalysisConfig, parse_analysis_spec  # noqa: E402
from irflow.ir import IR  # noqa: E402
from irflow.ctrlflow_graph import CFG, CFGBuilder, CFGEdge, EdgeKind, build_cfg  # noqa: E402
from irflow.dataflow_engine import (  # noqa: E402
    AbstractDataflowAnalysis,
    DataflowAnalysis,
    Direction,
    Solver,
    WorklistStrategy,
)
from irflow.constprop import ConstantPropagation, can_hold_int, evaluate  # noqa: E402
from irflow.liveness import LiveVariableAnalysis  # noqa: E402
from irflow.deadcode import DeadCodeDetection, has_no_side_effect  # noqa: E402
from irflow.analysis_manager import AnalysisManager, register_analysis  # noqa: E402

__all__: List[str] = [
    "__version__",
    "AnalysisException",
    "ConfigException",
    "Value",
    "UNDEF",
    "NAC",
    "meet_value",
    "MapFact",
    "CPFact",
    "SetFact",
    "DataflowResult",
    "AnalysisConfig",
    "parse_analysis_spec",
    "IR",
    "CFG",
    "CFGEdge",
    "EdgeKind",
    "CFGBuilder",
    "build_cfg",
    "Direction",
    "WorklistStrategy",
    "DataflowAnalysis",
    "AbstractDataflowAnalysis",
    "Solver",
    "ConstantPropagation",
    "can_hold_int",
    "evaluate",
    "LiveVariableAnalysis",
    "DeadCodeDetection",
    "has_no_side_effect",
    "AnalysisManager",
    "register_analysis",
]
