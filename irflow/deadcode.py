"""
irflow.deadcode
===============

Intraprocedural dead code detection.

Two kinds of statement are reported:

* **unreachable code** - statements no path from the entry reaches once
  branches whose condition is a known constant are pruned, and
* **useless assignments** - writes to a local that is dead afterwards and
  whose right-hand side cannot have a side effect.

The detector consumes the ``cfg``, ``constprop`` and ``livevar`` results
already stored on the IR.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Deque, List, Set

from irflow.analysis import MethodAnalysis
from irflow.constprop import evaluate
from irflow.ctrlflow_graph import CFG, EdgeKind
from irflow.facts import CPFact, DataflowResult, SetFact
from irflow.ir import (
    IR,
    ArrayAccess,
    AssignStmt,
    BinaryExp,
    BinaryOp,
    CastExp,
    Exp,
    FieldAccess,
    If,
    NewExp,
    Stmt,
    Switch,
    Var,
)

logger = logging.getLogger(__name__)


def has_no_side_effect(rvalue: Exp) -> bool:
    """Whether evaluating ``rvalue`` can be dropped without observable effect.

    Allocations, casts, field and array accesses and integer division or
    remainder may allocate, run class initialisers or throw, so they are
    kept even when their result is unused.
    """
    if isinstance(rvalue, (NewExp, CastExp, FieldAccess, ArrayAccess)):
        return False
    if isinstance(rvalue, BinaryExp):
        return rvalue.op not in (BinaryOp.DIV, BinaryOp.REM)
    return True


class DeadCodeDetection(MethodAnalysis):
    """Reports dead statements of a method, ordered by index."""

    ID = "deadcode"
    requires = ("cfg", "constprop", "livevar")

    def analyze(self, ir: IR) -> List[Stmt]:
        cfg: CFG = ir.get_result("cfg")
        constants: DataflowResult[Stmt, CPFact] = ir.get_result("constprop")
        live_vars: DataflowResult[Stmt, SetFact] = ir.get_result("livevar")

        queue: Deque[Stmt] = deque([cfg.get_entry()])
        reachable: Set[Stmt] = {cfg.get_entry(), cfg.get_exit()}
        visited: Set[Stmt] = set()

        while queue:
            stmt = queue.popleft()
            if stmt in visited:
                continue
            visited.add(stmt)

            if isinstance(stmt, AssignStmt):
                lhs = stmt.get_lvalue()
                useless = (
                    isinstance(lhs, Var)
                    and not live_vars.get_result(stmt).contains(lhs)
                    and has_no_side_effect(stmt.get_rvalue())
                )
                if not useless:
                    reachable.add(stmt)
                successors = cfg.get_succs_of(stmt)
            elif isinstance(stmt, If):
                reachable.add(stmt)
                successors = self._if_successors(cfg, stmt, constants.get_in_fact(stmt))
            elif isinstance(stmt, Switch):
                reachable.add(stmt)
                successors = self._switch_successors(
                    cfg, stmt, constants.get_in_fact(stmt)
                )
            else:
                reachable.add(stmt)
                successors = cfg.get_succs_of(stmt)

            queue.extend(s for s in successors if s not in visited)

        dead = [s for s in ir.get_stmts() if s not in reachable]
        logger.debug("%s: %d dead statement(s)", ir.get_method_name(), len(dead))
        return dead

    @staticmethod
    def _if_successors(cfg: CFG, stmt: If, fact: CPFact) -> List[Stmt]:
        cond = evaluate(stmt.get_condition(), fact)
        if not cond.is_constant():
            return cfg.get_succs_of(stmt)
        taken = EdgeKind.IF_TRUE if cond.get_constant() == 1 else EdgeKind.IF_FALSE
        return [e.target for e in cfg.get_out_edges_of(stmt) if e.kind is taken]

    @staticmethod
    def _switch_successors(cfg: CFG, stmt: Switch, fact: CPFact) -> List[Stmt]:
        selector = evaluate(stmt.get_var(), fact)
        if not selector.is_constant():
            return cfg.get_succs_of(stmt)
        value = selector.get_constant()
        matched = [
            e.target for e in cfg.get_out_edges_of(stmt)
            if e.kind is EdgeKind.SWITCH_CASE and e.case_value == value
        ]
        return matched or [stmt.get_default_target()]
