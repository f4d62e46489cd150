"""
irflow.liveness
===============

Live variable analysis.

A variable is live after a statement if some path from that statement
reads it before writing it.  The analysis runs backward; its result for a
statement (``DataflowResult.get_result``) is the set of variables live
immediately after it.
"""

from __future__ import annotations

import logging

from irflow.ctrlflow_graph import CFG
from irflow.dataflow_engine import AbstractDataflowAnalysis
from irflow.facts import SetFact
from irflow.ir import Stmt, Var

logger = logging.getLogger(__name__)


class LiveVariableAnalysis(AbstractDataflowAnalysis[SetFact]):
    """Backward may-analysis, stored under ``"livevar"``."""

    ID = "livevar"

    def is_forward(self) -> bool:
        return False

    def new_boundary_fact(self, cfg: CFG) -> SetFact:
        return SetFact()

    def new_initial_fact(self) -> SetFact:
        return SetFact()

    def meet_into(self, fact: SetFact, target: SetFact) -> None:
        target.union(fact)

    def transfer_node(self, node: Stmt, in_fact: SetFact, out_fact: SetFact) -> bool:
        # IN = use ∪ (OUT - def)
        live = out_fact.copy()
        defined = node.get_def()
        if isinstance(defined, Var):
            live.remove(defined)
        for use in node.get_uses():
            if isinstance(use, Var):
                live.add(use)
        return in_fact.copy_from(live)
