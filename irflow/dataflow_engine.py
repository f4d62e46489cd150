"""
irflow.dataflow_engine
======================

Generic fixed-point solver for intraprocedural dataflow analyses.

An analysis plugs into the solver by implementing the five operations of
:class:`DataflowAnalysis`; the solver owns the IN/OUT table and the
iteration order.  Forward problems use a worklist, backward problems repeat
whole sweeps over the graph until nothing changes.  Both reach the same
fixed point for any monotone analysis, regardless of pop order.

Public API
----------
    Direction                  - FORWARD / BACKWARD
    WorklistStrategy           - FIFO / LIFO pop order
    DataflowAnalysis           - the capability interface the solver drives
    AbstractDataflowAnalysis   - a DataflowAnalysis runnable by the manager
    Solver                     - the fixed-point engine

Usage::

    solver = Solver(ConstantPropagation(AnalysisConfig("constprop")))
    result = solver.solve(build_cfg(ir))
    result.get_in_fact(stmt)
"""

from __future__ import annotations

import abc
import enum
import logging
from collections import deque
from typing import Deque, Generic, TypeVar

from irflow.analysis import MethodAnalysis
from irflow.config import AnalysisConfig
from irflow.ctrlflow_graph import CFG
from irflow.errors import ConfigException
from irflow.facts import DataflowResult
from irflow.ir import IR, Stmt

logger = logging.getLogger(__name__)

F = TypeVar("F")   # fact type


# ===========================================================================
# DIRECTION / STRATEGY
# ===========================================================================

class Direction(enum.Enum):
    """Direction of dataflow propagation."""
    FORWARD = "forward"
    BACKWARD = "backward"


class WorklistStrategy(enum.Enum):
    """Which end of the worklist the forward solver pops from."""
    FIFO = "fifo"
    LIFO = "lifo"

    @classmethod
    def from_option(cls, raw: object) -> WorklistStrategy:
        if isinstance(raw, WorklistStrategy):
            return raw
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            choices = ", ".join(s.value for s in cls)
            raise ConfigException(
                f"unknown worklist strategy {raw!r} (expected one of: {choices})"
            ) from None


# ===========================================================================
# ANALYSIS INTERFACE
# ===========================================================================

class DataflowAnalysis(abc.ABC, Generic[F]):
    """
    What the solver needs to know about an analysis.

    Subclasses implement:
      - ``is_forward()``          - propagation direction
      - ``new_boundary_fact(cfg)`` - fact at entry (forward) or exit (backward)
      - ``new_initial_fact()``    - fact every other node starts from
      - ``meet_into(fact, target)`` - fold ``fact`` into ``target`` in place
      - ``transfer_node(node, in_fact, out_fact)`` - update the output side
        in place and report whether it changed

    For a backward analysis ``in_fact`` and ``out_fact`` keep their program
    order meaning: the transfer reads OUT and writes IN.
    """

    @abc.abstractmethod
    def is_forward(self) -> bool:
        ...

    @abc.abstractmethod
    def new_boundary_fact(self, cfg: CFG) -> F:
        ...

    @abc.abstractmethod
    def new_initial_fact(self) -> F:
        ...

    @abc.abstractmethod
    def meet_into(self, fact: F, target: F) -> None:
        ...

    @abc.abstractmethod
    def transfer_node(self, node: Stmt, in_fact: F, out_fact: F) -> bool:
        ...

    @property
    def direction(self) -> Direction:
        return Direction.FORWARD if self.is_forward() else Direction.BACKWARD


class AbstractDataflowAnalysis(MethodAnalysis, DataflowAnalysis[F]):
    """A dataflow analysis the analysis manager can schedule.

    Reads the ``cfg`` result from the IR and solves over it.  The
    ``strategy`` option picks the worklist order (``fifo`` or ``lifo``).
    """

    requires = ("cfg",)

    def __init__(self, config: AnalysisConfig) -> None:
        super().__init__(config)
        self.strategy = WorklistStrategy.from_option(
            config.get_option("strategy", WorklistStrategy.FIFO)
        )

    def analyze(self, ir: IR) -> DataflowResult[Stmt, F]:
        cfg: CFG = ir.get_result("cfg")
        return Solver(self, self.strategy).solve(cfg)


# ===========================================================================
# SOLVER
# ===========================================================================

class Solver(Generic[F]):
    """Fixed-point engine.

    Parameters
    ----------
    analysis : DataflowAnalysis
        Supplies direction, initial facts, meet and transfer.
    strategy : WorklistStrategy
        Pop order for forward solving.  Does not affect the result.
    """

    def __init__(
        self,
        analysis: DataflowAnalysis[F],
        strategy: WorklistStrategy = WorklistStrategy.FIFO,
    ) -> None:
        self.analysis = analysis
        self.strategy = strategy

    def solve(self, cfg: CFG) -> DataflowResult[Stmt, F]:
        """Run the analysis over ``cfg`` to its fixed point."""
        if self.analysis.is_forward():
            result = self._initialize_forward(cfg)
            self._do_solve_forward(cfg, result)
        else:
            result = self._initialize_backward(cfg)
            self._do_solve_backward(cfg, result)
        logger.debug(
            "%s %s solve of %s: %d node visits",
            type(self.analysis).__name__,
            self.analysis.direction.value,
            cfg.get_ir().get_method_name(),
            result.iterations,
        )
        return result

    # ----- forward ----------------------------------------------------------

    def _initialize_forward(self, cfg: CFG) -> DataflowResult[Stmt, F]:
        analysis = self.analysis
        result: DataflowResult[Stmt, F] = DataflowResult()
        for node in cfg:
            if cfg.is_entry(node):
                result.set_in_fact(node, analysis.new_boundary_fact(cfg))
                result.set_out_fact(node, analysis.new_boundary_fact(cfg))
            else:
                result.set_in_fact(node, analysis.new_initial_fact())
                result.set_out_fact(node, analysis.new_initial_fact())
        return result

    def _do_solve_forward(self, cfg: CFG, result: DataflowResult[Stmt, F]) -> None:
        analysis = self.analysis
        worklist: Deque[Stmt] = deque(n for n in cfg if not cfg.is_entry(n))
        pop = worklist.popleft if self.strategy is WorklistStrategy.FIFO else worklist.pop
        while worklist:
            node = pop()
            result.iterations += 1
            merged = analysis.new_initial_fact()
            for pred in cfg.get_preds_of(node):
                analysis.meet_into(result.get_out_fact(pred), merged)
            in_fact = result.get_in_fact(node)
            in_fact.copy_from(merged)  # type: ignore[attr-defined]
            if analysis.transfer_node(node, in_fact, result.get_out_fact(node)):
                worklist.extend(cfg.get_succs_of(node))

    # ----- backward ---------------------------------------------------------

    def _initialize_backward(self, cfg: CFG) -> DataflowResult[Stmt, F]:
        analysis = self.analysis
        result: DataflowResult[Stmt, F] = DataflowResult()
        for node in cfg:
            if cfg.is_exit(node):
                result.set_in_fact(node, analysis.new_boundary_fact(cfg))
                result.set_out_fact(node, analysis.new_boundary_fact(cfg))
            else:
                result.set_in_fact(node, analysis.new_initial_fact())
                result.set_out_fact(node, analysis.new_initial_fact())
        return result

    def _do_solve_backward(self, cfg: CFG, result: DataflowResult[Stmt, F]) -> None:
        analysis = self.analysis
        order = [n for n in reversed(cfg.get_nodes()) if not cfg.is_exit(n)]
        sweeps = 0
        changed = True
        while changed:
            changed = False
            sweeps += 1
            for node in order:
                result.iterations += 1
                merged = analysis.new_initial_fact()
                for succ in cfg.get_succs_of(node):
                    analysis.meet_into(result.get_in_fact(succ), merged)
                out_fact = result.get_out_fact(node)
                changed |= out_fact.copy_from(merged)  # type: ignore[attr-defined]
                changed |= analysis.transfer_node(
                    node, result.get_in_fact(node), out_fact
                )
        logger.debug("backward solve converged after %d sweeps", sweeps)
