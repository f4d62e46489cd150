"""
irflow.analysis_manager
=======================

Plans and runs method analyses.

Requested analyses are expanded with everything they transitively
``require`` and ordered so that each analysis runs after its
dependencies.  Among analyses that do not depend on each other the order
of first mention is kept.  Each result is stored on the IR under the
analysis ID, which is also how later analyses find it.

Usage::

    manager = AnalysisManager([parse_analysis_spec("deadcode")])
    manager.analyze_all(irs)
    dead = irs[0].get_result("deadcode")
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Sequence, Type

from irflow.analysis import MethodAnalysis
from irflow.config import AnalysisConfig
from irflow.constprop import ConstantPropagation
from irflow.ctrlflow_graph import CFGBuilder
from irflow.deadcode import DeadCodeDetection
from irflow.errors import ConfigException
from irflow.ir import IR
from irflow.liveness import LiveVariableAnalysis

logger = logging.getLogger(__name__)


ANALYSES: Dict[str, Type[MethodAnalysis]] = {
    cls.ID: cls
    for cls in (CFGBuilder, ConstantPropagation, LiveVariableAnalysis,
                DeadCodeDetection)
}


def register_analysis(cls: Type[MethodAnalysis]) -> Type[MethodAnalysis]:
    """Make ``cls`` available to plans under ``cls.ID``.  Usable as a decorator."""
    if not cls.ID:
        raise ConfigException(f"{cls.__name__} has no ID")
    if cls.ID in ANALYSES and ANALYSES[cls.ID] is not cls:
        raise ConfigException(f"analysis id {cls.ID!r} is already registered")
    ANALYSES[cls.ID] = cls
    return cls


class AnalysisManager:
    """Runs a dependency-ordered plan of analyses over methods.

    Parameters
    ----------
    configs : sequence of AnalysisConfig
        The analyses to run.  Required analyses that are not listed are
        added with default configuration.
    """

    def __init__(self, configs: Sequence[AnalysisConfig]) -> None:
        self.requested: List[str] = [c.id for c in configs]
        self.plan: List[AnalysisConfig] = self._build_plan(configs)
        self._analyses: List[MethodAnalysis] = [
            ANALYSES[c.id](c) for c in self.plan
        ]

    @staticmethod
    def _build_plan(configs: Sequence[AnalysisConfig]) -> List[AnalysisConfig]:
        by_id: Dict[str, AnalysisConfig] = {}
        for config in configs:
            if config.id not in ANALYSES:
                known = ", ".join(sorted(ANALYSES))
                raise ConfigException(
                    f"unknown analysis {config.id!r} (known: {known})"
                )
            if config.id in by_id:
                raise ConfigException(f"analysis {config.id!r} configured twice")
            by_id[config.id] = config

        plan: List[AnalysisConfig] = []
        done: set = set()
        active: List[str] = []

        def visit(analysis_id: str) -> None:
            if analysis_id in done:
                return
            if analysis_id in active:
                cycle = " -> ".join([*active[active.index(analysis_id):], analysis_id])
                raise ConfigException(f"analysis dependency cycle: {cycle}")
            cls = ANALYSES.get(analysis_id)
            if cls is None:
                raise ConfigException(f"unknown analysis {analysis_id!r}")
            active.append(analysis_id)
            for dep in cls.requires:
                visit(dep)
            active.pop()
            done.add(analysis_id)
            plan.append(by_id.get(analysis_id) or AnalysisConfig(analysis_id))

        for config in configs:
            visit(config.id)
        return plan

    def get_plan(self) -> List[AnalysisConfig]:
        return list(self.plan)

    def analyze(self, ir: IR) -> IR:
        """Run the plan over one method, storing every result on ``ir``."""
        for analysis in self._analyses:
            logger.info("running %s on %s", analysis.get_id(), ir.get_method_name())
            ir.store_result(analysis.get_id(), analysis.analyze(ir))
        return ir

    def analyze_all(self, irs: Iterable[IR]) -> List[IR]:
        return [self.analyze(ir) for ir in irs]
