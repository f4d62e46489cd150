# tests/test_dataflow_engine.py
"""
Tests for the generic solver: initialisation, strategy independence and
backward solving.
"""

import pytest

from irflow.config import AnalysisConfig
from irflow.constprop import ConstantPropagation
from irflow.ctrlflow_graph import build_cfg
from irflow.dataflow_engine import Direction, Solver, WorklistStrategy
from irflow.errors import ConfigException
from irflow.facts import CPFact
from irflow.liveness import LiveVariableAnalysis
from tir.parser import parse_method
from tests.conftest import LOOP_SRC, SWITCH_SRC, DEAD_BRANCH_SRC


def _solve(source_or_ir, analysis, strategy=WorklistStrategy.FIFO):
    ir = parse_method(source_or_ir) if isinstance(source_or_ir, str) else source_or_ir
    cfg = build_cfg(ir)
    return cfg, Solver(analysis, strategy).solve(cfg)


class TestStrategy:

    @pytest.mark.parametrize("raw,expected", [
        ("fifo", WorklistStrategy.FIFO),
        ("LIFO", WorklistStrategy.LIFO),
        (WorklistStrategy.LIFO, WorklistStrategy.LIFO),
    ])
    def test_from_option(self, raw, expected):
        assert WorklistStrategy.from_option(raw) is expected

    def test_unknown_strategy(self):
        with pytest.raises(ConfigException):
            WorklistStrategy.from_option("rpo")

    def test_analysis_reads_strategy_option(self):
        cp = ConstantPropagation(AnalysisConfig("constprop", {"strategy": "lifo"}))
        assert cp.strategy is WorklistStrategy.LIFO
        with pytest.raises(ConfigException):
            ConstantPropagation(AnalysisConfig("constprop", {"strategy": "bogus"}))


class TestForwardSolver:

    def test_initial_facts(self):
        cfg, result = _solve(DEAD_BRANCH_SRC, ConstantPropagation(AnalysisConfig("constprop")))
        for node in cfg:
            assert isinstance(result.get_in_fact(node), CPFact)
            assert isinstance(result.get_out_fact(node), CPFact)
        assert result.get_in_fact(cfg.get_entry()) == CPFact()

    @pytest.mark.parametrize("source", [LOOP_SRC, DEAD_BRANCH_SRC, SWITCH_SRC.format(value=2)])
    def test_fifo_and_lifo_agree(self, source):
        ir = parse_method(source)
        cfg = build_cfg(ir)
        analysis = ConstantPropagation(AnalysisConfig("constprop"))
        fifo = Solver(analysis, WorklistStrategy.FIFO).solve(cfg)
        lifo = Solver(analysis, WorklistStrategy.LIFO).solve(cfg)
        for node in cfg:
            assert fifo.get_in_fact(node) == lifo.get_in_fact(node)
            assert fifo.get_out_fact(node) == lifo.get_out_fact(node)

    def test_fixed_point_holds(self):
        analysis = ConstantPropagation(AnalysisConfig("constprop"))
        cfg, result = _solve(LOOP_SRC, analysis)
        for node in cfg:
            if cfg.is_entry(node):
                continue
            merged = analysis.new_initial_fact()
            for pred in cfg.get_preds_of(node):
                analysis.meet_into(result.get_out_fact(pred), merged)
            assert merged == result.get_in_fact(node)
            out = result.get_out_fact(node).copy()
            assert analysis.transfer_node(node, result.get_in_fact(node), out) is False


class TestBackwardSolver:

    def test_direction(self):
        assert LiveVariableAnalysis(AnalysisConfig("livevar")).direction is Direction.BACKWARD
        assert ConstantPropagation(AnalysisConfig("constprop")).direction is Direction.FORWARD

    def test_exit_holds_boundary_fact(self):
        cfg, result = _solve(LOOP_SRC, LiveVariableAnalysis(AnalysisConfig("livevar")))
        assert len(result.get_in_fact(cfg.get_exit())) == 0
        assert len(result.get_out_fact(cfg.get_exit())) == 0

    def test_fixed_point_holds(self):
        analysis = LiveVariableAnalysis(AnalysisConfig("livevar"))
        cfg, result = _solve(LOOP_SRC, analysis)
        for node in cfg:
            if cfg.is_exit(node):
                continue
            merged = analysis.new_initial_fact()
            for succ in cfg.get_succs_of(node):
                analysis.meet_into(result.get_in_fact(succ), merged)
            assert merged == result.get_out_fact(node)
        assert result.iterations >= len(cfg) - 1
