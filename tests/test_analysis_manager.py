# tests/test_analysis_manager.py
"""
Tests for planning and running analyses over methods.
"""

import pytest

from irflow.analysis import MethodAnalysis
from irflow import analysis_manager
from irflow.analysis_manager import ANALYSES, AnalysisManager, register_analysis
from irflow.config import AnalysisConfig, parse_analysis_spec
from irflow.ctrlflow_graph import CFG
from irflow.errors import AnalysisException, ConfigException
from irflow.facts import DataflowResult
from tir.parser import parse, parse_method
from tests.conftest import DEAD_BRANCH_SRC


def _plan_ids(*specs):
    return [c.id for c in AnalysisManager([parse_analysis_spec(s) for s in specs]).get_plan()]


class TestPlan:

    def test_dependencies_come_first(self):
        assert _plan_ids("deadcode") == ["cfg", "constprop", "livevar", "deadcode"]

    def test_first_mention_order(self):
        assert _plan_ids("livevar", "constprop") == ["cfg", "livevar", "constprop"]

    def test_explicit_options_are_kept(self):
        manager = AnalysisManager([parse_analysis_spec("deadcode"),
                                   parse_analysis_spec("constprop=strategy:lifo")])
        by_id = {c.id: c for c in manager.get_plan()}
        assert by_id["constprop"].get_option("strategy") == "lifo"
        assert manager.requested == ["deadcode", "constprop"]

    def test_unknown_analysis(self):
        with pytest.raises(ConfigException, match="unknown analysis"):
            _plan_ids("pointer")

    def test_configured_twice(self):
        with pytest.raises(ConfigException):
            _plan_ids("cfg", "cfg")

    def test_bad_option_value(self):
        with pytest.raises(ConfigException):
            _plan_ids("livevar=strategy:random")

    def test_cycle_detected(self, monkeypatch):
        class First(MethodAnalysis):
            ID = "first"
            requires = ("second",)

            def analyze(self, ir):
                return None

        class Second(MethodAnalysis):
            ID = "second"
            requires = ("first",)

            def analyze(self, ir):
                return None

        monkeypatch.setitem(ANALYSES, "first", First)
        monkeypatch.setitem(ANALYSES, "second", Second)
        with pytest.raises(ConfigException, match="cycle"):
            _plan_ids("first")


class TestRun:

    def test_results_stored_under_ids(self):
        ir = parse_method(DEAD_BRANCH_SRC)
        AnalysisManager([parse_analysis_spec("deadcode")]).analyze(ir)
        assert isinstance(ir.get_result("cfg"), CFG)
        assert isinstance(ir.get_result("constprop"), DataflowResult)
        assert isinstance(ir.get_result("livevar"), DataflowResult)
        assert [s.index for s in ir.get_result("deadcode")] == [1, 2]

    def test_analyze_all(self):
        irs = parse("method void a() { int x; x = 1; } method void b() { nop; }")
        AnalysisManager([AnalysisConfig("deadcode")]).analyze_all(irs)
        assert [len(ir.get_result("deadcode")) for ir in irs] == [1, 0]

    def test_missing_result(self):
        ir = parse_method(DEAD_BRANCH_SRC)
        with pytest.raises(AnalysisException):
            ir.get_result("constprop")

    def test_custom_analysis(self, monkeypatch):
        class StmtCount(MethodAnalysis):
            ID = "count"
            requires = ("cfg",)

            def analyze(self, ir):
                return len(ir.get_result("cfg")) - 2

        monkeypatch.setattr(analysis_manager, "ANALYSES", dict(ANALYSES))
        register_analysis(StmtCount)
        ir = parse_method(DEAD_BRANCH_SRC)
        AnalysisManager([AnalysisConfig("count")]).analyze(ir)
        assert ir.get_result("count") == 5

    def test_register_conflict(self):
        class Impostor(MethodAnalysis):
            ID = "cfg"

            def analyze(self, ir):
                return None

        with pytest.raises(ConfigException):
            register_analysis(Impostor)
