# tests/test_constprop.py
"""
Tests for constant propagation: the expression evaluator, the transfer
function and whole-method results.
"""

import pytest

from irflow.config import AnalysisConfig
from irflow.constprop import ConstantPropagation, can_hold_int, evaluate
from irflow.ctrlflow_graph import build_cfg
from irflow.dataflow_engine import Solver
from irflow.facts import CPFact
from irflow.ir import (
    AssignStmt, BinaryExp, BinaryOp, InstanceFieldAccess, IntLiteral,
    InvokeExp, PrimitiveType, StringLiteral, Var,
)
from irflow.lattice import NAC, UNDEF, Value
from tests.conftest import LOOP_SRC, analyze_source, int_var, var_of


def _bin(op, a, b):
    return BinaryExp(op, IntLiteral(a), IntLiteral(b))


def _const(n):
    return Value.make_constant(n)


class TestCanHoldInt:

    @pytest.mark.parametrize("ptype", ["byte", "short", "int", "char", "boolean"])
    def test_integral(self, ptype):
        assert can_hold_int(Var("v", PrimitiveType(ptype)))

    @pytest.mark.parametrize("ptype", ["long", "float", "double"])
    def test_non_integral(self, ptype):
        assert not can_hold_int(Var("v", PrimitiveType(ptype)))


class TestEvaluate:

    def test_variable_and_literal(self):
        x = int_var("x")
        fact = CPFact({x: _const(9)})
        assert evaluate(x, fact) == _const(9)
        assert evaluate(int_var("unset"), fact) == UNDEF
        assert evaluate(IntLiteral(4), fact) == _const(4)

    def test_non_integral_variable_is_nac(self):
        wide = Var("w", PrimitiveType.LONG)
        fact = CPFact({wide: _const(1)})
        assert evaluate(wide, fact) == NAC

    @pytest.mark.parametrize("op,a,b,expected", [
        (BinaryOp.ADD, 3, 4, 7),
        (BinaryOp.SUB, 3, 4, -1),
        (BinaryOp.MUL, -3, 4, -12),
        (BinaryOp.DIV, 7, 2, 3),
        (BinaryOp.DIV, -7, 2, -3),
        (BinaryOp.REM, -7, 2, -1),
        (BinaryOp.REM, 7, -2, 1),
        (BinaryOp.SHL, 1, 4, 16),
        (BinaryOp.SHL, 1, 33, 2),
        (BinaryOp.SHR, -16, 2, -4),
        (BinaryOp.AND, 12, 10, 8),
        (BinaryOp.OR, 12, 10, 14),
        (BinaryOp.XOR, 12, 10, 6),
        (BinaryOp.GT, 1, 0, 1),
        (BinaryOp.LT, 1, 0, 0),
        (BinaryOp.GE, 2, 2, 1),
        (BinaryOp.LE, 3, 2, 0),
        (BinaryOp.EQ, 5, 5, 1),
        (BinaryOp.NE, 5, 5, 0),
    ])
    def test_binary_operators(self, op, a, b, expected):
        assert evaluate(_bin(op, a, b), CPFact()) == _const(expected)

    def test_int_overflow_wraps(self):
        assert evaluate(_bin(BinaryOp.ADD, 2147483647, 1), CPFact()) == _const(-2147483648)
        assert evaluate(_bin(BinaryOp.MUL, 65536, 65536), CPFact()) == _const(0)

    @pytest.mark.parametrize("op", [BinaryOp.DIV, BinaryOp.REM])
    def test_division_by_zero_is_undef(self, op):
        assert evaluate(_bin(op, 10, 0), CPFact()) == UNDEF

    @pytest.mark.parametrize("op", [BinaryOp.USHR, BinaryOp.CMP,
                                    BinaryOp.CMPL, BinaryOp.CMPG])
    def test_unsupported_operators_are_nac(self, op):
        assert evaluate(_bin(op, 8, 1), CPFact()) == NAC

    def test_non_constant_operand_gives_nac(self):
        x, y = int_var("x"), int_var("y")
        fact = CPFact({x: NAC, y: _const(1)})
        assert evaluate(BinaryExp(BinaryOp.ADD, x, y), fact) == NAC
        assert evaluate(BinaryExp(BinaryOp.ADD, int_var("u"), y), fact) == NAC

    def test_other_expressions_are_nac(self):
        o = Var("o", PrimitiveType.INT)
        assert evaluate(InvokeExp("f"), CPFact()) == NAC
        assert evaluate(StringLiteral("s"), CPFact()) == NAC
        assert evaluate(InstanceFieldAccess(o, "f"), CPFact()) == NAC


class TestTransfer:

    def setup_method(self):
        self.analysis = ConstantPropagation(AnalysisConfig("constprop"))

    def test_gen_constant(self):
        x = int_var("x")
        out = CPFact()
        stmt = AssignStmt(x, _bin(BinaryOp.ADD, 3, 4))
        assert self.analysis.transfer_node(stmt, CPFact(), out) is True
        assert out.get(x) == _const(7)

    def test_non_integral_target_is_not_tracked(self):
        w = Var("w", PrimitiveType.LONG)
        out = CPFact()
        assert self.analysis.transfer_node(AssignStmt(w, IntLiteral(1)), CPFact(), out) is False
        assert w not in out
        assert evaluate(w, out) == NAC

    def test_kill_then_gen(self):
        x, y = int_var("x"), int_var("y")
        in_fact = CPFact({x: _const(1), y: NAC})
        out = CPFact()
        self.analysis.transfer_node(AssignStmt(x, y), in_fact, out)
        assert out.get(x) == NAC
        assert in_fact.get(x) == _const(1)

    def test_field_store_kills_nothing(self):
        x, o = int_var("x"), Var("o", PrimitiveType.INT)
        in_fact = CPFact({x: _const(1)})
        out = CPFact()
        self.analysis.transfer_node(AssignStmt(InstanceFieldAccess(o, "f"), x), in_fact, out)
        assert out == in_fact

    def test_unchanged_out_reports_false(self):
        x = int_var("x")
        out = CPFact({x: _const(1)})
        assert self.analysis.transfer_node(AssignStmt(x, IntLiteral(1)), CPFact(), out) is False


class TestWholeMethod:

    def test_boundary_fact_marks_params_nac(self):
        ir = analyze_source("method int id(int p) { return p; }", "constprop")
        result = ir.get_result("constprop")
        cfg = ir.get_result("cfg")
        p = var_of(ir, "p")
        assert result.get_in_fact(cfg.get_entry()).get(p) == NAC
        assert result.get_in_fact(ir.get_stmt(0)).get(p) == NAC

    def test_straight_line(self):
        src = """
        method int f() {
            int a, b, c;
            a = 3 + 4;
            b = a * 2;
            c = 10 / 0;
            return b;
        }
        """
        ir = analyze_source(src, "constprop")
        out = ir.get_result("constprop").get_out_fact(ir.get_stmt(2))
        assert out.get(var_of(ir, "a")) == _const(7)
        assert out.get(var_of(ir, "b")) == _const(14)
        assert out.get(var_of(ir, "c")) == UNDEF

    def test_loop_reaches_nac(self):
        ir = analyze_source(LOOP_SRC, "constprop")
        result = ir.get_result("constprop")
        ret = ir.get_stmts()[-1]
        fact = result.get_in_fact(ret)
        assert fact.get(var_of(ir, "i")) == NAC
        assert fact.get(var_of(ir, "s")) == NAC
        assert fact.get(var_of(ir, "n")) == NAC

    def test_merge_of_equal_constants_stays_constant(self):
        src = """
        method int f(int p) {
            int a;
            if (p > 0) goto other;
            a = 5;
            goto join;
          other:
            a = 5;
          join:
            return a;
        }
        """
        ir = analyze_source(src, "constprop")
        ret = ir.get_stmt(4)
        assert ir.get_result("constprop").get_in_fact(ret).get(var_of(ir, "a")) == _const(5)

    def test_long_variable_never_holds_a_constant(self):
        src = """
        method int f() {
            long w;
            int r;
            w = 1;
            r = 2;
            return r;
        }
        """
        ir = analyze_source(src, "constprop")
        out = ir.get_result("constprop").get_out_fact(ir.get_stmt(1))
        assert var_of(ir, "w") not in out
        assert out.get(var_of(ir, "r")) == _const(2)

    @pytest.mark.parametrize("strategy", ["fifo", "lifo"])
    def test_strategy_option(self, strategy):
        ir = analyze_source(LOOP_SRC, f"constprop=strategy:{strategy}")
        assert ir.get_result("constprop").iterations > 0

    def test_solver_directly(self):
        ir = analyze_source(LOOP_SRC, "cfg")
        result = Solver(ConstantPropagation(AnalysisConfig("constprop"))).solve(
            ir.get_result("cfg"))
        assert result.get_out_fact(ir.get_stmt(0)).get(var_of(ir, "i")) == _const(0)
