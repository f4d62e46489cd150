# tests/test_deadcode.py
"""
Tests for dead code detection: unreachable branches, unreachable switch
cases and useless assignments.
"""

import pytest

from irflow.deadcode import has_no_side_effect
from irflow.ir import (
    ArrayAccess, ArrayType, BinaryExp, BinaryOp, CastExp, ClassType,
    InstanceFieldAccess, IntLiteral, InvokeExp, NegExp, NewArray,
    NewInstance, PrimitiveType, StaticFieldAccess, Var,
)
from tests.conftest import (
    DEAD_BRANCH_SRC, LOOP_SRC, SWITCH_SRC, analyze_source, dead_indices,
)


x = Var("x", PrimitiveType.INT)
obj = Var("o", ClassType("Foo"))
arr = Var("arr", ArrayType(PrimitiveType.INT))


class TestSideEffects:

    @pytest.mark.parametrize("rvalue", [
        NewInstance(ClassType("Foo")),
        NewArray(PrimitiveType.INT, IntLiteral(3)),
        CastExp(PrimitiveType.INT, x),
        InstanceFieldAccess(obj, "f"),
        StaticFieldAccess("Foo", "F"),
        ArrayAccess(arr, IntLiteral(0)),
        BinaryExp(BinaryOp.DIV, x, IntLiteral(2)),
        BinaryExp(BinaryOp.REM, x, IntLiteral(2)),
    ])
    def test_has_side_effect(self, rvalue):
        assert has_no_side_effect(rvalue) is False

    @pytest.mark.parametrize("rvalue", [
        IntLiteral(1),
        x,
        NegExp(x),
        BinaryExp(BinaryOp.ADD, x, IntLiteral(2)),
        BinaryExp(BinaryOp.LT, x, IntLiteral(2)),
        BinaryExp(BinaryOp.SHL, x, IntLiteral(2)),
        InvokeExp("f"),
    ])
    def test_side_effect_free(self, rvalue):
        assert has_no_side_effect(rvalue) is True


class TestUnreachableBranches:

    def test_constant_true_condition(self):
        ir = analyze_source(DEAD_BRANCH_SRC, "deadcode")
        dead = ir.get_result("deadcode")
        assert [str(s) for s in dead] == ["a = 2;", "goto @4;"]
        assert dead_indices(ir) == [1, 2]

    def test_branch_statements_never_reported(self):
        ir = analyze_source(DEAD_BRANCH_SRC, "deadcode")
        dead = ir.get_result("deadcode")
        assert ir.get_stmt(0) not in dead
        assert ir.get_stmt(4) not in dead

    def test_constant_false_condition(self):
        src = """
        method int f() {
            int a;
            if (1 < 0) goto then;
            a = 2;
            return a;
          then:
            a = 1;
            return a;
        }
        """
        ir = analyze_source(src, "deadcode")
        assert dead_indices(ir) == [3, 4]

    def test_unknown_condition_keeps_both_branches(self):
        src = """
        method int f(int p) {
            int a;
            if (p > 0) goto then;
            a = 2;
            return a;
          then:
            a = 1;
            return a;
        }
        """
        assert dead_indices(analyze_source(src, "deadcode")) == []

    def test_code_after_infinite_loop(self):
        src = """
        method int f() {
            int a, b;
            a = 5;
          again:
            b = a + 1;
            if (b == 6) goto again;
            return b;
        }
        """
        assert dead_indices(analyze_source(src, "deadcode")) == [3]

    def test_statements_without_path_from_entry(self):
        src = """
        method void f() {
            goto out;
            nop;
          out:
            return;
        }
        """
        assert dead_indices(analyze_source(src, "deadcode")) == [1]

    def test_loop_has_no_dead_code(self):
        assert dead_indices(analyze_source(LOOP_SRC, "deadcode")) == []


class TestSwitch:

    def test_matching_case(self):
        ir = analyze_source(SWITCH_SRC.format(value=2), "deadcode")
        assert dead_indices(ir) == [2, 3, 6, 7]

    def test_default_when_no_case_matches(self):
        ir = analyze_source(SWITCH_SRC.format(value=5), "deadcode")
        assert dead_indices(ir) == [2, 3, 4, 5]

    def test_unknown_selector(self):
        src = SWITCH_SRC.format(value="invoke Rand.next()")
        assert dead_indices(analyze_source(src, "deadcode")) == []

    @pytest.mark.parametrize("branch", [
        "switch (w) { case 1: goto a; default: goto b; }",
        "if (w == 1) goto a; goto b;",
    ])
    def test_non_integral_selector_keeps_all_targets(self, branch):
        src = f"""
        method int f() {{
            long w;
            int r;
            w = 1;
            {branch}
          a:
            r = 10;
            return r;
          b:
            r = 20;
            return r;
        }}
        """
        assert dead_indices(analyze_source(src, "deadcode")) == []


class TestUselessAssignments:

    def test_unused_constant_assignment(self):
        src = """
        method void f(Foo o) {
            int x, y;
            x = 1;
            y = o.f;
            return;
        }
        """
        ir = analyze_source(src, "deadcode")
        assert dead_indices(ir) == [0]

    def test_division_is_kept(self):
        src = """
        method void f(int p) {
            int q, r;
            q = p / 2;
            r = p + 2;
            return;
        }
        """
        assert dead_indices(analyze_source(src, "deadcode")) == [1]

    def test_overwritten_before_use(self):
        src = """
        method int f() {
            int x;
            x = 1;
            x = 2;
            return x;
        }
        """
        assert dead_indices(analyze_source(src, "deadcode")) == [0]

    def test_call_results_are_kept(self):
        src = """
        method void f() {
            int x;
            x = invoke compute();
            return;
        }
        """
        assert dead_indices(analyze_source(src, "deadcode")) == []

    def test_useless_assignment_does_not_hide_successors(self):
        src = """
        method int f() {
            int x, y;
            x = 1;
            y = 2;
            return y;
        }
        """
        ir = analyze_source(src, "deadcode")
        assert dead_indices(ir) == [0]
        assert ir.get_stmt(2) not in ir.get_result("deadcode")

    def test_empty_method(self):
        ir = analyze_source("method void e() { }", "deadcode")
        assert ir.get_result("deadcode") == []
