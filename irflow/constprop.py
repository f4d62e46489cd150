"""
irflow.constprop
================

Intraprocedural constant propagation over integral variables.

Facts are :class:`~irflow.facts.CPFact` maps from variables to lattice
values.  Only variables whose static type can hold an ``int`` (byte, short,
int, char, boolean) are ever tracked; assignments to any other variable
leave the fact alone and reading one yields ``NAC``.  Arithmetic follows
Java's 32-bit ``int`` rules: results wrap, division truncates toward zero,
the remainder takes the sign of the dividend and shift distances are
masked to five bits.

Public API
----------
    ConstantPropagation  - the ``constprop`` analysis
    can_hold_int         - integral-type test for a variable
    evaluate             - abstract evaluation of an expression under a fact
"""

from __future__ import annotations

import logging
from typing import Callable, Dict

from irflow.ctrlflow_graph import CFG
from irflow.dataflow_engine import AbstractDataflowAnalysis
from irflow.facts import CPFact
from irflow.ir import (
    BinaryExp,
    BinaryOp,
    DefinitionStmt,
    Exp,
    IntLiteral,
    PrimitiveType,
    Stmt,
    Var,
)
from irflow.lattice import NAC, UNDEF, Value, meet_value

logger = logging.getLogger(__name__)

_INT_TYPES = frozenset({
    PrimitiveType.BYTE,
    PrimitiveType.SHORT,
    PrimitiveType.INT,
    PrimitiveType.CHAR,
    PrimitiveType.BOOLEAN,
})


def _wrap32(n: int) -> int:
    n &= 0xFFFFFFFF
    return n - 0x100000000 if n & 0x80000000 else n


def _div(a: int, b: int) -> int:
    q = abs(a) // abs(b)
    return q if (a < 0) == (b < 0) else -q


def _rem(a: int, b: int) -> int:
    return a - _div(a, b) * b


_INT_OPS: Dict[BinaryOp, Callable[[int, int], int]] = {
    BinaryOp.ADD: lambda a, b: a + b,
    BinaryOp.SUB: lambda a, b: a - b,
    BinaryOp.MUL: lambda a, b: a * b,
    BinaryOp.DIV: _div,
    BinaryOp.REM: _rem,
    BinaryOp.SHL: lambda a, b: a << (b & 31),
    BinaryOp.SHR: lambda a, b: a >> (b & 31),
    BinaryOp.AND: lambda a, b: a & b,
    BinaryOp.OR: lambda a, b: a | b,
    BinaryOp.XOR: lambda a, b: a ^ b,
    BinaryOp.GT: lambda a, b: int(a > b),
    BinaryOp.LT: lambda a, b: int(a < b),
    BinaryOp.GE: lambda a, b: int(a >= b),
    BinaryOp.LE: lambda a, b: int(a <= b),
    BinaryOp.EQ: lambda a, b: int(a == b),
    BinaryOp.NE: lambda a, b: int(a != b),
}


def can_hold_int(var: Var) -> bool:
    """Whether ``var``'s type is one of byte, short, int, char or boolean."""
    return var.type in _INT_TYPES


def evaluate(exp: Exp, fact: CPFact) -> Value:
    """Abstract value of ``exp`` under ``fact``.

    Variables, int literals and binary operations over two constants are
    evaluated; everything else is ``NAC``.  Dividing by a constant zero
    gives ``UNDEF``.
    """
    if isinstance(exp, Var):
        return fact.get(exp) if can_hold_int(exp) else NAC
    if isinstance(exp, IntLiteral):
        return Value.make_constant(_wrap32(exp.value))
    if isinstance(exp, BinaryExp):
        v1 = evaluate(exp.operand1, fact)
        v2 = evaluate(exp.operand2, fact)
        if not (v1.is_constant() and v2.is_constant()):
            return NAC
        op = _INT_OPS.get(exp.op)
        if op is None:
            return NAC
        a, b = v1.get_constant(), v2.get_constant()
        if b == 0 and exp.op in (BinaryOp.DIV, BinaryOp.REM):
            return UNDEF
        return Value.make_constant(_wrap32(op(a, b)))
    return NAC


class ConstantPropagation(AbstractDataflowAnalysis[CPFact]):
    """Forward constant propagation, stored under ``"constprop"``."""

    ID = "constprop"

    def is_forward(self) -> bool:
        return True

    def new_boundary_fact(self, cfg: CFG) -> CPFact:
        # parameters are defined on entry but their values are unknown
        fact = CPFact()
        for param in cfg.get_ir().get_params():
            fact.update(param, NAC)
        return fact

    def new_initial_fact(self) -> CPFact:
        return CPFact()

    def meet_into(self, fact: CPFact, target: CPFact) -> None:
        for var, value in fact.items():
            target.update(var, meet_value(value, target.get(var)))

    def transfer_node(self, node: Stmt, in_fact: CPFact, out_fact: CPFact) -> bool:
        tmp = in_fact.copy()
        if isinstance(node, DefinitionStmt):
            lhs = node.get_lvalue()
            if isinstance(lhs, Var) and can_hold_int(lhs):
                tmp.update(lhs, evaluate(node.get_rvalue(), in_fact))
        return out_fact.copy_from(tmp)
