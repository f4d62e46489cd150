"""
tir.parser
==========

Builds :class:`irflow.ir.IR` objects from ``.tir`` source text.

The parse tree produced by :data:`tir.grammar.TIR_GRAMMAR` is lowered in a
single :class:`NodeVisitor` pass.  Parsimonious visits children left to
right before their parent, so parameters and declarations are registered
in the method scope before any statement refers to them.  Jump targets are
collected while the body is visited and resolved once the whole method has
been seen.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from parsimonious.exceptions import IncompleteParseError, ParseError
from parsimonious.nodes import Node, NodeVisitor

from irflow.ir import (
    IR,
    ArrayAccess,
    AssignStmt,
    BinaryExp,
    BinaryOp,
    CastExp,
    ClassType,
    Exp,
    FieldAccess,
    Goto,
    If,
    InstanceFieldAccess,
    IntLiteral,
    Invoke,
    InvokeExp,
    NegExp,
    NewArray,
    NewInstance,
    Nop,
    NullLiteral,
    Return,
    StaticFieldAccess,
    Stmt,
    StringLiteral,
    Switch,
    Var,
    parse_type,
)
from tir.errors import SourceLoc, TirError, TirSemanticError, TirSyntaxError
from tir.grammar import TIR_GRAMMAR

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════
#  Helpers
# ═══════════════════════════════════════════════════════════════════════

class _Name(str):
    """An identifier together with its offset in the source text."""

    pos: int

    def __new__(cls, text: str, pos: int) -> _Name:
        obj = super().__new__(cls, text)
        obj.pos = pos
        return obj


class _Label:
    __slots__ = ("name",)

    def __init__(self, name: _Name) -> None:
        self.name = name


def _opt(value: Any) -> Any:
    """Result of an ``x?`` node, or ``None`` when it matched nothing."""
    if isinstance(value, Node):
        return None
    return value[0]


def _many(value: Any) -> List[Any]:
    """Results of an ``x*`` node as a list."""
    if isinstance(value, Node):
        return []
    return list(value)


_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "b": "\b", "f": "\f", "0": "\0"}


def _unescape(text: str) -> str:
    # any other escaped character stands for itself
    return re.sub(r"\\(.)", lambda m: _ESCAPES.get(m.group(1), m.group(1)),
                  text[1:-1])


def _int_value(text: str) -> int:
    if "x" in text.lower():
        return int(text, 16)
    return int(text)


# ═══════════════════════════════════════════════════════════════════════
#  Visitor
# ═══════════════════════════════════════════════════════════════════════

class TirBuilder(NodeVisitor):
    """Lowers a TIR parse tree into a list of :class:`IR`."""

    unwrapped_exceptions = (TirError,)

    def __init__(self, text: str, filename: str = "<string>") -> None:
        self.text = text
        self.filename = filename
        self._scope: Dict[str, Var] = {}
        self._params: List[Var] = []
        self._fixups: List[Tuple[_Name, Callable[[Stmt], None]]] = []

    # ----- locations and scope ---------------------------------------------

    def loc(self, pos: int) -> SourceLoc:
        line = self.text.count("\n", 0, pos) + 1
        column = pos - (self.text.rfind("\n", 0, pos) + 1) + 1
        return SourceLoc(self.filename, line, column)

    def _declare(self, var: Var, pos: int) -> Var:
        if var.name in self._scope:
            raise TirSemanticError(f"variable '{var.name}' is already declared",
                                   self.loc(pos))
        self._scope[var.name] = var
        return var

    def _lookup(self, name: _Name) -> Var:
        var = self._scope.get(name)
        if var is None:
            raise TirSemanticError(f"undeclared variable '{name}'", self.loc(name.pos))
        return var

    def _jump_to(self, label: _Name, setter: Callable[[Stmt], None]) -> None:
        self._fixups.append((label, setter))

    # ----- default ----------------------------------------------------------

    def generic_visit(self, node, visited_children):
        return visited_children or node

    # ----- top level --------------------------------------------------------

    def visit_program(self, node, visited_children) -> List[IR]:
        _, methods = visited_children
        irs = _many(methods)
        seen: Dict[str, IR] = {}
        for ir in irs:
            if ir.method_name in seen:
                raise TirSemanticError(f"method '{ir.method_name}' is defined twice")
            seen[ir.method_name] = ir
        return irs

    def visit_method_kw(self, node, visited_children):
        self._scope = {}
        self._params = []
        self._fixups = []
        return node

    def visit_method_decl(self, node, visited_children) -> IR:
        return_type = visited_children[2]
        name = visited_children[4]
        items = _many(visited_children[14])

        labels: Dict[str, Stmt] = {}
        pending: List[_Name] = []
        stmts: List[Stmt] = []
        for item in items:
            if isinstance(item, _Label):
                if item.name in labels or item.name in pending:
                    raise TirSemanticError(f"label '{item.name}' is defined twice",
                                           self.loc(item.name.pos))
                pending.append(item.name)
                continue
            for label in pending:
                labels[label] = item
            pending = []
            stmts.append(item)
        if pending:
            raise TirSemanticError(
                f"label '{pending[0]}' is not followed by a statement",
                self.loc(pending[0].pos),
            )

        for label, setter in self._fixups:
            target = labels.get(label)
            if target is None:
                raise TirSemanticError(f"undefined label '{label}'", self.loc(label.pos))
            setter(target)

        params = list(self._params)
        local_vars = [v for v in self._scope.values() if v not in params]
        ir = IR(str(name), params, return_type, local_vars, stmts)
        logger.debug("parsed %r", ir)
        return ir

    def visit_param(self, node, visited_children) -> Var:
        var_type, _, name = visited_children
        var = self._declare(Var(str(name), var_type), name.pos)
        self._params.append(var)
        return var

    def visit_var_decl(self, node, visited_children) -> List[Var]:
        var_type, _, names, *_ = visited_children
        return [self._declare(Var(str(n), var_type), n.pos) for n in names]

    def visit_identifier_list(self, node, visited_children) -> List[_Name]:
        first, rest = visited_children
        return [first, *(item[3] for item in _many(rest))]

    def visit_body_item(self, node, visited_children):
        return visited_children[0]

    def visit_label_def(self, node, visited_children) -> _Label:
        return _Label(visited_children[0])

    # ----- statements -------------------------------------------------------

    def visit_stmt(self, node, visited_children) -> Stmt:
        stmt = visited_children[0][0]
        stmt.line_number = self.loc(node.start).line
        return stmt

    def visit_return_stmt(self, node, visited_children) -> Return:
        value = _opt(visited_children[1])
        return Return(value[1] if value is not None else None)

    def visit_goto_stmt(self, node, visited_children) -> Goto:
        stmt = Goto()
        self._jump_to(visited_children[2], lambda t: setattr(stmt, "target", t))
        return stmt

    def visit_if_stmt(self, node, visited_children) -> If:
        stmt = If(visited_children[4])
        self._jump_to(visited_children[10], lambda t: setattr(stmt, "target", t))
        return stmt

    def visit_condition(self, node, visited_children) -> BinaryExp:
        left, _, op, _, right = visited_children
        return BinaryExp(BinaryOp(op), left, right)

    def visit_switch_stmt(self, node, visited_children) -> Switch:
        var = self._lookup(visited_children[4])
        cases = _many(visited_children[10])
        default_label = visited_children[11]
        stmt = Switch(var, [value for value, _ in cases], [None] * len(cases))
        for i, (value, label) in enumerate(cases):
            if value in stmt.case_values[:i]:
                raise TirSemanticError(f"duplicate case {value}", self.loc(label.pos))
            self._jump_to(label, lambda t, i=i: stmt.case_targets.__setitem__(i, t))
        self._jump_to(default_label, lambda t: setattr(stmt, "default_target", t))
        return stmt

    def visit_case_clause(self, node, visited_children) -> Tuple[int, _Name]:
        return visited_children[2].value, visited_children[8]

    def visit_default_clause(self, node, visited_children) -> _Name:
        return visited_children[6]

    def visit_nop_stmt(self, node, visited_children) -> Nop:
        return Nop()

    def visit_invoke_stmt(self, node, visited_children) -> Invoke:
        return Invoke(None, visited_children[0])

    def visit_assign_stmt(self, node, visited_children) -> Stmt:
        lvalue, _, _, _, rvalue, *_ = visited_children
        if isinstance(rvalue, InvokeExp):
            if not isinstance(lvalue, Var):
                raise TirSemanticError("call results can only be stored in a variable",
                                       self.loc(node.start))
            return Invoke(lvalue, rvalue)
        return AssignStmt(lvalue, rvalue)

    def visit_lvalue(self, node, visited_children) -> Union[Var, FieldAccess, ArrayAccess]:
        target = visited_children[0]
        if isinstance(target, _Name):
            return self._lookup(target)
        return target

    # ----- expressions ------------------------------------------------------

    def visit_rvalue(self, node, visited_children) -> Exp:
        return visited_children[0]

    def visit_new_array(self, node, visited_children) -> NewArray:
        return NewArray(visited_children[2], visited_children[6])

    def visit_new_instance(self, node, visited_children) -> NewInstance:
        alloc_type = visited_children[2]
        if not isinstance(alloc_type, ClassType):
            raise TirSemanticError(f"'new' needs a class type, got '{alloc_type}'",
                                   self.loc(node.start))
        return NewInstance(alloc_type)

    def visit_invoke_expr(self, node, visited_children) -> InvokeExp:
        receiver, method = visited_children[2]
        args = _opt(visited_children[6]) or ()
        return InvokeExp(str(method), tuple(args), receiver)

    def visit_callee(self, node, visited_children) -> Tuple[Union[Var, str, None], _Name]:
        callee = visited_children[0]
        if isinstance(callee, tuple):
            return callee
        return None, callee

    def visit_qualified_name(self, node, visited_children) -> Tuple[Union[Var, str], _Name]:
        owner, _, _, _, member = visited_children
        if owner in self._scope:
            return self._scope[owner], member
        return str(owner), member

    def visit_arg_list(self, node, visited_children) -> List[Exp]:
        first, rest, _ = visited_children
        return [first, *(item[3] for item in _many(rest))]

    def visit_cast_expr(self, node, visited_children) -> CastExp:
        return CastExp(visited_children[2], visited_children[6])

    def visit_binary_expr(self, node, visited_children) -> BinaryExp:
        left, _, op, _, right = visited_children
        return BinaryExp(BinaryOp(op), left, right)

    def visit_neg_expr(self, node, visited_children) -> NegExp:
        return NegExp(self._lookup(visited_children[2]))

    def visit_array_access(self, node, visited_children) -> ArrayAccess:
        return ArrayAccess(self._lookup(visited_children[0]), visited_children[4])

    def visit_field_access(self, node, visited_children) -> FieldAccess:
        owner, _, _, _, field_name = visited_children
        if owner in self._scope:
            return InstanceFieldAccess(self._scope[owner], str(field_name))
        return StaticFieldAccess(str(owner), str(field_name))

    def visit_atom(self, node, visited_children) -> Exp:
        value = visited_children[0]
        if isinstance(value, _Name):
            return self._lookup(value)
        return value

    def visit_literal(self, node, visited_children) -> Exp:
        return visited_children[0]

    def visit_int_literal(self, node, visited_children) -> IntLiteral:
        return IntLiteral(_int_value(node.text))

    def visit_string_literal(self, node, visited_children) -> StringLiteral:
        return StringLiteral(_unescape(node.text))

    def visit_null_literal(self, node, visited_children) -> NullLiteral:
        return NullLiteral()

    def visit_rel_op(self, node, visited_children) -> str:
        return node.text

    def visit_bin_op(self, node, visited_children) -> str:
        return node.text

    # ----- lexical ----------------------------------------------------------

    def visit_type_name(self, node, visited_children):
        try:
            return parse_type(node.text)
        except ValueError as exc:
            raise TirSemanticError(str(exc), self.loc(node.start)) from None

    def visit_identifier(self, node, visited_children) -> _Name:
        return _Name(node.text, node.start)


# ═══════════════════════════════════════════════════════════════════════
#  Entry points
# ═══════════════════════════════════════════════════════════════════════

def parse(text: str, filename: str = "<string>") -> List[IR]:
    """Parse TIR source into one :class:`IR` per method.

    Raises
    ------
    TirSyntaxError
        The text does not match the grammar.
    TirSemanticError
        Undeclared variables, undefined or duplicate labels, and similar.
    """
    builder = TirBuilder(text, filename)
    try:
        tree = TIR_GRAMMAR.parse(text)
    except IncompleteParseError as exc:
        snippet = text[exc.pos:exc.pos + 20].split("\n", 1)[0]
        raise TirSyntaxError(f"cannot parse method starting at {snippet!r}",
                             builder.loc(exc.pos)) from None
    except ParseError as exc:
        snippet = text[exc.pos:exc.pos + 20].split("\n", 1)[0]
        raise TirSyntaxError(f"unexpected input {snippet!r}",
                             builder.loc(exc.pos)) from None
    irs = builder.visit(tree)
    logger.info("%s: parsed %d method(s)", filename, len(irs))
    return irs


def parse_file(path: Union[str, Path]) -> List[IR]:
    """Read and parse a ``.tir`` file."""
    p = Path(path)
    return parse(p.read_text(encoding="utf-8"), str(p))


def parse_method(text: str, name: Optional[str] = None) -> IR:
    """Parse ``text`` and return the method called ``name`` (or the only one)."""
    irs = parse(text)
    if name is None:
        if len(irs) != 1:
            raise TirSemanticError(f"expected exactly one method, found {len(irs)}")
        return irs[0]
    for ir in irs:
        if ir.method_name == name:
            return ir
    raise TirSemanticError(f"no method named '{name}'")


__all__: Sequence[str] = ["TirBuilder", "parse", "parse_file", "parse_method"]
