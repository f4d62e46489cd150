"""
irflow.ir
=========

A small three-address intermediate representation for one method.

The object model mirrors what the analyses need and nothing more:

* **Types** - primitive scalars, class types, array types and ``void``.
* **Expressions** - variables, literals, binary/unary operations,
  allocations, casts, field and array accesses and invocations.  Every
  expression reports the sub-expressions it reads through ``get_uses()``.
* **Statements** - definitions (assignments and invocations) plus the
  control-transfer statements ``If``, ``Switch``, ``Goto``, ``Return`` and
  ``Nop``.  Statements compare by identity and carry a stable ``index``
  assigned by their owning :class:`IR`.
* **IR** - parameters, declared variables, the statement list, and a result
  holder that analyses write into and later analyses read from.

Statements print in a Jimple-like syntax, which is also what the ``tir``
front end parses.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import (
    Any,
    Dict,
    FrozenSet,
    Iterator,
    List,
    Optional,
    Sequence,
    Tuple,
    Union,
)

from irflow.errors import AnalysisException


# ═══════════════════════════════════════════════════════════════════════════
#  PART 1 - TYPES
# ═══════════════════════════════════════════════════════════════════════════

class PrimitiveType(enum.Enum):
    BYTE = "byte"
    SHORT = "short"
    INT = "int"
    CHAR = "char"
    BOOLEAN = "boolean"
    LONG = "long"
    FLOAT = "float"
    DOUBLE = "double"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ClassType:
    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class ArrayType:
    element_type: "Type"

    def __str__(self) -> str:
        return f"{self.element_type}[]"


@dataclass(frozen=True)
class VoidType:

    def __str__(self) -> str:
        return "void"


VOID = VoidType()

Type = Union[PrimitiveType, ClassType, ArrayType, VoidType]

_PRIMITIVES: Dict[str, PrimitiveType] = {t.value: t for t in PrimitiveType}


def parse_type(text: str) -> Type:
    """Parse ``int``, ``Foo``, ``int[][]`` or ``void`` into a type."""
    text = "".join(text.split())
    dims = 0
    while text.endswith("[]"):
        text = text[:-2]
        dims += 1
    if text == "void":
        if dims:
            raise ValueError("array of void")
        return VOID
    base: Type = _PRIMITIVES.get(text) or ClassType(text)
    for _ in range(dims):
        base = ArrayType(base)
    return base


# ═══════════════════════════════════════════════════════════════════════════
#  PART 2 - EXPRESSIONS
# ═══════════════════════════════════════════════════════════════════════════

class Exp:
    """Base class for every expression."""

    def get_uses(self) -> List["RValue"]:
        """Sub-expressions read when evaluating this expression."""
        return []


@dataclass(frozen=True)
class Var(Exp):
    """A local variable or parameter, identified by name and type."""
    name: str
    type: Type

    def __str__(self) -> str:
        return self.name


class Literal(Exp):
    pass


@dataclass(frozen=True)
class IntLiteral(Literal):
    value: int

    def __str__(self) -> str:
        return str(self.value)


_STRING_ESCAPES = str.maketrans({
    "\\": "\\\\", '"': '\\"', "\n": "\\n", "\t": "\\t",
    "\r": "\\r", "\b": "\\b", "\f": "\\f", "\0": "\\0",
})


@dataclass(frozen=True)
class StringLiteral(Literal):
    value: str

    def __str__(self) -> str:
        escaped = self.value.translate(_STRING_ESCAPES)
        return f'"{escaped}"'


@dataclass(frozen=True)
class NullLiteral(Literal):

    def __str__(self) -> str:
        return "null"


class BinaryOp(enum.Enum):
    """Binary operators, tagged by their surface syntax."""
    # arithmetic
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    REM = "%"
    # shift
    SHL = "<<"
    SHR = ">>"
    USHR = ">>>"
    # bitwise
    AND = "&"
    OR = "|"
    XOR = "^"
    # condition
    EQ = "=="
    NE = "!="
    LT = "<"
    GT = ">"
    LE = "<="
    GE = ">="
    # comparison of long/float/double values
    CMP = "cmp"
    CMPL = "cmpl"
    CMPG = "cmpg"

    def __str__(self) -> str:
        return self.value


ARITHMETIC_OPS: FrozenSet[BinaryOp] = frozenset({
    BinaryOp.ADD, BinaryOp.SUB, BinaryOp.MUL, BinaryOp.DIV, BinaryOp.REM,
})
SHIFT_OPS: FrozenSet[BinaryOp] = frozenset({
    BinaryOp.SHL, BinaryOp.SHR, BinaryOp.USHR,
})
BITWISE_OPS: FrozenSet[BinaryOp] = frozenset({
    BinaryOp.AND, BinaryOp.OR, BinaryOp.XOR,
})
CONDITION_OPS: FrozenSet[BinaryOp] = frozenset({
    BinaryOp.EQ, BinaryOp.NE, BinaryOp.LT,
    BinaryOp.GT, BinaryOp.LE, BinaryOp.GE,
})
COMPARISON_OPS: FrozenSet[BinaryOp] = frozenset({
    BinaryOp.CMP, BinaryOp.CMPL, BinaryOp.CMPG,
})


@dataclass(frozen=True)
class BinaryExp(Exp):
    op: BinaryOp
    operand1: "RValue"
    operand2: "RValue"

    def is_arithmetic(self) -> bool:
        return self.op in ARITHMETIC_OPS

    def is_condition(self) -> bool:
        return self.op in CONDITION_OPS

    def get_uses(self) -> List["RValue"]:
        return [self.operand1, self.operand2]

    def __str__(self) -> str:
        return f"{self.operand1} {self.op} {self.operand2}"


@dataclass(frozen=True)
class NegExp(Exp):
    operand: Var

    def get_uses(self) -> List["RValue"]:
        return [self.operand]

    def __str__(self) -> str:
        return f"-{self.operand}"


class NewExp(Exp):
    """Allocation of an object or array."""


@dataclass(frozen=True)
class NewInstance(NewExp):
    type: ClassType

    def get_uses(self) -> List["RValue"]:
        return []

    def __str__(self) -> str:
        return f"new {self.type}"


@dataclass(frozen=True)
class NewArray(NewExp):
    element_type: Type
    length: "RValue"

    def get_uses(self) -> List["RValue"]:
        return [self.length]

    def __str__(self) -> str:
        return f"newarray {self.element_type}[{self.length}]"


@dataclass(frozen=True)
class CastExp(Exp):
    cast_type: Type
    value: "RValue"

    def get_uses(self) -> List["RValue"]:
        return [self.value]

    def __str__(self) -> str:
        return f"({self.cast_type}) {self.value}"


class FieldAccess(Exp):
    """Read or write of a field; instance or static."""


@dataclass(frozen=True)
class InstanceFieldAccess(FieldAccess):
    base: Var
    field_name: str

    def get_uses(self) -> List["RValue"]:
        return [self.base]

    def __str__(self) -> str:
        return f"{self.base}.{self.field_name}"


@dataclass(frozen=True)
class StaticFieldAccess(FieldAccess):
    class_name: str
    field_name: str

    def get_uses(self) -> List["RValue"]:
        return []

    def __str__(self) -> str:
        return f"{self.class_name}.{self.field_name}"


@dataclass(frozen=True)
class ArrayAccess(Exp):
    base: Var
    index: "RValue"

    def get_uses(self) -> List["RValue"]:
        return [self.base, self.index]

    def __str__(self) -> str:
        return f"{self.base}[{self.index}]"


@dataclass(frozen=True)
class InvokeExp(Exp):
    """A call.  ``receiver`` is a variable, a class name, or ``None``."""
    method_name: str
    args: Tuple["RValue", ...] = ()
    receiver: Union[Var, str, None] = None

    def get_uses(self) -> List["RValue"]:
        uses: List[RValue] = []
        if isinstance(self.receiver, Var):
            uses.append(self.receiver)
        uses.extend(self.args)
        return uses

    def __str__(self) -> str:
        args = ", ".join(str(a) for a in self.args)
        if self.receiver is None:
            return f"invoke {self.method_name}({args})"
        return f"invoke {self.receiver}.{self.method_name}({args})"


RValue = Exp
LValue = Union[Var, FieldAccess, ArrayAccess]


# ═══════════════════════════════════════════════════════════════════════════
#  PART 3 - STATEMENTS
# ═══════════════════════════════════════════════════════════════════════════

class Stmt:
    """Base class for statements.

    Statements use identity equality and hashing; two textually equal
    statements at different positions are different program points.
    """

    def __init__(self) -> None:
        self.index: int = -1
        self.line_number: int = -1

    def get_index(self) -> int:
        return self.index

    def get_def(self) -> Optional[LValue]:
        """The location written by this statement, if any."""
        return None

    def get_uses(self) -> List[RValue]:
        """Every expression read by this statement, innermost first."""
        return []

    def can_fall_through(self) -> bool:
        return True

    def __repr__(self) -> str:
        return f"{type(self).__name__}(index={self.index}, {self})"


def _lvalue_uses(lvalue: Optional[LValue]) -> List[RValue]:
    if isinstance(lvalue, (FieldAccess, ArrayAccess)):
        return list(lvalue.get_uses())
    return []


class DefinitionStmt(Stmt):
    """A statement of the shape ``lvalue = rvalue``."""

    def __init__(self, lvalue: Optional[LValue], rvalue: RValue) -> None:
        super().__init__()
        self.lvalue = lvalue
        self.rvalue = rvalue

    def get_lvalue(self) -> Optional[LValue]:
        return self.lvalue

    def get_rvalue(self) -> RValue:
        return self.rvalue

    def get_def(self) -> Optional[LValue]:
        return self.lvalue

    def get_uses(self) -> List[RValue]:
        uses = _lvalue_uses(self.lvalue)
        uses.extend(self.rvalue.get_uses())
        uses.append(self.rvalue)
        return uses


class AssignStmt(DefinitionStmt):
    """Assignment of a non-call right-hand side."""

    def __init__(self, lvalue: LValue, rvalue: RValue) -> None:
        super().__init__(lvalue, rvalue)

    def __str__(self) -> str:
        return f"{self.lvalue} = {self.rvalue};"


class Invoke(DefinitionStmt):
    """A call, optionally storing its result into a variable."""

    def __init__(self, result: Optional[Var], invoke_exp: InvokeExp) -> None:
        super().__init__(result, invoke_exp)

    def get_invoke_exp(self) -> InvokeExp:
        return self.rvalue  # type: ignore[return-value]

    def get_result(self) -> Optional[Var]:
        return self.lvalue  # type: ignore[return-value]

    def __str__(self) -> str:
        if self.lvalue is None:
            return f"{self.rvalue};"
        return f"{self.lvalue} = {self.rvalue};"


class JumpStmt(Stmt):
    """Statements that may transfer control to an explicit target."""


class If(JumpStmt):

    def __init__(self, condition: BinaryExp, target: Optional[Stmt] = None) -> None:
        super().__init__()
        self.condition = condition
        self.target = target

    def get_condition(self) -> BinaryExp:
        return self.condition

    def get_target(self) -> Stmt:
        if self.target is None:
            raise AnalysisException(f"unresolved target of '{self}'")
        return self.target

    def get_uses(self) -> List[RValue]:
        return [*self.condition.get_uses(), self.condition]

    def __str__(self) -> str:
        return f"if ({self.condition}) goto {_target_label(self.target)};"


class Goto(JumpStmt):

    def __init__(self, target: Optional[Stmt] = None) -> None:
        super().__init__()
        self.target = target

    def get_target(self) -> Stmt:
        if self.target is None:
            raise AnalysisException(f"unresolved target of '{self}'")
        return self.target

    def can_fall_through(self) -> bool:
        return False

    def __str__(self) -> str:
        return f"goto {_target_label(self.target)};"


class Switch(JumpStmt):
    """Multi-way branch on an integral variable."""

    def __init__(
        self,
        var: Var,
        case_values: Sequence[int] = (),
        case_targets: Sequence[Optional[Stmt]] = (),
        default_target: Optional[Stmt] = None,
    ) -> None:
        super().__init__()
        self.var = var
        self.case_values: List[int] = list(case_values)
        self.case_targets: List[Optional[Stmt]] = list(case_targets)
        self.default_target = default_target

    def get_var(self) -> Var:
        return self.var

    def get_case_targets(self) -> List[Tuple[int, Stmt]]:
        pairs = []
        for value, target in zip(self.case_values, self.case_targets):
            if target is None:
                raise AnalysisException(f"unresolved case {value} of '{self}'")
            pairs.append((value, target))
        return pairs

    def get_default_target(self) -> Stmt:
        if self.default_target is None:
            raise AnalysisException(f"unresolved default of '{self}'")
        return self.default_target

    def get_uses(self) -> List[RValue]:
        return [self.var]

    def can_fall_through(self) -> bool:
        return False

    def __str__(self) -> str:
        cases = " ".join(
            f"case {v}: goto {_target_label(t)};"
            for v, t in zip(self.case_values, self.case_targets)
        )
        default = f"default: goto {_target_label(self.default_target)};"
        return f"switch ({self.var}) {{ {cases} {default} }}".replace("  ", " ")


class Return(Stmt):

    def __init__(self, value: Optional[RValue] = None) -> None:
        super().__init__()
        self.value = value

    def get_value(self) -> Optional[RValue]:
        return self.value

    def get_uses(self) -> List[RValue]:
        return [self.value] if self.value is not None else []

    def can_fall_through(self) -> bool:
        return False

    def __str__(self) -> str:
        if self.value is None:
            return "return;"
        return f"return {self.value};"


class Nop(Stmt):

    def __str__(self) -> str:
        return "nop;"


def _target_label(target: Optional[Stmt]) -> str:
    if target is None:
        return "?"
    return f"@{target.index}"


# ═══════════════════════════════════════════════════════════════════════════
#  PART 4 - IR (one method)
# ═══════════════════════════════════════════════════════════════════════════

class IR:
    """The body of one method plus the results computed over it.

    Parameters
    ----------
    method_name : str
    params : sequence of Var
        Formal parameters, in declaration order.
    return_type : Type
    variables : sequence of Var
        Locals declared in the body.  Parameters need not be repeated.
    stmts : sequence of Stmt
        The body.  Each statement's ``index`` is set to its position.
    """

    def __init__(
        self,
        method_name: str,
        params: Sequence[Var],
        return_type: Type,
        variables: Sequence[Var],
        stmts: Sequence[Stmt],
    ) -> None:
        self.method_name = method_name
        self.params: List[Var] = list(params)
        self.return_type = return_type
        self.variables: List[Var] = list(self.params)
        for v in variables:
            if v not in self.variables:
                self.variables.append(v)
        self.stmts: List[Stmt] = list(stmts)
        for i, stmt in enumerate(self.stmts):
            stmt.index = i
        self._results: Dict[str, Any] = {}

    def get_method_name(self) -> str:
        return self.method_name

    def get_params(self) -> List[Var]:
        return list(self.params)

    def get_vars(self) -> List[Var]:
        return list(self.variables)

    def get_stmts(self) -> List[Stmt]:
        return list(self.stmts)

    def get_stmt(self, index: int) -> Stmt:
        return self.stmts[index]

    def __iter__(self) -> Iterator[Stmt]:
        return iter(self.stmts)

    def __len__(self) -> int:
        return len(self.stmts)

    # ----- result holder ----------------------------------------------------

    def store_result(self, key: str, value: Any) -> None:
        self._results[key] = value

    def has_result(self, key: str) -> bool:
        return key in self._results

    def get_result(self, key: str) -> Any:
        try:
            return self._results[key]
        except KeyError:
            raise AnalysisException(
                f"no '{key}' result stored for method {self.method_name}"
            ) from None

    def clear_result(self, key: str) -> None:
        self._results.pop(key, None)

    # ----- printing ---------------------------------------------------------

    def signature(self) -> str:
        params = ", ".join(f"{p.type} {p.name}" for p in self.params)
        return f"{self.return_type} {self.method_name}({params})"

    def format(self) -> str:
        """Multi-line listing with statement indices and line numbers."""
        lines = [f"method {self.signature()}"]
        for stmt in self.stmts:
            lines.append(f"  {stmt.index:>3}@L{stmt.line_number:<4} {stmt}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"IR({self.signature()}, {len(self.stmts)} stmts)"
