"""
irflow.facts
============

Dataflow facts and the per-node result table.

Public API
----------
    MapFact         - variable → Value map, absent keys read as UNDEF
    CPFact          - the MapFact used by constant propagation
    SetFact         - set of variables (liveness)
    DataflowResult  - IN/OUT fact for every node of a solved graph

Facts are mutable and owned by exactly one slot of a
:class:`DataflowResult`.  The solver never aliases a fact across two slots;
values flow between slots only through ``copy()`` / ``copy_from()``.
"""

from __future__ import annotations

from typing import (
    Any,
    Dict,
    Generic,
    Iterable,
    Iterator,
    List,
    Optional,
    Set,
    Tuple,
    TypeVar,
)

from irflow.errors import AnalysisException
from irflow.ir import Var
from irflow.lattice import UNDEF, Value

N = TypeVar("N")   # node type
F = TypeVar("F")   # fact type


# ═══════════════════════════════════════════════════════════════════════════
#  MAP FACT
# ═══════════════════════════════════════════════════════════════════════════

class MapFact:
    """Mapping ``Var → Value`` with ``UNDEF`` as the implicit default.

    ``update(v, UNDEF)`` removes ``v``, so a fact that explicitly holds
    ``UNDEF`` for a variable is indistinguishable from one that never
    mentioned it.  Equality and change detection rely on this.
    """

    __slots__ = ("_map",)

    def __init__(self, mapping: Optional[Dict[Var, Value]] = None) -> None:
        self._map: Dict[Var, Value] = {}
        if mapping:
            for var, value in mapping.items():
                self.update(var, value)

    def get(self, var: Var) -> Value:
        return self._map.get(var, UNDEF)

    def update(self, var: Var, value: Value) -> bool:
        """Set ``var`` to ``value``; return whether the fact changed."""
        if value.is_undef():
            return self._map.pop(var, None) is not None
        old = self._map.get(var)
        self._map[var] = value
        return old != value

    def remove(self, var: Var) -> Optional[Value]:
        return self._map.pop(var, None)

    def copy(self) -> MapFact:
        fact = type(self)()
        fact._map = dict(self._map)
        return fact

    def copy_from(self, other: MapFact) -> bool:
        """Overwrite this fact with ``other``; return whether it changed."""
        if self._map == other._map:
            return False
        self._map = dict(other._map)
        return True

    def items(self) -> Iterator[Tuple[Var, Value]]:
        return iter(list(self._map.items()))

    def keys(self) -> List[Var]:
        return list(self._map)

    def __contains__(self, var: object) -> bool:
        return var in self._map

    def __len__(self) -> int:
        return len(self._map)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MapFact):
            return NotImplemented
        return self._map == other._map

    __hash__ = None  # type: ignore[assignment]

    def __str__(self) -> str:
        entries = ", ".join(f"{var}={value}" for var, value in self._map.items())
        return "{" + entries + "}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self})"


class CPFact(MapFact):
    """Constant-propagation fact."""

    __slots__ = ()


# ═══════════════════════════════════════════════════════════════════════════
#  SET FACT
# ═══════════════════════════════════════════════════════════════════════════

class SetFact:
    """A set of variables, kept in insertion order for stable printing."""

    __slots__ = ("_set",)

    def __init__(self, elements: Iterable[Var] = ()) -> None:
        self._set: Dict[Var, None] = dict.fromkeys(elements)

    def contains(self, var: Var) -> bool:
        return var in self._set

    def add(self, var: Var) -> bool:
        if var in self._set:
            return False
        self._set[var] = None
        return True

    def remove(self, var: Var) -> bool:
        if var not in self._set:
            return False
        del self._set[var]
        return True

    def union(self, other: SetFact) -> bool:
        """In-place union; return whether anything was added."""
        changed = False
        for var in other._set:
            if var not in self._set:
                self._set[var] = None
                changed = True
        return changed

    def copy(self) -> SetFact:
        fact = SetFact()
        fact._set = dict(self._set)
        return fact

    def copy_from(self, other: SetFact) -> bool:
        if self._set.keys() == other._set.keys():
            return False
        self._set = dict(other._set)
        return True

    def to_set(self) -> Set[Var]:
        return set(self._set)

    def __contains__(self, var: object) -> bool:
        return var in self._set

    def __iter__(self) -> Iterator[Var]:
        return iter(list(self._set))

    def __len__(self) -> int:
        return len(self._set)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SetFact):
            return NotImplemented
        return self._set.keys() == other._set.keys()

    __hash__ = None  # type: ignore[assignment]

    def __str__(self) -> str:
        return "[" + ", ".join(str(v) for v in self._set) + "]"

    def __repr__(self) -> str:
        return f"SetFact({self})"


# ═══════════════════════════════════════════════════════════════════════════
#  DATAFLOW RESULT
# ═══════════════════════════════════════════════════════════════════════════

class DataflowResult(Generic[N, F]):
    """IN and OUT fact for every node of a solved graph.

    Allocated by the solver before iteration starts, mutated in place until
    the fixed point, and read-only for consumers afterwards.

    Attributes
    ----------
    iterations : int
        Number of node visits the solver performed.
    """

    def __init__(self) -> None:
        self._in_facts: Dict[N, F] = {}
        self._out_facts: Dict[N, F] = {}
        self.iterations: int = 0

    def get_in_fact(self, node: N) -> F:
        try:
            return self._in_facts[node]
        except KeyError:
            raise AnalysisException(f"no IN fact recorded for {node!r}") from None

    def get_out_fact(self, node: N) -> F:
        try:
            return self._out_facts[node]
        except KeyError:
            raise AnalysisException(f"no OUT fact recorded for {node!r}") from None

    def set_in_fact(self, node: N, fact: F) -> None:
        self._in_facts[node] = fact

    def set_out_fact(self, node: N, fact: F) -> None:
        self._out_facts[node] = fact

    def get_result(self, node: N) -> F:
        """The fact after ``node`` in program order (its OUT fact).

        For a backward analysis such as liveness this is the fact holding
        immediately after the statement, e.g. the variables live after it.
        """
        return self.get_out_fact(node)

    def nodes(self) -> List[N]:
        return list(self._in_facts)

    def items_in(self) -> Iterable[Tuple[N, F]]:
        return self._in_facts.items()

    def items_out(self) -> Iterable[Tuple[N, F]]:
        return self._out_facts.items()

    def __contains__(self, node: Any) -> bool:
        return node in self._in_facts

    def __repr__(self) -> str:
        return (f"DataflowResult({len(self._in_facts)} nodes, "
                f"{self.iterations} iterations)")
