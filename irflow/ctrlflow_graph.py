"""
irflow.ctrlflow_graph
=====================

Statement-level control flow graphs.

Every statement of an :class:`~irflow.ir.IR` is one node.  Two synthetic
``Nop`` sentinels, ``entry`` and ``exit``, bracket the body; they are graph
nodes but not IR statements, so they never show up in per-statement
reports.  Edges carry a kind that consumers use to tell branch outcomes
apart.

Public API
----------
    EdgeKind    - classification of an edge
    CFGEdge     - a directed, kinded edge
    CFG         - the graph for one method
    build_cfg   - construct the CFG of an IR
    CFGBuilder  - the ``cfg`` analysis wrapping ``build_cfg``

Typical usage::

    from tir.parser import parse
    from irflow.ctrlflow_graph import build_cfg

    ir = parse(source)[0]
    cfg = build_cfg(ir)
    for node in cfg:
        print(node, "->", cfg.get_succs_of(node))
"""

from __future__ import annotations

import enum
import logging
from typing import Dict, Iterator, List, Optional

from irflow.analysis import MethodAnalysis
from irflow.ir import IR, Goto, If, Nop, Return, Stmt, Switch

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Edge kinds
# ---------------------------------------------------------------------------


class EdgeKind(enum.Enum):
    """Classification of a CFG edge."""

    ENTRY = "entry"
    FALL_THROUGH = "fall-through"
    GOTO = "goto"
    IF_TRUE = "if-true"
    IF_FALSE = "if-false"
    SWITCH_CASE = "switch-case"
    SWITCH_DEFAULT = "switch-default"
    RETURN = "return"


# ---------------------------------------------------------------------------
# CFGEdge
# ---------------------------------------------------------------------------

class CFGEdge:
    """A directed edge in the CFG.

    Attributes
    ----------
    kind : EdgeKind
    source : Stmt
    target : Stmt
    case_value : int or None
        The case constant for ``SWITCH_CASE`` edges.
    """

    __slots__ = ("kind", "source", "target", "case_value")

    def __init__(
        self,
        kind: EdgeKind,
        source: Stmt,
        target: Stmt,
        case_value: Optional[int] = None,
    ) -> None:
        self.kind = kind
        self.source = source
        self.target = target
        self.case_value = case_value

    def get_kind(self) -> EdgeKind:
        return self.kind

    def get_source(self) -> Stmt:
        return self.source

    def get_target(self) -> Stmt:
        return self.target

    def get_case_value(self) -> Optional[int]:
        return self.case_value

    def is_switch_case(self) -> bool:
        return self.kind is EdgeKind.SWITCH_CASE

    def __repr__(self) -> str:
        extra = f", case={self.case_value}" if self.case_value is not None else ""
        return (f"CFGEdge({self.source.index} -> {self.target.index}, "
                f"kind={self.kind.value!r}{extra})")


# ---------------------------------------------------------------------------
# CFG
# ---------------------------------------------------------------------------

class CFG:
    """Control flow graph of one method.

    Attributes
    ----------
    ir : IR
        The method this CFG represents.
    entry : Nop
        Synthetic entry node (not an IR statement).
    exit : Nop
        Synthetic exit node (not an IR statement).
    edges : list[CFGEdge]
        All edges, in insertion order.
    """

    def __init__(self, ir: IR) -> None:
        self.ir = ir
        self.entry = Nop()
        self.exit = Nop()
        self._nodes: List[Stmt] = [self.entry, *ir.get_stmts(), self.exit]
        self.edges: List[CFGEdge] = []
        self._out_edges: Dict[Stmt, List[CFGEdge]] = {n: [] for n in self._nodes}
        self._in_edges: Dict[Stmt, List[CFGEdge]] = {n: [] for n in self._nodes}

    # ----- graph mutation ---------------------------------------------------

    def add_edge(self, edge: CFGEdge) -> CFGEdge:
        self.edges.append(edge)
        self._out_edges[edge.source].append(edge)
        self._in_edges[edge.target].append(edge)
        return edge

    # ----- queries ----------------------------------------------------------

    def get_ir(self) -> IR:
        return self.ir

    def get_entry(self) -> Stmt:
        return self.entry

    def get_exit(self) -> Stmt:
        return self.exit

    def is_entry(self, node: Stmt) -> bool:
        return node is self.entry

    def is_exit(self, node: Stmt) -> bool:
        return node is self.exit

    def get_out_edges_of(self, node: Stmt) -> List[CFGEdge]:
        return list(self._out_edges[node])

    def get_in_edges_of(self, node: Stmt) -> List[CFGEdge]:
        return list(self._in_edges[node])

    def get_succs_of(self, node: Stmt) -> List[Stmt]:
        """Distinct successors of ``node`` in edge order."""
        return list(dict.fromkeys(e.target for e in self._out_edges[node]))

    def get_preds_of(self, node: Stmt) -> List[Stmt]:
        """Distinct predecessors of ``node`` in edge order."""
        return list(dict.fromkeys(e.source for e in self._in_edges[node]))

    def get_nodes(self) -> List[Stmt]:
        return list(self._nodes)

    def __iter__(self) -> Iterator[Stmt]:
        return iter(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node: object) -> bool:
        return node in self._out_edges

    # ----- serialisation helpers --------------------------------------------

    def node_label(self, node: Stmt) -> str:
        if node is self.entry:
            return "[entry]"
        if node is self.exit:
            return "[exit]"
        return f"{node.index}: {node}"

    def _node_id(self, node: Stmt) -> str:
        if node is self.entry:
            return "entry"
        if node is self.exit:
            return "exit"
        return f"s{node.index}"

    def to_dot(self, title: Optional[str] = None) -> str:
        """Return a Graphviz DOT representation of this CFG."""
        lines = ["digraph CFG {"]
        if title:
            lines.append(f'  label="{title}";')
        lines.append("  node [shape=box, fontname=monospace, fontsize=10];")
        for n in self._nodes:
            lbl = self.node_label(n).replace('"', '\\"')
            color = ""
            if n is self.entry:
                color = ', style=filled, fillcolor="#ccffcc"'
            elif n is self.exit:
                color = ', style=filled, fillcolor="#ffcccc"'
            lines.append(f'  {self._node_id(n)} [label="{lbl}"{color}];')
        for e in self.edges:
            style = ""
            elabel = e.kind.value
            if e.case_value is not None:
                elabel += f": {e.case_value}"
            if e.kind is EdgeKind.IF_TRUE:
                style = ', color=green, fontcolor=green'
            elif e.kind is EdgeKind.IF_FALSE:
                style = ', color=red, fontcolor=red'
            lines.append(
                f'  {self._node_id(e.source)} -> {self._node_id(e.target)} '
                f'[label="{elabel}"{style}];'
            )
        lines.append("}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"CFG(method={self.ir.method_name!r}, nodes={len(self._nodes)}, "
            f"edges={len(self.edges)})"
        )


# ===========================================================================
# CFG BUILDER
# ===========================================================================

def build_cfg(ir: IR) -> CFG:
    """Build the statement-level CFG of ``ir``.

    * entry → first statement (or exit for an empty body)
    * ``Goto`` → target
    * ``If`` → target (``IF_TRUE``) and next statement (``IF_FALSE``)
    * ``Switch`` → every case target and the default target
    * ``Return`` → exit
    * anything else → next statement, or exit after the last one
    """
    cfg = CFG(ir)
    stmts = ir.get_stmts()

    def _next(i: int) -> Stmt:
        return stmts[i + 1] if i + 1 < len(stmts) else cfg.exit

    cfg.add_edge(CFGEdge(EdgeKind.ENTRY, cfg.entry, stmts[0] if stmts else cfg.exit))

    for i, stmt in enumerate(stmts):
        if isinstance(stmt, Goto):
            cfg.add_edge(CFGEdge(EdgeKind.GOTO, stmt, stmt.get_target()))
        elif isinstance(stmt, If):
            cfg.add_edge(CFGEdge(EdgeKind.IF_TRUE, stmt, stmt.get_target()))
            cfg.add_edge(CFGEdge(EdgeKind.IF_FALSE, stmt, _next(i)))
        elif isinstance(stmt, Switch):
            for value, target in stmt.get_case_targets():
                cfg.add_edge(CFGEdge(EdgeKind.SWITCH_CASE, stmt, target,
                                     case_value=value))
            cfg.add_edge(CFGEdge(EdgeKind.SWITCH_DEFAULT, stmt,
                                 stmt.get_default_target()))
        elif isinstance(stmt, Return):
            cfg.add_edge(CFGEdge(EdgeKind.RETURN, stmt, cfg.exit))
        else:
            cfg.add_edge(CFGEdge(EdgeKind.FALL_THROUGH, stmt, _next(i)))

    logger.debug("built %r", cfg)
    return cfg


class CFGBuilder(MethodAnalysis):
    """Stores the method's CFG under ``"cfg"``."""

    ID = "cfg"

    def analyze(self, ir: IR) -> CFG:
        return build_cfg(ir)
