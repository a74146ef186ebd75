"""
Control flow graph data models.

A ``CFG`` wraps a ``networkx.DiGraph`` whose nodes are integer CFG-node ids.
CFG nodes and edges refer to AST nodes by id only.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional

import networkx as nx

from ..ast_analysis.models import Ast
from ..models import ChangeType


class EdgeKind(Enum):
    """Kinds of control flow edges."""
    NORMAL = "normal"
    TRUE = "true"
    FALSE = "false"
    BACK = "back"
    CASE = "case"
    DEFAULT = "default"
    EXCEPTION = "exception"
    RETURN = "return"
    BREAK = "break"
    CONTINUE = "continue"


@dataclass
class CFGNode:
    """A basic block: one or more sequential statements."""

    id: int
    ast_id: int
    kind: str  # entry, exit, statement, branch, loop, try, catch, finally
    statements: List[int] = field(default_factory=list)
    change: ChangeType = ChangeType.UNKNOWN
    reachable: bool = True


@dataclass(frozen=True)
class CFGEdge:
    """A view of one edge of a CFG."""

    source: int
    target: int
    kind: EdgeKind
    condition: Optional[int] = None
    selector: Optional[int] = None
    change: ChangeType = ChangeType.UNKNOWN

    @property
    def is_unconditional(self) -> bool:
        return self.condition is None


class CFG:
    """The control flow graph of one function or of the script root."""

    def __init__(self, ast: Ast, function_id: int, name: str = ""):
        self.ast = ast
        self.function_id = function_id
        self.name = name
        self.graph = nx.DiGraph()
        self._nodes: Dict[int, CFGNode] = {}
        self.entry: Optional[int] = None
        self.exit: Optional[int] = None

    def add_node(self, ast_id: int, kind: str, statements: Optional[List[int]] = None) -> CFGNode:
        node = CFGNode(id=len(self._nodes), ast_id=ast_id, kind=kind,
                       statements=list(statements) if statements else [])
        self._nodes[node.id] = node
        self.graph.add_node(node.id)
        return node

    def remove_node(self, node_id: int) -> None:
        self.graph.remove_node(node_id)
        del self._nodes[node_id]

    def add_edge(self, source: int, target: int, kind: EdgeKind = EdgeKind.NORMAL,
                 condition: Optional[int] = None, selector: Optional[int] = None) -> None:
        # A second edge between the same pair keeps the first one's label.
        if self.graph.has_edge(source, target):
            return
        self.graph.add_edge(source, target, kind=kind, condition=condition,
                            selector=selector, change=ChangeType.UNKNOWN)

    def node(self, node_id: int) -> CFGNode:
        return self._nodes[node_id]

    def nodes(self) -> List[CFGNode]:
        return [self._nodes[n] for n in sorted(self._nodes)]

    def edge(self, source: int, target: int) -> CFGEdge:
        data = self.graph.edges[source, target]
        return CFGEdge(source, target, data["kind"], data["condition"],
                       data["selector"], data["change"])

    def edges(self) -> List[CFGEdge]:
        return [self.edge(s, t) for s, t in sorted(self.graph.edges)]

    def successors(self, node_id: int) -> List[CFGNode]:
        return [self._nodes[n] for n in sorted(self.graph.successors(node_id))]

    def predecessors(self, node_id: int) -> List[CFGNode]:
        return [self._nodes[n] for n in sorted(self.graph.predecessors(node_id))]

    def out_edges(self, node_id: int) -> Iterator[CFGEdge]:
        for _, target in sorted(self.graph.out_edges(node_id)):
            yield self.edge(node_id, target)

    def statements(self) -> List[int]:
        """Every AST statement id represented in this CFG."""
        covered: List[int] = []
        for node in self.nodes():
            covered.extend(node.statements)
        return covered

    def unreachable(self) -> List[CFGNode]:
        return [node for node in self.nodes() if not node.reachable]

    def __len__(self) -> int:
        return len(self._nodes)

    def __repr__(self) -> str:
        return f"CFG({self.name!r}, nodes={len(self._nodes)}, edges={self.graph.number_of_edges()})"
