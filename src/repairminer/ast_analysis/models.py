"""
Data models for the arena-based JavaScript AST.

Nodes live in a flat list owned by an ``Ast`` and refer to each other by
integer id. Pairing with the other side of a diff is stored as the partner's
id, so neither tree owns the other.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Optional

from ..models import ChangeType


FUNCTION_KINDS = frozenset({
    "function_declaration",
    "generator_function_declaration",
    "function_expression",
    "function",
    "generator_function",
    "arrow_function",
    "method_definition",
})

STATEMENT_KINDS = frozenset({
    "expression_statement",
    "variable_declaration",
    "lexical_declaration",
    "if_statement",
    "for_statement",
    "for_in_statement",
    "while_statement",
    "do_statement",
    "try_statement",
    "switch_statement",
    "return_statement",
    "throw_statement",
    "break_statement",
    "continue_statement",
    "empty_statement",
    "labeled_statement",
    "statement_block",
    "function_declaration",
    "generator_function_declaration",
    "class_declaration",
    "debugger_statement",
    "import_statement",
    "export_statement",
    "with_statement",
})

LEAF_KINDS = frozenset({
    "identifier",
    "property_identifier",
    "shorthand_property_identifier",
    "shorthand_property_identifier_pattern",
    "private_property_identifier",
    "statement_identifier",
    "string",
    "template_string",
    "number",
    "regex",
    "true",
    "false",
    "null",
    "undefined",
    "this",
    "super",
    "hash_bang_line",
})

OPERATOR_KINDS = frozenset({
    "binary_expression",
    "unary_expression",
    "update_expression",
    "augmented_assignment_expression",
})

LOOP_KINDS = frozenset({
    "for_statement",
    "for_in_statement",
    "while_statement",
    "do_statement",
})


@dataclass
class AstNode:
    """A single node of a classified AST."""

    id: int
    kind: str
    value: str = ""
    start: int = 0
    end: int = 0
    line: int = 0
    column: int = 0
    parent: Optional[int] = None
    role: Optional[str] = None
    children: List[int] = field(default_factory=list)
    synthetic: bool = False
    change: ChangeType = ChangeType.UNKNOWN
    partner: Optional[int] = None

    @property
    def is_function(self) -> bool:
        return self.kind in FUNCTION_KINDS

    @property
    def is_statement(self) -> bool:
        return self.kind in STATEMENT_KINDS

    @property
    def is_leaf(self) -> bool:
        return not self.children


class Ast:
    """
    An abstract syntax tree stored as an arena of ``AstNode`` objects.

    The node with id 0 is always the root (``program``) node. Ids are stable
    for the lifetime of the tree and equal to the node's index in ``nodes``.
    """

    def __init__(self, source: str = "", name: str = ""):
        self.source = source
        self.name = name
        self.nodes: List[AstNode] = []
        self._encoded = source.encode("utf8")

    @property
    def root(self) -> int:
        return 0

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self) -> Iterator[AstNode]:
        return iter(self.nodes)

    @property
    def is_empty(self) -> bool:
        return not self.nodes

    def add_node(self, kind: str, parent: Optional[int] = None, role: Optional[str] = None,
                 **attributes) -> AstNode:
        """Append a node to the arena and link it under ``parent``."""
        node = AstNode(id=len(self.nodes), kind=kind, parent=parent, role=role, **attributes)
        self.nodes.append(node)
        if parent is not None:
            self.nodes[parent].children.append(node.id)
        return node

    def node(self, node_id: int) -> AstNode:
        return self.nodes[node_id]

    def contains(self, node_id: Optional[int]) -> bool:
        return node_id is not None and 0 <= node_id < len(self.nodes)

    def kind(self, node_id: int) -> str:
        return self.nodes[node_id].kind

    def children(self, node_id: int) -> List[int]:
        return self.nodes[node_id].children

    def parent(self, node_id: int) -> Optional[int]:
        return self.nodes[node_id].parent

    def field(self, node_id: int, role: str) -> Optional[int]:
        """Return the first child playing ``role`` (e.g. ``"condition"``)."""
        for child in self.nodes[node_id].children:
            if self.nodes[child].role == role:
                return child
        return None

    def fields(self, node_id: int, role: str) -> List[int]:
        return [c for c in self.nodes[node_id].children if self.nodes[c].role == role]

    def text(self, node_id: int) -> str:
        """Source text covered by a node."""
        node = self.nodes[node_id]
        return self._encoded[node.start:node.end].decode("utf8", errors="replace")

    def preorder(self, node_id: Optional[int] = None,
                 prune: Optional[Callable[[AstNode], bool]] = None) -> Iterator[int]:
        """
        Iterate node ids in pre-order.

        Args:
            node_id: Subtree root, defaults to the tree root
            prune: Predicate; descendants of nodes for which it returns True
                   (other than the subtree root itself) are not visited
        """
        if self.is_empty:
            return
        start = self.root if node_id is None else node_id
        stack = [start]
        while stack:
            current = stack.pop()
            yield current
            node = self.nodes[current]
            if prune is not None and current != start and prune(node):
                continue
            stack.extend(reversed(node.children))

    def postorder(self, node_id: Optional[int] = None) -> Iterator[int]:
        if self.is_empty:
            return
        start = self.root if node_id is None else node_id
        stack = [(start, False)]
        while stack:
            current, expanded = stack.pop()
            if expanded:
                yield current
                continue
            stack.append((current, True))
            for child in reversed(self.nodes[current].children):
                stack.append((child, False))

    def descendants(self, node_id: int) -> Iterator[int]:
        iterator = self.preorder(node_id)
        next(iterator, None)
        return iterator

    def ancestors(self, node_id: int) -> Iterator[int]:
        current = self.nodes[node_id].parent
        while current is not None:
            yield current
            current = self.nodes[current].parent

    def enclosing_function(self, node_id: int) -> int:
        """Id of the nearest function containing ``node_id``, or the root."""
        for ancestor in self.ancestors(node_id):
            if self.nodes[ancestor].is_function:
                return ancestor
        return self.root

    def function_body(self, node_id: int) -> Optional[int]:
        """The body of a function node, or the root itself for the script."""
        if node_id == self.root:
            return self.root
        return self.field(node_id, "body")

    def is_descendant(self, node_id: int, ancestor_id: int) -> bool:
        return any(a == ancestor_id for a in self.ancestors(node_id))

    def visit(self, visitor: Callable[[AstNode], bool], node_id: Optional[int] = None) -> None:
        """Visit nodes in pre-order; the visitor returns False to skip a subtree."""
        if self.is_empty:
            return
        stack = [self.root if node_id is None else node_id]
        while stack:
            node = self.nodes[stack.pop()]
            if visitor(node):
                stack.extend(reversed(node.children))

    def labels(self) -> Dict[int, ChangeType]:
        return {node.id: node.change for node in self.nodes}
