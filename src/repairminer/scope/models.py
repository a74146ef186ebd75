"""
Lexical scope models.

Scopes are stored in a ``ScopeTree`` arena and refer to each other, and to
their defining AST node, by integer id.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

from ..ast_analysis.models import Ast


@dataclass
class Scope:
    """The lexical scope of one function or of the script root."""

    id: int
    node_id: int
    name: str
    parent: Optional[int] = None
    children: List[int] = field(default_factory=list)
    declarations: Dict[str, int] = field(default_factory=dict)
    parameters: List[str] = field(default_factory=list)

    @property
    def is_script(self) -> bool:
        return self.parent is None

    def declares(self, name: str) -> bool:
        return name in self.declarations


class ScopeTree:
    """All scopes of one AST, rooted at the script scope."""

    def __init__(self, ast: Ast):
        self.ast = ast
        self.scopes: List[Scope] = []
        self.by_node: Dict[int, int] = {}
        # Names assigned without a declaration anywhere on the scope chain.
        self.implicit_globals: Dict[str, int] = {}

    @property
    def root(self) -> Optional[Scope]:
        return self.scopes[0] if self.scopes else None

    def add_scope(self, node_id: int, name: str, parent: Optional[int]) -> Scope:
        scope = Scope(id=len(self.scopes), node_id=node_id, name=name, parent=parent)
        self.scopes.append(scope)
        self.by_node[node_id] = scope.id
        if parent is not None:
            self.scopes[parent].children.append(scope.id)
        return scope

    def scope(self, scope_id: int) -> Scope:
        return self.scopes[scope_id]

    def for_node(self, node_id: int) -> Optional[Scope]:
        """The scope defined by a function node (or the root)."""
        scope_id = self.by_node.get(node_id)
        return self.scopes[scope_id] if scope_id is not None else None

    def enclosing(self, node_id: int) -> Optional[Scope]:
        """The scope whose own body contains ``node_id``."""
        if not self.scopes:
            return None
        return self.for_node(self.ast.enclosing_function(node_id))

    def children(self, scope: Scope) -> List[Scope]:
        return [self.scopes[c] for c in scope.children]

    def parent(self, scope: Scope) -> Optional[Scope]:
        return self.scopes[scope.parent] if scope.parent is not None else None

    def chain(self, scope: Scope) -> Iterator[Scope]:
        """The scope itself followed by its ancestors."""
        current: Optional[Scope] = scope
        while current is not None:
            yield current
            current = self.parent(current)

    def resolve(self, scope: Scope, name: str) -> Optional[Scope]:
        """
        Find the scope that declares ``name`` as seen from ``scope``.

        Falls back to the script scope for implicit globals, and returns None
        for names that are never declared or assigned.
        """
        for candidate in self.chain(scope):
            if candidate.declares(name):
                return candidate
        if name in self.implicit_globals:
            return self.root
        return None

    def own_nodes(self, scope: Scope) -> Iterator[int]:
        """AST nodes of a scope's body, not descending into nested functions."""
        ast = self.ast
        return ast.preorder(scope.node_id, prune=lambda node: node.is_function)

    def __iter__(self) -> Iterator[Scope]:
        return iter(self.scopes)

    def __len__(self) -> int:
        return len(self.scopes)
