"""
Scope tree construction.
"""

import logging
from typing import List, Optional

from ..ast_analysis.models import Ast
from ..ast_analysis.utilities import function_name, parameter_names
from .models import Scope, ScopeTree

logger = logging.getLogger(__name__)

DECLARING_FUNCTIONS = frozenset({
    "function_declaration",
    "generator_function_declaration",
    "class_declaration",
})

PATTERN_CONTAINERS = frozenset({
    "formal_parameters",
    "object_pattern",
    "array_pattern",
    "rest_pattern",
})


class ScopeBuilder:
    """Builds the lexical scope tree of a classified AST."""

    def build(self, ast: Ast) -> ScopeTree:
        """
        Build one scope for the script and one per function.

        Parameters, ``var``/``let``/``const`` declarations, catch parameters
        and declared function or class names populate the binding maps.
        Assignments to names not declared anywhere on the scope chain are
        recorded as implicit globals.
        """
        tree = ScopeTree(ast)
        if ast.is_empty:
            return tree

        for node_id in ast.preorder():
            node = ast.node(node_id)
            if node_id == ast.root:
                tree.add_scope(node_id, function_name(ast, node_id), None)
            elif node.is_function:
                parent = tree.enclosing(node_id)
                scope = tree.add_scope(node_id, function_name(ast, node_id), parent.id)
                self._declare_function(ast, scope)

        for node_id in ast.preorder():
            self._declare(ast, tree, node_id)

        for node_id in ast.preorder():
            node = ast.node(node_id)
            if node.kind not in ("assignment_expression", "augmented_assignment_expression"):
                continue
            left = ast.field(node_id, "left")
            if left is None or ast.kind(left) != "identifier":
                continue
            name = ast.node(left).value
            if tree.resolve(tree.enclosing(node_id), name) is None:
                tree.implicit_globals.setdefault(name, left)

        logger.debug(f"Built {len(tree)} scopes for {ast.name or '<source>'}")
        return tree

    @staticmethod
    def _declare_function(ast: Ast, scope: Scope) -> None:
        function_id = scope.node_id
        scope.parameters = parameter_names(ast, function_id)

        # A named function expression can refer to itself.
        name = ast.field(function_id, "name")
        if name is not None and ast.node(function_id).kind in ("function_expression", "function",
                                                                 "generator_function"):
            scope.declarations[ast.node(name).value] = name

        single = ast.field(function_id, "parameter")
        if single is not None:
            for identifier in _pattern_names(ast, single):
                scope.declarations.setdefault(ast.node(identifier).value, identifier)
        params = ast.field(function_id, "parameters")
        if params is not None:
            for identifier in _pattern_names(ast, params):
                scope.declarations.setdefault(ast.node(identifier).value, identifier)

    @staticmethod
    def _declare(ast: Ast, tree: ScopeTree, node_id: int) -> None:
        node = ast.node(node_id)
        if node.kind in DECLARING_FUNCTIONS:
            name = ast.field(node_id, "name")
            if name is not None:
                tree.enclosing(node_id).declarations.setdefault(ast.node(name).value, name)
        elif node.kind == "variable_declarator":
            scope = tree.enclosing(node_id)
            for identifier in _pattern_names(ast, ast.field(node_id, "name")):
                scope.declarations.setdefault(ast.node(identifier).value, identifier)
        elif node.kind == "catch_clause":
            scope = tree.enclosing(node_id)
            for identifier in _pattern_names(ast, ast.field(node_id, "parameter")):
                scope.declarations.setdefault(ast.node(identifier).value, identifier)


def _pattern_names(ast: Ast, node_id: Optional[int]) -> List[int]:
    """Identifier nodes bound by a parameter list or destructuring pattern."""
    if node_id is None:
        return []
    kind = ast.kind(node_id)
    if kind in ("identifier", "shorthand_property_identifier_pattern"):
        return [node_id]
    if kind in ("assignment_pattern", "object_assignment_pattern"):
        return _pattern_names(ast, ast.field(node_id, "left"))
    if kind == "pair_pattern":
        return _pattern_names(ast, ast.field(node_id, "value"))
    if kind in PATTERN_CONTAINERS:
        names = []
        for child in ast.children(node_id):
            names.extend(_pattern_names(ast, child))
        return names
    return []
