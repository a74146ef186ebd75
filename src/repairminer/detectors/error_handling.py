"""
Error handling repairs: pre-existing calls wrapped in a new try statement.
"""

import logging
from typing import Dict, List, Optional, Tuple

from ..analysis.base import AnalysisContext, Detector
from ..ast_analysis.models import Ast
from ..ast_analysis.utilities import get_identifier
from ..models import ChangeType
from ..scope.models import Scope

logger = logging.getLogger(__name__)

PRE_EXISTING = (ChangeType.UNCHANGED, ChangeType.MOVED)


def unprotected_calls(ast: Ast, function_id: int) -> List[Tuple[int, str]]:
    """
    Calls in a function body that are not inside a try statement.

    Nested functions are skipped, they form scopes of their own.

    Returns:
        ``(call node id, callee identifier)`` pairs in source order
    """
    calls = []

    def visit(node) -> bool:
        if node.kind == "try_statement":
            return False
        if node.is_function and node.id != function_id:
            return False
        if node.kind == "call_expression":
            calls.append((node.id, get_identifier(ast, ast.field(node.id, "function"))))
        return True

    ast.visit(visit, function_id)
    return calls


def in_try_block(ast: Ast, node_id: int) -> bool:
    """True if the node lies in the protected block of a try in its own function."""
    current = node_id
    for ancestor in ast.ancestors(node_id):
        if ast.node(ancestor).is_function:
            return False
        if ast.kind(ancestor) == "try_statement" and ast.node(current).role == "body":
            return True
        current = ancestor
    return False


class ErrorHandlingDetector(Detector):
    """
    Finds calls that were unprotected in the buggy version and are wrapped
    by an inserted try statement in the repaired version.
    """

    tag = "ERROR_HANDLING_ADDED"

    def __init__(self):
        # (side, function node id) -> callee identifiers not inside a try
        self.unprotected_calls: Dict[Tuple[str, int], List[str]] = {}

    def visit_scope(self, context: AnalysisContext, src_scope: Optional[Scope],
                    dst_scope: Optional[Scope]) -> List[object]:
        src, dst = context.src_ast, context.dst_ast
        if src_scope is not None:
            self.unprotected_calls[("src", src_scope.node_id)] = [
                name for _, name in unprotected_calls(src, src_scope.node_id)]
        if dst_scope is None:
            return []
        self.unprotected_calls[("dst", dst_scope.node_id)] = [
            name for _, name in unprotected_calls(dst, dst_scope.node_id)]

        previously_unprotected = None
        if src_scope is not None:
            previously_unprotected = set(self.unprotected_calls[("src", src_scope.node_id)])

        alerts = []
        for node_id in context.dst_scopes.own_nodes(dst_scope):
            node = dst.node(node_id)
            if node.kind != "try_statement" or node.change != ChangeType.INSERTED:
                continue
            body = dst.field(node_id, "body")
            if body is None:
                continue
            for call_id, callee in self._protected_calls(dst, body):
                call = dst.node(call_id)
                if call.change not in PRE_EXISTING or not callee:
                    continue
                if call.partner is not None and in_try_block(src, call.partner):
                    continue
                if previously_unprotected is not None and callee not in previously_unprotected:
                    continue
                alerts.append(self.alert(context, dst_scope.name, call.line,
                                         f"call {callee} newly protected by inserted try",
                                         identifier=callee))
        return alerts

    @staticmethod
    def _protected_calls(ast: Ast, block_id: int) -> List[Tuple[int, str]]:
        calls = []

        def visit(node) -> bool:
            if node.is_function:
                return False
            if node.kind == "call_expression":
                calls.append((node.id, get_identifier(ast, ast.field(node.id, "function"))))
            return True

        ast.visit(visit, block_id)
        return calls
