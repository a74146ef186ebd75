"""
Analysis driver: walks paired scope trees and dispatches detectors.
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Set

from ..ast_analysis.utilities import ANONYMOUS_NAME
from ..exceptions import InvariantViolation
from ..scope.models import Scope
from .base import Alert, AnalysisContext, Detector

logger = logging.getLogger(__name__)


def _unique_by_name(scopes: Iterable[Scope]) -> Dict[str, Scope]:
    by_name: Dict[str, List[Scope]] = {}
    for scope in scopes:
        if not scope.is_script and scope.name != ANONYMOUS_NAME:
            by_name.setdefault(scope.name, []).append(scope)
    return {name: found[0] for name, found in by_name.items() if len(found) == 1}


def pair_scopes(context: AnalysisContext) -> Dict[int, Scope]:
    """
    Pair every destination scope with the source scope of the same function.

    Scopes are paired through the mapping of their function nodes, wherever
    those nodes sit in the tree. Functions whose node has no partner, such as
    a declaration rewritten as an object property, are paired by name when
    the name is unique among the unpaired scopes of both sides.

    Returns:
        Destination scope id -> source scope
    """
    pairs: Dict[int, Scope] = {}
    paired_src: Set[int] = set()
    for dst_scope in context.dst_scopes:
        partner = context.mapping.src(dst_scope.node_id)
        src_scope = context.src_scopes.for_node(partner) if partner is not None else None
        if src_scope is not None and src_scope.id not in paired_src:
            pairs[dst_scope.id] = src_scope
            paired_src.add(src_scope.id)

    src_root, dst_root = context.src_scopes.root, context.dst_scopes.root
    if src_root is not None and dst_root is not None and dst_root.id not in pairs \
            and src_root.id not in paired_src:
        pairs[dst_root.id] = src_root
        paired_src.add(src_root.id)

    unpaired_src = _unique_by_name(s for s in context.src_scopes if s.id not in paired_src)
    unpaired_dst = _unique_by_name(s for s in context.dst_scopes if s.id not in pairs)
    for name, dst_scope in unpaired_dst.items():
        if name in unpaired_src:
            pairs[dst_scope.id] = unpaired_src[name]
            logger.debug(f"Paired function {name} by name")
    return pairs


class AnalysisDriver:
    """
    Visits the source and destination scope trees of a file pair together.

    Destination scopes are visited first, each paired with the scope of its
    partner function (see ``pair_scopes``). Source scopes left without a
    partner (deleted functions) follow with a None destination. Detectors run
    in registration order and scopes in source order, so results are
    reproducible.
    """

    def __init__(self, detectors: Sequence[Detector]):
        self.detectors = list(detectors)

    def analyze(self, context: AnalysisContext) -> List[object]:
        """
        Run every detector over the file pair.

        Returns:
            Results in insertion order, with duplicate alerts removed
        """
        self._results: List[object] = []
        self._alerts: Set[Alert] = set()
        self._visited_src: Set[int] = set()

        context.scope_partners = pair_scopes(context)
        self._paired_src = {scope.id for scope in context.scope_partners.values()}

        dst_root, src_root = context.dst_scopes.root, context.src_scopes.root
        if dst_root is not None:
            self._visit(context, context.src_partner(dst_root), dst_root)
        if src_root is not None and src_root.id not in self._visited_src \
                and src_root.id not in self._paired_src:
            self._visit(context, src_root, None)
        for detector in self.detectors:
            self._collect(detector, lambda: detector.finish(context))
        return self._results

    def _visit(self, context: AnalysisContext, src_scope: Optional[Scope],
               dst_scope: Optional[Scope]) -> None:
        if src_scope is None and dst_scope is None:
            return
        if src_scope is not None:
            self._visited_src.add(src_scope.id)

        for detector in self.detectors:
            self._collect(detector, lambda: detector.visit_scope(context, src_scope, dst_scope))
            if dst_scope is not None:
                self._visit_nodes(context, detector, dst_scope)

        if dst_scope is not None:
            for dst_child in context.dst_scopes.children(dst_scope):
                self._visit(context, context.src_partner(dst_child), dst_child)
        if src_scope is not None:
            for src_child in context.src_scopes.children(src_scope):
                # Paired scopes are visited together with their destination
                if src_child.id not in self._paired_src and src_child.id not in self._visited_src:
                    self._visit(context, src_child, None)

    def _visit_nodes(self, context: AnalysisContext, detector: Detector, scope: Scope) -> None:
        for node_id in context.dst_scopes.own_nodes(scope):
            self._collect(detector, lambda: detector.visit_node(context, node_id, scope))

    def _collect(self, detector: Detector, visit) -> None:
        try:
            results = visit()
        except InvariantViolation:
            raise
        except Exception as e:
            logger.warning(f"Detector {type(detector).__name__} failed: {e}")
            return
        for result in results or []:
            if isinstance(result, Alert):
                if result in self._alerts:
                    continue
                self._alerts.add(result)
            self._results.append(result)
