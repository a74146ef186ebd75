"""
Builds one feature vector per analyzed function.
"""

import logging
from typing import Dict, List, Optional

from ..analysis.base import AnalysisContext, Detector
from ..scope.models import Scope
from .extractor import KeywordExtractor
from .feature_vector import FeatureVector, IdCounter

logger = logging.getLogger(__name__)


class FeatureVectorDetector(Detector):
    """
    Turns the keywords of every paired function into a ``FeatureVector``.

    The repaired function provides the vector, the buggy function contributes
    its removed keywords through ``FeatureVector.join``. Deleted functions
    produce a vector of their removed keywords only. Vectors without any
    changed keyword are dropped.
    """

    tag = "FEATURE_VECTOR"

    def __init__(self, extractor: Optional[KeywordExtractor] = None,
                 counter: Optional[IdCounter] = None):
        self.extractor = extractor or KeywordExtractor()
        self.counter = counter
        self._aliases: Dict[str, Dict[str, str]] = {}

    def visit_scope(self, context: AnalysisContext, src_scope: Optional[Scope],
                    dst_scope: Optional[Scope]) -> List[object]:
        if dst_scope is not None:
            vector = self._vector(context, "dst", dst_scope)
            if src_scope is not None:
                vector.join(self._vector(context, "src", src_scope))
        elif src_scope is not None:
            vector = FeatureVector.from_ami(context.ami, src_scope.name, self.counter)
            vector.join(self._vector(context, "src", src_scope))
        else:
            return []

        if not vector.has_changes():
            return []
        return [vector]

    def _vector(self, context: AnalysisContext, side: str, scope: Scope) -> FeatureVector:
        ast = context.src_ast if side == "src" else context.dst_ast
        scopes = context.src_scopes if side == "src" else context.dst_scopes
        if side not in self._aliases:
            self._aliases[side] = self.extractor.package_aliases(ast)

        vector = FeatureVector.from_ami(context.ami, scope.name, self.counter)
        vector.add_keywords(self.extractor.extract(ast, scopes.own_nodes(scope), self._aliases[side]))
        if side == "src":
            vector.source_code = ast.text(scope.node_id)
        else:
            vector.destination_code = ast.text(scope.node_id)
        return vector
