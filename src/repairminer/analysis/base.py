"""
Building blocks shared by the analysis driver and the pattern detectors.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional

from ..ast_analysis.classifier import Mapping
from ..ast_analysis.models import Ast
from ..cfd import CFDView
from ..models import AnalysisMetaInformation
from ..scope.models import Scope, ScopeTree


@dataclass(frozen=True)
class Alert:
    """A recognized repair pattern in one function of a file pair."""

    ami: AnalysisMetaInformation
    function_name: str
    line: int
    pattern: str
    description: str
    identifier: str = ""
    sentinels: FrozenSet[str] = frozenset()

    def __str__(self) -> str:
        return (f"[{self.pattern}] {self.ami.describe()}:{self.line} "
                f"{self.function_name}: {self.description}")


@dataclass
class AnalysisContext:
    """Everything a detector may look at while one file pair is analyzed."""

    ami: AnalysisMetaInformation
    view: CFDView
    src_scopes: ScopeTree
    dst_scopes: ScopeTree
    options: dict = field(default_factory=dict)
    # Destination scope id -> paired source scope, filled by the driver
    scope_partners: Dict[int, Scope] = field(default_factory=dict)

    @property
    def src_ast(self) -> Ast:
        return self.view.src_ast

    @property
    def dst_ast(self) -> Ast:
        return self.view.dst_ast

    @property
    def mapping(self) -> Mapping:
        return self.view.mapping

    def src_partner(self, dst_scope: Scope) -> Optional[Scope]:
        """The source scope paired with a destination scope, if any."""
        return self.scope_partners.get(dst_scope.id)


class Detector(ABC):
    """
    A pattern detector dispatched by the analysis driver.

    Detectors override ``visit_scope``, ``visit_node`` or both. A detector
    instance serves a single file pair, so it may keep per-pair state.
    Results are usually ``Alert`` objects, but any object a registered data
    set accepts may be returned.
    """

    tag: str = ""

    def visit_scope(self, context: AnalysisContext, src_scope: Optional[Scope],
                    dst_scope: Optional[Scope]) -> List[object]:
        """
        Visit a pair of scopes. Either side is None for an unpaired function.

        Returns:
            Results found in this pair of scopes
        """
        return []

    def visit_node(self, context: AnalysisContext, node_id: int, scope: Scope) -> List[object]:
        """Visit one destination node belonging directly to ``scope``."""
        return []

    def finish(self, context: AnalysisContext) -> List[object]:
        """Called once after every scope has been visited."""
        return []

    def alert(self, context: AnalysisContext, function_name: str, line: int,
              description: str, identifier: str = "",
              sentinels: FrozenSet[str] = frozenset()) -> Alert:
        return Alert(context.ami, function_name, line, self.tag, description,
                     identifier, sentinels)


class DataSet(ABC):
    """A sink for analysis results."""

    @abstractmethod
    def accepts(self, result: object) -> bool:
        pass

    @abstractmethod
    def register(self, result: object) -> None:
        pass
