"""
Control flow differencing.

Parses both versions of a file, labels their ASTs with change types and
builds labelled CFGs for every function on each side.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .ast_analysis.classifier import AstClassifier, Mapping
from .ast_analysis.models import Ast
from .ast_analysis.parser import JavaScriptParser, SourceParser
from .cfg.builder import CFGBuilder
from .cfg.models import CFG
from .exceptions import ASTBuildError, EmptyInputError, InternalError, InvariantViolation

logger = logging.getLogger(__name__)


@dataclass
class CFDOptions:
    """Options for one differencing run."""
    pre_process: bool = False


@dataclass
class CFDView:
    """Paired, labelled ASTs and CFGs of a buggy and a repaired file."""

    src_ast: Ast
    dst_ast: Ast
    src_cfgs: List[CFG] = field(default_factory=list)
    dst_cfgs: List[CFG] = field(default_factory=list)
    mapping: Mapping = field(default_factory=Mapping)

    def src_cfg(self, function_id: int) -> Optional[CFG]:
        return _find_cfg(self.src_cfgs, function_id)

    def dst_cfg(self, function_id: int) -> Optional[CFG]:
        return _find_cfg(self.dst_cfgs, function_id)


def _find_cfg(cfgs: List[CFG], function_id: int) -> Optional[CFG]:
    for cfg in cfgs:
        if cfg.function_id == function_id:
            return cfg
    return None


class ControlFlowDifferencing:
    """Runs the parser, the AST classifier and the CFG builder on a file pair."""

    def __init__(self, parser: Optional[SourceParser] = None,
                 classifier: Optional[AstClassifier] = None,
                 cfg_builder: Optional[CFGBuilder] = None):
        self.parser = parser or JavaScriptParser()
        self.classifier = classifier or AstClassifier()
        self.cfg_builder = cfg_builder or CFGBuilder()

    def diff(self, options: CFDOptions, src_text: str, dst_text: str,
             name: str = "") -> CFDView:
        """
        Difference two versions of a source file.

        Args:
            options: Differencing options
            src_text: Buggy source text
            dst_text: Repaired source text
            name: File name used in error messages

        Returns:
            CFDView with labelled ASTs and CFGs for both sides

        Raises:
            EmptyInputError: If either text is empty
            ASTBuildError: If the parser rejects either text
            InternalError: For any other failure
        """
        if not src_text or not src_text.strip():
            raise EmptyInputError(f"Buggy source of {name or '<source>'} is empty")
        if not dst_text or not dst_text.strip():
            raise EmptyInputError(f"Repaired source of {name or '<source>'} is empty")

        try:
            src_ast = self.parser.parse(src_text, options.pre_process, name)
            dst_ast = self.parser.parse(dst_text, options.pre_process, name)
            src_ast, dst_ast, mapping = self.classifier.classify(src_ast, dst_ast)
            src_cfgs = self.cfg_builder.build_all(src_ast)
            dst_cfgs = self.cfg_builder.build_all(dst_ast)
        except (ASTBuildError, InvariantViolation):
            raise
        except Exception as e:
            raise InternalError(f"Control flow differencing failed for {name or '<source>'}: {e}") from e

        logger.debug(f"Differenced {name or '<source>'}: {len(src_cfgs)}/{len(dst_cfgs)} CFGs")
        return CFDView(src_ast, dst_ast, src_cfgs, dst_cfgs, mapping)
