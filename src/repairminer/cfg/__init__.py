"""
Control flow graphs built from classified ASTs.
"""

from .models import CFG, CFGEdge, CFGNode, EdgeKind
from .builder import CFGBuilder

__all__ = [
    'CFG',
    'CFGEdge',
    'CFGNode',
    'EdgeKind',
    'CFGBuilder'
]
