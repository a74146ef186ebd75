"""
AST parsing and differencing.
Provides the arena AST, the JavaScript parser and the change classifier.
"""

from .models import Ast, AstNode
from .parser import SourceParser, JavaScriptParser
from .classifier import AstClassifier, EditAction, EditScript, Mapping, TreeMatcher

__all__ = [
    'Ast',
    'AstNode',
    'SourceParser',
    'JavaScriptParser',
    'AstClassifier',
    'EditAction',
    'EditScript',
    'Mapping',
    'TreeMatcher'
]
