"""
Lexical scopes of classified ASTs.
"""

from .models import Scope, ScopeTree
from .builder import ScopeBuilder

__all__ = [
    'Scope',
    'ScopeTree',
    'ScopeBuilder'
]
