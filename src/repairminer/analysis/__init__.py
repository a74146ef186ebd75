"""
Scope-based analysis of differenced file pairs.
"""

from .base import Alert, AnalysisContext, DataSet, Detector
from .driver import AnalysisDriver
from .runner import AnalysisRunner, ClassifierDataSet

__all__ = [
    'Alert',
    'AnalysisContext',
    'DataSet',
    'Detector',
    'AnalysisDriver',
    'AnalysisRunner',
    'ClassifierDataSet'
]
