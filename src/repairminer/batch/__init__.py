"""
Batch analysis of git repositories.
"""

from .project_analysis import GitProjectAnalysis, ProjectAnalysisResult

__all__ = [
    'GitProjectAnalysis',
    'ProjectAnalysisResult'
]
