"""RepairMiner - Repair pattern mining from JavaScript bug-fixing commits."""

__version__ = "0.1.0"

from .models import AnalysisMetaInformation, ChangeType
from .cfd import CFDOptions, CFDView, ControlFlowDifferencing
from .analysis import Alert, AnalysisRunner, ClassifierDataSet
from .learning import FeatureVector, LearningDataSet
from .exceptions import RepairMinerError

__all__ = [
    "AnalysisMetaInformation",
    "ChangeType",
    "CFDOptions",
    "CFDView",
    "ControlFlowDifferencing",
    "Alert",
    "AnalysisRunner",
    "ClassifierDataSet",
    "FeatureVector",
    "LearningDataSet",
    "RepairMinerError",
]
