"""
Services package for RepairMiner.
"""

from .configuration_service import (
    ConfigurationService,
    UnifiedConfig,
    AnalysisConfig,
    LearningConfig,
    get_config_service,
    reset_config_service
)

__all__ = [
    "ConfigurationService",
    "UnifiedConfig",
    "AnalysisConfig",
    "LearningConfig",
    "get_config_service",
    "reset_config_service"
]
