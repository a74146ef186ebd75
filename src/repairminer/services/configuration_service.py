"""
Configuration Service - Centralized configuration management.
Configuration is read from an optional JSON file and then overridden by
environment variables.
"""

import os
import re
import json
import logging
from dataclasses import dataclass, asdict, field, fields
from pathlib import Path
from typing import Dict, Any, Optional, Tuple, Type, TypeVar

from ..exceptions import ConfigurationError
from ..learning.cluster_metrics import DEFAULT_EXCLUDED_KEYWORDS

T = TypeVar('T')

CLUSTERERS = ("dbscan", "kmeans")

DEFAULT_BUG_FIX_PATTERN = r"\b(fix(e[sd])?|bugs?|repair(s|ed)?|patch(es|ed)?|resolve[sd]?)\b"


@dataclass
class AnalysisConfig:
    """Differencing and batch analysis configuration."""
    # Differencing settings
    pre_process: bool = False
    min_height: int = 2
    similarity_threshold: float = 0.5

    # Batch settings
    max_workers: int = 4
    file_suffixes: Tuple[str, ...] = (".js",)
    ignore_patterns: Tuple[str, ...] = ("node_modules/", ".min.js")
    bug_fix_pattern: str = DEFAULT_BUG_FIX_PATTERN

    def __post_init__(self):
        self.file_suffixes = tuple(self.file_suffixes)
        self.ignore_patterns = tuple(self.ignore_patterns)
        if self.min_height < 1:
            raise ConfigurationError("min_height must be at least 1")
        if not 0.0 <= self.similarity_threshold <= 1.0:
            raise ConfigurationError("similarity_threshold must be between 0 and 1")
        if self.max_workers < 1:
            raise ConfigurationError("max_workers must be at least 1")
        try:
            re.compile(self.bug_fix_pattern)
        except re.error as e:
            raise ConfigurationError(f"Invalid bug_fix_pattern: {e}")


@dataclass
class LearningConfig:
    """Clustering configuration."""
    clusterer: str = "dbscan"
    dbscan_eps: float = 0.1
    dbscan_min_samples: int = 3
    kmeans_clusters: int = 5
    random_seed: int = 0
    excluded_keywords: Tuple[str, ...] = tuple(sorted(DEFAULT_EXCLUDED_KEYWORDS))
    # Project ARFF cohorts on keyword definitions instead of keyword uses
    arff_by_definition: bool = False

    def __post_init__(self):
        self.excluded_keywords = tuple(self.excluded_keywords)
        if self.clusterer not in CLUSTERERS:
            raise ConfigurationError(f"clusterer must be one of {', '.join(CLUSTERERS)}")
        if self.dbscan_eps <= 0:
            raise ConfigurationError("dbscan_eps must be positive")
        if self.dbscan_min_samples < 1:
            raise ConfigurationError("dbscan_min_samples must be at least 1")
        if self.kmeans_clusters < 1:
            raise ConfigurationError("kmeans_clusters must be at least 1")


@dataclass
class UnifiedConfig:
    """Master configuration combining all settings."""
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    learning: LearningConfig = field(default_factory=LearningConfig)

    # Global settings
    log_level: str = "INFO"
    debug_mode: bool = False

    def __post_init__(self):
        """Validate configuration after initialization."""
        if not isinstance(getattr(logging, self.log_level.upper(), None), int):
            raise ConfigurationError(f"Unknown log level: {self.log_level}")


class ConfigurationService:
    """
    Centralized configuration management service.

    Values come from, in increasing priority: dataclass defaults, the JSON
    config file, and ``REPAIRMINER_*`` environment variables.
    """

    def __init__(self, config_path: Optional[str] = None):
        self.logger = logging.getLogger(__name__)
        self.config_path = Path(config_path) if config_path else None
        self._config: Optional[UnifiedConfig] = None

    def get_config(self) -> UnifiedConfig:
        """Get the current configuration, loading from file if needed."""
        if self._config is None:
            self._config = self.load_config()
        return self._config

    def load_config(self, config_path: Optional[str] = None) -> UnifiedConfig:
        """
        Load configuration from file or environment variables.

        Args:
            config_path: Optional path to configuration file

        Returns:
            UnifiedConfig instance

        Raises:
            ConfigurationError: If the resulting values are invalid
        """
        config_file = Path(config_path) if config_path else self.config_path

        data: Dict[str, Any] = {}
        if config_file and config_file.exists():
            try:
                with open(config_file, 'r') as f:
                    data = json.load(f)
                self.logger.info(f"Loaded configuration from {config_file}")
            except (OSError, ValueError) as e:
                self.logger.warning(f"Failed to load config from {config_file}: {e}")
                data = {}

        analysis_config = self._dict_to_dataclass(data.get('analysis', {}), AnalysisConfig)
        learning_config = self._dict_to_dataclass(data.get('learning', {}), LearningConfig)

        # Override with environment variables
        analysis_config = self._apply_env_overrides(analysis_config, 'REPAIRMINER_ANALYSIS_')
        learning_config = self._apply_env_overrides(learning_config, 'REPAIRMINER_LEARNING_')

        global_settings = {
            'log_level': os.getenv('REPAIRMINER_LOG_LEVEL', data.get('log_level', 'INFO')),
            'debug_mode': os.getenv('REPAIRMINER_DEBUG', str(data.get('debug_mode', False))).lower() == 'true'
        }

        return UnifiedConfig(
            analysis=analysis_config,
            learning=learning_config,
            **global_settings
        )

    def save_config(self, config: UnifiedConfig, config_path: Optional[str] = None) -> None:
        """
        Save configuration to file.

        Args:
            config: Configuration to save
            config_path: Optional path to save to
        """
        config_file = Path(config_path) if config_path else self.config_path

        if not config_file:
            raise ConfigurationError("No config path specified")

        data = {
            'analysis': asdict(config.analysis),
            'learning': asdict(config.learning),
            'log_level': config.log_level,
            'debug_mode': config.debug_mode
        }

        try:
            config_file.parent.mkdir(parents=True, exist_ok=True)
            with open(config_file, 'w') as f:
                json.dump(data, f, indent=2)
        except OSError as e:
            raise ConfigurationError(f"Failed to save config to {config_file}: {e}") from e

        self.logger.info(f"Saved configuration to {config_file}")

    def _dict_to_dataclass(self, data: Dict[str, Any], dataclass_type: Type[T]) -> T:
        """Convert dictionary to dataclass, ignoring unknown keys."""
        field_names = {f.name for f in fields(dataclass_type)}
        unknown = sorted(k for k in data if k not in field_names)
        if unknown:
            self.logger.warning(f"Ignoring unknown {dataclass_type.__name__} keys: {', '.join(unknown)}")
        return dataclass_type(**{k: v for k, v in data.items() if k in field_names})

    def _apply_env_overrides(self, config: T, prefix: str) -> T:
        """Apply environment variable overrides to configuration."""
        config_dict = asdict(config)

        for config_field in fields(config):
            env_key = f"{prefix}{config_field.name.upper()}"
            env_value = os.getenv(env_key)

            if env_value is not None:
                # Convert string environment variable to appropriate type
                try:
                    if config_field.type == bool:
                        config_dict[config_field.name] = env_value.lower() in ('true', '1', 'yes', 'on')
                    elif config_field.type == int:
                        config_dict[config_field.name] = int(env_value)
                    elif config_field.type == float:
                        config_dict[config_field.name] = float(env_value)
                    elif config_field.type == Tuple[str, ...]:
                        config_dict[config_field.name] = tuple(
                            v.strip() for v in env_value.split(',') if v.strip())
                    else:
                        config_dict[config_field.name] = env_value

                    self.logger.debug(f"Applied env override: {env_key}={env_value}")

                except (ValueError, TypeError) as e:
                    self.logger.warning(f"Failed to parse env var {env_key}={env_value}: {e}")

        return type(config)(**config_dict)

# Global configuration service instance
_config_service: Optional[ConfigurationService] = None


def get_config_service(config_path: Optional[str] = None) -> ConfigurationService:
    """
    Get the global configuration service instance.

    The instance is replaced when asked for a different config file.
    """
    global _config_service
    requested = Path(config_path) if config_path else None
    if _config_service is None or _config_service.config_path != requested:
        _config_service = ConfigurationService(config_path)
    return _config_service


def reset_config_service() -> None:
    """Reset the global configuration service (mainly for testing)."""
    global _config_service
    _config_service = None
