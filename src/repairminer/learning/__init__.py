"""
Keyword feature vectors and their clustering.
"""

from .keywords import GLOBAL_API, KeywordContext, KeywordDefinition, KeywordType, KeywordUse
from .apis import APIModel, PackageAPI
from .extractor import KeywordExtractor
from .feature_vector import FeatureVector, IdCounter
from .aggregator import FeatureVectorDetector
from .filters import AllOf, FilterType, KeywordFilter, NO_FILTER, VectorFilter
from .clustering import Clusterer, DBSCANClusterer, KMeansClusterer, create_clusterer
from .dataset import KeywordFrequency, LearningDataSet, LearningMetrics, LoadReport
from .cluster_metrics import (
    Cluster,
    ClusterMetrics,
    ClusterReport,
    DEFAULT_EXCLUDED_KEYWORDS,
    build_cluster_report
)

__all__ = [
    'GLOBAL_API',
    'KeywordContext',
    'KeywordDefinition',
    'KeywordType',
    'KeywordUse',
    'APIModel',
    'PackageAPI',
    'KeywordExtractor',
    'FeatureVector',
    'IdCounter',
    'FeatureVectorDetector',
    'AllOf',
    'FilterType',
    'KeywordFilter',
    'NO_FILTER',
    'VectorFilter',
    'Clusterer',
    'DBSCANClusterer',
    'KMeansClusterer',
    'create_clusterer',
    'KeywordFrequency',
    'LearningDataSet',
    'LearningMetrics',
    'LoadReport',
    'Cluster',
    'ClusterMetrics',
    'ClusterReport',
    'DEFAULT_EXCLUDED_KEYWORDS',
    'build_cluster_report'
]
