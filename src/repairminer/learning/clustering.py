"""
Clusterers used by the learning data set.

Both implementations are deterministic: DBSCAN has no random state and
KMeans is seeded.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import numpy as np
from sklearn.cluster import DBSCAN, KMeans
from sklearn.preprocessing import MinMaxScaler

from ..exceptions import ClustererError, ConfigurationError

logger = logging.getLogger(__name__)


class Clusterer(ABC):
    """Assigns a cluster id to every row of a matrix."""

    @abstractmethod
    def cluster(self, matrix: np.ndarray, options: Optional[Dict[str, Any]] = None) -> List[int]:
        """
        Cluster the rows of ``matrix``.

        Returns:
            One cluster id per row; ids need not be dense, -1 marks noise

        Raises:
            ClustererError: If clustering fails
        """
        pass


class DBSCANClusterer(Clusterer):
    """Density based clustering on min-max normalised keyword counts."""

    def __init__(self, eps: float = 0.1, min_samples: int = 3):
        self.eps = eps
        self.min_samples = min_samples

    def cluster(self, matrix: np.ndarray, options: Optional[Dict[str, Any]] = None) -> List[int]:
        options = options or {}
        matrix = np.asarray(matrix, dtype=float)
        if matrix.ndim != 2 or matrix.shape[0] == 0:
            return []
        try:
            normalized = MinMaxScaler().fit_transform(matrix)
            labels = DBSCAN(
                eps=options.get("eps", self.eps),
                min_samples=options.get("min_samples", self.min_samples),
            ).fit_predict(normalized)
        except (ValueError, TypeError) as e:
            raise ClustererError(f"DBSCAN failed: {e}") from e

        n_noise = int(np.sum(labels == -1))
        logger.debug(f"DBSCAN: {len(set(labels)) - (1 if n_noise else 0)} clusters, {n_noise} noise")
        return [int(label) for label in labels]


class KMeansClusterer(Clusterer):
    """Seeded KMeans."""

    def __init__(self, n_clusters: int = 5, random_seed: int = 0):
        self.n_clusters = n_clusters
        self.random_seed = random_seed

    def cluster(self, matrix: np.ndarray, options: Optional[Dict[str, Any]] = None) -> List[int]:
        options = options or {}
        matrix = np.asarray(matrix, dtype=float)
        if matrix.ndim != 2 or matrix.shape[0] == 0:
            return []
        try:
            labels = KMeans(
                n_clusters=options.get("n_clusters", self.n_clusters),
                random_state=options.get("random_seed", self.random_seed),
                n_init=10,
            ).fit_predict(matrix)
        except (ValueError, TypeError) as e:
            raise ClustererError(f"KMeans failed: {e}") from e
        return [int(label) for label in labels]


def create_clusterer(config) -> Clusterer:
    """Build the clusterer named by a ``LearningConfig``."""
    if config.clusterer == "dbscan":
        return DBSCANClusterer(config.dbscan_eps, config.dbscan_min_samples)
    if config.clusterer == "kmeans":
        return KMeansClusterer(config.kmeans_clusters, config.random_seed)
    raise ConfigurationError(f"Unknown clusterer: {config.clusterer}")
