"""
Clustering of keyword cohorts and reporting of the resulting clusters.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Union

from ..exceptions import ClustererError
from .clustering import Clusterer
from .dataset import LearningDataSet
from .filters import KeywordFilter
from .keywords import KeywordContext, KeywordUse

logger = logging.getLogger(__name__)

# Keywords too common to make interesting clusters
DEFAULT_EXCLUDED_KEYWORDS: FrozenSet[str] = frozenset({
    "typeof", "undefined", "null", "true", "false", "falsey", "this", "test",
})


@dataclass(frozen=True)
class Cluster:
    """One cluster of a keyword cohort."""
    keyword: KeywordUse
    cluster_id: int
    instances: int

    def __str__(self) -> str:
        return f"{self.keyword}\t{self.cluster_id}\t{self.instances}"


@dataclass
class ClusterMetrics:
    """The clusters found for one keyword cohort."""

    keyword: KeywordUse
    clusters: List[Cluster] = field(default_factory=list)

    @classmethod
    def from_assignments(cls, keyword: KeywordUse, assignments: Sequence[int]) -> "ClusterMetrics":
        """Build metrics from per-vector cluster ids; noise (-1) is ignored."""
        sizes: Dict[int, int] = {}
        for cluster_id in assignments:
            if cluster_id >= 0:
                sizes[cluster_id] = sizes.get(cluster_id, 0) + 1
        metrics = cls(keyword)
        for cluster_id in sorted(sizes):
            metrics.add_cluster(Cluster(keyword, cluster_id, sizes[cluster_id]))
        return metrics

    def add_cluster(self, cluster: Cluster) -> None:
        self.clusters.append(cluster)

    @property
    def total_instances(self) -> int:
        return sum(c.instances for c in self.clusters)

    def __str__(self) -> str:
        return f"{self.keyword}\t{len(self.clusters)}\t{self.total_instances}"

    @staticmethod
    def latex_table(metrics: Iterable["ClusterMetrics"]) -> str:
        """A LaTeX table with one row per keyword cohort."""
        lines = [
            "\\begin{table}",
            "\\centering",
            "\\begin{tabular}{|l|l|l|l|r|r|}",
            "\\hline",
            "Type & Context & Change & Keyword & Clusters & Instances \\\\",
            "\\hline",
        ]
        for m in metrics:
            k = m.keyword
            cells = [k.type.value, k.context.value, k.change_type.value, k.keyword]
            cells = [_latex_escape(c) for c in cells]
            lines.append(" & ".join(cells + [str(len(m.clusters)), str(m.total_instances)]) + " \\\\")
        lines.extend(["\\hline", "\\end{tabular}", "\\end{table}"])
        return "\n".join(lines)


def _latex_escape(text: str) -> str:
    return re.sub(r"([_&%$#{}])", r"\\\1", text)


def is_reportable(keyword: KeywordUse, excluded: Iterable[str] = DEFAULT_EXCLUDED_KEYWORDS) -> bool:
    """Statement keywords and excluded keywords are clustered but not reported."""
    return keyword.context != KeywordContext.STATEMENT and keyword.keyword not in set(excluded)


@dataclass
class ClusterReport:
    """Clusters of every changed keyword cohort of a data set."""

    keyword_clusters: List[ClusterMetrics] = field(default_factory=list)
    ranked_clusters: List[Cluster] = field(default_factory=list)
    failed: List[KeywordUse] = field(default_factory=list)

    def format(self) -> str:
        lines = [f"{i}\t{cluster}" for i, cluster in enumerate(self.ranked_clusters)]
        lines.append(ClusterMetrics.latex_table(self.keyword_clusters))
        return "\n".join(lines)


def build_cluster_report(data_set: LearningDataSet, clusterer: Clusterer,
                         arff_folder: Optional[Union[str, Path]] = None,
                         excluded: Iterable[str] = DEFAULT_EXCLUDED_KEYWORDS,
                         by_definition: bool = False) -> ClusterReport:
    """
    Cluster the cohort of every changed keyword.

    Cohorts are processed in metrics order. A clusterer failure skips only
    the failing cohort.

    Args:
        data_set: Vectors to cluster
        clusterer: Clusterer to run on each cohort
        arff_folder: If given, each cohort is also written as ``<keyword>.arff``
        excluded: Keywords left out of the report
        by_definition: Cluster and export on keyword definitions instead of keyword uses

    Returns:
        ClusterReport with cohorts and clusters ranked by size
    """
    excluded = set(excluded)
    report = ClusterReport()
    for frequency in data_set.metrics().changed_keyword_frequency:
        keyword = frequency.keyword
        cohort = data_set.filtered([KeywordFilter.for_keyword(keyword)])
        cohort.pre_process()
        try:
            assignments = cohort.cluster(clusterer, by_definition=by_definition)
        except ClustererError as e:
            logger.error(f"Clustering failed for {keyword}: {e}")
            report.failed.append(keyword)
            continue

        if arff_folder is not None:
            cohort.write_arff(arff_folder, _file_name(keyword) + ".arff", by_definition)

        metrics = ClusterMetrics.from_assignments(keyword, assignments)
        if metrics.clusters and is_reportable(keyword, excluded):
            report.keyword_clusters.append(metrics)
            report.ranked_clusters.extend(metrics.clusters)

    report.keyword_clusters.sort(key=lambda m: (-m.total_instances, str(m)))
    report.ranked_clusters.sort(key=lambda c: (-c.instances, str(c)))
    return report


def _file_name(keyword: KeywordUse) -> str:
    return re.sub(r"[^\w.-]", "_", str(keyword))
