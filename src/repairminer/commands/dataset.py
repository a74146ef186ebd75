"""
Dataset command implementation for RepairMiner CLI.
"""
import logging

from ..learning.cluster_metrics import build_cluster_report
from ..learning.clustering import create_clusterer
from ..learning.dataset import LearningDataSet
from .base import BaseCommand

logger = logging.getLogger(__name__)


class DatasetCommand(BaseCommand):
    """Command to inspect and cluster a persisted learning data set."""

    async def execute(self) -> int:
        """Execute the dataset command."""
        try:
            data_set = LearningDataSet.from_file(self.args.dataset_path)
        except OSError as e:
            logger.error(f"Cannot read data set {self.args.dataset_path}: {e}")
            return 1

        report = data_set.load_report
        print(f"Loaded {report.loaded} feature vectors ({report.skipped} malformed rows skipped)")

        if self.args.print_metrics:
            self._print_metrics(data_set)

        if self.args.print_clusters or self.args.arff_folder:
            clusterer = create_clusterer(self.config.learning)
            cluster_report = build_cluster_report(
                data_set, clusterer,
                arff_folder=self.args.arff_folder,
                excluded=self.config.learning.excluded_keywords,
                by_definition=self.config.learning.arff_by_definition,
            )
            if self.args.print_clusters:
                print(cluster_report.format())
            if cluster_report.failed:
                logger.warning(f"Clustering failed for {len(cluster_report.failed)} keyword cohorts")

        return 0

    def _print_metrics(self, data_set: LearningDataSet):
        metrics = data_set.metrics()
        print(f"\n{'Frequency':>9}  Keyword")
        print("-" * 60)
        for entry in metrics.changed_keyword_frequency:
            print(f"{entry.frequency:>9}  {entry.keyword}")

    @classmethod
    def add_arguments(cls, parser):
        """Add dataset command arguments."""
        parser.add_argument(
            "--dataset-path", required=True,
            help="Feature vector file written by the project command"
        )
        parser.add_argument(
            "--print-metrics", action="store_true",
            help="Print changed keywords by frequency"
        )
        parser.add_argument(
            "--print-clusters", action="store_true",
            help="Cluster each keyword cohort and print the clusters"
        )
        parser.add_argument(
            "--arff-folder",
            help="Write one ARFF file per clustered keyword cohort to this folder"
        )

    @classmethod
    def help(cls) -> str:
        """Return help text for the dataset command."""
        return "Print metrics and clusters of a learning data set"
