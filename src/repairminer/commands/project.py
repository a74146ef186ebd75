"""
Project command implementation for RepairMiner CLI.
"""
import logging
import tempfile
from pathlib import Path

from ..analysis.runner import AnalysisRunner, ClassifierDataSet
from ..batch.project_analysis import GitProjectAnalysis
from ..detectors import default_detectors
from ..exceptions import GitProjectAnalysisError
from ..learning.aggregator import FeatureVectorDetector
from ..learning.dataset import LearningDataSet
from .base import BaseCommand

logger = logging.getLogger(__name__)


class ProjectCommand(BaseCommand):
    """Command to mine the bug-fixing commits of a git repository."""

    async def execute(self) -> int:
        """Execute the project command."""
        analysis_config = self.config.analysis
        factories = default_detectors()
        data_sets = [ClassifierDataSet()]
        if self.args.dataset_path:
            if Path(self.args.dataset_path).exists():
                # Reading the existing vectors moves the id counter past their ids
                LearningDataSet.from_file(self.args.dataset_path)
            factories.append(FeatureVectorDetector)
            data_sets.append(LearningDataSet())

        runner = AnalysisRunner.from_config(analysis_config, factories, data_sets)

        try:
            if self.args.git_dir:
                project = GitProjectAnalysis.from_directory(self.args.git_dir, runner, analysis_config)
                result = project.analyze(self.args.max_workers)
            else:
                checkout_dir = self.args.checkout_dir or tempfile.mkdtemp(prefix="repairminer-")
                project = GitProjectAnalysis.from_uri(self.args.uri, checkout_dir, runner, analysis_config)
                result = project.analyze(self.args.max_workers)
        except GitProjectAnalysisError as e:
            logger.error(f"Project analysis failed: {e}")
            return 1

        for alert in result.alerts:
            print(alert)

        print(f"\nProject: {result.project_id}")
        print(f"   Bug-fixing commits: {result.bug_fixing_commits} / {result.total_commits}")
        print(f"   File pairs analyzed: {result.analyzed_files} (skipped {result.skipped_files})")
        print(f"   Alerts: {len(result.alerts)}")

        if self.args.dataset_path:
            written = project.persist(self.args.dataset_path)
            print(f"   Feature vectors written: {written}")

        return 0

    @classmethod
    def add_arguments(cls, parser):
        """Add project command arguments."""
        source = parser.add_mutually_exclusive_group(required=True)
        source.add_argument(
            "--git-dir",
            help="Local git repository to analyze"
        )
        source.add_argument(
            "--uri",
            help="Remote git repository to clone and analyze"
        )
        parser.add_argument(
            "--checkout-dir",
            help="Directory to clone --uri into (default: a temporary directory)"
        )
        parser.add_argument(
            "--dataset-path",
            help="Append the feature vectors of the analyzed functions to this file"
        )
        parser.add_argument(
            "--max-workers", type=int, default=None,
            help="Threads used to analyze the file pairs of a commit"
        )

    @classmethod
    def help(cls) -> str:
        """Return help text for the project command."""
        return "Mine repair patterns from the bug-fixing commits of a repository"
