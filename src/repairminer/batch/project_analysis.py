"""
Commit walking over a git repository.

Bug-fixing commits are selected by their message. Every modified source
file of such a commit becomes a buggy/repaired pair, analyzed by an
``AnalysisRunner``.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Union

from pydriller import Repository
from pydriller.domain.commit import Commit, ModificationType, ModifiedFile

from ..analysis.base import Alert
from ..analysis.runner import AnalysisRunner, ClassifierDataSet
from ..exceptions import GitProjectAnalysisError
from ..learning.dataset import LearningDataSet
from ..models import AnalysisMetaInformation
from ..services.configuration_service import AnalysisConfig

logger = logging.getLogger(__name__)


@dataclass
class ProjectAnalysisResult:
    """Summary of one project analysis run."""
    project_id: str
    total_commits: int
    bug_fixing_commits: int
    analyzed_files: int
    skipped_files: int
    alerts: List[Alert]


class GitProjectAnalysis:
    """
    Analyzes the bug-fixing commits of one git repository.

    Use ``from_directory`` for a local clone or ``from_uri`` to clone a
    remote repository first.
    """

    def __init__(self, repository: str, project_id: str, runner: AnalysisRunner,
                 config: Optional[AnalysisConfig] = None,
                 checkout_dir: Optional[str] = None):
        self.repository = repository
        self.project_id = project_id
        self.runner = runner
        self.config = config or AnalysisConfig()
        self.checkout_dir = checkout_dir
        self.total_commits = 0
        self.bug_fixing_commits = 0
        self._bug_fix = re.compile(self.config.bug_fix_pattern, re.IGNORECASE)

    @classmethod
    def from_directory(cls, path: Union[str, Path], runner: AnalysisRunner,
                       config: Optional[AnalysisConfig] = None) -> "GitProjectAnalysis":
        """
        Analyze a local repository.

        Raises:
            GitProjectAnalysisError: If ``path`` is not a git working tree
        """
        path = Path(path)
        if not (path / ".git").exists():
            raise GitProjectAnalysisError(f"Not a git repository: {path}")
        return cls(str(path), path.resolve().name, runner, config)

    @classmethod
    def from_uri(cls, uri: str, checkout_dir: Union[str, Path], runner: AnalysisRunner,
                 config: Optional[AnalysisConfig] = None) -> "GitProjectAnalysis":
        """
        Analyze a remote repository, cloned into ``checkout_dir`` when walked.

        Raises:
            GitProjectAnalysisError: If ``checkout_dir`` cannot be created
        """
        try:
            Path(checkout_dir).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise GitProjectAnalysisError(f"Cannot create checkout directory {checkout_dir}: {e}") from e
        project_id = uri.rstrip("/").rsplit("/", 1)[-1]
        if project_id.endswith(".git"):
            project_id = project_id[:-len(".git")]
        return cls(uri, project_id, runner, config, str(checkout_dir))

    @property
    def alerts(self) -> List[Alert]:
        """Alerts collected by the runner's classifier data sets."""
        alerts: List[Alert] = []
        for data_set in self.runner.data_sets:
            if isinstance(data_set, ClassifierDataSet):
                alerts.extend(data_set.alerts)
        return alerts

    def is_bug_fix(self, commit: Commit) -> bool:
        return bool(self._bug_fix.search(commit.msg or ""))

    def is_candidate(self, path: Optional[str]) -> bool:
        """True for source files not matching an ignore pattern."""
        if not path:
            return False
        path = path.replace("\\", "/")
        if not path.endswith(tuple(self.config.file_suffixes)):
            return False
        return not any(pattern in path for pattern in self.config.ignore_patterns)

    def file_pairs(self, commit: Commit) -> List[AnalysisMetaInformation]:
        """Buggy/repaired pairs of the modified source files of a commit."""
        buggy_commit = commit.parents[0] if commit.parents else ""
        pairs = []
        for modified in commit.modified_files:
            if not self._is_modification(modified):
                continue
            pairs.append(AnalysisMetaInformation(
                project_id=self.project_id,
                buggy_commit_id=buggy_commit,
                repaired_commit_id=commit.hash,
                buggy_file=modified.old_path,
                repaired_file=modified.new_path,
                buggy_code=modified.source_code_before or "",
                repaired_code=modified.source_code or "",
            ))
        return pairs

    def _is_modification(self, modified: ModifiedFile) -> bool:
        # Added and deleted files have no buggy/repaired pair
        if modified.change_type in (ModificationType.ADD, ModificationType.DELETE):
            return False
        return self.is_candidate(modified.old_path) and self.is_candidate(modified.new_path)

    def _commits(self) -> Iterator[Commit]:
        try:
            repository = Repository(self.repository, clone_repo_to=self.checkout_dir)
            yield from repository.traverse_commits()
        except Exception as e:
            raise GitProjectAnalysisError(f"Failed to walk {self.repository}: {e}") from e

    def analyze(self, max_workers: Optional[int] = None) -> ProjectAnalysisResult:
        """
        Walk every commit and analyze the file pairs of bug-fixing ones.

        Args:
            max_workers: Thread pool size for the pairs of one commit

        Returns:
            ProjectAnalysisResult with commit counts and alerts

        Raises:
            GitProjectAnalysisError: If the repository cannot be read
        """
        workers = max_workers or self.config.max_workers
        for commit in self._commits():
            self.total_commits += 1
            if not self.is_bug_fix(commit):
                continue
            self.bug_fixing_commits += 1
            pairs = self.file_pairs(commit)
            logger.debug(f"{self.project_id} {commit.hash[:8]}: {len(pairs)} file pairs")
            if pairs:
                self.runner.analyze_files(pairs, workers)

        logger.info(f"{self.project_id}: {self.bug_fixing_commits} bug-fixing commits "
                    f"of {self.total_commits}")
        return ProjectAnalysisResult(
            project_id=self.project_id,
            total_commits=self.total_commits,
            bug_fixing_commits=self.bug_fixing_commits,
            analyzed_files=self.runner.analyzed,
            skipped_files=self.runner.skipped,
            alerts=self.alerts,
        )

    def persist(self, dataset_path: Union[str, Path]) -> int:
        """
        Append the learning vectors of this run to a data set file.

        Returns:
            Number of vectors written
        """
        written = 0
        for data_set in self._learning_data_sets():
            data_set.write(dataset_path, append=True)
            written += len(data_set)
        return written

    def _learning_data_sets(self) -> Sequence[LearningDataSet]:
        return [d for d in self.runner.data_sets if isinstance(d, LearningDataSet)]
