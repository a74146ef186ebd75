"""
Per-pair analysis pipeline and the alert data set.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from ..ast_analysis.classifier import AstClassifier, TreeMatcher
from ..cfd import CFDOptions, CFDView, ControlFlowDifferencing
from ..exceptions import RecoverableAnalysisError
from ..models import AnalysisMetaInformation
from ..scope.builder import ScopeBuilder
from .base import Alert, AnalysisContext, DataSet, Detector
from .driver import AnalysisDriver

logger = logging.getLogger(__name__)

DetectorFactory = Callable[[], Detector]


class ClassifierDataSet(DataSet):
    """Insertion-ordered, duplicate-free collection of alerts."""

    def __init__(self):
        self._alerts: Dict[Alert, None] = {}
        self._lock = threading.Lock()

    def accepts(self, result: object) -> bool:
        return isinstance(result, Alert)

    def register(self, result: Alert) -> None:
        with self._lock:
            self._alerts.setdefault(result, None)

    @property
    def alerts(self) -> List[Alert]:
        with self._lock:
            return list(self._alerts)

    def pattern_counts(self) -> Dict[str, int]:
        """Number of alerts per pattern tag."""
        counts: Dict[str, int] = {}
        for alert in self.alerts:
            counts[alert.pattern] = counts.get(alert.pattern, 0) + 1
        return counts

    def __len__(self) -> int:
        return len(self._alerts)


class AnalysisRunner:
    """
    Differences and analyzes buggy/repaired file pairs.

    Parser and empty-input failures skip the pair with a warning. Every other
    failure propagates to the caller. Results reach the data sets only after
    a pair has been fully analyzed.
    """

    def __init__(self, detector_factories: Sequence[DetectorFactory],
                 data_sets: Sequence[DataSet],
                 options: Optional[CFDOptions] = None,
                 differencing: Optional[ControlFlowDifferencing] = None,
                 scope_builder: Optional[ScopeBuilder] = None):
        """
        Args:
            detector_factories: Callables creating fresh detectors for each pair
            data_sets: Sinks receiving the results they accept
            options: Differencing options
            differencing: Differencer, a default JavaScript one if omitted
            scope_builder: Scope builder, a default one if omitted
        """
        self.detector_factories = list(detector_factories)
        self.data_sets = list(data_sets)
        self.options = options or CFDOptions()
        self.differencing = differencing or ControlFlowDifferencing()
        self.scope_builder = scope_builder or ScopeBuilder()
        self.analyzed = 0
        self.skipped = 0
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config, detector_factories: Sequence[DetectorFactory],
                    data_sets: Sequence[DataSet]) -> "AnalysisRunner":
        """Create a runner from an ``AnalysisConfig``."""
        matcher = TreeMatcher(config.min_height, config.similarity_threshold)
        differencing = ControlFlowDifferencing(classifier=AstClassifier(matcher))
        return cls(detector_factories, data_sets, CFDOptions(config.pre_process), differencing)

    def analyze_file(self, ami: AnalysisMetaInformation) -> Optional[List[object]]:
        """
        Analyze one file pair and register its results.

        Returns:
            The pair's results, or None if the pair was skipped
        """
        results = self._analyze(ami)
        if results is not None:
            self._register(results)
        return results

    def analyze_files(self, pairs: Iterable[AnalysisMetaInformation],
                      max_workers: Optional[int] = None) -> List[Optional[List[object]]]:
        """
        Analyze independent file pairs on a thread pool.

        Results are registered in input order once every pair is done.
        """
        pairs = list(pairs)
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = [executor.submit(self._analyze, ami) for ami in pairs]
            outcomes = [future.result() for future in futures]

        for results in outcomes:
            if results is not None:
                self._register(results)
        return outcomes

    def _analyze(self, ami: AnalysisMetaInformation) -> Optional[List[object]]:
        name = ami.repaired_file or ami.buggy_file
        try:
            view = self.differencing.diff(self.options, ami.buggy_code, ami.repaired_code, name)
        except RecoverableAnalysisError as e:
            logger.warning(f"[{type(e).__name__}] {ami.describe()}: {e}")
            with self._lock:
                self.skipped += 1
            return None

        results = self.analyze_view(ami, view)
        with self._lock:
            self.analyzed += 1
        logger.debug(f"Analyzed {ami.describe()}: {len(results)} results")
        return results

    def analyze_view(self, ami: AnalysisMetaInformation, view: CFDView) -> List[object]:
        """Run fresh detectors over an already differenced pair."""
        context = AnalysisContext(
            ami=ami,
            view=view,
            src_scopes=self.scope_builder.build(view.src_ast),
            dst_scopes=self.scope_builder.build(view.dst_ast),
        )
        driver = AnalysisDriver([factory() for factory in self.detector_factories])
        return driver.analyze(context)

    def _register(self, results: List[object]) -> None:
        with self._lock:
            for result in results:
                for data_set in self.data_sets:
                    if data_set.accepts(result):
                        data_set.register(result)
