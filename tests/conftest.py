"""Fixtures for repairminer tests."""

import pytest

from repairminer.analysis.runner import AnalysisRunner, ClassifierDataSet
from repairminer.ast_analysis.parser import JavaScriptParser
from repairminer.cfd import CFDOptions, ControlFlowDifferencing
from repairminer.detectors import default_detectors
from repairminer.models import AnalysisMetaInformation


@pytest.fixture
def parser():
    """Create a JavaScriptParser instance."""
    return JavaScriptParser()


@pytest.fixture
def differencer():
    """Create a ControlFlowDifferencing instance with default collaborators."""
    return ControlFlowDifferencing()


@pytest.fixture
def diff(differencer):
    """Difference two source texts."""
    def _diff(src, dst, pre_process=False):
        return differencer.diff(CFDOptions(pre_process), src, dst, "test.js")
    return _diff


@pytest.fixture
def make_ami():
    """Build the meta information of a buggy/repaired pair."""
    def _make(buggy, repaired, project="project", file="lib/test.js"):
        return AnalysisMetaInformation(
            project_id=project,
            buggy_commit_id="a" * 40,
            repaired_commit_id="b" * 40,
            buggy_file=file,
            repaired_file=file,
            buggy_code=buggy,
            repaired_code=repaired,
        )
    return _make


@pytest.fixture
def make_runner():
    """Create a runner with the default detectors and an alert data set."""
    def _make(detector_factories=None, data_sets=None):
        if detector_factories is None:
            detector_factories = default_detectors()
        if data_sets is None:
            data_sets = [ClassifierDataSet()]
        return AnalysisRunner(detector_factories, data_sets)
    return _make


@pytest.fixture
def alerts_for(make_ami, make_runner):
    """Run the default detectors on a pair and return the alerts."""
    def _alerts(buggy, repaired):
        data_set = ClassifierDataSet()
        runner = make_runner(data_sets=[data_set])
        runner.analyze_file(make_ami(buggy, repaired))
        return data_set.alerts
    return _alerts
