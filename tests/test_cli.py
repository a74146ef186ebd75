"""
Tests for the RepairMiner command line interface.
"""

import asyncio
import json
import os
from unittest.mock import MagicMock, patch

import pytest

from repairminer.batch import ProjectAnalysisResult
from repairminer.cli import create_parser, main
from repairminer.exceptions import GitProjectAnalysisError
from repairminer.services import get_config_service, reset_config_service

VECTORS = (
    "1,p,a.js,a.js,c1,c2,f,PARAMETER:EXPRESSION:INSERTED:global:callback:1\n"
    "2,p,a.js,a.js,c1,c2,g,PARAMETER:EXPRESSION:INSERTED:global:callback:1\n"
    "3,p,a.js,a.js,c1,c2,h,RESERVED:STATEMENT:INSERTED:global:if:1\n"
    "broken row\n"
)


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    """Keep the CLI from reconfiguring logging and from reading the environment."""
    for key in list(os.environ):
        if key.startswith("REPAIRMINER_"):
            monkeypatch.delenv(key)
    reset_config_service()
    with patch("repairminer.cli.setup_logging") as setup:
        yield setup
    reset_config_service()


def run(*argv):
    return asyncio.run(main(list(argv)))


class TestParser:
    """Test argument parsing."""

    def test_dataset_arguments(self):
        """The dataset command takes a path and output switches."""
        args = create_parser().parse_args(
            ["dataset", "--dataset-path", "v.csv", "--print-metrics"])
        assert args.command == "dataset"
        assert args.dataset_path == "v.csv"
        assert args.print_metrics is True
        assert args.print_clusters is False

    def test_project_sources_are_exclusive(self):
        """A project is either a local directory or a URI."""
        with pytest.raises(SystemExit):
            create_parser().parse_args(["project", "--git-dir", "a", "--uri", "b"])
        with pytest.raises(SystemExit):
            create_parser().parse_args(["project"])

    def test_command_required(self):
        """A command must be given."""
        with pytest.raises(SystemExit):
            create_parser().parse_args([])

    def test_help(self):
        """--help exits successfully."""
        with pytest.raises(SystemExit) as exc_info:
            create_parser().parse_args(["--help"])
        assert exc_info.value.code == 0


class TestDatasetCommand:
    """Test the dataset command."""

    def test_load_summary(self, tmp_path, capsys):
        """The number of loaded and skipped rows is printed."""
        path = tmp_path / "vectors.csv"
        path.write_text(VECTORS, encoding="utf-8")
        assert run("dataset", "--dataset-path", str(path)) == 0
        assert "Loaded 3 feature vectors (1 malformed rows skipped)" in capsys.readouterr().out

    def test_print_metrics(self, tmp_path, capsys):
        """Changed keywords are listed by frequency."""
        path = tmp_path / "vectors.csv"
        path.write_text(VECTORS, encoding="utf-8")
        assert run("dataset", "--dataset-path", str(path), "--print-metrics") == 0
        out = capsys.readouterr().out
        assert "Frequency" in out
        assert "PARAMETER:EXPRESSION:INSERTED:global:callback" in out

    def test_arff_folder(self, tmp_path):
        """Each clustered cohort is exported."""
        path = tmp_path / "vectors.csv"
        path.write_text(VECTORS, encoding="utf-8")
        arff = tmp_path / "arff"
        assert run("dataset", "--dataset-path", str(path), "--arff-folder", str(arff)) == 0
        assert list(arff.glob("*.arff"))

    def test_missing_file(self, tmp_path):
        """An unreadable data set fails the command."""
        assert run("dataset", "--dataset-path", str(tmp_path / "missing.csv")) == 1

    def test_invalid_configuration(self, tmp_path):
        """Invalid configuration values stop the CLI before the command runs."""
        config = tmp_path / "config.json"
        config.write_text(json.dumps({"analysis": {"min_height": 0}}))
        assert run("--config", str(config), "dataset", "--dataset-path", "x.csv") == 1

    def test_configuration_file_is_used(self, tmp_path):
        """The --config file drives the shared service and the cluster export."""
        path = tmp_path / "vectors.csv"
        path.write_text(VECTORS, encoding="utf-8")
        config = tmp_path / "config.json"
        config.write_text(json.dumps({"learning": {"arff_by_definition": True}}))
        arff = tmp_path / "arff"
        assert run("--config", str(config), "dataset", "--dataset-path", str(path),
                   "--arff-folder", str(arff)) == 0

        service = get_config_service(str(config))
        assert service.config_path == config
        assert service._config is not None
        assert service.get_config().learning.arff_by_definition is True
        headers = "\n".join(p.read_text(encoding="utf-8") for p in arff.glob("*.arff"))
        assert "@attribute 'PARAMETER_global_callback' numeric" in headers
        assert "'PARAMETER_EXPRESSION_INSERTED_global_callback'" not in headers

    def test_log_level_override(self, tmp_path, quiet_logging):
        """--log-level wins over the configured level."""
        path = tmp_path / "vectors.csv"
        path.write_text(VECTORS, encoding="utf-8")
        run("--log-level", "ERROR", "dataset", "--dataset-path", str(path))
        quiet_logging.assert_called_once_with("ERROR")


class TestProjectCommand:
    """Test the project command."""

    @patch("repairminer.commands.project.GitProjectAnalysis")
    def test_summary(self, analysis, tmp_path, capsys):
        """The commit and alert counts are printed."""
        project = MagicMock()
        project.analyze.return_value = ProjectAnalysisResult(
            project_id="lib", total_commits=10, bug_fixing_commits=4,
            analyzed_files=6, skipped_files=1, alerts=[])
        analysis.from_directory.return_value = project

        assert run("project", "--git-dir", str(tmp_path), "--max-workers", "2") == 0
        project.analyze.assert_called_once_with(2)
        out = capsys.readouterr().out
        assert "Project: lib" in out
        assert "Bug-fixing commits: 4 / 10" in out
        assert "File pairs analyzed: 6 (skipped 1)" in out
        assert "Alerts: 0" in out

    @patch("repairminer.commands.project.GitProjectAnalysis")
    def test_dataset_is_persisted(self, analysis, tmp_path, capsys):
        """Feature vectors are appended to the data set path."""
        project = MagicMock()
        project.analyze.return_value = ProjectAnalysisResult("lib", 1, 1, 1, 0, [])
        project.persist.return_value = 5
        analysis.from_uri.return_value = project
        dataset = tmp_path / "vectors.csv"

        assert run("project", "--uri", "https://example.com/lib.git",
                   "--checkout-dir", str(tmp_path / "co"), "--dataset-path", str(dataset)) == 0
        project.persist.assert_called_once_with(str(dataset))
        assert "Feature vectors written: 5" in capsys.readouterr().out

    @patch("repairminer.commands.project.GitProjectAnalysis")
    def test_analysis_failure(self, analysis, tmp_path):
        """A repository that cannot be read fails the command."""
        analysis.from_directory.side_effect = GitProjectAnalysisError("Not a git repository")
        assert run("project", "--git-dir", str(tmp_path)) == 1

    @patch("repairminer.commands.project.GitProjectAnalysis")
    def test_unexpected_error(self, analysis, tmp_path):
        """Unexpected exceptions are reported, not raised."""
        analysis.from_directory.return_value.analyze.side_effect = RuntimeError("boom")
        assert run("project", "--git-dir", str(tmp_path)) == 1
