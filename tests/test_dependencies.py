"""Tests for the chart dependency staleness check and dependency build."""

import os
import subprocess
import sys
from pathlib import Path
import pytest

# Add parent directory to path to import the main module
sys.path.insert(0, str(Path(__file__).parent.parent))

import helm_git_diff.chart_manager as chart_manager
from helm_git_diff.chart_manager import are_dependencies_up_to_date, build_dependencies


CHART_WITH_DEPENDENCIES = """apiVersion: v2
name: app
version: 0.1.0
dependencies:
  - name: redis
    version: 17.0.0
    repository: https://charts.bitnami.com/bitnami
"""

CHART_WITHOUT_DEPENDENCIES = """apiVersion: v2
name: app
version: 0.1.0
"""


def make_chart(chart_path: Path, chart_yaml: str, lock: bool = True, charts_dir: bool = True, vendored: bool = True) -> Path:
    """Create a chart directory with optional Chart.lock and charts/ cache."""
    chart_path.mkdir(parents=True, exist_ok=True)
    (chart_path / "Chart.yaml").write_text(chart_yaml)
    if lock:
        (chart_path / "Chart.lock").write_text("dependencies: []\n")
    if charts_dir:
        (chart_path / "charts").mkdir(exist_ok=True)
        if vendored:
            (chart_path / "charts" / "redis-17.0.0.tgz").write_bytes(b"")
    set_mtime(chart_path / "Chart.yaml", 1_000_000)
    if lock:
        set_mtime(chart_path / "Chart.lock", 2_000_000)
    return chart_path


def set_mtime(path: Path, mtime: int):
    os.utime(path, (mtime, mtime))


def test_dependencies_up_to_date(tmp_path):
    """Lock newer than Chart.yaml and vendored charts: up to date."""
    chart = make_chart(tmp_path / "app", CHART_WITH_DEPENDENCIES)

    assert are_dependencies_up_to_date(chart) is True


def test_dependencies_stale_when_chart_yaml_newer_than_lock(tmp_path):
    """Chart.yaml modified after Chart.lock requires a rebuild."""
    chart = make_chart(tmp_path / "app", CHART_WITH_DEPENDENCIES)
    set_mtime(chart / "Chart.yaml", 3_000_000)

    assert are_dependencies_up_to_date(chart) is False


def test_dependencies_up_to_date_with_equal_mtimes(tmp_path):
    """Equal modification times (e.g. files extracted from git archive) are not stale."""
    chart = make_chart(tmp_path / "app", CHART_WITH_DEPENDENCIES)
    set_mtime(chart / "Chart.yaml", 2_000_000)

    assert are_dependencies_up_to_date(chart) is True


@pytest.mark.parametrize("missing", ["lock", "charts_dir"])
def test_dependencies_stale_when_files_missing(tmp_path, missing):
    """Missing Chart.lock or charts/ directory requires a rebuild."""
    chart = make_chart(tmp_path / "app", CHART_WITH_DEPENDENCIES, **{missing: False})

    assert are_dependencies_up_to_date(chart) is False


def test_dependencies_stale_when_cache_empty(tmp_path):
    """Declared dependencies with an empty charts/ directory require a rebuild."""
    chart = make_chart(tmp_path / "app", CHART_WITH_DEPENDENCIES, vendored=False)

    assert are_dependencies_up_to_date(chart) is False


def test_no_dependencies_with_empty_cache_is_up_to_date(tmp_path):
    """A chart without dependencies only needs the lock and charts/ directory."""
    chart = make_chart(tmp_path / "app", CHART_WITHOUT_DEPENDENCIES, vendored=False)

    assert are_dependencies_up_to_date(chart) is True


def test_missing_chart_yaml_is_not_up_to_date(tmp_path):
    """No Chart.yaml: nothing can be up to date."""
    assert are_dependencies_up_to_date(tmp_path) is False


class TestBuildDependencies:
    """Test cases for build_dependencies."""

    @pytest.fixture
    def helm_calls(self, monkeypatch):
        calls = []

        def fake_run_command(cmd, cwd=None, input=None, text=True, merge_stderr=False, verbose=False):
            calls.append(cmd)
            return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")

        monkeypatch.setattr(chart_manager, "run_command", fake_run_command)
        return calls

    def test_runs_helm_dependency_build_when_stale(self, tmp_path, helm_calls):
        chart = make_chart(tmp_path / "app", CHART_WITH_DEPENDENCIES, lock=False)

        build_dependencies(chart)

        assert helm_calls == [["helm", "dependency", "build", str(chart)]]

    def test_skips_when_up_to_date(self, tmp_path, helm_calls):
        chart = make_chart(tmp_path / "app", CHART_WITH_DEPENDENCIES)

        build_dependencies(chart)

        assert helm_calls == []

    def test_skips_when_requested(self, tmp_path, helm_calls):
        chart = make_chart(tmp_path / "app", CHART_WITH_DEPENDENCIES, lock=False)

        build_dependencies(chart, skip_build=True)

        assert helm_calls == []

    def test_skips_without_chart_yaml(self, tmp_path, helm_calls):
        build_dependencies(tmp_path)

        assert helm_calls == []

    def test_failure_reports_combined_helm_output(self, tmp_path, monkeypatch):
        """helm output is captured with stderr interleaved into stdout."""
        chart = make_chart(tmp_path / "app", CHART_WITH_DEPENDENCIES, lock=False)
        merge_flags = []

        def failing_run_command(cmd, cwd=None, input=None, text=True, merge_stderr=False, verbose=False):
            merge_flags.append(merge_stderr)
            output = "Saving 1 charts\nError: no repository definition for redis\n" if merge_stderr else "Saving 1 charts\n"
            return subprocess.CompletedProcess(cmd, 1, stdout=output, stderr=None)

        monkeypatch.setattr(chart_manager, "run_command", failing_run_command)

        with pytest.raises(RuntimeError) as exc_info:
            build_dependencies(chart)

        assert merge_flags == [True]
        assert str(exc_info.value) == (
            "helm dependency build failed: Saving 1 charts\nError: no repository definition for redis\n"
        )
