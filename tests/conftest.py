"""Global pytest configuration and fixtures for all tests."""

import shutil
import subprocess
from pathlib import Path
import pytest

CHART_YAML = """apiVersion: v2
name: {name}
version: 0.1.0
"""

CONFIGMAP_TEMPLATE = """apiVersion: v1
kind: ConfigMap
metadata:
  name: {{{{ .Release.Name }}}}-config
data:
  key: {value}
"""


def write_chart(chart_path: Path, name: str = None, value: str = "old", chart_yaml: str = None):
    """Write a minimal chart with a single ConfigMap template."""
    (chart_path / "templates").mkdir(parents=True, exist_ok=True)
    (chart_path / "Chart.yaml").write_text(chart_yaml or CHART_YAML.format(name=name or chart_path.name))
    (chart_path / "templates" / "configmap.yaml").write_text(CONFIGMAP_TEMPLATE.format(value=value))


class GitRepo:
    """Throwaway git repository used by end-to-end tests."""

    def __init__(self, path: Path):
        self.path = path

    def git(self, *args) -> str:
        result = subprocess.run(
            ["git", *args],
            cwd=self.path,
            capture_output=True,
            text=True,
            check=True
        )
        return result.stdout

    def commit(self, message: str):
        self.git("add", "-A")
        self.git("-c", "commit.gpgsign=false", "commit", "-q", "-m", message)


@pytest.fixture
def git_repo(tmp_path, monkeypatch):
    """Initialize an empty git repository in tmp_path and chdir into it.

    Skipped when git is not installed.
    """
    if shutil.which("git") is None:
        pytest.skip("git is not installed")

    repo = GitRepo(tmp_path / "repo")
    repo.path.mkdir()
    repo.git("init", "-q")
    repo.git("config", "user.email", "test@example.com")
    repo.git("config", "user.name", "Test User")

    monkeypatch.chdir(repo.path)
    monkeypatch.delenv("NO_COLOR", raising=False)
    return repo


@pytest.fixture
def chart_history(git_repo):
    """Repository with charts/app committed twice: value 'old' then 'new'.

    Also contains charts/other, unchanged in the second commit.
    """
    write_chart(git_repo.path / "charts" / "app", value="old")
    write_chart(git_repo.path / "charts" / "other", value="same")
    git_repo.commit("initial commit")

    write_chart(git_repo.path / "charts" / "app", value="new")
    git_repo.commit("update app")

    return git_repo
