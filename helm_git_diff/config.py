"""
DiffConfig class holding the options and run state of a helm-git-diff run,
plus detection of the chart context and color support.
"""

import os
import sys
from pathlib import Path
from typing import Optional
from .utils import log, split_comma_list
from .git_helper import resolve_git_root
from .chart_manager import CHART_YAML


DEFAULT_BASE = "origin/main"
DEFAULT_CURRENT = "HEAD"
DEFAULT_CHART_DIR = "."
DEFAULT_RELEASE_NAME = "release-name"


class DiffConfig:
    """
    Options of a helm-git-diff run.

    Besides the user options, it carries two pieces of run state:
    - has_differences: set once any chart renders differently
    - use_color: whether diff output is colorized
    """

    def __init__(
        self,
        base: str = DEFAULT_BASE,
        current: str = DEFAULT_CURRENT,
        charts: Optional[list[str]] = None,
        chart_dir: str = DEFAULT_CHART_DIR,
        values_files: Optional[list[str]] = None,
        set_values: Optional[list[str]] = None,
        release_name: str = DEFAULT_RELEASE_NAME,
        fail_on_diff: bool = False,
        no_color: bool = False,
        skip_dependency_build: bool = False,
        verbose: bool = False,
    ):
        self.base = base
        self.current = current
        self.charts = list(charts or [])
        self.chart_dir = chart_dir
        self.values_files = split_comma_list(values_files)
        self.set_values = list(set_values or [])
        self.release_name = release_name
        self.fail_on_diff = fail_on_diff
        self.no_color = no_color
        self.skip_dependency_build = skip_dependency_build
        self.verbose = verbose

        self.has_differences = False
        self.use_color = False

    def renders_workdir(self) -> bool:
        """Whether the current side is rendered from the working directory."""
        return self.current == DEFAULT_CURRENT

    def __repr__(self) -> str:
        return (
            f"DiffConfig(base={self.base!r}, current={self.current!r}, "
            f"chart_dir={self.chart_dir!r}, charts={self.charts!r})"
        )


def is_terminal(stream) -> bool:
    """Check if a stream is attached to a terminal."""
    try:
        return stream.isatty()
    except (AttributeError, ValueError):
        return False


def should_use_color(no_color: bool, stream=None) -> bool:
    """
    Decide whether to colorize output.

    Color is disabled by --no-color, by a non-empty NO_COLOR environment
    variable, or when the output is not a terminal.
    """
    if no_color:
        return False
    if os.environ.get("NO_COLOR"):
        return False
    return is_terminal(stream if stream is not None else sys.stdout)


def detect_chart_context(config: DiffConfig, cwd: Path = None):
    """
    Use the current directory as the chart when run from inside a chart.

    Only applies when no charts were given explicitly and the directory
    contains Chart.yaml: chart_dir becomes its git-relative parent and the
    directory name becomes the chart.

    Raises:
        RuntimeError: If the git root cannot be determined
    """
    if config.charts:
        return

    cwd = cwd or Path.cwd()
    if not (cwd / CHART_YAML).exists():
        return

    git_root = resolve_git_root(config.verbose)
    relative_path = Path(os.path.relpath(cwd.resolve(), git_root.resolve()))

    config.chart_dir = relative_path.parent.as_posix()
    config.charts = [relative_path.name or "."]
    log(f"Chart context: {config.chart_dir}/{config.charts[0]}", config.verbose)
