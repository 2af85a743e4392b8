"""Chart inspection, extraction and dependency management utilities."""

import posixpath
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional
import yaml
from .utils import log, run_command
from .git_helper import get_changed_files, show_file, archive_paths, path_exists_at_ref, resolve_git_root, verify_ref


CHART_YAML = "Chart.yaml"
CHART_LOCK = "Chart.lock"
CHARTS_DIR = "charts"
LOCAL_REPOSITORY_PREFIX = "file://"


def load_chart_metadata(content: str) -> dict:
    """
    Parse Chart.yaml content.

    Returns:
        dict: Chart metadata, empty if the document is empty

    Raises:
        ValueError: If the document is not a mapping
        yaml.YAMLError: If the document is not valid YAML
    """
    metadata = yaml.safe_load(content)
    if metadata is None:
        return {}
    if not isinstance(metadata, dict):
        raise ValueError("Chart.yaml must contain a mapping")
    return metadata


def read_chart_metadata(chart_yaml: Path) -> dict:
    """Load and parse a Chart.yaml file from disk."""
    with open(chart_yaml) as f:
        return load_chart_metadata(f.read())


def is_library_chart(chart_yaml: Path) -> bool:
    """Check if the chart declares 'type: library' (library charts render nothing)."""
    try:
        metadata = read_chart_metadata(chart_yaml)
    except yaml.YAMLError as e:
        raise RuntimeError(f"parsing {chart_yaml}: {e}")
    except ValueError as e:
        raise RuntimeError(f"{chart_yaml}: {e}")
    return str(metadata.get("type", "")).strip() == "library"


def has_dependencies(metadata: dict) -> bool:
    """Check if chart metadata declares any dependency."""
    return bool(metadata.get("dependencies"))


def get_local_dependencies(metadata: dict) -> list[str]:
    """
    Get the paths of dependencies stored next to the chart (repository: file://...).

    Returns:
        list[str]: Dependency paths relative to the chart directory
    """
    local_deps = []
    for dependency in metadata.get("dependencies") or []:
        if not isinstance(dependency, dict):
            continue
        repository = str(dependency.get("repository") or "").strip().strip("\"'")
        if repository.startswith(LOCAL_REPOSITORY_PREFIX):
            local_deps.append(repository[len(LOCAL_REPOSITORY_PREFIX):])
    return local_deps


def charts_from_changed_files(changed_files: list[str], chart_dir: str) -> list[str]:
    """
    Map changed file paths to the names of the charts containing them.

    A file belongs to chart X when it lives under <chart_dir>/X/.
    Files directly in chart_dir are not part of any chart.

    Returns:
        list[str]: Sorted, de-duplicated chart names
    """
    prefix = posixpath.normpath(str(chart_dir))
    charts = set()

    for changed_file in changed_files:
        if not changed_file:
            continue

        if prefix == ".":
            relative = changed_file
        elif changed_file.startswith(prefix + "/"):
            relative = changed_file[len(prefix) + 1:]
        else:
            continue

        parts = relative.split("/")
        if len(parts) >= 2 and parts[0]:
            charts.add(parts[0])

    return sorted(charts)


def detect_changed_charts(config) -> list[str]:
    """Detect charts with changes between config.base and config.current."""
    changed_files = get_changed_files(config.base, config.current, config.verbose)
    log(f"Changed files: {len(changed_files)}", config.verbose)
    return charts_from_changed_files(changed_files, config.chart_dir)


def get_chart_paths_to_extract(git_root: Path, ref: str, chart_path: str, verbose: bool = False) -> list[str]:
    """
    Get the git-relative paths needed to render a chart at a reference.

    Includes the chart itself plus every local (file://) dependency declared
    in its Chart.yaml at that reference. If Chart.yaml cannot be read there,
    only the chart path is returned.
    """
    paths = [chart_path]

    try:
        content = show_file(ref, f"{chart_path}/{CHART_YAML}", cwd=git_root, verbose=verbose)
    except RuntimeError:
        log(f"No {CHART_YAML} for {chart_path} at {ref}", verbose)
        return paths

    try:
        metadata = load_chart_metadata(content)
    except (yaml.YAMLError, ValueError) as e:
        log(f"Ignoring dependencies of {chart_path} at {ref}: {e}", verbose)
        return paths

    for dependency_path in get_local_dependencies(metadata):
        full_path = posixpath.normpath(posixpath.join(chart_path, dependency_path))
        if full_path not in paths:
            log(f"Local dependency: {full_path}", verbose)
            paths.append(full_path)

    return paths


def are_dependencies_up_to_date(chart_path: Path) -> bool:
    """
    Check if the chart dependency cache can be used as is.

    Returns False if:
    - Chart.yaml, Chart.lock or the charts/ directory is missing
    - Chart.yaml was modified after Chart.lock
    - Chart.yaml declares dependencies but charts/ is empty
    """
    chart_yaml = chart_path / CHART_YAML
    chart_lock = chart_path / CHART_LOCK
    charts_dir = chart_path / CHARTS_DIR

    if not chart_yaml.is_file() or not chart_lock.is_file() or not charts_dir.is_dir():
        return False

    if chart_yaml.stat().st_mtime > chart_lock.stat().st_mtime:
        return False

    try:
        metadata = read_chart_metadata(chart_yaml)
    except (OSError, yaml.YAMLError, ValueError):
        return False

    if not has_dependencies(metadata):
        return True

    return any(charts_dir.iterdir())


def build_dependencies(chart_path: Path, skip_build: bool = False, verbose: bool = False):
    """
    Run 'helm dependency build' unless the dependencies are already up to date.

    Raises:
        RuntimeError: If helm dependency build fails
    """
    if not (chart_path / CHART_YAML).exists():
        return

    if skip_build:
        log(f"Skipping dependency build for {chart_path}", verbose)
        return

    if are_dependencies_up_to_date(chart_path):
        log(f"Dependencies of {chart_path} are up to date", verbose)
        return

    result = run_command(["helm", "dependency", "build", str(chart_path)], merge_stderr=True, verbose=verbose)
    if result.returncode != 0:
        raise RuntimeError(f"helm dependency build failed: {result.stdout}")


@contextmanager
def extract_chart_at_ref(chart_path: str, ref: str, verbose: bool = False) -> Iterator[Optional[Path]]:
    """
    Extract a chart (and its local dependencies) at a git reference into a temporary directory.

    Yields:
        Path to the extracted chart, or None if nothing exists at the reference.
        The temporary directory is removed on exit.

    Raises:
        RuntimeError: If ref does not name a commit, or archiving/extraction fails
    """
    git_root = resolve_git_root(verbose)
    verify_ref(ref, cwd=git_root, verbose=verbose)

    # A chart added after ref renders as nothing
    if not path_exists_at_ref(ref, chart_path, cwd=git_root, verbose=verbose):
        log(f"{chart_path} does not exist at {ref}", verbose)
        yield None
        return

    paths = [
        path for path in get_chart_paths_to_extract(git_root, ref, chart_path, verbose)
        if path == chart_path or path_exists_at_ref(ref, path, cwd=git_root, verbose=verbose)
    ]

    with tempfile.TemporaryDirectory(prefix="helm-git-diff-") as tmp_dir:
        archive = archive_paths(ref, paths, git_root, verbose)

        if not archive:
            yield None
            return

        log(f"Extracting {', '.join(paths)} at {ref} to {tmp_dir}", verbose)
        result = run_command(["tar", "x", "-C", tmp_dir], input=archive, text=False, verbose=verbose)
        if result.returncode != 0:
            stderr = result.stderr.decode(errors="replace").strip()
            raise RuntimeError(f"extracting archive: {stderr}")

        yield Path(tmp_dir) / chart_path
