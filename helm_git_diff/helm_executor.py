"""Helm command execution and chart rendering utilities."""

from pathlib import Path
from .utils import log, run_command
from .chart_manager import build_dependencies, extract_chart_at_ref


def compute_helm_args(config, cwd: Path = None) -> list[str]:
    """
    Compute helm template arguments for values files and --set overrides.

    Relative values file paths are resolved against cwd (default: current
    directory), so they stay valid when the chart is rendered from a
    temporary extraction directory.

    Returns:
        list[str]: e.g. ['-f', '/abs/values.yaml', '--set', 'image.tag=v2']
    """
    cwd = cwd or Path.cwd()
    args = []

    for values_file in config.values_files:
        values_path = Path(values_file)
        if not values_path.is_absolute():
            values_path = cwd / values_path
        args.extend(["-f", str(values_path)])

    for set_value in config.set_values:
        args.extend(["--set", set_value])

    return args


def run_helm_template(chart_path: Path, release_name: str, helm_args: list[str], verbose: bool = False) -> str:
    """
    Run helm template and return the rendered manifest.

    Raises:
        RuntimeError: If helm template fails
    """
    # Syntax: helm template [NAME] [CHART] [flags]
    cmd = ["helm", "template", release_name, str(chart_path)]
    cmd.extend(helm_args)

    result = run_command(cmd, verbose=verbose)

    if result.returncode != 0:
        raise RuntimeError(f"helm template failed: {result.stderr}")
    elif verbose and result.stderr:
        log(result.stderr, verbose)

    return result.stdout


def render_chart_from_workdir(chart_path: Path, config) -> str:
    """Render a chart from the working directory, uncommitted changes included."""
    try:
        build_dependencies(chart_path, config.skip_dependency_build, config.verbose)
    except RuntimeError as e:
        raise RuntimeError(f"building dependencies: {e}") from e

    log(f"Rendering {chart_path} from working directory", config.verbose)
    return run_helm_template(chart_path, config.release_name, compute_helm_args(config), config.verbose)


def render_chart_at_ref(chart_path: str, ref: str, config) -> str:
    """
    Render a chart as it exists at a git reference.

    Returns an empty manifest if the chart does not exist at the reference.
    """
    with extract_chart_at_ref(chart_path, ref, config.verbose) as extracted_chart_path:
        if extracted_chart_path is None:
            return ""

        try:
            build_dependencies(extracted_chart_path, config.skip_dependency_build, config.verbose)
        except RuntimeError as e:
            raise RuntimeError(f"building dependencies: {e}") from e

        log(f"Rendering {chart_path} at {ref}", config.verbose)
        return run_helm_template(extracted_chart_path, config.release_name, compute_helm_args(config), config.verbose)
