"""
helm-git-diff - Show Kubernetes manifest differences between git references for Helm charts.
Renders each chart at a base and a current git reference and prints a unified diff.
"""

import posixpath
import click

from .config import (
    DiffConfig,
    DEFAULT_BASE,
    DEFAULT_CURRENT,
    DEFAULT_CHART_DIR,
    DEFAULT_RELEASE_NAME,
    detect_chart_context,
    should_use_color,
)
from .utils import log
from .git_helper import check_git_repo, get_workdir_chart_path
from .chart_manager import CHART_YAML, detect_changed_charts, is_library_chart
from .helm_executor import render_chart_at_ref, render_chart_from_workdir
from .diff import unified_diff, colorize_diff

__version__ = "0.1.0"


def diff_chart(config: DiffConfig, chart_name: str) -> bool:
    """
    Render a chart at the base and current references and print the diff.

    The current side is rendered from the working directory when
    config.current is HEAD, so uncommitted changes are included.

    Returns:
        bool: True if the rendered manifests differ

    Raises:
        RuntimeError: If the chart is invalid or rendering fails
    """
    chart_path = posixpath.normpath(posixpath.join(config.chart_dir, chart_name))

    try:
        workdir_path = get_workdir_chart_path(chart_path, config.verbose)
    except RuntimeError as e:
        raise RuntimeError(f"getting workdir chart path: {e}") from e

    chart_yaml = workdir_path / CHART_YAML
    if not chart_yaml.exists():
        raise RuntimeError(f"no {CHART_YAML} found in {chart_path} - not a valid Helm chart")

    try:
        is_library = is_library_chart(chart_yaml)
    except RuntimeError as e:
        raise RuntimeError(f"checking chart type: {e}") from e
    if is_library:
        click.echo(f"{chart_name}: skipped (library chart)")
        return False

    try:
        base_manifest = render_chart_at_ref(chart_path, config.base, config)
    except RuntimeError as e:
        raise RuntimeError(f"rendering base manifest: {e}") from e

    try:
        if config.renders_workdir():
            current_manifest = render_chart_from_workdir(workdir_path, config)
        else:
            current_manifest = render_chart_at_ref(chart_path, config.current, config)
    except RuntimeError as e:
        raise RuntimeError(f"rendering current manifest: {e}") from e

    if base_manifest == current_manifest:
        click.echo(f"{chart_name}: no changes")
        return False

    config.has_differences = True

    diff_text = unified_diff(
        base_manifest,
        current_manifest,
        from_label=f"{chart_name} ({config.base})",
        to_label=f"{chart_name} ({config.current})",
    )

    if config.use_color:
        diff_text = colorize_diff(diff_text)
    click.echo(diff_text, nl=False, color=config.use_color)

    return True


def run(config: DiffConfig) -> bool:
    """
    Diff every requested chart, detecting changed charts if none were given.

    Returns:
        bool: True if any chart has differences

    Raises:
        RuntimeError: On the first chart that fails
    """
    if not config.charts:
        try:
            config.charts = detect_changed_charts(config)
        except RuntimeError as e:
            raise RuntimeError(f"detecting changed charts: {e}") from e

        if not config.charts:
            click.echo("No chart changes detected")
            return False

        click.echo(f"Detected changed charts: {', '.join(config.charts)}\n")

    for chart_name in config.charts:
        log(f"Diffing chart {chart_name}...", config.verbose)
        try:
            diff_chart(config, chart_name)
        except RuntimeError as e:
            raise RuntimeError(f"diffing chart {chart_name}: {e}") from e

    return config.has_differences


@click.command(context_settings=dict(help_option_names=["-h", "--help"]))
@click.version_option(version=__version__, prog_name='helm-git-diff')
@click.option(
    '--base',
    default=DEFAULT_BASE,
    show_default=True,
    help='Base git reference to compare from'
)
@click.option(
    '--current',
    default=DEFAULT_CURRENT,
    show_default=True,
    help='Current git reference to compare to (HEAD renders the working directory)'
)
@click.option(
    '--chart-dir',
    default=DEFAULT_CHART_DIR,
    show_default=True,
    help='Directory containing Helm charts, relative to the git root'
)
@click.option(
    '--values',
    'values_files',
    multiple=True,
    help='Values files to use (comma-separated, can be given multiple times)'
)
@click.option(
    '--set',
    'set_values',
    multiple=True,
    help='Set values on the command line (can be given multiple times: --set key1=val1 --set key2=val2)'
)
@click.option(
    '--release-name',
    default=DEFAULT_RELEASE_NAME,
    show_default=True,
    help='Release name used when rendering templates'
)
@click.option(
    '--fail-on-diff',
    is_flag=True,
    help='Exit with code 1 if differences are found'
)
@click.option(
    '--no-color',
    is_flag=True,
    help='Disable colored output (also disabled by the NO_COLOR environment variable)'
)
@click.option(
    '--skip-dependency-build',
    is_flag=True,
    help='Skip building chart dependencies (use if dependencies are already up to date)'
)
@click.option(
    '--verbose',
    is_flag=True,
    help='Enable verbose output'
)
@click.argument('charts', nargs=-1)
@click.pass_context
def cli(ctx, base, current, chart_dir, values_files, set_values, release_name, fail_on_diff, no_color, skip_dependency_build, verbose, charts):
    """Show Kubernetes resource differences between git commits for Helm charts.

    Renders each CHART at the base and current references and prints a
    unified diff. Without CHART arguments, charts with changes between the
    two references are detected (or the current directory is used when it
    contains a Chart.yaml).

    Examples:

      helm git-diff

      helm git-diff --base v1.2.0 --chart-dir charts my-app

      helm git-diff --values values-prod.yaml --set image.tag=test --fail-on-diff
    """
    config = DiffConfig(
        base=base,
        current=current,
        charts=list(charts),
        chart_dir=chart_dir,
        values_files=list(values_files),
        set_values=list(set_values),
        release_name=release_name,
        fail_on_diff=fail_on_diff,
        no_color=no_color,
        skip_dependency_build=skip_dependency_build,
        verbose=verbose,
    )

    try:
        check_git_repo(verbose)
    except RuntimeError as e:
        raise click.ClickException(str(e))

    try:
        detect_chart_context(config)
    except RuntimeError as e:
        click.echo(f"Warning: {e}", err=True)

    config.use_color = should_use_color(config.no_color)
    log(f"Config: {config!r}", verbose)

    try:
        run(config)
    except RuntimeError as e:
        raise click.ClickException(str(e))

    if config.fail_on_diff and config.has_differences:
        ctx.exit(1)


__all__ = ["cli", "run", "diff_chart", "DiffConfig"]
