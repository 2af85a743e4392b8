"""Common utility functions for helm-git-diff."""

import subprocess
import sys
from pathlib import Path


def log(message: str, verbose: bool = False):
    """Print message only if verbose mode is enabled."""
    if verbose:
        print(message, file=sys.stderr)


def split_comma_list(values) -> list[str]:
    """
    Flatten a sequence of comma-separated strings into a list of items.

    ["a.yaml,b.yaml", " c.yaml "] -> ["a.yaml", "b.yaml", "c.yaml"]
    Empty items are dropped.
    """
    items = []
    for value in values or []:
        for item in value.split(","):
            item = item.strip()
            if item:
                items.append(item)
    return items


def run_command(cmd: list[str], cwd: Path = None, input: bytes = None, text: bool = True, merge_stderr: bool = False, verbose: bool = False) -> subprocess.CompletedProcess:
    """
    Run an external command and capture its output.

    With merge_stderr, stderr is interleaved into stdout.

    Raises:
        RuntimeError: If the executable is not on PATH
    """
    log(f"Running: {' '.join(cmd)}", verbose)
    try:
        return subprocess.run(
            cmd,
            cwd=str(cwd) if cwd else None,
            input=input,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT if merge_stderr else subprocess.PIPE,
            text=text
        )
    except FileNotFoundError:
        raise RuntimeError(f"{cmd[0]} executable not found on PATH")
