"""Unified diff generation and colorization for rendered manifests."""

import difflib
import click


def unified_diff(old: str, new: str, from_label: str, to_label: str, context: int = 3) -> str:
    """
    Return a unified diff of two manifests, or an empty string if identical.

    A missing trailing newline is added so every diff line ends with one.
    """
    old_lines = old.splitlines(keepends=True)
    new_lines = new.splitlines(keepends=True)

    diff_lines = []
    for line in difflib.unified_diff(old_lines, new_lines, fromfile=from_label, tofile=to_label, n=context):
        if not line.endswith("\n"):
            line += "\n"
        diff_lines.append(line)

    return "".join(diff_lines)


def colorize_line(line: str) -> str:
    """Colorize a single diff line (without its newline)."""
    if line.startswith(("--- ", "+++ ", "@@")):
        return click.style(line, fg="cyan")
    if line.startswith("-"):
        return click.style(line, fg="red")
    if line.startswith("+"):
        return click.style(line, fg="green")
    return line


def colorize_diff(diff: str) -> str:
    """Colorize a unified diff: headers and hunks cyan, removals red, additions green."""
    return "\n".join(colorize_line(line) for line in diff.split("\n"))
