#!/usr/bin/env -S uv run --quiet --script
# /// script
# dependencies = [
#   "pyyaml",
#   "click>=8.0",
# ]
# ///
"""
helm-git-diff - Show Kubernetes manifest differences between git references for Helm charts.
Entry point used by the Helm plugin (helm git-diff).
"""

from helm_git_diff import cli

if __name__ == "__main__":
    cli()
