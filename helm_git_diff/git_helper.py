"""Git repository operations and utilities."""

import os
from pathlib import Path
from .utils import log, run_command


def run_git(args: list[str], cwd: Path = None, verbose: bool = False) -> str:
    """
    Run a git command and return its stdout.

    Raises:
        RuntimeError: If git exits with a non-zero code
    """
    result = run_command(["git"] + args, cwd=cwd, verbose=verbose)
    if result.returncode != 0:
        raise RuntimeError(f"git {args[0]} failed: {result.stderr.strip()}")
    return result.stdout


def check_git_repo(verbose: bool = False):
    """
    Check that the current directory is part of a git repository.

    Raises:
        RuntimeError: If the current directory is not in a git repository
    """
    result = run_command(["git", "rev-parse", "--git-dir"], verbose=verbose)
    if result.returncode != 0:
        raise RuntimeError("not a git repository (or any of the parent directories)")


def resolve_git_root(verbose: bool = False) -> Path:
    """Return the top-level directory of the git work tree."""
    git_root = Path(run_git(["rev-parse", "--show-toplevel"], verbose=verbose).strip())
    log(f"Git root: {git_root}", verbose)
    return git_root


def get_changed_files(base: str, current: str, verbose: bool = False) -> list[str]:
    """List files changed between two git references (paths relative to the git root)."""
    output = run_git(["diff", "--name-only", base, current], verbose=verbose)
    return [line for line in output.splitlines() if line.strip()]


def show_file(ref: str, path: str, cwd: Path = None, verbose: bool = False) -> str:
    """
    Return the content of a file at a git reference.

    Raises:
        RuntimeError: If the file does not exist at the reference
    """
    return run_git(["show", f"{ref}:{path}"], cwd=cwd, verbose=verbose)


def verify_ref(ref: str, cwd: Path = None, verbose: bool = False) -> str:
    """
    Resolve a git reference to a commit hash.

    Raises:
        RuntimeError: If the reference does not name a commit
    """
    result = run_command(["git", "rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"], cwd=cwd, verbose=verbose)
    if result.returncode != 0:
        raise RuntimeError(f"invalid git reference: {ref}")
    return result.stdout.strip()


def path_exists_at_ref(ref: str, path: str, cwd: Path = None, verbose: bool = False) -> bool:
    """Check if a path (file or directory) exists at a git reference."""
    # "ref:" names the root tree
    object_name = f"{ref}:" if path == "." else f"{ref}:{path}"
    result = run_command(["git", "cat-file", "-e", object_name], cwd=cwd, verbose=verbose)
    return result.returncode == 0


def archive_paths(ref: str, paths: list[str], cwd: Path, verbose: bool = False) -> bytes:
    """
    Produce a tar archive of the given paths at a git reference.

    Raises:
        RuntimeError: If git archive fails
    """
    cmd = ["git", "archive", ref] + [str(p) for p in paths]
    result = run_command(cmd, cwd=cwd, text=False, verbose=verbose)
    if result.returncode != 0:
        stderr = result.stderr.decode(errors="replace").strip()
        raise RuntimeError(f"archiving chart paths at {ref} (stderr: {stderr})")
    return result.stdout


def get_workdir_chart_path(git_relative_path, verbose: bool = False) -> Path:
    """
    Map a git-relative chart path to a path in the working directory.

    - Absolute paths are returned as is
    - Paths starting with '.' are taken relative to the current directory's
      position inside the repository
    - Anything else is joined onto the git root

    Raises:
        RuntimeError: If the git root cannot be determined
    """
    git_root = resolve_git_root(verbose)
    path = str(git_relative_path)

    if os.path.isabs(path):
        return Path(path)

    if path.startswith("."):
        cwd_relative_to_git = os.path.relpath(Path.cwd().resolve(), git_root.resolve())
        return Path(os.path.normpath(git_root / cwd_relative_to_git / path))

    return git_root / path
