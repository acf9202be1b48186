"""Git status operations."""

from pathlib import Path

from chainrun.git.runner import run_git


def is_repository(path: Path) -> bool:
    """Check if path is inside a git work tree."""
    result = run_git(["rev-parse", "--is-inside-work-tree"], path)
    return result.success and result.stdout.strip() == "true"
