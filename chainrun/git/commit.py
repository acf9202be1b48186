"""Git staging and commit operations."""

from pathlib import Path

from chainrun.git.runner import run_git, GitResult


def stage_all(worktree: Path) -> GitResult:
    """Stage all changes (new, modified, deleted)."""
    return run_git(["add", "-A"], worktree)


def commit(worktree: Path, message: str) -> GitResult:
    """Create a commit with the given (possibly multi-line) message."""
    return run_git(["commit", "-m", message], worktree)


def has_staged_changes(worktree: Path) -> bool:
    """Check if the index differs from HEAD."""
    result = run_git(["diff", "--cached", "--quiet"], worktree)
    # exit 0 = nothing staged, exit 1 = staged changes
    return result.returncode == 1
