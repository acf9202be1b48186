"""Git remote operations."""

from pathlib import Path

from chainrun.git.runner import run_git, GitResult

PUSH_TIMEOUT = 60


def has_remote(repo: Path, remote: str) -> bool:
    """Check if a named remote is configured."""
    result = run_git(["remote"], repo)
    return remote in result.stdout.split()


def push(worktree: Path, remote: str = "origin", ref: str = "HEAD") -> GitResult:
    """Push a ref to a remote."""
    return run_git(["push", remote, ref], worktree, timeout=PUSH_TIMEOUT)
