"""
Git checkpoints for chainrun.

A checkpoint stages the whole working tree, commits it, and tries to push.
It is a best-effort side channel: nothing here raises, and no failure ever
stops the task chain.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from chainrun import git
from chainrun.lib.errors import ErrorKind

logger = logging.getLogger(__name__)


@dataclass
class CheckpointResult:
    staged: bool = False
    committed: bool = False
    pushed: bool = False


def format_commit_message(completed_count: int, label: str, final: bool = False) -> str:
    """Build the multi-line checkpoint commit message."""
    if final:
        title = f"chore: complete task chain ({completed_count} tasks, last {label})"
        body = f"All tasks completed. {completed_count} finished in this run."
    else:
        title = f"chore: checkpoint after {completed_count} tasks ({label})"
        body = f"Automatic checkpoint after completing {completed_count} tasks."
    return (
        f"{title}\n"
        f"\n"
        f"{body}\n"
        f"Last completed: {label}\n"
    )


class Checkpointer:
    """Stage, commit and push the working tree."""

    def __init__(self, repo_path: Path, remote: str = "origin", enabled: bool = True):
        self.repo_path = Path(repo_path)
        self.remote = remote
        self.enabled = enabled

    def checkpoint(self, completed_count: int, label: str, final: bool = False) -> CheckpointResult:
        result = CheckpointResult()
        if not self.enabled:
            logger.info(f"Checkpoints disabled, skipping checkpoint after {completed_count} tasks")
            return result

        kind = "final checkpoint" if final else "checkpoint"
        logger.info(f"Creating git {kind} after {completed_count} tasks ({label})...")

        if not git.is_repository(self.repo_path):
            logger.error(
                f"[{ErrorKind.CHECKPOINT_FAILURE.value}] {self.repo_path} is not a git work tree"
            )
            return result

        staged = git.stage_all(self.repo_path)
        if not staged.success:
            logger.error(f"[{ErrorKind.CHECKPOINT_FAILURE.value}] git add failed: {staged.message}")
            return result
        result.staged = True
        logger.info("Staged working tree changes")

        if git.has_staged_changes(self.repo_path):
            committed = git.commit(self.repo_path, format_commit_message(completed_count, label, final))
            if not committed.success:
                logger.error(f"[{ErrorKind.CHECKPOINT_FAILURE.value}] git commit failed: {committed.message}")
                return result
            result.committed = True
            logger.info(f"Committed {kind}: {label}")
        else:
            logger.info("Nothing to commit, working tree clean")

        if not git.has_remote(self.repo_path, self.remote):
            logger.warning(
                f"[{ErrorKind.PUSH_FAILURE.value}] No remote named '{self.remote}', "
                f"checkpoint kept locally"
            )
            return result

        pushed = git.push(self.repo_path, self.remote, "HEAD")
        if pushed.success:
            result.pushed = True
            logger.info(f"Pushed checkpoint to {self.remote}")
        else:
            logger.warning(
                f"[{ErrorKind.PUSH_FAILURE.value}] Committed locally but failed to push "
                f"to {self.remote}: {pushed.message}"
            )
        return result
