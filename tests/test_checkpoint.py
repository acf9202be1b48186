"""Tests for chainrun.runner.checkpoint module."""

import logging
from pathlib import Path
from unittest.mock import patch

import pytest

from chainrun.git.runner import GitResult
from chainrun.runner.checkpoint import Checkpointer, format_commit_message

OK = GitResult(returncode=0, stdout="", stderr="")
FAIL = GitResult(returncode=1, stdout="", stderr="fatal: something broke")


@pytest.fixture
def git_ok():
    """Patch every git call the checkpointer makes to succeed."""
    with patch("chainrun.git.is_repository", return_value=True) as is_repo, \
         patch("chainrun.git.stage_all", return_value=OK) as stage, \
         patch("chainrun.git.has_staged_changes", return_value=True) as staged, \
         patch("chainrun.git.commit", return_value=OK) as commit, \
         patch("chainrun.git.has_remote", return_value=True) as has_remote, \
         patch("chainrun.git.push", return_value=OK) as push:
        yield {
            "is_repository": is_repo,
            "stage_all": stage,
            "has_staged_changes": staged,
            "commit": commit,
            "has_remote": has_remote,
            "push": push,
        }


class TestFormatCommitMessage:
    """Test format_commit_message function."""

    def test_interval_message(self):
        msg = format_commit_message(5, "05-profile")
        title, _, body = msg.partition("\n\n")
        assert title == "chore: checkpoint after 5 tasks (05-profile)"
        assert "Last completed: 05-profile" in body

    def test_final_message(self):
        msg = format_commit_message(12, "12-launch", final=True)
        assert msg.startswith("chore: complete task chain (12 tasks, last 12-launch)")


class TestCheckpointer:
    """Test Checkpointer.checkpoint."""

    def test_stages_commits_and_pushes(self, git_ok):
        result = Checkpointer(Path("/repo"), remote="origin").checkpoint(5, "05-profile")

        assert result.staged and result.committed and result.pushed
        git_ok["stage_all"].assert_called_once_with(Path("/repo"))
        message = git_ok["commit"].call_args[0][1]
        assert message.startswith("chore: checkpoint after 5 tasks")
        git_ok["push"].assert_called_once_with(Path("/repo"), "origin", "HEAD")

    def test_disabled_does_nothing(self, git_ok):
        result = Checkpointer(Path("/repo"), enabled=False).checkpoint(5, "05-x")
        assert not result.staged
        git_ok["stage_all"].assert_not_called()
        git_ok["push"].assert_not_called()

    def test_not_a_repository(self, git_ok, caplog):
        caplog.set_level(logging.ERROR)
        git_ok["is_repository"].return_value = False
        result = Checkpointer(Path("/repo")).checkpoint(5, "05-x")
        assert not result.staged
        assert "[checkpoint_failure]" in caplog.text
        git_ok["stage_all"].assert_not_called()

    def test_nothing_to_commit_still_pushes(self, git_ok, caplog):
        caplog.set_level(logging.INFO)
        git_ok["has_staged_changes"].return_value = False
        result = Checkpointer(Path("/repo")).checkpoint(5, "05-x")
        assert not result.committed
        assert result.pushed
        git_ok["commit"].assert_not_called()
        assert "Nothing to commit" in caplog.text

    def test_stage_failure_is_logged_not_raised(self, git_ok, caplog):
        caplog.set_level(logging.ERROR)
        git_ok["stage_all"].return_value = FAIL
        result = Checkpointer(Path("/repo")).checkpoint(5, "05-x")
        assert not result.staged
        assert "[checkpoint_failure] git add failed: fatal: something broke" in caplog.text
        git_ok["commit"].assert_not_called()

    def test_commit_failure_skips_push(self, git_ok, caplog):
        caplog.set_level(logging.ERROR)
        git_ok["commit"].return_value = FAIL
        result = Checkpointer(Path("/repo")).checkpoint(5, "05-x")
        assert result.staged and not result.committed
        assert "git commit failed" in caplog.text
        git_ok["push"].assert_not_called()

    def test_push_failure_is_a_warning(self, git_ok, caplog):
        caplog.set_level(logging.WARNING)
        git_ok["push"].return_value = FAIL
        result = Checkpointer(Path("/repo")).checkpoint(5, "05-x")
        assert result.committed and not result.pushed
        assert "[push_failure]" in caplog.text
        assert any(r.levelno == logging.WARNING for r in caplog.records)

    def test_missing_remote_skips_push(self, git_ok, caplog):
        caplog.set_level(logging.WARNING)
        git_ok["has_remote"].return_value = False
        result = Checkpointer(Path("/repo"), remote="upstream").checkpoint(5, "05-x")
        assert result.committed and not result.pushed
        assert "No remote named 'upstream'" in caplog.text
        git_ok["push"].assert_not_called()
