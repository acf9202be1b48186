"""Git operations used by the checkpointer.

Return type conventions:
- Functions returning GitResult: Caller must check .success before using output.
  Examples: stage_all(), commit(), push()
- Functions returning bool: True on success/condition met, False otherwise.
  Examples: is_repository(), has_staged_changes(), has_remote()
"""

from chainrun.git.runner import GitResult, run_git
from chainrun.git.status import (
    is_repository,
)
from chainrun.git.commit import (
    stage_all,
    commit,
    has_staged_changes,
)
from chainrun.git.remote import (
    has_remote,
    push,
)

__all__ = [
    "GitResult",
    "run_git",
    # status
    "is_repository",
    # commit
    "stage_all",
    "commit",
    "has_staged_changes",
    # remote
    "has_remote",
    "push",
]
