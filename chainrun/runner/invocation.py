"""
External tool invocation strategies.

How a prompt reaches the tool depends on the host: POSIX hosts always pipe
the prompt file into stdin; Windows passes short prompts as a trailing
argument and pipes long ones, since very long command lines are unreliable
there. select_invocation() picks the strategy once at startup so callers
never branch on platform.

Every strategy either returns a CompletedProcess or raises
subprocess.TimeoutExpired (the child is killed at the timeout boundary).
"""

import shutil
import subprocess
import sys
from pathlib import Path
from typing import Optional

DEFAULT_INLINE_PROMPT_LIMIT = 8000


def resolve_command(command: list[str]) -> list[str]:
    """Replace the program name with its full path when it is on PATH.

    subprocess.run without a shell does not apply PATHEXT on Windows, so a
    bare "claude" would miss the claude.cmd shim that shutil.which finds.
    """
    if not command:
        return command
    return [shutil.which(command[0]) or command[0]] + command[1:]


class Invocation:
    """Strategy interface."""
    name = "base"

    def invoke(
        self,
        command: list[str],
        instruction: str,
        prompt_file: Path,
        timeout: float,
        cwd: Optional[Path] = None,
        env: Optional[dict] = None,
    ) -> subprocess.CompletedProcess:
        raise NotImplementedError

    @staticmethod
    def _run_with_stdin_file(command, prompt_file, timeout, cwd, env):
        with open(prompt_file, "rb") as stdin:
            return subprocess.run(
                resolve_command(command),
                stdin=stdin,
                capture_output=True,
                timeout=timeout,
                cwd=str(cwd) if cwd else None,
                env=env,
            )

    @staticmethod
    def _run_with_argument(command, instruction, timeout, cwd, env):
        return subprocess.run(
            resolve_command(command) + [instruction],
            stdin=subprocess.DEVNULL,
            capture_output=True,
            timeout=timeout,
            cwd=str(cwd) if cwd else None,
            env=env,
        )


class PosixInvocation(Invocation):
    """Pipe the prompt file to the tool's stdin."""
    name = "posix"

    def invoke(self, command, instruction, prompt_file, timeout, cwd=None, env=None):
        return self._run_with_stdin_file(command, prompt_file, timeout, cwd, env)


class WindowsInvocation(Invocation):
    """Short prompts as an argument, long prompts through stdin."""
    name = "windows"

    def __init__(self, inline_limit: int = DEFAULT_INLINE_PROMPT_LIMIT):
        self.inline_limit = inline_limit

    def uses_argument(self, instruction: str) -> bool:
        return len(instruction) < self.inline_limit

    def invoke(self, command, instruction, prompt_file, timeout, cwd=None, env=None):
        if self.uses_argument(instruction):
            return self._run_with_argument(command, instruction, timeout, cwd, env)
        return self._run_with_stdin_file(command, prompt_file, timeout, cwd, env)


def select_invocation(
    platform: str | None = None,
    inline_limit: int = DEFAULT_INLINE_PROMPT_LIMIT,
) -> Invocation:
    """Pick the invocation strategy for the host platform."""
    platform = platform or sys.platform
    if platform.startswith("win"):
        return WindowsInvocation(inline_limit)
    return PosixInvocation()
