"""
Section executor for chainrun.

Builds the contextual prompt for one section and runs the external tool on
it once, with a hard timeout. Every call leaves exactly one artifact behind:
<logs>/<log_id>-output.log, overwritten when the same section is rerun.
"""

import logging
import os
import subprocess
import tempfile
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

from chainrun.lib.errors import ErrorKind
from chainrun.lib.tools_config import ToolConfig
from chainrun.runner.invocation import Invocation, select_invocation
from chainrun.tasks.models import Section, TaskDefinition

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 180
DEFAULT_MAX_OUTPUT_BYTES = 10 * 1024 * 1024
PREVIEW_CHARS = 200


@dataclass
class ExecutionResult:
    """Outcome of one external tool invocation."""
    success: bool
    output: str = ""
    timed_out: bool = False
    exit_code: Optional[int] = None
    error: Optional[str] = None

    @property
    def error_kind(self) -> Optional[ErrorKind]:
        if self.success:
            return None
        if self.timed_out:
            return ErrorKind.SECTION_TIMEOUT
        return ErrorKind.SECTION_PROCESS_FAILURE

    def describe(self) -> str:
        """One-line failure description for status records."""
        if self.success:
            return "ok"
        if self.timed_out:
            return self.error or "timed out"
        if self.exit_code is not None:
            return f"exit code {self.exit_code}" + (f": {self.error}" if self.error else "")
        return self.error or "failed"


def _decode(data: bytes | str | None) -> str:
    if data is None:
        return ""
    if isinstance(data, str):
        return data
    return data.decode("utf-8", errors="replace")


class TaskExecutor:
    """Runs sections through the configured external tool."""

    def __init__(
        self,
        tool: ToolConfig,
        logs_dir: Path,
        timeout: float = DEFAULT_TIMEOUT,
        invocation: Optional[Invocation] = None,
        cwd: Optional[Path] = None,
        max_output_bytes: int = DEFAULT_MAX_OUTPUT_BYTES,
    ):
        self.tool = tool
        self.logs_dir = Path(logs_dir)
        self.timeout = timeout
        self.invocation = invocation or select_invocation()
        self.cwd = cwd
        self.max_output_bytes = max_output_bytes

    def build_instruction(self, task: TaskDefinition, section: Section, total: int) -> str:
        """Wrap one section in the context of its whole task."""
        parts = [
            f"I need you to work on part {section.index} of {total} of a larger task "
            f"({task.id}).",
            f"FULL TASK CONTEXT:\n{task.instruction}",
            f"CURRENT SECTION TO IMPLEMENT ({section.index}/{total}):\n{section.text}",
        ]
        if task.expected_outcome:
            parts.append(f"EXPECTED OUTPUT FOR THIS TASK:\n{task.expected_outcome}")
        if task.next_steps:
            parts.append(f"NEXT STEPS AFTER COMPLETION:\n{task.next_steps}")
        if task.notes:
            parts.append(f"IMPORTANT NOTES:\n{task.notes}")

        directive = (self.tool.closing_directive
                     .replace("{index}", str(section.index))
                     .replace("{total}", str(total)))
        parts.append(directive.strip())
        return "\n\n".join(parts)

    def output_log_path(self, log_id: str) -> Path:
        return self.logs_dir / f"{log_id}-output.log"

    def _environment(self) -> Optional[dict]:
        if not self.tool.unset_env:
            return None
        return {k: v for k, v in os.environ.items() if k not in self.tool.unset_env}

    def _write_prompt_file(self, instruction: str) -> Path:
        fd, name = tempfile.mkstemp(prefix="temp-prompt-", suffix=".txt", dir=self.logs_dir)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(instruction)
        return Path(name)

    def run(self, instruction: str, log_id: str) -> ExecutionResult:
        """Run the external tool on one contextual instruction.

        Filesystem errors while preparing the prompt or writing the output
        log come back as a failed result, never as an exception.
        """
        log_path = self.output_log_path(log_id)

        logger.info(f"Starting {self.tool.binary} for: {log_id}")
        logger.info(f"Prompt length: {len(instruction)} characters")

        try:
            self.logs_dir.mkdir(parents=True, exist_ok=True)
            prompt_file = self._write_prompt_file(instruction)
        except OSError as e:
            logger.error(f"Failed: {log_id} - could not write prompt file: {e}")
            return ExecutionResult(success=False, error=f"Could not write prompt file: {e}")

        try:
            result = self._invoke(instruction, prompt_file)
        finally:
            prompt_file.unlink(missing_ok=True)

        if result.success:
            log_text = result.output
            logger.info(f"Completed: {log_id} ({len(result.output)} chars output)")
            logger.debug(f"Output preview: {result.output[:PREVIEW_CHARS]}...")
        elif result.timed_out:
            log_text = f"TIMEOUT: {result.error}\n{result.output}"
            logger.warning(f"Timeout for: {log_id} after {self.timeout}s")
        else:
            log_text = f"ERROR: {result.describe()}\n{result.output}"
            logger.error(f"Failed: {log_id} - {result.describe()}")

        try:
            log_path.write_text(log_text, encoding="utf-8")
        except OSError as e:
            logger.error(f"Could not write output log {log_path}: {e}")
            if result.success:
                return replace(
                    result,
                    success=False,
                    exit_code=None,
                    error=f"Could not write output log: {e}",
                )

        return result

    def _invoke(self, instruction: str, prompt_file: Path) -> ExecutionResult:
        """Invoke the tool once and classify the outcome.

        max_output_bytes is checked after the process exits. capture_output
        buffers everything first, so the ceiling turns oversized output into
        a failure but does not bound memory while the tool runs.
        """
        logger.debug(f"Sending prompt via {self.invocation.name} invocation")
        try:
            proc = self.invocation.invoke(
                self.tool.argv,
                instruction,
                prompt_file,
                timeout=self.timeout,
                cwd=self.cwd,
                env=self._environment(),
            )
        except subprocess.TimeoutExpired as e:
            return ExecutionResult(
                success=False,
                output=_decode(e.stdout),
                timed_out=True,
                error=f"Timed out after {self.timeout}s",
            )
        except OSError as e:
            return ExecutionResult(
                success=False,
                error=f"Could not start {self.tool.binary}: {e}",
            )

        stdout = proc.stdout or b""
        stderr = proc.stderr or b""
        if len(stdout) + len(stderr) > self.max_output_bytes:
            return ExecutionResult(
                success=False,
                output=_decode(stdout[:self.max_output_bytes]),
                exit_code=proc.returncode,
                error=f"Output exceeded {self.max_output_bytes} bytes",
            )

        if proc.returncode != 0:
            output = _decode(stdout)
            err_text = _decode(stderr).strip()
            return ExecutionResult(
                success=False,
                output=output + (f"\n{err_text}" if err_text else ""),
                exit_code=proc.returncode,
                error=err_text.splitlines()[-1] if err_text else None,
            )

        return ExecutionResult(success=True, output=_decode(stdout), exit_code=0)
