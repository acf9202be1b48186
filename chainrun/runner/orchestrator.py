"""
Task chain orchestrator.

Walks the catalog in order and runs each task's sections through the
executor. Tasks form a strict linear chain: a task runs only when the task
before it completed successfully, and the first failure blocks everything
downstream and ends the pass. Rerunning resumes at the first task that has
not yet succeeded.
"""

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from chainrun.lib.errors import ErrorKind, MalformedTask, halts_run
from chainrun.runner.checkpoint import Checkpointer
from chainrun.runner.executor import TaskExecutor
from chainrun.runner.status_store import (
    BLOCKED,
    COMPLETED,
    FAILED,
    IN_PROGRESS,
    StatusStore,
    describe,
)
from chainrun.tasks.catalog import list_tasks, load_task
from chainrun.tasks.models import TaskRef
from chainrun.tasks.sections import split_sections
from chainrun.workflow.fsm import TERMINAL_STATES, TaskFSM

logger = logging.getLogger(__name__)

DEFAULT_CHECKPOINT_INTERVAL = 5
DEFAULT_SECTION_DELAY = 3
DEFAULT_TASK_DELAY = 5


@dataclass
class RunSummary:
    """Counts for one orchestrator pass."""
    processed: int = 0
    completed: int = 0
    failed: int = 0
    skipped: int = 0
    halted: bool = False
    halt_reason: Optional[str] = None

    def as_dict(self) -> dict:
        return {
            "processed": self.processed,
            "completed": self.completed,
            "failed": self.failed,
            "skipped": self.skipped,
        }


@dataclass
class TaskOutcome:
    """Result of attempting one task."""
    success: bool
    error_kind: Optional[ErrorKind] = None
    error: Optional[str] = None
    sections_run: int = 0


def dependency_reason(task_id: str) -> str:
    return f"Dependency failure: {task_id} must complete successfully first"


class Orchestrator:
    """Top-level driver for one pass over the task chain."""

    def __init__(
        self,
        tasks_dir: Path,
        store: StatusStore,
        executor: TaskExecutor,
        checkpointer: Optional[Checkpointer] = None,
        checkpoint_interval: int = DEFAULT_CHECKPOINT_INTERVAL,
        section_delay: float = DEFAULT_SECTION_DELAY,
        task_delay: float = DEFAULT_TASK_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.tasks_dir = Path(tasks_dir)
        self.store = store
        self.executor = executor
        self.checkpointer = checkpointer
        self.checkpoint_interval = checkpoint_interval
        self.section_delay = section_delay
        self.task_delay = task_delay
        self.sleep = sleep

    def run(self) -> RunSummary:
        """Process every task in order until done or halted.

        Raises:
            CatalogNotFound: if the task directory is missing
        """
        tasks = list_tasks(self.tasks_dir)
        summary = RunSummary()

        logger.info(f"Starting processing of {len(tasks)} tasks")
        logger.info(f"Tasks directory: {self.tasks_dir}")
        logger.info("Dependency mode: each task must succeed before the next can run")

        for i, task in enumerate(tasks):
            status = self.store.get(task.id)
            fsm = TaskFSM(
                task.id,
                blocked=bool(status and status.blocked),
                on_transition=self._log_transition,
            )

            if fsm.state == "blocked":
                reason = status.blocked_reason or "blocked"
                logger.error(f"Cannot process {task.id}: {reason}")
                logger.error("Fix the cause, then run 'chainrun clear-blocked' to resume")
                self._halt(summary, f"{task.id} is blocked")
                break

            if i > 0:
                previous = tasks[i - 1]
                if not self.store.is_successful(previous.id):
                    logger.error(
                        f"Cannot process {task.id}: previous task {previous.id} failed or incomplete"
                    )
                    fsm.block()
                    self.block_remaining(tasks, i, dependency_reason(previous.id))
                    self._halt(summary, f"dependency failure at {previous.id}")
                    break

            logger.info(f"[{i + 1}/{len(tasks)}] Processing: {task.id}")

            if self.store.is_successful(task.id):
                fsm.skip()
                summary.processed += 1
                summary.skipped += 1
                logger.info(f"Skipping already completed: {task.id}")
                continue

            outcome = self.run_task(task, fsm)
            summary.processed += 1

            if outcome.success:
                summary.completed += 1
                logger.info(f"{task.id} completed successfully")
                if summary.completed % self.checkpoint_interval == 0:
                    logger.info(f"Checkpoint reached: {summary.completed} tasks completed")
                    self._checkpoint(summary.completed, task.id)
            else:
                summary.failed += 1
                if halts_run(outcome.error_kind):
                    logger.error(f"{task.id} failed - stopping to prevent cascade failures")
                    self.block_remaining(tasks, i + 1, dependency_reason(task.id))
                    self._halt(summary, f"{task.id} failed: {outcome.error}")
                    break

            if i < len(tasks) - 1:
                logger.info(f"Waiting {self.task_delay} seconds before next task...")
                self.sleep(self.task_delay)

        if tasks and summary.completed > 0 and all(self.store.is_successful(t.id) for t in tasks):
            logger.info("All tasks completed, creating final checkpoint...")
            self._checkpoint(summary.completed, tasks[-1].id, final=True)

        self._log_summary(summary)
        return summary

    def run_task(self, task: TaskRef, fsm: Optional[TaskFSM] = None) -> TaskOutcome:
        """Run all sections of one task, stopping at the first failure."""
        fsm = fsm or TaskFSM(task.id, on_transition=self._log_transition)
        fsm.start()

        try:
            definition = load_task(task)
            sections = split_sections(definition.instruction)
        except MalformedTask as e:
            logger.error(f"Error processing {task.id}: {e.message}")
            self.store.mark_started(task.id, total_sections=0)
            self.store.mark_finished(task.id, success=False, error=e.message)
            fsm.fail()
            return TaskOutcome(success=False, error_kind=e.kind, error=e.message)

        total = len(sections)
        self.store.mark_started(task.id, total_sections=total)
        logger.info(f"Found {total} sections in {task.id}")

        for section in sections:
            logger.info(f"[{section.index}/{total}] Processing section of {task.id}")
            logger.debug(f"Section preview: {section.text[:100]}...")

            instruction = self.executor.build_instruction(definition, section, total)
            result = self.executor.run(instruction, f"{task.id}-section-{section.index}")

            if not result.success:
                error = f"Failed at section {section.index}/{total}: {result.describe()}"
                logger.error(f"Section {section.index} of {task.id} failed")
                self.store.mark_finished(
                    task.id, success=False, error=error, failed_section=section.index
                )
                fsm.fail()
                return TaskOutcome(
                    success=False,
                    error_kind=result.error_kind,
                    error=error,
                    sections_run=section.index,
                )

            self.store.mark_section_completed(task.id)
            logger.info(f"Section {section.index} completed successfully")

            if section.index < total:
                logger.info(f"Waiting {self.section_delay} seconds before next section...")
                self.sleep(self.section_delay)

        self.store.mark_finished(task.id, success=True)
        fsm.succeed()
        return TaskOutcome(success=True, sections_run=total)

    def block_remaining(self, tasks: list[TaskRef], start: int, reason: str) -> int:
        """Mark tasks[start:] blocked. Returns how many were marked."""
        blocked = tasks[start:]
        for task in blocked:
            self.store.mark_blocked(task.id, reason)
        if blocked:
            logger.error(f"Marked {len(blocked)} downstream tasks as blocked")
        return len(blocked)

    def _log_transition(self, task_id: str, from_state: str, to_state: str, trigger: str) -> None:
        if to_state in TERMINAL_STATES:
            logger.info(f"Task {task_id}: {from_state} -> {to_state}")

    def _checkpoint(self, completed_count: int, label: str, final: bool = False) -> None:
        if self.checkpointer is None:
            return
        self.checkpointer.checkpoint(completed_count, label, final=final)

    def _halt(self, summary: RunSummary, reason: str) -> None:
        summary.halted = True
        summary.halt_reason = reason
        logger.error(f"Stopping processing: {reason}")

    def _log_summary(self, summary: RunSummary) -> None:
        logger.info("Processing complete!")
        logger.info(
            f"Results: {summary.processed} processed, {summary.completed} completed, "
            f"{summary.failed} failed, {summary.skipped} skipped"
        )
        if summary.halted:
            logger.warning(
                "Processing stopped early. Check 'chainrun status', fix the failed task, "
                "run 'chainrun clear-blocked', then run again to resume"
            )

    # Operator controls

    def reset(self) -> None:
        self.store.reset()
        logger.info("Status file reset")

    def clear_blocked(self) -> int:
        cleared = self.store.clear_blocked()
        logger.info(f"Cleared blocked status from {cleared} tasks")
        return cleared

    def status_report(self) -> list[str]:
        """One line per catalog task, then a summary line. Read-only."""
        tasks = list_tasks(self.tasks_dir)
        lines = []
        counts = {COMPLETED: 0, FAILED: 0, BLOCKED: 0}

        for number, task in enumerate(tasks, 1):
            status = self.store.get(task.id)
            state = describe(status)
            prefix = f"{number:02d}. {task.filename} - "

            if state in counts:
                counts[state] += 1

            if state == BLOCKED:
                lines.append(f"{prefix}Blocked: {status.blocked_reason}")
            elif state == COMPLETED:
                lines.append(f"{prefix}Completed{_progress(status)} ({status.finished})")
            elif state == FAILED:
                lines.append(f"{prefix}Failed{_progress(status)}: {status.error}")
            elif state == IN_PROGRESS:
                lines.append(f"{prefix}In progress{_progress(status)} (started {status.started})")
            else:
                lines.append(f"{prefix}Not started")

        lines.append("")
        lines.append(
            f"Summary: {counts[COMPLETED]}/{len(tasks)} completed, "
            f"{counts[FAILED]} failed, {counts[BLOCKED]} blocked"
        )
        return lines


def _progress(status) -> str:
    if not status.total_sections:
        return ""
    return f" ({status.completed_sections}/{status.total_sections} sections)"
