"""
Durable per-task progress for chainrun.

The status file maps task id -> TaskStatus and is the only source of truth
for skip/resume decisions. StatusStore is its only writer: every mutator
persists the whole table before returning, so a crash never loses more than
the section that was in flight.
"""

import json
import logging
import os
from dataclasses import dataclass, field, fields
from datetime import datetime
from pathlib import Path
from typing import Optional

from chainrun.lib.errors import ErrorKind
from chainrun.lib.validate import validate, ValidationError

logger = logging.getLogger(__name__)

# Report states, see describe()
NOT_STARTED = "not_started"
BLOCKED = "blocked"
COMPLETED = "completed"
FAILED = "failed"
IN_PROGRESS = "in_progress"


def _now() -> str:
    return datetime.now().isoformat(timespec="seconds")


@dataclass
class TaskStatus:
    """Progress record for one task."""
    started: Optional[str] = None
    finished: Optional[str] = None
    attempts: int = 0
    total_sections: int = 0
    completed_sections: int = 0
    completed: bool = False
    success: bool = False
    error: Optional[str] = None
    failed_section: Optional[int] = None  # 1-based section that failed
    blocked: bool = False
    blocked_reason: Optional[str] = None
    blocked_at: Optional[str] = None
    # Keys found in the file that this version doesn't know; written back as-is
    extra: dict = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.completed and self.success

    @classmethod
    def from_dict(cls, data: dict) -> "TaskStatus":
        known = {f.name for f in fields(cls)} - {"extra"}
        values = {k: v for k, v in data.items() if k in known}
        extra = {k: v for k, v in data.items() if k not in known}
        return cls(**values, extra=extra)

    def to_dict(self) -> dict:
        data = dict(self.extra)
        for f in fields(self):
            if f.name == "extra":
                continue
            value = getattr(self, f.name)
            # Blocked-only attributes are omitted unless set
            if f.name in ("blocked", "blocked_reason", "blocked_at") and not self.blocked:
                continue
            data[f.name] = value
        return data


def describe(status: Optional[TaskStatus]) -> str:
    """Map a record to one of the report states."""
    if status is None:
        return NOT_STARTED
    if status.blocked:
        return BLOCKED
    if status.completed and status.success:
        return COMPLETED
    if status.completed:
        return FAILED
    if status.started:
        return IN_PROGRESS
    return NOT_STARTED


class StatusStore:
    """Owns the on-disk TaskStatus table."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self.table: dict[str, TaskStatus] = {}

    def load(self) -> dict[str, TaskStatus]:
        """Read the status file. Missing or corrupt files yield an empty table."""
        self.table = {}
        if not self.path.exists():
            return self.table

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
            logger.error(
                f"[{ErrorKind.STATUS_CORRUPTION.value}] Could not read {self.path}: {e}. "
                f"Starting with empty status; prior progress is forgotten"
            )
            return self.table

        if not isinstance(data, dict):
            logger.error(
                f"[{ErrorKind.STATUS_CORRUPTION.value}] {self.path} is not a JSON object. "
                f"Starting with empty status; prior progress is forgotten"
            )
            return self.table

        for task_id, entry in data.items():
            try:
                if not isinstance(entry, dict):
                    raise ValidationError("task_status", "entry is not an object")
                validate(entry, "task_status")
            except ValidationError as e:
                logger.error(
                    f"[{ErrorKind.STATUS_CORRUPTION.value}] Dropping status for {task_id}: {e}"
                )
                continue
            self.table[task_id] = TaskStatus.from_dict(entry)

        logger.debug(f"Loaded status for {len(self.table)} tasks from {self.path}")
        return self.table

    def save(self) -> None:
        """Write the full table, replacing the file atomically."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {task_id: status.to_dict() for task_id, status in self.table.items()}
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        tmp_path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
        os.replace(tmp_path, self.path)

    def get(self, task_id: str) -> Optional[TaskStatus]:
        return self.table.get(task_id)

    def all(self) -> dict[str, TaskStatus]:
        return dict(self.table)

    def is_successful(self, task_id: str) -> bool:
        status = self.table.get(task_id)
        return status is not None and status.succeeded

    def _record(self, task_id: str) -> TaskStatus:
        if task_id not in self.table:
            self.table[task_id] = TaskStatus()
        return self.table[task_id]

    def mark_started(self, task_id: str, total_sections: int) -> TaskStatus:
        """Begin a new attempt."""
        status = self._record(task_id)
        status.started = _now()
        status.finished = None
        status.attempts += 1
        status.total_sections = total_sections
        status.completed_sections = 0
        status.completed = False
        status.success = False
        status.error = None
        status.failed_section = None
        self.save()
        return status

    def mark_section_completed(self, task_id: str) -> TaskStatus:
        status = self._record(task_id)
        status.completed_sections += 1
        self.save()
        return status

    def mark_finished(
        self,
        task_id: str,
        success: bool,
        error: Optional[str] = None,
        failed_section: Optional[int] = None,
    ) -> TaskStatus:
        """Record the terminal outcome of the current attempt."""
        status = self._record(task_id)
        status.completed = True
        status.success = success
        status.finished = _now()
        status.error = None if success else error
        status.failed_section = None if success else failed_section
        self.save()
        return status

    def mark_blocked(self, task_id: str, reason: str) -> TaskStatus:
        """Flag a task as blocked by an upstream failure.

        An already blocked record keeps its original reason and timestamp.
        Completion flags are left untouched.
        """
        status = self._record(task_id)
        if not status.blocked:
            status.blocked = True
            status.blocked_reason = reason
            status.blocked_at = _now()
        self.save()
        return status

    def clear_blocked(self) -> int:
        """Strip blocked markers from every task. Returns how many were cleared."""
        cleared = 0
        for status in self.table.values():
            if status.blocked:
                status.blocked = False
                status.blocked_reason = None
                status.blocked_at = None
                cleared += 1
        if cleared:
            self.save()
        return cleared

    def reset(self) -> None:
        """Discard all progress and delete the status file."""
        self.table = {}
        if self.path.exists():
            self.path.unlink()
