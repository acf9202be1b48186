"""Task data types shared by the catalog, parser and runner."""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class TaskRef:
    """A discovered task file, not yet read."""
    id: str       # File stem, e.g. "03-matching"
    order: int    # Integer value of the leading digit run
    path: Path

    @property
    def filename(self) -> str:
        return self.path.name


@dataclass(frozen=True)
class Section:
    """One marked slice of a task's prompt block."""
    index: int  # 1-based, source order
    text: str


@dataclass(frozen=True)
class TaskDefinition:
    """A task file as read for this run."""
    ref: TaskRef
    text: str
    instruction: str
    expected_outcome: Optional[str] = None
    next_steps: Optional[str] = None
    notes: Optional[str] = None

    @property
    def id(self) -> str:
        return self.ref.id
