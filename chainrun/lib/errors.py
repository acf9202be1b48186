"""
Error taxonomy for chainrun.

Every failure the runner knows about has an ErrorKind. The orchestrator
decides halt-vs-continue by looking the kind up in HALTING_KINDS instead of
catching broad exceptions.
"""

from enum import Enum


class ErrorKind(Enum):
    CATALOG_NOT_FOUND = "catalog_not_found"
    MALFORMED_TASK = "malformed_task"
    SECTION_TIMEOUT = "section_timeout"
    SECTION_PROCESS_FAILURE = "section_process_failure"
    STATUS_CORRUPTION = "status_corruption"
    CHECKPOINT_FAILURE = "checkpoint_failure"
    PUSH_FAILURE = "push_failure"


# Kinds that stop the current pass and block every downstream task
HALTING_KINDS = frozenset({
    ErrorKind.MALFORMED_TASK,
    ErrorKind.SECTION_TIMEOUT,
    ErrorKind.SECTION_PROCESS_FAILURE,
})


def halts_run(kind: ErrorKind) -> bool:
    return kind in HALTING_KINDS


class ChainError(Exception):
    """Base class for errors raised by chainrun components."""
    kind: ErrorKind

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def __str__(self):
        return f"[{self.kind.value}] {self.message}"


class CatalogNotFound(ChainError):
    """The task directory does not exist."""
    kind = ErrorKind.CATALOG_NOT_FOUND


class MalformedTask(ChainError):
    """A task file has no usable prompt block."""
    kind = ErrorKind.MALFORMED_TASK
