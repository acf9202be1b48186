"""Per-task state machine using transitions library.

Each task in a pass moves through:

    pending -> blocked                  (own record blocked, or upstream failed)
    pending -> skipped                  (already completed successfully)
    pending -> running -> succeeded
                       -> failed        (halts the pass)

Usage:
    from chainrun.workflow.fsm import TaskFSM

    fsm = TaskFSM("03-matching")
    fsm.start()
    fsm.succeed()
"""

import logging
from typing import Callable

from transitions import Machine

logger = logging.getLogger(__name__)


STATES = [
    "pending",
    "blocked",
    "skipped",
    "running",
    "succeeded",
    "failed",
]

TERMINAL_STATES = frozenset({"blocked", "skipped", "succeeded", "failed"})

TRANSITIONS = [
    {"trigger": "block", "source": "pending", "dest": "blocked"},
    {"trigger": "skip", "source": "pending", "dest": "skipped"},
    {"trigger": "start", "source": "pending", "dest": "running"},
    {"trigger": "succeed", "source": "running", "dest": "succeeded"},
    {"trigger": "fail", "source": "running", "dest": "failed"},
]


class TaskFSM:
    """State machine for one task within one orchestrator pass.

    Wraps the transitions library with task-specific logic:
    - Starts in 'blocked' when the persisted record is already blocked
    - Logs all transitions
    - Reports each transition to an optional callback
    """

    def __init__(
        self,
        task_id: str,
        blocked: bool = False,
        on_transition: Callable[[str, str, str, str], None] | None = None,
    ):
        """Initialize FSM for a task.

        Args:
            task_id: Task identifier (used in log lines)
            blocked: True if the task's persisted status is blocked
            on_transition: Optional callback(task_id, from_state, to_state, trigger)
        """
        self.task_id = task_id
        self.on_transition = on_transition

        self.machine = Machine(
            model=self,
            states=STATES,
            transitions=TRANSITIONS,
            initial="blocked" if blocked else "pending",
            auto_transitions=False,
            send_event=True,
            after_state_change="on_state_change",
        )

    def on_state_change(self, event) -> None:
        from_state = event.transition.source
        to_state = event.transition.dest
        trigger = event.event.name

        logger.debug(f"[FSM] {self.task_id}: {from_state} -> {to_state} ({trigger})")

        if self.on_transition:
            self.on_transition(self.task_id, from_state, to_state, trigger)
