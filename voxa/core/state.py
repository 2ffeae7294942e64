"""
State management for dispatched tool calls.
Defines the per-call state machine and its runtime tracking.
"""
from enum import Enum
from dataclasses import dataclass, field
from typing import List, Optional
import time


class TaskState(Enum):
    """Per-call state machine states"""
    QUEUED = "QUEUED"
    STARTED = "STARTED"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


TERMINAL_STATES = (TaskState.COMPLETED, TaskState.FAILED)

# Allowed transitions: Queued -> Started -> {Completed | Failed}.
# Queued -> Failed covers calls rejected before they start (unknown tool).
_TRANSITIONS = {
    TaskState.QUEUED: (TaskState.STARTED, TaskState.FAILED),
    TaskState.STARTED: (TaskState.COMPLETED, TaskState.FAILED),
    TaskState.COMPLETED: (),
    TaskState.FAILED: (),
}


class InvalidTransition(RuntimeError):
    """Raised when a task is moved along an edge the state machine does not have"""


@dataclass
class TaskLifecycle:
    """Runtime state tracking for one dispatched call (or one fan-out branch)"""
    task_id: str
    tool: str
    entity_id: Optional[str] = None
    current_state: TaskState = TaskState.QUEUED
    last_state_change: float = field(default_factory=time.time)
    started_at: float = 0.0
    finished_at: float = 0.0
    history: List[TaskState] = field(default_factory=lambda: [TaskState.QUEUED])

    def transition_to(self, new_state: TaskState) -> None:
        """Transition to a new state"""
        if new_state not in _TRANSITIONS[self.current_state]:
            raise InvalidTransition(
                f"{self.task_id}: {self.current_state.value} -> {new_state.value}"
            )
        self.current_state = new_state
        self.last_state_change = time.time()
        self.history.append(new_state)

        if new_state == TaskState.STARTED:
            self.started_at = self.last_state_change
        elif new_state in TERMINAL_STATES:
            self.finished_at = self.last_state_change

    def is_in_state(self, state: TaskState) -> bool:
        """Check if currently in given state"""
        return self.current_state == state

    def is_terminal(self) -> bool:
        return self.current_state in TERMINAL_STATES

    def get_duration_ms(self) -> int:
        """Time between Started and the terminal state (ms)"""
        if self.started_at and self.finished_at:
            return int((self.finished_at - self.started_at) * 1000)
        return 0
