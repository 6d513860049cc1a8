"""
Enums module - Task status, priority and run outcome enumerations
"""

from enum import Enum


class TaskStatus(str, Enum):
    """
    Enumeration of possible task statuses.

    BLOCKED and WAITING are derived display states; they are never stored
    on a task by the engine.
    """
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    BLOCKED = "BLOCKED"
    WAITING = "WAITING"

    @classmethod
    def parse(cls, value) -> "TaskStatus":
        """Parse planner/user spellings such as 'InProgress' or 'in-progress'."""
        if isinstance(value, cls):
            return value
        text = str(value or "").strip()
        normalized = text.upper().replace("-", "_").replace(" ", "_")
        if normalized == "INPROGRESS":
            normalized = "IN_PROGRESS"
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(f"Unknown task status: {value!r}") from None


TERMINAL_STATUSES = frozenset({TaskStatus.COMPLETED, TaskStatus.FAILED})
DISPLAY_ONLY_STATUSES = frozenset({TaskStatus.BLOCKED, TaskStatus.WAITING})


class Priority(str, Enum):
    """Advisory task priority (display and sorting only)"""
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    @classmethod
    def parse(cls, value) -> "Priority":
        if isinstance(value, cls):
            return value
        if value is None or str(value).strip() == "":
            return cls.MEDIUM
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise ValueError(f"Unknown priority: {value!r}") from None


class ExecutionOutcome(str, Enum):
    """How a scheduler run ended"""
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    STALLED = "STALLED"
    CANCELLED = "CANCELLED"
