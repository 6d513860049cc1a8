"""
Message formats - Conversational log entries and system events

Two shapes cross component boundaries:
- Message: an entry in the operator-facing conversational log
  (alerts, the mission summary, review-loop synthesis text)
- SystemEvent: an envelope published on the EventBus for observers
"""

from dataclasses import dataclass, field
from typing import TypedDict, Optional, Any, Literal
from datetime import datetime
import uuid


MessageRole = Literal["user", "assistant", "system"]


@dataclass(frozen=True)
class Message:
    """One entry in the conversational log."""
    role: MessageRole
    content: str
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())

    def to_dict(self) -> dict[str, Any]:
        return {"role": self.role, "content": self.content, "timestamp": self.timestamp}


class SystemEvent(TypedDict):
    """
    Standard event format for event-driven architecture.

    Published by: ExecutionScheduler, ReviewCoordinator
    Consumed by: Event subscribers (registered via EventBus)
    """
    event_id: str
    event_type: str              # e.g., "task_completed", "scheduler_stalled"
    event_category: Literal[
        "task_lifecycle",
        "execution",
        "review",
        "plan_edit"
    ]
    source: str
    source_task_id: Optional[str]
    payload: dict[str, Any]
    timestamp: str
    severity: Literal["debug", "info", "warning", "error", "critical"]


# Event type -> category
EVENT_TYPE_REGISTRY: dict[str, str] = {
    "execution_started": "execution",
    "task_started": "task_lifecycle",
    "task_chunk": "task_lifecycle",
    "task_completed": "task_lifecycle",
    "task_failed": "task_lifecycle",
    "scheduler_stalled": "execution",
    "execution_halted": "execution",
    "execution_cancelled": "execution",
    "mission_summary": "execution",
    "plan_edited": "plan_edit",
    "review_iteration": "review",
    "review_completed": "review",
}


def create_system_event(
    event_type: str,
    source: str,
    payload: dict[str, Any],
    source_task_id: Optional[str] = None,
    severity: Literal["debug", "info", "warning", "error", "critical"] = "info",
    event_category: Optional[str] = None
) -> SystemEvent:
    """
    Helper function to create system events.

    Args:
        event_type: Type of event (e.g., "task_completed")
        source: Component that generated the event
        payload: Event data
        source_task_id: Optional task ID
        severity: Event severity level
        event_category: Category override (uses registry if None)

    Returns:
        SystemEvent instance
    """
    category = event_category or EVENT_TYPE_REGISTRY.get(event_type, "execution")

    return SystemEvent(
        event_id=str(uuid.uuid4()),
        event_type=event_type,
        event_category=category,  # type: ignore[typeddict-item]
        source=source,
        source_task_id=source_task_id,
        payload=payload,
        timestamp=datetime.now().isoformat(),
        severity=severity,
    )
