"""
Models module - Data structures and enums for Mission Planner
"""

from .enums import TaskStatus, Priority, ExecutionOutcome, TERMINAL_STATUSES
from .task import Task, Citation
from .plan import Plan, PlanValidation
from .messages import (
    Message,
    SystemEvent,
    EVENT_TYPE_REGISTRY,
    create_system_event,
)

__all__ = [
    'TaskStatus',
    'Priority',
    'ExecutionOutcome',
    'TERMINAL_STATUSES',
    'Task',
    'Citation',
    'Plan',
    'PlanValidation',
    'Message',
    'SystemEvent',
    'EVENT_TYPE_REGISTRY',
    'create_system_event',
]
