"""
Core module - Graph analysis, execution scheduler and review loop
"""

from .graph_analysis import (
    FailureCascade,
    compute_depths,
    group_layers,
    simulate_failure,
    topological_order,
    find_cycle_nodes,
    ensure_acyclic,
)
from .blocking import is_task_blocked, select_next_task, display_status, waiting_tasks
from .capabilities import (
    CancellationToken,
    Planner,
    TaskExecutor,
    Summarizer,
    TextGenerator,
)
from .event_bus import EventBus
from .scheduler import ExecutionScheduler, ExecutionReport
from .agents import AgentPersona, AgentRole, ROLES, execute_role, get_initial_ui, handle_event
from .workflow import ReviewWorkflowBuilder
from .review import ReviewCoordinator, ReviewOutcome
from .services import LLMPlanner, LLMTaskExecutor, LLMSummarizer

__all__ = [
    'FailureCascade',
    'compute_depths',
    'group_layers',
    'simulate_failure',
    'topological_order',
    'find_cycle_nodes',
    'ensure_acyclic',
    'is_task_blocked',
    'select_next_task',
    'display_status',
    'waiting_tasks',
    'CancellationToken',
    'Planner',
    'TaskExecutor',
    'Summarizer',
    'TextGenerator',
    'EventBus',
    'ExecutionScheduler',
    'ExecutionReport',
    'AgentPersona',
    'AgentRole',
    'ROLES',
    'execute_role',
    'get_initial_ui',
    'handle_event',
    'ReviewWorkflowBuilder',
    'ReviewCoordinator',
    'ReviewOutcome',
    'LLMPlanner',
    'LLMTaskExecutor',
    'LLMSummarizer',
]
