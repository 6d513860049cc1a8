"""
Mission Planner - Dependency-aware plan execution engine

Turns a high-level goal into a dependency-graphed task plan, walks the plan
one eligible task at a time with a pluggable executor, and can put the plan
through a Strategist / Critic / Analyst review loop before execution.

Features:
- Immutable plan snapshots with validated edits (no cycles, no duplicates)
- Blocking rules, topological layering and failure-cascade simulation
- Generator-based scheduler with stall detection and cancellation
- Streaming task execution with citations
- LangGraph review loop with score threshold and iteration cap
- Multi-provider LLM support (Anthropic, OpenAI, Google)
- Environment-based configuration

Installation:
pip install langgraph langchain-anthropic langchain-core python-dotenv

Configuration:
    Create a .env file with your LLM provider configuration:

    ANTHROPIC_API_KEY=sk-ant-...
    AGENT_LLM_PROVIDER=anthropic
    AGENT_LLM_MODEL=claude-sonnet-4-20250514

Example:
    >>> from mission_planner import (
    ...     EngineConfig, EnvConfig, LLMClient, LLMPlanner,
    ...     LLMTaskExecutor, LLMSummarizer, ExecutionScheduler
    ... )
    >>>
    >>> EnvConfig.load_env_file()
    >>> config = EngineConfig.from_env(prefix="AGENT_")
    >>> client = LLMClient(config.llm)
    >>>
    >>> plan = LLMPlanner(client, config.planner).generate_plan("Launch the beta")
    >>> scheduler = ExecutionScheduler(
    ...     LLMTaskExecutor(client), LLMSummarizer(client), config.scheduler
    ... )
    >>> report = scheduler.run(plan)
"""

__version__ = "1.0.0"
__all__ = [
    'Plan',
    'Task',
    'Citation',
    'TaskStatus',
    'Priority',
    'ExecutionOutcome',
    'EngineConfig',
    'LLMConfig',
    'EnvConfig',
    'LLMClient',
    'is_task_blocked',
    'simulate_failure',
    'compute_depths',
    'group_layers',
    'CancellationToken',
    'EventBus',
    'ExecutionScheduler',
    'ExecutionReport',
    'ReviewCoordinator',
    'ReviewOutcome',
    'LLMPlanner',
    'LLMTaskExecutor',
    'LLMSummarizer',
]

from mission_planner.config import EngineConfig, LLMConfig, EnvConfig
from mission_planner.models import Plan, Task, Citation, TaskStatus, Priority, ExecutionOutcome
from mission_planner.utils import LLMClient
from mission_planner.core import (
    is_task_blocked,
    simulate_failure,
    compute_depths,
    group_layers,
    CancellationToken,
    EventBus,
    ExecutionScheduler,
    ExecutionReport,
    ReviewCoordinator,
    ReviewOutcome,
    LLMPlanner,
    LLMTaskExecutor,
    LLMSummarizer,
)
