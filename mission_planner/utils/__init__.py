"""
Utilities module - Helper functions and utilities
"""

from .logger import get_logger, log_performance
from .prompt_builder import PromptBuilder
from .llm_client import LLMClient
from .rate_limiter import RateLimiter, global_rate_limiter

# Exception hierarchy
from .exceptions import (
    # Base
    MissionPlannerError,
    # Configuration
    ConfigurationError,
    MissingDependencyError,
    # Validation
    ValidationError,
    InvalidParameterError,
    UnknownTaskError,
    DuplicateTaskError,
    SelfDependencyError,
    DependencyCycleError,
    InvalidTransitionError,
    TaskSealedError,
    # Execution
    ExecutionError,
    TaskExecutionError,
    SchedulerStalledError,
    ExecutionCancelledError,
    RetryExhaustedError,
    LLMError,
    # Planning
    PlanGenerationError,
    # Utilities
    wrap_exception,
)

__all__ = [
    'get_logger',
    'log_performance',
    'PromptBuilder',
    'LLMClient',
    'RateLimiter',
    'global_rate_limiter',

    # Exception hierarchy
    'MissionPlannerError',
    'ConfigurationError',
    'MissingDependencyError',
    'ValidationError',
    'InvalidParameterError',
    'UnknownTaskError',
    'DuplicateTaskError',
    'SelfDependencyError',
    'DependencyCycleError',
    'InvalidTransitionError',
    'TaskSealedError',
    'ExecutionError',
    'TaskExecutionError',
    'SchedulerStalledError',
    'ExecutionCancelledError',
    'RetryExhaustedError',
    'LLMError',
    'PlanGenerationError',
    'wrap_exception',
]
