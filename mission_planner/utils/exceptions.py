"""
Standardized Exception Hierarchy for Mission Planner

Every error raised by the engine derives from MissionPlannerError so callers
can catch one base class and serialize any failure with ``to_dict()``.

Exception Categories:
- Configuration Errors: settings, environment, missing packages
- Validation Errors: task graph edits that would break an invariant
- Execution Errors: task executor, scheduler and LLM failures
- Planning Errors: malformed planner output

Usage:
    from mission_planner.utils.exceptions import (
        MissionPlannerError,
        UnknownTaskError,
        DependencyCycleError
    )

    try:
        plan = plan.add_dependency("1", "3")
    except DependencyCycleError as e:
        logger.warning(f"Rejected edge: {e}")
"""

from typing import Optional, Any, Dict, List, Sequence


# ============================================================================
# Base Exception
# ============================================================================

class MissionPlannerError(Exception):
    """
    Base exception for all Mission Planner errors.
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize base exception.

        Args:
            message: Human-readable error message
            error_code: Optional error code for categorization
            details: Optional dictionary with additional error context
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details
        }

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# ============================================================================
# Configuration Errors
# ============================================================================

class ConfigurationError(MissionPlannerError):
    """Raised when there's an issue with configuration or settings."""

    def __init__(
        self,
        setting_name: str,
        message: str,
        expected_value: Optional[Any] = None,
        actual_value: Optional[Any] = None
    ):
        details = {"setting_name": setting_name}
        if expected_value is not None:
            details["expected_value"] = str(expected_value)
        if actual_value is not None:
            details["actual_value"] = str(actual_value)

        super().__init__(
            message=f"Configuration error for '{setting_name}': {message}",
            error_code="CONFIG_ERROR",
            details=details
        )
        self.setting_name = setting_name


class MissingDependencyError(MissionPlannerError):
    """Raised when an optional provider package is not installed."""

    def __init__(
        self,
        package_name: str,
        install_command: Optional[str] = None,
        purpose: Optional[str] = None
    ):
        message = f"Required package '{package_name}' is not installed"
        if purpose:
            message += f" (needed for {purpose})"
        if install_command:
            message += f"\nInstall with: {install_command}"

        super().__init__(
            message=message,
            error_code="MISSING_DEPENDENCY",
            details={
                "package_name": package_name,
                "install_command": install_command,
                "purpose": purpose
            }
        )
        self.package_name = package_name


# ============================================================================
# Validation / Task Graph Errors
# ============================================================================

class ValidationError(MissionPlannerError):
    """Base class for validation errors."""
    pass


class InvalidParameterError(ValidationError):
    """Raised when a parameter value is invalid."""

    def __init__(
        self,
        parameter_name: str,
        message: str,
        expected_type: Optional[str] = None,
        actual_value: Optional[Any] = None
    ):
        details = {"parameter_name": parameter_name}
        if expected_type:
            details["expected_type"] = expected_type
        if actual_value is not None:
            details["actual_value"] = str(actual_value)

        super().__init__(
            message=f"Invalid parameter '{parameter_name}': {message}",
            error_code="INVALID_PARAM",
            details=details
        )
        self.parameter_name = parameter_name


class UnknownTaskError(ValidationError):
    """Raised when an operation names a task id that is not in the plan."""

    def __init__(self, task_id: str, operation: Optional[str] = None):
        message = f"Unknown task id: '{task_id}'"
        if operation:
            message += f" (during {operation})"
        super().__init__(
            message=message,
            error_code="UNKNOWN_TASK",
            details={"task_id": task_id, "operation": operation}
        )
        self.task_id = task_id


class DuplicateTaskError(ValidationError):
    """Raised when a task id is added to a plan that already contains it."""

    def __init__(self, task_id: str):
        super().__init__(
            message=f"Task id '{task_id}' already exists in the plan",
            error_code="DUPLICATE_TASK",
            details={"task_id": task_id}
        )
        self.task_id = task_id


class SelfDependencyError(ValidationError):
    """Raised when a task would be made to depend on itself."""

    def __init__(self, task_id: str):
        super().__init__(
            message=f"Task '{task_id}' cannot depend on itself",
            error_code="SELF_DEPENDENCY",
            details={"task_id": task_id}
        )
        self.task_id = task_id


class DependencyCycleError(ValidationError):
    """Raised when the dependency graph contains (or would contain) a cycle."""

    def __init__(self, cycle_nodes: Sequence[str], edge: Optional[Sequence[str]] = None):
        nodes = sorted(cycle_nodes)
        message = "Cycle detected in task dependencies: " + ", ".join(nodes[:20])
        if len(nodes) > 20:
            message += " ..."
        if edge:
            message += f" (offending edge {edge[0]} -> {edge[1]})"
        super().__init__(
            message=message,
            error_code="DEPENDENCY_CYCLE",
            details={"cycle_nodes": nodes, "edge": list(edge) if edge else None}
        )
        self.cycle_nodes: List[str] = nodes
        self.edge = tuple(edge) if edge else None


class InvalidTransitionError(ValidationError):
    """Raised when a status change violates the task state machine."""

    def __init__(self, task_id: str, current: str, requested: str):
        super().__init__(
            message=f"Task '{task_id}' cannot move from {current} to {requested}",
            error_code="INVALID_TRANSITION",
            details={"task_id": task_id, "current": current, "requested": requested}
        )
        self.task_id = task_id
        self.current = current
        self.requested = requested


class TaskSealedError(ValidationError):
    """Raised when output is written to a task that is not in progress."""

    def __init__(self, task_id: str, status: str):
        super().__init__(
            message=f"Task '{task_id}' output is sealed (status {status})",
            error_code="TASK_SEALED",
            details={"task_id": task_id, "status": status}
        )
        self.task_id = task_id
        self.status = status


# ============================================================================
# Execution Errors
# ============================================================================

class ExecutionError(MissionPlannerError):
    """Base class for execution-time errors."""
    pass


class TaskExecutionError(ExecutionError):
    """Raised when the task executor fails for a dispatched task."""

    def __init__(
        self,
        task_id: str,
        message: str,
        original_error: Optional[Exception] = None
    ):
        full_message = f"Execution of task '{task_id}' failed: {message}"
        if original_error:
            full_message += f"\nCaused by: {str(original_error)}"

        super().__init__(
            message=full_message,
            error_code="TASK_EXEC_ERROR",
            details={
                "task_id": task_id,
                "original_error": str(original_error) if original_error else None
            }
        )
        self.task_id = task_id
        self.original_error = original_error


class SchedulerStalledError(ExecutionError):
    """Raised when no task can become eligible within the idle poll budget."""

    def __init__(self, waiting_task_ids: Sequence[str], polls: int):
        super().__init__(
            message=(
                f"Scheduler stalled after {polls} idle polls; "
                f"{len(waiting_task_ids)} task(s) can never become eligible"
            ),
            error_code="SCHEDULER_STALLED",
            details={"waiting_task_ids": list(waiting_task_ids), "polls": polls}
        )
        self.waiting_task_ids = list(waiting_task_ids)
        self.polls = polls


class ExecutionCancelledError(ExecutionError):
    """Raised inside the scheduler when the cancellation token fires."""

    def __init__(self, task_id: Optional[str] = None):
        message = "Execution cancelled by operator"
        if task_id:
            message += f" while running task '{task_id}'"
        super().__init__(
            message=message,
            error_code="CANCELLED",
            details={"task_id": task_id}
        )
        self.task_id = task_id


class RetryExhaustedError(ExecutionError):
    """Raised when all retry attempts have been exhausted."""

    def __init__(
        self,
        operation: str,
        max_retries: int,
        last_error: Optional[Exception] = None
    ):
        message = f"Operation '{operation}' failed after {max_retries} retry attempts"
        if last_error:
            message += f"\nLast error: {str(last_error)}"

        super().__init__(
            message=message,
            error_code="RETRY_EXHAUSTED",
            details={
                "operation": operation,
                "max_retries": max_retries,
                "last_error": str(last_error) if last_error else None
            }
        )
        self.operation = operation
        self.max_retries = max_retries
        self.last_error = last_error


class LLMError(ExecutionError):
    """Raised when a language model call fails."""

    def __init__(
        self,
        provider: str,
        message: str,
        model: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        full_message = f"LLM error with provider '{provider}': {message}"
        if model:
            full_message += f" (model: {model})"
        if original_error:
            full_message += f"\nCaused by: {str(original_error)}"

        super().__init__(
            message=full_message,
            error_code="LLM_ERROR",
            details={
                "provider": provider,
                "model": model,
                "original_error": str(original_error) if original_error else None
            }
        )
        self.provider = provider
        self.model = model
        self.original_error = original_error


# ============================================================================
# Planning Errors
# ============================================================================

class PlanGenerationError(RetryExhaustedError):
    """Raised when the planner cannot produce a usable plan."""

    def __init__(
        self,
        goal: str,
        attempts: int,
        problems: Optional[List[str]] = None,
        last_error: Optional[Exception] = None
    ):
        super().__init__(
            operation="generate_plan",
            max_retries=attempts,
            last_error=last_error
        )
        self.error_code = "PLAN_GENERATION_ERROR"
        self.goal = goal
        self.problems = problems or []
        self.details["goal"] = goal[:200]
        self.details["problems"] = self.problems


# ============================================================================
# Convenience Functions
# ============================================================================

def wrap_exception(
    original_error: Exception,
    operation: str,
    context: Optional[Dict[str, Any]] = None
) -> MissionPlannerError:
    """
    Wrap a generic exception in an appropriate Mission Planner exception.

    Args:
        original_error: The original exception to wrap
        operation: The operation that was being performed
        context: Additional context about the error (task_id, provider, ...)

    Returns:
        An appropriate MissionPlannerError subclass
    """
    context = context or {}

    if isinstance(original_error, MissionPlannerError):
        return original_error

    if isinstance(original_error, ImportError):
        return MissingDependencyError(
            package_name=context.get("package_name", "unknown"),
            purpose=operation,
            install_command=context.get("install_command")
        )

    if isinstance(original_error, (ValueError, KeyError, TypeError)):
        return InvalidParameterError(
            parameter_name=context.get("parameter_name", operation),
            message=str(original_error)
        )

    if "task_id" in context:
        return TaskExecutionError(
            task_id=context["task_id"],
            message=str(original_error),
            original_error=original_error
        )

    return ExecutionError(
        message=f"Operation '{operation}' failed: {original_error}",
        error_code="EXECUTION_ERROR",
        details={"operation": operation, **context}
    )


__all__ = [
    # Base
    "MissionPlannerError",

    # Configuration
    "ConfigurationError",
    "MissingDependencyError",

    # Validation
    "ValidationError",
    "InvalidParameterError",
    "UnknownTaskError",
    "DuplicateTaskError",
    "SelfDependencyError",
    "DependencyCycleError",
    "InvalidTransitionError",
    "TaskSealedError",

    # Execution
    "ExecutionError",
    "TaskExecutionError",
    "SchedulerStalledError",
    "ExecutionCancelledError",
    "RetryExhaustedError",
    "LLMError",

    # Planning
    "PlanGenerationError",

    # Utilities
    "wrap_exception",
]
