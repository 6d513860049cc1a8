"""
Capability contracts consumed by the engine

The scheduler and review loop depend only on these protocols; the
LLM-backed implementations live in ``core.services`` and tests supply
their own fakes.
"""

import threading
from typing import Protocol, Iterable, Optional, Union, runtime_checkable

from ..models.plan import Plan
from ..models.task import Citation

StreamItem = Union[str, Citation]


class CancellationToken:
    """
    Thread-safe cancellation flag shared between an operator thread, the
    scheduler and the task executor.
    """

    def __init__(self):
        self._event = threading.Event()
        self.reason: Optional[str] = None

    def cancel(self, reason: str = "Cancelled by operator") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block up to *timeout* seconds; True if cancelled meanwhile."""
        return self._event.wait(timeout)


@runtime_checkable
class Planner(Protocol):
    def generate_plan(self, goal: str) -> Plan:
        """Decompose *goal* into a plan with at least one task."""
        ...


@runtime_checkable
class TaskExecutor(Protocol):
    def execute_task(
        self,
        description: str,
        context: str,
        cancel_token: Optional[CancellationToken] = None
    ) -> Iterable[StreamItem]:
        """
        Perform one task.

        Returns a lazy, finite stream of text chunks and Citation items.
        Raising (at call time or mid-stream) marks the task FAILED.
        """
        ...


@runtime_checkable
class Summarizer(Protocol):
    def summarize(self, plan: Plan, history: str) -> str:
        ...


@runtime_checkable
class TextGenerator(Protocol):
    def generate_content(self, contents: str, system_prompt: Optional[str] = None) -> str:
        ...
