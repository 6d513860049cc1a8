"""
Execution Scheduler - Walks a plan one eligible task at a time

The scheduler is a cooperative, single-threaded loop exposed as a generator:
every mutation (task start, streamed chunk, completion, failure, operator
edit) produces a complete new Plan snapshot that is yielded to the caller.

Loop:
    1. Apply queued operator edits, check for cancellation
    2. Pick the first PENDING, unblocked task in declared order
    3. None eligible: sleep and re-poll, up to max_idle_polls (then STALLED)
    4. Dispatch to the TaskExecutor, appending each streamed chunk
    5. Success -> COMPLETED and a history line; failure -> FAILED and halt
    6. Everything terminal -> summarize once

Usage:
    scheduler = ExecutionScheduler(executor, summarizer)
    for snapshot in scheduler.start_execution(plan):
        render(snapshot)
    report = scheduler.last_report
"""

import queue
import time
from dataclasses import dataclass, field
from typing import Callable, Iterator, List, Optional, Any, Dict

from ..config.engine_config import SchedulerConfig
from ..models.enums import ExecutionOutcome, TaskStatus
from ..models.messages import Message, create_system_event
from ..models.plan import Plan
from ..models.task import Citation, Task
from ..utils.exceptions import (
    ExecutionCancelledError,
    SchedulerStalledError,
    wrap_exception,
)
from ..utils.logger import get_logger, log_performance
from ..utils.prompt_builder import PromptBuilder
from .blocking import select_next_task, waiting_tasks
from .capabilities import CancellationToken, TaskExecutor, Summarizer
from .event_bus import EventBus

logger = get_logger(__name__)

PlanEdit = Callable[[Plan], Plan]

SUMMARY_SKIPPED_MESSAGE = "Mission execution complete. Summary generation skipped."
CANCELLED_TASK_ERROR = "Cancelled by operator"


@dataclass
class ExecutionReport:
    """
    Outcome of one scheduler run.

    Attributes:
        outcome: COMPLETED, FAILED, STALLED or CANCELLED
        plan: Final plan snapshot
        history: Running history ("Task <id> output: <text>" lines)
        summary: Mission summary (only when every task finished)
        failed_task_id: Task that halted the run, if any
        error: Error text for non-COMPLETED outcomes
        messages: Conversational log entries emitted during the run
    """
    outcome: ExecutionOutcome
    plan: Plan
    history: str = ""
    summary: Optional[str] = None
    failed_task_id: Optional[str] = None
    error: Optional[str] = None
    messages: List[Message] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.outcome == ExecutionOutcome.COMPLETED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "outcome": self.outcome.value,
            "plan": self.plan.to_dict(),
            "history": self.history,
            "summary": self.summary,
            "failed_task_id": self.failed_task_id,
            "error": self.error,
            "messages": [m.to_dict() for m in self.messages],
        }


class ExecutionScheduler:
    """
    Drives a plan to completion through a TaskExecutor.

    One scheduler may run several plans in sequence; ``messages`` keeps the
    conversational log across runs and ``last_report`` describes the most
    recent one.
    """

    def __init__(
        self,
        executor: TaskExecutor,
        summarizer: Summarizer,
        config: Optional[SchedulerConfig] = None,
        event_bus: Optional[EventBus] = None,
        sleep: Callable[[float], None] = time.sleep,
        prompt_builder: Optional[PromptBuilder] = None
    ):
        self.executor = executor
        self.summarizer = summarizer
        self.config = config or SchedulerConfig()
        self.event_bus = event_bus
        self.prompt_builder = prompt_builder or PromptBuilder()
        self._sleep = sleep
        self._edits: "queue.Queue[PlanEdit]" = queue.Queue()
        self.messages: List[Message] = []
        self.last_report: Optional[ExecutionReport] = None
        self._run_messages: List[Message] = []

    # ------------------------------------------------------------------
    # Public surface
    # ------------------------------------------------------------------

    def apply_edit(self, edit: PlanEdit) -> None:
        """
        Queue a plan edit (manual add, import, decompose) to be applied
        between scheduling decisions. Safe to call from any thread.
        """
        self._edits.put(edit)

    def run(self, plan: Plan, cancel_token: Optional[CancellationToken] = None) -> ExecutionReport:
        """Drain ``start_execution`` and return its report."""
        for _ in self.start_execution(plan, cancel_token):
            pass
        assert self.last_report is not None
        return self.last_report

    def start_execution(
        self,
        plan: Plan,
        cancel_token: Optional[CancellationToken] = None
    ) -> Iterator[Plan]:
        """
        Execute *plan*, yielding a new snapshot after every mutation.

        The first snapshot is the plan as given. When the generator is
        exhausted, ``last_report`` holds the run's ExecutionReport.
        """
        token = cancel_token or CancellationToken()
        history_lines: List[str] = []
        idle_polls = 0
        self.last_report = None
        self._run_messages = []

        logger.info(f"[SCHEDULER] Starting execution of {len(plan.tasks)} tasks for goal: {plan.goal[:80]}")
        self._publish("execution_started", {"goal": plan.goal, "task_count": len(plan.tasks)})
        yield plan

        while True:
            plan, edited = self._drain_edits(plan)
            if edited:
                yield plan

            if not plan.has_unfinished_tasks():
                break

            if token.cancelled:
                self._finish_cancelled(plan, history_lines, None, token)
                return

            task = select_next_task(plan.tasks)
            if task is None:
                idle_polls += 1
                waiting = waiting_tasks(plan.tasks)
                self._publish(
                    "scheduler_stalled",
                    {"poll": idle_polls, "max_polls": self.config.max_idle_polls,
                     "waiting": {k: v.value for k, v in waiting.items()}},
                    severity="warning",
                )
                if idle_polls >= self.config.max_idle_polls:
                    self._finish_stalled(plan, history_lines, waiting, idle_polls)
                    return
                logger.debug(
                    f"[SCHEDULER] No eligible task (poll {idle_polls}/{self.config.max_idle_polls}); "
                    f"sleeping {self.config.idle_poll_interval}s"
                )
                self._sleep(self.config.idle_poll_interval)
                continue

            idle_polls = 0
            for snapshot in self._run_task(plan, task, history_lines, token):
                plan = snapshot
                yield plan

            current = plan.get_task(task.id)
            if current.status == TaskStatus.FAILED:
                if current.error == CANCELLED_TASK_ERROR and token.cancelled:
                    self._finish_cancelled(plan, history_lines, task.id, token)
                else:
                    self._finish_failed(plan, history_lines, current)
                return

        self._finish_completed(plan, history_lines)

    # ------------------------------------------------------------------
    # Task dispatch
    # ------------------------------------------------------------------

    def _run_task(
        self,
        plan: Plan,
        task: Task,
        history_lines: List[str],
        token: CancellationToken
    ) -> Iterator[Plan]:
        """Start, stream and seal one task; yields every intermediate snapshot."""
        plan = plan.start_task(task.id)
        logger.info(f"[SCHEDULER] Task {task.id} started: {task.description[:80]}")
        self._publish("task_started", {"description": task.description}, task_id=task.id)
        yield plan

        context = self.prompt_builder.build_task_context(
            plan, plan.get_task(task.id), "\n".join(history_lines), self.config.history_window
        )
        started = time.monotonic()

        try:
            stream = self.executor.execute_task(task.description, context, token)
            for item in stream:
                if token.cancelled:
                    raise ExecutionCancelledError(task.id)
                if item is None:
                    continue
                if isinstance(item, Citation):
                    plan = plan.add_citation(task.id, item)
                else:
                    chunk = str(item)
                    plan = plan.append_result(task.id, chunk)
                    self._publish("task_chunk", {"chunk": chunk}, task_id=task.id, severity="debug")
                yield plan
            if token.cancelled:
                raise ExecutionCancelledError(task.id)
        except ExecutionCancelledError:
            logger.warning(f"[SCHEDULER] Task {task.id} cancelled while in progress")
            yield plan.fail_task(task.id, CANCELLED_TASK_ERROR)
            return
        except Exception as e:
            error = wrap_exception(e, "execute_task", {"task_id": task.id})
            logger.error(f"[SCHEDULER] {error.message}")
            self._publish(
                "task_failed",
                {"error": str(e), "error_info": error.to_dict()},
                task_id=task.id,
                severity="error",
            )
            yield plan.fail_task(task.id, str(e) or e.__class__.__name__)
            return

        output = plan.get_task(task.id).result.strip()
        plan = plan.complete_task(task.id)
        history_lines.append(f"Task {task.id} output: {output}")
        log_performance(
            logger, f"task {task.id}", time.monotonic() - started,
            metadata={"chars": len(output), "citations": len(plan.get_task(task.id).citations)},
        )
        self._publish(
            "task_completed",
            {"result_length": len(output), "citations": len(plan.get_task(task.id).citations)},
            task_id=task.id,
        )
        yield plan

    def _drain_edits(self, plan: Plan):
        """Apply every queued edit; failing edits are alerted and skipped."""
        edited = False
        while True:
            try:
                edit = self._edits.get_nowait()
            except queue.Empty:
                return plan, edited
            try:
                updated = edit(plan)
                if not isinstance(updated, Plan):
                    raise TypeError(f"plan edit returned {type(updated).__name__}, expected Plan")
            except Exception as e:
                logger.warning(f"[SCHEDULER] Plan edit rejected: {e}")
                self._alert(f"Plan edit rejected: {e}")
                self._publish("plan_edited", {"applied": False, "error": str(e)}, severity="warning")
                continue
            added = len(updated.tasks) - len(plan.tasks)
            plan = updated
            edited = True
            logger.info(f"[SCHEDULER] Plan edit applied ({added:+d} tasks)")
            self._publish("plan_edited", {"applied": True, "task_count": len(plan.tasks)})

    # ------------------------------------------------------------------
    # Run endings
    # ------------------------------------------------------------------

    def _finish_completed(self, plan: Plan, history_lines: List[str]) -> None:
        history = "\n".join(history_lines)
        summary: Optional[str] = None
        try:
            summary = self.summarizer.summarize(plan, history)
            self._emit("assistant", f"Mission Complete\n\n{summary}")
        except Exception as e:
            logger.warning(f"[SCHEDULER] Summary generation failed: {e}")
            self._emit("assistant", SUMMARY_SKIPPED_MESSAGE)
        self._publish("mission_summary", {"summary": summary, "progress": plan.progress()})
        logger.info(f"[SCHEDULER] Mission complete: {plan.progress()}")
        self._report(ExecutionOutcome.COMPLETED, plan, history, summary=summary)

    def _finish_failed(self, plan: Plan, history_lines: List[str], task: Task) -> None:
        self._alert(f"Task {task.id} failed. Manual intervention required.")
        self._publish(
            "execution_halted",
            {"failed_task_id": task.id, "error": task.error},
            task_id=task.id,
            severity="error",
        )
        self._report(
            ExecutionOutcome.FAILED, plan, "\n".join(history_lines),
            failed_task_id=task.id, error=task.error,
        )

    def _finish_stalled(self, plan: Plan, history_lines: List[str], waiting, polls: int) -> None:
        error = SchedulerStalledError(list(waiting), polls)
        described = ", ".join(f"{task_id} ({status.value})" for task_id, status in waiting.items())
        logger.error(f"[SCHEDULER] {error.message}: {described}")
        self._alert(f"Execution stalled: no task became eligible after {polls} polls. Waiting: {described}")
        self._report(ExecutionOutcome.STALLED, plan, "\n".join(history_lines), error=str(error))

    def _finish_cancelled(
        self,
        plan: Plan,
        history_lines: List[str],
        task_id: Optional[str],
        token: CancellationToken
    ) -> None:
        error = ExecutionCancelledError(task_id)
        logger.warning(f"[SCHEDULER] {error.message}")
        self._alert(token.reason or error.message)
        self._publish("execution_cancelled", {"task_id": task_id}, task_id=task_id, severity="warning")
        self._report(
            ExecutionOutcome.CANCELLED, plan, "\n".join(history_lines),
            failed_task_id=task_id, error=error.message,
        )

    def _report(self, outcome: ExecutionOutcome, plan: Plan, history: str, **kwargs) -> None:
        self.last_report = ExecutionReport(
            outcome=outcome,
            plan=plan,
            history=history,
            messages=list(self._run_messages),
            **kwargs
        )

    # ------------------------------------------------------------------
    # Signals
    # ------------------------------------------------------------------

    def _emit(self, role: str, content: str) -> None:
        message = Message(role=role, content=content)  # type: ignore[arg-type]
        self.messages.append(message)
        self._run_messages.append(message)

    def _alert(self, content: str) -> None:
        self._emit("assistant", content)

    def _publish(
        self,
        event_type: str,
        payload: Dict[str, Any],
        task_id: Optional[str] = None,
        severity: str = "info"
    ) -> None:
        if self.event_bus is None:
            return
        self.event_bus.publish(create_system_event(
            event_type=event_type,
            source="execution_scheduler",
            payload=payload,
            source_task_id=task_id,
            severity=severity,  # type: ignore[arg-type]
        ))
