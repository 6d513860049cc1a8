"""
LLM-backed capabilities - Planner, TaskExecutor and Summarizer over LLMClient

These are the production implementations of the contracts in
``core.capabilities``. Every call goes through ``LLMClient`` and therefore
through the shared rate limiter.
"""

import re
from dataclasses import replace
from typing import Any, Dict, Iterator, List, Optional, Sequence

from ..config.engine_config import PlannerConfig
from ..models.enums import Priority, TaskStatus
from ..models.plan import Plan
from ..models.task import Citation
from ..utils.exceptions import (
    InvalidParameterError,
    MissionPlannerError,
    PlanGenerationError,
)
from ..utils.llm_client import LLMClient
from ..utils.logger import get_logger
from ..utils.plan_validator import PlanValidator
from ..utils.prompt_builder import PromptBuilder
from .capabilities import CancellationToken, StreamItem

logger = get_logger(__name__)

_MARKDOWN_LINK = re.compile(r"\[([^\]]+)\]\((https?://[^\s)]+)\)")


def extract_citations(text: str) -> List[Citation]:
    """Citations for every distinct markdown link ``[title](http...)`` in *text*."""
    citations = []
    seen = set()
    for title, uri in _MARKDOWN_LINK.findall(text or ""):
        if uri in seen:
            continue
        seen.add(uri)
        citations.append(Citation(uri=uri, title=title.strip() or None))
    return citations


class LLMPlanner:
    """
    Decomposes a goal into a Plan with the LLM.

    The answer must pass three quality gates before it is accepted: raw
    structure (goal, ids, descriptions), Plan construction, and plan
    integrity (task count bounds, no self-dependency, no cycle). Problems
    are fed back into the next attempt.
    """

    def __init__(
        self,
        llm: LLMClient,
        config: Optional[PlannerConfig] = None,
        prompt_builder: Optional[PromptBuilder] = None
    ):
        self.llm = llm
        self.config = config or PlannerConfig()
        self.prompt_builder = prompt_builder or PromptBuilder()

    def generate_plan(self, goal: str, grounding_data: Sequence[str] = ()) -> Plan:
        """
        Generate a plan for *goal*.

        Args:
            goal: The user's goal
            grounding_data: Optional context strings carried on the plan

        Returns:
            Validated Plan with every task PENDING

        Raises:
            InvalidParameterError: empty goal
            PlanGenerationError: no attempt passed the quality gates
        """
        goal = (goal or "").strip()
        if not goal:
            raise InvalidParameterError("goal", "goal must be a non-empty string")

        problems: List[str] = []
        last_error: Optional[Exception] = None
        attempts = self.config.max_retries

        for attempt in range(1, attempts + 1):
            logger.info(f"[PLAN] Generating plan (attempt {attempt}/{attempts})")
            prompt = self.prompt_builder.build_plan_prompt(
                goal,
                min_tasks=self.config.min_tasks,
                max_tasks=self.config.max_tasks,
                grounding_data=grounding_data,
                problems=problems or None,
            )

            try:
                text = self.llm.generate_content(prompt, system_prompt=PromptBuilder.PLAN_SYSTEM_PROMPT)
                data = self.prompt_builder.parse_json_response(text)
            except (ValueError, MissionPlannerError) as e:
                logger.warning(f"[PLAN] Attempt {attempt} failed: {e}")
                last_error = e
                problems = [f"Answer was not a valid JSON object ({e.__class__.__name__})"]
                continue

            plan, problems = self._quality_gates(data, grounding_data)
            if plan is not None:
                logger.info(f"[PLAN] Plan accepted with {len(plan.tasks)} tasks")
                for task in plan.tasks:
                    deps = f" (after {', '.join(task.dependencies)})" if task.dependencies else ""
                    logger.debug(f"[PLAN]   {task.id} - {task.description[:60]}{deps}")
                return plan

            logger.warning(f"[PLAN] Attempt {attempt} rejected: {'; '.join(problems)}")

        raise PlanGenerationError(goal, attempts, problems=problems, last_error=last_error)

    def _quality_gates(self, data: Any, grounding_data: Sequence[str]):
        ok, errors = PlanValidator.validate_plan_data(data)
        if not ok:
            return None, errors

        try:
            plan = Plan.from_dict(data)
        except (ValueError, MissionPlannerError) as e:
            return None, [str(e)]

        # Generated plans always start fresh.
        tasks = tuple(
            t if t.status == TaskStatus.PENDING
            else t.evolve(status=TaskStatus.PENDING, result="", citations=(), error=None)
            for t in plan.tasks
        )
        plan = replace(
            plan,
            tasks=tasks,
            grounding_data=tuple(str(g) for g in grounding_data) or plan.grounding_data,
        )

        ok, errors = PlanValidator.validate_plan(
            plan, min_tasks=self.config.min_tasks, max_tasks=self.config.max_tasks
        )
        if not ok:
            return None, errors
        return plan, []

    def decompose_task(self, plan: Plan, task_id: str, min_items: int = 3, max_items: int = 5) -> Plan:
        """
        Ask the LLM for sub-tasks of *task_id* and append them to *plan*.

        Raises:
            UnknownTaskError: task_id is not in the plan
            PlanGenerationError: the answer held no usable sub-tasks
        """
        task = plan.get_task(task_id)
        prompt = self.prompt_builder.build_decompose_prompt(plan, task, min_items, max_items)
        text = self.llm.generate_content(prompt, system_prompt=PromptBuilder.PLAN_SYSTEM_PROMPT)

        try:
            data = self.prompt_builder.parse_json_response(text)
        except ValueError as e:
            raise PlanGenerationError(task.description, 1, problems=[str(e)], last_error=e) from e

        subtasks = data.get("subtasks") if isinstance(data, dict) else None
        descriptions = [str(s).strip() for s in subtasks or [] if str(s).strip()]
        if not descriptions:
            raise PlanGenerationError(task.description, 1, problems=["No sub-tasks returned"])

        logger.info(f"[PLAN] Decomposed task {task_id} into {len(descriptions)} sub-tasks")
        return plan.extend_with_subtasks(task_id, descriptions[:max_items])


class LLMTaskExecutor:
    """Executes a task by streaming the model's answer chunk by chunk."""

    def __init__(self, llm: LLMClient, prompt_builder: Optional[PromptBuilder] = None):
        self.llm = llm
        self.prompt_builder = prompt_builder or PromptBuilder()

    def execute_task(
        self,
        description: str,
        context: str,
        cancel_token: Optional[CancellationToken] = None
    ) -> Iterator[StreamItem]:
        prompt = self.prompt_builder.build_execution_prompt(description, context)
        collected = []
        for chunk in self.llm.stream_content(
            prompt,
            system_prompt=PromptBuilder.EXECUTOR_SYSTEM_PROMPT,
            cancel_token=cancel_token,
        ):
            collected.append(chunk)
            yield chunk

        for citation in extract_citations("".join(collected)):
            yield citation


class LLMSummarizer:
    """Writes the end-of-mission briefing."""

    def __init__(self, llm: LLMClient, prompt_builder: Optional[PromptBuilder] = None):
        self.llm = llm
        self.prompt_builder = prompt_builder or PromptBuilder()

    @staticmethod
    def compute_metrics(plan: Plan) -> Dict[str, int]:
        """
        Completion metrics for the summary prompt.

        critical_path_risk counts PENDING tasks that still wait on
        dependencies.
        """
        return {
            "completed": sum(1 for t in plan.tasks if t.status == TaskStatus.COMPLETED),
            "total": len(plan.tasks),
            "high_priority_remaining": sum(
                1 for t in plan.tasks
                if t.priority == Priority.HIGH and t.status != TaskStatus.COMPLETED
            ),
            "critical_path_risk": sum(
                1 for t in plan.tasks
                if t.status == TaskStatus.PENDING and t.dependencies
            ),
        }

    def summarize(self, plan: Plan, history: str) -> str:
        metrics = self.compute_metrics(plan)
        logger.info(
            f"[PLAN] Summarizing mission: {metrics['completed']}/{metrics['total']} tasks completed"
        )
        prompt = self.prompt_builder.build_summary_prompt(plan, history, metrics)
        return self.llm.generate_content(prompt, system_prompt=PromptBuilder.SUMMARY_SYSTEM_PROMPT)
