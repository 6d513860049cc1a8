"""
Prompt builder module - Constructs prompts for LLM interactions
"""

import json
import re
from typing import Dict, Any, List, Optional, Sequence, TYPE_CHECKING

if TYPE_CHECKING:
    from mission_planner.models import Plan, Task

_FENCE_PATTERN = re.compile(r"```(?:json)?\s*\n?|\n?\s*```", re.IGNORECASE)


class PromptBuilder:
    """
    Utility class for building structured prompts for the Mission Planner.

    This centralizes all prompt construction logic, making it easier to
    maintain and test LLM interactions.
    """

    PLAN_SYSTEM_PROMPT = (
        "You are a mission planner. You decompose goals into concrete, "
        "dependency-ordered tasks and answer with JSON only."
    )

    EXECUTOR_SYSTEM_PROMPT = (
        "You are a mission executor. Carry out the given task in the context of "
        "the overall goal and prior results. Be concrete and step by step. "
        "Cite sources as markdown links when you use them."
    )

    SUMMARY_SYSTEM_PROMPT = (
        "You write concise executive briefings about completed missions."
    )

    @staticmethod
    def build_plan_prompt(
        goal: str,
        min_tasks: int = 1,
        max_tasks: int = 30,
        grounding_data: Sequence[str] = (),
        problems: Optional[List[str]] = None
    ) -> str:
        """
        Build the plan generation prompt.

        Args:
            goal: The user's goal
            min_tasks: Fewest tasks the plan may contain
            max_tasks: Most tasks the plan may contain
            grounding_data: User-supplied context strings
            problems: Quality-gate failures from a previous attempt

        Returns:
            Formatted prompt string
        """
        grounding_section = ""
        if grounding_data:
            lines = "\n".join(f"- {item}" for item in grounding_data)
            grounding_section = f"\nGROUNDING CONTEXT:\n{lines}\n"

        retry_section = ""
        if problems:
            lines = "\n".join(f"- {p}" for p in problems)
            retry_section = f"\nYOUR PREVIOUS ANSWER WAS REJECTED:\n{lines}\nFix these problems.\n"

        return f"""Decompose the following goal into an executable task plan.

GOAL: {goal}
{grounding_section}{retry_section}
REQUIREMENTS:
- Between {min_tasks} and {max_tasks} tasks
- Task ids are short unique strings ("1", "2", ...)
- "dependencies" lists ids of tasks that must finish first; no cycles
- "priority" is one of HIGH, MEDIUM, LOW
- "status" is PENDING for every task

Respond with ONLY a JSON object:
{{
    "name": "short plan name",
    "goal": "{goal}",
    "tasks": [
        {{"id": "1", "description": "...", "status": "PENDING", "priority": "HIGH", "category": "...", "dependencies": []}}
    ]
}}"""

    @staticmethod
    def build_decompose_prompt(plan: "Plan", task: "Task", min_items: int = 3, max_items: int = 5) -> str:
        """Prompt asking for sub-tasks of a single task."""
        return f"""Break the following task into {min_items}-{max_items} smaller sub-tasks.

GOAL: {plan.goal}
TASK: {task.id} "{task.description}"

Respond with ONLY a JSON object:
{{"subtasks": ["first sub-task", "second sub-task"]}}"""

    @staticmethod
    def build_task_context(plan: "Plan", task: "Task", history: str, history_window: int = 800) -> str:
        """
        Context string handed to the task executor: goal, grounding, the task,
        plan progress and the tail of the running history.
        """
        completed = sum(1 for t in plan.tasks if t.status.value == "COMPLETED")
        grounding = "\n".join(f"- {item}" for item in plan.grounding_data) or "None"
        recent = history[-history_window:] if history_window else ""
        dependencies = ", ".join(task.dependencies) or "None"

        return f"""GOAL: {plan.goal}
GROUNDING:
{grounding}
TASK: {task.id} "{task.description}"
DEPENDENCIES: {dependencies}
PLAN PROGRESS: {completed}/{len(plan.tasks)}

RECENT HISTORY: {recent}"""

    @staticmethod
    def build_execution_prompt(description: str, context: str) -> str:
        return f"""{context}

Execute this task and provide step-by-step results:
{description}"""

    @staticmethod
    def build_summary_prompt(plan: "Plan", history: str, metrics: Dict[str, Any], history_tail: int = 1500) -> str:
        """Mission summary prompt with completion metrics."""
        return f"""Generate an executive mission summary.

GOAL: {plan.goal}
Total: {metrics['completed']}/{metrics['total']}
HIGH Priority Remaining: {metrics['high_priority_remaining']}
Critical Path Risk: {metrics['critical_path_risk']}
EXECUTION HISTORY: {history[-history_tail:]}

Format as a concise executive briefing with:
- Completion status
- Critical path risks
- Next action recommendations"""

    @staticmethod
    def build_critic_prompt(goal: str, proposal: Dict[str, Any]) -> str:
        return f"""Evaluate this plan for risks, missing dependencies and gaps.

GOAL: {goal}
PLAN:
{json.dumps(proposal, indent=2)}

Respond with ONLY a JSON object:
{{"score": <integer 0-100>, "feedback": ["most important issue", "..."]}}"""

    @staticmethod
    def build_analyst_prompt(goal: str, proposal: Dict[str, Any]) -> str:
        return f"""Verify grounding and feasibility of this plan.

GOAL: {goal}
PLAN:
{json.dumps(proposal, indent=2)}

Respond with ONLY a JSON object:
{{"feasibility": <number 0-1>, "notes": "short assessment"}}"""

    @staticmethod
    def build_refinement_prompt(goal: str, feedback: Sequence[str]) -> str:
        """Goal restated with the Critic's top feedback items."""
        return f"REVISE PLAN: {goal}. Feedback: {'. '.join(feedback)}"

    @staticmethod
    def parse_json_response(text: str) -> Any:
        """
        Parse a JSON answer, tolerating markdown code fences and prose
        around the outermost object.

        Raises:
            ValueError: no JSON object could be parsed
        """
        cleaned = _FENCE_PATTERN.sub("", text or "").strip()
        try:
            return json.loads(cleaned)
        except json.JSONDecodeError:
            pass

        start = cleaned.find("{")
        end = cleaned.rfind("}")
        if start != -1 and end > start:
            try:
                return json.loads(cleaned[start:end + 1])
            except json.JSONDecodeError:
                pass
        raise ValueError(f"Failed to parse JSON response: {cleaned[:200]!r}")
