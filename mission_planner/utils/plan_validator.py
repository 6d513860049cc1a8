"""
Plan Validation Module

Load-time integrity checks for plans coming from the planner, a saved file
or an operator import. Cycles are rejected here, before the scheduler ever
sees them, since a cyclic plan can only stall.
"""

from typing import Dict, List, Any, Optional, Tuple

from mission_planner.core.graph_analysis import topological_order, find_cycle_nodes
from mission_planner.models import Plan, Task
from mission_planner.utils.logger import get_logger

logger = get_logger(__name__)


class PlanValidator:
    """Validates plan integrity and reports every problem found."""

    @staticmethod
    def validate_plan(
        plan: Plan,
        min_tasks: Optional[int] = None,
        max_tasks: Optional[int] = None
    ) -> Tuple[bool, List[str]]:
        """
        Validate that a plan is executable.

        Dangling dependency ids are reported as warnings only (they never
        block).

        Args:
            plan: Plan to validate
            min_tasks: Optional lower bound on task count
            max_tasks: Optional upper bound on task count

        Returns:
            Tuple of (is_valid, list_of_errors)
        """
        errors = []

        if not plan.goal.strip():
            errors.append("Plan has an empty goal")

        count = len(plan.tasks)
        if min_tasks is not None and count < min_tasks:
            errors.append(f"Plan has {count} tasks, expected at least {min_tasks}")
        if max_tasks is not None and count > max_tasks:
            errors.append(f"Plan has {count} tasks, expected at most {max_tasks}")

        for task in plan.tasks:
            if task.id in task.dependencies:
                errors.append(f"Task {task.id}: depends on itself")

        cycle_nodes = PlanValidator.cycle_nodes(plan.tasks)
        if cycle_nodes:
            errors.append(f"Cycle detected in task dependencies: {', '.join(cycle_nodes)}")

        for task_id, dep in PlanValidator.dangling_dependencies(plan):
            logger.warning(f"[PLAN] Task {task_id}: unknown dependency '{dep}' will be ignored")

        return len(errors) == 0, errors

    @staticmethod
    def validate_plan_data(data: Dict[str, Any]) -> Tuple[bool, List[str]]:
        """
        Validate raw planner output before it is turned into a Plan.

        Catches problems the Plan constructor would reject outright
        (duplicate ids, missing fields) so they can be fed back to the model.
        """
        errors = []

        if not isinstance(data, dict):
            return False, [f"Expected a JSON object, got {type(data).__name__}"]

        if not str(data.get("goal") or "").strip():
            errors.append("Missing goal")

        tasks = data.get("tasks")
        if not isinstance(tasks, list):
            return False, errors + ["Missing 'tasks' list"]

        seen = set()
        for i, task in enumerate(tasks):
            if not isinstance(task, dict):
                errors.append(f"Task #{i}: not an object")
                continue
            task_id = str(task.get("id", "")).strip()
            if not task_id:
                errors.append(f"Task #{i}: missing 'id'")
            elif task_id in seen:
                errors.append(f"Task {task_id}: duplicate id")
            seen.add(task_id)
            if not str(task.get("description") or "").strip():
                errors.append(f"Task {task_id or i}: missing 'description'")

        return len(errors) == 0, errors

    @staticmethod
    def cycle_nodes(tasks: Tuple[Task, ...]) -> List[str]:
        """Ids on a dependency cycle, empty for a DAG."""
        _, unordered = topological_order(tasks)
        if not unordered:
            return []
        return find_cycle_nodes(tasks) or unordered

    @staticmethod
    def dangling_dependencies(plan: Plan) -> List[Tuple[str, str]]:
        """(task id, dependency id) pairs whose dependency is not in the plan."""
        return [
            (task.id, dep)
            for task in plan.tasks
            for dep in task.dependencies
            if not plan.has_task(dep)
        ]
