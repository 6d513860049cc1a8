"""
Blocking evaluator - decides whether a task's prerequisites are satisfied

All functions here are pure: they look at a task list snapshot and never
raise. Dependency ids that do not match any task in the list are ignored
(they never block).
"""

from typing import Dict, Iterable, Mapping, Optional, Sequence, Union

from ..models.enums import TaskStatus
from ..models.task import Task

TaskCollection = Union[Sequence[Task], Mapping[str, Task]]


def _index(all_tasks: Union[TaskCollection, Iterable[Task]]) -> Dict[str, Task]:
    if isinstance(all_tasks, Mapping):
        return dict(all_tasks)
    return {task.id: task for task in all_tasks}


def is_task_blocked(task: Task, all_tasks: TaskCollection) -> bool:
    """
    A task is blocked iff at least one of its dependencies references an
    existing task whose status is not COMPLETED.

    The task's own status is irrelevant.
    """
    if not task.dependencies:
        return False
    by_id = _index(all_tasks)
    for dep_id in task.dependencies:
        dep = by_id.get(dep_id)
        if dep is not None and dep.status != TaskStatus.COMPLETED:
            return True
    return False


def select_next_task(tasks: Sequence[Task]) -> Optional[Task]:
    """
    First PENDING, unblocked task in declared order, or None.

    Priority is deliberately not consulted.
    """
    by_id = _index(tasks)
    for task in tasks:
        if task.status == TaskStatus.PENDING and not is_task_blocked(task, by_id):
            return task
    return None


def display_status(task: Task, all_tasks: TaskCollection) -> TaskStatus:
    """
    Derived status for presentation.

    A PENDING task shows BLOCKED when a dependency has FAILED (it can never
    run) and WAITING while other dependencies are unfinished.
    """
    if task.status != TaskStatus.PENDING:
        return task.status
    by_id = _index(all_tasks)
    deps = [by_id[d] for d in task.dependencies if d in by_id]
    if any(dep.status == TaskStatus.FAILED for dep in deps):
        return TaskStatus.BLOCKED
    if any(dep.status != TaskStatus.COMPLETED for dep in deps):
        return TaskStatus.WAITING
    return task.status


def waiting_tasks(tasks: Sequence[Task]) -> Dict[str, TaskStatus]:
    """Map of non-terminal task id -> display status (used in stall reports)."""
    by_id = _index(tasks)
    return {
        task.id: display_status(task, by_id)
        for task in tasks
        if not task.is_terminal
    }
