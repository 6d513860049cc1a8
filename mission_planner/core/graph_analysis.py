"""
Graph analysis - Read-only views over a plan's dependency graph

- compute_depths / group_layers: longest-chain depth per task, for layout
- simulate_failure: what-if cascade of a failing task over its dependents
- topological_order / find_cycle_nodes / ensure_acyclic: load- and
  edit-time acyclicity checks

None of these mutate the plan, and none are consulted by the scheduler.
"""

from collections import deque
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple, Set

from ..models.enums import Priority
from ..models.plan import Plan
from ..models.task import Task
from ..utils.exceptions import DependencyCycleError


@dataclass(frozen=True)
class FailureCascade:
    """
    Result of a hypothetical failure.

    Attributes:
        cascade: Seed id followed by every transitive dependent, in BFS order
        risk_score: Share of the plan affected, 0..100 with one decimal
        impacted_high_priority: HIGH priority tasks inside the cascade
    """
    cascade: List[str] = field(default_factory=list)
    risk_score: float = 0.0
    impacted_high_priority: int = 0

    def to_dict(self) -> dict:
        return {
            "cascade": list(self.cascade),
            "risk_score": self.risk_score,
            "impacted_high_priority": self.impacted_high_priority,
        }


def compute_depths(tasks: Sequence[Task]) -> Dict[str, int]:
    """
    Depth per task id: 0 without (known) dependencies, otherwise
    ``max(depth(dep)) + 1``.

    Iterative post-order walk, so long chains cannot exhaust the stack. A
    dependency met while it is still on the current path (a cycle) counts
    as depth 0 for that edge. Unknown dependency ids are ignored.
    """
    by_id = {task.id: task for task in tasks}
    depths: Dict[str, int] = {}

    def known_deps(task_id: str) -> List[str]:
        return [d for d in by_id[task_id].dependencies if d in by_id]

    for root in tasks:
        if root.id in depths:
            continue
        on_path: Set[str] = {root.id}
        stack = [(root.id, iter(known_deps(root.id)))]
        while stack:
            node, pending = stack[-1]
            for dep in pending:
                if dep not in depths and dep not in on_path:
                    on_path.add(dep)
                    stack.append((dep, iter(known_deps(dep))))
                    break
            else:
                stack.pop()
                on_path.discard(node)
                depths[node] = max((depths.get(d, 0) + 1 for d in known_deps(node)), default=0)

    return {task.id: depths[task.id] for task in tasks}


def _reaches(by_id: Dict[str, Task], start: str) -> bool:
    """True if *start* can reach itself through known dependency edges."""
    stack = [d for d in by_id[start].dependencies if d in by_id]
    seen: Set[str] = set()
    while stack:
        node = stack.pop()
        if node == start:
            return True
        if node in seen:
            continue
        seen.add(node)
        stack.extend(d for d in by_id[node].dependencies if d in by_id)
    return False


def group_layers(tasks: Sequence[Task]) -> Dict[int, List[str]]:
    """Group task ids by depth (ascending depth, plan order within a layer)."""
    depths = compute_depths(tasks)
    layers: Dict[int, List[str]] = {}
    for task in tasks:
        layers.setdefault(depths[task.id], []).append(task.id)
    return dict(sorted(layers.items()))


def simulate_failure(plan: Plan, failed_task_id: str) -> FailureCascade:
    """
    Breadth-first walk over reverse dependency edges starting at
    *failed_task_id*.

    ``risk_score = round(len(cascade) / len(tasks) * 100, 1)`` capped at 100;
    an empty plan yields ``[failed_task_id]`` and 100.0.
    """
    failed_task_id = str(failed_task_id)
    tasks = plan.tasks
    if not tasks:
        return FailureCascade(cascade=[failed_task_id], risk_score=100.0)

    dependents: Dict[str, List[str]] = {}
    for task in tasks:
        for dep in task.dependencies:
            dependents.setdefault(dep, []).append(task.id)

    cascade = [failed_task_id]
    visited = {failed_task_id}
    queue = deque([failed_task_id])
    while queue:
        current = queue.popleft()
        for dependent in dependents.get(current, ()):
            if dependent not in visited:
                visited.add(dependent)
                cascade.append(dependent)
                queue.append(dependent)

    risk = min(round(len(cascade) / len(tasks) * 100, 1), 100.0)
    high = sum(
        1 for task_id in cascade
        if plan.has_task(task_id) and plan.get_task(task_id).priority == Priority.HIGH
    )
    return FailureCascade(cascade=cascade, risk_score=risk, impacted_high_priority=high)


def topological_order(tasks: Sequence[Task]) -> Tuple[List[str], List[str]]:
    """
    Stable Kahn's algorithm over known dependency edges.

    Returns:
        (order, cycle_nodes) where cycle_nodes holds every id that could not
        be ordered (members of a cycle or downstream of one), in plan order
    """
    ids = [task.id for task in tasks]
    known = set(ids)
    indegree = {task_id: 0 for task_id in ids}
    dependents: Dict[str, List[str]] = {task_id: [] for task_id in ids}
    for task in tasks:
        for dep in task.dependencies:
            if dep in known:
                indegree[task.id] += 1
                dependents[dep].append(task.id)

    position = {task_id: i for i, task_id in enumerate(ids)}
    ready = deque(task_id for task_id in ids if indegree[task_id] == 0)
    order: List[str] = []
    while ready:
        current = ready.popleft()
        order.append(current)
        released = []
        for dependent in dependents[current]:
            indegree[dependent] -= 1
            if indegree[dependent] == 0:
                released.append(dependent)
        ready.extend(sorted(released, key=position.__getitem__))

    ordered = set(order)
    return order, [task_id for task_id in ids if task_id not in ordered]


def find_cycle_nodes(tasks: Sequence[Task]) -> List[str]:
    """Ids that sit on a dependency cycle (not merely downstream of one)."""
    by_id = {task.id: task for task in tasks}
    return [task.id for task in tasks if _reaches(by_id, task.id)]


def ensure_acyclic(tasks: Sequence[Task]) -> None:
    """Raise DependencyCycleError if the known dependency edges contain a cycle."""
    _, unordered = topological_order(tasks)
    if unordered:
        raise DependencyCycleError(find_cycle_nodes(tasks) or unordered)
