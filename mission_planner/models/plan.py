"""
Plan module - Immutable task graph snapshot and its mutation primitives

Every mutation returns a new Plan; the original snapshot is never touched,
so readers holding an older snapshot never observe a half-applied update.

Usage:
    plan = Plan(goal="Ship v2", tasks=(Task(id="1", description="Design"),))
    plan = plan.append_task("Build", dependencies=["1"])
    plan = plan.start_task("1").append_result("1", "draft...")
"""

from dataclasses import dataclass, field, replace
from typing import Optional, Tuple, Dict, Any, List, Iterable

from .enums import TaskStatus, Priority
from .task import Task, Citation, normalize_dependencies
from ..utils.exceptions import (
    UnknownTaskError,
    DuplicateTaskError,
    SelfDependencyError,
    DependencyCycleError,
    InvalidTransitionError,
    TaskSealedError,
)

# Allowed stored-status transitions
_TRANSITIONS = {
    TaskStatus.PENDING: frozenset({TaskStatus.IN_PROGRESS}),
    TaskStatus.IN_PROGRESS: frozenset({TaskStatus.COMPLETED, TaskStatus.FAILED}),
    TaskStatus.COMPLETED: frozenset(),
    TaskStatus.FAILED: frozenset(),
}


@dataclass(frozen=True)
class PlanValidation:
    """Review-loop metadata attached to an accepted proposal"""
    quality_score: int
    iterations: int
    agent_consensus: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "quality_score": self.quality_score,
            "iterations": self.iterations,
            "agent_consensus": self.agent_consensus,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlanValidation":
        return cls(
            quality_score=int(data.get("quality_score", data.get("qualityScore", 0))),
            iterations=int(data.get("iterations", 0)),
            agent_consensus=bool(data.get("agent_consensus", data.get("agentConsensus", False))),
        )


def _dependency_path(by_id: Dict[str, Task], start: str, goal: str) -> Optional[List[str]]:
    """
    Return the dependency chain start -> ... -> goal if *start* transitively
    depends on *goal*, else None. Unknown ids are ignored.
    """
    stack = [(start, [start])]
    seen = set()
    while stack:
        node, path = stack.pop()
        if node == goal:
            return path
        if node in seen:
            continue
        seen.add(node)
        task = by_id.get(node)
        if task is None:
            continue
        for dep in task.dependencies:
            if dep in by_id or dep == goal:
                stack.append((dep, path + [dep]))
    return None


@dataclass(frozen=True)
class Plan:
    """
    Ordered, immutable collection of tasks for one mission.

    Attributes:
        goal: The user's high-level objective
        tasks: Tasks in insertion order
        grounding_data: User-supplied context strings
        name: Optional display name
        validation: Review-loop metadata, when the plan went through review
    """
    goal: str
    tasks: Tuple[Task, ...] = ()
    grounding_data: Tuple[str, ...] = ()
    name: Optional[str] = None
    validation: Optional[PlanValidation] = None
    _index: Dict[str, int] = field(default_factory=dict, init=False, repr=False, compare=False, hash=False)

    def __post_init__(self):
        tasks = tuple(self.tasks)
        index: Dict[str, int] = {}
        for position, task in enumerate(tasks):
            if task.id in index:
                raise DuplicateTaskError(task.id)
            index[task.id] = position
        object.__setattr__(self, "tasks", tasks)
        object.__setattr__(self, "grounding_data", tuple(self.grounding_data))
        object.__setattr__(self, "_index", index)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def has_task(self, task_id: str) -> bool:
        return str(task_id) in self._index

    def get_task(self, task_id: str) -> Task:
        """Return the task with *task_id* or raise UnknownTaskError."""
        position = self._index.get(str(task_id))
        if position is None:
            raise UnknownTaskError(str(task_id), operation="get_task")
        return self.tasks[position]

    def task_ids(self) -> List[str]:
        return [task.id for task in self.tasks]

    def has_unfinished_tasks(self) -> bool:
        """True while at least one task is neither COMPLETED nor FAILED."""
        return any(not task.is_terminal for task in self.tasks)

    def progress(self) -> Dict[str, int]:
        """Counts of tasks per stored status plus total."""
        counts = {status.value.lower(): 0 for status in _TRANSITIONS}
        for task in self.tasks:
            counts[task.status.value.lower()] += 1
        counts["total"] = len(self.tasks)
        return counts

    def next_task_id(self) -> str:
        """
        Generate an id not already in use: one past the largest numeric id,
        bumped until free.
        """
        numeric = [int(tid) for tid in self._index if tid.isdecimal()]
        candidate = (max(numeric) + 1) if numeric else len(self.tasks) + 1
        while str(candidate) in self._index:
            candidate += 1
        return str(candidate)

    # ------------------------------------------------------------------
    # Structural edits
    # ------------------------------------------------------------------

    def _with_tasks(self, tasks: Iterable[Task]) -> "Plan":
        return replace(self, tasks=tuple(tasks))

    def _replace_task(self, task: Task) -> "Plan":
        tasks = list(self.tasks)
        tasks[self._index[task.id]] = task
        return self._with_tasks(tasks)

    def add_task(self, task: Task) -> "Plan":
        """
        Append *task*.

        Raises:
            DuplicateTaskError: id already present
            SelfDependencyError: task lists itself as a dependency
            DependencyCycleError: task closes a cycle with existing tasks
        """
        if task.id in self._index:
            raise DuplicateTaskError(task.id)
        if task.id in task.dependencies:
            raise SelfDependencyError(task.id)

        by_id = {t.id: t for t in self.tasks}
        by_id[task.id] = task
        for dep in task.dependencies:
            if dep not in by_id:
                continue
            path = _dependency_path(by_id, dep, task.id)
            if path:
                raise DependencyCycleError(path, edge=(dep, task.id))

        return self._with_tasks(self.tasks + (task,))

    def append_task(
        self,
        description: str,
        priority: Priority = Priority.MEDIUM,
        dependencies: Iterable[str] = (),
        category: Optional[str] = None,
        parent_id: Optional[str] = None,
        **metadata: Any
    ) -> "Plan":
        """Append a new PENDING task with a freshly generated id (it becomes ``tasks[-1]``)."""
        task = Task(
            id=self.next_task_id(),
            description=description,
            priority=priority,
            dependencies=normalize_dependencies(dependencies),
            category=category,
            parent_id=parent_id,
            duration=metadata.pop("duration", None),
            output=metadata.pop("output", None),
            extra=metadata,
        )
        return self.add_task(task)

    def extend_with_subtasks(self, parent_id: str, descriptions: Iterable[str]) -> "Plan":
        """
        Append one task per description as sub-tasks of *parent_id*.

        Sub-tasks inherit the parent's priority, category and known
        dependencies.
        """
        parent = self.get_task(parent_id)
        plan = self
        for description in descriptions:
            text = str(description).strip()
            if not text:
                continue
            plan = plan.append_task(
                text,
                priority=parent.priority,
                dependencies=[d for d in parent.dependencies if plan.has_task(d)],
                category=parent.category,
                parent_id=parent.id,
            )
        return plan

    def add_dependency(self, source: str, target: str) -> "Plan":
        """
        Make *target* depend on *source*.

        Adding an edge that already exists is a no-op.

        Raises:
            SelfDependencyError: source == target
            UnknownTaskError: either id is not in the plan
            DependencyCycleError: the edge would close a cycle
        """
        source, target = str(source), str(target)
        if source == target:
            raise SelfDependencyError(source)
        for task_id in (source, target):
            if task_id not in self._index:
                raise UnknownTaskError(task_id, operation="add_dependency")

        target_task = self.get_task(target)
        if source in target_task.dependencies:
            return self

        by_id = {t.id: t for t in self.tasks}
        path = _dependency_path(by_id, source, target)
        if path:
            raise DependencyCycleError(path, edge=(source, target))

        return self._replace_task(
            target_task.evolve(dependencies=target_task.dependencies + (source,))
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def update_task_status(self, task_id: str, status: TaskStatus) -> "Plan":
        """
        Move a task along PENDING -> IN_PROGRESS -> COMPLETED | FAILED.

        Raises:
            UnknownTaskError: task_id not in plan
            InvalidTransitionError: any other transition, including the
                display-only BLOCKED / WAITING states
        """
        task = self.get_task(task_id)
        status = TaskStatus.parse(status)
        if status not in _TRANSITIONS.get(task.status, frozenset()):
            raise InvalidTransitionError(task.id, task.status.value, status.value)
        return self._replace_task(task.evolve(status=status))

    def start_task(self, task_id: str) -> "Plan":
        """Mark a PENDING task IN_PROGRESS and reset its result accumulator."""
        plan = self.update_task_status(task_id, TaskStatus.IN_PROGRESS)
        task = plan.get_task(task_id)
        return plan._replace_task(task.evolve(result="", citations=(), error=None))

    def _open_task(self, task_id: str) -> Task:
        task = self.get_task(task_id)
        if task.status != TaskStatus.IN_PROGRESS:
            raise TaskSealedError(task.id, task.status.value)
        return task

    def append_result(self, task_id: str, chunk: str) -> "Plan":
        """Append streamed text to an IN_PROGRESS task."""
        task = self._open_task(task_id)
        if not chunk:
            return self
        return self._replace_task(task.evolve(result=task.result + chunk))

    def add_citation(self, task_id: str, citation: Citation) -> "Plan":
        """Append a citation to an IN_PROGRESS task (duplicates by uri are skipped)."""
        task = self._open_task(task_id)
        if any(existing.uri == citation.uri for existing in task.citations):
            return self
        return self._replace_task(task.evolve(citations=task.citations + (citation,)))

    def complete_task(
        self,
        task_id: str,
        result: Optional[str] = None,
        citations: Iterable[Citation] = ()
    ) -> "Plan":
        """
        Seal an IN_PROGRESS task as COMPLETED.

        Args:
            result: Final text; replaces the streamed accumulator when given
            citations: Extra citations to append before sealing
        """
        plan = self
        self._open_task(task_id)
        for citation in citations:
            plan = plan.add_citation(task_id, citation)
        task = plan.get_task(task_id)
        if result is not None:
            task = task.evolve(result=result)
        plan = plan._replace_task(task)
        return plan.update_task_status(task_id, TaskStatus.COMPLETED)

    def fail_task(self, task_id: str, error: str) -> "Plan":
        """Seal an IN_PROGRESS task as FAILED with *error*."""
        task = self._open_task(task_id)
        plan = self._replace_task(task.evolve(error=str(error)))
        return plan.update_task_status(task_id, TaskStatus.FAILED)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def with_validation(self, validation: PlanValidation) -> "Plan":
        return replace(self, validation=validation)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "goal": self.goal,
            "tasks": [task.to_dict() for task in self.tasks],
            "grounding_data": list(self.grounding_data),
        }
        if self.name:
            data["name"] = self.name
        if self.validation:
            data["validation"] = self.validation.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Plan":
        """
        Build a plan from planner output or a saved plan (camelCase tolerated).

        Raises:
            DependencyCycleError: the loaded dependencies form a cycle
        """
        from ..core.graph_analysis import ensure_acyclic

        validation = data.get("validation")
        grounding = data.get("grounding_data", data.get("groundingData")) or ()
        plan = cls(
            goal=str(data.get("goal") or "").strip(),
            tasks=tuple(Task.from_dict(t) for t in data.get("tasks") or ()),
            grounding_data=tuple(str(item) for item in grounding),
            name=data.get("name"),
            validation=PlanValidation.from_dict(validation) if validation else None,
        )
        ensure_acyclic(plan.tasks)
        return plan
