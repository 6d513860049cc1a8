"""
Task module - Individual task structure definition
"""

from dataclasses import dataclass, field, replace
from typing import Optional, Tuple, Dict, Any, Iterable

from .enums import TaskStatus, Priority, TERMINAL_STATUSES, DISPLAY_ONLY_STATUSES


@dataclass(frozen=True)
class Citation:
    """A source gathered while a task was executing"""
    uri: str
    title: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"uri": self.uri, "title": self.title}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Citation":
        return cls(uri=str(data["uri"]), title=data.get("title"))


def normalize_dependencies(dependencies: Optional[Iterable[Any]]) -> Tuple[str, ...]:
    """Coerce dependency ids to strings, dropping blanks and duplicates (order kept)."""
    seen = []
    for dep in dependencies or ():
        dep_id = str(dep).strip()
        if dep_id and dep_id not in seen:
            seen.append(dep_id)
    return tuple(seen)


@dataclass(frozen=True)
class Task:
    """
    Individual task structure with metadata and state information.

    Tasks are immutable; every change produces a new instance through
    ``dataclasses.replace`` (see ``Plan`` for the mutation primitives).

    Attributes:
        id: Unique identifier within a plan
        description: Natural-language directive for the executor
        status: Stored lifecycle status
        priority: Advisory priority
        dependencies: Ids that must be COMPLETED before this task can run
        result: Accumulated output text ("" until execution starts)
        citations: Sources gathered during execution (append-only)
        error: Failure message, set only when FAILED
        category, duration, output, parent_id: Display metadata
    """
    id: str
    description: str
    status: TaskStatus = TaskStatus.PENDING
    priority: Priority = Priority.MEDIUM
    dependencies: Tuple[str, ...] = ()
    result: str = ""
    citations: Tuple[Citation, ...] = ()
    error: Optional[str] = None
    category: Optional[str] = None
    duration: Optional[str] = None
    output: Optional[str] = None
    parent_id: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def __post_init__(self):
        object.__setattr__(self, "id", str(self.id))
        object.__setattr__(self, "status", TaskStatus.parse(self.status))
        object.__setattr__(self, "priority", Priority.parse(self.priority))
        object.__setattr__(self, "dependencies", normalize_dependencies(self.dependencies))
        object.__setattr__(self, "citations", tuple(self.citations))

    @property
    def is_terminal(self) -> bool:
        """True once the task is COMPLETED or FAILED."""
        return self.status in TERMINAL_STATUSES

    def evolve(self, **changes) -> "Task":
        """Return a copy with *changes* applied."""
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "description": self.description,
            "status": self.status.value,
            "priority": self.priority.value,
            "dependencies": list(self.dependencies),
            "result": self.result,
            "citations": [c.to_dict() for c in self.citations],
        }
        for key in ("error", "category", "duration", "output", "parent_id"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        data.update(self.extra)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        """
        Build a task from planner output or a saved plan.

        Accepts ``parentId`` as well as ``parent_id``. Derived display states
        (BLOCKED / WAITING) are loaded as PENDING.
        """
        if "id" not in data:
            raise ValueError("Task data is missing 'id'")
        if not str(data.get("description") or "").strip():
            raise ValueError(f"Task {data['id']!r} is missing a description")

        status = TaskStatus.parse(data.get("status") or TaskStatus.PENDING)
        if status in DISPLAY_ONLY_STATUSES:
            status = TaskStatus.PENDING

        known = {
            "id", "description", "status", "priority", "dependencies", "result",
            "citations", "error", "category", "duration", "output", "parent_id", "parentId",
        }
        parent_id = data.get("parent_id", data.get("parentId"))

        return cls(
            id=str(data["id"]),
            description=str(data["description"]).strip(),
            status=status,
            priority=Priority.parse(data.get("priority")),
            dependencies=normalize_dependencies(data.get("dependencies")),
            result=str(data.get("result") or ""),
            citations=tuple(Citation.from_dict(c) for c in data.get("citations") or ()),
            error=data.get("error"),
            category=data.get("category"),
            duration=data.get("duration"),
            output=data.get("output"),
            parent_id=str(parent_id) if parent_id is not None else None,
            extra={k: v for k, v in data.items() if k not in known},
        )
