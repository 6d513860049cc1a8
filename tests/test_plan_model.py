"""
Unit tests for the Plan / Task models

Covers construction, copy-on-write edits, the status state machine and
serialization.
"""

import unittest

import pytest

from mission_planner.models import (
    Plan,
    Task,
    Citation,
    TaskStatus,
    Priority,
    PlanValidation,
)
from mission_planner.utils.exceptions import (
    UnknownTaskError,
    DuplicateTaskError,
    SelfDependencyError,
    DependencyCycleError,
    InvalidTransitionError,
    TaskSealedError,
)


def chain_plan() -> Plan:
    return Plan(
        goal="Ship v2",
        tasks=(
            Task(id="1", description="Design"),
            Task(id="2", description="Build", dependencies=("1",)),
            Task(id="3", description="Release", dependencies=("2",), priority=Priority.HIGH),
        ),
    )


class TestTaskModel(unittest.TestCase):
    """Tests for Task construction and parsing."""

    def test_task_defaults(self):
        task = Task(id="1", description="Test task")

        self.assertEqual(task.status, TaskStatus.PENDING)
        self.assertEqual(task.priority, Priority.MEDIUM)
        self.assertEqual(task.dependencies, ())
        self.assertEqual(task.result, "")
        self.assertIsNone(task.error)
        self.assertFalse(task.is_terminal)

    def test_task_coerces_fields(self):
        task = Task(id=7, description="x", status="in-progress", priority="low", dependencies=[1, "1", " 2 ", ""])

        self.assertEqual(task.id, "7")
        self.assertEqual(task.status, TaskStatus.IN_PROGRESS)
        self.assertEqual(task.priority, Priority.LOW)
        self.assertEqual(task.dependencies, ("1", "2"))

    def test_status_parse_spellings(self):
        self.assertEqual(TaskStatus.parse("InProgress"), TaskStatus.IN_PROGRESS)
        self.assertEqual(TaskStatus.parse("completed"), TaskStatus.COMPLETED)
        with self.assertRaises(ValueError):
            TaskStatus.parse("Done")

    def test_from_dict_normalizes_display_states(self):
        task = Task.from_dict({"id": "4", "description": "Wait", "status": "Blocked", "parentId": "1"})

        self.assertEqual(task.status, TaskStatus.PENDING)
        self.assertEqual(task.parent_id, "1")

    def test_from_dict_keeps_unknown_keys(self):
        task = Task.from_dict({"id": "1", "description": "x", "owner": "ana"})

        self.assertEqual(task.extra, {"owner": "ana"})
        self.assertEqual(task.to_dict()["owner"], "ana")

    def test_from_dict_requires_description(self):
        with self.assertRaises(ValueError):
            Task.from_dict({"id": "1", "description": "  "})
        with self.assertRaises(ValueError):
            Task.from_dict({"description": "no id"})


class TestPlanStructure(unittest.TestCase):
    """Tests for structural plan edits."""

    def test_duplicate_ids_rejected(self):
        with self.assertRaises(DuplicateTaskError):
            Plan(goal="g", tasks=(Task(id="1", description="a"), Task(id="1", description="b")))

    def test_get_task_unknown(self):
        with self.assertRaises(UnknownTaskError):
            chain_plan().get_task("99")

    def test_add_task_is_copy_on_write(self):
        plan = chain_plan()
        updated = plan.add_task(Task(id="4", description="Announce", dependencies=("3",)))

        self.assertEqual(len(plan.tasks), 3)
        self.assertEqual(updated.task_ids(), ["1", "2", "3", "4"])

    def test_add_task_rejects_self_dependency(self):
        with self.assertRaises(SelfDependencyError):
            chain_plan().add_task(Task(id="4", description="Loop", dependencies=("4",)))

    def test_add_task_allows_unknown_dependency(self):
        plan = chain_plan().add_task(Task(id="4", description="Later", dependencies=("42",)))
        self.assertEqual(plan.get_task("4").dependencies, ("42",))

    def test_append_task_generates_unique_id(self):
        plan = chain_plan().append_task("Retro", priority=Priority.LOW)
        new_task = plan.tasks[-1]

        self.assertEqual(new_task.id, "4")
        self.assertEqual(new_task.priority, Priority.LOW)
        self.assertEqual(new_task.status, TaskStatus.PENDING)

    def test_next_task_id_skips_non_numeric(self):
        plan = Plan(goal="g", tasks=(Task(id="a", description="x"), Task(id="b", description="y")))
        self.assertEqual(plan.next_task_id(), "3")

    def test_next_task_id_ignores_digit_symbols(self):
        plan = Plan(goal="g", tasks=(Task(id="\u00b2", description="x"), Task(id="7", description="y")))
        self.assertEqual(plan.next_task_id(), "8")

    def test_add_dependency(self):
        plan = chain_plan().add_dependency("1", "3")
        self.assertEqual(plan.get_task("3").dependencies, ("2", "1"))

    def test_add_dependency_existing_edge_is_noop(self):
        plan = chain_plan()
        self.assertIs(plan.add_dependency("1", "2"), plan)

    def test_add_dependency_rejects_cycle(self):
        with self.assertRaises(DependencyCycleError) as ctx:
            chain_plan().add_dependency("3", "1")

        self.assertEqual(ctx.exception.edge, ("3", "1"))
        self.assertEqual(ctx.exception.cycle_nodes, ["1", "2", "3"])

    def test_add_dependency_unknown_task(self):
        with self.assertRaises(UnknownTaskError):
            chain_plan().add_dependency("1", "9")

    def test_extend_with_subtasks_inherits_parent(self):
        plan = chain_plan().extend_with_subtasks("3", ["Write notes", "", "Tag build"])
        subtasks = plan.tasks[3:]

        self.assertEqual([t.id for t in subtasks], ["4", "5"])
        for task in subtasks:
            self.assertEqual(task.parent_id, "3")
            self.assertEqual(task.priority, Priority.HIGH)
            self.assertEqual(task.dependencies, ("2",))


class TestPlanLifecycle(unittest.TestCase):
    """Tests for the status state machine."""

    def test_happy_path(self):
        plan = chain_plan().start_task("1")
        plan = plan.append_result("1", "draft ")
        plan = plan.append_result("1", "done")
        plan = plan.add_citation("1", Citation("https://example.com", "Example"))
        plan = plan.add_citation("1", Citation("https://example.com"))
        plan = plan.complete_task("1")

        task = plan.get_task("1")
        self.assertEqual(task.status, TaskStatus.COMPLETED)
        self.assertEqual(task.result, "draft done")
        self.assertEqual(len(task.citations), 1)

    def test_original_snapshot_untouched(self):
        plan = chain_plan()
        plan.start_task("1").append_result("1", "text")

        self.assertEqual(plan.get_task("1").status, TaskStatus.PENDING)
        self.assertEqual(plan.get_task("1").result, "")

    def test_complete_with_final_result(self):
        plan = chain_plan().start_task("1").append_result("1", "partial")
        plan = plan.complete_task("1", result="final", citations=[Citation("https://a.io")])

        self.assertEqual(plan.get_task("1").result, "final")
        self.assertEqual(plan.get_task("1").citations, (Citation("https://a.io"),))

    def test_fail_task_records_error(self):
        plan = chain_plan().start_task("1").fail_task("1", "boom")
        task = plan.get_task("1")

        self.assertEqual(task.status, TaskStatus.FAILED)
        self.assertEqual(task.error, "boom")
        self.assertTrue(task.is_terminal)

    def test_invalid_transitions(self):
        plan = chain_plan()
        with self.assertRaises(InvalidTransitionError):
            plan.update_task_status("1", TaskStatus.COMPLETED)
        with self.assertRaises(InvalidTransitionError):
            plan.update_task_status("1", TaskStatus.BLOCKED)

        done = plan.start_task("1").complete_task("1")
        with self.assertRaises(InvalidTransitionError):
            done.start_task("1")

    def test_sealed_task_rejects_output(self):
        done = chain_plan().start_task("1").complete_task("1")
        with self.assertRaises(TaskSealedError):
            done.append_result("1", "late")
        with self.assertRaises(TaskSealedError):
            chain_plan().add_citation("1", Citation("https://a.io"))

    def test_progress_counts(self):
        plan = chain_plan().start_task("1").complete_task("1").start_task("2")
        progress = plan.progress()

        self.assertEqual(progress["completed"], 1)
        self.assertEqual(progress["in_progress"], 1)
        self.assertEqual(progress["pending"], 1)
        self.assertEqual(progress["total"], 3)
        self.assertTrue(plan.has_unfinished_tasks())


class TestPlanSerialization:
    """Round trips through dict form."""

    def test_from_dict_camel_case(self):
        plan = Plan.from_dict({
            "goal": "Launch",
            "name": "Launch plan",
            "groundingData": ["budget 10k"],
            "validation": {"qualityScore": 90, "iterations": 2, "agentConsensus": True},
            "tasks": [{"id": 1, "description": "Plan", "priority": "high"}],
        })

        assert plan.grounding_data == ("budget 10k",)
        assert plan.validation == PlanValidation(90, 2, True)
        assert plan.get_task("1").priority == Priority.HIGH

    def test_to_dict_round_trip(self):
        plan = chain_plan().with_validation(PlanValidation(88, 1, True))
        restored = Plan.from_dict(plan.to_dict())

        assert restored == plan
        assert restored.to_dict()["validation"]["quality_score"] == 88

    def test_from_dict_rejects_cycles(self):
        with pytest.raises(DependencyCycleError) as exc_info:
            Plan.from_dict({
                "goal": "g",
                "tasks": [
                    {"id": "A", "description": "a", "dependencies": ["B"]},
                    {"id": "B", "description": "b", "dependencies": ["A"]},
                    {"id": "C", "description": "c"},
                ],
            })
        assert exc_info.value.cycle_nodes == ["A", "B"]

    def test_from_dict_accepts_dangling_dependency(self):
        plan = Plan.from_dict({
            "goal": "g",
            "tasks": [{"id": "1", "description": "a", "dependencies": ["ghost"]}],
        })
        assert plan.get_task("1").dependencies == ("ghost",)
