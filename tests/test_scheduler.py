"""
Tests for the ExecutionScheduler loop

Executors and summarizers are in-memory fakes; the idle sleep is stubbed so
stall tests run instantly.
"""

import unittest

from mission_planner.config import SchedulerConfig
from mission_planner.core import CancellationToken, EventBus, ExecutionScheduler
from mission_planner.core.scheduler import SUMMARY_SKIPPED_MESSAGE, CANCELLED_TASK_ERROR
from mission_planner.models import Plan, Task, Citation, TaskStatus, Priority, ExecutionOutcome


class FakeExecutor:
    """Streams scripted chunks per task description; exceptions in a script are raised in place."""

    def __init__(self, scripts=None, default=("ok",)):
        self.scripts = scripts or {}
        self.default = default
        self.calls = []

    def execute_task(self, description, context, cancel_token=None):
        self.calls.append((description, context))
        for item in self.scripts.get(description, self.default):
            if isinstance(item, Exception):
                raise item
            if callable(item):
                item(cancel_token)
                continue
            yield item


class FakeSummarizer:

    def __init__(self, text="All done.", error=None):
        self.text = text
        self.error = error
        self.calls = []

    def summarize(self, plan, history):
        self.calls.append((plan, history))
        if self.error:
            raise self.error
        return self.text


def chain_plan():
    return Plan(
        goal="Ship v2",
        tasks=(
            Task(id="1", description="design"),
            Task(id="2", description="build", dependencies=("1",)),
            Task(id="3", description="release", dependencies=("2",)),
        ),
    )


class SchedulerTestCase(unittest.TestCase):

    def setUp(self):
        self.sleeps = []
        self.bus = EventBus()
        self.summarizer = FakeSummarizer()

    def make_scheduler(self, executor, max_idle_polls=3):
        return ExecutionScheduler(
            executor,
            self.summarizer,
            config=SchedulerConfig(idle_poll_interval=0.5, max_idle_polls=max_idle_polls),
            event_bus=self.bus,
            sleep=self.sleeps.append,
        )

    def event_types(self):
        return [record.event["event_type"] for record in reversed(self.bus.get_event_history(limit=1000))]


class TestSchedulerCompletion(SchedulerTestCase):

    def test_runs_every_task_and_summarizes_once(self):
        executor = FakeExecutor({"design": ["spec ", "v1"], "build": ["binary"]})
        scheduler = self.make_scheduler(executor)

        report = scheduler.run(chain_plan())

        self.assertEqual(report.outcome, ExecutionOutcome.COMPLETED)
        self.assertTrue(report.succeeded)
        self.assertEqual([c[0] for c in executor.calls], ["design", "build", "release"])
        self.assertTrue(all(t.status == TaskStatus.COMPLETED for t in report.plan.tasks))
        self.assertEqual(report.plan.get_task("1").result, "spec v1")
        self.assertEqual(len(self.summarizer.calls), 1)
        self.assertEqual(report.summary, "All done.")
        self.assertEqual(scheduler.messages[-1].content, "Mission Complete\n\nAll done.")

    def test_history_lines(self):
        executor = FakeExecutor({"design": ["  spec  "], "build": ["binary"], "release": ["tagged"]})
        report = self.make_scheduler(executor).run(chain_plan())

        self.assertEqual(
            report.history,
            "Task 1 output: spec\nTask 2 output: binary\nTask 3 output: tagged",
        )
        self.assertEqual(self.summarizer.calls[0][1], report.history)

    def test_context_carries_goal_and_history(self):
        executor = FakeExecutor({"design": ["hello"]})
        self.make_scheduler(executor).run(chain_plan())

        first_context = executor.calls[0][1]
        second_context = executor.calls[1][1]
        self.assertIn("GOAL: Ship v2", first_context)
        self.assertIn('TASK: 2 "build"', second_context)
        self.assertIn("Task 1 output: hello", second_context)

    def test_snapshots_are_immutable(self):
        plan = chain_plan()
        scheduler = self.make_scheduler(FakeExecutor())
        snapshots = list(scheduler.start_execution(plan))

        self.assertIs(snapshots[0], plan)
        self.assertTrue(all(t.status == TaskStatus.PENDING for t in snapshots[0].tasks))
        in_progress = [s for s in snapshots if any(t.status == TaskStatus.IN_PROGRESS for t in s.tasks)]
        self.assertTrue(in_progress)
        for snapshot in snapshots:
            self.assertLessEqual(
                sum(1 for t in snapshot.tasks if t.status == TaskStatus.IN_PROGRESS), 1
            )

    def test_declared_order_ignores_priority(self):
        plan = Plan(goal="g", tasks=(
            Task(id="1", description="low", priority=Priority.LOW),
            Task(id="2", description="high", priority=Priority.HIGH),
        ))
        executor = FakeExecutor()
        self.make_scheduler(executor).run(plan)

        self.assertEqual([c[0] for c in executor.calls], ["low", "high"])

    def test_citations_recorded(self):
        executor = FakeExecutor({"design": ["see ", Citation("https://docs.io", "Docs"), "docs"]})
        report = self.make_scheduler(executor).run(chain_plan())

        task = report.plan.get_task("1")
        self.assertEqual(task.result, "see docs")
        self.assertEqual(task.citations, (Citation("https://docs.io", "Docs"),))

    def test_dangling_dependency_does_not_block(self):
        plan = Plan(goal="g", tasks=(Task(id="1", description="orphan", dependencies=("ghost",)),))
        report = self.make_scheduler(FakeExecutor()).run(plan)

        self.assertEqual(report.outcome, ExecutionOutcome.COMPLETED)
        self.assertEqual(self.sleeps, [])

    def test_summarizer_failure_degrades(self):
        self.summarizer = FakeSummarizer(error=RuntimeError("quota"))
        scheduler = self.make_scheduler(FakeExecutor())

        report = scheduler.run(chain_plan())

        self.assertEqual(report.outcome, ExecutionOutcome.COMPLETED)
        self.assertIsNone(report.summary)
        self.assertEqual(report.messages[-1].content, SUMMARY_SKIPPED_MESSAGE)

    def test_events_published(self):
        self.make_scheduler(FakeExecutor()).run(chain_plan())
        types = self.event_types()

        self.assertEqual(types[0], "execution_started")
        self.assertEqual(types.count("task_started"), 3)
        self.assertEqual(types.count("task_completed"), 3)
        self.assertEqual(types[-1], "mission_summary")


class TestSchedulerFailures(SchedulerTestCase):

    def test_fail_fast(self):
        executor = FakeExecutor({"design": [RuntimeError("api down")]})
        scheduler = self.make_scheduler(executor)

        report = scheduler.run(chain_plan())

        self.assertEqual(report.outcome, ExecutionOutcome.FAILED)
        self.assertEqual(report.failed_task_id, "1")
        self.assertEqual(report.plan.get_task("1").status, TaskStatus.FAILED)
        self.assertEqual(report.plan.get_task("1").error, "api down")
        self.assertEqual(report.plan.get_task("2").status, TaskStatus.PENDING)
        self.assertEqual(len(executor.calls), 1)
        self.assertEqual(self.summarizer.calls, [])
        self.assertEqual(report.messages[-1].content, "Task 1 failed. Manual intervention required.")
        self.assertIn("execution_halted", self.event_types())

    def test_mid_stream_failure_keeps_partial_result(self):
        executor = FakeExecutor({"build": ["half", ValueError("stream cut")]})
        report = self.make_scheduler(executor).run(chain_plan())

        self.assertEqual(report.plan.get_task("1").status, TaskStatus.COMPLETED)
        failed = report.plan.get_task("2")
        self.assertEqual(failed.status, TaskStatus.FAILED)
        self.assertEqual(failed.result, "half")
        self.assertEqual(report.history, "Task 1 output: ok")

    def test_stall_escape_hatch(self):
        plan = Plan(goal="g", tasks=(
            Task(id="A", description="a", dependencies=("B",)),
            Task(id="B", description="b", dependencies=("A",)),
        ))
        executor = FakeExecutor()
        scheduler = self.make_scheduler(executor, max_idle_polls=3)

        report = scheduler.run(plan)

        self.assertEqual(report.outcome, ExecutionOutcome.STALLED)
        self.assertEqual(executor.calls, [])
        self.assertEqual(self.sleeps, [0.5, 0.5])
        self.assertEqual(self.event_types().count("scheduler_stalled"), 3)
        self.assertTrue(report.messages[-1].content.startswith(
            "Execution stalled: no task became eligible after 3 polls."
        ))
        self.assertIn("A (WAITING)", report.messages[-1].content)

    def test_stall_after_progress(self):
        plan = Plan(goal="g", tasks=(
            Task(id="1", description="ok"),
            Task(id="2", description="x", dependencies=("3",)),
            Task(id="3", description="y", dependencies=("2",)),
        ))
        report = self.make_scheduler(FakeExecutor(), max_idle_polls=1).run(plan)

        self.assertEqual(report.outcome, ExecutionOutcome.STALLED)
        self.assertEqual(report.plan.get_task("1").status, TaskStatus.COMPLETED)
        self.assertEqual(self.sleeps, [])

    def test_loaded_in_progress_task_stalls(self):
        plan = Plan(goal="g", tasks=(Task(id="1", description="stuck", status=TaskStatus.IN_PROGRESS),))
        report = self.make_scheduler(FakeExecutor(), max_idle_polls=2).run(plan)

        self.assertEqual(report.outcome, ExecutionOutcome.STALLED)
        self.assertIn("1 (IN_PROGRESS)", report.messages[-1].content)

    def test_preexisting_terminal_tasks_are_skipped(self):
        plan = Plan(goal="g", tasks=(
            Task(id="1", description="done", status=TaskStatus.COMPLETED, result="earlier"),
            Task(id="2", description="next", dependencies=("1",)),
        ))
        executor = FakeExecutor()
        report = self.make_scheduler(executor).run(plan)

        self.assertEqual([c[0] for c in executor.calls], ["next"])
        self.assertEqual(report.plan.get_task("1").result, "earlier")
        self.assertEqual(report.outcome, ExecutionOutcome.COMPLETED)


class TestSchedulerCancellation(SchedulerTestCase):

    def test_cancel_before_start(self):
        token = CancellationToken()
        token.cancel()
        executor = FakeExecutor()

        report = self.make_scheduler(executor).run(chain_plan(), cancel_token=token)

        self.assertEqual(report.outcome, ExecutionOutcome.CANCELLED)
        self.assertEqual(executor.calls, [])
        self.assertIsNone(report.failed_task_id)
        self.assertEqual(report.messages[-1].content, "Cancelled by operator")

    def test_cancel_in_flight(self):
        token = CancellationToken()
        executor = FakeExecutor({"design": ["first", lambda t: t.cancel("Stop requested"), "second"]})

        report = self.make_scheduler(executor).run(chain_plan(), cancel_token=token)

        self.assertEqual(report.outcome, ExecutionOutcome.CANCELLED)
        self.assertEqual(report.failed_task_id, "1")
        task = report.plan.get_task("1")
        self.assertEqual(task.status, TaskStatus.FAILED)
        self.assertEqual(task.error, CANCELLED_TASK_ERROR)
        self.assertEqual(task.result, "first")
        self.assertEqual(report.plan.get_task("2").status, TaskStatus.PENDING)
        self.assertEqual(report.messages[-1].content, "Stop requested")
        self.assertIn("execution_cancelled", self.event_types())


class TestSchedulerEdits(SchedulerTestCase):

    def test_edit_queued_before_run(self):
        scheduler = self.make_scheduler(FakeExecutor())
        scheduler.apply_edit(lambda plan: plan.append_task("announce", dependencies=["3"]))

        report = scheduler.run(chain_plan())

        self.assertEqual(report.plan.task_ids(), ["1", "2", "3", "4"])
        self.assertEqual(report.plan.get_task("4").status, TaskStatus.COMPLETED)

    def test_edit_during_run(self):
        scheduler = None

        def add_followup(token):
            scheduler.apply_edit(lambda plan: plan.append_task("followup"))

        executor = FakeExecutor({"design": ["x", add_followup]})
        scheduler = self.make_scheduler(executor)

        report = scheduler.run(chain_plan())

        self.assertEqual([c[0] for c in executor.calls], ["design", "build", "release", "followup"])
        self.assertEqual(report.outcome, ExecutionOutcome.COMPLETED)

    def test_rejected_edit_is_alerted(self):
        scheduler = self.make_scheduler(FakeExecutor())
        scheduler.apply_edit(lambda plan: plan.add_dependency("3", "1"))

        report = scheduler.run(chain_plan())

        self.assertEqual(report.outcome, ExecutionOutcome.COMPLETED)
        self.assertTrue(any(m.content.startswith("Plan edit rejected:") for m in report.messages))
