#!/usr/bin/env python
"""
Mission Planner - Startup Script

Generates a plan for an objective (optionally through the review loop),
prints its dependency layers and executes it with live output.
"""

import argparse
import json
import signal
import sys
from contextlib import contextmanager

from mission_planner import (
    EngineConfig,
    EnvConfig,
    LLMClient,
    LLMPlanner,
    LLMTaskExecutor,
    LLMSummarizer,
    ExecutionScheduler,
    ReviewCoordinator,
    CancellationToken,
    Plan,
    group_layers,
)
from mission_planner.models import TaskStatus
from mission_planner.utils import MissionPlannerError, global_rate_limiter


@contextmanager
def cancel_on_interrupt(token: CancellationToken):
    """Turn Ctrl+C into a cooperative cancellation while the block runs."""

    def _handler(signum, frame):
        print()
        print("Cancellation requested.")
        token.cancel("Interrupted by operator")

    previous = signal.signal(signal.SIGINT, _handler)
    try:
        yield token
    finally:
        signal.signal(signal.SIGINT, previous)


def print_layers(plan: Plan):
    """Print the plan grouped by dependency depth."""
    layers = group_layers(plan.tasks)
    print()
    print(f"Plan: {plan.name or plan.goal}")
    for depth in sorted(layers):
        print(f"  Layer {depth}:")
        for task_id in layers[depth]:
            task = plan.get_task(task_id)
            deps = f"  (after {', '.join(task.dependencies)})" if task.dependencies else ""
            print(f"    [{task.id}] {task.priority.value:<6} {task.description}{deps}")
    print()


def main():
    parser = argparse.ArgumentParser(description="Mission Planner")
    parser.add_argument("objective", nargs="?", help="Goal to plan and execute")
    parser.add_argument("--review", action="store_true", help="Run the Strategist/Critic/Analyst review loop first")
    parser.add_argument("--context", action="append", default=[], help="Grounding context (repeatable)")
    parser.add_argument("--plan-file", help="Load a saved plan (JSON) instead of generating one")
    parser.add_argument("--plan-only", action="store_true", help="Stop after printing the plan")
    args = parser.parse_args()

    print("=" * 70)
    print("Mission Planner - Starting")
    print("=" * 70)

    EnvConfig.load_env_file()
    config = EngineConfig.from_env(prefix="AGENT_")

    print()
    print("Configuration loaded:")
    print(f"  LLM Provider: {config.llm.provider}")
    print(f"  Model: {config.llm.model_name}")
    print(f"  Review Threshold: {config.review.acceptance_threshold}")
    print(f"  Log Level: {config.log_level}")

    global_rate_limiter.configure(
        requests_per_minute=config.rate_limit.requests_per_minute,
        min_request_delay=config.rate_limit.min_request_delay,
    )

    try:
        client = LLMClient(config.llm)
        planner = LLMPlanner(client, config.planner)

        if args.plan_file:
            with open(args.plan_file, "r", encoding="utf-8") as fh:
                plan = Plan.from_dict(json.load(fh))
        else:
            objective = args.objective or input("\nObjective: ").strip()
            if not objective:
                print("No objective provided. Exiting.")
                return 1

            if args.review:
                coordinator = ReviewCoordinator(planner, client, config.review)
                outcome = coordinator.review(objective, context=args.context)
                plan = outcome.plan
                print()
                print(f"Review score: {outcome.score} (accepted: {outcome.accepted})")
                print(outcome.synthesis)
            else:
                plan = planner.generate_plan(objective, grounding_data=args.context)

        print_layers(plan)
        if args.plan_only:
            print(json.dumps(plan.to_dict(), indent=2))
            return 0

        scheduler = ExecutionScheduler(LLMTaskExecutor(client), LLMSummarizer(client), config.scheduler)
        token = CancellationToken()
        current = None

        with cancel_on_interrupt(token):
            for snapshot in scheduler.start_execution(plan, cancel_token=token):
                running = next((t for t in snapshot.tasks if t.status == TaskStatus.IN_PROGRESS), None)
                if running is not None and (current is None or current.id != running.id):
                    print()
                    print(f"--- Task {running.id}: {running.description}")
                    current = running
                elif running is not None:
                    sys.stdout.write(running.result[len(current.result):])
                    sys.stdout.flush()
                    current = running

        report = scheduler.last_report
        print()
        print("=" * 70)
        if report is not None:
            print(f"Outcome: {report.outcome.value}")
            for message in report.messages[-2:]:
                print(message.content)
        print("=" * 70)
        return 0 if report is not None and report.succeeded else 1

    except MissionPlannerError as e:
        print()
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
