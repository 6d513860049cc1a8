"""
Tests for the Strategist / Critic / Analyst review loop
"""

import json

import pytest

from mission_planner.config import ReviewConfig
from mission_planner.core import EventBus, ReviewCoordinator
from mission_planner.core.agents import (
    AgentPersona,
    ROLES,
    AgentToolkit,
    execute_role,
    get_initial_ui,
    handle_event,
    clamp_score,
)
from mission_planner.core.review import CRITIC_UNAVAILABLE, ANALYST_UNAVAILABLE
from mission_planner.models import Plan, Task, PlanValidation
from mission_planner.utils.exceptions import InvalidParameterError, PlanGenerationError


class FakePlanner:
    """Returns a fresh two-task plan per call; optionally fails on given call numbers."""

    def __init__(self, fail_on=(), goal=None):
        self.prompts = []
        self.fail_on = set(fail_on)
        self.goal = goal

    def generate_plan(self, goal):
        self.prompts.append(goal)
        call = len(self.prompts)
        if call in self.fail_on:
            raise PlanGenerationError(goal, 3, problems=["no JSON"])
        return Plan(
            goal=self.goal or goal,
            tasks=(
                Task(id="1", description=f"research v{call}"),
                Task(id="2", description=f"deliver v{call}", dependencies=("1",)),
            ),
        )


class FakeReviewLLM:
    """Scripted Critic and Analyst answers, routed by system prompt."""

    def __init__(self, critic=(), analyst='{"feasibility": 0.8, "notes": "solid"}'):
        self.critic = list(critic)
        self.analyst = analyst
        self.critic_prompts = []

    def generate_content(self, contents, system_prompt=None):
        if system_prompt == ROLES[AgentPersona.CRITIC].instruction:
            self.critic_prompts.append(contents)
            answer = self.critic.pop(0)
        else:
            answer = self.analyst
        if isinstance(answer, Exception):
            raise answer
        return answer


def verdict(score, *feedback):
    return json.dumps({"score": score, "feedback": list(feedback)})


class TestReviewLoop:

    def setup_method(self):
        self.bus = EventBus()

    def make(self, planner, llm, **config):
        return ReviewCoordinator(planner, llm, config=ReviewConfig(**config), event_bus=self.bus)

    def test_accepts_on_first_round(self):
        planner = FakePlanner()
        outcome = self.make(planner, FakeReviewLLM([verdict(90, "minor")])).review("Launch beta")

        assert outcome.accepted
        assert outcome.iterations == 1
        assert outcome.refinements == 0
        assert outcome.score_history == [90]
        assert len(planner.prompts) == 1
        assert outcome.plan.validation == PlanValidation(90, 1, True)
        assert outcome.analysis.feasibility == 0.8
        assert outcome.synthesis == "Synthesis concluded. Refined via 0 iterations. Analysis: solid"

    def test_threshold_is_inclusive(self):
        outcome = self.make(FakePlanner(), FakeReviewLLM([verdict(85)])).review("g")
        assert outcome.accepted
        assert outcome.iterations == 1

    def test_refines_until_accepted(self):
        planner = FakePlanner()
        llm = FakeReviewLLM([
            verdict(60, "add QA", "missing budget", "no owner", "typo"),
            verdict(88, "fine"),
        ])
        outcome = self.make(planner, llm).review("Launch beta")

        assert outcome.accepted
        assert outcome.iterations == 2
        assert outcome.refinements == 1
        assert outcome.score_history == [60, 88]
        refine_prompt = planner.prompts[1]
        assert refine_prompt.startswith("REVISE PLAN: Launch beta. Feedback: add QA. missing budget. no owner")
        assert "typo" not in refine_prompt
        assert "PREVIOUS PROPOSAL" in refine_prompt
        assert "research v1" in refine_prompt
        assert outcome.plan.get_task("1").description == "research v2"

    def test_iteration_cap(self):
        planner = FakePlanner()
        llm = FakeReviewLLM([verdict(10, "bad"), verdict(20, "bad"), verdict(30, "bad")])
        outcome = self.make(planner, llm).review("g")

        assert not outcome.accepted
        assert outcome.iterations == 3
        assert outcome.refinements == 2
        assert outcome.score == 30
        assert len(planner.prompts) == 3
        assert outcome.plan.validation == PlanValidation(30, 3, False)
        assert outcome.analysis.notes == "solid"

    def test_custom_threshold_and_cap(self):
        llm = FakeReviewLLM([verdict(60, "x")])
        outcome = self.make(FakePlanner(), llm, acceptance_threshold=50, max_iterations=1).review("g")
        assert outcome.accepted

    def test_critic_failure_degrades_to_neutral(self):
        llm = FakeReviewLLM([RuntimeError("timeout"), "not json", verdict(95)])
        outcome = self.make(FakePlanner(), llm).review("g")

        assert outcome.score_history == [50, 50, 95]
        assert outcome.accepted
        assert outcome.iterations == 3

    def test_all_critic_calls_fail(self):
        llm = FakeReviewLLM([RuntimeError("down")] * 3)
        outcome = self.make(FakePlanner(), llm).review("g")

        assert outcome.score == 50
        assert outcome.feedback == [CRITIC_UNAVAILABLE]
        assert not outcome.accepted
        assert outcome.iterations == 3

    def test_analyst_failure_degrades(self):
        llm = FakeReviewLLM([verdict(90)], analyst=RuntimeError("boom"))
        outcome = self.make(FakePlanner(), llm).review("g")

        assert outcome.accepted
        assert outcome.analysis.degraded
        assert outcome.analysis.notes == ANALYST_UNAVAILABLE

    def test_refinement_failure_keeps_previous_proposal(self):
        planner = FakePlanner(fail_on={2})
        llm = FakeReviewLLM([verdict(40, "thin")])
        outcome = self.make(planner, llm).review("g")

        assert outcome.iterations == 1
        assert outcome.refinements == 0
        assert outcome.plan.get_task("1").description == "research v1"
        assert not outcome.accepted

    def test_initial_proposal_failure_propagates(self):
        with pytest.raises(PlanGenerationError):
            self.make(FakePlanner(fail_on={1}), FakeReviewLLM()).review("g")

    def test_empty_goal_rejected(self):
        with pytest.raises(InvalidParameterError):
            self.make(FakePlanner(), FakeReviewLLM()).review("   ")

    def test_goal_pinned_and_context_attached(self):
        planner = FakePlanner(goal="something else")
        outcome = self.make(planner, FakeReviewLLM([verdict(90)])).review(
            "Launch beta", context=["team of 4", "budget 10k"]
        )

        assert outcome.plan.goal == "Launch beta"
        assert outcome.plan.grounding_data == ("team of 4", "budget 10k")
        assert "- team of 4" in planner.prompts[0]

    def test_events(self):
        llm = FakeReviewLLM([verdict(10, "x"), verdict(90)])
        self.make(FakePlanner(), llm).review("g")

        iterations = self.bus.get_event_history("review_iteration")
        assert [r.event["payload"]["score"] for r in reversed(iterations)] == [10, 90]
        completed = self.bus.get_event_history("review_completed")
        assert completed[0].event["payload"]["accepted"] is True

    def test_outcome_to_dict(self):
        outcome = self.make(FakePlanner(), FakeReviewLLM([verdict(90)])).review("g")
        data = outcome.to_dict()

        assert data["plan"]["validation"]["agent_consensus"] is True
        assert data["ui"]["elements"][0]["props"]["text"] == "Strategist Ready."


class TestAgentRoles:

    def setup_method(self):
        self.toolkit = AgentToolkit(planner=FakePlanner(), llm=FakeReviewLLM([verdict(150, "a", " ")]))
        self.plan = Plan(goal="g", tasks=(Task(id="1", description="x"),))

    def test_critic_clamps_and_cleans(self):
        result = execute_role(ROLES[AgentPersona.CRITIC], "g", self.plan, self.toolkit)
        assert result.score == 100
        assert result.feedback == ["a"]

    def test_critic_requires_plan(self):
        with pytest.raises(InvalidParameterError):
            execute_role(ROLES[AgentPersona.CRITIC], "g", None, self.toolkit)

    def test_analyst_clamps_feasibility(self):
        toolkit = AgentToolkit(planner=FakePlanner(), llm=FakeReviewLLM(analyst='{"feasibility": 3, "notes": "n"}'))
        result = execute_role(ROLES[AgentPersona.ANALYST], "g", self.plan, toolkit)
        assert result.feasibility == 1.0

    def test_clamp_score(self):
        assert clamp_score(-5) == 0
        assert clamp_score("72.6") == 73

    def test_initial_ui(self):
        ui = get_initial_ui(ROLES[AgentPersona.ANALYST])
        assert ui["version"] == "1.1"
        assert ui["elements"][0]["type"] == "text"
        assert ui["elements"][0]["props"]["text"] == "Analyst Ready."

    def test_handle_event(self):
        assert handle_event(ROLES[AgentPersona.ANALYST], {"action": "click"})["elements"][0]["type"] == "chart"
        assert handle_event(ROLES[AgentPersona.CRITIC], {"action": "click"})["elements"][0]["type"] == "card"
        strategist = handle_event(ROLES[AgentPersona.STRATEGIST], {"action": "refresh"})
        assert strategist["elements"][0]["props"]["text"] == "Strategist received: refresh"
