"""
Review Coordinator - Multi-agent generate / critique loop around planning

A coordinator is built per planning session from the capabilities it needs;
it holds nothing but its role map and compiled graph, so concurrent sessions
never share state.

Usage:
    coordinator = ReviewCoordinator(planner=LLMPlanner(client), llm=client)
    outcome = coordinator.review("Launch the beta in Q3")
    plan = outcome.plan            # carries validation metadata
    print(outcome.synthesis)
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Sequence

from ..config.engine_config import ReviewConfig
from ..models.messages import create_system_event
from ..models.plan import Plan, PlanValidation
from ..utils.exceptions import InvalidParameterError
from ..utils.logger import get_logger
from .agents import (
    AgentPersona,
    AgentRole,
    AgentToolkit,
    CriticVerdict,
    FeasibilityAnalysis,
    ROLES,
    execute_role,
    get_initial_ui,
    with_goal,
)
from .capabilities import Planner, TextGenerator
from .event_bus import EventBus
from .workflow import ReviewState, ReviewWorkflowBuilder

logger = get_logger(__name__)

CRITIC_UNAVAILABLE = "Critic evaluation unavailable; score defaulted to neutral."
ANALYST_UNAVAILABLE = "Feasibility analysis unavailable."


@dataclass
class ReviewOutcome:
    """
    Result of one review session.

    Attributes:
        plan: Final proposal, annotated with validation metadata
        score: Last Critic score (0..100)
        feedback: Last Critic feedback
        iterations: Critique rounds performed
        refinements: Strategist revisions performed
        score_history: Score of every critique round
        accepted: True if the threshold was met
        analysis: Analyst feasibility pass on the final proposal
        synthesis: Human-readable summary line
        ui: Strategist UI payload
    """
    plan: Plan
    score: int
    feedback: List[str]
    iterations: int
    refinements: int
    score_history: List[int]
    accepted: bool
    analysis: FeasibilityAnalysis
    synthesis: str
    ui: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "plan": self.plan.to_dict(),
            "score": self.score,
            "feedback": list(self.feedback),
            "iterations": self.iterations,
            "refinements": self.refinements,
            "score_history": list(self.score_history),
            "accepted": self.accepted,
            "analysis": self.analysis.to_dict(),
            "synthesis": self.synthesis,
            "ui": self.ui,
        }


class ReviewCoordinator:
    """
    Runs the Strategist / Critic / Analyst review loop as a LangGraph graph.

    The Critic and Analyst are best-effort: their failures degrade to neutral
    results. A Strategist failure on the first proposal propagates (there is
    nothing to review); on a refinement it keeps the previous proposal.
    """

    def __init__(
        self,
        planner: Planner,
        llm: TextGenerator,
        config: Optional[ReviewConfig] = None,
        event_bus: Optional[EventBus] = None,
        roles: Optional[Dict[AgentPersona, AgentRole]] = None
    ):
        self.config = config or ReviewConfig()
        self.toolkit = AgentToolkit(planner=planner, llm=llm)
        self.roles = dict(roles or ROLES)
        self.event_bus = event_bus
        self.workflow = ReviewWorkflowBuilder(self)
        self.app = self.workflow.compile()

    def review(self, goal: str, context: Optional[Sequence[str]] = None) -> ReviewOutcome:
        """
        Propose, critique and refine a plan for *goal*.

        Args:
            goal: The user's goal
            context: Optional grounding strings attached to the plan

        Raises:
            InvalidParameterError: empty goal
            PlanGenerationError: the first proposal could not be generated
        """
        goal = (goal or "").strip()
        if not goal:
            raise InvalidParameterError("goal", "goal must be a non-empty string")

        logger.info(f"[REVIEW] Starting review session for goal: {goal[:80]}")
        state: ReviewState = self.app.invoke(
            {"goal": goal, "context": [str(c) for c in context or ()]},
            config={"recursion_limit": self.workflow.recursion_limit()},
        )

        analysis = state.get("analysis") or FeasibilityAnalysis(0.0, ANALYST_UNAVAILABLE, degraded=True)
        refinements = state.get("refinements", 0)
        synthesis = (
            f"Synthesis concluded. Refined via {refinements} iterations. "
            f"Analysis: {analysis.notes}"
        )

        outcome = ReviewOutcome(
            plan=state["proposal"],
            score=state.get("score", self.config.neutral_score),
            feedback=list(state.get("feedback", [])),
            iterations=state.get("iterations", 0),
            refinements=refinements,
            score_history=list(state.get("score_history", [])),
            accepted=state.get("accepted", False),
            analysis=analysis,
            synthesis=synthesis,
            ui=get_initial_ui(self.roles[AgentPersona.STRATEGIST]),
        )
        self._publish("review_completed", {
            "score": outcome.score,
            "iterations": outcome.iterations,
            "accepted": outcome.accepted,
        })
        logger.info(f"[REVIEW] {synthesis}")
        return outcome

    # ------------------------------------------------------------------
    # Graph nodes
    # ------------------------------------------------------------------

    def _propose(self, state: ReviewState) -> Dict[str, Any]:
        goal = state["goal"]
        context = state.get("context") or []
        prompt = goal
        if context:
            prompt += "\n\nCONTEXT:\n" + "\n".join(f"- {item}" for item in context)

        proposal = execute_role(self.roles[AgentPersona.STRATEGIST], prompt, None, self.toolkit)
        proposal = with_goal(proposal, goal)
        if context:
            proposal = replace(proposal, grounding_data=tuple(context))

        logger.info(f"[REVIEW] Initial proposal with {len(proposal.tasks)} tasks")
        return {
            "proposal": proposal,
            "iterations": 0,
            "refinements": 0,
            "score_history": [],
            "feedback": [],
            "degraded_rounds": 0,
            "refine_failed": False,
        }

    def _critique(self, state: ReviewState) -> Dict[str, Any]:
        try:
            verdict = execute_role(
                self.roles[AgentPersona.CRITIC], state["goal"], state["proposal"], self.toolkit
            )
        except Exception as e:
            logger.warning(f"[REVIEW] Critic evaluation failed, using neutral score: {e}")
            verdict = CriticVerdict(
                score=self.config.neutral_score,
                feedback=[CRITIC_UNAVAILABLE],
                degraded=True,
            )

        iterations = state.get("iterations", 0) + 1
        history = list(state.get("score_history", [])) + [verdict.score]
        self._publish("review_iteration", {
            "iteration": iterations,
            "score": verdict.score,
            "feedback": verdict.feedback,
            "degraded": verdict.degraded,
        })
        logger.info(f"[REVIEW] Round {iterations}: score {verdict.score}")
        return {
            "score": verdict.score,
            "feedback": verdict.feedback,
            "iterations": iterations,
            "score_history": history,
            "degraded_rounds": state.get("degraded_rounds", 0) + (1 if verdict.degraded else 0),
        }

    def _refine(self, state: ReviewState) -> Dict[str, Any]:
        goal = state["goal"]
        feedback = [f for f in state.get("feedback", []) if f != CRITIC_UNAVAILABLE]
        top = feedback[:self.config.feedback_items]
        prompt = self.toolkit.prompt_builder.build_refinement_prompt(goal, top)

        try:
            revised = execute_role(
                self.roles[AgentPersona.STRATEGIST], prompt, state["proposal"], self.toolkit
            )
        except Exception as e:
            logger.warning(f"[REVIEW] Refinement failed, keeping previous proposal: {e}")
            return {"refine_failed": True, "error": str(e)}

        revised = with_goal(revised, goal)
        if state["proposal"].grounding_data:
            revised = replace(revised, grounding_data=state["proposal"].grounding_data)
        return {"proposal": revised, "refinements": state.get("refinements", 0) + 1}

    def _analyze(self, state: ReviewState) -> Dict[str, Any]:
        score = state.get("score", self.config.neutral_score)
        accepted = score >= self.config.acceptance_threshold

        try:
            analysis = execute_role(
                self.roles[AgentPersona.ANALYST], "Verify grounding", state["proposal"], self.toolkit
            )
        except Exception as e:
            logger.warning(f"[REVIEW] Feasibility analysis failed: {e}")
            analysis = FeasibilityAnalysis(feasibility=0.5, notes=ANALYST_UNAVAILABLE, degraded=True)

        proposal = state["proposal"].with_validation(PlanValidation(
            quality_score=score,
            iterations=state.get("iterations", 0),
            agent_consensus=accepted,
        ))
        return {"analysis": analysis, "accepted": accepted, "proposal": proposal}

    def _publish(self, event_type: str, payload: Dict[str, Any]) -> None:
        if self.event_bus is None:
            return
        self.event_bus.publish(create_system_event(
            event_type=event_type,
            source="review_coordinator",
            payload=payload,
        ))
