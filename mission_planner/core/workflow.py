"""
Workflow module - LangGraph workflow for the plan review loop
"""

from typing import Literal, TypedDict, List, Optional, Any, TYPE_CHECKING

from langgraph.graph import StateGraph, END

from ..models.plan import Plan
from ..utils.logger import get_logger

if TYPE_CHECKING:
    from .review import ReviewCoordinator

logger = get_logger(__name__)


class ReviewState(TypedDict, total=False):
    """State carried through the review graph."""
    goal: str
    context: List[str]
    proposal: Plan
    score: int
    feedback: List[str]
    iterations: int
    score_history: List[int]
    accepted: bool
    refinements: int
    refine_failed: bool
    degraded_rounds: int
    analysis: Optional[Any]
    error: Optional[str]


class ReviewWorkflowBuilder:
    """
    Builds the LangGraph workflow for the Strategist / Critic / Analyst loop.

    Node callables live on the coordinator; this class owns graph wiring and
    routing decisions.
    """

    def __init__(self, coordinator: "ReviewCoordinator"):
        """
        Args:
            coordinator: The ReviewCoordinator whose node methods are wired in
        """
        self.coordinator = coordinator

    def build(self) -> StateGraph:
        """
        Build the review graph.

        Workflow:
        1. Propose  -> Strategist drafts a plan from the goal
        2. Critique -> Critic scores it (0-100) and lists feedback
        3. Accept (score >= threshold) or cap reached -> Analyze -> END
        4. Otherwise Refine -> Strategist revises with top feedback -> Critique

        Returns:
            Configured StateGraph instance
        """
        workflow = StateGraph(ReviewState)

        workflow.add_node("propose", self.coordinator._propose)
        workflow.add_node("critique", self.coordinator._critique)
        workflow.add_node("refine", self.coordinator._refine)
        workflow.add_node("analyze", self.coordinator._analyze)

        workflow.set_entry_point("propose")
        workflow.add_edge("propose", "critique")

        workflow.add_conditional_edges(
            "critique",
            self._route_after_critique,
            {
                "accept": "analyze",
                "max_iterations": "analyze",
                "refine": "refine",
            }
        )

        workflow.add_conditional_edges(
            "refine",
            self._route_after_refine,
            {
                "critique": "critique",
                "analyze": "analyze",
            }
        )

        workflow.add_edge("analyze", END)
        return workflow

    def compile(self) -> Any:
        return self.build().compile()

    def recursion_limit(self) -> int:
        """Upper bound on node executions for one review session."""
        return self.coordinator.config.max_iterations * 2 + 10

    def _route_after_critique(self, state: ReviewState) -> Literal["accept", "max_iterations", "refine"]:
        """Accept at or above the threshold, stop at the iteration cap, else refine."""
        config = self.coordinator.config
        score = state.get("score", 0)
        iterations = state.get("iterations", 0)

        if score >= config.acceptance_threshold:
            logger.info(f"[REVIEW] Proposal accepted with score {score} after {iterations} round(s)")
            return "accept"
        if iterations >= config.max_iterations:
            logger.info(
                f"[REVIEW] Iteration cap reached ({iterations}/{config.max_iterations}); "
                f"keeping proposal with score {score}"
            )
            return "max_iterations"
        logger.info(f"[REVIEW] Score {score} below {config.acceptance_threshold}; refining")
        return "refine"

    def _route_after_refine(self, state: ReviewState) -> Literal["critique", "analyze"]:
        if state.get("refine_failed"):
            return "analyze"
        return "critique"
