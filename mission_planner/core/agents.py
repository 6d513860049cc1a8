"""
Review agents - Strategist, Analyst and Critic roles

Each role is plain configuration (AgentRole); behavior is dispatched through
``execute_role`` by persona. A role never holds state between calls.

Role contracts:
    STRATEGIST  prompt + optional previous Plan     -> Plan
    CRITIC      goal + proposal Plan               -> CriticVerdict
    ANALYST     goal + proposal Plan               -> FeasibilityAnalysis
"""

import json
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List

from ..models.plan import Plan
from ..utils.exceptions import InvalidParameterError
from ..utils.logger import get_logger
from ..utils.prompt_builder import PromptBuilder
from .capabilities import Planner, TextGenerator

logger = get_logger(__name__)

UI_PROTOCOL_VERSION = "1.1"


class AgentPersona(str, Enum):
    """Fixed ensemble of review roles"""
    STRATEGIST = "strategist"
    ANALYST = "analyst"
    CRITIC = "critic"


@dataclass(frozen=True)
class AgentRole:
    """Static description of a review role."""
    persona: AgentPersona
    name: str
    description: str
    instruction: str


ROLES: Dict[AgentPersona, AgentRole] = {
    AgentPersona.STRATEGIST: AgentRole(
        persona=AgentPersona.STRATEGIST,
        name="Strategist",
        description="Specializes in goal decomposition and roadmap logic.",
        instruction=PromptBuilder.PLAN_SYSTEM_PROMPT,
    ),
    AgentPersona.ANALYST: AgentRole(
        persona=AgentPersona.ANALYST,
        name="Analyst",
        description="Focuses on data grounding and feasibility analysis.",
        instruction=(
            "You are a feasibility analyst. You check whether a plan is grounded "
            "in the stated goal and context and can realistically be executed. "
            "Answer with JSON only."
        ),
    ),
    AgentPersona.CRITIC: AgentRole(
        persona=AgentPersona.CRITIC,
        name="Critic",
        description="Reviews plans for risks and identifies missing dependencies.",
        instruction=(
            "You are a demanding plan reviewer. Score plans strictly and list "
            "concrete, actionable issues, most important first. Answer with JSON only."
        ),
    ),
}


@dataclass(frozen=True)
class CriticVerdict:
    """Critic output: score in 0..100 and feedback, most important first."""
    score: int
    feedback: List[str] = field(default_factory=list)
    degraded: bool = False


@dataclass(frozen=True)
class FeasibilityAnalysis:
    """Analyst output: feasibility in 0..1 and free-form notes."""
    feasibility: float
    notes: str
    degraded: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"feasibility": self.feasibility, "notes": self.notes, "degraded": self.degraded}


@dataclass
class AgentToolkit:
    """Capabilities a role may use while executing."""
    planner: Planner
    llm: TextGenerator
    prompt_builder: PromptBuilder = field(default_factory=PromptBuilder)


def clamp_score(value: Any) -> int:
    """Coerce *value* to an int score within 0..100."""
    score = int(round(float(value)))
    return max(0, min(100, score))


def summarize_proposal(plan: Plan) -> Dict[str, Any]:
    """Compact plan view handed to the Critic and Analyst."""
    return {
        "goal": plan.goal,
        "tasks": [
            {
                "id": t.id,
                "description": t.description,
                "priority": t.priority.value,
                "dependencies": list(t.dependencies),
            }
            for t in plan.tasks
        ],
    }


def _strategist(role: AgentRole, prompt: str, context: Any, toolkit: AgentToolkit) -> Plan:
    request = prompt
    if isinstance(context, Plan):
        previous = json.dumps(summarize_proposal(context)["tasks"], indent=2)
        request = f"{prompt}\n\nPREVIOUS PROPOSAL:\n{previous}"
    logger.info(f"[REVIEW] {role.name} proposing plan")
    return toolkit.planner.generate_plan(request)


def _critic(role: AgentRole, prompt: str, context: Any, toolkit: AgentToolkit) -> CriticVerdict:
    if not isinstance(context, Plan):
        raise InvalidParameterError("context", "Critic needs the proposal Plan", expected_type="Plan")
    text = toolkit.llm.generate_content(
        toolkit.prompt_builder.build_critic_prompt(prompt, summarize_proposal(context)),
        system_prompt=role.instruction,
    )
    data = toolkit.prompt_builder.parse_json_response(text)
    feedback = data.get("feedback") or data.get("risks") or []
    if isinstance(feedback, str):
        feedback = [feedback]
    return CriticVerdict(
        score=clamp_score(data["score"]),
        feedback=[str(item).strip() for item in feedback if str(item).strip()],
    )


def _analyst(role: AgentRole, prompt: str, context: Any, toolkit: AgentToolkit) -> FeasibilityAnalysis:
    if not isinstance(context, Plan):
        raise InvalidParameterError("context", "Analyst needs the proposal Plan", expected_type="Plan")
    text = toolkit.llm.generate_content(
        toolkit.prompt_builder.build_analyst_prompt(prompt, summarize_proposal(context)),
        system_prompt=role.instruction,
    )
    data = toolkit.prompt_builder.parse_json_response(text)
    feasibility = max(0.0, min(1.0, float(data.get("feasibility", 0.0))))
    return FeasibilityAnalysis(feasibility=feasibility, notes=str(data.get("notes", "")).strip())


_DISPATCH = {
    AgentPersona.STRATEGIST: _strategist,
    AgentPersona.CRITIC: _critic,
    AgentPersona.ANALYST: _analyst,
}


def execute_role(role: AgentRole, prompt: str, context: Any, toolkit: AgentToolkit) -> Any:
    """
    Run *role* on *prompt* with *context*.

    Errors from the underlying capability propagate; the review workflow
    decides how to degrade.
    """
    return _DISPATCH[role.persona](role, prompt, context, toolkit)


def _element(element_type: str, **props) -> Dict[str, Any]:
    return {"id": f"ui-{uuid.uuid4().hex[:8]}", "type": element_type, "props": props}


def get_initial_ui(role: AgentRole) -> Dict[str, Any]:
    """Small UI payload announcing the role."""
    return {"version": UI_PROTOCOL_VERSION, "elements": [_element("text", text=f"{role.name} Ready.")]}


def handle_event(role: AgentRole, event: Dict[str, Any]) -> Dict[str, Any]:
    """Acknowledge a UI event (``{"action": ..., "element_id": ...}``) for *role*."""
    action = event.get("action", "unknown")
    if role.persona == AgentPersona.ANALYST:
        element = _element("chart", title="Feasibility Score", action=action)
    elif role.persona == AgentPersona.CRITIC:
        element = _element("card", title="Risk Report", action=action, children=[])
    else:
        element = _element("text", text=f"{role.name} received: {action}")
    return {"version": UI_PROTOCOL_VERSION, "elements": [element]}


def with_goal(plan: Plan, goal: str) -> Plan:
    """Pin a proposal to the session goal (refinement prompts echo back otherwise)."""
    return plan if plan.goal == goal else replace(plan, goal=goal)

