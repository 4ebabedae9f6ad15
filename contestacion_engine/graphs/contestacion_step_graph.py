"""One orchestration step as a LangGraph agent.

merge_responses -> decide -> execute | skip -> END

The step merges any new per-block responses into the stored state, asks the
decision policy for the next action, applies it when it names a transition
and resolves the session step to persist.
"""

from dataclasses import dataclass, field
from typing import Any

from langgraph.graph import END, StateGraph

from contestacion_engine.core.contestacion_actions import (
    EXECUTABLE_ACTIONS,
    OrchestratorAction,
)
from contestacion_engine.core.contestacion_orchestrator import (
    OrchestratorContext,
    execute_action,
    resolve_next_step,
)
from contestacion_engine.core.contestacion_state import (
    coerce_state,
    merge_user_responses,
    validate_block_refs,
)
from contestacion_engine.core.decision_policy import DecisionPolicy, get_decision_policy
from contestacion_engine.core.logging import get_logger
from contestacion_engine.core.schemas_contestacion import ContestacionSessionState

logger = get_logger(__name__)


@dataclass
class ContestacionStepState:
    """State for one orchestration step."""

    # Input
    session_state: ContestacionSessionState | None = None
    demanda_raw: str | None = None
    respuestas: dict[str, Any] | None = None
    user_input: str | None = None
    current_step: str | None = None
    forced_action: OrchestratorAction | None = None
    policy: Any = None
    context: OrchestratorContext = field(default_factory=OrchestratorContext)

    # Output
    action: OrchestratorAction | None = None
    next_step: str | None = None


@dataclass
class StepResult:
    action: OrchestratorAction
    state: ContestacionSessionState
    next_step: str


async def merge_responses(state: ContestacionStepState) -> dict[str, Any]:
    """Merge new responses and check per-block keys against the blocks."""
    session_state = state.session_state
    if state.respuestas:
        session_state = merge_user_responses(session_state, state.respuestas)
    elif session_state is not None:
        session_state = coerce_state(session_state)
    if session_state is not None:
        validate_block_refs(session_state)
    return {"session_state": session_state}


async def decide(state: ContestacionStepState) -> dict[str, Any]:
    if state.forced_action is not None:
        return {"action": state.forced_action}
    policy: DecisionPolicy = state.policy or get_decision_policy(backend=state.context.backend)
    action = await policy.decide(state.session_state, state.demanda_raw, state.user_input)
    logger.info(
        f"Decided {action.type}",
        extra={"policy": policy.name, "session_id": state.context.session_id},
    )
    return {"action": action}


def route_after_decide(state: ContestacionStepState) -> str:
    return "execute" if state.action.type in EXECUTABLE_ACTIONS else "skip"


async def execute(state: ContestacionStepState) -> dict[str, Any]:
    new_state = await execute_action(
        state.action, state.session_state, state.demanda_raw, state.context
    )
    return {
        "session_state": new_state,
        "next_step": resolve_next_step(state.action, new_state, state.current_step),
    }


async def skip(state: ContestacionStepState) -> dict[str, Any]:
    """Intent-only actions leave the session state as it is."""
    new_state = coerce_state(state.session_state)
    return {
        "session_state": new_state,
        "next_step": resolve_next_step(state.action, new_state, state.current_step),
    }


def _build_graph() -> StateGraph:
    """Build the one-step orchestration graph."""
    graph = StateGraph(ContestacionStepState)

    graph.add_node("merge_responses", merge_responses)
    graph.add_node("decide", decide)
    graph.add_node("execute", execute)
    graph.add_node("skip", skip)

    graph.set_entry_point("merge_responses")
    graph.add_edge("merge_responses", "decide")
    graph.add_conditional_edges(
        "decide",
        route_after_decide,
        {"execute": "execute", "skip": "skip"},
    )
    graph.add_edge("execute", END)
    graph.add_edge("skip", END)

    return graph


# Graph instance
contestacion_step_graph = _build_graph().compile()


async def run_contestacion_step(
    session_state: ContestacionSessionState | dict | None,
    demanda_raw: str | None = None,
    respuestas: dict[str, Any] | None = None,
    user_input: str | None = None,
    current_step: str | None = None,
    action: OrchestratorAction | None = None,
    policy: DecisionPolicy | None = None,
    context: OrchestratorContext | None = None,
) -> StepResult:
    """
    Run one orchestration step.

    Args:
        session_state: Stored session state (None for a new session)
        demanda_raw: Demand text, when the caller has it
        respuestas: New per-block responses to merge first
        user_input: Free text passed to the adaptive policy
        current_step: Step stored with the session
        action: Action to apply instead of asking the policy
        policy: Decision policy (defaults to the configured one)
        context: Variants, party data and case context for later stages

    Returns:
        StepResult with the applied action, the new state and the next step

    Raises:
        UnknownBlockError: If responses or stored maps name unknown blocks
        DraftGenerationFailure: If a draft action fails
    """
    initial_state = ContestacionStepState(
        session_state=coerce_state(session_state) if session_state is not None else None,
        demanda_raw=demanda_raw,
        respuestas=respuestas,
        user_input=user_input,
        current_step=current_step,
        forced_action=action,
        policy=policy,
        context=context or OrchestratorContext(),
    )

    final_state = await contestacion_step_graph.ainvoke(initial_state)

    return StepResult(
        action=final_state["action"],
        state=final_state["session_state"],
        next_step=final_state["next_step"],
    )
