"""Deterministic next-action rules for the parse phase.

Pure function of (state, demand text): no I/O, no clock, no backend.
"""

from typing import Any, Mapping

from contestacion_engine.core.contestacion_actions import (
    CompleteAction,
    OrchestratorAction,
    ParseAction,
    wait_user,
)
from contestacion_engine.core.schemas_contestacion import ContestacionSessionState

DEMANDA_REQUIRED_REASON = "Se requiere el texto de la demanda"
DEMANDA_REQUIRED_TO_PARSE_REASON = "Se requiere el texto de la demanda para parsear"


def _has_blocks(state: ContestacionSessionState | Mapping[str, Any]) -> bool:
    if isinstance(state, ContestacionSessionState):
        return bool(state.bloques)
    return bool(state.get("bloques"))


def get_next_action(
    state: ContestacionSessionState | Mapping[str, Any] | None,
    demanda_raw: str | None,
) -> OrchestratorAction:
    """Decide the next action from state and raw demand text."""
    has_demanda = bool((demanda_raw or "").strip())

    if state is None:
        if not has_demanda:
            return wait_user(DEMANDA_REQUIRED_REASON)
        return ParseAction()

    if not _has_blocks(state):
        if has_demanda:
            return ParseAction()
        return wait_user(DEMANDA_REQUIRED_TO_PARSE_REASON)

    return CompleteAction()
