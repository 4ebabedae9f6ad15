"""Orchestrator action vocabulary.

A closed tagged union: every action is a pydantic model with a literal
``type`` discriminator and an optional, action-specific payload. Decision
policies produce these; the orchestrator dispatches on ``type``. Callers may
also build actions directly (e.g. to force ``ready_for_redaction``).
"""

import json
from typing import Annotated, Any, Literal, Union, get_args

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from contestacion_engine.core.contestacion_errors import UnknownActionTransition
from contestacion_engine.core.schemas_contestacion import BlockQuestion

ActionType = Literal[
    "parse",
    "analyze",
    "generate_questions",
    "wait_user",
    "need_more_info",
    "ready_for_redaction",
    "select_structure",
    "generate_draft",
    "iterate_draft",
    "save_draft",
    "back_to_context",
    "complete",
    "error",
]

ACTION_TYPES: tuple[str, ...] = get_args(ActionType)

# Actions that run a state transition (the rest only communicate intent)
EXECUTABLE_ACTIONS: frozenset[str] = frozenset(
    {
        "parse",
        "analyze",
        "generate_questions",
        "ready_for_redaction",
        "select_structure",
        "generate_draft",
        "iterate_draft",
        "save_draft",
        "back_to_context",
    }
)


# =============================================================================
# Payloads
# =============================================================================


class _Payload(BaseModel):
    model_config = ConfigDict(frozen=True)


class BlockScopePayload(_Payload):
    bloque_ids: list[str] | None = None


class WaitUserPayload(_Payload):
    reason: str
    preguntas: list[BlockQuestion] | None = None


class NeedMoreInfoPayload(_Payload):
    bloque_ids: list[str]
    reason: str


class IterateDraftPayload(_Payload):
    instruccion: str


class SaveDraftPayload(_Payload):
    draft_id: str | None = None


class BackToContextPayload(_Payload):
    reason: str | None = None


class ErrorPayload(_Payload):
    message: str


# =============================================================================
# Actions
# =============================================================================


class _Action(BaseModel):
    model_config = ConfigDict(frozen=True)


class ParseAction(_Action):
    type: Literal["parse"] = "parse"


class AnalyzeAction(_Action):
    type: Literal["analyze"] = "analyze"
    payload: BlockScopePayload | None = None


class GenerateQuestionsAction(_Action):
    type: Literal["generate_questions"] = "generate_questions"
    payload: BlockScopePayload | None = None


class WaitUserAction(_Action):
    type: Literal["wait_user"] = "wait_user"
    payload: WaitUserPayload | None = None


class NeedMoreInfoAction(_Action):
    type: Literal["need_more_info"] = "need_more_info"
    payload: NeedMoreInfoPayload


class ReadyForRedactionAction(_Action):
    type: Literal["ready_for_redaction"] = "ready_for_redaction"


class SelectStructureAction(_Action):
    type: Literal["select_structure"] = "select_structure"


class GenerateDraftAction(_Action):
    type: Literal["generate_draft"] = "generate_draft"


class IterateDraftAction(_Action):
    type: Literal["iterate_draft"] = "iterate_draft"
    payload: IterateDraftPayload


class SaveDraftAction(_Action):
    type: Literal["save_draft"] = "save_draft"
    payload: SaveDraftPayload | None = None


class BackToContextAction(_Action):
    type: Literal["back_to_context"] = "back_to_context"
    payload: BackToContextPayload | None = None


class CompleteAction(_Action):
    type: Literal["complete"] = "complete"


class ErrorAction(_Action):
    type: Literal["error"] = "error"
    payload: ErrorPayload


OrchestratorAction = Annotated[
    Union[
        ParseAction,
        AnalyzeAction,
        GenerateQuestionsAction,
        WaitUserAction,
        NeedMoreInfoAction,
        ReadyForRedactionAction,
        SelectStructureAction,
        GenerateDraftAction,
        IterateDraftAction,
        SaveDraftAction,
        BackToContextAction,
        CompleteAction,
        ErrorAction,
    ],
    Field(discriminator="type"),
]

_ACTION_ADAPTER: TypeAdapter = TypeAdapter(OrchestratorAction)


# =============================================================================
# Helpers
# =============================================================================


def wait_user(reason: str, preguntas: list[BlockQuestion] | None = None) -> WaitUserAction:
    return WaitUserAction(payload=WaitUserPayload(reason=reason, preguntas=preguntas))


def need_more_info(bloque_ids: list[str], reason: str) -> NeedMoreInfoAction:
    return NeedMoreInfoAction(payload=NeedMoreInfoPayload(bloque_ids=bloque_ids, reason=reason))


def parse_action(raw: Any) -> OrchestratorAction:
    """
    Validate a caller-supplied action (dict, JSON string or model).

    Raises:
        UnknownActionTransition: If the tag is not in the vocabulary
        pydantic.ValidationError: If the payload does not match the tag
    """
    if isinstance(raw, BaseModel):
        raw = raw.model_dump()
    if isinstance(raw, (str, bytes)):
        raw = json.loads(raw)

    if not isinstance(raw, dict) or raw.get("type") not in ACTION_TYPES:
        tag = raw.get("type") if isinstance(raw, dict) else type(raw).__name__
        raise UnknownActionTransition(str(tag))
    return _ACTION_ADAPTER.validate_python(raw)


def action_to_dict(action: OrchestratorAction) -> dict[str, Any]:
    """Serialize an action to ``{type, payload?}``."""
    return action.model_dump(mode="json", exclude_none=True)
