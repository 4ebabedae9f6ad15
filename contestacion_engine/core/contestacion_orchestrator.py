"""Orchestrator core: apply one action to a session state.

``execute_action`` is total over the action vocabulary. Every branch returns
a new state and leaves its input untouched. Branches that run a transition
stamp ``ultima_accion``/``ultima_accion_at``. Intent-only actions
(``wait_user``, ``need_more_info``, ``complete``, ``error``) and transitions
whose preconditions are not met return an unstamped copy.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping

from contestacion_engine.chains.analyze_blocks import analyze_demand_blocks
from contestacion_engine.chains.consolidate_responses import consolidate_user_responses
from contestacion_engine.chains.generate_block_questions import generate_questions_for_blocks
from contestacion_engine.chains.generate_contestacion_draft import (
    CaseContext,
    build_demanda_context,
    generate_contestacion_draft,
)
from contestacion_engine.chains.parse_demand import parse_demand_structure
from contestacion_engine.chains.select_structure import select_contestacion_structure
from contestacion_engine.core.contestacion_actions import OrchestratorAction
from contestacion_engine.core.contestacion_state import coerce_state, now_iso
from contestacion_engine.core.llm import GenerativeBackend
from contestacion_engine.core.logging import get_logger, log_with_context
from contestacion_engine.core.schemas_contestacion import (
    ContestacionSessionState,
    DraftIteration,
)

logger = get_logger(__name__)

# Session step vocabulary persisted next to the state
STEP_INIT = "init"
STEP_PARSED = "parsed"
STEP_ANALYZED = "analyzed"
STEP_QUESTIONS = "questions"
STEP_NEED_MORE_INFO = "need_more_info"
STEP_READY = "ready_for_redaction"
STEP_STRUCTURE_SELECTED = "structure_selected"
STEP_DRAFT_GENERATED = "draft_generated"
STEP_DRAFT_SAVED = "draft_saved"


@dataclass
class OrchestratorContext:
    """Inputs the later-stage transitions need besides the state."""

    available_variants: list[str] = field(default_factory=list)
    party_form_data: dict[str, str] = field(default_factory=dict)
    case_context: CaseContext | None = None
    session_id: str | None = None
    backend: GenerativeBackend | None = None


Transition = Callable[
    [OrchestratorAction, ContestacionSessionState, str | None, OrchestratorContext],
    Awaitable[ContestacionSessionState | None],
]


def _stamp(state: ContestacionSessionState, action_type: str, **updates: Any) -> ContestacionSessionState:
    return state.model_copy(
        update={**updates, "ultima_accion": action_type, "ultima_accion_at": now_iso()}
    )


# =============================================================================
# Transitions (return None when preconditions are not met)
# =============================================================================


async def _parse(action, state, demanda_raw, ctx):
    if not demanda_raw or not demanda_raw.strip():
        return None
    result = await parse_demand_structure(demanda_raw, backend=ctx.backend)
    # New blocks invalidate everything keyed by or derived from the old ones
    return _stamp(
        state,
        action.type,
        bloques=result.bloques,
        tipo_demanda_detectado=result.tipo_demanda_detectado,
        pretensiones_principales=result.pretensiones_principales,
        analisis_por_bloque=None,
        preguntas_generadas=None,
        respuestas_usuario=None,
        bloques_sin_respuesta=None,
        form_data_consolidado=None,
        listo_para_redaccion=None,
    )


async def _analyze(action, state, demanda_raw, ctx):
    if not state.bloques or not demanda_raw or not demanda_raw.strip():
        return None
    analyses = await analyze_demand_blocks(state.bloques, demanda_raw, backend=ctx.backend)
    return _stamp(state, action.type, analisis_por_bloque={a.bloque_id: a for a in analyses})


async def _generate_questions(action, state, demanda_raw, ctx):
    scope = action.payload.bloque_ids if action.payload else None
    preguntas = await generate_questions_for_blocks(
        state.bloques, state.analisis_por_bloque, bloque_ids=scope, backend=ctx.backend
    )
    if scope:
        # Scoped runs replace only the questions of targeted blocks that got new ones
        replaced = {q.bloque_id for q in preguntas}
        kept = [q for q in (state.preguntas_generadas or []) if q.bloque_id not in replaced]
        preguntas = kept + preguntas
    return _stamp(state, action.type, preguntas_generadas=preguntas)


async def _ready_for_redaction(action, state, demanda_raw, ctx):
    form_data = await consolidate_user_responses(
        state.respuestas_usuario, state.bloques, backend=ctx.backend
    )
    return _stamp(
        state, action.type, form_data_consolidado=form_data, listo_para_redaccion=True
    )


async def _select_structure(action, state, demanda_raw, ctx):
    variant = await select_contestacion_structure(
        state.tipo_demanda_detectado, state.bloques, ctx.available_variants, backend=ctx.backend
    )
    return _stamp(state, action.type, variant_seleccionada=variant)


def _draft_form_data(state: ContestacionSessionState, ctx: OrchestratorContext) -> dict[str, str]:
    form_data = state.form_data_consolidado.model_dump() if state.form_data_consolidado else {}
    form_data.update(ctx.party_form_data)
    return form_data


async def _generate_draft(action, state, demanda_raw, ctx):
    if not state.listo_para_redaccion or state.form_data_consolidado is None:
        return None
    variant = state.variant_seleccionada
    if not variant:
        variant = await select_contestacion_structure(
            state.tipo_demanda_detectado, state.bloques, ctx.available_variants, backend=ctx.backend
        )
    content = await generate_contestacion_draft(
        _draft_form_data(state, ctx),
        variant=variant,
        demanda_context=build_demanda_context(state),
        case_context=ctx.case_context,
        backend=ctx.backend,
    )
    return _stamp(
        state,
        action.type,
        variant_seleccionada=variant,
        draft_content=content,
        draft_generado_at=now_iso(),
    )


async def _iterate_draft(action, state, demanda_raw, ctx):
    instruccion = action.payload.instruccion.strip()
    if not state.draft_content or not instruccion:
        return None
    content = await generate_contestacion_draft(
        _draft_form_data(state, ctx),
        variant=state.variant_seleccionada or "",
        demanda_context=build_demanda_context(state),
        case_context=ctx.case_context,
        previous_draft=state.draft_content,
        iteration_instruction=instruccion,
        backend=ctx.backend,
    )
    at = now_iso()
    historial = list(state.historial_iteraciones or [])
    historial.append(DraftIteration(instruccion=instruccion, at=at))
    return _stamp(
        state,
        action.type,
        draft_content=content,
        draft_iterado_at=at,
        historial_iteraciones=historial,
    )


async def _save_draft(action, state, demanda_raw, ctx):
    if not state.draft_content:
        return None
    draft_id = action.payload.draft_id if action.payload else None
    return _stamp(state, action.type, draft_id=draft_id or state.draft_id)


async def _back_to_context(action, state, demanda_raw, ctx):
    return _stamp(state, action.type, listo_para_redaccion=False, form_data_consolidado=None)


TRANSITIONS: dict[str, Transition] = {
    "parse": _parse,
    "analyze": _analyze,
    "generate_questions": _generate_questions,
    "ready_for_redaction": _ready_for_redaction,
    "select_structure": _select_structure,
    "generate_draft": _generate_draft,
    "iterate_draft": _iterate_draft,
    "save_draft": _save_draft,
    "back_to_context": _back_to_context,
}

INTENT_ONLY_ACTIONS = frozenset({"wait_user", "need_more_info", "complete", "error"})

_FIXED_STEPS = {
    "need_more_info": STEP_NEED_MORE_INFO,
    "ready_for_redaction": STEP_READY,
    "select_structure": STEP_STRUCTURE_SELECTED,
    "complete": STEP_PARSED,
}


async def execute_action(
    action: OrchestratorAction,
    current_state: ContestacionSessionState | Mapping[str, Any] | None,
    demanda_raw: str | None = None,
    context: OrchestratorContext | None = None,
) -> ContestacionSessionState:
    """
    Apply ``action`` to ``current_state`` and return the new state.

    Component failures degrade inside the components, so this only raises
    ``DraftGenerationFailure`` (draft actions) or a state validation error.
    """
    ctx = context or OrchestratorContext()
    state = coerce_state(current_state)

    transition = TRANSITIONS.get(action.type)
    if transition is None:
        if action.type not in INTENT_ONLY_ACTIONS:
            logger.warning(f"No transition wired for action '{action.type}', state unchanged")
        return state

    new_state = await transition(action, state, demanda_raw, ctx)
    if new_state is None:
        logger.debug(f"Preconditions for '{action.type}' not met, state unchanged")
        return state

    log_with_context(
        logger,
        logging.INFO,
        f"Applied {action.type}",
        session_id=ctx.session_id,
        bloques=len(new_state.bloques),
    )
    return new_state


def resolve_next_step(
    action: OrchestratorAction,
    new_state: ContestacionSessionState,
    current_step: str | None = None,
) -> str:
    """Session step to persist after ``action`` was applied."""
    current_step = current_step or STEP_INIT
    tag = action.type
    if tag == "parse":
        return STEP_PARSED if new_state.bloques else STEP_INIT
    if tag == "analyze":
        return STEP_ANALYZED if new_state.analisis_por_bloque is not None else current_step
    if tag in ("generate_questions", "wait_user"):
        return STEP_QUESTIONS if new_state.preguntas_generadas else current_step
    if tag in ("generate_draft", "iterate_draft"):
        return STEP_DRAFT_GENERATED if new_state.draft_content else current_step
    if tag == "save_draft":
        return STEP_DRAFT_SAVED if new_state.draft_id else current_step
    if tag == "back_to_context":
        return STEP_QUESTIONS if new_state.preguntas_generadas else STEP_PARSED
    return _FIXED_STEPS.get(tag, current_step)
