"""Adaptive decision: let the backend choose the next orchestration step.

The backend sees a compact summary of the session (counts, block categories,
per-block stance and whether a justification was given) and picks one of
analyze, generate_questions, wait_user, need_more_info or
ready_for_redaction. If the call fails, a local heuristic decides instead.
"""

import json

from contestacion_engine.core.config import get_settings
from contestacion_engine.core.contestacion_actions import (
    AnalyzeAction,
    BlockScopePayload,
    GenerateQuestionsAction,
    OrchestratorAction,
    ReadyForRedactionAction,
    need_more_info,
    wait_user,
)
from contestacion_engine.core.contestacion_errors import DecisionFailure
from contestacion_engine.core.llm import GenerativeBackend, get_backend
from contestacion_engine.core.logging import get_logger
from contestacion_engine.core.schemas_contestacion import (
    CRITICAL_BLOCK_TYPES,
    ContestacionSessionState,
)

logger = get_logger(__name__)

AGENT_ACTIONS = ("analyze", "generate_questions", "wait_user", "need_more_info", "ready_for_redaction")

DEFAULT_WAIT_REASON = "Completá las respuestas por bloque para continuar."
DEFAULT_NEED_MORE_INFO_REASON = "Falta información en algunos bloques."
FALLBACK_WAIT_REASON = "Completá las respuestas por bloque."
RETRY_WAIT_REASON = "Error al evaluar. Intentá enviar las respuestas nuevamente."

DECISION_TOOL = {
    "name": "submit_next_action",
    "description": "Submit the next orchestration action.",
    "input_schema": {
        "type": "object",
        "properties": {
            "action": {"type": "string", "enum": list(AGENT_ACTIONS)},
            "reason": {"type": "string"},
            "bloque_ids": {"type": "array", "items": {"type": "string"}},
            "preguntas_prioritarias": {"type": "array", "items": {"type": "string"}},
        },
        "required": ["action", "reason", "bloque_ids", "preguntas_prioritarias"],
    },
}

SYSTEM_PROMPT = """Eres un orquestador del flujo de contestación de demanda (Córdoba, Argentina).

Dado el estado actual de la sesión, decides la próxima acción. Acciones posibles:

1. **analyze**: Si hay bloques parseados pero NO hay análisis por bloque. Ejecutar análisis profundo.
2. **generate_questions**: Si hay análisis pero NO hay preguntas generadas, o si hace falta preguntar más sobre bloques específicos. Genera preguntas para el abogado.
3. **wait_user**: Si hay preguntas pero el usuario aún no respondió. Esperar a que complete las respuestas.
4. **need_more_info**: Si el usuario respondió pero falta información en bloques específicos (bloque_ids). Indicar qué bloques necesitan más detalle.
5. **ready_for_redaction**: Si hay respuestas suficientes en todos los bloques relevantes. Pasar a consolidar y redacción.

Reglas (en este orden):
- Si no hay analisis_por_bloque y hay bloques → analyze (reason: "", bloque_ids: [], preguntas_prioritarias: [])
- Si hay analisis pero no preguntas_generadas → generate_questions (reason: "", bloque_ids: [] si no aplica, preguntas_prioritarias: [])
- Si hay preguntas pero no respuestas_usuario o respuestas incompletas → wait_user (reason: breve explicación, bloque_ids: [], preguntas_prioritarias: [])
- Si hay respuestas pero faltan bloques críticos (hechos, rubros) sin respuesta → need_more_info con bloque_ids de esos bloques y reason explicando qué falta
- Si todas las respuestas están completas y son suficientes → ready_for_redaction (reason: "", bloque_ids: [], preguntas_prioritarias: [])

Siempre incluye reason, bloque_ids y preguntas_prioritarias. Usa "" o [] cuando no aplique."""

USER_PROMPT = """Estado actual:
{summary}
{user_input}
Decide la próxima acción."""


def summarize_state(state: ContestacionSessionState) -> dict:
    """Counts and per-block stance summary sent to the decision backend."""
    analisis = state.analisis_por_bloque or {}
    preguntas = state.preguntas_generadas or []
    respuestas = state.respuestas_usuario or {}
    return {
        "bloques_count": len(state.bloques),
        "bloques_ids": state.block_ids,
        "bloques_tipos": [{"id": b.id, "tipo": b.tipo} for b in state.bloques],
        "analisis_count": len(analisis),
        "preguntas_count": len(preguntas),
        "respuestas_count": len(respuestas),
        "respuestas_por_bloque": {
            bloque_id: {
                "postura": r.postura,
                "has_fundamentacion": bool((r.fundamentacion or "").strip()),
            }
            for bloque_id, r in respuestas.items()
        },
        "bloques_criticos_sin_respuesta": [
            b.id for b in state.bloques if b.tipo in CRITICAL_BLOCK_TYPES and b.id not in respuestas
        ],
    }


def fallback_decision(state: ContestacionSessionState) -> OrchestratorAction:
    """Local heuristic used when the decision backend is unavailable."""
    preguntas = state.preguntas_generadas or []
    respuestas = state.respuestas_usuario or {}
    if preguntas and len(respuestas) < len(state.bloques):
        return wait_user(FALLBACK_WAIT_REASON)
    if preguntas and len(respuestas) >= len(state.bloques):
        return ReadyForRedactionAction()
    return wait_user(RETRY_WAIT_REASON)


def _to_action(data: dict, state: ContestacionSessionState) -> OrchestratorAction:
    action = data.get("action")
    if action not in AGENT_ACTIONS:
        raise DecisionFailure(f"Backend chose unsupported action: {action!r}")

    reason = (data.get("reason") or "").strip()
    known = set(state.block_ids)
    bloque_ids = [bid for bid in (data.get("bloque_ids") or []) if bid in known]

    if action == "analyze":
        return AnalyzeAction()
    if action == "generate_questions":
        payload = BlockScopePayload(bloque_ids=bloque_ids) if bloque_ids else None
        return GenerateQuestionsAction(payload=payload)
    if action == "wait_user":
        return wait_user(reason or DEFAULT_WAIT_REASON)
    if action == "need_more_info":
        return need_more_info(bloque_ids, reason or DEFAULT_NEED_MORE_INFO_REASON)
    return ReadyForRedactionAction()


async def get_agent_decision(
    state: ContestacionSessionState,
    user_input: str | None = None,
    backend: GenerativeBackend | None = None,
) -> OrchestratorAction:
    """
    Decide the next action for a session that already has blocks.

    Never raises: backend failures fall back to ``fallback_decision``.
    """
    summary = json.dumps(summarize_state(state), ensure_ascii=False, indent=2)
    user_line = f'\nÚltimo input del usuario: "{user_input}"\n' if user_input else ""

    settings = get_settings()
    try:
        backend = backend or get_backend(settings.AGENT_MODEL)
        data = await backend.complete_structured(
            system=SYSTEM_PROMPT,
            prompt=USER_PROMPT.format(summary=summary, user_input=user_line),
            tool=DECISION_TOOL,
            max_tokens=512,
            temperature=0.2,
        )
        action = _to_action(data, state)
    except Exception as e:
        logger.error(f"Agent decision failed, using heuristic: {e}", exc_info=True)
        return fallback_decision(state)

    logger.info(f"Agent decided {action.type}")
    return action
