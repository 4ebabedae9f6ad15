"""Session state helpers: coercion, boundary validation and response merging."""

from datetime import datetime, timezone
from typing import Any, Mapping

from contestacion_engine.core.contestacion_errors import UnknownBlockError
from contestacion_engine.core.schemas_contestacion import (
    BlockResponse,
    ContestacionSessionState,
)


def now_iso() -> str:
    """UTC timestamp in ISO-8601, as stored in the session state."""
    return datetime.now(timezone.utc).isoformat()


def coerce_state(raw: ContestacionSessionState | Mapping[str, Any] | None) -> ContestacionSessionState:
    """
    Turn a stored state (``None``, JSON dict or model) into a fresh model.

    The result never shares mutable structure with ``raw``.
    """
    if raw is None:
        return ContestacionSessionState()
    if isinstance(raw, ContestacionSessionState):
        return raw.model_copy(deep=True)
    return ContestacionSessionState.model_validate(dict(raw))


def unknown_block_ids(state: ContestacionSessionState, bloque_ids: list[str]) -> list[str]:
    known = set(state.block_ids)
    return [bid for bid in bloque_ids if bid not in known]


def validate_block_refs(state: ContestacionSessionState) -> None:
    """
    Check that every per-block map key names an existing block.

    Raises:
        UnknownBlockError: If any analysis or response key is unknown
    """
    keys: list[str] = []
    for mapping in (state.analisis_por_bloque, state.respuestas_usuario):
        if mapping:
            keys.extend(mapping.keys())
            keys.extend(
                value.bloque_id for key, value in mapping.items() if value.bloque_id != key
            )
    unknown = unknown_block_ids(state, keys)
    if unknown:
        raise UnknownBlockError(sorted(set(unknown)))


def compute_unanswered_blocks(state: ContestacionSessionState) -> list[str]:
    """Block ids (document order) with no response yet."""
    answered = set((state.respuestas_usuario or {}).keys())
    ordered = sorted(state.bloques, key=lambda b: b.orden)
    return [b.id for b in ordered if b.id not in answered]


def merge_user_responses(
    state: ContestacionSessionState | Mapping[str, Any] | None,
    responses: Mapping[str, BlockResponse | Mapping[str, Any]],
) -> ContestacionSessionState:
    """
    Merge per-block responses into a new state.

    Responses override earlier ones for the same block. ``bloques_sin_respuesta``
    is recomputed from the merged map.

    Raises:
        UnknownBlockError: If a key or ``bloque_id`` does not name a block, or
            the key and the response's ``bloque_id`` disagree
    """
    current = coerce_state(state)

    parsed: dict[str, BlockResponse] = {}
    mismatched: list[str] = []
    for key, value in responses.items():
        data = value.model_dump() if isinstance(value, BlockResponse) else dict(value)
        data.setdefault("bloque_id", key)
        response = BlockResponse.model_validate(data)
        if response.bloque_id != key:
            mismatched.append(key)
        parsed[key] = response

    unknown = unknown_block_ids(current, list(parsed.keys())) + mismatched
    if unknown:
        raise UnknownBlockError(sorted(set(unknown)))

    merged = {**(current.respuestas_usuario or {}), **parsed}
    updated = current.model_copy(update={"respuestas_usuario": merged})
    return updated.model_copy(update={"bloques_sin_respuesta": compute_unanswered_blocks(updated)})
