"""Tests for session state serialization and boundary validation."""

import pytest

from contestacion_engine.core.contestacion_errors import UnknownBlockError
from contestacion_engine.core.contestacion_state import (
    coerce_state,
    compute_unanswered_blocks,
    merge_user_responses,
    validate_block_refs,
)
from contestacion_engine.core.schemas_contestacion import (
    BlockAnalysis,
    BlockQuestion,
    BlockResponse,
    ContestacionSessionState,
    DraftIteration,
    FormDataConsolidado,
)


def _full_state(parsed_state):
    return parsed_state.model_copy(update={
        "analisis_por_bloque": {"bloque_2": BlockAnalysis(bloque_id="bloque_2", argumentos_clave=["a"])},
        "preguntas_generadas": [BlockQuestion(bloque_id="bloque_2", pregunta="¿Pagó?", opciones_sugeridas=["Sí"])],
        "respuestas_usuario": {"bloque_2": BlockResponse(bloque_id="bloque_2", postura="negar")},
        "bloques_sin_respuesta": ["bloque_1", "bloque_3"],
        "form_data_consolidado": FormDataConsolidado(hechos_negados="Se niega"),
        "listo_para_redaccion": True,
        "ultima_accion": "ready_for_redaction",
        "ultima_accion_at": "2026-01-01T00:00:00+00:00",
        "historial_iteraciones": [DraftIteration(instruccion="Más breve", at="2026-01-02T00:00:00+00:00")],
    })


def test_json_round_trip(parsed_state):
    state = _full_state(parsed_state)
    assert ContestacionSessionState.from_json(state.to_json()) == state


def test_unset_fields_are_omitted(parsed_state):
    data = parsed_state.to_json_dict()
    assert "draft_content" not in data
    assert "respuestas_usuario" not in data
    assert data["tipo_demanda_detectado"] == "incumplimiento_locacion"


def test_coerce_state():
    assert coerce_state(None) == ContestacionSessionState()
    assert coerce_state({}).bloques == []


def test_coerce_state_copies_models(parsed_state):
    copy = coerce_state(parsed_state)
    assert copy == parsed_state
    assert copy is not parsed_state
    assert copy.bloques is not parsed_state.bloques


class TestMergeUserResponses:
    def test_merges_and_recomputes_unanswered(self, parsed_state):
        first = merge_user_responses(parsed_state, {"bloque_3": {"postura": "negar"}})
        second = merge_user_responses(first, {"bloque_1": {"bloque_id": "bloque_1", "postura": "admitir"}})

        assert set(second.respuestas_usuario) == {"bloque_1", "bloque_3"}
        assert second.bloques_sin_respuesta == ["bloque_2"]
        assert first.bloques_sin_respuesta == ["bloque_1", "bloque_2"]

    def test_later_response_overrides(self, parsed_state):
        first = merge_user_responses(parsed_state, {"bloque_1": {"postura": "admitir"}})
        second = merge_user_responses(first, {"bloque_1": {"postura": "negar"}})
        assert second.respuestas_usuario["bloque_1"].postura == "negar"

    def test_does_not_mutate_input(self, parsed_state):
        before = parsed_state.model_dump()
        merge_user_responses(parsed_state, {"bloque_1": {"postura": "admitir"}})
        assert parsed_state.model_dump() == before

    def test_unknown_block_rejected(self, parsed_state):
        with pytest.raises(UnknownBlockError) as exc_info:
            merge_user_responses(parsed_state, {"bloque_9": {"postura": "admitir"}})
        assert exc_info.value.bloque_ids == ["bloque_9"]

    def test_key_and_bloque_id_must_agree(self, parsed_state):
        with pytest.raises(UnknownBlockError):
            merge_user_responses(
                parsed_state, {"bloque_1": BlockResponse(bloque_id="bloque_2", postura="admitir")}
            )


def test_validate_block_refs(parsed_state):
    validate_block_refs(_full_state(parsed_state))

    bad = parsed_state.model_copy(update={
        "analisis_por_bloque": {"ghost": BlockAnalysis(bloque_id="ghost")},
    })
    with pytest.raises(UnknownBlockError):
        validate_block_refs(bad)


def test_compute_unanswered_blocks_follows_orden(parsed_state):
    state = parsed_state.model_copy(update={"bloques": list(reversed(parsed_state.bloques))})
    assert compute_unanswered_blocks(state) == ["bloque_1", "bloque_2", "bloque_3"]
