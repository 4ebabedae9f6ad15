"""Tests for per-block question generation."""

import pytest

from contestacion_engine.chains.generate_block_questions import generate_questions_for_blocks
from contestacion_engine.core.schemas_contestacion import BlockAnalysis
from tests.fakes.fake_backend import FakeBackend


def _questions(*bloque_ids):
    return {
        "preguntas": [
            {"bloque_id": bid, "pregunta": f"¿Admite lo expuesto en {bid}?", "tipo": "postura"}
            for bid in bloque_ids
        ]
    }


@pytest.mark.asyncio
async def test_generates_questions_for_all_blocks(bloques):
    backend = FakeBackend(_questions("bloque_1", "bloque_2", "bloque_3"))

    questions = await generate_questions_for_blocks(bloques, None, backend=backend)

    assert [q.bloque_id for q in questions] == ["bloque_1", "bloque_2", "bloque_3"]
    assert questions[0].tipo == "postura"


@pytest.mark.asyncio
async def test_scope_limits_prompt_and_result(bloques):
    backend = FakeBackend(_questions("bloque_1", "bloque_2"))

    questions = await generate_questions_for_blocks(
        bloques, None, bloque_ids=["bloque_2"], backend=backend
    )

    assert [q.bloque_id for q in questions] == ["bloque_2"]
    prompt = backend.calls[0]["prompt"]
    assert "bloque_2" in prompt
    assert "bloque_1" not in prompt


@pytest.mark.asyncio
async def test_scope_with_unknown_ids_skips_backend(bloques):
    backend = FakeBackend()
    assert await generate_questions_for_blocks(bloques, None, bloque_ids=["nope"], backend=backend) == []
    assert backend.calls == []


@pytest.mark.asyncio
async def test_analysis_suggestions_reach_prompt(bloques):
    backend = FakeBackend(_questions("bloque_2"))
    analisis = {
        "bloque_2": BlockAnalysis(bloque_id="bloque_2", sugerencias_defensa=["Pedir recibos"]),
    }

    await generate_questions_for_blocks(bloques, analisis, bloque_ids=["bloque_2"], backend=backend)

    assert "Pedir recibos" in backend.calls[0]["prompt"]


@pytest.mark.asyncio
async def test_backend_error_returns_empty(bloques):
    backend = FakeBackend(ValueError("bad tool output"))
    assert await generate_questions_for_blocks(bloques, None, backend=backend) == []
