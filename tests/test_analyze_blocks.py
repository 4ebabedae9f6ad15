"""Tests for block analysis."""

import pytest

from contestacion_engine.chains.analyze_blocks import analyze_demand_blocks
from tests.fakes.fake_backend import FakeBackend


@pytest.mark.asyncio
async def test_no_blocks_skips_backend():
    backend = FakeBackend()
    assert await analyze_demand_blocks([], "demanda", backend=backend) == []
    assert backend.calls == []


@pytest.mark.asyncio
async def test_returns_analysis_for_known_blocks(bloques):
    backend = FakeBackend({
        "analisis": [
            {
                "bloque_id": "bloque_2",
                "argumentos_clave": ["Falta de pago"],
                "puntos_debiles": ["No acompaña recibos"],
                "prueba_implicita": ["Contrato"],
                "sugerencias_defensa": ["Acreditar pagos"],
            },
            {"bloque_id": "bloque_99", "argumentos_clave": ["x"]},
            {"argumentos_clave": ["sin bloque"]},
        ]
    })

    analyses = await analyze_demand_blocks(bloques, "Texto de la demanda", backend=backend)

    assert [a.bloque_id for a in analyses] == ["bloque_2"]
    assert analyses[0].puntos_debiles == ["No acompaña recibos"]


@pytest.mark.asyncio
async def test_backend_error_returns_empty(bloques):
    backend = FakeBackend(RuntimeError("boom"))
    assert await analyze_demand_blocks(bloques, "demanda", backend=backend) == []


@pytest.mark.asyncio
async def test_malformed_answer_returns_empty(bloques):
    backend = FakeBackend({"analisis": "not a list"})
    assert await analyze_demand_blocks(bloques, "demanda", backend=backend) == []


@pytest.mark.asyncio
async def test_block_content_is_truncated(bloques, monkeypatch):
    from contestacion_engine.core.config import get_settings

    monkeypatch.setattr(get_settings(), "BLOCK_ANALYSIS_MAX_CHARS", 5)
    backend = FakeBackend({"analisis": []})

    await analyze_demand_blocks(bloques[:1], "demanda", backend=backend)

    prompt = backend.calls[0]["prompt"]
    assert "Se de" in prompt
    assert "Se demanda" not in prompt
