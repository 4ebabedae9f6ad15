"""Tests for response consolidation."""

import re

import pytest

from contestacion_engine.chains.consolidate_responses import (
    build_consolidation_context,
    consolidate_user_responses,
)
from contestacion_engine.core.schemas_contestacion import BlockResponse, FormDataConsolidado
from tests.fakes.fake_backend import FakeBackend


def _echo_blocks(call):
    """Put every block id the backend was shown into the facts sections."""
    ids = " ".join(re.findall(r"Bloque (\S+) \(", call["prompt"]))
    return {
        "hechos_admitidos": ids,
        "hechos_negados": ids,
        "defensas": "Defensas",
        "excepciones": "",
        "prueba": call["prompt"],
    }


@pytest.mark.asyncio
async def test_empty_responses_give_empty_fields(bloques):
    backend = FakeBackend()

    result = await consolidate_user_responses({}, bloques, backend=backend)

    assert result == FormDataConsolidado(
        hechos_admitidos="", hechos_negados="", defensas="", excepciones="", prueba=""
    )
    assert backend.calls == []


@pytest.mark.asyncio
async def test_consolidates_positioned_responses(bloques):
    backend = FakeBackend({
        "hechos_admitidos": "1. Se admite el contrato.",
        "hechos_negados": "1. Se niega la deuda.",
        "defensas": "Pago.",
        "excepciones": "",
        "prueba": "1. Recibos.",
    })
    respuestas = {
        "bloque_1": BlockResponse(bloque_id="bloque_1", postura="admitir"),
        "bloque_2": BlockResponse(
            bloque_id="bloque_2", postura="negar", fundamentacion="Pagó", prueba_ofrecida=["Recibos"]
        ),
    }

    result = await consolidate_user_responses(respuestas, bloques, backend=backend)

    assert result.hechos_negados == "1. Se niega la deuda."
    assert result.prueba == "1. Recibos."
    prompt = backend.calls[0]["prompt"]
    assert prompt.index("Bloque bloque_1") < prompt.index("Bloque bloque_2")
    assert "fundamentacion=Pagó" in prompt


@pytest.mark.asyncio
async def test_unpositioned_blocks_never_reach_facts(bloques):
    backend = FakeBackend(_echo_blocks)
    respuestas = {
        "bloque_1": BlockResponse(bloque_id="bloque_1", postura="admitir"),
        "bloque_2": BlockResponse(
            bloque_id="bloque_2", postura="sin_posicion", prueba_ofrecida=["Testimonial de Pérez"]
        ),
        "bloque_3": BlockResponse(bloque_id="bloque_3", postura="negar_con_matices"),
    }

    result = await consolidate_user_responses(respuestas, bloques, backend=backend)

    assert "bloque_2" not in result.hechos_admitidos
    assert "bloque_2" not in result.hechos_negados
    assert "bloque_1" in result.hechos_admitidos
    assert "bloque_3" in result.hechos_negados
    # Its evidence is still offered
    assert "Testimonial de Pérez" in result.prueba


@pytest.mark.asyncio
async def test_only_unpositioned_blocks_keep_facts_empty(bloques):
    backend = FakeBackend({
        "hechos_admitidos": "invented",
        "hechos_negados": "invented",
        "defensas": "",
        "excepciones": "",
        "prueba": "1. Documental.",
    })
    respuestas = {
        "bloque_2": BlockResponse(bloque_id="bloque_2", postura="sin_posicion", prueba_ofrecida=["Documental"]),
    }

    result = await consolidate_user_responses(respuestas, bloques, backend=backend)

    assert result.hechos_admitidos == ""
    assert result.hechos_negados == ""
    assert result.prueba == "1. Documental."


@pytest.mark.asyncio
async def test_nothing_positioned_and_no_evidence_skips_backend(bloques):
    backend = FakeBackend()
    respuestas = {"bloque_1": BlockResponse(bloque_id="bloque_1", postura="sin_posicion")}

    result = await consolidate_user_responses(respuestas, bloques, backend=backend)

    assert result == FormDataConsolidado()
    assert backend.calls == []


@pytest.mark.asyncio
async def test_backend_error_gives_empty_fields(bloques):
    backend = FakeBackend(RuntimeError("rate limited"))
    respuestas = {"bloque_1": BlockResponse(bloque_id="bloque_1", postura="admitir")}

    result = await consolidate_user_responses(respuestas, bloques, backend=backend)

    assert result == FormDataConsolidado()


def test_context_orders_by_block_and_collects_extra_evidence(bloques):
    respuestas = {
        "bloque_3": BlockResponse(bloque_id="bloque_3", postura="negar"),
        "bloque_1": BlockResponse(bloque_id="bloque_1", postura="admitir_parcial"),
        "bloque_2": BlockResponse(bloque_id="bloque_2", postura="sin_posicion", prueba_ofrecida=["Pericial"]),
    }

    lines, extra = build_consolidation_context(respuestas, bloques)

    assert lines.splitlines()[0].startswith("Bloque bloque_1")
    assert lines.splitlines()[1].startswith("Bloque bloque_3")
    assert "bloque_2" not in lines
    assert extra == ["Pericial"]
