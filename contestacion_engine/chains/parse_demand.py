"""Parse raw demand text into ordered, typed blocks.

Uses forced structured output (tool schema) so every block carries id,
title, full content, category and order. Any non-empty demand always yields
at least one block: on backend failure or an empty answer the whole text
becomes a single ``otro`` block.
"""

from contestacion_engine.core.config import get_settings
from contestacion_engine.core.contestacion_errors import ParseFailure
from contestacion_engine.core.llm import GenerativeBackend, get_backend
from contestacion_engine.core.logging import get_logger
from contestacion_engine.core.schemas_contestacion import (
    BLOCK_TYPES,
    DemandBlock,
    DemandParseResult,
)

logger = get_logger(__name__)

# =============================================================================
# Tool schema
# =============================================================================

PARSE_TOOL = {
    "name": "submit_demand_structure",
    "description": "Submit the blocks of the demand, the detected demand type and the main claims.",
    "input_schema": {
        "type": "object",
        "properties": {
            "bloques": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "id": {"type": "string"},
                        "titulo": {"type": "string"},
                        "contenido": {
                            "type": "string",
                            "description": "Full block text, verbatim",
                        },
                        "tipo": {"type": "string", "enum": list(BLOCK_TYPES)},
                        "orden": {"type": "integer"},
                    },
                    "required": ["id", "titulo", "contenido", "tipo", "orden"],
                },
            },
            "tipo_demanda_detectado": {"type": "string"},
            "pretensiones_principales": {"type": "array", "items": {"type": "string"}},
        },
        "required": ["bloques", "tipo_demanda_detectado", "pretensiones_principales"],
    },
}

# =============================================================================
# System prompt
# =============================================================================

SYSTEM_PROMPT = """Eres un asistente legal experto que analiza demandas judiciales argentinas (Córdoba, Argentina).

Tu tarea es parsear el texto de una demanda y extraer sus secciones/bloques con el contenido COMPLETO de cada una. No resumas ni omitas texto.

Estructura típica de demandas:
- I. OBJETO (comparecencia, demandados, pretensiones, mediación)
- II. HECHOS (con subsecciones numeradas I, II, III, IV, V...)
- III. o IV. RUBROS RECLAMADOS (daño emergente, lucro cesante)
- IV. o V. PRUEBA (documental, testimonial, informativa)
- V. o VI. RESERVA DEL CASO FEDERAL (si existe)
- VI. o VII. PETITORIO

Instrucciones:
1. Detecta cada bloque por su título (numeración romana I, II, III... o "ANTE UD.", "POR LO EXPUESTO", etc.).
2. Extrae el contenido COMPLETO de cada bloque, sin resumir. Incluye todos los párrafos, subsecciones y detalles.
3. Asigna tipo: objeto, hechos, rubros, prueba, petitorio. Si no encaja, usa "otro".
4. Genera id único por bloque (bloque_1, bloque_2, ...).
5. Ordena según aparición en el documento (orden 1, 2, 3...).
6. tipo_demanda_detectado: describe el tipo (ej: "incumplimiento contractual locación", "daños y perjuicios").
7. pretensiones_principales: lista las pretensiones concretas (ej: "condena al pago de daños", "desalojo").

Usa la herramienta submit_demand_structure."""

USER_PROMPT = """Analiza la siguiente demanda judicial y extrae sus bloques/secciones.

DEMANDA:
---
{demanda}
---"""


def fallback_block(trimmed: str) -> DemandBlock:
    """Single block holding the whole demand."""
    return DemandBlock(
        id="bloque_1",
        titulo="Contenido completo",
        contenido=trimmed,
        tipo="otro",
        orden=1,
    )


def _normalize_blocks(raw_blocks: list[dict]) -> list[DemandBlock]:
    """Validate blocks, keep document order and make ids unique."""
    blocks: list[DemandBlock] = []
    for raw in raw_blocks:
        if not isinstance(raw, dict):
            continue
        if raw.get("tipo") not in BLOCK_TYPES:
            raw = {**raw, "tipo": "otro"}
        try:
            blocks.append(DemandBlock.model_validate(raw))
        except Exception as e:
            logger.warning(f"Skipping invalid demand block: {e}")

    blocks.sort(key=lambda b: b.orden)

    seen: set[str] = set()
    normalized: list[DemandBlock] = []
    for position, block in enumerate(blocks, start=1):
        block_id = block.id.strip() or f"bloque_{position}"
        if block_id in seen:
            block_id = f"{block_id}_{position}"
        seen.add(block_id)
        normalized.append(block.model_copy(update={"id": block_id, "orden": position}))
    return normalized


async def parse_demand_structure(
    demanda_raw: str | None,
    backend: GenerativeBackend | None = None,
) -> DemandParseResult:
    """
    Parse raw demand text into structured blocks.

    Empty input returns no blocks without calling the backend. On failure or
    an empty answer, returns a single block with the full trimmed content.
    """
    trimmed = (demanda_raw or "").strip()
    if not trimmed:
        return DemandParseResult(bloques=[])

    settings = get_settings()

    try:
        backend = backend or get_backend(settings.PARSE_MODEL)
        data = await backend.complete_structured(
            system=SYSTEM_PROMPT,
            prompt=USER_PROMPT.format(demanda=trimmed[: settings.DEMAND_MAX_CHARS]),
            tool=PARSE_TOOL,
            max_tokens=16384,
            temperature=0.1,
        )

        blocks = _normalize_blocks(data.get("bloques") or [])
        if not blocks:
            raise ParseFailure("Backend returned no blocks")

        tipo = (data.get("tipo_demanda_detectado") or "").strip()
        pretensiones = [p for p in (data.get("pretensiones_principales") or []) if p]

        logger.info(
            f"Parsed demand into {len(blocks)} blocks",
            extra={"block_count": len(blocks), "tipo_demanda": tipo},
        )
        return DemandParseResult(
            bloques=blocks,
            tipo_demanda_detectado=tipo or None,
            pretensiones_principales=pretensiones or None,
        )

    except Exception as e:
        logger.error(f"Demand parsing failed, using single fallback block: {e}", exc_info=True)
        return DemandParseResult(bloques=[fallback_block(trimmed)])
