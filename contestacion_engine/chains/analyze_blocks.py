"""Analyze each demand block from the defendant's perspective.

Extracts key arguments, weak points, implicit evidence and defense lines per
block. The analysis only feeds question generation; it never reaches the
consolidated contestación fields.
"""

from contestacion_engine.core.config import get_settings
from contestacion_engine.core.contestacion_errors import AnalysisFailure
from contestacion_engine.core.llm import GenerativeBackend, get_backend
from contestacion_engine.core.logging import get_logger
from contestacion_engine.core.schemas_contestacion import BlockAnalysis, DemandBlock

logger = get_logger(__name__)

_STRING_LIST = {"type": "array", "items": {"type": "string"}}

ANALYZE_TOOL = {
    "name": "submit_block_analysis",
    "description": "Submit one analysis record per demand block.",
    "input_schema": {
        "type": "object",
        "properties": {
            "analisis": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "bloque_id": {"type": "string"},
                        "argumentos_clave": _STRING_LIST,
                        "puntos_debiles": _STRING_LIST,
                        "prueba_implicita": _STRING_LIST,
                        "sugerencias_defensa": _STRING_LIST,
                    },
                    "required": [
                        "bloque_id",
                        "argumentos_clave",
                        "puntos_debiles",
                        "prueba_implicita",
                        "sugerencias_defensa",
                    ],
                },
            },
        },
        "required": ["analisis"],
    },
}

SYSTEM_PROMPT = """Eres un abogado experto en derecho procesal argentino (Córdoba, Argentina) que asesora al demandado.

Tu tarea es analizar cada bloque de una demanda judicial desde la perspectiva del demandado. Para cada bloque extrae:

1. **argumentos_clave**: Los argumentos principales que el actor (demandante) sostiene en ese bloque.
2. **puntos_debiles**: Aspectos discutibles, imprecisos o vulnerables que el demandado podría cuestionar.
3. **prueba_implicita**: Qué prueba invoca o sugiere implícitamente el actor (documentos, testigos, etc.).
4. **sugerencias_defensa**: Líneas defensivas o contraargumentos que el demandado podría plantear.

Sé conciso pero preciso. Usa el bloque_id exacto que se te proporciona para cada bloque."""

USER_PROMPT = """Analiza los siguientes bloques de la demanda. La demanda completa (resumida) está debajo para contexto.

BLOQUES A ANALIZAR:
{bloques}

---
CONTEXTO DEMANDA (inicio):
{demanda}
---"""


async def analyze_demand_blocks(
    bloques: list[DemandBlock],
    demanda_raw: str,
    backend: GenerativeBackend | None = None,
) -> list[BlockAnalysis]:
    """
    Analyze each block of the demand.

    Returns an empty list without calling the backend when there are no
    blocks, and an empty list on backend failure. Records for block ids that
    are not in ``bloques`` are dropped.
    """
    if not bloques:
        return []

    settings = get_settings()
    block_context = "\n\n".join(
        f"--- Bloque {b.id} ({b.titulo}) ---\n{b.contenido[: settings.BLOCK_ANALYSIS_MAX_CHARS]}"
        for b in bloques
    )

    try:
        backend = backend or get_backend(settings.ANALYZE_MODEL)
        data = await backend.complete_structured(
            system=SYSTEM_PROMPT,
            prompt=USER_PROMPT.format(
                bloques=block_context,
                demanda=(demanda_raw or "")[: settings.DEMAND_CONTEXT_MAX_CHARS],
            ),
            tool=ANALYZE_TOOL,
            max_tokens=4096,
            temperature=0.3,
        )
        raw_items = data.get("analisis")
        if not isinstance(raw_items, list):
            raise AnalysisFailure("Backend answer has no analisis list")
    except Exception as e:
        logger.error(f"Block analysis failed: {e}", exc_info=True)
        return []

    known_ids = {b.id for b in bloques}
    analyses: list[BlockAnalysis] = []
    for item in raw_items:
        try:
            analysis = BlockAnalysis.model_validate(item)
        except Exception as e:
            logger.warning(f"Skipping invalid block analysis: {e}")
            continue
        if analysis.bloque_id not in known_ids:
            logger.warning(f"Dropping analysis for unknown block {analysis.bloque_id}")
            continue
        analyses.append(analysis)

    logger.info(f"Analyzed {len(analyses)}/{len(bloques)} demand blocks")
    return analyses
