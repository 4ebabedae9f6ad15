"""Generate questions for the defendant's lawyer, per demand block.

Questions cover posture (admit/deny/partial), legal grounds and evidence to
offer. A block id filter restricts generation to the blocks the decision
policy flagged for follow-up.
"""

from contestacion_engine.core.config import get_settings
from contestacion_engine.core.contestacion_errors import QuestionGenerationFailure
from contestacion_engine.core.llm import GenerativeBackend, get_backend
from contestacion_engine.core.logging import get_logger
from contestacion_engine.core.schemas_contestacion import (
    BlockAnalysis,
    BlockQuestion,
    DemandBlock,
)

logger = get_logger(__name__)

QUESTIONS_TOOL = {
    "name": "submit_block_questions",
    "description": "Submit the questions for the defendant's lawyer.",
    "input_schema": {
        "type": "object",
        "properties": {
            "preguntas": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "bloque_id": {"type": "string"},
                        "pregunta": {"type": "string"},
                        "tipo": {
                            "type": "string",
                            "enum": ["postura", "prueba", "fundamentacion", "otro"],
                        },
                        "opciones_sugeridas": {"type": "array", "items": {"type": "string"}},
                    },
                    "required": ["bloque_id", "pregunta", "tipo"],
                },
            },
        },
        "required": ["preguntas"],
    },
}

SYSTEM_PROMPT = """Eres un abogado experto que asesora al demandado en una contestación de demanda (Córdoba, Argentina).

Tu tarea es generar preguntas o propuestas concretas para que el abogado del demandado complete su estrategia. Para cada bloque (o los indicados), genera preguntas sobre:

1. **postura**: ¿Admitir, negar, admitir parcialmente o negar con matices? Incluye opciones sugeridas cuando sea útil.
2. **fundamentacion**: Qué argumentos o fundamentos legales plantear.
3. **prueba**: Qué prueba ofrecer para sostener la postura (documentos, testigos, informes, etc.).

Sé específico y práctico. Usa el bloque_id exacto proporcionado. Genera 1-3 preguntas por bloque según su relevancia."""

USER_PROMPT = """Genera preguntas/propuestas para el abogado demandado sobre los siguientes bloques de la demanda.

BLOQUES:
{bloques}"""


def _block_context(block: DemandBlock, analysis: BlockAnalysis | None, max_chars: int) -> str:
    lines = [
        f"--- Bloque {block.id} ({block.titulo}) ---",
        f"Contenido: {block.contenido[:max_chars]}",
    ]
    if analysis:
        lines.append(
            f"Análisis: argumentos={len(analysis.argumentos_clave)}, "
            f"puntos débiles={len(analysis.puntos_debiles)}, "
            f"sugerencias={len(analysis.sugerencias_defensa)}"
        )
        if analysis.sugerencias_defensa:
            lines.append(f"Sugerencias de defensa: {'; '.join(analysis.sugerencias_defensa)}")
    return "\n".join(lines)


async def generate_questions_for_blocks(
    bloques: list[DemandBlock],
    analisis: dict[str, BlockAnalysis] | None,
    bloque_ids: list[str] | None = None,
    backend: GenerativeBackend | None = None,
) -> list[BlockQuestion]:
    """
    Generate questions per block, optionally only for ``bloque_ids``.

    Returns an empty list when no block is targeted or the backend fails.
    Questions for blocks outside the target set are dropped.
    """
    targets = [b for b in bloques if b.id in bloque_ids] if bloque_ids else list(bloques)
    if not targets:
        return []

    settings = get_settings()
    analisis = analisis or {}
    context = "\n\n".join(
        _block_context(b, analisis.get(b.id), settings.BLOCK_QUESTIONS_MAX_CHARS) for b in targets
    )

    try:
        backend = backend or get_backend(settings.QUESTIONS_MODEL)
        data = await backend.complete_structured(
            system=SYSTEM_PROMPT,
            prompt=USER_PROMPT.format(bloques=context),
            tool=QUESTIONS_TOOL,
            max_tokens=4096,
            temperature=0.4,
        )
        raw_items = data.get("preguntas")
        if not isinstance(raw_items, list):
            raise QuestionGenerationFailure("Backend answer has no preguntas list")
    except Exception as e:
        logger.error(f"Question generation failed: {e}", exc_info=True)
        return []

    target_ids = {b.id for b in targets}
    questions: list[BlockQuestion] = []
    for item in raw_items:
        try:
            question = BlockQuestion.model_validate(item)
        except Exception as e:
            logger.warning(f"Skipping invalid block question: {e}")
            continue
        if question.bloque_id in target_ids:
            questions.append(question)

    logger.info(
        f"Generated {len(questions)} questions for {len(targets)} blocks",
        extra={"question_count": len(questions), "scoped": bool(bloque_ids)},
    )
    return questions
