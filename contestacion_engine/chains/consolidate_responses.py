"""Consolidate per-block responses into the canonical contestación fields.

Produces hechos_admitidos, hechos_negados, defensas, excepciones and a single
numbered evidence offer. Blocks where the professional took no position
(``sin_posicion``) are left out of the facts synthesis entirely; only the
evidence they offer, if any, is passed on (without block reference).
"""

from contestacion_engine.core.config import get_settings
from contestacion_engine.core.contestacion_errors import ConsolidationFailure
from contestacion_engine.core.llm import GenerativeBackend, get_backend
from contestacion_engine.core.logging import get_logger
from contestacion_engine.core.schemas_contestacion import (
    BlockResponse,
    DemandBlock,
    FormDataConsolidado,
)

logger = get_logger(__name__)

_FIELDS = ("hechos_admitidos", "hechos_negados", "defensas", "excepciones", "prueba")

CONSOLIDATE_TOOL = {
    "name": "submit_contestacion_fields",
    "description": "Submit the consolidated contestación sections.",
    "input_schema": {
        "type": "object",
        "properties": {field: {"type": "string"} for field in _FIELDS},
        "required": list(_FIELDS),
    },
}

SYSTEM_PROMPT = """Eres un abogado que redacta contestaciones de demanda en Argentina (Córdoba).

Tu tarea es consolidar las respuestas del demandado por cada bloque de la demanda en la estructura formal de una contestación:

1. **hechos_admitidos**: Texto redactado con los hechos que el demandado admite (agrupa los bloques con postura "admitir" o "admitir_parcial").
2. **hechos_negados**: Texto redactado con los hechos que el demandado niega (agrupa los bloques con postura "negar" o "negar_con_matices").
3. **defensas**: Fundamentación y defensas de fondo que el demandado plantea. Incluye la fundamentación de cada bloque cuando corresponda.
4. **excepciones**: Si el demandado plantea excepciones procesales (prescripción, caducidad, etc.), inclúyelas aquí. Si no hay, deja vacío.
5. **prueba**: Un único ofrecimiento de prueba unificado y numerado que reúna la prueba ofrecida en todos los bloques, sin duplicados.

Redacta en lenguaje jurídico formal, numerado cuando corresponda. Usa la información de fundamentacion y prueba_ofrecida de cada respuesta."""

USER_PROMPT = """Consolida las siguientes respuestas del demandado en la estructura de contestación:

RESPUESTAS POR BLOQUE:
{respuestas}
{prueba_adicional}"""


def empty_form_data() -> FormDataConsolidado:
    return FormDataConsolidado()


def _response_line(response: BlockResponse, block: DemandBlock | None) -> str:
    titulo = block.titulo if block else "?"
    prueba = ", ".join(response.prueba_ofrecida or []) or "-"
    return (
        f"Bloque {response.bloque_id} ({titulo}): postura={response.postura}, "
        f"fundamentacion={response.fundamentacion or '-'}, prueba={prueba}"
    )


def build_consolidation_context(
    respuestas: dict[str, BlockResponse],
    bloques: list[DemandBlock],
) -> tuple[str, list[str]]:
    """
    Build the per-block summary and the evidence offered by unpositioned blocks.

    Returns:
        Tuple of (response lines for blocks with a position, extra evidence items)
    """
    by_id = {b.id: b for b in bloques}
    order = {b.id: b.orden for b in bloques}
    ordered = sorted(respuestas.values(), key=lambda r: order.get(r.bloque_id, len(order) + 1))

    lines: list[str] = []
    extra_evidence: list[str] = []
    for response in ordered:
        if response.postura == "sin_posicion":
            extra_evidence.extend(p for p in (response.prueba_ofrecida or []) if p)
            continue
        lines.append(_response_line(response, by_id.get(response.bloque_id)))
    return "\n".join(lines), extra_evidence


async def consolidate_user_responses(
    respuestas: dict[str, BlockResponse] | None,
    bloques: list[DemandBlock],
    backend: GenerativeBackend | None = None,
) -> FormDataConsolidado:
    """
    Consolidate user responses into the canonical contestación fields.

    Returns all-empty fields without calling the backend when there are no
    responses (or none that takes a position or offers evidence), and
    all-empty fields on backend failure.
    """
    if not respuestas:
        return empty_form_data()

    context, extra_evidence = build_consolidation_context(respuestas, bloques)
    if not context and not extra_evidence:
        logger.info("No positioned responses to consolidate")
        return empty_form_data()

    prueba_adicional = ""
    if extra_evidence:
        prueba_adicional = (
            "\nPRUEBA ADICIONAL (solo para el ofrecimiento de prueba):\n"
            + "\n".join(f"- {p}" for p in extra_evidence)
        )

    settings = get_settings()
    try:
        backend = backend or get_backend(settings.CONSOLIDATE_MODEL)
        data = await backend.complete_structured(
            system=SYSTEM_PROMPT,
            prompt=USER_PROMPT.format(respuestas=context or "-", prueba_adicional=prueba_adicional),
            tool=CONSOLIDATE_TOOL,
            max_tokens=2048,
            temperature=0.3,
        )
        if not isinstance(data, dict):
            raise ConsolidationFailure("Backend answer is not an object")
    except Exception as e:
        logger.error(f"Response consolidation failed: {e}", exc_info=True)
        return empty_form_data()

    fields = {field: str(data.get(field) or "") for field in _FIELDS}
    if not context:
        # Only unpositioned blocks: nothing may reach the facts sections
        fields["hechos_admitidos"] = ""
        fields["hechos_negados"] = ""

    logger.info(
        f"Consolidated {len(respuestas)} block responses",
        extra={"response_count": len(respuestas)},
    )
    return FormDataConsolidado(**fields)
