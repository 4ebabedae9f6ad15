"""Select the contestación template variant for a detected demand type.

Known demand categories map straight to a variant when that variant is
available. Otherwise the backend picks from the available list, and its
answer is only accepted if it names an available variant. An empty string
means the standard template.
"""

from contestacion_engine.core.config import get_settings
from contestacion_engine.core.contestacion_errors import SelectionFailure
from contestacion_engine.core.llm import GenerativeBackend, get_backend
from contestacion_engine.core.logging import get_logger
from contestacion_engine.core.schemas_contestacion import DemandBlock

logger = get_logger(__name__)

DEMANDA_TO_CONTESTACION_VARIANT: dict[str, str] = {
    "incumplimiento_locacion": "incumplimiento_locacion",
    "incumplimiento_compraventa": "incumplimiento_compraventa",
    "incumplimiento_suministro": "incumplimiento_suministro",
    "incumplimiento_servicios": "incumplimiento_servicios",
}

SELECT_TOOL = {
    "name": "submit_variant",
    "description": "Submit the chosen contestación template variant.",
    "input_schema": {
        "type": "object",
        "properties": {
            "variant": {
                "type": "string",
                "description": (
                    "Variant key: empty string for standard, or e.g. "
                    "incumplimiento_locacion if demand type matches"
                ),
            },
        },
        "required": ["variant"],
    },
}

SYSTEM_PROMPT = (
    "Eres un asistente que selecciona la plantilla de contestación adecuada "
    "según el tipo de demanda."
)

USER_PROMPT = """Tipo de demanda detectado: "{tipo}"
Bloques: {bloques}
Variantes disponibles: {variantes}

Elegí la variante de contestación que mejor coincida. Si no hay coincidencia clara, retorná variant vacío ""."""


def normalize_category(tipo_demanda: str | None) -> str:
    """Lowercase, whitespace-to-underscore key used by the direct lookup."""
    return "_".join((tipo_demanda or "").lower().split())


async def select_contestacion_structure(
    tipo_demanda_detectado: str | None,
    bloques: list[DemandBlock],
    available_variants: list[str],
    backend: GenerativeBackend | None = None,
) -> str:
    """
    Pick a template variant; ``""`` selects the standard template.

    Never raises: backend errors fall back to ``""``.
    """
    variants = list(dict.fromkeys(v.strip() for v in available_variants if v and v.strip()))

    direct = DEMANDA_TO_CONTESTACION_VARIANT.get(normalize_category(tipo_demanda_detectado))
    if direct and direct in variants:
        logger.info(f"Direct variant match: {direct}")
        return direct

    if not variants:
        return ""

    settings = get_settings()
    try:
        backend = backend or get_backend(settings.SELECT_MODEL)
        data = await backend.complete_structured(
            system=SYSTEM_PROMPT,
            prompt=USER_PROMPT.format(
                tipo=tipo_demanda_detectado or "desconocido",
                bloques=", ".join(b.titulo for b in bloques),
                variantes=", ".join(variants),
            ),
            tool=SELECT_TOOL,
            max_tokens=64,
            temperature=0.1,
        )
        chosen = data.get("variant")
        if not isinstance(chosen, str):
            raise SelectionFailure("Backend answer has no variant string")
    except Exception as e:
        logger.error(f"Variant selection failed, using standard template: {e}", exc_info=True)
        return ""

    chosen = chosen.strip()
    if chosen in variants:
        return chosen
    if chosen:
        logger.warning(f"Backend proposed unavailable variant '{chosen}', using standard template")
    return ""
