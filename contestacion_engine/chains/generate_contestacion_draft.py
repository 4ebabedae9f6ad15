"""Generate or iterate a contestación draft.

The system prompt stacks the drafting role, the contestación structure, the
selected variant, the form fields (consolidated sections plus party data),
the demand context and, when iterating, the previous draft with the
modification instruction.
"""

from pydantic import BaseModel

from contestacion_engine.core.config import get_settings
from contestacion_engine.core.contestacion_errors import DraftGenerationFailure
from contestacion_engine.core.llm import GenerativeBackend, get_backend
from contestacion_engine.core.logging import get_logger
from contestacion_engine.core.party_data import normalize_form_data_for_prompt
from contestacion_engine.core.schemas_contestacion import ContestacionSessionState

logger = get_logger(__name__)

DRAFT_BASE = """Eres LEXIA, un asistente legal de inteligencia artificial para un estudio juridico profesional en Cordoba, Argentina.

ROL: REDACCION JURIDICA
- Generas borradores de documentos legales profesionales
- Usas el lenguaje y formalidades del derecho argentino
- Incluyes todas las secciones y requisitos formales
- Citas correctamente articulos del CPCC Cordoba (Ley 8465)
- Formato del Poder Judicial de Cordoba

JURISDICCION: Cordoba, Argentina
FORMATO: Espanol formal, estructura procesal argentina

Al final incluye: "Esta informacion es orientativa. Verifique con la normativa vigente y el tribunal correspondiente." """

CONTESTACION_STRUCTURE = """CONTESTACION DE DEMANDA - ESTRUCTURA:
- Encabezado
- PARTE DEMANDANTE y PARTE DEMANDADA
- HECHOS ADMITIDOS (numerados)
- HECHOS NEGADOS (numerados)
- DEFENSAS DE FONDO
- EXCEPCIONES (si corresponde)
- OFRECIMIENTO DE PRUEBA
- PETITORIO"""


class CaseContext(BaseModel):
    """Case reference included in the draft header."""

    case_id: str | None = None
    case_number: str = ""
    title: str = ""
    type: str | None = None


def build_demanda_context(state: ContestacionSessionState) -> str:
    """Summary of the demand (type, claims, blocks, analysis) for drafting."""
    parts: list[str] = []
    if state.tipo_demanda_detectado:
        parts.append(f"Tipo de demanda: {state.tipo_demanda_detectado}")
    if state.pretensiones_principales:
        parts.append(f"Pretensiones: {'; '.join(state.pretensiones_principales)}")
    if state.bloques:
        lines = ["Bloques de la demanda:"]
        for b in state.bloques:
            lines.append(f"- {b.titulo} ({b.tipo}): {b.contenido[:200]}...")
        parts.append("\n".join(lines))
    if state.analisis_por_bloque:
        lines = ["Análisis por bloque (argumentos clave, puntos débiles):"]
        for bloque_id, a in state.analisis_por_bloque.items():
            lines.append(
                f"- Bloque {bloque_id}: argumentos={', '.join(a.argumentos_clave)}; "
                f"débiles={', '.join(a.puntos_debiles)}"
            )
        parts.append("\n".join(lines))
    return "\n\n".join(parts)


def _field_label(key: str) -> str:
    return " ".join(word.capitalize() for word in key.split("_"))


def build_draft_system_prompt(
    form_data: dict[str, str],
    variant: str = "",
    demanda_context: str | None = None,
    case_context: CaseContext | None = None,
    previous_draft: str | None = None,
    iteration_instruction: str | None = None,
) -> str:
    prompt = f"{DRAFT_BASE}\n\n{CONTESTACION_STRUCTURE}\n\n"

    if variant:
        prompt += f"--- VARIANTE DE PLANTILLA ---\n{variant}\n\n"

    if demanda_context and demanda_context.strip():
        prompt += f"--- DEMANDA A CONTESTAR ---\n{demanda_context.strip()}\n\n"

    prompt += "--- DATOS PROPORCIONADOS POR EL USUARIO ---\n"
    for key, value in normalize_form_data_for_prompt(form_data).items():
        if value and value.strip():
            prompt += f"{_field_label(key)}: {value}\n\n"

    if case_context:
        prompt += "\n--- CONTEXTO DEL CASO ---\n"
        prompt += f"Expediente: {case_context.case_number}\n"
        prompt += f"Titulo: {case_context.title}\n"
        if case_context.type:
            prompt += f"Tipo: {case_context.type}\n"
        prompt += "\nUsa este contexto para referencias al expediente en el documento.\n\n"

    if previous_draft and iteration_instruction:
        prompt += f"--- BORRADOR ANTERIOR (para modificar) ---\n{previous_draft}\n\n"
        prompt += f'--- INSTRUCCION DE MODIFICACION ---\n"{iteration_instruction}"\n\n'
        prompt += (
            "Genera el documento completo modificado segun la instruccion del usuario. "
            "Manten la estructura y formalidad, aplicando los cambios solicitados.\n"
        )
    else:
        prompt += (
            "Genera el documento legal completo basandote en los datos proporcionados. "
            "Usa la estructura indicada. Incluye todos los elementos formales.\n"
        )
    return prompt


def build_draft_user_message(iteration_instruction: str | None = None) -> str:
    if iteration_instruction:
        return (
            "Por favor modifica el borrador anterior segun la siguiente instruccion: "
            f'"{iteration_instruction}"'
        )
    return "Genera el borrador completo del documento: Contestación de demanda."


async def generate_contestacion_draft(
    form_data: dict[str, str],
    variant: str = "",
    demanda_context: str | None = None,
    case_context: CaseContext | None = None,
    previous_draft: str | None = None,
    iteration_instruction: str | None = None,
    backend: GenerativeBackend | None = None,
) -> str:
    """
    Draft (or redraft) the contestación.

    Raises:
        DraftGenerationFailure: If the backend fails or returns empty text
    """
    iterating = bool(previous_draft and iteration_instruction)
    settings = get_settings()
    try:
        backend = backend or get_backend(settings.DRAFT_MODEL)
        text = await backend.complete_text(
            system=build_draft_system_prompt(
                form_data,
                variant=variant,
                demanda_context=demanda_context,
                case_context=case_context,
                previous_draft=previous_draft if iterating else None,
                iteration_instruction=iteration_instruction if iterating else None,
            ),
            prompt=build_draft_user_message(iteration_instruction if iterating else None),
            max_tokens=8192,
            temperature=0.3,
        )
    except Exception as e:
        logger.error(f"Draft generation failed: {e}", exc_info=True)
        raise DraftGenerationFailure(str(e)) from e

    if not text or not text.strip():
        raise DraftGenerationFailure("Backend returned an empty draft")

    logger.info(
        f"{'Iterated' if iterating else 'Generated'} contestación draft ({len(text)} chars)",
        extra={"variant": variant or "standard"},
    )
    return text.strip()
