"""Pydantic models for the guided contestación flow.

The session state is the JSON blob persisted by the session store between
orchestrator invocations. Optional fields are omitted from the serialized
form when unset, so a state written by an early stage stays small.
"""

from typing import Literal

from pydantic import BaseModel, Field

# =============================================================================
# Enums
# =============================================================================

BlockType = Literal["objeto", "hechos", "rubros", "prueba", "petitorio", "otro"]
QuestionType = Literal["postura", "prueba", "fundamentacion", "otro"]
Postura = Literal["admitir", "negar", "admitir_parcial", "negar_con_matices", "sin_posicion"]

BLOCK_TYPES: tuple[str, ...] = ("objeto", "hechos", "rubros", "prueba", "petitorio", "otro")

# Block categories that carry the factual claims the defendant must answer
CRITICAL_BLOCK_TYPES: frozenset[str] = frozenset({"hechos", "rubros"})


# =============================================================================
# Per-block models
# =============================================================================


class DemandBlock(BaseModel):
    """A titled, ordered unit of the demand text."""

    id: str
    titulo: str
    contenido: str
    tipo: BlockType = "otro"
    orden: int


class BlockAnalysis(BaseModel):
    """Defendant-side analysis of one block."""

    bloque_id: str
    argumentos_clave: list[str] = Field(default_factory=list)
    puntos_debiles: list[str] = Field(default_factory=list)
    prueba_implicita: list[str] = Field(default_factory=list)
    sugerencias_defensa: list[str] = Field(default_factory=list)


class BlockQuestion(BaseModel):
    """Clarifying question for the professional about one block."""

    bloque_id: str
    pregunta: str
    tipo: QuestionType = "otro"
    opciones_sugeridas: list[str] | None = None


class BlockResponse(BaseModel):
    """The professional's stance on one block."""

    bloque_id: str
    postura: Postura
    fundamentacion: str | None = None
    prueba_ofrecida: list[str] | None = None


class FormDataConsolidado(BaseModel):
    """Canonical contestación fields. Empty string when nothing applies."""

    hechos_admitidos: str = ""
    hechos_negados: str = ""
    defensas: str = ""
    excepciones: str = ""
    prueba: str = ""


class DraftIteration(BaseModel):
    """One applied draft modification instruction."""

    instruccion: str
    at: str


# =============================================================================
# Component outputs
# =============================================================================


class DemandParseResult(BaseModel):
    """Output of the demand parser."""

    bloques: list[DemandBlock] = Field(default_factory=list)
    tipo_demanda_detectado: str | None = None
    pretensiones_principales: list[str] | None = None


# =============================================================================
# Session state
# =============================================================================


class ContestacionSessionState(BaseModel):
    """Aggregate describing drafting progress for one session."""

    bloques: list[DemandBlock] = Field(default_factory=list)
    tipo_demanda_detectado: str | None = None
    pretensiones_principales: list[str] | None = None

    analisis_por_bloque: dict[str, BlockAnalysis] | None = None
    preguntas_generadas: list[BlockQuestion] | None = None
    respuestas_usuario: dict[str, BlockResponse] | None = None
    bloques_sin_respuesta: list[str] | None = None

    form_data_consolidado: FormDataConsolidado | None = None
    listo_para_redaccion: bool | None = None

    ultima_accion: str | None = None
    ultima_accion_at: str | None = None

    # Redaction stage
    variant_seleccionada: str | None = None
    draft_id: str | None = None
    draft_content: str | None = None
    draft_generado_at: str | None = None
    draft_iterado_at: str | None = None
    historial_iteraciones: list[DraftIteration] | None = None

    @property
    def block_ids(self) -> list[str]:
        return [b.id for b in self.bloques]

    def to_json_dict(self) -> dict:
        """Serialize to the persisted JSON shape (unset fields omitted)."""
        return self.model_dump(mode="json", exclude_none=True)

    def to_json(self) -> str:
        return self.model_dump_json(exclude_none=True)

    @classmethod
    def from_json(cls, raw: str | bytes) -> "ContestacionSessionState":
        return cls.model_validate_json(raw)
