"""Request and response models for the contestación API."""

from typing import Any

from pydantic import BaseModel, Field

from contestacion_engine.core.schemas_contestacion import BlockQuestion, BlockResponse


class CreateSessionRequest(BaseModel):
    user_id: str = Field(..., description="Owner of the session")
    case_id: str | None = Field(None, description="Case the demand belongs to")
    demanda_raw: str | None = Field(None, description="Full text of the demand")
    demanda_document_id: str | None = Field(None, description="Source document of the demand")


class SessionResponse(BaseModel):
    session_id: str
    case_id: str | None = None
    current_step: str
    version: int
    state: dict[str, Any] = Field(default_factory=dict)


class OrchestrateRequest(BaseModel):
    session_id: str = Field(..., description="Session to advance")
    user_id: str = Field(..., description="Caller; must own the session")
    user_input: str | None = Field(None, description="Free text for the decision agent")
    user_responses: dict[str, BlockResponse] | None = Field(
        None, description="New per-block responses keyed by block id"
    )
    action: dict[str, Any] | None = Field(
        None, description="Action to apply instead of asking the decision policy"
    )
    expected_version: int | None = Field(
        None, description="Version the caller last read; defaults to the stored one"
    )


class OrchestrateResponse(BaseModel):
    action: dict[str, Any]
    state: dict[str, Any]
    next_step: str
    version: int
    preguntas: list[BlockQuestion] | None = None


class GenerateDraftRequest(BaseModel):
    session_id: str
    user_id: str
    iteration_instruction: str | None = Field(
        None, description="Modification to apply to the existing draft"
    )


class GenerateDraftResponse(BaseModel):
    draft_content: str
    variant: str
    version: int


class SaveDraftRequest(BaseModel):
    session_id: str
    user_id: str
    name: str | None = Field(None, description="Draft name; defaults to a title built from the parties")


class SaveDraftResponse(BaseModel):
    draft_id: str
    case_id: str | None = None
    name: str


class ExtractTextResponse(BaseModel):
    text: str
    session_id: str | None = Field(None, description="Session the text was stored in as the demand")
    version: int | None = None
