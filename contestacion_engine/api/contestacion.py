"""API endpoints for the guided contestación flow."""

from typing import Any

from fastapi import APIRouter, File, Form, HTTPException, Path, UploadFile
from pydantic import ValidationError

from contestacion_engine.core.contestacion_actions import (
    GenerateDraftAction,
    IterateDraftAction,
    IterateDraftPayload,
    SaveDraftAction,
    SaveDraftPayload,
    action_to_dict,
    parse_action,
)
from contestacion_engine.core.contestacion_errors import (
    DocumentExtractionFailure,
    DraftGenerationFailure,
    SessionVersionConflict,
    UnknownActionTransition,
    UnknownBlockError,
    UnsupportedDocumentError,
)
from contestacion_engine.core.contestacion_orchestrator import (
    STEP_INIT,
    OrchestratorContext,
    execute_action,
    resolve_next_step,
)
from contestacion_engine.core.config import get_settings
from contestacion_engine.core.demand_text import extract_demand_text
from contestacion_engine.core.form_data import build_form_data_from_session, get_default_draft_title
from contestacion_engine.core.logging import get_logger
from contestacion_engine.core.party_data import map_party_data_to_form_defaults
from contestacion_engine.core.rate_limiter import check_orchestrate_rate_limit
from contestacion_engine.core.schemas_contestacion import ContestacionSessionState
from contestacion_engine.core.schemas_contestacion_api import (
    CreateSessionRequest,
    ExtractTextResponse,
    GenerateDraftRequest,
    GenerateDraftResponse,
    OrchestrateRequest,
    OrchestrateResponse,
    SaveDraftRequest,
    SaveDraftResponse,
    SessionResponse,
)
from contestacion_engine.db.case_party_data import get_case_context, get_case_party_data
from contestacion_engine.db.contestacion_sessions import (
    create_session,
    get_session,
    load_session_state,
    update_session_state,
)
from contestacion_engine.db.document_templates import get_contestacion_variants
from contestacion_engine.db.drafts import insert_draft
from contestacion_engine.graphs.contestacion_step_graph import run_contestacion_step

logger = get_logger(__name__)

router = APIRouter()

# Actions that need variants, party data or the case header
_REDACTION_ACTIONS = frozenset({"select_structure", "generate_draft", "iterate_draft"})


def _session_response(session: dict[str, Any]) -> SessionResponse:
    return SessionResponse(
        session_id=str(session["id"]),
        case_id=session.get("case_id"),
        current_step=session.get("current_step") or "init",
        version=session.get("version") or 0,
        state=session.get("state") or {},
    )


def _load_owned_session(session_id: str, user_id: str) -> dict[str, Any]:
    session = get_session(session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")
    if str(session.get("user_id")) != user_id:
        raise HTTPException(status_code=403, detail="Forbidden")
    return session


def _build_context(session: dict[str, Any], with_redaction_inputs: bool) -> OrchestratorContext:
    context = OrchestratorContext(session_id=str(session["id"]))
    if not with_redaction_inputs:
        return context

    context.available_variants = get_contestacion_variants()
    case_id = session.get("case_id")
    if case_id:
        party_data = get_case_party_data(case_id)
        if party_data:
            context.party_form_data = map_party_data_to_form_defaults(party_data)
        context.case_context = get_case_context(case_id)
    return context


@router.post("/contestacion/sessions", response_model=SessionResponse)
async def create_contestacion_session(request: CreateSessionRequest) -> SessionResponse:
    """
    Create a new contestación session.

    The demand text is capped at DEMAND_MAX_CHARS.

    Raises:
        HTTPException 500: If the session cannot be created
    """
    settings = get_settings()
    demanda_raw = (request.demanda_raw or "")[: settings.DEMAND_MAX_CHARS] or None

    try:
        session = create_session(
            user_id=request.user_id,
            demanda_raw=demanda_raw,
            case_id=request.case_id,
            demanda_document_id=request.demanda_document_id,
        )
    except Exception as e:
        logger.exception("Failed to create contestación session")
        raise HTTPException(status_code=500, detail="Failed to create session") from e

    return _session_response(session)


@router.get("/contestacion/sessions/{session_id}", response_model=SessionResponse)
async def get_contestacion_session(
    session_id: str = Path(..., description="Session ID"),
) -> SessionResponse:
    """
    Get a contestación session.

    Raises:
        HTTPException 404: If the session does not exist
    """
    try:
        session = get_session(session_id)
    except Exception as e:
        logger.exception(f"Failed to get session {session_id}")
        raise HTTPException(status_code=500, detail="Failed to get session") from e

    if not session:
        raise HTTPException(status_code=404, detail="Session not found")
    return _session_response(session)


@router.post("/contestacion/extract-text", response_model=ExtractTextResponse)
async def extract_text(
    file: UploadFile = File(...),
    session_id: str | None = Form(default=None),
    user_id: str | None = Form(default=None),
) -> ExtractTextResponse:
    """
    Extract the text of an uploaded PDF or Word demand.

    With ``session_id`` (and its owner's ``user_id``) the text becomes the
    session's demand and the session restarts from an empty state.

    Raises:
        HTTPException 400: Empty, too large or unsupported file
        HTTPException 404: Session not found
        HTTPException 409: Session changed while storing the text
        HTTPException 422: File could not be read
    """
    if session_id and not user_id:
        raise HTTPException(status_code=400, detail="user_id is required with session_id")

    file_bytes = await file.read()

    try:
        text = extract_demand_text(file_bytes, file.content_type, file.filename)
    except UnsupportedDocumentError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except DocumentExtractionFailure as e:
        logger.warning(f"Could not extract text from {file.filename}: {e.__cause__}")
        raise HTTPException(status_code=422, detail=str(e)) from e

    if not session_id:
        return ExtractTextResponse(text=text)

    try:
        session = _load_owned_session(session_id, user_id)
        if not text.strip():
            raise HTTPException(status_code=400, detail="No text found in the document")
        version = session.get("version") or 0
        updated = update_session_state(
            session_id,
            ContestacionSessionState(),
            expected_version=version,
            current_step=STEP_INIT,
            demanda_raw=text[: get_settings().DEMAND_MAX_CHARS],
        )
    except HTTPException:
        raise
    except SessionVersionConflict as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except Exception as e:
        logger.exception(f"Storing demand text failed for session {session_id}")
        raise HTTPException(status_code=500, detail="Error storing demand text") from e

    logger.info(f"Stored {len(text)} chars of demand text", extra={"session_id": session_id})
    return ExtractTextResponse(
        text=text, session_id=session_id, version=updated.get("version", version + 1)
    )


@router.post("/contestacion/orchestrate", response_model=OrchestrateResponse)
async def orchestrate(request: OrchestrateRequest) -> OrchestrateResponse:
    """
    Run the next orchestration step of a session.

    Merges any new block responses, lets the decision policy (or the
    caller-supplied action) pick the action, applies it and persists the
    new state with compare-and-swap.

    Raises:
        HTTPException 400: Unknown action or block ids
        HTTPException 404: Session not found
        HTTPException 409: Session changed since expected_version
        HTTPException 429: Rate limited
        HTTPException 502: Draft generation failed
    """
    check_orchestrate_rate_limit(request.user_id)

    try:
        session = _load_owned_session(request.session_id, request.user_id)
        version = session.get("version") or 0
        if request.expected_version is not None and request.expected_version != version:
            raise SessionVersionConflict(request.session_id, request.expected_version)

        forced = parse_action(request.action) if request.action else None
        context = _build_context(
            session, with_redaction_inputs=forced is not None and forced.type in _REDACTION_ACTIONS
        )

        result = await run_contestacion_step(
            session_state=load_session_state(session),
            demanda_raw=session.get("demanda_raw"),
            respuestas=request.user_responses,
            user_input=request.user_input,
            current_step=session.get("current_step"),
            action=forced,
            context=context,
        )

        state_changed = result.state.to_json_dict() != (session.get("state") or {})
        if state_changed or result.next_step != session.get("current_step"):
            updated = update_session_state(
                request.session_id,
                result.state,
                expected_version=version,
                current_step=result.next_step,
            )
            version = updated.get("version", version + 1)

        action_dict = action_to_dict(result.action)
        preguntas = None
        if result.action.type == "generate_questions":
            preguntas = result.state.preguntas_generadas
        elif result.action.type == "wait_user" and result.action.payload:
            preguntas = result.action.payload.preguntas

        logger.info(
            f"Orchestrated {result.action.type} -> {result.next_step}",
            extra={"session_id": request.session_id},
        )

        return OrchestrateResponse(
            action=action_dict,
            state=result.state.to_json_dict(),
            next_step=result.next_step,
            version=version,
            preguntas=preguntas,
        )

    except HTTPException:
        raise
    except (UnknownActionTransition, UnknownBlockError, ValidationError) as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except SessionVersionConflict as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except DraftGenerationFailure as e:
        raise HTTPException(status_code=502, detail="Error generating draft") from e
    except Exception as e:
        logger.exception(f"Orchestrate failed for session {request.session_id}")
        raise HTTPException(status_code=500, detail="Error processing request") from e


@router.post("/contestacion/generate-draft", response_model=GenerateDraftResponse)
async def generate_draft(request: GenerateDraftRequest) -> GenerateDraftResponse:
    """
    Generate the contestación draft, or iterate it with an instruction.

    Raises:
        HTTPException 400: Session not ready for redaction, or no draft to iterate
        HTTPException 404: Session not found
        HTTPException 409: Session changed while drafting
        HTTPException 502: Draft generation failed
    """
    try:
        session = _load_owned_session(request.session_id, request.user_id)
        state = load_session_state(session)
        version = session.get("version") or 0

        if not state.listo_para_redaccion or state.form_data_consolidado is None:
            raise HTTPException(
                status_code=400,
                detail="Session not ready for redaction. Complete the contextualization flow first.",
            )

        instruction = (request.iteration_instruction or "").strip()
        if instruction:
            if not state.draft_content:
                raise HTTPException(status_code=400, detail="No draft to iterate. Generate the draft first.")
            action = IterateDraftAction(payload=IterateDraftPayload(instruccion=instruction))
        else:
            action = GenerateDraftAction()

        new_state = await execute_action(
            action,
            state,
            session.get("demanda_raw"),
            _build_context(session, with_redaction_inputs=True),
        )
        updated = update_session_state(
            request.session_id,
            new_state,
            expected_version=version,
            current_step=resolve_next_step(action, new_state, session.get("current_step")),
        )

        return GenerateDraftResponse(
            draft_content=new_state.draft_content or "",
            variant=new_state.variant_seleccionada or "",
            version=updated.get("version", version + 1),
        )

    except HTTPException:
        raise
    except SessionVersionConflict as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except DraftGenerationFailure as e:
        logger.error(f"Draft generation failed for session {request.session_id}: {e}")
        raise HTTPException(status_code=502, detail="Error generating draft") from e
    except Exception as e:
        logger.exception(f"Generate draft failed for session {request.session_id}")
        raise HTTPException(status_code=500, detail="Error generating draft") from e


@router.post("/contestacion/save-draft", response_model=SaveDraftResponse)
async def save_draft(request: SaveDraftRequest) -> SaveDraftResponse:
    """
    Save the session draft to the drafts table and record its id.

    Raises:
        HTTPException 400: No draft content
        HTTPException 404: Session not found
        HTTPException 409: Session changed while saving
    """
    try:
        session = _load_owned_session(request.session_id, request.user_id)
        state = load_session_state(session)
        version = session.get("version") or 0

        if not (state.draft_content or "").strip():
            raise HTTPException(
                status_code=400, detail="No draft content to save. Generate the draft first."
            )

        case_id = session.get("case_id")
        party_data = get_case_party_data(case_id) if case_id else None
        form_data = build_form_data_from_session(state, party_data)
        name = (request.name or "").strip() or get_default_draft_title(form_data)

        draft = insert_draft(
            user_id=request.user_id,
            name=name,
            content=state.draft_content,
            form_data=form_data,
            case_id=case_id,
        )

        action = SaveDraftAction(payload=SaveDraftPayload(draft_id=str(draft["id"])))
        new_state = await execute_action(action, state, context=OrchestratorContext(session_id=request.session_id))
        update_session_state(
            request.session_id,
            new_state,
            expected_version=version,
            current_step=resolve_next_step(action, new_state, session.get("current_step")),
        )

        return SaveDraftResponse(draft_id=str(draft["id"]), case_id=case_id, name=name)

    except HTTPException:
        raise
    except SessionVersionConflict as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except Exception as e:
        logger.exception(f"Save draft failed for session {request.session_id}")
        raise HTTPException(status_code=500, detail="Error saving draft") from e
