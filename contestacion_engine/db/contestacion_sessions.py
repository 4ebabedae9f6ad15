"""Database operations for contestación sessions.

Each row stores the session state blob, the current step and a ``version``
counter. State writes are compare-and-swap on ``version``: a write only lands
if the row still has the version the caller read.
"""

from typing import Any
from uuid import UUID

from contestacion_engine.core.contestacion_errors import SessionVersionConflict
from contestacion_engine.core.logging import get_logger
from contestacion_engine.core.schemas_contestacion import ContestacionSessionState
from contestacion_engine.db.supabase_client import get_supabase

logger = get_logger(__name__)

TABLE = "lexia_contestacion_sessions"


def create_session(
    user_id: UUID | str,
    demanda_raw: str | None = None,
    case_id: UUID | str | None = None,
    demanda_document_id: UUID | str | None = None,
) -> dict[str, Any]:
    """
    Create a new session with an empty state.

    Returns:
        Created session row

    Raises:
        ValueError: If the insert returned no row
    """
    supabase = get_supabase()

    response = (
        supabase.table(TABLE)
        .insert({
            "user_id": str(user_id),
            "case_id": str(case_id) if case_id else None,
            "demanda_document_id": str(demanda_document_id) if demanda_document_id else None,
            "demanda_raw": demanda_raw,
            "state": {},
            "current_step": "init",
            "version": 0,
        })
        .execute()
    )

    if not response.data:
        raise ValueError("Failed to create contestación session")

    session = response.data[0]
    logger.info(f"Created contestación session {session['id']}", extra={"session_id": session["id"]})
    return session


def get_session(session_id: UUID | str) -> dict[str, Any] | None:
    """Get a session row, or None if it does not exist."""
    supabase = get_supabase()

    response = (
        supabase.table(TABLE)
        .select("*")
        .eq("id", str(session_id))
        .execute()
    )
    return response.data[0] if response.data else None


def update_session_state(
    session_id: UUID | str,
    state: ContestacionSessionState,
    expected_version: int,
    current_step: str | None = None,
    demanda_raw: str | None = None,
) -> dict[str, Any]:
    """
    Persist a new state if the row is still at ``expected_version``.

    Returns:
        Updated session row (version incremented)

    Raises:
        SessionVersionConflict: If another write landed first (or the row is gone)
    """
    supabase = get_supabase()

    update: dict[str, Any] = {
        "state": state.to_json_dict(),
        "version": expected_version + 1,
    }
    if current_step is not None:
        update["current_step"] = current_step
    if demanda_raw is not None:
        update["demanda_raw"] = demanda_raw

    response = (
        supabase.table(TABLE)
        .update(update)
        .eq("id", str(session_id))
        .eq("version", expected_version)
        .execute()
    )

    if not response.data:
        logger.warning(
            f"Version conflict on session {session_id} (expected {expected_version})",
            extra={"session_id": str(session_id)},
        )
        raise SessionVersionConflict(str(session_id), expected_version)

    return response.data[0]


def load_session_state(session: dict[str, Any]) -> ContestacionSessionState:
    """Parse the stored state blob of a session row."""
    return ContestacionSessionState.model_validate(session.get("state") or {})
