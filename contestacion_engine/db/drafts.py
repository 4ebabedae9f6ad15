"""Database operations for saved drafts."""

from typing import Any
from uuid import UUID

from contestacion_engine.core.form_data import DOCUMENT_TYPE
from contestacion_engine.core.logging import get_logger
from contestacion_engine.db.supabase_client import get_supabase

logger = get_logger(__name__)


def insert_draft(
    user_id: UUID | str,
    name: str,
    content: str,
    form_data: dict[str, str],
    case_id: UUID | str | None = None,
) -> dict[str, Any]:
    """
    Save a contestación draft.

    Returns:
        Created draft row

    Raises:
        ValueError: If the insert returned no row
    """
    supabase = get_supabase()

    response = (
        supabase.table("lexia_drafts")
        .insert({
            "user_id": str(user_id),
            "document_type": DOCUMENT_TYPE,
            "name": name,
            "content": content,
            "form_data": form_data,
            "case_id": str(case_id) if case_id else None,
        })
        .execute()
    )

    if not response.data:
        raise ValueError("Failed to save draft")

    draft = response.data[0]
    logger.info(f"Saved contestación draft {draft['id']}")
    return draft
