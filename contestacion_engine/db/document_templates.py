"""Template variant registry."""

from contestacion_engine.core.form_data import DOCUMENT_TYPE
from contestacion_engine.core.logging import get_logger
from contestacion_engine.db.supabase_client import get_supabase

logger = get_logger(__name__)


def get_contestacion_variants() -> list[str]:
    """Distinct non-empty variant keys of the active contestación templates."""
    supabase = get_supabase()

    try:
        response = (
            supabase.table("lexia_document_templates")
            .select("variant")
            .eq("document_type", DOCUMENT_TYPE)
            .eq("is_active", True)
            .execute()
        )
    except Exception as e:
        logger.warning(f"Failed to load contestación variants: {e}")
        return []

    variants = ((row.get("variant") or "").strip() for row in response.data or [])
    return list(dict.fromkeys(v for v in variants if v))
