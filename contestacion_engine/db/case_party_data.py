"""Case lookups used to prefill party fields and the draft header."""

from uuid import UUID

from contestacion_engine.chains.generate_contestacion_draft import CaseContext
from contestacion_engine.core.logging import get_logger
from contestacion_engine.core.party_data import CasePartyData, build_case_party_data
from contestacion_engine.db.supabase_client import get_supabase

logger = get_logger(__name__)

_CASE_PARTY_SELECT = """
id,
company_id,
companies (id, company_name, legal_name, cuit, address, city, province, email, phone),
case_participants (
  id,
  role,
  people (id, name, first_name, last_name, email, phone, address, city, province, dni, cuit, company_name)
)
"""


def get_case_party_data(case_id: UUID | str) -> CasePartyData | None:
    """Party data for a case, or None if the case cannot be read."""
    supabase = get_supabase()

    try:
        response = (
            supabase.table("cases")
            .select(_CASE_PARTY_SELECT)
            .eq("id", str(case_id))
            .execute()
        )
    except Exception as e:
        logger.warning(f"Failed to load party data for case {case_id}: {e}")
        return None

    if not response.data:
        return None
    return build_case_party_data(response.data[0])


def get_case_context(case_id: UUID | str) -> CaseContext | None:
    """Case number, title and type for the draft header."""
    supabase = get_supabase()

    try:
        response = (
            supabase.table("cases")
            .select("id, case_number, title, case_type")
            .eq("id", str(case_id))
            .execute()
        )
    except Exception as e:
        logger.warning(f"Failed to load case {case_id}: {e}")
        return None

    if not response.data:
        return None
    row = response.data[0]
    return CaseContext(
        case_id=row["id"],
        case_number=row.get("case_number") or "",
        title=row.get("title") or "",
        type=row.get("case_type"),
    )
