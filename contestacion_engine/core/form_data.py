"""Draft form data built from a session, and the default draft title."""

from datetime import date

from contestacion_engine.core.party_data import (
    CasePartyData,
    build_party_display_name,
    map_party_data_to_form_defaults,
)
from contestacion_engine.core.schemas_contestacion import ContestacionSessionState

DOCUMENT_TYPE = "contestacion"
DOCUMENT_LABEL = "Contestación"


def build_form_data_from_session(
    state: ContestacionSessionState,
    party_data: CasePartyData | None = None,
) -> dict[str, str]:
    """
    Merge the consolidated fields with the case party defaults.

    Party fields win over consolidated fields on key collision.
    """
    form_data: dict[str, str] = {}
    if state.form_data_consolidado:
        form_data.update(state.form_data_consolidado.model_dump())
    if party_data:
        form_data.update(map_party_data_to_form_defaults(party_data))
    return form_data


def _first_line(text: str) -> str:
    lines = text.split("\n")
    return lines[0].strip()[:80] if lines else text[:80]


def get_default_draft_title(form_data: dict[str, str], today: date | None = None) -> str:
    """Title like "Borrador Contestación - {ACTOR} C/ {DEMANDADO}"."""

    def party(prefix: str) -> str:
        display = build_party_display_name(form_data, prefix)
        if display:
            return _first_line(display)
        return (form_data.get(prefix) or "").strip()

    actor = party("demandante")
    demandado = party("demandado")
    if actor and demandado:
        return f"Borrador {DOCUMENT_LABEL} - {actor} C/ {demandado}"
    if actor:
        return f"Borrador {DOCUMENT_LABEL} - {actor}"
    if demandado:
        return f"Borrador {DOCUMENT_LABEL} - C/ {demandado}"

    first_non_empty = next((v for v in form_data.values() if v and v.strip()), None)
    if first_non_empty:
        return f"Borrador {DOCUMENT_LABEL} - {_first_line(first_non_empty)}"

    today = today or date.today()
    return f"Borrador {DOCUMENT_LABEL} - {today.strftime('%d/%m/%Y')}"
