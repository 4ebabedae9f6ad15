"""Case party data and its mapping onto contestación form fields.

Party data comes from the case (see ``contestacion_engine.db.case_party_data``)
with neutral naming: ``our_client`` is who we represent, ``opposing_party``
the other side. In a contestación we represent the defendant, so our client
fills the ``demandado_*`` fields and the opposing party the ``demandante_*``
fields.
"""

from typing import Literal

from pydantic import BaseModel

PartyType = Literal["persona_fisica", "persona_juridica"]

CONTESTACION_PARTY_PREFIXES = ("demandante", "demandado")

_STRUCTURED_FIELDS = (
    "nombre",
    "apellido",
    "edad",
    "razon_social",
    "documento_tipo",
    "documento",
    "domicilio_real",
    "domicilio_legal",
)


class PartyStructuredData(BaseModel):
    """Structured party data for form prefill."""

    tipo: PartyType
    nombre: str | None = None
    apellido: str | None = None
    edad: str | None = None
    razon_social: str | None = None
    documento_tipo: str | None = None
    documento: str | None = None
    domicilio_real: str | None = None
    domicilio_legal: str | None = None


class CasePartyData(BaseModel):
    """Formatted and structured party data for one case."""

    our_client: str = ""
    opposing_party: str = ""
    partes: str = ""
    our_client_structured: PartyStructuredData | None = None
    opposing_party_structured: PartyStructuredData | None = None


def structured_to_form_defaults(prefix: str, party: PartyStructuredData) -> dict[str, str]:
    defaults = {f"{prefix}_tipo": party.tipo}
    for field in _STRUCTURED_FIELDS:
        value = getattr(party, field)
        if value:
            defaults[f"{prefix}_{field}"] = value
    return defaults


def map_party_data_to_form_defaults(party_data: CasePartyData) -> dict[str, str]:
    """Form defaults for a contestación (our client is the defendant)."""
    defaults: dict[str, str] = {}
    if party_data.opposing_party_structured:
        defaults.update(
            structured_to_form_defaults("demandante", party_data.opposing_party_structured)
        )
    if party_data.our_client_structured:
        defaults.update(structured_to_form_defaults("demandado", party_data.our_client_structured))
    return defaults


def _get(form_data: dict[str, str], key: str) -> str:
    return (form_data.get(key) or "").strip()


def build_party_display_name(form_data: dict[str, str], prefix: str) -> str:
    """Display name for titles, e.g. "Juan Pérez" or "Empresa SA"."""
    tipo = _get(form_data, f"{prefix}_tipo")
    if not tipo:
        return ""

    if tipo == "persona_juridica":
        razon = _get(form_data, f"{prefix}_razon_social")
        if razon:
            return razon

    nombre = _get(form_data, f"{prefix}_nombre")
    apellido = _get(form_data, f"{prefix}_apellido")
    if nombre or apellido:
        return " ".join(part for part in (nombre, apellido) if part)

    return _get(form_data, f"{prefix}_razon_social")


def build_party_for_prompt(form_data: dict[str, str], prefix: str) -> str:
    """Full party description for the drafting prompt."""
    tipo = _get(form_data, f"{prefix}_tipo")
    if not tipo:
        return ""

    parts: list[str] = []
    if tipo == "persona_fisica":
        nombre = _get(form_data, f"{prefix}_nombre")
        apellido = _get(form_data, f"{prefix}_apellido")
        if nombre or apellido:
            parts.append(" ".join(part for part in (nombre, apellido) if part))
        edad = _get(form_data, f"{prefix}_edad")
        if edad:
            parts.append(f"Edad: {edad} años")
    else:
        razon = _get(form_data, f"{prefix}_razon_social")
        if razon:
            parts.append(f"Razón social: {razon}")

    doc_tipo = _get(form_data, f"{prefix}_documento_tipo")
    doc = _get(form_data, f"{prefix}_documento")
    if doc_tipo and doc:
        parts.append(f"{doc_tipo}: {doc}")
    elif doc:
        parts.append(f"Documento: {doc}")

    dom_real = _get(form_data, f"{prefix}_domicilio_real")
    if dom_real:
        parts.append(f"Domicilio real: {dom_real}")
    dom_legal = _get(form_data, f"{prefix}_domicilio_legal")
    if dom_legal:
        parts.append(f"Domicilio legal: {dom_legal}")

    return ". ".join(parts)


def normalize_form_data_for_prompt(form_data: dict[str, str]) -> dict[str, str]:
    """Replace structured party fields with one combined text per party."""
    result = {
        key: value
        for key, value in form_data.items()
        if not any(key.startswith(f"{prefix}_") for prefix in CONTESTACION_PARTY_PREFIXES)
    }
    for prefix in CONTESTACION_PARTY_PREFIXES:
        combined = build_party_for_prompt(form_data, prefix)
        if combined:
            result[prefix] = combined
    return result


# =============================================================================
# Case rows -> party data
# =============================================================================


def _domicilio(row: dict) -> str:
    return ", ".join(part for part in (row.get("address"), row.get("city"), row.get("province")) if part)


def format_person(person: dict) -> str:
    name = person.get("name") or " ".join(
        part for part in (person.get("first_name"), person.get("last_name")) if part
    ) or "Sin nombre"
    parts = [name]
    if person.get("dni"):
        parts.append(f"DNI: {person['dni']}")
    if person.get("cuit"):
        parts.append(f"CUIT: {person['cuit']}")
    if person.get("email"):
        parts.append(f"Email: {person['email']}")
    if person.get("phone"):
        parts.append(f"Tel: {person['phone']}")
    domicilio = _domicilio(person)
    if domicilio:
        parts.append(f"Domicilio: {domicilio}")
    if person.get("company_name"):
        parts.append(f"Razón social: {person['company_name']}")
    return ". ".join(parts)


def format_company(company: dict) -> str:
    parts = [company.get("legal_name") or company.get("company_name") or "Sin nombre"]
    if company.get("cuit"):
        parts.append(f"CUIT: {company['cuit']}")
    if company.get("address") or company.get("city"):
        parts.append(f"Domicilio: {_domicilio(company)}")
    if company.get("email"):
        parts.append(f"Email: {company['email']}")
    if company.get("phone"):
        parts.append(f"Tel: {company['phone']}")
    return ". ".join(parts)


def person_to_structured(person: dict) -> PartyStructuredData:
    domicilio = _domicilio(person) or None
    if (person.get("company_name") or "").strip():
        return PartyStructuredData(
            tipo="persona_juridica",
            razon_social=person["company_name"],
            documento_tipo="CUIT" if person.get("cuit") else "",
            documento=person.get("cuit") or "",
            domicilio_real=domicilio,
        )
    return PartyStructuredData(
        tipo="persona_fisica",
        nombre=person.get("first_name") or "",
        apellido=person.get("last_name") or "",
        documento_tipo="DNI" if person.get("dni") else ("CUIT" if person.get("cuit") else ""),
        documento=person.get("dni") or person.get("cuit") or "",
        domicilio_real=domicilio,
    )


def company_to_structured(company: dict) -> PartyStructuredData:
    return PartyStructuredData(
        tipo="persona_juridica",
        razon_social=company.get("legal_name") or company.get("company_name") or "",
        documento_tipo="CUIT" if company.get("cuit") else "",
        documento=company.get("cuit") or "",
        domicilio_real=_domicilio(company) or None,
    )


def build_case_party_data(case_row: dict) -> CasePartyData:
    """
    Build party data from a case row with its company and participants.

    The case company (or else the first client representative) is our
    client; participants with role ``opposing_party`` are the other side.
    """
    company = case_row.get("companies")
    participants = case_row.get("case_participants") or []
    client_reps = [p for p in participants if p.get("role") == "client_representative"]
    opposing = [p for p in participants if p.get("role") == "opposing_party" and p.get("people")]

    our_client = ""
    our_client_structured = None
    rep = client_reps[0].get("people") if client_reps else None
    if company:
        our_client = format_company(company)
        our_client_structured = company_to_structured(company)
        if rep:
            our_client = f"{our_client}. Representante: {format_person(rep)}"
    elif rep:
        our_client = format_person(rep)
        our_client_structured = person_to_structured(rep)

    opposing_party = "\n\n".join(format_person(p["people"]) for p in opposing)
    opposing_structured = person_to_structured(opposing[0]["people"]) if opposing else None

    partes = []
    if our_client:
        partes.append(f"NUESTRO CLIENTE: {our_client}")
    if opposing_party:
        partes.append(f"CONTRAPARTE: {opposing_party}")

    return CasePartyData(
        our_client=our_client,
        opposing_party=opposing_party,
        partes="\n\n".join(partes),
        our_client_structured=our_client_structured,
        opposing_party_structured=opposing_structured,
    )
