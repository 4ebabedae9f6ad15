"""Tests for case party data and form prefill."""

from datetime import date

from contestacion_engine.core.form_data import (
    build_form_data_from_session,
    get_default_draft_title,
)
from contestacion_engine.core.party_data import (
    CasePartyData,
    PartyStructuredData,
    build_case_party_data,
    build_party_display_name,
    map_party_data_to_form_defaults,
    normalize_form_data_for_prompt,
)
from contestacion_engine.core.schemas_contestacion import FormDataConsolidado

CASE_ROW = {
    "id": "case-1",
    "companies": {
        "legal_name": "Distribuidora Norte SRL",
        "cuit": "30-11111111-1",
        "address": "Av. Colón 100",
        "city": "Córdoba",
    },
    "case_participants": [
        {
            "role": "client_representative",
            "people": {"first_name": "Laura", "last_name": "Gómez", "dni": "25111222"},
        },
        {
            "role": "opposing_party",
            "people": {"first_name": "Carlos", "last_name": "Ruiz", "dni": "30111222", "city": "Córdoba"},
        },
    ],
}


class TestBuildCasePartyData:
    def test_company_is_our_client(self):
        data = build_case_party_data(CASE_ROW)

        assert data.our_client.startswith("Distribuidora Norte SRL. CUIT: 30-11111111-1")
        assert "Representante: Laura Gómez" in data.our_client
        assert data.our_client_structured.tipo == "persona_juridica"
        assert data.our_client_structured.razon_social == "Distribuidora Norte SRL"

    def test_opposing_party(self):
        data = build_case_party_data(CASE_ROW)

        assert data.opposing_party == "Carlos Ruiz. DNI: 30111222. Domicilio: Córdoba"
        assert data.opposing_party_structured.nombre == "Carlos"
        assert data.opposing_party_structured.documento_tipo == "DNI"
        assert data.partes.startswith("NUESTRO CLIENTE: ")
        assert "\n\nCONTRAPARTE: Carlos Ruiz" in data.partes

    def test_representative_without_company(self):
        row = {**CASE_ROW, "companies": None}
        data = build_case_party_data(row)
        assert data.our_client.startswith("Laura Gómez")
        assert data.our_client_structured.tipo == "persona_fisica"

    def test_empty_case(self):
        data = build_case_party_data({"id": "case-2"})
        assert data == CasePartyData()


class TestFormDefaults:
    def test_our_client_is_the_defendant(self):
        defaults = map_party_data_to_form_defaults(build_case_party_data(CASE_ROW))

        assert defaults["demandado_tipo"] == "persona_juridica"
        assert defaults["demandado_razon_social"] == "Distribuidora Norte SRL"
        assert defaults["demandante_tipo"] == "persona_fisica"
        assert defaults["demandante_apellido"] == "Ruiz"
        assert "demandante_edad" not in defaults

    def test_display_names(self):
        form = {
            "demandante_tipo": "persona_fisica",
            "demandante_nombre": "Carlos",
            "demandante_apellido": "Ruiz",
            "demandado_tipo": "persona_juridica",
            "demandado_razon_social": "Norte SRL",
        }
        assert build_party_display_name(form, "demandante") == "Carlos Ruiz"
        assert build_party_display_name(form, "demandado") == "Norte SRL"
        assert build_party_display_name({}, "demandado") == ""

    def test_normalize_replaces_party_fields(self):
        normalized = normalize_form_data_for_prompt({
            "defensas": "Pago",
            "demandado_tipo": "persona_fisica",
            "demandado_nombre": "Ana",
            "demandado_domicilio_legal": "Duarte Quirós 1",
        })
        assert normalized == {
            "defensas": "Pago",
            "demandado": "Ana. Domicilio legal: Duarte Quirós 1",
        }


class TestFormDataFromSession:
    def test_merges_consolidated_and_party_fields(self, parsed_state):
        state = parsed_state.model_copy(update={
            "form_data_consolidado": FormDataConsolidado(defensas="Pago total"),
        })
        party = CasePartyData(
            our_client_structured=PartyStructuredData(tipo="persona_fisica", nombre="Ana"),
        )

        form_data = build_form_data_from_session(state, party)

        assert form_data["defensas"] == "Pago total"
        assert form_data["hechos_admitidos"] == ""
        assert form_data["demandado_nombre"] == "Ana"

    def test_without_anything(self, parsed_state):
        assert build_form_data_from_session(parsed_state) == {}


class TestDefaultDraftTitle:
    def test_both_parties(self):
        form = {
            "demandante_tipo": "persona_fisica",
            "demandante_nombre": "Carlos",
            "demandante_apellido": "Ruiz",
            "demandado_tipo": "persona_juridica",
            "demandado_razon_social": "Norte SRL",
        }
        assert get_default_draft_title(form) == "Borrador Contestación - Carlos Ruiz C/ Norte SRL"

    def test_only_defendant(self):
        form = {"demandado_tipo": "persona_fisica", "demandado_nombre": "Ana"}
        assert get_default_draft_title(form) == "Borrador Contestación - C/ Ana"

    def test_first_non_empty_field(self):
        form = {"hechos_admitidos": "", "hechos_negados": "Se niega todo\nsegunda línea"}
        assert get_default_draft_title(form) == "Borrador Contestación - Se niega todo"

    def test_date_fallback(self):
        assert get_default_draft_title({}, today=date(2025, 3, 7)) == "Borrador Contestación - 07/03/2025"
