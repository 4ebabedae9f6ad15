"""Tests for the Supabase-backed session, template, case and draft lookups."""

from unittest.mock import MagicMock, patch
from uuid import uuid4

import pytest

from contestacion_engine.core.contestacion_errors import SessionVersionConflict
from contestacion_engine.core.schemas_contestacion import ContestacionSessionState
from contestacion_engine.db.case_party_data import get_case_context, get_case_party_data
from contestacion_engine.db.contestacion_sessions import (
    create_session,
    get_session,
    load_session_state,
    update_session_state,
)
from contestacion_engine.db.document_templates import get_contestacion_variants
from contestacion_engine.db.drafts import insert_draft


def _response(data):
    response = MagicMock()
    response.data = data
    return response


class TestSessions:
    def test_create_session(self):
        session_id = str(uuid4())
        with patch("contestacion_engine.db.contestacion_sessions.get_supabase") as mock_supabase:
            table = mock_supabase.return_value.table.return_value
            table.insert.return_value.execute.return_value = _response([{"id": session_id, "version": 0}])

            session = create_session("user-1", demanda_raw="Texto")

            assert session["id"] == session_id
            mock_supabase.return_value.table.assert_called_with("lexia_contestacion_sessions")
            row = table.insert.call_args.args[0]
            assert row["state"] == {}
            assert row["current_step"] == "init"
            assert row["case_id"] is None

    def test_create_session_without_row(self):
        with patch("contestacion_engine.db.contestacion_sessions.get_supabase") as mock_supabase:
            mock_supabase.return_value.table.return_value.insert.return_value.execute.return_value = _response([])

            with pytest.raises(ValueError):
                create_session("user-1")

    def test_get_session_not_found(self):
        with patch("contestacion_engine.db.contestacion_sessions.get_supabase") as mock_supabase:
            select = mock_supabase.return_value.table.return_value.select.return_value
            select.eq.return_value.execute.return_value = _response([])

            assert get_session(uuid4()) is None

    def test_update_is_compare_and_swap(self, parsed_state):
        with patch("contestacion_engine.db.contestacion_sessions.get_supabase") as mock_supabase:
            update = mock_supabase.return_value.table.return_value.update
            eq_id = update.return_value.eq
            eq_version = eq_id.return_value.eq
            eq_version.return_value.execute.return_value = _response([{"id": "s1", "version": 3}])

            row = update_session_state("s1", parsed_state, expected_version=2, current_step="parsed")

            assert row["version"] == 3
            payload = update.call_args.args[0]
            assert payload["version"] == 3
            assert payload["current_step"] == "parsed"
            assert payload["state"] == parsed_state.to_json_dict()
            eq_id.assert_called_with("id", "s1")
            eq_version.assert_called_with("version", 2)

    def test_update_conflict(self, parsed_state):
        with patch("contestacion_engine.db.contestacion_sessions.get_supabase") as mock_supabase:
            update = mock_supabase.return_value.table.return_value.update
            update.return_value.eq.return_value.eq.return_value.execute.return_value = _response([])

            with pytest.raises(SessionVersionConflict):
                update_session_state("s1", parsed_state, expected_version=2)

    def test_update_replaces_demand_text(self):
        with patch("contestacion_engine.db.contestacion_sessions.get_supabase") as mock_supabase:
            update = mock_supabase.return_value.table.return_value.update
            update.return_value.eq.return_value.eq.return_value.execute.return_value = _response(
                [{"id": "s1", "version": 1}]
            )

            update_session_state(
                "s1", ContestacionSessionState(), expected_version=0, current_step="init", demanda_raw="Nueva"
            )

            payload = update.call_args.args[0]
            assert payload["demanda_raw"] == "Nueva"
            assert payload["state"] == {}

    def test_load_session_state(self, parsed_state):
        assert load_session_state({"state": parsed_state.to_json_dict()}) == parsed_state
        assert load_session_state({"state": None}) == ContestacionSessionState()


class TestTemplates:
    def test_variants_deduplicated(self):
        with patch("contestacion_engine.db.document_templates.get_supabase") as mock_supabase:
            select = mock_supabase.return_value.table.return_value.select.return_value
            select.eq.return_value.eq.return_value.execute.return_value = _response([
                {"variant": "incumplimiento_locacion"},
                {"variant": " incumplimiento_locacion "},
                {"variant": ""},
                {"variant": None},
                {"variant": "incumplimiento_servicios"},
            ])

            assert get_contestacion_variants() == ["incumplimiento_locacion", "incumplimiento_servicios"]

    def test_variants_on_error(self):
        with patch("contestacion_engine.db.document_templates.get_supabase") as mock_supabase:
            mock_supabase.return_value.table.side_effect = RuntimeError("down")
            assert get_contestacion_variants() == []


class TestCases:
    def test_party_data(self):
        with patch("contestacion_engine.db.case_party_data.get_supabase") as mock_supabase:
            select = mock_supabase.return_value.table.return_value.select.return_value
            select.eq.return_value.execute.return_value = _response([{
                "id": "case-1",
                "companies": None,
                "case_participants": [
                    {"role": "opposing_party", "people": {"first_name": "Carlos", "last_name": "Ruiz"}},
                ],
            }])

            party = get_case_party_data("case-1")

            assert party.opposing_party == "Carlos Ruiz"
            assert party.our_client == ""

    def test_party_data_missing_case(self):
        with patch("contestacion_engine.db.case_party_data.get_supabase") as mock_supabase:
            select = mock_supabase.return_value.table.return_value.select.return_value
            select.eq.return_value.execute.return_value = _response([])
            assert get_case_party_data("case-1") is None

    def test_case_context(self):
        with patch("contestacion_engine.db.case_party_data.get_supabase") as mock_supabase:
            select = mock_supabase.return_value.table.return_value.select.return_value
            select.eq.return_value.execute.return_value = _response([
                {"id": "case-1", "case_number": "123/2025", "title": None, "case_type": "civil"},
            ])

            context = get_case_context("case-1")

            assert context.case_number == "123/2025"
            assert context.title == ""
            assert context.type == "civil"


class TestDrafts:
    def test_insert_draft(self):
        with patch("contestacion_engine.db.drafts.get_supabase") as mock_supabase:
            table = mock_supabase.return_value.table.return_value
            table.insert.return_value.execute.return_value = _response([{"id": "draft-1"}])

            draft = insert_draft("user-1", "Borrador", "CONTESTA", {"defensas": "Pago"}, case_id="case-1")

            assert draft["id"] == "draft-1"
            row = table.insert.call_args.args[0]
            assert row["document_type"] == "contestacion"
            assert row["case_id"] == "case-1"
