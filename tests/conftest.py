"""Pytest configuration and fixtures."""

import os

import pytest

from contestacion_engine.core.config import get_settings
from contestacion_engine.core.schemas_contestacion import ContestacionSessionState, DemandBlock
from tests.fakes.fake_backend import FakeBackend
from tests.fakes.fake_session_store import FakeSessionStore


@pytest.fixture(scope="session", autouse=True)
def setup_test_env():
    """Set up test environment variables."""
    os.environ["SUPABASE_URL"] = "https://test.supabase.co"
    os.environ["SUPABASE_SERVICE_ROLE_KEY"] = "test-key"
    os.environ["OPENAI_API_KEY"] = "test-openai-key"
    os.environ["ANTHROPIC_API_KEY"] = "test-anthropic-key"
    os.environ["CONTESTACION_ENV"] = "test"
    get_settings.cache_clear()


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def store(monkeypatch):
    fake = FakeSessionStore()
    fake.patch_api(monkeypatch)
    return fake


@pytest.fixture
def bloques():
    return [
        DemandBlock(id="bloque_1", titulo="Objeto", contenido="Se demanda el pago de alquileres.", tipo="objeto", orden=1),
        DemandBlock(id="bloque_2", titulo="Hechos", contenido="El demandado no pagó enero a marzo.", tipo="hechos", orden=2),
        DemandBlock(id="bloque_3", titulo="Rubros", contenido="Alquileres adeudados $300.000.", tipo="rubros", orden=3),
    ]


@pytest.fixture
def parsed_state(bloques):
    return ContestacionSessionState(
        bloques=bloques,
        tipo_demanda_detectado="incumplimiento_locacion",
        pretensiones_principales=["Pago de alquileres"],
    )
