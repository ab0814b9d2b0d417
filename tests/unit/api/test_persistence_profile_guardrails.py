import pytest
from fastapi.testclient import TestClient

import src.api.persistence_profile as persistence_profile
from src.api.main import app
from src.api.persistence_profile import (
    app_persistence_profile_name,
    validate_persistence_profile_guardrails,
)


@pytest.fixture
def production_env(monkeypatch):
    monkeypatch.setenv("APP_PERSISTENCE_PROFILE", "PRODUCTION")
    monkeypatch.setenv("MULTISIG_STORE_BACKEND", "POSTGRES")
    monkeypatch.setenv("MULTISIG_POSTGRES_DSN", "postgresql://u:p@localhost:5432/db")
    monkeypatch.setenv("MULTISIG_EXECUTION_BACKEND", "HTTP")
    monkeypatch.setenv("MULTISIG_EXECUTION_BASE_URL", "https://executor.local")


def test_persistence_profile_defaults_to_local(monkeypatch):
    monkeypatch.delenv("APP_PERSISTENCE_PROFILE", raising=False)
    assert app_persistence_profile_name() == "LOCAL"


def test_persistence_profile_unknown_value_falls_back_to_local(monkeypatch):
    monkeypatch.setenv("APP_PERSISTENCE_PROFILE", "staging")
    assert app_persistence_profile_name() == "LOCAL"


def test_local_profile_allows_in_memory_and_simulated(monkeypatch):
    monkeypatch.delenv("APP_PERSISTENCE_PROFILE", raising=False)
    monkeypatch.setenv("MULTISIG_STORE_BACKEND", "IN_MEMORY")
    monkeypatch.setenv("MULTISIG_EXECUTION_BACKEND", "SIMULATED")

    validate_persistence_profile_guardrails()


def test_production_profile_allows_postgres_and_http_execution(production_env):
    validate_persistence_profile_guardrails()


def test_production_profile_requires_multisig_postgres(production_env, monkeypatch):
    monkeypatch.setenv("MULTISIG_STORE_BACKEND", "SQLITE")

    with pytest.raises(RuntimeError) as exc:
        validate_persistence_profile_guardrails()
    assert str(exc.value) == "PERSISTENCE_PROFILE_REQUIRES_MULTISIG_POSTGRES"


def test_production_profile_requires_multisig_postgres_dsn(production_env, monkeypatch):
    monkeypatch.delenv("MULTISIG_POSTGRES_DSN", raising=False)

    with pytest.raises(RuntimeError) as exc:
        validate_persistence_profile_guardrails()
    assert str(exc.value) == "PERSISTENCE_PROFILE_REQUIRES_MULTISIG_POSTGRES_DSN"


def test_production_profile_requires_http_execution(production_env, monkeypatch):
    monkeypatch.setenv("MULTISIG_EXECUTION_BACKEND", "SIMULATED")

    with pytest.raises(RuntimeError) as exc:
        validate_persistence_profile_guardrails()
    assert str(exc.value) == "PERSISTENCE_PROFILE_REQUIRES_HTTP_EXECUTION"


def test_production_profile_requires_execution_base_url(production_env, monkeypatch):
    monkeypatch.setattr(persistence_profile, "multisig_execution_base_url", lambda: "")

    with pytest.raises(RuntimeError) as exc:
        validate_persistence_profile_guardrails()
    assert str(exc.value) == "PERSISTENCE_PROFILE_REQUIRES_EXECUTION_BASE_URL"


def test_startup_fails_fast_for_in_memory_backend_in_production(production_env, monkeypatch):
    monkeypatch.setenv("MULTISIG_STORE_BACKEND", "IN_MEMORY")

    with pytest.raises(RuntimeError) as exc:
        with TestClient(app):
            pass
    assert str(exc.value) == "PERSISTENCE_PROFILE_REQUIRES_MULTISIG_POSTGRES"
