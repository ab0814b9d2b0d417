from __future__ import annotations

import os

from src.api.routers.multisig_config import (
    multisig_execution_backend_name,
    multisig_execution_base_url,
    multisig_postgres_dsn,
    multisig_store_backend_name,
)

_PRODUCTION_PROFILE = "PRODUCTION"
_LOCAL_PROFILE = "LOCAL"


def app_persistence_profile_name() -> str:
    profile = os.getenv("APP_PERSISTENCE_PROFILE", _LOCAL_PROFILE).strip().upper()
    return _PRODUCTION_PROFILE if profile == _PRODUCTION_PROFILE else _LOCAL_PROFILE


def validate_persistence_profile_guardrails() -> None:
    if app_persistence_profile_name() != _PRODUCTION_PROFILE:
        return
    if multisig_store_backend_name() != "POSTGRES":
        raise RuntimeError("PERSISTENCE_PROFILE_REQUIRES_MULTISIG_POSTGRES")
    if not multisig_postgres_dsn():
        raise RuntimeError("PERSISTENCE_PROFILE_REQUIRES_MULTISIG_POSTGRES_DSN")
    if multisig_execution_backend_name() != "HTTP":
        raise RuntimeError("PERSISTENCE_PROFILE_REQUIRES_HTTP_EXECUTION")
    if not multisig_execution_base_url():
        raise RuntimeError("PERSISTENCE_PROFILE_REQUIRES_EXECUTION_BASE_URL")
