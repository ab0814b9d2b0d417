import os
import warnings
from typing import cast

from src.core.multisig.execution import ActionExecutor
from src.core.multisig.repository import MultisigRepository
from src.infrastructure.execution import HttpActionExecutor, SimulatedActionExecutor
from src.infrastructure.multisig import (
    InMemoryMultisigRepository,
    PostgresMultisigRepository,
    SqliteMultisigRepository,
)

_STORE_BACKENDS = {"IN_MEMORY", "SQLITE", "POSTGRES"}
_EXECUTION_BACKENDS = {"SIMULATED", "HTTP"}


def env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        parsed = int(value)
    except ValueError:
        return default
    return parsed if parsed >= 1 else default


def env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        parsed = float(value)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def multisig_store_backend_name() -> str:
    backend = os.getenv("MULTISIG_STORE_BACKEND", "IN_MEMORY").strip().upper()
    if backend in _STORE_BACKENDS:
        return backend
    warnings.warn(
        f"MULTISIG_STORE_BACKEND value {backend!r} is not supported; using IN_MEMORY.",
        UserWarning,
        stacklevel=2,
    )
    return "IN_MEMORY"


def multisig_sqlite_path() -> str:
    return os.getenv("MULTISIG_SQLITE_PATH", ".data/multisig.sqlite")


def multisig_postgres_dsn() -> str:
    return os.getenv("MULTISIG_POSTGRES_DSN", "").strip()


def multisig_execution_backend_name() -> str:
    backend = os.getenv("MULTISIG_EXECUTION_BACKEND", "SIMULATED").strip().upper()
    if backend in _EXECUTION_BACKENDS:
        return backend
    warnings.warn(
        f"MULTISIG_EXECUTION_BACKEND value {backend!r} is not supported; using SIMULATED.",
        UserWarning,
        stacklevel=2,
    )
    return "SIMULATED"


def multisig_execution_base_url() -> str:
    return os.getenv("MULTISIG_EXECUTION_BASE_URL", "").strip()


def multisig_execution_timeout_seconds() -> float:
    return env_float("MULTISIG_EXECUTION_TIMEOUT_SECONDS", 30.0)


def multisig_max_attempts() -> int:
    return env_int("MULTISIG_SIGN_MAX_ATTEMPTS", 8)


def _postgres_connection_exception_types() -> tuple[type[BaseException], ...]:
    types: list[type[BaseException]] = [
        ConnectionError,
        OSError,
        TimeoutError,
        TypeError,
        ValueError,
    ]
    try:
        import psycopg
    except ImportError:
        pass
    else:
        types.append(psycopg.Error)
    return tuple(types)


def build_repository() -> MultisigRepository:
    backend = multisig_store_backend_name()
    if backend == "SQLITE":
        return cast(
            MultisigRepository,
            SqliteMultisigRepository(database_path=multisig_sqlite_path()),
        )
    if backend == "POSTGRES":
        dsn = multisig_postgres_dsn()
        if not dsn:
            raise RuntimeError("MULTISIG_POSTGRES_DSN_REQUIRED")
        try:
            return cast(MultisigRepository, PostgresMultisigRepository(dsn=dsn))
        except RuntimeError:
            raise
        except _postgres_connection_exception_types() as exc:
            raise RuntimeError("MULTISIG_POSTGRES_CONNECTION_FAILED") from exc
    return cast(MultisigRepository, InMemoryMultisigRepository())


def build_action_executor() -> ActionExecutor:
    if multisig_execution_backend_name() == "HTTP":
        return cast(
            ActionExecutor,
            HttpActionExecutor(
                base_url=multisig_execution_base_url(),
                timeout_seconds=multisig_execution_timeout_seconds(),
            ),
        )
    return cast(ActionExecutor, SimulatedActionExecutor())
