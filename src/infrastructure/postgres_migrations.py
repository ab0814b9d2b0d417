from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

MIGRATIONS_ROOT = Path(__file__).with_name("postgres_migrations")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PostgresMigration:
    version: str
    sql_path: Path
    checksum: str


def list_migration_namespaces() -> list[str]:
    if not MIGRATIONS_ROOT.exists():
        return []
    return sorted(path.name for path in MIGRATIONS_ROOT.iterdir() if path.is_dir())


def apply_postgres_migrations(*, connection: Any, namespace: str) -> list[str]:
    """Apply every migration of `namespace` not yet recorded in `schema_migrations`.

    Runs under a namespace-scoped advisory lock so concurrent service instances do not
    race. Returns the versions applied by this call, in order.
    """
    lock_key = _migration_lock_key(namespace=namespace)
    connection.execute("SELECT pg_advisory_lock(%s::bigint)", (lock_key,))
    try:
        return _apply_migrations_locked(connection=connection, namespace=namespace)
    except Exception:
        connection.rollback()
        raise
    finally:
        connection.execute("SELECT pg_advisory_unlock(%s::bigint)", (lock_key,))


def pending_postgres_migrations(*, connection: Any, namespace: str) -> list[str]:
    migrations = _load_migrations(namespace=namespace)
    _ensure_schema_migrations_table(connection=connection)
    applied = _applied_checksums(connection=connection, namespace=namespace)
    _verify_checksums(namespace=namespace, migrations=migrations, applied=applied)
    return [migration.version for migration in migrations if migration.version not in applied]


def _apply_migrations_locked(*, connection: Any, namespace: str) -> list[str]:
    migrations = _load_migrations(namespace=namespace)
    _ensure_schema_migrations_table(connection=connection)
    applied = _applied_checksums(connection=connection, namespace=namespace)
    _verify_checksums(namespace=namespace, migrations=migrations, applied=applied)

    newly_applied: list[str] = []
    for migration in migrations:
        if migration.version in applied:
            continue
        sql = migration.sql_path.read_text(encoding="utf-8")
        _execute_sql_statements(connection=connection, sql=sql)
        connection.execute(
            """
            INSERT INTO schema_migrations (
                version,
                namespace,
                checksum,
                applied_at
            ) VALUES (%s, %s, %s, %s)
            """,
            (
                _stored_version(namespace=namespace, version=migration.version),
                namespace,
                migration.checksum,
                datetime.now(timezone.utc).isoformat(),
            ),
        )
        newly_applied.append(migration.version)
    connection.commit()
    if newly_applied:
        logger.info(
            "postgres.migrations_applied",
            extra={"extra_fields": {"namespace": namespace, "versions": newly_applied}},
        )
    return newly_applied


def _ensure_schema_migrations_table(*, connection: Any) -> None:
    connection.execute(
        """
        CREATE TABLE IF NOT EXISTS schema_migrations (
            version TEXT PRIMARY KEY,
            namespace TEXT NOT NULL,
            checksum TEXT NOT NULL,
            applied_at TEXT NOT NULL
        )
        """
    )


def _applied_checksums(*, connection: Any, namespace: str) -> dict[str, str]:
    rows = connection.execute(
        """
        SELECT version, checksum
        FROM schema_migrations
        WHERE namespace = %s
        ORDER BY version ASC
        """,
        (namespace,),
    ).fetchall()
    applied: dict[str, str] = {}
    for row in rows:
        version = _extract_namespace_version(
            namespace=namespace,
            stored_version=str(row["version"]),
        )
        checksum = str(row["checksum"])
        existing_checksum = applied.get(version)
        if existing_checksum is not None and existing_checksum != checksum:
            raise RuntimeError(f"POSTGRES_MIGRATION_CHECKSUM_MISMATCH:{namespace}:{version}")
        applied[version] = checksum
    return applied


def _verify_checksums(
    *, namespace: str, migrations: list[PostgresMigration], applied: dict[str, str]
) -> None:
    for migration in migrations:
        existing_checksum = applied.get(migration.version)
        if existing_checksum is not None and existing_checksum != migration.checksum:
            raise RuntimeError(
                f"POSTGRES_MIGRATION_CHECKSUM_MISMATCH:{namespace}:{migration.version}"
            )


def _execute_sql_statements(*, connection: Any, sql: str) -> None:
    for statement in sql.split(";"):
        normalized = statement.strip()
        if not normalized:
            continue
        connection.execute(normalized)


def _load_migrations(*, namespace: str) -> list[PostgresMigration]:
    namespace_path = MIGRATIONS_ROOT / namespace
    if not namespace_path.exists():
        raise RuntimeError(f"POSTGRES_MIGRATIONS_NAMESPACE_NOT_FOUND:{namespace}")
    migrations: list[PostgresMigration] = []
    for sql_path in sorted(namespace_path.glob("*.sql")):
        version = sql_path.stem.split("_", maxsplit=1)[0]
        sql = sql_path.read_text(encoding="utf-8")
        checksum = hashlib.sha256(sql.encode("utf-8")).hexdigest()
        migrations.append(PostgresMigration(version=version, sql_path=sql_path, checksum=checksum))
    return migrations


def _migration_lock_key(*, namespace: str) -> int:
    digest = hashlib.sha256(namespace.encode("utf-8")).digest()[:8]
    return int.from_bytes(digest, byteorder="big", signed=True)


def _stored_version(*, namespace: str, version: str) -> str:
    return f"{namespace}:{version}"


def _extract_namespace_version(*, namespace: str, stored_version: str) -> str:
    prefix = f"{namespace}:"
    if stored_version.startswith(prefix):
        return stored_version[len(prefix) :]
    return stored_version
