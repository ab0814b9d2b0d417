import json
import sqlite3
from contextlib import closing, contextmanager
from datetime import datetime
from pathlib import Path
from threading import Lock
from typing import Iterator, Optional

from src.core.multisig.models import (
    MultisigWalletRecord,
    ProposalEventRecord,
    ProposalIdempotencyRecord,
    ProposalRecord,
    ProposalSignatureRecord,
    ProposalStatus,
    ProposalTransitionResult,
)
from src.core.multisig.repository import MultisigRepository

_PROPOSAL_COLUMNS = """
    proposal_id,
    wallet_id,
    action_payload,
    status,
    created_by,
    created_at,
    description,
    executed_at,
    execution_reference,
    version,
    last_event_at
"""


class SqliteMultisigRepository(MultisigRepository):
    def __init__(self, *, database_path: str) -> None:
        self._lock = Lock()
        self._database_path = database_path
        self._init_db()

    def create_wallet(self, wallet: MultisigWalletRecord) -> None:
        query = """
            INSERT INTO multisig_wallets (
                wallet_id,
                name,
                address,
                threshold,
                members_json,
                created_at,
                balance
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
        """
        with self._transaction() as connection:
            connection.execute(
                query,
                (
                    wallet.wallet_id,
                    wallet.name,
                    wallet.address,
                    wallet.threshold,
                    json.dumps(wallet.members),
                    wallet.created_at.isoformat(),
                    wallet.balance,
                ),
            )

    def get_wallet(self, *, wallet_id: str) -> Optional[MultisigWalletRecord]:
        query = """
            SELECT wallet_id, name, address, threshold, members_json, created_at, balance
            FROM multisig_wallets
            WHERE wallet_id = ?
        """
        with closing(self._connect()) as connection:
            row = connection.execute(query, (wallet_id,)).fetchone()
        return _to_wallet(row)

    def list_wallets(self) -> list[MultisigWalletRecord]:
        query = """
            SELECT wallet_id, name, address, threshold, members_json, created_at, balance
            FROM multisig_wallets
            ORDER BY created_at ASC, wallet_id ASC
        """
        with closing(self._connect()) as connection:
            rows = connection.execute(query).fetchall()
        return [wallet for wallet in (_to_wallet(row) for row in rows) if wallet is not None]

    def get_idempotency(self, *, idempotency_key: str) -> Optional[ProposalIdempotencyRecord]:
        query = """
            SELECT idempotency_key, request_hash, proposal_id, created_at
            FROM multisig_proposal_idempotency
            WHERE idempotency_key = ?
        """
        with closing(self._connect()) as connection:
            row = connection.execute(query, (idempotency_key,)).fetchone()
        if row is None:
            return None
        return ProposalIdempotencyRecord(
            idempotency_key=row["idempotency_key"],
            request_hash=row["request_hash"],
            proposal_id=row["proposal_id"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def save_idempotency(self, record: ProposalIdempotencyRecord) -> bool:
        with self._transaction() as connection:
            return self._insert_idempotency(connection=connection, record=record)

    def create_proposal(
        self,
        *,
        proposal: ProposalRecord,
        event: ProposalEventRecord,
        idempotency: Optional[ProposalIdempotencyRecord] = None,
    ) -> bool:
        query = f"""
            INSERT INTO multisig_proposals ({_PROPOSAL_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """
        with self._transaction() as connection:
            if idempotency is not None and not self._insert_idempotency(
                connection=connection, record=idempotency
            ):
                connection.rollback()
                return False
            connection.execute(
                query,
                (
                    proposal.proposal_id,
                    proposal.wallet_id,
                    proposal.action_payload,
                    proposal.status.value,
                    proposal.created_by,
                    proposal.created_at.isoformat(),
                    proposal.description,
                    _optional_iso(proposal.executed_at),
                    proposal.execution_reference,
                    proposal.version,
                    proposal.last_event_at.isoformat(),
                ),
            )
            for position, signature in enumerate(proposal.signatures):
                self._insert_signature(
                    connection=connection, signature=signature, position=position
                )
            self._insert_event(connection=connection, event=event)
        return True

    def get_proposal(self, *, proposal_id: str) -> Optional[ProposalRecord]:
        query = f"""
            SELECT {_PROPOSAL_COLUMNS}
            FROM multisig_proposals
            WHERE proposal_id = ?
        """
        with closing(self._connect()) as connection:
            row = connection.execute(query, (proposal_id,)).fetchone()
            if row is None:
                return None
            signatures = self._load_signatures(connection=connection, proposal_ids=[proposal_id])
        return _to_proposal(row, signatures.get(proposal_id, []))

    def list_proposals(
        self,
        *,
        wallet_id: str,
        status: Optional[ProposalStatus],
        limit: int,
        cursor: Optional[str],
    ) -> tuple[list[ProposalRecord], Optional[str]]:
        where_clauses = ["wallet_id = ?"]
        args: list[str] = [wallet_id]
        if status is not None:
            where_clauses.append("status = ?")
            args.append(status.value)
        query = f"""
            SELECT {_PROPOSAL_COLUMNS}
            FROM multisig_proposals
            WHERE {' AND '.join(where_clauses)}
            ORDER BY created_at DESC, proposal_id DESC
        """
        with closing(self._connect()) as connection:
            rows = connection.execute(query, tuple(args)).fetchall()
            row_ids = [row["proposal_id"] for row in rows]
            if cursor:
                if cursor not in row_ids:
                    return [], None
                rows = rows[row_ids.index(cursor) + 1 :]
            page_rows = rows[:limit]
            signatures = self._load_signatures(
                connection=connection,
                proposal_ids=[row["proposal_id"] for row in page_rows],
            )
        page = [_to_proposal(row, signatures.get(row["proposal_id"], [])) for row in page_rows]
        next_cursor = page[-1].proposal_id if len(rows) > limit else None
        return page, next_cursor

    def list_events(self, *, proposal_id: str) -> list[ProposalEventRecord]:
        query = """
            SELECT
                event_id,
                proposal_id,
                event_type,
                from_status,
                to_status,
                actor_id,
                occurred_at,
                details_json
            FROM multisig_proposal_events
            WHERE proposal_id = ?
            ORDER BY sequence_no ASC
        """
        with closing(self._connect()) as connection:
            rows = connection.execute(query, (proposal_id,)).fetchall()
        return [_to_event(row) for row in rows]

    def compare_and_set_proposal(
        self,
        *,
        proposal: ProposalRecord,
        expected_version: int,
        event: ProposalEventRecord,
        signature: Optional[ProposalSignatureRecord] = None,
    ) -> Optional[ProposalTransitionResult]:
        query = """
            UPDATE multisig_proposals SET
                status = ?,
                executed_at = ?,
                execution_reference = ?,
                version = ?,
                last_event_at = ?
            WHERE proposal_id = ? AND version = ?
        """
        with self._transaction() as connection:
            cursor = connection.execute(
                query,
                (
                    proposal.status.value,
                    _optional_iso(proposal.executed_at),
                    proposal.execution_reference,
                    proposal.version,
                    proposal.last_event_at.isoformat(),
                    proposal.proposal_id,
                    expected_version,
                ),
            )
            if cursor.rowcount != 1:
                connection.rollback()
                return None
            if signature is not None:
                try:
                    self._insert_signature(
                        connection=connection,
                        signature=signature,
                        position=len(proposal.signatures) - 1,
                    )
                except sqlite3.IntegrityError:
                    connection.rollback()
                    return None
            self._insert_event(connection=connection, event=event)

        return ProposalTransitionResult(proposal=proposal, event=event, signature=signature)

    def _insert_idempotency(
        self, *, connection: sqlite3.Connection, record: ProposalIdempotencyRecord
    ) -> bool:
        cursor = connection.execute(
            """
            INSERT INTO multisig_proposal_idempotency (
                idempotency_key,
                request_hash,
                proposal_id,
                created_at
            ) VALUES (?, ?, ?, ?)
            ON CONFLICT(idempotency_key) DO NOTHING
            """,
            (
                record.idempotency_key,
                record.request_hash,
                record.proposal_id,
                record.created_at.isoformat(),
            ),
        )
        return cursor.rowcount == 1

    def _insert_signature(
        self, *, connection: sqlite3.Connection, signature: ProposalSignatureRecord, position: int
    ) -> None:
        connection.execute(
            """
            INSERT INTO multisig_proposal_signatures (
                signature_id,
                proposal_id,
                signer,
                signature,
                signed_at,
                position
            ) VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                signature.signature_id,
                signature.proposal_id,
                signature.signer,
                signature.signature,
                signature.signed_at.isoformat(),
                position,
            ),
        )

    def _insert_event(self, *, connection: sqlite3.Connection, event: ProposalEventRecord) -> None:
        connection.execute(
            """
            INSERT INTO multisig_proposal_events (
                event_id,
                proposal_id,
                event_type,
                from_status,
                to_status,
                actor_id,
                occurred_at,
                details_json
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                event.event_id,
                event.proposal_id,
                event.event_type,
                event.from_status.value if event.from_status is not None else None,
                event.to_status.value,
                event.actor_id,
                event.occurred_at.isoformat(),
                _json_dump(event.details_json),
            ),
        )

    def _load_signatures(
        self, *, connection: sqlite3.Connection, proposal_ids: list[str]
    ) -> dict[str, list[ProposalSignatureRecord]]:
        if not proposal_ids:
            return {}
        placeholders = ", ".join("?" for _ in proposal_ids)
        query = f"""
            SELECT signature_id, proposal_id, signer, signature, signed_at
            FROM multisig_proposal_signatures
            WHERE proposal_id IN ({placeholders})
            ORDER BY proposal_id ASC, position ASC
        """
        grouped: dict[str, list[ProposalSignatureRecord]] = {}
        for row in connection.execute(query, tuple(proposal_ids)).fetchall():
            grouped.setdefault(row["proposal_id"], []).append(_to_signature(row))
        return grouped

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        with self._lock, closing(self._connect()) as connection:
            # IMMEDIATE takes the write lock up front so other processes serialize here
            connection.execute("BEGIN IMMEDIATE")
            try:
                yield connection
            except Exception:
                connection.rollback()
                raise
            connection.commit()

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(self._database_path, timeout=30.0)
        connection.row_factory = sqlite3.Row
        connection.execute("PRAGMA foreign_keys = ON")
        return connection

    def _init_db(self) -> None:
        Path(self._database_path).parent.mkdir(parents=True, exist_ok=True)
        with closing(self._connect()) as connection:
            connection.executescript(
                """
                CREATE TABLE IF NOT EXISTS multisig_wallets (
                    wallet_id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    address TEXT NOT NULL,
                    threshold INTEGER NOT NULL,
                    members_json TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    balance REAL NOT NULL DEFAULT 0
                );

                CREATE TABLE IF NOT EXISTS multisig_proposals (
                    proposal_id TEXT PRIMARY KEY,
                    wallet_id TEXT NOT NULL REFERENCES multisig_wallets (wallet_id),
                    action_payload TEXT NOT NULL,
                    status TEXT NOT NULL,
                    created_by TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    description TEXT NULL,
                    executed_at TEXT NULL,
                    execution_reference TEXT NULL,
                    version INTEGER NOT NULL,
                    last_event_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_multisig_proposals_wallet_created
                    ON multisig_proposals (wallet_id, created_at);

                CREATE TABLE IF NOT EXISTS multisig_proposal_signatures (
                    signature_id TEXT PRIMARY KEY,
                    proposal_id TEXT NOT NULL REFERENCES multisig_proposals (proposal_id),
                    signer TEXT NOT NULL,
                    signature TEXT NOT NULL,
                    signed_at TEXT NOT NULL,
                    position INTEGER NOT NULL,
                    UNIQUE (proposal_id, signer)
                );

                CREATE TABLE IF NOT EXISTS multisig_proposal_events (
                    sequence_no INTEGER PRIMARY KEY AUTOINCREMENT,
                    event_id TEXT NOT NULL UNIQUE,
                    proposal_id TEXT NOT NULL REFERENCES multisig_proposals (proposal_id),
                    event_type TEXT NOT NULL,
                    from_status TEXT NULL,
                    to_status TEXT NOT NULL,
                    actor_id TEXT NOT NULL,
                    occurred_at TEXT NOT NULL,
                    details_json TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS multisig_proposal_idempotency (
                    idempotency_key TEXT PRIMARY KEY,
                    request_hash TEXT NOT NULL,
                    proposal_id TEXT NOT NULL,
                    created_at TEXT NOT NULL
                );
                """
            )
            connection.commit()


def _to_wallet(row: Optional[sqlite3.Row]) -> Optional[MultisigWalletRecord]:
    if row is None:
        return None
    return MultisigWalletRecord(
        wallet_id=row["wallet_id"],
        name=row["name"],
        address=row["address"],
        threshold=int(row["threshold"]),
        members=json.loads(row["members_json"]),
        created_at=datetime.fromisoformat(row["created_at"]),
        balance=float(row["balance"]),
    )


def _to_proposal(row: sqlite3.Row, signatures: list[ProposalSignatureRecord]) -> ProposalRecord:
    return ProposalRecord(
        proposal_id=row["proposal_id"],
        wallet_id=row["wallet_id"],
        action_payload=row["action_payload"],
        status=ProposalStatus(row["status"]),
        created_by=row["created_by"],
        created_at=datetime.fromisoformat(row["created_at"]),
        description=row["description"],
        signatures=signatures,
        executed_at=_optional_datetime(row["executed_at"]),
        execution_reference=row["execution_reference"],
        version=int(row["version"]),
        last_event_at=datetime.fromisoformat(row["last_event_at"]),
    )


def _to_signature(row: sqlite3.Row) -> ProposalSignatureRecord:
    return ProposalSignatureRecord(
        signature_id=row["signature_id"],
        proposal_id=row["proposal_id"],
        signer=row["signer"],
        signature=row["signature"],
        signed_at=datetime.fromisoformat(row["signed_at"]),
    )


def _to_event(row: sqlite3.Row) -> ProposalEventRecord:
    return ProposalEventRecord(
        event_id=row["event_id"],
        proposal_id=row["proposal_id"],
        event_type=row["event_type"],
        from_status=ProposalStatus(row["from_status"]) if row["from_status"] else None,
        to_status=ProposalStatus(row["to_status"]),
        actor_id=row["actor_id"],
        occurred_at=datetime.fromisoformat(row["occurred_at"]),
        details_json=json.loads(row["details_json"]),
    )


def _json_dump(value: dict) -> str:
    return json.dumps(value, separators=(",", ":"), sort_keys=True)


def _optional_iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat()


def _optional_datetime(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromisoformat(value)
