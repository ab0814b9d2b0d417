from copy import deepcopy
from threading import Lock
from typing import Optional

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


class InMemoryMultisigRepository(MultisigRepository):
    def __init__(self) -> None:
        self._lock = Lock()
        self._wallets: dict[str, MultisigWalletRecord] = {}
        self._proposals: dict[str, ProposalRecord] = {}
        self._events: dict[str, list[ProposalEventRecord]] = {}
        self._idempotency: dict[str, ProposalIdempotencyRecord] = {}

    def create_wallet(self, wallet: MultisigWalletRecord) -> None:
        with self._lock:
            self._wallets[wallet.wallet_id] = deepcopy(wallet)

    def get_wallet(self, *, wallet_id: str) -> Optional[MultisigWalletRecord]:
        with self._lock:
            wallet = self._wallets.get(wallet_id)
            return deepcopy(wallet) if wallet is not None else None

    def list_wallets(self) -> list[MultisigWalletRecord]:
        with self._lock:
            rows = list(self._wallets.values())
        rows = sorted(rows, key=lambda x: (x.created_at, x.wallet_id))
        return [deepcopy(row) for row in rows]

    def get_idempotency(self, *, idempotency_key: str) -> Optional[ProposalIdempotencyRecord]:
        with self._lock:
            record = self._idempotency.get(idempotency_key)
            return deepcopy(record) if record is not None else None

    def save_idempotency(self, record: ProposalIdempotencyRecord) -> bool:
        with self._lock:
            if record.idempotency_key in self._idempotency:
                return False
            self._idempotency[record.idempotency_key] = deepcopy(record)
            return True

    def create_proposal(
        self,
        *,
        proposal: ProposalRecord,
        event: ProposalEventRecord,
        idempotency: Optional[ProposalIdempotencyRecord] = None,
    ) -> bool:
        with self._lock:
            if idempotency is not None:
                if idempotency.idempotency_key in self._idempotency:
                    return False
                self._idempotency[idempotency.idempotency_key] = deepcopy(idempotency)
            self._proposals[proposal.proposal_id] = deepcopy(proposal)
            self._events.setdefault(proposal.proposal_id, []).append(deepcopy(event))
        return True

    def get_proposal(self, *, proposal_id: str) -> Optional[ProposalRecord]:
        with self._lock:
            proposal = self._proposals.get(proposal_id)
            return deepcopy(proposal) if proposal is not None else None

    def list_proposals(
        self,
        *,
        wallet_id: str,
        status: Optional[ProposalStatus],
        limit: int,
        cursor: Optional[str],
    ) -> tuple[list[ProposalRecord], Optional[str]]:
        with self._lock:
            rows = [row for row in self._proposals.values() if row.wallet_id == wallet_id]

        rows = sorted(rows, key=lambda x: (x.created_at, x.proposal_id), reverse=True)
        if status is not None:
            rows = [row for row in rows if row.status == status]

        if cursor:
            row_ids = [row.proposal_id for row in rows]
            if cursor not in row_ids:
                return [], None
            rows = rows[row_ids.index(cursor) + 1 :]

        page = rows[:limit]
        next_cursor = page[-1].proposal_id if len(rows) > limit else None
        return [deepcopy(row) for row in page], next_cursor

    def list_events(self, *, proposal_id: str) -> list[ProposalEventRecord]:
        with self._lock:
            events = self._events.get(proposal_id, [])
            return [deepcopy(event) for event in events]

    def compare_and_set_proposal(
        self,
        *,
        proposal: ProposalRecord,
        expected_version: int,
        event: ProposalEventRecord,
        signature: Optional[ProposalSignatureRecord] = None,
    ) -> Optional[ProposalTransitionResult]:
        with self._lock:
            stored = self._proposals.get(proposal.proposal_id)
            if stored is None or stored.version != expected_version:
                return None
            if signature is not None and any(
                existing.signer == signature.signer for existing in stored.signatures
            ):
                return None
            self._proposals[proposal.proposal_id] = deepcopy(proposal)
            self._events.setdefault(proposal.proposal_id, []).append(deepcopy(event))

        return ProposalTransitionResult(
            proposal=deepcopy(proposal),
            event=deepcopy(event),
            signature=deepcopy(signature) if signature is not None else None,
        )
