import uuid
from datetime import datetime, timezone
from typing import Optional

from src.core.common.canonical import hash_canonical_payload
from src.core.multisig.errors import (
    MultisigAuthorizationError,
    MultisigIdempotencyConflictError,
    MultisigNotFoundError,
    MultisigValidationError,
)
from src.core.multisig.models import (
    ProposalEventRecord,
    ProposalIdempotencyRecord,
    ProposalRecord,
    ProposalStatus,
)
from src.core.multisig.repository import MultisigRepository
from src.core.multisig.wallets import WalletRegistry

DEFAULT_PROPOSAL_PAGE_SIZE = 50


class ProposalStore:
    def __init__(self, *, repository: MultisigRepository, wallets: WalletRegistry) -> None:
        self._repository = repository
        self._wallets = wallets

    def create_proposal(
        self,
        *,
        wallet_id: str,
        action_payload: str,
        created_by: str,
        description: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> ProposalRecord:
        request_hash = hash_canonical_payload(
            {
                "wallet_id": wallet_id,
                "action_payload": action_payload,
                "created_by": created_by,
                "description": description,
            }
        )
        if idempotency_key is not None:
            replayed = self._replay(idempotency_key=idempotency_key, request_hash=request_hash)
            if replayed is not None:
                return replayed

        wallet = self._wallets.get_wallet(wallet_id=wallet_id)
        if created_by not in wallet.members:
            raise MultisigAuthorizationError("CREATOR_NOT_WALLET_MEMBER")
        if not action_payload or not action_payload.strip():
            raise MultisigValidationError("ACTION_PAYLOAD_REQUIRED")

        now = _utc_now()
        proposal = ProposalRecord(
            proposal_id=f"msp_{uuid.uuid4().hex[:12]}",
            wallet_id=wallet.wallet_id,
            action_payload=action_payload,
            status=ProposalStatus.PENDING,
            created_by=created_by,
            created_at=now,
            description=description,
            signatures=[],
            version=1,
            last_event_at=now,
        )
        event = ProposalEventRecord(
            event_id=f"mse_{uuid.uuid4().hex[:12]}",
            proposal_id=proposal.proposal_id,
            event_type="CREATED",
            from_status=None,
            to_status=ProposalStatus.PENDING,
            actor_id=created_by,
            occurred_at=now,
            details_json={"threshold": wallet.threshold, "member_count": len(wallet.members)},
        )
        binding = None
        if idempotency_key is not None:
            binding = ProposalIdempotencyRecord(
                idempotency_key=idempotency_key,
                request_hash=request_hash,
                proposal_id=proposal.proposal_id,
                created_at=now,
            )
        if not self._repository.create_proposal(
            proposal=proposal, event=event, idempotency=binding
        ):
            # a concurrent request bound the key first
            replayed = self._replay(idempotency_key=idempotency_key, request_hash=request_hash)
            if replayed is None:
                raise MultisigIdempotencyConflictError("IDEMPOTENCY_KEY_CONFLICT: binding lost")
            return replayed
        return proposal

    def _replay(self, *, idempotency_key: str, request_hash: str) -> Optional[ProposalRecord]:
        existing = self._repository.get_idempotency(idempotency_key=idempotency_key)
        if existing is None:
            return None
        if existing.request_hash != request_hash:
            raise MultisigIdempotencyConflictError(
                "IDEMPOTENCY_KEY_CONFLICT: request hash mismatch"
            )
        return self.get_proposal(proposal_id=existing.proposal_id)

    def get_proposal(self, *, proposal_id: str) -> ProposalRecord:
        proposal = self._repository.get_proposal(proposal_id=proposal_id)
        if proposal is None:
            raise MultisigNotFoundError("PROPOSAL_NOT_FOUND")
        return proposal

    def list_proposals(
        self,
        *,
        wallet_id: str,
        status: Optional[ProposalStatus] = None,
        limit: int = DEFAULT_PROPOSAL_PAGE_SIZE,
        cursor: Optional[str] = None,
    ) -> tuple[list[ProposalRecord], Optional[str]]:
        """List a wallet's proposals newest first, ordered by ``(created_at, proposal_id)``."""
        self._wallets.get_wallet(wallet_id=wallet_id)
        return self._repository.list_proposals(
            wallet_id=wallet_id,
            status=status,
            limit=max(1, limit),
            cursor=cursor,
        )

    def list_events(self, *, proposal_id: str) -> list[ProposalEventRecord]:
        self.get_proposal(proposal_id=proposal_id)
        return self._repository.list_events(proposal_id=proposal_id)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)
