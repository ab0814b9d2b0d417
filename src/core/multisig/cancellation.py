import uuid
from datetime import datetime, timezone

from src.core.multisig.errors import (
    MultisigAuthorizationError,
    MultisigConcurrencyError,
    MultisigStateError,
)
from src.core.multisig.models import ProposalEventRecord, ProposalRecord, ProposalStatus
from src.core.multisig.proposals import ProposalStore
from src.core.multisig.repository import MultisigRepository, compare_and_set_attempt_budget
from src.core.multisig.wallets import WalletRegistry

DEFAULT_MAX_ATTEMPTS = 8


class CancellationGuard:
    def __init__(
        self,
        *,
        repository: MultisigRepository,
        proposals: ProposalStore,
        wallets: WalletRegistry,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        self._repository = repository
        self._proposals = proposals
        self._wallets = wallets
        self._max_attempts = max(1, max_attempts)

    def cancel_proposal(self, *, proposal_id: str, requestor: str) -> ProposalRecord:
        attempt = 0
        while True:
            attempt += 1
            proposal = self._proposals.get_proposal(proposal_id=proposal_id)
            if proposal.status != ProposalStatus.PENDING:
                raise MultisigStateError(f"PROPOSAL_NOT_CANCELLABLE: {proposal.status.value}")
            if requestor != proposal.created_by:
                raise MultisigAuthorizationError("CANCEL_REQUIRES_CREATOR")

            now = datetime.now(timezone.utc)
            cancelled = proposal.model_copy(deep=True)
            cancelled.status = ProposalStatus.CANCELLED
            cancelled.version = proposal.version + 1
            cancelled.last_event_at = now
            event = ProposalEventRecord(
                event_id=f"mse_{uuid.uuid4().hex[:12]}",
                proposal_id=proposal.proposal_id,
                event_type="CANCELLED",
                from_status=proposal.status,
                to_status=ProposalStatus.CANCELLED,
                actor_id=requestor,
                occurred_at=now,
                details_json={"signature_count": len(proposal.signatures)},
            )
            result = self._repository.compare_and_set_proposal(
                proposal=cancelled, expected_version=proposal.version, event=event
            )
            if result is not None:
                return result.proposal

            wallet = self._wallets.get_wallet(wallet_id=proposal.wallet_id)
            if attempt >= compare_and_set_attempt_budget(self._max_attempts, wallet):
                raise MultisigConcurrencyError(
                    "PROPOSAL_CONCURRENT_UPDATE: retry the cancellation"
                )
