import logging
import uuid
from datetime import datetime, timezone

from src.core.multisig.errors import (
    MultisigAuthorizationError,
    MultisigConcurrencyError,
    MultisigStateError,
    MultisigValidationError,
)
from src.core.multisig.models import (
    SIGNABLE_STATUSES,
    ProposalEventRecord,
    ProposalRecord,
    ProposalSignatureRecord,
)
from src.core.multisig.proposals import ProposalStore
from src.core.multisig.repository import MultisigRepository, compare_and_set_attempt_budget
from src.core.multisig.threshold import evaluate_proposal_status
from src.core.multisig.wallets import WalletRegistry

DEFAULT_MAX_ATTEMPTS = 8

logger = logging.getLogger(__name__)


class SignatureCollector:
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

    def sign_proposal(self, *, proposal_id: str, signer: str, signature: str) -> ProposalRecord:
        """Record ``signer``'s approval and recompute the proposal status.

        Each attempt re-reads the proposal and re-checks every precondition, so a
        cancellation or a competing signature committed in between is always observed.
        A lost compare-and-set means another writer committed, and every member signs at
        most once, so the attempt budget grows with the wallet's member count.
        """
        attempt = 0
        while True:
            attempt += 1
            proposal = self._proposals.get_proposal(proposal_id=proposal_id)
            if proposal.status not in SIGNABLE_STATUSES:
                raise MultisigStateError(f"PROPOSAL_NOT_SIGNABLE: {proposal.status.value}")
            wallet = self._wallets.get_wallet(wallet_id=proposal.wallet_id)
            if signer not in wallet.members:
                raise MultisigAuthorizationError("SIGNER_NOT_WALLET_MEMBER")
            if any(existing.signer == signer for existing in proposal.signatures):
                raise MultisigAuthorizationError("SIGNER_ALREADY_SIGNED")
            if not signature or not signature.strip():
                raise MultisigValidationError("SIGNATURE_REQUIRED")

            now = _utc_now()
            record = ProposalSignatureRecord(
                signature_id=f"mss_{uuid.uuid4().hex[:12]}",
                proposal_id=proposal.proposal_id,
                signer=signer,
                signature=signature,
                signed_at=now,
            )
            updated = proposal.model_copy(deep=True)
            updated.signatures.append(record)
            updated.status = evaluate_proposal_status(updated, wallet)
            updated.version = proposal.version + 1
            updated.last_event_at = now
            event = ProposalEventRecord(
                event_id=f"mse_{uuid.uuid4().hex[:12]}",
                proposal_id=proposal.proposal_id,
                event_type="SIGNED",
                from_status=proposal.status,
                to_status=updated.status,
                actor_id=signer,
                occurred_at=now,
                details_json={
                    "signature_id": record.signature_id,
                    "signature_count": len(updated.signatures),
                    "threshold": wallet.threshold,
                },
            )

            result = self._repository.compare_and_set_proposal(
                proposal=updated,
                expected_version=proposal.version,
                event=event,
                signature=record,
            )
            if result is not None:
                return result.proposal
            logger.debug(
                "Stale proposal version on sign. ProposalID=%s Attempt=%s", proposal_id, attempt
            )
            if attempt >= compare_and_set_attempt_budget(self._max_attempts, wallet):
                raise MultisigConcurrencyError("PROPOSAL_CONCURRENT_UPDATE: retry the signature")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)
