import logging
import uuid
from datetime import datetime, timezone
from typing import Optional, Protocol

from src.core.multisig.errors import (
    MultisigConcurrencyError,
    MultisigExecutionError,
    MultisigStateError,
)
from src.core.multisig.models import (
    MultisigWalletRecord,
    ProposalEventRecord,
    ProposalRecord,
    ProposalStatus,
)
from src.core.multisig.proposals import ProposalStore
from src.core.multisig.repository import MultisigRepository, compare_and_set_attempt_budget
from src.core.multisig.wallets import WalletRegistry

SYSTEM_ACTOR_ID = "system"
DEFAULT_CLAIM_ATTEMPTS = 8

logger = logging.getLogger(__name__)


class ActionSubmissionError(Exception):
    pass


class ActionExecutor(Protocol):
    def submit(self, *, proposal: ProposalRecord, wallet: MultisigWalletRecord) -> str:
        """Submit the proposal's action and return the backend reference (e.g. chain tx id)."""
        ...

    def close(self) -> None:
        """Release backend resources such as pooled HTTP connections."""
        ...


class ExecutionCoordinator:
    """Runs approved proposals through claim, submit and finalize.

    The APPROVED -> EXECUTING compare-and-set is the execution claim: only the caller
    whose claim commits talks to the executor, so each proposal is submitted at most
    once per successful claim. A failed submission puts the proposal back to APPROVED.
    """

    def __init__(
        self,
        *,
        repository: MultisigRepository,
        proposals: ProposalStore,
        wallets: WalletRegistry,
        executor: ActionExecutor,
        max_claim_attempts: int = DEFAULT_CLAIM_ATTEMPTS,
    ) -> None:
        self._repository = repository
        self._proposals = proposals
        self._wallets = wallets
        self._executor = executor
        self._max_claim_attempts = max(1, max_claim_attempts)

    def execute_proposal(self, *, proposal_id: str, actor_id: Optional[str] = None) -> str:
        actor = actor_id or SYSTEM_ACTOR_ID
        claimed, wallet = self._claim(proposal_id=proposal_id, actor_id=actor)

        try:
            reference = self._executor.submit(proposal=claimed, wallet=wallet)
            if not reference:
                raise ActionSubmissionError("EMPTY_EXECUTION_REFERENCE")
        except Exception as exc:
            logger.warning(
                "Proposal execution failed; releasing claim. ProposalID=%s Error=%s",
                proposal_id,
                exc,
            )
            self._release(claimed=claimed, actor_id=actor, error=exc)
            raise MultisigExecutionError(f"EXECUTION_FAILED: {exc}") from exc

        self._finalize(claimed=claimed, actor_id=actor, reference=reference)
        logger.info("Proposal executed. ProposalID=%s Reference=%s", proposal_id, reference)
        return reference

    def _claim(
        self, *, proposal_id: str, actor_id: str
    ) -> tuple[ProposalRecord, MultisigWalletRecord]:
        attempt = 0
        while True:
            attempt += 1
            proposal = self._proposals.get_proposal(proposal_id=proposal_id)
            _ensure_executable(proposal.status)
            wallet = self._wallets.get_wallet(wallet_id=proposal.wallet_id)

            now = _utc_now()
            claimed = proposal.model_copy(deep=True)
            claimed.status = ProposalStatus.EXECUTING
            claimed.version = proposal.version + 1
            claimed.last_event_at = now
            event = _event(
                proposal=claimed,
                event_type="EXECUTION_CLAIMED",
                from_status=proposal.status,
                actor_id=actor_id,
                occurred_at=now,
                details={"signature_count": len(proposal.signatures)},
            )
            result = self._repository.compare_and_set_proposal(
                proposal=claimed, expected_version=proposal.version, event=event
            )
            if result is not None:
                logger.info("Execution claimed. ProposalID=%s Actor=%s", proposal_id, actor_id)
                return result.proposal, wallet
            # lost the race; the re-read decides between retrying and failing fast
            if attempt >= compare_and_set_attempt_budget(self._max_claim_attempts, wallet):
                raise MultisigConcurrencyError("PROPOSAL_CONCURRENT_UPDATE: retry the execution")

    def _finalize(self, *, claimed: ProposalRecord, actor_id: str, reference: str) -> None:
        now = _utc_now()
        executed = claimed.model_copy(deep=True)
        executed.status = ProposalStatus.EXECUTED
        executed.execution_reference = reference
        executed.executed_at = now
        executed.version = claimed.version + 1
        executed.last_event_at = now
        event = _event(
            proposal=executed,
            event_type="EXECUTED",
            from_status=ProposalStatus.EXECUTING,
            actor_id=actor_id,
            occurred_at=now,
            details={"execution_reference": reference},
        )
        result = self._repository.compare_and_set_proposal(
            proposal=executed, expected_version=claimed.version, event=event
        )
        if result is None:
            # the claim is held, so only an out-of-band write can get here; leave EXECUTING
            logger.error(
                "Execution finalize lost claim. ProposalID=%s Reference=%s",
                claimed.proposal_id,
                reference,
            )
            raise MultisigStateError("EXECUTION_CLAIM_LOST")

    def _release(self, *, claimed: ProposalRecord, actor_id: str, error: Exception) -> None:
        now = _utc_now()
        released = claimed.model_copy(deep=True)
        released.status = ProposalStatus.APPROVED
        released.version = claimed.version + 1
        released.last_event_at = now
        event = _event(
            proposal=released,
            event_type="EXECUTION_FAILED",
            from_status=ProposalStatus.EXECUTING,
            actor_id=actor_id,
            occurred_at=now,
            details={"error": str(error), "error_type": type(error).__name__},
        )
        result = self._repository.compare_and_set_proposal(
            proposal=released, expected_version=claimed.version, event=event
        )
        if result is None:
            logger.error("Execution release lost claim. ProposalID=%s", claimed.proposal_id)
            raise MultisigStateError("EXECUTION_CLAIM_LOST") from error


def _ensure_executable(status: ProposalStatus) -> None:
    if status == ProposalStatus.APPROVED:
        return
    if status == ProposalStatus.PENDING:
        raise MultisigStateError("PROPOSAL_NOT_APPROVED: not enough signatures")
    if status == ProposalStatus.EXECUTING:
        raise MultisigStateError("PROPOSAL_EXECUTION_IN_PROGRESS")
    if status == ProposalStatus.EXECUTED:
        raise MultisigStateError("PROPOSAL_ALREADY_EXECUTED")
    if status in (ProposalStatus.CANCELLED, ProposalStatus.REJECTED):
        raise MultisigStateError(f"PROPOSAL_TERMINAL_STATE: {status.value}")
    raise ValueError(f"UNKNOWN_PROPOSAL_STATUS:{status}")


def _event(
    *,
    proposal: ProposalRecord,
    event_type: str,
    from_status: ProposalStatus,
    actor_id: str,
    occurred_at: datetime,
    details: dict,
) -> ProposalEventRecord:
    return ProposalEventRecord(
        event_id=f"mse_{uuid.uuid4().hex[:12]}",
        proposal_id=proposal.proposal_id,
        event_type=event_type,
        from_status=from_status,
        to_status=proposal.status,
        actor_id=actor_id,
        occurred_at=occurred_at,
        details_json=details,
    )


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)
