from typing import Optional

from src.core.multisig.cancellation import CancellationGuard
from src.core.multisig.execution import ActionExecutor, ExecutionCoordinator
from src.core.multisig.models import (
    MultisigWallet,
    MultisigWalletCreateRequest,
    MultisigWalletListResponse,
    MultisigWalletRecord,
    Proposal,
    ProposalCancelRequest,
    ProposalCreateRequest,
    ProposalEvent,
    ProposalEventRecord,
    ProposalEventsResponse,
    ProposalExecuteRequest,
    ProposalExecutionResponse,
    ProposalListResponse,
    ProposalRecord,
    ProposalSignature,
    ProposalSignatureRecord,
    ProposalSignRequest,
    ProposalStatus,
)
from src.core.multisig.proposals import DEFAULT_PROPOSAL_PAGE_SIZE, ProposalStore
from src.core.multisig.repository import MultisigRepository
from src.core.multisig.signatures import DEFAULT_MAX_ATTEMPTS, SignatureCollector
from src.core.multisig.wallets import WalletRegistry


class MultisigService:
    def __init__(
        self,
        *,
        repository: MultisigRepository,
        executor: ActionExecutor,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        self._repository = repository
        self._executor = executor
        self.wallets = WalletRegistry(repository=repository)
        self.proposals = ProposalStore(repository=repository, wallets=self.wallets)
        self.signatures = SignatureCollector(
            repository=repository,
            proposals=self.proposals,
            wallets=self.wallets,
            max_attempts=max_attempts,
        )
        self.execution = ExecutionCoordinator(
            repository=repository,
            proposals=self.proposals,
            wallets=self.wallets,
            executor=executor,
            max_claim_attempts=max_attempts,
        )
        self.cancellation = CancellationGuard(
            repository=repository,
            proposals=self.proposals,
            wallets=self.wallets,
            max_attempts=max_attempts,
        )

    def close(self) -> None:
        self._executor.close()

    def create_wallet(self, *, payload: MultisigWalletCreateRequest) -> MultisigWallet:
        wallet = self.wallets.create_wallet(
            name=payload.name,
            members=payload.members,
            threshold=payload.threshold,
        )
        return self._to_wallet(wallet)

    def get_wallet(self, *, wallet_id: str) -> MultisigWallet:
        return self._to_wallet(self.wallets.get_wallet(wallet_id=wallet_id))

    def list_wallets(self) -> MultisigWalletListResponse:
        return MultisigWalletListResponse(
            items=[self._to_wallet(wallet) for wallet in self.wallets.list_wallets()]
        )

    def create_proposal(
        self,
        *,
        wallet_id: str,
        payload: ProposalCreateRequest,
        idempotency_key: Optional[str] = None,
    ) -> Proposal:
        proposal = self.proposals.create_proposal(
            wallet_id=wallet_id,
            action_payload=payload.action_payload,
            created_by=payload.created_by,
            description=payload.description,
            idempotency_key=idempotency_key,
        )
        return self._to_proposal(proposal)

    def get_proposal(self, *, proposal_id: str) -> Proposal:
        return self._to_proposal(self.proposals.get_proposal(proposal_id=proposal_id))

    def list_proposals(
        self,
        *,
        wallet_id: str,
        status: Optional[ProposalStatus] = None,
        limit: int = DEFAULT_PROPOSAL_PAGE_SIZE,
        cursor: Optional[str] = None,
    ) -> ProposalListResponse:
        wallet = self.wallets.get_wallet(wallet_id=wallet_id)
        rows, next_cursor = self.proposals.list_proposals(
            wallet_id=wallet_id, status=status, limit=limit, cursor=cursor
        )
        return ProposalListResponse(
            items=[self._to_proposal(row, wallet=wallet) for row in rows],
            next_cursor=next_cursor,
        )

    def sign_proposal(self, *, proposal_id: str, payload: ProposalSignRequest) -> Proposal:
        proposal = self.signatures.sign_proposal(
            proposal_id=proposal_id,
            signer=payload.signer,
            signature=payload.signature,
        )
        return self._to_proposal(proposal)

    def execute_proposal(
        self, *, proposal_id: str, payload: Optional[ProposalExecuteRequest] = None
    ) -> ProposalExecutionResponse:
        reference = self.execution.execute_proposal(
            proposal_id=proposal_id,
            actor_id=payload.actor_id if payload is not None else None,
        )
        return ProposalExecutionResponse(
            proposal_id=proposal_id,
            execution_reference=reference,
            proposal=self.get_proposal(proposal_id=proposal_id),
        )

    def cancel_proposal(self, *, proposal_id: str, payload: ProposalCancelRequest) -> Proposal:
        proposal = self.cancellation.cancel_proposal(
            proposal_id=proposal_id, requestor=payload.requestor
        )
        return self._to_proposal(proposal)

    def list_proposal_events(self, *, proposal_id: str) -> ProposalEventsResponse:
        events = self.proposals.list_events(proposal_id=proposal_id)
        return ProposalEventsResponse(
            proposal_id=proposal_id,
            events=[self._to_event(event) for event in events],
        )

    def _to_wallet(self, wallet: MultisigWalletRecord) -> MultisigWallet:
        return MultisigWallet(
            wallet_id=wallet.wallet_id,
            name=wallet.name,
            address=wallet.address,
            threshold=wallet.threshold,
            members=list(wallet.members),
            created_at=wallet.created_at.isoformat(),
            balance=wallet.balance,
        )

    def _to_proposal(
        self, proposal: ProposalRecord, *, wallet: Optional[MultisigWalletRecord] = None
    ) -> Proposal:
        if wallet is None:
            wallet = self.wallets.get_wallet(wallet_id=proposal.wallet_id)
        return Proposal(
            proposal_id=proposal.proposal_id,
            wallet_id=proposal.wallet_id,
            action_payload=proposal.action_payload,
            status=proposal.status,
            created_by=proposal.created_by,
            created_at=proposal.created_at.isoformat(),
            description=proposal.description,
            signatures=[self._to_signature(signature) for signature in proposal.signatures],
            signature_count=len(proposal.signatures),
            threshold=wallet.threshold,
            executed_at=(
                proposal.executed_at.isoformat() if proposal.executed_at is not None else None
            ),
            execution_reference=proposal.execution_reference,
            version=proposal.version,
            last_event_at=proposal.last_event_at.isoformat(),
        )

    def _to_signature(self, signature: ProposalSignatureRecord) -> ProposalSignature:
        return ProposalSignature(
            signature_id=signature.signature_id,
            proposal_id=signature.proposal_id,
            signer=signature.signer,
            signature=signature.signature,
            signed_at=signature.signed_at.isoformat(),
        )

    def _to_event(self, event: ProposalEventRecord) -> ProposalEvent:
        return ProposalEvent(
            event_id=event.event_id,
            proposal_id=event.proposal_id,
            event_type=event.event_type,
            from_status=event.from_status,
            to_status=event.to_status,
            actor_id=event.actor_id,
            occurred_at=event.occurred_at.isoformat(),
            details=event.details_json,
        )
