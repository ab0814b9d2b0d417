from typing import Optional, Protocol

from src.core.multisig.models import (
    MultisigWalletRecord,
    ProposalEventRecord,
    ProposalIdempotencyRecord,
    ProposalRecord,
    ProposalSignatureRecord,
    ProposalStatus,
    ProposalTransitionResult,
)


class MultisigRepository(Protocol):
    def create_wallet(self, wallet: MultisigWalletRecord) -> None: ...

    def get_wallet(self, *, wallet_id: str) -> Optional[MultisigWalletRecord]: ...

    def list_wallets(self) -> list[MultisigWalletRecord]: ...

    def get_idempotency(self, *, idempotency_key: str) -> Optional[ProposalIdempotencyRecord]: ...

    def save_idempotency(self, record: ProposalIdempotencyRecord) -> bool:
        """Bind a key unless it is already bound; returns False when an earlier binding wins."""
        ...

    def create_proposal(
        self,
        *,
        proposal: ProposalRecord,
        event: ProposalEventRecord,
        idempotency: Optional[ProposalIdempotencyRecord] = None,
    ) -> bool:
        """Insert the proposal and its CREATED event, binding ``idempotency`` in the same unit.

        Returns False and writes nothing when the idempotency key is already bound.
        """
        ...

    def get_proposal(self, *, proposal_id: str) -> Optional[ProposalRecord]: ...

    def list_proposals(
        self,
        *,
        wallet_id: str,
        status: Optional[ProposalStatus],
        limit: int,
        cursor: Optional[str],
    ) -> tuple[list[ProposalRecord], Optional[str]]: ...

    def list_events(self, *, proposal_id: str) -> list[ProposalEventRecord]: ...

    def compare_and_set_proposal(
        self,
        *,
        proposal: ProposalRecord,
        expected_version: int,
        event: ProposalEventRecord,
        signature: Optional[ProposalSignatureRecord] = None,
    ) -> Optional[ProposalTransitionResult]:
        """Commit ``proposal`` only if the stored version still equals ``expected_version``.

        The snapshot, the optional appended signature and the audit event are written as
        one unit. Returns ``None`` without writing anything when another writer committed
        first.
        """
        ...


def compare_and_set_attempt_budget(max_attempts: int, wallet: MultisigWalletRecord) -> int:
    """Attempts a proposal writer may spend on lost compare-and-set races.

    Every lost race is a commit by another writer. Signatures are bounded by the member
    count, so ``max_attempts`` only has to absorb the remaining transitions.
    """
    return max(1, max_attempts) + len(wallet.members)
