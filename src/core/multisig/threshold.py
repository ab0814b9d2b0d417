from src.core.multisig.models import MultisigWalletRecord, ProposalRecord, ProposalStatus


def evaluate_proposal_status(
    proposal: ProposalRecord, wallet: MultisigWalletRecord
) -> ProposalStatus:
    """Derive the status implied by the recorded signatures.

    Pure: terminal and in-flight statuses are returned unchanged, otherwise the status
    is APPROVED once the signature count reaches the wallet threshold.
    """
    status = proposal.status
    if status in (ProposalStatus.PENDING, ProposalStatus.APPROVED):
        if len(proposal.signatures) >= wallet.threshold:
            return ProposalStatus.APPROVED
        return ProposalStatus.PENDING
    if status in (
        ProposalStatus.EXECUTING,
        ProposalStatus.EXECUTED,
        ProposalStatus.REJECTED,
        ProposalStatus.CANCELLED,
    ):
        return status
    raise ValueError(f"UNKNOWN_PROPOSAL_STATUS:{status}")
