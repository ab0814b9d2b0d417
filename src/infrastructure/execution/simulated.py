import hashlib
from typing import Optional

import base58

from src.core.multisig.execution import ActionSubmissionError
from src.core.multisig.models import MultisigWalletRecord, ProposalRecord

SIMULATED_REFERENCE_PREFIX = "sim_"


class SimulatedActionExecutor:
    """Local stand-in for the execution backend.

    References are derived from the proposal id and action payload, so resubmitting the
    same proposal yields the same reference. `fail_with` makes every submission raise.
    """

    def __init__(self, *, fail_with: Optional[str] = None) -> None:
        self.fail_with = fail_with
        self.submissions: list[str] = []
        self.closed = False

    def submit(self, *, proposal: ProposalRecord, wallet: MultisigWalletRecord) -> str:
        self.submissions.append(proposal.proposal_id)
        if self.fail_with is not None:
            raise ActionSubmissionError(self.fail_with)
        digest = hashlib.sha256(
            f"{proposal.proposal_id}:{proposal.action_payload}".encode("utf-8")
        ).digest()
        return f"{SIMULATED_REFERENCE_PREFIX}{base58.b58encode(digest).decode('ascii')}"

    def close(self) -> None:
        self.closed = True
