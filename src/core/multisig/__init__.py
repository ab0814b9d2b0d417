from src.core.multisig.cancellation import CancellationGuard
from src.core.multisig.errors import (
    MultisigAuthorizationError,
    MultisigConcurrencyError,
    MultisigError,
    MultisigExecutionError,
    MultisigIdempotencyConflictError,
    MultisigNotFoundError,
    MultisigStateError,
    MultisigValidationError,
)
from src.core.multisig.execution import (
    ActionExecutor,
    ActionSubmissionError,
    ExecutionCoordinator,
)
from src.core.multisig.models import (
    MultisigSupportabilityConfigResponse,
    MultisigWallet,
    MultisigWalletCreateRequest,
    MultisigWalletListResponse,
    Proposal,
    ProposalCancelRequest,
    ProposalCreateRequest,
    ProposalEventsResponse,
    ProposalExecuteRequest,
    ProposalExecutionResponse,
    ProposalListResponse,
    ProposalSignRequest,
    ProposalStatus,
)
from src.core.multisig.proposals import ProposalStore
from src.core.multisig.repository import MultisigRepository
from src.core.multisig.service import MultisigService
from src.core.multisig.signatures import SignatureCollector
from src.core.multisig.threshold import evaluate_proposal_status
from src.core.multisig.wallets import WalletRegistry

__all__ = [
    "ActionExecutor",
    "ActionSubmissionError",
    "CancellationGuard",
    "ExecutionCoordinator",
    "MultisigAuthorizationError",
    "MultisigConcurrencyError",
    "MultisigError",
    "MultisigExecutionError",
    "MultisigIdempotencyConflictError",
    "MultisigNotFoundError",
    "MultisigRepository",
    "MultisigService",
    "MultisigStateError",
    "MultisigSupportabilityConfigResponse",
    "MultisigValidationError",
    "MultisigWallet",
    "MultisigWalletCreateRequest",
    "MultisigWalletListResponse",
    "Proposal",
    "ProposalCancelRequest",
    "ProposalCreateRequest",
    "ProposalEventsResponse",
    "ProposalExecuteRequest",
    "ProposalExecutionResponse",
    "ProposalListResponse",
    "ProposalSignRequest",
    "ProposalStatus",
    "ProposalStore",
    "SignatureCollector",
    "WalletRegistry",
    "evaluate_proposal_status",
]
