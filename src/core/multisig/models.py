from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class ProposalStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    EXECUTING = "EXECUTING"
    EXECUTED = "EXECUTED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


TERMINAL_STATUSES = frozenset(
    {ProposalStatus.EXECUTED, ProposalStatus.REJECTED, ProposalStatus.CANCELLED}
)
SIGNABLE_STATUSES = frozenset({ProposalStatus.PENDING, ProposalStatus.APPROVED})

ProposalEventType = Literal[
    "CREATED",
    "SIGNED",
    "EXECUTION_CLAIMED",
    "EXECUTION_FAILED",
    "EXECUTED",
    "CANCELLED",
]


class MultisigWalletCreateRequest(BaseModel):
    name: str = Field(
        description="Human label for the multisig wallet.",
        examples=["Treasury"],
    )
    members: List[str] = Field(
        description="Member addresses (base58, 32-44 characters). Duplicates are rejected.",
        examples=[
            [
                "4Nd1mBQtrMJVYVfKf2PJy9NZUZdTAsp7D4xWLs4gDB4T",
                "8qbHbw2BbbTHBW1sbeqakYXVKRQM8Ne7pLK7m6CVfeR",
                "9xQeWvG816bUx9EPjHmaT23yvVM2ZWbrrpZb9PusVFin",
            ]
        ],
    )
    threshold: int = Field(
        description="Number of member signatures required to approve a proposal.",
        examples=[2],
    )


class MultisigWallet(BaseModel):
    wallet_id: str = Field(description="Multisig wallet identifier.", examples=["msw_001"])
    name: str = Field(description="Human label for the wallet.", examples=["Treasury"])
    address: str = Field(
        description="Deterministic wallet address derived from sorted members and threshold.",
        examples=["5ZWj7a1f8tWkjBESHKgrLmXshuXxqeY9SYcfbshpAqPG"],
    )
    threshold: int = Field(description="Required signature count.", examples=[2])
    members: List[str] = Field(
        description="Member addresses allowed to create and sign proposals.",
        examples=[["4Nd1mBQtrMJVYVfKf2PJy9NZUZdTAsp7D4xWLs4gDB4T"]],
    )
    created_at: str = Field(
        description="UTC ISO8601 wallet creation timestamp.",
        examples=["2026-10-19T12:00:00+00:00"],
    )
    balance: float = Field(
        description="Cached balance, advisory only and never used for authorization.",
        examples=[0.0],
    )


class MultisigWalletListResponse(BaseModel):
    items: List[MultisigWallet] = Field(
        description="Wallets ordered by creation time, oldest first.",
        examples=[[{"wallet_id": "msw_001", "name": "Treasury", "threshold": 2}]],
    )


class ProposalCreateRequest(BaseModel):
    action_payload: str = Field(
        description="Opaque serialized wallet action to execute once approved.",
        examples=["AQABAgMEBQYHCAkKCwwNDg8Q"],
    )
    created_by: str = Field(
        description="Member address creating the proposal.",
        examples=["4Nd1mBQtrMJVYVfKf2PJy9NZUZdTAsp7D4xWLs4gDB4T"],
    )
    description: Optional[str] = Field(
        default=None,
        description="Optional human description shown to signers.",
        examples=["Pay Q4 audit invoice"],
    )


class ProposalSignRequest(BaseModel):
    signer: str = Field(
        description="Member address recording its approval.",
        examples=["8qbHbw2BbbTHBW1sbeqakYXVKRQM8Ne7pLK7m6CVfeR"],
    )
    signature: str = Field(
        description="Opaque signature produced by the member over the action payload.",
        examples=["3yZe7d5sQwS8T1c6VvnXW2d8iJZ1a1sKcF5m"],
    )


class ProposalExecuteRequest(BaseModel):
    actor_id: Optional[str] = Field(
        default=None,
        description="Optional actor id recorded on the execution audit events.",
        examples=["4Nd1mBQtrMJVYVfKf2PJy9NZUZdTAsp7D4xWLs4gDB4T"],
    )


class ProposalCancelRequest(BaseModel):
    requestor: str = Field(
        description="Address requesting cancellation. Must be the proposal creator.",
        examples=["4Nd1mBQtrMJVYVfKf2PJy9NZUZdTAsp7D4xWLs4gDB4T"],
    )


class ProposalSignature(BaseModel):
    signature_id: str = Field(description="Signature record identifier.", examples=["mss_001"])
    proposal_id: str = Field(description="Proposal identifier.", examples=["msp_001"])
    signer: str = Field(
        description="Signing member address.",
        examples=["8qbHbw2BbbTHBW1sbeqakYXVKRQM8Ne7pLK7m6CVfeR"],
    )
    signature: str = Field(description="Opaque signature value.", examples=["3yZe7d5sQwS8"])
    signed_at: str = Field(
        description="UTC ISO8601 signature timestamp.",
        examples=["2026-10-19T12:05:00+00:00"],
    )


class Proposal(BaseModel):
    proposal_id: str = Field(description="Proposal identifier.", examples=["msp_001"])
    wallet_id: str = Field(description="Owning multisig wallet identifier.", examples=["msw_001"])
    action_payload: str = Field(
        description="Opaque serialized wallet action.", examples=["AQABAgMEBQYHCAkKCwwNDg8Q"]
    )
    status: ProposalStatus = Field(description="Current proposal status.", examples=["PENDING"])
    created_by: str = Field(
        description="Member address that created the proposal.",
        examples=["4Nd1mBQtrMJVYVfKf2PJy9NZUZdTAsp7D4xWLs4gDB4T"],
    )
    created_at: str = Field(
        description="UTC ISO8601 creation timestamp.",
        examples=["2026-10-19T12:00:00+00:00"],
    )
    description: Optional[str] = Field(
        default=None, description="Optional human description.", examples=["Pay invoice"]
    )
    signatures: List[ProposalSignature] = Field(
        default_factory=list,
        description="Recorded member signatures, oldest first.",
        examples=[[{"signer": "8qbHbw2BbbTHBW1sbeqakYXVKRQM8Ne7pLK7m6CVfeR"}]],
    )
    signature_count: int = Field(description="Number of recorded signatures.", examples=[1])
    threshold: int = Field(description="Wallet signature threshold.", examples=[2])
    executed_at: Optional[str] = Field(
        default=None,
        description="UTC ISO8601 execution timestamp when executed.",
        examples=["2026-10-19T12:30:00+00:00"],
    )
    execution_reference: Optional[str] = Field(
        default=None,
        description="Reference returned by the execution backend, such as a chain tx id.",
        examples=["5VfYmGC7pZr4hJm2"],
    )
    version: int = Field(
        description="Monotonic record version, incremented by every committed change.",
        examples=[3],
    )
    last_event_at: str = Field(
        description="UTC ISO8601 timestamp of the latest audit event.",
        examples=["2026-10-19T12:30:00+00:00"],
    )


class ProposalListResponse(BaseModel):
    items: List[Proposal] = Field(
        description="Proposals ordered newest first by creation time then id.",
        examples=[[{"proposal_id": "msp_001", "status": "PENDING"}]],
    )
    next_cursor: Optional[str] = Field(
        default=None,
        description="Cursor for the next page when more rows exist.",
        examples=["msp_001"],
    )


class ProposalExecutionResponse(BaseModel):
    proposal_id: str = Field(description="Executed proposal identifier.", examples=["msp_001"])
    execution_reference: str = Field(
        description="Reference returned by the execution backend.",
        examples=["5VfYmGC7pZr4hJm2"],
    )
    proposal: Proposal = Field(
        description="Proposal snapshot after execution.",
        examples=[{"proposal_id": "msp_001", "status": "EXECUTED"}],
    )


class ProposalEvent(BaseModel):
    event_id: str = Field(description="Audit event identifier.", examples=["mse_001"])
    proposal_id: str = Field(description="Proposal identifier.", examples=["msp_001"])
    event_type: ProposalEventType = Field(description="Audit event type.", examples=["SIGNED"])
    from_status: Optional[ProposalStatus] = Field(
        default=None, description="Status before the event.", examples=["PENDING"]
    )
    to_status: ProposalStatus = Field(
        description="Status after the event.", examples=["APPROVED"]
    )
    actor_id: str = Field(
        description="Actor that triggered the event.",
        examples=["8qbHbw2BbbTHBW1sbeqakYXVKRQM8Ne7pLK7m6CVfeR"],
    )
    occurred_at: str = Field(
        description="UTC ISO8601 event timestamp.",
        examples=["2026-10-19T12:05:00+00:00"],
    )
    details: Dict[str, Any] = Field(
        default_factory=dict,
        description="Structured event details captured for audit.",
        examples=[{"signature_count": 2, "threshold": 2}],
    )


class ProposalEventsResponse(BaseModel):
    proposal_id: str = Field(description="Proposal identifier.", examples=["msp_001"])
    events: List[ProposalEvent] = Field(
        description="Append-only audit events, oldest first.",
        examples=[[{"event_type": "CREATED", "to_status": "PENDING"}]],
    )


class MultisigSupportabilityConfigResponse(BaseModel):
    store_backend: str = Field(
        description="Configured multisig repository backend name.", examples=["SQLITE"]
    )
    backend_ready: bool = Field(
        description="Whether the repository backend initialized with current settings.",
        examples=[True],
    )
    backend_init_error: Optional[str] = Field(
        default=None,
        description="Stable initialization error code when the backend is not ready.",
        examples=["MULTISIG_POSTGRES_DSN_REQUIRED"],
    )
    execution_backend: str = Field(
        description="Configured action execution backend name.", examples=["SIMULATED"]
    )
    sign_max_attempts: int = Field(
        description="Compare-and-set attempts for concurrent proposal updates.",
        examples=[8],
    )
    support_apis_enabled: bool = Field(
        description="Whether audit and supportability endpoints are enabled.",
        examples=[True],
    )


class MultisigWalletRecord(BaseModel):
    wallet_id: str = Field(description="Internal wallet identifier.", examples=["msw_001"])
    name: str = Field(description="Internal wallet label.", examples=["Treasury"])
    address: str = Field(description="Internal derived address.", examples=["5ZWj7a1f8tWk"])
    threshold: int = Field(description="Internal threshold.", examples=[2])
    members: List[str] = Field(description="Internal member addresses.", examples=[["4Nd1"]])
    created_at: datetime = Field(
        description="Internal creation timestamp.", examples=["2026-10-19T12:00:00+00:00"]
    )
    balance: float = Field(default=0.0, description="Internal cached balance.", examples=[0.0])


class ProposalSignatureRecord(BaseModel):
    signature_id: str = Field(description="Internal signature identifier.", examples=["mss_001"])
    proposal_id: str = Field(description="Internal proposal identifier.", examples=["msp_001"])
    signer: str = Field(description="Internal signer address.", examples=["8qbH"])
    signature: str = Field(description="Internal opaque signature.", examples=["3yZe"])
    signed_at: datetime = Field(
        description="Internal signature timestamp.", examples=["2026-10-19T12:05:00+00:00"]
    )


class ProposalRecord(BaseModel):
    proposal_id: str = Field(description="Internal proposal identifier.", examples=["msp_001"])
    wallet_id: str = Field(description="Internal wallet identifier.", examples=["msw_001"])
    action_payload: str = Field(description="Internal action payload.", examples=["AQAB"])
    status: ProposalStatus = Field(description="Internal status.", examples=["PENDING"])
    created_by: str = Field(description="Internal creator address.", examples=["4Nd1"])
    created_at: datetime = Field(
        description="Internal creation timestamp.", examples=["2026-10-19T12:00:00+00:00"]
    )
    description: Optional[str] = Field(
        default=None, description="Internal description.", examples=["Pay invoice"]
    )
    signatures: List[ProposalSignatureRecord] = Field(
        default_factory=list, description="Internal signatures, oldest first.", examples=[[]]
    )
    executed_at: Optional[datetime] = Field(
        default=None, description="Internal execution timestamp.", examples=[None]
    )
    execution_reference: Optional[str] = Field(
        default=None, description="Internal execution reference.", examples=[None]
    )
    version: int = Field(description="Internal record version.", examples=[1])
    last_event_at: datetime = Field(
        description="Internal latest-event timestamp.", examples=["2026-10-19T12:00:00+00:00"]
    )


class ProposalEventRecord(BaseModel):
    event_id: str = Field(description="Internal event identifier.", examples=["mse_001"])
    proposal_id: str = Field(description="Internal proposal identifier.", examples=["msp_001"])
    event_type: ProposalEventType = Field(
        description="Internal event type.", examples=["CREATED"]
    )
    from_status: Optional[ProposalStatus] = Field(
        default=None, description="Internal previous status.", examples=[None]
    )
    to_status: ProposalStatus = Field(description="Internal next status.", examples=["PENDING"])
    actor_id: str = Field(description="Internal actor id.", examples=["4Nd1"])
    occurred_at: datetime = Field(
        description="Internal event timestamp.", examples=["2026-10-19T12:00:00+00:00"]
    )
    details_json: Dict[str, Any] = Field(
        default_factory=dict, description="Internal structured details.", examples=[{}]
    )


class ProposalIdempotencyRecord(BaseModel):
    idempotency_key: str = Field(
        description="Internal idempotency key.", examples=["proposal-create-idem-001"]
    )
    request_hash: str = Field(
        description="Internal canonical request hash.", examples=["sha256:abc"]
    )
    proposal_id: str = Field(description="Internal proposal identifier.", examples=["msp_001"])
    created_at: datetime = Field(
        description="Internal idempotency creation timestamp.",
        examples=["2026-10-19T12:00:00+00:00"],
    )


class ProposalTransitionResult(BaseModel):
    proposal: ProposalRecord = Field(
        description="Internal proposal snapshot committed by the transition.",
        examples=[{"proposal_id": "msp_001", "status": "APPROVED"}],
    )
    event: ProposalEventRecord = Field(
        description="Internal audit event committed with the transition.",
        examples=[{"event_id": "mse_001", "event_type": "SIGNED"}],
    )
    signature: Optional[ProposalSignatureRecord] = Field(
        default=None,
        description="Internal signature appended by the transition when applicable.",
        examples=[{"signature_id": "mss_001"}],
    )
