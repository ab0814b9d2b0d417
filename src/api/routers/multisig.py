from threading import Lock
from typing import Annotated, Optional

from fastapi import APIRouter, Body, Depends, Header, HTTPException, Path, Query, status

from src.api.routers import multisig_config
from src.api.routers.multisig_http_errors import raise_multisig_http_exception
from src.core.multisig import (
    MultisigError,
    MultisigService,
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

router = APIRouter(prefix="/multisig")

_SERVICE: Optional[MultisigService] = None
_SERVICE_LOCK = Lock()

WALLETS_TAG = "Multisig Wallets"
PROPOSALS_TAG = "Multisig Proposals"
SUPPORT_TAG = "Multisig Supportability"


def get_multisig_service() -> MultisigService:
    global _SERVICE
    with _SERVICE_LOCK:
        if _SERVICE is None:
            try:
                repository = multisig_config.build_repository()
                executor = multisig_config.build_action_executor()
            except RuntimeError as exc:
                raise HTTPException(
                    status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                    detail=str(exc),
                ) from exc
            _SERVICE = MultisigService(
                repository=repository,
                executor=executor,
                max_attempts=multisig_config.multisig_max_attempts(),
            )
        return _SERVICE


def shutdown_multisig_service() -> None:
    global _SERVICE
    with _SERVICE_LOCK:
        service, _SERVICE = _SERVICE, None
    if service is not None:
        service.close()


def reset_multisig_service_for_tests() -> None:
    shutdown_multisig_service()


def _assert_support_apis_enabled() -> None:
    if not multisig_config.env_flag("MULTISIG_SUPPORT_APIS_ENABLED", True):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="MULTISIG_SUPPORT_APIS_DISABLED",
        )


WalletIdPath = Annotated[
    str,
    Path(description="Multisig wallet identifier.", examples=["msw_3f9a1c2b7d4e"]),
]
ProposalIdPath = Annotated[
    str,
    Path(description="Multisig proposal identifier.", examples=["msp_8e2d6b1a0c9f"]),
]


@router.post(
    "/wallets",
    response_model=MultisigWallet,
    status_code=status.HTTP_200_OK,
    tags=[WALLETS_TAG],
    summary="Create Multisig Wallet",
    description=(
        "Validates members and threshold, derives the deterministic wallet address, "
        "and persists the wallet."
    ),
)
def create_wallet(
    payload: MultisigWalletCreateRequest,
    service: Annotated[MultisigService, Depends(get_multisig_service)] = None,
) -> MultisigWallet:
    try:
        return service.create_wallet(payload=payload)
    except MultisigError as exc:
        raise_multisig_http_exception(exc)


@router.get(
    "/wallets",
    response_model=MultisigWalletListResponse,
    status_code=status.HTTP_200_OK,
    tags=[WALLETS_TAG],
    summary="List Multisig Wallets",
    description="Lists all wallets in creation order.",
)
def list_wallets(
    service: Annotated[MultisigService, Depends(get_multisig_service)] = None,
) -> MultisigWalletListResponse:
    return service.list_wallets()


@router.get(
    "/wallets/{wallet_id}",
    response_model=MultisigWallet,
    status_code=status.HTTP_200_OK,
    tags=[WALLETS_TAG],
    summary="Get Multisig Wallet",
)
def get_wallet(
    wallet_id: WalletIdPath,
    service: Annotated[MultisigService, Depends(get_multisig_service)] = None,
) -> MultisigWallet:
    try:
        return service.get_wallet(wallet_id=wallet_id)
    except MultisigError as exc:
        raise_multisig_http_exception(exc)


@router.post(
    "/wallets/{wallet_id}/proposals",
    response_model=Proposal,
    status_code=status.HTTP_200_OK,
    tags=[PROPOSALS_TAG],
    summary="Create Proposal",
    description=(
        "Creates a PENDING proposal for a wallet member. Replaying the same request with the "
        "same Idempotency-Key returns the original proposal."
    ),
)
def create_proposal(
    wallet_id: WalletIdPath,
    payload: ProposalCreateRequest,
    idempotency_key: Annotated[
        Optional[str],
        Header(
            alias="Idempotency-Key",
            description="Optional idempotency key for proposal-create deduplication.",
            examples=["multisig-proposal-create-001"],
        ),
    ] = None,
    service: Annotated[MultisigService, Depends(get_multisig_service)] = None,
) -> Proposal:
    try:
        return service.create_proposal(
            wallet_id=wallet_id,
            payload=payload,
            idempotency_key=idempotency_key,
        )
    except MultisigError as exc:
        raise_multisig_http_exception(exc)


@router.get(
    "/wallets/{wallet_id}/proposals",
    response_model=ProposalListResponse,
    status_code=status.HTTP_200_OK,
    tags=[PROPOSALS_TAG],
    summary="List Wallet Proposals",
    description="Lists a wallet's proposals, newest first, with cursor pagination.",
)
def list_proposals(
    wallet_id: WalletIdPath,
    proposal_status: Annotated[
        Optional[ProposalStatus],
        Query(alias="status", description="Proposal status filter.", examples=["PENDING"]),
    ] = None,
    limit: Annotated[
        int,
        Query(description="Page size.", ge=1, le=100, examples=[20]),
    ] = 50,
    cursor: Annotated[
        Optional[str],
        Query(description="Opaque cursor from previous list response.", examples=["msp_123"]),
    ] = None,
    service: Annotated[MultisigService, Depends(get_multisig_service)] = None,
) -> ProposalListResponse:
    try:
        return service.list_proposals(
            wallet_id=wallet_id,
            status=proposal_status,
            limit=limit,
            cursor=cursor,
        )
    except MultisigError as exc:
        raise_multisig_http_exception(exc)


@router.get(
    "/proposals/{proposal_id}",
    response_model=Proposal,
    status_code=status.HTTP_200_OK,
    tags=[PROPOSALS_TAG],
    summary="Get Proposal",
)
def get_proposal(
    proposal_id: ProposalIdPath,
    service: Annotated[MultisigService, Depends(get_multisig_service)] = None,
) -> Proposal:
    try:
        return service.get_proposal(proposal_id=proposal_id)
    except MultisigError as exc:
        raise_multisig_http_exception(exc)


@router.post(
    "/proposals/{proposal_id}/signatures",
    response_model=Proposal,
    status_code=status.HTTP_200_OK,
    tags=[PROPOSALS_TAG],
    summary="Sign Proposal",
    description=(
        "Records one member signature and re-evaluates the proposal status against the "
        "wallet threshold."
    ),
)
def sign_proposal(
    proposal_id: ProposalIdPath,
    payload: ProposalSignRequest,
    service: Annotated[MultisigService, Depends(get_multisig_service)] = None,
) -> Proposal:
    try:
        return service.sign_proposal(proposal_id=proposal_id, payload=payload)
    except MultisigError as exc:
        raise_multisig_http_exception(exc)


@router.post(
    "/proposals/{proposal_id}/execution",
    response_model=ProposalExecutionResponse,
    status_code=status.HTTP_200_OK,
    tags=[PROPOSALS_TAG],
    summary="Execute Proposal",
    description=(
        "Claims an APPROVED proposal, submits its action to the execution backend and records "
        "the returned reference. A failed submission leaves the proposal APPROVED."
    ),
)
def execute_proposal(
    proposal_id: ProposalIdPath,
    payload: Annotated[Optional[ProposalExecuteRequest], Body()] = None,
    service: Annotated[MultisigService, Depends(get_multisig_service)] = None,
) -> ProposalExecutionResponse:
    try:
        return service.execute_proposal(proposal_id=proposal_id, payload=payload)
    except MultisigError as exc:
        raise_multisig_http_exception(exc)


@router.post(
    "/proposals/{proposal_id}/cancellation",
    response_model=Proposal,
    status_code=status.HTTP_200_OK,
    tags=[PROPOSALS_TAG],
    summary="Cancel Proposal",
    description="Cancels a PENDING proposal. Only the proposal creator may cancel.",
)
def cancel_proposal(
    proposal_id: ProposalIdPath,
    payload: ProposalCancelRequest,
    service: Annotated[MultisigService, Depends(get_multisig_service)] = None,
) -> Proposal:
    try:
        return service.cancel_proposal(proposal_id=proposal_id, payload=payload)
    except MultisigError as exc:
        raise_multisig_http_exception(exc)


@router.get(
    "/proposals/{proposal_id}/events",
    response_model=ProposalEventsResponse,
    status_code=status.HTTP_200_OK,
    tags=[SUPPORT_TAG],
    summary="Get Proposal Event Timeline",
    description="Returns the append-only status event timeline for audit and investigation.",
)
def list_proposal_events(
    proposal_id: ProposalIdPath,
    service: Annotated[MultisigService, Depends(get_multisig_service)] = None,
) -> ProposalEventsResponse:
    _assert_support_apis_enabled()
    try:
        return service.list_proposal_events(proposal_id=proposal_id)
    except MultisigError as exc:
        raise_multisig_http_exception(exc)


@router.get(
    "/supportability/config",
    response_model=MultisigSupportabilityConfigResponse,
    status_code=status.HTTP_200_OK,
    tags=[SUPPORT_TAG],
    summary="Get Multisig Supportability Configuration",
    description=(
        "Returns runtime configuration and repository initialization status for operational "
        "diagnostics without direct database access."
    ),
)
def get_supportability_config() -> MultisigSupportabilityConfigResponse:
    _assert_support_apis_enabled()
    backend_error: Optional[str] = None
    backend_ready = True
    try:
        multisig_config.build_repository()
    except RuntimeError as exc:
        backend_ready = False
        backend_error = str(exc)

    return MultisigSupportabilityConfigResponse(
        store_backend=multisig_config.multisig_store_backend_name(),
        backend_ready=backend_ready,
        backend_init_error=backend_error,
        execution_backend=multisig_config.multisig_execution_backend_name(),
        sign_max_attempts=multisig_config.multisig_max_attempts(),
        support_apis_enabled=multisig_config.env_flag("MULTISIG_SUPPORT_APIS_ENABLED", True),
    )
