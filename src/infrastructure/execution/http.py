import logging
from typing import Any, Optional

import httpx

from src.core.multisig.execution import ActionSubmissionError
from src.core.multisig.models import MultisigWalletRecord, ProposalRecord

DEFAULT_TIMEOUT_SECONDS = 30.0

logger = logging.getLogger(__name__)


class HttpActionExecutor:
    def __init__(
        self,
        *,
        base_url: str,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        if not base_url:
            raise RuntimeError("MULTISIG_EXECUTION_BASE_URL_REQUIRED")
        self._client = httpx.Client(
            base_url=base_url,
            timeout=httpx.Timeout(timeout_seconds),
            transport=transport,
        )

    def submit(self, *, proposal: ProposalRecord, wallet: MultisigWalletRecord) -> str:
        try:
            response = self._client.post("/actions", json=_submission_body(proposal, wallet))
        except httpx.HTTPError as exc:
            raise ActionSubmissionError(f"EXECUTION_BACKEND_UNREACHABLE: {exc}") from exc

        if response.status_code < 200 or response.status_code >= 300:
            logger.warning(
                "execution.backend_rejected",
                extra={
                    "extra_fields": {
                        "proposal_id": proposal.proposal_id,
                        "http_status": response.status_code,
                    }
                },
            )
            raise ActionSubmissionError(f"EXECUTION_BACKEND_HTTP_{response.status_code}")

        try:
            body = response.json()
        except ValueError as exc:
            raise ActionSubmissionError("EXECUTION_BACKEND_INVALID_RESPONSE") from exc
        reference = body.get("reference") if isinstance(body, dict) else None
        if not isinstance(reference, str) or not reference.strip():
            raise ActionSubmissionError("EXECUTION_BACKEND_MISSING_REFERENCE")
        return reference

    def close(self) -> None:
        self._client.close()


def _submission_body(proposal: ProposalRecord, wallet: MultisigWalletRecord) -> dict[str, Any]:
    return {
        "proposal_id": proposal.proposal_id,
        "wallet_id": wallet.wallet_id,
        "wallet_address": wallet.address,
        "action_payload": proposal.action_payload,
        "signatures": [
            {"signer": signature.signer, "signature": signature.signature}
            for signature in proposal.signatures
        ],
    }
