import uuid
from datetime import datetime, timezone
from typing import Sequence

from src.core.multisig.addresses import derive_wallet_address, is_valid_member_address
from src.core.multisig.errors import MultisigNotFoundError, MultisigValidationError
from src.core.multisig.models import MultisigWalletRecord
from src.core.multisig.repository import MultisigRepository

MIN_WALLET_MEMBERS = 2


class WalletRegistry:
    def __init__(self, *, repository: MultisigRepository) -> None:
        self._repository = repository

    def create_wallet(
        self, *, name: str, members: Sequence[str], threshold: int
    ) -> MultisigWalletRecord:
        normalized_name = (name or "").strip()
        if not normalized_name:
            raise MultisigValidationError("WALLET_NAME_REQUIRED")

        normalized_members = [member.strip() for member in members]
        if len(normalized_members) < MIN_WALLET_MEMBERS:
            raise MultisigValidationError(
                f"INSUFFICIENT_MEMBERS: at least {MIN_WALLET_MEMBERS} members are required"
            )
        for member in normalized_members:
            if not is_valid_member_address(member):
                raise MultisigValidationError(f"INVALID_MEMBER_ADDRESS: {member!r}")
        if len(set(normalized_members)) != len(normalized_members):
            raise MultisigValidationError("DUPLICATE_MEMBER")

        # bool is an int subclass; a JSON true must not pass as threshold 1
        if isinstance(threshold, bool) or not isinstance(threshold, int):
            raise MultisigValidationError("THRESHOLD_NOT_INTEGER")
        if not 1 <= threshold <= len(normalized_members):
            raise MultisigValidationError(
                f"THRESHOLD_OUT_OF_RANGE: threshold must be between 1 and "
                f"{len(normalized_members)}"
            )

        wallet = MultisigWalletRecord(
            wallet_id=f"msw_{uuid.uuid4().hex[:12]}",
            name=normalized_name,
            address=derive_wallet_address(members=normalized_members, threshold=threshold),
            threshold=threshold,
            members=normalized_members,
            created_at=_utc_now(),
        )
        self._repository.create_wallet(wallet)
        return wallet

    def get_wallet(self, *, wallet_id: str) -> MultisigWalletRecord:
        wallet = self._repository.get_wallet(wallet_id=wallet_id)
        if wallet is None:
            raise MultisigNotFoundError("WALLET_NOT_FOUND")
        return wallet

    def list_wallets(self) -> list[MultisigWalletRecord]:
        return self._repository.list_wallets()


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)
