import re
from typing import Iterable

import base58

from src.core.common.canonical import canonical_digest

BASE58_ADDRESS_PATTERN = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")
WALLET_ADDRESS_DOMAIN = b"multisig-wallet:v1:"


def is_valid_member_address(address: str) -> bool:
    return BASE58_ADDRESS_PATTERN.fullmatch(address) is not None


def derive_wallet_address(*, members: Iterable[str], threshold: int) -> str:
    """Derive the multisig wallet address from its configuration.

    The member set is sorted before hashing, so member order never changes the result:

        base58(sha256(b"multisig-wallet:v1:" + canonical_json({"members": sorted, "threshold": t})))

    ``canonical_json`` is ``json.dumps(payload, sort_keys=True, separators=(",", ":"))``,
    so any client can recompute the address without this service.
    """
    payload = {"members": sorted(members), "threshold": threshold}
    digest = canonical_digest(payload, domain=WALLET_ADDRESS_DOMAIN)
    return base58.b58encode(digest).decode("ascii")
