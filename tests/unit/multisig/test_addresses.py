import hashlib
import json

import base58
import pytest

from src.core.multisig.addresses import derive_wallet_address, is_valid_member_address
from tests.factories import ALICE, BOB, CAROL


def _independent_address(members: list[str], threshold: int) -> str:
    body = json.dumps(
        {"members": sorted(members), "threshold": threshold},
        sort_keys=True,
        separators=(",", ":"),
    )
    digest = hashlib.sha256(b"multisig-wallet:v1:" + body.encode("utf-8")).digest()
    return base58.b58encode(digest).decode("ascii")


def test_wallet_address_matches_independent_recomputation():
    address = derive_wallet_address(members=[ALICE, BOB, CAROL], threshold=2)

    assert address == _independent_address([ALICE, BOB, CAROL], 2)
    assert is_valid_member_address(address)


def test_wallet_address_ignores_member_order():
    first = derive_wallet_address(members=[ALICE, BOB, CAROL], threshold=2)
    second = derive_wallet_address(members=[CAROL, ALICE, BOB], threshold=2)

    assert first == second


def test_wallet_address_changes_with_threshold_and_members():
    base = derive_wallet_address(members=[ALICE, BOB, CAROL], threshold=2)

    assert derive_wallet_address(members=[ALICE, BOB, CAROL], threshold=3) != base
    assert derive_wallet_address(members=[ALICE, BOB], threshold=2) != base


@pytest.mark.parametrize(
    ("address", "valid"),
    [
        (ALICE, True),
        ("1" * 32, True),
        ("1" * 31, False),
        ("1" * 45, False),
        ("0" + ALICE[1:], False),
        ("O" + ALICE[1:], False),
        ("I" + ALICE[1:], False),
        ("l" + ALICE[1:], False),
        ("", False),
    ],
)
def test_member_address_validation(address: str, valid: bool):
    assert is_valid_member_address(address) is valid
