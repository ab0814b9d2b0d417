import pytest

from src.core.multisig import MultisigNotFoundError, MultisigValidationError
from src.core.multisig.addresses import derive_wallet_address
from tests.factories import ALICE, BOB, CAROL, MEMBERS


def test_create_wallet_persists_validated_wallet(service):
    wallet = service.wallets.create_wallet(name=" Treasury ", members=MEMBERS, threshold=2)

    assert wallet.wallet_id.startswith("msw_")
    assert wallet.name == "Treasury"
    assert wallet.members == MEMBERS
    assert wallet.threshold == 2
    assert wallet.balance == 0.0
    assert wallet.address == derive_wallet_address(members=MEMBERS, threshold=2)
    assert service.wallets.get_wallet(wallet_id=wallet.wallet_id) == wallet


@pytest.mark.parametrize(
    ("name", "members", "threshold", "code"),
    [
        ("", MEMBERS, 2, "WALLET_NAME_REQUIRED"),
        ("   ", MEMBERS, 2, "WALLET_NAME_REQUIRED"),
        ("Solo", [ALICE], 1, "INSUFFICIENT_MEMBERS"),
        ("Bad", [ALICE, "not-a-base58-address"], 1, "INVALID_MEMBER_ADDRESS"),
        ("Dupes", [ALICE, BOB, ALICE], 2, "DUPLICATE_MEMBER"),
        ("Zero", MEMBERS, 0, "THRESHOLD_OUT_OF_RANGE"),
        ("TooHigh", MEMBERS, 4, "THRESHOLD_OUT_OF_RANGE"),
        ("Negative", MEMBERS, -1, "THRESHOLD_OUT_OF_RANGE"),
        ("Bool", MEMBERS, True, "THRESHOLD_NOT_INTEGER"),
        ("Float", MEMBERS, 2.0, "THRESHOLD_NOT_INTEGER"),
    ],
)
def test_create_wallet_rejects_invalid_configuration(service, name, members, threshold, code):
    with pytest.raises(MultisigValidationError) as exc:
        service.wallets.create_wallet(name=name, members=members, threshold=threshold)

    assert str(exc.value).startswith(code)
    assert service.wallets.list_wallets() == []


def test_create_wallet_accepts_threshold_bounds(service):
    one = service.wallets.create_wallet(name="Any", members=MEMBERS, threshold=1)
    all_members = service.wallets.create_wallet(name="All", members=MEMBERS, threshold=3)

    assert one.threshold == 1
    assert all_members.threshold == 3


def test_identical_configurations_share_address_but_not_id(service):
    first = service.wallets.create_wallet(name="A", members=[ALICE, BOB, CAROL], threshold=2)
    second = service.wallets.create_wallet(name="B", members=[CAROL, BOB, ALICE], threshold=2)

    assert first.wallet_id != second.wallet_id
    assert first.address == second.address


def test_list_wallets_in_creation_order(service):
    first = service.wallets.create_wallet(name="First", members=MEMBERS, threshold=2)
    second = service.wallets.create_wallet(name="Second", members=MEMBERS, threshold=3)

    assert [wallet.wallet_id for wallet in service.wallets.list_wallets()] == [
        first.wallet_id,
        second.wallet_id,
    ]


def test_get_wallet_unknown_id(service):
    with pytest.raises(MultisigNotFoundError, match="WALLET_NOT_FOUND"):
        service.wallets.get_wallet(wallet_id="msw_missing")
