import asyncio

import pytest

from conftest import OTHER_TOKEN, TOKEN
from ledger.base import DepositArgs, EventKind, TransactArgs
from ledger.errors import (
    DoubleSpendError,
    InvalidProofError,
    LedgerRejectedError,
    UnknownRootError,
)
from ledger.local_ledger import LocalLedger


def _deposit(amount=5, commitments=(11, 12)):
    return DepositArgs(
        deposit_amount=[amount] + [0] * 9,
        out_commitments=list(commitments),
        encrypted_outputs=["0x00", "0x00"],
        proof="0x",
    )


def _transact(root, nullifiers, commitments=(21, 22), withdraw=0):
    return TransactArgs(
        root=root,
        withdraw_amount=[withdraw] + [0] * 9,
        in_nullifiers=list(nullifiers),
        out_commitments=list(commitments),
        encrypted_outputs=["0x00"] * len(commitments),
        proof="0x",
    )


@pytest.fixture
def open_ledger(protocol):
    ledger = LocalLedger(protocol)
    ledger.add_token(TOKEN)
    return ledger


def test_token_registry(open_ledger):
    assert asyncio.run(open_ledger.tokens()) == [TOKEN]
    assert open_ledger.add_token(OTHER_TOKEN) == 1
    with pytest.raises(LedgerRejectedError):
        open_ledger.add_token(TOKEN.upper().replace("0X", "0x"))


def test_deposit_emits_ordered_events(open_ledger):
    seen = []
    open_ledger.subscribe(seen.append)

    receipt = asyncio.run(open_ledger.deposit(_deposit()))

    assert [e.index for e in receipt.events] == [0, 1]
    assert [e.commitment for e in receipt.events] == [11, 12]
    assert all(e.kind is EventKind.DEPOSIT for e in receipt.events)
    assert seen == receipt.events
    assert open_ledger.custody() == {TOKEN: 5}
    assert asyncio.run(open_ledger.query_commitments(1)) == receipt.events[1:]


def test_unsubscribe_stops_events(open_ledger):
    seen = []
    open_ledger.subscribe(seen.append)
    open_ledger.unsubscribe(seen.append)
    asyncio.run(open_ledger.deposit(_deposit()))
    assert seen == []


def test_deposit_needs_registered_token(protocol):
    ledger = LocalLedger(protocol)
    with pytest.raises(LedgerRejectedError):
        asyncio.run(ledger.deposit(_deposit()))


def test_deposit_needs_two_notes(open_ledger):
    args = _deposit()
    args.out_commitments.append(13)
    args.encrypted_outputs.append("0x00")
    with pytest.raises(LedgerRejectedError):
        asyncio.run(open_ledger.deposit(args))


def test_transact_spends_nullifiers_once(open_ledger):
    asyncio.run(open_ledger.deposit(_deposit()))
    root = asyncio.run(open_ledger.current_root())

    receipt = asyncio.run(open_ledger.transact(_transact(root, [77])))
    assert [e.index for e in receipt.events] == [2, 3]
    assert all(e.kind is EventKind.COMMITMENT for e in receipt.events)
    assert asyncio.run(open_ledger.is_spent(77))

    new_root = asyncio.run(open_ledger.current_root())
    with pytest.raises(DoubleSpendError) as excinfo:
        asyncio.run(open_ledger.transact(_transact(new_root, [77])))
    assert excinfo.value.nullifier == 77


def test_transact_requires_current_root(open_ledger):
    asyncio.run(open_ledger.deposit(_deposit()))
    stale = asyncio.run(open_ledger.current_root())
    asyncio.run(open_ledger.deposit(_deposit(commitments=(13, 14))))

    with pytest.raises(UnknownRootError):
        asyncio.run(open_ledger.transact(_transact(stale, [1])))
    assert not asyncio.run(open_ledger.is_spent(1))


def test_withdrawal_limited_by_custody(open_ledger):
    asyncio.run(open_ledger.deposit(_deposit(amount=5)))
    root = asyncio.run(open_ledger.current_root())

    with pytest.raises(LedgerRejectedError):
        asyncio.run(open_ledger.transact(_transact(root, [1], withdraw=6)))

    asyncio.run(open_ledger.transact(_transact(root, [1], withdraw=5)))
    assert open_ledger.custody() == {TOKEN: 0}


def test_duplicate_nullifier_in_one_transaction(open_ledger):
    root = asyncio.run(open_ledger.current_root())
    with pytest.raises(LedgerRejectedError):
        asyncio.run(open_ledger.transact(_transact(root, [1, 1])))


def test_verifier_can_reject(protocol):
    ledger = LocalLedger(protocol, verifier=lambda kind, args: False)
    ledger.add_token(TOKEN)
    with pytest.raises(InvalidProofError):
        asyncio.run(ledger.deposit(_deposit()))
    assert asyncio.run(ledger.query_commitments()) == []
