import pytest

from conftest import OTHER_TOKEN, TOKEN
from wallet import keys
from wallet.account import Account
from wallet.encoding import envelope_length
from wallet.errors import FinalizedOutputError, FormatError, UnknownTokenError
from wallet.tokens import TokenRegistry
from wallet.utxo import UtxoInput, UtxoOutput, check_amounts, zero_amounts, zero_output


def test_output_starts_empty_and_unfinalized(registry):
    account = Account(registry)
    output = UtxoOutput(account.address, registry)

    assert output.amounts == zero_amounts(10)
    assert output.public_key == account.public_key
    assert output.encryption_key == account.encryption_key
    assert output.commitment is None
    assert not output.is_finalized


def test_each_output_draws_a_fresh_blinding(registry):
    address = Account(registry).address
    assert UtxoOutput(address, registry).blinding != UtxoOutput(address, registry).blinding


def test_set_token_amount_uses_registry_slot(registry):
    output = UtxoOutput(Account(registry).address, registry)
    output.set_token_amount(OTHER_TOKEN, 42)
    assert output.amounts[1] == 42

    with pytest.raises(UnknownTokenError):
        output.set_token_amount("0x" + "cc" * 20, 1)


def test_finalize_fixes_commitment(registry):
    account = Account(registry)
    output = UtxoOutput(account.address, registry)
    output.set_token_amount(TOKEN, 100)

    assert output.finalize() is output
    assert output.is_finalized
    assert output.commitment == keys.commit(output.amounts, account.public_key, output.blinding)
    assert len(bytes.fromhex(output.encrypted_data)) == envelope_length(10)


def test_finalized_output_is_immutable(registry):
    output = UtxoOutput(Account(registry).address, registry).finalize()

    with pytest.raises(FinalizedOutputError):
        output.set_token_amount(TOKEN, 1)
    with pytest.raises(FinalizedOutputError):
        output.finalize()


def test_decoy_output_is_indistinguishable_by_length(registry):
    real = UtxoOutput(Account(registry).address, registry).finalize()
    decoy = zero_output(registry)

    assert decoy.is_finalized
    assert decoy.public_key == 0
    assert decoy.amounts == zero_amounts(10)
    assert len(decoy.encrypted_data) == len(real.encrypted_data)


def test_amount_vector_validation(registry):
    with pytest.raises(FormatError):
        check_amounts([1, 2], 10)
    with pytest.raises(FormatError):
        check_amounts([-1] + [0] * 9, 10)
    with pytest.raises(FormatError):
        UtxoOutput(Account(registry).address, registry, [0] * 9)


def test_input_from_output(registry):
    account = Account(registry)
    output = account.pay({TOKEN: 7})
    utxo = UtxoInput.from_output(output, 3, account.private_key)

    assert utxo.commitment == output.commitment
    assert utxo.amount_of(0) == 7
    assert utxo.index == 3
    assert utxo.nullifier == keys.nullifier(output.commitment, 3, account.private_key)
    assert str(account.private_key) not in repr(utxo)


def test_input_requires_finalized_output(registry):
    account = Account(registry)
    output = account.pay({TOKEN: 7}, finalize=False)
    with pytest.raises(FinalizedOutputError):
        UtxoInput.from_output(output, 0, account.private_key)


def test_input_checks_amount_width():
    with pytest.raises(FormatError):
        UtxoInput(123, (1, 2), 5, 0, 7)

    utxo = UtxoInput(123, (1, 2), 5, 0, 7, max_tokens=2)
    assert utxo.amounts == (1, 2)


def test_input_from_output_keeps_registry_width():
    registry = TokenRegistry(max_tokens=3)
    registry.register(TOKEN, 0)
    account = Account(registry)
    output = account.pay({TOKEN: 9})

    utxo = UtxoInput.from_output(output, 0, account.private_key)
    assert utxo.amounts == (9, 0, 0)

    received = account.try_decrypt(output.commitment, output.encrypted_data, 0)
    assert received == utxo


def test_amount_bit_limit_fails_fast(registry):
    output = UtxoOutput(Account(registry).address, registry)
    output.set_token_amount(TOKEN, (1 << 248) - 1)

    with pytest.raises(FormatError):
        output.set_token_amount(TOKEN, 1 << 248)
    with pytest.raises(FormatError):
        Account(registry).pay_raw([1 << 248] + [0] * 9)
