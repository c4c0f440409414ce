import asyncio

import pytest

from conftest import OTHER_TOKEN, TOKEN
from wallet.errors import TokenRegistryError, UnknownTokenError
from wallet.tokens import TokenRegistry


def test_register_and_lookup():
    registry = TokenRegistry()
    assert registry.register(TOKEN, 0) == 0
    assert registry.slot_of(TOKEN) == 0
    assert registry.slot_of(TOKEN.upper().replace("0X", "0x")) == 0
    assert registry.token_at(0) == TOKEN
    assert registry.token_at(1) is None
    assert TOKEN in registry
    assert len(registry) == 1


def test_reregistering_same_slot_is_idempotent():
    registry = TokenRegistry()
    registry.register(TOKEN, 2)
    assert registry.register(TOKEN, 2) == 2
    assert len(registry) == 1


def test_reregistering_at_different_slot_fails():
    registry = TokenRegistry()
    registry.register(TOKEN, 0)
    with pytest.raises(TokenRegistryError):
        registry.register(TOKEN, 1)


def test_slot_cannot_hold_two_tokens():
    registry = TokenRegistry()
    registry.register(TOKEN, 0)
    with pytest.raises(TokenRegistryError):
        registry.register(OTHER_TOKEN, 0)


@pytest.mark.parametrize("slot", [-1, 10])
def test_slot_range(slot):
    with pytest.raises(TokenRegistryError):
        TokenRegistry(max_tokens=10).register(TOKEN, slot)


def test_unknown_token_is_a_key_error():
    with pytest.raises(KeyError):
        TokenRegistry().slot_of(TOKEN)
    with pytest.raises(UnknownTokenError):
        TokenRegistry().slot_of(TOKEN)


def test_sync_mirrors_ledger(ledger):
    registry = TokenRegistry()
    assert asyncio.run(registry.sync(ledger)) == 2
    assert registry.tokens() == [TOKEN, OTHER_TOKEN]

    # Syncing again is a no-op
    assert asyncio.run(registry.sync(ledger)) == 2
    assert len(registry) == 2
