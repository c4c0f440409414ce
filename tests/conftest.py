"""Shared fixtures: small trees, a token registry and a deterministic prover"""

import json
from typing import Any, Dict, List, Tuple

import pytest

from config.config import ProtocolConfig, SystemConfig
from ledger.local_ledger import LocalLedger
from wallet.tokens import TokenRegistry
from zk.prover import ProofArtifact, Prover

TOKEN = "0x" + "aa" * 20
OTHER_TOKEN = "0x" + "bb" * 20

# Depth used by most tests; deep enough for every scenario, cheap to hash
TEST_DEPTH = 8

PUBLIC_SIGNALS = {
    'Deposit': ['outCommitments', 'depositAmount'],
    'Transaction': ['inRoot', 'outCommitment', 'inNullifier', 'withdrawAmount'],
}


def _flatten(value) -> List[str]:
    if isinstance(value, list):
        return [s for v in value for s in _flatten(v)]
    return [str(value)]


class FakeProver(Prover):
    """Records circuit inputs and echoes their public part as signals"""

    def __init__(self):
        self.calls: List[Tuple[str, Dict[str, Any]]] = []

    async def full_prove(self, circuit_name, circuit_input):
        self.calls.append((circuit_name, circuit_input))
        family = 'Deposit' if circuit_name == 'Deposit' else 'Transaction'
        signals = []
        for key in PUBLIC_SIGNALS[family]:
            signals.extend(_flatten(circuit_input[key]))
        return ProofArtifact(
            circuit_name=circuit_name,
            proof={'protocol': 'fake', 'circuit': circuit_name},
            public_signals=signals,
        )

    async def export_call_data(self, artifact):
        return "0x" + "ab" * 32 + "," + json.dumps(artifact.public_signals)


def signals_verifier(kind, args) -> bool:
    """Accept a proof only if its public signals match the call arguments"""
    if kind == 'deposit':
        expected = _flatten(args.out_commitments) + _flatten(args.deposit_amount)
    else:
        expected = ([str(args.root)] + _flatten(args.out_commitments) +
                    _flatten(args.in_nullifiers) + _flatten(args.withdraw_amount))
    return args.public_signals == expected


@pytest.fixture
def protocol():
    return ProtocolConfig(tree_depth=TEST_DEPTH)


@pytest.fixture
def system_config(protocol):
    return SystemConfig(protocol=protocol)


@pytest.fixture
def registry():
    registry = TokenRegistry()
    registry.register(TOKEN, 0)
    registry.register(OTHER_TOKEN, 1)
    return registry


@pytest.fixture
def prover():
    return FakeProver()


@pytest.fixture
def ledger(protocol):
    ledger = LocalLedger(protocol, verifier=signals_verifier)
    ledger.add_token(TOKEN)
    ledger.add_token(OTHER_TOKEN)
    return ledger
