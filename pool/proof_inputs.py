"""
Proof input assembly.

Turns notes into the structured inputs of the Deposit and Transaction circuits,
runs the external prover and shapes its calldata into the arguments the
ledger's `deposit` and `transact` entry points take.

Every field element in a circuit input is rendered as a decimal string, which
is what snarkjs expects for values wider than a JS number.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from config.config import ProtocolConfig, ProverConfig
from ledger.base import DepositArgs, TransactArgs
from utils.utils import PerformanceMonitor
from wallet.utxo import UtxoInput, UtxoOutput
from zk.errors import AmountMismatchError, CircuitShapeError, ProofInputError
from zk.merkle import IncrementalMerkleTree
from zk.prover import ProofArtifact, Prover, parse_call_data

logger = logging.getLogger(__name__)


def _dec(values: Sequence[int]) -> List[str]:
    return [str(v) for v in values]


def _hex_output(encrypted_data: str) -> str:
    return encrypted_data if encrypted_data.startswith("0x") else "0x" + encrypted_data


class ProofInputAssembler:
    """Builds circuit inputs, proves them and returns ledger call arguments"""

    def __init__(self, prover: Prover, protocol: Optional[ProtocolConfig] = None,
                 prover_config: Optional[ProverConfig] = None,
                 monitor: Optional[PerformanceMonitor] = None):
        self.prover = prover
        self.protocol = protocol or ProtocolConfig()
        self.prover_config = prover_config or ProverConfig()
        self.monitor = monitor or PerformanceMonitor()

    # ====================================================================
    # Validation
    # ====================================================================

    def _check_amount_vector(self, name: str, amounts: Sequence[int]) -> List[int]:
        max_tokens = self.protocol.max_tokens
        if len(amounts) != max_tokens:
            raise ProofInputError(
                f"{name} must have {max_tokens} entries, got {len(amounts)}")
        limit = 1 << self.protocol.max_amount_bits
        for slot, amount in enumerate(amounts):
            if not isinstance(amount, int) or amount < 0 or amount >= limit:
                raise ProofInputError(f"{name}[{slot}] out of range: {amount!r}")
        return list(amounts)

    def _check_outputs(self, outputs: Sequence[UtxoOutput]):
        for output in outputs:
            if not output.is_finalized:
                raise ProofInputError(f"{output!r} must be finalized before proving")
            self._check_amount_vector("output amounts", output.amounts)

    def _circuit_shape(self, num_inputs: int, num_outputs: int) -> str:
        if (num_inputs, num_outputs) not in self.protocol.transaction_shapes:
            raise CircuitShapeError(
                f"No transaction circuit for {num_inputs} inputs x {num_outputs} outputs")
        return self.prover_config.transaction_circuit(num_inputs, num_outputs)

    # ====================================================================
    # Proving
    # ====================================================================

    async def _prove(self, circuit_name: str, circuit_input: Dict[str, Any]):
        with self.monitor.start_operation(f"prove_{circuit_name}"):
            artifact: ProofArtifact = await self.prover.full_prove(circuit_name, circuit_input)
            calldata = await self.prover.export_call_data(artifact)

        proof, signals = parse_call_data(calldata)
        logger.info(f"Generated {circuit_name} proof in {artifact.generation_time:.2f}s")
        return proof, signals or list(artifact.public_signals)

    def deposit_input(self, deposit_amount: Sequence[int],
                      outputs: Sequence[UtxoOutput]) -> Dict[str, Any]:
        """Validated Deposit circuit input for exactly two finalized outputs"""
        if len(outputs) != self.protocol.deposit_outputs:
            raise CircuitShapeError(
                f"Deposit takes exactly {self.protocol.deposit_outputs} outputs, got {len(outputs)}")
        deposit_amount = self._check_amount_vector("depositAmount", deposit_amount)
        self._check_outputs(outputs)

        for slot in range(self.protocol.max_tokens):
            total = sum(o.amounts[slot] for o in outputs)
            if total != deposit_amount[slot]:
                raise AmountMismatchError(
                    f"Slot {slot}: outputs hold {total}, deposit declares {deposit_amount[slot]}")

        return {
            'outAmounts': [_dec(o.amounts) for o in outputs],
            'outPubkeys': _dec(o.public_key for o in outputs),
            'outBlindings': _dec(o.blinding for o in outputs),
            'outCommitments': _dec(o.commitment for o in outputs),
            'depositAmount': _dec(deposit_amount),
        }

    async def deposit_proof(self, deposit_amount: Sequence[int],
                            outputs: Sequence[UtxoOutput]) -> DepositArgs:
        circuit_input = self.deposit_input(deposit_amount, outputs)
        proof, signals = await self._prove(self.prover_config.deposit_circuit, circuit_input)

        return DepositArgs(
            deposit_amount=list(deposit_amount),
            out_commitments=[o.commitment for o in outputs],
            encrypted_outputs=[_hex_output(o.encrypted_data) for o in outputs],
            proof=proof,
            public_signals=signals,
        )

    def transaction_input(self, tree: IncrementalMerkleTree, withdraw_amount: Sequence[int],
                          inputs: Sequence[UtxoInput],
                          outputs: Sequence[UtxoOutput]) -> Dict[str, Any]:
        """
        Validated Transaction circuit input.

        The root and all input witnesses are read in a single tree snapshot, so
        every input is proved against the same root.
        """
        self._circuit_shape(len(inputs), len(outputs))
        withdraw_amount = self._check_amount_vector("withdrawAmount", withdraw_amount)
        self._check_outputs(outputs)
        if len({u.nullifier for u in inputs}) != len(inputs):
            raise ProofInputError("The same note is spent twice in one transaction")

        for slot in range(self.protocol.max_tokens):
            spent = sum(u.amounts[slot] for u in inputs)
            created = sum(o.amounts[slot] for o in outputs) + withdraw_amount[slot]
            if spent != created:
                raise AmountMismatchError(
                    f"Slot {slot}: inputs hold {spent}, outputs and withdrawal take {created}")

        root, proofs = tree.snapshot([u.index for u in inputs])
        witnesses = []
        for utxo, proof in zip(inputs, proofs):
            if proof.leaf != utxo.commitment:
                raise ProofInputError(
                    f"Leaf {utxo.index} holds {proof.leaf:#x}, not the note commitment")
            witnesses.append(proof.to_circuit_input())

        # Key order follows the circuit's signal declaration order
        return {
            'inCommitment': _dec(u.commitment for u in inputs),
            'inAmount': [_dec(u.amounts) for u in inputs],
            'inBlinding': _dec(u.blinding for u in inputs),
            'inPathIndices': [w['pathIndices'] for w in witnesses],
            'inPathElements': [w['siblings'] for w in witnesses],
            'inPrivateKey': _dec(u.private_key for u in inputs),
            'outAmount': [_dec(o.amounts) for o in outputs],
            'outPubkey': _dec(o.public_key for o in outputs),
            'outBlinding': _dec(o.blinding for o in outputs),
            'inRoot': str(root),
            'outCommitment': _dec(o.commitment for o in outputs),
            'inNullifier': _dec(u.nullifier for u in inputs),
            'withdrawAmount': _dec(withdraw_amount),
        }

    async def transfer_proof(self, tree: IncrementalMerkleTree, withdraw_amount: Sequence[int],
                             inputs: Sequence[UtxoInput],
                             outputs: Sequence[UtxoOutput]) -> TransactArgs:
        circuit_input = self.transaction_input(tree, withdraw_amount, inputs, outputs)
        circuit_name = self._circuit_shape(len(inputs), len(outputs))
        proof, signals = await self._prove(circuit_name, circuit_input)

        return TransactArgs(
            root=int(circuit_input['inRoot']),
            withdraw_amount=list(withdraw_amount),
            in_nullifiers=[u.nullifier for u in inputs],
            out_commitments=[o.commitment for o in outputs],
            encrypted_outputs=[_hex_output(o.encrypted_data) for o in outputs],
            proof=proof,
            public_signals=signals,
        )
