"""
Prover boundary.

The circuits and the proving backend live outside this package; a prover only
has to turn a structured circuit input into a proof plus public signals and
render both as verifier calldata. `SnarkjsProver` does this by driving the
snarkjs CLI against compiled circuit artifacts.
"""

import asyncio
import json
import logging
import tempfile
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from config.config import ProverConfig
from .errors import ProofGenerationError

logger = logging.getLogger(__name__)


@dataclass
class ProofArtifact:
    """Container for proof and metadata"""
    circuit_name: str
    proof: Dict[str, Any]
    public_signals: List[str]
    generation_time: float = 0.0
    timestamp: float = field(default_factory=time.time)


class Prover(ABC):
    """fullProve / exportCallData pair of an external proving backend"""

    @abstractmethod
    async def full_prove(self, circuit_name: str, circuit_input: Dict[str, Any]) -> ProofArtifact:
        ...

    @abstractmethod
    async def export_call_data(self, artifact: ProofArtifact) -> str:
        ...


def parse_call_data(calldata: str) -> Tuple[str, List[str]]:
    """
    Split verifier calldata into (proof bytes as 0x-hex, public signals).

    Accepts both snarkjs layouts: `0x<proof>,[signals]` and
    `[word, ...],[signals]` where the proof is a list of 32-byte words.
    """
    calldata = calldata.strip()
    if not calldata:
        raise ProofGenerationError("Empty calldata")

    try:
        if calldata.startswith('['):
            proof_part, signals = json.loads(f"[{calldata}]")
        else:
            head, _, tail = calldata.partition(',')
            proof_part = head.strip().strip('"')
            signals = json.loads(tail) if tail.strip() else []
    except (ValueError, TypeError) as e:
        raise ProofGenerationError(f"Malformed calldata: {e}") from e

    if isinstance(proof_part, list):
        words = [int(w, 16) if isinstance(w, str) else int(w) for w in proof_part]
        proof_hex = '0x' + ''.join(f"{w:064x}" for w in words)
    else:
        proof_hex = proof_part if proof_part.startswith('0x') else '0x' + proof_part

    return proof_hex, [str(s) for s in signals]


class SnarkjsProver(Prover):
    """Proof generation through the snarkjs command line"""

    def __init__(self, config: Optional[ProverConfig] = None):
        self.config = config or ProverConfig()

    def circuit_paths(self, circuit_name: str) -> Tuple[Path, Path]:
        """Locate <build>/<name>/<name>_js/<name>.wasm and <build>/<name>/<name>.zkey"""
        circuit_dir = self.config.build_dir / circuit_name
        wasm_file = circuit_dir / f"{circuit_name}_js" / f"{circuit_name}.wasm"
        zkey_file = circuit_dir / f"{circuit_name}.zkey"
        return wasm_file, zkey_file

    async def _run(self, args: List[str]) -> str:
        cmd = list(self.config.snarkjs_command) + args
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ProofGenerationError(f"Cannot start snarkjs: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(), timeout=self.config.proof_timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise ProofGenerationError(
                f"snarkjs timed out after {self.config.proof_timeout}s")
        except asyncio.CancelledError:
            process.kill()
            await process.wait()
            raise

        if process.returncode != 0:
            raise ProofGenerationError(
                f"snarkjs {' '.join(args[:2])} failed: {stderr.decode(errors='replace').strip()}")
        return stdout.decode()

    async def full_prove(self, circuit_name: str, circuit_input: Dict[str, Any]) -> ProofArtifact:
        """Generate witness and proof in one fullprove call"""
        start_time = time.time()
        wasm_file, zkey_file = self.circuit_paths(circuit_name)
        for path in (wasm_file, zkey_file):
            if not path.exists():
                raise ProofGenerationError(f"Missing circuit artifact: {path}")

        with tempfile.TemporaryDirectory() as temp_dir:
            temp_path = Path(temp_dir)
            input_file = temp_path / "input.json"
            proof_file = temp_path / "proof.json"
            public_file = temp_path / "public.json"
            input_file.write_text(json.dumps(circuit_input))

            await self._run([
                self.config.protocol, 'fullprove',
                str(input_file),
                str(wasm_file),
                str(zkey_file),
                str(proof_file),
                str(public_file),
            ])

            try:
                proof = json.loads(proof_file.read_text())
                public_signals = json.loads(public_file.read_text())
            except (OSError, ValueError) as e:
                raise ProofGenerationError(f"Unreadable prover output: {e}") from e

        generation_time = time.time() - start_time
        logger.info(f"Generated proof for {circuit_name} in {generation_time:.2f}s")

        return ProofArtifact(
            circuit_name=circuit_name,
            proof=proof,
            public_signals=[str(s) for s in public_signals],
            generation_time=generation_time,
        )

    async def export_call_data(self, artifact: ProofArtifact) -> str:
        with tempfile.TemporaryDirectory() as temp_dir:
            temp_path = Path(temp_dir)
            proof_file = temp_path / "proof.json"
            public_file = temp_path / "public.json"
            proof_file.write_text(json.dumps(artifact.proof))
            public_file.write_text(json.dumps(artifact.public_signals))

            return (await self._run([
                'zkey', 'export', 'soliditycalldata',
                str(public_file),
                str(proof_file),
            ])).strip()
