import asyncio
import os
import sys

import pytest

from config.config import ProverConfig
from zk.errors import ProofGenerationError
from zk.prover import SnarkjsProver, parse_call_data

FAKE_SNARKJS = """#!/bin/sh
case "$1" in
  fail)
    echo "constraint doesn't match" >&2
    exit 1
    ;;
  hang)
    exec sleep 5
    ;;
  zkey)
    echo '0xdeadbeef,["7","8"]'
    ;;
  *)
    echo '{"protocol": "plonk", "A": ["1", "2"]}' > "$6"
    echo '["7", "8"]' > "$7"
    ;;
esac
"""


def test_parse_hex_calldata():
    proof, signals = parse_call_data('0xabcdef,["1","2"]')
    assert proof == "0xabcdef"
    assert signals == ["1", "2"]


def test_parse_word_list_calldata():
    proof, signals = parse_call_data('["0x01", "0x02"],["3"]')
    assert proof == "0x" + "00" * 31 + "01" + "00" * 31 + "02"
    assert signals == ["3"]


def test_parse_calldata_without_signals():
    assert parse_call_data("abcd") == ("0xabcd", [])


@pytest.mark.parametrize("calldata", ["", "   ", '0x00,[1,'])
def test_parse_rejects_malformed(calldata):
    with pytest.raises(ProofGenerationError):
        parse_call_data(calldata)


def test_circuit_paths_follow_build_layout(tmp_path):
    prover = SnarkjsProver(ProverConfig(build_dir=tmp_path))
    wasm, zkey = prover.circuit_paths("Transaction1x2")
    assert wasm == tmp_path / "Transaction1x2" / "Transaction1x2_js" / "Transaction1x2.wasm"
    assert zkey == tmp_path / "Transaction1x2" / "Transaction1x2.zkey"


def test_missing_artifacts(tmp_path):
    prover = SnarkjsProver(ProverConfig(build_dir=tmp_path))
    with pytest.raises(ProofGenerationError):
        asyncio.run(prover.full_prove("Deposit", {}))


def _fake_prover(tmp_path, protocol="plonk", timeout=30):
    script = tmp_path / "snarkjs"
    script.write_text(FAKE_SNARKJS)
    os.chmod(script, 0o755)

    circuit_dir = tmp_path / "build" / "Deposit"
    (circuit_dir / "Deposit_js").mkdir(parents=True)
    (circuit_dir / "Deposit_js" / "Deposit.wasm").write_bytes(b"\0asm")
    (circuit_dir / "Deposit.zkey").write_bytes(b"zkey")

    return SnarkjsProver(ProverConfig(
        build_dir=tmp_path / "build",
        protocol=protocol,
        snarkjs_command=[str(script)],
        proof_timeout=timeout,
    ))


pytestmark_posix = pytest.mark.skipif(sys.platform == "win32", reason="needs /bin/sh")


@pytestmark_posix
def test_fullprove_and_calldata_through_cli(tmp_path):
    prover = _fake_prover(tmp_path)

    artifact = asyncio.run(prover.full_prove("Deposit", {'depositAmount': ['1']}))
    assert artifact.circuit_name == "Deposit"
    assert artifact.proof['protocol'] == "plonk"
    assert artifact.public_signals == ["7", "8"]

    calldata = asyncio.run(prover.export_call_data(artifact))
    assert parse_call_data(calldata) == ("0xdeadbeef", ["7", "8"])


@pytestmark_posix
def test_cli_failure_is_reported(tmp_path):
    prover = _fake_prover(tmp_path, protocol="fail")
    with pytest.raises(ProofGenerationError, match="constraint"):
        asyncio.run(prover.full_prove("Deposit", {}))


@pytestmark_posix
def test_cli_timeout(tmp_path):
    prover = _fake_prover(tmp_path, protocol="hang", timeout=1)
    with pytest.raises(ProofGenerationError, match="timed out"):
        asyncio.run(prover.full_prove("Deposit", {}))


def test_missing_executable(tmp_path):
    prover = _fake_prover(tmp_path)
    prover.config.snarkjs_command = [str(tmp_path / "no-such-snarkjs")]
    with pytest.raises(ProofGenerationError):
        asyncio.run(prover.full_prove("Deposit", {}))
