from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple
import logging

import yaml

logger = logging.getLogger(__name__)

ENCRYPTION_VERSION = "x25519-xsalsa20-poly1305"
HASH_FUNCTION = "poseidon-bn254"
# circomlib Poseidon accepts at most 16 inputs
MAX_HASH_INPUTS = 16
# widest amount the circuits range-check
MAX_AMOUNT_BITS = 248


class ConfigurationError(Exception):
    """Configuration does not match the deployed circuits/contract"""
    pass


@dataclass
class ProtocolConfig:
    max_tokens: int = 10
    tree_depth: int = 20
    deposit_outputs: int = 2
    transaction_shapes: List[Tuple[int, int]] = field(
        default_factory=lambda: [(1, 1), (1, 2), (2, 2)])
    encryption_version: str = ENCRYPTION_VERSION
    hash_function: str = HASH_FUNCTION
    nonce_length: int = 24
    key_length: int = 32
    max_amount_bits: int = MAX_AMOUNT_BITS

    def __post_init__(self):
        self.transaction_shapes = [tuple(s) for s in self.transaction_shapes]

    def validate(self):
        if not 1 <= self.tree_depth <= 32:
            raise ConfigurationError(f"Unsupported tree depth: {self.tree_depth}")
        if self.max_tokens < 1 or self.max_tokens + 2 > MAX_HASH_INPUTS:
            raise ConfigurationError(
                f"max_tokens={self.max_tokens} exceeds the commitment hash arity")
        for shape in self.transaction_shapes:
            if shape not in [(1, 1), (1, 2), (2, 2)]:
                raise ConfigurationError(f"Unsupported transaction shape: {shape}")
        if self.deposit_outputs != 2:
            raise ConfigurationError("Deposits always produce exactly two outputs")
        if self.encryption_version != ENCRYPTION_VERSION:
            raise ConfigurationError(
                f"Unknown encryption scheme: {self.encryption_version}")
        if self.hash_function != HASH_FUNCTION:
            raise ConfigurationError(f"Unknown hash function: {self.hash_function}")
        if self.nonce_length != 24 or self.key_length != 32:
            raise ConfigurationError("Envelope widths must be 24-byte nonce, 32-byte keys")
        if not 1 <= self.max_amount_bits <= MAX_AMOUNT_BITS:
            raise ConfigurationError(
                f"max_amount_bits={self.max_amount_bits} does not fit the field")


@dataclass
class ProverConfig:
    build_dir: Path = field(default_factory=lambda: Path("build"))
    protocol: str = "plonk"
    snarkjs_command: List[str] = field(default_factory=lambda: ["snarkjs"])
    proof_timeout: int = 120
    deposit_circuit: str = "Deposit"
    transaction_circuit_prefix: str = "Transaction"

    def __post_init__(self):
        self.build_dir = Path(self.build_dir)
        if isinstance(self.snarkjs_command, str):
            self.snarkjs_command = [self.snarkjs_command]

    def transaction_circuit(self, num_inputs: int, num_outputs: int) -> str:
        return f"{self.transaction_circuit_prefix}{num_inputs}x{num_outputs}"


@dataclass
class SystemConfig:
    protocol: ProtocolConfig = field(default_factory=ProtocolConfig)
    prover: ProverConfig = field(default_factory=ProverConfig)

    log_dir: Path = field(default_factory=lambda: Path("logs"))
    log_level: str = "INFO"
    decrypt_workers: int = 1
    enable_debug_mode: bool = False

    def __post_init__(self):
        self.log_dir = Path(self.log_dir)

    def validate(self):
        self.protocol.validate()
        if self.prover.protocol not in ("plonk", "groth16"):
            raise ConfigurationError(f"Unknown proof system: {self.prover.protocol}")
        if self.prover.proof_timeout <= 0:
            raise ConfigurationError("proof_timeout must be positive")
        if self.decrypt_workers < 1:
            raise ConfigurationError("decrypt_workers must be at least 1")


def load_config(config_path: Optional[Path] = None) -> SystemConfig:
    """Load configuration from file or return default"""
    if config_path is None:
        config_path = Path("config.yaml")
    config_path = Path(config_path)

    if not config_path.exists():
        return SystemConfig()

    with open(config_path, 'r') as f:
        config_data = yaml.safe_load(f) or {}

    protocol_data = config_data.get('protocol', {})
    protocol = ProtocolConfig(
        max_tokens=protocol_data.get('max_tokens', 10),
        tree_depth=protocol_data.get('tree_depth', 20),
        deposit_outputs=protocol_data.get('deposit_outputs', 2),
        transaction_shapes=protocol_data.get(
            'transaction_shapes', [(1, 1), (1, 2), (2, 2)]),
        encryption_version=protocol_data.get('encryption_version', ENCRYPTION_VERSION),
        hash_function=protocol_data.get('hash_function', HASH_FUNCTION),
        nonce_length=protocol_data.get('nonce_length', 24),
        key_length=protocol_data.get('key_length', 32),
        max_amount_bits=protocol_data.get('max_amount_bits', MAX_AMOUNT_BITS)
    )

    prover_data = config_data.get('prover', {})
    prover = ProverConfig(
        build_dir=Path(prover_data.get('build_dir', 'build')),
        protocol=prover_data.get('protocol', 'plonk'),
        snarkjs_command=prover_data.get('snarkjs_command', ['snarkjs']),
        proof_timeout=prover_data.get('proof_timeout', 120),
        deposit_circuit=prover_data.get('deposit_circuit', 'Deposit'),
        transaction_circuit_prefix=prover_data.get(
            'transaction_circuit_prefix', 'Transaction')
    )

    config = SystemConfig(
        protocol=protocol,
        prover=prover,
        log_dir=Path(config_data.get('log_dir', 'logs')),
        log_level=config_data.get('log_level', 'INFO'),
        decrypt_workers=config_data.get('decrypt_workers', 1),
        enable_debug_mode=config_data.get('enable_debug_mode', False)
    )
    logger.info(f"Loaded configuration from {config_path}")
    return config


def save_config(config: SystemConfig, config_path: Optional[Path] = None):
    """Save configuration to YAML file"""
    if config_path is None:
        config_path = Path("config.yaml")

    config_data = {
        'protocol': {
            'max_tokens': config.protocol.max_tokens,
            'tree_depth': config.protocol.tree_depth,
            'deposit_outputs': config.protocol.deposit_outputs,
            'transaction_shapes': [list(s) for s in config.protocol.transaction_shapes],
            'encryption_version': config.protocol.encryption_version,
            'hash_function': config.protocol.hash_function,
            'nonce_length': config.protocol.nonce_length,
            'key_length': config.protocol.key_length,
            'max_amount_bits': config.protocol.max_amount_bits
        },
        'prover': {
            'build_dir': str(config.prover.build_dir),
            'protocol': config.prover.protocol,
            'snarkjs_command': list(config.prover.snarkjs_command),
            'proof_timeout': config.prover.proof_timeout,
            'deposit_circuit': config.prover.deposit_circuit,
            'transaction_circuit_prefix': config.prover.transaction_circuit_prefix
        },
        'log_dir': str(config.log_dir),
        'log_level': config.log_level,
        'decrypt_workers': config.decrypt_workers,
        'enable_debug_mode': config.enable_debug_mode
    }

    with open(config_path, 'w') as f:
        yaml.dump(config_data, f, default_flow_style=False)
