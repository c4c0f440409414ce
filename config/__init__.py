"""Configuration management for the shielded pool client."""

from .config import (
    SystemConfig,
    ProtocolConfig,
    ProverConfig,
    ConfigurationError,
    load_config,
    save_config,
)

__all__ = ['SystemConfig', 'ProtocolConfig', 'ProverConfig', 'ConfigurationError',
           'load_config', 'save_config']
