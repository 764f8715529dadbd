"""
pqbgpsec Python Package

Post-quantum BGPsec chain of custody: a minimal certificate authority for
router identities and hop-to-hop path attestation signatures.
"""

__version__ = "0.1.0"

from .errors import (
    PQBGPsecError,
    KeyGenerationError,
    IssuanceError,
    SigningError,
    DecodeError,
    StorageError,
    ScenarioError,
)
from .config import ChainConfig
from .crypto import KeyPair, generate_key_pair

from . import crypto
from . import pki
from . import path

from .scenario import ChainScenario, ScenarioResult, ScenarioState

__all__ = [
    "PQBGPsecError",
    "KeyGenerationError",
    "IssuanceError",
    "SigningError",
    "DecodeError",
    "StorageError",
    "ScenarioError",
    "ChainConfig",
    "KeyPair",
    "generate_key_pair",
    "crypto",
    "pki",
    "path",
    "ChainScenario",
    "ScenarioResult",
    "ScenarioState",
]
