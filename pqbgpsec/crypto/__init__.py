"""
Signature provider: key generation, signing and verification for every
registered scheme (classical via ``cryptography``, post-quantum via liboqs).
"""

from .types import KeyPair, compute_key_id
from .schemes import (
    SignatureScheme,
    Ed25519Scheme,
    Ed448Scheme,
    EcdsaP256Scheme,
    OQSScheme,
    register_scheme,
    get_scheme,
    registered_algorithms,
    available_algorithms,
    require_algorithm,
    generate_key_pair,
    sign,
    verify,
)

__all__ = [
    "KeyPair",
    "compute_key_id",
    "SignatureScheme",
    "Ed25519Scheme",
    "Ed448Scheme",
    "EcdsaP256Scheme",
    "OQSScheme",
    "register_scheme",
    "get_scheme",
    "registered_algorithms",
    "available_algorithms",
    "require_algorithm",
    "generate_key_pair",
    "sign",
    "verify",
]
