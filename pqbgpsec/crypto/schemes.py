"""
Signature scheme registry and provider functions.

Classical schemes are backed by ``cryptography``. Post-quantum schemes
(Falcon, ML-DSA) are backed by the ``oqs`` bindings from ``liboqs-python``,
which are imported lazily; when they are not installed those schemes are
reported as unavailable and key generation for them raises
:class:`~pqbgpsec.errors.KeyGenerationError`.
"""

import importlib
import logging
import threading
from typing import Dict, List, Optional

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.ed448 import Ed448PrivateKey, Ed448PublicKey
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey

from ..errors import KeyGenerationError, SigningError
from .types import KeyPair

logger = logging.getLogger(__name__)


class SignatureScheme:
    """Interface every registered scheme implements."""

    name: str = ""
    post_quantum: bool = False

    def is_available(self) -> bool:
        return True

    def generate(self) -> tuple[bytes, bytes]:
        """Return ``(private_key, public_key)`` as raw bytes."""
        raise NotImplementedError

    def sign(self, private_key: bytes, message: bytes) -> bytes:
        raise NotImplementedError

    def verify(self, public_key: bytes, message: bytes, signature: bytes) -> bool:
        raise NotImplementedError


class _EdwardsScheme(SignatureScheme):
    private_cls = None
    public_cls = None

    def generate(self) -> tuple[bytes, bytes]:
        private = self.private_cls.generate()
        private_bytes = private.private_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PrivateFormat.Raw,
            encryption_algorithm=serialization.NoEncryption(),
        )
        public_bytes = private.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )
        return private_bytes, public_bytes

    def sign(self, private_key: bytes, message: bytes) -> bytes:
        return self.private_cls.from_private_bytes(private_key).sign(message)

    def verify(self, public_key: bytes, message: bytes, signature: bytes) -> bool:
        try:
            self.public_cls.from_public_bytes(public_key).verify(signature, message)
        except (InvalidSignature, ValueError):
            return False
        return True


class Ed25519Scheme(_EdwardsScheme):
    name = "ed25519"
    private_cls = Ed25519PrivateKey
    public_cls = Ed25519PublicKey


class Ed448Scheme(_EdwardsScheme):
    name = "ed448"
    private_cls = Ed448PrivateKey
    public_cls = Ed448PublicKey


class EcdsaP256Scheme(SignatureScheme):
    """ECDSA over P-256 with SHA-256, the classical BGPsec suite."""
    name = "ecdsa-p256"

    def generate(self) -> tuple[bytes, bytes]:
        private = ec.generate_private_key(ec.SECP256R1())
        private_bytes = private.private_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
        public_bytes = private.public_key().public_bytes(
            encoding=serialization.Encoding.X962,
            format=serialization.PublicFormat.UncompressedPoint,
        )
        return private_bytes, public_bytes

    def sign(self, private_key: bytes, message: bytes) -> bytes:
        private = serialization.load_der_private_key(private_key, password=None)
        if not isinstance(private, ec.EllipticCurvePrivateKey):
            raise ValueError("not an EC private key")
        return private.sign(message, ec.ECDSA(hashes.SHA256()))

    def verify(self, public_key: bytes, message: bytes, signature: bytes) -> bool:
        try:
            public = ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256R1(), public_key)
            public.verify(signature, message, ec.ECDSA(hashes.SHA256()))
        except (InvalidSignature, ValueError):
            return False
        return True


_oqs_lock = threading.Lock()
_oqs_module = None
_oqs_probed = False


def _load_oqs():
    """Import the liboqs bindings once; ``None`` when they cannot be loaded."""
    global _oqs_module, _oqs_probed
    with _oqs_lock:
        if not _oqs_probed:
            _oqs_probed = True
            try:
                _oqs_module = importlib.import_module("oqs")
            except (ImportError, OSError, RuntimeError) as e:
                logger.info("liboqs bindings unavailable: %s", e)
                _oqs_module = None
        return _oqs_module


class OQSScheme(SignatureScheme):
    """A liboqs signature mechanism such as ``Falcon-512``."""
    post_quantum = True

    def __init__(self, name: str, mechanism: str):
        self.name = name
        self.mechanism = mechanism

    def _oqs(self):
        oqs = _load_oqs()
        if oqs is None:
            raise KeyGenerationError(
                f"{self.name} requires liboqs-python; pip install 'pqbgpsec[pq]'"
            )
        return oqs

    def is_available(self) -> bool:
        oqs = _load_oqs()
        if oqs is None:
            return False
        return self.mechanism in oqs.get_enabled_sig_mechanisms()

    def generate(self) -> tuple[bytes, bytes]:
        oqs = self._oqs()
        with oqs.Signature(self.mechanism) as signer:
            public_bytes = signer.generate_keypair()
            private_bytes = signer.export_secret_key()
        return bytes(private_bytes), bytes(public_bytes)

    def sign(self, private_key: bytes, message: bytes) -> bytes:
        oqs = self._oqs()
        with oqs.Signature(self.mechanism, private_key) as signer:
            return bytes(signer.sign(message))

    def verify(self, public_key: bytes, message: bytes, signature: bytes) -> bool:
        oqs = _load_oqs()
        if oqs is None:
            return False
        with oqs.Signature(self.mechanism) as verifier:
            return bool(verifier.verify(message, signature, public_key))


_registry_lock = threading.Lock()
_SCHEMES: Dict[str, SignatureScheme] = {}


def register_scheme(scheme: SignatureScheme) -> None:
    """Register (or replace) a scheme under its name."""
    with _registry_lock:
        _SCHEMES[scheme.name] = scheme


for _scheme in (
    Ed25519Scheme(),
    Ed448Scheme(),
    EcdsaP256Scheme(),
    OQSScheme("falcon512", "Falcon-512"),
    OQSScheme("falcon1024", "Falcon-1024"),
    OQSScheme("ml-dsa-44", "ML-DSA-44"),
    OQSScheme("ml-dsa-65", "ML-DSA-65"),
):
    register_scheme(_scheme)


def get_scheme(algorithm: str) -> SignatureScheme:
    with _registry_lock:
        scheme = _SCHEMES.get(algorithm)
    if scheme is None:
        raise KeyGenerationError(f"unsupported algorithm: {algorithm}")
    return scheme


def registered_algorithms() -> List[str]:
    with _registry_lock:
        return sorted(_SCHEMES)


def available_algorithms() -> List[str]:
    """Registered schemes whose backend can actually run here."""
    return [name for name in registered_algorithms() if get_scheme(name).is_available()]


def require_algorithm(algorithm: str) -> SignatureScheme:
    """Return the scheme or raise KeyGenerationError if it cannot be used."""
    scheme = get_scheme(algorithm)
    if not scheme.is_available():
        raise KeyGenerationError(f"{algorithm} is not available in this environment")
    return scheme


def generate_key_pair(algorithm: str) -> KeyPair:
    """Generate a fresh key pair for ``algorithm``."""
    scheme = require_algorithm(algorithm)
    try:
        private_bytes, public_bytes = scheme.generate()
    except KeyGenerationError:
        raise
    except Exception as e:
        raise KeyGenerationError(f"{algorithm} key generation failed: {e}") from e
    key_pair = KeyPair(algorithm=algorithm, public_key=public_bytes, private_key=private_bytes)
    logger.debug("Generated %s key %s", algorithm, key_pair.key_id)
    return key_pair


def sign(key_pair: KeyPair, message: bytes) -> bytes:
    """Sign ``message`` with the private half of ``key_pair``."""
    if key_pair is None or not key_pair.has_private:
        raise SigningError("key pair has no private key")
    try:
        scheme = get_scheme(key_pair.algorithm)
    except KeyGenerationError as e:
        raise SigningError(str(e)) from e
    try:
        return scheme.sign(key_pair.private_key, message)
    except KeyGenerationError as e:
        raise SigningError(str(e)) from e
    except Exception as e:
        raise SigningError(f"{key_pair.algorithm} signing failed: {e}") from e


def verify(algorithm: str, public_key: bytes, message: bytes, signature: bytes) -> bool:
    """Return True when ``signature`` is valid; never raises for bad input."""
    try:
        scheme = get_scheme(algorithm)
    except KeyGenerationError:
        logger.warning("Verification requested for unknown algorithm %s", algorithm)
        return False
    try:
        return scheme.verify(public_key, message, signature)
    except Exception as e:
        logger.debug("%s verification error: %s", algorithm, e)
        return False


__all__ = [
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
