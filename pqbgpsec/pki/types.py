"""
Certificate, signing request and validation result types.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from ..crypto.types import KeyPair

CERTIFICATE_VERSION = 1

KEY_USAGE_CERT_SIGN = "keyCertSign"
KEY_USAGE_CRL_SIGN = "cRLSign"
KEY_USAGE_DIGITAL_SIGNATURE = "digitalSignature"


@dataclass(frozen=True)
class Certificate:
    """An issued certificate binding a subject identity to a public key.

    ``algorithm`` is the scheme of ``public_key``; ``signature_algorithm`` is
    the scheme the issuer signed with.
    """
    serial_number: int
    subject: str
    issuer: str
    algorithm: str
    public_key: bytes
    signature_algorithm: str
    not_before: int
    not_after: int
    subject_key_id: str
    authority_key_id: str
    is_ca: bool = False
    key_usage: Tuple[str, ...] = ()
    subject_name: Dict[str, str] = field(default_factory=dict)
    version: int = CERTIFICATE_VERSION
    signature: bytes = field(default=b"", repr=False)

    @property
    def common_name(self) -> str:
        return self.subject_name.get("CN", self.subject)

    @property
    def is_self_signed(self) -> bool:
        return self.subject == self.issuer and self.subject_key_id == self.authority_key_id

    def is_valid_at(self, now: int) -> bool:
        return self.not_before <= now < self.not_after

    def public_key_pair(self) -> KeyPair:
        """Public-only handle carrying the certified key."""
        return KeyPair(algorithm=self.algorithm, public_key=self.public_key, key_id=self.subject_key_id)


@dataclass(frozen=True)
class SigningRequest:
    """A certificate signing request with proof of possession.

    ``signature`` is made by the requesting private key over the canonical
    encoding of the other fields.
    """
    subject: str
    algorithm: str
    public_key: bytes
    subject_name: Dict[str, str] = field(default_factory=dict)
    signature: bytes = field(default=b"", repr=False)


@dataclass
class ValidationResult:
    """Outcome of validating one certificate. Invalid is a result, not an error."""
    valid: bool
    reason: Optional[str] = None
    serial_number: Optional[int] = None
    subject: str = ""

    def __bool__(self) -> bool:
        return self.valid


@dataclass
class ValidationReport:
    """Summary over a batch of certificate validations."""
    results: List[ValidationResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def valid_count(self) -> int:
        return sum(1 for r in self.results if r.valid)

    @property
    def all_valid(self) -> bool:
        return self.valid_count == self.total

    @property
    def failures(self) -> List[ValidationResult]:
        return [r for r in self.results if not r.valid]

    def summary(self) -> str:
        return f"{self.valid_count}/{self.total} certificates valid"


class RevocationStatus(Enum):
    """Revocation status of a certificate serial or key."""
    UNKNOWN = 0  # backend could not determine status
    ACTIVE = 1
    REVOKED = 2


@dataclass
class RevocationCheckTarget:
    """What is being checked for revocation."""
    serial_number: Optional[int] = None
    key_id: str = ""


class RevocationProvider:
    """Interface for revocation backends (CRL, OCSP-like, etc.)."""

    def check(self, target: RevocationCheckTarget) -> tuple[RevocationStatus, Optional[Exception]]:
        """Return the revocation status for the provided target."""
        raise NotImplementedError


@dataclass
class ValidationOptions:
    """Configurable behaviors for certificate validation."""
    now_func: Callable[[], float] = field(default_factory=lambda: time.time)
    check_validity_period: bool = True
    revocation_provider: Optional[RevocationProvider] = None
    fail_on_revocation_unknown: bool = False


__all__ = [
    "CERTIFICATE_VERSION",
    "KEY_USAGE_CERT_SIGN",
    "KEY_USAGE_CRL_SIGN",
    "KEY_USAGE_DIGITAL_SIGNATURE",
    "Certificate",
    "SigningRequest",
    "ValidationResult",
    "ValidationReport",
    "RevocationStatus",
    "RevocationCheckTarget",
    "RevocationProvider",
    "ValidationOptions",
]
