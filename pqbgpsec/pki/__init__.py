"""
Package pki provides a minimal certificate authority for hop identities:
issuance with an append-only ledger, signing requests with proof of
possession, and validation of issued certificates against a trusted root.
"""

from .types import (
    Certificate,
    SigningRequest,
    ValidationResult,
    ValidationReport,
    RevocationStatus,
    RevocationCheckTarget,
    RevocationProvider,
    ValidationOptions,
)

from .codec import (
    encode_certificate,
    decode_certificate,
    certificate_to_dict,
    certificate_from_dict,
    tbs_bytes,
)

from .authority import (
    CertificateAuthority,
    IssuanceLedger,
    IssuancePolicy,
    make_signing_request,
)

from .issuer import CertificateIssuer
from .validator import ChainValidator

from .revocation import (
    NoopRevocationProvider,
    InMemoryRevocationProvider,
)

__all__ = [
    'Certificate',
    'SigningRequest',
    'ValidationResult',
    'ValidationReport',
    'RevocationStatus',
    'RevocationCheckTarget',
    'RevocationProvider',
    'ValidationOptions',
    'encode_certificate',
    'decode_certificate',
    'certificate_to_dict',
    'certificate_from_dict',
    'tbs_bytes',
    'CertificateAuthority',
    'IssuanceLedger',
    'IssuancePolicy',
    'make_signing_request',
    'CertificateIssuer',
    'ChainValidator',
    'NoopRevocationProvider',
    'InMemoryRevocationProvider',
]
