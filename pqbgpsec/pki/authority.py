"""
Certificate authority and its issuance ledger.

The authority owns its root key pair, a monotonically increasing serial
counter and an append-only ledger of everything it has issued. Serial
allocation and ledger appends are serialized by a lock so issuance may be
driven from a thread pool; signing itself runs outside the lock.
"""

import logging
import secrets
import threading
import time
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

from .. import crypto
from ..errors import DecodeError, IssuanceError, KeyGenerationError, SigningError
from ..monitoring import MetricsRegistry, get_registry
from .codec import certificate_from_dict, certificate_to_dict, request_tbs_bytes, tbs_bytes
from .types import (
    KEY_USAGE_CERT_SIGN,
    KEY_USAGE_CRL_SIGN,
    KEY_USAGE_DIGITAL_SIGNATURE,
    Certificate,
    SigningRequest,
)

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400
DEFAULT_INITIAL_SERIAL = 0x1000


class IssuanceLedger:
    """Append-only mapping of serial number to issued certificate."""

    def __init__(self):
        self._lock = threading.Lock()
        self._entries: Dict[int, Certificate] = {}

    def append(self, certificate: Certificate) -> None:
        with self._lock:
            if certificate.serial_number in self._entries:
                raise IssuanceError(f"duplicate serial number {certificate.serial_number:#x}")
            self._entries[certificate.serial_number] = certificate

    def get(self, serial_number: int) -> Optional[Certificate]:
        with self._lock:
            return self._entries.get(serial_number)

    def find_by_subject(self, subject: str) -> List[Certificate]:
        return [c for c in self if c.subject == subject]

    def serials(self) -> List[int]:
        with self._lock:
            return sorted(self._entries)

    @property
    def last_serial(self) -> Optional[int]:
        serials = self.serials()
        return serials[-1] if serials else None

    def __contains__(self, serial_number: int) -> bool:
        with self._lock:
            return serial_number in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __iter__(self) -> Iterator[Certificate]:
        with self._lock:
            entries = sorted(self._entries.items())
        return iter([cert for _, cert in entries])

    def to_dict(self) -> Dict[str, Any]:
        return {"certificates": [certificate_to_dict(c) for c in self]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "IssuanceLedger":
        records = data.get("certificates") if isinstance(data, dict) else None
        if not isinstance(records, list):
            raise DecodeError("ledger record must contain a certificates list")
        ledger = cls()
        for record in records:
            try:
                ledger.append(certificate_from_dict(record))
            except IssuanceError as e:
                raise DecodeError(str(e)) from e
        return ledger


@dataclass
class IssuancePolicy:
    """Subject-name policy applied to signing requests.

    Mirrors the ``policy_match`` section of a classic CA config: country must
    match the authority's, a common name must be supplied.
    """
    match_country: bool = True
    require_common_name: bool = True

    def check(self, subject_name: Dict[str, str], authority_name: Dict[str, str]) -> None:
        if self.require_common_name and not subject_name.get("CN"):
            raise IssuanceError("policy: commonName must be supplied")
        if self.match_country and authority_name.get("C"):
            if subject_name.get("C") != authority_name["C"]:
                raise IssuanceError(
                    f"policy: countryName {subject_name.get('C')!r} does not match "
                    f"authority {authority_name['C']!r}"
                )


class CertificateAuthority:
    """Root authority issuing certificates for hop identities."""

    def __init__(
        self,
        key_pair: Optional[crypto.KeyPair],
        certificate: Certificate,
        *,
        initial_serial: int = DEFAULT_INITIAL_SERIAL,
        validity_days: int = 365,
        policy: Optional[IssuancePolicy] = None,
        metrics: Optional[MetricsRegistry] = None,
        now_func: Callable[[], float] = time.time,
    ):
        self._key_pair = key_pair
        self._certificate = certificate
        self._lock = threading.Lock()
        self._next_serial = initial_serial
        self._ledger = IssuanceLedger()
        self.validity_days = validity_days
        self.policy = policy or IssuancePolicy()
        self.metrics = metrics or get_registry()
        self.now_func = now_func

    @classmethod
    def create(
        cls,
        subject: str,
        algorithm: str,
        *,
        subject_name: Optional[Dict[str, str]] = None,
        ca_validity_days: int = 3650,
        **kwargs,
    ) -> "CertificateAuthority":
        """Generate a root key pair and a self-signed CA certificate.

        Raises KeyGenerationError if ``algorithm`` is unsupported.
        """
        key_pair = crypto.generate_key_pair(algorithm)
        now_func = kwargs.get("now_func", time.time)
        now = int(now_func())
        unsigned = Certificate(
            serial_number=secrets.randbits(63),
            subject=subject,
            issuer=subject,
            subject_name=dict(subject_name or {"CN": subject}),
            algorithm=algorithm,
            public_key=key_pair.public_key,
            signature_algorithm=algorithm,
            not_before=now,
            not_after=now + ca_validity_days * SECONDS_PER_DAY,
            is_ca=True,
            key_usage=(KEY_USAGE_CERT_SIGN, KEY_USAGE_CRL_SIGN),
            subject_key_id=key_pair.key_id,
            authority_key_id=key_pair.key_id,
        )
        certificate = replace(unsigned, signature=crypto.sign(key_pair, tbs_bytes(unsigned)))
        logger.info("Root CA established: %s (%s, key %s)", subject, algorithm, key_pair.key_id)
        return cls(key_pair, certificate, **kwargs)

    @classmethod
    def from_config(cls, config, **kwargs) -> "CertificateAuthority":
        return cls.create(
            config.ca_subject,
            config.algorithm,
            subject_name=config.ca_subject_name(),
            ca_validity_days=config.ca_validity_days,
            initial_serial=config.initial_serial,
            validity_days=config.validity_days,
            **kwargs,
        )

    @property
    def certificate(self) -> Certificate:
        return self._certificate

    @property
    def subject(self) -> str:
        return self._certificate.subject

    @property
    def algorithm(self) -> str:
        return self._certificate.algorithm

    @property
    def key_id(self) -> str:
        return self._certificate.subject_key_id

    @property
    def ledger(self) -> IssuanceLedger:
        return self._ledger

    @property
    def next_serial(self) -> int:
        with self._lock:
            return self._next_serial

    def _ensure_usable(self) -> crypto.KeyPair:
        key_pair = self._key_pair
        if key_pair is None or not key_pair.has_private:
            raise IssuanceError("CA key pair is absent")
        if not self._certificate.is_ca:
            raise IssuanceError("CA certificate lacks the CA flag")
        if key_pair.algorithm != self._certificate.algorithm or key_pair.public_key != self._certificate.public_key:
            raise IssuanceError("CA key pair does not match CA certificate")
        try:
            crypto.get_scheme(key_pair.algorithm)
        except KeyGenerationError as e:
            raise IssuanceError(f"CA key pair unusable: {e}") from e
        return key_pair

    def _allocate_serial(self) -> int:
        with self._lock:
            serial = self._next_serial
            self._next_serial += 1
            return serial

    def issue(
        self,
        subject: str,
        public_key: bytes,
        *,
        algorithm: Optional[str] = None,
        subject_name: Optional[Dict[str, str]] = None,
        validity_days: Optional[int] = None,
        is_ca: bool = False,
        key_usage: Sequence[str] = (KEY_USAGE_DIGITAL_SIGNATURE,),
    ) -> Certificate:
        """Issue and record a certificate binding ``subject`` to ``public_key``."""
        key_pair = self._ensure_usable()
        if not subject:
            raise IssuanceError("subject identifier is empty")
        if not public_key:
            raise IssuanceError("subject public key is empty")

        algorithm = algorithm or self.algorithm
        days = self.validity_days if validity_days is None else validity_days
        now = int(self.now_func())
        serial = self._allocate_serial()
        unsigned = Certificate(
            serial_number=serial,
            subject=subject,
            issuer=self.subject,
            subject_name=dict(subject_name or {"CN": subject}),
            algorithm=algorithm,
            public_key=public_key,
            signature_algorithm=key_pair.algorithm,
            not_before=now,
            not_after=now + days * SECONDS_PER_DAY,
            is_ca=is_ca,
            key_usage=tuple(key_usage),
            subject_key_id=crypto.compute_key_id(public_key),
            authority_key_id=self.key_id,
        )
        try:
            signature = crypto.sign(key_pair, tbs_bytes(unsigned))
        except SigningError as e:
            raise IssuanceError(f"failed to sign certificate {serial:#x}: {e}") from e

        certificate = replace(unsigned, signature=signature)
        self._ledger.append(certificate)
        self.metrics.observe_issued(algorithm)
        logger.info("Issued certificate %#x for %s (key %s)", serial, subject, certificate.subject_key_id)
        return certificate

    def issue_request(self, request: SigningRequest, **kwargs) -> Certificate:
        """Verify a signing request's proof of possession and policy, then issue."""
        self._ensure_usable()
        if not crypto.verify(request.algorithm, request.public_key, request_tbs_bytes(request), request.signature):
            raise IssuanceError(f"signing request for {request.subject} failed proof-of-possession")
        self.policy.check(request.subject_name, self._certificate.subject_name)
        return self.issue(
            request.subject,
            request.public_key,
            algorithm=request.algorithm,
            subject_name=request.subject_name,
            **kwargs,
        )

    def snapshot(self) -> Dict[str, Any]:
        """Serializable state: root certificate, serial counter and ledger."""
        with self._lock:
            next_serial = self._next_serial
        return {
            "authority": certificate_to_dict(self._certificate),
            "next_serial": next_serial,
            "ledger": self._ledger.to_dict(),
        }

    def _check_issued_here(self, certificate: Certificate) -> None:
        """DecodeError unless ``certificate`` carries this authority's signature."""
        root = self._certificate
        if (
            certificate.issuer != root.subject
            or certificate.authority_key_id != root.subject_key_id
            or certificate.signature_algorithm != root.algorithm
            or not crypto.verify(root.algorithm, root.public_key, tbs_bytes(certificate), certificate.signature)
        ):
            raise DecodeError(
                f"ledger entry {certificate.serial_number:#x} ({certificate.subject}) "
                f"was not issued by {root.subject}"
            )

    def restore(self, snapshot: Dict[str, Any]) -> None:
        """Load a snapshot taken from this same authority into an empty ledger."""
        if not isinstance(snapshot, dict):
            raise DecodeError("authority snapshot must be an object")
        root = certificate_from_dict(snapshot.get("authority"))
        if root.subject_key_id != self.key_id:
            raise DecodeError("snapshot belongs to a different authority")
        ledger = IssuanceLedger.from_dict(snapshot.get("ledger"))
        for certificate in ledger:
            self._check_issued_here(certificate)
        next_serial = snapshot.get("next_serial")
        if not isinstance(next_serial, int) or isinstance(next_serial, bool):
            raise DecodeError("snapshot next_serial must be an integer")
        last = ledger.last_serial
        if last is not None and next_serial <= last:
            raise DecodeError("snapshot next_serial does not follow the ledger")
        with self._lock:
            if len(self._ledger):
                raise IssuanceError("cannot restore into a non-empty ledger")
            self._ledger = ledger
            self._next_serial = max(self._next_serial, next_serial)
        logger.info("Restored %d ledger entries, next serial %#x", len(ledger), self._next_serial)


def make_signing_request(
    key_pair: crypto.KeyPair,
    subject: str,
    subject_name: Optional[Dict[str, str]] = None,
) -> SigningRequest:
    """Build a signing request carrying proof of possession of ``key_pair``."""
    unsigned = SigningRequest(
        subject=subject,
        algorithm=key_pair.algorithm,
        public_key=key_pair.public_key,
        subject_name=dict(subject_name or {"CN": subject}),
    )
    return replace(unsigned, signature=crypto.sign(key_pair, request_tbs_bytes(unsigned)))


__all__ = [
    "CertificateAuthority",
    "IssuanceLedger",
    "IssuancePolicy",
    "make_signing_request",
    "DEFAULT_INITIAL_SERIAL",
    "SECONDS_PER_DAY",
]
