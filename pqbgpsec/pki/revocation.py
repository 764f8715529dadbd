"""
Revocation providers consulted by :class:`~pqbgpsec.pki.validator.ChainValidator`.

A router certificate can be withdrawn by serial number (one certificate) or
by subject key identifier (every certificate for a compromised key).
"""

import threading
from typing import List, Optional, Set

from .types import Certificate, RevocationCheckTarget, RevocationProvider, RevocationStatus


class NoopRevocationProvider(RevocationProvider):
    """Reports every certificate as ACTIVE."""

    def check(self, target: RevocationCheckTarget) -> tuple[RevocationStatus, Optional[Exception]]:
        return RevocationStatus.ACTIVE, None


class InMemoryRevocationProvider(RevocationProvider):
    """Process-local revocation list keyed by serial and by key identifier."""

    def __init__(self, default_unknown: bool = False):
        self._lock = threading.Lock()
        self._serials: Set[int] = set()
        self._key_ids: Set[str] = set()
        # status reported for certificates never listed
        self._unlisted = RevocationStatus.UNKNOWN if default_unknown else RevocationStatus.ACTIVE

    def revoke(self, certificate: Certificate, *, whole_key: bool = False) -> None:
        """Revoke ``certificate``; with ``whole_key`` also every certificate for its key."""
        with self._lock:
            self._serials.add(certificate.serial_number)
            if whole_key:
                self._key_ids.add(certificate.subject_key_id)

    def revoke_serial(self, serial_number: int) -> None:
        with self._lock:
            self._serials.add(serial_number)

    def unrevoke_serial(self, serial_number: int) -> None:
        with self._lock:
            self._serials.discard(serial_number)

    def revoke_key(self, key_id: str) -> None:
        with self._lock:
            self._key_ids.add(key_id)

    def unrevoke_key(self, key_id: str) -> None:
        with self._lock:
            self._key_ids.discard(key_id)

    def revoked_serials(self) -> List[int]:
        with self._lock:
            return sorted(self._serials)

    def check(self, target: RevocationCheckTarget) -> tuple[RevocationStatus, Optional[Exception]]:
        with self._lock:
            listed = target.serial_number in self._serials or (target.key_id and target.key_id in self._key_ids)
            return (RevocationStatus.REVOKED if listed else self._unlisted), None


__all__ = ["NoopRevocationProvider", "InMemoryRevocationProvider"]
