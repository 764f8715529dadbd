"""
Certificate validation against a trusted root.

Invalid certificates are an expected outcome: every check returns a
:class:`ValidationResult` with a reason instead of raising, and batch
validation enumerates every failure rather than stopping at the first.
"""

import logging
from typing import Iterable, Optional

from .. import crypto
from ..monitoring import MetricsRegistry, get_registry
from .codec import tbs_bytes
from .types import (
    KEY_USAGE_CERT_SIGN,
    Certificate,
    RevocationCheckTarget,
    RevocationStatus,
    ValidationOptions,
    ValidationReport,
    ValidationResult,
)

logger = logging.getLogger(__name__)


class ChainValidator:
    """Checks issuance signatures and structural constraints. Never mutates inputs."""

    def __init__(self, options: Optional[ValidationOptions] = None, metrics: Optional[MetricsRegistry] = None):
        self.options = options or ValidationOptions()
        self.metrics = metrics or get_registry()

    def _fail(self, certificate: Certificate, reason: str) -> ValidationResult:
        logger.debug("Certificate %s (%s) invalid: %s", certificate.serial_number, certificate.subject, reason)
        return ValidationResult(
            valid=False, reason=reason, serial_number=certificate.serial_number, subject=certificate.subject
        )

    def _check(self, certificate: Certificate, trusted_root: Certificate) -> ValidationResult:
        if not trusted_root.is_ca:
            return self._fail(certificate, "trusted root is not a CA")
        if trusted_root.key_usage and KEY_USAGE_CERT_SIGN not in trusted_root.key_usage:
            return self._fail(certificate, "trusted root may not sign certificates")
        if certificate.issuer != trusted_root.subject:
            return self._fail(certificate, "issuer mismatch")
        if certificate.authority_key_id != trusted_root.subject_key_id:
            return self._fail(certificate, "authority key identifier mismatch")
        if certificate.signature_algorithm != trusted_root.algorithm:
            return self._fail(certificate, "signature algorithm mismatch")
        if certificate.subject_key_id != crypto.compute_key_id(certificate.public_key):
            return self._fail(certificate, "subject key identifier mismatch")
        if not crypto.verify(trusted_root.algorithm, trusted_root.public_key, tbs_bytes(certificate), certificate.signature):
            return self._fail(certificate, "signature invalid")

        if self.options.check_validity_period:
            now = int(self.options.now_func())
            if not certificate.is_valid_at(now):
                return self._fail(certificate, "outside validity period")
            if not trusted_root.is_valid_at(now):
                return self._fail(certificate, "trusted root outside validity period")

        provider = self.options.revocation_provider
        if provider is not None:
            target = RevocationCheckTarget(serial_number=certificate.serial_number, key_id=certificate.subject_key_id)
            status, err = provider.check(target)
            if err:
                return self._fail(certificate, f"revocation check failed: {err}")
            if status == RevocationStatus.REVOKED:
                return self._fail(certificate, "certificate revoked")
            if status == RevocationStatus.UNKNOWN and self.options.fail_on_revocation_unknown:
                return self._fail(certificate, "revocation status unknown")

        return ValidationResult(valid=True, serial_number=certificate.serial_number, subject=certificate.subject)

    def validate(self, certificate: Certificate, trusted_root: Certificate) -> ValidationResult:
        """Validate ``certificate`` as issued by ``trusted_root``."""
        result = self._check(certificate, trusted_root)
        self.metrics.observe_validation(result.valid)
        return result

    def validate_root(self, root: Certificate) -> ValidationResult:
        """A trust anchor must be a self-signed CA."""
        if not root.is_self_signed:
            result = self._fail(root, "root is not self-signed")
            self.metrics.observe_validation(False)
            return result
        return self.validate(root, root)

    def validate_all(self, certificates: Iterable[Certificate], trusted_root: Certificate) -> ValidationReport:
        report = ValidationReport()
        for certificate in certificates:
            report.results.append(self.validate(certificate, trusted_root))
        if report.all_valid:
            logger.info("Certificate validation: %s", report.summary())
        else:
            logger.warning("Certificate validation: %s", report.summary())
        return report


__all__ = ["ChainValidator"]
