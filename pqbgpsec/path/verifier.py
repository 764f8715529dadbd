"""
Path attestation verification.

Segment verification only checks signature correctness against the signer's
certificate. Whether that certificate is trusted is the ChainValidator's job;
callers run both and audit them independently.
"""

import logging
from collections.abc import Mapping
from typing import Dict, Iterable, List, Optional, Sequence, Union

from .. import crypto
from ..monitoring import MetricsRegistry, get_registry
from ..pki.types import Certificate
from .encoding import encode_segment
from .types import PathSignature, PathVerificationReport, SegmentResult

logger = logging.getLogger(__name__)


class PathAttestationVerifier:
    def __init__(self, metrics: Optional[MetricsRegistry] = None):
        self.metrics = metrics or get_registry()

    def check_segment(
        self,
        path_signature: PathSignature,
        signer_certificate: Certificate,
        next_hop_certificate: Optional[Certificate] = None,
        previous_signature: Optional[PathSignature] = None,
    ) -> SegmentResult:
        """Verify one segment and explain the first failing check."""
        segment = path_signature.segment
        result = SegmentResult(
            ordinal=segment.ordinal, valid=False, origin=segment.origin, next_hop=segment.next_hop
        )

        if signer_certificate is None:
            result.reason = "no certificate for signer"
        elif signer_certificate.subject != segment.origin:
            result.reason = "signer certificate subject mismatch"
        elif path_signature.signer_key_id != signer_certificate.subject_key_id:
            result.reason = "signer key identifier mismatch"
        elif segment.algorithm != signer_certificate.algorithm:
            result.reason = "algorithm mismatch"
        else:
            try:
                message = encode_segment(segment)
            except ValueError as e:
                result.reason = f"segment encoding invalid: {e}"
            else:
                if not crypto.verify(signer_certificate.algorithm, signer_certificate.public_key,
                                     message, path_signature.signature):
                    result.reason = "signature invalid"

        if result.reason is None and next_hop_certificate is not None:
            if next_hop_certificate.subject != segment.next_hop:
                result.reason = "next hop mismatch"
            elif segment.next_hop_key_id != next_hop_certificate.subject_key_id:
                result.reason = "next hop key identifier mismatch"

        if result.reason is None and previous_signature is not None:
            if segment.previous_digest != previous_signature.digest():
                result.reason = "previous segment binding mismatch"

        result.valid = result.reason is None
        return result

    def verify_segment(
        self,
        path_signature: PathSignature,
        signer_certificate: Certificate,
        next_hop_certificate: Optional[Certificate] = None,
        previous_signature: Optional[PathSignature] = None,
    ) -> bool:
        """True when the segment signature validates under the signer's certificate."""
        result = self.check_segment(path_signature, signer_certificate, next_hop_certificate, previous_signature)
        self.metrics.observe_verification(result.valid)
        return result.valid

    def verify_path(
        self,
        signatures: Sequence[PathSignature],
        certificates: Union[Mapping[str, Certificate], Iterable[Certificate]],
        hops: Optional[Sequence[str]] = None,
    ) -> PathVerificationReport:
        """Verify every segment and report all failures.

        Certificates are looked up by subject. Besides each segment's own
        signature and bindings, segment ``i`` must carry ordinal ``i`` and
        start where segment ``i - 1`` ended. When ``hops`` names the full hop
        sequence, segment ``i`` must run from ``hops[i]`` to ``hops[i + 1]``
        and the report is incomplete unless every transition is attested.
        """
        if isinstance(certificates, Mapping):
            by_subject: Dict[str, Certificate] = dict(certificates)
        else:
            by_subject = {c.subject: c for c in certificates}
        hops = list(hops) if hops is not None else None

        report = PathVerificationReport(expected=max(len(hops) - 1, 0) if hops is not None else None)
        for i, path_signature in enumerate(signatures):
            segment = path_signature.segment
            next_certificate = by_subject.get(segment.next_hop)
            # unchained segments carry no previous digest and skip that binding
            previous = signatures[i - 1] if (i > 0 and segment.previous_digest) else None
            result = self.check_segment(
                path_signature, by_subject.get(segment.origin), next_certificate, previous
            )
            if result.valid:
                reason = self._placement_error(i, signatures, hops)
                if reason is None and next_certificate is None:
                    reason = "no certificate for next hop"
                if reason is not None:
                    result.valid, result.reason = False, reason
            self.metrics.observe_verification(result.valid)
            if not result.valid:
                logger.warning("Segment %d %s -> %s failed: %s",
                               result.ordinal, result.origin, result.next_hop, result.reason)
            report.results.append(result)

        if not report.complete:
            logger.warning("Path attests %d of %d hop transitions", report.total, report.expected)
        log = logger.info if report.all_valid else logger.warning
        log("Path verification: %s", report.summary())
        return report

    @staticmethod
    def _placement_error(
        index: int,
        signatures: Sequence[PathSignature],
        hops: Optional[List[str]],
    ) -> Optional[str]:
        segment = signatures[index].segment
        if index == 0 and segment.previous_digest:
            return "unexpected previous segment binding"
        if segment.ordinal != index:
            return f"segment ordinal {segment.ordinal} out of sequence at position {index}"
        if index > 0 and segment.origin != signatures[index - 1].segment.next_hop:
            return "segment does not continue from the previous next hop"
        if hops is not None:
            if index + 1 >= len(hops):
                return "segment beyond the end of the path"
            if (segment.origin, segment.next_hop) != (hops[index], hops[index + 1]):
                return "segment does not match the path hop order"
        return None


__all__ = ["PathAttestationVerifier"]
