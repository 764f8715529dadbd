"""
Path attestation signing.

Each hop signs one segment describing its transition to the next hop. A
segment binds the next hop's announced key identifier and, when segment
chaining is on, the SHA-256 digest of the previous segment's signature, so
segments cannot be reordered or spliced between paths.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

from .. import crypto
from ..errors import SigningError
from ..monitoring import MetricsRegistry, get_registry
from .encoding import encode_segment
from .types import Hop, PathSegment, PathSignature

logger = logging.getLogger(__name__)


def segment_payload(origin: str, next_hop: str) -> bytes:
    return f"BGPsec path segment: {origin} → {next_hop}\n".encode("utf-8")


class PathAttestationBuilder:
    def __init__(
        self,
        allowed_algorithms: Optional[Iterable[str]] = None,
        chain_segments: bool = True,
        metrics: Optional[MetricsRegistry] = None,
    ):
        self.allowed_algorithms = set(allowed_algorithms) if allowed_algorithms is not None else None
        self.chain_segments = chain_segments
        self.metrics = metrics or get_registry()

    def sign_segment(self, key_pair: crypto.KeyPair, segment: PathSegment) -> PathSignature:
        """Sign the canonical encoding of ``segment`` with ``key_pair``."""
        if key_pair is None:
            raise SigningError("nil key pair")
        if key_pair.algorithm != segment.algorithm:
            raise SigningError(
                f"key algorithm {key_pair.algorithm} does not match segment algorithm {segment.algorithm}"
            )
        if self.allowed_algorithms is not None and key_pair.algorithm not in self.allowed_algorithms:
            raise SigningError(f"algorithm {key_pair.algorithm} not allowed for path signing")
        try:
            message = encode_segment(segment)
        except ValueError as e:
            raise SigningError(f"segment {segment.ordinal} cannot be encoded: {e}") from e

        signature = crypto.sign(key_pair, message)
        self.metrics.observe_signed(key_pair.algorithm)
        logger.debug("Signed segment %d %s -> %s", segment.ordinal, segment.origin, segment.next_hop)
        return PathSignature(segment=segment, signer_key_id=key_pair.key_id, signature=signature)

    def make_segment(
        self,
        ordinal: int,
        origin: Hop,
        next_hop: Hop,
        previous: Optional[PathSignature] = None,
    ) -> PathSegment:
        return PathSegment(
            ordinal=ordinal,
            origin=origin.identifier,
            next_hop=next_hop.identifier,
            algorithm=origin.key_pair.algorithm,
            payload=segment_payload(origin.identifier, next_hop.identifier),
            next_hop_key_id=next_hop.key_id,
            previous_digest=previous.digest() if (previous is not None and self.chain_segments) else b"",
        )

    def build_path(self, hops: Sequence[Hop]) -> List[PathSignature]:
        """Sign one segment per adjacent hop pair, in path order."""
        if len(hops) < 2:
            raise SigningError("a path needs at least two hops")
        signatures: List[PathSignature] = []
        previous: Optional[PathSignature] = None
        for i in range(len(hops) - 1):
            segment = self.make_segment(i, hops[i], hops[i + 1], previous)
            previous = self.sign_segment(hops[i].key_pair, segment)
            signatures.append(previous)
        logger.info("Signed %d path segments", len(signatures))
        return signatures


__all__ = ["PathAttestationBuilder", "segment_payload"]
