"""
Package path signs and verifies hop-to-hop path attestations: one detached
signature per segment, each segment naming the next hop and its key, with
optional chaining of each segment to the previous signature.
"""

from .types import (
    PathSegment,
    PathSignature,
    Hop,
    SegmentResult,
    PathVerificationReport,
)

from .encoding import (
    SUITE_IDS,
    encode_segment,
    decode_segment,
)

from .builder import PathAttestationBuilder, segment_payload
from .verifier import PathAttestationVerifier

__all__ = [
    'PathSegment',
    'PathSignature',
    'Hop',
    'SegmentResult',
    'PathVerificationReport',
    'SUITE_IDS',
    'encode_segment',
    'decode_segment',
    'PathAttestationBuilder',
    'segment_payload',
    'PathAttestationVerifier',
]
