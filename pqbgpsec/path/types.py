"""
Path segment, signature and report types.
"""

import hashlib
from dataclasses import dataclass, field
from typing import List, Optional

from ..crypto.types import KeyPair
from ..pki.types import Certificate


@dataclass(frozen=True)
class PathSegment:
    """One hop's statement of a transition to the next hop."""
    ordinal: int
    origin: str
    next_hop: str
    algorithm: str
    payload: bytes
    next_hop_key_id: str = ""
    previous_digest: bytes = b""


@dataclass(frozen=True)
class PathSignature:
    """Detached signature over a segment.

    The signer's certificate is referenced by subject key identifier, not
    embedded.
    """
    segment: PathSegment
    signer_key_id: str
    signature: bytes = field(repr=False)

    def digest(self) -> bytes:
        """SHA-256 of the signature bytes, bound into the following segment."""
        return hashlib.sha256(self.signature).digest()


@dataclass(frozen=True)
class Hop:
    """A path participant: identity, own key pair and issued certificate."""
    identifier: str
    key_pair: KeyPair
    certificate: Certificate

    @property
    def key_id(self) -> str:
        """The key identifier this hop announces to its neighbours."""
        return self.key_pair.key_id


@dataclass
class SegmentResult:
    ordinal: int
    valid: bool
    reason: Optional[str] = None
    origin: str = ""
    next_hop: str = ""


@dataclass
class PathVerificationReport:
    """Per-segment results for one path.

    ``expected`` is the number of segments the attested hop sequence needs;
    a report with fewer or more results is incomplete and never all-valid.
    """
    results: List[SegmentResult] = field(default_factory=list)
    expected: Optional[int] = None

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def valid_count(self) -> int:
        return sum(1 for r in self.results if r.valid)

    @property
    def complete(self) -> bool:
        return self.expected is None or self.total == self.expected

    @property
    def all_valid(self) -> bool:
        return self.complete and self.valid_count == self.total

    @property
    def failures(self) -> List[SegmentResult]:
        return [r for r in self.results if not r.valid]

    @property
    def failed_ordinals(self) -> List[int]:
        return [r.ordinal for r in self.failures]

    def summary(self) -> str:
        text = f"{self.valid_count}/{self.total} path segments valid"
        if not self.complete:
            text += f" ({self.expected} expected)"
        return text


__all__ = [
    "PathSegment",
    "PathSignature",
    "Hop",
    "SegmentResult",
    "PathVerificationReport",
]
