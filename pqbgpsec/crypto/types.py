"""
Key material types shared by every signature scheme.
"""

import hashlib
from dataclasses import dataclass, field
from typing import Optional


def compute_key_id(public_key: bytes) -> str:
    """Return the subject key identifier for raw public key bytes.

    SHA-1 over the encoded public key, upper-case hex, matching the
    ``subjectKeyIdentifier = hash`` method of X.509 tooling and the SKI
    carried in BGPsec signature blocks.
    """
    return hashlib.sha1(public_key).hexdigest().upper()


@dataclass(frozen=True)
class KeyPair:
    """A scheme-tagged key pair.

    ``private_key`` is ``None`` for public-only handles. It is excluded from
    ``repr`` and equality so it never leaks into logs or comparisons.
    """
    algorithm: str
    public_key: bytes
    private_key: Optional[bytes] = field(default=None, repr=False, compare=False)
    key_id: str = ""

    def __post_init__(self):
        if not self.key_id:
            object.__setattr__(self, "key_id", compute_key_id(self.public_key))

    @property
    def has_private(self) -> bool:
        return bool(self.private_key)

    def public_only(self) -> "KeyPair":
        return KeyPair(algorithm=self.algorithm, public_key=self.public_key, key_id=self.key_id)


__all__ = ["KeyPair", "compute_key_id"]
