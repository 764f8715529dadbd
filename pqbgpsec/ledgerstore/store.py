"""
Ledger store interface.

A store persists authority snapshots (root certificate, next serial and the
issuance ledger) keyed by the authority's key identifier. Snapshots are plain
JSON-compatible dicts produced by ``CertificateAuthority.snapshot``.
"""

from abc import ABC, abstractmethod
import logging
from typing import Any, Dict, List, Optional

from ..errors import StorageError

logger = logging.getLogger(__name__)

Snapshot = Dict[str, Any]


class LedgerStore(ABC):
    """Abstract async ledger store."""

    @abstractmethod
    async def save(self, authority_key_id: str, snapshot: Snapshot) -> None:
        ...

    @abstractmethod
    async def load(self, authority_key_id: str) -> Optional[Snapshot]:
        ...

    @abstractmethod
    async def delete(self, authority_key_id: str) -> bool:
        ...

    @abstractmethod
    async def list_authorities(self) -> List[str]:
        ...

    async def close(self) -> None:
        pass


async def save_authority(store: LedgerStore, authority) -> None:
    """Persist the authority's current snapshot."""
    snapshot = authority.snapshot()
    await store.save(authority.key_id, snapshot)
    logger.info("Saved ledger for %s (%d certificates)", authority.subject, len(authority.ledger))


async def restore_authority(store: LedgerStore, authority) -> bool:
    """Load a stored snapshot into ``authority``; False if none exists."""
    snapshot = await store.load(authority.key_id)
    if snapshot is None:
        return False
    authority.restore(snapshot)
    return True


def _check_key(authority_key_id: str) -> str:
    if not authority_key_id or not authority_key_id.isalnum():
        raise StorageError(f"invalid authority key id: {authority_key_id!r}")
    return authority_key_id


__all__ = ["LedgerStore", "Snapshot", "save_authority", "restore_authority"]
