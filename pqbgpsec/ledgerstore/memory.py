"""In-process ledger store."""

import asyncio
import copy
from typing import Dict, List, Optional

from .store import LedgerStore, Snapshot, _check_key


class MemoryLedgerStore(LedgerStore):
    def __init__(self):
        self._lock = asyncio.Lock()
        self._snapshots: Dict[str, Snapshot] = {}

    async def save(self, authority_key_id: str, snapshot: Snapshot) -> None:
        async with self._lock:
            self._snapshots[_check_key(authority_key_id)] = copy.deepcopy(snapshot)

    async def load(self, authority_key_id: str) -> Optional[Snapshot]:
        async with self._lock:
            snapshot = self._snapshots.get(authority_key_id)
            return copy.deepcopy(snapshot) if snapshot is not None else None

    async def delete(self, authority_key_id: str) -> bool:
        async with self._lock:
            return self._snapshots.pop(authority_key_id, None) is not None

    async def list_authorities(self) -> List[str]:
        async with self._lock:
            return sorted(self._snapshots)


__all__ = ["MemoryLedgerStore"]
