"""
Ledger store package: persistence of authority snapshots in memory, as JSON
files, or in Redis.
"""

from urllib.parse import urlparse

from .store import LedgerStore, Snapshot, save_authority, restore_authority
from .memory import MemoryLedgerStore
from .file import FileLedgerStore


def create_ledger_store(url=None) -> LedgerStore:
    """Pick a store from a URL.

    ``None`` or ``memory://`` gives a MemoryLedgerStore, ``redis://`` a
    RedisLedgerStore, ``file://<dir>`` or a bare path a FileLedgerStore.
    """
    if not url or url == "memory://":
        return MemoryLedgerStore()
    scheme = urlparse(url).scheme
    if scheme in ("redis", "rediss", "unix"):
        from .redis import RedisLedgerStore
        return RedisLedgerStore(url=url)
    if scheme == "file":
        return FileLedgerStore(url[len("file://"):])
    return FileLedgerStore(url)


__all__ = [
    "LedgerStore",
    "Snapshot",
    "save_authority",
    "restore_authority",
    "MemoryLedgerStore",
    "FileLedgerStore",
    "create_ledger_store",
]
