"""Redis-backed ledger store.

Each authority snapshot is stored as a JSON blob at
``{prefix}:snapshot:{authority_key_id}``; a set ``{prefix}:authorities``
indexes the stored authorities.
"""

from __future__ import annotations

import json
import logging
from typing import List, Optional

import redis.asyncio as redis

from ..errors import DecodeError
from .store import LedgerStore, Snapshot, _check_key

logger = logging.getLogger(__name__)


class RedisLedgerStore(LedgerStore):
    def __init__(
        self,
        url: str = "redis://localhost:6379/0",
        prefix: str = "pqbgpsec:ledger",
        ttl: Optional[int] = None,
    ):
        self.url = url
        self.prefix = prefix.rstrip(":")
        self.ttl = ttl
        self._client = None

    async def _get_client(self):
        if self._client is None:
            self._client = redis.from_url(self.url, decode_responses=True)
        return self._client

    def _snapshot_key(self, authority_key_id: str) -> str:
        return f"{self.prefix}:snapshot:{_check_key(authority_key_id)}"

    def _index_key(self) -> str:
        return f"{self.prefix}:authorities"

    async def save(self, authority_key_id: str, snapshot: Snapshot) -> None:
        client = await self._get_client()
        pipe = client.pipeline()
        pipe.set(self._snapshot_key(authority_key_id), json.dumps(snapshot, sort_keys=True), ex=self.ttl)
        pipe.sadd(self._index_key(), authority_key_id)
        await pipe.execute()
        logger.debug("Stored ledger snapshot for %s", authority_key_id)

    async def load(self, authority_key_id: str) -> Optional[Snapshot]:
        client = await self._get_client()
        raw = await client.get(self._snapshot_key(authority_key_id))
        if not raw:
            return None
        try:
            return json.loads(raw)
        except ValueError as e:
            raise DecodeError(f"stored snapshot for {authority_key_id} is not valid JSON: {e}") from e

    async def delete(self, authority_key_id: str) -> bool:
        client = await self._get_client()
        removed = (await client.delete(self._snapshot_key(authority_key_id))) == 1
        await client.srem(self._index_key(), authority_key_id)
        return removed

    async def list_authorities(self) -> List[str]:
        client = await self._get_client()
        return sorted(await client.smembers(self._index_key()))

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


__all__ = ["RedisLedgerStore"]
