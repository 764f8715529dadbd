import os

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError  # type: ignore

from pqbgpsec import crypto
from pqbgpsec.errors import DecodeError, StorageError
from pqbgpsec.ledgerstore import (
    FileLedgerStore,
    MemoryLedgerStore,
    create_ledger_store,
    restore_authority,
    save_authority,
)
from pqbgpsec.pki import CertificateAuthority

REDIS_URL = os.getenv("REDIS_TEST_URL", "redis://localhost:6379/0")


def populate(authority, count=3):
    for i in range(count):
        authority.issue(f"AS{65001 + i}", crypto.generate_key_pair("ed25519").public_key)


def reload(authority):
    return CertificateAuthority(authority._key_pair, authority.certificate, metrics=authority.metrics)


@pytest.mark.asyncio
async def test_memory_store_round_trip(authority):
    populate(authority)
    store = MemoryLedgerStore()
    await save_authority(store, authority)
    assert await store.list_authorities() == [authority.key_id]

    reloaded = reload(authority)
    assert await restore_authority(store, reloaded)
    assert reloaded.ledger.serials() == authority.ledger.serials()
    assert reloaded.next_serial == authority.next_serial


@pytest.mark.asyncio
async def test_memory_store_isolates_snapshots(authority):
    store = MemoryLedgerStore()
    snapshot = authority.snapshot()
    await store.save(authority.key_id, snapshot)
    snapshot["next_serial"] = 1
    loaded = await store.load(authority.key_id)
    assert loaded["next_serial"] == authority.next_serial


@pytest.mark.asyncio
async def test_missing_snapshot(authority):
    store = MemoryLedgerStore()
    assert await store.load(authority.key_id) is None
    assert not await restore_authority(store, reload(authority))
    assert not await store.delete(authority.key_id)


@pytest.mark.asyncio
async def test_invalid_key_rejected():
    store = MemoryLedgerStore()
    with pytest.raises(StorageError):
        await store.save("../etc/passwd", {})


@pytest.mark.asyncio
async def test_file_store_round_trip(authority, tmp_path):
    populate(authority)
    store = FileLedgerStore(tmp_path / "ledger")
    await save_authority(store, authority)
    assert (tmp_path / "ledger" / f"{authority.key_id}.json").exists()
    assert await store.list_authorities() == [authority.key_id]

    reloaded = reload(authority)
    assert await restore_authority(store, reloaded)
    assert list(reloaded.ledger) == list(authority.ledger)

    assert await store.delete(authority.key_id)
    assert await store.list_authorities() == []


@pytest.mark.asyncio
async def test_file_store_corrupt_json(authority, tmp_path):
    store = FileLedgerStore(tmp_path)
    (tmp_path / f"{authority.key_id}.json").write_text("{not json", encoding="utf-8")
    with pytest.raises(DecodeError):
        await store.load(authority.key_id)


@pytest.mark.asyncio
async def test_file_store_empty_directory(tmp_path):
    assert await FileLedgerStore(tmp_path / "missing").list_authorities() == []


def test_create_ledger_store(tmp_path):
    assert isinstance(create_ledger_store(None), MemoryLedgerStore)
    assert isinstance(create_ledger_store("memory://"), MemoryLedgerStore)

    by_path = create_ledger_store(str(tmp_path))
    assert isinstance(by_path, FileLedgerStore)
    assert by_path.directory == tmp_path

    by_url = create_ledger_store(f"file://{tmp_path}")
    assert isinstance(by_url, FileLedgerStore)
    assert by_url.directory == tmp_path


def test_create_redis_ledger_store():
    from pqbgpsec.ledgerstore.redis import RedisLedgerStore

    store = create_ledger_store("redis://localhost:6379/0")
    assert isinstance(store, RedisLedgerStore)
    assert store.prefix == "pqbgpsec:ledger"


@pytest.mark.asyncio
async def test_redis_store_round_trip(authority):
    from pqbgpsec.ledgerstore.redis import RedisLedgerStore

    store = RedisLedgerStore(url=REDIS_URL, prefix="pqbgpsec:test", ttl=30)
    populate(authority)
    try:
        await save_authority(store, authority)
        assert authority.key_id in await store.list_authorities()

        reloaded = reload(authority)
        assert await restore_authority(store, reloaded)
        assert reloaded.ledger.serials() == authority.ledger.serials()

        assert await store.delete(authority.key_id)
        assert await store.load(authority.key_id) is None
    except RedisConnectionError:
        pytest.skip("Redis server not reachable")
    finally:
        await store.close()
