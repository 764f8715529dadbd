"""JSON file ledger store: one ``<authority key id>.json`` per authority."""

import json
import logging
import os
from pathlib import Path
from typing import List, Optional, Union

from ..errors import DecodeError, StorageError
from .store import LedgerStore, Snapshot, _check_key

logger = logging.getLogger(__name__)


class FileLedgerStore(LedgerStore):
    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def _path(self, authority_key_id: str) -> Path:
        return self.directory / f"{_check_key(authority_key_id)}.json"

    async def save(self, authority_key_id: str, snapshot: Snapshot) -> None:
        path = self._path(authority_key_id)
        tmp = path.with_suffix(".json.tmp")
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(snapshot, indent=2, sort_keys=True), encoding="utf-8")
            os.replace(tmp, path)
        except OSError as e:
            raise StorageError(f"failed to write {path}: {e}") from e
        logger.debug("Wrote ledger snapshot %s", path)

    async def load(self, authority_key_id: str) -> Optional[Snapshot]:
        path = self._path(authority_key_id)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"failed to read {path}: {e}") from e
        try:
            return json.loads(raw)
        except ValueError as e:
            raise DecodeError(f"ledger file {path} is not valid JSON: {e}") from e

    async def delete(self, authority_key_id: str) -> bool:
        path = self._path(authority_key_id)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f"failed to delete {path}: {e}") from e
        return True

    async def list_authorities(self) -> List[str]:
        if not self.directory.is_dir():
            return []
        return sorted(p.stem for p in self.directory.glob("*.json"))


__all__ = ["FileLedgerStore"]
