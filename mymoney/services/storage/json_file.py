"""
JSON File Storage Implementation

DESIGN DECISION: A single JSON object file holds every key. This mirrors
the key-value storage a device offers an app, needs no database setup,
and is easy to inspect by hand.

TRADEOFFS:
- Every write rewrites the whole file (fine for a personal ledger)
- Writes go to a temporary file that is then renamed over the original,
  so a crash never leaves a half-written file behind
- A single writer is assumed (one app instance)
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from mymoney.services.storage.interface import BlobStoreInterface, StorageError


logger = structlog.get_logger(__name__)


class JsonFileBlobStore(BlobStoreInterface):
    """
    Blob store backed by one JSON file of key -> string.

    Transient OS errors (locked file, flaky network mount) are retried
    before being reported as StorageError.
    """

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
        retry=retry_if_exception_type(OSError),
        reraise=True,
    )
    def _read_all(self) -> dict[str, str]:
        """Read the whole key space. A missing file is an empty store."""
        if not self._path.exists():
            return {}
        text = self._path.read_text(encoding="utf-8")
        if not text.strip():
            return {}
        data = json.loads(text)
        if not isinstance(data, dict):
            raise StorageError(f"Storage file {self._path} does not hold a JSON object")
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
        retry=retry_if_exception_type(OSError),
        reraise=True,
    )
    def _write_all(self, data: dict[str, str]) -> None:
        """Replace the whole key space atomically."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self._path.name}.",
            dir=str(self._path.parent),
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as tmp:
                json.dump(data, tmp, ensure_ascii=False)
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _load(self) -> dict[str, str]:
        try:
            return self._read_all()
        except StorageError:
            raise
        except (OSError, ValueError) as e:
            raise StorageError(f"Failed to read {self._path}: {e}")

    async def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    async def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        try:
            self._write_all(data)
        except OSError as e:
            raise StorageError(f"Failed to write {self._path}: {e}")
        logger.debug("blob_written", key=key, size=len(value))

    async def remove(self, key: str) -> None:
        data = self._load()
        if key not in data:
            return
        del data[key]
        try:
            self._write_all(data)
        except OSError as e:
            raise StorageError(f"Failed to write {self._path}: {e}")
