"""
Local Filesystem Document Store.
Each document is a JSON file under a base directory.
"""

import asyncio
import json
import logging
import weakref
from pathlib import Path
from typing import Any, Dict, Optional

import aiofiles

from ..errors import StoreUnavailable
from .interface import DocumentStore

logger = logging.getLogger(__name__)


class LocalDocumentStore(DocumentStore):
    """
    Document store backed by the local filesystem.
    Document ``a/b/c`` lives at ``<base_dir>/a/b/c.json``.
    """

    def __init__(self, base_dir: str = "./data"):
        """
        Initialize local storage with a base directory.

        Args:
            base_dir: Base directory for all stored documents
        """
        self.base_dir = Path(base_dir).resolve()
        self.base_dir.mkdir(parents=True, exist_ok=True)
        # Held only while a write is pending or running
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, path: str) -> asyncio.Lock:
        lock = self._locks.get(path)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[path] = lock
        return lock

    def _get_full_path(self, path: str) -> Path:
        """Map a document path to its file, rejecting paths outside base_dir."""
        full_path = (self.base_dir / f"{path}.json").resolve()
        if not full_path.is_relative_to(self.base_dir):
            raise ValueError(f"Invalid path: {path} - path traversal detected")
        return full_path

    async def _read(self, full_path: Path) -> Optional[Dict[str, Any]]:
        if not full_path.exists():
            return None
        async with aiofiles.open(full_path, 'r', encoding='utf-8') as f:
            return json.loads(await f.read())

    async def get_document(self, path: str) -> Optional[Dict[str, Any]]:
        """Read a document from disk."""
        full_path = self._get_full_path(path)
        try:
            return await self._read(full_path)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error reading document {path}: {e}")
            raise StoreUnavailable(f"Could not read document {path}") from e

    async def set_document(
        self,
        path: str,
        data: Dict[str, Any],
        merge: bool = False
    ) -> Dict[str, Any]:
        """Write a document to disk, merging field by field when asked."""
        full_path = self._get_full_path(path)

        # Read-modify-write must not interleave for the same document
        async with self._lock_for(path):
            try:
                document = dict(data)
                if merge:
                    existing = await self._read(full_path)
                    if existing:
                        document = {**existing, **data}

                full_path.parent.mkdir(parents=True, exist_ok=True)
                tmp_path = full_path.with_suffix(".json.tmp")
                async with aiofiles.open(tmp_path, 'w', encoding='utf-8') as f:
                    await f.write(json.dumps(document, indent=2, ensure_ascii=False))
                tmp_path.replace(full_path)
            except (OSError, json.JSONDecodeError) as e:
                logger.error(f"Error writing document {path}: {e}")
                raise StoreUnavailable(f"Could not write document {path}") from e

        logger.debug(f"Document written: {path} (merge={merge}, fields={len(document)})")
        return document
