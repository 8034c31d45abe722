"""Blob Storage — local filesystem store for uploaded problem photos.

Invariants:
    - put() returns an opaque "blob://<key>" reference; callers never see paths
    - Keys are random (uuid4) plus an extension derived from the media type
    - File writes run in a worker thread (asyncio.to_thread), never on the event loop
"""

import asyncio
import logging
import uuid
from pathlib import Path

from mathcoach.core.errors import InternalError

logger = logging.getLogger(__name__)

BLOB_SCHEME = "blob://"
_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/gif": ".gif",
}


class LocalBlobStore:
    def __init__(self, root: str | Path):
        self.root = Path(root)

    async def put(self, data: bytes, media_type: str) -> str:
        key = f"{uuid.uuid4().hex}{_EXTENSIONS.get(media_type, '.bin')}"
        try:
            await asyncio.to_thread(self._write, key, data)
        except OSError as e:
            logger.error(f"Blob write failed: {e}", exc_info=True)
            raise InternalError("Failed to store uploaded image")
        return f"{BLOB_SCHEME}{key}"

    async def get(self, ref: str) -> bytes:
        if not ref.startswith(BLOB_SCHEME):
            raise ValueError(f"Not a blob reference: {ref}")
        key = Path(ref[len(BLOB_SCHEME):]).name
        return await asyncio.to_thread((self.root / key).read_bytes)

    def _write(self, key: str, data: bytes) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        (self.root / key).write_bytes(data)
