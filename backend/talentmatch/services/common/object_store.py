# talentmatch/services/common/object_store.py
"""Resume file storage. Originals are kept on local disk and addressed by a public URL."""
from __future__ import annotations
import logging
import secrets
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Optional, Protocol

from talentmatch.core.config import settings

logger = logging.getLogger("ingest.resume")


class ObjectStore(Protocol):
    def put(self, path: str, data: bytes) -> str: ...

    def get_public_url(self, path: str) -> str: ...

    def delete(self, path: str) -> None: ...


def build_resume_key(creator_id: str, filename: str, now: Optional[datetime] = None) -> str:
    """
    Collision-free object key: {creator_id}_{timestamp_ms}_{random_hex}.{ext}
    The extension comes from the original filename ("bin" when it has none).
    """
    now = now or datetime.now(timezone.utc)
    ext = Path(filename or "").suffix.lstrip(".").lower() or "bin"
    safe_creator = "".join(ch if ch.isalnum() or ch in "-_" else "-" for ch in str(creator_id)) or "anonymous"
    return f"{safe_creator}_{int(now.timestamp() * 1000)}_{secrets.token_hex(6)}.{ext}"


class LocalObjectStore:
    """Writes objects under `root_dir`; URLs are `public_base_url/<key>`."""

    def __init__(self, root_dir: Optional[Path] = None, public_base_url: Optional[str] = None):
        self.root = Path(root_dir) if root_dir is not None else settings.storage_path
        self.public_base_url = (public_base_url or settings.STORAGE_PUBLIC_BASE_URL).rstrip("/")

    def _resolve(self, path: str) -> Path:
        rel = PurePosixPath(path)
        if rel.is_absolute() or ".." in rel.parts or not rel.parts:
            raise ValueError(f"Invalid object key: {path!r}")
        return self.root.joinpath(*rel.parts)

    def put(self, path: str, data: bytes) -> str:
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        logger.debug("Stored object %s (%d bytes)", path, len(data))
        return self.get_public_url(path)

    def get_public_url(self, path: str) -> str:
        self._resolve(path)
        return f"{self.public_base_url}/{path}"

    def read(self, path: str) -> bytes:
        return self._resolve(path).read_bytes()

    def delete(self, path: str) -> None:
        """Remove a stored object; a missing object is not an error."""
        self._resolve(path).unlink(missing_ok=True)
        logger.debug("Removed object %s", path)
