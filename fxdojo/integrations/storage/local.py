"""Local filesystem storage for user uploads, served under /uploads."""

from pathlib import Path
from typing import Optional

from fxdojo.core.config import settings
from fxdojo.core.logging import get_logger

logger = get_logger(__name__)

PUBLIC_PREFIX = "/uploads"


class LocalStorage:
    """
    Stores objects as files under UPLOAD_DIR.
    Keys are slash separated paths relative to that directory.
    """

    def __init__(self, root: Optional[Path] = None):
        self.storage_path = Path(root or settings.UPLOAD_DIR)
        self.storage_path.mkdir(parents=True, exist_ok=True)

    def _get_full_path(self, key: str) -> Path:
        path = (self.storage_path / key.lstrip("/")).resolve()
        if not path.is_relative_to(self.storage_path.resolve()):
            raise ValueError(f"Key escapes storage: {key}")
        return path

    def put_object(self, key: str, body: bytes, content_type: Optional[str] = None) -> str:
        """Write `body` at `key` and return its public URL."""
        destination = self._get_full_path(key)
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(body)

        logger.info("object stored", key=key, size=len(body), content_type=content_type)
        return self.url_for(key)

    def delete_object(self, key: str) -> bool:
        file_path = self._get_full_path(key)
        if file_path.exists():
            file_path.unlink()
            logger.info("object deleted", key=key)
            return True
        logger.warning("object not found for deletion", key=key)
        return False

    def exists(self, key: str) -> bool:
        return self._get_full_path(key).is_file()

    def url_for(self, key: str) -> str:
        return f"{PUBLIC_PREFIX}/{key.lstrip('/')}"

    def key_for(self, url: Optional[str]) -> Optional[str]:
        """The key behind one of our public URLs, None for anything else."""
        if not url or not url.startswith(f"{PUBLIC_PREFIX}/"):
            return None
        return url[len(PUBLIC_PREFIX) + 1:]


_storage = None


def get_storage() -> LocalStorage:
    """Get the process-wide storage instance."""
    global _storage
    if _storage is None:
        _storage = LocalStorage()
    return _storage
