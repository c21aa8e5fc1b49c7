"""
Local upload storage

Files are written under UPLOAD_DIR/<subdir>/<uuid><ext> and addressed by the
public URL /uploads/<subdir>/<uuid><ext>.
"""
import logging
import os
import uuid
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

URL_PREFIX = "/uploads/"


@dataclass(frozen=True)
class StoredFile:
    url: str
    path: Path
    size: int


def file_extension(filename: str) -> str:
    """Lower-cased extension including the dot ('' when absent)"""
    return os.path.splitext(filename or "")[1].lower()


class FileStorage:
    def __init__(self, root: str | Path):
        self.root = Path(root).resolve()

    def save(self, subdir: str, original_name: str, content: bytes) -> StoredFile:
        target_dir = self.root / subdir
        target_dir.mkdir(parents=True, exist_ok=True)

        stored_name = f"{uuid.uuid4()}{file_extension(original_name)}"
        path = target_dir / stored_name
        path.write_bytes(content)

        return StoredFile(url=f"{URL_PREFIX}{subdir}/{stored_name}", path=path, size=len(content))

    def delete(self, url: str) -> bool:
        """
        Best-effort removal. Failures are logged, never raised.

        Returns:
            True if a file was removed
        """
        path = self.path_for_url(url)
        if path is None:
            logger.warning("Refusing to delete file outside upload root: %s", url)
            return False
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            logger.warning("File already gone: %s", path)
        except OSError:
            logger.exception("File cleanup failed: %s", path)
        return False

    def path_for_url(self, url: str) -> Path | None:
        if not url.startswith(URL_PREFIX):
            return None
        return self.resolve(url[len(URL_PREFIX):])

    def resolve(self, relative_path: str) -> Path | None:
        """Absolute path inside the root, or None for traversal attempts"""
        candidate = (self.root / relative_path).resolve()
        if candidate == self.root or self.root not in candidate.parents:
            return None
        return candidate


def get_file_storage() -> FileStorage:
    from finsight.config import get_settings

    return FileStorage(get_settings().UPLOAD_DIR)
