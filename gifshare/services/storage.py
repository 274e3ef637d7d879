"""Filesystem storage for uploaded GIFs."""

import hashlib
import logging
import time
import uuid
from dataclasses import dataclass
from pathlib import Path

from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)

DEFAULT_STEM = "upload"
GIF_SUFFIX = ".gif"


@dataclass(frozen=True)
class StoredFile:
    """A file found in the upload directory."""

    name: str
    size: int
    modified_at: float


class UploadStorage:
    """Flat directory of uploaded files, addressed by stored filename."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def ensure_root(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    def make_filename(self, original_name: str | None) -> str:
        """Build a collision-resistant stored name from the client's file name.

        Format: ``<epoch-ms>-<random>-<sanitized name>.gif``
        """
        safe_name = secure_filename(original_name or "") or f"{DEFAULT_STEM}{GIF_SUFFIX}"
        if not safe_name.lower().endswith(GIF_SUFFIX):
            safe_name = f"{safe_name}{GIF_SUFFIX}"
        timestamp_ms = int(time.time() * 1000)
        return f"{timestamp_ms}-{uuid.uuid4().hex[:8]}-{safe_name}"

    def path_for(self, filename: str) -> Path:
        """Resolve a stored filename, refusing anything outside the root."""
        path = (self.root / filename).resolve()
        if path.parent != self.root.resolve():
            raise ValueError(f"Invalid stored filename: {filename!r}")
        return path

    def write(self, filename: str, data: bytes) -> Path:
        self.ensure_root()
        path = self.path_for(filename)
        # "xb" so a name collision fails instead of overwriting
        with open(path, "xb") as fh:
            fh.write(data)
        return path

    def exists(self, filename: str) -> bool:
        return self.path_for(filename).is_file()

    def remove(self, filename: str) -> bool:
        """Delete a stored file. Returns False if it was already gone."""
        path = self.path_for(filename)
        try:
            path.unlink()
        except FileNotFoundError:
            logger.info(f"Stored file already missing: {filename}")
            return False
        return True

    def list_files(self) -> list[StoredFile]:
        """All regular files in the upload directory, oldest first."""
        if not self.root.is_dir():
            return []
        files = []
        for entry in self.root.iterdir():
            if not entry.is_file():
                continue
            stat = entry.stat()
            files.append(StoredFile(name=entry.name, size=stat.st_size, modified_at=stat.st_mtime))
        return sorted(files, key=lambda f: (f.modified_at, f.name))

    def usage(self) -> int:
        """Total bytes currently stored."""
        return sum(f.size for f in self.list_files())

    def digest(self, filename: str) -> str:
        """SHA-256 of a stored file."""
        sha = hashlib.sha256()
        with open(self.path_for(filename), "rb") as fh:
            for chunk in iter(lambda: fh.read(1024 * 1024), b""):
                sha.update(chunk)
        return sha.hexdigest()
