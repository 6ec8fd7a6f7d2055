"""On-disk storage for uploaded document and task files.

Files are stored flat in one upload directory under a generated unique name;
the database keeps only that name.
"""

import logging
import os
import re
import secrets
import time
from pathlib import Path
from typing import NamedTuple, Optional

from fastapi import UploadFile

from backoffice.core.config import get_settings
from backoffice.core.exceptions import BadRequestError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class StoredFile(NamedTuple):
    """Result of saving an upload."""
    name: str               # generated storage name
    original_name: str
    content_type: Optional[str]
    size: int


def sanitize_filename(filename: str) -> str:
    """Strip directories and characters that are unsafe in a storage name."""
    base = os.path.basename(filename or "").strip()
    cleaned = _UNSAFE_CHARS.sub("_", base).strip("._")
    return cleaned or "file"


def generate_storage_name(filename: str) -> str:
    millis = int(time.time() * 1000)
    return f"{millis}-{secrets.token_hex(4)}-{sanitize_filename(filename)}"


class FileStorage:
    """Saves, resolves and removes files inside a single upload directory."""

    def __init__(self, upload_dir: Optional[str] = None, max_size: Optional[int] = None):
        settings = get_settings()
        self.root = Path(upload_dir or settings.upload_dir).resolve()
        self.max_size = max_size if max_size is not None else settings.max_upload_size_bytes
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, name: str) -> Path:
        """Absolute path of a stored file; names may not escape the upload dir."""
        path = (self.root / os.path.basename(name)).resolve()
        if path.parent != self.root:
            raise BadRequestError("Invalid file path")
        return path

    def exists(self, name: str) -> bool:
        return bool(name) and self.path_for(name).is_file()

    def size(self, name: str) -> int:
        try:
            return self.path_for(name).stat().st_size
        except OSError:
            return 0

    def save(self, upload: UploadFile) -> StoredFile:
        if upload is None or not upload.filename:
            raise BadRequestError("No file provided")

        name = generate_storage_name(upload.filename)
        target = self.path_for(name)
        written = 0

        try:
            with open(target, "wb") as out:
                while True:
                    chunk = upload.file.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    written += len(chunk)
                    if written > self.max_size:
                        raise BadRequestError("File is too large")
                    out.write(chunk)
        except BadRequestError:
            self.delete(name)
            raise
        except OSError:
            self.delete(name)
            logger.exception("Failed to store upload %s", upload.filename)
            raise

        logger.info("Stored upload %s as %s (%d bytes)", upload.filename, name, written)
        return StoredFile(name, upload.filename, upload.content_type, written)

    def delete(self, name: Optional[str]) -> bool:
        """Remove a stored file. Missing files are not an error."""
        if not name:
            return False
        try:
            self.path_for(name).unlink()
        except FileNotFoundError:
            return False
        except OSError:
            logger.exception("Failed to delete stored file %s", name)
            return False
        return True
