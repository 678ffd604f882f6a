"""Media storage — uploaded files in, public URLs out.

Files land under settings.media_root and are served by the app at
settings.media_url_prefix. Each upload gets a fresh random name so
clients can't overwrite each other's files.

Routes receive the storage through the get_storage dependency, which
tests override with an in-memory fake.
"""

import uuid
from pathlib import Path, PurePath

import structlog
from fastapi import UploadFile
from starlette.concurrency import run_in_threadpool

from devfolio.config import settings

logger = structlog.get_logger()


class StorageError(Exception):
    """Raised when a file could not be stored."""


def has_file(upload: UploadFile | None) -> bool:
    """Browsers send an empty, nameless part for untouched file inputs."""
    return upload is not None and bool(upload.filename)


class LocalMediaStorage:
    """Stores uploads on the local filesystem."""

    def __init__(self, root: str, url_prefix: str):
        self.root = Path(root)
        self.url_prefix = url_prefix.rstrip("/")

    async def save(self, upload: UploadFile, folder: str) -> str:
        """Store one upload under `folder` and return its public URL."""
        suffix = PurePath(upload.filename or "").suffix.lower()
        name = f"{uuid.uuid4().hex}{suffix}"
        relative = Path(folder) / name

        try:
            content = await upload.read()
            await run_in_threadpool(self._write, relative, content)
        except OSError as e:
            raise StorageError(str(e)) from e

        logger.info(
            "devfolio.media_stored",
            folder=folder,
            filename=upload.filename,
            size=len(content),
        )
        return f"{self.url_prefix}/{relative.as_posix()}"

    def _write(self, relative: Path, content: bytes) -> None:
        target = self.root / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)


_storage = LocalMediaStorage(settings.media_root, settings.media_url_prefix)


def get_storage() -> LocalMediaStorage:
    """FastAPI dependency — the process-wide media storage."""
    return _storage
