from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator
from uuid import uuid4

from .config import Settings
from .errors import StagingError, UploadTooLargeError


_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass(slots=True)
class StorageStat:
    size_bytes: int


def staging_key(filename: str) -> str:
    """Collision-resistant key derived from the client's filename."""
    name = Path(filename.replace("\\", "/")).name
    safe = _UNSAFE_CHARS.sub("_", name).strip("._") or "upload"
    return f"{uuid4().hex}-{safe}"


class Storage(ABC):
    @abstractmethod
    async def write_stream(self, key: str, chunks: AsyncIterator[bytes], *, max_bytes: int | None = None) -> StorageStat: ...

    @abstractmethod
    def delete(self, key: str) -> bool: ...

    @abstractmethod
    def public_url(self, key: str) -> str: ...


class LocalStorage(Storage):
    """Filesystem staging area served as static files by the API."""

    def __init__(self, base_path: Path, public_base: str):
        self.base_path = base_path
        self.public_base = public_base.rstrip("/")
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _resolve(self, key: str) -> Path:
        path = (self.base_path / key).resolve()
        if self.base_path.resolve() not in path.parents:
            raise ValueError(f"Key escapes staging root: {key}")
        return path

    async def write_stream(self, key: str, chunks: AsyncIterator[bytes], *, max_bytes: int | None = None) -> StorageStat:
        path = self._resolve(key)
        written = 0
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("wb") as handle:
                async for chunk in chunks:
                    written += len(chunk)
                    if max_bytes is not None and written > max_bytes:
                        raise UploadTooLargeError(f"upload exceeds {max_bytes} bytes")
                    handle.write(chunk)
        except UploadTooLargeError:
            path.unlink(missing_ok=True)
            raise
        except OSError as exc:
            path.unlink(missing_ok=True)
            raise StagingError(f"error writing staged upload: {exc}") from exc
        return StorageStat(size_bytes=written)

    def delete(self, key: str) -> bool:
        path = self._resolve(key)
        if not path.exists():
            return False
        path.unlink()
        return True

    def public_url(self, key: str) -> str:
        return f"{self.public_base}/{key}"


def get_storage(settings: Settings) -> Storage:
    public_base = settings.staged_url("").rstrip("/")
    return LocalStorage(base_path=Path(settings.staging_root), public_base=public_base)


__all__ = [
    "Storage",
    "LocalStorage",
    "StorageStat",
    "get_storage",
    "staging_key",
]
