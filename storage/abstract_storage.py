"""Blob storage abstraction layer."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import IO

UPLOAD_URL_PREFIX = "/uploads/"


class AbstractStorage(ABC):
    """Interface for storage backends holding uploaded images."""

    @abstractmethod
    def save(self, file_obj: IO[bytes], filename: str) -> str:
        """Persist a file and return the stored (relative) name."""

    @abstractmethod
    def exists(self, path: str) -> bool:
        """Return whether the given relative path exists in storage."""

    @abstractmethod
    def delete(self, path: str) -> bool:
        """Remove a stored file, returning False if it was not there."""

    def url(self, path: str) -> str:
        """Return the public reference clients use for a stored name."""

        return f"{UPLOAD_URL_PREFIX}{path}"

    def name_from_url(self, url: str) -> str:
        if url.startswith(UPLOAD_URL_PREFIX):
            return url[len(UPLOAD_URL_PREFIX):]
        return url
