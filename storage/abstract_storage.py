"""Storage abstraction for uploaded document blobs."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import IO, BinaryIO


class AbstractStorage(ABC):
    """Blob store partitioned by owner.

    Keys returned by :meth:`save` are opaque relative paths; callers persist
    them on the document row and hand them back unchanged.
    """

    @abstractmethod
    def save(self, file_obj: IO[bytes], owner_id: int, original_name: str) -> str:
        """Persist ``file_obj`` for ``owner_id`` and return its key."""

    @abstractmethod
    def exists(self, key: str) -> bool:
        ...

    @abstractmethod
    def open(self, key: str, mode: str = "rb") -> BinaryIO:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove one blob; unknown keys are ignored."""

    @abstractmethod
    def delete_owner(self, owner_id: int) -> None:
        """Remove every blob stored for ``owner_id``."""
