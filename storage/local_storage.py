"""Local filesystem storage implementation."""

from __future__ import annotations

import os
import shutil
import uuid
from pathlib import Path
from typing import IO, BinaryIO

from werkzeug.utils import secure_filename

from .abstract_storage import AbstractStorage


class LocalStorage(AbstractStorage):
    """Blobs live at ``<upload_dir>/<owner_id>/<random hex><suffix>``."""

    def __init__(self, upload_dir: str):
        self.base_directory = Path(upload_dir)
        os.makedirs(self.base_directory, exist_ok=True)

    def _resolve(self, key: str) -> Path:
        candidate = (self.base_directory / key).resolve()
        if self.base_directory.resolve() not in candidate.parents:
            raise ValueError("Path escapes the upload directory.")
        return candidate

    def _owner_dir(self, owner_id: int) -> Path:
        return self.base_directory / str(int(owner_id))

    @staticmethod
    def _stored_name(original_name: str) -> str:
        # Only the suffix of the client's name is kept on disk.
        suffix = secure_filename(Path(original_name).suffix.lstrip(".")).lower()
        return f"{uuid.uuid4().hex}.{suffix}" if suffix else uuid.uuid4().hex

    def save(self, file_obj: IO[bytes], owner_id: int, original_name: str) -> str:
        owner_dir = self._owner_dir(owner_id)
        owner_dir.mkdir(parents=True, exist_ok=True)
        destination = owner_dir / self._stored_name(original_name)

        if hasattr(file_obj, "save"):
            file_obj.save(destination)  # type: ignore[arg-type]
        else:
            with open(destination, "wb") as output:
                shutil.copyfileobj(file_obj, output)

        return destination.relative_to(self.base_directory).as_posix()

    def exists(self, key: str) -> bool:
        try:
            return self._resolve(key).is_file()
        except ValueError:
            return False

    def open(self, key: str, mode: str = "rb") -> BinaryIO:
        return open(self._resolve(key), mode)

    def absolute_path(self, key: str) -> Path:
        return self._resolve(key)

    def delete(self, key: str) -> None:
        try:
            self._resolve(key).unlink(missing_ok=True)
        except ValueError:
            return

    def delete_owner(self, owner_id: int) -> None:
        owner_dir = self._owner_dir(owner_id)
        if owner_dir.is_dir():
            shutil.rmtree(owner_dir)
