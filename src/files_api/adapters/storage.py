"""
Local filesystem storage for file payloads and their derived thumbnails.

Each payload lives at ``<storage_dir>/<file_id>``; thumbnails sit next to it
as ``<storage_dir>/<file_id>_<width>``. Paths derive from the record id only,
so two uploads can never be assigned the same path.
"""

import base64
import binascii
import logging
import os
from pathlib import Path
from typing import Union

from files_api.errors import FileNotFound, StorageWriteError, ValidationError

logger = logging.getLogger(__name__)


class LocalBlobStore:
    """Writes and reads blobs under a configured storage root"""

    def __init__(self, storage_dir: Union[str, Path]):
        self.storage_dir = Path(storage_dir)
        logger.info(f"Blob storage rooted at {self.storage_dir}")

    def path_for(self, file_id) -> Path:
        return self.storage_dir / str(file_id)

    def write(self, payload_base64: str, file_id) -> str:
        """Decode a base64 payload and store it as the blob for ``file_id``.

        Returns:
            The absolute path the payload was written to.

        Raises:
            ValidationError: The payload is not valid base64.
            StorageWriteError: The payload could not be written.
        """
        try:
            data = base64.b64decode(payload_base64, validate=True)
        except (binascii.Error, ValueError, TypeError):
            raise ValidationError("data", "Invalid data") from None

        return self._write_bytes(self.path_for(file_id), data)

    def write_variant(self, source_path: Union[str, Path], width: int, data: bytes) -> str:
        """Store a derived variant (thumbnail) of the blob at ``source_path``"""
        return self._write_bytes(Path(f"{source_path}_{width}"), data)

    def _write_bytes(self, path: Path, data: bytes) -> str:
        tmp_path = path.with_name(f".{path.name}.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, 'wb') as f:
                f.write(data)
            os.replace(tmp_path, path)
        except OSError as e:
            logger.error(f"Error writing blob {path}: {e}")
            raise StorageWriteError(f"Could not write {path}") from e

        logger.info(f"Stored {len(data)} bytes at {path}")
        return str(path.resolve())

    def read(self, path: Union[str, Path]) -> bytes:
        """Read the blob at ``path``"""
        try:
            with open(path, 'rb') as f:
                return f.read()
        except FileNotFoundError:
            raise FileNotFound() from None

    def exists(self, path: Union[str, Path, None]) -> bool:
        return bool(path) and Path(path).is_file()

    def remove(self, path: Union[str, Path, None]) -> None:
        """Delete a blob, ignoring one that was never written"""
        if path:
            Path(path).unlink(missing_ok=True)
