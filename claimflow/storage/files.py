"""
Documentation File Store

Stores uploaded supporting documents and hands back an opaque
reference. Extension and size rules are enforced by the lifecycle.
"""
import logging
import os
import uuid
from abc import ABC, abstractmethod
from pathlib import Path

from werkzeug.utils import secure_filename

from claimflow.core.errors import NotFound, StorageFailure

logger = logging.getLogger(__name__)


def safe_document_name(original_name: str) -> str:
    """ASCII-only file name that keeps the original extension."""
    safe_name = secure_filename(original_name)
    _, dot, extension = original_name.rpartition(".")
    extension = secure_filename(extension).lower() if dot else ""
    if not safe_name or (extension and not safe_name.lower().endswith(f".{extension}")):
        return f"document.{extension}" if extension else "document"
    return safe_name


class FileStore(ABC):
    """Opaque blob store for claim documentation."""

    @abstractmethod
    def store(self, content: bytes, original_name: str) -> str:
        """
        Persist a file and return its reference.

        Raises:
            StorageFailure: if the write fails; no partial file is left behind
        """

    @abstractmethod
    def open(self, reference: str) -> bytes:
        """
        Raises:
            NotFound: if nothing is stored under the reference
        """

    @abstractmethod
    def delete(self, reference: str) -> bool:
        """
        Remove a stored file. Returns False if it was already gone.

        Raises:
            StorageFailure: if the file exists but cannot be removed
        """


class LocalFileStore(FileStore):
    """Stores files in a directory on the local disk."""

    def __init__(self, root: str):
        self.root = Path(root).resolve()

    def _path_for(self, reference: str) -> Path:
        path = (self.root / reference).resolve()
        if path.parent != self.root:
            raise NotFound(f"Document {reference} not found")
        return path

    def store(self, content: bytes, original_name: str) -> str:
        # Unique prefix so two uploads with the same name never collide
        reference = f"{uuid.uuid4().hex}_{safe_document_name(original_name)}"
        path = self.root / reference
        partial = self.root / f".{reference}.part"

        try:
            self.root.mkdir(parents=True, exist_ok=True)
            with open(partial, "wb") as handle:
                handle.write(content)
            os.replace(partial, path)
        except OSError as e:
            logger.error(f"Could not store document {original_name}: {e}")
            if partial.exists():
                partial.unlink()
            raise StorageFailure(
                "Error uploading file. Please try again.",
                {"original_name": original_name},
            ) from e

        logger.info(f"Stored document {reference} ({len(content)} bytes)")
        return reference

    def open(self, reference: str) -> bytes:
        path = self._path_for(reference)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            raise NotFound(f"Document {reference} not found") from None
        except OSError as e:
            raise StorageFailure(f"Could not read document {reference}") from e

    def delete(self, reference: str) -> bool:
        path = self._path_for(reference)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageFailure(f"Could not delete document {reference}") from e
        logger.info(f"Deleted document {reference}")
        return True
