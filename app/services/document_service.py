"""
Document vault: encrypted per-user file storage.

Uploads are checked (non-empty, at most MAX_FILE_SIZE_BYTES, allowed
extension), encrypted with DocumentCipher and stored; only metadata is
returned. Downloads look documents up by id and owner together, so another
user's document resolves as not found rather than forbidden.
"""
import logging
import os
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from clock import new_id, utcnow
from crypto import DocumentCipher
from repositories import DocumentRepository, StoredDocument

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {"jpg", "jpeg", "png", "pdf", "docx", "txt"}

MAX_FILE_SIZE_BYTES = 10 * 1024 * 1024  # 10 MB

MIME_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "pdf": "application/pdf",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "txt": "text/plain",
}


class DocumentRejected(ValueError):
    """Raised when an upload is empty, too large or of an unsupported type."""


@dataclass(frozen=True)
class DocumentMetadata:
    id: str
    file_name: str
    file_type: str
    upload_date: datetime


@dataclass(frozen=True)
class DownloadedDocument:
    content: bytes
    file_name: str
    file_type: str

    @property
    def media_type(self) -> str:
        return mime_type_for(self.file_type)


def mime_type_for(file_type: str) -> str:
    return MIME_TYPES.get(file_type.lower(), "application/octet-stream")


def safe_filename(name: str) -> str:
    """Keep only the base name of a client-supplied path (handles / and \\ separators)."""
    return os.path.basename((name or "").replace("\\", "/")).strip()


def file_extension(name: str) -> str:
    _, ext = os.path.splitext(name)
    return ext.lstrip(".").lower()


def _metadata(doc: StoredDocument) -> DocumentMetadata:
    return DocumentMetadata(
        id=doc.id,
        file_name=doc.file_name,
        file_type=doc.file_type,
        upload_date=doc.upload_date,
    )


class DocumentVault:
    def __init__(
        self,
        documents: DocumentRepository,
        cipher: DocumentCipher,
        *,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = new_id,
        max_size_bytes: int = MAX_FILE_SIZE_BYTES,
    ):
        self.documents = documents
        self.cipher = cipher
        self._clock = clock
        self._new_id = id_factory
        self.max_size_bytes = max_size_bytes

    def upload(self, owner_id: str, content: bytes, filename: str) -> DocumentMetadata:
        """Encrypt and store a file for owner_id. Raises DocumentRejected on invalid input."""
        if not content:
            raise DocumentRejected("File is required.")
        if len(content) > self.max_size_bytes:
            raise DocumentRejected(
                f"File size exceeds limit of {self.max_size_bytes // (1024 * 1024)} MB."
            )

        name = safe_filename(filename)
        extension = file_extension(name)
        if not extension or extension not in ALLOWED_EXTENSIONS:
            raise DocumentRejected("Unsupported file type.")

        stored = self.documents.add(
            StoredDocument(
                id=self._new_id(),
                owner_id=owner_id,
                file_name=name,
                file_type=extension,
                upload_date=self._clock(),
                encrypted_content=self.cipher.encrypt(content),
            )
        )
        logger.info("Document %s uploaded for user %s", stored.id, owner_id)
        return _metadata(stored)

    def list_for_owner(self, owner_id: str) -> list[DocumentMetadata]:
        """Metadata for owner_id's documents, newest first."""
        return [_metadata(d) for d in self.documents.list_by_owner(owner_id)]

    def download(self, owner_id: str, document_id: str) -> DownloadedDocument | None:
        doc = self.documents.find_by_id_and_owner(document_id, owner_id)
        if doc is None:
            return None
        return DownloadedDocument(
            content=self.cipher.decrypt(doc.encrypted_content),
            file_name=doc.file_name,
            file_type=doc.file_type,
        )
