"""
Credential Document Storage

Stores uploaded degree documents on local disk under settings.upload_dir.
Degree records only keep the returned relative path.
"""

import asyncio
import logging
import uuid
from pathlib import Path

from diploma_api.core.config import settings

logger = logging.getLogger(__name__)

PDF_MAGIC = b"%PDF-"
ALLOWED_EXTENSIONS = {".pdf"}


class DocumentStorageError(ValueError):
    """Raised when a document is rejected or cannot be stored."""


def _upload_root() -> Path:
    return Path(settings.upload_dir).resolve()


def _resolve(path: str) -> Path:
    """Resolve a stored path, refusing anything outside the upload directory."""
    root = _upload_root()
    resolved = (root / path).resolve()
    if not resolved.is_relative_to(root):
        raise DocumentStorageError(f"Path outside upload directory: {path}")
    return resolved


def validate_document(filename: str | None, content: bytes) -> None:
    """
    Check that an upload is a non-empty PDF within the size limit.

    Raises:
        DocumentStorageError: If the document is rejected
    """
    suffix = Path(filename or "").suffix.lower()
    if suffix not in ALLOWED_EXTENSIONS:
        raise DocumentStorageError("Only PDF documents are accepted")
    if not content:
        raise DocumentStorageError("Document is empty")
    if len(content) > settings.max_document_bytes:
        raise DocumentStorageError(
            f"Document exceeds {settings.max_document_bytes // (1024 * 1024)}MB limit"
        )
    if not content.startswith(PDF_MAGIC):
        raise DocumentStorageError("File is not a valid PDF")


def _write(target: Path, content: bytes) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(content)


async def save_document(filename: str | None, content: bytes) -> str:
    """
    Validate and store a degree document.

    Returns:
        Path of the stored file, relative to the upload directory
    """
    validate_document(filename, content)

    relative = f"degrees/{uuid.uuid4().hex}.pdf"
    target = _resolve(relative)

    await asyncio.to_thread(_write, target, content)
    logger.info(f"Stored degree document {relative} ({len(content)} bytes)")
    return relative


async def delete_document(path: str | None) -> bool:
    """
    Remove a stored document. Missing files are not an error.

    Returns:
        True if a file was deleted
    """
    if not path:
        return False

    target = _resolve(path)
    if not target.exists():
        logger.warning(f"Degree document already missing: {path}")
        return False

    await asyncio.to_thread(target.unlink)
    logger.info(f"Deleted degree document {path}")
    return True
