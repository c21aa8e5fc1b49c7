"""
Shared upload handling: extension checks, transactional multi-file writes,
and authorization of file downloads.
"""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List

from sqlalchemy.orm import Session

from finsight.application.access import AuthenticatedUser
from finsight.application.errors import NotFoundError, ValidationError
from finsight.infrastructure.db.models import Document, KnowledgeBaseDocument
from finsight.infrastructure.storage.files import FileStorage, StoredFile, file_extension

logger = logging.getLogger(__name__)

DOCUMENTS_SUBDIR = "documents"
KNOWLEDGE_BASE_SUBDIR = "knowledge-base"


@dataclass(frozen=True)
class UploadedFile:
    filename: str
    content: bytes


def check_extensions(files: List[UploadedFile], allowed: tuple) -> None:
    for f in files:
        if file_extension(f.filename) not in allowed:
            raise ValidationError(
                f"Invalid file type: {f.filename}. Allowed types: {', '.join(allowed)}"
            )


def store_all(
    db: Session,
    storage: FileStorage,
    subdir: str,
    files: List[UploadedFile],
    make_row: Callable[[UploadedFile, StoredFile], object],
) -> list:
    """
    Write every file, insert one row per file, commit once.

    On any failure the transaction is rolled back and the files written so
    far are removed (best effort), then the error propagates.
    """
    written: list[StoredFile] = []
    rows = []
    try:
        for f in files:
            stored = storage.save(subdir, f.filename, f.content)
            written.append(stored)
            row = make_row(f, stored)
            db.add(row)
            rows.append(row)
        db.flush()
        db.commit()
    except Exception:
        db.rollback()
        for stored in written:
            storage.delete(stored.url)
        raise
    return rows


def resolve_download(db: Session, storage: FileStorage, user: AuthenticatedUser, relative_path: str) -> Path:
    """
    Map /uploads/<relative_path> to a file on disk the caller may read.

    Only files registered as a document or an active knowledge-base entry of
    the caller's organization are served; everything else is "not found".
    """
    path = storage.resolve(relative_path)
    if path is None or user.organization_id is None:
        raise NotFoundError("File not found")

    url = f"/uploads/{relative_path}"
    top = relative_path.split("/", 1)[0]
    if top == DOCUMENTS_SUBDIR:
        owner = (
            db.query(Document.id)
            .filter(Document.storage_url == url, Document.organization_id == user.organization_id)
            .first()
        )
    elif top == KNOWLEDGE_BASE_SUBDIR:
        owner = (
            db.query(KnowledgeBaseDocument.id)
            .filter(
                KnowledgeBaseDocument.storage_url == url,
                KnowledgeBaseDocument.organization_id == user.organization_id,
                KnowledgeBaseDocument.is_active.is_(True),
            )
            .first()
        )
    else:
        owner = None

    if owner is None or not path.is_file():
        raise NotFoundError("File not found")
    return path
