"""
Organization knowledge base (compliance, ESG and regulatory documents)
"""
import logging
from typing import List

from sqlalchemy.orm import Session

from finsight.application.access import (
    ADMIN_ROLE, AuthenticatedUser, get_accessible_or_404, require_organization, require_role,
)
from finsight.application.errors import NotFoundError, ValidationError
from finsight.application.uploads import KNOWLEDGE_BASE_SUBDIR, UploadedFile, check_extensions, store_all
from finsight.infrastructure.db.models import KnowledgeBaseDocument
from finsight.infrastructure.storage.files import FileStorage
from finsight.utils.dates import isoformat, utcnow

logger = logging.getLogger(__name__)

DOCUMENT_CATEGORIES = ("LOAN_COMPLIANCE", "ESG_POLICY", "REGULATORY_STANDARD")
ALLOWED_EXTENSIONS = (".pdf", ".doc", ".docx", ".txt", ".md")


def kb_document_to_dict(document: KnowledgeBaseDocument) -> dict:
    return {
        "id": document.id,
        "file_name": document.file_name,
        "storage_url": document.storage_url,
        "document_category": document.document_category,
        "file_size": document.file_size,
        "is_active": document.is_active,
        "created_at": isoformat(document.created_at),
        "uploaded_by_id": document.uploaded_by_id,
    }


class UploadKnowledgeBaseUseCase:
    def __init__(self, db: Session, storage: FileStorage, clock=utcnow):
        self.db = db
        self.storage = storage
        self.clock = clock

    def execute(self, user: AuthenticatedUser, files: List[UploadedFile], category: str) -> dict:
        organization_id = require_organization(user)
        require_role(user, (ADMIN_ROLE,), "Only admins can upload knowledge base documents")
        if not files:
            raise ValidationError("No files uploaded")
        if category not in DOCUMENT_CATEGORIES:
            raise ValidationError("Valid document category is required")
        check_extensions(files, ALLOWED_EXTENSIONS)

        now = self.clock()

        def make_row(f, stored):
            return KnowledgeBaseDocument(
                organization_id=organization_id,
                uploaded_by_id=user.user_id,
                file_name=f.filename,
                storage_url=stored.url,
                document_category=category,
                file_size=stored.size,
                is_active=True,
                created_at=now,
            )

        rows = store_all(self.db, self.storage, KNOWLEDGE_BASE_SUBDIR, files, make_row)
        return {
            "documents": [
                {
                    "id": d.id,
                    "fileName": d.file_name,
                    "documentCategory": d.document_category,
                    "filePath": d.storage_url,
                    "fileSize": d.file_size,
                    "uploadedAt": isoformat(d.created_at),
                }
                for d in rows
            ],
            "message": f"{len(rows)} document(s) uploaded successfully",
        }


def list_knowledge_base(
    db: Session,
    user: AuthenticatedUser,
    category: str | None = None,
    active: bool = True,
) -> List[dict]:
    organization_id = require_organization(user)
    query = db.query(KnowledgeBaseDocument).filter(
        KnowledgeBaseDocument.organization_id == organization_id,
        KnowledgeBaseDocument.is_active.is_(active),
    )
    if category:
        query = query.filter(KnowledgeBaseDocument.document_category == category)
    rows = query.order_by(KnowledgeBaseDocument.created_at.desc()).all()
    return [kb_document_to_dict(d) for d in rows]


class DeleteKnowledgeBaseDocumentUseCase:
    """Soft delete: the row stays (inactive), the file is removed best effort"""

    def __init__(self, db: Session, storage: FileStorage):
        self.db = db
        self.storage = storage

    def execute(self, user: AuthenticatedUser, document_id: str) -> None:
        require_organization(user)
        require_role(user, (ADMIN_ROLE,), "Only admins can delete knowledge base documents")
        if not document_id:
            raise ValidationError("Document ID is required")

        document = get_accessible_or_404(
            self.db, KnowledgeBaseDocument, document_id, user, "Document not found"
        )
        if not document.is_active:
            raise NotFoundError("Document not found")

        document.is_active = False
        self.db.commit()
        self.storage.delete(document.storage_url)
