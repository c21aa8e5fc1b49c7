"""
Organization document use cases: upload, list, details, status, delete
"""
import logging
from typing import List

from sqlalchemy.orm import Session

from finsight.application.access import (
    AuthenticatedUser, get_accessible_or_404, require_organization,
)
from finsight.application.errors import ConflictError, PermissionDeniedError, ValidationError
from finsight.application.uploads import DOCUMENTS_SUBDIR, UploadedFile, check_extensions, store_all
from finsight.domain.document import DOCUMENT_STATUSES, DOCUMENT_TYPES, PENDING, can_transition
from finsight.infrastructure.db.models import Document, DocumentAnalysisResult, User
from finsight.infrastructure.storage.files import FileStorage
from finsight.utils.dates import isoformat, utcnow

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = (".pdf", ".doc", ".docx", ".xlsx", ".xls", ".txt", ".csv")
NOT_FOUND_MESSAGE = "Document not found"


class DocumentValidationError(ValidationError):
    pass


# ── Mapping ──

def document_to_dict(document: Document, uploaded_by: str | None = None) -> dict:
    return {
        "id": document.id,
        "fileName": document.file_name,
        "documentType": document.document_type,
        "status": document.status,
        "uploadedAt": isoformat(document.uploaded_at),
        "uploadedBy": uploaded_by,
        "storageUrl": document.storage_url,
    }


def analysis_result_to_dict(result: DocumentAnalysisResult) -> dict:
    return {
        "analysisType": result.analysis_type,
        "extractedData": result.extracted_data or {},
        "aiSummary": result.ai_summary,
        "keyFindings": result.key_findings or [],
        "riskIndicators": result.risk_indicators or {},
        "recommendations": result.recommendations or [],
        "confidenceScore": result.confidence_score,
        "processingTimeMs": result.processing_time_ms,
        "processedAt": isoformat(result.processed_at),
    }


def _uploader_name(db: Session, user_id: str) -> str | None:
    user = db.get(User, user_id)
    return user.full_name if user else None


# ── Use Cases ──

class UploadDocumentsUseCase:
    def __init__(self, db: Session, storage: FileStorage, clock=utcnow):
        self.db = db
        self.storage = storage
        self.clock = clock

    def execute(self, user: AuthenticatedUser, files: List[UploadedFile], document_type: str) -> dict:
        organization_id = require_organization(user)
        if not files:
            raise DocumentValidationError("No files uploaded")
        if document_type not in DOCUMENT_TYPES:
            raise DocumentValidationError("Valid document type is required")
        check_extensions(files, ALLOWED_EXTENSIONS)

        now = self.clock()

        def make_row(f, stored):
            return Document(
                organization_id=organization_id,
                uploaded_by_id=user.user_id,
                file_name=f.filename,
                storage_url=stored.url,
                document_type=document_type,
                status=PENDING,
                uploaded_at=now,
            )

        documents = store_all(self.db, self.storage, DOCUMENTS_SUBDIR, files, make_row)
        logger.info("Uploaded %d document(s) for organization %s", len(documents), organization_id)

        return {
            "documents": [
                {
                    "id": d.id,
                    "fileName": d.file_name,
                    "documentType": d.document_type,
                    "storageUrl": d.storage_url,
                    "status": d.status,
                    "uploadedAt": isoformat(d.uploaded_at),
                }
                for d in documents
            ],
            "message": f"{len(documents)} document(s) uploaded successfully",
        }


class ListDocumentsQuery:
    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        user: AuthenticatedUser,
        document_type: str | None = None,
        status: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> dict:
        organization_id = require_organization(user)
        limit = max(1, limit)
        offset = max(0, offset)

        query = (
            self.db.query(Document, User.full_name)
            .join(User, User.id == Document.uploaded_by_id)
            .filter(Document.organization_id == organization_id)
        )
        if document_type:
            query = query.filter(Document.document_type == document_type)
        if status:
            query = query.filter(Document.status == status)

        total = query.count()
        rows = query.order_by(Document.uploaded_at.desc()).limit(limit).offset(offset).all()

        documents = []
        for document, uploaded_by in rows:
            item = document_to_dict(document, uploaded_by)
            item.pop("storageUrl")
            documents.append(item)

        return {
            "documents": documents,
            "pagination": {
                "total": total,
                "limit": limit,
                "offset": offset,
                "hasMore": offset + limit < total,
            },
        }


def get_document_details(db: Session, user: AuthenticatedUser, document_id: str) -> dict:
    require_organization(user)
    document = get_accessible_or_404(db, Document, document_id, user, NOT_FOUND_MESSAGE)
    data = document_to_dict(document, _uploader_name(db, document.uploaded_by_id))

    result = (
        db.query(DocumentAnalysisResult)
        .filter(DocumentAnalysisResult.document_id == document.id)
        .first()
    )
    if result is not None:
        data["analysis"] = analysis_result_to_dict(result)
    return data


class UpdateDocumentStatusUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, user: AuthenticatedUser, document_id: str, status: str) -> None:
        require_organization(user)
        if status not in DOCUMENT_STATUSES:
            raise DocumentValidationError("Invalid status value")

        document = get_accessible_or_404(self.db, Document, document_id, user, NOT_FOUND_MESSAGE)
        if not can_transition(document.status, status):
            raise ConflictError(f"Cannot change document status from {document.status} to {status}")

        document.status = status
        self.db.commit()


class DeleteDocumentUseCase:
    """Admins may delete any document of their organization, others only their own uploads"""

    def __init__(self, db: Session, storage: FileStorage):
        self.db = db
        self.storage = storage

    def execute(self, user: AuthenticatedUser, document_id: str) -> None:
        require_organization(user)
        document = get_accessible_or_404(self.db, Document, document_id, user, NOT_FOUND_MESSAGE)
        if not user.is_admin and document.uploaded_by_id != user.user_id:
            raise PermissionDeniedError("Insufficient permissions to delete this document")

        storage_url = document.storage_url
        self.db.query(DocumentAnalysisResult).filter(
            DocumentAnalysisResult.document_id == document.id
        ).delete()
        self.db.delete(document)
        self.db.commit()

        self.storage.delete(storage_url)
