"""
Organization document endpoints (multipart upload, listing, status, delete)
"""
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from pydantic import BaseModel
from sqlalchemy.orm import Session

from finsight.api.deps import get_current_user, get_db, get_storage, read_uploads
from finsight.api.responses import ok
from finsight.application.access import AuthenticatedUser
from finsight.application.documents import (
    DeleteDocumentUseCase, ListDocumentsQuery, UpdateDocumentStatusUseCase,
    UploadDocumentsUseCase, get_document_details,
)
from finsight.infrastructure.storage.files import FileStorage


router = APIRouter(prefix="/api/documents", tags=["documents"])


class UpdateStatusRequest(BaseModel):
    status: str | None = None


@router.post("", status_code=201)
def upload_documents(
    files: list[UploadFile] = File(default=[]),
    documentType: str = Form(default=""),
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
):
    result = UploadDocumentsUseCase(db, storage).execute(user, read_uploads(files), documentType)
    return ok({"documents": result["documents"]}, message=result["message"])


@router.get("")
def list_documents(
    document_type: str | None = Query(default=None, alias="type"),
    status: str | None = None,
    limit: int = 50,
    offset: int = 0,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    result = ListDocumentsQuery(db).execute(
        user, document_type=document_type, status=status, limit=limit, offset=offset,
    )
    return ok(result)


@router.get("/{document_id}")
def read_document(
    document_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return ok(get_document_details(db, user, document_id))


@router.put("/{document_id}")
def update_document_status(
    document_id: str,
    req: UpdateStatusRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    UpdateDocumentStatusUseCase(db).execute(user, document_id, req.status)
    return ok(message="Document updated successfully")


@router.delete("/{document_id}")
def delete_document(
    document_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
):
    DeleteDocumentUseCase(db, storage).execute(user, document_id)
    return ok(message="Document deleted successfully")
