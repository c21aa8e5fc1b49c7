"""
Organization knowledge base endpoints
"""
from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session

from finsight.api.deps import get_current_user, get_db, get_storage, read_uploads
from finsight.api.responses import ok
from finsight.application.access import AuthenticatedUser
from finsight.application.knowledge_base import (
    DeleteKnowledgeBaseDocumentUseCase, UploadKnowledgeBaseUseCase, list_knowledge_base,
)
from finsight.infrastructure.storage.files import FileStorage


router = APIRouter(prefix="/api/knowledge-base", tags=["knowledge-base"])


@router.get("")
def list_documents(
    category: str | None = None,
    active: bool = True,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return ok(list_knowledge_base(db, user, category=category, active=active))


@router.post("", status_code=201)
def upload_documents(
    files: list[UploadFile] = File(default=[]),
    category: str = Form(default=""),
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
):
    result = UploadKnowledgeBaseUseCase(db, storage).execute(user, read_uploads(files), category)
    return ok({"documents": result["documents"]}, message=result["message"])


@router.delete("")
def delete_document(
    id: str | None = None,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
):
    DeleteKnowledgeBaseDocumentUseCase(db, storage).execute(user, id)
    return ok(message="Document deleted successfully")
