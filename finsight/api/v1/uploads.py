"""
Authenticated serving of uploaded files
"""
from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from finsight.api.deps import get_current_user, get_db, get_storage
from finsight.application.access import AuthenticatedUser
from finsight.application.uploads import resolve_download
from finsight.infrastructure.storage.files import FileStorage


router = APIRouter(prefix="/uploads", tags=["uploads"])


@router.get("/{file_path:path}")
def download(
    file_path: str,
    user: AuthenticatedUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
):
    path = resolve_download(db, storage, user, file_path)
    return FileResponse(path, filename=path.name)
