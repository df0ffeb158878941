"""Signed blob downloads. The URL itself is the credential; no session needed."""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from ..database import get_db
from ..models import File
from ..services.storage_service import LocalObjectStore, get_object_store

router = APIRouter(prefix="/api/blobs", tags=["blobs"])


@router.get("/{key:path}")
def download_blob(
    key: str,
    expires: int = Query(...),
    signature: str = Query(...),
    db: Session = Depends(get_db),
    store: LocalObjectStore = Depends(get_object_store),
):
    """Stream the bytes under *key*, named after the file's display name."""
    store.verify(key, expires, signature)
    path = store.open(key)

    record = db.query(File).filter(File.storage_key == key).first()
    if record is not None:
        filename = record.name
    else:
        # Stored names are "{epoch_ms}-{random}-{sanitized name}".
        filename = path.name.split("-", 2)[-1]
    return FileResponse(path, filename=filename, media_type=record.mime_type if record else None)
