import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Request, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from docchat.api.auth import current_user
from docchat.errors import DocChatError
from docchat.models import Document, DocumentStatus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["documents"])


class IngestRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    storage_path: str = Field(alias="storagePath")
    file_name: str = Field(alias="fileName")
    mime_type: Optional[str] = Field(default=None, alias="mimeType")
    size: int = 0


def run_ingestion(services, document: Document) -> JSONResponse:
    """Ingest a freshly registered document and report the outcome."""
    try:
        result = services.documents.ingest(document.id)
    except DocChatError as exc:
        return JSONResponse(
            status_code=exc.status_code,
            content={"documentId": document.id, "status": "failed", "error": exc.user_message},
        )

    if result.status != DocumentStatus.READY:
        return JSONResponse(
            status_code=422,
            content={"documentId": document.id, "status": result.status.value, "error": result.error_message},
        )
    return JSONResponse(content={
        "documentId": document.id,
        "status": result.status.value,
        "chunks": result.chunk_count,
        "message": "업로드 및 처리 완료",
    })


@router.post("/ingest")
def ingest_document(request: Request, body: IngestRequest, user_id: str = Depends(current_user)):
    """Register a file already in the blob store and process it."""
    services = request.app.state.services
    document = services.documents.register(
        user_id, body.file_name, body.storage_path, body.mime_type, body.size,
    )
    return run_ingestion(services, document)


@router.post("")
def upload_document(request: Request, file: UploadFile = File(...), user_id: str = Depends(current_user)):
    """Upload bytes through the API, then process them."""
    services = request.app.state.services
    data = file.file.read()
    document = services.documents.upload(user_id, file.filename or "", data, file.content_type)
    return run_ingestion(services, document)


@router.get("/{document_id}")
def download_document(request: Request, document_id: str, user_id: str = Depends(current_user)):
    services = request.app.state.services
    url = services.documents.download_url(user_id, document_id, services.config.storage.signed_url_ttl)
    return {"url": url}


@router.delete("/{document_id}")
def delete_document(request: Request, document_id: str, user_id: str = Depends(current_user)):
    request.app.state.services.documents.delete(user_id, document_id)
    return {"ok": True}
