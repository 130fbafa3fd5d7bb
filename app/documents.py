"""
Document router: HTTP endpoints for upload, list, download.

Delegates business logic to services.document_service. All endpoints require
a bearer token (get_current_user) and only ever touch the caller's own
documents. The wire limit for uploads is enforced by
middleware.RequestSizeLimitMiddleware.
"""
import logging
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Request, UploadFile
from fastapi.responses import Response
from sqlalchemy.orm import Session

from auth import get_current_user
from crypto import CiphertextError
from database import get_db
from identities import Identity
from repositories import DocumentRepository
from schemas import ApiResponse, DocumentMetadataOut, error_response
from services.document_service import DocumentMetadata, DocumentRejected, DocumentVault

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/document")


def get_vault(request: Request, db: Session = Depends(get_db)) -> DocumentVault:
    return DocumentVault(DocumentRepository(db), request.app.state.cipher)


def _out(meta: DocumentMetadata) -> DocumentMetadataOut:
    return DocumentMetadataOut(
        id=meta.id,
        file_name=meta.file_name,
        file_type=meta.file_type,
        upload_date=meta.upload_date,
    )


def _content_disposition(filename: str) -> str:
    ascii_name = filename.encode("ascii", "ignore").decode("ascii").replace('"', "") or "download"
    return f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename)}"


@router.post("/upload", response_model=ApiResponse[DocumentMetadataOut])
def upload_document(
    file: UploadFile = File(...),
    user: Identity = Depends(get_current_user),
    vault: DocumentVault = Depends(get_vault),
):
    """
    Encrypt and store an uploaded file for the current user. Allowed types:
    jpg, jpeg, png, pdf, docx, txt; at most 10 MB.
    """
    # Read one byte past the ceiling so oversize files are detected without buffering them whole
    content = file.file.read(vault.max_size_bytes + 1)
    try:
        meta = vault.upload(user.id, content, file.filename or "")
    except DocumentRejected as e:
        logger.warning("Invalid upload from user %s: %s", user.id, e)
        return error_response(400, str(e))
    return ApiResponse[DocumentMetadataOut].ok(_out(meta), "File uploaded successfully")


@router.get("", response_model=ApiResponse[list[DocumentMetadataOut]])
def list_documents(
    user: Identity = Depends(get_current_user),
    vault: DocumentVault = Depends(get_vault),
):
    """List the current user's documents, newest first. Never includes file contents."""
    return ApiResponse[list[DocumentMetadataOut]].ok([_out(m) for m in vault.list_for_owner(user.id)])


@router.get("/download/{document_id}")
def download_document(
    document_id: str,
    user: Identity = Depends(get_current_user),
    vault: DocumentVault = Depends(get_vault),
):
    """
    Decrypt and return one of the current user's documents. Documents owned by
    someone else are reported exactly like missing ones.
    """
    try:
        doc = vault.download(user.id, document_id)
    except CiphertextError:
        logger.exception("Error decrypting document %s", document_id)
        return error_response(500, "An error occurred while downloading the document")
    if doc is None:
        return error_response(404, "Document not found")
    return Response(
        content=doc.content,
        media_type=doc.media_type,
        headers={"Content-Disposition": _content_disposition(doc.file_name)},
    )
