# casedesk/routes/document_routes.py
"""
Document Routes
- Upload (two-phase: binary, then metadata row)
- Generate a case document PDF and store it
- List documents per case, single document lookup
- Signed download links and the signed download itself
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from fastapi.responses import Response
from starlette.concurrency import run_in_threadpool

from casedesk.config import settings
from casedesk.enums import DocumentType
from casedesk.errors import CaseDeskError
from casedesk.routes.deps import get_binary_store, get_entity_store, get_notifier, http_error
from casedesk.schemas import GenerateDocumentRequest
from casedesk.services import case_service, document_service
from casedesk.services.document_generator import generate_and_save_document
from casedesk.services.entity_store import EntityStore
from casedesk.services.storage_service import FileStorage
from casedesk.services.toast_service import RequestToasts

logger = logging.getLogger("casedesk.documents")

router = APIRouter(tags=["documents"])


async def _require_case(case_id: str, store: EntityStore):
    try:
        view = await case_service.fetch_case(case_id, entity_store=store)
    except CaseDeskError as exc:
        raise http_error(exc)
    if view is None:
        raise HTTPException(status_code=404, detail="Case not found")
    return view


@router.get("/cases/{case_id}/documents")
async def api_get_case_documents(
    case_id: str,
    store: EntityStore = Depends(get_entity_store),
    notifier: RequestToasts = Depends(get_notifier),
):
    """Get all documents for a case"""
    await _require_case(case_id, store)
    try:
        documents = await document_service.get_documents_by_case(case_id, entity_store=store, notifier=notifier)
    except CaseDeskError as exc:
        raise http_error(exc)

    return {
        "case_id": case_id,
        "documents": documents,
        "document_types": DocumentType.values(),
    }


@router.post("/cases/{case_id}/documents", status_code=201)
async def api_upload_document(
    case_id: str,
    file: UploadFile = File(...),
    document_type: str = Form(...),
    filename: Optional[str] = Form(None),
    store: EntityStore = Depends(get_entity_store),
    binary_store: FileStorage = Depends(get_binary_store),
    notifier: RequestToasts = Depends(get_notifier),
):
    """Upload a new document"""
    await _require_case(case_id, store)

    name = filename or file.filename or ""

    content = await file.read()
    if len(content) == 0:
        raise HTTPException(status_code=400, detail="Empty file")
    if len(content) > settings.upload_max_size_bytes:
        raise HTTPException(status_code=400, detail=f"File too large (max {settings.upload_max_size_mb}MB)")

    try:
        stored = await document_service.upload_document(
            case_id,
            content,
            name,
            DocumentType.from_string(document_type),
            entity_store=store,
            binary_store=binary_store,
            notifier=notifier,
            content_type=file.content_type or "application/octet-stream",
        )
    except CaseDeskError as exc:
        raise http_error(exc)

    return {"document": stored, "toasts": notifier.as_list()}


@router.post("/cases/{case_id}/documents/generate", status_code=201)
async def api_generate_document(
    case_id: str,
    payload: GenerateDocumentRequest,
    store: EntityStore = Depends(get_entity_store),
    binary_store: FileStorage = Depends(get_binary_store),
    notifier: RequestToasts = Depends(get_notifier),
):
    """Render a template against the case, store it as a PDF"""
    view = await _require_case(case_id, store)
    try:
        stored = await generate_and_save_document(
            view,
            payload.title,
            payload.document_type,
            payload.template,
            entity_store=store,
            binary_store=binary_store,
            notifier=notifier,
        )
    except CaseDeskError as exc:
        raise http_error(exc)
    return {"document": stored, "toasts": notifier.as_list()}


@router.get("/documents/download-url")
async def api_document_download_url(
    path: str = Query(...),
    binary_store: FileStorage = Depends(get_binary_store),
    notifier: RequestToasts = Depends(get_notifier),
):
    try:
        url = await document_service.get_document_download_url(path, binary_store=binary_store, notifier=notifier)
    except CaseDeskError as exc:
        raise http_error(exc)
    return {"signed_url": url, "expires_in": settings.signed_url_ttl_seconds}


@router.get("/documents/{document_id}")
async def api_get_document(
    document_id: str,
    store: EntityStore = Depends(get_entity_store),
    notifier: RequestToasts = Depends(get_notifier),
):
    """Get a single document's metadata"""
    try:
        document = await document_service.get_document(document_id, entity_store=store, notifier=notifier)
    except CaseDeskError as exc:
        raise http_error(exc)
    if document is None:
        raise HTTPException(status_code=404, detail="Document not found")
    return {"document": document}


@router.get("/storage/{bucket}/{path:path}")
async def signed_download(
    bucket: str,
    path: str,
    token: str = Query(...),
    binary_store: FileStorage = Depends(get_binary_store),
):
    """Serve a stored object for a valid, unexpired signed token"""
    try:
        signed_bucket, signed_path = binary_store.verify_token(token)
    except CaseDeskError as exc:
        raise http_error(exc)
    if (signed_bucket, signed_path) != (bucket, path):
        raise HTTPException(status_code=403, detail="Token does not match this object")

    result = await run_in_threadpool(binary_store.download, bucket, path)
    if result.error is not None:
        raise http_error(result.error)

    content, meta = result.data
    filename = path.rsplit("/", 1)[-1]
    return Response(
        content=content,
        media_type=meta.get("content_type") or "application/octet-stream",
        headers={
            "Cache-Control": f"max-age={meta.get('cache_control') or settings.upload_cache_control}",
            "Content-Disposition": f'inline; filename="{filename}"',
        },
    )
