# casedesk/services/document_service.py
"""
Document Service
- Two-phase upload: store the binary, then register its metadata row
- Signed download links
- Per-case document listing and single-document lookup

The two stores share no transaction. A metadata insert that fails after the
binary was stored leaves that binary orphaned; it is reported as
``MetadataInsertError`` and not cleaned up.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Union

from starlette.concurrency import run_in_threadpool

from casedesk.config import settings
from casedesk.enums import DocumentStatus, DocumentType
from casedesk.errors import (
    BinaryWriteError,
    MetadataInsertError,
    RemoteReadError,
    StorageNotConfiguredError,
    StoreError,
    ValidationFailed,
)
from casedesk.models import utc_now_iso
from casedesk.services.entity_store import EntityStore
from casedesk.services.storage_service import FileStorage
from casedesk.services.toast_service import Notifier

logger = logging.getLogger("casedesk.documents")

UPLOAD_FAILED_MESSAGE = "Failed to upload document. Please try again."
UPLOAD_SUCCESS_MESSAGE = "Document generated and uploaded successfully!"
STORAGE_NOT_CONFIGURED_MESSAGE = "Storage not configured properly. Please contact support."


def is_plain_filename(filename: str) -> bool:
    """A single path segment that is not made only of dots"""
    name = (filename or "").strip()
    return bool(name.strip(".")) and "/" not in name and "\\" not in name


def document_path(case_id: str, filename: str) -> str:
    """Storage location of a case document inside the documents bucket"""
    return f"{case_id}/{filename}"


async def upload_document(
    case_id: str,
    content: bytes,
    filename: str,
    document_type: Union[DocumentType, str],
    *,
    entity_store: EntityStore,
    binary_store: FileStorage,
    notifier: Notifier,
    bucket: Optional[str] = None,
    content_type: str = "application/octet-stream",
) -> Dict[str, Any]:
    """
    Upload a document binary and register it against its case.

    Returns:
        The storage result, ``{"path": ..., "full_path": ...}``

    Raises:
        ValidationFailed: the file name is not a plain name
        StorageNotConfiguredError: the documents bucket is missing
        BinaryWriteError: the binary store rejected the upload (nothing registered)
        MetadataInsertError: the binary is stored but its metadata row is not
    """
    if not is_plain_filename(filename):
        logger.error(f"Rejected upload for case {case_id}: invalid file name {filename!r}")
        notifier.error(UPLOAD_FAILED_MESSAGE)
        raise ValidationFailed("A plain file name is required")

    bucket = bucket or settings.documents_bucket
    doc_type = DocumentType(document_type)
    path = document_path(case_id, filename.strip())

    buckets = await run_in_threadpool(binary_store.list_buckets)
    if not any(entry["name"] == bucket for entry in buckets.data or []):
        logger.error(f"Documents bucket {bucket!r} doesn't exist")
        notifier.error(STORAGE_NOT_CONFIGURED_MESSAGE)
        raise StorageNotConfiguredError(bucket)

    stored = await run_in_threadpool(
        binary_store.upload,
        bucket,
        path,
        content,
        cache_control=settings.upload_cache_control,
        upsert=False,
        content_type=content_type,
    )
    if stored.error is not None or not stored.data or not stored.data.get("path"):
        logger.error(f"Storage upload error for {path}: {stored.error.message if stored.error else 'no path returned'}")
        notifier.error(UPLOAD_FAILED_MESSAGE)
        raise BinaryWriteError(path, cause=stored.error)

    record = {
        "case_id": case_id,
        "title": filename.strip(),
        "type": doc_type.value,
        "created_at": utc_now_iso(),
        "status": DocumentStatus.FINALIZED.value,
        "url": stored.data["path"],
    }
    inserted = await run_in_threadpool(entity_store.insert, "documents", [record])
    if inserted.error is not None:
        logger.error(
            f"Database insert error for {path}: {inserted.error.message}; "
            f"binary left orphaned at {bucket}/{stored.data['path']}"
        )
        notifier.error(UPLOAD_FAILED_MESSAGE)
        raise MetadataInsertError(stored.data["path"], cause=inserted.error)

    logger.info(f"Uploaded document {filename} for case {case_id}")
    notifier.success(UPLOAD_SUCCESS_MESSAGE)
    return stored.data


async def get_document_download_url(
    path: str,
    *,
    binary_store: FileStorage,
    notifier: Notifier,
    bucket: Optional[str] = None,
    expires_in: Optional[int] = None,
) -> str:
    """Signed URL for a stored document, valid for ``signed_url_ttl_seconds``"""
    bucket = bucket or settings.documents_bucket
    expires_in = expires_in or settings.signed_url_ttl_seconds

    response = await run_in_threadpool(binary_store.create_signed_url, bucket, path, expires_in)
    if response.error is not None or not (response.data or {}).get("signed_url"):
        error = response.error or StoreError("Failed to get download URL")
        logger.error(f"Error creating download URL for {path}: {error.message}")
        notifier.error("Failed to generate download link")
        raise error
    return response.data["signed_url"]


async def get_documents_by_case(
    case_id: str,
    *,
    entity_store: EntityStore,
    notifier: Notifier,
) -> List[Dict[str, Any]]:
    """All documents for a case, newest first"""
    response = await run_in_threadpool(
        entity_store.select, "documents", order_by="created_at", descending=True, case_id=case_id
    )
    if response.error is not None:
        logger.error(f"Error fetching documents for case {case_id}: {response.error.message}")
        notifier.error("Failed to load documents")
        raise RemoteReadError("Failed to load documents", cause=response.error)
    return response.data or []


async def get_document(
    document_id: str,
    *,
    entity_store: EntityStore,
    notifier: Notifier,
) -> Optional[Dict[str, Any]]:
    """
    A single document row by id.

    Returns:
        The row, or None when no document has this id
    """
    response = await run_in_threadpool(entity_store.get, "documents", document_id)
    if response.error is not None:
        logger.error(f"Error fetching document {document_id}: {response.error.message}")
        notifier.error("Could not load document")
        raise RemoteReadError("Could not load document", cause=response.error)
    return response.data
