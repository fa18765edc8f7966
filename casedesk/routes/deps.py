# casedesk/routes/deps.py
"""
Request-scoped dependencies and error mapping shared by the routers.
Stores and the toast channel live on ``app.state``; see ``casedesk.main``.
"""

from fastapi import HTTPException, Request

from casedesk.errors import (
    BinaryWriteError,
    CaseDeskError,
    ControlBusyError,
    MetadataInsertError,
    PartyLinkError,
    SignedUrlError,
    StorageNotConfiguredError,
    StoreError,
    ValidationFailed,
)
from casedesk.services.entity_store import EntityStore
from casedesk.services.status_service import StatusControlRegistry
from casedesk.services.storage_service import FileStorage
from casedesk.services.toast_service import RequestToasts


def get_entity_store(request: Request) -> EntityStore:
    return request.app.state.entity_store


def get_binary_store(request: Request) -> FileStorage:
    return request.app.state.binary_store


def get_notifier(request: Request) -> RequestToasts:
    return RequestToasts(request.app.state.toasts)


def get_status_registry(request: Request) -> StatusControlRegistry:
    return request.app.state.status_controls


def http_error(exc: CaseDeskError) -> HTTPException:
    """Map a casedesk error to the HTTP status the client sees"""
    if isinstance(exc, ValidationFailed):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, ControlBusyError):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, BinaryWriteError) and exc.is_collision:
        return HTTPException(status_code=409, detail=f"A document already exists at {exc.path}")
    if isinstance(exc, StorageNotConfiguredError):
        return HTTPException(status_code=503, detail=str(exc))
    if isinstance(exc, SignedUrlError):
        return HTTPException(status_code=403, detail=str(exc))
    if isinstance(exc, StoreError) and exc.code == "not_found":
        return HTTPException(status_code=404, detail=exc.message)
    if isinstance(exc, (MetadataInsertError, PartyLinkError)):
        return HTTPException(status_code=502, detail={"error": "partial_failure", "message": str(exc)})
    return HTTPException(status_code=502, detail=str(exc))
