# casedesk/routes/case_routes.py
"""
Case Routes
- Case list, detail and the server-rendered case page
- Create / update case forms
- Status changes through the per-case status control
- Deadlines, parties and standalone clients
"""

import logging
import time
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import HTMLResponse

from casedesk.database import templates
from casedesk.enums import CaseStatus
from casedesk.errors import CaseDeskError
from casedesk.routes.deps import (
    get_entity_store,
    get_notifier,
    get_status_registry,
    http_error,
)
from casedesk.schemas import CaseForm, CaseView, DeadlineCreate, PartyForm, StatusUpdate
from casedesk.services import case_service
from casedesk.services.entity_store import EntityStore
from casedesk.services.status_service import StatusControlRegistry
from casedesk.services.toast_service import RequestToasts

logger = logging.getLogger("casedesk.cases")

router = APIRouter(prefix="/cases", tags=["cases"])
parties_router = APIRouter(prefix="/parties", tags=["parties"])


async def _load_case_or_404(case_id: str, store: EntityStore) -> CaseView:
    try:
        view = await case_service.fetch_case(case_id, entity_store=store)
    except CaseDeskError as exc:
        raise http_error(exc)
    if view is None:
        raise HTTPException(status_code=404, detail="Case not found")
    return view


@router.get("")
async def api_list_cases(
    status: Optional[CaseStatus] = None,
    store: EntityStore = Depends(get_entity_store),
    notifier: RequestToasts = Depends(get_notifier),
):
    """List cases, newest first"""
    try:
        cases = await case_service.list_cases(entity_store=store, notifier=notifier, status=status)
    except CaseDeskError as exc:
        raise http_error(exc)
    return {"cases": cases, "statuses": CaseStatus.values()}


@router.post("", status_code=201)
async def api_create_case(
    form: CaseForm,
    store: EntityStore = Depends(get_entity_store),
    notifier: RequestToasts = Depends(get_notifier),
):
    try:
        case = await case_service.create_case(form, entity_store=store, notifier=notifier)
    except CaseDeskError as exc:
        raise http_error(exc)
    return {"case": case, "toasts": notifier.as_list()}


@router.get("/{case_id}")
async def api_get_case(
    case_id: str,
    store: EntityStore = Depends(get_entity_store),
    registry: StatusControlRegistry = Depends(get_status_registry),
):
    view = await _load_case_or_404(case_id, store)
    return {"case": view, "status_update_in_progress": registry.is_busy(case_id)}


@router.get("/{case_id}/view", response_class=HTMLResponse)
async def case_page(
    request: Request,
    case_id: str,
    store: EntityStore = Depends(get_entity_store),
    registry: StatusControlRegistry = Depends(get_status_registry),
):
    """Case page with the status selector"""
    read_at = time.monotonic()
    view = await _load_case_or_404(case_id, store)
    control = registry.control_for(case_id, view.status, read_at)
    view.status = control.current_status
    return templates.TemplateResponse(
        request,
        "case_detail.html",
        {"case": view, "control": control, "statuses": control.options},
    )


@router.put("/{case_id}")
async def api_update_case(
    case_id: str,
    form: CaseForm,
    store: EntityStore = Depends(get_entity_store),
    notifier: RequestToasts = Depends(get_notifier),
):
    await _load_case_or_404(case_id, store)
    try:
        case = await case_service.update_case(case_id, form, entity_store=store, notifier=notifier)
    except CaseDeskError as exc:
        raise http_error(exc)
    return {"case": case, "toasts": notifier.as_list()}


@router.post("/{case_id}/status")
async def api_update_case_status(
    case_id: str,
    payload: StatusUpdate,
    store: EntityStore = Depends(get_entity_store),
    notifier: RequestToasts = Depends(get_notifier),
    registry: StatusControlRegistry = Depends(get_status_registry),
):
    """
    Change a case's status.

    409 while another change for the same case is in flight, 502 when the
    store rejects the write. The returned case reflects only confirmed state.
    """
    read_at = time.monotonic()
    view = await _load_case_or_404(case_id, store)
    control = registry.control_for(case_id, view.status, read_at)
    view.status = control.current_status

    def reconcile(new_status: CaseStatus) -> None:
        view.status = new_status

    try:
        updated = await control.change(payload.status, notifier=notifier, on_status_updated=reconcile)
    except CaseDeskError as exc:
        raise http_error(exc)

    return {"case": view, "updated": updated, "toasts": notifier.as_list()}


@router.post("/{case_id}/deadlines", status_code=201)
async def api_add_deadline(
    case_id: str,
    form: DeadlineCreate,
    store: EntityStore = Depends(get_entity_store),
    notifier: RequestToasts = Depends(get_notifier),
):
    await _load_case_or_404(case_id, store)
    try:
        deadline = await case_service.add_deadline(case_id, form, entity_store=store, notifier=notifier)
    except CaseDeskError as exc:
        raise http_error(exc)
    return {"deadline": deadline, "toasts": notifier.as_list()}


@router.post("/{case_id}/parties", status_code=201)
async def api_add_party(
    case_id: str,
    form: PartyForm,
    store: EntityStore = Depends(get_entity_store),
    notifier: RequestToasts = Depends(get_notifier),
):
    await _load_case_or_404(case_id, store)
    try:
        party = await case_service.add_party(case_id, form, entity_store=store, notifier=notifier)
    except CaseDeskError as exc:
        raise http_error(exc)
    return {"party": party, "toasts": notifier.as_list()}


@parties_router.put("/{party_id}")
async def api_update_party(
    party_id: str,
    form: PartyForm,
    store: EntityStore = Depends(get_entity_store),
    notifier: RequestToasts = Depends(get_notifier),
):
    try:
        party = await case_service.update_party(party_id, form, entity_store=store, notifier=notifier)
    except CaseDeskError as exc:
        raise http_error(exc)
    return {"party": party, "toasts": notifier.as_list()}


@parties_router.post("", status_code=201)
async def api_create_client(
    form: PartyForm,
    store: EntityStore = Depends(get_entity_store),
    notifier: RequestToasts = Depends(get_notifier),
):
    """Create a client party that is not yet linked to a case"""
    try:
        client = await case_service.create_client(form, entity_store=store, notifier=notifier)
    except CaseDeskError as exc:
        raise http_error(exc)
    return {"party": client, "toasts": notifier.as_list()}
