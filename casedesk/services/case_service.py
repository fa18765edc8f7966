# casedesk/services/case_service.py
"""
Case Service
Loads cases into the nested view, and handles the case, deadline and party
forms. Every failure is logged, toasted, and raised to the caller.
"""

import logging
from typing import Any, Dict, List, Optional

from starlette.concurrency import run_in_threadpool

from casedesk.enums import CaseStatus
from casedesk.errors import PartyLinkError, RemoteReadError, RemoteUpdateError, ValidationFailed
from casedesk.schemas import (
    AddressView,
    CaseForm,
    CaseView,
    ContactInfo,
    CourtView,
    DeadlineCreate,
    MortgageView,
    PartyForm,
    PartyView,
    PropertyView,
)
from casedesk.services.entity_store import EntityStore
from casedesk.services.toast_service import Notifier

logger = logging.getLogger("casedesk.cases")

UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred."


def build_case_view(graph: Dict[str, Any]) -> CaseView:
    """Transform a case graph from the store into the nested view"""
    prop = graph.get("property") or {}
    mortgage = graph.get("mortgage") or {}

    return CaseView(
        id=graph["id"],
        file_number=graph["file_number"],
        status=graph["status"],
        created_at=graph.get("created_at"),
        updated_at=graph.get("updated_at"),
        notes=graph.get("notes"),
        property=PropertyView(
            id=prop.get("id"),
            address=AddressView(
                street=prop.get("street") or "",
                city=prop.get("city") or "",
                province=prop.get("province") or "",
                postal_code=prop.get("postal_code") or "",
            ),
            pid=prop.get("pid") or "",
            legal_description=prop.get("legal_description") or "",
            property_type=prop.get("property_type") or "Residential",
        ),
        mortgage=MortgageView(
            id=mortgage.get("id"),
            registration_number=mortgage.get("registration_number"),
            principal=mortgage.get("principal"),
            interest_rate=mortgage.get("interest_rate"),
            start_date=mortgage.get("start_date"),
            current_balance=mortgage.get("current_balance"),
            per_diem_interest=mortgage.get("per_diem_interest") or 0,
        ),
        parties=[
            PartyView(
                id=party["id"],
                name=party["name"],
                type=party["type"],
                contact_info=ContactInfo(
                    email=party.get("email") or "",
                    phone=party.get("phone") or "",
                    address=party.get("address") or "",
                ),
            )
            for party in graph.get("parties") or []
        ],
        court=CourtView(
            file_number=graph.get("court_file_number") or "",
            registry=graph.get("court_registry") or "",
            hearing_date=graph.get("hearing_date") or None,
            judge_name=graph.get("judge_name") or "",
        ),
    )


async def fetch_case(case_id: str, *, entity_store: EntityStore) -> Optional[CaseView]:
    """
    Load one case with its property, mortgage and parties.

    Returns:
        The case view, or None when no case has this id

    Raises:
        RemoteReadError: the store could not be read
    """
    logger.debug(f"Fetching case data for ID: {case_id}")
    response = await run_in_threadpool(entity_store.load_case_graph, case_id)
    if response.error is not None:
        logger.error(f"Error fetching case {case_id}: {response.error.message}")
        raise RemoteReadError("Failed to fetch case data", cause=response.error)
    if response.data is None:
        logger.info(f"No case data found for ID: {case_id}")
        return None
    return build_case_view(response.data)


async def list_cases(
    *,
    entity_store: EntityStore,
    notifier: Notifier,
    status: Optional[CaseStatus] = None,
) -> List[Dict[str, Any]]:
    """Cases newest first, optionally filtered by status"""
    match = {"status": CaseStatus(status)} if status else {}
    response = await run_in_threadpool(
        entity_store.select, "cases", order_by="created_at", descending=True, **match
    )
    if response.error is not None:
        logger.error(f"Error listing cases: {response.error.message}")
        notifier.error("Failed to load cases")
        raise RemoteReadError("Failed to load cases", cause=response.error)
    return response.data


def validate_case_form(form: CaseForm) -> None:
    """
    Required-field checks, in the order the form reports them.

    Raises:
        ValidationFailed: with the message shown to the user
    """
    if not form.file_number.strip():
        raise ValidationFailed("File number is required.")
    if not form.street.strip() or not form.city.strip():
        raise ValidationFailed("Property street and city are required.")
    if (
        not form.registration_number.strip()
        or form.principal is None
        or form.interest_rate is None
        or not form.start_date
        or form.current_balance is None
    ):
        raise ValidationFailed("All mortgage information fields are required.")


def _reject(notifier: Notifier, message: str) -> None:
    notifier.error(message)
    raise ValidationFailed(message)


async def _insert_one(entity_store: EntityStore, table: str, row: Dict[str, Any], label: str) -> Dict[str, Any]:
    response = await run_in_threadpool(entity_store.insert, table, [row])
    if response.error is not None:
        raise RemoteUpdateError(f"Failed to create {label}: {response.error.message}", cause=response.error)
    return response.data[0]


async def _save_property_and_mortgage(form: CaseForm, entity_store: EntityStore) -> tuple:
    prop = await _insert_one(
        entity_store,
        "properties",
        {
            "street": form.street,
            "city": form.city,
            "province": form.province,
            "postal_code": form.postal_code,
            "property_type": form.property_type.value,
            "legal_description": form.legal_description,
            "pid": form.pid,
        },
        "property",
    )
    mortgage = await _insert_one(
        entity_store,
        "mortgages",
        {
            "registration_number": form.registration_number,
            "principal": form.principal,
            "interest_rate": form.interest_rate,
            "start_date": form.start_date,
            "current_balance": form.current_balance,
            "per_diem_interest": form.per_diem_interest or 0,
        },
        "mortgage",
    )
    return prop, mortgage


async def _checked_property_and_mortgage(form: CaseForm, entity_store: EntityStore, notifier: Notifier) -> tuple:
    try:
        validate_case_form(form)
    except ValidationFailed as exc:
        notifier.error(str(exc))
        raise

    try:
        return await _save_property_and_mortgage(form, entity_store)
    except RemoteUpdateError as exc:
        logger.error(f"An unexpected error occurred: {exc}")
        notifier.error(UNEXPECTED_ERROR_MESSAGE)
        raise


async def create_case(form: CaseForm, *, entity_store: EntityStore, notifier: Notifier) -> Dict[str, Any]:
    """
    Create property, mortgage, then the case itself with status New.

    Returns:
        The stored case row
    """
    prop, mortgage = await _checked_property_and_mortgage(form, entity_store, notifier)

    response = await run_in_threadpool(
        entity_store.insert,
        "cases",
        [{
            "file_number": form.file_number,
            "notes": form.notes,
            "mortgage_id": mortgage["id"],
            "property_id": prop["id"],
            "status": CaseStatus.NEW.value,
        }],
    )
    if response.error is not None:
        logger.error(f"Error creating case: {response.error.message}")
        notifier.error("Failed to create case.")
        raise RemoteUpdateError("Failed to create case.", cause=response.error)

    case = response.data[0]
    logger.info(f"Created case {case['id']} ({form.file_number})")
    notifier.success("Case created successfully!")
    return case


async def update_case(
    case_id: str,
    form: CaseForm,
    *,
    entity_store: EntityStore,
    notifier: Notifier,
) -> Dict[str, Any]:
    """
    Replace a case's property and mortgage records and update its fields.

    Returns:
        The updated case row
    """
    prop, mortgage = await _checked_property_and_mortgage(form, entity_store, notifier)

    response = await run_in_threadpool(
        entity_store.update,
        "cases",
        {
            "file_number": form.file_number,
            "notes": form.notes,
            "mortgage_id": mortgage["id"],
            "property_id": prop["id"],
        },
        id=case_id,
    )
    if response.error is not None or not response.data:
        error = response.error
        logger.error(f"Error updating case {case_id}: {error.message if error else 'no matching case'}")
        notifier.error("Failed to update case.")
        raise RemoteUpdateError("Failed to update case.", cause=error)

    notifier.success("Case updated successfully!")
    return response.data[0]


async def add_deadline(
    case_id: str,
    form: DeadlineCreate,
    *,
    entity_store: EntityStore,
    notifier: Notifier,
) -> Dict[str, Any]:
    if not form.title or not form.date:
        _reject(notifier, "Deadline title and date are required.")

    response = await run_in_threadpool(
        entity_store.insert,
        "deadlines",
        [{
            "title": form.title,
            "description": form.description,
            "date": form.date,
            "type": form.type.value,
            "case_id": case_id,
            "complete": False,
        }],
    )
    if response.error is not None:
        logger.error(f"Error adding deadline to case {case_id}: {response.error.message}")
        notifier.error("Failed to add deadline")
        raise RemoteUpdateError("Failed to add deadline", cause=response.error)

    notifier.success("Deadline added successfully")
    return response.data[0]


async def add_party(
    case_id: str,
    form: PartyForm,
    *,
    entity_store: EntityStore,
    notifier: Notifier,
) -> Dict[str, Any]:
    """
    Create a party, then link it to the case.

    A failed link leaves the party row in place and raises ``PartyLinkError``.
    """
    if not form.name:
        _reject(notifier, "Party name is required.")

    created = await run_in_threadpool(
        entity_store.insert,
        "parties",
        [{
            "name": form.name,
            "type": form.type.value,
            "email": form.email,
            "phone": form.phone,
            "address": form.address,
        }],
    )
    if created.error is not None:
        logger.error(f"Error adding party to case {case_id}: {created.error.message}")
        notifier.error("Failed to add party")
        raise RemoteUpdateError("Failed to add party", cause=created.error)

    party = created.data[0]
    linked = await run_in_threadpool(
        entity_store.insert, "case_parties", [{"case_id": case_id, "party_id": party["id"]}]
    )
    if linked.error is not None:
        logger.error(
            f"Error linking party {party['id']} to case {case_id}: {linked.error.message}; party left unlinked"
        )
        notifier.error("Failed to add party")
        raise PartyLinkError(party["id"], case_id, cause=linked.error)

    notifier.success("Party added successfully")
    return party


async def update_party(
    party_id: str,
    form: PartyForm,
    *,
    entity_store: EntityStore,
    notifier: Notifier,
) -> Dict[str, Any]:
    if not form.name:
        _reject(notifier, "Party name is required.")

    response = await run_in_threadpool(
        entity_store.update,
        "parties",
        {
            "name": form.name,
            "type": form.type.value,
            "email": form.email,
            "phone": form.phone,
            "address": form.address,
        },
        id=party_id,
    )
    if response.error is not None or not response.data:
        error = response.error
        logger.error(f"Error updating party {party_id}: {error.message if error else 'no matching party'}")
        notifier.error("Failed to update party")
        raise RemoteUpdateError("Failed to update party", cause=error)

    notifier.success("Party updated successfully")
    return response.data[0]


async def create_client(form: PartyForm, *, entity_store: EntityStore, notifier: Notifier) -> Dict[str, Any]:
    """A standalone party, not linked to any case"""
    if not form.name.strip():
        _reject(notifier, "Client name is required.")

    response = await run_in_threadpool(
        entity_store.insert,
        "parties",
        [{
            "name": form.name,
            "type": form.type.value,
            "email": form.email,
            "phone": form.phone,
            "address": form.address,
        }],
    )
    if response.error is not None:
        logger.error(f"Error creating client: {response.error.message}")
        notifier.error("Failed to create client")
        raise RemoteUpdateError("Failed to create client", cause=response.error)

    client = response.data[0]
    logger.info(f"Created client {client['id']} ({form.name})")
    notifier.success("Client created successfully")
    return client
