# casedesk/schemas.py
"""Pydantic schemas for request bodies and the nested case view."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from casedesk.enums import CaseStatus, DeadlineType, DocumentType, PartyType, PropertyType


# ---------------- Requests ---------------- #

class StatusUpdate(BaseModel):
    status: CaseStatus


class CaseForm(BaseModel):
    file_number: str = ""
    notes: Optional[str] = None

    # Property
    street: str = ""
    city: str = ""
    province: str = ""
    postal_code: str = ""
    property_type: PropertyType = PropertyType.RESIDENTIAL
    legal_description: str = ""
    pid: str = ""

    # Mortgage
    registration_number: str = ""
    principal: Optional[float] = None
    interest_rate: Optional[float] = None
    start_date: Optional[str] = None
    current_balance: Optional[float] = None
    per_diem_interest: Optional[float] = None


class DeadlineCreate(BaseModel):
    title: str = ""
    description: str = ""
    date: Optional[str] = None
    type: DeadlineType = DeadlineType.INTERNAL


class PartyForm(BaseModel):
    name: str = ""
    type: PartyType = PartyType.BORROWER
    email: str = ""
    phone: str = ""
    address: str = ""


class GenerateDocumentRequest(BaseModel):
    title: str = ""
    document_type: DocumentType = DocumentType.OTHER
    template: str = ""


# ---------------- Case view ---------------- #

class AddressView(BaseModel):
    street: str = ""
    city: str = ""
    province: str = ""
    postal_code: str = ""


class PropertyView(BaseModel):
    id: Optional[str] = None
    address: AddressView = Field(default_factory=AddressView)
    pid: str = ""
    legal_description: str = ""
    property_type: PropertyType = PropertyType.RESIDENTIAL


class MortgageView(BaseModel):
    id: Optional[str] = None
    registration_number: Optional[str] = None
    principal: Optional[float] = None
    interest_rate: Optional[float] = None
    start_date: Optional[str] = None
    current_balance: Optional[float] = None
    per_diem_interest: float = 0.0


class ContactInfo(BaseModel):
    email: str = ""
    phone: str = ""
    address: str = ""


class PartyView(BaseModel):
    id: str
    name: str
    type: PartyType
    contact_info: ContactInfo = Field(default_factory=ContactInfo)


class CourtView(BaseModel):
    file_number: str = ""
    registry: str = ""
    hearing_date: Optional[str] = None
    judge_name: str = ""


class CaseView(BaseModel):
    """A case as the UI consumes it: property, mortgage and parties nested in"""
    id: str
    file_number: str
    status: CaseStatus
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    notes: Optional[str] = None
    property: PropertyView = Field(default_factory=PropertyView)
    mortgage: MortgageView = Field(default_factory=MortgageView)
    parties: List[PartyView] = Field(default_factory=list)
    court: CourtView = Field(default_factory=CourtView)
