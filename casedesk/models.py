# casedesk/models.py
"""
SQLAlchemy models for the foreclosure case store
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Float, ForeignKey, Text, Boolean, Enum
from sqlalchemy.orm import relationship

from .database import Base
from .enums import CaseStatus, DocumentType, DocumentStatus, DeadlineType, PartyType, PropertyType


def new_id() -> str:
    return str(uuid.uuid4())


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _enum_column(enum_cls, name: str, **kwargs) -> Column:
    """Store the enum's value strings, reject anything else on flush"""
    return Column(
        Enum(
            enum_cls,
            name=name,
            values_callable=lambda members: [m.value for m in members],
            validate_strings=True,
        ),
        **kwargs,
    )


class Property(Base):
    __tablename__ = "properties"

    id = Column(String, primary_key=True, default=new_id)
    street = Column(String, default="")
    city = Column(String, default="")
    province = Column(String, default="")
    postal_code = Column(String, default="")
    property_type = _enum_column(PropertyType, "property_type", default=PropertyType.RESIDENTIAL)
    pid = Column(String, default="")
    legal_description = Column(Text, default="")


class Mortgage(Base):
    __tablename__ = "mortgages"

    id = Column(String, primary_key=True, default=new_id)
    registration_number = Column(String, nullable=False)
    principal = Column(Float, default=0.0)
    interest_rate = Column(Float, default=0.0)
    start_date = Column(String, default="")
    current_balance = Column(Float, default=0.0)
    per_diem_interest = Column(Float, default=0.0)


class Case(Base):
    __tablename__ = "cases"

    id = Column(String, primary_key=True, default=new_id)
    file_number = Column(String, nullable=False, index=True)
    status = _enum_column(CaseStatus, "case_status", default=CaseStatus.NEW, nullable=False, index=True)
    notes = Column(Text, nullable=True)

    property_id = Column(String, ForeignKey("properties.id"), nullable=True)
    mortgage_id = Column(String, ForeignKey("mortgages.id"), nullable=True)

    # Court block
    court_file_number = Column(String, nullable=True)
    court_registry = Column(String, nullable=True)
    hearing_date = Column(String, nullable=True)
    judge_name = Column(String, nullable=True)

    created_at = Column(String, default=utc_now_iso)
    updated_at = Column(String, default=utc_now_iso, onupdate=utc_now_iso)

    # Relationships
    property_record = relationship("Property")
    mortgage = relationship("Mortgage")
    case_parties = relationship("CaseParty", back_populates="case", cascade="all, delete-orphan")
    deadlines = relationship("Deadline", back_populates="case", cascade="all, delete-orphan")
    documents = relationship("Document", back_populates="case", cascade="all, delete-orphan")


class Party(Base):
    __tablename__ = "parties"

    id = Column(String, primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    type = _enum_column(PartyType, "party_type", nullable=False)
    email = Column(String, default="")
    phone = Column(String, default="")
    address = Column(String, default="")


class CaseParty(Base):
    __tablename__ = "case_parties"

    id = Column(String, primary_key=True, default=new_id)
    case_id = Column(String, ForeignKey("cases.id", ondelete="CASCADE"), nullable=False, index=True)
    party_id = Column(String, ForeignKey("parties.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(String, default=utc_now_iso)

    case = relationship("Case", back_populates="case_parties")
    party = relationship("Party")


class Deadline(Base):
    __tablename__ = "deadlines"

    id = Column(String, primary_key=True, default=new_id)
    case_id = Column(String, ForeignKey("cases.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    date = Column(String, nullable=False)
    type = _enum_column(DeadlineType, "deadline_type", nullable=False)
    complete = Column(Boolean, default=False)
    created_at = Column(String, default=utc_now_iso)

    case = relationship("Case", back_populates="deadlines")


class Document(Base):
    """
    Metadata row for a stored binary.
    ``url`` holds the storage path inside the documents bucket.
    """
    __tablename__ = "documents"

    id = Column(String, primary_key=True, default=new_id)
    case_id = Column(String, ForeignKey("cases.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String, nullable=False)
    type = _enum_column(DocumentType, "document_type", nullable=False)
    status = _enum_column(DocumentStatus, "document_status", default=DocumentStatus.DRAFT, nullable=False)
    url = Column(String, nullable=True)
    content = Column(Text, nullable=True)
    created_at = Column(String, default=utc_now_iso, index=True)
    updated_at = Column(String, default=utc_now_iso, onupdate=utc_now_iso)

    case = relationship("Case", back_populates="documents")

    def __repr__(self):
        return f"<Document {self.id}: case={self.case_id}, title={self.title}, status={self.status}>"
