# casedesk/enums.py
"""
Enumerations shared by the ORM models, the request schemas and the templates.

Each enum's values are the exact strings stored in the entity store, so the
option list rendered in the UI and the set accepted by validation cannot drift.
"""

from enum import Enum
from typing import List


class _ValueEnum(str, Enum):

    def __str__(self) -> str:
        return self.value

    @classmethod
    def values(cls) -> List[str]:
        return [member.value for member in cls]


class CaseStatus(_ValueEnum):
    """Foreclosure case lifecycle, in procedural order"""
    NEW = "New"
    DEMAND_LETTER_SENT = "Demand Letter Sent"
    PETITION_FILED = "Petition Filed"
    ORDER_NISI_GRANTED = "Order Nisi Granted"
    REDEMPTION_PERIOD = "Redemption Period"
    SALE_PROCESS = "Sale Process"
    CLOSED = "Closed"


class DocumentType(_ValueEnum):
    """Document type categories"""
    DEMAND_LETTER = "Demand Letter"
    PETITION = "Petition"
    AFFIDAVIT = "Affidavit"
    ORDER_NISI = "Order Nisi"
    CONDUCT_OF_SALE = "Conduct of Sale"
    FINAL_ORDER = "Final Order"
    OTHER = "Other"

    @classmethod
    def from_string(cls, value: str) -> "DocumentType":
        """Convert string to DocumentType, unknown values map to OTHER"""
        try:
            return cls(value)
        except ValueError:
            return cls.OTHER


class DocumentStatus(_ValueEnum):
    DRAFT = "Draft"
    FINALIZED = "Finalized"
    FILED = "Filed"
    SERVED = "Served"


class DeadlineType(_ValueEnum):
    STATUTORY = "Statutory"
    COURT = "Court"
    INTERNAL = "Internal"
    CLIENT = "Client"


class PartyType(_ValueEnum):
    BORROWER = "Borrower"
    LENDER = "Lender"
    THIRD_PARTY = "ThirdParty"
    LAWYER = "Lawyer"
    CLIENT = "Client"


class PropertyType(_ValueEnum):
    RESIDENTIAL = "Residential"
    COMMERCIAL = "Commercial"
    LAND = "Land"
    OTHER = "Other"
