from __future__ import annotations

import io
import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from casedesk.enums import DocumentType
from casedesk.errors import ValidationFailed
from casedesk.schemas import CaseView
from casedesk.services.document_service import upload_document
from casedesk.services.entity_store import EntityStore
from casedesk.services.storage_service import FileStorage
from casedesk.services.toast_service import Notifier

logger = logging.getLogger("casedesk.documents")

NOT_AVAILABLE = "N/A"


# ---------------- Formatting helpers ---------------- #

def _long_date(raw: Optional[str]) -> str:
    """ISO date/datetime string -> 'March 4, 2025'"""
    if not raw:
        return NOT_AVAILABLE
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return raw
    return f"{parsed.strftime('%B')} {parsed.day}, {parsed.year}"


def _amount(raw: Optional[float]) -> str:
    return f"{float(raw or 0):,.2f}"


def _property_address(view: CaseView) -> str:
    addr = view.property.address
    if not addr.street and not addr.city:
        return NOT_AVAILABLE
    return f"{addr.street}, {addr.city}, {addr.province} {addr.postal_code}".strip()


def template_replacements(view: CaseView, today: Optional[datetime] = None) -> Dict[str, str]:
    today = today or datetime.now()
    mortgage = view.mortgage
    court = view.court

    replacements = {
        "{date}": f"{today.strftime('%B')} {today.day}, {today.year}",
        "{property.address}": _property_address(view),
        "{mortgage.number}": mortgage.registration_number or NOT_AVAILABLE,
        "{mortgage.balance}": _amount(mortgage.current_balance),
        "{mortgage.principal}": _amount(mortgage.principal),
        "{mortgage.per_diem}": f"{float(mortgage.per_diem_interest or 0):.2f}",
        "{mortgage.interest_rate}": f"{mortgage.interest_rate or 0}%",
        "{court.file_number}": court.file_number or NOT_AVAILABLE,
        "{court.registry}": court.registry or NOT_AVAILABLE,
        "{court.hearing_date}": _long_date(court.hearing_date),
        "{court.judge_name}": court.judge_name or NOT_AVAILABLE,
        "{case.file_number}": view.file_number or NOT_AVAILABLE,
        "{case.status}": view.status.value if view.status else NOT_AVAILABLE,
        "{case.created_at}": _long_date(view.created_at),
    }
    for party in view.parties:
        replacements.setdefault(f"{{{party.type.value.lower()}.name}}", party.name)
    return replacements


def render_template_text(template: str, view: CaseView, today: Optional[datetime] = None) -> str:
    """Fill ``{placeholder}`` variables from the case; unknown placeholders are left as-is"""
    rendered = template
    for placeholder, value in template_replacements(view, today).items():
        rendered = rendered.replace(placeholder, value)
    return rendered


def document_filename(title: str) -> str:
    stem = re.sub(r"[\s/\\]+", "_", title.strip())
    return f"{stem}.pdf"


# ---------------- PDF layout ---------------- #

def _wrap_text(c: canvas.Canvas, text: str, max_width: float, font_name: str, font_size: int) -> List[str]:
    if not text:
        return [""]
    words = text.split()
    lines: List[str] = []
    current = ""
    for w in words:
        if not current:
            current = w
            continue
        test = f"{current} {w}"
        if c.stringWidth(test, font_name, font_size) <= max_width:
            current = test
        else:
            lines.append(current)
            current = w
    if current:
        lines.append(current)
    return lines


class SimpleLayout:
    """Keeps line spacing and page breaks consistent on a letter page"""

    def __init__(self, c: canvas.Canvas, page_size=letter, margin_x: int = 50, margin_bottom: int = 50):
        self.c = c
        self.width, self.height = page_size
        self.margin_x = margin_x
        self.margin_bottom = margin_bottom
        self.y = self.height - 50

    def _ensure_space(self, needed: float = 18):
        if self.y - needed < self.margin_bottom:
            self.c.showPage()
            self.y = self.height - 50

    def line(self, text: str = "", size: int = 11, bold: bool = False, leading: int = 15):
        max_width = self.width - self.margin_x * 2
        font = "Helvetica-Bold" if bold else "Helvetica"
        for ln in _wrap_text(self.c, text or "", max_width, font, size):
            self._ensure_space(leading + 2)
            self.c.setFont(font, size)
            self.c.drawString(self.margin_x, self.y, ln)
            self.y -= leading

    def paragraph(self, text: str, size: int = 11):
        for raw_line in (text or "").splitlines() or [""]:
            self.line(raw_line, size=size)


def build_case_document_pdf(view: CaseView, document_type: DocumentType, body: str = "") -> bytes:
    """
    Case document: type header, case and property lines, parties, mortgage, then the body.
    """
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    layout = SimpleLayout(c)

    layout.line(f"Document Type: {DocumentType(document_type).value}", size=18, bold=True, leading=26)
    layout.line(f"Case File Number: {view.file_number}")
    layout.line(f"Property Address: {view.property.address.street}, {view.property.address.city}")

    for party in view.parties:
        layout.line(f"{party.type.value}: {party.name}")

    layout.line(f"Mortgage Registration Number: {view.mortgage.registration_number or NOT_AVAILABLE}")
    layout.line(f"Principal Amount: {view.mortgage.principal if view.mortgage.principal is not None else NOT_AVAILABLE}")

    if body:
        layout.line("")
        layout.paragraph(body)

    c.showPage()
    c.save()
    return buf.getvalue()


async def generate_and_save_document(
    view: Optional[CaseView],
    title: str,
    document_type: DocumentType,
    template: str,
    *,
    entity_store: EntityStore,
    binary_store: FileStorage,
    notifier: Notifier,
) -> Dict[str, Any]:
    """
    Render the template against the case, build the PDF and store it with
    the two-phase upload.

    Returns:
        The storage result of the upload
    """
    if view is None:
        notifier.error("No case selected. Please select a case to save a document.")
        raise ValidationFailed("No case selected")
    if not title or not title.strip():
        notifier.error("Please provide a document title.")
        raise ValidationFailed("Document title is required")

    filename = document_filename(title)
    try:
        content = build_case_document_pdf(view, document_type, render_template_text(template, view))
        stored = await upload_document(
            view.id,
            content,
            filename,
            document_type,
            entity_store=entity_store,
            binary_store=binary_store,
            notifier=notifier,
            content_type="application/pdf",
        )
    except Exception as exc:
        logger.error(f"Error saving document {filename} for case {view.id}: {exc}")
        notifier.error("Failed to save document.")
        raise

    notifier.success("Document saved successfully!")
    return stored
