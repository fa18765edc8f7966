from datetime import datetime

import pytest

from casedesk.enums import DocumentType
from casedesk.errors import ValidationFailed
from casedesk.schemas import CaseView
from casedesk.services import case_service
from casedesk.services.document_generator import (
    build_case_document_pdf,
    document_filename,
    generate_and_save_document,
    render_template_text,
)

from conftest import FakeEntityStore, RecordingNotifier, run


def _view():
    return case_service.build_case_view(
        {
            "id": "c1",
            "file_number": "F-1001",
            "status": "Petition Filed",
            "created_at": "2024-03-04T10:00:00+00:00",
            "court_file_number": "Hfx No. 512345",
            "property": {"street": "12 Elm St", "city": "Halifax", "province": "NS", "postal_code": "B3H 1A1"},
            "mortgage": {"registration_number": "REG-77", "principal": 250000.0, "interest_rate": 4.5, "current_balance": 198000.5},
            "parties": [{"id": "p1", "name": "Jane Doe", "type": "Borrower"}],
        }
    )


def test_render_fills_case_placeholders():
    text = render_template_text(
        "Re: {case.file_number} at {property.address}, balance ${mortgage.balance} ({borrower.name}) {date} {unknown}",
        _view(),
        today=datetime(2025, 3, 4),
    )

    assert text == (
        "Re: F-1001 at 12 Elm St, Halifax, NS B3H 1A1, balance $198,000.50 (Jane Doe) March 4, 2025 {unknown}"
    )


def test_missing_values_render_as_not_available():
    view = CaseView(id="c2", file_number="F-2", status="New")
    assert render_template_text("{court.registry} / {property.address}", view) == "N/A / N/A"


def test_document_filename_collapses_whitespace():
    assert document_filename("  Demand   Letter final ") == "Demand_Letter_final.pdf"


def test_pdf_is_generated():
    pdf = build_case_document_pdf(_view(), DocumentType.DEMAND_LETTER, "Line one\nLine two " + "word " * 200)
    assert pdf.startswith(b"%PDF")


def test_generate_stores_pdf_and_registers_it(binary_store):
    store = FakeEntityStore()
    notifier = RecordingNotifier()

    stored = run(
        generate_and_save_document(
            _view(),
            "Demand Letter",
            DocumentType.DEMAND_LETTER,
            "Dear {borrower.name}",
            entity_store=store,
            binary_store=binary_store,
            notifier=notifier,
        )
    )

    assert stored["path"] == "c1/Demand_Letter.pdf"
    content, meta = binary_store.download("documents", "c1/Demand_Letter.pdf").data
    assert content.startswith(b"%PDF")
    assert meta["content_type"] == "application/pdf"
    (record,) = store.calls_for("insert", "documents")[0][2]
    assert record["type"] == "Demand Letter"
    assert notifier.of_kind("success")[-1] == "Document saved successfully!"


@pytest.mark.parametrize(
    "view, title, message",
    [
        (None, "Notice", "No case selected. Please select a case to save a document."),
        (_view(), "   ", "Please provide a document title."),
    ],
)
def test_generate_requires_case_and_title(binary_store, view, title, message):
    store = FakeEntityStore()
    notifier = RecordingNotifier()

    with pytest.raises(ValidationFailed):
        run(
            generate_and_save_document(
                view, title, DocumentType.OTHER, "", entity_store=store, binary_store=binary_store, notifier=notifier
            )
        )

    assert notifier.toasts == [("error", message)]
    assert store.calls == []


def test_generate_failure_is_toasted(binary_store):
    store = FakeEntityStore(failing={("insert", "documents")})
    notifier = RecordingNotifier()

    with pytest.raises(Exception):
        run(
            generate_and_save_document(
                _view(), "Notice", DocumentType.OTHER, "", entity_store=store, binary_store=binary_store, notifier=notifier
            )
        )

    assert notifier.of_kind("error")[-1] == "Failed to save document."


def test_document_filename_replaces_path_separators():
    assert document_filename("a/b") == "a_b.pdf"
    assert document_filename("Notice \\ Final / v2") == "Notice_Final_v2.pdf"


def test_generate_keeps_slashed_title_in_case_folder(binary_store):
    stored = run(
        generate_and_save_document(
            _view(), "a/b", DocumentType.OTHER, "", entity_store=FakeEntityStore(), binary_store=binary_store, notifier=RecordingNotifier()
        )
    )

    assert stored["path"] == "c1/a_b.pdf"
    assert not (binary_store.root / "documents" / "c1" / "a").exists()
