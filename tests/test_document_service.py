import pytest

from casedesk.enums import DocumentType
from casedesk.errors import (
    BinaryWriteError,
    MetadataInsertError,
    RemoteReadError,
    StorageNotConfiguredError,
    StoreError,
    ValidationFailed,
)
from casedesk.services.document_service import (
    UPLOAD_FAILED_MESSAGE,
    UPLOAD_SUCCESS_MESSAGE,
    document_path,
    get_document,
    get_document_download_url,
    get_documents_by_case,
    upload_document,
)
from casedesk.services.entity_store import StoreResponse
from casedesk.services.storage_service import FileStorage

from conftest import FakeEntityStore, RecordingNotifier, run

PDF_BYTES = b"%PDF-1.4 notice"


def _upload(entity_store, binary_store, notifier, filename="notice.pdf", case_id="c1"):
    return run(
        upload_document(
            case_id,
            PDF_BYTES,
            filename,
            DocumentType.DEMAND_LETTER,
            entity_store=entity_store,
            binary_store=binary_store,
            notifier=notifier,
        )
    )


def test_document_path_is_case_scoped():
    assert document_path("c1", "notice.pdf") == "c1/notice.pdf"


def test_upload_stores_binary_then_registers_metadata(binary_store):
    store = FakeEntityStore()
    notifier = RecordingNotifier()

    result = _upload(store, binary_store, notifier)

    assert result["path"] == "c1/notice.pdf"
    assert binary_store.exists("documents", "c1/notice.pdf")

    inserts = store.calls_for("insert", "documents")
    assert len(inserts) == 1
    (record,) = inserts[0][2]
    assert record["case_id"] == "c1"
    assert record["title"] == "notice.pdf"
    assert record["type"] == "Demand Letter"
    assert record["status"] == "Finalized"
    assert record["url"] == result["path"]
    assert record["created_at"]
    assert notifier.toasts == [("success", UPLOAD_SUCCESS_MESSAGE)]


def test_binary_write_failure_skips_metadata_insert(binary_store):
    store = FakeEntityStore()
    _upload(store, binary_store, RecordingNotifier())
    notifier = RecordingNotifier()

    with pytest.raises(BinaryWriteError) as excinfo:
        _upload(store, binary_store, notifier)

    assert excinfo.value.is_collision
    assert len(store.calls_for("insert", "documents")) == 1
    assert notifier.toasts == [("error", UPLOAD_FAILED_MESSAGE)]


def test_existing_binary_is_not_overwritten(binary_store):
    binary_store.upload("documents", "c1/notice.pdf", b"original")

    with pytest.raises(BinaryWriteError):
        _upload(FakeEntityStore(), binary_store, RecordingNotifier())

    content, _ = binary_store.download("documents", "c1/notice.pdf").data
    assert content == b"original"


def test_metadata_insert_failure_leaves_orphaned_binary(binary_store):
    store = FakeEntityStore(failing={("insert", "documents")})
    notifier = RecordingNotifier()

    with pytest.raises(MetadataInsertError) as excinfo:
        _upload(store, binary_store, notifier)

    assert excinfo.value.orphan_path == "c1/notice.pdf"
    assert binary_store.exists("documents", "c1/notice.pdf")
    assert notifier.toasts == [("error", UPLOAD_FAILED_MESSAGE)]


def test_missing_bucket_aborts_before_any_write(tmp_path):
    bare_store = FileStorage(tmp_path / "empty", "secret")
    store = FakeEntityStore()
    notifier = RecordingNotifier()

    with pytest.raises(StorageNotConfiguredError):
        _upload(store, bare_store, notifier)

    assert store.calls == []
    assert notifier.of_kind("error") == ["Storage not configured properly. Please contact support."]


def test_upload_registers_row_in_real_store(entity_store, binary_store, notifier, seed_case):
    case_id = seed_case()

    _upload(entity_store, binary_store, notifier, case_id=case_id)

    rows = entity_store.select("documents", case_id=case_id).data
    assert len(rows) == 1
    assert rows[0]["url"] == f"{case_id}/notice.pdf"
    assert rows[0]["status"] == "Finalized"


def test_documents_by_case_newest_first(entity_store, notifier, seed_case):
    case_id = seed_case()
    entity_store.insert(
        "documents",
        [
            {"case_id": case_id, "title": "old.pdf", "type": "Petition", "status": "Draft", "created_at": "2024-01-01T00:00:00+00:00"},
            {"case_id": case_id, "title": "new.pdf", "type": "Affidavit", "status": "Filed", "created_at": "2024-06-01T00:00:00+00:00"},
        ],
    )

    documents = run(get_documents_by_case(case_id, entity_store=entity_store, notifier=notifier))

    assert [doc["title"] for doc in documents] == ["new.pdf", "old.pdf"]
    assert notifier.toasts == []


def test_documents_by_case_failure_is_toasted():
    notifier = RecordingNotifier()

    with pytest.raises(RemoteReadError):
        run(get_documents_by_case("c1", entity_store=FakeEntityStore(failing={"select"}), notifier=notifier))

    assert notifier.toasts == [("error", "Failed to load documents")]


def test_download_url_is_signed_for_existing_document(binary_store, notifier):
    binary_store.upload("documents", "c1/notice.pdf", PDF_BYTES)

    url = run(get_document_download_url("c1/notice.pdf", binary_store=binary_store, notifier=notifier))

    assert url.startswith("/storage/documents/c1/notice.pdf?token=")
    token = url.split("token=", 1)[1]
    assert binary_store.verify_token(token) == ("documents", "c1/notice.pdf")


def test_download_url_for_missing_document_fails(binary_store, notifier):
    with pytest.raises(StoreError):
        run(get_document_download_url("c1/missing.pdf", binary_store=binary_store, notifier=notifier))

    assert notifier.toasts == [("error", "Failed to generate download link")]


@pytest.mark.parametrize("filename", [".", "..", "...", "  ", "c2/notice.pdf", "..\\notice.pdf"])
def test_non_plain_filenames_are_rejected_before_any_write(binary_store, filename):
    store = FakeEntityStore()
    notifier = RecordingNotifier()

    with pytest.raises(ValidationFailed):
        _upload(store, binary_store, notifier, filename=filename)

    assert store.calls == []
    assert not (binary_store.root / "documents" / "c1").exists()
    assert notifier.toasts == [("error", UPLOAD_FAILED_MESSAGE)]


def test_dot_filename_does_not_block_later_uploads(binary_store):
    with pytest.raises(ValidationFailed):
        _upload(FakeEntityStore(), binary_store, RecordingNotifier(), filename=".")

    result = _upload(FakeEntityStore(), binary_store, RecordingNotifier())

    assert result["path"] == "c1/notice.pdf"


def test_get_document_by_id(entity_store, notifier, seed_case):
    case_id = seed_case()
    row = entity_store.insert(
        "documents", {"case_id": case_id, "title": "notice.pdf", "type": "Demand Letter", "status": "Draft"}
    ).data[0]

    document = run(get_document(row["id"], entity_store=entity_store, notifier=notifier))

    assert document["title"] == "notice.pdf"
    assert document["case_id"] == case_id
    assert run(get_document("missing", entity_store=entity_store, notifier=notifier)) is None
    assert notifier.toasts == []


def test_get_document_failure_is_toasted():
    class BrokenStore:
        def get(self, table, record_id):
            return StoreResponse(error=StoreError("connection refused", code="db_error"))

    notifier = RecordingNotifier()

    with pytest.raises(RemoteReadError):
        run(get_document("d1", entity_store=BrokenStore(), notifier=notifier))

    assert notifier.toasts == [("error", "Could not load document")]
