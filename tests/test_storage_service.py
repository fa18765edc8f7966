import jwt
import pytest

from casedesk.errors import SignedUrlError
from casedesk.services.storage_service import FileStorage


def test_lists_configured_buckets(binary_store):
    names = [entry["name"] for entry in binary_store.list_buckets().data]
    assert names == ["documents"]


def test_upload_writes_object_and_metadata(binary_store):
    result = binary_store.upload("documents", "c1/notice.pdf", b"abc", cache_control="3600", content_type="application/pdf")

    assert result.ok
    assert result.data == {"path": "c1/notice.pdf", "full_path": "documents/c1/notice.pdf"}

    content, meta = binary_store.download("documents", "c1/notice.pdf").data
    assert content == b"abc"
    assert meta["size"] == 3
    assert meta["cache_control"] == "3600"
    assert meta["content_type"] == "application/pdf"


def test_duplicate_upload_is_rejected_without_overwrite(binary_store):
    binary_store.upload("documents", "c1/notice.pdf", b"first")

    result = binary_store.upload("documents", "c1/notice.pdf", b"second")

    assert result.error.code == "duplicate"
    assert binary_store.download("documents", "c1/notice.pdf").data[0] == b"first"


def test_upsert_replaces_existing_object(binary_store):
    binary_store.upload("documents", "c1/notice.pdf", b"first")

    result = binary_store.upload("documents", "c1/notice.pdf", b"second", upsert=True)

    assert result.ok
    assert binary_store.download("documents", "c1/notice.pdf").data[0] == b"second"


def test_unknown_bucket(binary_store):
    result = binary_store.upload("archive", "c1/notice.pdf", b"abc")
    assert result.error.code == "bucket_not_found"


@pytest.mark.parametrize("path", ["../escape.pdf", "c1/../../escape.pdf", "", "c1/"])
def test_paths_outside_bucket_are_invalid(binary_store, path):
    result = binary_store.upload("documents", path, b"abc")
    assert result.error.code == "invalid_path"


def test_download_missing_object(binary_store):
    assert binary_store.download("documents", "c1/none.pdf").error.code == "not_found"


def test_signed_url_round_trip(binary_store):
    binary_store.upload("documents", "c1/notice.pdf", b"abc")

    signed = binary_store.create_signed_url("documents", "c1/notice.pdf", 60).data

    assert signed["signed_url"] == f"/storage/documents/c1/notice.pdf?token={signed['token']}"
    assert binary_store.verify_token(signed["token"]) == ("documents", "c1/notice.pdf")
def test_signed_url_requires_existing_object(binary_store):
    assert binary_store.create_signed_url("documents", "c1/none.pdf", 60).error.code == "not_found"


def test_token_carries_bucket_path_and_expiry(binary_store):
    binary_store.upload("documents", "c1/notice.pdf", b"abc")
    signed = binary_store.create_signed_url("documents", "c1/notice.pdf", 60).data

    claims = jwt.decode(signed["token"], options={"verify_signature": False})

    assert claims["b"] == "documents"
    assert claims["p"] == "c1/notice.pdf"
    assert claims["exp"] == signed["expires_at"]


def test_expired_token_is_rejected(binary_store):
    binary_store.upload("documents", "c1/notice.pdf", b"abc")
    token = binary_store.create_signed_url("documents", "c1/notice.pdf", -5).data["token"]

    with pytest.raises(SignedUrlError, match="expired"):
        binary_store.verify_token(token)


def test_tampered_token_is_rejected(binary_store):
    binary_store.upload("documents", "c1/notice.pdf", b"abc")
    token = binary_store.create_signed_url("documents", "c1/notice.pdf", 60).data["token"]
    header, payload, signature = token.split(".")

    with pytest.raises(SignedUrlError):
        binary_store.verify_token(f"{header}.{payload}.{'A' * len(signature)}")
    with pytest.raises(SignedUrlError):
        binary_store.verify_token("not-a-token")
    with pytest.raises(SignedUrlError):
        binary_store.verify_token("")


def test_token_from_another_secret_is_rejected(binary_store, tmp_path):
    other = FileStorage(tmp_path / "other", "another-secret-key-for-signing-urls", buckets=["documents"])
    other.upload("documents", "c1/notice.pdf", b"abc")
    token = other.create_signed_url("documents", "c1/notice.pdf", 60).data["token"]

    with pytest.raises(SignedUrlError):
        binary_store.verify_token(token)


@pytest.mark.parametrize("path", ["c1/.", "c1/..", "c1/...", ".", "c1//notice.pdf"])
def test_dot_only_segments_are_invalid(binary_store, path):
    result = binary_store.upload("documents", path, b"abc")

    assert result.error.code == "invalid_path"
    assert not (binary_store.root / "documents" / "c1").is_file()
