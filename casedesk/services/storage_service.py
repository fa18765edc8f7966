# casedesk/services/storage_service.py
"""
Binary Storage - bucket-scoped file storage for case documents
- Path-scoped uploads with cache-control and overwrite policy
- Sidecar metadata (size, checksum, content type, cache control)
- Signed, expiring download tokens (JWT, HS256)
"""

from __future__ import annotations

import hashlib
import json
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple
from urllib.parse import quote

import jwt

from casedesk.errors import SignedUrlError, StoreError
from casedesk.models import utc_now_iso
from casedesk.services.entity_store import StoreResponse

logger = logging.getLogger("casedesk.storage")

_META_SUFFIX = ".meta.json"
TOKEN_ALGORITHM = "HS256"


class FileStorage:
    """
    File-system binary store.

    Each bucket is a directory under ``root``; an object lives at
    ``<root>/<bucket>/<path>`` with metadata in ``<path>.meta.json`` beside it.
    """

    def __init__(self, root: str | Path, secret_key: str, buckets: Iterable[str] = ()) -> None:
        self._root = Path(root)
        self._root.mkdir(parents=True, exist_ok=True)
        self._secret = secret_key
        for bucket in buckets:
            (self._root / bucket).mkdir(parents=True, exist_ok=True)

    @property
    def root(self) -> Path:
        return self._root

    # ---------------- Paths ---------------- #

    def _bucket_dir(self, bucket: str) -> Optional[Path]:
        candidate = self._root / bucket
        if not bucket or "/" in bucket or bucket.startswith(".") or not candidate.is_dir():
            return None
        return candidate

    def _resolve(self, bucket: str, path: str) -> Path:
        """Resolve an object path and ensure it stays inside the bucket"""
        bucket_dir = self._bucket_dir(bucket)
        if bucket_dir is None:
            raise StoreError(f"Bucket not found: {bucket}", code="bucket_not_found")
        if not path or path.endswith(_META_SUFFIX) or any(not part.strip(".") for part in path.split("/")):
            raise StoreError(f"Invalid object path: {path!r}", code="invalid_path")
        base = bucket_dir.resolve()
        candidate = (bucket_dir / path).resolve()
        try:
            candidate.relative_to(base)
        except ValueError:
            raise StoreError(f"Invalid object path: {path!r}", code="invalid_path") from None
        return candidate

    @staticmethod
    def _meta_path(target: Path) -> Path:
        return target.with_name(target.name + _META_SUFFIX)

    # ---------------- Buckets ---------------- #

    def list_buckets(self) -> StoreResponse:
        buckets = [
            {"name": entry.name}
            for entry in sorted(self._root.iterdir())
            if entry.is_dir() and not entry.name.startswith(".")
        ]
        return StoreResponse(data=buckets)

    # ---------------- Objects ---------------- #

    def upload(
        self,
        bucket: str,
        path: str,
        content: bytes,
        *,
        cache_control: str = "3600",
        upsert: bool = False,
        content_type: str = "application/octet-stream",
    ) -> StoreResponse:
        """
        Write ``content`` at ``bucket/path``.

        With ``upsert=False`` an existing object is a ``duplicate`` error and
        is left untouched.
        """
        try:
            target = self._resolve(bucket, path)
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(target, "wb" if upsert else "xb") as fh:
                fh.write(content)
            meta = {
                "size": len(content),
                "sha256": hashlib.sha256(content).hexdigest(),
                "content_type": content_type,
                "cache_control": cache_control,
                "created_at": utc_now_iso(),
            }
            self._meta_path(target).write_text(json.dumps(meta), encoding="utf-8")
        except StoreError as exc:
            logger.error(f"Upload to {bucket}/{path} rejected: {exc.message}")
            return StoreResponse(error=exc)
        except FileExistsError:
            logger.warning(f"Upload to {bucket}/{path} rejected: object already exists")
            return StoreResponse(error=StoreError("The resource already exists", code="duplicate"))
        except OSError as exc:
            logger.error(f"Upload to {bucket}/{path} failed: {exc}")
            return StoreResponse(error=StoreError(f"Failed to write object: {exc}", code="io_error"))

        logger.info(f"Stored {bucket}/{path} ({len(content)} bytes)")
        return StoreResponse(data={"path": path, "full_path": f"{bucket}/{path}"})

    def exists(self, bucket: str, path: str) -> bool:
        try:
            return self._resolve(bucket, path).is_file()
        except StoreError:
            return False

    def download(self, bucket: str, path: str) -> StoreResponse:
        """data is ``(content, metadata)``"""
        try:
            target = self._resolve(bucket, path)
            content = target.read_bytes()
        except StoreError as exc:
            return StoreResponse(error=exc)
        except FileNotFoundError:
            return StoreResponse(error=StoreError(f"Object not found: {bucket}/{path}", code="not_found"))
        except OSError as exc:
            return StoreResponse(error=StoreError(f"Failed to read object: {exc}", code="io_error"))

        meta: Dict[str, Any] = {}
        meta_path = self._meta_path(target)
        if meta_path.exists():
            try:
                meta = json.loads(meta_path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as exc:
                logger.warning(f"Unreadable metadata for {bucket}/{path}: {exc}")
        return StoreResponse(data=(content, meta))

    # ---------------- Signed URLs ---------------- #

    def create_signed_url(self, bucket: str, path: str, expires_in: int) -> StoreResponse:
        """A download URL for an existing object, valid for ``expires_in`` seconds"""
        if not self.exists(bucket, path):
            return StoreResponse(error=StoreError(f"Object not found: {bucket}/{path}", code="not_found"))

        expires_at = datetime.now(timezone.utc) + timedelta(seconds=int(expires_in))
        payload = {"b": bucket, "p": path, "exp": expires_at}
        token = jwt.encode(payload, self._secret, algorithm=TOKEN_ALGORITHM)
        signed_url = f"/storage/{quote(bucket)}/{quote(path)}?token={token}"
        return StoreResponse(
            data={"signed_url": signed_url, "token": token, "expires_at": int(expires_at.timestamp())}
        )

    def verify_token(self, token: str) -> Tuple[str, str]:
        """
        Return ``(bucket, path)`` for a valid token.

        Raises:
            SignedUrlError: malformed, tampered or expired token
        """
        try:
            claims = jwt.decode(token or "", self._secret, algorithms=[TOKEN_ALGORITHM])
        except jwt.ExpiredSignatureError:
            raise SignedUrlError("Token expired") from None
        except jwt.InvalidTokenError:
            raise SignedUrlError("Invalid token") from None

        bucket, path = claims.get("b"), claims.get("p")
        if not isinstance(bucket, str) or not isinstance(path, str):
            raise SignedUrlError("Invalid token")
        return bucket, path
