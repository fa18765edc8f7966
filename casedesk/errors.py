"""Typed errors for casedesk."""

from typing import Optional


class CaseDeskError(Exception):
    """Base exception for all casedesk errors."""


class StoreError(CaseDeskError):
    """Error half of a store result-or-error pair."""

    def __init__(self, message: str, code: str = "store_error") -> None:
        self.message = message
        self.code = code
        super().__init__(message)


class ValidationFailed(CaseDeskError):
    """Raised when required form fields are missing."""


class ControlBusyError(CaseDeskError):
    """Raised when a control receives a change while its update is in flight."""

    def __init__(self, case_id: str) -> None:
        self.case_id = case_id
        super().__init__(f"An update for case {case_id} is already in progress")


class RemoteUpdateError(CaseDeskError):
    """Raised when the entity store rejects a write or cannot be reached."""

    def __init__(self, message: str, cause: Optional[StoreError] = None) -> None:
        self.cause = cause
        super().__init__(message)


class RemoteReadError(CaseDeskError):
    """Raised when a read from the entity store fails."""

    def __init__(self, message: str, cause: Optional[StoreError] = None) -> None:
        self.cause = cause
        super().__init__(message)


class StorageNotConfiguredError(CaseDeskError):
    """Raised when the documents bucket does not exist."""

    def __init__(self, bucket: str) -> None:
        self.bucket = bucket
        super().__init__(f"Bucket {bucket!r} doesn't exist")


class BinaryWriteError(CaseDeskError):
    """Raised when the binary store rejects an upload."""

    def __init__(self, path: str, cause: Optional[StoreError] = None) -> None:
        self.path = path
        self.cause = cause
        detail = cause.message if cause is not None else "no path returned"
        super().__init__(f"Upload to {path} failed: {detail}")

    @property
    def is_collision(self) -> bool:
        return self.cause is not None and self.cause.code == "duplicate"


class MetadataInsertError(CaseDeskError):
    """
    Raised when the metadata insert fails after the binary write succeeded.

    The binary at ``orphan_path`` stays in the store with nothing referencing it.
    """

    def __init__(self, orphan_path: str, cause: Optional[StoreError] = None) -> None:
        self.orphan_path = orphan_path
        self.cause = cause
        detail = cause.message if cause is not None else "unknown error"
        super().__init__(f"Stored {orphan_path} but failed to register it: {detail}")


class PartyLinkError(CaseDeskError):
    """Raised when a party was created but linking it to the case failed."""

    def __init__(self, party_id: str, case_id: str, cause: Optional[StoreError] = None) -> None:
        self.party_id = party_id
        self.case_id = case_id
        self.cause = cause
        super().__init__(f"Party {party_id} created but not linked to case {case_id}")


class SignedUrlError(CaseDeskError):
    """Raised when a signed download token is malformed, tampered with or expired."""
