"""Exception types shared by the store, the grading engine and the API layer."""

from __future__ import annotations


class SchoolHubError(Exception):
    """Base class for all application errors."""


# ── Persistence ────────────────────────────────────────────

class StorageError(SchoolHubError):
    """The persistence medium failed."""


class StorageWriteError(StorageError):
    """The medium refused a write; the previous value is still in place."""


class StorageQuotaExceeded(StorageWriteError):
    """The write would take the medium past its capacity."""

    def __init__(self, key: str, needed: int, quota: int) -> None:
        super().__init__(f"storage quota exceeded writing {key!r} ({needed} > {quota} bytes)")
        self.key = key
        self.needed = needed
        self.quota = quota


# ── Records ────────────────────────────────────────────────

class ValidationError(SchoolHubError, ValueError):
    """A record or partial update does not match its entity shape."""


class DuplicateEmailError(ValidationError):
    def __init__(self, email: str) -> None:
        super().__init__(f"a user with email {email!r} already exists")
        self.email = email


class NotFoundError(SchoolHubError, LookupError):
    """A service-level operation needs an entity that does not exist."""

    def __init__(self, kind: str, entity_id: str) -> None:
        super().__init__(f"{kind} {entity_id!r} not found")
        self.kind = kind
        self.entity_id = entity_id


# ── Quiz attempts ──────────────────────────────────────────

class AttemptClosedError(SchoolHubError):
    """The attempt is submitted (or its time is up) and no longer takes answers."""
