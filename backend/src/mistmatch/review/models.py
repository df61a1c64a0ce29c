"""Pydantic models for the moderation console.

This module defines the user records reviewed by operators, the pending
entries shown in the verification queue, and the result type returned by
every write the console issues.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..logging import get_logger

logger = get_logger(__name__)


# =============================================================================
# Enumerations
# =============================================================================


class VerificationStatus(str, Enum):
    """Verification state of a user account."""

    VERIFIED = "verified"
    UNVERIFIED = "unverified"
    PENDING = "pending"


class Decision(str, Enum):
    """Operator decision on a pending account."""

    APPROVE = "approve"
    REJECT = "reject"

    @property
    def status(self) -> VerificationStatus:
        """Verification status written for this decision."""
        if self is Decision.APPROVE:
            return VerificationStatus.VERIFIED
        return VerificationStatus.UNVERIFIED


class Gender(str, Enum):
    """Values an operator may assign when correcting a gender."""

    MALE = "Male"
    FEMALE = "Female"


class SortDirection(str, Enum):
    """Ordering by creation time."""

    ASC = "asc"
    DESC = "desc"


class EditorStatus(str, Enum):
    """Status of the single-record gender editor."""

    IDLE = "idle"
    SAVING = "saving"
    SUCCESS = "success"
    ERROR = "error"


FILTER_ALL = "all"
FILTER_UNKNOWN = "unknown"

# Stored values that mean "no gender recorded"
UNSET_GENDER_VALUES = frozenset({"", "unknown"})


# =============================================================================
# Records
# =============================================================================


class UserRecord(BaseModel):
    """A user profile as stored in the record store.

    Records are immutable values; a correction produces a patched copy
    via `model_copy(update=...)`.
    """

    id: str
    name: str | None = None
    age: int | None = None
    gender: str | None = None
    country: str | None = None
    image_urls: list[str] = Field(default_factory=list, description="Profile photo URLs")
    verification_photo_url: str | None = None
    is_verified: VerificationStatus | None = None
    created_at: datetime

    model_config = ConfigDict(frozen=True)

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        return str(value) if value is not None else value

    @field_validator("image_urls", mode="before")
    @classmethod
    def _null_image_urls(cls, value):
        return [] if value is None else value

    @field_validator("is_verified", mode="before")
    @classmethod
    def _known_status(cls, value, info):
        # Legacy rows may carry statuses such as "rejected"
        if value is None or isinstance(value, VerificationStatus):
            return value
        try:
            return VerificationStatus(value)
        except ValueError:
            logger.warning(
                f"Unrecognized verification status {value!r} for user {info.data.get('id')}",
                extra={"user_id": info.data.get("id"), "is_verified": value},
            )
            return None

    @property
    def has_gender(self) -> bool:
        """Whether a gender value is recorded."""
        if self.gender is None:
            return False
        return self.gender.strip().lower() not in UNSET_GENDER_VALUES


class PendingEntry(UserRecord):
    """A pending user plus the verification photos resolved from storage.

    `verification_photos` is recomputed on every fetch and never persisted.
    """

    verification_photos: list[str] = Field(default_factory=list)

    @classmethod
    def from_record(cls, record: UserRecord, photos: list[str]) -> "PendingEntry":
        """Attach resolved verification photos to a record."""
        return cls(**record.model_dump(exclude={"verification_photos"}), verification_photos=photos)


# =============================================================================
# Results
# =============================================================================


class MutationResult(BaseModel):
    """Outcome of a write issued by the console."""

    user_id: str
    success: bool
    error: str | None = None

    model_config = ConfigDict(frozen=True)

    @classmethod
    def ok(cls, user_id: str) -> "MutationResult":
        """Create a successful result."""
        return cls(user_id=user_id, success=True)

    @classmethod
    def failed(cls, user_id: str, error: str) -> "MutationResult":
        """Create a failed result with a reason."""
        return cls(user_id=user_id, success=False, error=error)
