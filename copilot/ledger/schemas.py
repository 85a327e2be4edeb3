"""Input schemas for the feedback and correction ledger."""

import math
from enum import Enum
from typing import Any, Mapping, Type, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from copilot.core.exceptions import LedgerValidationError

ADMIN_ROLE = "admin"

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class Actor(BaseModel):
    """The caller as identified by the upstream gateway."""

    user_id: str | None = None
    role: str | None = None

    @property
    def is_admin(self) -> bool:
        return (self.role or "").strip().lower() == ADMIN_ROLE


class ReviewAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


class _LedgerInput(BaseModel):
    """Fields shared by feedback and corrections. Accepts camelCase aliases."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    conversation_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("conversation_id", "conversationId"),
    )
    session_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("session_id", "sessionId"),
    )
    chunk_id: int | None = Field(
        default=None,
        validation_alias=AliasChoices("chunk_id", "chunkId"),
    )
    document_id: int | None = Field(
        default=None,
        validation_alias=AliasChoices("document_id", "documentId"),
    )
    assistant_message_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("assistant_message_id", "assistantMessageId"),
    )
    note: str | None = None

    @field_validator("note")
    @classmethod
    def _empty_note_is_none(cls, value: str | None) -> str | None:
        return value or None


class FeedbackCreate(_LedgerInput):
    """A 1-5 rating; out-of-range values are rounded and clamped."""

    rating: int = Field(..., validation_alias=AliasChoices("rating", "thumb", "score"))

    @field_validator("rating", mode="before")
    @classmethod
    def _round_and_clamp(cls, value: Any) -> int:
        if isinstance(value, bool) or value is None:
            raise ValueError("rating must be a number")
        try:
            number = float(value)
        except (TypeError, ValueError) as e:
            raise ValueError("rating must be a number") from e
        if not math.isfinite(number):
            raise ValueError("rating must be finite")
        # round half up, as users expect 2.5 -> 3
        return max(1, min(5, int(math.floor(number + 0.5))))


class CorrectionCreate(_LedgerInput):
    """A free-text correction for reviewers to curate."""

    correction: str = Field(..., min_length=1)


def parse_ledger_input(schema: Type[SchemaT], data: Mapping[str, Any]) -> SchemaT:
    """Validate raw input, surfacing failures as ``LedgerValidationError``."""
    try:
        return schema.model_validate(dict(data))
    except ValidationError as e:
        missing = [".".join(str(part) for part in err["loc"]) for err in e.errors()]
        raise LedgerValidationError(
            f"Invalid {schema.__name__}: {', '.join(missing) or 'input'} is missing or invalid",
            details={"fields": missing},
        ) from e
