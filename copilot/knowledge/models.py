"""Data models for retrieval requests and results."""

from typing import Any, Mapping

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from copilot.core.exceptions import ChunkRowError


class RetrievalOptions(BaseModel):
    """Filters and limits for a knowledge search."""

    match_count: int = Field(default=6, ge=1, le=50, description="Maximum chunks returned")
    category: str | None = Field(default=None, description="Restrict to a document category")
    product_tags: list[str] | None = Field(
        default=None,
        description="Restrict to documents tagged with any of these products",
    )


class RetrievedChunk(BaseModel):
    """A knowledge chunk returned by similarity search.

    Only chunks of approved (``allowed``) documents are ever surfaced.
    """

    chunk_id: int = Field(..., description="Chunk primary key")
    document_id: int = Field(..., description="Owning document")
    title: str | None = Field(default=None, description="Document title")
    content: str = Field(..., description="Chunk text content")
    similarity: float = Field(..., ge=0.0, le=1.0, description="Cosine similarity (0-1)")
    feedback_score: float | None = Field(default=None, description="Average user rating")
    downvotes: int | None = Field(default=None, description="Ratings of 2 or lower")
    allowed: bool = Field(default=True, exclude=True)

    @model_validator(mode="before")
    @classmethod
    def _accept_id_alias(cls, data: Any) -> Any:
        # The SQL function names the chunk key "id"
        if isinstance(data, Mapping) and "chunk_id" not in data and "id" in data:
            data = dict(data)
            data["chunk_id"] = data.pop("id")
        return data

    @field_validator("similarity", mode="before")
    @classmethod
    def _clamp_similarity(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return min(1.0, max(0.0, float(value)))
        return value


def parse_chunk_row(row: Any) -> RetrievedChunk:
    """Validate one vector-store row.

    Raises:
        ChunkRowError: If the row is not a mapping or lacks required fields.
    """
    if not isinstance(row, Mapping):
        raise ChunkRowError(
            f"Expected a mapping row, got {type(row).__name__}",
            details={"row": repr(row)[:200]},
        )
    try:
        return RetrievedChunk.model_validate(row)
    except ValidationError as e:
        raise ChunkRowError(
            f"Malformed chunk row: {e.error_count()} validation errors",
            details={"errors": e.errors(include_url=False)},
        ) from e
