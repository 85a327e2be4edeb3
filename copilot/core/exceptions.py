"""Exception hierarchy for the co-pilot core.

Configuration errors are fatal and raised at start-up. Upstream errors are
recovered locally by the retriever and the folder resolver. Validation and
permission errors are surfaced to the caller.
"""

from typing import Any


class CopilotError(Exception):
    """Base class for all co-pilot errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(CopilotError):
    """Missing credentials, connections or an invalid static registry."""


class UpstreamError(CopilotError):
    """An external collaborator failed or timed out."""


class EmbeddingError(UpstreamError):
    """The embedding service failed or returned an unusable vector."""


class VectorSearchError(UpstreamError):
    """The vector similarity search failed."""


class StorageListError(UpstreamError):
    """Listing a prefix in object storage failed."""


class ChunkRowError(CopilotError):
    """A row returned by the vector store has an unrecognized shape."""


class LedgerValidationError(CopilotError):
    """Feedback or correction input is missing required fields."""


class PermissionDeniedError(CopilotError):
    """The caller lacks the role required for the operation."""


class RecordNotFoundError(CopilotError):
    """A referenced ledger or knowledge record does not exist."""
