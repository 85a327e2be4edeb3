"""Database models for the sales co-pilot."""

from copilot.models.knowledge import Audience, DocumentStatus, KnowledgeChunk, KnowledgeDocument
from copilot.models.feedback import (
    CorrectionStatus,
    FeedbackStatus,
    KnowledgeCorrection,
    KnowledgeFeedback,
)

__all__ = [
    # Knowledge
    "Audience",
    "DocumentStatus",
    "KnowledgeDocument",
    "KnowledgeChunk",
    # Ledger
    "FeedbackStatus",
    "CorrectionStatus",
    "KnowledgeFeedback",
    "KnowledgeCorrection",
]
