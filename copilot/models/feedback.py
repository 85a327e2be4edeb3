"""Append-only feedback and correction ledger tables."""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from copilot.models.base import BaseModel


class FeedbackStatus(str, Enum):
    """Review status of a feedback rating."""

    NEW = "new"
    REVIEWED = "reviewed"
    REJECTED = "rejected"


class CorrectionStatus(str, Enum):
    """Review status of a correction proposal."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class KnowledgeFeedback(BaseModel):
    """A 1-5 rating of an answer, optionally tied to a chunk or document."""

    __tablename__ = "knowledge_feedback"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    conversation_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    session_id: Mapped[str] = mapped_column(String(100), nullable=False)
    assistant_message_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    document_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("knowledge_documents.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    chunk_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("knowledge_chunks.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), default=FeedbackStatus.NEW.value, index=True)

    reviewed_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    digested_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<KnowledgeFeedback(id={self.id}, rating={self.rating}, status={self.status})>"


class KnowledgeCorrection(BaseModel):
    """A free-text correction proposed by a user for reviewer curation."""

    __tablename__ = "knowledge_corrections"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    conversation_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    session_id: Mapped[str] = mapped_column(String(100), nullable=False)
    assistant_message_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    document_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("knowledge_documents.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    chunk_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("knowledge_chunks.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    correction: Mapped[str] = mapped_column(Text, nullable=False)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20),
        default=CorrectionStatus.PENDING.value,
        index=True,
    )

    reviewed_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    promoted_document_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("knowledge_documents.id", ondelete="SET NULL"),
        nullable=True,
    )
    digested_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<KnowledgeCorrection(id={self.id}, status={self.status})>"
