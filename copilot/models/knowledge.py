"""Knowledge documents and their embedded chunks."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from copilot.models.base import BaseModel


class DocumentStatus(str, Enum):
    """Review status of a knowledge document."""

    DRAFT = "draft"
    APPROVED = "approved"
    REJECTED = "rejected"


class Audience(str, Enum):
    """Who may see a document's content."""

    INTERNAL = "internal"
    EXTERNAL = "external"
    BOTH = "both"


class KnowledgeDocument(BaseModel):
    """A curated knowledge document.

    Only documents with ``allowed=True`` contribute chunks to retrieval.
    """

    __tablename__ = "knowledge_documents"

    id: Mapped[int] = mapped_column(primary_key=True)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    source_type: Mapped[str] = mapped_column(String(30), default="manual_entry")
    status: Mapped[str] = mapped_column(
        String(20),
        default=DocumentStatus.DRAFT.value,
        index=True,
    )
    allowed: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    audience: Mapped[str] = mapped_column(String(20), default=Audience.BOTH.value)

    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    series: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    membrane: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    solution_slug: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    product_tags: Mapped[list[str]] = mapped_column(JSON, default=list)

    storage_path: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    created_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    source_session_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    approved_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    approved_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    chunks: Mapped[list["KnowledgeChunk"]] = relationship(
        "KnowledgeChunk",
        back_populates="document",
        cascade="all, delete-orphan",
        order_by="KnowledgeChunk.chunk_index",
    )

    def __repr__(self) -> str:
        return f"<KnowledgeDocument(id={self.id}, status={self.status}, allowed={self.allowed})>"


class KnowledgeChunk(BaseModel):
    """An ordered, non-overlapping text segment of a document with its embedding."""

    __tablename__ = "knowledge_chunks"
    __table_args__ = (
        UniqueConstraint("document_id", "chunk_index", name="uq_knowledge_chunks_doc_index"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    document_id: Mapped[int] = mapped_column(
        ForeignKey("knowledge_documents.id", ondelete="CASCADE"),
        index=True,
    )
    chunk_index: Mapped[int] = mapped_column(Integer, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    # pgvector column in production; plain JSON keeps the ORM portable
    embedding: Mapped[list[Any]] = mapped_column(JSON, nullable=False)
    audience: Mapped[str] = mapped_column(String(20), default=Audience.BOTH.value)
    product_tags: Mapped[list[str]] = mapped_column(JSON, default=list)
    token_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    document: Mapped["KnowledgeDocument"] = relationship(
        "KnowledgeDocument",
        back_populates="chunks",
    )

    def __repr__(self) -> str:
        return f"<KnowledgeChunk(id={self.id}, document_id={self.document_id}, index={self.chunk_index})>"
