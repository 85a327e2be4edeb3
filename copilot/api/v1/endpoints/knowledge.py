"""Knowledge document review queue and review endpoint."""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from copilot.api.deps import get_actor, get_ledger
from copilot.ledger.schemas import Actor, ReviewAction
from copilot.ledger.service import FeedbackLedger

router = APIRouter()


class DocumentReviewRequest(BaseModel):
    action: ReviewAction


class DocumentReviewResponse(BaseModel):
    ok: bool = True
    id: int
    status: str
    allowed: bool
    approved_by: str | None = None
    approved_at: datetime | None = None


class PendingDocument(BaseModel):
    id: int
    title: str
    category: str | None = None
    source_type: str
    created_by: str | None = None
    created_at: datetime | None = None
    chunk_count: int = 0


class PendingDocumentsResponse(BaseModel):
    items: list[PendingDocument]


@router.get("/pending", response_model=PendingDocumentsResponse)
async def pending_documents(
    ledger: Annotated[FeedbackLedger, Depends(get_ledger)],
    actor: Annotated[Actor, Depends(get_actor)],
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
) -> PendingDocumentsResponse:
    """Draft documents waiting for a reviewer, newest first."""
    documents = await ledger.pending_documents(actor, limit=limit)
    return PendingDocumentsResponse(
        items=[
            PendingDocument(
                id=document.id,
                title=document.title,
                category=document.category,
                source_type=document.source_type,
                created_by=document.created_by,
                created_at=document.created_at,
                chunk_count=len(document.chunks),
            )
            for document in documents
        ]
    )


@router.post("/{document_id}/review", response_model=DocumentReviewResponse)
async def review_document(
    document_id: int,
    request: DocumentReviewRequest,
    ledger: Annotated[FeedbackLedger, Depends(get_ledger)],
    actor: Annotated[Actor, Depends(get_actor)],
) -> DocumentReviewResponse:
    """Approve a document (making it retrievable) or reject it."""
    document = await ledger.review_document(document_id, request.action, actor)
    return DocumentReviewResponse(
        id=document.id,
        status=document.status,
        allowed=document.allowed,
        approved_by=document.approved_by,
        approved_at=document.approved_at,
    )
