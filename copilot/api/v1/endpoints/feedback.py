"""Feedback and correction ledger endpoints."""

from datetime import datetime
from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, status
from pydantic import BaseModel

from copilot.api.deps import get_actor, get_ledger
from copilot.ledger.schemas import Actor, ReviewAction
from copilot.ledger.service import FeedbackLedger
from copilot.models.feedback import FeedbackStatus

router = APIRouter()


# -------------------------------------------------------------------------
# Response Models
# -------------------------------------------------------------------------


class CreatedResponse(BaseModel):
    ok: bool = True
    id: int


class FeedbackReviewRequest(BaseModel):
    status: FeedbackStatus


class CorrectionReviewRequest(BaseModel):
    action: ReviewAction
    promote: bool = False


class ReviewResponse(BaseModel):
    ok: bool = True
    id: int
    status: str
    promoted_document_id: int | None = None


class DownvotedDocument(BaseModel):
    document_id: int
    title: str | None = None
    downvotes: int
    ratings: int
    average_rating: float


class OpenCorrection(BaseModel):
    id: int
    created_at: datetime | None = None
    user_id: str | None = None
    document_id: int | None = None
    correction: str
    status: str


class LearningSummaryResponse(BaseModel):
    ok: bool = True
    documents: list[DownvotedDocument]
    corrections: list[OpenCorrection]


# -------------------------------------------------------------------------
# End-user Endpoints
# -------------------------------------------------------------------------


@router.post("/feedback", response_model=CreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_feedback(
    ledger: Annotated[FeedbackLedger, Depends(get_ledger)],
    actor: Annotated[Actor, Depends(get_actor)],
    payload: dict[str, Any] = Body(...),
) -> CreatedResponse:
    """Rate an answer (1-5). Accepts snake_case or camelCase fields."""
    feedback_id = await ledger.record_feedback(payload, actor=actor)
    return CreatedResponse(id=feedback_id)


@router.post("/corrections", response_model=CreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_correction(
    ledger: Annotated[FeedbackLedger, Depends(get_ledger)],
    actor: Annotated[Actor, Depends(get_actor)],
    payload: dict[str, Any] = Body(...),
) -> CreatedResponse:
    """Propose a correction for reviewers."""
    correction_id = await ledger.record_correction(payload, actor=actor)
    return CreatedResponse(id=correction_id)


# -------------------------------------------------------------------------
# Reviewer Endpoints
# -------------------------------------------------------------------------


@router.post("/feedback/{feedback_id}/review", response_model=ReviewResponse)
async def review_feedback(
    feedback_id: int,
    request: FeedbackReviewRequest,
    ledger: Annotated[FeedbackLedger, Depends(get_ledger)],
    actor: Annotated[Actor, Depends(get_actor)],
) -> ReviewResponse:
    row = await ledger.review_feedback(feedback_id, request.status, actor)
    return ReviewResponse(id=row.id, status=row.status)


@router.post("/corrections/{correction_id}/review", response_model=ReviewResponse)
async def review_correction(
    correction_id: int,
    request: CorrectionReviewRequest,
    ledger: Annotated[FeedbackLedger, Depends(get_ledger)],
    actor: Annotated[Actor, Depends(get_actor)],
) -> ReviewResponse:
    """Approve or reject a correction, optionally promoting it to a draft document."""
    row = await ledger.review_correction(
        correction_id,
        request.action,
        actor,
        promote=request.promote,
    )
    return ReviewResponse(
        id=row.id,
        status=row.status,
        promoted_document_id=row.promoted_document_id,
    )


@router.get("/learning/summary", response_model=LearningSummaryResponse)
async def learning_summary(
    ledger: Annotated[FeedbackLedger, Depends(get_ledger)],
    actor: Annotated[Actor, Depends(get_actor)],
) -> LearningSummaryResponse:
    """Most-downvoted documents and corrections still waiting for review."""
    summary = await ledger.learning_summary(actor)
    return LearningSummaryResponse(
        documents=[
            DownvotedDocument(
                document_id=d.document_id,
                title=d.title,
                downvotes=d.downvotes,
                ratings=d.ratings,
                average_rating=d.average_rating,
            )
            for d in summary.documents
        ],
        corrections=[
            OpenCorrection(
                id=c.id,
                created_at=c.created_at,
                user_id=c.user_id,
                document_id=c.document_id,
                correction=c.correction,
                status=c.status,
            )
            for c in summary.corrections
        ],
    )
