"""Question context assembly endpoint."""

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from copilot.api.deps import get_assist_service, get_ledger
from copilot.knowledge.models import RetrievalOptions
from copilot.ledger.service import FeedbackLedger, annotate_signals
from copilot.models.knowledge import Audience
from copilot.services.assist import AssistContext, AssistService
from copilot.solutions.models import IntakeState

router = APIRouter()


# -------------------------------------------------------------------------
# Request Models
# -------------------------------------------------------------------------


class ChatTurn(BaseModel):
    role: str = Field(..., description="user or assistant")
    content: str


class AssistRequest(BaseModel):
    """Request to assemble answer context for a question."""

    question: str = Field(..., min_length=1, max_length=4000)
    intake: IntakeState | None = Field(default=None, description="Answers gathered so far")
    history: list[ChatTurn] = Field(default_factory=list, max_length=50)
    audience: Audience = Audience.INTERNAL
    match_count: int = Field(default=6, ge=1, le=50)
    category: str | None = None
    product_tags: list[str] | None = None


# -------------------------------------------------------------------------
# Endpoints
# -------------------------------------------------------------------------


@router.post("/context", response_model=AssistContext)
async def assist_context(
    request: AssistRequest,
    service: Annotated[AssistService, Depends(get_assist_service)],
    ledger: Annotated[FeedbackLedger, Depends(get_ledger)],
) -> AssistContext:
    """Resolve the solution, route documents and retrieve knowledge for a question."""
    result = await service.prepare(
        request.question,
        intake=request.intake,
        history=[turn.model_dump() for turn in request.history],
        audience=request.audience,
        options=RetrievalOptions(
            match_count=request.match_count,
            category=request.category,
            product_tags=request.product_tags,
        ),
    )

    if result.chunks:
        signals = await ledger.chunk_signals(chunk.chunk_id for chunk in result.chunks)
        result.chunks = annotate_signals(result.chunks, signals)

    return result
