"""Feedback and correction ledger.

End users append ratings and corrections; only admins review them. Rows are
never deleted, only their status changes.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Sequence

from sqlalchemy import case, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from copilot.core.exceptions import ConfigurationError, PermissionDeniedError, RecordNotFoundError
from copilot.knowledge.ingestion import KnowledgeIngestor
from copilot.knowledge.loader import SourceDocument
from copilot.knowledge.models import RetrievedChunk
from copilot.ledger.schemas import (
    Actor,
    CorrectionCreate,
    FeedbackCreate,
    ReviewAction,
    parse_ledger_input,
)
from copilot.models import (
    CorrectionStatus,
    DocumentStatus,
    FeedbackStatus,
    KnowledgeChunk,
    KnowledgeCorrection,
    KnowledgeDocument,
    KnowledgeFeedback,
)

logger = logging.getLogger(__name__)

LOW_RATING_THRESHOLD = 2
DIGEST_FETCH_LIMIT = 500
PENDING_DOCUMENT_LIMIT = 50
SUMMARY_DOCUMENT_LIMIT = 25
SUMMARY_CORRECTION_LIMIT = 50


@dataclass(frozen=True)
class ChunkSignal:
    """Aggregated user feedback for one chunk."""

    chunk_id: int
    feedback_score: float
    downvotes: int
    ratings: int


@dataclass(frozen=True)
class DocumentDownvotes:
    """Low ratings collected by one document, directly or through its chunks."""

    document_id: int
    title: str | None
    downvotes: int
    ratings: int
    average_rating: float


@dataclass(frozen=True)
class LearningSummary:
    documents: list[DocumentDownvotes]
    corrections: list[KnowledgeCorrection]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _require_admin(actor: Actor) -> None:
    if not actor.is_admin:
        raise PermissionDeniedError(
            "Reviewer operations require the admin role",
            details={"user_id": actor.user_id, "role": actor.role},
        )


class FeedbackLedger:
    """Append-only ledger over ``knowledge_feedback`` and ``knowledge_corrections``."""

    def __init__(self, session: AsyncSession, ingestor: KnowledgeIngestor | None = None):
        self.session = session
        self.ingestor = ingestor

    # -------------------------------------------------------------------------
    # End-user operations
    # -------------------------------------------------------------------------

    async def record_feedback(
        self,
        feedback: FeedbackCreate | Mapping[str, Any],
        actor: Actor | None = None,
    ) -> int:
        """Append a rating and return its id.

        Raises:
            LedgerValidationError: If conversation, session or rating is missing.
        """
        if not isinstance(feedback, FeedbackCreate):
            feedback = parse_ledger_input(FeedbackCreate, feedback)

        row = KnowledgeFeedback(
            user_id=actor.user_id if actor else None,
            conversation_id=feedback.conversation_id,
            session_id=feedback.session_id,
            assistant_message_id=feedback.assistant_message_id,
            document_id=feedback.document_id,
            chunk_id=feedback.chunk_id,
            rating=feedback.rating,
            note=feedback.note,
            status=FeedbackStatus.NEW.value,
        )
        self.session.add(row)
        await self.session.commit()

        logger.info(f"Recorded feedback {row.id} (rating={row.rating}, chunk={row.chunk_id})")
        return row.id

    async def record_correction(
        self,
        correction: CorrectionCreate | Mapping[str, Any],
        actor: Actor | None = None,
    ) -> int:
        """Append a correction proposal and return its id.

        Raises:
            LedgerValidationError: If conversation, session or correction text is missing.
        """
        if not isinstance(correction, CorrectionCreate):
            correction = parse_ledger_input(CorrectionCreate, correction)

        row = KnowledgeCorrection(
            user_id=actor.user_id if actor else None,
            conversation_id=correction.conversation_id,
            session_id=correction.session_id,
            assistant_message_id=correction.assistant_message_id,
            document_id=correction.document_id,
            chunk_id=correction.chunk_id,
            correction=correction.correction,
            note=correction.note,
            status=CorrectionStatus.PENDING.value,
        )
        self.session.add(row)
        await self.session.commit()

        logger.info(f"Recorded correction {row.id} (document={row.document_id})")
        return row.id

    # -------------------------------------------------------------------------
    # Reviewer operations (admin only)
    # -------------------------------------------------------------------------

    async def _get(self, model: type, record_id: int) -> Any:
        record = await self.session.get(model, record_id)
        if record is None:
            raise RecordNotFoundError(
                f"{model.__name__} {record_id} not found",
                details={"id": record_id},
            )
        return record

    async def review_feedback(
        self,
        feedback_id: int,
        status: FeedbackStatus,
        reviewer: Actor,
    ) -> KnowledgeFeedback:
        _require_admin(reviewer)
        row: KnowledgeFeedback = await self._get(KnowledgeFeedback, feedback_id)

        row.status = FeedbackStatus(status).value
        row.reviewed_by = reviewer.user_id
        row.reviewed_at = _utcnow()
        await self.session.commit()
        return row

    async def review_correction(
        self,
        correction_id: int,
        action: ReviewAction,
        reviewer: Actor,
        promote: bool = False,
    ) -> KnowledgeCorrection:
        """Approve or reject a correction.

        Approving with ``promote=True`` turns the correction text into a new
        draft knowledge document, which still needs its own approval.
        """
        _require_admin(reviewer)
        row: KnowledgeCorrection = await self._get(KnowledgeCorrection, correction_id)
        action = ReviewAction(action)

        if action is ReviewAction.APPROVE:
            row.status = CorrectionStatus.APPROVED.value
            if promote:
                row.promoted_document_id = await self._promote(row, reviewer)
        else:
            row.status = CorrectionStatus.REJECTED.value

        row.reviewed_by = reviewer.user_id
        row.reviewed_at = _utcnow()
        await self.session.commit()

        logger.info(f"Correction {row.id} {row.status} by {reviewer.user_id}")
        return row

    async def _promote(self, correction: KnowledgeCorrection, reviewer: Actor) -> int:
        if self.ingestor is None:
            raise ConfigurationError("Promoting corrections requires a knowledge ingestor")

        source: KnowledgeDocument | None = None
        if correction.document_id is not None:
            source = await self.session.get(KnowledgeDocument, correction.document_id)

        document = SourceDocument(
            title=f"Correction: {source.title}" if source else f"Correction {correction.id}",
            content=correction.correction,
            source=f"correction:{correction.id}",
            source_type="correction",
            category=source.category if source else None,
            series=source.series if source else None,
            membrane=source.membrane if source else None,
            solution_slug=source.solution_slug if source else None,
            product_tags=list(source.product_tags or []) if source else [],
            created_by=reviewer.user_id,
            source_session_id=correction.session_id,
        )
        record = await self.ingestor.ingest(self.session, document)
        return record.id

    async def review_document(
        self,
        document_id: int,
        action: ReviewAction,
        reviewer: Actor,
    ) -> KnowledgeDocument:
        """Approve (making the document retrievable) or reject a knowledge document."""
        _require_admin(reviewer)
        document: KnowledgeDocument = await self._get(KnowledgeDocument, document_id)

        if ReviewAction(action) is ReviewAction.APPROVE:
            document.status = DocumentStatus.APPROVED.value
            document.allowed = True
            document.approved_by = reviewer.user_id
            document.approved_at = _utcnow()
        else:
            document.status = DocumentStatus.REJECTED.value
            document.allowed = False

        await self.session.commit()
        logger.info(f"Document {document.id} {document.status} by {reviewer.user_id}")
        return document

    async def pending_documents(
        self,
        reviewer: Actor,
        limit: int = PENDING_DOCUMENT_LIMIT,
    ) -> list[KnowledgeDocument]:
        """Draft documents awaiting review, newest first."""
        _require_admin(reviewer)
        result = await self.session.execute(
            select(KnowledgeDocument)
            .where(KnowledgeDocument.status == DocumentStatus.DRAFT.value)
            .options(selectinload(KnowledgeDocument.chunks))
            .order_by(KnowledgeDocument.created_at.desc(), KnowledgeDocument.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def learning_summary(
        self,
        reviewer: Actor,
        document_limit: int = SUMMARY_DOCUMENT_LIMIT,
        correction_limit: int = SUMMARY_CORRECTION_LIMIT,
    ) -> LearningSummary:
        """Most-downvoted documents and the corrections still waiting for review."""
        _require_admin(reviewer)

        # Chunk ratings count towards the chunk's document
        document_ref = func.coalesce(KnowledgeFeedback.document_id, KnowledgeChunk.document_id)
        downvotes = func.sum(case((KnowledgeFeedback.rating <= LOW_RATING_THRESHOLD, 1), else_=0))
        rows = (
            await self.session.execute(
                select(
                    document_ref,
                    downvotes,
                    func.count(KnowledgeFeedback.id),
                    func.avg(KnowledgeFeedback.rating),
                )
                .select_from(KnowledgeFeedback)
                .outerjoin(KnowledgeChunk, KnowledgeChunk.id == KnowledgeFeedback.chunk_id)
                .where(document_ref.is_not(None))
                .group_by(document_ref)
                .having(downvotes > 0)
                .order_by(downvotes.desc(), document_ref)
                .limit(document_limit)
            )
        ).all()

        titles: dict[int, str] = {}
        if rows:
            result = await self.session.execute(
                select(KnowledgeDocument.id, KnowledgeDocument.title)
                .where(KnowledgeDocument.id.in_([row[0] for row in rows]))
            )
            titles = dict(result.all())

        corrections = await self.session.execute(
            select(KnowledgeCorrection)
            .where(KnowledgeCorrection.status == CorrectionStatus.PENDING.value)
            .order_by(KnowledgeCorrection.created_at.desc(), KnowledgeCorrection.id.desc())
            .limit(correction_limit)
        )

        return LearningSummary(
            documents=[
                DocumentDownvotes(
                    document_id=document_id,
                    title=titles.get(document_id),
                    downvotes=int(count_down),
                    ratings=int(count),
                    average_rating=round(float(avg), 2),
                )
                for document_id, count_down, count, avg in rows
            ],
            corrections=list(corrections.scalars().all()),
        )

    # -------------------------------------------------------------------------
    # Signals and digests
    # -------------------------------------------------------------------------

    async def chunk_signals(self, chunk_ids: Iterable[int]) -> dict[int, ChunkSignal]:
        """Average rating and downvote count per chunk."""
        ids = sorted(set(chunk_ids))
        if not ids:
            return {}

        downvote = case((KnowledgeFeedback.rating <= LOW_RATING_THRESHOLD, 1), else_=0)
        result = await self.session.execute(
            select(
                KnowledgeFeedback.chunk_id,
                func.avg(KnowledgeFeedback.rating),
                func.sum(downvote),
                func.count(KnowledgeFeedback.id),
            )
            .where(KnowledgeFeedback.chunk_id.in_(ids))
            .group_by(KnowledgeFeedback.chunk_id)
        )
        return {
            chunk_id: ChunkSignal(
                chunk_id=chunk_id,
                feedback_score=round(float(avg), 2),
                downvotes=int(downvotes or 0),
                ratings=int(count),
            )
            for chunk_id, avg, downvotes, count in result.all()
        }

    async def undigested_since(
        self,
        since: datetime,
    ) -> tuple[list[KnowledgeFeedback], list[KnowledgeCorrection]]:
        """Feedback and corrections created since ``since`` and not yet digested, newest first."""
        feedback = await self.session.execute(
            select(KnowledgeFeedback)
            .where(KnowledgeFeedback.digested_at.is_(None))
            .where(KnowledgeFeedback.created_at >= since)
            .order_by(KnowledgeFeedback.created_at.desc(), KnowledgeFeedback.id.desc())
            .limit(DIGEST_FETCH_LIMIT)
        )
        corrections = await self.session.execute(
            select(KnowledgeCorrection)
            .where(KnowledgeCorrection.digested_at.is_(None))
            .where(KnowledgeCorrection.created_at >= since)
            .order_by(KnowledgeCorrection.created_at.desc(), KnowledgeCorrection.id.desc())
            .limit(DIGEST_FETCH_LIMIT)
        )
        return list(feedback.scalars().all()), list(corrections.scalars().all())

    async def mark_digested(
        self,
        feedback_ids: Sequence[int],
        correction_ids: Sequence[int],
        now: datetime | None = None,
    ) -> int:
        """Stamp rows as included in a digest. Returns the number of rows marked."""
        now = now or _utcnow()
        marked = 0
        if feedback_ids:
            result = await self.session.execute(
                update(KnowledgeFeedback)
                .where(KnowledgeFeedback.id.in_(list(feedback_ids)))
                .values(digested_at=now)
            )
            marked += result.rowcount or 0
        if correction_ids:
            result = await self.session.execute(
                update(KnowledgeCorrection)
                .where(KnowledgeCorrection.id.in_(list(correction_ids)))
                .values(digested_at=now)
            )
            marked += result.rowcount or 0
        await self.session.commit()
        return marked


def annotate_signals(
    chunks: Sequence[RetrievedChunk],
    signals: Mapping[int, ChunkSignal],
) -> list[RetrievedChunk]:
    """Copy of ``chunks`` with feedback score and downvotes filled from the ledger.

    Values already reported by the vector store are kept.
    """
    annotated: list[RetrievedChunk] = []
    for chunk in chunks:
        signal = signals.get(chunk.chunk_id)
        if signal is None:
            annotated.append(chunk)
            continue
        annotated.append(
            chunk.model_copy(
                update={
                    "feedback_score": chunk.feedback_score
                    if chunk.feedback_score is not None
                    else signal.feedback_score,
                    "downvotes": chunk.downvotes if chunk.downvotes is not None else signal.downvotes,
                }
            )
        )
    return annotated
