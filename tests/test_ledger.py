"""Tests for the feedback and correction ledger.

Covers:
1. Input validation and rating normalization
2. Append and review operations with admin gating
3. Correction promotion to draft knowledge
4. Chunk feedback signals
5. Reviewer training digest
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from copilot.core.exceptions import (
    ConfigurationError,
    LedgerValidationError,
    PermissionDeniedError,
    RecordNotFoundError,
)
from copilot.knowledge.ingestion import KnowledgeIngestor
from copilot.knowledge.models import RetrievedChunk
from copilot.ledger.digest import build_training_digest
from copilot.ledger.schemas import Actor, CorrectionCreate, FeedbackCreate, ReviewAction, parse_ledger_input
from copilot.ledger.service import ChunkSignal, FeedbackLedger, annotate_signals
from copilot.models import (
    CorrectionStatus,
    DocumentStatus,
    FeedbackStatus,
    KnowledgeCorrection,
    KnowledgeDocument,
    KnowledgeFeedback,
)
from tests.conftest import FakeEmbedder

ADMIN = Actor(user_id="reviewer-1", role="admin")
REP = Actor(user_id="rep-7", role="sales")

LONG_AGO = datetime(2000, 1, 1, tzinfo=timezone.utc)


def _feedback(**overrides):
    data = {"conversation_id": "conv-1", "session_id": "sess-1", "rating": 4}
    data.update(overrides)
    return data


def _correction(**overrides):
    data = {
        "conversationId": "conv-1",
        "sessionId": "sess-1",
        "correction": "U2400 EPDM needs primer before seating the anchor.",
    }
    data.update(overrides)
    return data


@pytest.fixture
def ledger(db_session: AsyncSession) -> FeedbackLedger:
    return FeedbackLedger(db_session, ingestor=KnowledgeIngestor(FakeEmbedder()))


# =============================================================================
# Schema Tests
# =============================================================================


class TestLedgerSchemas:
    """Test suite for ledger input validation."""

    @pytest.mark.parametrize(
        "raw, expected",
        [(4, 4), (0, 1), (-3, 1), (9, 5), (2.5, 3), (2.49, 2), ("5", 5)],
    )
    def test_rating_rounded_and_clamped(self, raw, expected):
        assert parse_ledger_input(FeedbackCreate, _feedback(rating=raw)).rating == expected

    def test_rating_aliases(self):
        assert parse_ledger_input(FeedbackCreate, {"conversationId": "c", "sessionId": "s", "thumb": 1}).rating == 1
        assert parse_ledger_input(FeedbackCreate, {"conversation_id": "c", "session_id": "s", "score": 5}).rating == 5

    @pytest.mark.parametrize("raw", [None, True, "great", float("nan")])
    def test_rating_must_be_number(self, raw):
        with pytest.raises(LedgerValidationError) as exc_info:
            parse_ledger_input(FeedbackCreate, _feedback(rating=raw))

        assert exc_info.value.details["fields"] == ["rating"]

    @pytest.mark.parametrize("missing", ["conversation_id", "session_id", "rating"])
    def test_required_fields(self, missing):
        data = _feedback()
        del data[missing]

        with pytest.raises(LedgerValidationError) as exc_info:
            parse_ledger_input(FeedbackCreate, data)

        assert missing in exc_info.value.details["fields"]

    def test_blank_ids_rejected(self):
        with pytest.raises(LedgerValidationError):
            parse_ledger_input(FeedbackCreate, _feedback(conversation_id="   "))

    def test_blank_note_is_none(self):
        assert parse_ledger_input(FeedbackCreate, _feedback(note="  ")).note is None

    def test_correction_requires_text(self):
        with pytest.raises(LedgerValidationError) as exc_info:
            parse_ledger_input(CorrectionCreate, _correction(correction=""))

        assert exc_info.value.details["fields"] == ["correction"]

    @pytest.mark.parametrize("role, expected", [("admin", True), (" ADMIN ", True), ("sales", False), (None, False)])
    def test_actor_is_admin(self, role, expected):
        assert Actor(user_id="u", role=role).is_admin is expected


# =============================================================================
# Ledger Service Tests
# =============================================================================


class TestFeedbackLedger:
    """Test suite for append and review operations."""

    async def test_record_feedback(self, ledger, db_session):
        feedback_id = await ledger.record_feedback(_feedback(rating=7, note="great"), actor=REP)

        row = await db_session.get(KnowledgeFeedback, feedback_id)
        assert row.rating == 5
        assert row.user_id == "rep-7"
        assert row.status == FeedbackStatus.NEW.value

    async def test_record_feedback_accepts_model(self, ledger, db_session):
        feedback_id = await ledger.record_feedback(parse_ledger_input(FeedbackCreate, _feedback()))
        assert (await db_session.get(KnowledgeFeedback, feedback_id)).user_id is None

    async def test_invalid_feedback_not_stored(self, ledger, db_session):
        with pytest.raises(LedgerValidationError):
            await ledger.record_feedback({"rating": 3})

        count = (await db_session.execute(select(func.count(KnowledgeFeedback.id)))).scalar_one()
        assert count == 0

    async def test_record_correction(self, ledger, db_session):
        correction_id = await ledger.record_correction(_correction(), actor=REP)

        row = await db_session.get(KnowledgeCorrection, correction_id)
        assert row.status == CorrectionStatus.PENDING.value
        assert row.conversation_id == "conv-1"

    async def test_review_requires_admin(self, ledger):
        feedback_id = await ledger.record_feedback(_feedback())

        with pytest.raises(PermissionDeniedError):
            await ledger.review_feedback(feedback_id, FeedbackStatus.REVIEWED, REP)

    async def test_review_feedback(self, ledger):
        feedback_id = await ledger.record_feedback(_feedback())

        row = await ledger.review_feedback(feedback_id, FeedbackStatus.REVIEWED, ADMIN)

        assert row.status == "reviewed"
        assert row.reviewed_by == "reviewer-1"
        assert row.reviewed_at is not None

    async def test_review_missing_record(self, ledger):
        with pytest.raises(RecordNotFoundError):
            await ledger.review_correction(999, ReviewAction.APPROVE, ADMIN)

    async def test_reject_correction(self, ledger):
        correction_id = await ledger.record_correction(_correction())

        row = await ledger.review_correction(correction_id, ReviewAction.REJECT, ADMIN)

        assert row.status == CorrectionStatus.REJECTED.value
        assert row.promoted_document_id is None

    async def test_approve_and_promote_correction(self, ledger, db_session, knowledge_base):
        source = knowledge_base["approved"]
        correction_id = await ledger.record_correction(_correction(documentId=source.id))

        row = await ledger.review_correction(correction_id, ReviewAction.APPROVE, ADMIN, promote=True)

        assert row.status == CorrectionStatus.APPROVED.value
        promoted = await db_session.get(KnowledgeDocument, row.promoted_document_id)
        assert promoted.title == "Correction: U2400 EPDM anchor"
        assert promoted.status == DocumentStatus.DRAFT.value
        assert promoted.allowed is False
        assert promoted.category == "anchors"
        assert promoted.product_tags == ["U2400 EPDM"]
        assert promoted.created_by == "reviewer-1"
        assert promoted.source_session_id == "sess-1"

    async def test_promote_without_ingestor(self, db_session):
        ledger = FeedbackLedger(db_session)
        correction_id = await ledger.record_correction(_correction())

        with pytest.raises(ConfigurationError):
            await ledger.review_correction(correction_id, ReviewAction.APPROVE, ADMIN, promote=True)

    async def test_approve_document(self, ledger, knowledge_base):
        draft = knowledge_base["draft"]

        document = await ledger.review_document(draft.id, ReviewAction.APPROVE, ADMIN)

        assert document.allowed is True
        assert document.status == DocumentStatus.APPROVED.value
        assert document.approved_by == "reviewer-1"
        assert document.approved_at is not None

    async def test_reject_document_revokes_retrieval(self, ledger, knowledge_base):
        approved = knowledge_base["approved"]

        document = await ledger.review_document(approved.id, ReviewAction.REJECT, ADMIN)

        assert document.allowed is False
        assert document.status == DocumentStatus.REJECTED.value

    async def test_document_review_requires_admin(self, ledger, knowledge_base):
        with pytest.raises(PermissionDeniedError):
            await ledger.review_document(knowledge_base["draft"].id, ReviewAction.APPROVE, REP)


# =============================================================================
# Chunk Signal Tests
# =============================================================================


class TestChunkSignals:
    """Test suite for feedback aggregation per chunk."""

    async def test_average_and_downvotes(self, ledger, knowledge_base):
        chunk_id = knowledge_base["approved"].chunks[0].id
        for rating in (5, 1, 2, 4):
            await ledger.record_feedback(_feedback(rating=rating, chunk_id=chunk_id))

        signals = await ledger.chunk_signals([chunk_id, 12345])

        assert set(signals) == {chunk_id}
        assert signals[chunk_id].feedback_score == 3.0
        assert signals[chunk_id].downvotes == 2
        assert signals[chunk_id].ratings == 4

    async def test_no_ids(self, ledger):
        assert await ledger.chunk_signals([]) == {}

    def test_annotate_keeps_store_values(self):
        chunks = [
            RetrievedChunk(chunk_id=1, document_id=1, content="a", similarity=0.9),
            RetrievedChunk(chunk_id=2, document_id=1, content="b", similarity=0.8, feedback_score=4.5, downvotes=0),
            RetrievedChunk(chunk_id=3, document_id=1, content="c", similarity=0.7),
        ]
        signals = {
            1: ChunkSignal(chunk_id=1, feedback_score=2.0, downvotes=3, ratings=4),
            2: ChunkSignal(chunk_id=2, feedback_score=1.0, downvotes=9, ratings=9),
        }

        annotated = annotate_signals(chunks, signals)

        assert (annotated[0].feedback_score, annotated[0].downvotes) == (2.0, 3)
        assert (annotated[1].feedback_score, annotated[1].downvotes) == (4.5, 0)
        assert annotated[2].feedback_score is None
        assert chunks[0].feedback_score is None


# =============================================================================
# Reviewer Queue Tests
# =============================================================================


class TestReviewerQueues:
    """Test suite for the pending-document queue and the learning summary."""

    async def test_pending_documents_lists_drafts(self, ledger, knowledge_base):
        correction_id = await ledger.record_correction(_correction(documentId=knowledge_base["approved"].id))
        reviewed = await ledger.review_correction(correction_id, ReviewAction.APPROVE, ADMIN, promote=True)

        pending = await ledger.pending_documents(ADMIN)

        assert [d.id for d in pending] == [reviewed.promoted_document_id, knowledge_base["draft"].id]
        assert all(d.status == DocumentStatus.DRAFT.value for d in pending)
        assert len(pending[-1].chunks) == 1

    async def test_pending_documents_drops_reviewed(self, ledger, knowledge_base):
        await ledger.review_document(knowledge_base["draft"].id, ReviewAction.APPROVE, ADMIN)

        assert await ledger.pending_documents(ADMIN) == []

    async def test_learning_summary(self, ledger, knowledge_base):
        approved = knowledge_base["approved"]
        pipe_frame = knowledge_base["pipe_frame"]
        for rating in (1, 2, 5):
            await ledger.record_feedback(_feedback(rating=rating, chunk_id=approved.chunks[0].id))
        await ledger.record_feedback(_feedback(rating=1, document_id=pipe_frame.id))
        await ledger.record_feedback(_feedback(rating=5, document_id=knowledge_base["draft"].id))
        await ledger.record_feedback(_feedback(rating=1))
        open_id = await ledger.record_correction(_correction())
        closed_id = await ledger.record_correction(_correction(correction="Wrong fastener spacing."))
        await ledger.review_correction(closed_id, ReviewAction.REJECT, ADMIN)

        summary = await ledger.learning_summary(ADMIN)

        assert [(d.document_id, d.downvotes, d.ratings) for d in summary.documents] == [
            (approved.id, 2, 3),
            (pipe_frame.id, 1, 1),
        ]
        assert summary.documents[0].title == "U2400 EPDM anchor"
        assert summary.documents[0].average_rating == 2.67
        assert [c.id for c in summary.corrections] == [open_id]

    async def test_learning_summary_empty(self, ledger):
        summary = await ledger.learning_summary(ADMIN)

        assert summary.documents == []
        assert summary.corrections == []

    async def test_reviewer_queues_require_admin(self, ledger):
        with pytest.raises(PermissionDeniedError):
            await ledger.pending_documents(REP)
        with pytest.raises(PermissionDeniedError):
            await ledger.learning_summary(REP)


# =============================================================================
# Training Digest Tests
# =============================================================================


class TestTrainingDigest:
    """Test suite for the reviewer digest."""

    async def test_undigested_and_mark(self, ledger):
        low = await ledger.record_feedback(_feedback(rating=1, note="wrong anchor"))
        await ledger.record_feedback(_feedback(rating=5))
        correction = await ledger.record_correction(_correction())

        feedback, corrections = await ledger.undigested_since(LONG_AGO)
        assert {f.id for f in feedback} >= {low}
        assert [c.id for c in corrections] == [correction]

        digest = build_training_digest(feedback, corrections, datetime(2026, 10, 18, 7, 0))
        marked = await ledger.mark_digested(digest.feedback_ids, digest.correction_ids)

        assert marked == 3
        assert await ledger.undigested_since(LONG_AGO) == ([], [])

    def test_digest_body(self):
        now = datetime(2026, 10, 18, 7, 0)
        feedback = [
            KnowledgeFeedback(id=1, rating=1, note="wrong membrane", chunk_id=4, created_at=now),
            KnowledgeFeedback(id=2, rating=5, created_at=now),
            KnowledgeFeedback(id=3, rating=2, document_id=9, created_at=now),
        ]
        corrections = [
            KnowledgeCorrection(
                id=7,
                status="pending",
                correction="x" * 500,
                created_at=now - timedelta(hours=1),
            )
        ]

        digest = build_training_digest(feedback, corrections, now, dashboard_url="https://admin.test")

        assert digest.subject == "Sales Co-Pilot digest: 1 corrections, 2 low ratings"
        assert "New corrections: 1" in digest.body
        assert "Low ratings (<=2): 2" in digest.body
        assert "Total events: 4" in digest.body
        assert "Open dashboard: https://admin.test" in digest.body
        assert "  correction: " + "x" * 240 + "\n" in digest.body
        assert "rating=5" not in digest.body
        assert "  note: wrong membrane" in digest.body
        assert digest.feedback_ids == (1, 2, 3)
        assert digest.correction_ids == (7,)

    def test_digest_lists_at_most_ten(self):
        now = datetime(2026, 10, 18, 7, 0)
        feedback = [KnowledgeFeedback(id=i, rating=1, created_at=now) for i in range(15)]

        digest = build_training_digest(feedback, [], now)

        assert digest.body.count("| rating=1 |") == 10
        assert "Low ratings (<=2): 15" in digest.body

    def test_empty_digest(self):
        digest = build_training_digest([], [], datetime(2026, 10, 18))

        assert digest.is_empty
        assert "--- Corrections" not in digest.body
