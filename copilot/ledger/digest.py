"""Plain-text daily digest of new corrections and low ratings for reviewers."""

from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

from copilot.ledger.service import LOW_RATING_THRESHOLD
from copilot.models import KnowledgeCorrection, KnowledgeFeedback

LATEST_LIMIT = 10
CORRECTION_PREVIEW_CHARS = 240


@dataclass(frozen=True)
class TrainingDigest:
    subject: str
    body: str
    feedback_ids: tuple[int, ...]
    correction_ids: tuple[int, ...]

    @property
    def is_empty(self) -> bool:
        return not self.feedback_ids and not self.correction_ids


def _fmt(value: datetime | None) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value else "-"


def _ref(value: object) -> str:
    return "-" if value is None else str(value)


def build_training_digest(
    feedback: Sequence[KnowledgeFeedback],
    corrections: Sequence[KnowledgeCorrection],
    now: datetime,
    dashboard_url: str = "/admin/knowledge",
) -> TrainingDigest:
    """Render the reviewer digest.

    Args:
        feedback: Undigested feedback rows, newest first.
        corrections: Undigested correction rows, newest first.
        now: Digest timestamp.
        dashboard_url: Where reviewers curate knowledge.
    """
    low_ratings = [f for f in feedback if (f.rating or 0) <= LOW_RATING_THRESHOLD]
    total = len(feedback) + len(corrections)

    subject = (
        f"Sales Co-Pilot digest: {len(corrections)} corrections, "
        f"{len(low_ratings)} low ratings"
    )

    lines = [
        f"Daily training digest ({_fmt(now)})",
        "",
        f"New corrections: {len(corrections)}",
        f"Low ratings (<={LOW_RATING_THRESHOLD}): {len(low_ratings)}",
        f"Total events: {total}",
        "",
        f"Open dashboard: {dashboard_url}",
        "",
    ]

    if corrections:
        lines.append("--- Corrections (latest) ---")
        for c in corrections[:LATEST_LIMIT]:
            lines.append(
                f"* {_fmt(c.created_at)} | status={_ref(c.status)} "
                f"| doc={_ref(c.document_id)} | chunk={_ref(c.chunk_id)}"
            )
            if c.note:
                lines.append(f"  note: {c.note}")
            lines.append(f"  correction: {c.correction[:CORRECTION_PREVIEW_CHARS]}")
        lines.append("")

    if low_ratings:
        lines.append("--- Low ratings (latest) ---")
        for f in low_ratings[:LATEST_LIMIT]:
            lines.append(
                f"* {_fmt(f.created_at)} | rating={f.rating} "
                f"| doc={_ref(f.document_id)} | chunk={_ref(f.chunk_id)}"
            )
            if f.note:
                lines.append(f"  note: {f.note}")
        lines.append("")

    return TrainingDigest(
        subject=subject,
        body="\n".join(lines),
        feedback_ids=tuple(f.id for f in feedback),
        correction_ids=tuple(c.id for c in corrections),
    )
