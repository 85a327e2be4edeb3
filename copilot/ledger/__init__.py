"""Feedback and correction ledger."""

from copilot.ledger.schemas import Actor, CorrectionCreate, FeedbackCreate, ReviewAction
from copilot.ledger.service import ChunkSignal, FeedbackLedger, annotate_signals

__all__ = [
    "Actor",
    "ChunkSignal",
    "CorrectionCreate",
    "FeedbackCreate",
    "FeedbackLedger",
    "ReviewAction",
    "annotate_signals",
]
