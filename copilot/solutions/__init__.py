"""Canonical solution taxonomy: normalization, matching and intake."""

from copilot.solutions.intake import is_complete, next_question, start_intake
from copilot.solutions.matcher import SolutionMatcher
from copilot.solutions.models import (
    AnchorType,
    AskStep,
    CanonicalSolution,
    DocKind,
    IntakeState,
    ScoredCandidate,
    ScoringWeights,
)
from copilot.solutions.normalizer import normalize
from copilot.solutions.registry import build_default_registry

__all__ = [
    "AnchorType",
    "AskStep",
    "CanonicalSolution",
    "DocKind",
    "IntakeState",
    "ScoredCandidate",
    "ScoringWeights",
    "SolutionMatcher",
    "build_default_registry",
    "is_complete",
    "next_question",
    "normalize",
    "start_intake",
]
