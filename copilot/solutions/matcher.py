"""Map free-text queries to a canonical solution and its storage folder."""

import logging
import re
from typing import Iterable

from copilot.solutions.models import CanonicalSolution, ScoredCandidate, ScoringWeights
from copilot.solutions.normalizer import normalize

logger = logging.getLogger(__name__)

_EXISTING_INTENT = re.compile(r"\b(existing|retrofit|re-?secure|re-?tie|tie-down)\b")
_WALL_INTENT = re.compile(r"\b(wall|parapet|vertical)\b")
_ROOF_INTENT = re.compile(r"\b(roof|rooftop)\b")
_GUY_WIRE_INTENT = re.compile(r"\b(guy wire|tie-down)\b")
_BOX_INTENT = re.compile(r"\b(box|boxes|enclosures?|disconnects?)\b")
_STACK_INTENT = re.compile(r"\b(stacks?|exhaust)\b")

_WALL_FOLDERS = ("/wall-", "wall-box", "wall-guardrail")
_ROOF_FOLDERS = ("/roof-", "roof-box", "roof-guardrail")
_GUY_WIRE_FOLDERS = ("guy-wire", "/existing", "elevated-stack/roof-stack")
_BOX_FOLDERS = ("roof-box", "wall-box", "electrical-disconnect")


def _contains_any(folder: str, needles: Iterable[str]) -> bool:
    return any(needle in folder for needle in needles)


class SolutionMatcher:
    """Score every registered solution against a query and pick the best.

    The registry is injected so tests can run against reduced catalogues.
    """

    def __init__(
        self,
        solutions: Iterable[CanonicalSolution],
        weights: ScoringWeights | None = None,
    ):
        self.solutions = tuple(solutions)
        self.weights = weights or ScoringWeights()

    def _intent_adjustments(self, text: str, folder: str) -> dict[str, int]:
        w = self.weights
        adjustments: dict[str, int] = {}

        if _EXISTING_INTENT.search(text):
            if "/existing" in folder:
                adjustments["existing"] = w.existing_bonus
            if "/attached" in folder:
                adjustments["existing"] = -w.existing_attached_penalty
        else:
            if "/attached" in folder:
                adjustments["attached_default"] = w.attached_default_bonus
            if "/existing" in folder:
                adjustments["attached_default"] = -w.existing_default_penalty

        wants_roof = bool(_ROOF_INTENT.search(text))
        if _WALL_INTENT.search(text) and not wants_roof:
            if _contains_any(folder, _WALL_FOLDERS):
                adjustments["wall"] = w.wall_bonus
            elif _contains_any(folder, _ROOF_FOLDERS):
                adjustments["wall"] = -w.wall_roof_penalty

        if wants_roof and _contains_any(folder, _ROOF_FOLDERS):
            adjustments["roof"] = w.roof_bonus

        if _GUY_WIRE_INTENT.search(text) and _contains_any(folder, _GUY_WIRE_FOLDERS):
            adjustments["guy_wire"] = w.guy_wire_bonus

        if _BOX_INTENT.search(text) and _contains_any(folder, _BOX_FOLDERS):
            adjustments["box"] = w.box_bonus

        if _STACK_INTENT.search(text) and "elevated-stack" in folder:
            adjustments["stack"] = w.stack_bonus

        return adjustments

    def _score(self, solution: CanonicalSolution, text: str) -> ScoredCandidate | None:
        found = solution.match.search(text)
        if not found:
            return None

        w = self.weights
        folder = solution.folder
        components: dict[str, int] = {
            "match": min(w.match_length_cap, len(found.group(0))),
        }

        keyword_hits = sum(1 for keyword in solution.keywords if keyword in text)
        if keyword_hits:
            components["keywords"] = keyword_hits * w.keyword
        if solution.storage_folder:
            components["storage_folder"] = w.storage_folder
        if folder in w.general_buckets:
            components["general_bucket"] = -w.general_bucket_penalty

        components.update(self._intent_adjustments(text, folder))

        return ScoredCandidate(
            solution=solution,
            folder=folder,
            score=sum(components.values()),
            matched_text=found.group(0),
            components=components,
        )

    def rank(self, text: str | None) -> list[ScoredCandidate]:
        """All matching solutions, best first; ties keep registration order."""
        normalized = normalize(text)
        if not normalized:
            return []

        candidates = [
            candidate
            for candidate in (self._score(solution, normalized) for solution in self.solutions)
            if candidate is not None
        ]
        # sorted() is stable, so equal scores keep registration order
        return sorted(candidates, key=lambda candidate: candidate.score, reverse=True)

    def resolve(self, text: str | None) -> CanonicalSolution | None:
        """Best-matching canonical solution, or None when nothing matched."""
        ranked = self.rank(text)
        if not ranked:
            return None

        best = ranked[0]
        logger.debug(
            "Resolved %r to %s (score=%d, components=%s)",
            text,
            best.solution.key,
            best.score,
            best.components,
        )
        return best.solution

    def by_securing(self, securing: str | None) -> CanonicalSolution | None:
        """Registered solution for a securing path stored on an earlier turn."""
        if not securing:
            return None
        return next((s for s in self.solutions if s.securing == securing), None)

    def resolve_folder(self, text: str | None) -> str | None:
        """Storage folder of the best match, or None when nothing matched."""
        solution = self.resolve(text)
        return solution.folder if solution else None
