"""Types for the canonical solution registry and slot-filling intake."""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from pydantic import BaseModel, Field

from copilot.solutions.normalizer import normalize


class AnchorType(str, Enum):
    """Default hardware class for a solution."""

    SERIES_2000 = "2000"
    SERIES_3000 = "3000"
    GUY_WIRE = "guy-wire"
    UNKNOWN = "unknown"


class DocKind(str, Enum):
    """Document kinds a solution can recommend."""

    SALES_SHEET = "sales_sheet"
    DATA_SHEET = "data_sheet"
    INSTALL_MANUAL = "install_manual"
    INSTALL_VIDEO = "install_video"
    CAD = "cad"
    SPEC = "spec"


# Free-text slot detection, run against normalized text
_MEMBRANE = re.compile(r"\b(tpo|pvc|epdm|kee|app|sbs|coatings?)\b")
_VARIANTS = (
    (re.compile(r"\bunitized\b"), "unitized"),
    (re.compile(r"\b2 pipe\b"), "2pipe"),
    (re.compile(r"\bexisting\b"), "existing"),
    (re.compile(r"\b(new|attached|new install(?:ation)?)\b"), "attached"),
)
_WALL = re.compile(r"\b(wall|parapet|vertical)\b")
_ROOF = re.compile(r"\b(roof|rooftop|roof deck)\b")
_ANCHOR_SERIES = re.compile(r"\b(2000|3000)(?: series)?\b")
_DOC_KINDS = (
    (re.compile(r"\bsales sheets?\b"), DocKind.SALES_SHEET),
    (re.compile(r"\bdata sheets?\b"), DocKind.DATA_SHEET),
    (re.compile(r"\binstall(?:ation)? (?:manuals?|guides?|instructions)\b"), DocKind.INSTALL_MANUAL),
    (re.compile(r"\b(?:install(?:ation)? )?videos?\b"), DocKind.INSTALL_VIDEO),
    (re.compile(r"\b(cad|dwg|step files?|drawings?)\b"), DocKind.CAD),
    (re.compile(r"\bspecs?\b|\bspecifications?\b"), DocKind.SPEC),
)


class IntakeState(BaseModel):
    """Answers accumulated for one conversation.

    Owned by a single conversation. Never share an instance between
    concurrent requests for different conversations.
    """

    securing: str | None = None
    membrane: str | None = None
    anchor_type: AnchorType | None = None
    mount_surface: str | None = None  # "roof" | "wall"
    variant: str | None = None  # "attached" | "existing" | "unitized" | "2pipe" ...
    desired_doc_kinds: list[DocKind] = Field(default_factory=list)

    def filled_slots(self) -> set[str]:
        """Names of slots that already hold an answer."""
        return {
            name
            for name, value in self.model_dump().items()
            if value not in (None, [], "")
        }

    def absorb(self, text: str | None) -> set[str]:
        """Fill missing slots from free text. Already-filled slots are kept.

        Returns:
            Names of the slots filled by this call.
        """
        normalized = normalize(text)
        if not normalized:
            return set()

        filled: set[str] = set()

        if self.membrane is None:
            membrane = _MEMBRANE.search(normalized)
            if membrane:
                self.membrane = membrane.group(1)
                filled.add("membrane")

        if self.variant is None:
            for pattern, variant in _VARIANTS:
                if pattern.search(normalized):
                    self.variant = variant
                    filled.add("variant")
                    break

        if self.mount_surface is None:
            if _WALL.search(normalized):
                self.mount_surface = "wall"
                filled.add("mount_surface")
            elif _ROOF.search(normalized):
                self.mount_surface = "roof"
                filled.add("mount_surface")

        if self.anchor_type is None:
            anchor = _ANCHOR_SERIES.search(normalized)
            if anchor:
                self.anchor_type = AnchorType(anchor.group(1))
                filled.add("anchor_type")

        if not self.desired_doc_kinds:
            kinds = [kind for pattern, kind in _DOC_KINDS if pattern.search(normalized)]
            if kinds:
                self.desired_doc_kinds = kinds
                filled.add("desired_doc_kinds")

        return filled


IntakeGuard = Callable[[IntakeState], bool]


@dataclass(frozen=True)
class AskStep:
    """A follow-up question, asked only while its guard reports the slot missing."""

    slot: str
    question: str
    guard: IntakeGuard
    options: tuple[str, ...] = ()


@dataclass(frozen=True)
class CanonicalSolution:
    """One class of rooftop installation task.

    Statically registered at start-up and never mutated.
    """

    key: str
    match: re.Pattern[str]
    securing: str
    anchor_type: AnchorType = AnchorType.UNKNOWN
    keywords: tuple[str, ...] = ()
    storage_folder: str | None = None
    recommended_doc_kinds: tuple[DocKind, ...] = ()
    ask_steps: tuple[AskStep, ...] = ()
    summary: str = ""

    @property
    def folder(self) -> str:
        """Storage folder: the explicit one, else derived from ``securing``."""
        if self.storage_folder:
            return self.storage_folder.strip().strip("/")
        return f"solutions/{self.securing.strip().strip('/')}"


@dataclass(frozen=True)
class ScoringWeights:
    """Heuristic scoring constants for the solution matcher.

    Tuned by trial; pinned by golden-output tests rather than derived.
    """

    match_length_cap: int = 34
    keyword: int = 6
    storage_folder: int = 14
    general_bucket_penalty: int = 12
    existing_bonus: int = 14
    existing_attached_penalty: int = 6
    attached_default_bonus: int = 4
    existing_default_penalty: int = 2
    wall_bonus: int = 12
    wall_roof_penalty: int = 3
    roof_bonus: int = 7
    guy_wire_bonus: int = 10
    box_bonus: int = 6
    stack_bonus: int = 6
    general_buckets: tuple[str, ...] = (
        "solutions/snow-retention",
        "solutions/elevated-stack",
        "solutions/roof-stairs-walkways",
        "solutions/roof-pipe",
    )


@dataclass(frozen=True)
class ScoredCandidate:
    """A matching solution with its score breakdown."""

    solution: CanonicalSolution
    folder: str
    score: int
    matched_text: str
    components: dict[str, int] = field(default_factory=dict)
