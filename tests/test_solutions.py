"""Tests for the canonical solution taxonomy.

Covers:
1. Query normalization
2. Solution matching (golden outputs pin the scoring constants)
3. Registry validation
4. Slot-filling intake
"""

import re

import pytest

from copilot.core.exceptions import ConfigurationError
from copilot.solutions import (
    AnchorType,
    CanonicalSolution,
    DocKind,
    IntakeState,
    SolutionMatcher,
    build_default_registry,
    is_complete,
    next_question,
    normalize,
    start_intake,
)
from copilot.solutions.registry import validate_registry


@pytest.fixture(scope="module")
def registry():
    return build_default_registry()


@pytest.fixture(scope="module")
def matcher(registry):
    return SolutionMatcher(registry)


def _by_key(registry, key: str) -> CanonicalSolution:
    return next(solution for solution in registry if solution.key == key)


# =============================================================================
# Normalizer Tests
# =============================================================================


class TestNormalize:
    """Test suite for query normalization."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("Roof Mounted H-Frame", "pipe frame attached"),
            ("attached pipe-frames", "pipe frame attached"),
            ("two pipe snow fence", "2 pipe snow fence"),
            ("Retrofit RTU", "existing rtu"),
            ("guy-wire kit", "guy wire"),
            ("parapet box", "wall parapet box"),
        ],
    )
    def test_synonyms_fold_to_canonical_vocabulary(self, raw, expected):
        assert normalize(raw) == expected

    @pytest.mark.parametrize(
        "raw",
        [
            "Roof mounted h-frame existing",
            "HVAC tie down on a TPO roof",
            "snow guard / snow fence for a parapet",
            "  Need the U2400 EPDM install manual!!  ",
            "re-secure existing frame with guy wires",
        ],
    )
    def test_idempotent(self, raw):
        once = normalize(raw)
        assert normalize(once) == once

    def test_tie_down_gains_existing_once(self):
        assert normalize("hvac tie down") == "hvac existing tie-down"
        assert normalize("hvac existing tie-down") == "hvac existing tie-down"

    def test_punctuation_and_case_stripped(self):
        assert normalize("  Solar_Racking / RAILS?! ") == "solar racking rails"

    @pytest.mark.parametrize("raw", ["", None, "   ", "!!!"])
    def test_empty_input(self, raw):
        assert normalize(raw) == ""


# =============================================================================
# Matcher Tests
# =============================================================================


class TestSolutionMatcher:
    """Golden scoring scenarios for the solution matcher."""

    @pytest.mark.parametrize(
        "query, expected_key, expected_folder",
        [
            ("pipe frame attached", "pipe-frame-attached", "solutions/pipe-frame/attached"),
            ("roof mounted h-frame existing", "pipe-frame-existing", "solutions/pipe-frame/existing"),
            ("existing pipe frame", "pipe-frame-existing", "solutions/pipe-frame/existing"),
            ("unitized snow fence", "unitized-snow-fence", "solutions/snow-retention/unitized-snow-fence"),
            ("2 pipe snow fence", "2-pipe-snow-fence", "solutions/snow-retention/2pipe"),
            ("HVAC tie down", "hvac-tie-down", "solutions/hvac"),
        ],
    )
    def test_golden_resolution(self, matcher, query, expected_key, expected_folder):
        solution = matcher.resolve(query)

        assert solution is not None
        assert solution.key == expected_key
        assert matcher.resolve_folder(query) == expected_folder

    def test_attached_outscores_existing_by_default(self, matcher):
        ranked = {c.solution.key: c for c in matcher.rank("pipe frame attached")}

        assert ranked["pipe-frame-attached"].score == 49
        assert ranked["pipe-frame-existing"].score == 28
        assert ranked["pipe-frame-attached"].components["attached_default"] == 4

    def test_existing_intent_flips_pipe_frame(self, matcher):
        ranked = {c.solution.key: c for c in matcher.rank("roof mounted h-frame existing")}

        assert ranked["pipe-frame-existing"].score == 50
        assert ranked["pipe-frame-attached"].score == 39
        assert ranked["pipe-frame-attached"].components["existing"] == -6

    def test_general_bucket_penalized(self, matcher):
        ranked = {c.solution.key: c for c in matcher.rank("unitized snow fence")}

        assert ranked["unitized-snow-fence"].score == 45
        assert ranked["snow-retention"].score == 10
        assert ranked["snow-retention"].components["general_bucket"] == -12

    def test_rank_is_sorted_best_first(self, matcher):
        scores = [c.score for c in matcher.rank("existing pipe frame")]
        assert scores == sorted(scores, reverse=True)

    def test_deterministic(self, matcher):
        first = [(c.solution.key, c.score) for c in matcher.rank("roof mounted h-frame existing")]
        for _ in range(5):
            again = [(c.solution.key, c.score) for c in matcher.rank("roof mounted h-frame existing")]
            assert again == first

    def test_by_securing(self, matcher):
        assert matcher.by_securing("pipe-frame/existing").key == "pipe-frame-existing"
        assert matcher.by_securing("snow-retention").key == "snow-retention"
        assert matcher.by_securing("unknown") is None
        assert matcher.by_securing(None) is None

    @pytest.mark.parametrize("query", ["U2400 EPDM install manual", "", None, "hello there"])
    def test_no_match_returns_none(self, matcher, query):
        assert matcher.resolve(query) is None
        assert matcher.resolve_folder(query) is None
        assert matcher.rank(query) == []

    def test_ties_keep_registration_order(self):
        first = CanonicalSolution(key="first", match=re.compile(r"\bwidget\b"), securing="first")
        second = CanonicalSolution(key="second", match=re.compile(r"\bwidget\b"), securing="second")

        assert SolutionMatcher([first, second]).resolve("widget").key == "first"
        assert SolutionMatcher([second, first]).resolve("widget").key == "second"

    def test_reduced_registry(self, registry):
        reduced = SolutionMatcher([_by_key(registry, "pipe-frame-attached")])

        assert reduced.resolve("existing pipe frame").key == "pipe-frame-attached"
        assert reduced.resolve("unitized snow fence") is None


# =============================================================================
# Registry Tests
# =============================================================================


class TestRegistry:
    """Test suite for the static solution catalogue."""

    def test_keys_unique(self, registry):
        keys = [solution.key for solution in registry]
        assert len(keys) == len(set(keys))

    def test_every_solution_has_folder(self, registry):
        for solution in registry:
            assert solution.folder
            assert not solution.folder.startswith("/")
            assert not solution.folder.endswith("/")

    def test_folder_derived_from_securing(self, registry):
        assert _by_key(registry, "solar").folder == "solutions/solar"
        assert _by_key(registry, "roof-mounted-box").folder == "solutions/roof-box"

    def test_duplicate_keys_rejected(self, registry):
        solar = _by_key(registry, "solar")

        with pytest.raises(ConfigurationError) as exc_info:
            validate_registry((solar, solar))

        assert exc_info.value.details == {"key": "solar"}

    def test_missing_folder_rejected(self):
        broken = CanonicalSolution(key="broken", match=re.compile("x"), securing="")

        with pytest.raises(ConfigurationError):
            validate_registry((broken,))


# =============================================================================
# Intake Tests
# =============================================================================


class TestIntake:
    """Test suite for slot-filling intake."""

    def test_absorb_fills_slots_from_text(self):
        state = IntakeState()

        filled = state.absorb("Need the TPO install manual for an existing wall box")

        assert filled == {"membrane", "variant", "mount_surface", "desired_doc_kinds"}
        assert state.membrane == "tpo"
        assert state.variant == "existing"
        assert state.mount_surface == "wall"
        assert state.desired_doc_kinds == [DocKind.INSTALL_MANUAL]

    def test_absorb_keeps_existing_answers(self):
        state = IntakeState(membrane="pvc")

        filled = state.absorb("epdm roof with 3000 series anchors")

        assert state.membrane == "pvc"
        assert state.anchor_type is AnchorType.SERIES_3000
        assert state.mount_surface == "roof"
        assert "membrane" not in filled

    def test_absorb_empty_text(self):
        state = IntakeState()
        assert state.absorb("") == set()
        assert state.filled_slots() == set()

    def test_start_intake_seeds_from_solution(self, registry):
        state = start_intake(_by_key(registry, "unitized-snow-fence"))

        assert state.securing == "snow-retention/unitized-snow-fence"
        assert state.anchor_type is AnchorType.SERIES_3000

    def test_start_intake_skips_unknown_anchor(self, registry):
        state = start_intake(_by_key(registry, "snow-retention"))

        assert state.securing == "snow-retention"
        assert state.anchor_type is None

    def test_start_intake_does_not_clobber(self, registry):
        state = start_intake(
            _by_key(registry, "solar"),
            IntakeState(securing="custom", anchor_type=AnchorType.SERIES_3000),
        )

        assert state.securing == "custom"
        assert state.anchor_type is AnchorType.SERIES_3000

    def test_questions_asked_in_order_until_complete(self, registry):
        solution = _by_key(registry, "snow-retention")
        state = start_intake(solution)

        assert next_question(solution, state).slot == "variant"
        state.variant = "unitized"
        assert next_question(solution, state).slot == "membrane"
        state.membrane = "tpo"
        assert next_question(solution, state).slot == "desired_doc_kinds"
        state.desired_doc_kinds = [DocKind.SALES_SHEET]

        assert next_question(solution, state) is None
        assert is_complete(solution, state)

    def test_answered_question_never_reasked(self, registry):
        solution = _by_key(registry, "hvac-tie-down")
        state = start_intake(solution)
        state.absorb("existing rtu on epdm")

        step = next_question(solution, state)

        assert step is not None
        assert step.slot == "desired_doc_kinds"
