"""Canonical solution catalogue.

Patterns run against normalized text (see ``normalizer``), so they only need
to recognize canonical vocabulary: lowercase, hyphens kept, synonyms folded.
Registration order matters: it breaks score ties (first wins).
"""

import re

from copilot.core.exceptions import ConfigurationError
from copilot.solutions.models import (
    AnchorType,
    AskStep,
    CanonicalSolution,
    DocKind,
    IntakeState,
)


# -------------------------------------------------------------------------
# Ask-step guards: True while the slot is still missing
# -------------------------------------------------------------------------


def needs_membrane(state: IntakeState) -> bool:
    return state.membrane is None


def needs_variant(state: IntakeState) -> bool:
    return state.variant is None


def needs_mount_surface(state: IntakeState) -> bool:
    return state.mount_surface is None


def needs_anchor_type(state: IntakeState) -> bool:
    return state.anchor_type is None


def needs_doc_kinds(state: IntakeState) -> bool:
    return not state.desired_doc_kinds


ASK_MEMBRANE = AskStep(
    slot="membrane",
    question="What roof membrane is on the project (TPO, PVC, EPDM, KEE, APP, SBS or coatings)?",
    guard=needs_membrane,
    options=("tpo", "pvc", "epdm", "kee", "app", "sbs", "coatings"),
)

ASK_EXISTING = AskStep(
    slot="variant",
    question="Is this a new installation or are you re-securing existing equipment?",
    guard=needs_variant,
    options=("attached", "existing"),
)

ASK_SNOW_VARIANT = AskStep(
    slot="variant",
    question="Is it a unitized snow fence or a 2 pipe snow fence?",
    guard=needs_variant,
    options=("unitized", "2pipe"),
)

ASK_MOUNT_SURFACE = AskStep(
    slot="mount_surface",
    question="Is it mounted on the roof deck or on a wall/parapet?",
    guard=needs_mount_surface,
    options=("roof", "wall"),
)

ASK_ANCHOR_TYPE = AskStep(
    slot="anchor_type",
    question="Do you already know which anchor series you want (2000 or 3000)?",
    guard=needs_anchor_type,
    options=(AnchorType.SERIES_2000.value, AnchorType.SERIES_3000.value),
)

ASK_DOC_KINDS = AskStep(
    slot="desired_doc_kinds",
    question="Which documents do you need: sales sheet, data sheet, install manual or CAD?",
    guard=needs_doc_kinds,
    options=tuple(kind.value for kind in DocKind),
)

_BASIC_STEPS = (ASK_MEMBRANE, ASK_DOC_KINDS)
_SURFACE_STEPS = (ASK_MEMBRANE, ASK_MOUNT_SURFACE, ASK_DOC_KINDS)
_EXISTING_STEPS = (ASK_MEMBRANE, ASK_EXISTING, ASK_DOC_KINDS)

_SALES_DOCS = (DocKind.SALES_SHEET, DocKind.DATA_SHEET, DocKind.INSTALL_MANUAL)
_FULL_DOCS = (DocKind.SALES_SHEET, DocKind.DATA_SHEET, DocKind.INSTALL_MANUAL, DocKind.CAD)


def _p(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern)


def build_default_registry() -> tuple[CanonicalSolution, ...]:
    """Build the immutable catalogue injected into the matcher at start-up."""
    solutions = (
        CanonicalSolution(
            key="solar",
            match=_p(r"\b(solar|pv|photovoltaic|panels?|arrays?|racking|racks?|rails?)\b"),
            securing="solar",
            anchor_type=AnchorType.SERIES_2000,
            keywords=("solar", "racking", "rail"),
            recommended_doc_kinds=_SALES_DOCS,
            ask_steps=_BASIC_STEPS,
            summary=(
                "Solar racking is typically supported with membrane-compatible rooftop "
                "attachments. Installations commonly use 2000-series anchors paired with "
                "strut or rail systems, matched to the roof membrane."
            ),
        ),
        CanonicalSolution(
            key="2-pipe-snow-fence",
            match=_p(r"\b2 pipe(?: snow)?(?: retention)?(?: snow)? fences?\b|\b2 pipe\b"),
            securing="snow-retention/2pipe",
            anchor_type=AnchorType.SERIES_2000,
            keywords=("2 pipe", "fence", "splice"),
            storage_folder="solutions/snow-retention/2pipe",
            recommended_doc_kinds=_FULL_DOCS,
            ask_steps=_BASIC_STEPS,
            summary=(
                "2 pipe snow fence is supported by a continuous, non-penetrating rooftop "
                "attachment approach using 2000-series anchors with piping and splices."
            ),
        ),
        CanonicalSolution(
            key="snow-retention",
            match=_p(r"\bsnow (?:fences?|retention)\b"),
            securing="snow-retention",
            keywords=("snow", "retention", "fence"),
            recommended_doc_kinds=_SALES_DOCS,
            ask_steps=(ASK_SNOW_VARIANT, ASK_MEMBRANE, ASK_DOC_KINDS),
            summary=(
                "Snow fence systems manage snow accumulation and shedding. Unitized systems "
                "typically use 3000-series anchors with framing; 2 pipe systems commonly use "
                "2000-series anchors with piping and splices."
            ),
        ),
        CanonicalSolution(
            key="unitized-snow-fence",
            match=_p(r"\bunitized(?: snow)? fences?\b"),
            securing="snow-retention/unitized-snow-fence",
            anchor_type=AnchorType.SERIES_3000,
            keywords=("unitized", "fence"),
            storage_folder="solutions/snow-retention/unitized-snow-fence",
            recommended_doc_kinds=_FULL_DOCS,
            ask_steps=_BASIC_STEPS,
            summary=(
                "Unitized snow fence is supported with rigid rooftop framing for new "
                "installations, commonly 3000-series anchors paired with structural framing."
            ),
        ),
        CanonicalSolution(
            key="roof-mounted-box",
            match=_p(r"\b(roof ?mounted box(?:es)?|roof box(?:es)?|rooftop box(?:es)?|enclosures? on the roof)\b"),
            securing="roof-box",
            anchor_type=AnchorType.SERIES_2000,
            keywords=("box", "enclosure"),
            storage_folder="solutions/roof-box",
            recommended_doc_kinds=_SALES_DOCS,
            ask_steps=_BASIC_STEPS,
            summary=(
                "Roof mounted boxes are secured with non-penetrating attachment points, "
                "commonly 2000-series anchors with strut framing."
            ),
        ),
        CanonicalSolution(
            key="electrical-disconnect",
            match=_p(r"\b((?:electrical|ac|service) disconnects?|disconnect switch(?:es)?)\b"),
            securing="electrical-disconnect",
            anchor_type=AnchorType.SERIES_2000,
            keywords=("disconnect", "electrical"),
            recommended_doc_kinds=_SALES_DOCS,
            ask_steps=_SURFACE_STEPS,
            summary=(
                "Rooftop electrical disconnects are kept elevated and serviceable with "
                "2000-series anchors and strut framing."
            ),
        ),
        CanonicalSolution(
            key="wall-mounted-box",
            match=_p(r"\b(wall ?mounted box(?:es)?|wall box(?:es)?|vertical ?mounted box(?:es)?|wall enclosures?)\b"),
            securing="wall-box",
            anchor_type=AnchorType.SERIES_3000,
            keywords=("wall", "box", "enclosure"),
            storage_folder="solutions/wall-box",
            recommended_doc_kinds=_SALES_DOCS,
            ask_steps=_BASIC_STEPS,
            summary=(
                "Wall mounted boxes use a stable mounting point at the roof-to-wall "
                "interface, commonly 3000-series anchors with strut framing."
            ),
        ),
        CanonicalSolution(
            key="roof-pipe",
            match=_p(r"\b(roof pipe securement|pipe securement|rooftop pip(?:e|ing)|piping supports?|pipe supports?)\b"),
            securing="roof-pipe",
            anchor_type=AnchorType.SERIES_3000,
            keywords=("pipe", "piping"),
            recommended_doc_kinds=_SALES_DOCS,
            ask_steps=_EXISTING_STEPS,
            summary=(
                "Rooftop piping is supported with attachment points that distribute loads "
                "and allow movement, commonly 3000-series anchors."
            ),
        ),
        CanonicalSolution(
            key="duct-securement",
            match=_p(r"\b(duct(?:work)? securement|duct(?:work)? supports?|rooftop ducts?|ductwork)\b"),
            securing="duct-securement",
            anchor_type=AnchorType.SERIES_3000,
            keywords=("duct", "ductwork"),
            recommended_doc_kinds=_SALES_DOCS,
            ask_steps=_EXISTING_STEPS,
            summary=(
                "Rooftop ductwork is secured with non-penetrating attachment points paired "
                "with framing components."
            ),
        ),
        CanonicalSolution(
            key="pipe-frame-attached",
            match=_p(r"\b(pipe frame attached|pipe frames?)\b"),
            securing="pipe-frame/attached",
            anchor_type=AnchorType.SERIES_3000,
            keywords=("pipe frame", "attached"),
            storage_folder="solutions/pipe-frame/attached",
            recommended_doc_kinds=_FULL_DOCS,
            ask_steps=_BASIC_STEPS,
            summary=(
                "Roof mounted H-frames span between membrane-integrated attachment points, "
                "commonly 3000-series anchors with strut framing."
            ),
        ),
        CanonicalSolution(
            key="pipe-frame-existing",
            match=_p(r"\b(existing (?:pipe frames?|piping|pipe|ductwork|duct)|pipe frames?)\b"),
            securing="pipe-frame/existing",
            anchor_type=AnchorType.SERIES_2000,
            keywords=("pipe frame", "existing", "tie-down"),
            storage_folder="solutions/pipe-frame/existing",
            recommended_doc_kinds=_SALES_DOCS,
            ask_steps=_BASIC_STEPS,
            summary=(
                "Existing pipe, duct and frame systems are stabilized with tie-down "
                "solutions rather than replacement framing: a guy wire kit paired with "
                "2000-series anchors."
            ),
        ),
        CanonicalSolution(
            key="hvac-tie-down",
            match=_p(r"\b(hvac(?: existing)? tie-downs?|rtu(?: existing)? tie-downs?|rooftop units?|rtus?|hvac)\b"),
            securing="hvac",
            anchor_type=AnchorType.GUY_WIRE,
            keywords=("hvac", "rtu", "tie-down"),
            storage_folder="solutions/hvac",
            recommended_doc_kinds=_SALES_DOCS,
            ask_steps=_EXISTING_STEPS,
            summary=(
                "Existing mechanical equipment is stabilized with a guy wire kit paired "
                "with 2000-series anchors, without a full reframe."
            ),
        ),
        CanonicalSolution(
            key="elevated-stack",
            match=_p(r"\b(elevated stacks?|exhaust stacks?|stacks?)\b"),
            securing="elevated-stack",
            keywords=("stack", "elevated"),
            recommended_doc_kinds=_SALES_DOCS,
            ask_steps=(ASK_MOUNT_SURFACE, ASK_MEMBRANE, ASK_DOC_KINDS),
            summary=(
                "Elevated stacks are stabilized with tie-down solutions on the roof or "
                "supported with strut framing at the wall."
            ),
        ),
        CanonicalSolution(
            key="roof-mounted-elevated-stack",
            match=_p(
                r"\b(roof ?mounted (?:elevated )?stacks?|rooftop (?:elevated )?stacks?"
                r"|roof exhaust stacks?)\b"
            ),
            securing="elevated-stack/roof-stack",
            anchor_type=AnchorType.GUY_WIRE,
            keywords=("stack", "roof", "guy wire"),
            storage_folder="solutions/elevated-stack/roof-stack",
            recommended_doc_kinds=_SALES_DOCS,
            ask_steps=_BASIC_STEPS,
            summary=(
                "Roof mounted elevated stacks use a guy wire kit paired with 2000-series "
                "anchors instead of rigid framing."
            ),
        ),
        CanonicalSolution(
            key="wall-mounted-elevated-stack",
            match=_p(
                r"\b(wall ?mounted (?:elevated )?stacks?|vertical (?:exhaust )?stacks? (?:at|on) (?:the )?wall"
                r"|stacks? (?:on|at) (?:the )?wall)\b"
            ),
            securing="elevated-stack/wall-stack",
            anchor_type=AnchorType.SERIES_2000,
            keywords=("stack", "wall"),
            storage_folder="solutions/elevated-stack/wall-stack",
            recommended_doc_kinds=_SALES_DOCS,
            ask_steps=_BASIC_STEPS,
            summary=(
                "Wall mounted elevated stacks are supported at the roof-to-wall transition "
                "with 2000-series anchors and strut framing."
            ),
        ),
        CanonicalSolution(
            key="lightning-protection",
            match=_p(r"\b(lightning (?:protection|systems?|conductors?|cables?)|air terminals?)\b"),
            securing="lightning-protection",
            anchor_type=AnchorType.SERIES_2000,
            keywords=("lightning", "conductor"),
            recommended_doc_kinds=_SALES_DOCS,
            ask_steps=_BASIC_STEPS,
            summary=(
                "Lightning protection conductors are secured with membrane-compatible "
                "2000-series anchors without penetrating the roof."
            ),
        ),
        CanonicalSolution(
            key="antenna",
            match=_p(r"\b((?:radio |cell |communications )?antennas?)\b"),
            securing="antenna",
            anchor_type=AnchorType.GUY_WIRE,
            keywords=("antenna", "guy wire"),
            recommended_doc_kinds=_SALES_DOCS,
            ask_steps=_BASIC_STEPS,
            summary=(
                "Antennas are stabilized with a guy wire kit paired with 2000-series anchors."
            ),
        ),
        CanonicalSolution(
            key="satellite-dish",
            match=_p(r"\b((?:satellite|sat) dish(?:es)?|dish mounts?)\b"),
            securing="satellite-dish",
            anchor_type=AnchorType.SERIES_2000,
            keywords=("satellite", "dish"),
            recommended_doc_kinds=_SALES_DOCS,
            ask_steps=_BASIC_STEPS,
            summary=(
                "Satellite dishes are secured with 2000-series anchors matched to the membrane."
            ),
        ),
        CanonicalSolution(
            key="weather-station",
            match=_p(r"\b((?:weather|meteorological) stations?|anemometers?|wind sensors?|roof weather)\b"),
            securing="weather-station",
            anchor_type=AnchorType.GUY_WIRE,
            keywords=("weather", "station", "guy wire"),
            recommended_doc_kinds=_SALES_DOCS,
            ask_steps=_BASIC_STEPS,
            summary=(
                "Weather stations are stabilized with a guy wire kit paired with "
                "2000-series anchors."
            ),
        ),
        CanonicalSolution(
            key="guy-wire-kit",
            match=_p(r"\b(guy wires?(?: kits?)?|tie-down kits?|wire tie-down)\b"),
            securing="guy-wire",
            anchor_type=AnchorType.GUY_WIRE,
            keywords=("guy wire", "turnbuckle", "tie-down"),
            storage_folder="solutions/guy-wire",
            recommended_doc_kinds=_FULL_DOCS,
            ask_steps=_BASIC_STEPS,
            summary=(
                "Guy wire kits pair with 2000-series anchors and include wire, brackets, "
                "tensioning hardware and clips for tie-down applications."
            ),
        ),
        CanonicalSolution(
            key="equipment-screen",
            match=_p(r"\b((?:equipment|mechanical|mech) screens?|screen walls?)\b"),
            securing="equipment-screen",
            anchor_type=AnchorType.SERIES_2000,
            keywords=("screen", "signage"),
            recommended_doc_kinds=_SALES_DOCS,
            ask_steps=_BASIC_STEPS,
            summary=(
                "Equipment screens use a non-penetrating rooftop framing system, commonly "
                "2000-series anchors paired with strut framing."
            ),
        ),
        CanonicalSolution(
            key="signage",
            match=_p(r"\b(signage|(?:roof|building) signs?|sign (?:frames?|supports?|mounts?))\b"),
            securing="signage",
            anchor_type=AnchorType.SERIES_2000,
            keywords=("sign", "signage"),
            recommended_doc_kinds=_SALES_DOCS,
            ask_steps=_BASIC_STEPS,
            summary=(
                "Signage is stabilized with 2000-series anchors in a configuration similar "
                "to equipment screens."
            ),
        ),
        CanonicalSolution(
            key="light-mount",
            match=_p(r"\b(light mounts?|light poles?|lighting mounts?)\b"),
            securing="light-mount",
            anchor_type=AnchorType.SERIES_3000,
            keywords=("light", "mount"),
            recommended_doc_kinds=_SALES_DOCS,
            ask_steps=_BASIC_STEPS,
            summary=(
                "Light mounts use 3000-series anchors for rigid, long-term support of "
                "elevated fixtures."
            ),
        ),
        CanonicalSolution(
            key="camera-mount",
            match=_p(r"\b(camera mounts?|cameras?|cctv)\b"),
            securing="camera-mount",
            anchor_type=AnchorType.SERIES_3000,
            keywords=("camera", "mount"),
            recommended_doc_kinds=_SALES_DOCS,
            ask_steps=_BASIC_STEPS,
            summary="Camera mounts use 3000-series anchors matched to the roof membrane.",
        ),
        CanonicalSolution(
            key="roof-mounted-guardrail",
            match=_p(r"\b(roof ?mounted guardrails?|rooftop guardrails?|guardrails? (?:on|for) (?:the )?roof)\b"),
            securing="roof-guardrail",
            anchor_type=AnchorType.SERIES_3000,
            keywords=("guardrail", "roof"),
            storage_folder="solutions/roof-guardrail",
            recommended_doc_kinds=_FULL_DOCS,
            ask_steps=_BASIC_STEPS,
            summary=(
                "Roof mounted guardrails use 3000-series anchors for a stable, watertight "
                "connection supporting rooftop safety."
            ),
        ),
        CanonicalSolution(
            key="wall-mounted-guardrail",
            match=_p(
                r"\b(wall ?mounted guardrails?|guardrails? (?:on|for) (?:the )?wall"
                r"|wall parapet guardrails?)\b"
            ),
            securing="wall-guardrail",
            anchor_type=AnchorType.SERIES_3000,
            keywords=("guardrail", "wall", "parapet"),
            storage_folder="solutions/wall-guardrail",
            recommended_doc_kinds=_FULL_DOCS,
            ask_steps=_BASIC_STEPS,
            summary=(
                "Wall mounted guardrails transfer loads into the wall structure with "
                "3000-series anchors."
            ),
        ),
        CanonicalSolution(
            key="roof-ladder",
            match=_p(r"\b(roof ladders?|ladder (?:supports?|mounts?|brackets?))\b"),
            securing="roof-ladder",
            anchor_type=AnchorType.SERIES_3000,
            keywords=("ladder",),
            recommended_doc_kinds=_SALES_DOCS,
            ask_steps=_BASIC_STEPS,
            summary=(
                "Roof ladders are secured with 3000-series anchors and adjustable support "
                "components."
            ),
        ),
        CanonicalSolution(
            key="roof-stairs-walkways",
            match=_p(r"\b(roof (?:stairs|walkways?)|crossovers?|roof steps)\b"),
            securing="roof-stairs-walkways",
            anchor_type=AnchorType.SERIES_3000,
            keywords=("stairs", "walkway", "crossover"),
            recommended_doc_kinds=_SALES_DOCS,
            ask_steps=_BASIC_STEPS,
            summary=(
                "Roof stairs and crossovers are supported with membrane-integrated "
                "3000-series attachment points."
            ),
        ),
        CanonicalSolution(
            key="exhaust-system",
            match=_p(r"\b(exhaust (?:systems?|fans?)|ventilation exhaust|roof exhausts?|vent stacks?)\b"),
            securing="exhaust-system",
            keywords=("exhaust", "fan", "vent"),
            recommended_doc_kinds=_SALES_DOCS,
            ask_steps=_BASIC_STEPS,
            summary=(
                "Rooftop exhaust equipment is stabilized with membrane-matched attachment "
                "points paired with appropriate support components."
            ),
        ),
    )

    validate_registry(solutions)
    return solutions


def validate_registry(solutions: tuple[CanonicalSolution, ...]) -> None:
    """Reject registries with duplicate keys or empty folders.

    Raises:
        ConfigurationError: If the registry is inconsistent.
    """
    seen: set[str] = set()
    for solution in solutions:
        if solution.key in seen:
            raise ConfigurationError(
                f"Duplicate canonical solution key: {solution.key}",
                details={"key": solution.key},
            )
        seen.add(solution.key)
        if not solution.securing and not solution.storage_folder:
            raise ConfigurationError(
                f"Solution {solution.key} has neither securing nor storage folder",
                details={"key": solution.key},
            )
