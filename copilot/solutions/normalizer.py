"""Query text normalization.

Folds the many ways sales reps describe an installation into the canonical
vocabulary used by the solution registry and the storage taxonomy, e.g.
"roof mounted h-frame" -> "pipe frame attached", "two pipe" -> "2 pipe",
"retrofit" -> "existing".
"""

import re

_SEPARATORS = re.compile(r"[_/]+")
_DISALLOWED = re.compile(r"[^a-z0-9\s-]+")
_WHITESPACE = re.compile(r"\s+")

# Applied in order. Each rule must not match its own replacement, so that
# repeated passes converge.
SYNONYM_RULES: tuple[tuple[re.Pattern[str], str], ...] = tuple(
    (re.compile(pattern), replacement)
    for pattern, replacement in (
        # H-frame / attached pipe frame
        (r"\broof ?mounted h[- ]?frames?\b", "pipe frame attached"),
        (r"\battached pipe[- ]?frames?\b", "pipe frame attached"),
        (r"\bpipe-frames?\b", "pipe frame"),
        (r"\bh[- ]?frames?\b", "pipe frame"),
        # Snow retention
        (r"\btwo[- ]?pipe\b", "2 pipe"),
        (r"\b2-?pipe\b", "2 pipe"),
        (r"\bsnow ?guards?\b", "snow retention"),
        (r"\bunitized fences?\b", "unitized snow fence"),
        (r"\bfence panels?\b", "unitized snow fence"),
        (r"(?<!retention )(?<!unitized )(?<!2 pipe )\bsnow ?fences?\b", "snow retention snow fence"),
        # Existing / retrofit / tie-down language
        (r"\bexisting frame\b", "existing pipe frame"),
        (r"\bretro[- ]?fit(?:ted)?\b", "existing"),
        (r"\bre[- ]?secure(?:ment)?\b", "existing"),
        (r"\bre[- ]?tie\b", "existing tie-down"),
        (r"\btie[- ]?downs?\b", "tie-down"),
        (r"\bmechanical (?:existing )?tie-down\b", "hvac existing tie-down"),
        (r"(?<!existing )\btie-down\b", "existing tie-down"),
        # Guy wire kit naming
        (r"\bguy[- ]?wire kits?\b", "guy wire"),
        (r"\bguy-?wires?\b", "guy wire"),
        (r"\btighteners?\b", "turnbuckle"),
        # Screens and signage are handled alike
        (r"\b(?:equipment|rooftop) screens?\b(?! signage)", "equipment screen signage"),
        # Light / camera mounts
        (r"\b(?:flood|area) lights?\b", "light mount"),
        (r"\b(?:security|surveillance) cameras?\b", "camera mount"),
        # Satellite / antenna naming
        (r"\bsatellite antennas?\b", "satellite dish"),
        (r"\b(?:rf|communication) antennas?\b", "antenna"),
        # Weather station naming
        (r"\b(?:rooftop sensors?|monitoring stations?)\b", "weather station"),
        # Parapet implies a wall mount
        (r"(?<!wall )\bparapet\b", "wall parapet"),
    )
)

_MAX_PASSES = 4


def _clean(raw: str) -> str:
    text = raw.lower().strip()
    text = _SEPARATORS.sub(" ", text)
    text = _DISALLOWED.sub(" ", text)
    return _WHITESPACE.sub(" ", text).strip()


def _fold_synonyms(text: str) -> str:
    for pattern, replacement in SYNONYM_RULES:
        text = pattern.sub(replacement, text)
    return _WHITESPACE.sub(" ", text).strip()


def normalize(raw: str | None) -> str:
    """Canonicalize free-text query for matching.

    Args:
        raw: User text, may be empty or None.

    Returns:
        Lowercased, punctuation-stripped text with synonyms folded into
        canonical vocabulary. Idempotent: ``normalize(normalize(x)) == normalize(x)``.
    """
    if not raw:
        return ""

    text = _clean(str(raw))
    for _ in range(_MAX_PASSES):
        folded = _fold_synonyms(text)
        if folded == text:
            break
        text = folded
    return text
