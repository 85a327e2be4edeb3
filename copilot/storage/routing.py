"""Static routing tables and candidate prefix generation for product folders."""

import re
from types import MappingProxyType
from typing import Mapping

from pydantic import BaseModel

from copilot.storage.paths import normalize_prefix, slugify

# Exact product-name overrides. When a product is listed here, only these
# prefixes are probed.
SPECIAL_PREFIXES_BY_NAME: Mapping[str, tuple[str, ...]] = MappingProxyType({
    # Solutions
    "2 Pipe Snow Fence": ("2pipe/2pipe", "solutions/snow-retention/2pipe", "solutions/2pipe/2pipe"),
    "Snow Fence": ("2pipe/snow-fence", "solutions/snow-retention/snow-fence", "solutions/2pipe/snow-fence"),
    "HVAC Tie Down": ("solutions/hvac",),
    "Roof Mounted Box": ("solutions/roof-box",),
    "Attached Pipe Frame": ("pipe-frame/attached", "solutions/pipe-frame/attached", "attached"),
    "Existing Pipe Frame": ("pipe-frame/existing", "solutions/pipe-frame/existing", "existing"),
    "Roof Mounted Guardrail": ("solutions/roof-guardrail",),
    "Wall Mounted Guardrail": ("solutions/wall-guardrail",),
    "Wall Mounted Box": ("solutions/wall-box",),
    # U-Anchors
    "U2000 KEE": ("anchor/u-anchors/u2000/kee",),
    "U2000 PVC": ("anchor/u-anchors/u2000/pvc",),
    "U2000 TPO": ("anchor/u-anchors/u2000/tpo",),
    "U2200 Plate": ("anchor/u-anchors/u2200/plate",),
    "U2400 EPDM": ("anchor/u-anchors/u2400/epdm",),
    "U2400 KEE": ("anchor/u-anchors/u2400/kee",),
    "U2400 PVC": ("anchor/u-anchors/u2400/pvc",),
    "U2400 TPO": ("anchor/u-anchors/u2400/tpo",),
    "U2600 APP": ("anchor/u-anchors/u2600/app",),
    "U2600 SBS": ("anchor/u-anchors/u2600/sbs",),
    "U2600 SBS Torch": ("anchor/u-anchors/u2600/sbs-torch",),
    "U2800 Coatings": ("anchor/u-anchors/u2800/coatings",),
    "U3200 Plate": ("anchor/u-anchors/u3200/plate",),
    # the bucket folder itself is spelled "edpm" for this series
    "U3400 EPDM": ("anchor/u-anchors/u3400/edpm",),
    "U3400 KEE": ("anchor/u-anchors/u3400/kee",),
    "U3400 PVC": ("anchor/u-anchors/u3400/pvc",),
    "U3400 TPO": ("anchor/u-anchors/u3400/tpo",),
    "U3600 APP": ("anchor/u-anchors/u3600/app",),
    "U3600 SBS": ("anchor/u-anchors/u3600/sbs",),
    "U3600 SBS Torch": ("anchor/u-anchors/u3600/sbs-torch",),
    "U3800 Coatings": ("anchor/u-anchors/u3800/coatings",),
})

SERIES_ROOTS_BY_SERIES: Mapping[str, tuple[str, ...]] = MappingProxyType({
    "HVAC": ("solutions/hvac",),
    "HVAC Solutions": ("solutions/hvac",),
    "Snow Retention": ("2pipe", "solutions/snow-retention", "solutions/2pipe"),
    "Snow Retention Solutions": ("2pipe", "solutions/snow-retention", "solutions/2pipe"),
    "2 Pipe": ("2pipe", "solutions/snow-retention", "solutions/2pipe"),
    "U-Anchors": ("anchor/u-anchors",),
    "U Anchors": ("anchor/u-anchors",),
    "Anchors": ("anchor",),
})

SECTION_ROOTS: Mapping[str, str] = MappingProxyType({
    "solution": "solutions",
    "solutions": "solutions",
    "anchor": "anchor",
    "anchors": "anchor",
    "internal": "internal",
    "internal_assets": "internal",
})

_OVERRIDES_BY_LOWER_NAME: Mapping[str, str] = MappingProxyType(
    {name.lower(): name for name in SPECIAL_PREFIXES_BY_NAME}
)

# Only anchor products are detected in free text; solution topics such as
# "snow fence" go through the solution matcher instead.
# Longest names first so "U2600 SBS Torch" wins over "U2600 SBS".
_NAME_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = tuple(
    (
        name,
        re.compile(r"(?:^|-)" + re.escape(slugify(name)) + r"(?:-|$)"),
    )
    for name in sorted(SPECIAL_PREFIXES_BY_NAME, key=len, reverse=True)
    if all(prefix.startswith("anchor/") for prefix in SPECIAL_PREFIXES_BY_NAME[name])
)


class Product(BaseModel):
    """A catalogue product as far as folder routing is concerned."""

    name: str
    series: str | None = None
    section: str | None = None


def _dedupe(prefixes: list[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for prefix in prefixes:
        clean = normalize_prefix(prefix)
        if clean and clean not in seen:
            seen.add(clean)
            out.append(clean)
    return out


def override_prefixes(name: str) -> tuple[str, ...]:
    """Override prefixes for a product name, matched case-insensitively."""
    canonical = _OVERRIDES_BY_LOWER_NAME.get(name.strip().lower())
    return SPECIAL_PREFIXES_BY_NAME[canonical] if canonical else ()


def candidate_prefixes(product: Product) -> list[str]:
    """Ordered, de-duplicated storage prefixes to probe for a product."""
    overrides = override_prefixes(product.name)
    if overrides:
        return _dedupe(list(overrides))

    slug = slugify(product.name)
    if not slug:
        return []

    prefixes: list[str] = []

    for root in SERIES_ROOTS_BY_SERIES.get((product.series or "").strip(), ()):
        prefixes.append(f"{root}/{slug}")
        prefixes.append(f"{root}/{slug}/{slug}")

    section_root = SECTION_ROOTS.get((product.section or "").strip().lower())
    if section_root:
        prefixes.append(f"{section_root}/{slug}")
        prefixes.append(f"{section_root}/{slug}/{slug}")

    prefixes.append(slug)
    prefixes.append(f"{slug}/{slug}")

    return _dedupe(prefixes)


def match_product_name(text: str | None) -> str | None:
    """Find an anchor product named in free text, e.g. ``"U2400 EPDM install manual"``."""
    slug = slugify(text)
    if not slug:
        return None
    for name, pattern in _NAME_PATTERNS:
        if pattern.search(slug):
            return name
    return None
