"""Pure helpers for object-storage keys."""

import posixpath
import re
from enum import Enum

_QUOTES = re.compile(r"['\"]")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_EXTENSION = re.compile(r"\.[a-z0-9]+$", re.IGNORECASE)
_SEPARATOR_RUNS = re.compile(r"[-_]+")

_INTERNAL_MARKERS = ("/internal/", "/pricebook/", "/test/", "/test-reports/")


class DocType(str, Enum):
    SALES_SHEET = "sales_sheet"
    DATA_SHEET = "data_sheet"
    PRODUCT_DATA_SHEET = "product_data_sheet"
    INSTALL_MANUAL = "install_manual"
    INSTALL_SHEET = "install_sheet"
    INSTALL_VIDEO = "install_video"
    CAD_DWG = "cad_dwg"
    CAD_STEP = "cad_step"
    PRODUCT_DRAWING = "product_drawing"
    PRODUCT_IMAGE = "product_image"
    RENDER = "render"
    ASSET = "asset"
    UNKNOWN = "unknown"


class Visibility(str, Enum):
    PUBLIC = "public"
    INTERNAL = "internal"


def slugify(name: str | None) -> str:
    """Turn a product name into a folder slug: ``"Roof & Wall Box"`` -> ``"roof-and-wall-box"``."""
    text = str(name or "").strip().lower()
    text = text.replace("&", "and")
    text = _QUOTES.sub("", text)
    text = _NON_ALNUM.sub("-", text)
    return text.strip("-")


def normalize_prefix(prefix: str | None) -> str:
    """Strip whitespace and leading/trailing slashes."""
    return str(prefix or "").strip().strip("/")


def basename(path: str) -> str:
    return posixpath.basename(str(path or "").split("?", 1)[0])


def is_folder_like(path: str | None) -> bool:
    """True for empty paths, trailing-slash paths and basenames without an extension."""
    text = str(path or "").strip()
    if not text or text.endswith("/"):
        return True
    return "." not in basename(text)


def is_hidden(path: str) -> bool:
    """Dot-files such as ``.emptyFolderPlaceholder``."""
    return basename(path).startswith(".")


def doc_type_from_path(path: str) -> DocType:
    p = path.lower()

    # product-data-sheet must be tested before the generic data-sheet marker
    if "product-data-sheet" in p:
        return DocType.PRODUCT_DATA_SHEET
    if "sales-sheet" in p:
        return DocType.SALES_SHEET
    if "data-sheet" in p:
        return DocType.DATA_SHEET
    if "install-manual" in p:
        return DocType.INSTALL_MANUAL
    if "install-sheet" in p:
        return DocType.INSTALL_SHEET
    if "install-video" in p or p.endswith(".mp4"):
        return DocType.INSTALL_VIDEO
    if p.endswith(".dwg"):
        return DocType.CAD_DWG
    if p.endswith((".step", ".stp")):
        return DocType.CAD_STEP
    if "product-drawing" in p or p.endswith(".svg"):
        return DocType.PRODUCT_DRAWING
    if "product-image" in p:
        return DocType.PRODUCT_IMAGE
    if "render" in p:
        return DocType.RENDER
    if ".emptyfolderplaceholder" in p:
        return DocType.UNKNOWN
    return DocType.ASSET


def title_from_path(path: str) -> str:
    """``a/b/install-manual_v2.pdf`` -> ``Install Manual V2``."""
    stem = _EXTENSION.sub("", basename(path))
    words = _SEPARATOR_RUNS.sub(" ", stem).split()
    return " ".join(word[:1].upper() + word[1:] for word in words)


def visibility_from_path(path: str) -> Visibility:
    p = "/" + path.lower().lstrip("/")
    if any(marker in p for marker in _INTERNAL_MARKERS):
        return Visibility.INTERNAL
    return Visibility.PUBLIC


def is_safe_folder(folder: str) -> bool:
    """Reject traversal and absolute paths in user-supplied folders."""
    if not folder:
        return False
    return ".." not in folder and not folder.startswith("/") and "\\" not in folder
