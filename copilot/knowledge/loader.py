"""Markdown document loader for knowledge ingestion.

Each file may start with a simple front-matter block of ``key: value``
lines between ``---`` markers::

    ---
    category: install
    product_tags: U2400 EPDM, U2400 TPO
    audience: external
    ---
    # U2400 install notes
"""

import re
from pathlib import Path

from pydantic import BaseModel, Field

from copilot.models.knowledge import Audience

_FRONT_MATTER = re.compile(r"^---\n(.*?)\n---\n?", re.DOTALL)
_H1 = re.compile(r"^#\s+(.+?)\s*$", re.MULTILINE)

_LIST_FIELDS = {"product_tags"}


class SourceDocument(BaseModel):
    """A document ready to be chunked and embedded."""

    title: str
    content: str
    source: str = Field(..., description="Source filename or origin")
    source_type: str = "markdown"
    category: str | None = None
    series: str | None = None
    membrane: str | None = None
    solution_slug: str | None = None
    product_tags: list[str] = Field(default_factory=list)
    audience: Audience = Audience.BOTH
    created_by: str | None = None
    source_session_id: str | None = None


def _parse_front_matter(raw: str) -> tuple[dict[str, object], str]:
    match = _FRONT_MATTER.match(raw)
    if not match:
        return {}, raw

    meta: dict[str, object] = {}
    for line in match.group(1).splitlines():
        if ":" not in line:
            continue
        key, value = line.split(":", 1)
        key = key.strip().lower()
        value = value.strip()
        if key in _LIST_FIELDS:
            meta[key] = [item.strip() for item in value.split(",") if item.strip()]
        elif value:
            meta[key] = value
    return meta, raw[match.end():]


def parse_markdown(raw: str, source: str) -> SourceDocument:
    """Build a source document from markdown text."""
    meta, body = _parse_front_matter(raw.replace("\r", ""))
    heading = _H1.search(body)
    title = str(meta.pop("title", "") or (heading.group(1) if heading else Path(source).stem))
    return SourceDocument(title=title, content=body.strip(), source=source, **meta)


def load_markdown_documents(documents_dir: Path) -> list[SourceDocument]:
    """Load every markdown file in a directory.

    Files starting with ``_`` and ``README.md`` are skipped.
    """
    if not documents_dir.exists():
        return []

    documents: list[SourceDocument] = []
    for md_file in sorted(documents_dir.glob("*.md")):
        if md_file.name.startswith("_") or md_file.name == "README.md":
            continue
        document = parse_markdown(md_file.read_text(encoding="utf-8"), md_file.name)
        if document.content:
            documents.append(document)
    return documents
