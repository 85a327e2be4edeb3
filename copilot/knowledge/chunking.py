"""Split document text into non-overlapping chunks for embedding."""

DEFAULT_MAX_CHARS = 900
DEFAULT_MAX_CHUNKS = 24


def chunk_text(
    text: str | None,
    max_chars: int = DEFAULT_MAX_CHARS,
    max_chunks: int | None = DEFAULT_MAX_CHUNKS,
) -> list[str]:
    """Pack paragraphs into chunks of at most ``max_chars`` characters.

    Paragraphs are never split, so a single paragraph longer than
    ``max_chars`` becomes its own oversized chunk. Order is preserved and at
    most ``max_chunks`` chunks are returned (all of them when None).
    """
    cleaned = (text or "").replace("\r", "").strip()
    if not cleaned:
        return []

    parts: list[str] = []
    buffer = ""

    for paragraph in cleaned.split("\n\n"):
        paragraph = paragraph.strip()
        if not paragraph:
            continue

        candidate = f"{buffer}\n\n{paragraph}" if buffer else paragraph
        if len(candidate) > max_chars and buffer:
            parts.append(buffer)
            buffer = paragraph
        else:
            buffer = candidate

    if buffer:
        parts.append(buffer)

    return parts if max_chunks is None else parts[:max_chunks]
