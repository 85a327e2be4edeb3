"""Prompt context assembly for the downstream answer generator."""

from typing import Protocol, Sequence

from copilot.knowledge.models import RetrievedChunk

NO_KNOWLEDGE_NOTICE = "No approved knowledge matches this question."

DEFAULT_SYSTEM_PROMPT = (
    "You are a sales co-pilot for a commercial roofing attachment manufacturer. "
    "Answer using only the approved knowledge below. If it does not cover the "
    "question, say so and suggest the relevant documents instead of guessing."
)


class AnswerGenerator(Protocol):
    """Opaque language-model collaborator."""

    async def generate(self, messages: list[dict[str, str]]) -> str:
        ...


def format_context(chunks: Sequence[RetrievedChunk], max_length: int = 3000) -> str:
    """Format retrieved chunks as numbered references within a character budget.

    Args:
        chunks: Retrieved chunks, most relevant first.
        max_length: Maximum total character length.

    Returns:
        Formatted context, or the no-knowledge notice when ``chunks`` is empty.
    """
    if not chunks:
        return NO_KNOWLEDGE_NOTICE

    context_parts: list[str] = []
    current_length = 0

    for i, chunk in enumerate(chunks, 1):
        heading = f"[Source {i}] {chunk.title or 'Untitled'} (similarity {chunk.similarity:.2f})"
        section = f"{heading}\n{chunk.content}"

        if current_length + len(section) > max_length:
            # Truncate if needed
            remaining = max_length - current_length - 50
            if remaining > 100:
                context_parts.append(section[:remaining] + "...")
            break

        context_parts.append(section)
        current_length += len(section) + 2  # +2 for \n\n

    return "\n\n".join(context_parts)


def build_messages(
    question: str,
    chunks: Sequence[RetrievedChunk],
    history: Sequence[dict[str, str]] = (),
    system_prompt: str = DEFAULT_SYSTEM_PROMPT,
    max_context_chars: int = 3000,
) -> list[dict[str, str]]:
    """Chat messages for the answer generator: system, knowledge, history, question."""
    knowledge = format_context(chunks, max_length=max_context_chars)
    messages = [
        {"role": "system", "content": system_prompt},
        {"role": "system", "content": f"Approved knowledge:\n{knowledge}"},
    ]
    for turn in history:
        role = turn.get("role")
        content = turn.get("content")
        if role in ("user", "assistant") and content:
            messages.append({"role": role, "content": content})
    messages.append({"role": "user", "content": question})
    return messages
