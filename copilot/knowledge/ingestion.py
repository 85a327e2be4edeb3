"""Turn source documents into draft knowledge documents with embedded chunks."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from copilot.knowledge.chunking import DEFAULT_MAX_CHARS, DEFAULT_MAX_CHUNKS, chunk_text
from copilot.knowledge.embeddings import EmbeddingClient
from copilot.knowledge.loader import SourceDocument
from copilot.models import DocumentStatus, KnowledgeChunk, KnowledgeDocument

logger = logging.getLogger(__name__)


def estimate_tokens(text: str) -> int:
    """Rough token count (about four characters per token)."""
    return max(1, len(text) // 4)


class KnowledgeIngestor:
    """Chunk, embed and persist documents as drafts awaiting review.

    New documents are never retrievable until a reviewer approves them.
    """

    def __init__(
        self,
        embedder: EmbeddingClient,
        max_chars: int = DEFAULT_MAX_CHARS,
        max_chunks: int = DEFAULT_MAX_CHUNKS,
    ):
        self.embedder = embedder
        self.max_chars = max_chars
        self.max_chunks = max_chunks

    async def ingest(self, session: AsyncSession, document: SourceDocument) -> KnowledgeDocument:
        """Create a draft document and its chunks. The caller commits.

        Raises:
            EmbeddingError: If the chunks cannot be embedded.
        """
        pieces = chunk_text(document.content, max_chars=self.max_chars, max_chunks=None)
        if len(pieces) > self.max_chunks:
            dropped = pieces[self.max_chunks :]
            # Chunks join whole paragraphs with a blank line
            dropped_paragraphs = sum(len(piece.split("\n\n")) for piece in dropped)
            logger.warning(
                f"Document '{document.title}' exceeds {self.max_chunks} chunks: "
                f"dropping {len(dropped)} chunks ({dropped_paragraphs} paragraphs) from {document.source}"
            )
            pieces = pieces[: self.max_chunks]
        vectors = await self.embedder.embed_many(pieces) if pieces else []

        record = KnowledgeDocument(
            title=document.title,
            source_type=document.source_type,
            status=DocumentStatus.DRAFT.value,
            allowed=False,
            audience=document.audience.value,
            category=document.category,
            series=document.series,
            membrane=document.membrane,
            solution_slug=document.solution_slug,
            product_tags=list(document.product_tags),
            storage_path=document.source if document.source_type == "storage" else None,
            created_by=document.created_by,
            source_session_id=document.source_session_id,
        )
        record.chunks = [
            KnowledgeChunk(
                chunk_index=index,
                content=piece,
                embedding=vector,
                audience=document.audience.value,
                product_tags=list(document.product_tags),
                token_count=estimate_tokens(piece),
            )
            for index, (piece, vector) in enumerate(zip(pieces, vectors))
        ]

        session.add(record)
        await session.flush()

        logger.info(
            f"Ingested draft document {record.id} '{record.title}' "
            f"({len(record.chunks)} chunks from {document.source})"
        )
        return record
