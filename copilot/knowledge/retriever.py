"""Knowledge retriever for RAG.

Embeds the query, runs a similarity search restricted to approved documents,
and returns validated chunks, most similar first.
"""

import asyncio
import logging

from copilot.core.exceptions import ChunkRowError, UpstreamError
from copilot.knowledge.embeddings import EmbeddingClient
from copilot.knowledge.models import RetrievalOptions, RetrievedChunk, parse_chunk_row
from copilot.knowledge.vector_store import VectorStore

logger = logging.getLogger(__name__)


class KnowledgeRetriever:
    """Semantic search over approved knowledge chunks.

    Failures never propagate: an unreachable embedding service or vector
    store yields an empty result and a logged warning.
    """

    def __init__(
        self,
        embedder: EmbeddingClient,
        store: VectorStore,
        default_match_count: int = 6,
    ) -> None:
        self.embedder = embedder
        self.store = store
        self.default_match_count = default_match_count

    async def retrieve(
        self,
        query: str,
        options: RetrievalOptions | None = None,
    ) -> list[RetrievedChunk]:
        """Search for relevant knowledge chunks.

        Args:
            query: Search query text.
            options: Result limit and metadata filters.

        Returns:
            At most ``match_count`` chunks sorted by similarity (highest first).
        """
        options = options or RetrievalOptions(match_count=self.default_match_count)
        if not query or not query.strip():
            return []

        try:
            embedding = await self.embedder.embed(query)
            rows = await self.store.match_chunks(
                embedding,
                options.match_count,
                category=options.category,
                product_tags=options.product_tags,
            )
        except UpstreamError as e:
            logger.warning(f"Knowledge search failed: {e.message}")
            return []
        except asyncio.TimeoutError:
            logger.warning("Knowledge search timed out")
            return []

        chunks: list[RetrievedChunk] = []
        for row in rows or []:
            try:
                chunk = parse_chunk_row(row)
            except ChunkRowError as e:
                logger.warning(f"Dropping malformed chunk row: {e.message}")
                continue
            if not chunk.allowed:
                logger.warning(f"Dropping chunk {chunk.chunk_id} of a non-approved document")
                continue
            chunks.append(chunk)

        # sorted() is stable: equal similarities keep store order
        chunks = sorted(chunks, key=lambda chunk: chunk.similarity, reverse=True)
        return chunks[: options.match_count]
