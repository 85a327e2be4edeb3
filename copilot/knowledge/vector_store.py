"""Vector similarity search backends.

``RpcVectorStore`` delegates to the ``match_knowledge_chunks`` Postgres
function (pgvector). ``InMemoryVectorStore`` runs the same query with NumPy
over chunks loaded from the ORM tables, for local runs and tests.
"""

import asyncio
import json
import logging
from typing import Any, Mapping, Protocol, Sequence

import numpy as np
from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from copilot.core.exceptions import VectorSearchError
from copilot.models import KnowledgeDocument
from copilot.observability import track_external

logger = logging.getLogger(__name__)

_MATCH_FUNCTION_TEMPLATE = """
create or replace function match_knowledge_chunks(
    query_embedding vector({dimensions}),
    match_count int default 6,
    filter_category text default null,
    filter_product_tags text[] default null
)
returns table (
    id int,
    document_id int,
    title text,
    content text,
    similarity float,
    feedback_score float,
    downvotes int
)
language sql stable
as $$
    select
        c.id,
        c.document_id,
        d.title::text,
        c.content,
        1 - ((c.embedding::text)::vector <=> query_embedding) as similarity,
        f.avg_rating as feedback_score,
        coalesce(f.downvotes, 0) as downvotes
    from knowledge_chunks c
    join knowledge_documents d on d.id = c.document_id
    left join (
        select
            chunk_id,
            avg(rating)::float as avg_rating,
            (count(*) filter (where rating <= 2))::int as downvotes
        from knowledge_feedback
        where chunk_id is not null
        group by chunk_id
    ) f on f.chunk_id = c.id
    where d.allowed = true
      and (filter_category is null or d.category = filter_category)
      and (
        filter_product_tags is null
        or exists (
            select 1
            from json_array_elements_text(d.product_tags) as tag
            where tag = any(filter_product_tags)
        )
      )
    order by similarity desc
    limit match_count;
$$;
"""


def match_function_sql(dimensions: int) -> str:
    """DDL for ``match_knowledge_chunks`` sized to the embedding model."""
    if dimensions <= 0:
        raise ValueError(f"Embedding dimensions must be positive, got {dimensions}")
    return _MATCH_FUNCTION_TEMPLATE.format(dimensions=int(dimensions))


_MATCH_QUERY = text(
    "select * from match_knowledge_chunks("
    "cast(:query_embedding as vector), :match_count, :filter_category, :filter_product_tags)"
)


class VectorStore(Protocol):
    """Similarity search restricted to allowed documents."""

    async def match_chunks(
        self,
        embedding: Sequence[float],
        match_count: int,
        category: str | None = None,
        product_tags: Sequence[str] | None = None,
    ) -> list[Mapping[str, Any]]:
        ...


class RpcVectorStore:
    """Calls the ``match_knowledge_chunks`` SQL function."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        timeout_seconds: float = 8.0,
    ):
        self.session_factory = session_factory
        self.timeout_seconds = timeout_seconds

    async def _execute(self, params: dict[str, Any]) -> list[Mapping[str, Any]]:
        async with self.session_factory() as session:
            result = await session.execute(_MATCH_QUERY, params)
            return [dict(row) for row in result.mappings().all()]

    async def match_chunks(
        self,
        embedding: Sequence[float],
        match_count: int,
        category: str | None = None,
        product_tags: Sequence[str] | None = None,
    ) -> list[Mapping[str, Any]]:
        """Run the SQL similarity search.

        Raises:
            VectorSearchError: On database failure or timeout.
        """
        params = {
            "query_embedding": json.dumps(list(embedding)),
            "match_count": match_count,
            "filter_category": category,
            "filter_product_tags": list(product_tags) if product_tags else None,
        }
        try:
            async with track_external("postgres", "vector_search"):
                return await asyncio.wait_for(self._execute(params), timeout=self.timeout_seconds)
        except asyncio.TimeoutError as e:
            raise VectorSearchError(
                f"Vector search timed out after {self.timeout_seconds}s"
            ) from e
        except Exception as e:
            raise VectorSearchError(f"Vector search failed: {e}") from e


class InMemoryVectorStore:
    """NumPy cosine search over a snapshot of allowed chunks."""

    def __init__(self, rows: Sequence[Mapping[str, Any]] = ()):
        self.rows: list[dict[str, Any]] = [dict(row) for row in rows]
        if self.rows:
            matrix = np.array([row["embedding"] for row in self.rows], dtype=np.float32)
            norms = np.linalg.norm(matrix, axis=1, keepdims=True)
            self._matrix = matrix / np.where(norms == 0, 1.0, norms)
        else:
            self._matrix = np.zeros((0, 0), dtype=np.float32)

    @property
    def chunk_count(self) -> int:
        return len(self.rows)

    @classmethod
    async def from_session(cls, session: AsyncSession) -> "InMemoryVectorStore":
        """Snapshot every chunk of allowed documents."""
        result = await session.execute(
            select(KnowledgeDocument)
            .where(KnowledgeDocument.allowed.is_(True))
            .options(selectinload(KnowledgeDocument.chunks))
        )
        rows: list[dict[str, Any]] = []
        for document in result.scalars().all():
            for chunk in document.chunks:
                if not chunk.embedding:
                    continue
                rows.append({
                    "id": chunk.id,
                    "document_id": document.id,
                    "title": document.title,
                    "content": chunk.content,
                    "embedding": chunk.embedding,
                    "category": document.category,
                    "product_tags": list(document.product_tags or []),
                })

        logger.info(f"In-memory vector store loaded: {len(rows)} chunks")
        return cls(rows)

    async def match_chunks(
        self,
        embedding: Sequence[float],
        match_count: int,
        category: str | None = None,
        product_tags: Sequence[str] | None = None,
    ) -> list[Mapping[str, Any]]:
        if not self.rows:
            return []

        query = np.asarray(embedding, dtype=np.float32)
        if query.shape[0] != self._matrix.shape[1]:
            raise VectorSearchError(
                f"Query has {query.shape[0]} dimensions, index has {self._matrix.shape[1]}"
            )
        norm = np.linalg.norm(query)
        if norm:
            query = query / norm

        scores = self._matrix @ query
        wanted_tags = set(product_tags or ())

        matches: list[dict[str, Any]] = []
        for idx in np.argsort(-scores, kind="stable"):
            row = self.rows[int(idx)]
            if category and row.get("category") != category:
                continue
            if wanted_tags and not wanted_tags.intersection(row.get("product_tags") or ()):
                continue
            matches.append({
                "id": row["id"],
                "document_id": row["document_id"],
                "title": row.get("title"),
                "content": row["content"],
                "similarity": float(scores[idx]),
            })
            if len(matches) >= match_count:
                break

        return matches
