"""FastAPI dependencies wiring the engine components together."""

import logging
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from copilot.core.config import get_settings
from copilot.core.database import async_session_maker, get_db
from copilot.core.exceptions import ConfigurationError
from copilot.knowledge.embeddings import EmbeddingClient
from copilot.knowledge.ingestion import KnowledgeIngestor
from copilot.knowledge.retriever import KnowledgeRetriever
from copilot.knowledge.vector_store import InMemoryVectorStore, RpcVectorStore, VectorStore
from copilot.ledger.schemas import Actor
from copilot.ledger.service import FeedbackLedger
from copilot.services.assist import AssistService
from copilot.solutions.matcher import SolutionMatcher
from copilot.solutions.registry import build_default_registry
from copilot.storage.object_store import get_object_store
from copilot.storage.resolver import DocumentRouter, FolderPrefixResolver

logger = logging.getLogger(__name__)


def get_actor(
    x_user_id: Annotated[str | None, Header()] = None,
    x_user_role: Annotated[str | None, Header()] = None,
) -> Actor:
    """Caller identity forwarded by the upstream gateway."""
    return Actor(user_id=x_user_id, role=x_user_role)


@lru_cache
def get_matcher() -> SolutionMatcher:
    return SolutionMatcher(build_default_registry())


@lru_cache
def get_embedder() -> EmbeddingClient | None:
    """Shared embedding client, or None when no API key is configured."""
    try:
        return EmbeddingClient.from_settings()
    except ConfigurationError as e:
        logger.warning(f"Embedding client unavailable: {e.message}")
        return None


def get_document_router(
    matcher: Annotated[SolutionMatcher, Depends(get_matcher)],
) -> DocumentRouter | None:
    store = get_object_store()
    if store is None:
        return None
    return DocumentRouter(FolderPrefixResolver(store), matcher)


async def get_vector_store(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> VectorStore:
    settings = get_settings()
    if settings.vector_store == "memory":
        return await InMemoryVectorStore.from_session(db)
    return RpcVectorStore(async_session_maker, timeout_seconds=settings.search_timeout_seconds)


def get_retriever(
    embedder: Annotated[EmbeddingClient | None, Depends(get_embedder)],
    store: Annotated[VectorStore, Depends(get_vector_store)],
) -> KnowledgeRetriever | None:
    if embedder is None:
        return None
    return KnowledgeRetriever(
        embedder,
        store,
        default_match_count=get_settings().retrieval_match_count,
    )


def get_assist_service(
    matcher: Annotated[SolutionMatcher, Depends(get_matcher)],
    retriever: Annotated[KnowledgeRetriever | None, Depends(get_retriever)],
    router: Annotated[DocumentRouter | None, Depends(get_document_router)],
) -> AssistService:
    settings = get_settings()
    return AssistService(
        matcher,
        retriever=retriever,
        router=router,
        match_count=settings.retrieval_match_count,
        context_chars=settings.retrieval_context_chars,
    )


def get_ledger(
    db: Annotated[AsyncSession, Depends(get_db)],
    embedder: Annotated[EmbeddingClient | None, Depends(get_embedder)],
) -> FeedbackLedger:
    ingestor = KnowledgeIngestor(embedder) if embedder else None
    return FeedbackLedger(db, ingestor=ingestor)
