"""Knowledge base: embeddings, vector search, retrieval and ingestion."""

from copilot.knowledge.context import NO_KNOWLEDGE_NOTICE, build_messages, format_context
from copilot.knowledge.models import RetrievalOptions, RetrievedChunk
from copilot.knowledge.retriever import KnowledgeRetriever

__all__ = [
    "KnowledgeRetriever",
    "NO_KNOWLEDGE_NOTICE",
    "RetrievalOptions",
    "RetrievedChunk",
    "build_messages",
    "format_context",
]
