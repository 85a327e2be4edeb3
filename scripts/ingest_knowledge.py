#!/usr/bin/env python3
"""Ingest markdown documents as draft knowledge documents.

Each markdown file becomes one draft document (``allowed=false``) with
embedded chunks. Drafts only become retrievable after an admin approves
them via ``POST /api/v1/knowledge/{id}/review``.

Usage:
    python scripts/ingest_knowledge.py docs/knowledge
    python scripts/ingest_knowledge.py docs/knowledge --created-by alice --dry-run

Environment variables:
    DATABASE_URL: Target database
    OPENAI_API_KEY: Required for OpenAI embeddings (default)
    GOOGLE_AI_API_KEY: Required if EMBEDDING_PROVIDER=google
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path for imports
project_dir = Path(__file__).parent.parent
sys.path.insert(0, str(project_dir))

from dotenv import load_dotenv

env_path = project_dir / ".env"
if env_path.exists():
    load_dotenv(env_path)
    print(f"Loaded environment from: {env_path}")


async def main(documents_dir: Path, created_by: str | None, dry_run: bool) -> int:
    """Ingest every markdown file in ``documents_dir``."""
    from copilot.core.database import async_session_maker
    from copilot.core.exceptions import ConfigurationError, EmbeddingError
    from copilot.knowledge.chunking import chunk_text
    from copilot.knowledge.embeddings import EmbeddingClient
    from copilot.knowledge.ingestion import KnowledgeIngestor
    from copilot.knowledge.loader import load_markdown_documents

    print(f"Loading documents from: {documents_dir}")
    documents = load_markdown_documents(documents_dir)

    if not documents:
        print("No documents found. Please add markdown files to:")
        print(f"  {documents_dir}")
        return 1

    print(f"\nLoaded {len(documents)} documents:")
    for document in documents:
        print(f"  {document.source}: '{document.title}' ({len(chunk_text(document.content))} chunks)")

    if dry_run:
        print("\nDry run, nothing written.")
        return 0

    try:
        embedder = EmbeddingClient.from_settings()
    except ConfigurationError as e:
        print(f"Error: {e.message}")
        return 1

    ingestor = KnowledgeIngestor(embedder)

    async with async_session_maker() as session:
        for document in documents:
            if created_by:
                document.created_by = created_by
            try:
                record = await ingestor.ingest(session, document)
            except EmbeddingError as e:
                await session.rollback()
                print(f"Error embedding {document.source}: {e.message}")
                return 1
            print(f"  Created draft document {record.id}: {record.title}")
        await session.commit()

    print(f"\nIngested {len(documents)} draft documents. Approve them to make them retrievable.")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Ingest markdown knowledge documents")
    parser.add_argument("documents_dir", type=Path, help="Directory of markdown files")
    parser.add_argument("--created-by", default=None, help="User id recorded as author")
    parser.add_argument("--dry-run", action="store_true", help="Only list what would be ingested")
    args = parser.parse_args()

    sys.exit(asyncio.run(main(args.documents_dir, args.created_by, args.dry_run)))
