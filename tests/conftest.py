"""Pytest configuration and fixtures for co-pilot tests."""

import hashlib
import math
import re
from typing import AsyncGenerator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy import StaticPool
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from copilot.api.deps import get_document_router, get_embedder, get_matcher, get_vector_store
from copilot.core.database import Base, get_db
from copilot.knowledge.vector_store import InMemoryVectorStore
from copilot.main import app as main_app
from copilot.models import Audience, DocumentStatus, KnowledgeChunk, KnowledgeDocument
from copilot.storage.object_store import StorageEntry
from copilot.storage.resolver import DocumentRouter, FolderPrefixResolver

TEST_DIMENSIONS = 32


# -------------------------------------------------------------------------
# Fakes
# -------------------------------------------------------------------------


def hashed_embedding(text: str, dimensions: int = TEST_DIMENSIONS) -> list[float]:
    """Deterministic bag-of-words embedding: shared words mean higher cosine."""
    vector = [0.0] * dimensions
    for word in re.findall(r"[a-z0-9]+", text.lower()):
        bucket = int(hashlib.md5(word.encode()).hexdigest(), 16) % dimensions
        vector[bucket] += 1.0
    norm = math.sqrt(sum(x * x for x in vector)) or 1.0
    return [x / norm for x in vector]


class FakeEmbedder:
    """Stands in for EmbeddingClient without network access."""

    def __init__(self, dimensions: int = TEST_DIMENSIONS):
        self.dimensions = dimensions
        self.calls: list[str] = []

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        return hashed_embedding(text, self.dimensions)

    async def embed_many(self, texts: list[str], task_type: str = "retrieval_document") -> list[list[float]]:
        self.calls.extend(texts)
        return [hashed_embedding(text, self.dimensions) for text in texts]


class FakeObjectStore:
    """In-memory bucket built from a flat list of object keys."""

    def __init__(self, keys: list[str]):
        self.keys = keys
        self.listed: list[str] = []

    async def list(self, prefix: str) -> list[StorageEntry]:
        self.listed.append(prefix)
        root = prefix.strip("/") + "/"
        children: dict[str, bool] = {}
        for key in self.keys:
            if not key.startswith(root):
                continue
            rest = key[len(root):]
            if not rest:
                continue
            head, sep, _ = rest.partition("/")
            children[head] = children.get(head, False) or bool(sep)
        return [StorageEntry(name=name, is_folder=is_folder) for name, is_folder in sorted(children.items())]


BUCKET_KEYS = [
    "anchor/u-anchors/u2400/epdm/u2400-epdm-sales-sheet.pdf",
    "anchor/u-anchors/u2400/epdm/u2400-epdm-install-manual.pdf",
    "anchor/u-anchors/u2400/epdm/internal/pricebook/u2400-pricing.xlsx",
    "anchor/u-anchors/u2400/epdm/.emptyFolderPlaceholder",
    "solutions/pipe-frame/existing/existing-pipe-frame-sales-sheet.pdf",
    "solutions/pipe-frame/existing/drawings/guy-wire-kit.dwg",
    "solutions/pipe-frame/attached/attached-pipe-frame-data-sheet.pdf",
    "solutions/snow-retention/unitized-snow-fence/unitized-install-manual.pdf",
    "solutions/hvac/README",
    "spec/anchor-products-spec-v1.docx",
]


# -------------------------------------------------------------------------
# Database Fixtures
# -------------------------------------------------------------------------


@pytest.fixture
async def async_engine():
    """Create an async SQLite engine for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(async_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for testing."""
    async_session_maker = async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with async_session_maker() as session:
        yield session
        await session.rollback()


# -------------------------------------------------------------------------
# Knowledge Fixtures
# -------------------------------------------------------------------------


async def add_document(
    session: AsyncSession,
    title: str,
    paragraphs: list[str],
    allowed: bool = True,
    category: str | None = None,
    product_tags: list[str] | None = None,
) -> KnowledgeDocument:
    document = KnowledgeDocument(
        title=title,
        status=DocumentStatus.APPROVED.value if allowed else DocumentStatus.DRAFT.value,
        allowed=allowed,
        audience=Audience.BOTH.value,
        category=category,
        product_tags=product_tags or [],
    )
    document.chunks = [
        KnowledgeChunk(
            chunk_index=index,
            content=text,
            embedding=hashed_embedding(text),
            product_tags=product_tags or [],
        )
        for index, text in enumerate(paragraphs)
    ]
    session.add(document)
    await session.commit()
    return document


@pytest.fixture
async def knowledge_base(db_session: AsyncSession) -> dict[str, KnowledgeDocument]:
    """Approved and draft documents about rooftop attachments."""
    approved = await add_document(
        db_session,
        "U2400 EPDM anchor",
        [
            "The U2400 EPDM anchor is heat welded to EPDM membranes and rated for rooftop equipment.",
            "U2400 install manual: clean the EPDM membrane, apply primer, then seat the anchor.",
        ],
        category="anchors",
        product_tags=["U2400 EPDM"],
    )
    pipe_frame = await add_document(
        db_session,
        "Existing pipe frame tie-down",
        ["Existing pipe frames are re-secured with a guy wire kit and 2000-series anchors."],
        category="solutions",
        product_tags=["Guy Wire Kit"],
    )
    draft = await add_document(
        db_session,
        "Unreviewed EPDM rumor",
        ["EPDM anchor rumor: the U2400 EPDM anchor can be glued with any adhesive."],
        allowed=False,
        category="anchors",
        product_tags=["U2400 EPDM"],
    )
    return {"approved": approved, "pipe_frame": pipe_frame, "draft": draft}


# -------------------------------------------------------------------------
# App Fixtures
# -------------------------------------------------------------------------


@pytest.fixture
def fake_embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def fake_store() -> FakeObjectStore:
    return FakeObjectStore(list(BUCKET_KEYS))


@pytest.fixture
def app(db_session: AsyncSession, fake_embedder: FakeEmbedder, fake_store: FakeObjectStore) -> FastAPI:
    """FastAPI app wired to the test database, fake embeddings and a fake bucket."""

    async def override_get_db():
        yield db_session

    async def override_get_vector_store():
        return await InMemoryVectorStore.from_session(db_session)

    def override_get_document_router():
        return DocumentRouter(
            FolderPrefixResolver(fake_store, timeout_seconds=2.0, max_depth=4),
            get_matcher(),
            fanout_limit=2,
        )

    main_app.dependency_overrides[get_db] = override_get_db
    main_app.dependency_overrides[get_embedder] = lambda: fake_embedder
    main_app.dependency_overrides[get_vector_store] = override_get_vector_store
    main_app.dependency_overrides[get_document_router] = override_get_document_router
    yield main_app
    main_app.dependency_overrides.clear()


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client for testing."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return {"X-User-Id": "reviewer-1", "X-User-Role": "admin"}


@pytest.fixture
def rep_headers() -> dict[str, str]:
    return {"X-User-Id": "rep-7", "X-User-Role": "sales"}
