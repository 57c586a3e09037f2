"""Nearest-neighbour access to the knowledge base."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from llmobs.errors import EmbeddingDimensionError
from llmobs.models import KnowledgeChunk


@dataclass(frozen=True)
class Evidence:
    id: str
    title: str
    content: str


class KnowledgeStore(Protocol):
    dimensions: int

    async def nearest(self, vector: list[float], k: int) -> list[Evidence]:
        """Return up to k chunks ordered by ascending distance."""
        ...


class PgVectorKnowledgeStore:
    """Cosine-distance search over ``knowledge_chunks`` (pgvector ``<=>``)."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        self.dimensions = KnowledgeChunk.embedding.type.dim

    async def nearest(self, vector: list[float], k: int) -> list[Evidence]:
        if len(vector) != self.dimensions:
            raise EmbeddingDimensionError(self.dimensions, len(vector))
        async with self._session_factory() as db:
            result = await db.execute(
                select(KnowledgeChunk.id, KnowledgeChunk.title, KnowledgeChunk.content)
                .order_by(KnowledgeChunk.embedding.cosine_distance(vector))
                .limit(k)
            )
            return [Evidence(id=r.id, title=r.title, content=r.content) for r in result]


async def add_chunk(db: AsyncSession, title: str, content: str, embedding: list[float]) -> KnowledgeChunk:
    """Insert one embedded chunk (used by the ingestion script)."""
    chunk = KnowledgeChunk(
        id=str(uuid4()),
        created_at=datetime.now(timezone.utc),
        title=title,
        content=content,
        embedding=embedding,
    )
    db.add(chunk)
    await db.flush()
    return chunk
