#!/usr/bin/env python3
"""
Knowledge base ingestion: chunks .md/.txt documents, embeds each chunk and
stores it in knowledge_chunks for the groundedness check.
Run after migrations: python scripts/ingest_kb.py [docs_dir]
"""

import asyncio
import os
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from llmobs.database import make_engine, make_session_factory
from llmobs.engine.embeddings import client_from_settings
from llmobs.storage.knowledge import add_chunk

CHUNK_SIZE = 800
CHUNK_OVERLAP = 120

FALLBACK_DOCS = [
    (
        "EU AI Act Summary",
        "The EU AI Act categorizes AI systems by risk and introduces obligations for providers "
        "and deployers. High-risk systems require risk management, data governance, and human oversight.",
    ),
    (
        "Security Policy",
        "Do not process secrets in prompts. Mask PII. Only approved models are permitted. "
        "All usage is logged and monitored for safety and compliance.",
    ),
]


def chunk_text(text: str, size: int = CHUNK_SIZE, overlap: int = CHUNK_OVERLAP) -> list[str]:
    """Fixed-size character windows with overlap; blank chunks dropped."""
    clean = text.replace("\r", "").strip()
    parts = []
    i = 0
    while i < len(clean):
        parts.append(clean[i : i + size].strip())
        i += size - overlap
    return [p for p in parts if p]


def read_docs(directory: Path) -> list[tuple[str, str]]:
    if not directory.is_dir():
        return list(FALLBACK_DOCS)
    return [
        (path.name, path.read_text(encoding="utf-8"))
        for path in sorted(directory.iterdir())
        if path.suffix.lower() in (".md", ".txt")
    ]


async def ingest(directory: Path):
    engine = make_engine()
    async_session = make_session_factory(engine)
    created = 0

    async with client_from_settings() as embedder, async_session() as session:
        for title, content in read_docs(directory):
            for chunk in chunk_text(content):
                vector = await embedder.embed(chunk)
                await add_chunk(session, title, chunk, vector)
                created += 1
                if created % 10 == 0:
                    print(f"Inserted {created} chunks...")
        await session.commit()

    await engine.dispose()
    print(f"Done. Inserted {created} chunks.")


if __name__ == "__main__":
    docs_dir = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("docs")
    asyncio.run(ingest(docs_dir))
