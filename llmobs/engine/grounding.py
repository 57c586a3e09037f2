"""Retrieval-based groundedness check."""

import re
from dataclasses import dataclass, field
from typing import Protocol

from llmobs.engine.detectors import CheckResult
from llmobs.models.evaluation import EvalKind
from llmobs.storage.knowledge import Evidence, KnowledgeStore

MIN_SHARED_WORDS = 3
MIN_WORD_LENGTH = 5

_WORD_SPLIT = re.compile(r"\W+")


class Embedder(Protocol):
    dimensions: int

    async def embed(self, text: str) -> list[float]: ...


@dataclass(frozen=True)
class GroundingVerdict:
    supported: bool
    evidence: list[Evidence] = field(default_factory=list)
    best_overlap: int = 0


def shared_words(answer: str, content: str) -> set[str]:
    """Distinct answer words longer than four characters that occur in content."""
    content = content.lower()
    words = {w for w in _WORD_SPLIT.split(answer.lower()) if len(w) >= MIN_WORD_LENGTH}
    return {w for w in words if w in content}


class GroundednessDetector:
    """Embeds the response, fetches the k nearest chunks, checks lexical overlap.

    Embedding or dimension errors propagate so the caller can tell
    "service unavailable" apart from "checked and unsupported".
    """

    kind = EvalKind.GROUNDING

    def __init__(self, embedder: Embedder, store: KnowledgeStore, k: int = 5) -> None:
        self.embedder = embedder
        self.store = store
        self.k = k

    async def detect(self, response_text: str | None) -> GroundingVerdict:
        answer = response_text or ""
        vector = await self.embedder.embed(answer)
        rows = await self.store.nearest(vector, self.k)
        best = max((len(shared_words(answer, r.content)) for r in rows), default=0)
        return GroundingVerdict(supported=best >= MIN_SHARED_WORDS, evidence=rows, best_overlap=best)

    async def check(self, prompt: str | None, response: str | None) -> CheckResult:
        verdict = await self.detect(response)
        evidence_ids = ",".join(e.id for e in verdict.evidence) or "none"
        return CheckResult(
            kind=self.kind,
            passed=verdict.supported,
            score=min(1.0, verdict.best_overlap / MIN_SHARED_WORDS),
            details=f"overlap={verdict.best_overlap} evidence={evidence_ids}",
        )
