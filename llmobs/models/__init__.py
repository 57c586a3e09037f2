"""Database models."""

from llmobs.models.call import CallStatus, LoggedCall
from llmobs.models.evaluation import EvalKind, EvalResult
from llmobs.models.knowledge import KnowledgeChunk

__all__ = ["CallStatus", "LoggedCall", "EvalKind", "EvalResult", "KnowledgeChunk"]
