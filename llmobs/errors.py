"""Error types raised by the evaluation core."""


class LLMObsError(Exception):
    """Base class for service errors."""


class EmbeddingServiceError(LLMObsError):
    """Embedding request failed, timed out or returned a non-2xx response."""


class EmbeddingDimensionError(EmbeddingServiceError):
    """Embedding vector length does not match the configured dimensionality."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"Unexpected embedding length: expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class PersistenceError(LLMObsError):
    """Read or write against the store failed."""


class ConfigurationError(LLMObsError):
    """Required external configuration is missing or inconsistent."""
