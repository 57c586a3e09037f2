"""Static rule sets used by the detectors.

Rule sets are immutable values handed to detectors at construction time, so
tests and deployments can swap in alternate lexicons or patterns.
"""

import re
from dataclasses import dataclass, field


@dataclass(frozen=True)
class GoldItem:
    """Known prompt and the answer fragments a correct response contains."""

    prompt: str
    expected: tuple[str, ...]


TOXIC_WORDS = ("kill", "hate", "stupid", "idiot", "racist", "sexist", "slur")

PII_PATTERNS = (
    re.compile(r"\b\d{3}-\d{2}-\d{4}\b", re.IGNORECASE),  # US SSN
    re.compile(r"\b\d{16}\b"),  # 16-digit card (very naive)
    re.compile(r"\b(?:\+?\d{1,3})?[-.\s]?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}\b"),  # phone
    re.compile(r"\b[0-9]{5}(?:-[0-9]{4})?\b"),  # US ZIP
    re.compile(r"\b[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}\b", re.IGNORECASE),  # email
)

SECRET_PATTERNS = (
    re.compile(r"api[_-]?key\s*[:=]\s*[\w-]{16,}", re.IGNORECASE),
    re.compile(r"(sk|rk|pk|token)_[A-Za-z0-9]{16,}"),  # generic tokens
    re.compile(r"-----BEGIN (?:RSA|EC) PRIVATE KEY-----"),
)

# Order matters: the first match is the one reported.
INJECTION_PATTERNS = (
    re.compile(r"ignore (?:all )?(?:previous |prior )?instructions", re.IGNORECASE),
    re.compile(r"disregard (?:the )?system", re.IGNORECASE),
    re.compile(r"reveal (?:the )?system prompt", re.IGNORECASE),
    re.compile(r"exfiltrate|leak|upload|bypass|disable guardrails", re.IGNORECASE),
    re.compile(r"base64|hex dump|curl http", re.IGNORECASE),
)

GOLD_ANSWERS = (
    GoldItem("What is the capital of France?", ("paris",)),
    GoldItem(
        "Summarize GDPR in 1 sentence.",
        ("data protection", "european union", "eu regulation"),
    ),
)


@dataclass(frozen=True)
class RuleSet:
    """Bundle of every static table the detectors consume."""

    toxic_words: tuple[str, ...] = TOXIC_WORDS
    pii_patterns: tuple[re.Pattern, ...] = PII_PATTERNS
    secret_patterns: tuple[re.Pattern, ...] = SECRET_PATTERNS
    injection_patterns: tuple[re.Pattern, ...] = INJECTION_PATTERNS
    gold_answers: tuple[GoldItem, ...] = field(default=GOLD_ANSWERS)


DEFAULT_RULES = RuleSet()
