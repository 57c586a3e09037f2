"""Lexicon and regex based safety detectors.

Each detector exposes ``detect`` with its own verdict shape and ``check``,
which folds the verdict into a :class:`CheckResult` scored 0..1 where higher
is always safer. Detectors are total over strings: ``None`` is read as "".
"""

import re
from dataclasses import dataclass, field

from llmobs.engine.rules import DEFAULT_RULES, GoldItem, RuleSet
from llmobs.models.evaluation import EvalKind

HALLUCINATION_PASS_SCORE = 0.5
GOLD_PREFIX_WORDS = 4

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")
_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class CheckResult:
    """Outcome of one evaluation kind for one call."""

    kind: str
    passed: bool
    score: float
    details: str = ""


@dataclass(frozen=True)
class ToxicityVerdict:
    toxic: bool
    term: str | None = None


@dataclass(frozen=True)
class PIIVerdict:
    pii: bool
    secret: bool
    hits: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class InjectionVerdict:
    matched: bool
    pattern: str | None = None


@dataclass(frozen=True)
class HallucinationVerdict:
    passed: bool
    score: float
    gold_prompt: str | None = None


def normalize(text: str | None) -> str:
    """Lowercase, turn punctuation into spaces, collapse whitespace."""
    text = (text or "").lower()
    text = _NON_ALNUM.sub(" ", text)
    return _WHITESPACE.sub(" ", text).strip()


class ToxicityDetector:
    """Case-insensitive substring match against a word list.

    Substrings are matched inside longer words too ("hateful" hits "hate").
    """

    kind = EvalKind.TOXICITY

    def __init__(self, rules: RuleSet = DEFAULT_RULES) -> None:
        self._terms = tuple(t.lower() for t in rules.toxic_words)

    def detect(self, text: str | None) -> ToxicityVerdict:
        lowered = (text or "").lower()
        for term in self._terms:
            if term in lowered:
                return ToxicityVerdict(toxic=True, term=term)
        return ToxicityVerdict(toxic=False)

    def check(self, prompt: str | None, response: str | None) -> CheckResult:
        verdict = self.detect(response)
        return CheckResult(
            kind=self.kind,
            passed=not verdict.toxic,
            score=0.0 if verdict.toxic else 1.0,
            details=f"wordlist:{verdict.term}" if verdict.toxic else "wordlist",
        )


class PIIDetector:
    """Runs the PII and secret pattern families independently."""

    kind = EvalKind.PII

    def __init__(self, rules: RuleSet = DEFAULT_RULES) -> None:
        self._pii = rules.pii_patterns
        self._secret = rules.secret_patterns

    def detect(self, text: str | None) -> PIIVerdict:
        text = text or ""
        hits: list[str] = []
        pii = secret = False
        for rx in self._pii:
            if rx.search(text):
                pii = True
                hits.append(rx.pattern)
        for rx in self._secret:
            if rx.search(text):
                secret = True
                hits.append(rx.pattern)
        return PIIVerdict(pii=pii, secret=secret, hits=hits)

    def check(self, prompt: str | None, response: str | None) -> CheckResult:
        # Secrets tend to show up in prompts, PII leaks in responses; scan both.
        verdict = self.detect(f"{prompt or ''}\n{response or ''}")
        leaked = verdict.pii or verdict.secret
        details = "no matches"
        if leaked:
            details = f"pii={verdict.pii} secret={verdict.secret} hits={' | '.join(verdict.hits)}"
        return CheckResult(kind=self.kind, passed=not leaked, score=0.0 if leaked else 1.0, details=details)


class InjectionDetector:
    """First matching pattern wins."""

    kind = EvalKind.INJECTION

    def __init__(self, rules: RuleSet = DEFAULT_RULES) -> None:
        self._patterns = rules.injection_patterns

    def detect(self, text: str | None) -> InjectionVerdict:
        text = text or ""
        for rx in self._patterns:
            if rx.search(text):
                return InjectionVerdict(matched=True, pattern=rx.pattern)
        return InjectionVerdict(matched=False)

    def check(self, prompt: str | None, response: str | None) -> CheckResult:
        verdict = self.detect(prompt)
        return CheckResult(
            kind=self.kind,
            passed=not verdict.matched,
            score=0.0 if verdict.matched else 1.0,
            details=f"pattern:{verdict.pattern}" if verdict.matched else "no pattern matched",
        )


class HallucinationDetector:
    """Compares responses to a small table of known answers.

    A gold entry applies when the first few normalized words of its prompt
    appear in the normalized input prompt. Prompts with no gold entry pass
    with score 1.
    """

    kind = EvalKind.HALLUCINATION

    def __init__(self, rules: RuleSet = DEFAULT_RULES) -> None:
        self._gold = rules.gold_answers

    def _find_gold(self, prompt: str) -> GoldItem | None:
        for item in self._gold:
            prefix = " ".join(normalize(item.prompt).split(" ")[:GOLD_PREFIX_WORDS])
            if prefix in prompt:
                return item
        return None

    def detect(self, prompt: str | None, response: str | None) -> HallucinationVerdict:
        p, r = normalize(prompt), normalize(response)
        gold = self._find_gold(p)
        if gold is None or not gold.expected:
            return HallucinationVerdict(passed=True, score=1.0)
        hits = sum(1 for expected in gold.expected if normalize(expected) in r)
        score = hits / len(gold.expected)
        return HallucinationVerdict(
            passed=score >= HALLUCINATION_PASS_SCORE, score=score, gold_prompt=gold.prompt
        )

    def check(self, prompt: str | None, response: str | None) -> CheckResult:
        verdict = self.detect(prompt, response)
        details = f"gold-compare:{verdict.gold_prompt}" if verdict.gold_prompt else "no gold entry"
        return CheckResult(kind=self.kind, passed=verdict.passed, score=verdict.score, details=details)


def default_detectors(rules: RuleSet = DEFAULT_RULES) -> list:
    """The synchronous detectors, in the order results are written."""
    return [
        ToxicityDetector(rules),
        PIIDetector(rules),
        InjectionDetector(rules),
        HallucinationDetector(rules),
    ]
