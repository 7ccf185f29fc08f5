"""Swappable lexical heuristics used by the graph engine.

Bias detection, novelty scoring and content similarity are crude keyword and
word-set heuristics. Each sits behind a small interface so a real NLP or
statistics backend can replace it without touching the graph engine.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable

SimilarityFunction = Callable[[str, str], float]


def tokenize(text: str) -> list[str]:
    """Lowercase alphanumeric word tokens."""
    cleaned = [ch.lower() if ch.isalnum() else " " for ch in text]
    return "".join(cleaned).split()


def jaccard_similarity(text_a: str, text_b: str) -> float:
    """Jaccard overlap of the two texts' word sets, 0.0 when both are empty."""
    words_a = set(tokenize(text_a))
    words_b = set(tokenize(text_b))
    union = words_a | words_b
    if not union:
        return 0.0
    return len(words_a & words_b) / len(union)


class BiasDetector(ABC):
    """Abstract base class for bias flag detection."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this detector."""

    @abstractmethod
    def detect(
        self,
        content: str,
        *,
        provenance: str = "",
        quantitative: bool | None = None,
    ) -> list[str]:
        """Return bias flag tags for a piece of content.

        Args:
            content: Node content to scan
            provenance: Provenance tag of the content
            quantitative: Whether quantitative support was supplied;
                ``None`` when the question does not apply (e.g. hypotheses)

        Returns:
            Ordered, de-duplicated list of flag tags
        """


class KeywordBiasDetector(BiasDetector):
    """Keyword scan for absolute claims, overconfidence and thin sourcing.

    Heuristic only: it matches words, not meaning.
    """

    ABSOLUTE_TERMS: frozenset[str] = frozenset({"always", "never"})
    CONFIRMATION_TERMS: frozenset[str] = frozenset({"obvious", "obviously", "clearly"})
    OVERCONFIDENCE_TERMS: frozenset[str] = frozenset(
        {"proven", "proves", "prove", "definitively", "undeniably", "certainly"}
    )
    SINGLE_SOURCE_PROVENANCE: str = "single_source"

    @property
    def name(self) -> str:
        return "keyword"

    def detect(
        self,
        content: str,
        *,
        provenance: str = "",
        quantitative: bool | None = None,
    ) -> list[str]:
        words = set(tokenize(content))
        flags: list[str] = []
        if words & self.ABSOLUTE_TERMS:
            flags.append("absolute_thinking")
        if words & self.CONFIRMATION_TERMS:
            flags.append("confirmation_bias_risk")
        if words & self.OVERCONFIDENCE_TERMS:
            flags.append("overconfidence_bias")
        if provenance == self.SINGLE_SOURCE_PROVENANCE:
            flags.append("source_bias")
        if quantitative is False:
            flags.append("lack_quantitative_support")
        return flags


class NoveltyScorer(ABC):
    """Abstract base class for evidence novelty estimation."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this scorer."""

    @abstractmethod
    def score(self, content: str, known_contents: Iterable[str]) -> float:
        """Estimate how much new information ``content`` adds, in [0, 1].

        Args:
            content: Text of the incoming evidence
            known_contents: Texts already attached to the evidence target
        """


class LexicalNoveltyScorer(NoveltyScorer):
    """Share of the evidence's distinct words not seen in the known texts.

    Empty evidence scores ``neutral``; any other score is floored at ``floor``
    so restated evidence still moves confidence a little.
    """

    def __init__(self, *, floor: float = 0.1, neutral: float = 0.5) -> None:
        if not 0.0 <= floor <= 1.0:
            raise ValueError(f"floor must be in [0, 1], got {floor}")
        if not 0.0 <= neutral <= 1.0:
            raise ValueError(f"neutral must be in [0, 1], got {neutral}")
        self._floor = floor
        self._neutral = neutral

    @property
    def name(self) -> str:
        return "lexical"

    def score(self, content: str, known_contents: Iterable[str]) -> float:
        words = set(tokenize(content))
        if not words:
            return self._neutral
        known: set[str] = set()
        for text in known_contents:
            known.update(tokenize(text))
        novel = len(words - known) / len(words)
        return max(self._floor, min(1.0, novel))
