"""Word-vector content similarity backed by spaCy.

Drop-in replacement for the lexical Jaccard similarity used when merging
nodes and detecting interdisciplinary bridges. spaCy and its model are
imported on first use, so importing this module never requires them.
"""

from __future__ import annotations

import importlib
from typing import Any, ClassVar

from asrgot.core.errors import GraphError
from asrgot.core.logging_config import get_logger

logger = get_logger("ml.embedding_similarity")

INSTALL_HINT = "pip install asrgot[ml]"


class MissingOptionalDependency(GraphError):
    """Raised when an optional ML package or model is not installed."""

    kind: ClassVar[str] = "missing_optional_dependency"

    def __init__(self, required: set[str], *, install_hint: str = INSTALL_HINT) -> None:
        super().__init__(
            f"Missing optional dependency: {', '.join(sorted(required))}. Install with: {install_hint}",
            required=sorted(required),
            install_hint=install_hint,
        )
        self.required = required
        self.install_hint = install_hint


class SpacyVectorSimilarity:
    """
    Cosine similarity of spaCy document vectors, clipped to [0, 1].

    Instances are callables ``(text_a, text_b) -> float`` and can be passed
    wherever a similarity function is accepted.

    Args:
        model_name: spaCy pipeline with word vectors
        cache_size: Number of parsed documents to keep
    """

    MODEL_NAME: ClassVar[str] = "en_core_web_md"

    def __init__(self, model_name: str | None = None, *, cache_size: int = 1024) -> None:
        self.model_name = model_name or self.MODEL_NAME
        self._cache_size = cache_size
        self._nlp: Any = None
        self._docs: dict[str, Any] = {}

    def _ensure_model(self) -> None:
        if self._nlp is not None:
            return
        try:
            spacy = importlib.import_module("spacy")
        except ImportError as exc:
            raise MissingOptionalDependency({"spacy"}) from exc
        try:
            self._nlp = spacy.load(self.model_name)
        except OSError as exc:
            raise MissingOptionalDependency(
                {self.model_name},
                install_hint=f"python -m spacy download {self.model_name}",
            ) from exc
        logger.info("Loaded spaCy model %s", self.model_name)

    def _doc(self, text: str) -> Any:
        doc = self._docs.get(text)
        if doc is None:
            self._ensure_model()
            doc = self._nlp(text)
            if len(self._docs) >= self._cache_size:
                self._docs.pop(next(iter(self._docs)))
            self._docs[text] = doc
        return doc

    def __call__(self, text_a: str, text_b: str) -> float:
        if not text_a.strip() or not text_b.strip():
            return 0.0
        doc_a = self._doc(text_a)
        doc_b = self._doc(text_b)
        if not doc_a.has_vector or not doc_b.has_vector:
            return 0.0
        return max(0.0, min(1.0, float(doc_a.similarity(doc_b))))
