"""Tests for the optional spaCy similarity backend.

These tests do not require spaCy; they stand in a fake module and verify the
lazy import and the structured error raised when the extra is missing.
"""

from __future__ import annotations

import sys
from types import SimpleNamespace

import pytest

from asrgot.core.errors import GraphError
from asrgot.ml.embedding_similarity import MissingOptionalDependency, SpacyVectorSimilarity


class FakeDoc:
    def __init__(self, text: str, vectors: dict[str, float]) -> None:
        self.text = text
        self.has_vector = text in vectors
        self._vectors = vectors

    def similarity(self, other: FakeDoc) -> float:
        return 1.0 - abs(self._vectors[self.text] - other._vectors[other.text])


def _install_fake_spacy(monkeypatch: pytest.MonkeyPatch, vectors: dict[str, float]) -> list[str]:
    calls: list[str] = []

    def nlp(text: str) -> FakeDoc:
        calls.append(text)
        return FakeDoc(text, vectors)

    def load(name: str):  # type: ignore[no-untyped-def]
        return nlp

    monkeypatch.setitem(sys.modules, "spacy", SimpleNamespace(load=load))
    return calls


def test_module_import_is_safe_without_spacy() -> None:
    import asrgot.ml.embedding_similarity as _  # noqa: F401


def test_missing_spacy_raises_structured_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setitem(sys.modules, "spacy", None)
    similarity = SpacyVectorSimilarity()

    with pytest.raises(MissingOptionalDependency) as exc:
        similarity("sleep loss", "memory decline")

    assert isinstance(exc.value, GraphError)
    assert exc.value.required == {"spacy"}
    assert "asrgot[ml]" in exc.value.install_hint
    assert exc.value.to_dict()["kind"] == "missing_optional_dependency"


def test_missing_model_points_at_spacy_download(monkeypatch: pytest.MonkeyPatch) -> None:
    def load(name: str):  # type: ignore[no-untyped-def]
        raise OSError(f"Can't find model '{name}'")

    monkeypatch.setitem(sys.modules, "spacy", SimpleNamespace(load=load))

    with pytest.raises(MissingOptionalDependency) as exc:
        SpacyVectorSimilarity("en_core_web_lg")("a", "b")

    assert exc.value.install_hint == "python -m spacy download en_core_web_lg"


def test_similarity_is_clipped_and_cached(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = _install_fake_spacy(monkeypatch, {"alpha": 0.9, "beta": 0.7, "gamma": -1.5})
    similarity = SpacyVectorSimilarity()

    assert similarity("alpha", "beta") == pytest.approx(0.8)
    assert similarity("alpha", "gamma") == 0.0
    assert calls == ["alpha", "beta", "gamma"]


def test_blank_text_and_missing_vectors_score_zero(monkeypatch: pytest.MonkeyPatch) -> None:
    _install_fake_spacy(monkeypatch, {"alpha": 0.9})
    similarity = SpacyVectorSimilarity()

    assert similarity("   ", "alpha") == 0.0
    assert similarity("alpha", "unknown words") == 0.0


def test_cache_evicts_oldest(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = _install_fake_spacy(monkeypatch, {"a": 0.1, "b": 0.2, "c": 0.3})
    similarity = SpacyVectorSimilarity(cache_size=2)

    similarity("a", "b")
    similarity("c", "b")
    similarity("a", "b")

    assert calls == ["a", "b", "c", "a", "b"]
