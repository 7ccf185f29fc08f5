"""Tests for the confidence update, merge and decay model."""

from __future__ import annotations

import pytest

from asrgot.graph import confidence as model
from asrgot.graph.schema import ConfidenceVector, EdgeType


def test_update_delta_formula() -> None:
    evidence = ConfidenceVector.uniform(0.9)

    delta = model.update_delta(evidence, EdgeType.SUPPORTIVE, novelty=1.0, power=0.9)

    assert delta == pytest.approx(0.9 * 0.9 * 1.0 * 0.3 * 1.0)


def test_default_power_is_used_when_missing() -> None:
    evidence = ConfidenceVector.uniform(0.5)

    delta = model.update_delta(evidence, EdgeType.CAUSAL, novelty=0.5)

    assert delta == pytest.approx(0.5 * 0.8 * 0.5 * 0.3 * 1.2)


@pytest.mark.parametrize(
    ("edge_type", "multiplier"),
    [
        (EdgeType.SUPPORTIVE, 1.0),
        (EdgeType.CONTRADICTORY, -1.0),
        (EdgeType.CORRELATIVE, 0.5),
        (EdgeType.CAUSAL, 1.2),
        (EdgeType.PREREQUISITE, 0.3),
        (EdgeType.TEMPORAL_PRECEDENCE, 0.3),
    ],
)
def test_relationship_multipliers(edge_type: EdgeType, multiplier: float) -> None:
    assert model.relationship_multiplier(edge_type) == multiplier


def test_supportive_update_never_lowers_components() -> None:
    current = ConfidenceVector.from_sequence([0.2, 0.4, 0.6, 0.8])

    updated = model.apply_update(current, 0.2)

    assert all(new >= old for new, old in zip(updated.values, current.values))


def test_contradictory_update_never_raises_components() -> None:
    current = ConfidenceVector.from_sequence([0.2, 0.4, 0.6, 0.8])

    updated = model.apply_update(current, -0.2)

    assert all(new <= old for new, old in zip(updated.values, current.values))


def test_update_clamps_into_bounds() -> None:
    high = model.apply_update(ConfidenceVector.uniform(0.95), 0.5)
    low = model.apply_update(ConfidenceVector.uniform(0.02), -0.9)

    assert high.values == (0.99, 0.99, 0.99, 0.99)
    assert low.values == (0.01, 0.01, 0.01, 0.01)


def test_update_keeps_variances_consistent() -> None:
    current = ConfidenceVector.uniform(0.5).with_beta_variances()

    updated = model.apply_update(current, 0.2)

    assert updated.variances == pytest.approx((0.24, 0.24, 0.24, 0.24))


def test_merge_preserves_component_maxima() -> None:
    merged = model.merge_max(
        [
            ConfidenceVector.from_sequence([0.6, 0.6, 0.6, 0.6]),
            ConfidenceVector.from_sequence([0.4, 0.9, 0.4, 0.4]),
        ]
    )

    assert merged.values == (0.6, 0.9, 0.6, 0.6)


def test_decay_multiplier() -> None:
    assert model.decay_multiplier(0.95, 0.0) == 1.0
    assert model.decay_multiplier(0.95, 2.0) == pytest.approx(0.9025)
    assert model.decay_multiplier(0.95, -3.0) == 1.0


def test_decay_at_zero_age_is_identity() -> None:
    base = ConfidenceVector.uniform(0.7)

    assert model.apply_decay(base, model.decay_multiplier(0.95, 0.0)) == base
