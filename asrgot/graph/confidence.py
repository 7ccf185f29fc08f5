"""
Confidence update model.

The evidence update is a multiplicative surrogate for a Bayesian update:

    delta = strength * power * novelty * UPDATE_SCALE * multiplier(edge_type)
    c'    = clamp(c * (1 + delta), CLAMP_MIN, CLAMP_MAX)

``strength`` is the mean of the evidence confidence and ``power`` its reported
statistical power (``DEFAULT_POWER`` when absent). Supportive, correlative and
causal evidence never lowers a component; contradictory evidence never raises one.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Final

from asrgot.core.errors import ValidationError
from asrgot.graph.schema import ConfidenceVector, EdgeType

CLAMP_MIN: Final[float] = 0.01
CLAMP_MAX: Final[float] = 0.99
UPDATE_SCALE: Final[float] = 0.3
DEFAULT_POWER: Final[float] = 0.8

RELATIONSHIP_MULTIPLIERS: Final[dict[EdgeType, float]] = {
    EdgeType.SUPPORTIVE: 1.0,
    EdgeType.CONTRADICTORY: -1.0,
    EdgeType.CORRELATIVE: 0.5,
    EdgeType.CAUSAL: 1.2,
}
OTHER_MULTIPLIER: Final[float] = 0.3


def clamp(value: float, low: float = CLAMP_MIN, high: float = CLAMP_MAX) -> float:
    return max(low, min(high, value))


def relationship_multiplier(edge_type: EdgeType) -> float:
    """Signed weight of an evidence relationship in the update rule."""
    return RELATIONSHIP_MULTIPLIERS.get(edge_type, OTHER_MULTIPLIER)


def update_delta(
    evidence: ConfidenceVector,
    edge_type: EdgeType,
    *,
    novelty: float,
    power: float | None = None,
) -> float:
    """Relative change applied to every component of the evidence target."""
    effective_power = DEFAULT_POWER if power is None else power
    return evidence.mean * effective_power * novelty * UPDATE_SCALE * relationship_multiplier(edge_type)


def apply_update(current: ConfidenceVector, delta: float) -> ConfidenceVector:
    """Scale each component by ``1 + delta`` and clamp into [0.01, 0.99]."""
    updated = ConfidenceVector(*(clamp(c * (1.0 + delta)) for c in current.values))
    if current.variances is not None:
        return updated.with_beta_variances()
    return updated


def merge_max(vectors: Iterable[ConfidenceVector]) -> ConfidenceVector:
    """Component-wise maximum of the given vectors."""
    items = list(vectors)
    if not items:
        raise ValidationError("cannot merge an empty set of confidence vectors")
    return ConfidenceVector(*(max(column) for column in zip(*(v.values for v in items))))


def decay_multiplier(decay_factor: float, age_days: float) -> float:
    """``decay_factor ** age_days``; negative ages count as zero."""
    return decay_factor ** max(0.0, age_days)


def apply_decay(base: ConfidenceVector, multiplier: float) -> ConfidenceVector:
    """Scale ``base`` by ``multiplier``. A multiplier of 1 returns ``base`` unchanged."""
    if multiplier >= 1.0:
        return base
    return ConfidenceVector(*(clamp(c * multiplier) for c in base.values))
