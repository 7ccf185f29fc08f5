"""Session configuration for the reasoning graph."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from typing import Any, Final

from asrgot.core.errors import ValidationError

INT_FIELDS: Final[tuple[str, ...]] = ("max_vertices", "max_edges", "max_causal_depth", "max_causal_expansions")
UNIT_FIELDS: Final[tuple[str, ...]] = ("pruning_threshold", "merging_threshold", "bridge_similarity_threshold")


@dataclass(frozen=True)
class GraphConfig:
    """
    Immutable limits and thresholds for one reasoning session.

    Attributes:
        max_vertices: Vertex cap enforced before every node creation
        max_edges: Edge cap enforced before every edge creation
        decay_factor: Per-day temporal decay applied to evidence confidence
        pruning_threshold: Default mean-confidence threshold for pruning
        merging_threshold: Default similarity threshold for merging
        bridge_similarity_threshold: Similarity above which a bridge node is created
        max_causal_depth: Maximum path length explored by causal path search
        max_causal_expansions: Maximum node expansions per causal path search
    """

    max_vertices: int = 10_000
    max_edges: int = 50_000
    decay_factor: float = 0.95
    pruning_threshold: float = 0.2
    merging_threshold: float = 0.8
    bridge_similarity_threshold: float = 0.5
    max_causal_depth: int = 8
    max_causal_expansions: int = 10_000

    def __post_init__(self) -> None:
        for name in INT_FIELDS:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ValidationError(f"{name} must be a positive integer, got {value!r}", field=name)
        for name in ("decay_factor", *UNIT_FIELDS):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValidationError(f"{name} must be a number, got {value!r}", field=name)
        if not 0.0 < self.decay_factor <= 1.0:
            raise ValidationError(
                f"decay_factor must be in (0, 1], got {self.decay_factor}", field="decay_factor"
            )
        for name in UNIT_FIELDS:
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValidationError(f"{name} must be in [0, 1], got {value}", field=name)

    @classmethod
    def field_names(cls) -> frozenset[str]:
        return frozenset(f.name for f in fields(cls))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> GraphConfig:
        """
        Build a config from a plain mapping.

        Raises:
            ValidationError: If the mapping contains unknown keys or invalid values
        """
        return cls().with_overrides(data)

    def with_overrides(self, data: Mapping[str, Any]) -> GraphConfig:
        """Return a copy with the given fields replaced."""
        unknown = set(data) - self.field_names()
        if unknown:
            raise ValidationError(f"Unknown config keys: {', '.join(sorted(unknown))}", field="config")
        return replace(self, **dict(data))
