"""
Output composition (stage 7).

Turns the extracted subgraph into structured claims. Each claim carries the
id of the node it came from and the types of the edges incident to it.
Composition reads the graph only; it never writes prose and never mutates
node or edge content.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from asrgot.core.errors import ValidationError
from asrgot.core.logging_config import get_logger
from asrgot.core.stages import Stage
from asrgot.graph.schema import (
    CAUSAL_EDGE_TYPES,
    TEMPORAL_EDGE_TYPES,
    EdgeType,
    Node,
    NodeKind,
)
from asrgot.graph.store import ReasoningGraph

logger = get_logger("graph.composition")

DEFAULT_CLAIM_KINDS = frozenset({NodeKind.HYPOTHESIS, NodeKind.EVIDENCE, NodeKind.PLACEHOLDER_GAP})


@dataclass(frozen=True)
class Claim:
    node_id: str
    label: str
    kind: str
    statement: str
    mean_confidence: float
    impact_score: float
    edge_types: tuple[str, ...]
    dimension_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "node_id": self.node_id,
            "label": self.label,
            "kind": self.kind,
            "statement": self.statement,
            "mean_confidence": self.mean_confidence,
            "impact_score": self.impact_score,
            "edge_types": list(self.edge_types),
            "dimension_id": self.dimension_id,
        }


@dataclass(frozen=True)
class EdgeAnnotation:
    edge_id: str
    source: str
    target: str
    edge_type: str
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "edge_id": self.edge_id,
            "source": self.source,
            "target": self.target,
            "edge_type": self.edge_type,
            "details": dict(self.details),
        }


@dataclass(frozen=True)
class Composition:
    claims: list[Claim]
    causal_annotations: list[EdgeAnnotation]
    temporal_annotations: list[EdgeAnnotation]


@dataclass(frozen=True)
class CompositionOptions:
    """
    Attributes:
        kinds: Node kinds that yield claims (merged nodes match their originals)
        min_confidence: Minimum mean confidence for a claim
        max_claims: Keep only the strongest claims when set
    """

    kinds: frozenset[NodeKind] = DEFAULT_CLAIM_KINDS
    min_confidence: float = 0.0
    max_claims: int | None = None

    @classmethod
    def parse(cls, data: Mapping[str, Any] | CompositionOptions | None) -> CompositionOptions:
        if data is None:
            return cls()
        if isinstance(data, CompositionOptions):
            return data
        if not isinstance(data, Mapping):
            raise ValidationError("options must be an object", field="options")
        unknown = set(data) - {"kinds", "min_confidence", "max_claims"}
        if unknown:
            raise ValidationError(f"Unknown option keys: {', '.join(sorted(unknown))}", field="options")
        try:
            kinds = frozenset(NodeKind(k) for k in data["kinds"]) if "kinds" in data else DEFAULT_CLAIM_KINDS
        except ValueError as e:
            raise ValidationError(f"Unknown node kind: {e}", field="kinds") from e
        min_confidence = data.get("min_confidence", 0.0)
        if isinstance(min_confidence, bool) or not isinstance(min_confidence, (int, float)) or not (
            0.0 <= min_confidence <= 1.0
        ):
            raise ValidationError("min_confidence must be in [0, 1]", field="min_confidence")
        max_claims = data.get("max_claims")
        if max_claims is not None and (
            isinstance(max_claims, bool) or not isinstance(max_claims, int) or max_claims < 1
        ):
            raise ValidationError("max_claims must be a positive integer", field="max_claims")
        return cls(kinds=kinds, min_confidence=float(min_confidence), max_claims=max_claims)


def _dimension_of(graph: ReasoningGraph, node: Node) -> str | None:
    for edge in graph.in_edges(node.node_id):
        if edge.edge_type is EdgeType.HYPOTHESIS:
            return edge.source
    return None


def compose(
    graph: ReasoningGraph,
    node_ids: Iterable[str] | None,
    options: CompositionOptions,
) -> Composition:
    """Build claims and edge annotations from ``node_ids`` (all nodes when ``None``)."""
    if node_ids is None:
        nodes = graph.nodes()
    else:
        nodes = [graph.get_node(node_id) for node_id in node_ids if graph.has_node(node_id)]
    selected = {node.node_id for node in nodes}

    claims: list[Claim] = []
    for node in nodes:
        if node.kind not in options.kinds and node.base_kind not in options.kinds:
            continue
        if node.mean_confidence < options.min_confidence:
            continue
        edge_types = sorted({edge.edge_type.value for edge in graph.incident_edges(node.node_id)})
        claims.append(
            Claim(
                node_id=node.node_id,
                label=node.label,
                kind=node.kind.value,
                statement=node.content,
                mean_confidence=node.mean_confidence,
                impact_score=node.metadata.impact_score,
                edge_types=tuple(edge_types),
                dimension_id=_dimension_of(graph, node),
            )
        )
    if options.max_claims is not None:
        ranked = sorted(claims, key=lambda c: (-c.mean_confidence * c.impact_score, c.node_id))
        keep = {claim.node_id for claim in ranked[: options.max_claims]}
        claims = [claim for claim in claims if claim.node_id in keep]

    causal: list[EdgeAnnotation] = []
    temporal: list[EdgeAnnotation] = []
    for edge in graph.edges():
        if edge.source not in selected or edge.target not in selected:
            continue
        if edge.causal_metadata is not None or edge.edge_type in CAUSAL_EDGE_TYPES:
            details = edge.causal_metadata.to_dict() if edge.causal_metadata is not None else {}
            causal.append(
                EdgeAnnotation(edge.edge_id, edge.source, edge.target, edge.edge_type.value, details)
            )
        if edge.temporal_metadata is not None or edge.edge_type in TEMPORAL_EDGE_TYPES:
            details = edge.temporal_metadata.to_dict() if edge.temporal_metadata is not None else {}
            temporal.append(
                EdgeAnnotation(edge.edge_id, edge.source, edge.target, edge.edge_type.value, details)
            )
    return Composition(claims=claims, causal_annotations=causal, temporal_annotations=temporal)


def compose_output(
    graph: ReasoningGraph,
    node_ids: Iterable[str] | None,
    options: CompositionOptions,
) -> Composition:
    """
    Compose claims and advance stage 6 to 7.

    Raises:
        StageViolation: Unless the graph is at stage 6
    """
    graph.stages.require("compose_output", Stage.SUBGRAPH_EXTRACTION)
    composition = compose(graph, node_ids, options)
    graph.stages.advance()
    logger.info(
        "Stage 7: composed %d claim(s), %d causal and %d temporal annotation(s)",
        len(composition.claims),
        len(composition.causal_annotations),
        len(composition.temporal_annotations),
    )
    return composition
