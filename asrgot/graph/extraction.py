"""Subgraph extraction (stage 6)."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields
from typing import Any

from asrgot.core.errors import ValidationError
from asrgot.core.logging_config import get_logger
from asrgot.core.stages import Stage
from asrgot.graph.inputs import parse_tags, parse_unit
from asrgot.graph.schema import Edge, EdgeType, Node, NodeKind
from asrgot.graph.store import ReasoningGraph

logger = get_logger("graph.extraction")


def _optional_unit(data: Mapping[str, Any], name: str) -> float | None:
    if data.get(name) is None:
        return None
    return parse_unit(data[name], field=name, default=0.0)


@dataclass(frozen=True)
class SubgraphCriteria:
    """
    Node and edge filters for extraction. Every filter is optional.

    Attributes:
        min_confidence: Minimum mean confidence
        min_impact: Minimum impact score
        kinds: Allowed node kinds (merged nodes match their originals' kind)
        layers: Allowed layer ids
        tags: At least one of these disciplinary tags is required
        include_bridges: Keep bridge nodes regardless of the other filters
        edge_types: Allowed edge types
    """

    min_confidence: float | None = None
    min_impact: float | None = None
    kinds: frozenset[NodeKind] | None = None
    layers: frozenset[str] | None = None
    tags: frozenset[str] | None = None
    include_bridges: bool = True
    edge_types: frozenset[EdgeType] | None = None

    @classmethod
    def parse(cls, data: Mapping[str, Any] | SubgraphCriteria | None) -> SubgraphCriteria:
        if data is None:
            return cls()
        if isinstance(data, SubgraphCriteria):
            return data
        if not isinstance(data, Mapping):
            raise ValidationError("criteria must be an object", field="criteria")
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValidationError(
                f"Unknown criteria keys: {', '.join(sorted(unknown))}", field="criteria"
            )
        kinds = data.get("kinds")
        edge_types = data.get("edge_types")
        try:
            parsed_kinds = frozenset(NodeKind(k) for k in kinds) if kinds is not None else None
        except ValueError as e:
            raise ValidationError(f"Unknown node kind: {e}", field="kinds") from e
        layers = data.get("layers")
        tags = data.get("tags")
        return cls(
            min_confidence=_optional_unit(data, "min_confidence"),
            min_impact=_optional_unit(data, "min_impact"),
            kinds=parsed_kinds,
            layers=frozenset(parse_tags(layers, field="layers")) if layers is not None else None,
            tags=frozenset(parse_tags(tags, field="tags")) if tags is not None else None,
            include_bridges=bool(data.get("include_bridges", True)),
            edge_types=(
                frozenset(EdgeType.parse(t, field="edge_types") for t in edge_types)
                if edge_types is not None
                else None
            ),
        )

    def selects(self, node: Node) -> bool:
        if node.kind is NodeKind.BRIDGE:
            return self.include_bridges
        if self.min_confidence is not None and node.mean_confidence < self.min_confidence:
            return False
        if self.min_impact is not None and node.metadata.impact_score < self.min_impact:
            return False
        if self.kinds is not None and node.kind not in self.kinds and node.base_kind not in self.kinds:
            return False
        if self.layers is not None and node.metadata.layer_id not in self.layers:
            return False
        if self.tags is not None and not (node.metadata.disciplinary_tags & self.tags):
            return False
        return True

    def keeps(self, edge: Edge) -> bool:
        return self.edge_types is None or edge.edge_type in self.edge_types


def density(node_count: int, edge_count: int) -> float:
    """``2E / (N(N-1))``; 0 for graphs with fewer than two nodes."""
    if node_count <= 1:
        return 0.0
    return 2.0 * edge_count / (node_count * (node_count - 1))


def average_degree(node_count: int, edge_count: int) -> float:
    """``2E / N``; 0 for the empty graph."""
    if node_count == 0:
        return 0.0
    return 2.0 * edge_count / node_count


def _linked_pairs(edges: list[Edge]) -> int:
    return len({frozenset((edge.source, edge.target)) for edge in edges})


@dataclass(frozen=True)
class Subgraph:
    """An induced subgraph with its density figures.

    ``density`` and ``average_degree`` count linked node pairs, so parallel
    or reciprocal edges do not push density above 1.
    """

    nodes: list[Node]
    edges: list[Edge]
    density: float
    average_degree: float

    @property
    def node_ids(self) -> list[str]:
        return [node.node_id for node in self.nodes]


def induced_subgraph(graph: ReasoningGraph, criteria: SubgraphCriteria) -> Subgraph:
    """Select nodes and the edges between them without touching the stage."""
    nodes = [node for node in graph.nodes() if criteria.selects(node)]
    selected = {node.node_id for node in nodes}
    edges = [
        edge
        for edge in graph.edges()
        if edge.source in selected and edge.target in selected and criteria.keeps(edge)
    ]
    pairs = _linked_pairs(edges)
    return Subgraph(
        nodes=nodes,
        edges=edges,
        density=density(len(nodes), pairs),
        average_degree=average_degree(len(nodes), pairs),
    )


def extract_subgraph(graph: ReasoningGraph, criteria: SubgraphCriteria) -> Subgraph:
    """
    Extract the subgraph matching ``criteria`` and advance stage 5 to 6.

    Raises:
        StageViolation: Unless the graph is at stage 5
    """
    graph.stages.require("extract_subgraph", Stage.PRUNING_MERGING)
    subgraph = induced_subgraph(graph, criteria)
    graph.stages.advance()
    logger.info(
        "Stage 6: extracted %d node(s), %d edge(s), density %.3f",
        len(subgraph.nodes),
        len(subgraph.edges),
        subgraph.density,
    )
    return subgraph
