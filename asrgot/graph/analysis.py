"""
Read-only analyses over a reasoning graph.

Nothing here mutates the graph or depends on the lifecycle stage beyond the
graph being initialized. Causal path search is an iterative, bounded
depth-first search: cycles are skipped through the per-path visited set, and
the depth and expansion caps end the search early with the best paths found
so far.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from statistics import mean
from typing import Any

import networkx as nx

from asrgot.core.errors import ValidationError
from asrgot.core.logging_config import get_logger
from asrgot.graph.audit import is_critical_gap
from asrgot.graph.extraction import average_degree, density
from asrgot.graph.export import to_undirected_simple
from asrgot.graph.inputs import parse_ids
from asrgot.graph.schema import (
    CAUSAL_EDGE_TYPES,
    TEMPORAL_EDGE_TYPES,
    Edge,
    Node,
    NodeKind,
)
from asrgot.graph.store import ReasoningGraph

logger = get_logger("graph.analysis")


def _nodes_for(graph: ReasoningGraph, node_ids: Iterable[str] | None) -> list[Node]:
    if node_ids is None:
        return graph.nodes()
    return [graph.get_node(node_id) for node_id in node_ids]


def graph_summary(graph: ReasoningGraph) -> dict[str, Any]:
    """Counts, topology and quality figures for the whole graph."""
    nodes = graph.nodes()
    undirected = to_undirected_simple(graph)
    pairs = undirected.number_of_edges()
    means = [node.mean_confidence for node in nodes]
    hypotheses = [n for n in nodes if n.base_kind is NodeKind.HYPOTHESIS]

    layers = {layer.layer_id: len(layer.node_ids) for layer in graph.layers()}
    kinds: dict[str, int] = {}
    for node in nodes:
        kinds[node.kind.value] = kinds.get(node.kind.value, 0) + 1

    return {
        "stage": int(graph.stage),
        "stage_name": graph.stage.label,
        "node_count": len(nodes),
        "edge_count": graph.edge_count,
        "hyperedge_count": len(graph.hyperedges()),
        "layers": layers,
        "kinds": kinds,
        "density": density(len(nodes), pairs),
        "average_degree": average_degree(len(nodes), pairs),
        "clustering_coefficient": nx.average_clustering(undirected) if nodes else 0.0,
        "connected_components": nx.number_connected_components(undirected) if nodes else 0,
        "confidence": {
            "mean": mean(means) if means else 0.0,
            "min": min(means) if means else 0.0,
            "max": max(means) if means else 0.0,
        },
        "impact_distribution": {
            "high": sum(1 for n in nodes if n.metadata.impact_score > 0.7),
            "medium": sum(1 for n in nodes if 0.4 <= n.metadata.impact_score <= 0.7),
            "low": sum(1 for n in nodes if n.metadata.impact_score < 0.4),
        },
        "bias_flag_count": sum(len(n.metadata.bias_flags) for n in nodes),
        "falsifiability_coverage": (
            sum(1 for n in hypotheses if n.metadata.falsification_criteria) / len(hypotheses)
            if hypotheses
            else 1.0
        ),
        "bridge_count": sum(1 for n in nodes if n.base_kind is NodeKind.BRIDGE),
        "knowledge_gap_count": sum(1 for n in nodes if n.base_kind is NodeKind.PLACEHOLDER_GAP),
    }


def analyze_knowledge_gaps(
    graph: ReasoningGraph,
    *,
    impact_threshold: float = 0.6,
    confidence_threshold: float = 0.4,
) -> dict[str, Any]:
    """
    List high-impact, low-confidence nodes and registered gap placeholders.

    A gap is critical when its impact is at least ``impact_threshold`` and its
    mean confidence at most ``confidence_threshold``.
    """
    gaps: list[dict[str, Any]] = []
    for node in graph.nodes():
        registered = node.base_kind is NodeKind.PLACEHOLDER_GAP
        weak = node.mean_confidence < 0.4 and node.metadata.impact_score > 0.6
        if not (registered or weak):
            continue
        gaps.append(
            {
                "node_id": node.node_id,
                "content": node.content,
                "confidence": node.mean_confidence,
                "impact": node.metadata.impact_score,
                "gap_type": "registered_gap" if registered else "high_impact_low_confidence",
                "unresolved_critical": is_critical_gap(node),
            }
        )
    critical = [
        gap
        for gap in gaps
        if gap["impact"] >= impact_threshold and gap["confidence"] <= confidence_threshold
    ]
    return {"knowledge_gaps": critical, "total_gaps": len(gaps), "critical_gaps": len(critical)}


def detect_biases(graph: ReasoningGraph) -> dict[str, Any]:
    by_node: dict[str, list[str]] = {}
    by_type: dict[str, int] = {}
    for node in graph.nodes():
        if node.metadata.bias_flags:
            by_node[node.node_id] = list(node.metadata.bias_flags)
            for flag in node.metadata.bias_flags:
                by_type[flag] = by_type.get(flag, 0) + 1
    total = sum(by_type.values())
    recommendations = (
        [
            "Review and address identified biases",
            "Consider alternative perspectives and methodologies",
        ]
        if total
        else []
    )
    return {
        "total_bias_flags": total,
        "bias_by_node": by_node,
        "bias_types": by_type,
        "recommendations": recommendations,
    }


@dataclass(frozen=True)
class CausalPath:
    node_ids: tuple[str, ...]
    edge_ids: tuple[str, ...]
    confidence: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": list(self.node_ids),
            "edges": list(self.edge_ids),
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class CausalSearch:
    source: str
    target: str
    paths: list[CausalPath] = field(default_factory=list)
    truncated: bool = False

    @property
    def strongest_confidence(self) -> float:
        return max((p.confidence for p in self.paths), default=0.0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "target": self.target,
            "causal_paths": [p.to_dict() for p in self.paths],
            "direct_causal_connection": bool(self.paths),
            "strongest_path_confidence": self.strongest_confidence,
            "truncated": self.truncated,
        }


def _is_causal(edge: Edge) -> bool:
    return edge.causal_metadata is not None or edge.edge_type in CAUSAL_EDGE_TYPES


def find_causal_paths(
    graph: ReasoningGraph,
    source: str,
    target: str,
    *,
    max_depth: int | None = None,
    max_expansions: int | None = None,
) -> CausalSearch:
    """
    Enumerate simple directed causal paths from ``source`` to ``target``.

    Path confidence is the product of the mean confidences of its edges.
    Paths are returned strongest first.

    Raises:
        ValidationError: If either endpoint does not exist
    """
    graph.get_node(source)
    graph.get_node(target)
    depth_cap = max_depth if max_depth is not None else graph.config.max_causal_depth
    expansion_cap = (
        max_expansions if max_expansions is not None else graph.config.max_causal_expansions
    )
    if depth_cap < 1 or expansion_cap < 1:
        raise ValidationError("causal search caps must be positive", field="max_depth")

    paths: list[CausalPath] = []
    truncated = False
    expansions = 0
    # Each frame: (node, node path, edge path, confidence)
    stack: list[tuple[str, tuple[str, ...], tuple[str, ...], float]] = [
        (source, (source,), (), 1.0)
    ]
    while stack:
        node_id, node_path, edge_path, confidence = stack.pop()
        if node_id == target and edge_path:
            paths.append(CausalPath(node_path, edge_path, confidence))
            continue
        onward = [
            edge
            for edge in graph.out_edges(node_id)
            if _is_causal(edge) and edge.target not in node_path
        ]
        if not onward:
            continue
        if len(edge_path) >= depth_cap or expansions >= expansion_cap:
            truncated = True
            continue
        expansions += 1
        for edge in reversed(onward):
            stack.append(
                (
                    edge.target,
                    node_path + (edge.target,),
                    edge_path + (edge.edge_id,),
                    confidence * edge.confidence.mean,
                )
            )
    paths.sort(key=lambda p: (-p.confidence, len(p.edge_ids), p.node_ids))
    if truncated:
        logger.warning(
            "Causal search %s -> %s truncated after %d expansion(s) (depth cap %d)",
            source,
            target,
            expansions,
            depth_cap,
        )
    return CausalSearch(source=source, target=target, paths=paths, truncated=truncated)


def detect_temporal_patterns(
    graph: ReasoningGraph, node_ids: Sequence[str] | None = None
) -> dict[str, Any]:
    """Group temporal edges touching ``node_ids`` (all nodes by default) by pattern."""
    scope = {node.node_id for node in _nodes_for(graph, node_ids)}
    temporal_edges: list[dict[str, Any]] = []
    for edge in graph.edges():
        if edge.source not in scope and edge.target not in scope:
            continue
        if edge.temporal_metadata is None and edge.edge_type not in TEMPORAL_EDGE_TYPES:
            continue
        meta = edge.temporal_metadata
        temporal_edges.append(
            {
                "edge_id": edge.edge_id,
                "source": edge.source,
                "target": edge.target,
                "edge_type": edge.edge_type.value,
                "pattern": meta.pattern if meta is not None else edge.edge_type.value.lower(),
                "delay": meta.delay if meta is not None else None,
            }
        )
    groups: dict[str, list[dict[str, Any]]] = {}
    for item in temporal_edges:
        groups.setdefault(item["pattern"], []).append(item)
    patterns = [
        {"pattern": pattern, "count": len(items), "examples": items[:3]}
        for pattern, items in groups.items()
    ]
    return {"temporal_edges": temporal_edges, "detected_patterns": patterns}


def estimate_research_impact(
    graph: ReasoningGraph, node_ids: Sequence[str] | None = None
) -> dict[str, Any]:
    nodes = _nodes_for(graph, node_ids)
    scores = {
        node.node_id: {
            "score": node.metadata.impact_score,
            "kind": node.kind.value,
            "confidence": node.mean_confidence,
        }
        for node in nodes
    }
    high = [node.node_id for node in nodes if node.metadata.impact_score > 0.7]
    return {
        "nodes_analyzed": len(nodes),
        "impact_scores": scores,
        "overall_impact": mean(n.metadata.impact_score for n in nodes) if nodes else 0.0,
        "high_impact_nodes": high,
        "recommendations": ["Focus resources on high-impact research areas"] if high else [],
    }


@dataclass(frozen=True)
class Intervention:
    """
    A candidate research action.

    Attributes:
        name: Display name
        target_nodes: Node ids the action is expected to inform
        expected_confidence_change: Expected per-component confidence gain
        cost: Relative cost; must be positive
    """

    name: str
    target_nodes: tuple[str, ...]
    expected_confidence_change: tuple[float, float, float, float] = (0.1, 0.1, 0.1, 0.1)
    cost: float = 1.0

    @classmethod
    def parse(cls, value: Mapping[str, Any] | Intervention, *, index: int = 0) -> Intervention:
        if isinstance(value, Intervention):
            return value
        if not isinstance(value, Mapping):
            raise ValidationError(f"interventions[{index}] must be an object", field="interventions")
        name = value.get("name") or f"intervention_{index + 1}"
        change = value.get("expected_confidence_change", (0.1, 0.1, 0.1, 0.1))
        if isinstance(change, (str, bytes)) or not isinstance(change, Sequence) or len(change) != 4:
            raise ValidationError(
                "expected_confidence_change must have exactly 4 components",
                field=f"interventions[{index}].expected_confidence_change",
            )
        cost = value.get("cost", 1.0)
        if isinstance(cost, bool) or not isinstance(cost, (int, float)) or cost <= 0:
            raise ValidationError(
                "cost must be a positive number", field=f"interventions[{index}].cost"
            )
        return cls(
            name=str(name),
            target_nodes=tuple(
                parse_ids(value.get("target_nodes"), field=f"interventions[{index}].target_nodes")
            ),
            expected_confidence_change=tuple(float(c) for c in change),  # type: ignore[arg-type]
            cost=float(cost),
        )


def expected_value_of_information(graph: ReasoningGraph, intervention: Intervention) -> float:
    """
    ``sum(mean(change) * impact * (1 - mean confidence)) / cost``, capped at 1.

    Targets that no longer exist contribute nothing.
    """
    improvement = sum(intervention.expected_confidence_change) / 4.0
    value = 0.0
    for node_id in intervention.target_nodes:
        if not graph.has_node(node_id):
            continue
        node = graph.get_node(node_id)
        value += improvement * node.metadata.impact_score * max(0.0, 1.0 - node.mean_confidence)
    return min(1.0, value / intervention.cost)


def priority(evoi: float) -> str:
    if evoi > 0.7:
        return "high"
    if evoi > 0.4:
        return "medium"
    return "low"


def plan_interventions(
    graph: ReasoningGraph, interventions: Sequence[Mapping[str, Any] | Intervention]
) -> dict[str, Any]:
    """Rank interventions by Expected Value of Information, highest first."""
    if isinstance(interventions, (str, bytes)) or not isinstance(interventions, Sequence):
        raise ValidationError("interventions must be a list", field="interventions")
    parsed = [Intervention.parse(item, index=i) for i, item in enumerate(interventions)]
    ranked = []
    for item in parsed:
        evoi = expected_value_of_information(graph, item)
        ranked.append(
            {
                "name": item.name,
                "target_nodes": list(item.target_nodes),
                "expected_confidence_change": list(item.expected_confidence_change),
                "cost": item.cost,
                "evoi": evoi,
                "priority": priority(evoi),
            }
        )
    ranked.sort(key=lambda r: -r["evoi"])
    recommendations = (
        [f"Prioritize: {ranked[0]['name']} (EVoI: {ranked[0]['evoi']:.3f})"] if ranked else []
    )
    return {
        "total_interventions": len(ranked),
        "ranked_interventions": ranked,
        "total_evoi": sum(r["evoi"] for r in ranked),
        "recommendations": recommendations,
    }


def research_plans(graph: ReasoningGraph) -> list[dict[str, Any]]:
    """Pending research plans of every hypothesis, in node order."""
    return [
        {"node_id": node.node_id, "content": node.content, "plan": node.metadata.plan.to_dict()}
        for node in graph.nodes()
        if node.metadata.plan is not None
    ]
