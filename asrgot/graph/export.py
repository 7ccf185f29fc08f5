"""
Snapshot serialization.

``json`` is the lossless format and round-trips through ``load_snapshot``.
``yaml`` carries the same document through PyYAML. ``graphml`` flattens the
graph into a networkx multigraph for visualization tools; it keeps node and
edge attributes but not revision history.
"""

from __future__ import annotations

import json
from typing import Any, Final

import networkx as nx
import yaml

from asrgot.core.errors import ValidationError
from asrgot.graph.schema import COMPONENTS, ConfidenceVector
from asrgot.graph.store import Clock, ReasoningGraph

SUPPORTED_FORMATS: Final[tuple[str, ...]] = ("json", "yaml", "graphml")
LOADABLE_FORMATS: Final[tuple[str, ...]] = ("json", "yaml")


def _confidence_attrs(confidence: ConfidenceVector) -> dict[str, float]:
    attrs = {name: value for name, value in zip(COMPONENTS, confidence.values)}
    attrs["mean_confidence"] = confidence.mean
    return attrs


def to_networkx(graph: ReasoningGraph) -> nx.MultiDiGraph:
    """
    Build a networkx multigraph with GraphML-safe scalar attributes.

    Edges are keyed by edge id. Hyperedges are kept as a JSON string in the
    graph attributes since GraphML has no hyperedge support in networkx.
    """
    result = nx.MultiDiGraph()
    result.graph["stage"] = int(graph.stage)
    result.graph["hyperedges"] = json.dumps([h.to_dict() for h in graph.hyperedges()])
    for node in graph.nodes():
        meta = node.metadata
        result.add_node(
            node.node_id,
            label=node.label,
            kind=node.kind.value,
            base_kind=node.base_kind.value,
            content=node.content,
            layer_id=meta.layer_id,
            provenance=meta.provenance,
            epistemic_status=meta.epistemic_status,
            impact_score=meta.impact_score,
            disciplinary_tags=";".join(sorted(meta.disciplinary_tags)),
            bias_flags=";".join(meta.bias_flags),
            falsification_criteria=meta.falsification_criteria or "",
            degree=meta.topology_metrics.degree,
            **_confidence_attrs(node.confidence),
        )
    for edge in graph.edges():
        attrs: dict[str, Any] = {"edge_type": edge.edge_type.value}
        attrs.update(_confidence_attrs(edge.confidence))
        if edge.causal_metadata is not None:
            attrs["causal_mechanism"] = edge.causal_metadata.mechanism or ""
            attrs["causal_confounders"] = ";".join(edge.causal_metadata.confounders)
            attrs["causal_strength"] = edge.causal_metadata.strength
        if edge.temporal_metadata is not None:
            attrs["temporal_pattern"] = edge.temporal_metadata.pattern
            attrs["temporal_delay"] = edge.temporal_metadata.delay or ""
        result.add_edge(edge.source, edge.target, key=edge.edge_id, **attrs)
    return result


def to_undirected_simple(graph: ReasoningGraph) -> nx.Graph:
    """Undirected simple view used for clustering and component counts."""
    return nx.Graph(to_networkx(graph).to_undirected())


def export_snapshot(graph: ReasoningGraph, fmt: str = "json") -> str:
    """
    Serialize the graph without mutating it.

    Raises:
        ValidationError: On unsupported formats
    """
    fmt = fmt.lower()
    if fmt == "json":
        return json.dumps(graph.to_dict(), indent=2)
    if fmt == "yaml":
        return yaml.safe_dump(graph.to_dict(), sort_keys=False, allow_unicode=True)
    if fmt == "graphml":
        return "\n".join(nx.generate_graphml(to_networkx(graph)))
    raise ValidationError(
        f"Unsupported export format: {fmt}. Supported: {', '.join(SUPPORTED_FORMATS)}",
        field="format",
    )


def load_snapshot(text: str, fmt: str = "json", *, clock: Clock | None = None) -> ReasoningGraph:
    """
    Rebuild a graph from a ``json`` or ``yaml`` snapshot.

    Raises:
        ValidationError: On unsupported formats or malformed documents
    """
    fmt = fmt.lower()
    try:
        if fmt == "json":
            document = json.loads(text)
        elif fmt == "yaml":
            document = yaml.safe_load(text)
        else:
            raise ValidationError(
                f"Unsupported snapshot format: {fmt}. Supported: {', '.join(LOADABLE_FORMATS)}",
                field="format",
            )
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ValidationError(f"Snapshot is not valid {fmt}: {e}", field="snapshot") from e
    if not isinstance(document, dict):
        raise ValidationError("Snapshot document must be an object", field="snapshot")
    return ReasoningGraph.from_dict(document, clock=clock)
