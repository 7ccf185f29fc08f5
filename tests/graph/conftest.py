"""Node factories for graph-level tests."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

import pytest

from asrgot.graph.schema import ROOT_ID, ConfidenceVector, Node, NodeKind, NodeMetadata
from asrgot.graph.store import ReasoningGraph

START = datetime(2025, 1, 1, 12, 0, tzinfo=UTC)

NodeFactory = Callable[..., Node]


@pytest.fixture
def make_node() -> NodeFactory:
    def factory(
        node_id: str,
        *,
        kind: NodeKind = NodeKind.HYPOTHESIS,
        confidence: float | list[float] = 0.5,
        impact: float = 0.5,
        layer: str = "base",
        content: str | None = None,
        tags: set[str] | None = None,
        criteria: str | None = None,
    ) -> Node:
        vector = (
            ConfidenceVector.uniform(confidence)
            if isinstance(confidence, float)
            else ConfidenceVector.from_sequence(confidence)
        )
        return Node(
            node_id=node_id,
            label=node_id,
            kind=kind,
            content=content or f"content of {node_id}",
            confidence=vector,
            metadata=NodeMetadata(
                created_at=START,
                updated_at=START,
                layer_id=layer,
                impact_score=impact,
                disciplinary_tags=set(tags or ()),
                falsification_criteria=criteria,
            ),
        )

    return factory


@pytest.fixture
def rooted_graph(graph: ReasoningGraph, make_node: NodeFactory) -> ReasoningGraph:
    graph.add_node(make_node(ROOT_ID, kind=NodeKind.ROOT, confidence=0.8))
    return graph
