"""Tests for the read-only analyses."""

from __future__ import annotations

import logging

import pytest

from asrgot.core.errors import ValidationError
from asrgot.graph import analysis
from asrgot.graph.analysis import Intervention, expected_value_of_information, find_causal_paths
from asrgot.graph.schema import (
    ROOT_ID,
    CausalMetadata,
    ConfidenceVector,
    EdgeType,
    NodeKind,
    TemporalMetadata,
)
from asrgot.graph.store import ReasoningGraph


def _link(value: float) -> ConfidenceVector:
    return ConfidenceVector.uniform(value)


@pytest.fixture
def causal_graph(rooted_graph: ReasoningGraph, make_node) -> ReasoningGraph:
    for node_id in ("a", "b", "c"):
        rooted_graph.add_node(make_node(node_id))
    rooted_graph.add_edge(ROOT_ID, "a", EdgeType.CAUSAL, _link(0.8))
    rooted_graph.add_edge("a", "b", EdgeType.CAUSAL, _link(0.5))
    rooted_graph.add_edge(ROOT_ID, "b", EdgeType.CAUSAL, _link(0.6))
    rooted_graph.add_edge("b", "a", EdgeType.CAUSAL, _link(0.9))
    rooted_graph.add_edge("b", "c", EdgeType.SUPPORTIVE, _link(0.9))
    return rooted_graph


class TestCausalPaths:
    def test_paths_strongest_first(self, causal_graph: ReasoningGraph) -> None:
        search = find_causal_paths(causal_graph, ROOT_ID, "b")

        assert [p.node_ids for p in search.paths] == [(ROOT_ID, "b"), (ROOT_ID, "a", "b")]
        assert search.paths[1].confidence == pytest.approx(0.4)
        assert search.strongest_confidence == pytest.approx(0.6)
        assert not search.truncated

    def test_cycles_terminate(self, causal_graph: ReasoningGraph) -> None:
        search = find_causal_paths(causal_graph, "a", "a")

        assert [p.node_ids for p in search.paths] == []

    def test_non_causal_edges_are_ignored(self, causal_graph: ReasoningGraph) -> None:
        result = find_causal_paths(causal_graph, ROOT_ID, "c").to_dict()

        assert result["causal_paths"] == []
        assert result["direct_causal_connection"] is False
        assert result["strongest_path_confidence"] == 0.0

    def test_causal_metadata_marks_any_edge_causal(self, causal_graph: ReasoningGraph) -> None:
        causal_graph.add_edge(
            "b", "c", EdgeType.SUPPORTIVE, _link(0.5), causal_metadata=CausalMetadata(mechanism="m")
        )

        search = find_causal_paths(causal_graph, "b", "c")

        assert [p.node_ids for p in search.paths] == [("b", "c")]

    def test_depth_cap_truncates(self, causal_graph: ReasoningGraph, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="asrgot"):
            search = find_causal_paths(causal_graph, ROOT_ID, "b", max_depth=1)

        assert [p.node_ids for p in search.paths] == [(ROOT_ID, "b")]
        assert search.truncated
        assert "truncated" in caplog.text

    def test_expansion_cap_truncates(self, causal_graph: ReasoningGraph) -> None:
        search = find_causal_paths(causal_graph, ROOT_ID, "b", max_expansions=1)

        assert [p.node_ids for p in search.paths] == [(ROOT_ID, "b")]
        assert search.to_dict()["truncated"] is True

    def test_unknown_endpoint(self, causal_graph: ReasoningGraph) -> None:
        with pytest.raises(ValidationError):
            find_causal_paths(causal_graph, ROOT_ID, "ghost")

    def test_caps_must_be_positive(self, causal_graph: ReasoningGraph) -> None:
        with pytest.raises(ValidationError):
            find_causal_paths(causal_graph, ROOT_ID, "b", max_depth=0)


class TestInterventions:
    def test_evoi_formula(self, rooted_graph: ReasoningGraph, make_node) -> None:
        rooted_graph.add_node(make_node("x", confidence=0.2, impact=0.8))
        intervention = Intervention("trial", ("x", "gone"), (0.2, 0.2, 0.2, 0.2), 1.0)

        assert expected_value_of_information(rooted_graph, intervention) == pytest.approx(0.128)

    def test_ranking_and_priority(self, rooted_graph: ReasoningGraph, make_node) -> None:
        rooted_graph.add_node(make_node("x", confidence=0.2, impact=0.8))

        plan = analysis.plan_interventions(
            rooted_graph,
            [
                {"name": "survey", "target_nodes": ["x"], "expected_confidence_change": [0.2] * 4},
                {"name": "trial", "target_nodes": ["x"], "expected_confidence_change": [0.2] * 4, "cost": 0.1},
            ],
        )

        assert [r["name"] for r in plan["ranked_interventions"]] == ["trial", "survey"]
        assert plan["ranked_interventions"][0]["evoi"] == 1.0
        assert plan["ranked_interventions"][0]["priority"] == "high"
        assert plan["ranked_interventions"][1]["priority"] == "low"
        assert plan["recommendations"] == ["Prioritize: trial (EVoI: 1.000)"]

    @pytest.mark.parametrize(
        "interventions",
        [
            [{"name": "x", "cost": 0}],
            [{"name": "x", "expected_confidence_change": [0.1]}],
            ["not an object"],
            "survey",
        ],
    )
    def test_invalid_interventions(self, rooted_graph: ReasoningGraph, interventions) -> None:
        with pytest.raises(ValidationError):
            analysis.plan_interventions(rooted_graph, interventions)


class TestSummaries:
    def test_graph_summary(self, rooted_graph: ReasoningGraph, make_node) -> None:
        rooted_graph.add_node(make_node("a", impact=0.9))
        rooted_graph.add_node(make_node("b", impact=0.1))
        rooted_graph.add_edge(ROOT_ID, "a", EdgeType.DECOMPOSITION, _link(0.5))
        rooted_graph.add_edge("a", "b", EdgeType.SUPPORTIVE, _link(0.5))
        rooted_graph.add_edge("b", ROOT_ID, EdgeType.SUPPORTIVE, _link(0.5))

        summary = analysis.graph_summary(rooted_graph)

        assert summary["node_count"] == 3
        assert summary["edge_count"] == 3
        assert summary["density"] == pytest.approx(1.0)
        assert summary["clustering_coefficient"] == pytest.approx(1.0)
        assert summary["connected_components"] == 1
        assert summary["kinds"] == {"root": 1, "hypothesis": 2}
        assert summary["impact_distribution"] == {"high": 1, "medium": 1, "low": 1}
        assert summary["falsifiability_coverage"] == 0.0

    def test_knowledge_gaps(self, rooted_graph: ReasoningGraph, make_node) -> None:
        rooted_graph.add_node(make_node("gap.1", kind=NodeKind.PLACEHOLDER_GAP, confidence=0.3, impact=0.8))
        rooted_graph.add_node(make_node("weak", confidence=0.2, impact=0.9))
        rooted_graph.add_node(make_node("fine", confidence=0.9, impact=0.9))

        report = analysis.analyze_knowledge_gaps(rooted_graph)

        assert report["total_gaps"] == 2
        assert [g["node_id"] for g in report["knowledge_gaps"]] == ["gap.1", "weak"]
        assert report["knowledge_gaps"][0]["gap_type"] == "registered_gap"
        assert report["knowledge_gaps"][0]["unresolved_critical"] is True

    def test_detect_biases(self, rooted_graph: ReasoningGraph, make_node) -> None:
        node = make_node("a")
        node.metadata.bias_flags = ["absolute_thinking", "source_bias"]
        rooted_graph.add_node(node)

        report = analysis.detect_biases(rooted_graph)

        assert report["total_bias_flags"] == 2
        assert report["bias_by_node"] == {"a": ["absolute_thinking", "source_bias"]}
        assert report["recommendations"]

    def test_temporal_patterns(self, rooted_graph: ReasoningGraph, make_node) -> None:
        rooted_graph.add_node(make_node("a"))
        rooted_graph.add_node(make_node("b"))
        rooted_graph.add_edge(
            ROOT_ID, "a", EdgeType.SUPPORTIVE, _link(0.5), temporal_metadata=TemporalMetadata(pattern="delayed", delay="1d")
        )
        rooted_graph.add_edge("a", "b", EdgeType.SEQUENTIAL, _link(0.5))

        report = analysis.detect_temporal_patterns(rooted_graph)

        assert [p["pattern"] for p in report["detected_patterns"]] == ["delayed", "sequential"]
        assert report["temporal_edges"][0]["delay"] == "1d"

    def test_temporal_patterns_scoped(self, rooted_graph: ReasoningGraph, make_node) -> None:
        rooted_graph.add_node(make_node("a"))
        rooted_graph.add_node(make_node("b"))
        rooted_graph.add_node(make_node("c"))
        rooted_graph.add_edge("a", "b", EdgeType.SEQUENTIAL, _link(0.5))

        assert analysis.detect_temporal_patterns(rooted_graph, ["c"])["temporal_edges"] == []

    def test_research_impact(self, rooted_graph: ReasoningGraph, make_node) -> None:
        rooted_graph.add_node(make_node("a", impact=0.9))

        report = analysis.estimate_research_impact(rooted_graph, ["a"])

        assert report["nodes_analyzed"] == 1
        assert report["overall_impact"] == pytest.approx(0.9)
        assert report["high_impact_nodes"] == ["a"]
