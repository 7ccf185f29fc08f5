"""Tests for stage 5 pruning and merging."""

from __future__ import annotations

import pytest

from asrgot.core.errors import StageViolation, ValidationError
from asrgot.core.stages import Stage, StageSequencer
from asrgot.graph.refinement import Refiner, should_prune
from asrgot.graph.schema import ROOT_ID, ConfidenceVector, EdgeType, NodeKind
from asrgot.graph.store import ReasoningGraph

LINK = ConfidenceVector.uniform(0.9)
SHARED = "alpha beta gamma delta"


@pytest.fixture
def evidence_stage(rooted_graph: ReasoningGraph) -> ReasoningGraph:
    rooted_graph.stages = StageSequencer(Stage.EVIDENCE_INTEGRATION)
    return rooted_graph


def _attach(graph: ReasoningGraph, *nodes) -> None:
    for node in nodes:
        graph.add_node(node)
        graph.add_edge(ROOT_ID, node.node_id, EdgeType.DECOMPOSITION, LINK)


class TestPruneRule:
    def test_weak_low_impact_node_is_pruned(self, make_node) -> None:
        assert should_prune(make_node("a", confidence=0.1, impact=0.1, criteria="x"), 0.2)

    def test_weak_hypothesis_without_criteria_is_pruned(self, make_node) -> None:
        assert should_prune(make_node("a", confidence=0.1, impact=0.9), 0.2)

    def test_weak_falsifiable_high_impact_hypothesis_survives(self, make_node) -> None:
        assert not should_prune(make_node("a", confidence=0.1, impact=0.9, criteria="x"), 0.2)

    def test_missing_criteria_only_matters_for_hypotheses(self, make_node) -> None:
        assert not should_prune(make_node("a", kind=NodeKind.EVIDENCE, confidence=0.1, impact=0.9), 0.2)

    def test_confident_node_survives(self, make_node) -> None:
        assert not should_prune(make_node("a", confidence=0.6, impact=0.0), 0.2)

    def test_root_is_never_pruned(self, make_node) -> None:
        assert not should_prune(make_node(ROOT_ID, kind=NodeKind.ROOT, confidence=0.01, impact=0.0), 0.2)


class TestPruneAndMerge:
    def test_prunes_and_advances(self, evidence_stage: ReasoningGraph, make_node) -> None:
        _attach(
            evidence_stage,
            make_node("weak", confidence=0.05, impact=0.1, content="faint signal"),
            make_node("solid", confidence=0.7, content="robust finding"),
        )

        outcome = Refiner(evidence_stage).prune_and_merge()

        assert outcome.pruned_ids == ["weak"]
        assert outcome.merges == []
        assert not evidence_stage.has_node("weak")
        assert evidence_stage.stage is Stage.PRUNING_MERGING

    def test_merges_near_duplicates(self, evidence_stage: ReasoningGraph, make_node) -> None:
        _attach(
            evidence_stage,
            make_node("a", confidence=[0.6, 0.6, 0.6, 0.6], impact=0.4, content=SHARED, tags={"x"}, criteria="c1"),
            make_node("b", confidence=[0.4, 0.9, 0.4, 0.4], impact=0.7, content=SHARED, tags={"y"}, criteria="c2"),
        )

        outcome = Refiner(evidence_stage).prune_and_merge()

        [merge] = outcome.merges
        assert merge.to_dict() == {"merged_id": "merged_a_b", "originals": ["a", "b"]}
        merged = evidence_stage.get_node("merged_a_b")
        assert merged.kind is NodeKind.MERGED
        assert merged.base_kind is NodeKind.HYPOTHESIS
        assert merged.confidence.to_list() == [0.6, 0.9, 0.6, 0.6]
        assert merged.metadata.impact_score == 0.7
        assert merged.metadata.disciplinary_tags == {"x", "y"}
        assert merged.metadata.falsification_criteria == "c1 | c2"
        assert not evidence_stage.has_node("a")
        assert not evidence_stage.has_node("b")

    def test_merge_rewires_and_dedupes_edges(self, evidence_stage: ReasoningGraph, make_node) -> None:
        _attach(evidence_stage, make_node("a", content=SHARED), make_node("b", content=SHARED))

        Refiner(evidence_stage).prune_and_merge()

        [edge] = evidence_stage.in_edges("merged_a_b")
        assert edge.source == ROOT_ID
        assert edge.edge_type is EdgeType.DECOMPOSITION

    def test_merging_repeats_to_a_fixed_point(self, evidence_stage: ReasoningGraph, make_node) -> None:
        _attach(
            evidence_stage,
            make_node("a", content=SHARED),
            make_node("b", content=SHARED),
            make_node("c", content=SHARED),
        )

        outcome = Refiner(evidence_stage).prune_and_merge()

        assert [m.merged_id for m in outcome.merges] == ["merged_a_b", "merged_c_merged_a_b"]
        assert [n.node_id for n in evidence_stage.nodes()] == [ROOT_ID, "merged_c_merged_a_b"]

    def test_different_kinds_never_merge(self, evidence_stage: ReasoningGraph, make_node) -> None:
        _attach(
            evidence_stage,
            make_node("h", content=SHARED),
            make_node("ev", kind=NodeKind.EVIDENCE, layer="empirical", content=SHARED),
        )

        outcome = Refiner(evidence_stage).prune_and_merge()

        assert outcome.merges == []

    def test_pruning_runs_before_merging(self, evidence_stage: ReasoningGraph, make_node) -> None:
        _attach(
            evidence_stage,
            make_node("a", content=SHARED),
            make_node("b", confidence=0.05, impact=0.1, content=SHARED),
        )

        outcome = Refiner(evidence_stage).prune_and_merge()

        assert outcome.pruned_ids == ["b"]
        assert outcome.merges == []

    def test_explicit_thresholds(self, evidence_stage: ReasoningGraph, make_node) -> None:
        _attach(
            evidence_stage,
            make_node("a", confidence=0.9, content="alpha beta"),
            make_node("b", confidence=0.9, content="alpha gamma"),
            make_node("c", confidence=0.5, impact=0.1, content="zeta"),
        )

        # Jaccard of "alpha beta" and "alpha gamma" is 1/3
        outcome = Refiner(evidence_stage).prune_and_merge(0.6, 0.3)

        assert outcome.pruned_ids == ["c"]
        assert [m.merged_id for m in outcome.merges] == ["merged_a_b"]

    @pytest.mark.parametrize("thresholds", [(1.5, None), (None, -0.1), ("0.3", None)])
    def test_rejects_out_of_range_thresholds(self, evidence_stage: ReasoningGraph, thresholds) -> None:
        with pytest.raises(ValidationError):
            Refiner(evidence_stage).prune_and_merge(*thresholds)

    def test_requires_evidence_stage(self, rooted_graph: ReasoningGraph) -> None:
        with pytest.raises(StageViolation):
            Refiner(rooted_graph).prune_and_merge()
