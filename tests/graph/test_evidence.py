"""Tests for stage 4 evidence integration and temporal decay."""

from __future__ import annotations

import pytest

from asrgot.core.errors import StageViolation, ValidationError
from asrgot.core.stages import Stage
from asrgot.engine import ReasoningSession
from asrgot.graph.builder import GraphBuilder
from asrgot.graph.evidence import EvidenceIntegrator
from asrgot.graph.inputs import EvidenceInput
from asrgot.graph.schema import EdgeType, NodeKind
from asrgot.graph.store import ReasoningGraph

TARGET = "3.1.1"


def _evidence(content: str = "Span scores fell after a night awake", **fields: object) -> EvidenceInput:
    return EvidenceInput.parse({"content": content, "confidence": [0.8, 0.8, 0.8, 0.8], **fields})


@pytest.fixture
def planned(hypothesis_session: ReasoningSession) -> ReasoningGraph:
    return hypothesis_session.graph


@pytest.fixture
def integrator(planned: ReasoningGraph) -> EvidenceIntegrator:
    return EvidenceIntegrator(planned)


class TestIntegrate:
    def test_supportive_evidence_raises_confidence(
        self, planned: ReasoningGraph, integrator: EvidenceIntegrator
    ) -> None:
        outcome = integrator.integrate(TARGET, _evidence())

        # 0.8 strength * 0.8 default power * 1.0 novelty * 0.3
        assert outcome.delta == pytest.approx(0.192)
        assert outcome.novelty == pytest.approx(1.0)
        assert outcome.evidence.node_id == "4.1"
        assert planned.get_node(TARGET).confidence.to_list() == pytest.approx([0.596] * 4)
        assert planned.get_node(TARGET).metadata.epistemic_status == "evaluated"
        assert planned.stage is Stage.EVIDENCE_INTEGRATION

    def test_evidence_node_and_edge(self, planned: ReasoningGraph, integrator: EvidenceIntegrator) -> None:
        integrator.integrate(TARGET, _evidence())

        node = planned.get_node("4.1")
        assert node.kind is NodeKind.EVIDENCE
        assert node.metadata.layer_id == "empirical"
        [edge] = planned.out_edges("4.1")
        assert edge.target == TARGET
        assert edge.edge_type is EdgeType.SUPPORTIVE

    def test_contradictory_evidence_lowers_confidence(
        self, planned: ReasoningGraph, integrator: EvidenceIntegrator
    ) -> None:
        integrator.integrate(TARGET, _evidence(relationship="Contradictory"))

        assert planned.get_node(TARGET).confidence.to_list() == pytest.approx([0.404] * 4)

    def test_reported_power_scales_the_update(self, integrator: EvidenceIntegrator) -> None:
        outcome = integrator.integrate(TARGET, _evidence(statistical_power={"power": 0.5}))

        assert outcome.delta == pytest.approx(0.12)

    def test_restated_evidence_counts_less(self, integrator: EvidenceIntegrator) -> None:
        integrator.integrate(TARGET, _evidence())

        outcome = integrator.integrate(TARGET, _evidence())

        assert outcome.novelty == pytest.approx(0.1)
        assert outcome.evidence.node_id == "4.2"

    def test_later_calls_stay_at_stage_four(self, planned: ReasoningGraph, integrator: EvidenceIntegrator) -> None:
        integrator.integrate(TARGET, _evidence())
        integrator.integrate("3.1.2", _evidence("Caffeine did not change reaction times"))

        assert planned.stage is Stage.EVIDENCE_INTEGRATION

    def test_evidence_can_resolve_a_gap(self, planned: ReasoningGraph) -> None:
        gap = GraphBuilder(planned).register_knowledge_gap("No data on night nurses")

        outcome = EvidenceIntegrator(planned).integrate(gap.node_id, _evidence())

        assert outcome.target.node_id == "gap.1"

    def test_rejects_non_hypothesis_targets(self, integrator: EvidenceIntegrator) -> None:
        with pytest.raises(ValidationError) as exc:
            integrator.integrate("2.1", _evidence())

        assert exc.value.node_id == "2.1"

    def test_rejects_unknown_targets(self, integrator: EvidenceIntegrator) -> None:
        with pytest.raises(ValidationError):
            integrator.integrate("3.9.9", _evidence())

    def test_rejects_structural_relationships(self) -> None:
        with pytest.raises(ValidationError):
            _evidence(relationship="Decomposition")

    def test_requires_hypotheses(self, decomposed_session: ReasoningSession) -> None:
        with pytest.raises(StageViolation):
            EvidenceIntegrator(decomposed_session.graph).integrate(TARGET, _evidence())


class TestBiasFlags:
    def test_missing_statistics_flagged(self, integrator: EvidenceIntegrator) -> None:
        outcome = integrator.integrate(TARGET, _evidence())

        assert "lack_quantitative_support" in outcome.evidence.metadata.bias_flags

    def test_statistics_clear_the_flag(self, integrator: EvidenceIntegrator) -> None:
        outcome = integrator.integrate(
            TARGET, _evidence(statistical_power={"power": 0.9, "sample_size": 120})
        )

        assert outcome.evidence.metadata.bias_flags == []

    def test_single_source_and_overconfidence(self, integrator: EvidenceIntegrator) -> None:
        outcome = integrator.integrate(
            TARGET, _evidence("This study proves the effect", provenance="single_source")
        )

        assert outcome.evidence.metadata.bias_flags == [
            "overconfidence_bias",
            "source_bias",
            "lack_quantitative_support",
        ]


class TestBridgesAndHyperedges:
    BRIDGING = "Sleep deprivation reduces working memory capacity in rats"

    def test_disjoint_tags_with_similar_content_create_a_bridge(
        self, planned: ReasoningGraph, integrator: EvidenceIntegrator
    ) -> None:
        outcome = integrator.integrate(TARGET, _evidence(self.BRIDGING, disciplinary_tags=["zoology"]))

        assert outcome.bridge_id == "ibn_4.1_3.1.1"
        bridge = planned.get_node("ibn_4.1_3.1.1")
        assert bridge.kind is NodeKind.BRIDGE
        assert bridge.metadata.layer_id == "interdisciplinary"
        assert bridge.metadata.disciplinary_tags == {"zoology", "neuroscience"}
        assert {e.target for e in planned.out_edges(bridge.node_id)} == {"4.1", TARGET}

    def test_shared_tags_never_bridge(self, integrator: EvidenceIntegrator) -> None:
        outcome = integrator.integrate(TARGET, _evidence(self.BRIDGING, disciplinary_tags=["neuroscience"]))

        assert outcome.bridge_id is None

    def test_dissimilar_content_never_bridges(self, integrator: EvidenceIntegrator) -> None:
        outcome = integrator.integrate(TARGET, _evidence(disciplinary_tags=["zoology"]))

        assert outcome.bridge_id is None

    def test_three_contributors_form_a_hyperedge(
        self, planned: ReasoningGraph, integrator: EvidenceIntegrator
    ) -> None:
        outcome = integrator.integrate(
            TARGET,
            _evidence(self.BRIDGING, disciplinary_tags=["zoology"], derived_from=["3.1.2", "3.1.3"]),
        )

        assert outcome.hyperedge_id == "he_4.1"
        [hyperedge] = planned.hyperedges()
        assert set(hyperedge.member_ids) == {"3.1.2", "3.1.3", "ibn_4.1_3.1.1"}
        assert hyperedge.target == "4.1"

    def test_two_contributors_are_not_enough(self, integrator: EvidenceIntegrator) -> None:
        outcome = integrator.integrate(TARGET, _evidence(derived_from=["3.1.2", "3.1.3"]))

        assert outcome.hyperedge_id is None

    def test_target_cannot_derive_its_own_evidence(self, integrator: EvidenceIntegrator) -> None:
        with pytest.raises(ValidationError):
            integrator.integrate(TARGET, _evidence(derived_from=[TARGET]))


class TestTemporalDecay:
    def test_decay_after_two_days(self, clock, planned: ReasoningGraph, integrator: EvidenceIntegrator) -> None:
        integrator.integrate(TARGET, _evidence())
        clock.advance(days=2)

        decayed = integrator.apply_temporal_decay()

        assert decayed["4.1"].to_list() == pytest.approx([0.8 * 0.9025] * 4)
        assert planned.get_node("4.1").metadata.base_confidence.to_list() == [0.8] * 4

    def test_decay_is_idempotent(self, clock, planned: ReasoningGraph, integrator: EvidenceIntegrator) -> None:
        integrator.integrate(TARGET, _evidence())
        clock.advance(days=2)

        first = integrator.apply_temporal_decay()["4.1"].to_list()
        second = integrator.apply_temporal_decay()["4.1"].to_list()

        assert first == second

    def test_fresh_evidence_is_not_decayed(self, integrator: EvidenceIntegrator) -> None:
        integrator.integrate(TARGET, _evidence())

        assert integrator.apply_temporal_decay()["4.1"].to_list() == [0.8] * 4

    def test_old_observation_decays_on_arrival(self, integrator: EvidenceIntegrator) -> None:
        outcome = integrator.integrate(TARGET, _evidence(observed_at="2024-12-31T12:00:00+00:00"))

        assert outcome.evidence.confidence.to_list() == pytest.approx([0.76] * 4)

    def test_only_evidence_decays(self, planned: ReasoningGraph, integrator: EvidenceIntegrator) -> None:
        integrator.integrate(TARGET, _evidence())

        assert set(integrator.apply_temporal_decay()) == {"4.1"}
