"""Tests for graph entities and their validation."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from asrgot.core.errors import ValidationError
from asrgot.graph.schema import (
    CausalMetadata,
    ConfidenceVector,
    Edge,
    EdgeType,
    Hyperedge,
    Node,
    NodeKind,
    NodeMetadata,
    ResearchPlan,
    StatisticalPower,
    TemporalMetadata,
)

NOW = datetime(2025, 1, 1, tzinfo=UTC)


class TestConfidenceVector:
    def test_from_sequence(self) -> None:
        vector = ConfidenceVector.from_sequence([0.1, 0.2, 0.3, 0.4])

        assert vector.values == (0.1, 0.2, 0.3, 0.4)
        assert vector.mean == pytest.approx(0.25)

    @pytest.mark.parametrize(
        "values",
        [[0.5, 0.5, 0.5], [0.5] * 5, [0.5, 0.5, 0.5, 1.1], [0.5, 0.5, 0.5, -0.1], [True, 0.5, 0.5, 0.5]],
    )
    def test_rejects_malformed_vectors(self, values: list[float]) -> None:
        with pytest.raises(ValidationError):
            ConfidenceVector.from_sequence(values)

    def test_rejects_strings(self) -> None:
        with pytest.raises(ValidationError):
            ConfidenceVector.from_sequence("0.5")  # type: ignore[arg-type]

    def test_beta_variances(self) -> None:
        vector = ConfidenceVector.uniform(0.8).with_beta_variances()

        assert vector.variances == pytest.approx((0.16, 0.16, 0.16, 0.16))

    def test_variances_are_bounded(self) -> None:
        with pytest.raises(ValidationError):
            ConfidenceVector(0.5, 0.5, 0.5, 0.5, variances=(0.3, 0.1, 0.1, 0.1))

    def test_dict_round_trip(self) -> None:
        vector = ConfidenceVector.from_sequence([0.1, 0.2, 0.3, 0.4]).with_beta_variances()

        assert ConfidenceVector.from_dict(vector.to_dict()) == vector


class TestEdgeType:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("Supportive", EdgeType.SUPPORTIVE),
            ("supportive", EdgeType.SUPPORTIVE),
            ("TEMPORAL_PRECEDENCE", EdgeType.TEMPORAL_PRECEDENCE),
            ("TemporalPrecedence", EdgeType.TEMPORAL_PRECEDENCE),
            (EdgeType.CAUSAL, EdgeType.CAUSAL),
        ],
    )
    def test_parse(self, raw: str, expected: EdgeType) -> None:
        assert EdgeType.parse(raw) is expected

    def test_unknown_type(self) -> None:
        with pytest.raises(ValidationError) as exc:
            EdgeType.parse("Telepathic")

        assert "Allowed" in str(exc.value)


class TestStatisticalPower:
    @pytest.mark.parametrize(
        ("record", "assessment"),
        [
            (StatisticalPower(power=0.9), "adequate"),
            (StatisticalPower(power=0.7), "moderate"),
            (StatisticalPower(power=0.3, sample_size=250), "large_sample"),
            (StatisticalPower(sample_size=20), "limited"),
            (StatisticalPower(), "limited"),
        ],
    )
    def test_assessment(self, record: StatisticalPower, assessment: str) -> None:
        assert record.assessment == assessment

    def test_rejects_inverted_interval(self) -> None:
        with pytest.raises(ValidationError):
            StatisticalPower(confidence_interval=(0.9, 0.1))

    def test_rejects_negative_sample(self) -> None:
        with pytest.raises(ValidationError):
            StatisticalPower(sample_size=-3)


def test_causal_metadata_substantiation() -> None:
    assert CausalMetadata(mechanism="adenosine", confounders=("age",)).is_substantiated
    assert not CausalMetadata(mechanism="adenosine").is_substantiated
    assert not CausalMetadata(confounders=("age",)).is_substantiated


def test_temporal_metadata_static() -> None:
    assert TemporalMetadata().is_static
    assert not TemporalMetadata(pattern="delayed", delay="2 days").is_static


def _metadata(**kwargs: object) -> NodeMetadata:
    return NodeMetadata(created_at=NOW, updated_at=NOW, **kwargs)  # type: ignore[arg-type]


class TestNode:
    def test_plan_only_on_hypotheses(self) -> None:
        plan = ResearchPlan.literature_search("x")

        Node("3.1.1", "h", NodeKind.HYPOTHESIS, "x", ConfidenceVector.uniform(0.5), _metadata(plan=plan))
        with pytest.raises(ValidationError):
            Node("4.1", "e", NodeKind.EVIDENCE, "x", ConfidenceVector.uniform(0.5), _metadata(plan=plan))

    def test_statistical_power_only_on_evidence(self) -> None:
        with pytest.raises(ValidationError):
            Node(
                "3.1.1",
                "h",
                NodeKind.HYPOTHESIS,
                "x",
                ConfidenceVector.uniform(0.5),
                _metadata(statistical_power=StatisticalPower(power=0.9)),
            )

    def test_merged_node_requires_origin(self) -> None:
        with pytest.raises(ValidationError):
            Node("m", "m", NodeKind.MERGED, "x", ConfidenceVector.uniform(0.5), _metadata())

    def test_merged_node_cannot_merge_roots(self) -> None:
        with pytest.raises(ValidationError):
            Node(
                "m",
                "m",
                NodeKind.MERGED,
                "x",
                ConfidenceVector.uniform(0.5),
                _metadata(merged_from=("a", "b"), origin_kind=NodeKind.ROOT),
            )

    def test_merged_node_reports_origin_kind(self) -> None:
        node = Node(
            "m",
            "m",
            NodeKind.MERGED,
            "x",
            ConfidenceVector.uniform(0.5),
            _metadata(merged_from=("a", "b"), origin_kind=NodeKind.HYPOTHESIS),
        )

        assert node.base_kind is NodeKind.HYPOTHESIS

    def test_impact_must_be_in_unit_interval(self) -> None:
        with pytest.raises(ValidationError):
            Node("a", "a", NodeKind.DIMENSION, "x", ConfidenceVector.uniform(0.5), _metadata(impact_score=1.5))

    def test_record_appends_revision(self) -> None:
        node = Node("a", "a", NodeKind.DIMENSION, "x", ConfidenceVector.uniform(0.5), _metadata())
        later = datetime(2025, 2, 1, tzinfo=UTC)

        node.record(later, "updated", "detail")

        assert node.metadata.revision_history[-1].action == "updated"
        assert node.metadata.updated_at == later

    def test_dict_round_trip(self) -> None:
        node = Node(
            "4.1",
            "Evidence 1",
            NodeKind.EVIDENCE,
            "observed effect",
            ConfidenceVector.uniform(0.7),
            _metadata(
                disciplinary_tags={"biology", "statistics"},
                statistical_power=StatisticalPower(power=0.9, confidence_interval=(0.1, 0.4)),
                observed_at=NOW,
                base_confidence=ConfidenceVector.uniform(0.7),
            ),
        )

        assert Node.from_dict(node.to_dict()).to_dict() == node.to_dict()


def test_edge_rejects_self_loops() -> None:
    with pytest.raises(ValidationError):
        Edge("e1", "a", "a", EdgeType.SUPPORTIVE, ConfidenceVector.uniform(0.5), NOW)


def test_hyperedge_needs_more_than_two_distinct_members() -> None:
    with pytest.raises(ValidationError):
        Hyperedge("he", ("a", "b", "a"), "t", "joint", ConfidenceVector.uniform(0.6), NOW)

    hyperedge = Hyperedge("he", ("a", "b", "c", "a"), "t", "joint", ConfidenceVector.uniform(0.6), NOW)

    assert hyperedge.member_ids == ("a", "b", "c")
