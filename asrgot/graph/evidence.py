"""
Evidence integration (stage 4).

Each call adds one evidence node, links it to its target with the declared
relationship, updates the target's confidence, and then looks for an
interdisciplinary bridge and a joint-influence hyperedge. Evidence confidence
decays with age; the decayed value is always recomputed from the stored base
confidence, so re-applying decay at the same instant changes nothing.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Final

from asrgot.core.errors import ValidationError
from asrgot.core.heuristics import (
    BiasDetector,
    KeywordBiasDetector,
    LexicalNoveltyScorer,
    NoveltyScorer,
    SimilarityFunction,
    jaccard_similarity,
)
from asrgot.core.logging_config import get_logger
from asrgot.core.stages import Stage
from asrgot.graph import confidence as model
from asrgot.graph.inputs import EvidenceInput
from asrgot.graph.schema import (
    ConfidenceVector,
    EdgeType,
    Hyperedge,
    Node,
    NodeKind,
    NodeMetadata,
)
from asrgot.graph.store import ReasoningGraph

logger = get_logger("graph.evidence")

EVIDENCE_TARGET_KINDS: Final[frozenset[NodeKind]] = frozenset(
    {NodeKind.HYPOTHESIS, NodeKind.PLACEHOLDER_GAP}
)
BRIDGE_CONFIDENCE: Final[float] = 0.7
BRIDGE_IMPACT: Final[float] = 0.8
HYPEREDGE_CONFIDENCE: Final[float] = 0.6
HYPEREDGE_DESCRIPTOR: Final[str] = "non_additive_influence"
SECONDS_PER_DAY: Final[float] = 86_400.0


@dataclass(frozen=True)
class IntegrationOutcome:
    """What a single evidence integration changed."""

    evidence: Node
    target: Node
    delta: float
    novelty: float
    bridge_id: str | None
    hyperedge_id: str | None


class EvidenceIntegrator:
    """
    Stage 4 engine.

    Args:
        graph: Graph to mutate
        bias_detector: Flags bias risks in evidence content
        novelty_scorer: Estimates how much new information evidence adds
        similarity: Content similarity used for bridge detection
    """

    def __init__(
        self,
        graph: ReasoningGraph,
        *,
        bias_detector: BiasDetector | None = None,
        novelty_scorer: NoveltyScorer | None = None,
        similarity: SimilarityFunction | None = None,
    ) -> None:
        self._graph = graph
        self._bias_detector = bias_detector or KeywordBiasDetector()
        self._novelty_scorer = novelty_scorer or LexicalNoveltyScorer()
        self._similarity = similarity or jaccard_similarity

    def integrate(self, target_id: str, evidence: EvidenceInput) -> IntegrationOutcome:
        """
        Link one piece of evidence to a hypothesis or knowledge gap.

        The first call advances stage 3 to 4; later calls at stage 4 do not
        advance.

        Raises:
            StageViolation: Unless the graph is at stage 3 or 4
            ValidationError: On unknown or unsuitable targets and contributors
        """
        graph = self._graph
        stage = graph.stages.require(
            "integrate_evidence", Stage.HYPOTHESIS_PLANNING, Stage.EVIDENCE_INTEGRATION
        )
        target = graph.get_node(target_id)
        if target.base_kind not in EVIDENCE_TARGET_KINDS:
            raise ValidationError(
                f"Evidence must target a hypothesis or knowledge gap, {target_id} is "
                f"a {target.kind.value} node",
                node_id=target_id,
            )
        for contributor in evidence.derived_from:
            graph.get_node(contributor)
            if contributor == target_id:
                raise ValidationError(
                    "derived_from must not include the evidence target",
                    field="derived_from",
                    node_id=contributor,
                )
        graph.protect(target_id, *evidence.derived_from)

        known = [
            graph.get_node(edge.source).content
            for edge in graph.in_edges(target_id)
            if graph.get_node(edge.source).base_kind is NodeKind.EVIDENCE
        ]
        novelty = self._novelty_scorer.score(evidence.content, known)

        node = self._create_evidence_node(evidence)
        graph.add_edge(
            node.node_id,
            target_id,
            evidence.relationship,
            evidence.confidence,
            causal_metadata=evidence.causal_metadata,
            temporal_metadata=evidence.temporal_metadata,
        )
        for contributor in evidence.derived_from:
            graph.add_edge(
                contributor,
                node.node_id,
                EdgeType.PREREQUISITE,
                graph.get_node(contributor).confidence,
            )

        power = evidence.statistical_power.power if evidence.statistical_power else None
        delta = model.update_delta(
            evidence.confidence, evidence.relationship, novelty=novelty, power=power
        )
        now = graph.now()
        target = graph.touch(target_id)
        target.confidence = model.apply_update(target.confidence, delta)
        target.metadata.epistemic_status = "evaluated"
        target.record(
            now,
            "confidence_update",
            f"{evidence.relationship.value} evidence {node.node_id}, delta {delta:+.4f}",
        )

        bridge_id = self._detect_bridge(node, target)
        hyperedge_id = self._detect_hyperedge(node)
        self.apply_temporal_decay([node.node_id])
        refreshed = [node.node_id, target_id, *evidence.derived_from]
        if bridge_id is not None:
            refreshed.append(bridge_id)
        graph.refresh_topology(refreshed)

        if stage is Stage.HYPOTHESIS_PLANNING:
            graph.stages.advance()
        logger.info(
            "Stage 4: evidence %s -> %s (%s), delta %+.4f, novelty %.2f",
            node.node_id,
            target_id,
            evidence.relationship.value,
            delta,
            novelty,
        )
        return IntegrationOutcome(
            evidence=node,
            target=target,
            delta=delta,
            novelty=novelty,
            bridge_id=bridge_id,
            hyperedge_id=hyperedge_id,
        )

    def _create_evidence_node(self, evidence: EvidenceInput) -> Node:
        graph = self._graph
        now = graph.now()
        sequence = graph.next_sequence("evidence")
        node = Node(
            node_id=f"4.{sequence}",
            label=f"Evidence {sequence}",
            kind=NodeKind.EVIDENCE,
            content=evidence.content,
            confidence=evidence.confidence,
            metadata=NodeMetadata(
                created_at=now,
                updated_at=now,
                provenance=evidence.provenance,
                epistemic_status="evidence",
                disciplinary_tags=set(evidence.disciplinary_tags),
                bias_flags=self._bias_detector.detect(
                    evidence.content,
                    provenance=evidence.provenance,
                    quantitative=evidence.statistical_power is not None,
                ),
                layer_id=evidence.layer_id,
                statistical_power=evidence.statistical_power,
                impact_score=evidence.impact_score,
                attribution=list(evidence.attribution),
                observed_at=evidence.observed_at or now,
                base_confidence=evidence.confidence,
            ),
        )
        node.record(now, "created", f"evidence via {evidence.relationship.value}")
        return graph.add_node(node)

    def _detect_bridge(self, evidence: Node, target: Node) -> str | None:
        evidence_tags = evidence.metadata.disciplinary_tags
        target_tags = target.metadata.disciplinary_tags
        if not evidence_tags or not target_tags or evidence_tags & target_tags:
            return None
        similarity = self._similarity(evidence.content, target.content)
        if similarity <= self._graph.config.bridge_similarity_threshold:
            return None
        now = self._graph.now()
        bridge = Node(
            node_id=f"ibn_{evidence.node_id}_{target.node_id}",
            label=f"Bridge {evidence.node_id} / {target.node_id}",
            kind=NodeKind.BRIDGE,
            content=(
                f"Interdisciplinary connection between {', '.join(sorted(evidence_tags))} "
                f"and {', '.join(sorted(target_tags))}"
            ),
            confidence=ConfidenceVector.uniform(BRIDGE_CONFIDENCE),
            metadata=NodeMetadata(
                created_at=now,
                updated_at=now,
                provenance="bridge_detection",
                epistemic_status="bridge",
                disciplinary_tags=evidence_tags | target_tags,
                layer_id="interdisciplinary",
                impact_score=BRIDGE_IMPACT,
            ),
        )
        bridge.record(now, "created", f"similarity {similarity:.3f}")
        self._graph.add_node(bridge)
        link = ConfidenceVector.uniform(BRIDGE_CONFIDENCE)
        self._graph.add_edge(bridge.node_id, evidence.node_id, EdgeType.CORRELATIVE, link)
        self._graph.add_edge(bridge.node_id, target.node_id, EdgeType.CORRELATIVE, link)
        logger.info("Bridge %s created (similarity %.3f)", bridge.node_id, similarity)
        return bridge.node_id

    def _detect_hyperedge(self, evidence: Node) -> str | None:
        incoming = self._graph.in_edges(evidence.node_id)
        if len(incoming) <= 2:
            return None
        members = tuple(dict.fromkeys(edge.source for edge in incoming))
        if len(members) <= 2:
            return None
        hyperedge = Hyperedge(
            hyperedge_id=f"he_{evidence.node_id}",
            member_ids=members,
            target=evidence.node_id,
            relationship_descriptor=HYPEREDGE_DESCRIPTOR,
            confidence=ConfidenceVector.uniform(HYPEREDGE_CONFIDENCE),
            created_at=self._graph.now(),
        )
        self._graph.add_hyperedge(hyperedge)
        logger.info("Hyperedge %s over %d contributors", hyperedge.hyperedge_id, len(members))
        return hyperedge.hyperedge_id

    def apply_temporal_decay(self, node_ids: Iterable[str] | None = None) -> dict[str, ConfidenceVector]:
        """
        Recompute decayed confidence for evidence nodes from their base confidence.

        Args:
            node_ids: Evidence ids to refresh; all evidence when ``None``

        Returns:
            Mapping of evidence id to its decayed confidence
        """
        graph = self._graph
        now = graph.now()
        if node_ids is None:
            candidates = [n for n in graph.nodes() if n.metadata.base_confidence is not None]
        else:
            candidates = [graph.get_node(node_id) for node_id in node_ids]
        decayed: dict[str, ConfidenceVector] = {}
        for node in candidates:
            base = node.metadata.base_confidence
            if base is None:
                continue
            observed = node.metadata.observed_at or node.metadata.created_at
            age_days = (now - observed).total_seconds() / SECONDS_PER_DAY
            node = graph.touch(node.node_id)
            node.confidence = model.apply_decay(
                base, model.decay_multiplier(graph.config.decay_factor, age_days)
            )
            decayed[node.node_id] = node.confidence
        return decayed
