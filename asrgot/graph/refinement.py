"""
Pruning and merging (stage 5).

Pruning removes weak, low-value nodes. Merging consolidates near-duplicate
nodes of the same kind and repeats until no pair qualifies, so a merged node
that now resembles a third node is merged again.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Final

from asrgot.core.errors import ValidationError
from asrgot.core.heuristics import SimilarityFunction, jaccard_similarity
from asrgot.core.logging_config import get_logger
from asrgot.core.stages import Stage
from asrgot.graph import confidence as model
from asrgot.graph.schema import ROOT_ID, Node, NodeKind, NodeMetadata
from asrgot.graph.store import ReasoningGraph

logger = get_logger("graph.refinement")

LOW_IMPACT: Final[float] = 0.3


@dataclass(frozen=True)
class Merge:
    merged_id: str
    originals: tuple[str, str]

    def to_dict(self) -> dict[str, object]:
        return {"merged_id": self.merged_id, "originals": list(self.originals)}


@dataclass(frozen=True)
class RefinementOutcome:
    pruned_ids: list[str] = field(default_factory=list)
    merges: list[Merge] = field(default_factory=list)


def _check_threshold(value: float, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not 0.0 <= value <= 1.0:
        raise ValidationError(f"{name} must be in [0, 1], got {value!r}", field=name)
    return float(value)


def should_prune(node: Node, threshold: float) -> bool:
    """
    Pruning rule for one node.

    A node goes when its mean confidence is below ``threshold`` and it is
    either low-impact or a hypothesis without falsification criteria.
    """
    if node.node_id == ROOT_ID or node.kind is NodeKind.ROOT:
        return False
    if node.mean_confidence >= threshold:
        return False
    unfalsifiable = (
        node.base_kind is NodeKind.HYPOTHESIS and node.metadata.falsification_criteria is None
    )
    return node.metadata.impact_score < LOW_IMPACT or unfalsifiable


def _union(*groups: list[str]) -> list[str]:
    return list(dict.fromkeys(item for group in groups for item in group))


class Refiner:
    """Stage 5 engine."""

    def __init__(self, graph: ReasoningGraph, *, similarity: SimilarityFunction | None = None) -> None:
        self._graph = graph
        self._similarity = similarity or jaccard_similarity

    def prune_and_merge(
        self,
        pruning_threshold: float | None = None,
        merging_threshold: float | None = None,
    ) -> RefinementOutcome:
        """
        Prune, then merge to a fixed point, then advance to stage 5.

        Raises:
            StageViolation: Unless the graph is at stage 4
            ValidationError: If a threshold is outside [0, 1]
        """
        graph = self._graph
        graph.stages.require("prune_and_merge", Stage.EVIDENCE_INTEGRATION)
        config = graph.config
        prune_at = _check_threshold(
            config.pruning_threshold if pruning_threshold is None else pruning_threshold,
            "pruning_threshold",
        )
        merge_at = _check_threshold(
            config.merging_threshold if merging_threshold is None else merging_threshold,
            "merging_threshold",
        )

        pruned = self.prune(prune_at)
        merges = self.merge(merge_at)
        graph.refresh_topology(node.node_id for node in graph.nodes())
        graph.stages.advance()
        logger.info("Stage 5: pruned %d node(s), performed %d merge(s)", len(pruned), len(merges))
        return RefinementOutcome(pruned_ids=pruned, merges=merges)

    def prune(self, threshold: float) -> list[str]:
        pruned = [node.node_id for node in self._graph.nodes() if should_prune(node, threshold)]
        for node_id in pruned:
            self._graph.remove_node(node_id)
            logger.info("Pruned %s", node_id)
        return pruned

    def merge(self, threshold: float) -> list[Merge]:
        merges: list[Merge] = []
        while True:
            pair = self._find_pair(threshold)
            if pair is None:
                return merges
            merged = self._merge_pair(*pair)
            merges.append(Merge(merged.node_id, (pair[0].node_id, pair[1].node_id)))

    def _find_pair(self, threshold: float) -> tuple[Node, Node] | None:
        groups: dict[NodeKind, list[Node]] = {}
        for node in self._graph.nodes():
            if node.kind is not NodeKind.ROOT:
                groups.setdefault(node.base_kind, []).append(node)
        for members in groups.values():
            for i, first in enumerate(members):
                for second in members[i + 1 :]:
                    if self._similarity(first.content, second.content) >= threshold:
                        return first, second
        return None

    def _merge_pair(self, first: Node, second: Node) -> Node:
        graph = self._graph
        now = graph.now()
        a, b = first.metadata, second.metadata
        criteria = _union(
            [a.falsification_criteria] if a.falsification_criteria else [],
            [b.falsification_criteria] if b.falsification_criteria else [],
        )
        bases = [m.base_confidence for m in (a, b) if m.base_confidence is not None]
        observed = [m.observed_at for m in (a, b) if m.observed_at is not None]
        merged = Node(
            node_id=f"merged_{first.node_id}_{second.node_id}",
            label=f"{first.label} + {second.label}",
            kind=NodeKind.MERGED,
            content=f"{first.content} | {second.content}",
            confidence=model.merge_max([first.confidence, second.confidence]),
            metadata=NodeMetadata(
                created_at=now,
                updated_at=now,
                provenance="merge",
                epistemic_status="merged",
                disciplinary_tags=a.disciplinary_tags | b.disciplinary_tags,
                falsification_criteria=" | ".join(criteria) if criteria else None,
                bias_flags=_union(a.bias_flags, b.bias_flags),
                layer_id=a.layer_id,
                statistical_power=a.statistical_power or b.statistical_power,
                impact_score=max(a.impact_score, b.impact_score),
                attribution=_union(a.attribution, b.attribution),
                plan=a.plan or b.plan,
                observed_at=max(observed) if observed else None,
                base_confidence=model.merge_max(bases) if bases else None,
                merged_from=(first.node_id, second.node_id),
                origin_kind=first.base_kind,
            ),
        )
        merged.record(now, "merged", f"{first.node_id} + {second.node_id}")
        graph.protect(first.node_id, second.node_id)
        graph.add_node(merged)
        graph.rewire([first.node_id, second.node_id], merged.node_id)
        graph.remove_node(first.node_id)
        graph.remove_node(second.node_id)
        logger.info("Merged %s and %s into %s", first.node_id, second.node_id, merged.node_id)
        return merged
