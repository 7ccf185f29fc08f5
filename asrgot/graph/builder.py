"""
Graph construction for stages 1-3: root, dimensions, hypotheses.

Also registers knowledge-gap placeholders, which may be added while
hypotheses are planned or evidence is integrated.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Final

from asrgot.core.errors import ValidationError
from asrgot.core.heuristics import BiasDetector, KeywordBiasDetector
from asrgot.core.logging_config import get_logger
from asrgot.core.stages import Stage
from asrgot.graph.inputs import HypothesisInput, clean_text, parse_unit
from asrgot.graph.schema import (
    ROOT_ID,
    ConfidenceVector,
    EdgeType,
    Node,
    NodeKind,
    NodeMetadata,
    ResearchPlan,
)
from asrgot.graph.store import ReasoningGraph

logger = get_logger("graph.builder")

DEFAULT_DIMENSIONS: Final[tuple[str, ...]] = (
    "Scope",
    "Objectives",
    "Constraints",
    "Data Needs",
    "Use Cases",
    "Potential Biases",
    "Knowledge Gaps",
)
MANDATORY_DIMENSIONS: Final[tuple[str, ...]] = ("Potential Biases", "Knowledge Gaps")
KNOWLEDGE_GAPS_LABEL: Final[str] = "Knowledge Gaps"

DIMENSION_TAGS: Final[dict[str, tuple[str, ...]]] = {
    "Scope": ("methodology", "research_design"),
    "Objectives": ("goals", "outcomes"),
    "Constraints": ("limitations", "resources"),
    "Data Needs": ("data_science", "methodology"),
    "Use Cases": ("application", "translation"),
    "Potential Biases": ("methodology", "bias_detection"),
    "Knowledge Gaps": ("knowledge_discovery", "research_gaps"),
}
FALLBACK_TAGS: Final[tuple[str, ...]] = ("general",)

MIN_HYPOTHESES: Final[int] = 3
MAX_HYPOTHESES: Final[int] = 5
GAP_CONFIDENCE: Final[float] = 0.3


def infer_dimension_tags(label: str) -> set[str]:
    return set(DIMENSION_TAGS.get(label, FALLBACK_TAGS))


class GraphBuilder:
    """
    Creates the structural skeleton of a reasoning graph.

    Each stage method checks the lifecycle stage, mutates the graph and
    advances the stage last. Callers run it inside a graph transaction so a
    failure leaves nothing behind.
    """

    def __init__(self, graph: ReasoningGraph, *, bias_detector: BiasDetector | None = None) -> None:
        self._graph = graph
        self._bias_detector = bias_detector or KeywordBiasDetector()

    def _metadata(self, **kwargs: object) -> NodeMetadata:
        now = self._graph.now()
        return NodeMetadata(created_at=now, updated_at=now, **kwargs)  # type: ignore[arg-type]

    def _created(self, node: Node, detail: str) -> Node:
        node.record(node.metadata.created_at, "created", detail)
        return self._graph.add_node(node)

    def initialize(
        self,
        task: str,
        initial_confidence: Sequence[float] | ConfidenceVector,
        *,
        disciplinary_tags: Iterable[str] = (),
        attribution: Iterable[str] = (),
    ) -> Node:
        """
        Create the root node ``n0`` from the task description.

        Raises:
            StageViolation: Unless the graph is uninitialized
            ValidationError: If the task is empty or the confidence malformed
        """
        self._graph.stages.require("initialize", Stage.UNINITIALIZED)
        content = clean_text(task, field="task")
        confidence = (
            initial_confidence
            if isinstance(initial_confidence, ConfidenceVector)
            else ConfidenceVector.from_sequence(initial_confidence, field="initial_confidence")
        )
        root = Node(
            node_id=ROOT_ID,
            label="Task Understanding",
            kind=NodeKind.ROOT,
            content=content,
            confidence=confidence,
            metadata=self._metadata(
                provenance="user_input",
                epistemic_status="accepted",
                disciplinary_tags=set(disciplinary_tags),
                layer_id="base",
                impact_score=0.8,
                attribution=list(attribution),
            ),
        )
        self._created(root, "task initialized")
        self._graph.stages.advance()
        logger.info("Stage 1: root %s created", ROOT_ID)
        return root

    def decompose(
        self,
        dimension_labels: Sequence[str] | None = None,
        *,
        include_mandatory: bool = True,
    ) -> list[Node]:
        """
        Create one dimension node ``2.<i>`` per label, linked from the root.

        Args:
            dimension_labels: Custom labels; ``None`` selects the default seven
            include_mandatory: Append "Potential Biases" and "Knowledge Gaps"
                to a custom list when missing

        Raises:
            StageViolation: Unless the graph is at stage 1
            ValidationError: If labels are empty or duplicated
        """
        self._graph.stages.require("decompose", Stage.INITIALIZATION)
        if dimension_labels is None:
            labels = list(DEFAULT_DIMENSIONS)
        else:
            if isinstance(dimension_labels, str) or not isinstance(dimension_labels, Sequence):
                raise ValidationError("dimensions must be a list of labels", field="dimensions")
            labels = [
                clean_text(label, field=f"dimensions[{i}]", max_length=200)
                for i, label in enumerate(dimension_labels)
            ]
            if include_mandatory:
                labels.extend(label for label in MANDATORY_DIMENSIONS if label not in labels)
        if not labels:
            raise ValidationError("at least one dimension is required", field="dimensions")
        duplicates = sorted({label for label in labels if labels.count(label) > 1})
        if duplicates:
            raise ValidationError(
                f"dimension labels must be unique: {', '.join(duplicates)}", field="dimensions"
            )

        created: list[Node] = []
        for index, label in enumerate(labels, start=1):
            node = Node(
                node_id=f"2.{index}",
                label=label,
                kind=NodeKind.DIMENSION,
                content=f"Analysis of {label} aspects of the research task",
                confidence=ConfidenceVector.uniform(0.8),
                metadata=self._metadata(
                    provenance="task_decomposition",
                    epistemic_status="pending",
                    disciplinary_tags=infer_dimension_tags(label),
                    layer_id="base",
                    impact_score=0.6,
                ),
            )
            self._created(node, f"dimension {label}")
            self._graph.add_edge(
                ROOT_ID, node.node_id, EdgeType.DECOMPOSITION, ConfidenceVector.uniform(0.9)
            )
            created.append(node)
        self._graph.refresh_topology([ROOT_ID, *(node.node_id for node in created)])
        self._graph.stages.advance()
        logger.info("Stage 2: %d dimensions created", len(created))
        return created

    def generate_hypotheses(
        self,
        dimension_id: str,
        hypotheses: Sequence[HypothesisInput],
        *,
        min_hypotheses: int = MIN_HYPOTHESES,
    ) -> list[Node]:
        """
        Attach hypotheses ``3.<dim>.<k>`` to a dimension.

        The first call advances stage 2 to 3. Further calls at stage 3 may
        target other dimensions that have no hypotheses yet. At most five
        inputs are accepted; the rest are dropped with a warning.

        Raises:
            StageViolation: Unless the graph is at stage 2 or 3
            ValidationError: On unknown dimensions, a dimension that already
                has hypotheses, or too few inputs
        """
        stage = self._graph.stages.require(
            "generate_hypotheses", Stage.DECOMPOSITION, Stage.HYPOTHESIS_PLANNING
        )
        if isinstance(min_hypotheses, bool) or not isinstance(min_hypotheses, int):
            raise ValidationError("min_hypotheses must be an integer", field="min_hypotheses")
        minimum = max(1, min(min_hypotheses, MAX_HYPOTHESES))
        dimension = self._graph.get_node(dimension_id)
        if dimension.kind is not NodeKind.DIMENSION:
            raise ValidationError(
                f"{dimension_id} is a {dimension.kind.value} node, not a dimension",
                node_id=dimension_id,
            )
        if self._graph.children(dimension_id, EdgeType.HYPOTHESIS):
            raise ValidationError(
                f"Dimension {dimension_id} already has hypotheses", node_id=dimension_id
            )
        if len(hypotheses) > MAX_HYPOTHESES:
            logger.warning(
                "Dropping %d hypotheses beyond the limit of %d for %s",
                len(hypotheses) - MAX_HYPOTHESES,
                MAX_HYPOTHESES,
                dimension_id,
            )
            hypotheses = hypotheses[:MAX_HYPOTHESES]
        if len(hypotheses) < minimum:
            raise ValidationError(
                f"at least {minimum} hypotheses are required, got {len(hypotheses)}",
                field="hypotheses",
                node_id=dimension_id,
            )

        self._graph.protect(dimension_id)
        ordinal = dimension_id.split(".", 1)[1]
        created: list[Node] = []
        for k, item in enumerate(hypotheses, start=1):
            node = Node(
                node_id=f"3.{ordinal}.{k}",
                label=f"Hypothesis {ordinal}.{k}",
                kind=NodeKind.HYPOTHESIS,
                content=item.content,
                confidence=item.confidence,
                metadata=self._metadata(
                    provenance="hypothesis_generation",
                    epistemic_status="hypothetical",
                    disciplinary_tags=set(item.disciplinary_tags),
                    falsification_criteria=item.falsification_criteria,
                    bias_flags=self._bias_detector.detect(
                        item.content, provenance="hypothesis_generation"
                    ),
                    layer_id="theoretical",
                    impact_score=item.impact_score,
                    attribution=list(item.attribution),
                    plan=item.plan or ResearchPlan.literature_search(item.content),
                ),
            )
            if node.metadata.falsification_criteria is None:
                logger.warning("Hypothesis %s has no falsification criteria", node.node_id)
            self._created(node, f"hypothesis for {dimension_id}")
            self._graph.add_edge(
                dimension_id, node.node_id, EdgeType.HYPOTHESIS, ConfidenceVector.uniform(0.8)
            )
            created.append(node)
        self._graph.refresh_topology([dimension_id, *(node.node_id for node in created)])
        if stage is Stage.DECOMPOSITION:
            self._graph.stages.advance()
        logger.info("Stage 3: %d hypotheses created for %s", len(created), dimension_id)
        return created

    def register_knowledge_gap(
        self,
        description: str,
        *,
        parent_id: str | None = None,
        impact_score: float = 0.8,
    ) -> Node:
        """
        Record an open question as a ``placeholder_gap`` node ``gap.<n>``.

        The gap hangs off ``parent_id`` when given, else the "Knowledge Gaps"
        dimension, else the root. It starts unresolved and is resolved by
        integrating evidence against it. Never advances the stage.

        Raises:
            StageViolation: Unless the graph is at stage 3 or 4
            ValidationError: On empty descriptions or unknown parents
        """
        self._graph.stages.require(
            "register_knowledge_gap", Stage.HYPOTHESIS_PLANNING, Stage.EVIDENCE_INTEGRATION
        )
        content = clean_text(description, field="description")
        impact = parse_unit(impact_score, field="impact_score", default=0.8)
        if parent_id is None:
            parent_id = next(
                (
                    node.node_id
                    for node in self._graph.nodes()
                    if node.kind is NodeKind.DIMENSION and node.label == KNOWLEDGE_GAPS_LABEL
                ),
                ROOT_ID,
            )
        parent = self._graph.get_node(parent_id)
        self._graph.protect(parent.node_id)
        node = Node(
            node_id=f"gap.{self._graph.next_sequence('gap')}",
            label="Knowledge Gap",
            kind=NodeKind.PLACEHOLDER_GAP,
            content=content,
            confidence=ConfidenceVector.uniform(GAP_CONFIDENCE),
            metadata=self._metadata(
                provenance="knowledge_gap_registration",
                epistemic_status="pending",
                disciplinary_tags=set(parent.metadata.disciplinary_tags),
                layer_id="base",
                impact_score=impact,
            ),
        )
        self._created(node, f"gap under {parent.node_id}")
        self._graph.add_edge(
            parent.node_id, node.node_id, EdgeType.DECOMPOSITION, ConfidenceVector.uniform(0.8)
        )
        self._graph.refresh_topology([parent.node_id, node.node_id])
        logger.info("Knowledge gap %s registered under %s", node.node_id, parent.node_id)
        return node
