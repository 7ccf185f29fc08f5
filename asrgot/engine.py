"""
Reasoning session facade.

A ``ReasoningSession`` owns one graph and exposes the stage operations as a
synchronous procedure-call boundary. Calls on a session are serialized by a
per-session lock. Every mutating call runs in a graph transaction: it either
fully applies (stage advance included) or leaves the graph untouched. After an
``InternalInconsistency`` the session refuses all further calls.
"""

from __future__ import annotations

import inspect
import threading
import uuid
from collections.abc import Callable, Mapping, Sequence
from dataclasses import asdict, dataclass, field
from typing import Any, Final, TypeVar

from asrgot.core.config import GraphConfig
from asrgot.core.errors import InternalInconsistency, StageViolation, ValidationError
from asrgot.core.heuristics import BiasDetector, NoveltyScorer, SimilarityFunction
from asrgot.core.logging_config import get_logger
from asrgot.core.stages import Stage
from asrgot.graph import analysis
from asrgot.graph.audit import perform_audit
from asrgot.graph.builder import GraphBuilder
from asrgot.graph.composition import CompositionOptions, compose_output
from asrgot.graph.evidence import EvidenceIntegrator
from asrgot.graph.export import export_snapshot, load_snapshot
from asrgot.graph.extraction import SubgraphCriteria, extract_subgraph
from asrgot.graph.inputs import (
    EvidenceInput,
    optional_text,
    parse_hypotheses,
    parse_ids,
    parse_tags,
)
from asrgot.graph.refinement import Refiner
from asrgot.graph.store import Clock, ReasoningGraph

logger = get_logger("engine")

T = TypeVar("T")

HYPOTHESIS_CONFIG_KEYS: Final[frozenset[str]] = frozenset({"min_hypotheses"})


class _Result:
    def to_dict(self) -> dict[str, Any]:
        return asdict(self)  # type: ignore[call-overload]


@dataclass(frozen=True)
class InitializeResult(_Result):
    node_id: str
    stage: int


@dataclass(frozen=True)
class DecomposeResult(_Result):
    dimension_ids: list[str]
    stage: int


@dataclass(frozen=True)
class HypothesesResult(_Result):
    hypothesis_ids: list[str]
    stage: int


@dataclass(frozen=True)
class EvidenceResult(_Result):
    evidence_id: str
    target_id: str
    updated_confidence: list[float]
    stage: int
    bridge_id: str | None = None
    hyperedge_id: str | None = None
    bias_flags: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class GapResult(_Result):
    node_id: str
    parent_id: str
    stage: int


@dataclass(frozen=True)
class LayerResult(_Result):
    layer_id: str
    name: str
    description: str
    stage: int


@dataclass(frozen=True)
class RefinementResult(_Result):
    pruned_ids: list[str]
    merges: list[dict[str, Any]]
    stage: int


@dataclass(frozen=True)
class SubgraphResult(_Result):
    nodes: list[dict[str, Any]]
    edges: list[dict[str, Any]]
    density: float
    average_degree: float
    stage: int


@dataclass(frozen=True)
class CompositionResult(_Result):
    claims: list[dict[str, Any]]
    causal_annotations: list[dict[str, Any]]
    temporal_annotations: list[dict[str, Any]]
    stage: int


@dataclass(frozen=True)
class AuditResult(_Result):
    checks_performed: list[str]
    issues: list[str]
    recommendations: list[str]
    results: list[dict[str, Any]]
    quality_score: float
    stage: int


class ReasoningSession:
    """
    One reasoning process over one graph.

    Args:
        config: Limits and thresholds; ``initialize`` may override fields
        session_id: Identifier; a UUID4 string by default
        clock: Source of "now" for timestamps and temporal decay
        bias_detector: Bias flag strategy for hypotheses and evidence
        novelty_scorer: Evidence novelty strategy
        similarity: Content similarity used for merging and bridge detection
    """

    def __init__(
        self,
        config: GraphConfig | None = None,
        *,
        session_id: str | None = None,
        clock: Clock | None = None,
        bias_detector: BiasDetector | None = None,
        novelty_scorer: NoveltyScorer | None = None,
        similarity: SimilarityFunction | None = None,
        graph: ReasoningGraph | None = None,
    ) -> None:
        self.session_id = session_id or str(uuid.uuid4())
        self._graph = graph if graph is not None else ReasoningGraph(config, clock=clock)
        self._lock = threading.RLock()
        self._poisoned = False
        self._extracted_ids: list[str] | None = None
        self._builder = GraphBuilder(self._graph, bias_detector=bias_detector)
        self._integrator = EvidenceIntegrator(
            self._graph,
            bias_detector=bias_detector,
            novelty_scorer=novelty_scorer,
            similarity=similarity,
        )
        self._refiner = Refiner(self._graph, similarity=similarity)

    @classmethod
    def from_snapshot(cls, text: str, fmt: str = "json", **kwargs: Any) -> ReasoningSession:
        """Resume a session from an exported ``json`` or ``yaml`` snapshot."""
        graph = load_snapshot(text, fmt, clock=kwargs.get("clock"))
        return cls(graph=graph, **kwargs)

    @property
    def graph(self) -> ReasoningGraph:
        return self._graph

    @property
    def stage(self) -> Stage:
        return self._graph.stage

    @property
    def poisoned(self) -> bool:
        return self._poisoned

    # ------------------------------------------------------------------
    # Call discipline
    # ------------------------------------------------------------------

    def _ensure_usable(self) -> None:
        if self._poisoned:
            raise InternalInconsistency(
                "Session is unusable after an internal inconsistency. Start a new session.",
                session_id=self.session_id,
            )

    def _mutate(self, operation: str, action: Callable[[], T]) -> T:
        with self._lock:
            self._ensure_usable()
            try:
                with self._graph.transaction():
                    result = action()
                    self._graph.check_invariants()
                    return result
            except InternalInconsistency:
                self._poisoned = True
                logger.error("Session %s poisoned during %s", self.session_id, operation)
                raise

    def _read(self, operation: str, action: Callable[[], T]) -> T:
        with self._lock:
            self._ensure_usable()
            if self._graph.stage is Stage.UNINITIALIZED:
                raise StageViolation(
                    operation=operation,
                    required=tuple(int(s) for s in Stage if s is not Stage.UNINITIALIZED),
                    actual=int(self._graph.stage),
                )
            return action()

    # ------------------------------------------------------------------
    # Stage operations
    # ------------------------------------------------------------------

    def initialize(
        self,
        task: str,
        initial_confidence: Sequence[float],
        config: Mapping[str, Any] | None = None,
    ) -> InitializeResult:
        """Stage 0 to 1: create the root node. ``config`` may carry root tags,
        attribution and ``GraphConfig`` overrides."""
        if config is not None and not isinstance(config, Mapping):
            raise ValidationError("config must be an object", field="config")
        config = dict(config or {})
        tags = parse_tags(config.pop("disciplinary_tags", None))
        attribution = parse_ids(config.pop("attribution", None), field="attribution")
        with self._lock:
            self._ensure_usable()
            previous = self._graph.config
            if config:
                self._graph.config = previous.with_overrides(config)
            try:
                root = self._mutate(
                    "initialize",
                    lambda: self._builder.initialize(
                        task, initial_confidence, disciplinary_tags=tags, attribution=attribution
                    ),
                )
            except Exception:
                self._graph.config = previous
                raise
        return InitializeResult(node_id=root.node_id, stage=int(self.stage))

    def decompose(
        self,
        dimensions: Sequence[str] | None = None,
        *,
        include_mandatory: bool = True,
    ) -> DecomposeResult:
        nodes = self._mutate(
            "decompose",
            lambda: self._builder.decompose(dimensions, include_mandatory=include_mandatory),
        )
        return DecomposeResult(dimension_ids=[n.node_id for n in nodes], stage=int(self.stage))

    def generate_hypotheses(
        self,
        dimension_id: str,
        hypotheses: Sequence[Any],
        config: Mapping[str, Any] | None = None,
    ) -> HypothesesResult:
        options = dict(config or {})
        unknown = set(options) - HYPOTHESIS_CONFIG_KEYS
        if unknown:
            raise ValidationError(
                f"Unknown hypothesis config keys: {', '.join(sorted(unknown))}", field="config"
            )
        minimum = options.get("min_hypotheses", 3)
        inputs = parse_hypotheses(hypotheses)
        nodes = self._mutate(
            "generate_hypotheses",
            lambda: self._builder.generate_hypotheses(dimension_id, inputs, min_hypotheses=minimum),
        )
        return HypothesesResult(hypothesis_ids=[n.node_id for n in nodes], stage=int(self.stage))

    def integrate_evidence(self, target_id: str, evidence: Mapping[str, Any] | EvidenceInput) -> EvidenceResult:
        parsed = EvidenceInput.parse(evidence)
        outcome = self._mutate(
            "integrate_evidence", lambda: self._integrator.integrate(target_id, parsed)
        )
        return EvidenceResult(
            evidence_id=outcome.evidence.node_id,
            target_id=outcome.target.node_id,
            updated_confidence=outcome.target.confidence.to_list(),
            stage=int(self.stage),
            bridge_id=outcome.bridge_id,
            hyperedge_id=outcome.hyperedge_id,
            bias_flags=list(outcome.evidence.metadata.bias_flags),
        )

    def register_knowledge_gap(
        self,
        description: str,
        parent_id: str | None = None,
        impact_score: float = 0.8,
    ) -> GapResult:
        node = self._mutate(
            "register_knowledge_gap",
            lambda: self._builder.register_knowledge_gap(
                description, parent_id=parent_id, impact_score=impact_score
            ),
        )
        parent = self._graph.in_edges(node.node_id)[0].source
        return GapResult(node_id=node.node_id, parent_id=parent, stage=int(self.stage))

    def register_layer(
        self,
        layer_id: str,
        name: str | None = None,
        description: str | None = None,
    ) -> LayerResult:
        """Add a node layer at any stage; evidence is placed in it through its ``layer_id``."""
        name = optional_text(name, field="name") or ""
        description = optional_text(description, field="description") or ""
        layer = self._mutate(
            "register_layer", lambda: self._graph.register_layer(layer_id, name, description)
        )
        return LayerResult(
            layer_id=layer.layer_id,
            name=layer.name,
            description=layer.description,
            stage=int(self.stage),
        )

    def apply_temporal_decay(self) -> dict[str, list[float]]:
        """Re-apply decay to every evidence node at stage 4. Idempotent at a fixed instant."""

        def action() -> dict[str, list[float]]:
            self._graph.stages.require("apply_temporal_decay", Stage.EVIDENCE_INTEGRATION)
            decayed = self._integrator.apply_temporal_decay()
            return {node_id: vector.to_list() for node_id, vector in decayed.items()}

        return self._mutate("apply_temporal_decay", action)

    def prune_and_merge(
        self,
        pruning_threshold: float | None = None,
        merging_threshold: float | None = None,
    ) -> RefinementResult:
        outcome = self._mutate(
            "prune_and_merge",
            lambda: self._refiner.prune_and_merge(pruning_threshold, merging_threshold),
        )
        return RefinementResult(
            pruned_ids=list(outcome.pruned_ids),
            merges=[merge.to_dict() for merge in outcome.merges],
            stage=int(self.stage),
        )

    def extract_subgraph(self, criteria: Mapping[str, Any] | SubgraphCriteria | None = None) -> SubgraphResult:
        parsed = SubgraphCriteria.parse(criteria)
        subgraph = self._mutate("extract_subgraph", lambda: extract_subgraph(self._graph, parsed))
        self._extracted_ids = subgraph.node_ids
        return SubgraphResult(
            nodes=[node.to_dict() for node in subgraph.nodes],
            edges=[edge.to_dict() for edge in subgraph.edges],
            density=subgraph.density,
            average_degree=subgraph.average_degree,
            stage=int(self.stage),
        )

    def compose_output(self, options: Mapping[str, Any] | CompositionOptions | None = None) -> CompositionResult:
        """Stage 6 to 7: claims over the extracted subgraph."""
        parsed = CompositionOptions.parse(options)
        composition = self._mutate(
            "compose_output", lambda: compose_output(self._graph, self._extracted_ids, parsed)
        )
        return CompositionResult(
            claims=[claim.to_dict() for claim in composition.claims],
            causal_annotations=[a.to_dict() for a in composition.causal_annotations],
            temporal_annotations=[a.to_dict() for a in composition.temporal_annotations],
            stage=int(self.stage),
        )

    def perform_audit(self, checks: Sequence[str] | None = None) -> AuditResult:
        report = self._mutate("perform_audit", lambda: perform_audit(self._graph, checks))
        return AuditResult(
            checks_performed=report.checks_performed,
            issues=report.issues,
            recommendations=report.recommendations,
            results=[result.to_dict() for result in report.results],
            quality_score=report.quality_score,
            stage=int(self.stage),
        )

    # ------------------------------------------------------------------
    # Read-only operations
    # ------------------------------------------------------------------

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            self._ensure_usable()
            return self._graph.to_dict()

    def export_snapshot(self, format: str = "json") -> str:
        with self._lock:
            self._ensure_usable()
            return export_snapshot(self._graph, format)

    def graph_summary(self) -> dict[str, Any]:
        return self._read("graph_summary", lambda: analysis.graph_summary(self._graph))

    def analyze_knowledge_gaps(
        self, impact_threshold: float = 0.6, confidence_threshold: float = 0.4
    ) -> dict[str, Any]:
        return self._read(
            "analyze_knowledge_gaps",
            lambda: analysis.analyze_knowledge_gaps(
                self._graph,
                impact_threshold=impact_threshold,
                confidence_threshold=confidence_threshold,
            ),
        )

    def detect_biases(self) -> dict[str, Any]:
        return self._read("detect_biases", lambda: analysis.detect_biases(self._graph))

    def find_causal_paths(self, source: str, target: str) -> dict[str, Any]:
        return self._read(
            "find_causal_paths",
            lambda: analysis.find_causal_paths(self._graph, source, target).to_dict(),
        )

    def detect_temporal_patterns(self, node_ids: Sequence[str] | None = None) -> dict[str, Any]:
        return self._read(
            "detect_temporal_patterns",
            lambda: analysis.detect_temporal_patterns(self._graph, node_ids),
        )

    def estimate_research_impact(self, node_ids: Sequence[str] | None = None) -> dict[str, Any]:
        return self._read(
            "estimate_research_impact",
            lambda: analysis.estimate_research_impact(self._graph, node_ids),
        )

    def plan_interventions(self, interventions: Sequence[Mapping[str, Any]]) -> dict[str, Any]:
        return self._read(
            "plan_interventions", lambda: analysis.plan_interventions(self._graph, interventions)
        )

    def research_plans(self) -> list[dict[str, Any]]:
        return self._read("research_plans", lambda: analysis.research_plans(self._graph))

    # ------------------------------------------------------------------
    # Name-based dispatch
    # ------------------------------------------------------------------

    OPERATIONS: Final[tuple[str, ...]] = (
        "initialize",
        "decompose",
        "generate_hypotheses",
        "integrate_evidence",
        "register_knowledge_gap",
        "register_layer",
        "apply_temporal_decay",
        "prune_and_merge",
        "extract_subgraph",
        "compose_output",
        "perform_audit",
        "snapshot",
        "export_snapshot",
        "graph_summary",
        "analyze_knowledge_gaps",
        "detect_biases",
        "find_causal_paths",
        "detect_temporal_patterns",
        "estimate_research_impact",
        "plan_interventions",
        "research_plans",
    )

    def call(self, operation: str, args: Mapping[str, Any] | None = None) -> Any:
        """
        Invoke an operation by name with keyword arguments.

        Results with ``to_dict`` are converted to plain dictionaries.

        Raises:
            ValidationError: On unknown operations or arguments
        """
        if operation not in self.OPERATIONS:
            raise ValidationError(
                f"Unknown operation: {operation}. Supported: {', '.join(self.OPERATIONS)}",
                field="op",
            )
        if args is not None and not isinstance(args, Mapping):
            raise ValidationError("args must be an object", field="args")
        method = getattr(self, operation)
        kwargs = dict(args or {})
        try:
            inspect.signature(method).bind(**kwargs)
        except TypeError as e:
            raise ValidationError(f"Invalid arguments for {operation}: {e}", field="args") from e
        result = method(**kwargs)
        return result.to_dict() if isinstance(result, _Result) else result
