"""
Entity schema for the reasoning graph.

Defines the node, edge, hyperedge and layer records together with the
confidence vector they carry. Records validate themselves at construction and
round-trip through ``to_dict``/``from_dict``.

Nodes are mutable: confidence, bias flags and topology metrics change during
evidence integration. Everything else is immutable.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Final

from asrgot.core.errors import ValidationError

COMPONENTS: Final[tuple[str, ...]] = (
    "empirical_support",
    "theoretical_basis",
    "methodological_rigor",
    "consensus_alignment",
)
ROOT_ID: Final[str] = "n0"


class NodeKind(str, Enum):
    """Closed set of node kinds."""

    ROOT = "root"
    DIMENSION = "dimension"
    HYPOTHESIS = "hypothesis"
    EVIDENCE = "evidence"
    BRIDGE = "bridge"
    PLACEHOLDER_GAP = "placeholder_gap"
    MERGED = "merged"


class EdgeType(str, Enum):
    """Closed set of edge types: basic, causal and temporal."""

    CORRELATIVE = "Correlative"
    SUPPORTIVE = "Supportive"
    CONTRADICTORY = "Contradictory"
    PREREQUISITE = "Prerequisite"
    GENERALIZATION = "Generalization"
    SPECIALIZATION = "Specialization"
    DECOMPOSITION = "Decomposition"
    HYPOTHESIS = "Hypothesis"
    CAUSAL = "Causal"
    COUNTERFACTUAL = "Counterfactual"
    CONFOUNDED = "Confounded"
    TEMPORAL_PRECEDENCE = "TemporalPrecedence"
    CYCLIC = "Cyclic"
    DELAYED = "Delayed"
    SEQUENTIAL = "Sequential"
    OTHER = "Other"

    @classmethod
    def parse(cls, value: str | EdgeType, *, field: str = "edge_type") -> EdgeType:
        """Resolve an edge type by value or member name, case-insensitively."""
        if isinstance(value, EdgeType):
            return value
        if isinstance(value, str):
            wanted = value.strip().replace("_", "").replace(" ", "").lower()
            for member in cls:
                if wanted in (member.value.lower(), member.name.replace("_", "").lower()):
                    return member
        allowed = ", ".join(member.value for member in cls)
        raise ValidationError(f"Unknown edge type {value!r}. Allowed: {allowed}", field=field)


STRUCTURAL_EDGE_TYPES: Final[frozenset[EdgeType]] = frozenset(
    {EdgeType.DECOMPOSITION, EdgeType.HYPOTHESIS}
)
CAUSAL_EDGE_TYPES: Final[frozenset[EdgeType]] = frozenset(
    {EdgeType.CAUSAL, EdgeType.COUNTERFACTUAL, EdgeType.CONFOUNDED}
)
TEMPORAL_EDGE_TYPES: Final[frozenset[EdgeType]] = frozenset(
    {EdgeType.TEMPORAL_PRECEDENCE, EdgeType.CYCLIC, EdgeType.DELAYED, EdgeType.SEQUENTIAL}
)


def _unit(value: Any, field: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or math.isnan(value):
        raise ValidationError(f"{field} must be a number, got {value!r}", field=field)
    if not 0.0 <= value <= 1.0:
        raise ValidationError(f"{field} must be within [0, 1], got {value}", field=field)
    return float(value)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _from_iso(value: Any) -> datetime | None:
    return datetime.fromisoformat(str(value)) if value is not None else None


@dataclass(frozen=True)
class ConfidenceVector:
    """
    Immutable four-component confidence.

    Attributes:
        empirical_support: Strength of observational support
        theoretical_basis: Grounding in accepted theory
        methodological_rigor: Quality of the methods behind the claim
        consensus_alignment: Agreement with the field's consensus
        variances: Optional per-component variances (Beta mean/variance pairs)
    """

    empirical_support: float
    theoretical_basis: float
    methodological_rigor: float
    consensus_alignment: float
    variances: tuple[float, float, float, float] | None = None

    def __post_init__(self) -> None:
        for name in COMPONENTS:
            _unit(getattr(self, name), name)
        if self.variances is not None:
            if len(self.variances) != 4:
                raise ValidationError("variances must have exactly 4 components", field="variances")
            for variance in self.variances:
                # A Beta distribution on [0, 1] has variance at most 0.25
                if isinstance(variance, bool) or not 0.0 <= variance <= 0.25:
                    raise ValidationError(
                        f"variance must be within [0, 0.25], got {variance}", field="variances"
                    )

    @classmethod
    def from_sequence(
        cls,
        values: Sequence[float],
        *,
        field: str = "confidence",
        variances: Sequence[float] | None = None,
    ) -> ConfidenceVector:
        """
        Build a vector from exactly four numbers in [0, 1].

        Raises:
            ValidationError: If ``values`` is not four numbers in [0, 1]
        """
        if isinstance(values, (str, bytes)) or not isinstance(values, Sequence):
            raise ValidationError(f"{field} must be a list of 4 numbers", field=field)
        if len(values) != 4:
            raise ValidationError(
                f"{field} must have exactly 4 components, got {len(values)}", field=field
            )
        checked = [_unit(v, field) for v in values]
        return cls(
            checked[0],
            checked[1],
            checked[2],
            checked[3],
            variances=tuple(variances) if variances is not None else None,  # type: ignore[arg-type]
        )

    @classmethod
    def uniform(cls, value: float) -> ConfidenceVector:
        return cls(value, value, value, value)

    @property
    def values(self) -> tuple[float, float, float, float]:
        return (
            self.empirical_support,
            self.theoretical_basis,
            self.methodological_rigor,
            self.consensus_alignment,
        )

    @property
    def mean(self) -> float:
        return sum(self.values) / 4.0

    def with_beta_variances(self) -> ConfidenceVector:
        """Attach ``m * (1 - m)`` variances to each component mean ``m``."""
        means = self.values
        return ConfidenceVector(
            *means,
            variances=(
                means[0] * (1.0 - means[0]),
                means[1] * (1.0 - means[1]),
                means[2] * (1.0 - means[2]),
                means[3] * (1.0 - means[3]),
            ),
        )

    def to_list(self) -> list[float]:
        return list(self.values)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {name: getattr(self, name) for name in COMPONENTS}
        data["variances"] = list(self.variances) if self.variances is not None else None
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ConfidenceVector:
        variances = data.get("variances")
        return cls(
            data["empirical_support"],
            data["theoretical_basis"],
            data["methodological_rigor"],
            data["consensus_alignment"],
            variances=tuple(variances) if variances is not None else None,  # type: ignore[arg-type]
        )


@dataclass(frozen=True)
class StatisticalPower:
    """
    Caller-supplied statistical record for an evidence node.

    The values are opaque: nothing here computes power or effect sizes.
    ``assessment`` only buckets what the caller reported.
    """

    power: float | None = None
    sample_size: int | None = None
    effect_size: float | None = None
    confidence_interval: tuple[float, float] | None = None
    p_value: float | None = None

    def __post_init__(self) -> None:
        if self.power is not None:
            _unit(self.power, "statistical_power.power")
        if self.p_value is not None:
            _unit(self.p_value, "statistical_power.p_value")
        if self.sample_size is not None and (
            isinstance(self.sample_size, bool)
            or not isinstance(self.sample_size, int)
            or self.sample_size < 0
        ):
            raise ValidationError(
                f"sample_size must be a non-negative integer, got {self.sample_size!r}",
                field="statistical_power.sample_size",
            )
        if self.confidence_interval is not None:
            if len(self.confidence_interval) != 2:
                raise ValidationError(
                    "confidence_interval must have exactly 2 bounds",
                    field="statistical_power.confidence_interval",
                )
            low, high = self.confidence_interval
            if low > high:
                raise ValidationError(
                    f"confidence_interval lower bound {low} exceeds upper bound {high}",
                    field="statistical_power.confidence_interval",
                )

    @property
    def assessment(self) -> str:
        if self.power is not None and self.power >= 0.8:
            return "adequate"
        if self.power is not None and self.power >= 0.6:
            return "moderate"
        if self.sample_size is not None and self.sample_size >= 100:
            return "large_sample"
        return "limited"

    def to_dict(self) -> dict[str, Any]:
        return {
            "power": self.power,
            "sample_size": self.sample_size,
            "effect_size": self.effect_size,
            "confidence_interval": (
                list(self.confidence_interval) if self.confidence_interval is not None else None
            ),
            "p_value": self.p_value,
            "assessment": self.assessment,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StatisticalPower:
        interval = data.get("confidence_interval")
        return cls(
            power=data.get("power"),
            sample_size=data.get("sample_size"),
            effect_size=data.get("effect_size"),
            confidence_interval=tuple(interval) if interval is not None else None,  # type: ignore[arg-type]
            p_value=data.get("p_value"),
        )


@dataclass(frozen=True)
class CausalMetadata:
    """Causal annotation on an edge. Recorded, never inferred."""

    mechanism: str | None = None
    confounders: tuple[str, ...] = ()
    strength: str = "weak"
    causal_type: str = "correlation"
    interventional: bool = False

    @property
    def is_substantiated(self) -> bool:
        """Both a mechanism and at least one confounder were named."""
        return bool(self.mechanism) and len(self.confounders) > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "mechanism": self.mechanism,
            "confounders": list(self.confounders),
            "strength": self.strength,
            "causal_type": self.causal_type,
            "interventional": self.interventional,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CausalMetadata:
        return cls(
            mechanism=data.get("mechanism"),
            confounders=tuple(data.get("confounders") or ()),
            strength=data.get("strength", "weak"),
            causal_type=data.get("causal_type", data.get("type", "correlation")),
            interventional=bool(data.get("interventional", False)),
        )


@dataclass(frozen=True)
class TemporalMetadata:
    """Temporal annotation on an edge."""

    pattern: str = "static"
    delay: str | None = None
    sequence: int | None = None
    cyclic: bool = False
    precedence: str | None = None

    @property
    def is_static(self) -> bool:
        return not self.pattern or self.pattern == "static"

    def to_dict(self) -> dict[str, Any]:
        return {
            "pattern": self.pattern,
            "delay": self.delay,
            "sequence": self.sequence,
            "cyclic": self.cyclic,
            "precedence": self.precedence,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TemporalMetadata:
        return cls(
            pattern=data.get("pattern", "static"),
            delay=data.get("delay"),
            sequence=data.get("sequence"),
            cyclic=bool(data.get("cyclic", False)),
            precedence=data.get("precedence"),
        )


@dataclass(frozen=True)
class ResearchPlan:
    """Opaque follow-up work item attached to a hypothesis.

    The graph never executes a plan. Callers run it out-of-band and feed
    the results back through evidence integration.
    """

    plan_type: str
    description: str
    tools: tuple[str, ...] = ()
    timeline: str | None = None
    expected_outcome: str = "evidence_collection"

    @classmethod
    def literature_search(cls, content: str) -> ResearchPlan:
        return cls(
            plan_type="literature_search",
            description=f"Systematic literature review for: {content}",
            tools=("literature_search", "citation_analysis"),
            timeline="2-4 weeks",
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "plan_type": self.plan_type,
            "description": self.description,
            "tools": list(self.tools),
            "timeline": self.timeline,
            "expected_outcome": self.expected_outcome,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ResearchPlan:
        return cls(
            plan_type=data.get("plan_type", data.get("type", "literature_search")),
            description=data.get("description", ""),
            tools=tuple(data.get("tools") or ()),
            timeline=data.get("timeline"),
            expected_outcome=data.get("expected_outcome", "evidence_collection"),
        )


@dataclass
class TopologyMetrics:
    """Derived, non-authoritative topology figures for one node."""

    degree: int = 0
    degree_centrality: float = 0.0
    clustering_coefficient: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "degree": self.degree,
            "degree_centrality": self.degree_centrality,
            "clustering_coefficient": self.clustering_coefficient,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TopologyMetrics:
        return cls(
            degree=int(data.get("degree", 0)),
            degree_centrality=float(data.get("degree_centrality", 0.0)),
            clustering_coefficient=float(data.get("clustering_coefficient", 0.0)),
        )


@dataclass(frozen=True)
class Revision:
    """One entry of a node's revision history."""

    timestamp: datetime
    action: str
    detail: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"timestamp": self.timestamp.isoformat(), "action": self.action, "detail": self.detail}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Revision:
        return cls(
            timestamp=datetime.fromisoformat(str(data["timestamp"])),
            action=str(data["action"]),
            detail=str(data.get("detail", "")),
        )


@dataclass
class NodeMetadata:
    """
    Metadata carried by every node.

    Attributes:
        provenance: Where the node came from (user_input, task_decomposition, ...)
        epistemic_status: accepted, pending, hypothetical, evaluated, bridge, merged
        disciplinary_tags: Set of discipline tags
        falsification_criteria: How the claim could be refuted (hypotheses)
        bias_flags: Heuristic bias tags
        revision_history: Ordered list of changes
        layer_id: Layer the node belongs to
        topology_metrics: Derived degree/centrality/clustering figures
        statistical_power: Caller-supplied statistics (evidence only)
        impact_score: Estimated research significance in [0, 1]
        attribution: Contributor ids
        created_at: UTC creation time
        updated_at: UTC time of the last change
        plan: Research plan (hypotheses only)
        observed_at: When the evidence was observed (evidence only)
        base_confidence: Evidence confidence before temporal decay (evidence only)
        merged_from: Ids of the consolidated originals (merged only)
        origin_kind: Kind shared by the consolidated originals (merged only)
    """

    created_at: datetime
    updated_at: datetime
    provenance: str = "system_generated"
    epistemic_status: str = "pending"
    disciplinary_tags: set[str] = field(default_factory=set)
    falsification_criteria: str | None = None
    bias_flags: list[str] = field(default_factory=list)
    revision_history: list[Revision] = field(default_factory=list)
    layer_id: str = "base"
    topology_metrics: TopologyMetrics = field(default_factory=TopologyMetrics)
    statistical_power: StatisticalPower | None = None
    impact_score: float = 0.5
    attribution: list[str] = field(default_factory=list)
    plan: ResearchPlan | None = None
    observed_at: datetime | None = None
    base_confidence: ConfidenceVector | None = None
    merged_from: tuple[str, ...] = ()
    origin_kind: NodeKind | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "provenance": self.provenance,
            "epistemic_status": self.epistemic_status,
            "disciplinary_tags": sorted(self.disciplinary_tags),
            "falsification_criteria": self.falsification_criteria,
            "bias_flags": list(self.bias_flags),
            "revision_history": [r.to_dict() for r in self.revision_history],
            "layer_id": self.layer_id,
            "topology_metrics": self.topology_metrics.to_dict(),
            "statistical_power": (
                self.statistical_power.to_dict() if self.statistical_power is not None else None
            ),
            "impact_score": self.impact_score,
            "attribution": list(self.attribution),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "plan": self.plan.to_dict() if self.plan is not None else None,
            "observed_at": _iso(self.observed_at),
            "base_confidence": (
                self.base_confidence.to_dict() if self.base_confidence is not None else None
            ),
            "merged_from": list(self.merged_from),
            "origin_kind": self.origin_kind.value if self.origin_kind is not None else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NodeMetadata:
        power = data.get("statistical_power")
        plan = data.get("plan")
        base = data.get("base_confidence")
        origin = data.get("origin_kind")
        return cls(
            created_at=datetime.fromisoformat(str(data["created_at"])),
            updated_at=datetime.fromisoformat(str(data["updated_at"])),
            provenance=data.get("provenance", "system_generated"),
            epistemic_status=data.get("epistemic_status", "pending"),
            disciplinary_tags=set(data.get("disciplinary_tags") or ()),
            falsification_criteria=data.get("falsification_criteria"),
            bias_flags=list(data.get("bias_flags") or ()),
            revision_history=[Revision.from_dict(r) for r in data.get("revision_history") or ()],
            layer_id=data.get("layer_id", "base"),
            topology_metrics=TopologyMetrics.from_dict(data.get("topology_metrics") or {}),
            statistical_power=StatisticalPower.from_dict(power) if power is not None else None,
            impact_score=data.get("impact_score", 0.5),
            attribution=list(data.get("attribution") or ()),
            plan=ResearchPlan.from_dict(plan) if plan is not None else None,
            observed_at=_from_iso(data.get("observed_at")),
            base_confidence=ConfidenceVector.from_dict(base) if base is not None else None,
            merged_from=tuple(data.get("merged_from") or ()),
            origin_kind=NodeKind(origin) if origin is not None else None,
        )


# Metadata fields that only some kinds may populate
_KIND_RESTRICTED_FIELDS: Final[dict[str, frozenset[NodeKind]]] = {
    "plan": frozenset({NodeKind.HYPOTHESIS, NodeKind.MERGED}),
    "statistical_power": frozenset({NodeKind.EVIDENCE, NodeKind.MERGED}),
    "observed_at": frozenset({NodeKind.EVIDENCE, NodeKind.MERGED}),
    "base_confidence": frozenset({NodeKind.EVIDENCE, NodeKind.MERGED}),
}


@dataclass
class Node:
    """
    A vertex of the reasoning graph.

    Attributes:
        node_id: Unique identifier (``n0``, ``2.1``, ``3.1.2``, ``4.7``, ...)
        label: Human-readable label
        kind: Node kind
        content: Text content of the node
        confidence: Four-component confidence
        metadata: Node metadata
    """

    node_id: str
    label: str
    kind: NodeKind
    content: str
    confidence: ConfidenceVector
    metadata: NodeMetadata

    def __post_init__(self) -> None:
        if not self.node_id or not self.node_id.strip():
            raise ValidationError("node_id must be non-empty", field="node_id")
        self.kind = NodeKind(self.kind)
        _unit(self.metadata.impact_score, "impact_score")
        for name, kinds in _KIND_RESTRICTED_FIELDS.items():
            if getattr(self.metadata, name) is not None and self.kind not in kinds:
                raise ValidationError(
                    f"{name} is not allowed on {self.kind.value} nodes",
                    field=name,
                    node_id=self.node_id,
                )
        if self.kind is NodeKind.MERGED:
            if self.metadata.origin_kind is None or len(self.metadata.merged_from) < 2:
                raise ValidationError(
                    "merged nodes require origin_kind and at least two originals",
                    field="merged_from",
                    node_id=self.node_id,
                )
            if self.metadata.origin_kind in (NodeKind.ROOT, NodeKind.MERGED):
                raise ValidationError(
                    f"cannot merge {self.metadata.origin_kind.value} nodes",
                    field="origin_kind",
                    node_id=self.node_id,
                )
        elif self.metadata.origin_kind is not None or self.metadata.merged_from:
            raise ValidationError(
                "origin_kind and merged_from are only allowed on merged nodes",
                field="origin_kind",
                node_id=self.node_id,
            )

    @property
    def base_kind(self) -> NodeKind:
        """Kind used for comparisons: the originals' kind for merged nodes."""
        if self.kind is NodeKind.MERGED and self.metadata.origin_kind is not None:
            return self.metadata.origin_kind
        return self.kind

    @property
    def mean_confidence(self) -> float:
        return self.confidence.mean

    def record(self, timestamp: datetime, action: str, detail: str = "") -> None:
        """Append a revision entry and bump ``updated_at``."""
        self.metadata.revision_history.append(Revision(timestamp, action, detail))
        self.metadata.updated_at = timestamp

    def to_dict(self) -> dict[str, Any]:
        return {
            "node_id": self.node_id,
            "label": self.label,
            "kind": self.kind.value,
            "content": self.content,
            "confidence": self.confidence.to_dict(),
            "metadata": self.metadata.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Node:
        return cls(
            node_id=str(data["node_id"]),
            label=str(data["label"]),
            kind=NodeKind(data["kind"]),
            content=str(data["content"]),
            confidence=ConfidenceVector.from_dict(data["confidence"]),
            metadata=NodeMetadata.from_dict(data["metadata"]),
        )


@dataclass
class Edge:
    """
    Directed, typed edge.

    ``source`` and ``target`` are rewired when nodes are merged; everything
    else is fixed at creation.
    """

    edge_id: str
    source: str
    target: str
    edge_type: EdgeType
    confidence: ConfidenceVector
    created_at: datetime
    causal_metadata: CausalMetadata | None = None
    temporal_metadata: TemporalMetadata | None = None

    def __post_init__(self) -> None:
        self.edge_type = EdgeType.parse(self.edge_type)
        if self.source == self.target:
            raise ValidationError(
                f"edge {self.edge_id} would be a self-loop on {self.source}", node_id=self.source
            )

    def to_dict(self) -> dict[str, Any]:
        return {
            "edge_id": self.edge_id,
            "source": self.source,
            "target": self.target,
            "edge_type": self.edge_type.value,
            "confidence": self.confidence.to_dict(),
            "created_at": self.created_at.isoformat(),
            "causal_metadata": (
                self.causal_metadata.to_dict() if self.causal_metadata is not None else None
            ),
            "temporal_metadata": (
                self.temporal_metadata.to_dict() if self.temporal_metadata is not None else None
            ),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Edge:
        causal = data.get("causal_metadata")
        temporal = data.get("temporal_metadata")
        return cls(
            edge_id=str(data["edge_id"]),
            source=str(data["source"]),
            target=str(data["target"]),
            edge_type=EdgeType.parse(data["edge_type"]),
            confidence=ConfidenceVector.from_dict(data["confidence"]),
            created_at=datetime.fromisoformat(str(data["created_at"])),
            causal_metadata=CausalMetadata.from_dict(causal) if causal is not None else None,
            temporal_metadata=TemporalMetadata.from_dict(temporal) if temporal is not None else None,
        )


@dataclass
class Hyperedge:
    """Joint, non-additive influence of more than two nodes on one target."""

    hyperedge_id: str
    member_ids: tuple[str, ...]
    target: str
    relationship_descriptor: str
    confidence: ConfidenceVector
    created_at: datetime

    def __post_init__(self) -> None:
        self.member_ids = tuple(dict.fromkeys(self.member_ids))
        if len(self.member_ids) <= 2:
            raise ValidationError(
                f"hyperedge {self.hyperedge_id} needs more than 2 distinct members, "
                f"got {len(self.member_ids)}",
                field="member_ids",
            )

    def to_dict(self) -> dict[str, Any]:
        return {
            "hyperedge_id": self.hyperedge_id,
            "member_ids": list(self.member_ids),
            "target": self.target,
            "relationship_descriptor": self.relationship_descriptor,
            "confidence": self.confidence.to_dict(),
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Hyperedge:
        return cls(
            hyperedge_id=str(data["hyperedge_id"]),
            member_ids=tuple(data["member_ids"]),
            target=str(data["target"]),
            relationship_descriptor=str(data["relationship_descriptor"]),
            confidence=ConfidenceVector.from_dict(data["confidence"]),
            created_at=datetime.fromisoformat(str(data["created_at"])),
        )


@dataclass
class Layer:
    """Named partition of the node set."""

    layer_id: str
    name: str
    description: str = ""
    node_ids: set[str] = field(default_factory=set)

    def to_dict(self) -> dict[str, Any]:
        return {
            "layer_id": self.layer_id,
            "name": self.name,
            "description": self.description,
            "node_ids": sorted(self.node_ids),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Layer:
        return cls(
            layer_id=str(data["layer_id"]),
            name=str(data["name"]),
            description=str(data.get("description", "")),
            node_ids=set(data.get("node_ids") or ()),
        )


DEFAULT_LAYERS: Final[tuple[tuple[str, str, str], ...]] = (
    ("base", "Base Conceptual Layer", "Core concepts and relationships"),
    ("methodological", "Methodological Layer", "Research methods and approaches"),
    ("empirical", "Empirical Evidence Layer", "Data and evidence"),
    ("theoretical", "Theoretical Framework Layer", "Theoretical constructs"),
    ("interdisciplinary", "Interdisciplinary Bridge Layer", "Cross-domain connections"),
)
