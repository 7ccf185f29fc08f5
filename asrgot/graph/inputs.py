"""
Caller input records and their validation.

Operations accept either these records or plain mappings (as decoded from
JSON). Validation is explicit and deterministic: text is trimmed and
newline-normalized, confidence vectors must have four components in [0, 1],
and every failure raises ``ValidationError`` naming the offending field.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Final

from asrgot.core.errors import ValidationError
from asrgot.graph.schema import (
    STRUCTURAL_EDGE_TYPES,
    CausalMetadata,
    ConfidenceVector,
    EdgeType,
    ResearchPlan,
    StatisticalPower,
    TemporalMetadata,
)

MAX_TEXT_LENGTH: Final[int] = 10_000


def clean_text(value: Any, *, field: str, max_length: int = MAX_TEXT_LENGTH) -> str:
    """Trim and newline-normalize a required text field."""
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string", field=field)
    normalized = value.replace("\r\n", "\n").replace("\r", "\n").strip()
    if not normalized:
        raise ValidationError(f"{field} must not be empty or whitespace-only", field=field)
    if len(normalized) > max_length:
        raise ValidationError(
            f"{field} length {len(normalized)} exceeds maximum allowed {max_length}", field=field
        )
    return normalized


def optional_text(value: Any, *, field: str) -> str | None:
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return clean_text(value, field=field)


def parse_confidence(value: Any, *, field: str, default: float) -> ConfidenceVector:
    if value is None:
        return ConfidenceVector.uniform(default)
    if isinstance(value, ConfidenceVector):
        return value
    return ConfidenceVector.from_sequence(value, field=field)


def parse_tags(value: Any, *, field: str = "disciplinary_tags") -> set[str]:
    if value is None:
        return set()
    if isinstance(value, str) or not isinstance(value, Iterable):
        raise ValidationError(f"{field} must be a list of strings", field=field)
    tags: set[str] = set()
    for tag in value:
        if not isinstance(tag, str) or not tag.strip():
            raise ValidationError(f"{field} entries must be non-empty strings", field=field)
        tags.add(tag.strip())
    return tags


def parse_ids(value: Any, *, field: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str) or not isinstance(value, Iterable):
        raise ValidationError(f"{field} must be a list of strings", field=field)
    ids: list[str] = []
    for item in value:
        if not isinstance(item, str) or not item.strip():
            raise ValidationError(f"{field} entries must be non-empty strings", field=field)
        ids.append(item.strip())
    return list(dict.fromkeys(ids))


def parse_unit(value: Any, *, field: str, default: float) -> float:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not 0.0 <= value <= 1.0:
        raise ValidationError(f"{field} must be a number in [0, 1], got {value!r}", field=field)
    return float(value)


def parse_datetime(value: Any, *, field: str) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value))
        except ValueError as e:
            raise ValidationError(f"{field} must be an ISO-8601 timestamp: {e}", field=field) from e
    # Naive timestamps are taken as UTC
    return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)


def _record(value: Any, cls: type, *, field: str) -> Any:
    if value is None or isinstance(value, cls):
        return value
    if not isinstance(value, Mapping):
        raise ValidationError(f"{field} must be an object", field=field)
    try:
        return cls.from_dict(dict(value))
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid {field}: {e}", field=field) from e


def _mapping(value: Any, *, field: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ValidationError(f"{field} must be an object", field=field)
    return value


@dataclass(frozen=True)
class HypothesisInput:
    """
    One hypothesis to attach to a dimension.

    Attributes:
        content: Hypothesis statement
        confidence: Initial confidence (default ``[0.5]*4``)
        falsification_criteria: How the hypothesis could be refuted
        impact_score: Estimated research significance (default 0.6)
        disciplinary_tags: Discipline tags
        attribution: Contributor ids
        plan: Explicit research plan (default: a literature search)
    """

    content: str
    confidence: ConfidenceVector
    falsification_criteria: str | None = None
    impact_score: float = 0.6
    disciplinary_tags: frozenset[str] = frozenset()
    attribution: tuple[str, ...] = ()
    plan: ResearchPlan | None = None

    @classmethod
    def parse(cls, value: Any, *, index: int = 0) -> HypothesisInput:
        """Accept a bare statement string or a mapping of fields."""
        if isinstance(value, HypothesisInput):
            return value
        prefix = f"hypotheses[{index}]"
        if isinstance(value, str):
            return cls(
                content=clean_text(value, field=f"{prefix}.content"),
                confidence=ConfidenceVector.uniform(0.5),
            )
        data = _mapping(value, field=prefix)
        return cls(
            content=clean_text(data.get("content"), field=f"{prefix}.content"),
            confidence=parse_confidence(
                data.get("confidence"), field=f"{prefix}.confidence", default=0.5
            ),
            falsification_criteria=optional_text(
                data.get("falsification_criteria"), field=f"{prefix}.falsification_criteria"
            ),
            impact_score=parse_unit(
                data.get("impact_score"), field=f"{prefix}.impact_score", default=0.6
            ),
            disciplinary_tags=frozenset(
                parse_tags(data.get("disciplinary_tags"), field=f"{prefix}.disciplinary_tags")
            ),
            attribution=tuple(parse_ids(data.get("attribution"), field=f"{prefix}.attribution")),
            plan=_record(data.get("plan"), ResearchPlan, field=f"{prefix}.plan"),
        )


@dataclass(frozen=True)
class EvidenceInput:
    """
    One piece of evidence for a hypothesis or knowledge gap.

    Attributes:
        content: Observation text
        confidence: Evidence confidence (default ``[0.7]*4``)
        relationship: Edge type from the evidence to its target
        disciplinary_tags: Discipline tags
        statistical_power: Caller-supplied statistics
        causal_metadata: Causal annotation for the evidence edge
        temporal_metadata: Temporal annotation for the evidence edge
        provenance: Source tag (``single_source`` is flagged as a bias risk)
        impact_score: Estimated research significance (default 0.5)
        attribution: Contributor ids
        observed_at: Observation time used for temporal decay
        derived_from: Existing node ids this evidence builds on
        layer_id: Layer for the evidence node (default ``empirical``)
    """

    content: str
    confidence: ConfidenceVector
    relationship: EdgeType = EdgeType.SUPPORTIVE
    disciplinary_tags: frozenset[str] = frozenset()
    statistical_power: StatisticalPower | None = None
    causal_metadata: CausalMetadata | None = None
    temporal_metadata: TemporalMetadata | None = None
    provenance: str = "evidence_integration"
    impact_score: float = 0.5
    attribution: tuple[str, ...] = ()
    observed_at: datetime | None = None
    derived_from: tuple[str, ...] = ()
    layer_id: str = "empirical"

    def __post_init__(self) -> None:
        if self.relationship in STRUCTURAL_EDGE_TYPES:
            raise ValidationError(
                f"{self.relationship.value} is a structural edge type and cannot link evidence",
                field="relationship",
            )

    @classmethod
    def parse(cls, value: Any) -> EvidenceInput:
        if isinstance(value, EvidenceInput):
            return value
        data = _mapping(value, field="evidence")
        relationship = data.get("relationship", data.get("edge_type", EdgeType.SUPPORTIVE))
        return cls(
            content=clean_text(data.get("content"), field="evidence.content"),
            confidence=parse_confidence(
                data.get("confidence"), field="evidence.confidence", default=0.7
            ),
            relationship=EdgeType.parse(relationship, field="evidence.relationship"),
            disciplinary_tags=frozenset(
                parse_tags(data.get("disciplinary_tags"), field="evidence.disciplinary_tags")
            ),
            statistical_power=_record(
                data.get("statistical_power"), StatisticalPower, field="evidence.statistical_power"
            ),
            causal_metadata=_record(
                data.get("causal_metadata"), CausalMetadata, field="evidence.causal_metadata"
            ),
            temporal_metadata=_record(
                data.get("temporal_metadata"), TemporalMetadata, field="evidence.temporal_metadata"
            ),
            provenance=optional_text(data.get("provenance"), field="evidence.provenance")
            or "evidence_integration",
            impact_score=parse_unit(
                data.get("impact_score"), field="evidence.impact_score", default=0.5
            ),
            attribution=tuple(parse_ids(data.get("attribution"), field="evidence.attribution")),
            observed_at=parse_datetime(data.get("observed_at"), field="evidence.observed_at"),
            derived_from=tuple(parse_ids(data.get("derived_from"), field="evidence.derived_from")),
            layer_id=optional_text(data.get("layer_id"), field="evidence.layer_id") or "empirical",
        )


def parse_hypotheses(values: Any) -> list[HypothesisInput]:
    if isinstance(values, (str, bytes)) or not isinstance(values, Sequence):
        raise ValidationError("hypotheses must be a list", field="hypotheses")
    return [HypothesisInput.parse(value, index=i) for i, value in enumerate(values)]
