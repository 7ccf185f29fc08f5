"""
Self-audit (stage 8).

A fixed battery of independent pass/fail checks over the finished graph. A
check whose population is empty passes. The quality score is the share of
checks that passed.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Final

from asrgot.core.errors import ValidationError
from asrgot.core.logging_config import get_logger
from asrgot.core.stages import Stage
from asrgot.graph.schema import Node, NodeKind
from asrgot.graph.store import ReasoningGraph

logger = get_logger("graph.audit")

HIGH_IMPACT: Final[float] = 0.7
COVERED_CONFIDENCE: Final[float] = 0.6
GAP_RESOLVED_CONFIDENCE: Final[float] = 0.4
COLLABORATION_MIN_NODES: Final[int] = 10


@dataclass(frozen=True)
class CheckResult:
    """
    Outcome of one audit check.

    Attributes:
        name: Check identifier
        passed: Whether the check passed
        value: Measured ratio or count
        threshold: Pass threshold the value was compared against
        issue: What is wrong, when the check failed
        recommendation: How to fix it, when the check failed
    """

    name: str
    passed: bool
    value: float
    threshold: float
    issue: str | None = None
    recommendation: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "name": self.name,
            "passed": self.passed,
            "value": self.value,
            "threshold": self.threshold,
            "issue": self.issue,
            "recommendation": self.recommendation,
        }


@dataclass(frozen=True)
class AuditReport:
    results: list[CheckResult]

    @property
    def checks_performed(self) -> list[str]:
        return [result.name for result in self.results]

    @property
    def issues(self) -> list[str]:
        return [r.issue for r in self.results if r.issue is not None]

    @property
    def recommendations(self) -> list[str]:
        return [r.recommendation for r in self.results if r.recommendation is not None]

    @property
    def quality_score(self) -> float:
        if not self.results:
            return 0.0
        return sum(1 for r in self.results if r.passed) / len(self.results)


def _ratio(hits: int, total: int) -> float:
    return hits / total if total else 1.0


def _min_ratio(
    name: str, hits: int, total: int, threshold: float, issue: str, recommendation: str
) -> CheckResult:
    value = _ratio(hits, total)
    passed = value >= threshold
    return CheckResult(
        name=name,
        passed=passed,
        value=value,
        threshold=threshold,
        issue=None if passed else f"{issue}: {value * 100:.1f}%",
        recommendation=None if passed else recommendation,
    )


def is_critical_gap(node: Node) -> bool:
    """An unresolved, high-impact knowledge gap."""
    return (
        node.base_kind is NodeKind.PLACEHOLDER_GAP
        and node.metadata.impact_score > HIGH_IMPACT
        and node.mean_confidence <= GAP_RESOLVED_CONFIDENCE
    )


def check_coverage(graph: ReasoningGraph) -> CheckResult:
    high_impact = [n for n in graph.nodes() if n.metadata.impact_score > HIGH_IMPACT]
    covered = [n for n in high_impact if n.mean_confidence > COVERED_CONFIDENCE]
    return _min_ratio(
        "coverage",
        len(covered),
        len(high_impact),
        0.8,
        "Low coverage of high-impact nodes",
        "Focus additional research on high-impact, low-confidence areas",
    )


def check_bias_flags(graph: ReasoningGraph) -> CheckResult:
    nodes = graph.nodes()
    flags = sum(len(n.metadata.bias_flags) for n in nodes)
    value = flags / len(nodes) if nodes else 0.0
    passed = value < 0.3
    return CheckResult(
        name="bias_flags",
        passed=passed,
        value=value,
        threshold=0.3,
        issue=None if passed else f"High bias flag ratio: {value * 100:.1f}%",
        recommendation=None if passed else "Review and address identified biases before proceeding",
    )


def check_knowledge_gaps(graph: ReasoningGraph) -> CheckResult:
    critical = [n.node_id for n in graph.nodes() if is_critical_gap(n)]
    passed = len(critical) < 3
    return CheckResult(
        name="knowledge_gaps",
        passed=passed,
        value=float(len(critical)),
        threshold=3.0,
        issue=None if passed else f"{len(critical)} critical knowledge gaps identified",
        recommendation=None if passed else "Prioritize research to address critical knowledge gaps",
    )


def check_falsifiability(graph: ReasoningGraph) -> CheckResult:
    hypotheses = [n for n in graph.nodes() if n.base_kind is NodeKind.HYPOTHESIS]
    falsifiable = [n for n in hypotheses if n.metadata.falsification_criteria]
    return _min_ratio(
        "falsifiability",
        len(falsifiable),
        len(hypotheses),
        0.8,
        "Low falsifiability coverage",
        "Add falsification criteria to remaining hypotheses",
    )


def check_causal_validity(graph: ReasoningGraph) -> CheckResult:
    causal = [e.causal_metadata for e in graph.edges() if e.causal_metadata is not None]
    valid = [m for m in causal if m.is_substantiated]
    return _min_ratio(
        "causal_validity",
        len(valid),
        len(causal),
        0.7,
        "Weak causal validation",
        "Strengthen causal claims with mechanism and confounder analysis",
    )


def check_temporal_consistency(graph: ReasoningGraph) -> CheckResult:
    temporal = [e.temporal_metadata for e in graph.edges() if e.temporal_metadata is not None]
    patterned = [m for m in temporal if not m.is_static]
    return _min_ratio(
        "temporal_consistency",
        len(patterned),
        len(temporal),
        0.8,
        "Temporal inconsistencies detected",
        "Review temporal relationships for logical consistency",
    )


def check_statistical_rigor(graph: ReasoningGraph) -> CheckResult:
    evidence = [n for n in graph.nodes() if n.base_kind is NodeKind.EVIDENCE]
    rigorous = [
        n
        for n in evidence
        if n.metadata.statistical_power is not None
        and n.metadata.statistical_power.assessment != "limited"
    ]
    return _min_ratio(
        "statistical_rigor",
        len(rigorous),
        len(evidence),
        0.6,
        "Low statistical rigor",
        "Strengthen evidence with better statistical analysis",
    )


def check_collaboration(graph: ReasoningGraph) -> CheckResult:
    nodes = graph.nodes()
    attributed = [n for n in nodes if n.metadata.attribution]
    if len(nodes) < COLLABORATION_MIN_NODES:
        return CheckResult("collaboration", True, _ratio(len(attributed), len(nodes)), 0.3)
    return _min_ratio(
        "collaboration",
        len(attributed),
        len(nodes),
        0.3,
        "Low collaboration attribution",
        "Consider adding collaboration and attribution metadata",
    )


AUDIT_CHECKS: Final[dict[str, Callable[[ReasoningGraph], CheckResult]]] = {
    "coverage": check_coverage,
    "bias_flags": check_bias_flags,
    "knowledge_gaps": check_knowledge_gaps,
    "falsifiability": check_falsifiability,
    "causal_validity": check_causal_validity,
    "temporal_consistency": check_temporal_consistency,
    "statistical_rigor": check_statistical_rigor,
    "collaboration": check_collaboration,
}


def run_checks(graph: ReasoningGraph, checks: Sequence[str] | None = None) -> AuditReport:
    """
    Run the named checks (all of them when ``checks`` is ``None``).

    Raises:
        ValidationError: On unknown or empty check selections
    """
    if checks is None:
        names = list(AUDIT_CHECKS)
    else:
        if isinstance(checks, str) or not isinstance(checks, Sequence):
            raise ValidationError("checks must be a list of check names", field="checks")
        names = list(dict.fromkeys(checks))
        unknown = [name for name in names if name not in AUDIT_CHECKS]
        if unknown:
            raise ValidationError(
                f"Unknown audit checks: {', '.join(map(str, unknown))}. "
                f"Supported: {', '.join(AUDIT_CHECKS)}",
                field="checks",
            )
        if not names:
            raise ValidationError("at least one audit check is required", field="checks")
    return AuditReport(results=[AUDIT_CHECKS[name](graph) for name in names])


def perform_audit(graph: ReasoningGraph, checks: Sequence[str] | None = None) -> AuditReport:
    """
    Audit the graph and advance stage 7 to 8.

    Raises:
        StageViolation: Unless the graph is at stage 7
    """
    graph.stages.require("perform_audit", Stage.COMPOSITION)
    report = run_checks(graph, checks)
    graph.stages.advance()
    logger.info(
        "Stage 8: audit score %.3f (%d/%d checks passed)",
        report.quality_score,
        sum(1 for r in report.results if r.passed),
        len(report.results),
    )
    return report
