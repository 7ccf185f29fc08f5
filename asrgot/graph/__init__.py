"""Reasoning graph: typed entities, the graph store and the stage engines.

Stage engines mutate a ``ReasoningGraph`` in place and are meant to run inside
``ReasoningGraph.transaction()``; ``asrgot.engine.ReasoningSession`` does this
for callers.
"""

from asrgot.graph.schema import (
    ROOT_ID,
    CausalMetadata,
    ConfidenceVector,
    Edge,
    EdgeType,
    Hyperedge,
    Layer,
    Node,
    NodeKind,
    NodeMetadata,
    ResearchPlan,
    StatisticalPower,
    TemporalMetadata,
)
from asrgot.graph.store import ReasoningGraph
from asrgot.graph.inputs import EvidenceInput, HypothesisInput
from asrgot.graph.builder import GraphBuilder
from asrgot.graph.evidence import EvidenceIntegrator, IntegrationOutcome
from asrgot.graph.refinement import Merge, RefinementOutcome, Refiner
from asrgot.graph.extraction import Subgraph, SubgraphCriteria, extract_subgraph
from asrgot.graph.composition import Claim, Composition, CompositionOptions, compose_output
from asrgot.graph.audit import AUDIT_CHECKS, AuditReport, CheckResult, perform_audit
from asrgot.graph.export import export_snapshot, load_snapshot, to_networkx

__all__ = [
    "ROOT_ID",
    "CausalMetadata",
    "ConfidenceVector",
    "Edge",
    "EdgeType",
    "Hyperedge",
    "Layer",
    "Node",
    "NodeKind",
    "NodeMetadata",
    "ResearchPlan",
    "StatisticalPower",
    "TemporalMetadata",
    "ReasoningGraph",
    "EvidenceInput",
    "HypothesisInput",
    "GraphBuilder",
    "EvidenceIntegrator",
    "IntegrationOutcome",
    "Merge",
    "RefinementOutcome",
    "Refiner",
    "Subgraph",
    "SubgraphCriteria",
    "extract_subgraph",
    "Claim",
    "Composition",
    "CompositionOptions",
    "compose_output",
    "AUDIT_CHECKS",
    "AuditReport",
    "CheckResult",
    "perform_audit",
    "export_snapshot",
    "load_snapshot",
    "to_networkx",
]
