"""
ASR-GoT - A stage-gated research reasoning graph.

This package provides the graph state machine behind a structured
research-reasoning process: decomposition, hypotheses, evidence, refinement,
extraction, composition and audit.
"""

from typing import Final

from asrgot.core.config import GraphConfig
from asrgot.core.errors import (
    CapacityExceeded,
    GraphError,
    InternalInconsistency,
    StageViolation,
    ValidationError,
)
from asrgot.core.sessions import FileSnapshotStore, SessionRegistry
from asrgot.engine import ReasoningSession

__version__: Final[str] = "0.1.0"
__all__: list[str] = [
    "__version__",
    "GraphConfig",
    "GraphError",
    "StageViolation",
    "ValidationError",
    "CapacityExceeded",
    "InternalInconsistency",
    "ReasoningSession",
    "SessionRegistry",
    "FileSnapshotStore",
]
