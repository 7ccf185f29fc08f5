"""Core infrastructure: errors, configuration, lifecycle stages, heuristics and logging.

``asrgot.core.sessions`` is imported directly; it depends on the session engine.
"""

from asrgot.core.config import GraphConfig
from asrgot.core.errors import (
    CapacityExceeded,
    GraphError,
    InternalInconsistency,
    StageViolation,
    ValidationError,
)
from asrgot.core.heuristics import (
    BiasDetector,
    KeywordBiasDetector,
    LexicalNoveltyScorer,
    NoveltyScorer,
    jaccard_similarity,
)
from asrgot.core.logging_config import get_logger, setup_logging
from asrgot.core.stages import Stage, StageSequencer

__all__ = [
    "GraphConfig",
    "GraphError",
    "StageViolation",
    "ValidationError",
    "CapacityExceeded",
    "InternalInconsistency",
    "BiasDetector",
    "KeywordBiasDetector",
    "NoveltyScorer",
    "LexicalNoveltyScorer",
    "jaccard_similarity",
    "Stage",
    "StageSequencer",
    "get_logger",
    "setup_logging",
]
