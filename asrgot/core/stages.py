"""
Stage sequencer for the 8-stage reasoning lifecycle.

The sequencer owns the stage counter. Operations declare the stage(s) they
accept; a successful advancing operation moves the counter forward by exactly
one. There is no skip-ahead and no rollback.
"""

from __future__ import annotations

from enum import IntEnum

from asrgot.core.errors import InternalInconsistency, StageViolation


class Stage(IntEnum):
    """Lifecycle stages. ``UNINITIALIZED`` precedes stage 1."""

    UNINITIALIZED = 0
    INITIALIZATION = 1
    DECOMPOSITION = 2
    HYPOTHESIS_PLANNING = 3
    EVIDENCE_INTEGRATION = 4
    PRUNING_MERGING = 5
    SUBGRAPH_EXTRACTION = 6
    COMPOSITION = 7
    REFLECTION = 8

    @property
    def label(self) -> str:
        return self.name.lower()


class StageSequencer:
    """Track and enforce the current lifecycle stage."""

    def __init__(self, current: Stage = Stage.UNINITIALIZED) -> None:
        self._current = Stage(current)

    @property
    def current(self) -> Stage:
        return self._current

    def require(self, operation: str, *allowed: Stage) -> Stage:
        """
        Check that the current stage is one of ``allowed``.

        Raises:
            StageViolation: If the current stage is not allowed
        """
        if self._current not in allowed:
            raise StageViolation(
                operation=operation,
                required=tuple(int(stage) for stage in allowed),
                actual=int(self._current),
            )
        return self._current

    def advance(self) -> Stage:
        """Move to the next stage."""
        if self._current is Stage.REFLECTION:
            raise InternalInconsistency("Cannot advance past the final stage", stage=int(self._current))
        self._current = Stage(self._current + 1)
        return self._current
