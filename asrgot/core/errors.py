"""
Error taxonomy for the reasoning graph.

Every error carries a stable machine-readable ``kind`` plus a human-readable
message and enough context (stage, node id, limit) for the caller to
self-correct.
"""

from __future__ import annotations

from typing import Any, ClassVar


class GraphError(Exception):
    """Base exception for all reasoning graph errors."""

    kind: ClassVar[str] = "graph_error"

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = {k: v for k, v in context.items() if v is not None}

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable error payload."""
        return {"kind": self.kind, "message": self.message, "context": dict(self.context)}


class StageViolation(GraphError):
    """Raised when an operation is invoked in the wrong lifecycle stage."""

    kind: ClassVar[str] = "stage_violation"

    def __init__(self, *, operation: str, required: tuple[int, ...], actual: int) -> None:
        expected = " or ".join(str(stage) for stage in required)
        message = (
            f"Cannot {operation}: current stage is {actual}, expected {expected}. "
            "Re-sequence the calls or start a new session."
        )
        super().__init__(message, operation=operation, required=list(required), actual=actual)
        self.operation = operation
        self.required = required
        self.actual = actual


class ValidationError(GraphError):
    """Raised when caller input is malformed or references an unknown id."""

    kind: ClassVar[str] = "validation_error"

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        node_id: str | None = None,
    ) -> None:
        super().__init__(message, field=field, node_id=node_id)
        self.field = field
        self.node_id = node_id


class CapacityExceeded(GraphError):
    """Raised when a vertex or edge cap is still exceeded after cleanup."""

    kind: ClassVar[str] = "capacity_exceeded"

    def __init__(self, *, resource: str, limit: int, required: int) -> None:
        message = (
            f"{resource} limit {limit} exceeded ({required} required) even after cleanup. "
            "Export the graph and start a new session."
        )
        super().__init__(message, resource=resource, limit=limit, required=required)
        self.resource = resource
        self.limit = limit
        self.required = required


class InternalInconsistency(GraphError):
    """Raised when a graph invariant is violated. Fatal to the session."""

    kind: ClassVar[str] = "internal_inconsistency"
