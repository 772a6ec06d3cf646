"""Core data structures for structure generation."""

from .types import Vec3, ORIGIN, Dimensions
from .operation import (
    OperationKind,
    Operation,
    BULK_KINDS,
    MARKER_KINDS,
    cursor_reset,
    move,
)
from .blueprint import (
    BuildRequest,
    Analysis,
    DesignPlan,
    Blueprint,
    analysis_from_dict,
)

__all__ = [
    "Vec3",
    "ORIGIN",
    "Dimensions",
    "OperationKind",
    "Operation",
    "BULK_KINDS",
    "MARKER_KINDS",
    "cursor_reset",
    "move",
    "BuildRequest",
    "Analysis",
    "DesignPlan",
    "Blueprint",
    "analysis_from_dict",
]
