"""
Agentic Structure Generation - Generation Library

This package holds the blueprint data model and the pure transforms applied
to generated blueprints before placement.

Main Entry Points:
    - Blueprint / Operation / OperationKind: the data model
    - sanitize_blueprint(): normalize raw model output
    - optimize_build_order(): bottom-up causal step ordering
    - expand_blueprint(): operations -> world-space target blocks
    - plan_stations(): greedy reach-constrained station partition

Example:
    >>> from generation.core import Blueprint
    >>> from generation.ops import optimize_build_order, expand_blueprint, plan_stations
    >>>
    >>> ordered, _ = optimize_build_order(blueprint)
    >>> targets = expand_blueprint(ordered)
    >>> assignment = plan_stations([t.position for t in targets])
"""

from .core import (
    Vec3,
    Dimensions,
    OperationKind,
    Operation,
    BuildRequest,
    Analysis,
    DesignPlan,
    Blueprint,
)
from .ops import (
    sanitize_blueprint,
    merge_set_runs,
    optimize_build_order,
    expand_blueprint,
    plan_stations,
    CoverageAssignment,
    Station,
)

__version__ = "0.1.0"

__all__ = [
    "Vec3",
    "Dimensions",
    "OperationKind",
    "Operation",
    "BuildRequest",
    "Analysis",
    "DesignPlan",
    "Blueprint",
    "sanitize_blueprint",
    "merge_set_runs",
    "optimize_build_order",
    "expand_blueprint",
    "plan_stations",
    "CoverageAssignment",
    "Station",
]
