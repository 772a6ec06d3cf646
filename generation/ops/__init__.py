"""
Blueprint operations: registry, sanitizing, build ordering, expansion and
station planning.

All functions here are pure: they return new values and never mutate their
inputs.
"""

from .registry import (
    OperationSpec,
    OPERATION_REGISTRY,
    get_spec,
    stepwise_kinds,
    missing_params,
    describe_vocabulary,
)
from .sanitize import (
    OP_ALIASES,
    normalize_op_name,
    synthesize_fallback,
    sanitize_blueprint,
    merge_set_runs,
)
from .build_order import (
    BUILD_PRIORITY,
    order_steps,
    optimize_build_order,
)
from .expand import (
    TargetBlock,
    expand_operation,
    expand_blueprint,
    estimate_block_count,
)
from .stations import (
    Station,
    CoverageAssignment,
    plan_stations,
    StationCursor,
)

__all__ = [
    # Registry
    "OperationSpec",
    "OPERATION_REGISTRY",
    "get_spec",
    "stepwise_kinds",
    "missing_params",
    "describe_vocabulary",
    # Sanitizing
    "OP_ALIASES",
    "normalize_op_name",
    "synthesize_fallback",
    "sanitize_blueprint",
    "merge_set_runs",
    # Ordering
    "BUILD_PRIORITY",
    "order_steps",
    "optimize_build_order",
    # Expansion
    "TargetBlock",
    "expand_operation",
    "expand_blueprint",
    "estimate_block_count",
    # Stations
    "Station",
    "CoverageAssignment",
    "plan_stations",
    "StationCursor",
]
