"""
Individual validity checks for blueprint validation.

Every check returns a dict with ``check``, ``passed``, ``severity``
("error" or "warning"), ``message`` and ``details`` (including the list of
individual ``issues``).
"""

from .schema import (
    check_required_fields,
    check_operation_params,
    check_placeholders,
    check_coordinates,
)
from .semantic import (
    FEATURE_EVIDENCE,
    requested_features,
    check_features,
    check_dimension_tolerance,
    check_min_footprint,
    check_structure,
)
from .limits import check_limits

__all__ = [
    # Schema
    "check_required_fields",
    "check_operation_params",
    "check_placeholders",
    "check_coordinates",
    # Semantic
    "FEATURE_EVIDENCE",
    "requested_features",
    "check_features",
    "check_dimension_tolerance",
    "check_min_footprint",
    "check_structure",
    # Limits
    "check_limits",
]
