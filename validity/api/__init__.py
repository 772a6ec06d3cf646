"""
Public API for blueprint validation.

This module provides the main entry points for validating requests and
blueprints. All operations are parameterized with policy objects.
"""

from .validate import (
    validate_blueprint,
    semantic_score,
    ValidationResult,
    ValidationOutcome,
    ValidationPolicy,
)
from .quick import (
    check_request_feasibility,
    detect_impossible_build,
    QuickFailReason,
    QuickValidationResult,
)

__all__ = [
    "validate_blueprint",
    "semantic_score",
    "ValidationResult",
    "ValidationOutcome",
    "ValidationPolicy",
    "check_request_feasibility",
    "detect_impossible_build",
    "QuickFailReason",
    "QuickValidationResult",
]
