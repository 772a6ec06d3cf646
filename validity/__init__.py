"""
Agentic Structure Generation - Validity Checking Library

This module provides validity checking for generated blueprints, organized
into two stages:

1. Fast-path checks: reject impossible requests and blueprints before any
   model call or placement work
   - Heights above or below the world
   - Zero or negative dimensions, missing blocks, empty plans

2. Full validation: check a sanitized blueprint against its request
   - Schema, operation parameters, placeholders and coordinates
   - Requested features, dimension tolerance and minimum footprint
   - Structural sanity (walls, roof, organic shapes) and size limits

Main Entry Points:
    - check_request_feasibility(): Screen a request before generation
    - detect_impossible_build(): Screen a blueprint before validation
    - validate_blueprint(): Full validation with a semantic score

Example:
    >>> from validity import validate_blueprint, detect_impossible_build
    >>>
    >>> quick = detect_impossible_build(raw_blueprint)
    >>> if quick.can_proceed():
    ...     outcome = validate_blueprint(raw_blueprint, analysis=analysis)
    ...     print(f"Valid: {outcome.valid}, score {outcome.score:.2f}")
"""

from .api import (
    validate_blueprint,
    semantic_score,
    ValidationResult,
    ValidationOutcome,
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
    "check_request_feasibility",
    "detect_impossible_build",
    "QuickFailReason",
    "QuickValidationResult",
]
