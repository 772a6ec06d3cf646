"""
Public API for blueprint validation.

This module provides the main entry point for validating generated
blueprints: schema conformance, requested features, dimension tolerance,
minimum footprint, structural completeness and safety limits, combined into
a single ValidationOutcome with a semantic score.
"""

from dataclasses import dataclass, field, asdict
from typing import Optional, Dict, Any, List, Union
import logging

from asg_policies import ValidationPolicy
from generation.core.blueprint import Analysis, Blueprint, DesignPlan
from generation.ops.sanitize import sanitize_blueprint
from ..checks import (
    check_required_fields,
    check_operation_params,
    check_placeholders,
    check_coordinates,
    requested_features,
    check_features,
    check_dimension_tolerance,
    check_min_footprint,
    check_structure,
    check_limits,
)

logger = logging.getLogger(__name__)


ERROR_PENALTY = 0.2
WARNING_PENALTY = 0.05


def semantic_score(error_count: int, warning_count: int) -> float:
    """
    Score a validation outcome.
    
    score = clamp(1 - 0.2 * errors - 0.05 * warnings, 0, 1)
    """
    score = 1.0 - ERROR_PENALTY * error_count - WARNING_PENALTY * warning_count
    return max(0.0, min(1.0, score))


@dataclass
class ValidationResult:
    """Result of a validation check."""
    check_name: str
    passed: bool
    severity: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    
    @property
    def issues(self) -> List[str]:
        return list(self.details.get("issues") or ([] if self.passed else [self.message]))
    
    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
    
    @classmethod
    def from_check(cls, check: Dict[str, Any]) -> "ValidationResult":
        return cls(
            check_name=check["check"],
            passed=check["passed"],
            severity=check["severity"],
            message=check["message"],
            details=check.get("details", {}),
        )


@dataclass
class ValidationOutcome:
    """
    Complete validation outcome.
    
    ``errors`` and ``warnings`` keep check order. ``blueprint`` holds the
    sanitized Blueprint when the raw input passed schema checks.
    """
    valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    score: float = 1.0
    checks: List[ValidationResult] = field(default_factory=list)
    blueprint: Optional[Blueprint] = None
    
    def penalty_breakdown(self) -> Dict[str, Any]:
        """Per-check penalty contributions to the score."""
        breakdown = {}
        for check in self.checks:
            if check.passed:
                continue
            weight = ERROR_PENALTY if check.severity == "error" else WARNING_PENALTY
            breakdown[check.check_name] = {
                "severity": check.severity,
                "count": len(check.issues),
                "penalty": round(weight * len(check.issues), 4),
            }
        return breakdown
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "errors": self.errors,
            "warnings": self.warnings,
            "score": self.score,
            "penalties": self.penalty_breakdown(),
            "checks": [c.to_dict() for c in self.checks],
        }


def _collect(outcome_checks: List[ValidationResult], errors: List[str], warnings: List[str],
             check: Dict[str, Any]) -> None:
    result = ValidationResult.from_check(check)
    outcome_checks.append(result)
    if result.passed:
        return
    if result.severity == "error":
        errors.extend(result.issues)
    else:
        warnings.extend(result.issues)


def _finish(checks: List[ValidationResult], errors: List[str], warnings: List[str],
            blueprint: Optional[Blueprint]) -> ValidationOutcome:
    return ValidationOutcome(
        valid=not errors,
        errors=errors,
        warnings=warnings,
        score=semantic_score(len(errors), len(warnings)),
        checks=checks,
        blueprint=blueprint,
    )


def validate_blueprint(
    blueprint: Union[Blueprint, Dict[str, Any]],
    analysis: Optional[Analysis] = None,
    plan: Optional[DesignPlan] = None,
    policy: Optional[ValidationPolicy] = None,
    bulk_available: bool = True,
) -> ValidationOutcome:
    """
    Validate a blueprint against schema, intent and safety limits.
    
    Parameters
    ----------
    blueprint : Blueprint or dict
        Blueprint value, or raw blueprint dictionary from model output
    analysis : Analysis, optional
        Request analysis (build type, requested dimensions and features)
    plan : DesignPlan, optional
        Design plan (requested dimensions and features)
    policy : ValidationPolicy, optional
        Thresholds and limits
    bulk_available : bool
        Passed to the sanitizer for raw input
        
    Returns
    -------
    ValidationOutcome
        Outcome with ordered errors/warnings and the semantic score
    """
    if policy is None:
        policy = ValidationPolicy()
    
    raw = blueprint.to_dict() if isinstance(blueprint, Blueprint) else blueprint
    sanitized, sanitize_report = sanitize_blueprint(raw, bulk_available=bulk_available)
    
    checks: List[ValidationResult] = []
    errors: List[str] = []
    warnings: List[str] = []
    
    # Required fields fail fast: nothing else is meaningful without them
    _collect(checks, errors, warnings, check_required_fields(sanitized))
    if errors:
        logger.info(f"Blueprint failed required-field checks ({len(errors)} error(s))")
        return _finish(checks, errors, warnings, None)
    
    _collect(checks, errors, warnings, check_operation_params(sanitized))
    _collect(checks, errors, warnings, check_placeholders(sanitized))
    _collect(checks, errors, warnings, check_coordinates(sanitized, policy))
    if errors:
        return _finish(checks, errors, warnings, None)
    
    try:
        value = Blueprint.from_dict(sanitized)
    except ValueError as e:
        errors.append(f"Blueprint could not be built: {e}")
        return _finish(checks, errors, warnings, None)
    
    build_type = analysis.build_type if analysis else value.build_type
    expected = None
    if plan is not None and plan.dimensions.volume:
        expected = plan.dimensions.to_dict()
    elif analysis is not None and analysis.dimensions is not None:
        expected = analysis.dimensions.to_dict()
    
    _collect(checks, errors, warnings, check_features(value, requested_features(analysis, plan), policy))
    _collect(checks, errors, warnings, check_dimension_tolerance(value, expected, policy))
    _collect(checks, errors, warnings, check_min_footprint(value, build_type, policy))
    for check in check_structure(value, build_type, policy):
        _collect(checks, errors, warnings, check)
    for check in check_limits(value, policy):
        _collect(checks, errors, warnings, check)
    
    outcome = _finish(checks, errors, warnings, value)
    outcome_status = "valid" if outcome.valid else "invalid"
    logger.info(
        f"Blueprint {outcome_status}: {len(errors)} error(s), {len(warnings)} warning(s), "
        f"score={outcome.score:.2f} (sanitizer: {len(sanitize_report.warnings)} change(s))"
    )
    return outcome


__all__ = [
    "semantic_score",
    "ValidationResult",
    "ValidationOutcome",
    "validate_blueprint",
]
