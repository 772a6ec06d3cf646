"""
Schema checks for raw blueprints.

These checks run on the sanitized blueprint dictionary, before it is turned
into a Blueprint value, so that every structural problem can be reported to
the repair loop at once.
"""

from typing import Any, Dict, List, Optional
import re

from asg_policies.base import coerce_int, coerce_vec3
from asg_policies.validity import ValidationPolicy
from generation.ops.registry import missing_params
from generation.core.operation import OperationKind


_PLACEHOLDER = re.compile(r"^\$([A-Za-z0-9_]+)$")
_COORD_FIELDS = ("pos", "from", "to", "base", "center")


def _result(name: str, issues: List[str], ok_message: str, severity: str = "error",
            details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    details = dict(details or {})
    details["issues"] = issues
    return {
        "check": name,
        "passed": not issues,
        "severity": severity,
        "message": ok_message if not issues else f"{len(issues)} issue(s): " + "; ".join(issues[:3]),
        "details": details,
    }


def check_required_fields(raw: Dict[str, Any]) -> Dict[str, Any]:
    """
    Check the blueprint-level required fields.
    
    Parameters
    ----------
    raw : dict
        Sanitized blueprint dictionary
        
    Returns
    -------
    dict
        Check result with keys:
        - passed: bool
        - severity: "error"
        - message: str
        - details: dict with the list of issues
    """
    issues = []
    palette = raw.get("palette")
    if not palette:
        issues.append("Missing or empty palette")
    size = raw.get("size")
    if not isinstance(size, dict):
        issues.append("Missing size")
    else:
        for axis in ("width", "height", "depth"):
            if coerce_int(size.get(axis), 0) <= 0:
                issues.append(f"size.{axis} must be a positive integer")
    if not raw.get("steps"):
        issues.append("Missing or empty steps")
    return _result("required_fields", issues, "Required fields present")


def check_operation_params(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Check each step (and each bulk fallback) for its registry parameters."""
    issues = []
    for index, step in enumerate(raw.get("steps") or []):
        kind = OperationKind.parse(step.get("op"))
        if kind is None:
            issues.append(f"Step {index}: unknown operation '{step.get('op')}'")
            continue
        missing = missing_params(step)
        if missing:
            issues.append(f"Step {index} ({kind.value}): missing {', '.join(missing)}")
        if kind.is_bulk:
            fallback = step.get("fallback")
            if not isinstance(fallback, dict):
                issues.append(f"Step {index} ({kind.value}): missing required stepwise fallback")
                continue
            fb_kind = OperationKind.parse(fallback.get("op"))
            if fb_kind is None or fb_kind.is_bulk or fb_kind.is_marker:
                issues.append(f"Step {index} ({kind.value}): fallback must be a stepwise operation")
                continue
            fb_missing = missing_params(fallback)
            if fb_missing:
                issues.append(f"Step {index} fallback ({fb_kind.value}): missing {', '.join(fb_missing)}")
    return _result("operation_params", issues, "All operations have their required parameters")


def check_placeholders(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Report ``$role`` block references the palette does not define."""
    palette = raw.get("palette")
    roles = set(palette.keys()) if isinstance(palette, dict) else set()
    issues = []
    for index, step in enumerate(raw.get("steps") or []):
        for candidate in (step.get("block"), (step.get("fallback") or {}).get("block")):
            if not isinstance(candidate, str):
                continue
            match = _PLACEHOLDER.match(candidate)
            if match and match.group(1) not in roles:
                issues.append(f"Step {index}: unresolved placeholder '{candidate}'")
    return _result("placeholders", issues, "No unresolved placeholders")


def check_coordinates(raw: Dict[str, Any], policy: ValidationPolicy) -> Dict[str, Any]:
    """
    Check step coordinates against the declared size.
    
    Negative coordinates and coordinates beyond the size by more than
    ``policy.bounds_slack`` are errors.
    """
    size = raw.get("size") or {}
    limits = {
        "x": coerce_int(size.get("width"), 0),
        "y": coerce_int(size.get("height"), 0),
        "z": coerce_int(size.get("depth"), 0),
    }
    issues = []
    for index, step in enumerate(raw.get("steps") or []):
        kind = OperationKind.parse(step.get("op"))
        if kind is not None and kind.is_marker:
            continue
        for key in _COORD_FIELDS:
            coord = coerce_vec3(step.get(key))
            if coord is None:
                continue
            for value, (axis, bound) in zip(coord, limits.items()):
                if value < 0:
                    issues.append(f"Step {index}: {key}.{axis}={value} is negative")
                elif bound and value >= bound + policy.bounds_slack:
                    issues.append(f"Step {index}: {key}.{axis}={value} exceeds size {bound}")
    return _result("coordinates", issues, "Coordinates within bounds", details={"limits": limits})


__all__ = [
    "check_required_fields",
    "check_operation_params",
    "check_placeholders",
    "check_coordinates",
]
