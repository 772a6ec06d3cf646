"""
Semantic checks: does the blueprint match what was asked for?

Checks:
- Requested features are present (doors, windows, roof...) by operation or
  block evidence
- Dimensions are within tolerance of the requested dimensions, and not below
  the build type's minimum footprint
- Building-like types show wall evidence (required) and roof evidence
"""

from typing import Any, Dict, Iterable, List, Optional

from asg_policies.validity import ValidationPolicy
from generation.core.blueprint import Analysis, Blueprint, DesignPlan
from generation.core.operation import OperationKind


K = OperationKind

# feature -> (operation evidence, block-name substrings)
FEATURE_EVIDENCE: Dict[str, Any] = {
    "door": ({K.DOOR}, ("door",)),
    "window": ({K.WINDOW_STRIP}, ("glass", "pane")),
    "windows": ({K.WINDOW_STRIP}, ("glass", "pane")),
    "chimney": ({K.LINE, K.CYLINDER, K.WE_CYLINDER}, ("brick", "cobblestone")),
    "roof": ({K.ROOF_GABLE, K.ROOF_HIP, K.ROOF_FLAT, K.WE_PYRAMID}, ("stairs", "slab")),
    "foundation": ({K.FILL, K.WE_FILL, K.FLOOR}, ("cobblestone", "stone", "deepslate")),
    "floor": ({K.FLOOR, K.FILL, K.WE_FILL}, ("planks",)),
    "garden": (set(), ("grass_block", "flower", "rose_bush", "leaves")),
    "tower": ({K.CYLINDER, K.WE_CYLINDER}, ()),
    "stairs": ({K.STAIRS, K.SPIRAL_STAIRCASE}, ("stairs",)),
    "balcony": ({K.BALCONY}, ()),
    "fence": ({K.FENCE_CONNECT}, ("fence",)),
    "dome": ({K.SPHERE, K.WE_SPHERE}, ()),
}

WALL_EVIDENCE = {K.WALL, K.HOLLOW_BOX, K.WE_WALLS, K.THREE_D_LAYERS}
ROOF_EVIDENCE = {K.ROOF_GABLE, K.ROOF_HIP, K.ROOF_FLAT, K.WE_PYRAMID, K.THREE_D_LAYERS}
ORGANIC_EVIDENCE = {K.SPHERE, K.WE_SPHERE, K.CYLINDER, K.WE_CYLINDER, K.THREE_D_LAYERS, K.LINE}


def _kinds(blueprint: Blueprint) -> set:
    kinds = set()
    for step in blueprint.steps:
        kinds.add(step.kind)
        if step.fallback is not None:
            kinds.add(step.fallback.kind)
    return kinds


def _check(name: str, severity: str, issues: List[str], ok: str, details: Dict[str, Any]) -> Dict[str, Any]:
    details = dict(details)
    details["issues"] = issues
    return {
        "check": name,
        "passed": not issues,
        "severity": severity,
        "message": ok if not issues else "; ".join(issues),
        "details": details,
    }


def requested_features(analysis: Optional[Analysis], plan: Optional[DesignPlan]) -> List[str]:
    """Union of analysis and plan features, normalized, first occurrence order."""
    found: List[str] = []
    for source in ((analysis.features if analysis else []), (plan.features if plan else [])):
        for feature in source:
            key = str(feature).strip().lower()
            if key and key not in found:
                found.append(key)
    return found


def check_features(
    blueprint: Blueprint,
    features: Iterable[str],
    policy: ValidationPolicy,
) -> Dict[str, Any]:
    """
    Check that every requested, recognised feature has evidence.
    
    Parameters
    ----------
    blueprint : Blueprint
        Blueprint to check
    features : iterable of str
        Requested features (unrecognised names are ignored)
    policy : ValidationPolicy
        ``strict_features`` turns missing features into errors
        
    Returns
    -------
    dict
        Check result (passed, severity, message, details)
    """
    kinds = _kinds(blueprint)
    blocks = [b.lower() for b in blueprint.all_blocks()]
    missing = []
    checked = []
    for feature in features:
        evidence = FEATURE_EVIDENCE.get(feature)
        if evidence is None:
            continue
        checked.append(feature)
        ops, substrings = evidence
        has_op = bool(kinds & ops)
        has_block = any(s in b for b in blocks for s in substrings)
        if not has_op and not has_block:
            missing.append(f"Missing feature: {feature}")
    severity = "error" if policy.strict_features else "warning"
    return _check("features", severity, missing, "All requested features present", {"checked": checked})


def check_dimension_tolerance(
    blueprint: Blueprint,
    expected: Optional[Dict[str, int]],
    policy: ValidationPolicy,
) -> Dict[str, Any]:
    """Warn for each axis that differs from the request by more than the tolerance."""
    issues = []
    actual = blueprint.size.to_dict()
    for axis in ("width", "height", "depth"):
        want = (expected or {}).get(axis)
        got = actual[axis]
        if not want or not got:
            continue
        diff = abs(got - want) / want
        if diff > policy.dimension_tolerance:
            issues.append(f"{axis.capitalize()} mismatch: expected ~{want}, got {got}")
    return _check(
        "dimension_tolerance", "warning", issues, "Dimensions within tolerance",
        {"expected": expected, "actual": actual, "tolerance": policy.dimension_tolerance},
    )


def check_min_footprint(blueprint: Blueprint, build_type: str, policy: ValidationPolicy) -> Dict[str, Any]:
    """Error when any axis is below the build type's minimum footprint."""
    minimum = policy.min_footprint_for(build_type)
    size = blueprint.size.as_tuple()
    issues = []
    if any(s < m for s, m in zip(size, minimum)):
        issues.append(
            f"Build too small for type '{build_type}': minimum "
            f"{minimum[0]}x{minimum[1]}x{minimum[2]}, got {size[0]}x{size[1]}x{size[2]}"
        )
    return _check("min_footprint", "error", issues, "Footprint meets minimum", {"minimum": list(minimum)})


def check_structure(blueprint: Blueprint, build_type: str, policy: ValidationPolicy) -> List[Dict[str, Any]]:
    """
    Structural completeness checks.
    
    Building-like types need wall evidence (error when absent) and roof
    evidence (warning when absent). Organic types get a warning when they
    use only boxy operations.
    """
    kinds = _kinds(blueprint)
    results = []
    if build_type in policy.building_types:
        walls = [] if kinds & WALL_EVIDENCE else ["No walls detected - building incomplete"]
        roof = [] if kinds & ROOF_EVIDENCE else ["No roof detected"]
        results.append(_check("structure_walls", "error", walls, "Walls present", {"build_type": build_type}))
        results.append(_check("structure_roof", "warning", roof, "Roof present", {"build_type": build_type}))
    if build_type in policy.organic_types:
        organic = [] if kinds & ORGANIC_EVIDENCE else [
            f"Organic build type '{build_type}' uses only boxy operations"
        ]
        results.append(_check("organic_shape", "warning", organic, "Organic shapes present", {"build_type": build_type}))
    return results


__all__ = [
    "FEATURE_EVIDENCE",
    "requested_features",
    "check_features",
    "check_dimension_tolerance",
    "check_min_footprint",
    "check_structure",
]
