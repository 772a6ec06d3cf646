"""
Safety limit checks.
"""

from typing import Any, Dict, List

from asg_policies.validity import ValidationPolicy
from generation.core.blueprint import Blueprint
from generation.ops.expand import estimate_block_count


def check_limits(blueprint: Blueprint, policy: ValidationPolicy) -> List[Dict[str, Any]]:
    """
    Check hard and soft size limits.
    
    Parameters
    ----------
    blueprint : Blueprint
        Blueprint to check
    policy : ValidationPolicy
        Limits to apply
        
    Returns
    -------
    list of dict
        One error-severity result (step count, height) and one
        warning-severity result (footprint, estimated blocks, palette size)
    """
    errors = []
    warnings = []
    size = blueprint.size
    
    if len(blueprint.steps) > policy.max_steps:
        errors.append(f"Too many steps: {len(blueprint.steps)} > {policy.max_steps}")
    if size.height > policy.max_height:
        errors.append(f"Height {size.height} exceeds maximum {policy.max_height}")
    
    if size.width > policy.max_width:
        warnings.append(f"Width {size.width} exceeds recommended {policy.max_width}")
    if size.depth > policy.max_depth:
        warnings.append(f"Depth {size.depth} exceeds recommended {policy.max_depth}")
    
    estimated = estimate_block_count(blueprint)
    if estimated > policy.max_estimated_blocks:
        warnings.append(f"Estimated {estimated} blocks exceeds {policy.max_estimated_blocks}")
    
    unique = len(set(blueprint.all_blocks()))
    if unique > policy.max_unique_blocks:
        warnings.append(f"Palette has {unique} unique blocks (recommended <= {policy.max_unique_blocks})")
    
    details = {"estimated_blocks": estimated, "unique_blocks": unique, "steps": len(blueprint.steps)}
    return [
        {
            "check": "hard_limits",
            "passed": not errors,
            "severity": "error",
            "message": "Within hard limits" if not errors else "; ".join(errors),
            "details": dict(details, issues=errors),
        },
        {
            "check": "soft_limits",
            "passed": not warnings,
            "severity": "warning",
            "message": "Within soft limits" if not warnings else "; ".join(warnings),
            "details": dict(details, issues=warnings),
        },
    ]


__all__ = ["check_limits"]
