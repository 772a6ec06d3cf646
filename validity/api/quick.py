"""
Fast-path feasibility checks.

Detects impossible requests and blueprints early, before any model call or
placement work is spent on them.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Optional, Dict, Any, List, Union
import logging
import re

from asg_policies import ValidationPolicy
from asg_policies.base import coerce_int, coerce_vec3
from generation.core.blueprint import Blueprint, BuildRequest

logger = logging.getLogger(__name__)


class QuickFailReason(str, Enum):
    """Reason codes for fast-path rejection."""
    ZERO_DIMENSION = "ZERO_DIMENSION"
    NEGATIVE_DIMENSION = "NEGATIVE_DIMENSION"
    EXCEEDS_HEIGHT = "EXCEEDS_HEIGHT"
    EXCEEDS_STEPS = "EXCEEDS_STEPS"
    MISSING_BLOCK = "MISSING_BLOCK"
    NO_OPERATIONS = "NO_OPERATIONS"
    MALFORMED_STEP = "MALFORMED_STEP"
    BELOW_WORLD = "BELOW_WORLD"
    ABOVE_WORLD = "ABOVE_WORLD"


@dataclass
class QuickValidationResult:
    """Result of a fast-path check."""
    valid: bool
    reason: Optional[QuickFailReason] = None
    message: str = ""
    warnings: List[str] = field(default_factory=list)
    
    def can_proceed(self) -> bool:
        return self.valid
    
    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["reason"] = self.reason.value if self.reason else None
        return d


_Y_EQUALS = re.compile(r"\by\s*[=:]\s*(-?\d+)")
_HEIGHT_PATTERNS = (
    re.compile(r"(\d+)\s*(?:blocks?\s*)?(?:tall|high)\b"),
    re.compile(r"\bheight\s*(?:of\s*|is\s*|[=:]\s*)?(\d+)"),
    re.compile(r"(\d+)\s*(?:blocks?\s*)?(?:in\s*)?height\b"),
)
_SIZE = re.compile(r"(\d+)\s*(?:blocks?\s*)?(?:tall|high|wide|long)\b")
_LARGE_SCALE_TERMS = ("city", "entire", "massive", "huge", "giant", "world")
_LARGE_SIZE_WARNING = 500
_NO_BLOCK_KINDS = {"move", "cursor_reset", "site_prep", "pixel_art", "three_d_layers"}


def _fail(reason: QuickFailReason, message: str) -> QuickValidationResult:
    logger.info(f"Fast-path rejection {reason.value}: {message}")
    return QuickValidationResult(valid=False, reason=reason, message=message)


def check_request_feasibility(
    request: Union[BuildRequest, str],
    policy: Optional[ValidationPolicy] = None,
) -> QuickValidationResult:
    """
    Check a request before any generation call.
    
    Parameters
    ----------
    request : BuildRequest or str
        Request (or its text)
    policy : ValidationPolicy, optional
        World bounds
        
    Returns
    -------
    QuickValidationResult
        EXCEEDS_HEIGHT when the request targets a height above the world
        maximum; BELOW_WORLD / ABOVE_WORLD for an origin outside the world
    """
    if policy is None:
        policy = ValidationPolicy()
    if isinstance(request, str):
        request = BuildRequest(text=request)
    text = request.text.lower()
    warnings = []
    
    base_y = request.origin.y if request.origin is not None else 0
    for anchor in (request.origin, request.corner):
        if anchor is None:
            continue
        if anchor.y > policy.world_max_y:
            return _fail(QuickFailReason.ABOVE_WORLD,
                         f"Position y={anchor.y} is above world maximum ({policy.world_max_y})")
        if anchor.y < policy.world_min_y:
            return _fail(QuickFailReason.BELOW_WORLD,
                         f"Position y={anchor.y} is below world minimum ({policy.world_min_y})")
    
    for match in _Y_EQUALS.finditer(text):
        y = int(match.group(1))
        if y > policy.world_max_y:
            return _fail(QuickFailReason.EXCEEDS_HEIGHT,
                         f"Requested height y={y} exceeds world maximum ({policy.world_max_y})")
        if y < policy.world_min_y:
            return _fail(QuickFailReason.BELOW_WORLD,
                         f"Requested height y={y} is below world minimum ({policy.world_min_y})")
    
    for pattern in _HEIGHT_PATTERNS:
        for match in pattern.finditer(text):
            height = int(match.group(1))
            if base_y + height > policy.world_max_y:
                return _fail(QuickFailReason.EXCEEDS_HEIGHT,
                             f"Requested height {height} from y={base_y} exceeds world maximum ({policy.world_max_y})")
    
    for match in _SIZE.finditer(text):
        size = int(match.group(1))
        if size > _LARGE_SIZE_WARNING:
            warnings.append(f"Requested size {size} is very large and may take significant time")
            break
    
    for term in _LARGE_SCALE_TERMS:
        if term in text:
            warnings.append(f'Build request contains "{term}" - consider specifying exact dimensions')
            break
    
    return QuickValidationResult(valid=True, warnings=warnings)


def _step_top(step: Dict[str, Any]) -> int:
    coords = {key: coerce_vec3(step.get(key)) for key in ("pos", "from", "to", "base", "center")}
    ys = [c[1] for c in coords.values() if c is not None]
    if "y" in step:
        ys.append(coerce_int(step.get("y"), 0))
    low = min(ys) if ys else 0
    top = max(ys) if ys else 0
    height = coerce_int(step.get("height"), 0)
    if height > 0:
        top = max(top, low + height)
    radius = coerce_int(step.get("radius"), 0)
    if radius > 0 and coords["center"] is not None:
        top = max(top, coords["center"][1] + radius)
    return top


def detect_impossible_build(
    blueprint: Union[Blueprint, Dict[str, Any]],
    policy: Optional[ValidationPolicy] = None,
) -> QuickValidationResult:
    """
    Detect blueprints that cannot be built.
    
    Per operation, width is checked before height and height before depth:
    a negative value gives NEGATIVE_DIMENSION, zero gives ZERO_DIMENSION.
    
    Parameters
    ----------
    blueprint : Blueprint or dict
        Blueprint to check
    policy : ValidationPolicy, optional
        Step and height limits
        
    Returns
    -------
    QuickValidationResult
        First failure found, or a valid result with size warnings
    """
    if policy is None:
        policy = ValidationPolicy()
    raw = blueprint.to_dict() if isinstance(blueprint, Blueprint) else blueprint
    if not isinstance(raw, dict):
        return _fail(QuickFailReason.MALFORMED_STEP, f"Blueprint must be an object, got {type(raw).__name__}")
    steps = raw.get("steps") or []
    if not isinstance(steps, list):
        return _fail(QuickFailReason.MALFORMED_STEP, f"steps must be a list, got {type(steps).__name__}")

    if not steps:
        return _fail(QuickFailReason.NO_OPERATIONS, "Blueprint has no operations")
    if len(steps) > policy.max_steps:
        return _fail(QuickFailReason.EXCEEDS_STEPS, f"{len(steps)} operations exceed limit {policy.max_steps}")
    
    warnings = []
    estimated = 0
    max_y = 0
    for index, step in enumerate(steps):
        if not isinstance(step, dict):
            return _fail(QuickFailReason.MALFORMED_STEP, f"Step {index} is not an object: {step!r}")
        for axis in ("width", "height", "depth"):
            if step.get(axis) is None:
                continue
            value = coerce_int(step.get(axis), 0)
            if value < 0:
                return _fail(QuickFailReason.NEGATIVE_DIMENSION, f"Step {index}: {axis}={value}")
            if value == 0:
                return _fail(QuickFailReason.ZERO_DIMENSION, f"Step {index}: {axis}=0")
        
        op = str(step.get("op") or "")
        if op not in _NO_BLOCK_KINDS and not step.get("block"):
            return _fail(QuickFailReason.MISSING_BLOCK, f"Step {index} ({op or 'unknown'}) has no block")
        
        max_y = max(max_y, _step_top(step))
        estimated += (
            max(coerce_int(step.get("width"), 1), 1)
            * max(coerce_int(step.get("height"), 1), 1)
            * max(coerce_int(step.get("depth"), 1), 1)
        )
    
    if max_y > policy.max_height:
        return _fail(QuickFailReason.EXCEEDS_HEIGHT, f"Top of build y={max_y} exceeds limit {policy.max_height}")
    
    if estimated > policy.fast_path_block_warning:
        warnings.append(f"Estimated {estimated:,} blocks - large build")
    
    return QuickValidationResult(valid=True, warnings=warnings)


__all__ = [
    "QuickFailReason",
    "QuickValidationResult",
    "check_request_feasibility",
    "detect_impossible_build",
]
