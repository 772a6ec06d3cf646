"""
Base utilities for ASG policies.

This module provides shared coercion helpers and the OperationReport dataclass
used by policy-driven operations (sanitizing, ordering, station planning).
"""

from dataclasses import dataclass, field, asdict
from typing import Optional, Dict, Any, List, Tuple
import json


def coerce_int(value: Any, default: int = 0) -> int:
    """Coerce a value to int, with fallback to default."""
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        try:
            return int(float(value))
        except (TypeError, ValueError, OverflowError):
            return default


def coerce_float(value: Any, default: float = 0.0) -> float:
    """
    Coerce a value to float, with fallback to default.
    
    Parameters
    ----------
    value : Any
        Value to coerce
    default : float
        Default value if coercion fails
        
    Returns
    -------
    float
        Coerced float value
    """
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def coerce_vec3(value: Any) -> Optional[Tuple[int, int, int]]:
    """
    Coerce a value to an integer block coordinate.
    
    Accepts:
    - tuple/list of 3 numbers
    - object with x, y, z attributes
    - dict with x, y, z keys (missing axes default to 0)
    
    Parameters
    ----------
    value : Any
        Value to coerce
        
    Returns
    -------
    tuple of int or None
        Coerced (x, y, z), or None when the value is not coordinate-like
    """
    if value is None:
        return None
    
    if isinstance(value, (tuple, list)) and len(value) >= 3:
        try:
            return (int(round(float(value[0]))), int(round(float(value[1]))), int(round(float(value[2]))))
        except (TypeError, ValueError, OverflowError):
            return None
    
    if hasattr(value, 'x') and hasattr(value, 'y') and hasattr(value, 'z'):
        try:
            return (int(round(float(value.x))), int(round(float(value.y))), int(round(float(value.z))))
        except (TypeError, ValueError, OverflowError):
            return None
    
    if isinstance(value, dict) and any(k in value for k in ('x', 'y', 'z')):
        return (
            coerce_int(value.get('x'), 0),
            coerce_int(value.get('y'), 0),
            coerce_int(value.get('z'), 0),
        )
    
    return None


def alias_fields(d: Dict[str, Any], aliases: Dict[str, str]) -> Dict[str, Any]:
    """
    Apply field aliases to a dictionary.
    
    This allows alternative field names emitted by a model to be mapped to
    canonical names.
    
    Parameters
    ----------
    d : dict
        Input dictionary
    aliases : dict
        Mapping of alternative_name -> canonical_name
        
    Returns
    -------
    dict
        Dictionary with aliases applied
    """
    result = d.copy()
    for legacy_name, canonical_name in aliases.items():
        if legacy_name in result and canonical_name not in result:
            result[canonical_name] = result.pop(legacy_name)
    return result


@dataclass
class OperationReport:
    """
    Standard report structure for policy-driven operations.
    
    Every operation returns a report with requested vs effective policy,
    warnings, and operation-specific metrics.
    """
    operation: str = "unknown"
    success: bool = True
    requested_policy: Dict[str, Any] = field(default_factory=dict)
    effective_policy: Dict[str, Any] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    metrics: Dict[str, Any] = field(default_factory=dict)
    
    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
    
    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)
    
    def add_warning(self, message: str) -> None:
        """Add a warning message."""
        self.warnings.append(message)
    
    def add_error(self, message: str) -> None:
        """Add an error message and mark as failed."""
        self.errors.append(message)
        self.success = False
    
    def merge(self, other: "OperationReport") -> None:
        """Merge another report into this one."""
        self.warnings.extend(other.warnings)
        self.errors.extend(other.errors)
        if not other.success:
            self.success = False
        self.metrics.update(other.metrics)


__all__ = [
    "OperationReport",
    "coerce_int",
    "coerce_float",
    "coerce_vec3",
    "alias_fields",
]
