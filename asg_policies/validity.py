"""
Validity policies for ASG.

This module contains the policy dataclasses used by the validity package.
All policies are JSON-serializable.

UNIT CONVENTIONS
----------------
All geometric values are in BLOCKS. World heights are absolute Y levels.
"""

from dataclasses import dataclass, field, asdict
from typing import Dict, Any, List, Tuple


DEFAULT_MIN_FOOTPRINTS: Dict[str, Tuple[int, int, int]] = {
    "house": (5, 4, 5),
    "castle": (15, 10, 15),
    "tower": (4, 8, 4),
    "tree": (3, 5, 3),
    "statue": (3, 4, 3),
    "bridge": (3, 2, 8),
    "wall": (1, 3, 10),
    "pixel_art": (1, 5, 5),
}


@dataclass
class ValidationPolicy:
    """
    Policy for blueprint validation.
    
    Controls the semantic thresholds, hard safety limits and world bounds
    applied to generated blueprints.
    
    JSON Schema:
    {
        "dimension_tolerance": float (fraction, e.g. 0.2 = +-20%),
        "min_footprints": {build_type: [width, height, depth]},
        "default_min_footprint": [width, height, depth],
        "building_types": [str],
        "organic_types": [str],
        "strict_features": bool,
        "world_min_y": int,
        "world_max_y": int,
        "max_height": int,
        "max_width": int,
        "max_depth": int,
        "max_steps": int,
        "max_estimated_blocks": int (soft warning),
        "max_unique_blocks": int (soft warning),
        "bounds_slack": int,
        "fast_path_block_warning": int
    }
    
    Dimension mismatches beyond ``dimension_tolerance`` are warnings; falling
    below the build type's minimum footprint is an error.
    """
    dimension_tolerance: float = 0.2
    min_footprints: Dict[str, Tuple[int, int, int]] = field(
        default_factory=lambda: dict(DEFAULT_MIN_FOOTPRINTS)
    )
    default_min_footprint: Tuple[int, int, int] = (2, 2, 2)
    building_types: List[str] = field(default_factory=lambda: [
        "house", "castle", "cabin", "cottage", "barn", "shop", "treehouse",
    ])
    organic_types: List[str] = field(default_factory=lambda: [
        "tree", "statue", "character", "sculpture",
    ])
    strict_features: bool = False
    world_min_y: int = -64
    world_max_y: int = 320
    max_height: int = 256
    max_width: int = 100
    max_depth: int = 100
    max_steps: int = 1000
    max_estimated_blocks: int = 10000
    max_unique_blocks: int = 15
    bounds_slack: int = 10
    fast_path_block_warning: int = 50000
    
    def min_footprint_for(self, build_type: str) -> Tuple[int, int, int]:
        """Return the (width, height, depth) minimum for a build type."""
        footprint = self.min_footprints.get(build_type, self.default_min_footprint)
        return (int(footprint[0]), int(footprint[1]), int(footprint[2]))
    
    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["min_footprints"] = {k: list(v) for k, v in self.min_footprints.items()}
        d["default_min_footprint"] = list(self.default_min_footprint)
        return d
    
    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "ValidationPolicy":
        kwargs = {k: v for k, v in d.items() if k in ValidationPolicy.__dataclass_fields__}
        if "min_footprints" in kwargs:
            merged = dict(DEFAULT_MIN_FOOTPRINTS)
            merged.update({k: tuple(v) for k, v in kwargs["min_footprints"].items()})
            kwargs["min_footprints"] = merged
        if "default_min_footprint" in kwargs:
            kwargs["default_min_footprint"] = tuple(kwargs["default_min_footprint"])
        return ValidationPolicy(**kwargs)


__all__ = [
    "ValidationPolicy",
    "DEFAULT_MIN_FOOTPRINTS",
]
