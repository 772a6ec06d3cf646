"""
Primitive value types for block-space geometry.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from asg_policies.base import coerce_vec3, coerce_int


@dataclass(frozen=True)
class Vec3:
    """Integer block coordinate (x, y, z). Y is up."""
    x: int
    y: int
    z: int
    
    def as_tuple(self) -> Tuple[int, int, int]:
        return (self.x, self.y, self.z)
    
    def offset(self, dx: int = 0, dy: int = 0, dz: int = 0) -> "Vec3":
        return Vec3(self.x + dx, self.y + dy, self.z + dz)
    
    def __add__(self, other: "Vec3") -> "Vec3":
        return Vec3(self.x + other.x, self.y + other.y, self.z + other.z)
    
    def is_zero(self) -> bool:
        return self.x == 0 and self.y == 0 and self.z == 0
    
    def to_dict(self) -> Dict[str, int]:
        """Convert to dictionary for serialization."""
        return {"x": self.x, "y": self.y, "z": self.z}
    
    @classmethod
    def from_any(cls, value: Any) -> Optional["Vec3"]:
        """Create from a dict, sequence or x/y/z object; None if not coordinate-like."""
        if isinstance(value, Vec3):
            return value
        coords = coerce_vec3(value)
        if coords is None:
            return None
        return cls(*coords)


ORIGIN = Vec3(0, 0, 0)


@dataclass
class Dimensions:
    """Bounding size of a build in blocks."""
    width: int
    height: int
    depth: int
    
    @property
    def volume(self) -> int:
        return max(self.width, 0) * max(self.height, 0) * max(self.depth, 0)
    
    def as_tuple(self) -> Tuple[int, int, int]:
        return (self.width, self.height, self.depth)
    
    def to_dict(self) -> Dict[str, int]:
        return {"width": self.width, "height": self.height, "depth": self.depth}
    
    @classmethod
    def from_dict(cls, d: Optional[Dict[str, Any]]) -> "Dimensions":
        d = d or {}
        return cls(
            width=coerce_int(d.get("width"), 0),
            height=coerce_int(d.get("height"), 0),
            depth=coerce_int(d.get("depth"), 0),
        )


__all__ = ["Vec3", "ORIGIN", "Dimensions"]
