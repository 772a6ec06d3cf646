"""
Build operations.

An Operation is one step of a blueprint: a kind drawn from the closed
OperationKind set, its geometry, the block(s) it places and, for bulk-region
kinds only, a mandatory stepwise fallback that expresses the same outcome
with always-available kinds.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional

from asg_policies.base import alias_fields, coerce_int
from .types import Vec3


class OperationKind(str, Enum):
    """Closed set of operation kinds."""
    # System
    SITE_PREP = "site_prep"
    # Stepwise volume/structure
    FILL = "fill"
    HOLLOW_BOX = "hollow_box"
    WALL = "wall"
    FLOOR = "floor"
    CYLINDER = "cylinder"
    SPHERE = "sphere"
    # Roofs
    ROOF_GABLE = "roof_gable"
    ROOF_HIP = "roof_hip"
    ROOF_FLAT = "roof_flat"
    # Fixtures
    DOOR = "door"
    WINDOW_STRIP = "window_strip"
    STAIRS = "stairs"
    SPIRAL_STAIRCASE = "spiral_staircase"
    SLAB = "slab"
    FENCE_CONNECT = "fence_connect"
    BALCONY = "balcony"
    # Detail
    SET = "set"
    LINE = "line"
    # Special full-structure
    PIXEL_ART = "pixel_art"
    THREE_D_LAYERS = "three_d_layers"
    # Bulk-region editing
    WE_FILL = "we_fill"
    WE_WALLS = "we_walls"
    WE_PYRAMID = "we_pyramid"
    WE_CYLINDER = "we_cylinder"
    WE_SPHERE = "we_sphere"
    # Cursor markers
    MOVE = "move"
    CURSOR_RESET = "cursor_reset"
    
    @property
    def is_bulk(self) -> bool:
        return self in BULK_KINDS
    
    @property
    def is_marker(self) -> bool:
        return self in MARKER_KINDS
    
    @classmethod
    def parse(cls, value: Any) -> Optional["OperationKind"]:
        """Return the kind named by ``value`` or None for unknown names."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


BULK_KINDS = frozenset({
    OperationKind.WE_FILL,
    OperationKind.WE_WALLS,
    OperationKind.WE_PYRAMID,
    OperationKind.WE_CYLINDER,
    OperationKind.WE_SPHERE,
})

MARKER_KINDS = frozenset({
    OperationKind.MOVE,
    OperationKind.CURSOR_RESET,
})

# Alternative field names accepted from model output
_FIELD_ALIASES = {
    "type": "op",
    "kind": "op",
    "position": "pos",
    "start": "from",
    "end": "to",
    "origin": "base",
}

_VEC_FIELDS = ("pos", "from", "to", "base", "center", "offset")
_INT_FIELDS = ("radius", "height", "width", "depth")


@dataclass
class Operation:
    """
    One blueprint step.
    
    Attributes
    ----------
    kind : OperationKind
        Operation kind
    block : str, optional
        Primary block identifier
    pos, from_pos, to_pos, base, center : Vec3, optional
        Geometry anchors; which ones are used depends on the kind
    radius, height, width, depth : int, optional
        Scalar geometry parameters
    offset : Vec3, optional
        Cursor displacement (``move`` only)
    params : dict
        Kind-specific extras (facing, peakHeight, spacing, layers, legend...)
    fallback : Operation, optional
        Stepwise equivalent; required for bulk kinds and forbidden otherwise
    """
    kind: OperationKind
    block: Optional[str] = None
    pos: Optional[Vec3] = None
    from_pos: Optional[Vec3] = None
    to_pos: Optional[Vec3] = None
    base: Optional[Vec3] = None
    center: Optional[Vec3] = None
    radius: Optional[int] = None
    height: Optional[int] = None
    width: Optional[int] = None
    depth: Optional[int] = None
    offset: Optional[Vec3] = None
    params: Dict[str, Any] = field(default_factory=dict)
    fallback: Optional["Operation"] = None
    
    def __post_init__(self):
        if self.kind.is_bulk:
            if self.fallback is None:
                raise ValueError(f"Bulk operation '{self.kind.value}' requires a stepwise fallback")
            if self.fallback.kind.is_bulk or self.fallback.kind.is_marker:
                raise ValueError(
                    f"Fallback for '{self.kind.value}' must be a stepwise kind, "
                    f"got '{self.fallback.kind.value}'"
                )
        elif self.fallback is not None:
            raise ValueError(f"Stepwise operation '{self.kind.value}' cannot carry a fallback")
    
    def anchors(self) -> List[Vec3]:
        """All coordinates referenced by this operation's own geometry."""
        return [v for v in (self.pos, self.from_pos, self.to_pos, self.base, self.center) if v is not None]
    
    def min_y(self) -> int:
        """Lowest Y referenced by the geometry (0 when there is none)."""
        ys = [v.y for v in self.anchors()]
        return min(ys) if ys else 0
    
    def max_y(self) -> int:
        """Highest Y the operation can reach, including height/radius extents."""
        anchors = self.anchors()
        if not anchors:
            return self.height or 0
        top = max(v.y for v in anchors)
        if self.height and (self.base is not None or self.pos is not None):
            top = max(top, min(v.y for v in anchors) + self.height - 1)
        if self.radius and self.center is not None:
            top = max(top, self.center.y + self.radius)
        peak = self.params.get("peakHeight")
        if peak:
            top = top + coerce_int(peak, 0)
        return top
    
    def blocks(self) -> List[str]:
        """Block identifiers this operation (and its fallback) may place."""
        found = []
        if self.block:
            found.append(self.block)
        legend = self.params.get("legend")
        if isinstance(legend, dict):
            found.extend(str(b) for b in legend.values() if b)
        if self.fallback is not None:
            found.extend(b for b in self.fallback.blocks() if b not in found)
        return found
    
    def translated(self, delta: Vec3) -> "Operation":
        """Return a copy moved by ``delta`` (markers are returned unchanged)."""
        if self.kind.is_marker:
            return self
        moved = {
            name: getattr(self, name) + delta
            for name in ("pos", "from_pos", "to_pos", "base", "center")
            if getattr(self, name) is not None
        }
        if self.fallback is not None:
            moved["fallback"] = self.fallback.translated(delta)
        return replace(self, **moved)
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON step format."""
        d: Dict[str, Any] = {"op": self.kind.value}
        if self.block is not None:
            d["block"] = self.block
        for key, value in (
            ("pos", self.pos),
            ("from", self.from_pos),
            ("to", self.to_pos),
            ("base", self.base),
            ("center", self.center),
            ("offset", self.offset),
        ):
            if value is not None:
                d[key] = value.to_dict()
        for key in _INT_FIELDS:
            value = getattr(self, key)
            if value is not None:
                d[key] = value
        d.update(self.params)
        if self.fallback is not None:
            d["fallback"] = self.fallback.to_dict()
        return d
    
    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Operation":
        """
        Create from a JSON step.
        
        Raises
        ------
        ValueError
            If the kind is unknown or a bulk kind has no fallback
        """
        data = alias_fields(d, _FIELD_ALIASES)
        kind = OperationKind.parse(data.get("op"))
        if kind is None:
            raise ValueError(f"Unknown operation kind: {data.get('op')!r}")
        
        vecs = {key: Vec3.from_any(data.get(key)) for key in _VEC_FIELDS}
        ints = {
            key: (coerce_int(data[key]) if data.get(key) is not None else None)
            for key in _INT_FIELDS
        }
        known = set(_VEC_FIELDS) | set(_INT_FIELDS) | {"op", "block", "fallback"}
        params = {k: v for k, v in data.items() if k not in known}
        
        fallback = data.get("fallback")
        block = data.get("block")
        return cls(
            kind=kind,
            block=str(block) if block is not None else None,
            pos=vecs["pos"],
            from_pos=vecs["from"],
            to_pos=vecs["to"],
            base=vecs["base"],
            center=vecs["center"],
            offset=vecs["offset"],
            params=params,
            fallback=cls.from_dict(fallback) if isinstance(fallback, dict) else None,
            **ints,
        )


def cursor_reset() -> Operation:
    """Marker returning the placement cursor to the build origin."""
    return Operation(kind=OperationKind.CURSOR_RESET)


def move(offset: Vec3) -> Operation:
    """Marker shifting the placement cursor by ``offset``."""
    return Operation(kind=OperationKind.MOVE, offset=offset)


__all__ = [
    "OperationKind",
    "Operation",
    "BULK_KINDS",
    "MARKER_KINDS",
    "cursor_reset",
    "move",
]
