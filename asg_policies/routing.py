"""
Routing and placement policies for ASG.

RoutingPolicy controls pathway selection (catalog threshold, version gating,
safe defaults). PlacementPolicy controls station planning around the
placement reach radius.
"""

from dataclasses import dataclass, asdict
from typing import Optional, Dict, Any


@dataclass
class RoutingPolicy:
    """
    Policy for request routing.
    
    JSON Schema:
    {
        "catalog_threshold": float (0-1),
        "catalog_dir": str or null,
        "catalog_ttl_s": float (seconds),
        "builder_v2_enabled": bool,
        "landmark_routing": bool,
        "default_build_type": str
    }
    """
    catalog_threshold: float = 0.6
    catalog_dir: Optional[str] = None
    catalog_ttl_s: float = 60.0
    builder_v2_enabled: bool = False
    landmark_routing: bool = True
    default_build_type: str = "house"
    
    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
    
    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "RoutingPolicy":
        return RoutingPolicy(**{k: v for k, v in d.items() if k in RoutingPolicy.__dataclass_fields__})


@dataclass
class PlacementPolicy:
    """
    Policy for station (vantage point) planning.
    
    Candidate stations are generated at distance (reach - padding) from each
    uncovered block on the four cardinal directions, and at
    ``diagonal_factor`` * (reach - padding) on each axis for the four
    diagonals.
    
    JSON Schema:
    {
        "reach": float (blocks),
        "padding": float (blocks),
        "diagonal_factor": float
    }
    """
    reach: float = 4.5
    padding: float = 1.0
    diagonal_factor: float = 0.7
    
    @property
    def offset(self) -> float:
        """Candidate distance from the block being served."""
        return max(self.reach - self.padding, 0.0)
    
    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
    
    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "PlacementPolicy":
        return PlacementPolicy(**{k: v for k, v in d.items() if k in PlacementPolicy.__dataclass_fields__})


__all__ = [
    "RoutingPolicy",
    "PlacementPolicy",
]
