"""
Station coverage optimization.

Partitions a set of target block positions into vantage points ("stations")
from which every assigned block lies within the placement reach radius. The
planner is greedy: each round it evaluates candidate positions around every
uncovered block and keeps the one that covers the most uncovered blocks.

The planner is a pure function of its inputs; it never mutates the given
positions and returns a new CoverageAssignment.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union
import logging
import math

import numpy as np
from scipy.spatial import cKDTree

from asg_policies.routing import PlacementPolicy
from generation.core.types import Vec3

logger = logging.getLogger(__name__)


PositionLike = Union[Vec3, Tuple[int, int, int], Sequence[int]]


@dataclass
class Station:
    """A vantage position and the target-block indices it serves."""
    position: Vec3
    block_indices: Tuple[int, ...]
    reach: float
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "position": self.position.to_dict(),
            "block_indices": list(self.block_indices),
            "reach": self.reach,
        }


@dataclass
class CoverageAssignment:
    """Ordered stations whose index sets partition the target blocks."""
    stations: Tuple[Station, ...]
    total_blocks: int
    metadata: Dict[str, Any] = field(default_factory=dict)
    
    def __len__(self) -> int:
        return len(self.stations)
    
    def assigned_indices(self) -> List[int]:
        """All assigned indices in station order."""
        return [i for s in self.stations for i in s.block_indices]
    
    def is_partition(self) -> bool:
        """True when every target index is assigned to exactly one station."""
        indices = self.assigned_indices()
        return len(indices) == self.total_blocks and set(indices) == set(range(self.total_blocks))
    
    def stats(self) -> Dict[str, Any]:
        counts = [len(s.block_indices) for s in self.stations]
        return {
            "station_count": len(self.stations),
            "total_blocks": self.total_blocks,
            "avg_blocks_per_station": (sum(counts) / len(counts)) if counts else 0.0,
            "max_blocks_per_station": max(counts) if counts else 0,
            "min_blocks_per_station": min(counts) if counts else 0,
        }
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "stations": [s.to_dict() for s in self.stations],
            "total_blocks": self.total_blocks,
            "stats": self.stats(),
            "metadata": self.metadata,
        }


def _as_array(positions: Sequence[PositionLike]) -> np.ndarray:
    rows = []
    for p in positions:
        if isinstance(p, Vec3):
            rows.append(p.as_tuple())
        else:
            rows.append((int(p[0]), int(p[1]), int(p[2])))
    return np.array(rows, dtype=int).reshape(-1, 3)


def candidate_offsets(policy: PlacementPolicy) -> np.ndarray:
    """
    The eight (dx, dz) candidate offsets, cardinals first then diagonals.
    
    Offsets are real-valued; candidates are floored after being added to the
    block position.
    """
    d = policy.offset
    g = d * policy.diagonal_factor
    return np.array([
        (d, 0.0), (-d, 0.0), (0.0, d), (0.0, -d),
        (g, g), (g, -g), (-g, g), (-g, -g),
    ])


def _candidates_for(blocks: np.ndarray, offsets: np.ndarray) -> np.ndarray:
    """Floored candidate stations for each block, in block-then-offset order."""
    n = len(blocks)
    cand = np.empty((n * len(offsets), 3), dtype=int)
    base = np.repeat(blocks, len(offsets), axis=0).astype(float)
    tiled = np.tile(offsets, (n, 1))
    cand[:, 0] = np.floor(base[:, 0] + tiled[:, 0]).astype(int)
    cand[:, 1] = blocks.repeat(len(offsets), axis=0)[:, 1]
    cand[:, 2] = np.floor(base[:, 2] + tiled[:, 1]).astype(int)
    return cand


def plan_stations(
    positions: Sequence[PositionLike],
    policy: Optional[PlacementPolicy] = None,
) -> CoverageAssignment:
    """
    Greedily partition target blocks into stations.
    
    Parameters
    ----------
    positions : sequence of Vec3 or (x, y, z)
        World-space target block positions; index i of the result refers to
        positions[i]
    policy : PlacementPolicy, optional
        Reach radius, padding and diagonal factor
        
    Returns
    -------
    CoverageAssignment
        Stations in planning order; their index sets partition
        range(len(positions))
        
    Notes
    -----
    Each round:
    
    1. Every uncovered block contributes up to 8 floored candidates at
       distance (reach - padding) on the cardinals and diagonals, at the
       block's Y. Candidates on a target block, or on the cell directly
       beneath one, are discarded. All target blocks are still pending at
       planning time, so the check runs against the full target set.
    2. Each surviving candidate scores the number of uncovered blocks within
       Euclidean distance ``reach``; the first candidate with the highest
       score wins.
    3. With no surviving candidate, a station one unit from the first
       uncovered block serves that block alone.
    4. Covered indices leave the uncovered set immediately.
    """
    if policy is None:
        policy = PlacementPolicy()
    
    blocks = _as_array(positions)
    total = len(blocks)
    if total == 0:
        return CoverageAssignment(stations=(), total_blocks=0)
    
    occupied = {tuple(p) for p in blocks.tolist()}
    blocked = occupied | {(x, y - 1, z) for x, y, z in occupied}
    offsets = candidate_offsets(policy)
    
    uncovered = np.arange(total)
    stations: List[Station] = []
    fallbacks = 0
    
    while len(uncovered):
        pending = blocks[uncovered]
        raw = _candidates_for(pending, offsets)
        
        keep = np.array([tuple(c) not in blocked for c in raw.tolist()], dtype=bool)
        candidates = raw[keep]
        
        if len(candidates):
            # Unique candidates, first occurrence order preserved
            _, first = np.unique(candidates, axis=0, return_index=True)
            candidates = candidates[np.sort(first)]
            
            tree = cKDTree(pending)
            coverage = tree.query_ball_point(candidates, r=policy.reach, return_length=True)
            best = int(np.argmax(coverage))
            position = candidates[best]
            local = tree.query_ball_point(position, r=policy.reach)
            covered = np.sort(uncovered[np.asarray(local, dtype=int)])
        else:
            fallbacks += 1
            first_block = pending[0]
            position = np.array([first_block[0], first_block[1], first_block[2] - 1])
            covered = uncovered[:1]
        
        if len(covered) == 0:
            # Unreachable by construction; guard against an infinite loop
            covered = uncovered[:1]
        
        stations.append(Station(
            position=Vec3(int(position[0]), int(position[1]), int(position[2])),
            block_indices=tuple(int(i) for i in covered),
            reach=policy.reach,
        ))
        uncovered = np.setdiff1d(uncovered, covered, assume_unique=True)
    
    assignment = CoverageAssignment(
        stations=tuple(stations),
        total_blocks=total,
        metadata={"fallback_stations": fallbacks, "policy": policy.to_dict()},
    )
    logger.info(
        f"Planned {len(stations)} station(s) for {total} block(s) "
        f"(reach={policy.reach}, fallbacks={fallbacks})"
    )
    return assignment


def station_distance(station: Station, position: PositionLike) -> float:
    p = position.as_tuple() if isinstance(position, Vec3) else tuple(position)
    s = station.position
    return math.sqrt((s.x - p[0]) ** 2 + (s.y - p[1]) ** 2 + (s.z - p[2]) ** 2)


class StationCursor:
    """
    Execution-time cursor over a CoverageAssignment.
    
    Owned by the single in-progress build; not shared between builds.
    """
    
    def __init__(self, assignment: CoverageAssignment):
        self.assignment = assignment
        self._index = -1
    
    def current(self) -> Optional[Station]:
        """Station being worked, or None before the first advance / after the last."""
        if 0 <= self._index < len(self.assignment.stations):
            return self.assignment.stations[self._index]
        return None
    
    def advance(self) -> Optional[Station]:
        """Move to the next station and return it (None when exhausted)."""
        if self._index < len(self.assignment.stations):
            self._index += 1
        return self.current()
    
    def reset(self) -> None:
        self._index = -1
    
    @property
    def completed(self) -> int:
        return max(min(self._index, len(self.assignment.stations)), 0)
    
    def stats(self) -> Dict[str, Any]:
        stats = self.assignment.stats()
        stats["current_index"] = self._index
        return stats


__all__ = [
    "Station",
    "CoverageAssignment",
    "candidate_offsets",
    "plan_stations",
    "station_distance",
    "StationCursor",
]
