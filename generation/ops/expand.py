"""
Expansion of operations into target block positions.

Turns stepwise operations into integer block coordinates so that placement
can be planned per block. Bulk operations expand through their stepwise
fallback; cursor markers shift the frame of subsequent steps.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
import logging

import numpy as np

from asg_policies.base import coerce_int
from generation.core.operation import Operation, OperationKind
from generation.core.blueprint import Blueprint
from generation.core.types import Vec3, ORIGIN

logger = logging.getLogger(__name__)


@dataclass
class TargetBlock:
    """A block to place at a world-space position."""
    position: Vec3
    block: str
    step_index: int


_BOX_KINDS = (
    OperationKind.FILL,
    OperationKind.WALL,
    OperationKind.FLOOR,
    OperationKind.ROOF_FLAT,
    OperationKind.HOLLOW_BOX,
)


def _corners(op: Operation) -> Optional[Tuple[np.ndarray, np.ndarray]]:
    if op.from_pos is None or op.to_pos is None:
        return None
    a = np.array(op.from_pos.as_tuple())
    b = np.array(op.to_pos.as_tuple())
    return np.minimum(a, b), np.maximum(a, b)


def _box(lo: np.ndarray, hi: np.ndarray) -> np.ndarray:
    grid = np.mgrid[lo[0]:hi[0] + 1, lo[1]:hi[1] + 1, lo[2]:hi[2] + 1]
    return grid.reshape(3, -1).T


def _shell(lo: np.ndarray, hi: np.ndarray) -> np.ndarray:
    pts = _box(lo, hi)
    on_face = (pts == lo).any(axis=1) | (pts == hi).any(axis=1)
    return pts[on_face]


def _line(a: Vec3, b: Vec3) -> np.ndarray:
    start = np.array(a.as_tuple(), dtype=float)
    end = np.array(b.as_tuple(), dtype=float)
    n = int(np.abs(end - start).max()) + 1
    pts = np.rint(np.linspace(start, end, n)).astype(int)
    return pts


def _disk(radius: int, hollow: bool) -> np.ndarray:
    r = max(radius, 0)
    xs, zs = np.mgrid[-r:r + 1, -r:r + 1]
    d2 = xs ** 2 + zs ** 2
    mask = d2 <= (r + 0.5) ** 2
    if hollow and r > 0:
        mask &= d2 > (r - 0.5) ** 2
    return np.stack([xs[mask], zs[mask]], axis=1)


def _cylinder(base: Vec3, radius: int, height: int, hollow: bool) -> np.ndarray:
    disk = _disk(radius, hollow)
    levels = []
    for dy in range(max(height, 0)):
        level = np.zeros((len(disk), 3), dtype=int)
        level[:, 0] = base.x + disk[:, 0]
        level[:, 1] = base.y + dy
        level[:, 2] = base.z + disk[:, 1]
        levels.append(level)
    return np.concatenate(levels) if levels else np.empty((0, 3), dtype=int)


def _sphere(center: Vec3, radius: int, hollow: bool) -> np.ndarray:
    r = max(radius, 0)
    grid = np.mgrid[-r:r + 1, -r:r + 1, -r:r + 1].reshape(3, -1).T
    d2 = (grid ** 2).sum(axis=1)
    mask = d2 <= (r + 0.5) ** 2
    if hollow and r > 0:
        mask &= d2 > (r - 0.5) ** 2
    return grid[mask] + np.array(center.as_tuple())


def _gable(lo: np.ndarray, hi: np.ndarray, peak: int) -> np.ndarray:
    rows = []
    z0, z1 = lo[2], hi[2]
    levels = peak if peak > 0 else (z1 - z0) // 2 + 1
    for i in range(levels):
        za, zb = z0 + i, z1 - i
        if za > zb:
            break
        y = lo[1] + i
        for z in {za, zb}:
            rows.append(_box(np.array([lo[0], y, z]), np.array([hi[0], y, z])))
    return np.concatenate(rows) if rows else np.empty((0, 3), dtype=int)


def _hip(lo: np.ndarray, hi: np.ndarray, peak: int) -> np.ndarray:
    rings = []
    levels = peak if peak > 0 else min(hi[0] - lo[0], hi[2] - lo[2]) // 2 + 1
    for i in range(levels):
        a = np.array([lo[0] + i, lo[1] + i, lo[2] + i])
        b = np.array([hi[0] - i, lo[1] + i, hi[2] - i])
        if (a > b).any():
            break
        ring = _box(a, b)
        inner = (ring[:, 0] > a[0]) & (ring[:, 0] < b[0]) & (ring[:, 2] > a[2]) & (ring[:, 2] < b[2])
        rings.append(ring[~inner])
    return np.concatenate(rings) if rings else np.empty((0, 3), dtype=int)


def _legend_grid(op: Operation, volumetric: bool) -> List[Tuple[Tuple[int, int, int], str]]:
    base = op.base or op.pos or ORIGIN
    legend: Dict[str, Any] = op.params.get("legend") or {}
    layers = op.params.get("layers") or []
    out = []
    if not volumetric:
        # Rows are listed top-down in a vertical X-Y plane
        rows = [str(r) for r in layers]
        for row_i, row in enumerate(rows):
            y = base.y + len(rows) - 1 - row_i
            for col, ch in enumerate(row):
                block = legend.get(ch)
                if block:
                    out.append(((base.x + col, y, base.z), str(block)))
        return out
    for dy, layer in enumerate(layers):
        for dz, row in enumerate(layer or []):
            for dx, ch in enumerate(str(row)):
                block = legend.get(ch)
                if block:
                    out.append(((base.x + dx, base.y + dy, base.z + dz), str(block)))
    return out


def expand_operation(op: Operation) -> List[Tuple[Tuple[int, int, int], str]]:
    """
    Expand one operation into relative (position, block) pairs.
    
    Parameters
    ----------
    op : Operation
        Operation to expand
        
    Returns
    -------
    list of ((x, y, z), block)
        Block placements in the operation's own frame; empty for site
        preparation, cursor markers and under-specified steps
    """
    kind = op.kind
    if kind.is_bulk:
        return expand_operation(op.fallback)
    if kind in (OperationKind.PIXEL_ART, OperationKind.THREE_D_LAYERS):
        return _legend_grid(op, volumetric=kind == OperationKind.THREE_D_LAYERS)
    if kind.is_marker or kind == OperationKind.SITE_PREP or not op.block:
        return []
    
    hollow = bool(op.params.get("hollow", False))
    peak = coerce_int(op.params.get("peakHeight"), 0)
    pts: Optional[np.ndarray] = None
    corners = _corners(op)
    
    if kind in (OperationKind.FILL, OperationKind.WALL) and corners:
        pts = _box(*corners)
    elif kind in (OperationKind.FLOOR, OperationKind.ROOF_FLAT) and corners:
        lo, hi = corners
        hi = hi.copy()
        hi[1] = lo[1]
        pts = _box(lo, hi)
    elif kind == OperationKind.HOLLOW_BOX and corners:
        pts = _shell(*corners)
    elif kind == OperationKind.ROOF_GABLE and corners:
        pts = _gable(corners[0], corners[1], peak)
    elif kind == OperationKind.ROOF_HIP and corners:
        pts = _hip(corners[0], corners[1], peak)
    elif kind in (OperationKind.LINE, OperationKind.FENCE_CONNECT) and corners:
        pts = _line(op.from_pos, op.to_pos)
    elif kind == OperationKind.WINDOW_STRIP and corners:
        spacing = max(coerce_int(op.params.get("spacing"), 2), 1)
        pts = _line(op.from_pos, op.to_pos)[::spacing]
    elif kind in (OperationKind.SET, OperationKind.STAIRS, OperationKind.SLAB) and op.pos:
        pts = np.array([op.pos.as_tuple()])
    elif kind == OperationKind.DOOR and op.pos:
        pts = np.array([op.pos.as_tuple(), op.pos.offset(dy=1).as_tuple()])
    elif kind == OperationKind.CYLINDER and (op.base or op.pos) and op.radius is not None:
        pts = _cylinder(op.base or op.pos, op.radius, op.height or 1, hollow)
    elif kind == OperationKind.SPHERE and (op.center or op.pos or op.base) and op.radius is not None:
        pts = _sphere(op.center or op.pos or op.base, op.radius, hollow)
    elif kind == OperationKind.SPIRAL_STAIRCASE and op.base and op.height:
        radius = op.radius if op.radius is not None else 2
        angles = np.arange(op.height) * (np.pi / 4)
        pts = np.stack([
            op.base.x + np.rint(radius * np.cos(angles)).astype(int),
            op.base.y + np.arange(op.height),
            op.base.z + np.rint(radius * np.sin(angles)).astype(int),
        ], axis=1)
    elif kind == OperationKind.BALCONY and op.base and op.width and op.depth:
        lo = np.array(op.base.as_tuple())
        pts = _box(lo, lo + np.array([op.width - 1, 0, op.depth - 1]))
    
    if pts is None:
        logger.debug(f"Operation '{kind.value}' is under-specified; nothing to expand")
        return []
    return [((int(p[0]), int(p[1]), int(p[2])), op.block) for p in pts]


def expand_blueprint(blueprint: Blueprint, origin: Vec3 = ORIGIN) -> List[TargetBlock]:
    """
    Expand a blueprint into world-space target blocks.
    
    Later steps overwrite the block of an earlier step at the same position;
    positions keep the order in which they were first placed.
    """
    cursor = origin
    targets: Dict[Tuple[int, int, int], TargetBlock] = {}
    for index, step in enumerate(blueprint.steps):
        if step.kind == OperationKind.CURSOR_RESET:
            cursor = origin
            continue
        if step.kind == OperationKind.MOVE:
            if step.offset is not None:
                cursor = cursor + step.offset
            continue
        for (x, y, z), block in expand_operation(step):
            world = Vec3(cursor.x + x, cursor.y + y, cursor.z + z)
            key = world.as_tuple()
            if key in targets:
                targets[key].block = block
                targets[key].step_index = index
            else:
                targets[key] = TargetBlock(position=world, block=block, step_index=index)
    return list(targets.values())


def _estimate_step(op: Operation) -> int:
    if op.kind.is_bulk:
        return _estimate_step(op.fallback)
    corners = _corners(op)
    if corners is not None and op.kind in _BOX_KINDS:
        lo, hi = corners
        w, h, d = (int(v) for v in hi - lo + 1)
        if op.kind in (OperationKind.FLOOR, OperationKind.ROOF_FLAT):
            return w * d
        if op.kind == OperationKind.HOLLOW_BOX:
            inner = max(w - 2, 0) * max(h - 2, 0) * max(d - 2, 0)
            return w * h * d - inner
        return w * h * d
    return len(expand_operation(op))


def estimate_block_count(blueprint: Blueprint) -> int:
    """
    Estimate the number of blocks a blueprint places (before deduplication).

    Box-shaped kinds are counted from their corners without expanding them,
    so oversized steps can be reported without allocating their volume.
    """
    return sum(_estimate_step(step) for step in blueprint.steps)


__all__ = [
    "TargetBlock",
    "expand_operation",
    "expand_blueprint",
    "estimate_block_count",
]
