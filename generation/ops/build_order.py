"""
Build-order optimization.

Reorders blueprint steps into a causally valid sequence: site preparation,
bulk fills and foundations, floors, walls, towers and domes, roofs, fixtures,
single-block detail, then special full-structure kinds. Within a priority the
lower operation goes first; remaining ties keep their original order.
"""

from typing import Dict, List, Sequence, Tuple
import logging

from asg_policies.base import OperationReport
from generation.core.operation import Operation, OperationKind
from generation.core.blueprint import Blueprint

logger = logging.getLogger(__name__)


K = OperationKind

BUILD_PRIORITY: Dict[OperationKind, int] = {
    K.SITE_PREP: 0,
    K.FILL: 1,
    K.WE_FILL: 1,
    K.FLOOR: 2,
    K.WALL: 3,
    K.HOLLOW_BOX: 3,
    K.WE_WALLS: 3,
    K.CYLINDER: 4,
    K.SPHERE: 4,
    K.WE_CYLINDER: 4,
    K.WE_SPHERE: 4,
    K.ROOF_GABLE: 5,
    K.ROOF_HIP: 5,
    K.ROOF_FLAT: 5,
    K.WE_PYRAMID: 5,
    K.DOOR: 6,
    K.WINDOW_STRIP: 6,
    K.STAIRS: 6,
    K.SPIRAL_STAIRCASE: 6,
    K.SLAB: 6,
    K.FENCE_CONNECT: 6,
    K.BALCONY: 6,
    K.SET: 7,
    K.LINE: 7,
    K.PIXEL_ART: 8,
    K.THREE_D_LAYERS: 8,
}


def sort_key(op: Operation) -> Tuple[int, int]:
    """(priority, minY) key for one non-marker operation."""
    return (BUILD_PRIORITY[op.kind], op.min_y())


def order_steps(steps: Sequence[Operation]) -> List[Operation]:
    """
    Stable-sort steps by (priority, minY).
    
    Cursor markers (``move``, ``cursor_reset``) split the list into segments
    that are each sorted independently; markers keep their positions so that
    every segment stays in its own coordinate frame.
    
    Parameters
    ----------
    steps : sequence of Operation
        Steps in generation order
        
    Returns
    -------
    List[Operation]
        Steps in build order
    """
    ordered: List[Operation] = []
    segment: List[Operation] = []
    for step in steps:
        if step.kind.is_marker:
            ordered.extend(sorted(segment, key=sort_key))
            ordered.append(step)
            segment = []
        else:
            segment.append(step)
    ordered.extend(sorted(segment, key=sort_key))
    return ordered


def optimize_build_order(blueprint: Blueprint) -> Tuple[Blueprint, OperationReport]:
    """
    Return a new blueprint whose steps are in build order.
    
    The result is deterministic and applying it again changes nothing.
    """
    ordered = order_steps(blueprint.steps)
    moved = sum(1 for a, b in zip(blueprint.steps, ordered) if a is not b)
    report = OperationReport(
        operation="optimize_build_order",
        metrics={"steps": len(ordered), "moved": moved},
    )
    if moved:
        logger.debug(f"Build order moved {moved} of {len(ordered)} steps")
    return blueprint.with_steps(ordered), report


__all__ = [
    "BUILD_PRIORITY",
    "sort_key",
    "order_steps",
    "optimize_build_order",
]
