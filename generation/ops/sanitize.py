"""
Blueprint sanitizing.

Normalizes raw model output before schema validation: operation-name aliases,
placeholder resolution, coordinate clamping and synthesis of missing bulk
fallbacks. Also provides the optional merge of adjacent single-block ``set``
steps into ``fill`` steps.
"""

from collections import deque
from copy import deepcopy
from typing import Any, Dict, List, Optional, Tuple
import logging

from asg_policies.base import OperationReport, alias_fields, coerce_int
from generation.core.operation import Operation, OperationKind
from generation.core.blueprint import Blueprint
from generation.core.types import Vec3
from .registry import OPERATION_REGISTRY

logger = logging.getLogger(__name__)


# Names models commonly emit for kinds in the closed set
OP_ALIASES: Dict[str, str] = {
    "walls": "we_walls",
    "pyramid": "we_pyramid",
    "we_cyl": "we_cylinder",
    "smart_wall": "wall",
    "smart_floor": "floor",
    "smart_roof": "roof_gable",
    "box": "fill",
    "outline": "hollow_box",
    "window": "window_strip",
    "fence": "fence_connect",
    "staircase": "spiral_staircase",
    "roof": "roof_gable",
    "pitched_roof": "roof_gable",
    "clear_area": "site_prep",
    "column": "line",
}

# Applied only when the bulk-region capability is available
BULK_OP_ALIASES: Dict[str, str] = {
    "cylinder": "we_cylinder",
}

_STEP_ALIASES = {
    "type": "op",
    "kind": "op",
    "position": "pos",
    "start": "from",
    "end": "to",
}

_COORD_FIELDS = ("pos", "from", "to", "base", "center")


def normalize_op_name(name: Any, bulk_available: bool = False) -> Optional[str]:
    """Map an emitted operation name onto the closed set, or None if unknown."""
    if not isinstance(name, str):
        return None
    key = name.strip().lower()
    key = OP_ALIASES.get(key, key)
    if bulk_available:
        key = BULK_OP_ALIASES.get(key, key)
    return key if OperationKind.parse(key) is not None else None


def _resolve_placeholder(value: Any, roles: Dict[str, str]) -> Any:
    if isinstance(value, str) and value.startswith("$"):
        return roles.get(value[1:], value)
    return value


def _clamp_coords(step: Dict[str, Any]) -> bool:
    """Raise negative axes to 0 in object-form and list-form coordinates."""
    clamped = False
    for key in _COORD_FIELDS:
        coord = step.get(key)
        if isinstance(coord, dict):
            for axis in ("x", "y", "z"):
                if coerce_int(coord.get(axis), 0) < 0:
                    coord[axis] = 0
                    clamped = True
        elif isinstance(coord, (list, tuple)):
            coord = list(coord)
            for i in range(min(len(coord), 3)):
                if coerce_int(coord[i], 0) < 0:
                    coord[i] = 0
                    clamped = True
            step[key] = coord
    return clamped


def synthesize_fallback(step: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Build the stepwise equivalent of a bulk step from the registry default.
    
    Parameters
    ----------
    step : dict
        Bulk step (``op`` already normalized)
        
    Returns
    -------
    dict or None
        Fallback step, or None when the step is not a bulk kind
    """
    kind = OperationKind.parse(step.get("op"))
    if kind is None or not kind.is_bulk:
        return None
    target = OPERATION_REGISTRY[kind].fallback_kind
    fallback = {k: deepcopy(v) for k, v in step.items() if k != "fallback"}
    fallback["op"] = target.value
    
    if kind == OperationKind.WE_PYRAMID:
        base = Vec3.from_any(step.get("base") or step.get("pos")) or Vec3(0, 0, 0)
        height = max(coerce_int(step.get("height"), 1), 1)
        half = height - 1
        fallback = {
            "op": target.value,
            "block": step.get("block"),
            "from": {"x": max(base.x - half, 0), "y": max(base.y, 0), "z": max(base.z - half, 0)},
            "to": {"x": base.x + half, "y": max(base.y, 0), "z": base.z + half},
            "peakHeight": height,
        }
    return fallback


def sanitize_blueprint(
    raw: Dict[str, Any],
    bulk_available: bool = True,
) -> Tuple[Dict[str, Any], OperationReport]:
    """
    Normalize a raw blueprint dictionary.
    
    Parameters
    ----------
    raw : dict
        Blueprint as parsed from model output (not modified)
    bulk_available : bool
        When False, bulk steps are replaced by their stepwise fallback
        
    Returns
    -------
    sanitized : dict
        New blueprint dictionary
    report : OperationReport
        Warnings for every change made
    """
    report = OperationReport(operation="sanitize_blueprint")
    data = deepcopy(raw) if isinstance(raw, dict) else {}
    
    palette = data.get("palette")
    roles: Dict[str, str] = {}
    if isinstance(palette, dict):
        roles = {str(k): str(v) for k, v in palette.items() if v}
    elif isinstance(palette, str):
        data["palette"] = [palette]
    elif palette is not None and not isinstance(palette, list):
        report.add_warning(f"palette must be a list or object, got {type(palette).__name__}; dropped")
        del data["palette"]

    steps_in = data.get("steps") or []
    if not isinstance(steps_in, list):
        report.add_warning(f"steps must be a list, got {type(steps_in).__name__}; dropped")
        steps_in = []

    steps_out: List[Dict[str, Any]] = []
    renamed = dropped = clamped = synthesized = 0

    for index, step in enumerate(steps_in):
        if not isinstance(step, dict):
            report.add_warning(f"Step {index}: not an object, dropped")
            dropped += 1
            continue
        step = alias_fields(step, _STEP_ALIASES)
        name = normalize_op_name(step.get("op"), bulk_available)
        if name is None:
            report.add_warning(f"Step {index}: unknown operation '{step.get('op')}', dropped")
            dropped += 1
            continue
        if name != step.get("op"):
            renamed += 1
            step["op"] = name
        
        step["block"] = _resolve_placeholder(step.get("block"), roles)
        if step["block"] is None:
            del step["block"]
        if _clamp_coords(step):
            clamped += 1
        
        kind = OperationKind(name)
        fallback = step.get("fallback")
        if kind.is_bulk:
            fb_name = normalize_op_name(fallback.get("op")) if isinstance(fallback, dict) else None
            if fb_name is None or OperationKind(fb_name).is_bulk or OperationKind(fb_name).is_marker:
                step["fallback"] = synthesize_fallback(step)
                synthesized += 1
            else:
                fallback["op"] = fb_name
                fallback["block"] = _resolve_placeholder(fallback.get("block", step.get("block")), roles)
                _clamp_coords(fallback)
            if not bulk_available:
                step = step["fallback"]
        elif fallback is not None:
            del step["fallback"]
        steps_out.append(step)
    
    data["steps"] = steps_out
    
    if renamed:
        report.add_warning(f"Renamed {renamed} operation alias(es)")
    if clamped:
        report.add_warning(f"Clamped negative coordinates in {clamped} step(s)")
    if synthesized:
        report.add_warning(f"Synthesized stepwise fallback for {synthesized} bulk step(s)")
    report.metrics.update({
        "steps_in": len(steps_in),
        "steps_out": len(steps_out),
        "renamed": renamed,
        "dropped": dropped,
        "clamped": clamped,
        "fallbacks_synthesized": synthesized,
    })
    return data, report


_NEIGHBOURS = ((1, 0, 0), (-1, 0, 0), (0, 1, 0), (0, -1, 0), (0, 0, 1), (0, 0, -1))


def _dense_components(cells: Dict[Tuple[int, int, int], int]) -> List[List[Tuple[int, int, int]]]:
    seen = set()
    components = []
    for start in cells:
        if start in seen:
            continue
        seen.add(start)
        queue = deque([start])
        component = []
        while queue:
            cell = queue.popleft()
            component.append(cell)
            for dx, dy, dz in _NEIGHBOURS:
                nxt = (cell[0] + dx, cell[1] + dy, cell[2] + dz)
                if nxt in cells and nxt not in seen:
                    seen.add(nxt)
                    queue.append(nxt)
        components.append(component)
    return components


def merge_set_runs(blueprint: Blueprint, min_run: int = 3) -> Tuple[Blueprint, OperationReport]:
    """
    Merge groups of adjacent same-block ``set`` steps into ``fill`` steps.
    
    A group is merged only when it is 6-connected, has at least ``min_run``
    members and exactly fills its bounding box. The fill takes the position
    of the group's first step. Cursor markers bound the groups.
    """
    report = OperationReport(operation="merge_set_runs")
    steps = list(blueprint.steps)
    replacement: Dict[int, Operation] = {}
    removed = set()
    
    segment: List[int] = []
    segments: List[List[int]] = []
    for i, step in enumerate(steps):
        if step.kind.is_marker:
            segments.append(segment)
            segment = []
        else:
            segment.append(i)
    segments.append(segment)
    
    for indices in segments:
        by_block: Dict[str, Dict[Tuple[int, int, int], int]] = {}
        for i in indices:
            step = steps[i]
            if step.kind != OperationKind.SET or step.pos is None or not step.block or step.params:
                continue
            cells = by_block.setdefault(step.block, {})
            cells.setdefault(step.pos.as_tuple(), i)
        
        for block, cells in by_block.items():
            for component in _dense_components(cells):
                if len(component) < min_run:
                    continue
                xs, ys, zs = zip(*component)
                lo = (min(xs), min(ys), min(zs))
                hi = (max(xs), max(ys), max(zs))
                box = (hi[0] - lo[0] + 1) * (hi[1] - lo[1] + 1) * (hi[2] - lo[2] + 1)
                if box != len(component):
                    continue
                members = sorted(cells[c] for c in component)
                replacement[members[0]] = Operation(
                    kind=OperationKind.FILL,
                    block=block,
                    from_pos=Vec3(*lo),
                    to_pos=Vec3(*hi),
                )
                removed.update(members[1:])
    
    merged = []
    for i, step in enumerate(steps):
        if i in removed:
            continue
        merged.append(replacement.get(i, step))
    
    report.metrics.update({
        "steps_in": len(steps),
        "steps_out": len(merged),
        "fills_created": len(replacement),
    })
    if replacement:
        logger.info(f"Merged {len(removed) + len(replacement)} set steps into {len(replacement)} fill(s)")
    return blueprint.with_steps(merged), report


__all__ = [
    "OP_ALIASES",
    "BULK_OP_ALIASES",
    "normalize_op_name",
    "synthesize_fallback",
    "sanitize_blueprint",
    "merge_set_runs",
]
