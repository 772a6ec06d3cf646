"""
Operation registry.

Static metadata for every OperationKind: its class, required parameters,
whether it needs a block, and the stepwise kind a bulk operation falls back
to. Used by prompt building, the sanitizer, schema validation and block
estimates.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from generation.core.operation import OperationKind


@dataclass
class OperationSpec:
    """Registry entry for one operation kind."""
    kind: OperationKind
    op_class: str  # "vanilla", "bulk", "system", "special", "cursor"
    description: str
    required: Tuple[str, ...] = ()
    one_of: Tuple[Tuple[str, ...], ...] = ()
    needs_block: bool = True
    fallback_kind: Optional[OperationKind] = None
    avg_blocks: int = 1


K = OperationKind

OPERATION_REGISTRY: Dict[OperationKind, OperationSpec] = {
    K.SITE_PREP: OperationSpec(K.SITE_PREP, "system", "Clear and level the build site", needs_block=False, avg_blocks=0),
    K.FILL: OperationSpec(K.FILL, "vanilla", "Solid rectangular fill", ("block", "from", "to"), avg_blocks=100),
    K.HOLLOW_BOX: OperationSpec(K.HOLLOW_BOX, "vanilla", "Hollow box (walls, floor and ceiling shell)", ("block", "from", "to"), avg_blocks=200),
    K.WALL: OperationSpec(K.WALL, "vanilla", "Vertical wall between two corners", ("block", "from", "to"), avg_blocks=50),
    K.FLOOR: OperationSpec(K.FLOOR, "vanilla", "Horizontal floor layer", ("block", "from", "to"), avg_blocks=100),
    K.CYLINDER: OperationSpec(K.CYLINDER, "vanilla", "Stepwise cylinder tower", ("block", "radius", "height"), (("base", "pos"),), avg_blocks=300),
    K.SPHERE: OperationSpec(K.SPHERE, "vanilla", "Stepwise sphere or dome", ("block", "radius"), (("center", "pos", "base"),), avg_blocks=400),
    K.ROOF_GABLE: OperationSpec(K.ROOF_GABLE, "vanilla", "Triangular gable roof", ("block", "from", "to"), avg_blocks=150),
    K.ROOF_HIP: OperationSpec(K.ROOF_HIP, "vanilla", "Four-sided hip roof", ("block", "from", "to"), avg_blocks=150),
    K.ROOF_FLAT: OperationSpec(K.ROOF_FLAT, "vanilla", "Flat roof", ("block", "from", "to"), avg_blocks=100),
    K.DOOR: OperationSpec(K.DOOR, "vanilla", "Door placement", ("block", "pos"), avg_blocks=2),
    K.WINDOW_STRIP: OperationSpec(K.WINDOW_STRIP, "vanilla", "Row of windows with spacing", ("block", "from", "to"), avg_blocks=5),
    K.STAIRS: OperationSpec(K.STAIRS, "vanilla", "Oriented stair block", ("block", "pos"), avg_blocks=1),
    K.SPIRAL_STAIRCASE: OperationSpec(K.SPIRAL_STAIRCASE, "vanilla", "Spiral staircase", ("block", "base", "height"), avg_blocks=30),
    K.SLAB: OperationSpec(K.SLAB, "vanilla", "Top or bottom slab", ("block", "pos"), avg_blocks=1),
    K.FENCE_CONNECT: OperationSpec(K.FENCE_CONNECT, "vanilla", "Connected fence line", ("block", "from", "to"), avg_blocks=10),
    K.BALCONY: OperationSpec(K.BALCONY, "vanilla", "Protruding balcony", ("block", "base", "width", "depth"), avg_blocks=20),
    K.SET: OperationSpec(K.SET, "vanilla", "Single block", ("block", "pos"), avg_blocks=1),
    K.LINE: OperationSpec(K.LINE, "vanilla", "Straight line of blocks", ("block", "from", "to"), avg_blocks=10),
    K.PIXEL_ART: OperationSpec(K.PIXEL_ART, "special", "2D pixel grid from a legend", ("base", "layers", "legend"), needs_block=False, avg_blocks=500),
    K.THREE_D_LAYERS: OperationSpec(K.THREE_D_LAYERS, "special", "Stacked 2D slices from a legend", ("base", "layers", "legend"), needs_block=False, avg_blocks=1000),
    K.WE_FILL: OperationSpec(K.WE_FILL, "bulk", "Large region fill", ("block", "from", "to"), fallback_kind=K.FILL, avg_blocks=5000),
    K.WE_WALLS: OperationSpec(K.WE_WALLS, "bulk", "Large hollow walls", ("block", "from", "to"), fallback_kind=K.HOLLOW_BOX, avg_blocks=2000),
    K.WE_PYRAMID: OperationSpec(K.WE_PYRAMID, "bulk", "Pyramid or pyramidal roof", ("block", "height"), (("base", "pos"),), fallback_kind=K.ROOF_HIP, avg_blocks=1000),
    K.WE_CYLINDER: OperationSpec(K.WE_CYLINDER, "bulk", "Cylindrical tower", ("block", "radius", "height"), (("base", "pos"),), fallback_kind=K.CYLINDER, avg_blocks=1000),
    K.WE_SPHERE: OperationSpec(K.WE_SPHERE, "bulk", "Sphere or dome", ("block", "radius"), (("center", "pos", "base"),), fallback_kind=K.SPHERE, avg_blocks=2000),
    K.MOVE: OperationSpec(K.MOVE, "cursor", "Shift the placement cursor", ("offset",), needs_block=False, avg_blocks=0),
    K.CURSOR_RESET: OperationSpec(K.CURSOR_RESET, "cursor", "Return the cursor to the build origin", needs_block=False, avg_blocks=0),
}


def get_spec(kind: OperationKind) -> OperationSpec:
    return OPERATION_REGISTRY[kind]


def stepwise_kinds() -> List[OperationKind]:
    """Kinds that are always available (no bulk-edit capability needed)."""
    return [k for k, s in OPERATION_REGISTRY.items() if s.op_class != "bulk"]


def missing_params(step: Dict[str, Any]) -> List[str]:
    """
    Check a JSON step against the registry.
    
    Parameters
    ----------
    step : dict
        Step with an ``op`` field
        
    Returns
    -------
    List[str]
        Names of missing required parameters; one-of groups are reported as
        "a|b|c"
    """
    kind = OperationKind.parse(step.get("op"))
    if kind is None:
        return []
    entry = OPERATION_REGISTRY[kind]
    missing = [p for p in entry.required if step.get(p) in (None, "", [], {})]
    for group in entry.one_of:
        if not any(step.get(p) is not None for p in group):
            missing.append("|".join(group))
    return missing


def describe_vocabulary(include_bulk: bool = True) -> str:
    """Render the operation vocabulary for inclusion in a prompt."""
    lines = []
    for kind, entry in OPERATION_REGISTRY.items():
        if entry.op_class == "bulk" and not include_bulk:
            continue
        params = list(entry.required) + ["|".join(g) for g in entry.one_of]
        line = f"- {kind.value}: {entry.description}. Params: {', '.join(params) or 'none'}"
        if entry.fallback_kind is not None:
            line += f", fallback {{op: \"{entry.fallback_kind.value}\", ...}} (REQUIRED)"
        lines.append(line)
    return "\n".join(lines)


__all__ = [
    "OperationSpec",
    "OPERATION_REGISTRY",
    "get_spec",
    "stepwise_kinds",
    "missing_params",
    "describe_vocabulary",
]
