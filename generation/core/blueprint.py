"""
Request, plan and blueprint data structures.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Sequence, Tuple

from asg_policies.base import coerce_float
from .operation import Operation
from .types import Vec3, Dimensions


@dataclass(frozen=True)
class BuildRequest:
    """
    A natural-language build request.
    
    Immutable once accepted. ``asset_path`` is set when the request names an
    explicit structure file to load instead of generating.
    """
    text: str
    origin: Optional[Vec3] = None
    corner: Optional[Vec3] = None
    export_format: Optional[str] = None
    actor: Optional[str] = None
    asset_path: Optional[str] = None
    image: Optional[bytes] = None


@dataclass
class Analysis:
    """
    Lightweight prompt analysis consumed by the pipeline.
    
    Produced by an analyzer collaborator; read-only to the pipeline.
    """
    build_type: str
    confidence: float = 0.0
    theme: Optional[str] = None
    dimensions: Optional[Dimensions] = None
    features: List[str] = field(default_factory=list)
    materials: List[str] = field(default_factory=list)
    image_reference: Optional[str] = None
    prompt: str = ""
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "build_type": self.build_type,
            "confidence": self.confidence,
            "theme": self.theme,
            "dimensions": self.dimensions.to_dict() if self.dimensions else None,
            "features": list(self.features),
            "materials": list(self.materials),
            "image_reference": self.image_reference,
            "prompt": self.prompt,
        }


@dataclass
class DesignPlan:
    """High-level design: size, style, material roles and requested features."""
    dimensions: Dimensions
    style: str = "default"
    materials: Dict[str, str] = field(default_factory=dict)
    features: List[str] = field(default_factory=list)
    description: str = ""
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "dimensions": self.dimensions.to_dict(),
            "style": self.style,
            "materials": dict(self.materials),
            "features": list(self.features),
            "description": self.description,
        }
    
    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DesignPlan":
        """
        Create from model output, tolerating missing sections.

        Raises
        ------
        ValueError
            If a present section has the wrong shape (dimensions that are not
            an object, materials that are neither an object nor a list)
        """
        dims = d.get("dimensions") or d.get("size") or {}
        if not isinstance(dims, dict):
            raise ValueError(f"dimensions must be an object, got {type(dims).__name__}")
        materials = d.get("materials") or {}
        if isinstance(materials, list):
            materials = {f"material_{i}": str(b) for i, b in enumerate(materials)}
        if not isinstance(materials, dict):
            raise ValueError(f"materials must be an object, got {type(materials).__name__}")
        features = d.get("features") or []
        if isinstance(features, str):
            features = [features]
        if not isinstance(features, list):
            raise ValueError(f"features must be a list, got {type(features).__name__}")
        return cls(
            dimensions=Dimensions.from_dict(dims),
            style=str(d.get("style") or "default"),
            materials={str(k): str(v) for k, v in materials.items() if v},
            features=[str(f) for f in features],
            description=str(d.get("description") or ""),
        )


@dataclass
class Blueprint:
    """
    Executable build description.
    
    Stages never mutate a blueprint in place; they return a new value via
    ``with_steps`` / ``replace``.
    """
    size: Dimensions
    palette: Tuple[str, ...]
    steps: Tuple[Operation, ...]
    build_type: str = "generic"
    generation_method: str = "llm"
    metadata: Dict[str, Any] = field(default_factory=dict, compare=False)
    
    def with_steps(self, steps: Sequence[Operation]) -> "Blueprint":
        return replace(self, steps=tuple(steps))
    
    def all_blocks(self) -> List[str]:
        """Palette blocks plus every block referenced by a step."""
        found = list(self.palette)
        for step in self.steps:
            for block in step.blocks():
                if block not in found:
                    found.append(block)
        return found
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "size": self.size.to_dict(),
            "palette": list(self.palette),
            "steps": [s.to_dict() for s in self.steps],
            "buildType": self.build_type,
            "generationMethod": self.generation_method,
            "metadata": dict(self.metadata),
        }
    
    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Blueprint":
        """
        Create from a JSON blueprint.
        
        A dict palette (role -> block) contributes its values. Steps must
        already be well formed (see generation.ops.sanitize).
        """
        palette = d.get("palette") or []
        if isinstance(palette, dict):
            palette = list(palette.values())
        unique: List[str] = []
        for block in palette:
            if block and str(block) not in unique:
                unique.append(str(block))
        return cls(
            size=Dimensions.from_dict(d.get("size")),
            palette=tuple(unique),
            steps=tuple(Operation.from_dict(s) for s in d.get("steps") or []),
            build_type=str(d.get("buildType") or d.get("build_type") or "generic"),
            generation_method=str(d.get("generationMethod") or d.get("generation_method") or "llm"),
            metadata=dict(d.get("metadata") or {}),
        )


def analysis_from_dict(d: Dict[str, Any]) -> Analysis:
    """Create an Analysis from a loosely-typed mapping."""
    dims = d.get("dimensions")
    return Analysis(
        build_type=str(d.get("build_type") or d.get("buildType") or "house"),
        confidence=coerce_float(d.get("confidence"), 0.0),
        theme=d.get("theme"),
        dimensions=Dimensions.from_dict(dims) if dims else None,
        features=list(d.get("features") or []),
        materials=list(d.get("materials") or []),
        image_reference=d.get("image_reference"),
        prompt=str(d.get("prompt") or ""),
    )


__all__ = [
    "BuildRequest",
    "Analysis",
    "DesignPlan",
    "Blueprint",
    "analysis_from_dict",
]
