"""
Generation Task Templates

Prompts for the design-plan and blueprint stages of structure generation.
"""

import json
from typing import Dict, Any, Optional, List

from generation.core.blueprint import Analysis, DesignPlan
from generation.ops.registry import describe_vocabulary

SYSTEM_PROMPT = (
    "You are a Minecraft architect that plans and writes block-placement "
    "blueprints. Respond with valid JSON only, no prose and no code fences."
)

MATERIAL_ROLES = ("primary", "secondary", "roof", "floor", "windows", "door")


def derive_allowlist(plan: DesignPlan, max_unique: int = 15) -> List[str]:
    """
    Blocks the blueprint may use: the plan's materials, deduplicated.
    
    Parameters
    ----------
    plan : DesignPlan
        Design plan with a role -> block material map
    max_unique : int
        Upper bound on the number of distinct blocks
        
    Returns
    -------
    list of str
        Allowed block IDs in role order
    """
    allowlist: List[str] = []
    for block in plan.materials.values():
        block = block.strip()
        if block and block not in allowlist:
            allowlist.append(block)
    return allowlist[:max_unique]


def _format_reference(reference: Optional[Dict[str, Any]]) -> str:
    if not reference:
        return ""
    elements = reference.get("structuralElements") or reference.get("structural_elements") or []
    palette = reference.get("palette") or []
    return f"""
**Visual Reference:**
- Subject: {reference.get("subject", "unknown")}
- Style: {reference.get("style", "unspecified")}
- Palette: {", ".join(str(p) for p in palette) or "unspecified"}
- Structural elements: {", ".join(str(e) for e in elements) or "unspecified"}
"""


def design_plan_prompt(
    request_text: str,
    analysis: Analysis,
    reference: Optional[Dict[str, Any]] = None,
    max_dimension: int = 30,
) -> str:
    """
    Generate a prompt for the design-plan stage.
    
    Parameters
    ----------
    request_text : str
        The user's build request
    analysis : Analysis
        Analyzer output (build type, theme, dimension hints, features)
    reference : dict, optional
        Visual reference with subject, style, palette and structuralElements
    max_dimension : int
        Largest width/height/depth to suggest
        
    Returns
    -------
    str
        Formatted prompt for the LLM
    """
    hints = analysis.dimensions.to_dict() if analysis.dimensions else "none"
    features = ", ".join(analysis.features) or "none requested"
    
    prompt = f"""Create a compact design plan for this Minecraft build:

"{request_text}"

**Analysis:**
- Build type: {analysis.build_type} (confidence {analysis.confidence:.2f})
- Theme: {analysis.theme or "default"}
- Dimension hints: {hints}
- Requested features: {features}
{_format_reference(reference)}
**Requirements:**
- Keep dimensions reasonable (max {max_dimension}x{max_dimension}x{max_dimension} for most builds)
- Use valid Minecraft 1.20.1 block names (e.g. "oak_planks", "stone_bricks", "glass_pane")
- List every requested feature in "features"

**Materials format (use these exact keys):**
{{
  "primary": "main building block",
  "secondary": "accent block (optional)",
  "roof": "roof material",
  "floor": "floor material (optional)",
  "windows": "window material (optional)",
  "door": "door type (optional)"
}}

**Output format:**
{{
  "dimensions": {{"width": <int>, "height": <int>, "depth": <int>}},
  "style": "<style label>",
  "materials": {{...}},
  "features": ["door", "windows", "roof", ...],
  "description": "<one sentence>"
}}

Keep the response compact. Output valid JSON only.
"""
    return prompt


def blueprint_prompt(
    plan: DesignPlan,
    allowlist: List[str],
    bulk_available: bool = False,
    build_type: str = "generic",
) -> str:
    """
    Generate a prompt for the blueprint stage.
    
    The prompt enumerates the closed operation vocabulary, the allowed
    blocks and the hard dimensional bounds.
    
    Parameters
    ----------
    plan : DesignPlan
        Design plan to convert
    allowlist : list of str
        Blocks the blueprint may use
    bulk_available : bool
        Whether bulk-region operations (we_*) may be used
    build_type : str
        Build type tag to carry into the blueprint
        
    Returns
    -------
    str
        Formatted prompt for the LLM
    """
    w, h, d = plan.dimensions.as_tuple()
    bulk_section = ""
    if bulk_available:
        bulk_section = """
**Bulk Operations:**
- Use we_* operations for large volumes (>100 blocks) and vanilla operations for details
- Each we_* operation MUST include a "fallback" built only from vanilla operations
  that produces the same result
"""
    
    prompt = f"""Convert this design plan into executable build instructions:

{json.dumps(plan.to_dict(), indent=2)}

**Strict Constraints:**
- Only use these blocks: {", ".join(allowlist)}
- Coordinates are relative and start at 0,0,0
- Coordinates must stay within x[0-{w - 1}], y[0-{h - 1}], z[0-{d - 1}]
- ALL requested features MUST be included: {", ".join(plan.features) or "none"}
{bulk_section}
**Available Operations:**
{describe_vocabulary(include_bulk=bulk_available)}

**Building Sequence:**
1. Foundation: {"we_fill" if bulk_available else "fill"} for the base (y=0)
2. Walls: {"we_walls" if bulk_available else "hollow_box"} for the main structure
3. Roof: roof_gable, roof_hip{", we_pyramid" if bulk_available else ""} or roof_flat
4. Features: "door" for doors, "window_strip" for rows of windows, stairs
5. Details: fences, slabs and single blocks last

**Output format:**
{{
  "size": {{"width": {w}, "height": {h}, "depth": {d}}},
  "palette": [<blocks used>],
  "buildType": "{build_type}",
  "steps": [{{"op": "<operation>", ...}}]
}}

Output only valid JSON matching the blueprint schema.
"""
    return prompt
