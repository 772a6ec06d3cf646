"""
Scene Task Templates

Prompts for the scene-oriented (V2) generation path. The scene prompt
replaces the design-plan prompt and seeds it with landmark component hints
and bounds.
"""

from typing import Optional

from generation.core.blueprint import Analysis
from automation.landmarks import Landmark, scale_from_text


def scene_plan_prompt(
    request_text: str,
    analysis: Analysis,
    landmark: Optional[Landmark] = None,
) -> str:
    """
    Generate a scene-oriented design-plan prompt.
    
    Parameters
    ----------
    request_text : str
        The user's build request
    analysis : Analysis
        Analyzer output
    landmark : Landmark, optional
        Matched landmark whose components and bounds seed the plan
        
    Returns
    -------
    str
        Formatted prompt for the LLM
    """
    prompt = f"""Compose a scene plan for this Minecraft build:

"{request_text}"

Think of the build as a set of components (rooms, towers, roofs, platforms,
columns, arches, domes) placed in one shared bounding box.

**Analysis:**
- Build type: {analysis.build_type}
- Theme: {analysis.theme or "default"}
- Requested features: {", ".join(analysis.features) or "none requested"}
"""
    if landmark is not None:
        bounds = landmark.bounds(scale_from_text(request_text))
        prompt += f"""
**Landmark: {landmark.name}**
- Bounds: {bounds.width}x{bounds.height}x{bounds.depth} (width x height x depth); do not exceed them
- Materials: {", ".join(f"{role}={block}" for role, block in landmark.materials.items())}
- Components:
"""
        for component in landmark.components:
            prompt += f"  - {component}\n"
    
    prompt += """
**Output format:**
{
  "dimensions": {"width": <int>, "height": <int>, "depth": <int>},
  "style": "<theme>",
  "materials": {"primary": "...", "secondary": "...", "roof": "...", "accent": "..."},
  "features": ["<component or feature>", ...],
  "description": "<one sentence naming the components and their placement>"
}

Output valid JSON only.
"""
    return prompt
