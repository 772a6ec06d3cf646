"""
Compound Layout Task Templates

Prompt for the high-level layout of a multi-structure build.
"""

from typing import Optional


def compound_layout_prompt(
    request_text: str,
    max_components: int,
    spacing: int = 4,
    theme: Optional[str] = None,
) -> str:
    """
    Generate a prompt for a compound-build layout plan.
    
    Parameters
    ----------
    request_text : str
        The user's build request
    max_components : int
        Largest number of components the layout may list
    spacing : int
        Minimum gap in blocks between component footprints
    theme : str, optional
        Shared theme for all components
        
    Returns
    -------
    str
        Formatted prompt for the LLM
    """
    prompt = f"""Plan the layout of a multi-structure Minecraft build:

"{request_text}"

**Requirements:**
- List each distinct structure as one component (at most {max_components})
- Components must not overlap; keep at least {spacing} blocks between footprints
- Offsets are relative to the build origin; y is 0 unless a component sits on another
- Theme: {theme or "consistent across all components"}

**Output format:**
{{
  "layout": "<short description>",
  "components": [
    {{
      "name": "<unique id>",
      "buildType": "<house|tower|castle|wall|...>",
      "description": "<what to build, as a standalone request>",
      "offset": {{"x": <int>, "y": <int>, "z": <int>}},
      "size": {{"width": <int>, "height": <int>, "depth": <int>}}
    }}
  ]
}}

Output valid JSON only.
"""
    return prompt
