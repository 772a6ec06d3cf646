"""
Design Iteration Task Templates

Prompts for repairing a blueprint that failed validation.
"""

import json
from typing import Dict, Any, Optional, List

from generation.core.blueprint import DesignPlan


def repair_prompt(
    blueprint: Dict[str, Any],
    errors: List[str],
    plan: DesignPlan,
    allowlist: List[str],
    quality: Optional[Dict[str, Any]] = None,
    attempt: int = 1,
    max_attempts: int = 3,
) -> str:
    """
    Generate a prompt for one repair attempt.
    
    Parameters
    ----------
    blueprint : dict
        Current blueprint JSON
    errors : list of str
        Complete accumulated error list, oldest first
    plan : DesignPlan
        Design plan the blueprint must honour
    allowlist : list of str
        Blocks the blueprint may use
    quality : dict, optional
        Semantic score and penalty breakdown ({"score", "penalties", "warnings"})
    attempt : int
        Current repair attempt (1-based)
    max_attempts : int
        Repair budget
        
    Returns
    -------
    str
        Formatted repair prompt
    """
    w, h, d = plan.dimensions.as_tuple()
    
    prompt = f"""The following blueprint has validation errors. Fix them while keeping the design intent.
This is repair attempt {attempt} of {max_attempts}.

**Blueprint:**
{json.dumps(blueprint, indent=2)}

**Validation Errors:**
"""
    for i, error in enumerate(errors, 1):
        prompt += f"{i}. {error}\n"
    
    if quality:
        prompt += f"""
**Quality Score:** {quality.get("score", 0.0) * 100:.1f}%

**Quality Issues:**
"""
        for name, penalty in (quality.get("penalties") or {}).items():
            prompt += f"- {name}: {penalty.get('count', 0)} {penalty.get('severity', 'issue')}(s), penalty {penalty.get('penalty', 0)}\n"
        for warning in quality.get("warnings") or []:
            prompt += f"- warning: {warning}\n"
    
    prompt += f"""
**Constraints:**
- Only use blocks from the allowlist: {", ".join(allowlist) or "any valid block"}
- Dimensions: {w}x{h}x{d}; all coordinates must be within bounds
- Required features MUST be included: {", ".join(plan.features) or "none"}
- Every we_* operation must keep a vanilla "fallback"

**Repair Instructions:**
1. Fix every validation error listed above, not only the last one
2. Ensure ALL required features are present
3. Keep structural integrity (foundation, walls, roof)
4. Keep dimensions within 20% of the design plan

Output only the corrected JSON blueprint.
"""
    return prompt
