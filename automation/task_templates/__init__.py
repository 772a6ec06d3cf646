"""
Task Templates

Prompts for the generation stages. Each template returns a plain string that
asks the model for JSON only, and lists the closed operation vocabulary,
allowed blocks and hard bounds where the stage needs them.
"""

from .generate_structure import (
    SYSTEM_PROMPT,
    MATERIAL_ROLES,
    derive_allowlist,
    design_plan_prompt,
    blueprint_prompt,
)
from .iterate_design import (
    repair_prompt,
)
from .compound_layout import (
    compound_layout_prompt,
)
from .scene import (
    scene_plan_prompt,
)

__all__ = [
    # Generation prompts
    "SYSTEM_PROMPT",
    "MATERIAL_ROLES",
    "derive_allowlist",
    "design_plan_prompt",
    "blueprint_prompt",
    # Repair prompts
    "repair_prompt",
    # Compound and scene prompts
    "compound_layout_prompt",
    "scene_plan_prompt",
]
