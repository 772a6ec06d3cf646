"""
Build settings aggregate.

BuildSettings bundles every policy into the configuration surface that is
read once at startup and passed explicitly to the router, pipeline and
decomposer. Nothing in the library reads configuration from module globals.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any, Optional, Union
import json
import logging
import os

from .base import coerce_float
from .generation import GenerationPolicy, RepairPolicy, CompoundPolicy
from .validity import ValidationPolicy
from .routing import RoutingPolicy, PlacementPolicy

logger = logging.getLogger(__name__)


_TRUE_VALUES = ("1", "true", "yes", "on")


@dataclass
class BuildSettings:
    """
    All policies for one process.
    
    Examples
    --------
    >>> settings = BuildSettings.from_dict({"routing": {"catalog_threshold": 0.7}})
    >>> settings.routing.catalog_threshold
    0.7
    """
    generation: GenerationPolicy = field(default_factory=GenerationPolicy)
    repair: RepairPolicy = field(default_factory=RepairPolicy)
    compound: CompoundPolicy = field(default_factory=CompoundPolicy)
    validation: ValidationPolicy = field(default_factory=ValidationPolicy)
    routing: RoutingPolicy = field(default_factory=RoutingPolicy)
    placement: PlacementPolicy = field(default_factory=PlacementPolicy)
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "generation": self.generation.to_dict(),
            "repair": self.repair.to_dict(),
            "compound": self.compound.to_dict(),
            "validation": self.validation.to_dict(),
            "routing": self.routing.to_dict(),
            "placement": self.placement.to_dict(),
        }
    
    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "BuildSettings":
        """Create settings from a nested dictionary; missing sections use defaults."""
        return cls(
            generation=GenerationPolicy.from_dict(d.get("generation", {})),
            repair=RepairPolicy.from_dict(d.get("repair", {})),
            compound=CompoundPolicy.from_dict(d.get("compound", {})),
            validation=ValidationPolicy.from_dict(d.get("validation", {})),
            routing=RoutingPolicy.from_dict(d.get("routing", {})),
            placement=PlacementPolicy.from_dict(d.get("placement", {})),
        )
    
    @classmethod
    def from_json_file(cls, path: Union[str, Path]) -> "BuildSettings":
        """Load settings from a JSON file."""
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return cls.from_dict(data)
    
    @classmethod
    def from_env(
        cls,
        base: Optional["BuildSettings"] = None,
        environ: Optional[Dict[str, str]] = None,
    ) -> "BuildSettings":
        """
        Apply environment overrides on top of ``base`` (or the defaults).
        
        Parameters
        ----------
        base : BuildSettings, optional
            Settings to start from
        environ : dict, optional
            Environment mapping (defaults to os.environ)
            
        Returns
        -------
        BuildSettings
            Settings with BUILDER_V2_ENABLED, ASG_CATALOG_DIR and
            ASG_LLM_TIMEOUT applied
        """
        settings = base if base is not None else cls()
        env = os.environ if environ is None else environ
        
        v2_flag = env.get("BUILDER_V2_ENABLED")
        if v2_flag is not None:
            settings.routing.builder_v2_enabled = v2_flag.strip().lower() in _TRUE_VALUES
        
        catalog_dir = env.get("ASG_CATALOG_DIR")
        if catalog_dir:
            settings.routing.catalog_dir = catalog_dir
        
        timeout = env.get("ASG_LLM_TIMEOUT")
        if timeout:
            settings.generation.timeout_s = coerce_float(timeout, settings.generation.timeout_s)
        
        logger.debug(f"Loaded build settings (v2={settings.routing.builder_v2_enabled})")
        return settings


__all__ = ["BuildSettings"]
