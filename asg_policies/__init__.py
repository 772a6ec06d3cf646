"""
ASG Policies - Centralized policy definitions for Agentic Structure Generation.

This package provides the policy dataclasses used by the generation, validity
and automation packages. All policies are JSON-serializable and are gathered
into BuildSettings, the configuration surface passed explicitly into the
router and pipeline.

Usage:
    from asg_policies import BuildSettings, ValidationPolicy, OperationReport
    from asg_policies.generation import GenerationPolicy, CompoundPolicy
    from asg_policies.routing import PlacementPolicy
"""

from .base import (
    OperationReport,
    coerce_int,
    coerce_float,
    coerce_vec3,
    alias_fields,
)

from .generation import (
    GenerationPolicy,
    RepairPolicy,
    CompoundPolicy,
)

from .validity import (
    ValidationPolicy,
    DEFAULT_MIN_FOOTPRINTS,
)

from .routing import (
    RoutingPolicy,
    PlacementPolicy,
)

from .settings import BuildSettings

__all__ = [
    # Base
    "OperationReport",
    "coerce_int",
    "coerce_float",
    "coerce_vec3",
    "alias_fields",
    # Generation
    "GenerationPolicy",
    "RepairPolicy",
    "CompoundPolicy",
    # Validity
    "ValidationPolicy",
    "DEFAULT_MIN_FOOTPRINTS",
    # Routing / placement
    "RoutingPolicy",
    "PlacementPolicy",
    # Aggregate
    "BuildSettings",
]
