"""
Generation policies for ASG.

This module contains the policy dataclasses that control model invocation,
the repair loop and compound (multi-structure) decomposition. All policies are
JSON-serializable.

TIME CONVENTIONS
----------------
All durations are in SECONDS.
"""

from dataclasses import dataclass, field, asdict
from typing import Dict, Any, List


@dataclass
class GenerationPolicy:
    """
    Policy for resilient model invocation.
    
    Controls the retry budget, per-attempt timeout, backoff schedule and
    sampling temperature of each generation stage.
    
    JSON Schema:
    {
        "max_attempts": int,
        "timeout_s": float (seconds, per attempt),
        "retry_delay": float (seconds, first backoff),
        "retry_max_delay": float (seconds, backoff ceiling),
        "plan_temperature": float,
        "blueprint_temperature": float,
        "repair_temperature": float,
        "plan_max_tokens": int,
        "blueprint_max_tokens": int
    }
    
    The timeout applies to each attempt, not to the logical call: a call with
    max_attempts=3 may take up to three timeouts plus the backoff delays.
    """
    max_attempts: int = 3
    timeout_s: float = 120.0
    retry_delay: float = 0.75
    retry_max_delay: float = 30.0
    plan_temperature: float = 0.7
    blueprint_temperature: float = 0.4
    repair_temperature: float = 0.3
    plan_max_tokens: int = 1024
    blueprint_max_tokens: int = 8192
    
    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
    
    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "GenerationPolicy":
        return GenerationPolicy(**{k: v for k, v in d.items() if k in GenerationPolicy.__dataclass_fields__})


@dataclass
class RepairPolicy:
    """
    Policy for the blueprint repair loop.
    
    JSON Schema:
    {
        "max_attempts": int,
        "include_quality_score": bool
    }
    """
    max_attempts: int = 3
    include_quality_score: bool = True
    
    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
    
    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "RepairPolicy":
        return RepairPolicy(**{k: v for k, v in d.items() if k in RepairPolicy.__dataclass_fields__})


@dataclass
class CompoundPolicy:
    """
    Policy for compound (multi-structure) requests.
    
    A request is compound when it contains a trigger keyword, an explicit
    count of structures above ``count_threshold`` ("5 houses"), or at least
    ``distinct_noun_threshold`` distinct structure nouns.
    
    JSON Schema:
    {
        "enabled": bool,
        "max_components": int,
        "max_calls": int (plan call included),
        "count_threshold": int,
        "distinct_noun_threshold": int,
        "trigger_keywords": [str],
        "structure_nouns": [str]
    }
    """
    enabled: bool = True
    max_components: int = 10
    max_calls: int = 15
    count_threshold: int = 2
    distinct_noun_threshold: int = 3
    trigger_keywords: List[str] = field(default_factory=lambda: [
        "village", "city", "complex", "compound", "multiple", "collection",
    ])
    structure_nouns: List[str] = field(default_factory=lambda: [
        "house", "castle", "tower", "church", "shop", "farm",
        "barn", "stable", "wall", "gate",
    ])
    
    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
    
    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "CompoundPolicy":
        return CompoundPolicy(**{k: v for k, v in d.items() if k in CompoundPolicy.__dataclass_fields__})


__all__ = [
    "GenerationPolicy",
    "RepairPolicy",
    "CompoundPolicy",
]
