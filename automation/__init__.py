"""
Agentic Structure Generation - Automation

This module provides the orchestration core that turns a natural-language
build request into an ordered, validated blueprint. It drives an external
generative text service through unreliable network and quota conditions.

Main Components:
    - llm_client: Transport for LLM APIs (OpenAI, Anthropic, local servers)
    - resilient_client: Timeout, retry with backoff, and JSON recovery
    - task_templates: Prompts for planning, blueprints, repair and layouts
    - analyzer / landmarks / catalog: Request analysis and asset lookup
    - pipeline: Plan -> blueprint -> validate -> repair generation pipeline
    - compound: Multi-structure decomposition under a call budget
    - router: Pathway selection with per-pathway failure policies
    - execution: Station planning and placement walk

Example:
    >>> from automation import BuildContext, LLMClient, RequestRouter, ResilientGenerationClient
    >>>
    >>> client = ResilientGenerationClient(LLMClient(provider="openai", api_key="..."))
    >>> context = BuildContext(client=client)
    >>> result = RequestRouter(context).route("medieval stone tower with a door")
    >>> if result.success:
    ...     print(result.pathway.value, len(result.blueprint.steps))
    ... else:
    ...     print(result.stage, result.errors)
"""

from .llm_client import LLMClient, LLMConfig, LLMProvider, LLMResponse
from .errors import (
    ErrorKind,
    FailureCategory,
    GenerationError,
    JSONRecoveryError,
    classify_error,
)
from .json_recovery import parse_json_response, repair_json
from .resilient_client import (
    PromptPayload,
    SchemaHint,
    StructuredResult,
    ResilientGenerationClient,
)
from .landmarks import Landmark, LANDMARKS, find_landmark
from .analyzer import PromptAnalyzer
from .catalog import (
    AssetLoadError,
    CatalogMatch,
    SchematicCatalog,
    calculate_similarity,
    load_asset,
)
from .context import BuildContext
from .pipeline import (
    GenerationPipeline,
    PipelineMode,
    PipelineResult,
    PipelineStage,
)
from .compound import (
    CallBudget,
    CompoundDecomposer,
    CompoundResult,
    merge_components,
)
from .router import (
    FailurePolicy,
    RequestRouter,
    RoutingDecision,
    RoutingPathway,
    RoutingResult,
)
from .execution import (
    BuildExecutor,
    BuildPlan,
    ExecutionReport,
    prepare_build,
)

__all__ = [
    # Transport
    "LLMClient",
    "LLMConfig",
    "LLMProvider",
    "LLMResponse",
    # Errors
    "ErrorKind",
    "FailureCategory",
    "GenerationError",
    "JSONRecoveryError",
    "classify_error",
    # Resilient client
    "parse_json_response",
    "repair_json",
    "PromptPayload",
    "SchemaHint",
    "StructuredResult",
    "ResilientGenerationClient",
    # Collaborators
    "Landmark",
    "LANDMARKS",
    "find_landmark",
    "PromptAnalyzer",
    "AssetLoadError",
    "CatalogMatch",
    "SchematicCatalog",
    "calculate_similarity",
    "load_asset",
    # Orchestration
    "BuildContext",
    "GenerationPipeline",
    "PipelineMode",
    "PipelineResult",
    "PipelineStage",
    "CallBudget",
    "CompoundDecomposer",
    "CompoundResult",
    "merge_components",
    "FailurePolicy",
    "RequestRouter",
    "RoutingDecision",
    "RoutingPathway",
    "RoutingResult",
    # Execution
    "BuildExecutor",
    "BuildPlan",
    "ExecutionReport",
    "prepare_build",
]
