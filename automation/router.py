"""
Request Router

Top-level state machine choosing how a request becomes a blueprint.
Stages are tried in strict order, each with its own failure policy:

| Stage           | Taken when                                  | On failure                      |
|-----------------|---------------------------------------------|---------------------------------|
| fast path       | always                                      | abort                           |
| ExplicitAsset   | the request names a structure file          | abort                           |
| CatalogMatch    | catalog similarity >= threshold             | continue                        |
| GenerationV2    | V2 opted in, or a known landmark            | abort (never falls back to V1)  |
| GenerationV1    | default                                     | abort; analysis failure          |
|                 |                                             | substitutes the default type    |

No two pathways run concurrently for one request.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import logging
import re

from generation.core.blueprint import Analysis, Blueprint, BuildRequest
from generation.ops.build_order import optimize_build_order
from validity.api.quick import check_request_feasibility
from automation.catalog import AssetLoadError, load_asset
from automation.compound import CompoundDecomposer
from automation.context import BuildContext
from automation.errors import FailureCategory
from automation.landmarks import find_landmark
from automation.pipeline import GenerationPipeline, PipelineMode

logger = logging.getLogger(__name__)

_ASSET_REFERENCE = re.compile(r"""(?:^|\s)["']?([\w./\\~-]+\.(?:json|schem|schematic|nbt))["']?(?=\s|$)""", re.IGNORECASE)


class RoutingPathway(str, Enum):
    """Generation pathways, in precedence order."""
    EXPLICIT_ASSET = "explicit_asset"
    CATALOG_MATCH = "catalog_match"
    GENERATION_V2 = "generation_v2"
    GENERATION_V1 = "generation_v1"


class FailurePolicy(str, Enum):
    """What a pathway failure does to routing."""
    ABORT = "abort"
    CONTINUE = "continue"
    SUBSTITUTE_DEFAULT = "substitute_default"


PATHWAY_FAILURE_POLICY = {
    RoutingPathway.EXPLICIT_ASSET: FailurePolicy.ABORT,
    RoutingPathway.CATALOG_MATCH: FailurePolicy.CONTINUE,
    RoutingPathway.GENERATION_V2: FailurePolicy.ABORT,
    RoutingPathway.GENERATION_V1: FailurePolicy.ABORT,
}

# Applied when the analyzer itself fails on the generation pathways
ANALYSIS_FAILURE_POLICY = FailurePolicy.SUBSTITUTE_DEFAULT


@dataclass
class RoutingDecision:
    """A pathway attempted during routing and how it ended."""
    pathway: RoutingPathway
    failure_policy: FailurePolicy
    reason: str = ""
    succeeded: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pathway": self.pathway.value,
            "failure_policy": self.failure_policy.value,
            "reason": self.reason,
            "succeeded": self.succeeded,
        }


@dataclass
class RoutingResult:
    """
    Outcome of routing one request.

    Attributes
    ----------
    success : bool
        Whether a blueprint was produced
    pathway : RoutingPathway, optional
        Pathway that produced the blueprint, or the one that aborted
    blueprint : Blueprint, optional
        Build-ordered blueprint on success
    stage : str
        Originating stage of a failure ("fast_path", pathway value, or a
        pipeline stage such as "generation_v1:repair")
    decisions : list of RoutingDecision
        Every pathway attempted, in order
    """
    success: bool
    pathway: Optional[RoutingPathway] = None
    blueprint: Optional[Blueprint] = None
    stage: str = ""
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    error_kind: Optional[FailureCategory] = None
    decisions: List[RoutingDecision] = field(default_factory=list)
    analysis: Optional[Analysis] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "pathway": self.pathway.value if self.pathway else None,
            "blueprint": self.blueprint.to_dict() if self.blueprint else None,
            "stage": self.stage,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "error_kind": self.error_kind.value if self.error_kind else None,
            "decisions": [d.to_dict() for d in self.decisions],
            "metadata": dict(self.metadata),
        }


def explicit_asset_path(request: BuildRequest) -> Optional[str]:
    """
    The structure file a request names, if unambiguous.

    ``asset_path`` wins; otherwise the text must name exactly one file with
    a structure extension.
    """
    if request.asset_path:
        return request.asset_path
    matches = _ASSET_REFERENCE.findall(request.text or "")
    if len(matches) == 1:
        return matches[0]
    return None


class RequestRouter:
    """
    Routes requests to an asset, a catalog entry or a generation pathway.

    Parameters
    ----------
    context : BuildContext
        Settings, client, analyzer, catalog and cancel flag

    Examples
    --------
    >>> router = RequestRouter(BuildContext(client=client))
    >>> result = router.route("small oak cabin with a door")
    >>> result.pathway
    <RoutingPathway.GENERATION_V1: 'generation_v1'>
    """

    def __init__(self, context: BuildContext):
        self.context = context

    @property
    def policy(self):
        return self.context.settings.routing

    def _finish(self, result: RoutingResult) -> RoutingResult:
        if result.success and result.blueprint is not None:
            ordered, _ = optimize_build_order(result.blueprint)
            result.blueprint = ordered
            logger.info(
                f"Routed via {result.pathway.value}: {len(ordered.steps)} steps "
                f"({ordered.generation_method})"
            )
        else:
            logger.error(f"Routing failed at {result.stage}: {result.errors}")
        return result

    def _cancelled(self, result: RoutingResult, stage: str) -> Optional[RoutingResult]:
        if not self.context.is_cancelled():
            return None
        result.stage = stage
        result.errors.append("Build cancelled")
        result.metadata["cancelled"] = True
        logger.info(f"Routing cancelled before {stage}")
        return result

    def route(self, request: Union[BuildRequest, str]) -> RoutingResult:
        """
        Route a request.

        Parameters
        ----------
        request : BuildRequest or str
            The request

        Returns
        -------
        RoutingResult
            Blueprint and pathway on success; the originating stage, errors
            and attempted decisions on failure
        """
        if isinstance(request, str):
            request = BuildRequest(text=request)
        result = RoutingResult(success=False)

        quick = check_request_feasibility(request, self.context.settings.validation)
        result.warnings.extend(quick.warnings)
        if not quick.valid:
            result.stage = "fast_path"
            result.errors.append(f"{quick.reason.value}: {quick.message}")
            result.error_kind = FailureCategory.ROUTING
            result.metadata["fast_path_reason"] = quick.reason.value
            return self._finish(result)

        asset = explicit_asset_path(request)
        if asset is not None:
            return self._finish(self._route_asset(request, asset, result))

        if self._route_catalog(request, result):
            return self._finish(result)

        cancelled = self._cancelled(result, "analyze")
        if cancelled is not None:
            return self._finish(cancelled)
        analysis = self._analyze(request, result)

        landmark = find_landmark(request.text) if self.policy.landmark_routing else None
        if self.context.use_v2() or landmark is not None:
            reason = "builder v2 enabled" if self.context.use_v2() else f"landmark '{landmark.key}'"
            return self._finish(self._generate(
                request, analysis, RoutingPathway.GENERATION_V2, PipelineMode.V2, reason, result, landmark
            ))
        return self._finish(self._generate(
            request, analysis, RoutingPathway.GENERATION_V1, PipelineMode.V1, "default", result
        ))

    def _resolve_asset(self, path: str) -> Path:
        candidate = Path(path).expanduser()
        if not candidate.exists() and not candidate.is_absolute() and self.policy.catalog_dir:
            in_catalog = Path(self.policy.catalog_dir) / candidate
            if in_catalog.exists():
                return in_catalog
        return candidate

    def _route_asset(self, request: BuildRequest, path: str, result: RoutingResult) -> RoutingResult:
        decision = RoutingDecision(
            RoutingPathway.EXPLICIT_ASSET,
            PATHWAY_FAILURE_POLICY[RoutingPathway.EXPLICIT_ASSET],
            reason=f"explicit reference '{path}'",
        )
        result.decisions.append(decision)
        result.pathway = RoutingPathway.EXPLICIT_ASSET
        try:
            result.blueprint = load_asset(self._resolve_asset(path))
        except AssetLoadError as e:
            decision.succeeded = False
            result.stage = RoutingPathway.EXPLICIT_ASSET.value
            result.errors.append(f"Asset load failed: {e}")
            result.error_kind = FailureCategory.ROUTING
            return result
        decision.succeeded = True
        result.success = True
        result.stage = RoutingPathway.EXPLICIT_ASSET.value
        return result

    def _route_catalog(self, request: BuildRequest, result: RoutingResult) -> bool:
        """Try the catalog; any failure continues to generation."""
        catalog = self.context.catalog
        if catalog is None:
            return False
        try:
            match = catalog.find_best_match(request.text, self.policy.catalog_threshold)
        except OSError as e:
            result.warnings.append(f"Catalog lookup failed: {e}")
            logger.warning(result.warnings[-1])
            return False
        if match is None:
            return False

        decision = RoutingDecision(
            RoutingPathway.CATALOG_MATCH,
            PATHWAY_FAILURE_POLICY[RoutingPathway.CATALOG_MATCH],
            reason=f"'{match.name}' score {match.score:.2f}",
        )
        result.decisions.append(decision)
        try:
            blueprint = load_asset(match.path)
        except AssetLoadError as e:
            decision.succeeded = False
            result.warnings.append(f"Catalog match '{match.name}' could not be loaded, generating instead: {e}")
            logger.warning(result.warnings[-1])
            return False

        decision.succeeded = True
        result.success = True
        result.pathway = RoutingPathway.CATALOG_MATCH
        result.stage = RoutingPathway.CATALOG_MATCH.value
        result.blueprint = blueprint
        result.metadata["catalog_match"] = {"name": match.name, "score": match.score, "path": str(match.path)}
        return True

    def _analyze(self, request: BuildRequest, result: RoutingResult) -> Analysis:
        try:
            analysis = self.context.analyzer.analyze(request.text)
        except Exception as e:
            default = self.policy.default_build_type
            result.warnings.append(f"Analysis failed ({e}); using default build type '{default}'")
            logger.warning(result.warnings[-1])
            analysis = Analysis(build_type=default, confidence=0.0, prompt=request.text)
            result.metadata["analysis_failure_policy"] = ANALYSIS_FAILURE_POLICY.value
        result.analysis = analysis
        return analysis

    def _generate(
        self,
        request: BuildRequest,
        analysis: Analysis,
        pathway: RoutingPathway,
        mode: PipelineMode,
        reason: str,
        result: RoutingResult,
        landmark=None,
    ) -> RoutingResult:
        decision = RoutingDecision(pathway, PATHWAY_FAILURE_POLICY[pathway], reason=reason)
        result.decisions.append(decision)
        result.pathway = pathway
        decomposer = CompoundDecomposer(self.context, mode=mode)

        if landmark is None and decomposer.requires_multi_step(request.text):
            logger.info(f"Compound build detected; decomposing via {pathway.value}")
            compound = decomposer.run(request, analysis)
            result.warnings.extend(compound.warnings)
            result.metadata["compound"] = {
                "succeeded": compound.succeeded,
                "failed": compound.failed,
                "calls_used": compound.calls_used,
                "truncated": compound.truncated,
            }
            decision.succeeded = compound.success
            if not compound.success:
                result.stage = f"{pathway.value}:{compound.stage}"
                result.errors.extend(compound.errors)
                result.error_kind = compound.error_kind
                return result
            if compound.failed:
                result.warnings.append(
                    f"Compound build partial: {len(compound.succeeded)} succeeded "
                    f"({', '.join(compound.succeeded)}), failed: {', '.join(compound.failed)}"
                )
            result.success = True
            result.stage = pathway.value
            result.blueprint = compound.blueprint
            return result

        pipeline = GenerationPipeline(self.context, mode=mode, landmark=landmark)
        outcome = pipeline.run(request, analysis=analysis)
        result.warnings.extend(outcome.warnings)
        result.metadata["pipeline"] = {
            "stage": outcome.stage.value,
            "repair_attempts": outcome.repair_attempts,
            "generation_calls": outcome.generation_calls,
        }
        decision.succeeded = outcome.success
        if not outcome.success:
            result.stage = f"{pathway.value}:{outcome.stage.value}"
            result.errors.extend(outcome.errors)
            result.error_kind = outcome.error_kind
            if outcome.cancelled:
                result.metadata["cancelled"] = True
            return result
        result.success = True
        result.stage = pathway.value
        result.blueprint = outcome.blueprint
        return result


__all__ = [
    "RoutingPathway",
    "FailurePolicy",
    "PATHWAY_FAILURE_POLICY",
    "ANALYSIS_FAILURE_POLICY",
    "RoutingDecision",
    "RoutingResult",
    "RequestRouter",
    "explicit_asset_path",
]
