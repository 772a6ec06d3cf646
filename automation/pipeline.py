"""
Generation Pipeline

Per build unit:

    Analyze -> [Reference] -> PlanGenerate -> BlueprintGenerate -> Validate
            -> {valid: done | invalid: RepairLoop (<= K attempts)} -> BuildOrder

Stage failures are returned as a PipelineResult carrying the originating
stage and the unresolved errors; exceptions are reserved for unexpected
faults. The cancel flag on the BuildContext is checked between stages.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union
import logging

from generation.core.blueprint import Analysis, Blueprint, BuildRequest, DesignPlan
from generation.core.types import Dimensions
from generation.ops.build_order import optimize_build_order
from generation.ops.sanitize import merge_set_runs
from validity.api.quick import detect_impossible_build
from validity.api.validate import ValidationOutcome, semantic_score, validate_blueprint
from automation.context import BuildContext
from automation.errors import FailureCategory, GenerationError
from automation.landmarks import Landmark
from automation.resilient_client import PromptPayload, SchemaHint
from automation.task_templates import (
    SYSTEM_PROMPT,
    blueprint_prompt,
    derive_allowlist,
    design_plan_prompt,
    repair_prompt,
    scene_plan_prompt,
)

logger = logging.getLogger(__name__)

PLAN_SCHEMA = SchemaHint(name="design_plan", container="object", required_keys=("dimensions", "materials"))
BLUEPRINT_SCHEMA = SchemaHint(name="blueprint", container="object", required_keys=("steps",))


class PipelineStage(str, Enum):
    """Stages of the generation pipeline."""
    ANALYZE = "analyze"
    REFERENCE = "reference"
    PLAN = "plan"
    BLUEPRINT = "blueprint"
    VALIDATE = "validate"
    REPAIR = "repair"
    ORDER = "order"
    DONE = "done"


class PipelineMode(str, Enum):
    """Which plan prompt drives the pipeline."""
    V1 = "v1"
    V2 = "v2"


@dataclass
class PipelineResult:
    """
    Outcome of one pipeline run.

    Attributes
    ----------
    success : bool
        Whether a valid, ordered blueprint was produced
    stage : PipelineStage
        Last stage reached (the failing stage on failure)
    blueprint : Blueprint, optional
        Final blueprint on success
    errors : list of str
        Unresolved errors on failure
    warnings : list of str
        Degradations and validation warnings
    error_kind : FailureCategory, optional
        Error taxonomy of the failure
    cancelled : bool
        True when the run stopped on the cancel flag
    """
    success: bool
    stage: PipelineStage
    blueprint: Optional[Blueprint] = None
    analysis: Optional[Analysis] = None
    plan: Optional[DesignPlan] = None
    validation: Optional[ValidationOutcome] = None
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    error_kind: Optional[FailureCategory] = None
    cancelled: bool = False
    repair_attempts: int = 0
    generation_calls: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "stage": self.stage.value,
            "blueprint": self.blueprint.to_dict() if self.blueprint else None,
            "plan": self.plan.to_dict() if self.plan else None,
            "validation": self.validation.to_dict() if self.validation else None,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "error_kind": self.error_kind.value if self.error_kind else None,
            "cancelled": self.cancelled,
            "repair_attempts": self.repair_attempts,
            "generation_calls": self.generation_calls,
            "metadata": dict(self.metadata),
        }


class _StageFailure(Exception):
    """Internal: unwinds to run() with a failed PipelineResult."""

    def __init__(self, result: PipelineResult):
        super().__init__(result.errors[0] if result.errors else result.stage.value)
        self.result = result


class GenerationPipeline:
    """
    Drives one build unit from request to ordered blueprint.

    Parameters
    ----------
    context : BuildContext
        Settings, client, collaborators and cancel flag
    mode : PipelineMode
        V1 uses the design-plan prompt; V2 uses the scene prompt
    landmark : Landmark, optional
        Landmark that seeds the V2 scene prompt
    budget : CallBudget, optional
        Shared call budget; every model call consumes one unit

    Examples
    --------
    >>> pipeline = GenerationPipeline(context)
    >>> result = pipeline.run(BuildRequest(text="small oak cabin with a door"))
    >>> if result.success:
    ...     print(len(result.blueprint.steps))
    """

    def __init__(
        self,
        context: BuildContext,
        mode: PipelineMode = PipelineMode.V1,
        landmark: Optional[Landmark] = None,
        budget=None,
    ):
        self.context = context
        self.mode = PipelineMode(mode)
        self.landmark = landmark
        self.budget = budget
        self._calls = 0
        self._warnings: List[str] = []

    @property
    def settings(self):
        return self.context.settings

    def _fail(
        self,
        stage: PipelineStage,
        errors: List[str],
        kind: Optional[FailureCategory],
        **extra,
    ) -> _StageFailure:
        logger.error(f"Pipeline failed at {stage.value}: {errors[0] if errors else 'unknown error'}")
        return _StageFailure(PipelineResult(
            success=False,
            stage=stage,
            errors=list(errors),
            warnings=list(self._warnings),
            error_kind=kind,
            generation_calls=self._calls,
            **extra,
        ))

    def _check_cancel(self, stage: PipelineStage) -> None:
        if self.context.is_cancelled():
            logger.info(f"Pipeline cancelled before {stage.value}")
            failure = self._fail(stage, ["Build cancelled"], None)
            failure.result.cancelled = True
            raise failure

    def _invoke(self, stage: PipelineStage, payload: PromptPayload, schema: SchemaHint) -> Dict[str, Any]:
        if self.context.client is None:
            raise self._fail(stage, ["No generation client configured"], FailureCategory.ROUTING)
        if self.budget is not None and not self.budget.consume():
            raise self._fail(stage, ["Generation call budget exhausted"], FailureCategory.ROUTING)
        self._calls += 1
        try:
            return self.context.client.invoke(payload, schema).data
        except GenerationError as e:
            kind = FailureCategory.RETRYABLE_TRANSIENT if e.is_retryable else None
            failure = self._fail(stage, [e.message], kind)
            failure.result.metadata["generation_error"] = e.to_dict()
            raise failure from e

    def run(
        self,
        request: Union[BuildRequest, str],
        analysis: Optional[Analysis] = None,
    ) -> PipelineResult:
        """
        Run the pipeline for one build unit.

        Parameters
        ----------
        request : BuildRequest or str
            The request
        analysis : Analysis, optional
            Analyzer output; computed with the context analyzer if omitted

        Returns
        -------
        PipelineResult
            Success with an ordered blueprint, or the failing stage and its
            unresolved errors
        """
        if isinstance(request, str):
            request = BuildRequest(text=request)
        self._calls = 0
        self._warnings = []
        try:
            return self._run(request, analysis)
        except _StageFailure as failure:
            return failure.result

    def _run(self, request: BuildRequest, analysis: Optional[Analysis]) -> PipelineResult:
        self._check_cancel(PipelineStage.ANALYZE)
        if analysis is None:
            analysis = self.context.analyzer.analyze(request.text)
        logger.info(f"Pipeline ({self.mode.value}) started for build type '{analysis.build_type}'")

        self._check_cancel(PipelineStage.REFERENCE)
        reference = self._reference(request)

        self._check_cancel(PipelineStage.PLAN)
        plan = self._plan(request, analysis, reference)

        self._check_cancel(PipelineStage.BLUEPRINT)
        allowlist = derive_allowlist(plan, self.settings.validation.max_unique_blocks)
        raw = self._blueprint(plan, allowlist, analysis)

        self._check_cancel(PipelineStage.VALIDATE)
        outcome = self._validate(raw, analysis, plan)

        repair_attempts = 0
        if not outcome.valid:
            raw, outcome, repair_attempts = self._repair_loop(raw, outcome, analysis, plan, allowlist)

        self._check_cancel(PipelineStage.ORDER)
        blueprint, merge_report = merge_set_runs(outcome.blueprint)
        blueprint, order_report = optimize_build_order(blueprint)
        blueprint = Blueprint(
            size=blueprint.size,
            palette=blueprint.palette,
            steps=blueprint.steps,
            build_type=blueprint.build_type,
            generation_method="llm_v2" if self.mode == PipelineMode.V2 else "llm",
            metadata={
                **blueprint.metadata,
                "score": outcome.score,
                "repair_attempts": repair_attempts,
                "fills_created": merge_report.metrics.get("fills_created", 0),
            },
        )
        logger.info(
            f"Pipeline complete: {len(blueprint.steps)} steps, score {outcome.score:.2f}, "
            f"{repair_attempts} repair attempt(s), {self._calls} model call(s)"
        )
        return PipelineResult(
            success=True,
            stage=PipelineStage.DONE,
            blueprint=blueprint,
            analysis=analysis,
            plan=plan,
            validation=outcome,
            warnings=self._warnings + list(outcome.warnings),
            repair_attempts=repair_attempts,
            generation_calls=self._calls,
            metadata={"order": order_report.metrics},
        )

    def _reference(self, request: BuildRequest) -> Optional[Dict[str, Any]]:
        """Describe the attached image; any failure degrades to no reference."""
        if request.image is None:
            return None
        service = self.context.reference_service
        if service is None:
            self._warnings.append("Image attached but no visual reference service configured")
            logger.warning(self._warnings[-1])
            return None
        try:
            reference = service.describe(request.image, request.text)
        except Exception as e:
            self._warnings.append(f"Visual reference unavailable: {e}")
            logger.warning(self._warnings[-1])
            return None
        if not isinstance(reference, dict):
            self._warnings.append("Visual reference returned no description")
            logger.warning(self._warnings[-1])
            return None
        logger.info(f"Visual reference: {reference.get('subject', 'unknown subject')}")
        return reference

    def _plan(self, request: BuildRequest, analysis: Analysis, reference: Optional[Dict[str, Any]]) -> DesignPlan:
        policy = self.settings.generation
        if self.mode == PipelineMode.V2:
            text = scene_plan_prompt(request.text, analysis, self.landmark)
        else:
            text = design_plan_prompt(request.text, analysis, reference)
        data = self._invoke(
            PipelineStage.PLAN,
            PromptPayload(
                user=text,
                system=SYSTEM_PROMPT,
                temperature=policy.plan_temperature,
                max_tokens=policy.plan_max_tokens,
                label="design_plan",
            ),
            PLAN_SCHEMA,
        )
        try:
            plan = DesignPlan.from_dict(data)
        except ValueError as e:
            raise self._fail(PipelineStage.PLAN, [f"Malformed design plan: {e}"],
                             FailureCategory.VALIDATION, analysis=analysis) from e

        if not plan.materials:
            raise self._fail(PipelineStage.PLAN, ["No valid blocks found in design plan materials"],
                             FailureCategory.VALIDATION, analysis=analysis)

        fixed = self._bound_dimensions(plan.dimensions, analysis)
        if fixed != plan.dimensions:
            self._warnings.append(
                f"Design plan dimensions {plan.dimensions.as_tuple()} adjusted to {fixed.as_tuple()}"
            )
        features = list(plan.features)
        for feature in analysis.features:
            if feature not in features:
                features.append(feature)
        plan = DesignPlan(
            dimensions=fixed,
            style=plan.style,
            materials=dict(plan.materials),
            features=features,
            description=plan.description,
        )
        logger.info(f"Design plan: {plan.dimensions.as_tuple()} {plan.style}, {len(plan.materials)} materials")
        return plan

    def _bound_dimensions(self, dims: Dimensions, analysis: Analysis) -> Dimensions:
        """Fill non-positive axes from hints or the minimum footprint; clamp to limits."""
        vpolicy = self.settings.validation
        min_w, min_h, min_d = vpolicy.min_footprint_for(analysis.build_type)
        hints = analysis.dimensions
        if self.landmark is not None:
            hints = self.landmark.default_bounds

        def axis(value: int, hint: Optional[int], minimum: int, limit: int) -> int:
            if value <= 0:
                value = hint if hint and hint > 0 else minimum
            return min(value, limit)

        return Dimensions(
            width=axis(dims.width, hints.width if hints else None, min_w, vpolicy.max_width),
            height=axis(dims.height, hints.height if hints else None, min_h, vpolicy.max_height),
            depth=axis(dims.depth, hints.depth if hints else None, min_d, vpolicy.max_depth),
        )

    def _blueprint(self, plan: DesignPlan, allowlist: List[str], analysis: Analysis) -> Dict[str, Any]:
        policy = self.settings.generation
        data = self._invoke(
            PipelineStage.BLUEPRINT,
            PromptPayload(
                user=blueprint_prompt(plan, allowlist, self.context.bulk_available, analysis.build_type),
                system=SYSTEM_PROMPT,
                temperature=policy.blueprint_temperature,
                max_tokens=policy.blueprint_max_tokens,
                label="blueprint",
            ),
            BLUEPRINT_SCHEMA,
        )
        return self._fill_defaults(data, plan, allowlist, analysis)

    @staticmethod
    def _fill_defaults(data: Dict[str, Any], plan: DesignPlan, allowlist: List[str], analysis: Analysis) -> Dict[str, Any]:
        raw = dict(data)
        raw.setdefault("size", plan.dimensions.to_dict())
        if not raw.get("palette"):
            raw["palette"] = list(allowlist)
        if not raw.get("buildType"):
            raw["buildType"] = analysis.build_type
        return raw

    def _validate(self, raw: Dict[str, Any], analysis: Analysis, plan: DesignPlan) -> ValidationOutcome:
        """Fast-path screen, then full validation."""
        quick = detect_impossible_build(raw, self.settings.validation)
        if not quick.valid:
            error = f"{quick.reason.value}: {quick.message}"
            logger.info(f"Blueprint rejected by fast path: {error}")
            return ValidationOutcome(valid=False, errors=[error], warnings=list(quick.warnings),
                                     score=semantic_score(1, len(quick.warnings)))
        outcome = validate_blueprint(
            raw,
            analysis=analysis,
            plan=plan,
            policy=self.settings.validation,
            bulk_available=self.context.bulk_available,
        )
        outcome.warnings = list(quick.warnings) + outcome.warnings
        return outcome

    def _repair_loop(
        self,
        raw: Dict[str, Any],
        outcome: ValidationOutcome,
        analysis: Analysis,
        plan: DesignPlan,
        allowlist: List[str],
    ):
        """
        Re-invoke generation with the accumulated errors until valid.

        Exhaustion is a terminal failure carrying the last error set.
        """
        max_attempts = self.settings.repair.max_attempts
        accumulated: List[str] = []
        for error in outcome.errors:
            if error not in accumulated:
                accumulated.append(error)

        for attempt in range(1, max_attempts + 1):
            self._check_cancel(PipelineStage.REPAIR)
            logger.info(f"Repair attempt {attempt}/{max_attempts} with {len(accumulated)} accumulated error(s)")
            quality = None
            if self.settings.repair.include_quality_score:
                quality = {
                    "score": outcome.score,
                    "penalties": outcome.penalty_breakdown(),
                    "warnings": list(outcome.warnings),
                }
            data = self._invoke(
                PipelineStage.REPAIR,
                PromptPayload(
                    user=repair_prompt(raw, list(accumulated), plan, allowlist, quality, attempt, max_attempts),
                    system=SYSTEM_PROMPT,
                    temperature=self.settings.generation.repair_temperature,
                    max_tokens=self.settings.generation.blueprint_max_tokens,
                    label="repair",
                ),
                BLUEPRINT_SCHEMA,
            )
            raw = self._fill_defaults(data, plan, allowlist, analysis)
            outcome = self._validate(raw, analysis, plan)
            if outcome.valid:
                logger.info(f"Repair succeeded on attempt {attempt} (score {outcome.score:.2f})")
                return raw, outcome, attempt
            for error in outcome.errors:
                if error not in accumulated:
                    accumulated.append(error)

        raise self._fail(
            PipelineStage.REPAIR,
            list(outcome.errors),
            FailureCategory.VALIDATION,
            analysis=analysis,
            plan=plan,
            validation=outcome,
            repair_attempts=max_attempts,
        )


__all__ = [
    "PipelineStage",
    "PipelineMode",
    "PipelineResult",
    "GenerationPipeline",
    "PLAN_SCHEMA",
    "BLUEPRINT_SCHEMA",
]
