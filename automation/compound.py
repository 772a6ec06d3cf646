"""
Compound Decomposer

Detects requests that imply several distinct structures, asks the model for
a layout, runs the generation pipeline once per component, and merges the
components that succeed into one blueprint.

A failed component is skipped, not fatal to the compound build. All model
work is bounded by an explicit call budget.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union
import logging
import re

from generation.core.blueprint import Analysis, Blueprint, BuildRequest
from generation.core.operation import Operation, cursor_reset, move
from generation.core.types import Dimensions, Vec3
from automation.context import BuildContext
from automation.errors import FailureCategory, GenerationError
from automation.pipeline import GenerationPipeline, PipelineMode, PipelineResult
from automation.resilient_client import PromptPayload, SchemaHint
from automation.task_templates import SYSTEM_PROMPT, compound_layout_prompt

logger = logging.getLogger(__name__)

LAYOUT_SCHEMA = SchemaHint(name="compound_layout", container="object", required_keys=("components",))

_COUNT_PATTERN = re.compile(r"(\d+)\s+(houses?|buildings?|towers?|structures?|homes?|shops?)\b")


class CallBudget:
    """
    Counter bounding the generation calls of one compound build.

    Parameters
    ----------
    max_calls : int
        Total calls allowed, shared by the layout call and every component
        pipeline
    """

    def __init__(self, max_calls: int):
        self.max_calls = max(int(max_calls), 0)
        self.used = 0

    @property
    def remaining(self) -> int:
        return max(self.max_calls - self.used, 0)

    @property
    def exhausted(self) -> bool:
        return self.used >= self.max_calls

    def consume(self, n: int = 1) -> bool:
        """Take ``n`` calls from the budget; False when not enough remain."""
        if self.used + n > self.max_calls:
            return False
        self.used += n
        return True


@dataclass
class LayoutComponent:
    """One structure in a compound layout."""
    name: str
    description: str
    build_type: str = "house"
    offset: Vec3 = field(default_factory=lambda: Vec3(0, 0, 0))
    size: Optional[Dimensions] = None

    @staticmethod
    def from_dict(d: Dict[str, Any], index: int) -> "LayoutComponent":
        size = d.get("size")
        offset = Vec3.from_any(d.get("offset") or d.get("position")) or Vec3(0, 0, 0)
        name = str(d.get("name") or d.get("id") or f"component_{index + 1}")
        return LayoutComponent(
            name=name,
            description=str(d.get("description") or name),
            build_type=str(d.get("buildType") or d.get("type") or "house"),
            offset=offset,
            size=Dimensions.from_dict(size) if isinstance(size, dict) else None,
        )


@dataclass
class CompoundResult:
    """
    Outcome of a compound build.

    Attributes
    ----------
    success : bool
        True when at least one component succeeded and was merged
    blueprint : Blueprint, optional
        Merged blueprint
    succeeded : list of str
        Names of merged components
    failed : dict
        Component name -> errors for skipped components
    """
    success: bool
    blueprint: Optional[Blueprint] = None
    components: List[LayoutComponent] = field(default_factory=list)
    succeeded: List[str] = field(default_factory=list)
    failed: Dict[str, List[str]] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    stage: str = "compound"
    error_kind: Optional[FailureCategory] = None
    calls_used: int = 0
    truncated: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "blueprint": self.blueprint.to_dict() if self.blueprint else None,
            "components": [c.name for c in self.components],
            "succeeded": list(self.succeeded),
            "failed": dict(self.failed),
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "stage": self.stage,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "calls_used": self.calls_used,
            "truncated": self.truncated,
        }


def merge_components(
    pairs: List[Tuple[LayoutComponent, Blueprint]],
    size: Optional[Dimensions] = None,
) -> Blueprint:
    """
    Merge component blueprints into one.

    Palettes are unioned in order. Each component's steps are prefixed by a
    cursor reset and, for a non-zero layout offset, a move marker.

    Parameters
    ----------
    pairs : list of (LayoutComponent, Blueprint)
        Each succeeded component with its own layout entry
    size : Dimensions, optional
        Overall size; computed from offsets and component sizes if omitted

    Returns
    -------
    Blueprint
        Merged blueprint with build type "compound"
    """
    palette: List[str] = []
    steps: List[Operation] = []
    max_w = max_h = max_d = 0
    for component, blueprint in pairs:
        for block in blueprint.palette:
            if block not in palette:
                palette.append(block)
        steps.append(cursor_reset())
        if not component.offset.is_zero():
            steps.append(move(component.offset))
        steps.extend(blueprint.steps)
        w, h, d = blueprint.size.as_tuple()
        max_w = max(max_w, component.offset.x + w)
        max_h = max(max_h, component.offset.y + h)
        max_d = max(max_d, component.offset.z + d)

    return Blueprint(
        size=size or Dimensions(width=max_w, height=max_h, depth=max_d),
        palette=tuple(palette),
        steps=tuple(steps),
        build_type="compound",
        generation_method="compound",
        metadata={"components": [c.name for c, _ in pairs]},
    )


class CompoundDecomposer:
    """
    Splits compound requests into per-component pipeline runs.

    Parameters
    ----------
    context : BuildContext
        Settings (CompoundPolicy), client and cancel flag
    mode : PipelineMode
        Prompt mode used for each component pipeline
    """

    def __init__(self, context: BuildContext, mode: PipelineMode = PipelineMode.V1):
        self.context = context
        self.mode = PipelineMode(mode)

    @property
    def policy(self):
        return self.context.settings.compound

    def requires_multi_step(self, text: str) -> bool:
        """
        Whether a request is a compound build.

        True on a trigger keyword, an explicit count ("5 houses") above the
        count threshold, or at least ``distinct_noun_threshold`` distinct
        structure nouns.
        """
        policy = self.policy
        if not policy.enabled or not text:
            return False
        lowered = text.lower()

        for keyword in policy.trigger_keywords:
            if re.search(rf"\b{re.escape(keyword.lower())}\b", lowered):
                logger.debug(f"Compound trigger keyword '{keyword}'")
                return True

        for count, noun in _COUNT_PATTERN.findall(lowered):
            if int(count) > policy.count_threshold:
                logger.debug(f"Compound trigger count '{count} {noun}'")
                return True

        nouns = {
            noun for noun in policy.structure_nouns
            if re.search(rf"\b{re.escape(noun.lower())}(s|es)?\b", lowered)
        }
        if len(nouns) >= policy.distinct_noun_threshold:
            logger.debug(f"Compound trigger nouns {sorted(nouns)}")
            return True
        return False

    def cap_components(self, components: List[Dict[str, Any]]) -> Tuple[List[Dict[str, Any]], int]:
        """Keep the first ``max_components`` entries; return (kept, dropped count)."""
        limit = self.policy.max_components
        if len(components) <= limit:
            return list(components), 0
        dropped = len(components) - limit
        logger.warning(f"Plan has {len(components)} components, capping at {limit} ({dropped} dropped)")
        return list(components[:limit]), dropped

    def plan_layout(self, request: BuildRequest, analysis: Analysis, budget: CallBudget):
        """
        Ask the model for a layout and cap its component count.

        Returns
        -------
        tuple
            (components, dropped count, raw layout dict)
        """
        if self.context.client is None:
            raise GenerationError("terminal", "No generation client configured")
        if not budget.consume():
            raise GenerationError("terminal", "Generation call budget exhausted before layout")
        data = self.context.client.invoke(
            PromptPayload(
                user=compound_layout_prompt(request.text, self.policy.max_components, theme=analysis.theme),
                system=SYSTEM_PROMPT,
                temperature=self.context.settings.generation.blueprint_temperature,
                max_tokens=self.context.settings.generation.plan_max_tokens,
                label="compound_layout",
            ),
            LAYOUT_SCHEMA,
        ).data
        raw_components = data.get("components") or []
        if not isinstance(raw_components, list):
            raw_components = []
        entries = [c for c in raw_components if isinstance(c, dict)]
        if len(entries) < len(raw_components):
            logger.warning(f"Ignoring {len(raw_components) - len(entries)} layout entries that are not objects")
        kept, dropped = self.cap_components(entries)
        components = [LayoutComponent.from_dict(c, i) for i, c in enumerate(kept)]
        logger.info(f"Compound layout: {len(components)} component(s)")
        return components, dropped, data

    def _component_analysis(self, component: LayoutComponent, parent: Analysis) -> Analysis:
        return Analysis(
            build_type=component.build_type,
            confidence=parent.confidence,
            theme=parent.theme,
            dimensions=component.size,
            features=[],
            materials=list(parent.materials),
            prompt=component.description,
        )

    def run(
        self,
        request: Union[BuildRequest, str],
        analysis: Optional[Analysis] = None,
        budget: Optional[CallBudget] = None,
    ) -> CompoundResult:
        """
        Plan, generate and merge a compound build.

        Parameters
        ----------
        request : BuildRequest or str
            The request
        analysis : Analysis, optional
            Analyzer output for the whole request
        budget : CallBudget, optional
            Call budget; a fresh one from CompoundPolicy.max_calls by default

        Returns
        -------
        CompoundResult
            Merged blueprint with the succeeded and failed components
        """
        if isinstance(request, str):
            request = BuildRequest(text=request)
        if analysis is None:
            analysis = self.context.analyzer.analyze(request.text)
        budget = budget or CallBudget(self.policy.max_calls)
        result = CompoundResult(success=False)

        try:
            components, dropped, layout = self.plan_layout(request, analysis, budget)
        except GenerationError as e:
            result.errors.append(f"Layout planning failed: {e.message}")
            result.stage = "compound_layout"
            result.error_kind = FailureCategory.RETRYABLE_TRANSIENT if e.is_retryable else FailureCategory.ROUTING
            result.calls_used = budget.used
            logger.error(result.errors[-1])
            return result

        result.components = components
        result.truncated = dropped
        if dropped:
            result.warnings.append(f"Layout capped at {self.policy.max_components} components ({dropped} dropped)")

        pairs: List[Tuple[LayoutComponent, Blueprint]] = []
        for component in components:
            if self.context.is_cancelled():
                result.warnings.append("Build cancelled during compound generation")
                logger.info(result.warnings[-1])
                break
            if budget.exhausted:
                message = f"Reached max generation calls ({budget.max_calls}), stopping component generation"
                result.warnings.append(message)
                logger.warning(message)
                break

            pipeline = GenerationPipeline(self.context, mode=self.mode, budget=budget)
            component_result: PipelineResult = pipeline.run(
                BuildRequest(text=component.description, actor=request.actor),
                analysis=self._component_analysis(component, analysis),
            )
            if component_result.success:
                pairs.append((component, component_result.blueprint))
                result.succeeded.append(component.name)
                logger.info(f"Component '{component.name}' generated")
            else:
                result.failed[component.name] = list(component_result.errors)
                logger.warning(
                    f"Component '{component.name}' failed at {component_result.stage.value}: "
                    f"{component_result.errors[:1]}; skipping"
                )

        result.calls_used = budget.used
        if not pairs:
            result.errors.append("No compound components were generated")
            result.error_kind = FailureCategory.VALIDATION
            for name, errors in result.failed.items():
                result.errors.extend(f"{name}: {e}" for e in errors)
            return result

        total = layout.get("totalSize") or layout.get("size")
        size = Dimensions.from_dict(total) if isinstance(total, dict) else None
        if size is not None and 0 in size.as_tuple():
            size = None
        result.blueprint = merge_components(pairs, size)
        result.success = True
        logger.info(
            f"Compound build merged: {len(result.succeeded)} succeeded, {len(result.failed)} failed, "
            f"{budget.used}/{budget.max_calls} calls"
        )
        return result


__all__ = [
    "CallBudget",
    "LayoutComponent",
    "CompoundResult",
    "CompoundDecomposer",
    "merge_components",
]
