"""
Unit tests for compound request decomposition.
"""

import copy
import logging

from asg_policies import BuildSettings, CompoundPolicy
from automation.compound import CallBudget, CompoundDecomposer, LayoutComponent, merge_components
from automation.context import BuildContext
from automation.errors import ErrorKind, FailureCategory, GenerationError
from automation.resilient_client import StructuredResult
from generation.core import Blueprint, Dimensions, OperationKind, Vec3


PLAN = {
    "dimensions": {"width": 7, "height": 6, "depth": 7},
    "materials": {
        "foundation": "cobblestone",
        "primary": "oak_planks",
        "roof": "oak_stairs",
        "door": "oak_door",
    },
    "features": ["door"],
}

HOUSE = {
    "size": {"width": 7, "height": 6, "depth": 7},
    "palette": ["cobblestone", "oak_planks", "oak_stairs", "oak_door"],
    "buildType": "house",
    "steps": [
        {"op": "fill", "block": "cobblestone", "from": [0, 0, 0], "to": [6, 0, 6]},
        {"op": "hollow_box", "block": "oak_planks", "from": [0, 1, 0], "to": [6, 4, 6]},
        {"op": "roof_gable", "block": "oak_stairs", "from": [0, 5, 0], "to": [6, 5, 6]},
        {"op": "door", "block": "oak_door", "pos": [3, 1, 0]},
    ],
}


def _layout(n):
    return {
        "layout": "row of houses",
        "components": [
            {
                "name": f"house_{i + 1}",
                "buildType": "house",
                "description": f"small oak house number {i + 1}",
                "offset": {"x": i * 12, "y": 0, "z": 0},
            }
            for i in range(n)
        ],
    }


class LabelClient:
    """Generation client answering by prompt label."""

    def __init__(self, layout, fail_on=None):
        self.layout = layout
        self.fail_on = fail_on
        self.labels = []

    def invoke(self, payload, schema_hint=None):
        self.labels.append(payload.label)
        if payload.label == "compound_layout":
            data = self.layout
        elif payload.label == "design_plan":
            if self.fail_on and self.fail_on in payload.user:
                raise GenerationError(ErrorKind.TERMINAL, "design_plan: model refused")
            data = PLAN
        else:
            data = {"steps": HOUSE["steps"]}
        return StructuredResult(data=copy.deepcopy(data), raw_text="", attempts=1)


def _context(client, **compound):
    settings = BuildSettings(compound=CompoundPolicy(**compound))
    return BuildContext(settings=settings, client=client)


class TestRequiresMultiStep:
    """Tests for compound trigger detection."""

    def setup_method(self):
        self.decomposer = CompoundDecomposer(BuildContext())

    def test_trigger_keyword(self):
        assert self.decomposer.requires_multi_step("a medieval village by the river")

    def test_count_above_threshold(self):
        assert self.decomposer.requires_multi_step("build 5 houses in a row")
        assert not self.decomposer.requires_multi_step("build 2 houses")

    def test_distinct_nouns(self):
        assert self.decomposer.requires_multi_step("a castle with a tower, a church and a wall")
        assert not self.decomposer.requires_multi_step("a castle with a tower")

    def test_single_structure(self):
        assert not self.decomposer.requires_multi_step("small oak cabin with a door")

    def test_disabled(self):
        decomposer = CompoundDecomposer(_context(None, enabled=False))
        assert not decomposer.requires_multi_step("a village")


class TestCapComponents:
    """Tests for the component cap."""

    def test_caps_at_limit_and_logs(self, caplog):
        decomposer = CompoundDecomposer(_context(None, max_components=10))
        components = _layout(15)["components"]

        with caplog.at_level(logging.WARNING, logger="automation.compound"):
            kept, dropped = decomposer.cap_components(components)

        assert len(kept) == 10
        assert dropped == 5
        assert kept[-1]["name"] == "house_10"
        assert "capping at 10" in caplog.text

    def test_under_limit_unchanged(self):
        decomposer = CompoundDecomposer(_context(None, max_components=10))
        kept, dropped = decomposer.cap_components(_layout(3)["components"])
        assert len(kept) == 3
        assert dropped == 0


class TestCallBudget:
    """Tests for CallBudget."""

    def test_consume(self):
        budget = CallBudget(2)
        assert budget.consume()
        assert budget.consume()
        assert not budget.consume()
        assert budget.exhausted
        assert budget.remaining == 0

    def test_consume_many(self):
        budget = CallBudget(3)
        assert not budget.consume(4)
        assert budget.used == 0


class TestCompoundRun:
    """Tests for CompoundDecomposer.run."""

    def test_truncated_layout(self, caplog):
        """A 15-component layout keeps exactly 10 components."""
        client = LabelClient(_layout(15))
        context = _context(client, max_components=10, max_calls=100)

        with caplog.at_level(logging.WARNING, logger="automation.compound"):
            result = CompoundDecomposer(context).run("a village of houses")

        assert len(result.components) == 10
        assert result.truncated == 5
        assert "capping at 10" in caplog.text
        assert result.success
        assert len(result.succeeded) == 10

    def test_non_object_entries_do_not_use_slots(self):
        """Junk layout entries are dropped before the cap is applied."""
        layout = _layout(4)
        layout["components"] = ["house", 7, None] + layout["components"]
        context = _context(LabelClient(layout), max_components=3, max_calls=100)

        result = CompoundDecomposer(context).run("a village of houses")

        assert [c.name for c in result.components] == ["house_1", "house_2", "house_3"]
        assert result.truncated == 1
        assert result.succeeded == ["house_1", "house_2", "house_3"]

    def test_budget_bounds_all_calls(self):
        """Layout plus two calls per component stays within the budget."""
        client = LabelClient(_layout(10))
        context = _context(client, max_calls=15)

        result = CompoundDecomposer(context).run("a village of houses")

        assert len(client.labels) == 15
        assert result.calls_used == 15
        assert result.succeeded == [f"house_{i}" for i in range(1, 8)]
        assert any("Reached max generation calls" in w for w in result.warnings)

    def test_partial_failure_continues(self):
        client = LabelClient(_layout(3), fail_on="number 2")
        context = _context(client)

        result = CompoundDecomposer(context).run("a village of houses")

        assert result.success
        assert result.succeeded == ["house_1", "house_3"]
        assert list(result.failed) == ["house_2"]
        assert result.blueprint.metadata["components"] == ["house_1", "house_3"]

    def test_all_components_fail(self):
        client = LabelClient(_layout(2), fail_on="small oak house")
        context = _context(client)

        result = CompoundDecomposer(context).run("a village of houses")

        assert not result.success
        assert result.error_kind == FailureCategory.VALIDATION
        assert result.errors[0] == "No compound components were generated"
        assert any(e.startswith("house_1:") for e in result.errors)

    def test_layout_failure(self):
        context = BuildContext()

        result = CompoundDecomposer(context).run("a village")

        assert not result.success
        assert result.stage == "compound_layout"
        assert result.error_kind == FailureCategory.ROUTING

    def test_cancel_stops_components(self):
        client = LabelClient(_layout(3))
        context = _context(client)
        context.cancel()

        result = CompoundDecomposer(context).run("a village of houses")

        assert client.labels == ["compound_layout"]
        assert not result.success
        assert any("cancelled" in w for w in result.warnings)


class TestMergeComponents:
    """Tests for merge_components."""

    def test_markers_and_palette_union(self):
        house = Blueprint.from_dict(HOUSE)
        tower = Blueprint.from_dict(dict(HOUSE, palette=["stone_bricks", "oak_planks"]))
        pairs = [
            (LayoutComponent(name="house", description="house"), house),
            (LayoutComponent(name="tower", description="tower", offset=Vec3(12, 0, 0)), tower),
        ]

        merged = merge_components(pairs)

        kinds = [step.kind for step in merged.steps]
        assert kinds[0] == OperationKind.CURSOR_RESET
        second = len(house.steps) + 1
        assert kinds[second] == OperationKind.CURSOR_RESET
        assert kinds[second + 1] == OperationKind.MOVE
        assert merged.steps[second + 1].offset == Vec3(12, 0, 0)
        assert merged.palette[-1] == "stone_bricks"
        assert len(merged.palette) == len(set(merged.palette))
        assert merged.size == Dimensions(19, 6, 7)
        assert merged.build_type == "compound"

    def test_explicit_size(self):
        house = Blueprint.from_dict(HOUSE)
        merged = merge_components([(LayoutComponent(name="a", description="a"), house)], Dimensions(30, 10, 30))
        assert merged.size == Dimensions(30, 10, 30)
        assert OperationKind.MOVE not in [s.kind for s in merged.steps]
