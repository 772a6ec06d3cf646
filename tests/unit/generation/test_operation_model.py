"""
Unit tests for the blueprint data model.

Tests the closed operation set, the mandatory-fallback rule for bulk
kinds, alias handling in from_dict and Blueprint serialization.
"""

import pytest

from generation.core import (
    Blueprint,
    DesignPlan,
    Dimensions,
    Operation,
    OperationKind,
    Vec3,
    cursor_reset,
    move,
)


def _fill(block="stone"):
    return Operation(kind=OperationKind.FILL, block=block, from_pos=Vec3(0, 0, 0), to_pos=Vec3(2, 0, 2))


class TestOperationKind:
    """Tests for OperationKind parsing."""

    def test_parse_known_and_unknown(self):
        """Known names parse case-insensitively; unknown names give None."""
        assert OperationKind.parse(" FILL ") == OperationKind.FILL
        assert OperationKind.parse("teleport") is None
        assert OperationKind.parse(42) is None

    def test_bulk_and_marker_flags(self):
        """Bulk and marker kinds are flagged."""
        assert OperationKind.WE_FILL.is_bulk
        assert not OperationKind.FILL.is_bulk
        assert OperationKind.MOVE.is_marker
        assert OperationKind.CURSOR_RESET.is_marker


class TestFallbackInvariant:
    """Tests for the bulk fallback rule."""

    def test_bulk_requires_fallback(self):
        """A bulk operation without a fallback cannot be constructed."""
        with pytest.raises(ValueError, match="requires a stepwise fallback"):
            Operation(kind=OperationKind.WE_FILL, block="stone")

    def test_bulk_fallback_must_be_stepwise(self):
        """A bulk fallback cannot itself be bulk."""
        inner = Operation(kind=OperationKind.WE_FILL, block="stone", fallback=_fill())
        with pytest.raises(ValueError, match="must be a stepwise kind"):
            Operation(kind=OperationKind.WE_WALLS, block="stone", fallback=inner)

    def test_stepwise_cannot_carry_fallback(self):
        """Stepwise operations reject a fallback."""
        with pytest.raises(ValueError, match="cannot carry a fallback"):
            Operation(kind=OperationKind.FILL, block="stone", fallback=_fill())

    def test_valid_bulk(self):
        """A bulk operation with a stepwise fallback is accepted."""
        op = Operation(kind=OperationKind.WE_FILL, block="stone", fallback=_fill())
        assert op.fallback.kind == OperationKind.FILL


class TestOperationFromDict:
    """Tests for Operation.from_dict."""

    def test_aliases_and_params(self):
        """Field aliases map to canonical fields; extras land in params."""
        op = Operation.from_dict({
            "type": "window_strip",
            "block": "glass_pane",
            "start": {"x": 0, "y": 2, "z": 0},
            "end": [4, 2, 0],
            "spacing": 2,
        })
        assert op.kind == OperationKind.WINDOW_STRIP
        assert op.from_pos == Vec3(0, 2, 0)
        assert op.to_pos == Vec3(4, 2, 0)
        assert op.params == {"spacing": 2}

    def test_unknown_kind_raises(self):
        """Unknown kinds are rejected."""
        with pytest.raises(ValueError, match="Unknown operation kind"):
            Operation.from_dict({"op": "explode"})

    def test_to_dict_uses_json_names(self):
        """to_dict writes from/to and nested fallbacks."""
        op = Operation(kind=OperationKind.WE_FILL, block="stone", from_pos=Vec3(0, 0, 0),
                       to_pos=Vec3(9, 0, 9), fallback=_fill())
        d = op.to_dict()
        assert d["op"] == "we_fill"
        assert d["from"] == {"x": 0, "y": 0, "z": 0}
        assert d["fallback"]["op"] == "fill"

    def test_max_y_includes_height_and_peak(self):
        """max_y accounts for height and roof peak."""
        cyl = Operation(kind=OperationKind.CYLINDER, block="stone", base=Vec3(0, 2, 0), radius=2, height=5)
        assert cyl.max_y() == 6
        roof = Operation(kind=OperationKind.ROOF_GABLE, block="oak_stairs", from_pos=Vec3(0, 5, 0),
                         to_pos=Vec3(4, 5, 4), params={"peakHeight": 3})
        assert roof.max_y() == 8

    def test_translated_moves_fallback(self):
        """Translation moves the operation and its fallback."""
        op = Operation(kind=OperationKind.WE_FILL, block="stone", from_pos=Vec3(0, 0, 0),
                       to_pos=Vec3(1, 1, 1), fallback=_fill())
        moved = op.translated(Vec3(10, 0, 0))
        assert moved.from_pos == Vec3(10, 0, 0)
        assert moved.fallback.from_pos == Vec3(10, 0, 0)
        assert op.from_pos == Vec3(0, 0, 0)


class TestBlueprint:
    """Tests for Blueprint serialization."""

    def test_from_dict_dict_palette(self):
        """A role -> block palette contributes its unique values."""
        bp = Blueprint.from_dict({
            "size": {"width": 5, "height": 4, "depth": 5},
            "palette": {"primary": "oak_planks", "trim": "oak_planks", "roof": "oak_stairs"},
            "steps": [{"op": "set", "block": "oak_planks", "pos": [0, 0, 0]}],
            "buildType": "house",
        })
        assert bp.palette == ("oak_planks", "oak_stairs")
        assert bp.build_type == "house"
        assert bp.size == Dimensions(5, 4, 5)

    def test_to_dict_round_trip(self):
        """to_dict output rebuilds an equal blueprint."""
        bp = Blueprint(
            size=Dimensions(3, 1, 3),
            palette=("stone",),
            steps=(cursor_reset(), move(Vec3(4, 0, 0)), _fill()),
            build_type="platform",
        )
        assert Blueprint.from_dict(bp.to_dict()) == bp

    def test_all_blocks_includes_step_blocks(self):
        """all_blocks adds blocks used by steps but missing from the palette."""
        bp = Blueprint(size=Dimensions(3, 1, 3), palette=("stone",), steps=(_fill("dirt"),))
        assert bp.all_blocks() == ["stone", "dirt"]

    def test_design_plan_list_materials(self):
        """A list of materials becomes a role map."""
        plan = DesignPlan.from_dict({"size": {"width": 4, "height": 4, "depth": 4},
                                     "materials": ["stone", "glass"], "features": "door"})
        assert list(plan.materials.values()) == ["stone", "glass"]
        assert plan.features == ["door"]
        assert plan.dimensions.volume == 64

    @pytest.mark.parametrize("field,value,message", [
        ("dimensions", [4, 4, 4], "dimensions must be an object"),
        ("materials", "stone", "materials must be an object"),
        ("features", 3, "features must be a list"),
    ])
    def test_design_plan_wrong_types(self, field, value, message):
        """Wrong-typed plan sections raise ValueError."""
        data = {"dimensions": {"width": 4, "height": 4, "depth": 4}, "materials": {"primary": "stone"}}
        data[field] = value
        with pytest.raises(ValueError, match=message):
            DesignPlan.from_dict(data)
