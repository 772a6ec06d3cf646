"""
Unit tests for block expansion.
"""

from generation.core import Blueprint, Dimensions, Operation, OperationKind, Vec3, cursor_reset, move
from generation.ops import estimate_block_count, expand_blueprint, expand_operation


def _positions(op):
    return {p for p, _ in expand_operation(op)}


class TestExpandOperation:
    """Tests for per-operation expansion."""

    def test_fill_box(self):
        """fill covers its whole box."""
        op = Operation(kind=OperationKind.FILL, block="stone", from_pos=Vec3(2, 0, 2), to_pos=Vec3(0, 1, 0))
        assert len(_positions(op)) == 18

    def test_hollow_box_shell(self):
        """hollow_box leaves the interior empty."""
        op = Operation(kind=OperationKind.HOLLOW_BOX, block="stone", from_pos=Vec3(0, 0, 0), to_pos=Vec3(2, 2, 2))
        positions = _positions(op)
        assert len(positions) == 26
        assert (1, 1, 1) not in positions

    def test_floor_is_single_layer(self):
        """floor ignores the Y extent of its corners."""
        op = Operation(kind=OperationKind.FLOOR, block="oak_planks", from_pos=Vec3(0, 1, 0), to_pos=Vec3(3, 5, 3))
        assert {y for _, y, _ in _positions(op)} == {1}
        assert len(_positions(op)) == 16

    def test_door_is_two_high(self):
        """door places two blocks."""
        op = Operation(kind=OperationKind.DOOR, block="oak_door", pos=Vec3(2, 1, 0))
        assert _positions(op) == {(2, 1, 0), (2, 2, 0)}

    def test_window_strip_spacing(self):
        """window_strip places every Nth block along its line."""
        op = Operation(kind=OperationKind.WINDOW_STRIP, block="glass_pane", from_pos=Vec3(0, 2, 0),
                       to_pos=Vec3(6, 2, 0), params={"spacing": 3})
        assert _positions(op) == {(0, 2, 0), (3, 2, 0), (6, 2, 0)}

    def test_bulk_uses_fallback(self):
        """Bulk kinds expand through their fallback."""
        fallback = Operation(kind=OperationKind.FILL, block="stone", from_pos=Vec3(0, 0, 0), to_pos=Vec3(1, 0, 0))
        op = Operation(kind=OperationKind.WE_FILL, block="stone", from_pos=Vec3(0, 0, 0),
                       to_pos=Vec3(1, 0, 0), fallback=fallback)
        assert _positions(op) == {(0, 0, 0), (1, 0, 0)}

    def test_cylinder_levels(self):
        """cylinder repeats its disk for each level."""
        op = Operation(kind=OperationKind.CYLINDER, block="stone", base=Vec3(0, 0, 0), radius=1, height=3)
        positions = _positions(op)
        assert {y for _, y, _ in positions} == {0, 1, 2}
        assert (0, 0, 0) in positions

    def test_pixel_art_rows_top_down(self):
        """pixel_art rows are listed top-down."""
        op = Operation(kind=OperationKind.PIXEL_ART, base=Vec3(0, 0, 0),
                       params={"layers": ["R.", "RR"], "legend": {"R": "red_wool"}})
        assert _positions(op) == {(0, 1, 0), (0, 0, 0), (1, 0, 0)}

    def test_nothing_for_markers_and_site_prep(self):
        """Markers, site prep and under-specified steps place nothing."""
        assert expand_operation(move(Vec3(1, 0, 0))) == []
        assert expand_operation(Operation(kind=OperationKind.SITE_PREP, from_pos=Vec3(0, 0, 0),
                                          to_pos=Vec3(3, 0, 3))) == []
        assert expand_operation(Operation(kind=OperationKind.FILL, block="stone")) == []


class TestExpandBlueprint:
    """Tests for blueprint expansion with cursor markers."""

    def test_cursor_markers_offset_targets(self):
        """move shifts later steps; cursor_reset returns to the origin."""
        block = Operation(kind=OperationKind.SET, block="stone", pos=Vec3(0, 0, 0))
        bp = Blueprint(
            size=Dimensions(20, 1, 1),
            palette=("stone",),
            steps=(block, move(Vec3(10, 0, 0)), block, cursor_reset(), move(Vec3(0, 0, 5)), block),
        )
        targets = expand_blueprint(bp, origin=Vec3(100, 64, 100))
        assert [t.position for t in targets] == [
            Vec3(100, 64, 100), Vec3(110, 64, 100), Vec3(100, 64, 105),
        ]

    def test_later_step_overwrites_block(self):
        """A later step at the same position replaces the block."""
        first = Operation(kind=OperationKind.SET, block="stone", pos=Vec3(0, 0, 0))
        second = Operation(kind=OperationKind.SET, block="gold_block", pos=Vec3(0, 0, 0))
        bp = Blueprint(size=Dimensions(1, 1, 1), palette=("stone",), steps=(first, second))
        targets = expand_blueprint(bp)
        assert len(targets) == 1
        assert targets[0].block == "gold_block"
        assert targets[0].step_index == 1

    def test_estimate_counts_boxes_without_expanding(self):
        """Box kinds are estimated from their corners."""
        big = Operation(kind=OperationKind.FILL, block="stone", from_pos=Vec3(0, 0, 0), to_pos=Vec3(99, 99, 99))
        shell = Operation(kind=OperationKind.HOLLOW_BOX, block="stone", from_pos=Vec3(0, 0, 0), to_pos=Vec3(2, 2, 2))
        bp = Blueprint(size=Dimensions(100, 100, 100), palette=("stone",), steps=(big, shell))
        assert estimate_block_count(bp) == 1_000_000 + 26
