"""
Unit tests for build preparation and station-by-station execution.
"""

from automation.context import BuildContext
from automation.execution import BuildExecutor, prepare_build
from generation.core import Blueprint, Vec3


def _blueprint():
    return Blueprint.from_dict({
        "size": {"width": 41, "height": 2, "depth": 3},
        "palette": ["stone", "oak_planks"],
        "steps": [
            {"op": "fill", "block": "stone", "from": [0, 0, 0], "to": [2, 0, 2]},
            {"op": "set", "block": "oak_planks", "pos": [40, 0, 0]},
        ],
    })


class RecordingPlacer:
    """Placer recording calls; fails at the given positions."""

    def __init__(self, fail_at=(), raise_at=()):
        self.fail_at = set(fail_at)
        self.raise_at = set(raise_at)
        self.placed = []

    def place(self, position, block):
        if position in self.raise_at:
            raise RuntimeError("server rejected placement")
        self.placed.append((position, block))
        return position not in self.fail_at


class TestPrepareBuild:
    """Tests for prepare_build."""

    def test_targets_and_partition(self):
        plan = prepare_build(_blueprint(), Vec3(100, 64, -20))

        assert len(plan.targets) == 10
        assert plan.targets[0].position == Vec3(100, 64, -20)
        assert plan.coverage.is_partition()
        assert len(plan.coverage) >= 2

    def test_to_dict(self):
        data = prepare_build(_blueprint()).to_dict()
        assert data["total_blocks"] == 10
        assert data["stats"]["station_count"] == len(data["stations"])


class TestBuildExecutor:
    """Tests for BuildExecutor.execute."""

    def test_places_every_block(self):
        plan = prepare_build(_blueprint())
        placer = RecordingPlacer()

        report = BuildExecutor(BuildContext(), placer).execute(plan)

        assert report.success
        assert report.placed == 10
        assert report.skipped == 0
        assert report.progress == 1.0
        assert report.stations_visited == len(plan.coverage)
        assert sorted(p.as_tuple() for p, _ in placer.placed) == sorted(t.position.as_tuple() for t in plan.targets)

    def test_failures_counted_not_raised(self):
        plan = prepare_build(_blueprint())
        placer = RecordingPlacer(fail_at={Vec3(0, 0, 0)}, raise_at={Vec3(40, 0, 0)})

        report = BuildExecutor(BuildContext(), placer).execute(plan)

        assert report.failed == 2
        assert report.placed == 8
        assert not report.success
        assert "2 block placement(s) failed" in report.warnings

    def test_movement_failure_is_warning(self):
        class BrokenMover:
            def move_to(self, position):
                raise RuntimeError("path blocked")

        plan = prepare_build(_blueprint())

        report = BuildExecutor(BuildContext(), RecordingPlacer(), BrokenMover()).execute(plan)

        assert report.placed == 10
        assert any("path blocked" in w for w in report.warnings)

    def test_cancel_between_stations(self):
        context = BuildContext()
        plan = prepare_build(_blueprint())

        class CancellingPlacer(RecordingPlacer):
            def place(self, position, block):
                context.cancel()
                return super().place(position, block)

        report = BuildExecutor(context, CancellingPlacer()).execute(plan)

        assert report.cancelled
        assert report.stations_visited == 1
        first = len(plan.coverage.stations[0].block_indices)
        assert report.placed == first
        assert report.skipped == 10 - first
        assert report.to_dict()["cancelled"] is True

    def test_empty_plan(self):
        plan = prepare_build(Blueprint.from_dict({
            "size": {"width": 1, "height": 1, "depth": 1},
            "palette": ["stone"],
            "steps": [{"op": "cursor_reset"}],
        }))

        report = BuildExecutor(BuildContext(), RecordingPlacer()).execute(plan)

        assert report.total == 0
        assert report.progress == 1.0
        assert report.success

    def test_reset_cancel_allows_new_build(self):
        context = BuildContext()
        context.cancel()
        context.reset_cancel()

        report = BuildExecutor(context, RecordingPlacer()).execute(prepare_build(_blueprint()))

        assert not report.cancelled
        assert report.placed == 10
