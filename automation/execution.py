"""
Build execution.

Expands an ordered blueprint into world-space target blocks, plans the
stations that cover them, and walks the stations handing each block to a
placement collaborator. Placement failures are tallied, never raised.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List
import logging

from generation.core.blueprint import Blueprint
from generation.core.types import ORIGIN, Vec3
from generation.ops.expand import TargetBlock, expand_blueprint
from generation.ops.stations import CoverageAssignment, StationCursor, plan_stations
from automation.context import BuildContext

logger = logging.getLogger(__name__)


@dataclass
class BuildPlan:
    """Expanded targets of a blueprint and the stations covering them."""
    blueprint: Blueprint
    origin: Vec3
    targets: List[TargetBlock]
    coverage: CoverageAssignment

    def to_dict(self) -> Dict[str, Any]:
        return {
            "origin": self.origin.to_dict(),
            "total_blocks": len(self.targets),
            "stations": [s.to_dict() for s in self.coverage.stations],
            "stats": self.coverage.stats(),
        }


def prepare_build(blueprint: Blueprint, origin: Vec3 = ORIGIN, policy=None) -> BuildPlan:
    """
    Expand a blueprint and plan its stations.

    Parameters
    ----------
    blueprint : Blueprint
        Build-ordered blueprint
    origin : Vec3
        World position of the blueprint origin
    policy : PlacementPolicy, optional
        Reach and candidate geometry

    Returns
    -------
    BuildPlan
        Targets in placement order and their station assignment
    """
    targets = expand_blueprint(blueprint, origin)
    coverage = plan_stations([t.position for t in targets], policy)
    logger.info(f"Prepared build: {len(targets)} blocks over {len(coverage)} stations")
    return BuildPlan(blueprint=blueprint, origin=origin, targets=targets, coverage=coverage)


@dataclass
class ExecutionReport:
    """
    Aggregate outcome of executing a build plan.

    Attributes
    ----------
    placed : int
        Blocks placed successfully
    failed : int
        Blocks whose placement failed
    skipped : int
        Blocks never attempted because the build was cancelled
    cancelled : bool
        Whether execution stopped on the cancel flag
    """
    total: int
    placed: int = 0
    failed: int = 0
    skipped: int = 0
    stations_visited: int = 0
    cancelled: bool = False
    warnings: List[str] = field(default_factory=list)

    @property
    def progress(self) -> float:
        if self.total == 0:
            return 1.0
        return (self.placed + self.failed) / self.total

    @property
    def success(self) -> bool:
        return not self.cancelled and self.failed == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "placed": self.placed,
            "failed": self.failed,
            "skipped": self.skipped,
            "stations_visited": self.stations_visited,
            "progress": self.progress,
            "cancelled": self.cancelled,
            "warnings": list(self.warnings),
        }


class BuildExecutor:
    """
    Walks a build plan station by station.

    Parameters
    ----------
    context : BuildContext
        Provides the cancel flag
    placer : object
        Object with ``place(position: Vec3, block: str) -> bool``. A False
        return or an exception counts as a failed placement.
    mover : object, optional
        Object with ``move_to(position: Vec3)``; called before each station.
        A movement failure is recorded and the station's blocks are still
        attempted.
    """

    def __init__(self, context: BuildContext, placer, mover=None):
        self.context = context
        self.placer = placer
        self.mover = mover

    def _place(self, target: TargetBlock, report: ExecutionReport) -> None:
        try:
            ok = self.placer.place(target.position, target.block)
        except Exception as e:
            ok = False
            logger.debug(f"Placement raised at {target.position.as_tuple()}: {e}")
        if ok is False:
            report.failed += 1
        else:
            report.placed += 1

    def execute(self, plan: BuildPlan) -> ExecutionReport:
        """
        Execute a build plan.

        Returns
        -------
        ExecutionReport
            Placement counters; cancellation leaves the remaining blocks
            counted as skipped
        """
        report = ExecutionReport(total=len(plan.targets))
        cursor = StationCursor(plan.coverage)
        logger.info(f"Executing build: {report.total} blocks, {len(plan.coverage)} stations")

        station = cursor.advance()
        while station is not None:
            if self.context.is_cancelled():
                report.cancelled = True
                break
            if self.mover is not None:
                try:
                    self.mover.move_to(station.position)
                except Exception as e:
                    report.warnings.append(f"Movement to {station.position.as_tuple()} failed: {e}")
                    logger.warning(report.warnings[-1])
            for index in station.block_indices:
                self._place(plan.targets[index], report)
            report.stations_visited += 1
            logger.debug(f"Station {cursor.completed + 1}/{len(plan.coverage)} done ({report.progress:.0%})")
            station = cursor.advance()

        report.skipped = report.total - report.placed - report.failed
        if report.cancelled:
            logger.info(f"Build cancelled after {report.stations_visited} station(s), {report.skipped} blocks skipped")
        if report.failed:
            report.warnings.append(f"{report.failed} block placement(s) failed")
            logger.warning(report.warnings[-1])
        logger.info(f"Build finished: {report.placed}/{report.total} placed")
        return report


__all__ = [
    "BuildPlan",
    "ExecutionReport",
    "BuildExecutor",
    "prepare_build",
]
