"""Conflict detection package."""
from foldera.detection.scheduling import detect_scheduling_conflicts
from foldera.detection.parsing import parse_conflicts
from foldera.detection.solver import ConflictSolver, merge_conflicts

__all__ = [
    "ConflictSolver",
    "detect_scheduling_conflicts",
    "merge_conflicts",
    "parse_conflicts",
]
