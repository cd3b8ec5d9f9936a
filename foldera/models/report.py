from typing import Dict, List
from pydantic import BaseModel, Field, computed_field
from foldera.models.conflict import Conflict, Severity


class ConflictReport(BaseModel):
    """
    Read-only view of one detection run for briefing and UI consumers.
    Conflicts are ordered most severe first; ties keep detection order.
    """
    signals_analyzed: int = Field(ge=0)
    conflicts: List[Conflict] = Field(default_factory=list)

    @classmethod
    def build(cls, signals_analyzed: int, conflicts: List[Conflict]) -> "ConflictReport":
        ordered = sorted(conflicts, key=lambda c: c.severity.rank, reverse=True)
        return cls(signals_analyzed=signals_analyzed, conflicts=ordered)

    @computed_field
    @property
    def total_conflicts(self) -> int:
        return len(self.conflicts)

    @computed_field
    @property
    def critical_conflicts(self) -> int:
        return sum(1 for c in self.conflicts if c.severity == Severity.CRITICAL)

    @computed_field
    @property
    def by_type(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for conflict in self.conflicts:
            key = str(conflict.type)
            counts[key] = counts.get(key, 0) + 1
        return counts

    @computed_field
    @property
    def by_severity(self) -> Dict[str, int]:
        counts = {severity.value: 0 for severity in Severity}
        for conflict in self.conflicts:
            counts[conflict.severity.value] += 1
        return counts
