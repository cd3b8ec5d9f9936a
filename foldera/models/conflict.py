from enum import StrEnum
from typing import Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field, field_validator
from foldera.models.signal import format_instant, parse_instant


class Severity(StrEnum):
    """
    Closed, totally ordered severity scale: low < medium < high < critical.
    Comparisons use the rank, never the lexical value.
    """
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    def __lt__(self, other):
        if isinstance(other, Severity):
            return self.rank < other.rank
        return NotImplemented

    def __le__(self, other):
        if isinstance(other, Severity):
            return self.rank <= other.rank
        return NotImplemented

    def __gt__(self, other):
        if isinstance(other, Severity):
            return self.rank > other.rank
        return NotImplemented

    def __ge__(self, other):
        if isinstance(other, Severity):
            return self.rank >= other.rank
        return NotImplemented

    @classmethod
    def coerce(cls, value) -> "Severity":
        """Maps loosely-typed input onto the enum, defaulting to MEDIUM."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        return cls.MEDIUM


_SEVERITY_RANK = {
    Severity.LOW: 0,
    Severity.MEDIUM: 1,
    Severity.HIGH: 2,
    Severity.CRITICAL: 3,
}


class ConflictType(StrEnum):
    SCHEDULING = "scheduling_conflict"
    CONTENT = "content_conflict"
    FINANCIAL_MISMATCH = "financial_mismatch"
    COMMITMENT_CONTRADICTION = "commitment_contradiction"


class Conflict(BaseModel):
    """The uniform output contract of both detectors."""
    model_config = ConfigDict(frozen=True)

    type: ConflictType | str
    severity: Severity
    signals_involved: Tuple[str, ...] = Field(..., min_length=2)
    summary: str
    recommended_action: str = ""
    datetime: Optional[str] = Field(None, description="The conflicting moment, for scheduling conflicts.")

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, value):
        try:
            return ConflictType(value)
        except ValueError:
            return value

    def natural_key(self) -> tuple:
        """
        Identity used when merging detector outputs.
        Two conflicts are the same finding when they share kind, signal set and moment.
        """
        instant = parse_instant(self.datetime)
        moment = format_instant(instant) if instant else self.datetime
        return (str(self.type), frozenset(self.signals_involved), moment)
