import datetime as dt
from enum import StrEnum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class SignalType(StrEnum):
    CALENDAR_EVENT = "calendar_event"
    EMAIL = "email"
    DOCUMENT_EXCERPT = "document_excerpt"


class SignalSource(StrEnum):
    GMAIL = "gmail"
    OUTLOOK = "outlook"
    SLACK = "slack"
    DRIVE = "drive"
    CALENDAR = "calendar"
    NOTION = "notion"


def parse_instant(value: str | None) -> dt.datetime | None:
    """
    Parses an ISO-8601 timestamp into an aware UTC datetime.
    Returns None for missing or unparsable input; naive values are taken as UTC.
    """
    if not value or not isinstance(value, str):
        return None

    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"

    try:
        parsed = dt.datetime.fromisoformat(text)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=dt.UTC)
        # Offsets near year 1 or 9999 fall outside the representable range
        return parsed.astimezone(dt.UTC)
    except (ValueError, OverflowError):
        return None


def format_instant(instant: dt.datetime) -> str:
    """Canonical string form of a UTC instant, e.g. 2024-01-15T09:00:00Z."""
    utc = instant.astimezone(dt.UTC).replace(tzinfo=None)
    timespec = "microseconds" if utc.microsecond else "seconds"
    return utc.isoformat(timespec=timespec) + "Z"


class WorkSignal(BaseModel):
    """
    A single observed fact pulled from a connected source.
    Adapters normalize provider payloads into this shape before detection.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Stable 'source:identifier' key, e.g. 'gmail:123'.")
    type: SignalType | str
    source: SignalSource | str
    datetime: Optional[str] = Field(None, description="ISO-8601 timestamp, required for scheduling checks.")
    content: Optional[str] = None
    author: Optional[str] = None

    # Known values become enum members; unknown kinds are kept verbatim.
    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, value):
        try:
            return SignalType(value)
        except ValueError:
            return value

    @field_validator("source", mode="before")
    @classmethod
    def _coerce_source(cls, value):
        try:
            return SignalSource(value)
        except ValueError:
            return value

    @property
    def is_calendar_event(self) -> bool:
        return self.type == SignalType.CALENDAR_EVENT

    def instant(self) -> dt.datetime | None:
        """The signal's datetime normalized to UTC, or None if absent/unparsable."""
        return parse_instant(self.datetime)
